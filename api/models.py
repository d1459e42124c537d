"""
API request and response models for Rollet REST endpoints.

These Pydantic v2 models define the HTTP transport contract for the API layer.
They are intentionally separate from the dataclasses in core/models.py and
auth/models.py, which own the internal domain representation. Route handlers
map between the two.

Separation of concerns: core/ and auth/ models = domain truth;
api/ models = API contract.
"""

from typing import Annotated, Optional

from pydantic import BaseModel, ConfigDict, Field, StringConstraints

from auth.models import Account
from core.models import AssignmentResult, Person

# ---------------------------------------------------------------------------
# Auth -- request models
# ---------------------------------------------------------------------------


class RegisterRequest(BaseModel):
    """Request body for POST /api/v1/auth/register.

    Length checks here are the transport guard; AuthService.register()
    applies the full policy (email shape, 72-byte bcrypt limit).

    Only email and name are stripped. The password is hashed exactly as
    sent, so login with the same string verifies.
    """

    email: Annotated[str, StringConstraints(strip_whitespace=True, min_length=3, max_length=320)]
    name: Annotated[str, StringConstraints(strip_whitespace=True, min_length=3, max_length=255)]
    password: str = Field(min_length=8, max_length=255)


class LoginRequest(BaseModel):
    """Request body for POST /api/v1/auth/login."""

    name: str = Field(min_length=1, max_length=255)
    password: str = Field(min_length=1, max_length=255)


# ---------------------------------------------------------------------------
# Auth -- response models
# ---------------------------------------------------------------------------


class LoginResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    token: str
    user_id: int
    token_type: str = "bearer"
    expires_in: int


class AccountResponse(BaseModel):
    """Public view of an Account. Never includes the password hash."""

    model_config = ConfigDict(frozen=True)

    id: int
    name: str
    email: Optional[str] = None
    google_id: Optional[str] = None
    has_password: bool
    created_at: str = ""

    @classmethod
    def from_account(cls, account: Account) -> "AccountResponse":
        return cls(
            id=account.id,
            name=account.name,
            email=account.email,
            google_id=account.google_id,
            has_password=account.has_password,
            created_at=account.created_at or "",
        )


class RegisterResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    message: str = "User registered successfully"
    user: AccountResponse


class OAuthProviderInfo(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    label: str


# ---------------------------------------------------------------------------
# Teams
# ---------------------------------------------------------------------------


class PersonInput(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(min_length=1, max_length=255)
    role: str = Field(min_length=1, max_length=255)


class RandomizeRequest(BaseModel):
    """Request body for POST /api/v1/random."""

    people: list[PersonInput] = Field(min_length=1, max_length=1000)
    team_count: int = Field(ge=1, le=1000)

    def to_roster(self) -> list[Person]:
        return [Person(name=p.name, role=p.role) for p in self.people]


class PersonResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: Optional[int] = None
    name: str
    role: str
    team: int


class TeamGroupResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    team: int
    members: list[PersonResponse]


class RandomizeResponse(BaseModel):
    """Response for POST /api/v1/random and GET /api/v1/history."""

    model_config = ConfigDict(frozen=True)

    teams: list[TeamGroupResponse]
    total: int

    @classmethod
    def from_result(cls, result: AssignmentResult) -> "RandomizeResponse":
        """Build the response from a core AssignmentResult.

        Factory Method: the mapping lives here, colocated with the output
        model, rather than in each route handler.
        """
        return cls(
            teams=[
                TeamGroupResponse(
                    team=group.team,
                    members=[PersonResponse(id=p.id, name=p.name, role=p.role, team=p.team) for p in group.members],
                )
                for group in result.teams
            ],
            total=result.total,
        )


# ---------------------------------------------------------------------------
# Errors and health
# ---------------------------------------------------------------------------


class ErrorDetail(BaseModel):
    """Machine-readable error payload."""

    model_config = ConfigDict(frozen=True)

    code: str
    message: str
    detail: Optional[str] = None


class ErrorResponse(BaseModel):
    """Top-level error envelope returned on 4xx/5xx responses."""

    model_config = ConfigDict(frozen=True)

    error: ErrorDetail


class HealthResponse(BaseModel):
    """Response for GET /api/v1/health."""

    model_config = ConfigDict(frozen=True)

    status: str = "healthy"
    version: str
    components: dict[str, str] = Field(default_factory=dict)
