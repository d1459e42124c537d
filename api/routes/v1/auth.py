"""
api/routes/v1/auth.py -- Registration, login, and Google sign-in endpoints.

Routes:
  POST /api/v1/auth/register   -- create a password account; 201
  POST /api/v1/auth/login      -- name/password login; returns a bearer token
  GET  /api/v1/auth/google     -- Google sign-in: 302 to Google without ?code,
                                  bearer token JSON on the callback with ?code
  GET  /api/v1/auth/providers  -- list enabled sign-in providers (public)
  GET  /api/v1/auth/me         -- current account (requires auth)

Security:
  authenticate_account() (via AuthService.login) provides timing
  equalization -- never inline a lookup + verify_password() here.
  Cache-Control: no-store on every response that carries a token.

Handlers are plain def: the stores and bcrypt block, so FastAPI runs them
on its worker thread pool.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse, RedirectResponse

from api.models import (
    AccountResponse,
    LoginRequest,
    LoginResponse,
    OAuthProviderInfo,
    RegisterRequest,
    RegisterResponse,
)
from auth.dependencies import get_current_account
from auth.models import Account
from auth.oauth import get_enabled_providers, google_provider
from auth.service import AuthorizationRedirect, AuthService, LoginResult

# Auth policy:
# - POST /api/v1/auth/register:  public
# - POST /api/v1/auth/login:     public -- login endpoint must be unauthenticated
# - GET  /api/v1/auth/google:    public -- both legs of the authorization code flow
# - GET  /api/v1/auth/providers: public -- clients call this to render sign-in buttons
# - GET  /api/v1/auth/me:        requires auth (get_current_account)
router = APIRouter()


def _token_response(result: LoginResult) -> JSONResponse:
    resp = JSONResponse(
        status_code=200,
        content=LoginResponse(
            token=result.token,
            user_id=result.account_id,
            token_type="bearer",  # noqa: S106 # nosec B106 -- OAuth token type, not a password
            expires_in=result.expires_in,
        ).model_dump(),
    )
    resp.headers["Cache-Control"] = "no-store"
    return resp


@router.post("/auth/register", response_model=RegisterResponse, status_code=201)
def register(request: Request, body: RegisterRequest) -> RegisterResponse:
    """Create a password account. The email must not already be registered."""
    service: AuthService = request.app.state.auth_service
    account = service.register(body.email, body.name, body.password)
    return RegisterResponse(user=AccountResponse.from_account(account))


@router.post("/auth/login", response_model=LoginResponse)
def login(request: Request, body: LoginRequest) -> JSONResponse:
    """Authenticate with name and password; return a bearer token valid for 3 hours.

    Unknown names and wrong passwords get the same 401 "bad_credentials"
    response so account existence does not leak.
    """
    service: AuthService = request.app.state.auth_service
    return _token_response(service.login(body.name, body.password))


@router.get("/auth/google", response_model=LoginResponse)
def google_login(request: Request, code: str | None = None, state: str | None = None):
    """Run Google sign-in.

    Without ?code the browser is redirected to Google with a signed state.
    Google redirects back here with ?code&state; the code is exchanged, the
    account resolved (or created) by verified email, and a token returned.
    """
    provider = google_provider(request.app.state.settings)
    if provider is None:
        raise HTTPException(
            status_code=503,
            detail={"code": "provider_unavailable", "message": "Google sign-in is not configured."},
        )

    service: AuthService = request.app.state.auth_service
    result = service.federated_exchange(provider, code, state)
    if isinstance(result, AuthorizationRedirect):
        return RedirectResponse(result.authorization_url, status_code=302)
    return _token_response(result)


@router.get("/auth/providers", response_model=list[OAuthProviderInfo])
def list_providers(request: Request) -> list[OAuthProviderInfo]:
    """Return the configured sign-in providers. Empty when none are set up."""
    return [OAuthProviderInfo(**p) for p in get_enabled_providers(request.app.state.settings)]


@router.get("/auth/me", response_model=AccountResponse)
def me(current_account: Account = Depends(get_current_account)) -> AccountResponse:
    """Return identity information for the currently authenticated account."""
    return AccountResponse.from_account(current_account)
