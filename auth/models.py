"""
auth/models.py -- Domain dataclasses for authentication entities.

Pattern: Data class (pure data container, zero logic). Mirrors the approach
in core/models.py -- dataclasses own domain shape; stores and services do
the work.

Layer rule: no imports from api/ or roster/.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class Account:
    """A canonical identity, reachable by password and/or Google sign-in.

    email is the uniqueness key shared by both sign-in paths, stored
    lowercase. name is the display name; among accounts that hold a password
    it is also the local login handle.

    hashed_password is "" for federation-only accounts. Such an account can
    never pass password login (see auth.tokens.authenticate_account).
    google_id is the provider's stable subject, set when the account was
    created by a Google sign-in.

    Accounts are written once and never updated by this service.
    """

    name: str
    id: int | None = None
    email: str | None = None
    google_id: str | None = None
    hashed_password: str = ""
    created_at: str | None = None

    @property
    def has_password(self) -> bool:
        return bool(self.hashed_password)


@dataclass(frozen=True)
class FederatedProfile:
    """Identity attributes asserted by an external provider after code exchange."""

    provider: str  # "google"
    subject: str  # provider's stable user ID
    email: str
    name: str
    email_verified: bool = False
