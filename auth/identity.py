"""
auth/identity.py -- Maps lookup keys and federated profiles to Accounts.

IdentityResolver owns the "create on first sight" policy for federated
sign-ins. Email is the key that joins the two sign-in paths: a Google
profile whose email already belongs to an account resolves to that account,
whichever way it was created, and the account is returned unchanged (its
name and password are never overwritten).

Layer rule: no imports from api/ or roster/.
"""

from __future__ import annotations

import logging

from auth.models import Account, FederatedProfile
from auth.store import AccountStore, normalize_email
from core.errors import ConflictError, ProfileFetchError

logger = logging.getLogger("rollet.auth")


class IdentityResolver:
    def __init__(self, store: AccountStore) -> None:
        self.store = store

    def resolve_local(self, name: str) -> Account | None:
        """Return the password account whose login name is name, or None."""
        return self.store.get_by_name(name)

    def resolve_by_email(self, email: str) -> Account | None:
        return self.store.get_by_email(email)

    def resolve_by_id(self, account_id: int) -> Account | None:
        return self.store.get_by_id(account_id)

    def resolve_or_create_federated(self, profile: FederatedProfile) -> Account:
        """Return the account for profile.email, creating a federation-only one if absent.

        Idempotent by email: repeated calls with the same email return the
        same account and create at most one row. If two first sign-ins race,
        the loser's insert hits the unique email and the winner's row is
        returned instead.
        """
        email = normalize_email(profile.email)
        if email is None:
            raise ProfileFetchError()

        existing = self.store.get_by_email(email)
        if existing is not None:
            return existing

        try:
            account = self.store.create_account(
                Account(
                    name=profile.name or email,
                    email=email,
                    google_id=profile.subject,
                    hashed_password="",
                )
            )
        except ConflictError:
            winner = self.store.get_by_email(email)
            if winner is None:
                raise
            return winner

        logger.info("Created account %d from %s sign-in", account.id, profile.provider)
        return account
