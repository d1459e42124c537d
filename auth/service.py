"""
auth/service.py -- Registration, password login, and Google sign-in.

Transport-agnostic: the API routes in api/routes/v1/auth.py are thin
bindings over AuthService, and every failure leaves here as a RolletError
from core/errors.py.

Login state machine (per request):
    Unauthenticated -> CredentialsChecked -> TokenIssued
The first failed check ends the request. No token is minted before every
check has passed, so no partial result can escape.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass

from auth import oauth
from auth.identity import IdentityResolver
from auth.models import Account
from auth.oauth import ProviderConfig
from auth.store import normalize_email
from auth.tokens import BCRYPT_MAX_BYTES, SessionIssuer, authenticate_account, hash_password
from core.errors import ConflictError, ExchangeError, InvalidCredentials, ValidationError

logger = logging.getLogger("rollet.auth")

NAME_MIN_LEN = 3
NAME_MAX_LEN = 255
PASSWORD_MIN_LEN = 8

# Deliberately loose: one "@", something on both sides, a dot in the domain.
_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


@dataclass
class LoginResult:
    token: str
    account_id: int
    expires_in: int


@dataclass
class AuthorizationRedirect:
    """Returned by federated_exchange() when there is no code yet."""

    authorization_url: str
    state: str


def _validate_registration(email: str, name: str, password: str) -> None:
    if not email or not _EMAIL_RE.match(email.strip()):
        raise ValidationError("A valid email address is required.")
    if not name or not (NAME_MIN_LEN <= len(name.strip()) <= NAME_MAX_LEN):
        raise ValidationError(f"Name must be between {NAME_MIN_LEN} and {NAME_MAX_LEN} characters.")
    if not password or len(password) < PASSWORD_MIN_LEN:
        raise ValidationError(f"Password must be at least {PASSWORD_MIN_LEN} characters.")
    if len(password.encode("utf-8")) > BCRYPT_MAX_BYTES:
        raise ValidationError(f"Password must be at most {BCRYPT_MAX_BYTES} bytes.")


class AuthService:
    def __init__(
        self,
        resolver: IdentityResolver,
        issuer: SessionIssuer,
        bcrypt_rounds: int | None = None,
    ) -> None:
        self.resolver = resolver
        self.issuer = issuer
        self.bcrypt_rounds = bcrypt_rounds

    def register(self, email: str, name: str, password: str) -> Account:
        """Create a password account.

        Raises ValidationError if the email, name, or password policy is not
        met, HashingError if the password cannot be hashed, and ConflictError
        if the email or the login name is already taken.
        """
        _validate_registration(email, name, password)
        name = name.strip()
        email = normalize_email(email)

        if self.resolver.resolve_by_email(email) is not None:
            raise ConflictError()
        if self.resolver.resolve_local(name) is not None:
            raise ConflictError()

        hashed = hash_password(password, self.bcrypt_rounds)
        account = self.resolver.store.create_account(Account(name=name, email=email, hashed_password=hashed))
        logger.info("Registered account %d", account.id)
        return account

    def login(self, name: str, password: str) -> LoginResult:
        """Check name/password and issue a session token.

        Every failure raises the same InvalidCredentials so callers cannot
        tell an unknown name from a wrong password.
        """
        account = authenticate_account(self.resolver, name or "", password or "")
        if account is None:
            logger.info("Password login rejected")
            raise InvalidCredentials()
        return self._issue(account)

    def federated_exchange(
        self,
        provider: ProviderConfig,
        code: str | None,
        state: str | None,
    ) -> LoginResult | AuthorizationRedirect:
        """Run one leg of the authorization code flow.

        Without a code: return the provider URL to redirect to, carrying a
        freshly signed state. With a code: verify the state, exchange the
        code, fetch the verified profile, resolve or create the account, and
        issue a session token.

        Raises ExchangeError (bad state or code rejected) and
        ProfileFetchError (profile unavailable or email unverified).
        """
        if not code:
            new_state = self.issuer.issue_state()
            return AuthorizationRedirect(
                authorization_url=oauth.authorization_url(provider, new_state),
                state=new_state,
            )

        if not self.issuer.check_state(state):
            logger.warning("%s callback rejected: invalid or expired state", provider.name)
            raise ExchangeError()

        profile = oauth.exchange_code(provider, code)
        account = self.resolver.resolve_or_create_federated(profile)
        return self._issue(account)

    def _issue(self, account: Account) -> LoginResult:
        return LoginResult(
            token=self.issuer.issue(account.id),
            account_id=account.id,
            expires_in=self.issuer.expire_seconds,
        )
