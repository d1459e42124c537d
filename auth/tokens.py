"""
auth/tokens.py -- Password hashing, session tokens, and OAuth state signing.

Security design decisions:
  Passwords: bcrypt, used directly (no passlib wrapper). The cost factor is
       configured (BCRYPT_ROUNDS) and may never drop below BCRYPT_MIN_ROUNDS;
       hash_password() raises HashingError rather than produce a weak or
       truncated hash. The dummy hash enables timing equalization in
       authenticate_account() so response time does not reveal whether a
       name exists.

  Sessions: python-jose with HS256. SessionIssuer is constructed with the
       signing secret -- nothing in this module reads the secret from global
       state. Tokens carry the account id and an absolute expiry 3 hours
       after issuance. The service keeps no session table: validity is
       signature + expiry + the account still existing.

  Algorithm confusion: decode() passes algorithms=["HS256"] explicitly, so a
       token whose header names any other algorithm (including "none") is
       rejected before its claims are read.

  OAuth state: the same issuer signs short-lived state values for the Google
       authorization redirect. A "typ" claim keeps the two token kinds from
       being accepted in each other's place.

Layer rule: no imports from api/ or roster/. Import from core/ is allowed.
"""

from __future__ import annotations

import logging
import secrets
from collections.abc import Callable
from datetime import datetime, timedelta, timezone
from functools import lru_cache
from typing import TYPE_CHECKING

import bcrypt
from jose import JWTError, jwt

from core.config import get_settings
from core.errors import HashingError

if TYPE_CHECKING:
    from auth.identity import IdentityResolver
    from auth.models import Account

logger = logging.getLogger("rollet.auth")

ALGORITHM = "HS256"
SESSION_TYPE = "session"
STATE_TYPE = "oauth_state"
STATE_EXPIRE_SECONDS = 10 * 60

# bcrypt only reads the first 72 bytes of a secret.
BCRYPT_MAX_BYTES = 72

# ---------------------------------------------------------------------------
# Password hashing (bcrypt -- direct usage, no passlib wrapper)
# ---------------------------------------------------------------------------


def hash_password(plain: str, rounds: int | None = None) -> str:
    """Return a bcrypt hash of the given plaintext password.

    Raises HashingError when rounds is below the configured minimum, when
    the password is longer than bcrypt's 72-byte limit (it would otherwise
    be truncated silently), or when bcrypt fails.
    """
    settings = get_settings()
    rounds = settings.bcrypt_rounds if rounds is None else rounds
    if rounds < settings.bcrypt_min_rounds:
        raise HashingError()
    pw_bytes = plain.encode("utf-8")
    if len(pw_bytes) > BCRYPT_MAX_BYTES:
        raise HashingError()
    try:
        return bcrypt.hashpw(pw_bytes, bcrypt.gensalt(rounds=rounds)).decode("utf-8")
    except ValueError as exc:
        logger.error("bcrypt rejected a hashing request: %s", exc)
        raise HashingError() from exc


def verify_password(plain: str, hashed: str) -> bool:
    """Return True if the plaintext password matches the bcrypt hash.

    An empty or malformed hash (federation-only accounts) is a mismatch.
    """
    if not hashed:
        return False
    try:
        return bcrypt.checkpw(plain.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        return False


# Timing equalization dummy hash.
# Computed once on first use so later logins are not measurably slower than
# the first. Always call verify_password() even when the name does not exist.
@lru_cache(maxsize=1)
def _dummy_hash() -> str:
    return hash_password(secrets.token_hex(16))


def authenticate_account(resolver: IdentityResolver, name: str, password: str) -> Account | None:
    """Authenticate a local name/password login with timing equalization.

    Always runs bcrypt whether or not the account exists:
    - Unknown name or federation-only account: bcrypt runs against the dummy hash
    - Wrong password: bcrypt runs against the real hash

    Returns the Account on success, None on any failure.
    """
    account = resolver.resolve_local(name)
    if account is None or not account.has_password:
        # Equalize timing -- do NOT return early before running bcrypt
        verify_password(password, _dummy_hash())
        return None
    if not verify_password(password, account.hashed_password):
        return None
    return account


# ---------------------------------------------------------------------------
# Session issuance / validation
# ---------------------------------------------------------------------------


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SessionIssuer:
    """Mints and verifies HS256 bearer tokens with an injected secret.

    Immutable after construction and safe to share across request threads.
    clock exists so tests can mint tokens "in the past".
    """

    def __init__(
        self,
        secret_key: str,
        expire_seconds: int = 3 * 60 * 60,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        if not secret_key:
            raise ValueError("SessionIssuer requires a non-empty secret key")
        self._secret_key = secret_key
        self.expire_seconds = expire_seconds
        self._clock = clock

    def issue(self, account_id: int) -> str:
        """Encode a signed session token for account_id, valid for expire_seconds."""
        now = self._clock()
        payload = {
            "sub": str(account_id),
            "user_id": account_id,
            "typ": SESSION_TYPE,
            "iat": now,
            "exp": now + timedelta(seconds=self.expire_seconds),
        }
        return jwt.encode(payload, self._secret_key, algorithm=ALGORITHM)

    def decode(self, token: str) -> int | None:
        """Verify a session token and return its account id, or None on any failure.

        Returning None (rather than raising) keeps the caller simple: any
        invalid token is treated as unauthenticated.
        """
        payload = self._verify(token, SESSION_TYPE)
        if payload is None:
            return None
        user_id = payload.get("user_id")
        # bool is an int subclass; a token claiming user_id=true is malformed.
        if not isinstance(user_id, int) or isinstance(user_id, bool):
            return None
        if payload.get("sub") != str(user_id):
            return None
        return user_id

    def issue_state(self) -> str:
        """Sign a random OAuth state value valid for a few minutes."""
        now = self._clock()
        payload = {
            "nonce": secrets.token_urlsafe(16),
            "typ": STATE_TYPE,
            "iat": now,
            "exp": now + timedelta(seconds=STATE_EXPIRE_SECONDS),
        }
        return jwt.encode(payload, self._secret_key, algorithm=ALGORITHM)

    def check_state(self, state: str | None) -> bool:
        """Return True if state was signed by issue_state() and has not expired."""
        if not state:
            return False
        return self._verify(state, STATE_TYPE) is not None

    def _verify(self, token: str, expected_type: str) -> dict | None:
        try:
            payload = jwt.decode(
                token,
                self._secret_key,
                algorithms=[ALGORITHM],
                options={"require_exp": True, "verify_sub": False},
            )
        except JWTError:
            return None
        if payload.get("typ") != expected_type:
            return None
        return payload


class SessionValidator:
    """Mirror of SessionIssuer used by every authenticated operation.

    A token is only as good as the account behind it: after the signature
    and expiry check the account is re-read, and a deleted account makes
    the token invalid.
    """

    def __init__(self, issuer: SessionIssuer, resolver: IdentityResolver) -> None:
        self._issuer = issuer
        self._resolver = resolver

    def validate(self, token: str | None) -> Account | None:
        if not token:
            return None
        account_id = self._issuer.decode(token)
        if account_id is None:
            return None
        account = self._resolver.resolve_by_id(account_id)
        if account is None:
            logger.info("Rejected session for missing account %d", account_id)
        return account
