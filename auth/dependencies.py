"""
auth/dependencies.py -- FastAPI Depends() helpers for authentication.

Sessions arrive only as an "Authorization: Bearer <token>" header. The
service keeps no session table, so every request's token is checked by the
SessionValidator stored on app.state at startup.

bearer_token() extracts the raw token (None when no header is sent).
try_get_current_account() is the soft variant (returns None on failure).
get_current_account() wraps it and raises Unauthenticated (HTTP 401).

Layer rule: no imports from roster/.
  auth/dependencies.py may import from fastapi (for Request) because this
  module is part of the FastAPI dependency injection system.
"""

from __future__ import annotations

from fastapi import Request

from auth.models import Account
from auth.tokens import SessionValidator
from core.errors import Unauthenticated


def bearer_token(request: Request) -> str | None:
    """Return the bearer token from the Authorization header, or None.

    A header that is present but not of the form "Bearer <token>" is
    rejected outright rather than treated as anonymous.
    """
    auth_header = request.headers.get("Authorization")
    if auth_header is None:
        return None
    scheme, _, token = auth_header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise Unauthenticated("Bearer token is required.")
    return token.strip()


def try_get_current_account(request: Request) -> Account | None:
    """Resolve the request's bearer token to an Account. Returns None on any failure."""
    validator: SessionValidator = request.app.state.session_validator
    try:
        token = bearer_token(request)
    except Unauthenticated:
        return None
    return validator.validate(token)


def get_current_account(request: Request) -> Account:
    """Require authentication. Raises Unauthenticated (401) if the request is not authenticated.

    Use as a FastAPI dependency:
        @router.get("/protected")
        def route(account: Account = Depends(get_current_account)): ...
    """
    account = try_get_current_account(request)
    if account is None:
        raise Unauthenticated()
    return account
