"""
core/errors.py -- Error taxonomy shared by the auth and roster layers.

Every failure a caller can observe is a RolletError subclass carrying a
stable machine-readable code, an HTTP status for the API layer, and a
human-readable message. The message is always safe to return to a client:
secrets, hashes, and provider responses go to the log, never into an error.

All errors are terminal for the current request. Nothing in this package
retries; the caller decides whether to resubmit.

Layer rule: core/ is the kernel. This module may not import from api/,
auth/, or roster/.
"""

from __future__ import annotations


class RolletError(Exception):
    """Base class for every classified Rollet failure."""

    code: str = "internal_error"
    status_code: int = 500
    default_message: str = "An unexpected error occurred."

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(RolletError):
    """Bad caller input. Recoverable by correcting the request."""

    code = "validation_error"
    status_code = 422
    default_message = "Request validation failed."


class HashingError(RolletError):
    """Password hashing failed; registration must not continue."""

    code = "internal_error"
    status_code = 500
    default_message = "Failed to process credentials."


class InvalidCredentials(RolletError):
    # One message for unknown name and wrong password alike.
    code = "bad_credentials"
    status_code = 401
    default_message = "Invalid name or password."


class Unauthenticated(RolletError):
    code = "unauthorized"
    status_code = 401
    default_message = "Authentication required."


class ConflictError(RolletError):
    code = "conflict"
    status_code = 409
    default_message = "An account with that email or name already exists."


class ExchangeError(RolletError):
    """The identity provider rejected the authorization code or state."""

    code = "upstream_error"
    status_code = 502
    default_message = "Sign-in with the identity provider failed."


class ProfileFetchError(RolletError):
    """The identity provider profile could not be retrieved or trusted."""

    code = "upstream_error"
    status_code = 502
    default_message = "Sign-in with the identity provider failed."


class StorageError(RolletError):
    code = "storage_error"
    status_code = 500
    default_message = "The data store is unavailable."
