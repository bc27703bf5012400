"""
auth/errors.py -- Failure taxonomy for credential and session operations.

Every failure the auth layer reports is an AuthError subclass. Each kind
carries a stable machine-readable code, the HTTP status the API maps it to,
and a client-safe message. The message never contains storage or hashing
error text -- components log the original exception and raise
InternalServerError from it.

Layer rule: no imports from api/ or core/. The status codes are plain ints so
this module stays framework-free; api/main.py turns them into responses.
"""

from __future__ import annotations


class AuthError(Exception):
    """Base class for all recoverable authentication failures."""

    code: str = "auth_error"
    status_code: int = 400
    message: str = "Authentication failed."

    def __init__(self, message: str | None = None) -> None:
        if message is not None:
            self.message = message
        super().__init__(self.message)


class InvalidCredentials(AuthError):
    """No user with the submitted username exists."""

    code = "invalid_credentials"
    status_code = 401
    message = "Invalid username or password."


class IncorrectCredentials(AuthError):
    """The user exists but the password did not verify."""

    code = "incorrect_credentials"
    status_code = 401
    message = "Incorrect username or password."


class UserAlreadyExists(AuthError):
    code = "user_already_exists"
    status_code = 409
    message = "A user with that username already exists."


class SessionNotFound(AuthError):
    code = "session_not_found"
    status_code = 401
    message = "Session not found."


class SessionExpired(AuthError):
    code = "session_expired"
    status_code = 401
    message = "Session expired."


class InternalServerError(AuthError):
    """Storage, hashing, or header-construction failure. Details are logged, not returned."""

    code = "internal_error"
    status_code = 500
    message = "Internal server error."
