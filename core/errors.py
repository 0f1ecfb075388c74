"""
core/errors.py -- Application error taxonomy.

Every per-request failure the service layer can produce is an AppError
subclass carrying a stable machine-readable code and the HTTP status the API
layer should answer with. api/main.py registers one exception handler for
AppError and renders the error envelope from these attributes, so services
never import FastAPI and never build HTTP responses themselves.

ConfigurationError is the one non-request error: it is raised while the
process starts (missing or weak signing secrets) and is never caught by the
request handlers.

Layer rule: core/ is the kernel. No imports from api/, auth/, or directory/.
"""

from __future__ import annotations


class AppError(Exception):
    """Base class for errors surfaced to API callers."""

    status_code: int = 500
    code: str = "internal_error"
    message: str = "An unexpected error occurred."

    def __init__(self, message: str | None = None, *, code: str | None = None, detail: str | None = None) -> None:
        self.message = message or self.message
        if code is not None:
            self.code = code
        self.detail = detail
        super().__init__(self.message)


# ---------------------------------------------------------------------------
# Authentication
# ---------------------------------------------------------------------------


class InvalidCredentialsError(AppError):
    """Wrong email/password combination.

    Deliberately identical for "no such account" and "wrong password" so the
    login endpoint does not leak which emails exist.
    """

    status_code = 401
    code = "invalid_credentials"
    message = "Invalid email or password."


class AccountNotActiveError(AppError):
    """The account exists but its status forbids login."""

    status_code = 401
    code = "account_not_active"
    message = "Your account is not active. Please contact an administrator."


class UnauthorizedError(AppError):
    """Missing, invalid, or expired token, or an account that failed re-resolution."""

    status_code = 401
    code = "unauthorized"
    message = "Authentication required."


class TokenExpiredError(UnauthorizedError):
    code = "token_expired"
    message = "Token has expired."


class TokenSignatureError(UnauthorizedError):
    code = "token_invalid"
    message = "Token signature is invalid."


class TokenMalformedError(UnauthorizedError):
    code = "token_malformed"
    message = "Token is malformed."


class TokenClassError(UnauthorizedError):
    """A correctly signed token of the wrong class (access vs refresh)."""

    code = "token_wrong_class"
    message = "Invalid token type."


# ---------------------------------------------------------------------------
# Authorization and data
# ---------------------------------------------------------------------------


class ForbiddenError(AppError):
    status_code = 403
    code = "forbidden"
    message = "You do not have permission to perform this action."


class NotFoundError(AppError):
    status_code = 404
    code = "not_found"
    message = "Resource not found."


class ConflictError(AppError):
    """Uniqueness violation or a state transition that does not apply."""

    status_code = 409
    code = "conflict"
    message = "Resource already exists."


# ---------------------------------------------------------------------------
# Startup
# ---------------------------------------------------------------------------


class ConfigurationError(Exception):
    """Fatal configuration problem detected at process start."""

    code = "configuration_error"
