"""Error taxonomy shared by the auth core, persistence helpers and route handlers.

Every error carries an `ErrorKind` tag. Only the HTTP layer
(`site_progress.api.server`) turns a kind into a status code.
"""

from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    VALIDATION = "validation"
    AUTH = "auth"
    FORBIDDEN = "forbidden"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"


class AppError(Exception):
    kind: ErrorKind

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(AppError):
    """Missing or malformed request fields."""

    kind = ErrorKind.VALIDATION


class AuthError(AppError):
    """Missing, malformed, forged or expired token, or wrong credentials.

    Messages stay generic so clients can't tell "expired" from "forged" or
    "unknown email" from "wrong password".
    """

    kind = ErrorKind.AUTH


class ForbiddenError(AppError):
    """Authenticated, but the role/ownership policy says no."""

    kind = ErrorKind.FORBIDDEN


class NotFoundError(AppError):
    kind = ErrorKind.NOT_FOUND


class ConflictError(AppError):
    kind = ErrorKind.CONFLICT
