"""
Error taxonomy shared by the auth core and the HTTP boundary.

Callers match on `AuthError.kind` (a closed enum) instead of checking
exception classes. The HTTP status and the public error code for each kind
live here so the boundary never has to guess.
"""
from __future__ import annotations

from enum import Enum
from typing import Any, Optional


class ErrorKind(str, Enum):
    VALIDATION_ERROR = "VALIDATION_ERROR"
    DUPLICATE_EMAIL = "DUPLICATE_EMAIL"
    INVALID_CREDENTIALS = "INVALID_CREDENTIALS"
    ACCOUNT_INACTIVE = "ACCOUNT_INACTIVE"
    MISSING_TOKEN = "MISSING_TOKEN"
    UNAUTHENTICATED = "UNAUTHENTICATED"
    INVALID_TOKEN = "INVALID_TOKEN"
    TOKEN_EXPIRED = "TOKEN_EXPIRED"
    FORBIDDEN = "FORBIDDEN"
    USER_NOT_FOUND = "USER_NOT_FOUND"
    INVALID_DURATION_FORMAT = "INVALID_DURATION_FORMAT"
    UNAVAILABLE = "UNAVAILABLE"
    INTERNAL_ERROR = "INTERNAL_ERROR"

    @property
    def status(self) -> int:
        return _STATUS[self]

    @property
    def public(self) -> "ErrorKind":
        """The kind a client is allowed to see."""
        # inactive accounts must look exactly like bad credentials
        if self is ErrorKind.ACCOUNT_INACTIVE:
            return ErrorKind.INVALID_CREDENTIALS
        # configuration faults are not the client's business
        if self is ErrorKind.INVALID_DURATION_FORMAT:
            return ErrorKind.INTERNAL_ERROR
        return self

    @property
    def retryable(self) -> bool:
        return self is ErrorKind.UNAVAILABLE


_STATUS = {
    ErrorKind.VALIDATION_ERROR: 400,
    ErrorKind.DUPLICATE_EMAIL: 400,
    ErrorKind.INVALID_CREDENTIALS: 401,
    ErrorKind.ACCOUNT_INACTIVE: 401,
    ErrorKind.MISSING_TOKEN: 401,
    ErrorKind.UNAUTHENTICATED: 401,
    ErrorKind.INVALID_TOKEN: 403,
    ErrorKind.TOKEN_EXPIRED: 403,
    ErrorKind.FORBIDDEN: 403,
    ErrorKind.USER_NOT_FOUND: 404,
    ErrorKind.INVALID_DURATION_FORMAT: 500,
    ErrorKind.UNAVAILABLE: 503,
    ErrorKind.INTERNAL_ERROR: 500,
}

DEFAULT_MESSAGES = {
    ErrorKind.VALIDATION_ERROR: "Validation failed",
    ErrorKind.DUPLICATE_EMAIL: "User with this email already exists",
    ErrorKind.INVALID_CREDENTIALS: "Invalid email or password",
    ErrorKind.ACCOUNT_INACTIVE: "Invalid email or password",
    ErrorKind.MISSING_TOKEN: "Access token required",
    ErrorKind.UNAUTHENTICATED: "Authentication required",
    ErrorKind.INVALID_TOKEN: "Invalid or expired token",
    ErrorKind.TOKEN_EXPIRED: "Refresh token expired",
    ErrorKind.FORBIDDEN: "Insufficient permissions",
    ErrorKind.USER_NOT_FOUND: "User not found",
    ErrorKind.INVALID_DURATION_FORMAT: "Invalid duration format",
    ErrorKind.UNAVAILABLE: "Service temporarily unavailable, please retry",
    ErrorKind.INTERNAL_ERROR: "An unexpected error occurred",
}


class AuthError(Exception):
    """Failure raised by the auth core, tagged with an `ErrorKind`."""

    def __init__(self, kind: ErrorKind, message: Optional[str] = None, details: Any = None):
        self.kind = kind
        self.message = message or DEFAULT_MESSAGES[kind]
        self.details = details
        super().__init__(self.message)

    @property
    def public_message(self) -> str:
        if self.kind.public is not self.kind:
            return DEFAULT_MESSAGES[self.kind.public]
        return self.message

    def __repr__(self) -> str:
        return f"<AuthError {self.kind.value}: {self.message}>"
