"""Error model: a closed set of typed application errors.

Each error carries a stable machine-readable ``code``, a human ``message``, the
HTTP ``status_code`` it maps to, and optional ``details`` strings (per-field
validation failures). Services raise these; ``error_handlers`` is the only
place that turns them into HTTP responses.
"""
from __future__ import annotations

import copy
from typing import Any, Dict, List, Optional, Sequence

from fastapi import status

from .utils import error_envelope

CODE_VALIDATION = "VALIDATION_ERROR"
CODE_INVALID_CREDENTIALS = "INVALID_CREDENTIALS"
CODE_USER_EXISTS = "USER_EXISTS"
CODE_NOT_FOUND = "NOT_FOUND"
CODE_FORBIDDEN = "FORBIDDEN"
CODE_UNAUTHORIZED = "UNAUTHORIZED"
CODE_BAD_REQUEST = "BAD_REQUEST"
CODE_INTERNAL = "INTERNAL_ERROR"


class AppError(Exception):
    """Base class for every error the API reports to its callers."""

    code: str = CODE_INTERNAL
    default_message: str = "An unexpected error occurred"
    default_status: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(
        self,
        message: Optional[str] = None,
        *,
        details: Optional[Sequence[str]] = None,
        status_code: Optional[int] = None,
    ) -> None:
        self.message = message or self.default_message
        self.details: List[str] = list(details or [])
        self.status_code = status_code or self.default_status
        super().__init__(self.message)

    def __str__(self) -> str:
        if self.__cause__ is not None:
            return f"{self.code}: {self.message} (caused by: {self.__cause__})"
        return f"{self.code}: {self.message}"

    def with_details(self, *details: str) -> "AppError":
        """Return a copy of this error carrying the given details."""
        clone = copy.copy(self)
        clone.details = list(details)
        clone.__cause__ = self.__cause__
        return clone

    def to_response(self) -> Dict[str, Any]:
        """Render the error envelope; ``details`` is omitted when empty."""
        return error_envelope(self.code, self.message, self.details)


class ValidationFailed(AppError):
    code = CODE_VALIDATION
    default_message = "Validation failed"
    default_status = status.HTTP_400_BAD_REQUEST


class InvalidCredentials(AppError):
    """Unknown email or wrong password. Both cases are reported identically."""

    code = CODE_INVALID_CREDENTIALS
    default_message = "Invalid email or password"
    default_status = status.HTTP_401_UNAUTHORIZED


class DuplicateResource(AppError):
    code = CODE_USER_EXISTS
    default_message = "User with this email already exists"
    default_status = status.HTTP_409_CONFLICT


class NotFound(AppError):
    code = CODE_NOT_FOUND
    default_message = "Resource not found"
    default_status = status.HTTP_404_NOT_FOUND


class Forbidden(AppError):
    """The caller is authenticated but does not own the resource."""

    code = CODE_FORBIDDEN
    default_message = "You don't have permission to access this resource"
    default_status = status.HTTP_403_FORBIDDEN


class Unauthorized(AppError):
    """Missing, malformed, invalid or expired bearer token."""

    code = CODE_UNAUTHORIZED
    default_message = "Authentication required"
    default_status = status.HTTP_401_UNAUTHORIZED


class BadRequest(AppError):
    code = CODE_BAD_REQUEST
    default_message = "Bad request"
    default_status = status.HTTP_400_BAD_REQUEST


class InternalError(AppError):
    """Unexpected fault. The message is always the generic one."""

    code = CODE_INTERNAL
    default_message = "An unexpected error occurred"
    default_status = status.HTTP_500_INTERNAL_SERVER_ERROR
