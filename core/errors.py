# core/errors.py
"""
Error taxonomy shared by the business layer and the HTTP boundary.

Business functions raise these; `main.py` renders every one of them as
`{"success": false, "error": <message>, ...extra}` with the class status code.
"""
from typing import Any

from fastapi import status


class AppError(Exception):
    """Base class for client-facing errors."""
    status_code: int = status.HTTP_400_BAD_REQUEST
    default_message: str = "Request failed"

    def __init__(
        self,
        message: str | None = None,
        *,
        extra: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ):
        self.message = message or self.default_message
        self.extra = extra or {}
        self.headers = headers
        super().__init__(self.message)


class ValidationError(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid input"


class ConflictError(AppError):
    status_code = status.HTTP_409_CONFLICT
    default_message = "User with this username or email already exists"


class InvalidCredentialsError(AppError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Invalid credentials"


class UnauthenticatedError(AppError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Not authenticated"

    def __init__(self, message: str | None = None):
        super().__init__(message, headers={"WWW-Authenticate": "Bearer"})


class ForbiddenError(AppError):
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Access denied. Insufficient permissions."


class AccountDeactivatedError(AppError):
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "User account is deactivated"


class EmailNotVerifiedError(AppError):
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Please verify your email before logging in"

    def __init__(self, message: str | None = None):
        super().__init__(message, extra={"requires_verification": True})


class InvalidTokenError(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid or already used token"


class ExpiredTokenError(AppError):
    status_code = status.HTTP_410_GONE
    default_message = "Token has expired"


class NotFoundError(AppError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Not found"


class AlreadyReviewedError(AppError):
    status_code = status.HTTP_409_CONFLICT
    default_message = "Permission request has already been reviewed"
