"""
Application error taxonomy.

Every error that crosses the HTTP boundary is one of these, rendered by
middleware/error_handler.py as {"error": message, "errors"?: {field: [msgs]}}.
"""

from datetime import datetime, timezone
from fastapi import HTTPException, status


class AppException(HTTPException):
    """
    Base exception for all application-level errors.

    Args:
        status_code: HTTP status returned to the client
        message: Client-safe message (never internal detail)
        errors: Optional per-field messages, e.g. {"email": ["Invalid email address"]}
        headers: Optional extra response headers
    """
    def __init__(
        self,
        status_code: int,
        message: str,
        errors: dict[str, list[str]] | None = None,
        headers: dict[str, str] | None = None,
    ):
        super().__init__(status_code=status_code, detail=message, headers=headers)
        self.message = message
        self.errors = errors


class ValidationException(AppException):
    def __init__(self, message: str = "Validation failed", errors: dict[str, list[str]] | None = None):
        super().__init__(status.HTTP_400_BAD_REQUEST, message, errors=errors)


class AuthenticationException(AppException):
    def __init__(self, message: str = "Not authenticated"):
        super().__init__(status.HTTP_401_UNAUTHORIZED, message)


class AuthorizationException(AppException):
    def __init__(self, message: str = "Not authorized"):
        super().__init__(status.HTTP_403_FORBIDDEN, message)


class NotFoundException(AppException):
    def __init__(self, resource: str = "Resource"):
        super().__init__(status.HTTP_404_NOT_FOUND, f"{resource} not found")


class ConflictException(AppException):
    def __init__(self, message: str = "Record already exists"):
        super().__init__(status.HTTP_409_CONFLICT, message)


class RateLimitedException(AppException):
    def __init__(self, reset_at: float, message: str = "Too many requests. Please try again later."):
        retry_after = max(0, int(reset_at - datetime.now(timezone.utc).timestamp()) + 1)
        super().__init__(
            status.HTTP_429_TOO_MANY_REQUESTS,
            message,
            headers={"Retry-After": str(retry_after)},
        )
        self.reset_at = reset_at


class UnexpectedException(AppException):
    def __init__(self, message: str = "An unexpected error occurred"):
        super().__init__(status.HTTP_500_INTERNAL_SERVER_ERROR, message)
