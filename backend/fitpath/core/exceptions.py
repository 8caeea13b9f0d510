"""
Application error taxonomy.

Every error raised by the services carries the HTTP status and the stable
machine-readable code the API returns, so route handlers never build error
responses themselves. The exception handlers in ``main.py`` turn these into
``{"success": false, "message", "code", "details"}`` payloads.
"""

from typing import Any, List, Optional


class AppError(Exception):
    """Base class for all expected application errors."""

    status_code: int = 500
    code: str = "INTERNAL_SERVER_ERROR"

    def __init__(self, message: str, details: Optional[Any] = None):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> dict:
        payload = {
            "success": False,
            "message": self.message,
            "code": self.code,
        }
        if self.details is not None:
            payload["details"] = self.details
        return payload


class InputValidationError(AppError):
    """Malformed or out-of-range input."""
    status_code = 400
    code = "VALIDATION_ERROR"


class DuplicateEntryError(AppError):
    """A unique field (email) already exists."""
    status_code = 400
    code = "DUPLICATE_ENTRY"


class InvalidCurrentPasswordError(AppError):
    status_code = 400
    code = "INVALID_CURRENT_PASSWORD"


class IncompleteSectionsError(AppError):
    """Onboarding cannot be completed while required sections are missing."""
    status_code = 400
    code = "INCOMPLETE_SECTIONS"

    def __init__(self, missing: List[str]):
        super().__init__(
            "Please complete all required sections before finishing onboarding",
            details={"incompleteSections": list(missing)},
        )
        self.missing = list(missing)


class InvalidCredentialsError(AppError):
    """
    Sign-in failure.

    Raised with the same message for an unknown email and a wrong password
    so responses cannot be used to enumerate accounts.
    """
    status_code = 401
    code = "INVALID_CREDENTIALS"

    def __init__(self, message: str = "Invalid email or password"):
        super().__init__(message)


class InvalidTokenError(AppError):
    """Bad signature, issuer, audience, algorithm or structure."""
    status_code = 401
    code = "INVALID_TOKEN"


class TokenExpiredError(AppError):
    status_code = 401
    code = "TOKEN_EXPIRED"


class WrongTokenTypeError(AppError):
    status_code = 401
    code = "INVALID_TOKEN_TYPE"


class RevokedTokenError(AppError):
    """Refresh token is cryptographically valid but no longer stored for the user."""
    status_code = 401
    code = "REFRESH_TOKEN_REVOKED"


class ForbiddenError(AppError):
    status_code = 403
    code = "FORBIDDEN"


class UserNotFoundError(AppError):
    status_code = 404
    code = "USER_NOT_FOUND"

    def __init__(self, message: str = "User not found"):
        super().__init__(message)


class ConcurrentUpdateError(AppError):
    """Stored document version differs from the one the caller read."""
    status_code = 409
    code = "CONCURRENT_UPDATE"


class InternalError(AppError):
    status_code = 500
    code = "INTERNAL_SERVER_ERROR"


class HashingError(InternalError):
    """bcrypt failed to hash or compare; never reported as bad credentials."""


class StorageError(InternalError):
    """Reading or writing a document failed."""


class RateLimitExceededError(AppError):
    status_code = 429
    code = "RATE_LIMIT_EXCEEDED"

    def __init__(
        self,
        message: str = "Too many requests from this IP, please try again later",
        retry_after: int = 0,
    ):
        super().__init__(message, details={"retryAfter": retry_after})
        self.retry_after = retry_after
