"""
Application error types.

Every error carries the HTTP status and a stable ``error_type`` code so the
exception handler in ``xplorium.main`` can render a consistent body.
"""
import enum
from typing import Any, Dict, Optional


class ErrorType(str, enum.Enum):
    VALIDATION = "VALIDATION_ERROR"
    AUTHENTICATION = "AUTHENTICATION_ERROR"
    AUTHORIZATION = "AUTHORIZATION_ERROR"
    NOT_FOUND = "NOT_FOUND"
    CONFLICT = "CONFLICT"
    RATE_LIMIT = "RATE_LIMIT_ERROR"
    DATABASE = "DATABASE_ERROR"
    INTERNAL = "INTERNAL_ERROR"


class XploriumError(Exception):
    """Base application error"""

    status_code: int = 500
    error_type: ErrorType = ErrorType.INTERNAL

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.headers = headers

    def to_dict(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {
            "detail": self.message,
            "error_type": self.error_type.value,
        }
        if self.details:
            body["details"] = self.details
        return body


class ValidationFailedError(XploriumError):
    status_code = 400
    error_type = ErrorType.VALIDATION


class AuthenticationError(XploriumError):
    status_code = 401
    error_type = ErrorType.AUTHENTICATION

    def __init__(self, message: str = "Authentication required"):
        super().__init__(message, headers={"WWW-Authenticate": "Bearer"})


class AuthorizationError(XploriumError):
    status_code = 403
    error_type = ErrorType.AUTHORIZATION

    def __init__(self, message: str = "Insufficient permissions"):
        super().__init__(message)


class NotFoundError(XploriumError):
    status_code = 404
    error_type = ErrorType.NOT_FOUND

    def __init__(self, resource: str = "Resource"):
        super().__init__(f"{resource} not found")


class ConflictError(XploriumError):
    status_code = 409
    error_type = ErrorType.CONFLICT


class RateLimitedError(XploriumError):
    """Raised when a rate-limited action has no requests left in its window"""

    status_code = 429
    error_type = ErrorType.RATE_LIMIT

    def __init__(
        self,
        retry_after: int,
        action: Optional[str] = None,
        headers: Optional[Dict[str, str]] = None,
    ):
        self.retry_after = max(0, int(retry_after))
        self.action = action
        super().__init__(
            f"Too many requests. Please try again in {self.retry_after} seconds.",
            headers={**(headers or {}), "Retry-After": str(self.retry_after)},
        )

    def to_dict(self) -> Dict[str, Any]:
        body = super().to_dict()
        body["retry_after"] = self.retry_after
        return body
