"""
Custom exceptions for the Screen Pop service.

Provides structured error handling with appropriate HTTP status codes
and error details for API responses.
"""

from typing import Any, Dict, Optional


class ScreenPopException(Exception):
    """Base exception for the Screen Pop service."""

    def __init__(
        self,
        message: str,
        status_code: int = 500,
        error_code: str = "internal_error",
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.error_code = error_code
        self.details = details or {}


class ValidationError(ScreenPopException):
    """Raised when query parameters are missing or malformed."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(
            message=message,
            status_code=400,
            error_code="validation_error",
            details=details,
        )


class AuthenticationError(ScreenPopException):
    """Raised when a bearer token is missing, invalid or expired."""

    def __init__(self, message: str = "Invalid or expired token") -> None:
        super().__init__(
            message=message,
            status_code=401,
            error_code="authentication_error",
        )


class AuthorizationError(ScreenPopException):
    """Raised for wrong roles, rejected origins and disabled features."""

    def __init__(self, message: str = "Access denied", details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(
            message=message,
            status_code=403,
            error_code="authorization_error",
            details=details,
        )


class NotFoundError(ScreenPopException):
    """Raised for unknown routes and unmatched customers."""

    def __init__(self, message: str = "Not found", details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(
            message=message,
            status_code=404,
            error_code="not_found",
            details=details,
        )


class RateLimitError(ScreenPopException):
    """Raised when rate limit is exceeded."""

    def __init__(
        self,
        message: str = "Rate limit exceeded",
        retry_after: Optional[int] = None,
    ) -> None:
        details = {}
        if retry_after:
            details["retry_after"] = retry_after

        super().__init__(
            message=message,
            status_code=429,
            error_code="rate_limit_exceeded",
            details=details,
        )


class InternalError(ScreenPopException):
    """Raised for anything unanticipated."""

    def __init__(self, message: str = "Internal server error") -> None:
        super().__init__(
            message=message,
            status_code=500,
            error_code="internal_error",
        )
