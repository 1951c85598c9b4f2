"""
Custom Exceptions

This module defines the error taxonomy shared by the redirect and admin
surfaces. Every exception carries the HTTP status code and a machine
readable code so the API layer can render it without a lookup table.

Benefits:
- More specific error types for different failure scenarios
- Better error messages for API consumers
- Easier error handling and logging
- Type safety with exception handling
"""

from typing import Optional


class ClickTrailError(Exception):
    """Base exception for the link service."""

    status_code: int = 500
    code: str = "INTERNAL_ERROR"
    title: str = "Internal Server Error"

    def __init__(self, message: str = "An unexpected error occurred"):
        self.message = message
        super().__init__(message)


class NotFoundError(ClickTrailError):
    status_code = 404
    code = "NOT_FOUND"
    title = "Not Found"


class LinkNotFoundError(NotFoundError):
    """Raised when a link id or short code does not exist."""

    def __init__(self, identifier: str):
        self.identifier = identifier
        super().__init__(f"Link '{identifier}' not found")


class LinkExpiredError(ClickTrailError):
    """Raised when an active link is resolved after its expires_at."""
    status_code = 410
    code = "EXPIRED"
    title = "Gone"

    def __init__(self, short_code: str):
        self.short_code = short_code
        super().__init__(f"Short link '{short_code}' has expired")


class ValidationFailedError(ClickTrailError):
    status_code = 400
    code = "VALIDATION_ERROR"
    title = "Bad Request"


class InvalidURLError(ValidationFailedError):
    """Raised when URL validation fails."""

    def __init__(self, url: str, reason: str = "Invalid URL format"):
        self.url = url
        self.reason = reason
        super().__init__(f"{reason}: {url}")


class InvalidShortCodeError(ValidationFailedError):
    """Raised when a requested short code has the wrong shape."""

    def __init__(self, short_code: str):
        self.short_code = short_code
        super().__init__(
            f"Invalid short code format: '{short_code}'. "
            "Use 3-20 alphanumeric characters, hyphens, or underscores."
        )


class InvalidDateRangeError(ValidationFailedError):
    """Raised when an analytics date range cannot be used."""


class ConflictError(ClickTrailError):
    status_code = 409
    code = "CONFLICT"
    title = "Conflict"


class ShortCodeConflictError(ConflictError):
    """Raised when a requested short code is already taken."""

    def __init__(self, short_code: str):
        self.short_code = short_code
        super().__init__(
            f"Short code '{short_code}' already exists. Please choose a different one."
        )


class UnauthorizedError(ClickTrailError):
    status_code = 401
    code = "UNAUTHORIZED"
    title = "Unauthorized"

    def __init__(self, message: str = "Authentication required"):
        super().__init__(message)


class ForbiddenError(ClickTrailError):
    status_code = 403
    code = "FORBIDDEN"
    title = "Forbidden"

    def __init__(self, message: str = "You do not have permission to access this link"):
        super().__init__(message)


class ConfigurationError(ClickTrailError):
    """Raised for bad configuration; callers must not retry."""
    code = "CONFIGURATION_ERROR"
    title = "Configuration Error"


class ShortCodeExhaustedError(ConfigurationError):
    """Raised when random code generation keeps colliding."""

    def __init__(self, attempts: int):
        self.attempts = attempts
        super().__init__(
            f"Failed to generate a unique short code after {attempts} attempts"
        )


class ServiceUnavailableError(ClickTrailError):
    """Raised when a required service is unavailable."""
    status_code = 503
    code = "UNAVAILABLE"
    title = "Service Unavailable"

    def __init__(self, service_name: str, message: Optional[str] = None):
        self.service_name = service_name
        super().__init__(message or f"Service '{service_name}' is unavailable")


class DatabaseError(ClickTrailError):
    """Raised when database operations fail."""

    def __init__(self, message: str, original_error: Exception = None):
        self.original_error = original_error
        super().__init__(f"Database error: {message}")
