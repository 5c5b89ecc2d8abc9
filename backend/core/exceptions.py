"""Custom exceptions for the lead outreach engine."""

from typing import Optional


class OutreachError(Exception):
    """Base exception for the lead outreach engine."""

    def __init__(self, message: str, status_code: int = 500):
        """Initialize exception with message and status code.

        Args:
            message: Exception message
            status_code: HTTP status code
        """
        self.message = message
        self.status_code = status_code
        super().__init__(self.message)


class NotFoundError(OutreachError):
    """Resource not found exception."""

    def __init__(self, message: str = "Resource not found"):
        """Initialize NotFoundError with 404 status code."""
        super().__init__(message, 404)


class ValidationError(OutreachError):
    """Validation error exception."""

    def __init__(self, message: str = "Validation failed"):
        """Initialize ValidationError with 422 status code."""
        super().__init__(message, 422)


class ConflictError(OutreachError):
    """Resource conflict exception."""

    def __init__(self, message: str = "Resource conflict"):
        """Initialize ConflictError with 409 status code."""
        super().__init__(message, 409)


class ConfigurationError(OutreachError):
    """A messaging capability is unavailable (missing provider credentials)."""

    def __init__(self, message: str = "Provider not configured"):
        super().__init__(message, 503)


class ContentResolutionError(OutreachError):
    """Message content could not be resolved (template missing, empty body)."""

    def __init__(self, message: str = "No message content"):
        super().__init__(message, 422)


class ProviderError(OutreachError):
    """A messaging provider rejected the request or could not be reached."""

    def __init__(self, message: str, provider: Optional[str] = None):
        self.provider = provider
        super().__init__(message, 502)
