"""Common exception classes for Quarry.

Provides the hierarchy of domain errors raised by transports and delivered
to listeners by the command dispatcher.
"""

from typing import Optional, Dict, Any


class QuarryError(Exception):
    """Base exception for all Quarry-related errors."""

    def __init__(self, message: str, code: Optional[str] = None,
                 details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.code = code
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging and listeners."""
        result = {"message": self.message}
        if self.code:
            result["code"] = self.code
        if self.details:
            result["details"] = self.details
        return result


class TransportError(QuarryError):
    """Raised when the transport fails to reach the search service."""

    def __init__(self, message: str = "Transport error", **kwargs):
        super().__init__(message, code="TRANSPORT_ERROR", **kwargs)


class QuarryTimeoutError(QuarryError):
    """Raised when a transport operation times out."""

    def __init__(self, message: str = "Operation timed out", **kwargs):
        super().__init__(message, code="TIMEOUT_ERROR", **kwargs)


class ServerError(QuarryError):
    """Raised when the search service answers with an error status."""

    def __init__(self, status: int, message: str = "Server error", **kwargs):
        super().__init__(f"HTTP {status}: {message}", code="SERVER_ERROR", **kwargs)
        self.status = status


class InvalidRequestError(QuarryError):
    """Raised when command arguments are invalid."""

    def __init__(self, message: str = "Invalid request", **kwargs):
        super().__init__(message, code="INVALID_REQUEST", **kwargs)


class InvalidParameterError(QuarryError):
    """Raised when a dynamically typed query parameter gets an unsupported value."""

    def __init__(self, parameter: str, message: str, **kwargs):
        super().__init__(f"{parameter}: {message}", code="INVALID_PARAMETER", **kwargs)
        self.parameter = parameter
