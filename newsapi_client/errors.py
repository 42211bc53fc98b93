from __future__ import annotations

from enum import Enum


class ErrorCode(str, Enum):
    """Error codes returned in the ``code`` field of a NewsAPI error body."""

    API_KEY_DISABLED = "apiKeyDisabled"
    API_KEY_EXHAUSTED = "apiKeyExhausted"
    API_KEY_INVALID = "apiKeyInvalid"
    API_KEY_MISSING = "apiKeyMissing"
    PARAMETER_INVALID = "parameterInvalid"
    PARAMETERS_MISSING = "parametersMissing"
    RATE_LIMITED = "rateLimited"
    SOURCES_TOO_MANY = "sourcesTooMany"
    SOURCE_DOES_NOT_EXIST = "sourceDoesNotExist"
    UNEXPECTED_ERROR = "unexpectedError"

    def __str__(self) -> str:
        return self.value


class NewsApiError(Exception):
    """Base class for every error raised by this library."""


class ConfigurationError(NewsApiError):
    """Raised when a client cannot be configured (e.g. no API key)."""


class RequestValidationError(NewsApiError, ValueError):
    """Raised when a request fails local checks. Never reaches the network."""

    def __init__(self, message: str, field: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.field = field

    def __str__(self) -> str:
        if self.field:
            return f"Invalid request ({self.field}): {self.message}"
        return f"Invalid request: {self.message}"


class TransportError(NewsApiError):
    """Network-level failure: connection refused, reset, timeout."""


class ApiError(NewsApiError):
    """Well-formed upstream response reporting a logical failure."""

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        status_code: int | None = None,
        status: str = "error",
    ) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.status_code = status_code
        self.status = status

    def __str__(self) -> str:
        return (
            f"API error: status={self.status}, code={self.code}, "
            f"http={self.status_code}, message={self.message}"
        )


class ServerError(ApiError):
    """Upstream 5xx response. Transient, so retried."""


class DecodeError(NewsApiError):
    """Response body did not match the expected shape."""
