"""Exception hierarchy for the SmartCal library."""

from __future__ import annotations


class SmartCalError(Exception):
    """Base exception for all SmartCal errors."""


class ConfigError(SmartCalError):
    """Configuration is missing or invalid."""


class AuthenticationError(SmartCalError):
    """Authentication failed or session expired."""


class ApiConnectionError(SmartCalError):
    """Backend is unreachable (network error, DNS, timeout)."""


class ApiResponseError(SmartCalError):
    """Backend returned an unexpected error response.

    Attributes:
        status_code: HTTP status code, if available.
    """

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class PermissionDeniedError(ApiResponseError):
    """The document store rejected the request (HTTP 403)."""

    def __init__(self, message: str = "Access denied", *, status_code: int = 403) -> None:
        super().__init__(message, status_code=status_code)


class RateLimitError(ApiResponseError):
    """Backend returned 429 Too Many Requests.

    Attributes:
        retry_after: Seconds to wait before retrying, if provided by the server.
    """

    def __init__(
        self,
        message: str = "Rate limited",
        *,
        status_code: int = 429,
        retry_after: float | None = None,
    ) -> None:
        super().__init__(message, status_code=status_code)
        self.retry_after = retry_after


class ExtractionError(SmartCalError):
    """The natural-language extraction service returned unusable output."""


class InvalidReminderError(SmartCalError, ValueError):
    """A reminder or todo document does not match the persisted shape."""


class InvalidDateError(InvalidReminderError):
    """A calendar date could not be parsed."""
