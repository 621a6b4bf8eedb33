"""Error taxonomy for OpenDota API interactions."""

from enum import Enum
from typing import Optional


class ErrorCategory(Enum):
    """Categorize errors for selective retry logic."""
    RETRYABLE = "retryable"          # transport failures, non-2xx
    NON_RETRYABLE = "non_retryable"  # decode / schema mismatch


class APIError(Exception):
    """Base exception for API errors."""
    pass


class TransportError(APIError):
    """Timeout, connect failure or malformed request."""
    pass


class HTTPStatusError(APIError):
    """Non-success HTTP status."""

    def __init__(self, status_code: int, context: str = ""):
        self.status_code = status_code
        msg = f"HTTP {status_code}"
        if context:
            msg = f"{msg} ({context})"
        super().__init__(msg)


class DecodeError(APIError):
    """Malformed or unexpected JSON. Retrying will not fix it."""
    pass


# Attempt-indexed backoff (seconds); fixed, no jitter
BACKOFF_SCHEDULE = {
    1: 0.2,
    2: 0.5,
}
BACKOFF_DEFAULT = 0.9


def backoff_delay(attempt: int) -> float:
    """
    Get the fixed delay to sleep after a failed attempt.

    Args:
        attempt: 1-based attempt number that just failed

    Returns:
        Delay in seconds
    """
    return BACKOFF_SCHEDULE.get(attempt, BACKOFF_DEFAULT)


def categorize_error(error: Exception) -> ErrorCategory:
    """
    Categorize an error for the retry loop.

    Args:
        error: Exception raised by an attempt

    Returns:
        ErrorCategory
    """
    if isinstance(error, (TransportError, HTTPStatusError)):
        return ErrorCategory.RETRYABLE
    return ErrorCategory.NON_RETRYABLE


def is_retryable_error(error: Exception) -> bool:
    """Check if an error should be retried."""
    return categorize_error(error) == ErrorCategory.RETRYABLE


def describe_error(error: Optional[BaseException]) -> Optional[str]:
    """Render an error for status text, or None when there is no error."""
    if error is None:
        return None
    text = str(error)
    return text if text else type(error).__name__
