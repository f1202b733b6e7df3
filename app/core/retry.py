"""Retry utilities for calls to the external attendance system."""

import logging
from dataclasses import dataclass

import httpx
from sqlalchemy.exc import SQLAlchemyError

from app.core.exceptions import (
    AuthError,
    PermanentRequestError,
    TransientNetworkError,
)

logger = logging.getLogger(__name__)

# Retryable HTTP status codes
RETRYABLE_STATUS_CODES = {429, 500, 502, 503, 504}

# Non-retryable exceptions
NON_RETRYABLE_EXCEPTIONS = (
    AuthError,
    PermanentRequestError,
    ValueError,
    TypeError,
    KeyError,
)


@dataclass(frozen=True)
class RetryPolicy:
    """Configuration for retry behavior.

    ``max_retries`` is the number of consecutive transient failures that
    ends a run; ``backoff_factor`` is the base delay in seconds and
    ``max_wait`` caps any single delay.
    """

    max_retries: int = 3
    backoff_factor: float = 1.0
    max_wait: float = 60.0

    def delay_for(self, attempt: int) -> float:
        """Delay after the ``attempt``-th consecutive failure (1-based)."""
        return compute_backoff(attempt, self.backoff_factor, self.max_wait)


def compute_backoff(attempt: int, base: float, cap: float) -> float:
    """Exponential backoff without jitter: ``min(base * 2**(attempt-1), cap)``."""
    if attempt < 1:
        raise ValueError("attempt is 1-based")
    return min(base * (2 ** (attempt - 1)), cap)


def is_retryable_status(status_code: int) -> bool:
    """Check whether an HTTP status from the counterparty is worth retrying."""
    return status_code in RETRYABLE_STATUS_CODES or status_code >= 500


def is_retryable_error(error: Exception) -> bool:
    """Determine if a failed page is worth fetching again.

    Staging write failures count as transient: a page is one transaction,
    so re-sending it is always safe.
    """
    if isinstance(error, NON_RETRYABLE_EXCEPTIONS):
        return False

    if isinstance(error, TransientNetworkError):
        return True

    if isinstance(error, SQLAlchemyError):
        return True

    if isinstance(error, httpx.HTTPStatusError):
        return is_retryable_status(error.response.status_code)

    # Timeouts, connection resets and protocol hiccups
    if isinstance(error, (httpx.TimeoutException, httpx.TransportError)):
        return True

    if isinstance(error, (TimeoutError, ConnectionError)):
        return True

    return False
