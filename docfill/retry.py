"""
Bounded retry with exponential backoff for calls to the extraction service.
Only UpstreamError with retryable=True is retried; anything else propagates at once.
"""
import logging
import time
from typing import Callable, TypeVar

from docfill.errors import UpstreamError

logger = logging.getLogger(__name__)

T = TypeVar("T")

RETRY_STATUS_CODES = (429, 503)
DEFAULT_MAX_ATTEMPTS = 3
DEFAULT_BASE_DELAY = 1.0
DEFAULT_MAX_DELAY = 30.0


def backoff_delay(attempt: int, base_delay: float = DEFAULT_BASE_DELAY, max_delay: float = DEFAULT_MAX_DELAY) -> float:
    """Delay after the given failed attempt (1-based): base * 2^(attempt-1), capped."""
    return min(base_delay * (2 ** (attempt - 1)), max_delay)


def is_retryable_status(status: int | None) -> bool:
    return status in RETRY_STATUS_CODES


def call_with_retry(
    func: Callable[[], T],
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    base_delay: float = DEFAULT_BASE_DELAY,
    max_delay: float = DEFAULT_MAX_DELAY,
    sleep: Callable[[float], None] = time.sleep,
) -> T:
    """
    Call func until it succeeds, raises a non-retryable error, or max_attempts is used up.
    The last retryable UpstreamError is re-raised unchanged so callers still see retryable=True.
    """
    attempts = max(1, max_attempts)
    attempt = 1
    while True:
        try:
            return func()
        except UpstreamError as e:
            if not e.retryable or attempt >= attempts:
                raise
            delay = backoff_delay(attempt, base_delay, max_delay)
            logger.warning(
                "%s (status %s), retry attempt %d/%d after %.1fs",
                e, e.status_code, attempt + 1, attempts, delay,
            )
            sleep(delay)
        attempt += 1
