"""
Bounded retries with exponential backoff for store writes.

Transient store failures are retried; once attempts are exhausted the
failure surfaces as PersistenceError.
"""

from __future__ import annotations

import logging
import random
import time
from typing import Callable, Optional, Tuple, Type, TypeVar

from google.api_core import exceptions as gcp_exceptions

from catalog_automation import config
from catalog_automation.exceptions import PersistenceError

logger = logging.getLogger(__name__)

T = TypeVar("T")

TRANSIENT_ERRORS: Tuple[Type[BaseException], ...] = (
    gcp_exceptions.GoogleAPICallError,
    gcp_exceptions.RetryError,
    ConnectionError,
    TimeoutError,
)


def with_retries(
    fn: Callable[[], T],
    description: str,
    max_attempts: int = config.PERSIST_MAX_ATTEMPTS,
    backoff_secs: float = config.PERSIST_BACKOFF_SECS,
    sleep: Optional[Callable[[float], None]] = None,
) -> T:
    """
    Call fn, retrying transient store errors.

    Args:
        fn: Zero-argument callable performing the store operation
        description: Human-readable operation name for logs
        max_attempts: Total attempts including the first
        backoff_secs: Base delay, doubled per attempt with jitter
        sleep: Sleep function (defaults to time.sleep)

    Raises:
        PersistenceError: When every attempt failed
    """
    sleep = sleep or time.sleep
    last_error: BaseException = RuntimeError("no attempts made")
    for attempt in range(1, max_attempts + 1):
        try:
            return fn()
        except TRANSIENT_ERRORS as e:
            last_error = e
            logger.warning("%s failed (attempt %d/%d): %s",
                           description, attempt, max_attempts, e)
            if attempt < max_attempts:
                delay = backoff_secs * (2 ** (attempt - 1))
                sleep(delay + random.uniform(0, delay * 0.1))
    raise PersistenceError(f"{description} failed after {max_attempts} attempts: {last_error}",
                           attempts=max_attempts)


__all__ = ["with_retries", "TRANSIENT_ERRORS"]
