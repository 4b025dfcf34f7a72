"""Retry logic with exponential backoff.

This module provides:
- retry_with_backoff: Exponential backoff retry for transient failures
- backoff_delays: The delay sequence used between attempts
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Iterator
from typing import TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Default retry configuration
DEFAULT_MAX_RETRIES = 3
DEFAULT_INITIAL_BACKOFF = 2.0  # seconds
DEFAULT_MAX_BACKOFF = 60.0  # seconds
DEFAULT_BACKOFF_MULTIPLIER = 2.0


def backoff_delays(
    max_retries: int,
    initial_backoff: float = DEFAULT_INITIAL_BACKOFF,
    max_backoff: float = DEFAULT_MAX_BACKOFF,
    backoff_multiplier: float = DEFAULT_BACKOFF_MULTIPLIER,
) -> Iterator[float]:
    """Yield the wait time before each retry.

    The n-th retry (0-based) waits initial_backoff * multiplier**n,
    capped at max_backoff.
    """
    backoff = initial_backoff
    for _ in range(max_retries):
        yield min(backoff, max_backoff)
        backoff *= backoff_multiplier


def retry_with_backoff(
    func: Callable[[], T],
    max_retries: int = DEFAULT_MAX_RETRIES,
    initial_backoff: float = DEFAULT_INITIAL_BACKOFF,
    max_backoff: float = DEFAULT_MAX_BACKOFF,
    backoff_multiplier: float = DEFAULT_BACKOFF_MULTIPLIER,
    retryable_exceptions: tuple[type[Exception], ...] = (Exception,),
    sleep: Callable[[float], None] = time.sleep,
) -> T:
    """Execute a function with exponential backoff retry.

    Args:
        func: Function to execute.
        max_retries: Maximum number of retry attempts.
        initial_backoff: Initial backoff time in seconds.
        max_backoff: Maximum backoff time in seconds.
        backoff_multiplier: Multiplier for each retry.
        retryable_exceptions: Tuple of exception types to retry on.
        sleep: Sleep function (injectable for tests).

    Returns:
        Result of the function.

    Raises:
        The last exception if all retries fail. Exceptions not listed in
        retryable_exceptions propagate immediately.
    """
    delays = backoff_delays(max_retries, initial_backoff, max_backoff, backoff_multiplier)
    attempt = 0

    while True:
        attempt += 1
        try:
            return func()
        except retryable_exceptions as e:
            delay = next(delays, None)
            if delay is None:
                if max_retries:
                    logger.error(f"All {max_retries} retries failed: {e}")
                raise

            logger.warning(
                f"Attempt {attempt}/{max_retries + 1} failed: {e}. "
                f"Retrying in {delay:.1f}s..."
            )
            sleep(delay)
