"""Bounded retry for part uploads.

This module provides:
- retry_with_backoff: run a callable up to max_retries + 1 times, with
  immediate retries by default and optional exponential backoff
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from typing import TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Default retry configuration
DEFAULT_MAX_RETRIES = 2
DEFAULT_INITIAL_BACKOFF = 0.0  # seconds, 0 retries immediately
DEFAULT_MAX_BACKOFF = 30.0  # seconds
DEFAULT_BACKOFF_MULTIPLIER = 2.0


def retry_with_backoff(
    func: Callable[[], T],
    max_retries: int = DEFAULT_MAX_RETRIES,
    initial_backoff: float = DEFAULT_INITIAL_BACKOFF,
    max_backoff: float = DEFAULT_MAX_BACKOFF,
    backoff_multiplier: float = DEFAULT_BACKOFF_MULTIPLIER,
    retryable_exceptions: tuple[type[Exception], ...] = (Exception,),
    description: str = "operation",
    sleep: Callable[[float], None] = time.sleep,
) -> T:
    """Execute a function, retrying on failure.

    The function runs at most max_retries + 1 times. With an initial
    backoff of 0 retries happen immediately; otherwise the delay grows
    by backoff_multiplier after each failure, up to max_backoff.

    Args:
        func: Function to execute.
        max_retries: Maximum number of retry attempts.
        initial_backoff: Initial backoff time in seconds.
        max_backoff: Maximum backoff time in seconds.
        backoff_multiplier: Multiplier for each retry.
        retryable_exceptions: Tuple of exception types to retry on.
        description: Name of the operation for log messages.
        sleep: Sleep function (replaceable in tests).

    Returns:
        Result of the function.

    Raises:
        The last exception if all attempts fail.
    """
    if max_retries < 0:
        raise ValueError("max_retries must not be negative")

    backoff = initial_backoff
    attempts = max_retries + 1

    for attempt in range(1, attempts + 1):
        try:
            return func()
        except retryable_exceptions as e:
            if attempt == attempts:
                logger.error(f"{description}: all {attempts} attempts failed: {e}")
                raise

            if backoff > 0:
                logger.warning(
                    f"{description}: attempt {attempt}/{attempts} failed: {e}. "
                    f"Retrying in {backoff:.1f}s..."
                )
                sleep(backoff)
                backoff = min(backoff * backoff_multiplier, max_backoff)
            else:
                logger.warning(
                    f"{description}: attempt {attempt}/{attempts} failed: {e}. Retrying..."
                )

    raise RuntimeError("Unexpected retry loop exit")
