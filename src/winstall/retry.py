"""Retry with exponential backoff."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from typing import TypeVar

from winstall.net import is_retryable as is_transient

logger = logging.getLogger(__name__)

T = TypeVar("T")


def retry_with_backoff(
    func: Callable[[], T],
    attempts: int = 4,
    base_delay: float = 1.0,
    is_retryable: Callable[[BaseException], bool] = is_transient,
    sleep: Callable[[float], None] = time.sleep,
) -> T:
    """Call `func` until it succeeds or the attempts run out.

    The delay before retry k (1-based) is ``base_delay * 2 ** (k - 1)``.

    Args:
        func: Zero-argument callable to invoke.
        attempts: Maximum number of calls, including the first.
        base_delay: Delay in seconds before the first retry.
        is_retryable: Predicate deciding whether an exception warrants a retry.
        sleep: Sleep function, injectable for tests.

    Returns:
        The first successful result.

    Raises:
        Exception: The last error, or the first non-retryable one.
    """
    if attempts < 1:
        raise ValueError("attempts must be at least 1")

    for attempt in range(1, attempts + 1):
        try:
            return func()
        except Exception as e:
            if attempt == attempts or not is_retryable(e):
                raise
            delay = base_delay * 2 ** (attempt - 1)
            logger.warning(
                "Attempt %d/%d failed (%s); retrying in %.1fs", attempt, attempts, e, delay
            )
            sleep(delay)

    raise AssertionError("unreachable")
