"""Retry with exponential backoff for HTTP-backed storage."""

import logging
import random
import time
from functools import wraps
from typing import Callable, Optional, TypeVar

import httpx

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Transient transport failures worth another attempt
RETRYABLE_EXCEPTIONS = (
    httpx.TimeoutException,
    httpx.NetworkError,
)


def backoff_delay(attempt: int, base_delay: float, max_delay: float) -> float:
    """Delay before retry ``attempt`` (0-based), with up to 10% jitter."""
    delay = min(base_delay * (2**attempt), max_delay)
    return delay + random.uniform(0, delay * 0.1)


def with_retry(
    max_retries: int = 3,
    base_delay: float = 0.5,
    max_delay: float = 10.0,
    retryable_exceptions: tuple = RETRYABLE_EXCEPTIONS,
    sleep: Optional[Callable[[float], None]] = None,
) -> Callable[[Callable[..., T]], Callable[..., T]]:
    """Decorator retrying a call on transient network errors.

    Args:
        max_retries: Attempts after the first one
        base_delay: Initial delay in seconds
        max_delay: Upper bound for a single delay
        retryable_exceptions: Exceptions that trigger a retry
        sleep: Sleep function (default: time.sleep)

    The last exception is re-raised once retries are exhausted.
    """

    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @wraps(func)
        def wrapper(*args, **kwargs) -> T:
            attempt = 0
            while True:
                try:
                    return func(*args, **kwargs)
                except retryable_exceptions as e:
                    if attempt >= max_retries:
                        logger.error(
                            f"Giving up on {func.__name__} after {max_retries} retries: {e}"
                        )
                        raise
                    delay = backoff_delay(attempt, base_delay, max_delay)
                    attempt += 1
                    logger.warning(
                        f"Retry {attempt}/{max_retries} for {func.__name__}: {e}. "
                        f"Waiting {delay:.2f}s..."
                    )
                    (sleep or time.sleep)(delay)

        return wrapper

    return decorator
