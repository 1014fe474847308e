# investigator/services/resilience.py
"""
Resilience helpers for backend calls.

Provides the bounded per-call timeout applied by the collector and the
exponential-backoff retry adapters use privately when a backend throttles.
The collector itself never retries: one failed call is one Error finding.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from functools import wraps
from typing import Any, TypeVar

from investigator.errors import AdapterTimeoutError

logger = logging.getLogger(__name__)

T = TypeVar("T")


# -----------------------------------------------------------------------------
# Retry Decorator
# -----------------------------------------------------------------------------


def with_retry(
    max_attempts: int = 3,
    min_wait: float = 1.0,
    max_wait: float = 30.0,
    retry_exceptions: tuple[type[Exception], ...] = (Exception,),
) -> Callable:
    """
    Decorator for async functions with exponential backoff retry.

    Args:
        max_attempts: Maximum number of attempts
        min_wait: Minimum wait time between retries (seconds)
        max_wait: Maximum wait time between retries (seconds)
        retry_exceptions: Tuple of exception types to retry on

    Usage:
        @with_retry(max_attempts=3, retry_exceptions=(BackendThrottledError,))
        async def send(request):
            ...
    """

    def decorator(func: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T]]:
        @wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> T:
            for attempt in range(1, max_attempts + 1):
                try:
                    return await func(*args, **kwargs)
                except retry_exceptions as e:
                    if attempt == max_attempts:
                        logger.error(f"{func.__name__} failed after {max_attempts} attempts: {e}")
                        raise

                    wait_time = min(min_wait * (2 ** (attempt - 1)), max_wait)
                    logger.warning(f"{func.__name__} attempt {attempt} failed: {e}. Retrying in {wait_time:.1f}s...")
                    await asyncio.sleep(wait_time)

            raise RuntimeError(f"{func.__name__} called with max_attempts={max_attempts}")

        return wrapper

    return decorator


# -----------------------------------------------------------------------------
# Timeout Helper
# -----------------------------------------------------------------------------


async def with_timeout(coro: Awaitable[T], timeout_seconds: float, backend: str) -> T:
    """
    Execute a backend coroutine with a timeout.

    Args:
        coro: The coroutine to execute
        timeout_seconds: Maximum time to wait
        backend: Backend name used in the error

    Raises:
        AdapterTimeoutError: If the operation times out
    """
    try:
        return await asyncio.wait_for(coro, timeout=timeout_seconds)
    except TimeoutError:
        raise AdapterTimeoutError(backend, f"no response within {timeout_seconds}s")
