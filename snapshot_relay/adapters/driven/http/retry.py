"""Retry logic for transient HTTP errors during the startup probe."""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from functools import wraps
from typing import ParamSpec, TypeVar

import aiohttp

__all__ = ["retry", "RETRYABLE_ERRORS"]

logger = logging.getLogger(__name__)

# Exceptions considered transient and eligible for retry
RETRYABLE_ERRORS: tuple[type[BaseException], ...] = (
    aiohttp.ClientConnectorError,  # Connection refused, DNS failed
    aiohttp.ServerDisconnectedError,  # Peer closed before responding
    aiohttp.ClientOSError,  # OS-level network error
    aiohttp.ServerTimeoutError,  # Server timeout
    asyncio.TimeoutError,  # Total request timeout
)

P = ParamSpec("P")
R = TypeVar("R")


def retry(
    times: int = 3,
    delay_sec: tuple[float, ...] = (0.5, 1.0, 2.0),
) -> Callable[[Callable[P, Awaitable[R]]], Callable[P, Awaitable[R]]]:
    """Decorate an async call with backoff retry on transient errors.

    Only the startup probe uses this: per-tick fetches are never retried,
    a failed tick just waits for the next one.

    Args:
        times: Number of attempts (1 = no retry).
        delay_sec: Delays between attempts; the last one is reused.

    Returns:
        Decorator function.
    """

    def decorator(func: Callable[P, Awaitable[R]]) -> Callable[P, Awaitable[R]]:
        @wraps(func)
        async def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
            for attempt in range(1, times + 1):
                try:
                    return await func(*args, **kwargs)
                except RETRYABLE_ERRORS as e:
                    if attempt == times:
                        logger.debug(f"Retry exhausted after {times} attempts: {e!r}")
                        raise
                    delay = delay_sec[min(attempt - 1, len(delay_sec) - 1)]
                    logger.debug(f"Attempt {attempt}/{times} failed ({e!r}), retrying in {delay}s")
                    await asyncio.sleep(delay)

            raise RuntimeError("retry() called with times < 1")

        return wrapper

    return decorator
