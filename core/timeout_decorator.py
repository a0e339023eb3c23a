"""
Timeout Decorator
=================

Bounds coroutine execution time with asyncio.wait_for.
"""

import asyncio
import functools
from typing import Any, Awaitable, Callable
import logging

from core.errors import ProviderTimeoutError

logger = logging.getLogger(__name__)


async def call_with_timeout(awaitable: Awaitable[Any], timeout_ms: int, label: str) -> Any:
    """
    Await a coroutine, converting a timeout into ProviderTimeoutError.

    Args:
        awaitable: Coroutine to await
        timeout_ms: Maximum execution time in milliseconds
        label: Name used in the error and the log line

    Returns:
        Whatever the coroutine returns

    Raises:
        ProviderTimeoutError: If the coroutine does not finish in time
    """
    try:
        return await asyncio.wait_for(awaitable, timeout=timeout_ms / 1000)
    except asyncio.TimeoutError:
        logger.error(f"'{label}' exceeded timeout of {timeout_ms}ms")
        raise ProviderTimeoutError(label, timeout_ms)


def with_timeout(timeout_ms: int):
    """
    Decorator to bound an async function's execution time.

    Example:
        >>> @with_timeout(5000)
        ... async def slow_function():
        ...     await asyncio.sleep(10)
        >>>
        >>> await slow_function()  # Raises ProviderTimeoutError after 5s

    Args:
        timeout_ms: Maximum execution time in milliseconds

    Returns:
        Decorated coroutine function
    """
    def decorator(func: Callable[..., Awaitable[Any]]) -> Callable[..., Awaitable[Any]]:
        @functools.wraps(func)
        async def wrapper(*args, **kwargs) -> Any:
            return await call_with_timeout(func(*args, **kwargs), timeout_ms, func.__name__)
        return wrapper
    return decorator

