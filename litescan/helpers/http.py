"""HTTP client utilities and retry helpers."""

from __future__ import annotations

from asyncio import sleep
from functools import wraps

from typing import TYPE_CHECKING, Any, ParamSpec, TypeVar

import httpx

from litescan.helpers.constants import (
    CONNECTION_TIMEOUT,
    DEFAULT_TIMEOUT,
    MAX_CONNECTIONS,
    MAX_KEEPALIVE_CONNECTIONS,
    MAX_RETRIES,
    RETRY_BASE_DELAY,
    RETRY_MAX_DELAY,
)
from litescan.helpers.logging import get_logger


if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable


logger = get_logger(__name__)

P = ParamSpec("P")
T = TypeVar("T")


def backoff_delay(attempt: int, base_delay: float, max_delay: float) -> float:
    """Delay before retry number ``attempt + 1`` (0-indexed), capped."""
    return min(base_delay * (2**attempt), max_delay)


def retry_with_backoff(
    max_retries: int = MAX_RETRIES,
    base_delay: float = RETRY_BASE_DELAY,
    max_delay: float = RETRY_MAX_DELAY,
    *,
    retry_on: tuple[type[BaseException], ...] = (Exception,),
    log_errors: bool = True,
) -> Callable[[Callable[P, Awaitable[T]]], Callable[P, Awaitable[T]]]:
    """Decorator to retry async functions with exponential backoff.

    Only exceptions matching ``retry_on`` are retried; anything else
    propagates immediately. ``asyncio.CancelledError`` is never retried.

    Args:
        max_retries: Maximum number of attempts (default: 5)
        base_delay: Initial delay in seconds
        max_delay: Maximum delay between retries
        retry_on: Exception types that trigger a retry
        log_errors: Whether to log retry attempts (default: True)

    Returns:
        Decorated function that re-raises the last exception once
        attempts are exhausted

    Example:
        ```python
        from litescan.helpers.errors import NodeUnreachable
        from litescan.helpers.http import retry_with_backoff

        @retry_with_backoff(max_retries=3, base_delay=2.0, retry_on=(NodeUnreachable,))
        async def fetch_block(number: int) -> dict:
            ...

        # Will retry up to 3 attempts with delays of 2s, 4s
        ```
    """
    if max_retries < 1:
        msg = "max_retries must be at least 1"
        raise ValueError(msg)

    def decorator(func: Callable[P, Awaitable[T]]) -> Callable[P, Awaitable[T]]:
        @wraps(func)
        async def wrapper(*args: P.args, **kwargs: P.kwargs) -> T:
            for attempt in range(max_retries):
                try:
                    return await func(*args, **kwargs)
                except retry_on as e:
                    if attempt == max_retries - 1:
                        if log_errors:
                            logger.error(
                                "%s failed after %d attempts: %s",
                                func.__name__,
                                max_retries,
                                e,
                            )
                        raise
                    if log_errors:
                        logger.warning(
                            "%s error (attempt %d/%d): %s",
                            func.__name__,
                            attempt + 1,
                            max_retries,
                            e,
                        )
                await sleep(backoff_delay(attempt, base_delay, max_delay))

            # Unreachable: the last attempt either returns or raises
            msg = f"{func.__name__} failed without exception"
            raise RuntimeError(msg)

        return wrapper

    return decorator


def create_http_client(
    timeout: float = DEFAULT_TIMEOUT, **kwargs: Any
) -> httpx.AsyncClient:
    """Create a configured httpx AsyncClient for talking to the node.

    Args:
        timeout: Default request timeout in seconds
        **kwargs: Additional httpx.AsyncClient kwargs

    Returns:
        Configured AsyncClient instance with pooled connections

    Example:
        ```python
        from litescan.helpers.http import create_http_client

        async with create_http_client(timeout=10.0) as client:
            response = await client.post(rpc_url, json=payload)
        ```
    """
    kwargs.setdefault(
        "limits",
        httpx.Limits(
            max_keepalive_connections=MAX_KEEPALIVE_CONNECTIONS,
            max_connections=MAX_CONNECTIONS,
        ),
    )
    return httpx.AsyncClient(
        timeout=httpx.Timeout(timeout, connect=CONNECTION_TIMEOUT), **kwargs
    )


__all__ = [
    "backoff_delay",
    "create_http_client",
    "retry_with_backoff",
]
