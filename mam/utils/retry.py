"""Retry and backoff for callers that want it.

The channel layer never retries on its own. Wrap ledger-facing
coroutines with ``with_retry`` to add bounded exponential backoff on
transient failures.
"""
from __future__ import annotations

from functools import wraps
from typing import Any, Callable, TypeVar

import httpx
from tenacity import (
    retry,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from mam.clients.base import APIError


F = TypeVar('F', bound=Callable[..., Any])


def is_transient(exc: BaseException) -> bool:
    """Network hiccups and retryable node errors. 4xx-style rejections are not."""
    if isinstance(exc, APIError):
        return exc.retryable
    return isinstance(exc, (httpx.TransportError, ConnectionError, TimeoutError))


def with_retry(
    attempts: int = 3,
    min_wait: float = 1.0,
    max_wait: float = 10.0,
) -> Callable[[F], F]:
    """Decorator factory for async functions that call a ledger node.

    Usage:
        fetch = with_retry(attempts=5)(mam.fetch_single)
    """
    def decorator(func: F) -> F:
        @retry(
            stop=stop_after_attempt(attempts),
            wait=wait_exponential(multiplier=1, min=min_wait, max=max_wait),
            retry=retry_if_exception(is_transient),
            reraise=True,
        )
        @wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> Any:
            return await func(*args, **kwargs)

        return wrapper  # type: ignore

    return decorator
