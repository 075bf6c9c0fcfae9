"""Resilience module: retry policies and call bounds.

Provides the retry configuration (exponential backoff) for idempotent reads
against the store and the retrieval backend, and an optional wait bound for
every external call. Paid LLM calls are bounded but never retried.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import ParamSpec, TypeVar

import httpx
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

logger = logging.getLogger(__name__)

P = ParamSpec("P")
R = TypeVar("R")

# Network-level failures worth another attempt. Logical errors are not.
RETRYABLE_ERRORS: tuple[type[BaseException], ...] = (
    OSError,
    asyncio.TimeoutError,
    httpx.TransportError,
)


def retry_policy(attempts: int = 3) -> AsyncRetrying:
    """Wait 1s, 2s, 4s... up to 10s. Stop after *attempts* attempts."""
    return AsyncRetrying(
        stop=stop_after_attempt(attempts),
        wait=wait_exponential(multiplier=1, min=1, max=10),
        retry=retry_if_exception_type(RETRYABLE_ERRORS),
        reraise=True,
    )


async def bounded(awaitable: Awaitable[R], timeout: float | None) -> R:
    """Await *awaitable*, bounded by *timeout* seconds when one is set."""
    if timeout is None:
        return await awaitable
    return await asyncio.wait_for(awaitable, timeout=timeout)


async def safe_execute(
    func: Callable[P, Awaitable[R]],
    *args: P.args,
    attempts: int = 3,
    timeout: float | None = None,
    **kwargs: P.kwargs,
) -> R:
    """Execute an async function with the standard retry policy.

    Retries on network/timeout errors, each attempt bounded by *timeout*.
    Does NOT retry on logical errors (e.g. ``ValueError``, ``StoreError``).
    """
    try:
        async for attempt in retry_policy(attempts):
            with attempt:
                return await bounded(func(*args, **kwargs), timeout)
    except Exception as e:
        logger.error(
            "Operation failed: %s - %s", getattr(func, "__name__", repr(func)), e
        )
        raise
