# Copyright (c)
# SPDX-License-Identifier: MIT
"""Retry utilities (async) with linear or jittered exponential backoff."""

from __future__ import annotations

import asyncio
import random
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Literal, TypeVar

from price_service.domain.exceptions.price import CircuitOpenError

T = TypeVar("T")


@dataclass(frozen=True)
class RetryPolicy:
    """Configuration for retry attempts."""

    total: int  # number of retries (not counting the first attempt)
    base: float = 1.0  # base backoff seconds
    cap: float = 30.0  # max backoff seconds
    backoff: Literal["linear", "exponential"] = "linear"
    jitter: bool = False  # full jitter, exponential only

    def delay(self, attempt: int) -> float:
        """Return the sleep before retry number ``attempt + 1`` (0-based attempt)."""
        if self.backoff == "exponential":
            delay = min(self.cap, self.base * (2**attempt))
            if self.jitter:
                delay = random.uniform(0, delay)  # noqa: S311
            return delay
        return min(self.cap, self.base * (attempt + 1))


async def retry_async(
    fn: Callable[[], Awaitable[T]],
    *,
    policy: RetryPolicy,
    retry_on: Callable[[Exception], bool],
    on_retry: Callable[[int, Exception], None] | None = None,
) -> T:
    """Retry an async function with backoff until success or budget exhausted.

    :class:`CircuitOpenError` is never retried. Sleeps use ``asyncio.sleep`` so
    cancelling the calling task aborts the loop at the next backoff.

    Args:
        fn: Zero-arg async function to execute.
        policy: RetryPolicy defining count/backoff.
        retry_on: Predicate that returns True when an exception is retryable.
        on_retry: Optional hook called with ``(attempt, exc)`` before each sleep.

    Returns:
        The return value of ``fn`` if successful.

    Raises:
        The last exception if retries are exhausted or it is not retryable.
    """
    attempt = 0
    while True:
        try:
            return await fn()
        except CircuitOpenError:
            raise
        except Exception as exc:
            if attempt >= policy.total or not retry_on(exc):
                raise
            if on_retry is not None:
                on_retry(attempt, exc)
        await asyncio.sleep(policy.delay(attempt))
        attempt += 1
