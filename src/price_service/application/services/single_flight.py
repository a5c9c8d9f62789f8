# src/price_service/application/services/single_flight.py
# Copyright (c)
# SPDX-License-Identifier: MIT
"""In-process single-flight: coalesce concurrent loads of the same key.

The first caller for a key starts the loader as its own task; every caller,
the first included, awaits that task through :func:`asyncio.shield` and
receives the same result or exception. Cancelling one caller abandons only
that caller's wait; the load keeps running for the others. Nothing is
remembered once the load settles.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable


class SingleFlight[T]:
    """Per-key in-flight deduplication for async loaders."""

    def __init__(self) -> None:
        self._inflight: dict[str, asyncio.Future[T]] = {}

    def in_flight(self, key: str) -> bool:
        return key in self._inflight

    async def do(self, key: str, loader: Callable[[], Awaitable[T]]) -> T:
        """Run ``loader`` once for all concurrent callers of ``key``.

        Args:
            key: Coalescing key (a cache key).
            loader: Zero-arg coroutine function producing the value.

        Returns:
            The loader's result.

        Raises:
            Exception: Whatever the loader raised, to every waiter.
            asyncio.CancelledError: Only when this caller itself is cancelled.
        """
        task = self._inflight.get(key)
        if task is None:
            task = asyncio.ensure_future(loader())
            self._inflight[key] = task
            task.add_done_callback(lambda done: self._settle(key, done))
        return await asyncio.shield(task)

    def _settle(self, key: str, task: asyncio.Future[T]) -> None:
        if self._inflight.get(key) is task:
            del self._inflight[key]
        # Retrieve once so a load whose waiters were all cancelled does not warn.
        if not task.cancelled():
            task.exception()
