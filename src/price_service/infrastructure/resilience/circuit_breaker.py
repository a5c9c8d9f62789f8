# Copyright (c)
# SPDX-License-Identifier: MIT
"""Async circuit breaker (in-memory).

State machine:
    - CLOSED    -> execute; success resets the failure count, failure
                   increments it; at ``max_failures`` go OPEN.
    - OPEN      -> fail fast with :class:`CircuitOpenError` until
                   ``reset_timeout_s`` has elapsed since the last failure;
                   then HALF_OPEN with the failure count reset.
    - HALF_OPEN -> execute one probe; success -> CLOSED, failure -> OPEN.

The lock is held across the guarded call, so concurrent callers are
serialized and only one half-open probe can run at a time. One instance is
meant to protect one outbound endpoint.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager, suppress
from dataclasses import dataclass, field
from enum import Enum
from typing import TypeVar

from price_service.domain.exceptions.price import CircuitOpenError
from price_service.infrastructure.logging.logger import get_json_logger
from price_service.infrastructure.observability.metrics import get_breaker_events_total

T = TypeVar("T")

logger = get_json_logger(__name__)


class CircuitState(str, Enum):
    """Breaker state."""

    CLOSED = "CLOSED"
    OPEN = "OPEN"
    HALF_OPEN = "HALF_OPEN"


@dataclass
class CircuitBreaker:
    """Circuit breaker suitable for HTTP client protection.

    Args:
        max_failures: Consecutive failures that open the breaker.
        reset_timeout_s: Seconds after the last failure before a probe is allowed.
        name: Endpoint label used in logs and metrics.
        ignored: Exception types that propagate without counting as failures
            (the dependency answered; the answer was just negative).
        clock: Monotonic time source, injectable for tests.
    """

    max_failures: int = 5
    reset_timeout_s: float = 60.0
    name: str = "default"
    ignored: tuple[type[BaseException], ...] = ()
    clock: Callable[[], float] = time.monotonic

    _state: CircuitState = field(default=CircuitState.CLOSED, init=False)
    _failures: int = field(default=0, init=False)
    _last_failure_time: float | None = field(default=None, init=False)
    _lock: asyncio.Lock = field(default_factory=asyncio.Lock, init=False, repr=False)

    @property
    def state(self) -> CircuitState:
        return self._state

    @property
    def failure_count(self) -> int:
        return self._failures

    @property
    def last_failure_time(self) -> float | None:
        return self._last_failure_time

    def _transition(self, new_state: CircuitState) -> None:
        if new_state is self._state:
            return
        logger.info(
            "breaker.transition",
            extra={
                "extra": {
                    "endpoint": self.name,
                    "from": self._state.value,
                    "to": new_state.value,
                    "failures": self._failures,
                }
            },
        )
        self._state = new_state
        with suppress(Exception):
            get_breaker_events_total().labels(endpoint=self.name, state=new_state.value).inc()

    def _before_call(self) -> None:
        if self._state is not CircuitState.OPEN:
            return
        elapsed = self.clock() - (self._last_failure_time or 0.0)
        if elapsed > self.reset_timeout_s:
            self._failures = 0
            self._transition(CircuitState.HALF_OPEN)
            return
        with suppress(Exception):
            get_breaker_events_total().labels(endpoint=self.name, state="short_circuit").inc()
        raise CircuitOpenError(details={"endpoint": self.name})

    def _on_success(self) -> None:
        self._failures = 0
        if self._state is CircuitState.HALF_OPEN:
            self._transition(CircuitState.CLOSED)

    def _on_failure(self) -> None:
        self._last_failure_time = self.clock()
        if self._state is CircuitState.HALF_OPEN:
            self._transition(CircuitState.OPEN)
            return
        self._failures += 1
        if self._failures >= self.max_failures:
            self._transition(CircuitState.OPEN)

    @asynccontextmanager
    async def guard(self) -> AsyncIterator[None]:
        """Guard an async block with the breaker.

        Raises:
            CircuitOpenError: If the breaker is open and the reset timeout has
                not elapsed. The block is not executed.
        """
        async with self._lock:
            self._before_call()
            try:
                yield
            except self.ignored:
                self._on_success()
                raise
            except Exception:
                self._on_failure()
                raise
            else:
                self._on_success()

    async def call(self, fn: Callable[[], Awaitable[T]]) -> T:
        """Execute ``fn`` under the breaker and return its result."""
        async with self.guard():
            return await fn()

    def reset(self) -> None:
        """Force the breaker back to CLOSED."""
        self._failures = 0
        self._last_failure_time = None
        self._transition(CircuitState.CLOSED)
