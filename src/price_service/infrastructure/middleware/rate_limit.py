# src/price_service/infrastructure/middleware/rate_limit.py
# Copyright (c)
# SPDX-License-Identifier: MIT
"""In-memory Rate Limit Middleware (fixed window per client IP).

Summary:
    Each client IP may send ``limit`` requests per ``window_s`` seconds. The
    window starts at the client's first request and resets once it has
    elapsed. Visitors idle for more than two windows are dropped by a
    background sweeper started from the application lifespan.

Emitted headers:
    X-RateLimit-Limit, X-RateLimit-Remaining, Retry-After (on 429)
"""

from __future__ import annotations

import asyncio
import math
import time
from collections.abc import Callable, Iterable
from contextlib import suppress
from dataclasses import dataclass

from fastapi import Request
from starlette import status
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import Response
from starlette.types import ASGIApp

from price_service.domain.enums.prices import ErrorKind
from price_service.domain.exceptions.price import RateLimitExceeded
from price_service.infrastructure.http.errors import error_response
from price_service.infrastructure.logging.logger import get_json_logger
from price_service.infrastructure.observability.metrics import get_rate_limited_total

logger = get_json_logger(__name__)


@dataclass
class _Visitor:
    """Fixed-window counter state."""

    window_start: float
    requests: int
    last_seen: float


@dataclass(frozen=True)
class RateDecision:
    allowed: bool
    limit: int
    remaining: int
    retry_after_s: int


class RateLimiter:
    """Per-key fixed-window limiter guarded by an ``asyncio.Lock``.

    Args:
        limit: Requests allowed per window.
        window_s: Window length in seconds.
        clock: Monotonic time source, injectable for tests.
    """

    def __init__(
        self,
        limit: int,
        window_s: float,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if limit < 1 or window_s <= 0:
            raise ValueError("limit must be >= 1 and window_s > 0")
        self.limit = int(limit)
        self.window_s = float(window_s)
        self._clock = clock
        self._visitors: dict[str, _Visitor] = {}
        self._lock = asyncio.Lock()

    def __len__(self) -> int:
        return len(self._visitors)

    async def hit(self, key: str) -> RateDecision:
        """Count one request for ``key`` and decide whether it may proceed."""
        async with self._lock:
            now = self._clock()
            visitor = self._visitors.get(key)
            if visitor is None or now - visitor.window_start >= self.window_s:
                visitor = _Visitor(window_start=now, requests=0, last_seen=now)
                self._visitors[key] = visitor
            visitor.last_seen = now

            if visitor.requests >= self.limit:
                retry_after = max(1, math.ceil(visitor.window_start + self.window_s - now))
                return RateDecision(False, self.limit, 0, retry_after)

            visitor.requests += 1
            return RateDecision(True, self.limit, self.limit - visitor.requests, 0)

    async def sweep(self) -> int:
        """Drop visitors idle for more than two windows; return how many were dropped."""
        async with self._lock:
            now = self._clock()
            stale = [k for k, v in self._visitors.items() if now - v.last_seen > 2 * self.window_s]
            for key in stale:
                del self._visitors[key]
        if stale:
            logger.debug("rate_limit.sweep", extra={"extra": {"dropped": len(stale)}})
        return len(stale)

    async def run_sweeper(self, interval_s: float | None = None) -> None:
        """Sweep forever; cancel the task to stop."""
        interval = interval_s if interval_s is not None else min(60.0, self.window_s)
        while True:
            await asyncio.sleep(interval)
            await self.sweep()

    def start_sweeper(self, interval_s: float | None = None) -> asyncio.Task[None]:
        return asyncio.create_task(self.run_sweeper(interval_s), name="rate-limit-sweeper")

    @staticmethod
    async def stop_sweeper(task: asyncio.Task[None] | None) -> None:
        if task is None:
            return
        task.cancel()
        with suppress(asyncio.CancelledError):
            await task


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Reject requests over the per-IP budget with a 429 error envelope.

    Args:
        app: ASGI application.
        limiter: Shared :class:`RateLimiter`.
        exempt_paths: Paths that are never counted (e.g. ``/metrics``).
    """

    def __init__(
        self,
        app: ASGIApp,
        limiter: RateLimiter,
        exempt_paths: Iterable[str] = ("/metrics",),
    ) -> None:
        super().__init__(app)
        self.limiter = limiter
        self.exempt_paths = frozenset(exempt_paths)

    @staticmethod
    def _key(request: Request) -> str:
        return request.client.host if request.client else "unknown"

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        if request.url.path in self.exempt_paths:
            return await call_next(request)

        decision = await self.limiter.hit(self._key(request))
        headers = {
            "X-RateLimit-Limit": str(decision.limit),
            "X-RateLimit-Remaining": str(decision.remaining),
        }
        if not decision.allowed:
            with suppress(Exception):
                get_rate_limited_total().inc()
            logger.info(
                "rate_limit.exceeded",
                extra={"extra": {"client": self._key(request), "path": request.url.path}},
            )
            return error_response(
                code=ErrorKind.RATE_LIMIT_EXCEEDED.value,
                message=RateLimitExceeded.default_message,
                http_status=status.HTTP_429_TOO_MANY_REQUESTS,
                headers={**headers, "Retry-After": str(decision.retry_after_s)},
            )

        response: Response = await call_next(request)
        response.headers.update(headers)
        return response
