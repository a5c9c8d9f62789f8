# src/price_service/infrastructure/caching/json_cache.py
# Copyright (c)
# SPDX-License-Identifier: MIT
"""JSON Cache (Redis-backed).

Synopsis:
    Thin adapter that implements the application CachePort Protocol on top of
    the shared Redis client provided by `infrastructure/caching/redis_client.py`.

Design:
    * Uses the global Redis client via `get_redis_client()`.
    * Pure JSON (utf-8) serialization; no pickle.
    * Key policy:
        - Optional namespace prefix (empty by default, so persisted keys are
          exactly ``current:{SYMBOL}`` and ``historical:{SYMBOL}:{resolution}``).
        - Callers provide the resource-specific tail.
    * Every operation logs one ``cache.*`` line and updates the cache
      metrics with an ``outcome`` label (hit, miss, set, delete, error).

Layer:
    infrastructure/caching

See Also:
    - price_service.infrastructure.caching.redis_client
    - price_service.application.interfaces.cache_port.CachePort
"""

from __future__ import annotations

import json
import re
import time
from collections.abc import Iterable, Mapping
from contextlib import suppress
from typing import Any, Final

from price_service.application.interfaces.cache_port import CachePort
from price_service.infrastructure.caching.redis_client import get_redis_client
from price_service.infrastructure.logging.logger import get_json_logger
from price_service.infrastructure.observability.metrics import (
    get_cache_operation_duration_seconds,
    get_cache_operations_total,
)

__all__ = ["RedisJsonCache", "KEY_FAMILIES"]

logger = get_json_logger(__name__)

#: Key families owned by the price cache; flushed when no namespace is set.
KEY_FAMILIES: Final[tuple[str, ...]] = ("current:", "historical:")

_SCAN_COUNT: Final[int] = 500
_GLOB_SPECIAL = re.compile(r"([*?\[\]\\])")


def _glob_escape(value: str) -> str:
    return _GLOB_SPECIAL.sub(r"\\\1", value)


class RedisJsonCache(CachePort):
    """Redis-backed implementation of the CachePort Protocol."""

    def __init__(self, *, namespace: str = "") -> None:
        """Initialize the cache adapter.

        Args:
            namespace: Prefix applied to all keys; empty for bare keys.
        """
        self._ns = namespace.strip(":")

    @property
    def namespace(self) -> str:
        return self._ns

    # ------------------------------------------------------------------ #
    # Internal helpers
    # ------------------------------------------------------------------ #
    def _k(self, key: str) -> str:
        """Build a namespaced key from an unqualified tail."""
        key = key.lstrip(":")
        return f"{self._ns}:{key}" if self._ns else key

    def _record(self, operation: str, outcome: str, started: float) -> None:
        with suppress(Exception):
            get_cache_operations_total().labels(operation=operation, outcome=outcome).inc()
            get_cache_operation_duration_seconds().labels(operation=operation).observe(
                time.perf_counter() - started
            )

    def _error(self, operation: str, key: str, exc: Exception, started: float) -> None:
        self._record(operation, "error", started)
        logger.warning(
            "cache.error",
            extra={"extra": {"operation": operation, "key": key, "error": str(exc)}},
        )

    # ------------------------------------------------------------------ #
    # CachePort implementation
    # ------------------------------------------------------------------ #
    async def get_json(self, key: str) -> Mapping[str, Any] | None:
        """Get a JSON-serialized mapping by key.

        Undecodable values are logged and reported as a miss.

        Raises:
            Exception: Redis failures propagate after being logged.
        """
        full = self._k(key)
        started = time.perf_counter()
        try:
            raw = await get_redis_client().get(full)
        except Exception as exc:
            self._error("get", full, exc, started)
            raise

        if raw is None:
            self._record("get", "miss", started)
            logger.debug("cache.miss", extra={"extra": {"key": full}})
            return None

        try:
            value = json.loads(raw)
        except ValueError:
            value = None
        if not isinstance(value, Mapping):
            self._record("get", "corrupt", started)
            logger.warning("cache.corrupt", extra={"extra": {"key": full}})
            return None

        self._record("get", "hit", started)
        logger.debug("cache.hit", extra={"extra": {"key": full}})
        return value

    async def set_json(self, key: str, value: Mapping[str, Any], *, ttl: int) -> None:
        """Set a JSON-serialized mapping with TTL (seconds); ``ttl <= 0`` is a no-op.

        Raises:
            Exception: Redis failures propagate after being logged.
        """
        if ttl <= 0:
            return
        full = self._k(key)
        started = time.perf_counter()
        try:
            await get_redis_client().set(full, json.dumps(value), ex=ttl)
        except Exception as exc:
            self._error("set", full, exc, started)
            raise
        self._record("set", "set", started)
        logger.debug("cache.set", extra={"extra": {"key": full, "ttl": ttl}})

    async def delete(self, *keys: str) -> int:
        """Delete the given keys and return how many existed."""
        if not keys:
            return 0
        full = [self._k(k) for k in keys]
        started = time.perf_counter()
        try:
            removed = int(await get_redis_client().delete(*full))
        except Exception as exc:
            self._error("delete", ",".join(full), exc, started)
            raise
        self._record("delete", "delete", started)
        logger.info("cache.delete", extra={"extra": {"keys": full, "removed": removed}})
        return removed

    async def _delete_matching(self, patterns: Iterable[str]) -> int:
        redis = get_redis_client()
        removed = 0
        batch: list[str] = []
        for pattern in patterns:
            async for found in redis.scan_iter(match=pattern, count=_SCAN_COUNT):
                batch.append(found)
                if len(batch) >= _SCAN_COUNT:
                    removed += int(await redis.delete(*batch))
                    batch.clear()
        if batch:
            removed += int(await redis.delete(*batch))
        return removed

    async def delete_prefix(self, prefix: str) -> int:
        """Delete every key whose tail starts with ``prefix`` (SCAN + DEL)."""
        pattern = f"{_glob_escape(self._k(prefix))}*"
        started = time.perf_counter()
        try:
            removed = await self._delete_matching([pattern])
        except Exception as exc:
            self._error("delete_prefix", pattern, exc, started)
            raise
        self._record("delete_prefix", "delete", started)
        logger.info("cache.delete", extra={"extra": {"pattern": pattern, "removed": removed}})
        return removed

    async def flush(self) -> int:
        """Delete every entry owned by this cache.

        With a namespace, everything under it goes; without one, only the
        known key families are removed so unrelated keys survive.
        """
        if self._ns:
            patterns = [f"{_glob_escape(self._ns)}:*"]
        else:
            patterns = [f"{family}*" for family in KEY_FAMILIES]
        started = time.perf_counter()
        try:
            removed = await self._delete_matching(patterns)
        except Exception as exc:
            self._error("flush", ",".join(patterns), exc, started)
            raise
        self._record("flush", "delete", started)
        logger.info("cache.flush", extra={"extra": {"patterns": patterns, "removed": removed}})
        return removed
