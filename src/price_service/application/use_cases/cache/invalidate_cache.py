# src/price_service/application/use_cases/cache/invalidate_cache.py
# Copyright (c)
# SPDX-License-Identifier: MIT
"""Use Case: Invalidate Cache. Flushes every cached price and series."""

from __future__ import annotations

from price_service.domain.exceptions.price import ServiceUnavailable
from price_service.infrastructure.caching.price_cache import PriceCache
from price_service.infrastructure.logging.logger import get_json_logger

logger = get_json_logger(__name__)


class InvalidateCache:
    """Remove all cache entries. Never calls an upstream; idempotent."""

    def __init__(self, cache: PriceCache) -> None:
        self._cache = cache

    async def execute(self) -> int:
        """Flush the cache and return the number of keys removed.

        Raises:
            ServiceUnavailable: If the cache store could not be flushed.
        """
        try:
            removed = await self._cache.invalidate_all()
        except Exception as exc:
            logger.exception("cache.invalidate_failed")
            raise ServiceUnavailable("failed to invalidate cache") from exc
        logger.info("cache.invalidated", extra={"extra": {"removed": removed}})
        return removed
