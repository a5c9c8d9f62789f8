# src/price_service/infrastructure/caching/price_cache.py
# Copyright (c)
# SPDX-License-Identifier: MIT
"""Typed price cache facade over a :class:`CachePort`.

Keys:
    * ``current:{SYMBOL}``: one :class:`CurrentPrice`.
    * ``historical:{SYMBOL}:{resolution}``: one full :class:`HistoricalSeries`.

Failure policy:
    * Read errors and corrupt entries are logged and reported as misses.
    * Write errors are logged and swallowed; they never fail a request.
    * Deletes and flushes propagate their errors.
"""

from __future__ import annotations

from price_service.application.interfaces.cache_port import CachePort
from price_service.domain.entities.prices import CurrentPrice, HistoricalSeries
from price_service.domain.enums.prices import Resolution
from price_service.infrastructure.logging.logger import get_json_logger

logger = get_json_logger(__name__)


def _warn(event: str, key: str, exc: Exception) -> None:
    logger.warning(event, extra={"extra": {"key": key, "error": str(exc)}})


def current_key(symbol: str) -> str:
    return f"current:{symbol.upper()}"


def historical_key(symbol: str, resolution: Resolution) -> str:
    return f"historical:{symbol.upper()}:{resolution.value}"


class PriceCache:
    """Read-through cache for current prices and historical series.

    Args:
        cache: JSON cache backend.
        default_ttl_s: TTL for current prices (seconds).
        historical_ttl_s: TTL for historical series; defaults to ``default_ttl_s``.
    """

    def __init__(
        self,
        cache: CachePort,
        *,
        default_ttl_s: int,
        historical_ttl_s: int | None = None,
    ) -> None:
        self._cache = cache
        self._default_ttl = int(default_ttl_s)
        self._historical_ttl = int(historical_ttl_s) if historical_ttl_s else None

    @property
    def default_ttl(self) -> int:
        return self._default_ttl

    @property
    def historical_ttl(self) -> int:
        return self._historical_ttl or self._default_ttl

    def set_default_ttl(self, ttl_s: int) -> None:
        """Change the default TTL for subsequent writes."""
        if ttl_s <= 0:
            raise ValueError("ttl must be positive")
        self._default_ttl = int(ttl_s)

    # ------------------------------------------------------------------ #
    # Current prices
    # ------------------------------------------------------------------ #
    async def get_current(self, symbol: str) -> CurrentPrice | None:
        key = current_key(symbol)
        try:
            payload = await self._cache.get_json(key)
        except Exception as exc:
            _warn("price_cache.read_failed", key, exc)
            return None
        if payload is None:
            return None
        try:
            return CurrentPrice.from_dict(payload)
        except (KeyError, TypeError, ValueError) as exc:
            _warn("price_cache.corrupt", key, exc)
            return None

    async def set_current(self, price: CurrentPrice) -> None:
        key = current_key(price.symbol)
        try:
            await self._cache.set_json(key, price.to_dict(), ttl=self._default_ttl)
        except Exception as exc:
            _warn("price_cache.write_failed", key, exc)

    # ------------------------------------------------------------------ #
    # Historical series
    # ------------------------------------------------------------------ #
    async def get_historical(self, symbol: str, resolution: Resolution) -> HistoricalSeries | None:
        key = historical_key(symbol, resolution)
        try:
            payload = await self._cache.get_json(key)
        except Exception as exc:
            _warn("price_cache.read_failed", key, exc)
            return None
        if payload is None:
            return None
        try:
            return HistoricalSeries.from_dict(payload)
        except (KeyError, TypeError, ValueError) as exc:
            _warn("price_cache.corrupt", key, exc)
            return None

    async def set_historical(self, series: HistoricalSeries) -> None:
        key = historical_key(series.symbol, series.resolution)
        try:
            await self._cache.set_json(key, series.to_dict(), ttl=self.historical_ttl)
        except Exception as exc:
            _warn("price_cache.write_failed", key, exc)

    async def delete_historical(self, symbol: str, resolution: Resolution) -> None:
        await self._cache.delete(historical_key(symbol, resolution))

    async def invalidate_all(self) -> int:
        """Remove every cached price and series; returns the number of keys removed."""
        return await self._cache.flush()
