from __future__ import annotations

from collections.abc import Callable

import fakeredis.aioredis
import pytest

from price_service.application.use_cases.cache.invalidate_cache import InvalidateCache
from price_service.domain.entities.prices import CurrentPrice, HistoricalSeries
from price_service.domain.exceptions.price import ServiceUnavailable
from price_service.infrastructure.caching.json_cache import RedisJsonCache
from price_service.infrastructure.caching.price_cache import PriceCache


class _BrokenPriceCache:
    async def invalidate_all(self) -> int:
        raise ConnectionError("redis down")


@pytest.mark.asyncio
async def test_flushes_every_entry_and_is_idempotent(
    fake_redis: fakeredis.aioredis.FakeRedis,
    price_factory: Callable[..., CurrentPrice],
    series_factory: Callable[..., HistoricalSeries],
) -> None:
    cache = PriceCache(RedisJsonCache(), default_ttl_s=3600)
    await cache.set_current(price_factory("AAPL", 150.0))
    await cache.set_historical(series_factory("AAPL", [("2025-07-18", 211.18)]))
    uc = InvalidateCache(cache)

    assert await uc.execute() == 2
    assert await uc.execute() == 0
    assert await fake_redis.dbsize() == 0


@pytest.mark.asyncio
async def test_store_failure_is_service_unavailable() -> None:
    uc = InvalidateCache(_BrokenPriceCache())  # type: ignore[arg-type]

    with pytest.raises(ServiceUnavailable, match="failed to invalidate cache"):
        await uc.execute()
