from __future__ import annotations

from collections.abc import Callable, Mapping
from typing import Any

import fakeredis.aioredis
import pytest

from price_service.domain.entities.prices import CurrentPrice, HistoricalSeries
from price_service.domain.enums.prices import Resolution
from price_service.infrastructure.caching.json_cache import RedisJsonCache
from price_service.infrastructure.caching.price_cache import (
    PriceCache,
    current_key,
    historical_key,
)


class FailingCache:
    """CachePort whose every operation fails."""

    async def get_json(self, key: str) -> Mapping[str, Any] | None:
        raise ConnectionError("redis down")

    async def set_json(self, key: str, value: Mapping[str, Any], *, ttl: int) -> None:
        raise ConnectionError("redis down")

    async def delete(self, *keys: str) -> int:
        raise ConnectionError("redis down")

    async def delete_prefix(self, prefix: str) -> int:
        raise ConnectionError("redis down")

    async def flush(self) -> int:
        raise ConnectionError("redis down")


def test_key_shapes() -> None:
    assert current_key("aapl") == "current:AAPL"
    assert historical_key("aapl", Resolution.WEEKLY) == "historical:AAPL:weekly"


def test_ttl_properties() -> None:
    cache = PriceCache(FailingCache(), default_ttl_s=3600)

    assert cache.default_ttl == 3600
    assert cache.historical_ttl == 3600

    cache.set_default_ttl(60)
    assert cache.default_ttl == 60
    assert cache.historical_ttl == 60
    assert PriceCache(FailingCache(), default_ttl_s=60, historical_ttl_s=600).historical_ttl == 600

    with pytest.raises(ValueError):
        cache.set_default_ttl(0)


@pytest.mark.asyncio
async def test_current_round_trip(
    fake_redis: fakeredis.aioredis.FakeRedis, price_factory: Callable[..., CurrentPrice]
) -> None:
    cache = PriceCache(RedisJsonCache(), default_ttl_s=120)
    price = price_factory("AAPL", 150.0)

    await cache.set_current(price)

    assert await cache.get_current("aapl") == price
    assert 0 < await fake_redis.ttl("current:AAPL") <= 120


@pytest.mark.asyncio
async def test_historical_round_trip_uses_historical_ttl(
    fake_redis: fakeredis.aioredis.FakeRedis,
    series_factory: Callable[..., HistoricalSeries],
) -> None:
    cache = PriceCache(RedisJsonCache(), default_ttl_s=60, historical_ttl_s=7200)
    series = series_factory("AAPL", [("2025-07-23", 214.15), ("2025-07-22", 212.48)])

    await cache.set_historical(series)

    assert await cache.get_historical("AAPL", Resolution.DAILY) == series
    assert await fake_redis.ttl("historical:AAPL:daily") > 60

    await cache.delete_historical("AAPL", Resolution.DAILY)
    assert await cache.get_historical("AAPL", Resolution.DAILY) is None


@pytest.mark.asyncio
async def test_malformed_entry_is_a_miss(fake_redis: fakeredis.aioredis.FakeRedis) -> None:
    await fake_redis.set("current:AAPL", '{"symbol": "AAPL"}')
    await fake_redis.set("historical:AAPL:daily", '{"symbol": "AAPL", "resolution": "hourly"}')
    cache = PriceCache(RedisJsonCache(), default_ttl_s=60)

    assert await cache.get_current("AAPL") is None
    assert await cache.get_historical("AAPL", Resolution.DAILY) is None


@pytest.mark.asyncio
async def test_read_and_write_errors_are_swallowed(
    price_factory: Callable[..., CurrentPrice],
    series_factory: Callable[..., HistoricalSeries],
) -> None:
    cache = PriceCache(FailingCache(), default_ttl_s=60)

    assert await cache.get_current("AAPL") is None
    assert await cache.get_historical("AAPL", Resolution.DAILY) is None
    await cache.set_current(price_factory("AAPL", 1.0))
    await cache.set_historical(series_factory("AAPL", [("2025-07-23", 1.0)]))


@pytest.mark.asyncio
async def test_invalidation_errors_propagate() -> None:
    cache = PriceCache(FailingCache(), default_ttl_s=60)

    with pytest.raises(ConnectionError):
        await cache.invalidate_all()
