from __future__ import annotations

from collections.abc import Callable
from typing import Any

import fakeredis.aioredis
import pytest

from price_service.application.use_cases.prices.get_current_prices import GetCurrentPrices
from price_service.domain.entities.prices import CurrentPrice
from price_service.domain.exceptions.price import (
    InvalidInput,
    ServiceUnavailable,
    SymbolNotFound,
)
from price_service.infrastructure.caching.json_cache import RedisJsonCache
from price_service.infrastructure.caching.price_cache import PriceCache


@pytest.fixture
def cache(fake_redis: fakeredis.aioredis.FakeRedis) -> PriceCache:
    return PriceCache(RedisJsonCache(), default_ttl_s=3600)


def _use_case(provider: Any, cache: PriceCache, **kwargs: Any) -> GetCurrentPrices:
    return GetCurrentPrices(provider, cache, max_symbols=kwargs.pop("max_symbols", 3), **kwargs)


@pytest.mark.asyncio
async def test_misses_are_fetched_once_then_served_from_cache(
    provider: Any, cache: PriceCache
) -> None:
    provider.quotes = {"AAPL": 150.0, "MSFT": 510.0}
    uc = _use_case(provider, cache)

    first = await uc.execute("msft, aapl")
    second = await uc.execute("AAPL,MSFT")

    assert [p.symbol for p in first] == ["MSFT", "AAPL"]
    assert [p.symbol for p in second] == ["AAPL", "MSFT"]
    assert provider.current_calls == [["MSFT", "AAPL"]]
    assert second[0].current_price == 150.0


@pytest.mark.asyncio
async def test_only_misses_reach_the_provider(
    provider: Any, cache: PriceCache, price_factory: Callable[..., CurrentPrice]
) -> None:
    await cache.set_current(price_factory("AAPL", 149.0))
    provider.quotes = {"AAPL": 999.0, "MSFT": 510.0}

    prices = await _use_case(provider, cache).execute("AAPL,MSFT")

    assert provider.current_calls == [["MSFT"]]
    assert [(p.symbol, p.current_price) for p in prices] == [("AAPL", 149.0), ("MSFT", 510.0)]


@pytest.mark.asyncio
async def test_unknown_symbols_are_omitted(provider: Any, cache: PriceCache) -> None:
    provider.quotes = {"AAPL": 150.0}

    prices = await _use_case(provider, cache).execute("AAPL,ZZZZ")

    assert [p.symbol for p in prices] == ["AAPL"]
    assert await cache.get_current("ZZZZ") is None


@pytest.mark.asyncio
async def test_provider_failure_serves_cached_hits(
    provider: Any, cache: PriceCache, price_factory: Callable[..., CurrentPrice]
) -> None:
    await cache.set_current(price_factory("AAPL", 149.0))
    provider.current_error = ServiceUnavailable("finnhub down")

    prices = await _use_case(provider, cache).execute("AAPL,MSFT")

    assert [p.symbol for p in prices] == ["AAPL"]


@pytest.mark.asyncio
async def test_provider_failure_without_hits_is_unavailable(
    provider: Any, cache: PriceCache
) -> None:
    provider.current_error = ServiceUnavailable("finnhub down")

    with pytest.raises(ServiceUnavailable, match="failed to fetch price data"):
        await _use_case(provider, cache).execute("AAPL")


@pytest.mark.asyncio
async def test_partial_serving_can_be_disabled(
    provider: Any, cache: PriceCache, price_factory: Callable[..., CurrentPrice]
) -> None:
    await cache.set_current(price_factory("AAPL", 149.0))
    provider.current_error = SymbolNotFound("nope")
    uc = _use_case(provider, cache, serve_partial_on_failure=False)

    with pytest.raises(ServiceUnavailable):
        await uc.execute("AAPL,MSFT")


@pytest.mark.asyncio
async def test_full_cache_hit_skips_provider(
    provider: Any, cache: PriceCache, price_factory: Callable[..., CurrentPrice]
) -> None:
    await cache.set_current(price_factory("AAPL", 149.0))
    provider.current_error = ServiceUnavailable("should not be called")

    prices = await _use_case(provider, cache).execute("aapl,AAPL")

    assert [p.symbol for p in prices] == ["AAPL"]
    assert provider.current_calls == []


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("raw", "message"),
    [
        ("", "symbols parameter is required"),
        (" , ,", "symbols parameter is required"),
        ("A,B,C,D", "too many symbols requested (max 3)"),
        ("AAPL,$$$", "invalid symbol: $$$"),
    ],
)
async def test_invalid_lists_never_reach_the_provider(
    provider: Any, cache: PriceCache, raw: str, message: str
) -> None:
    with pytest.raises(InvalidInput) as info:
        await _use_case(provider, cache).execute(raw)

    assert info.value.message == message
    assert provider.current_calls == []
