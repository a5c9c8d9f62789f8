"""Health, metrics, CORS, request ids, cache flush and error envelopes over HTTP."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

import pytest

from price_service.domain.entities.prices import CurrentPrice
from price_service.domain.enums.prices import Resolution
from price_service.domain.exceptions.price import ServiceUnavailable, Unauthorized
from price_service.infrastructure.caching.json_cache import RedisJsonCache
from price_service.infrastructure.caching.price_cache import PriceCache

CURRENT = "/api/v1/price/current"
HISTORICAL = "/api/v1/price/historical"


@pytest.mark.asyncio
async def test_health_needs_no_key(app_client: Callable[..., Any]) -> None:
    async with app_client(headers={}) as http:
        resp = await http.get("/health")

    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data == {"status": "healthy", "service": "price-service", "version": "1.0.0"}
    assert resp.headers["X-Request-ID"]


@pytest.mark.asyncio
async def test_metrics_exposition(app_client: Callable[..., Any]) -> None:
    async with app_client(headers={}) as http:
        resp = await http.get("/metrics")

    assert resp.status_code == 200
    assert resp.headers["content-type"].startswith("text/plain")
    assert "price_service_rate_limited_total" in resp.text


@pytest.mark.asyncio
async def test_cors_preflight(app_client: Callable[..., Any]) -> None:
    async with app_client(headers={}) as http:
        resp = await http.options(
            CURRENT,
            headers={
                "Origin": "https://dashboard.internal",
                "Access-Control-Request-Method": "GET",
                "Access-Control-Request-Headers": "X-API-Key",
            },
        )

    assert resp.status_code == 200
    assert resp.headers["access-control-allow-origin"] == "*"


@pytest.mark.asyncio
async def test_request_id_is_echoed(app_client: Callable[..., Any], provider: Any) -> None:
    provider.quotes = {"AAPL": 150.0}
    async with app_client() as http:
        resp = await http.get(
            CURRENT, params={"symbols": "AAPL"}, headers={"X-Request-ID": "req-123"}
        )

    assert resp.headers["X-Request-ID"] == "req-123"
    assert resp.headers["X-RateLimit-Limit"] == "1000"


@pytest.mark.asyncio
async def test_invalidate_cache_is_idempotent(
    app_client: Callable[..., Any],
    price_factory: Callable[..., CurrentPrice],
    series_factory: Callable[..., Any],
) -> None:
    async with app_client() as http:
        cache = PriceCache(RedisJsonCache(), default_ttl_s=3600)
        await cache.set_current(price_factory("AAPL", 150.0))
        await cache.set_historical(series_factory("AAPL", [("2025-07-23", 214.15)]))

        first = await http.post("/api/v1/invalid-cache")
        second = await http.post("/api/v1/invalid-cache")

        assert await cache.get_current("AAPL") is None
        assert await cache.get_historical("AAPL", Resolution.DAILY) is None

    for resp in (first, second):
        assert resp.status_code == 200
        assert resp.json()["data"] == {"message": "Cache invalidated successfully"}


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("headers", "message"),
    [({}, "API key is required"), ({"X-API-Key": "wrong"}, "Invalid API key")],
)
async def test_remote_callers_need_the_key(
    app_client: Callable[..., Any], headers: dict[str, str], message: str
) -> None:
    async with app_client(headers=headers) as http:
        resp = await http.post("/api/v1/invalid-cache")

    assert resp.status_code == 401
    assert resp.json()["error"] == {"code": "UNAUTHORIZED", "message": message}


@pytest.mark.asyncio
async def test_symbol_list_boundaries(app_client: Callable[..., Any], provider: Any) -> None:
    provider.quotes = {"AAPL": 150.0, "MSFT": 510.0}
    async with app_client(max_symbols_per_request=2) as http:
        at_max = await http.get(CURRENT, params={"symbols": "AAPL,MSFT"})
        over_max = await http.get(CURRENT, params={"symbols": "AAPL,MSFT,IBM"})
        missing = await http.get(CURRENT)
        blank = await http.get(CURRENT, params={"symbols": " , "})

    assert at_max.status_code == 200
    assert len(at_max.json()["data"]) == 2
    assert over_max.status_code == 400
    assert over_max.json()["error"] == {
        "code": "INVALID_INPUT",
        "message": "too many symbols requested (max 2)",
    }
    for resp in (missing, blank):
        assert resp.status_code == 400
        assert resp.json()["error"]["message"] == "symbols parameter is required"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "params",
    [
        {"symbol": "AAPL", "resolution": "intraday"},
        {"symbol": "AAPL", "date": "2025-02-29"},
        {"symbol": "AAPL", "date": "2025-02-30"},
        {"symbol": "AAPL", "date": "2025-06-31"},
        {"symbol": "AAPL", "date": "2999-01-01"},
        {"symbol": "AAPL", "date": "07/03/2025"},
        {"symbol": "AAPL", "from": "2025-07-10", "to": "2025-07-01"},
        {"symbol": "AAPL", "from": "2025-07-01"},
        {"symbol": "AAPL", "date": "2025-07-01", "from": "2025-07-01", "to": "2025-07-02"},
        {"resolution": "daily"},
    ],
)
async def test_bad_historical_params_are_400(
    app_client: Callable[..., Any], provider: Any, params: dict[str, str]
) -> None:
    async with app_client() as http:
        resp = await http.get(HISTORICAL, params=params)

    assert resp.status_code == 400
    assert resp.json()["error"]["code"] == "INVALID_INPUT"
    assert provider.historical_calls == []


@pytest.mark.asyncio
async def test_leap_day_is_accepted(app_client: Callable[..., Any], provider: Any) -> None:
    provider.series[("AAPL", Resolution.DAILY)] = [("2024-02-29", 180.75)]
    async with app_client() as http:
        resp = await http.get(HISTORICAL, params={"symbol": "AAPL", "date": "2024-02-29"})

    assert resp.status_code == 200
    assert resp.json()["data"]["historical_prices"] == [{"date": "2024-02-29", "price": 180.75}]


@pytest.mark.asyncio
async def test_unknown_historical_symbol_is_404(app_client: Callable[..., Any]) -> None:
    async with app_client() as http:
        resp = await http.get(HISTORICAL, params={"symbol": "ZZZZ"})

    assert resp.status_code == 404
    assert resp.json()["error"]["code"] == "SYMBOL_NOT_FOUND"


@pytest.mark.asyncio
async def test_provider_outage_without_cache_is_503(
    app_client: Callable[..., Any], provider: Any
) -> None:
    provider.current_error = ServiceUnavailable("finnhub down")
    async with app_client() as http:
        resp = await http.get(CURRENT, params={"symbols": "AAPL"})

    assert resp.status_code == 503
    assert resp.json()["error"] == {
        "code": "SERVICE_UNAVAILABLE",
        "message": "failed to fetch price data",
    }


@pytest.mark.asyncio
async def test_rejected_upstream_key_is_503_not_401(
    app_client: Callable[..., Any], provider: Any
) -> None:
    provider.historical_error = Unauthorized("upstream rejected credentials (403)")
    async with app_client() as http:
        resp = await http.get(HISTORICAL, params={"symbol": "AAPL"})

    assert resp.status_code == 503
    assert resp.json()["error"] == {
        "code": "SERVICE_UNAVAILABLE",
        "message": "failed to fetch historical data",
    }


@pytest.mark.asyncio
async def test_unexpected_failure_is_500_envelope(
    app_client: Callable[..., Any], provider: Any
) -> None:
    provider.current_error = RuntimeError("boom")
    async with app_client(raise_app_exceptions=False) as http:
        resp = await http.get(CURRENT, params={"symbols": "AAPL"})

    assert resp.status_code == 500
    assert resp.json()["success"] is False
    assert "boom" not in resp.text
