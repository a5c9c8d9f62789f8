from __future__ import annotations

from datetime import UTC, datetime

import httpx
import pytest
import respx

from price_service.adapters.gateways.finnhub_gateway import FinnhubGateway
from price_service.domain.enums.prices import Resolution
from price_service.domain.exceptions.price import (
    InvalidInput,
    ServiceUnavailable,
    SymbolNotFound,
)
from price_service.infrastructure.external_apis.finnhub.client import FinnhubClient
from price_service.infrastructure.external_apis.finnhub.settings import FinnhubSettings
from price_service.infrastructure.resilience.retry import RetryPolicy

BASE = "https://finnhub.test/api/v1"
NOW = datetime(2025, 7, 23, 20, 0, tzinfo=UTC)

QUOTES = {
    "AAPL": {"c": 150.0, "d": 1.5, "dp": 1.01, "pc": 148.5, "t": 1753284600},
    "MSFT": {"c": 510.0, "d": -2.0, "dp": -0.39, "pc": 512.0, "t": 1753284600},
    "ZZZZ": {"c": 0, "d": None, "dp": None, "pc": 0, "t": 0},
}


def _quote_response(request: httpx.Request) -> httpx.Response:
    symbol = request.url.params["symbol"]
    if symbol == "DOWN":
        return httpx.Response(503)
    return httpx.Response(200, json=QUOTES[symbol])


def _gateway(http: httpx.AsyncClient) -> FinnhubGateway:
    client = FinnhubClient(
        FinnhubSettings(base_url=BASE, api_key="fh-token", candle_lookback_days=30),
        http=http,
        retry_policy=RetryPolicy(total=0),
    )
    return FinnhubGateway(client, now=lambda: NOW)


@pytest.mark.asyncio
@respx.mock
async def test_current_prices_skip_unknown_symbols() -> None:
    route = respx.get(f"{BASE}/quote").mock(side_effect=_quote_response)

    async with httpx.AsyncClient() as http:
        prices = await _gateway(http).get_current_prices(["AAPL", "ZZZZ", "MSFT"])

    assert [p.symbol for p in prices] == ["AAPL", "MSFT"]
    aapl = prices[0]
    assert aapl.current_price == 150.0
    assert aapl.previous_close == 148.5
    assert aapl.change == pytest.approx(1.5)
    assert aapl.currency == "USD"
    assert aapl.timestamp == NOW
    assert [c.request.url.params["symbol"] for c in route.calls] == ["AAPL", "ZZZZ", "MSFT"]


@pytest.mark.asyncio
@respx.mock
async def test_partial_upstream_failure_returns_what_resolved() -> None:
    respx.get(f"{BASE}/quote").mock(side_effect=_quote_response)

    async with httpx.AsyncClient() as http:
        prices = await _gateway(http).get_current_prices(["DOWN", "AAPL"])

    assert [p.symbol for p in prices] == ["AAPL"]


@pytest.mark.asyncio
@respx.mock
async def test_total_upstream_failure_raises() -> None:
    respx.get(f"{BASE}/quote").mock(side_effect=_quote_response)

    async with httpx.AsyncClient() as http:
        with pytest.raises(ServiceUnavailable):
            await _gateway(http).get_current_prices(["DOWN"])


@pytest.mark.asyncio
@respx.mock
async def test_only_unknown_symbols_yield_empty_list() -> None:
    respx.get(f"{BASE}/quote").mock(side_effect=_quote_response)

    async with httpx.AsyncClient() as http:
        assert await _gateway(http).get_current_prices(["ZZZZ"]) == []


@pytest.mark.asyncio
@respx.mock
async def test_malformed_quote_is_service_unavailable() -> None:
    respx.get(f"{BASE}/quote").mock(return_value=httpx.Response(200, json={"c": "n/a"}))

    async with httpx.AsyncClient() as http:
        with pytest.raises(ServiceUnavailable):
            await _gateway(http).get_current_prices(["AAPL"])


@pytest.mark.asyncio
@respx.mock
async def test_candles_map_to_series_newest_first() -> None:
    route = respx.get(f"{BASE}/stock/candle").mock(
        return_value=httpx.Response(
            200,
            json={"s": "ok", "c": [212.48, 214.15], "t": [1753142400, 1753228800]},
        )
    )

    async with httpx.AsyncClient() as http:
        series = await _gateway(http).get_historical_prices("AAPL", Resolution.WEEKLY)

    assert series.resolution is Resolution.WEEKLY
    assert [(r.date, r.price) for r in series.historical_prices] == [
        ("2025-07-23", 214.15),
        ("2025-07-22", 212.48),
    ]
    params = route.calls.last.request.url.params
    assert params["resolution"] == "W"
    assert int(params["to"]) == int(NOW.timestamp())
    assert int(params["to"]) - int(params["from"]) == 30 * 86400


@pytest.mark.asyncio
@respx.mock
async def test_no_data_is_symbol_not_found() -> None:
    respx.get(f"{BASE}/stock/candle").mock(
        return_value=httpx.Response(200, json={"s": "no_data"})
    )

    async with httpx.AsyncClient() as http:
        with pytest.raises(SymbolNotFound):
            await _gateway(http).get_historical_prices("ZZZZ", Resolution.DAILY)


@pytest.mark.asyncio
@respx.mock
async def test_bad_candle_shape_is_service_unavailable() -> None:
    respx.get(f"{BASE}/stock/candle").mock(
        return_value=httpx.Response(200, json={"s": "ok", "c": None})
    )

    async with httpx.AsyncClient() as http:
        with pytest.raises(ServiceUnavailable):
            await _gateway(http).get_historical_prices("AAPL", Resolution.DAILY)


@pytest.mark.asyncio
async def test_intraday_is_rejected_before_any_call() -> None:
    async with httpx.AsyncClient() as http:
        with pytest.raises(InvalidInput):
            await _gateway(http).get_historical_prices("AAPL", Resolution.INTRADAY)
