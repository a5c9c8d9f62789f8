# tests/conftest.py
from __future__ import annotations

from collections.abc import AsyncIterator, Callable, Sequence
from contextlib import AbstractAsyncContextManager, asynccontextmanager
from datetime import UTC, datetime
from typing import Any

import fakeredis.aioredis
import httpx
import pytest

from price_service.config.settings import Settings, get_settings
from price_service.domain.entities.prices import ClosePrice, CurrentPrice, HistoricalSeries
from price_service.domain.enums.prices import Resolution
from price_service.domain.exceptions.price import PriceServiceError, SymbolNotFound
from price_service.infrastructure.caching import redis_client as redis_client_module
from price_service.main import create_app

FIXED_NOW = datetime(2025, 7, 23, 15, 30, tzinfo=UTC)
REMOTE_CLIENT = ("10.0.0.5", 40000)
LOOPBACK_CLIENT = ("127.0.0.1", 40000)


class FakeProvider:
    """In-memory :class:`PriceProvider` that records every call."""

    name = "fake"

    def __init__(self) -> None:
        self.quotes: dict[str, float] = {}
        self.series: dict[tuple[str, Resolution], list[tuple[str, float]]] = {}
        self.current_calls: list[list[str]] = []
        self.historical_calls: list[tuple[str, Resolution]] = []
        self.current_error: PriceServiceError | None = None
        self.historical_error: PriceServiceError | None = None

    async def get_current_prices(self, symbols: Sequence[str]) -> list[CurrentPrice]:
        self.current_calls.append(list(symbols))
        if self.current_error is not None:
            raise self.current_error
        return [
            CurrentPrice.from_quote(
                s, current=self.quotes[s], previous_close=self.quotes[s] - 1.0, fetched_at=FIXED_NOW
            )
            for s in symbols
            if s in self.quotes
        ]

    async def get_historical_prices(
        self, symbol: str, resolution: Resolution
    ) -> HistoricalSeries:
        self.historical_calls.append((symbol, resolution))
        if self.historical_error is not None:
            raise self.historical_error
        rows = self.series.get((symbol, resolution))
        if rows is None:
            raise SymbolNotFound(f"no historical data for symbol: {symbol}")
        return HistoricalSeries.from_rows(
            symbol, resolution, [ClosePrice(date=d, price=p) for d, p in rows]
        )


def make_price(symbol: str, current: float, previous_close: float | None = None) -> CurrentPrice:
    return CurrentPrice.from_quote(
        symbol,
        current=current,
        previous_close=previous_close if previous_close is not None else current - 1.5,
        fetched_at=FIXED_NOW,
    )


def make_series(
    symbol: str, rows: list[tuple[str, float]], resolution: Resolution = Resolution.DAILY
) -> HistoricalSeries:
    return HistoricalSeries.from_rows(
        symbol, resolution, [ClosePrice(date=d, price=p) for d, p in rows]
    )


@pytest.fixture(autouse=True)
def _clear_settings_cache() -> Any:
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def fake_redis(monkeypatch: pytest.MonkeyPatch) -> fakeredis.aioredis.FakeRedis:
    """Wire a fresh fakeredis into the process-wide Redis client slot."""
    fake = fakeredis.aioredis.FakeRedis(decode_responses=True)
    monkeypatch.setattr(redis_client_module, "_client", fake)
    return fake


@pytest.fixture
def provider() -> FakeProvider:
    return FakeProvider()


@pytest.fixture
def settings_factory() -> Callable[..., Settings]:
    def _make(**overrides: Any) -> Settings:
        base: dict[str, Any] = {
            "api_key": "secret-key",
            "rate_limit_requests": 1000,
            "finnhub_api_key": "fh-token",
            "alpha_vantage_api_key": "av-token",
        }
        base.update(overrides)
        return Settings(**base)

    return _make


@pytest.fixture
def app_client(
    fake_redis: fakeredis.aioredis.FakeRedis,
    provider: FakeProvider,
    settings_factory: Callable[..., Settings],
) -> Callable[..., AbstractAsyncContextManager[httpx.AsyncClient]]:
    """Return a factory running the app lifespan and yielding an ASGI-bound client.

    ``client`` selects the peer address the app sees (remote by default).
    """

    @asynccontextmanager
    async def _open(
        *,
        client: tuple[str, int] = REMOTE_CLIENT,
        headers: dict[str, str] | None = None,
        raise_app_exceptions: bool = True,
        **overrides: Any,
    ) -> AsyncIterator[httpx.AsyncClient]:
        app = create_app(settings_factory(**overrides), provider=provider)
        transport = httpx.ASGITransport(
            app=app, client=client, raise_app_exceptions=raise_app_exceptions
        )
        default_headers = {"X-API-Key": "secret-key"} if headers is None else headers
        async with app.router.lifespan_context(app):
            async with httpx.AsyncClient(
                transport=transport, base_url="http://testserver", headers=default_headers
            ) as http:
                yield http

    return _open


@pytest.fixture
def price_factory() -> Callable[..., CurrentPrice]:
    return make_price


@pytest.fixture
def series_factory() -> Callable[..., HistoricalSeries]:
    return make_series
