# src/price_service/application/use_cases/prices/get_historical_prices.py
# Copyright (c)
# SPDX-License-Identifier: MIT
"""
Use Case: Get Historical Prices

Purpose:
    Serve a close-price series for one symbol and resolution, optionally
    restricted to a single date or a ``[from, to]`` window.

    The full series is cached under ``historical:{SYMBOL}:{resolution}``.
    A windowed request is answered from cache only when the cached series
    fully covers the window (trading-day aware); otherwise the full series is
    refetched, the cache entry overwritten, and the result filtered. The
    cached series itself is never pruned.

    Results report the upstream fetch time only when they were fetched;
    cache-served results carry none.

Layer: application/use_cases
"""

from __future__ import annotations

from datetime import UTC, date, datetime
from typing import NamedTuple

from price_service.application.services.single_flight import SingleFlight
from price_service.domain.entities.prices import HistoricalSeries
from price_service.domain.enums.prices import Resolution
from price_service.domain.exceptions.price import (
    InvalidInput,
    ServiceUnavailable,
    Unauthorized,
)
from price_service.domain.interfaces.gateways.price_provider import PriceProvider
from price_service.domain.services.coverage import Coverage, classify_coverage
from price_service.domain.services.market_calendar import MarketCalendar
from price_service.domain.value_objects.dates import DateWindow, validate_date_params
from price_service.domain.value_objects.symbols import normalize_symbol
from price_service.infrastructure.caching.price_cache import PriceCache, historical_key
from price_service.infrastructure.logging.logger import get_json_logger

logger = get_json_logger(__name__)


def parse_resolution(raw: str | None) -> Resolution:
    """Parse a served resolution; blank means daily.

    Raises:
        InvalidInput: For unknown or unserved resolutions.
    """
    value = (raw or "").strip().lower()
    if not value:
        return Resolution.DAILY
    served = Resolution.served()
    for resolution in served:
        if resolution.value == value:
            return resolution
    names = ", ".join(r.value for r in served)
    raise InvalidInput(f"invalid resolution, must be one of: {names}")


class HistoricalPrices(NamedTuple):
    """A served series and when it was fetched upstream.

    ``fetched_at`` is ``None`` when the series came from cache.
    """

    series: HistoricalSeries
    fetched_at: datetime | None = None


class GetHistoricalPrices:
    """Use case to fetch historical close prices.

    Args:
        provider: Provider map (or any :class:`PriceProvider`).
        cache: Typed price cache.
        calendar: Market calendar used for coverage and single-date adjustment.
        single_flight: Optional coalescer shared across requests.
    """

    def __init__(
        self,
        provider: PriceProvider,
        cache: PriceCache,
        calendar: MarketCalendar,
        *,
        single_flight: SingleFlight[HistoricalSeries] | None = None,
    ) -> None:
        self._provider = provider
        self._cache = cache
        self._calendar = calendar
        self._flight: SingleFlight[HistoricalSeries] = single_flight or SingleFlight()

    async def execute(
        self,
        symbol: str,
        resolution: str | None = None,
        *,
        date_param: str | None = None,
        from_date: str | None = None,
        to_date: str | None = None,
        today: date | None = None,
    ) -> HistoricalSeries:
        """Return the (possibly filtered) series, newest first.

        See :meth:`load` for arguments and errors.
        """
        result = await self.load(
            symbol,
            resolution,
            date_param=date_param,
            from_date=from_date,
            to_date=to_date,
            today=today,
        )
        return result.series

    async def load(
        self,
        symbol: str,
        resolution: str | None = None,
        *,
        date_param: str | None = None,
        from_date: str | None = None,
        to_date: str | None = None,
        today: date | None = None,
    ) -> HistoricalPrices:
        """Return the (possibly filtered) series and its upstream fetch time.

        Raises:
            InvalidInput: Bad symbol, resolution or date parameters.
            SymbolNotFound: Upstream has no data for the symbol.
            RateLimitExceeded: Upstream throttled the fetch.
            ServiceUnavailable: Upstream failure, rejected upstream
                credentials, or open breaker.
        """
        canonical = normalize_symbol(symbol)
        res = parse_resolution(resolution)
        window = validate_date_params(date_param, from_date, to_date, today=today)
        if window is not None and window.single:
            adjusted = self._calendar.last_trading_day_iso(window.from_date)
            window = DateWindow(adjusted, adjusted, single=True)

        cached = await self._cache.get_historical(canonical, res)

        if window is None:
            if cached is not None:
                logger.info(
                    "prices.historical.cache_hit",
                    extra={"extra": {"symbol": canonical, "resolution": res.value}},
                )
                return HistoricalPrices(cached)
            return await self._fetch(canonical, res)

        coverage = (
            classify_coverage(cached, window.from_date, window.to_date, self._calendar)
            if cached is not None
            else Coverage.NONE
        )
        logger.info(
            "prices.historical.coverage",
            extra={
                "extra": {
                    "symbol": canonical,
                    "resolution": res.value,
                    "from": window.from_date,
                    "to": window.to_date,
                    "coverage": coverage.value,
                }
            },
        )
        if cached is not None and coverage is Coverage.FULL:
            result = HistoricalPrices(cached)
        else:
            result = await self._fetch(canonical, res)
        if window.single:
            filtered = result.series.at(window.from_date)
        else:
            filtered = result.series.between(window.from_date, window.to_date)
        return result._replace(series=filtered)

    async def _fetch(self, symbol: str, resolution: Resolution) -> HistoricalPrices:
        async def load() -> HistoricalSeries:
            try:
                series = await self._provider.get_historical_prices(symbol, resolution)
            except Unauthorized as exc:
                # Upstream rejected our provider key; not the caller's credentials.
                raise ServiceUnavailable("failed to fetch historical data") from exc
            if not series.is_empty():
                await self._cache.set_historical(series)
            return series

        series = await self._flight.do(historical_key(symbol, resolution), load)
        return HistoricalPrices(series, datetime.now(tz=UTC))
