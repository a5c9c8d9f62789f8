# src/price_service/adapters/gateways/alphavantage_gateway.py
# Copyright (c)
# SPDX-License-Identifier: MIT
"""Adapter Gateway: Alpha Vantage → domain prices.

Maps ``TIME_SERIES_*`` payloads to :class:`HistoricalSeries` and
``GLOBAL_QUOTE`` payloads to :class:`CurrentPrice`. Envelope errors are
already raised by the transport; this layer only deals with shapes.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping, Sequence
from datetime import UTC, datetime
from typing import Any, Final

from price_service.adapters.gateways.quote_batch import fetch_each
from price_service.domain.entities.prices import ClosePrice, CurrentPrice, HistoricalSeries
from price_service.domain.enums.prices import Resolution
from price_service.domain.exceptions.price import ServiceUnavailable, SymbolNotFound
from price_service.infrastructure.external_apis.alphavantage.client import (
    PROVIDER,
    AlphaVantageClient,
)
from price_service.infrastructure.logging.logger import get_json_logger

logger = get_json_logger(__name__)

SERIES_KEYS: Final[dict[Resolution, str]] = {
    Resolution.DAILY: "Time Series (Daily)",
    Resolution.WEEKLY: "Weekly Time Series",
    Resolution.MONTHLY: "Monthly Time Series",
}


def _float(raw: Any) -> float | None:
    try:
        return float(str(raw).strip())
    except (TypeError, ValueError):
        return None


def parse_series(
    payload: Mapping[str, Any], symbol: str, resolution: Resolution
) -> HistoricalSeries:
    """Extract the ``4. close`` values of a time-series payload.

    Rows whose close does not parse are skipped. A payload without the
    series section yields an empty series.
    """
    section = payload.get(SERIES_KEYS[resolution])
    if not isinstance(section, Mapping):
        logger.warning(
            "alpha_vantage.series_missing",
            extra={"extra": {"symbol": symbol, "resolution": resolution.value}},
        )
        return HistoricalSeries(symbol=symbol.upper(), resolution=resolution)

    rows: list[ClosePrice] = []
    for day, values in section.items():
        if not isinstance(values, Mapping):
            continue
        price = _float(values.get("4. close"))
        if price is None:
            continue
        rows.append(ClosePrice(date=str(day), price=price))
    return HistoricalSeries.from_rows(symbol, resolution, rows)


class AlphaVantageGateway:
    """Alpha Vantage adapter implementing :class:`PriceProvider`."""

    name = PROVIDER

    def __init__(
        self,
        client: AlphaVantageClient,
        *,
        now: Callable[[], datetime] | None = None,
    ) -> None:
        self._client = client
        self._now = now or (lambda: datetime.now(tz=UTC))

    async def aclose(self) -> None:
        await self._client.aclose()

    async def get_current_prices(self, symbols: Sequence[str]) -> list[CurrentPrice]:
        return await fetch_each(self.name, symbols, self._quote)

    async def _quote(self, symbol: str) -> CurrentPrice:
        payload = await self._client.global_quote(symbol)
        quote = payload.get("Global Quote")
        if not isinstance(quote, Mapping) or not quote:
            raise SymbolNotFound(f"invalid or not found symbol: {symbol}")
        current = _float(quote.get("05. price"))
        previous_close = _float(quote.get("08. previous close"))
        if current is None or previous_close is None:
            raise ServiceUnavailable("alpha vantage returned an unexpected quote payload")
        return CurrentPrice.from_quote(
            symbol,
            current=current,
            previous_close=previous_close,
            fetched_at=self._now(),
        )

    async def get_historical_prices(
        self, symbol: str, resolution: Resolution
    ) -> HistoricalSeries:
        payload = await self._client.time_series(symbol, resolution)
        return parse_series(payload, symbol, resolution)
