# src/price_service/adapters/gateways/finnhub_gateway.py
# Copyright (c)
# SPDX-License-Identifier: MIT
"""Adapter Gateway: Finnhub → domain prices.

This gateway sits on top of the Finnhub transport client and provides:

* Current prices from ``/quote``, fetched one symbol at a time.
* Historical close series from ``/stock/candle`` over a trailing window.

Design principles:
    * ``c == 0 and t == 0`` is the upstream sentinel for unknown symbols.
    * ``s == "no_data"`` on candles means the symbol has no history.
    * Payloads are validated deterministically; bad shapes are upstream
      faults (``ServiceUnavailable``), not client errors.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping, Sequence
from datetime import UTC, datetime, timedelta
from typing import Any, Final

from price_service.adapters.gateways.quote_batch import fetch_each
from price_service.domain.entities.prices import ClosePrice, CurrentPrice, HistoricalSeries
from price_service.domain.enums.prices import Resolution
from price_service.domain.exceptions.price import (
    InvalidInput,
    ServiceUnavailable,
    SymbolNotFound,
)
from price_service.infrastructure.external_apis.finnhub.client import PROVIDER, FinnhubClient

_CANDLE_RESOLUTIONS: Final[dict[Resolution, str]] = {
    Resolution.DAILY: "D",
    Resolution.WEEKLY: "W",
    Resolution.MONTHLY: "M",
}


def _number(raw: Mapping[str, Any], field: str) -> float:
    value = raw.get(field)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ServiceUnavailable(
            "finnhub returned an unexpected quote payload", details={"field": field}
        )
    return float(value)


class FinnhubGateway:
    """Finnhub adapter implementing :class:`PriceProvider`."""

    name = PROVIDER

    def __init__(
        self, client: FinnhubClient, *, now: Callable[[], datetime] | None = None
    ) -> None:
        """Initialize the gateway.

        Args:
            client: Finnhub transport client.
            now: Optional zero-arg callable returning an aware ``datetime``;
                used to anchor the candle window in tests.
        """
        self._client = client
        self._now = now or (lambda: datetime.now(tz=UTC))

    async def aclose(self) -> None:
        await self._client.aclose()

    async def get_current_prices(self, symbols: Sequence[str]) -> list[CurrentPrice]:
        return await fetch_each(self.name, symbols, self._quote)

    async def _quote(self, symbol: str) -> CurrentPrice:
        raw = await self._client.quote(symbol)
        current = _number(raw, "c")
        timestamp = raw.get("t") or 0
        if current == 0 and timestamp == 0:
            raise SymbolNotFound(f"invalid or not found symbol: {symbol}")
        return CurrentPrice.from_quote(
            symbol,
            current=current,
            previous_close=_number(raw, "pc"),
            fetched_at=self._now(),
        )

    async def get_historical_prices(
        self, symbol: str, resolution: Resolution
    ) -> HistoricalSeries:
        code = _CANDLE_RESOLUTIONS.get(resolution)
        if code is None:
            raise InvalidInput(f"unsupported resolution: {resolution.value}")

        to_dt = self._now()
        from_dt = to_dt - timedelta(days=self._client.settings.candle_lookback_days)
        raw = await self._client.candles(
            symbol,
            resolution=code,
            from_ts=int(from_dt.timestamp()),
            to_ts=int(to_dt.timestamp()),
        )

        status = raw.get("s")
        if status == "no_data":
            raise SymbolNotFound(f"no historical data for symbol: {symbol}")
        closes, stamps = raw.get("c"), raw.get("t")
        if status != "ok" or not isinstance(closes, list) or not isinstance(stamps, list):
            raise ServiceUnavailable(
                "finnhub returned an unexpected candle payload", details={"status": status}
            )

        rows: list[ClosePrice] = []
        for close, stamp in zip(closes, stamps, strict=False):
            if not isinstance(close, (int, float)) or not isinstance(stamp, (int, float)):
                continue
            day = datetime.fromtimestamp(stamp, tz=UTC).date().isoformat()
            rows.append(ClosePrice(date=day, price=float(close)))
        return HistoricalSeries.from_rows(symbol, resolution, rows)
