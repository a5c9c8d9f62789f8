# src/price_service/domain/services/coverage.py
# Copyright (c)
# SPDX-License-Identifier: MIT
"""Cache coverage classification (Domain Service).

Decides whether a cached historical series can answer a request window
``[from, to]`` without a refetch. Comparisons are lexical on ``YYYY-MM-DD``
strings; only the trading-day adjustment uses date arithmetic.
"""

from __future__ import annotations

from enum import Enum

from price_service.domain.entities.prices import HistoricalSeries
from price_service.domain.services.market_calendar import MarketCalendar

__all__ = ["Coverage", "classify_coverage"]


class Coverage(str, Enum):
    """Relation between a cached series and a requested window."""

    FULL = "full"
    PARTIAL = "partial"
    NONE = "none"


def classify_coverage(
    series: HistoricalSeries,
    from_date: str,
    to_date: str,
    calendar: MarketCalendar,
) -> Coverage:
    """Classify how well ``series`` covers ``[from_date, to_date]``.

    Rules:
        * empty series: ``none``;
        * newest row on or after the last trading day of ``to_date`` and some
          row on or after the last trading day of ``from_date``: ``full``;
        * newest row before ``from_date``: ``none``;
        * otherwise ``partial``.
    """
    newest = series.newest_date
    if newest is None:
        return Coverage.NONE

    target = calendar.last_trading_day_iso(to_date)
    floor = calendar.last_trading_day_iso(from_date)
    if newest >= target and any(row.date >= floor for row in series.historical_prices):
        return Coverage.FULL
    if newest < from_date:
        return Coverage.NONE
    return Coverage.PARTIAL
