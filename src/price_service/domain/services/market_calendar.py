# src/price_service/domain/services/market_calendar.py
# Copyright (c)
# SPDX-License-Identifier: MIT
"""U.S. market calendar (Domain Service).

Purpose:
    Decide whether a date is a trading day and resolve the most recent
    trading day on or before a date. Weekends and a configurable set of
    U.S. market holidays are non-trading days.

Design:
    * Holidays are named rules (:class:`Holiday`), evaluated per year and
      memoized per calendar instance.
    * Good Friday is computed from Western Easter (anonymous Gregorian
      algorithm) and can be excluded like any other rule.
    * Fixed-date holidays falling on a weekend are either kept on the date
      itself (``as_is``) or moved by the federal rule (``federal``:
      Saturday to the preceding Friday, Sunday to the following Monday).

Layer:
    domain/services
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import date, timedelta
from enum import Enum

__all__ = ["Holiday", "Observance", "MarketCalendar", "easter_sunday"]


class Holiday(str, Enum):
    """Recognized U.S. market holidays."""

    NEW_YEARS_DAY = "new_years_day"
    MLK_DAY = "mlk_day"
    PRESIDENTS_DAY = "presidents_day"
    GOOD_FRIDAY = "good_friday"
    MEMORIAL_DAY = "memorial_day"
    JUNETEENTH = "juneteenth"
    INDEPENDENCE_DAY = "independence_day"
    LABOR_DAY = "labor_day"
    THANKSGIVING = "thanksgiving"
    CHRISTMAS = "christmas"


class Observance(str, Enum):
    """Weekend observance rule for fixed-date holidays."""

    AS_IS = "as_is"
    FEDERAL = "federal"


_FIXED_DATE: dict[Holiday, tuple[int, int]] = {
    Holiday.NEW_YEARS_DAY: (1, 1),
    Holiday.JUNETEENTH: (6, 19),
    Holiday.INDEPENDENCE_DAY: (7, 4),
    Holiday.CHRISTMAS: (12, 25),
}

_MONDAY, _THURSDAY = 0, 3


def easter_sunday(year: int) -> date:
    """Return Western Easter Sunday for ``year`` (anonymous Gregorian algorithm)."""
    a = year % 19
    b, c = divmod(year, 100)
    d, e = divmod(b, 4)
    f = (b + 8) // 25
    g = (b - f + 1) // 3
    h = (19 * a + b - d - g + 15) % 30
    i, k = divmod(c, 4)
    l = (32 + 2 * e + 2 * i - h - k) % 7  # noqa: E741
    m = (a + 11 * h + 22 * l) // 451
    month, day = divmod(h + l - 7 * m + 114, 31)
    return date(year, month, day + 1)


def _nth_weekday(year: int, month: int, weekday: int, n: int) -> date:
    first = date(year, month, 1)
    offset = (weekday - first.weekday()) % 7
    return first + timedelta(days=offset + 7 * (n - 1))


def _last_weekday(year: int, month: int, weekday: int) -> date:
    next_month = date(year + (month // 12), month % 12 + 1, 1)
    last = next_month - timedelta(days=1)
    return last - timedelta(days=(last.weekday() - weekday) % 7)


def _observed(day: date, observance: Observance) -> date:
    if observance is Observance.FEDERAL:
        if day.weekday() == 5:
            return day - timedelta(days=1)
        if day.weekday() == 6:
            return day + timedelta(days=1)
    return day


class MarketCalendar:
    """Weekend and holiday aware trading-day calendar.

    Args:
        holidays: Holidays to recognize. ``None`` recognizes all of them.
        observance: Weekend observance rule for fixed-date holidays.
    """

    def __init__(
        self,
        holidays: Iterable[Holiday | str] | None = None,
        observance: Observance | str = Observance.AS_IS,
    ) -> None:
        if holidays is None:
            self._holidays = frozenset(Holiday)
        else:
            self._holidays = frozenset(Holiday(h) for h in holidays)
        self._observance = Observance(observance)
        self._by_year: dict[int, dict[date, Holiday]] = {}

    @property
    def holidays(self) -> frozenset[Holiday]:
        return self._holidays

    @property
    def observance(self) -> Observance:
        return self._observance

    def holidays_for_year(self, year: int) -> dict[date, Holiday]:
        """Return the recognized holiday dates for ``year``."""
        cached = self._by_year.get(year)
        if cached is not None:
            return cached

        rules: dict[Holiday, date] = {
            Holiday.MLK_DAY: _nth_weekday(year, 1, _MONDAY, 3),
            Holiday.PRESIDENTS_DAY: _nth_weekday(year, 2, _MONDAY, 3),
            Holiday.GOOD_FRIDAY: easter_sunday(year) - timedelta(days=2),
            Holiday.MEMORIAL_DAY: _last_weekday(year, 5, _MONDAY),
            Holiday.LABOR_DAY: _nth_weekday(year, 9, _MONDAY, 1),
            Holiday.THANKSGIVING: _nth_weekday(year, 11, _THURSDAY, 4),
        }
        for holiday, (month, day) in _FIXED_DATE.items():
            rules[holiday] = _observed(date(year, month, day), self._observance)

        result = {day: holiday for holiday, day in rules.items() if holiday in self._holidays}
        self._by_year[year] = result
        return result

    @staticmethod
    def is_weekend(day: date) -> bool:
        return day.weekday() >= 5

    def is_holiday(self, day: date) -> bool:
        """Return True if ``day`` is a recognized market holiday."""
        if day in self.holidays_for_year(day.year):
            return True
        # Federal observance can move Jan 1 of next year onto Dec 31.
        if day.month == 12 and day.day == 31:
            return day in self.holidays_for_year(day.year + 1)
        return False

    def is_trading_day(self, day: date) -> bool:
        return not self.is_weekend(day) and not self.is_holiday(day)

    def last_trading_day(self, day: date) -> date:
        """Return the most recent trading day on or before ``day``."""
        current = day
        while not self.is_trading_day(current):
            current -= timedelta(days=1)
        return current

    def last_trading_day_iso(self, value: str) -> str:
        """String form of :meth:`last_trading_day` for ``YYYY-MM-DD`` inputs."""
        return self.last_trading_day(date.fromisoformat(value)).isoformat()
