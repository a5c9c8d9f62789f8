# Copyright (c)
# SPDX-License-Identifier: MIT
"""
Price Entities

Purpose:
    Immutable domain representations of a current quote and of a historical
    close-price series (no I/O). The ``to_dict``/``from_dict`` pairs define
    the JSON shape stored under the cache keys and returned over HTTP.

Layer: domain/entities
"""
from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

from price_service.domain.enums.prices import Resolution

from .base import BaseEntity


@dataclass(frozen=True, slots=True)
class CurrentPrice(BaseEntity):
    """Latest quote for one symbol.

    Args:
        symbol: Canonical, upper-case ticker.
        current_price: Last traded price.
        currency: ISO 4217 code.
        change: ``current_price - previous_close``.
        change_percent: ``change / previous_close`` (ratio), 0 when previous
            close is not positive.
        previous_close: Prior session close.
        timestamp: Fetch time (timezone-aware, UTC).
    """

    symbol: str
    current_price: float
    currency: str
    change: float
    change_percent: float
    previous_close: float
    timestamp: datetime

    def __post_init__(self) -> None:
        if not self.symbol or self.symbol != self.symbol.upper():
            raise ValueError("symbol must be upper-case non-empty")
        if self.timestamp.tzinfo is None:
            object.__setattr__(self, "timestamp", self.timestamp.replace(tzinfo=UTC))

    @classmethod
    def from_quote(
        cls,
        symbol: str,
        *,
        current: float,
        previous_close: float,
        currency: str = "USD",
        fetched_at: datetime | None = None,
    ) -> CurrentPrice:
        """Build a price and derive ``change``/``change_percent`` from the inputs."""
        change = current - previous_close
        change_percent = change / previous_close if previous_close > 0 else 0.0
        return cls(
            symbol=symbol.upper(),
            current_price=current,
            currency=currency,
            change=change,
            change_percent=change_percent,
            previous_close=previous_close,
            timestamp=fetched_at or datetime.now(tz=UTC),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "symbol": self.symbol,
            "current_price": self.current_price,
            "currency": self.currency,
            "change": self.change,
            "change_percent": self.change_percent,
            "previous_close": self.previous_close,
            "timestamp": self.timestamp.isoformat(),
        }

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> CurrentPrice:
        """Rebuild a price from its wire mapping.

        Raises:
            KeyError, TypeError, ValueError: If the mapping is malformed.
        """
        return cls(
            symbol=str(payload["symbol"]),
            current_price=float(payload["current_price"]),
            currency=str(payload.get("currency") or "USD"),
            change=float(payload.get("change", 0.0)),
            change_percent=float(payload.get("change_percent", 0.0)),
            previous_close=float(payload.get("previous_close", 0.0)),
            timestamp=datetime.fromisoformat(str(payload["timestamp"])),
        )


@dataclass(frozen=True, slots=True)
class ClosePrice(BaseEntity):
    """One row of a historical series: a ``YYYY-MM-DD`` date and its close."""

    date: str
    price: float

    def to_dict(self) -> dict[str, Any]:
        return {"date": self.date, "price": self.price}


@dataclass(frozen=True, slots=True)
class HistoricalSeries(BaseEntity):
    """Close-price series for one ``(symbol, resolution)``.

    Rows are sorted newest to oldest and dates are unique. Use
    :meth:`from_rows` to build a series from unordered provider data.
    """

    symbol: str
    resolution: Resolution
    historical_prices: tuple[ClosePrice, ...] = ()

    def __post_init__(self) -> None:
        if not self.symbol or self.symbol != self.symbol.upper():
            raise ValueError("symbol must be upper-case non-empty")
        dates = [row.date for row in self.historical_prices]
        if any(a <= b for a, b in zip(dates, dates[1:], strict=False)):
            raise ValueError("historical_prices must be sorted newest first with unique dates")

    @classmethod
    def from_rows(
        cls,
        symbol: str,
        resolution: Resolution,
        rows: Iterable[ClosePrice],
    ) -> HistoricalSeries:
        """Build a series from rows in any order; the first row wins on duplicate dates."""
        by_date: dict[str, ClosePrice] = {}
        for row in rows:
            by_date.setdefault(row.date, row)
        ordered = sorted(by_date.values(), key=lambda r: r.date, reverse=True)
        return cls(symbol=symbol.upper(), resolution=resolution, historical_prices=tuple(ordered))

    @property
    def newest_date(self) -> str | None:
        """Date of the newest row, or ``None`` for an empty series."""
        return self.historical_prices[0].date if self.historical_prices else None

    def is_empty(self) -> bool:
        return not self.historical_prices

    def between(self, from_date: str, to_date: str) -> HistoricalSeries:
        """Return the rows with ``from_date <= date <= to_date``, order preserved."""
        rows = tuple(r for r in self.historical_prices if from_date <= r.date <= to_date)
        return HistoricalSeries(self.symbol, self.resolution, rows)

    def at(self, date: str) -> HistoricalSeries:
        """Return the row for ``date`` exactly (possibly empty)."""
        return self.between(date, date)

    def to_dict(self) -> dict[str, Any]:
        return {
            "symbol": self.symbol,
            "resolution": self.resolution.value,
            "historical_prices": [row.to_dict() for row in self.historical_prices],
        }

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> HistoricalSeries:
        """Rebuild a series from its wire mapping.

        Raises:
            KeyError, TypeError, ValueError: If the mapping is malformed.
        """
        rows = [
            ClosePrice(date=str(item["date"]), price=float(item["price"]))
            for item in payload.get("historical_prices") or []
        ]
        return cls.from_rows(
            str(payload["symbol"]),
            Resolution(str(payload["resolution"])),
            rows,
        )
