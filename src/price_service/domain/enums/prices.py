# src/price_service/domain/enums/prices.py
# Copyright (c)
# SPDX-License-Identifier: MIT
"""
Price enumerations.

Purpose:
    Stable string identifiers for series resolution and for the closed error
    taxonomy shared by the HTTP surface and the price-service client.

Layer:
    domain
"""

from __future__ import annotations

from enum import Enum


class Resolution(str, Enum):
    """Temporal granularity of a historical series.

    ``INTRADAY`` is reserved: it is part of the data model but no endpoint
    serves it.
    """

    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    INTRADAY = "intraday"

    @classmethod
    def served(cls) -> tuple[Resolution, ...]:
        """Return the resolutions the HTTP surface accepts."""
        return (cls.DAILY, cls.WEEKLY, cls.MONTHLY)


class ErrorKind(str, Enum):
    """Closed set of error codes crossing the HTTP boundary."""

    SYMBOL_NOT_FOUND = "SYMBOL_NOT_FOUND"
    MARKET_CLOSED = "MARKET_CLOSED"
    RATE_LIMIT_EXCEEDED = "RATE_LIMIT_EXCEEDED"
    SERVICE_UNAVAILABLE = "SERVICE_UNAVAILABLE"
    INVALID_INPUT = "INVALID_INPUT"
    UNAUTHORIZED = "UNAUTHORIZED"

    @property
    def http_status(self) -> int:
        """Canonical HTTP status for this error kind."""
        return _HTTP_STATUS[self]


_HTTP_STATUS: dict[ErrorKind, int] = {
    ErrorKind.SYMBOL_NOT_FOUND: 404,
    ErrorKind.MARKET_CLOSED: 503,
    ErrorKind.RATE_LIMIT_EXCEEDED: 429,
    ErrorKind.SERVICE_UNAVAILABLE: 503,
    ErrorKind.INVALID_INPUT: 400,
    ErrorKind.UNAUTHORIZED: 401,
}
