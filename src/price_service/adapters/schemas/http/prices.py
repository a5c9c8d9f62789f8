# src/price_service/adapters/schemas/http/prices.py
# Copyright (c)
# SPDX-License-Identifier: MIT
"""HTTP schemas for prices, health and cache invalidation."""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import Field

from price_service.adapters.schemas.http.base import BaseHTTPSchema
from price_service.domain.entities.prices import CurrentPrice, HistoricalSeries
from price_service.domain.enums.prices import Resolution


class CurrentPriceHTTP(BaseHTTPSchema):
    symbol: str = Field(..., examples=["AAPL"])
    current_price: float
    currency: str = Field(..., examples=["USD"])
    change: float
    change_percent: float = Field(..., description="Ratio of change to previous close.")
    previous_close: float
    timestamp: datetime

    @classmethod
    def from_entity(cls, price: CurrentPrice) -> CurrentPriceHTTP:
        return cls(
            symbol=price.symbol,
            current_price=price.current_price,
            currency=price.currency,
            change=price.change,
            change_percent=price.change_percent,
            previous_close=price.previous_close,
            timestamp=price.timestamp,
        )


class ClosePriceHTTP(BaseHTTPSchema):
    date: str = Field(..., examples=["2025-07-23"])
    price: float


class HistoricalPricesHTTP(BaseHTTPSchema):
    symbol: str
    resolution: Resolution
    historical_prices: list[ClosePriceHTTP] = Field(default_factory=list)

    @classmethod
    def from_entity(cls, series: HistoricalSeries) -> HistoricalPricesHTTP:
        return cls(
            symbol=series.symbol,
            resolution=series.resolution,
            historical_prices=[
                ClosePriceHTTP(date=row.date, price=row.price) for row in series.historical_prices
            ],
        )


class HealthData(BaseHTTPSchema):
    status: Literal["healthy"] = "healthy"
    service: str = "price-service"
    version: str


class CacheInvalidated(BaseHTTPSchema):
    message: str = "Cache invalidated successfully"
