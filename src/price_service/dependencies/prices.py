# src/price_service/dependencies/prices.py
# Copyright (c)
# SPDX-License-Identifier: MIT
"""Dependency wiring for prices (providers, cache, use cases).

Overview:
    :func:`build_container` assembles the runtime graph once per application
    (from the lifespan); FastAPI dependency providers read it back from
    ``app.state`` so routers never construct infrastructure themselves.

Layer:
    dependencies

Design:
    * Always return the real use case types.
    * Tests inject a provider (or a pre-built container) instead of
      patching module globals; the cache runs on fakeredis via the shared
      Redis client slot.
"""

from __future__ import annotations

from dataclasses import dataclass

import httpx
from fastapi import Request

from price_service.adapters.gateways.provider_map import build_provider_map
from price_service.application.services.single_flight import SingleFlight
from price_service.application.use_cases.cache.invalidate_cache import InvalidateCache
from price_service.application.use_cases.prices.get_current_prices import GetCurrentPrices
from price_service.application.use_cases.prices.get_historical_prices import (
    GetHistoricalPrices,
)
from price_service.config.settings import Settings
from price_service.domain.entities.prices import HistoricalSeries
from price_service.domain.interfaces.gateways.price_provider import PriceProvider
from price_service.domain.services.market_calendar import MarketCalendar
from price_service.infrastructure.caching.json_cache import RedisJsonCache
from price_service.infrastructure.caching.price_cache import PriceCache


@dataclass
class PriceServiceContainer:
    """Runtime graph shared by every request of one application."""

    settings: Settings
    provider: PriceProvider
    cache: PriceCache
    calendar: MarketCalendar
    get_current_prices: GetCurrentPrices
    get_historical_prices: GetHistoricalPrices
    invalidate_cache: InvalidateCache


def build_container(
    settings: Settings,
    *,
    http: httpx.AsyncClient | None = None,
    provider: PriceProvider | None = None,
) -> PriceServiceContainer:
    """Wire providers, cache and use cases from settings.

    Args:
        settings: Application settings.
        http: Shared outbound client for the provider transports.
        provider: Override for the provider map (tests).
    """
    resolved = provider or build_provider_map(settings, http)
    cache = PriceCache(
        RedisJsonCache(namespace=settings.cache_namespace),
        default_ttl_s=settings.default_ttl_s,
        historical_ttl_s=settings.historical_ttl_s,
    )
    calendar = MarketCalendar(
        holidays=settings.market_holidays,
        observance=settings.holiday_observance,
    )
    return PriceServiceContainer(
        settings=settings,
        provider=resolved,
        cache=cache,
        calendar=calendar,
        get_current_prices=GetCurrentPrices(
            resolved,
            cache,
            max_symbols=settings.max_symbols_per_request,
            serve_partial_on_failure=settings.serve_partial_on_provider_failure,
        ),
        get_historical_prices=GetHistoricalPrices(
            resolved, cache, calendar, single_flight=SingleFlight[HistoricalSeries]()
        ),
        invalidate_cache=InvalidateCache(cache),
    )


def get_container(request: Request) -> PriceServiceContainer:
    container: PriceServiceContainer | None = getattr(request.app.state, "container", None)
    if container is None:
        raise RuntimeError("price service container is not initialized (lifespan not run)")
    return container


def get_app_settings(request: Request) -> Settings:
    settings: Settings = request.app.state.settings
    return settings


def get_current_prices_uc(request: Request) -> GetCurrentPrices:
    return get_container(request).get_current_prices


def get_historical_prices_uc(request: Request) -> GetHistoricalPrices:
    return get_container(request).get_historical_prices


def get_invalidate_cache_uc(request: Request) -> InvalidateCache:
    return get_container(request).invalidate_cache
