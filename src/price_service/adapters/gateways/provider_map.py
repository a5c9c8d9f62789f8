# src/price_service/adapters/gateways/provider_map.py
# Copyright (c)
# SPDX-License-Identifier: MIT
"""Provider map: one upstream for quotes, one for series.

The map exposes the :class:`PriceProvider` surface and dispatches by
operation, never by symbol. There is no failover between providers.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass

import httpx

from price_service.adapters.gateways.alphavantage_gateway import AlphaVantageGateway
from price_service.adapters.gateways.finnhub_gateway import FinnhubGateway
from price_service.config.settings import Settings
from price_service.domain.entities.prices import CurrentPrice, HistoricalSeries
from price_service.domain.enums.prices import Resolution
from price_service.domain.interfaces.gateways.price_provider import PriceProvider
from price_service.infrastructure.external_apis.alphavantage.client import AlphaVantageClient
from price_service.infrastructure.external_apis.alphavantage.settings import (
    AlphaVantageSettings,
)
from price_service.infrastructure.external_apis.finnhub.client import FinnhubClient
from price_service.infrastructure.external_apis.finnhub.settings import FinnhubSettings
from price_service.infrastructure.http.resilient_client import NON_FAILURE_ERRORS
from price_service.infrastructure.logging.logger import get_json_logger
from price_service.infrastructure.resilience.circuit_breaker import CircuitBreaker
from price_service.infrastructure.resilience.retry import RetryPolicy

logger = get_json_logger(__name__)


@dataclass(frozen=True)
class ProviderMap:
    """Compose a quotes provider and a series provider behind one surface."""

    quotes: PriceProvider
    series: PriceProvider

    @property
    def name(self) -> str:
        return f"{self.quotes.name}+{self.series.name}"

    async def get_current_prices(self, symbols: Sequence[str]) -> list[CurrentPrice]:
        return await self.quotes.get_current_prices(symbols)

    async def get_historical_prices(
        self, symbol: str, resolution: Resolution
    ) -> HistoricalSeries:
        return await self.series.get_historical_prices(symbol, resolution)


def _retry_policy(settings: Settings) -> RetryPolicy:
    exponential = settings.upstream_backoff == "exponential"
    return RetryPolicy(
        total=settings.upstream_max_retries,
        base=1.0,
        backoff="exponential" if exponential else "linear",
        jitter=exponential,
    )


def _breaker(settings: Settings, name: str) -> CircuitBreaker:
    return CircuitBreaker(
        max_failures=settings.breaker_max_failures,
        reset_timeout_s=settings.breaker_reset_timeout_s,
        name=name,
        ignored=NON_FAILURE_ERRORS,
    )


def _finnhub(settings: Settings, http: httpx.AsyncClient | None) -> FinnhubGateway:
    provider_settings = FinnhubSettings(
        base_url=settings.finnhub_base_url,
        api_key=settings.finnhub_api_key,
        timeout_s=settings.upstream_timeout_s,
        max_retries=settings.upstream_max_retries,
    )
    client = FinnhubClient(
        provider_settings,
        http=http,
        retry_policy=_retry_policy(settings),
        breaker=_breaker(settings, "finnhub"),
    )
    return FinnhubGateway(client)


def _alpha_vantage(settings: Settings, http: httpx.AsyncClient | None) -> AlphaVantageGateway:
    provider_settings = AlphaVantageSettings(
        base_url=settings.alpha_vantage_base_url,
        api_key=settings.alpha_vantage_api_key,
        timeout_s=settings.upstream_timeout_s,
        max_retries=settings.upstream_max_retries,
        fixtures_raw=settings.alpha_vantage_fixtures_raw,
    )
    client = AlphaVantageClient(
        provider_settings,
        http=http,
        retry_policy=_retry_policy(settings),
        breaker=_breaker(settings, "alpha_vantage"),
    )
    return AlphaVantageGateway(client)


_FACTORIES: dict[str, Callable[[Settings, httpx.AsyncClient | None], PriceProvider]] = {
    "finnhub": _finnhub,
    "alpha_vantage": _alpha_vantage,
}


def build_provider_map(settings: Settings, http: httpx.AsyncClient | None = None) -> ProviderMap:
    """Build the configured provider map.

    A provider named for both roles is built once, so both roles share its
    breaker.

    Args:
        settings: Application settings (``QUOTES_PROVIDER``, ``SERIES_PROVIDER``
            and the provider credentials).
        http: Optional shared ``httpx.AsyncClient``.

    Raises:
        ValueError: If a provider name is unknown.
    """
    built: dict[str, PriceProvider] = {}
    for role, provider_name in (
        ("quotes", settings.quotes_provider),
        ("series", settings.series_provider),
    ):
        factory = _FACTORIES.get(provider_name)
        if factory is None:
            raise ValueError(
                f"unknown {role} provider {provider_name!r}; "
                f"expected one of {sorted(_FACTORIES)}"
            )
        if provider_name not in built:
            built[provider_name] = factory(settings, http)

    provider_map = ProviderMap(
        quotes=built[settings.quotes_provider],
        series=built[settings.series_provider],
    )
    logger.info(
        "providers.configured",
        extra={
            "extra": {
                "quotes": settings.quotes_provider,
                "series": settings.series_provider,
            }
        },
    )
    return provider_map
