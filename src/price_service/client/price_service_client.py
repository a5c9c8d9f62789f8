# src/price_service/client/price_service_client.py
# Copyright (c)
# SPDX-License-Identifier: MIT
"""
Price Service Client

Purpose:
    Async client that callers embed to talk to the price service over HTTP.
    It shares the service's own resilience layer (circuit breaker + linear
    retry via :class:`ResilientHttpClient`) and rebuilds the domain exception
    from every error envelope, so callers handle the same taxonomy the
    service raises internally.

Health:
    ``last_healthy`` moves forward on every 2xx response. ``is_healthy()`` is
    pure freshness (``now - last_healthy < 5 minutes``) and never probes.

Layer: client
"""

from __future__ import annotations

from collections.abc import Callable, Mapping, Sequence
from datetime import UTC, datetime, timedelta
from typing import Any, Final

import httpx

from price_service.client.settings import PriceServiceClientSettings
from price_service.domain.entities.prices import CurrentPrice, HistoricalSeries
from price_service.domain.enums.prices import Resolution
from price_service.domain.exceptions.price import (
    InvalidInput,
    PriceServiceError,
    ServiceUnavailable,
    SymbolNotFound,
    error_for_code,
)
from price_service.infrastructure.http.resilient_client import (
    NON_FAILURE_ERRORS,
    ResilientHttpClient,
    default_error_mapper,
)
from price_service.infrastructure.logging.logger import get_json_logger
from price_service.infrastructure.resilience.circuit_breaker import CircuitBreaker
from price_service.infrastructure.resilience.retry import RetryPolicy

logger = get_json_logger(__name__)

PROVIDER: Final[str] = "price_service"
HEALTH_FRESHNESS: Final[timedelta] = timedelta(minutes=5)


def envelope_error_mapper(response: httpx.Response) -> PriceServiceError | None:
    """Map a non-2xx price-service response back to its domain exception.

    Bodies that are not an ``{"success": false, "error": {...}}`` envelope
    fall back to the status-based mapping.
    """
    if response.status_code < 400:
        return None
    try:
        body = response.json()
    except ValueError:
        return default_error_mapper(response)
    error = body.get("error") if isinstance(body, Mapping) else None
    if not isinstance(error, Mapping) or "code" not in error:
        return default_error_mapper(response)
    return error_for_code(str(error["code"]), str(error.get("message") or ""))


class PriceServiceClient:
    """HTTP client for the price service.

    Args:
        base_url: Service root, e.g. ``http://price-service:8081``.
        api_key: Sent as ``X-API-Key`` when non-empty.
        timeout_s: Per-request timeout in seconds.
        max_retries: Retries after the first attempt (linear backoff).
        breaker: Circuit breaker shared by every call of this client.
        http: Optional shared ``httpx.AsyncClient`` (tests pass an ASGI one).
        now: UTC clock used for the health freshness window.
    """

    def __init__(
        self,
        base_url: str,
        api_key: str = "",
        *,
        timeout_s: float = 30.0,
        max_retries: int = 3,
        breaker: CircuitBreaker | None = None,
        http: httpx.AsyncClient | None = None,
        now: Callable[[], datetime] | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._now = now or (lambda: datetime.now(tz=UTC))
        self._last_healthy = self._now()
        headers = {"Content-Type": "application/json"}
        if api_key:
            headers["X-API-Key"] = api_key
        self._http = ResilientHttpClient(
            provider=PROVIDER,
            http=http,
            timeout_s=timeout_s,
            retry_policy=RetryPolicy(total=max_retries, base=1.0, backoff="linear"),
            breaker=breaker
            or CircuitBreaker(
                max_failures=5,
                reset_timeout_s=60.0,
                name=PROVIDER,
                ignored=NON_FAILURE_ERRORS,
            ),
            secrets=(api_key,),
            default_headers=headers,
            error_mapper=envelope_error_mapper,
            on_response=self._mark_healthy,
        )

    @classmethod
    def from_settings(
        cls,
        settings: PriceServiceClientSettings | None = None,
        *,
        http: httpx.AsyncClient | None = None,
    ) -> PriceServiceClient:
        """Build a client from ``PRICE_SERVICE_*`` environment settings."""
        cfg = settings or PriceServiceClientSettings()
        return cls(
            cfg.base_url,
            cfg.api_key.get_secret_value(),
            timeout_s=cfg.timeout_s,
            max_retries=cfg.max_retries,
            http=http,
        )

    @property
    def breaker(self) -> CircuitBreaker:
        return self._http.breaker

    @property
    def last_healthy(self) -> datetime:
        """Time of the most recent 2xx response (construction time before any)."""
        return self._last_healthy

    def _mark_healthy(self, response: httpx.Response) -> None:
        if response.is_success:
            self._last_healthy = self._now()

    def is_healthy(self) -> bool:
        """True when a 2xx response was seen within the last five minutes."""
        return self._now() - self._last_healthy < HEALTH_FRESHNESS

    async def aclose(self) -> None:
        await self._http.aclose()

    async def _data(
        self,
        method: str,
        path: str,
        *,
        endpoint: str,
        params: Mapping[str, Any] | None = None,
    ) -> Any:
        payload = await self._http.request_json(
            method, f"{self._base_url}{path}", endpoint=endpoint, params=params
        )
        if not isinstance(payload, Mapping) or payload.get("success") is not True:
            raise ServiceUnavailable("price service returned unsuccessful response")
        return payload.get("data")

    async def get_current_prices(self, symbols: Sequence[str]) -> list[CurrentPrice]:
        """Fetch current prices; unknown symbols are simply absent from the result.

        Raises:
            InvalidInput: If ``symbols`` is empty (checked locally).
            PriceServiceError: Rebuilt from the service's error envelope.
        """
        if not symbols:
            raise InvalidInput("symbols list cannot be empty")
        data = await self._data(
            "GET",
            "/api/v1/price/current",
            endpoint="current",
            params={"symbols": ",".join(symbols)},
        )
        try:
            return [CurrentPrice.from_dict(item) for item in data or []]
        except (KeyError, TypeError, ValueError) as exc:
            raise ServiceUnavailable("price service returned a malformed price list") from exc

    async def get_current_price(self, symbol: str) -> CurrentPrice:
        """Fetch one current price.

        Raises:
            SymbolNotFound: If the service returned no price for ``symbol``.
        """
        prices = await self.get_current_prices([symbol])
        if not prices:
            raise SymbolNotFound(f"symbol not found: {symbol.strip().upper()}")
        return prices[0]

    async def get_historical_prices(
        self,
        symbol: str,
        resolution: Resolution | str = Resolution.DAILY,
        from_date: str | None = None,
        to_date: str | None = None,
    ) -> HistoricalSeries:
        """Fetch a close-price series, optionally limited to ``[from_date, to_date]``."""
        params: dict[str, str] = {"symbol": symbol, "resolution": Resolution(resolution).value}
        if from_date:
            params["from"] = from_date
        if to_date:
            params["to"] = to_date
        return await self._series(params)

    async def get_historical_price_at_date(
        self,
        symbol: str,
        date: str,
        resolution: Resolution | str = Resolution.DAILY,
    ) -> HistoricalSeries:
        """Fetch the close for ``date``.

        The service moves weekend and holiday dates back to the last trading
        day; the returned series holds that single row, or nothing when the
        provider has no data for it.
        """
        return await self._series(
            {"symbol": symbol, "resolution": Resolution(resolution).value, "date": date}
        )

    async def _series(self, params: Mapping[str, str]) -> HistoricalSeries:
        data = await self._data(
            "GET", "/api/v1/price/historical", endpoint="historical", params=params
        )
        try:
            return HistoricalSeries.from_dict(data)
        except (KeyError, TypeError, ValueError) as exc:
            raise ServiceUnavailable("price service returned a malformed series") from exc

    async def invalidate_cache(self) -> str:
        """Flush the service cache and return its confirmation message."""
        data = await self._data("POST", "/api/v1/invalid-cache", endpoint="invalidate_cache")
        message = str((data or {}).get("message", ""))
        logger.info("price_service.cache_invalidated", extra={"extra": {"message": message}})
        return message

    async def health_check(self) -> dict[str, Any]:
        """Call ``GET /health`` and return its data block (status, service, version)."""
        data = await self._data("GET", "/health", endpoint="health")
        return dict(data or {})
