# src/price_service/infrastructure/external_apis/finnhub/client.py
# Copyright (c)
# SPDX-License-Identifier: MIT
"""Finnhub Transport Client: resilient, instrumented, async.

Endpoints:
    * ``GET /quote?symbol=S&token=KEY``: ``{c, d, dp, h, l, o, pc, t}``.
    * ``GET /stock/candle?symbol=S&resolution=D|W|M&from=..&to=..&token=KEY``:
      ``{s, c[], t[], ...}``.

The transport returns raw payload mappings; shape checks and normalization
to domain entities live in the Finnhub gateway.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

import httpx

from price_service.domain.exceptions.price import ServiceUnavailable
from price_service.infrastructure.external_apis.finnhub.settings import FinnhubSettings
from price_service.infrastructure.http.resilient_client import (
    NON_FAILURE_ERRORS,
    ResilientHttpClient,
)
from price_service.infrastructure.resilience.circuit_breaker import CircuitBreaker
from price_service.infrastructure.resilience.retry import RetryPolicy

PROVIDER = "finnhub"


class FinnhubClient:
    """Transport client for the Finnhub REST API."""

    def __init__(
        self,
        settings: FinnhubSettings,
        *,
        http: httpx.AsyncClient | None = None,
        retry_policy: RetryPolicy | None = None,
        breaker: CircuitBreaker | None = None,
    ) -> None:
        self._settings = settings
        self._base_url = str(settings.base_url).rstrip("/")
        self._token = settings.api_key.get_secret_value()
        self._transport = ResilientHttpClient(
            provider=PROVIDER,
            http=http,
            timeout_s=settings.timeout_s,
            retry_policy=retry_policy or RetryPolicy(total=settings.max_retries, base=1.0),
            breaker=breaker
            or CircuitBreaker(name=PROVIDER, ignored=NON_FAILURE_ERRORS),
            secrets=(self._token,),
        )

    @property
    def settings(self) -> FinnhubSettings:
        return self._settings

    async def aclose(self) -> None:
        await self._transport.aclose()

    async def _get(self, path: str, *, endpoint: str, params: dict[str, Any]) -> Mapping[str, Any]:
        payload = await self._transport.get_json(
            f"{self._base_url}{path}",
            endpoint=endpoint,
            params={**params, "token": self._token},
        )
        if not isinstance(payload, Mapping):
            raise ServiceUnavailable(f"finnhub {endpoint} returned an unexpected payload")
        return payload

    async def quote(self, symbol: str) -> Mapping[str, Any]:
        """Call ``/quote`` for one symbol and return the raw payload."""
        return await self._get("/quote", endpoint="quote", params={"symbol": symbol})

    async def candles(
        self,
        symbol: str,
        *,
        resolution: str,
        from_ts: int,
        to_ts: int,
    ) -> Mapping[str, Any]:
        """Call ``/stock/candle`` and return the raw payload.

        Args:
            symbol: Canonical ticker.
            resolution: Finnhub resolution code (``D``, ``W`` or ``M``).
            from_ts: Window start, UNIX seconds.
            to_ts: Window end, UNIX seconds.
        """
        return await self._get(
            "/stock/candle",
            endpoint="candle",
            params={"symbol": symbol, "resolution": resolution, "from": from_ts, "to": to_ts},
        )
