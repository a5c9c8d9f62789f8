# src/price_service/infrastructure/external_apis/alphavantage/client.py
# Copyright (c)
# SPDX-License-Identifier: MIT
"""Alpha Vantage Transport Client: resilient, instrumented, async.

Endpoints (all on the single query URL):
    * ``function=GLOBAL_QUOTE&symbol=S&apikey=KEY``
    * ``function=TIME_SERIES_DAILY|WEEKLY|MONTHLY&symbol=S&apikey=KEY``
      (``outputsize=full`` for daily)

Alpha Vantage answers errors with HTTP 200 and an envelope field:

* ``Error Message``: unknown symbol or malformed call.
* ``Note`` / ``Information``: throttled (per-minute or per-day budget).

Configured ``(symbol, resolution)`` pairs are answered from fixture JSON
bundled with this package instead of calling the upstream, which keeps the
shared request budget for real traffic.
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from functools import cache
from importlib import resources
from typing import Any, Final

import httpx

from price_service.domain.enums.prices import Resolution
from price_service.domain.exceptions.price import (
    InvalidInput,
    RateLimitExceeded,
    ServiceUnavailable,
    SymbolNotFound,
)
from price_service.infrastructure.external_apis.alphavantage.settings import (
    AlphaVantageSettings,
)
from price_service.infrastructure.http.resilient_client import (
    NON_FAILURE_ERRORS,
    ResilientHttpClient,
)
from price_service.infrastructure.logging.logger import get_json_logger
from price_service.infrastructure.resilience.circuit_breaker import CircuitBreaker
from price_service.infrastructure.resilience.retry import RetryPolicy

logger = get_json_logger(__name__)

PROVIDER = "alpha_vantage"

SERIES_FUNCTIONS: Final[dict[Resolution, str]] = {
    Resolution.DAILY: "TIME_SERIES_DAILY",
    Resolution.WEEKLY: "TIME_SERIES_WEEKLY",
    Resolution.MONTHLY: "TIME_SERIES_MONTHLY",
}

_FIXTURE_FILES: Final[dict[tuple[str, str], str]] = {
    ("IBM", Resolution.DAILY.value): "ibm_daily.json",
}


@cache
def load_fixture(filename: str) -> bytes:
    """Return the raw bytes of a bundled fixture."""
    return (
        resources.files("price_service.infrastructure.external_apis.alphavantage")
        .joinpath("fixtures", filename)
        .read_bytes()
    )


def check_envelope(payload: Mapping[str, Any], *, symbol: str) -> None:
    """Raise the domain error encoded in an Alpha Vantage error envelope.

    Raises:
        SymbolNotFound: ``Error Message`` about an invalid call for the symbol.
        InvalidInput: Any other ``Error Message``.
        RateLimitExceeded: ``Note`` or ``Information`` present.
    """
    message = payload.get("Error Message")
    if message:
        text = str(message)
        if "invalid api call" in text.lower():
            raise SymbolNotFound(f"symbol not found: {symbol}", details={"upstream": text})
        raise InvalidInput(text)
    for field in ("Note", "Information"):
        if payload.get(field):
            raise RateLimitExceeded(
                "Alpha Vantage rate limit exceeded",
                details={"upstream": str(payload[field])},
            )


class AlphaVantageClient:
    """Transport client for the Alpha Vantage query API."""

    def __init__(
        self,
        settings: AlphaVantageSettings,
        *,
        http: httpx.AsyncClient | None = None,
        retry_policy: RetryPolicy | None = None,
        breaker: CircuitBreaker | None = None,
    ) -> None:
        self._settings = settings
        self._base_url = str(settings.base_url)
        self._api_key = settings.api_key.get_secret_value()
        self._fixtures = settings.fixtures
        self._transport = ResilientHttpClient(
            provider=PROVIDER,
            http=http,
            timeout_s=settings.timeout_s,
            retry_policy=retry_policy or RetryPolicy(total=settings.max_retries, base=1.0),
            breaker=breaker or CircuitBreaker(name=PROVIDER, ignored=NON_FAILURE_ERRORS),
            secrets=(self._api_key,),
        )

    @property
    def settings(self) -> AlphaVantageSettings:
        return self._settings

    async def aclose(self) -> None:
        await self._transport.aclose()

    async def _query(
        self, *, endpoint: str, symbol: str, params: dict[str, str]
    ) -> Mapping[str, Any]:
        payload = await self._transport.get_json(
            self._base_url,
            endpoint=endpoint,
            params={**params, "symbol": symbol, "apikey": self._api_key},
        )
        if not isinstance(payload, Mapping):
            raise ServiceUnavailable(f"alpha vantage {endpoint} returned an unexpected payload")
        check_envelope(payload, symbol=symbol)
        return payload

    def fixture_for(self, symbol: str, resolution: Resolution) -> Mapping[str, Any] | None:
        """Return the bundled payload for a configured pair, else ``None``."""
        key = (symbol.upper(), resolution.value)
        if key not in self._fixtures:
            return None
        filename = _FIXTURE_FILES.get(key)
        if filename is None:
            logger.warning(
                "alpha_vantage.fixture_missing",
                extra={"extra": {"symbol": key[0], "resolution": key[1]}},
            )
            return None
        try:
            payload = json.loads(load_fixture(filename))
        except (OSError, ValueError) as exc:
            raise ServiceUnavailable(f"failed to read {key[0]} fixture data") from exc
        logger.info(
            "alpha_vantage.fixture",
            extra={"extra": {"symbol": key[0], "resolution": key[1], "file": filename}},
        )
        return payload

    async def global_quote(self, symbol: str) -> Mapping[str, Any]:
        """Call ``GLOBAL_QUOTE`` for one symbol and return the raw payload."""
        return await self._query(
            endpoint="global_quote", symbol=symbol, params={"function": "GLOBAL_QUOTE"}
        )

    async def time_series(self, symbol: str, resolution: Resolution) -> Mapping[str, Any]:
        """Return the raw time-series payload for ``(symbol, resolution)``.

        Raises:
            InvalidInput: If ``resolution`` has no Alpha Vantage function.
        """
        function = SERIES_FUNCTIONS.get(resolution)
        if function is None:
            raise InvalidInput(f"unsupported resolution: {resolution.value}")

        fixture = self.fixture_for(symbol, resolution)
        if fixture is not None:
            return fixture

        params = {"function": function}
        if resolution is Resolution.DAILY:
            params["outputsize"] = "full"
        return await self._query(endpoint=function.lower(), symbol=symbol, params=params)
