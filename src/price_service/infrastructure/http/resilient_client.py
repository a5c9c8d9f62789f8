# src/price_service/infrastructure/http/resilient_client.py
# Copyright (c)
# SPDX-License-Identifier: MIT
"""Resilient JSON transport (httpx) shared by every outbound endpoint.

This transport is framework-agnostic and provides:

* Async HTTP (httpx) with a per-request timeout.
* Circuit breaker per endpoint (one :class:`ResilientHttpClient` per endpoint).
* Bounded retries around the breaker; an open breaker is never retried.
* Deterministic mapping of HTTP failures to the price-service error taxonomy.
* Structured logs with API keys redacted, plus Prometheus metrics.

Status mapping (default):
    429 -> RateLimitExceeded (retryable)
    401/403 -> Unauthorized
    404 -> SymbolNotFound
    other 4xx -> InvalidInput
    5xx, transport errors, non-JSON bodies -> ServiceUnavailable (retryable)
"""

from __future__ import annotations

import time
from collections.abc import Callable, Mapping, Sequence
from contextlib import suppress
from typing import Any, Final

import httpx

from price_service.domain.exceptions.price import (
    InvalidInput,
    PriceServiceError,
    RateLimitExceeded,
    ServiceUnavailable,
    SymbolNotFound,
    Unauthorized,
)
from price_service.infrastructure.logging.logger import get_json_logger, get_request_id, redact
from price_service.infrastructure.observability.metrics import (
    get_upstream_http_status_total,
    get_upstream_retries_total,
    observe_upstream_request,
)
from price_service.infrastructure.resilience.circuit_breaker import CircuitBreaker
from price_service.infrastructure.resilience.retry import RetryPolicy, retry_async

logger = get_json_logger(__name__)

_DEFAULT_TIMEOUT_S: Final[float] = 30.0

_DEFAULT_HEADERS: Final[dict[str, str]] = {
    "Accept": "application/json",
    "User-Agent": "price-service/1.0",
}

# Errors that mean "the dependency answered"; they do not trip the breaker.
NON_FAILURE_ERRORS: Final[tuple[type[PriceServiceError], ...]] = (
    InvalidInput,
    SymbolNotFound,
    Unauthorized,
)

ErrorMapper = Callable[[httpx.Response], PriceServiceError | None]


def default_error_mapper(response: httpx.Response) -> PriceServiceError | None:
    """Map a non-2xx response to a domain error (``None`` for 2xx)."""
    status = response.status_code
    if status < 400:
        return None
    if status == 429:
        return RateLimitExceeded("upstream rate limit exceeded")
    if status in (401, 403):
        return Unauthorized(f"upstream rejected credentials ({status})")
    if status == 404:
        return SymbolNotFound("upstream returned 404")
    if status < 500:
        return InvalidInput(f"upstream rejected request ({status})")
    return ServiceUnavailable(f"upstream error ({status})")


def is_retryable(exc: Exception) -> bool:
    """Return True for transient failures: throttling, 5xx and transport errors."""
    return isinstance(exc, (RateLimitExceeded, ServiceUnavailable))


class ResilientHttpClient:
    """Breaker + retry + metrics around one ``httpx.AsyncClient``.

    Args:
        provider: Label used in logs and metrics (e.g. ``"finnhub"``).
        http: Optional shared ``httpx.AsyncClient``. If omitted, one is
            created and owned by this instance.
        timeout_s: Per-request timeout in seconds.
        retry_policy: Retry configuration for retryable failures.
        breaker: Circuit breaker protecting this endpoint; created if omitted.
        secrets: Values to redact from logged URLs (API keys).
        default_headers: Headers added to every request.
        error_mapper: Maps non-2xx responses to domain errors.
        on_response: Hook called with every response received.
    """

    def __init__(
        self,
        *,
        provider: str,
        http: httpx.AsyncClient | None = None,
        timeout_s: float = _DEFAULT_TIMEOUT_S,
        retry_policy: RetryPolicy | None = None,
        breaker: CircuitBreaker | None = None,
        secrets: Sequence[str] = (),
        default_headers: Mapping[str, str] | None = None,
        error_mapper: ErrorMapper = default_error_mapper,
        on_response: Callable[[httpx.Response], None] | None = None,
    ) -> None:
        self._provider = provider
        self._timeout = float(timeout_s)
        self._owns_client = http is None
        self._client = http or httpx.AsyncClient(timeout=self._timeout)
        self._headers = {**_DEFAULT_HEADERS, **(default_headers or {})}
        self._retry = retry_policy or RetryPolicy(total=2, base=1.0)
        self._breaker = breaker or CircuitBreaker(
            max_failures=5,
            reset_timeout_s=60.0,
            name=provider,
            ignored=NON_FAILURE_ERRORS,
        )
        self._secrets = tuple(s for s in secrets if s)
        self._error_mapper = error_mapper
        self._on_response = on_response

    @property
    def breaker(self) -> CircuitBreaker:
        return self._breaker

    @property
    def provider(self) -> str:
        return self._provider

    async def aclose(self) -> None:
        """Close the underlying HTTP client if this instance owns it."""
        if self._owns_client and not self._client.is_closed:
            await self._client.aclose()

    def _safe_url(self, url: str, params: Mapping[str, Any] | None) -> str:
        full = str(httpx.URL(url, params=params)) if params else url
        return redact(full, self._secrets)

    async def get_json(
        self,
        url: str,
        *,
        endpoint: str,
        params: Mapping[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> Any:
        """GET ``url`` and return the decoded JSON body."""
        return await self.request_json(
            "GET", url, endpoint=endpoint, params=params, headers=headers
        )

    async def request_json(  # noqa: C901
        self,
        method: str,
        url: str,
        *,
        endpoint: str,
        params: Mapping[str, Any] | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> Any:
        """Send one request under breaker and retry, returning decoded JSON.

        Raises:
            PriceServiceError: Mapped from the final failed attempt.
        """
        provider = self._provider
        safe_url = self._safe_url(url, params)

        req_headers = dict(self._headers)
        if headers:
            req_headers.update(headers)
        request_id = get_request_id()
        if request_id:
            req_headers.setdefault("X-Request-ID", request_id)

        async def _call() -> Any:
            async with self._breaker.guard():
                logger.info(
                    f"{provider}.request",
                    extra={"extra": {"method": method, "url": safe_url, "endpoint": endpoint}},
                )
                started = time.perf_counter()
                try:
                    response = await self._client.request(
                        method,
                        url,
                        params=params,
                        headers=req_headers,
                        timeout=self._timeout,
                    )
                except httpx.RequestError as exc:
                    raise ServiceUnavailable(
                        f"{provider} request failed: {type(exc).__name__}"
                    ) from exc

                with suppress(Exception):
                    get_upstream_http_status_total().labels(
                        provider=provider, endpoint=endpoint, status_code=str(response.status_code)
                    ).inc()
                if self._on_response is not None:
                    self._on_response(response)

                error = self._error_mapper(response)
                if error is not None:
                    raise error

                try:
                    payload = response.json()
                except ValueError as exc:
                    raise ServiceUnavailable(f"{provider} returned a non-JSON body") from exc

                logger.info(
                    f"{provider}.success",
                    extra={
                        "extra": {
                            "url": safe_url,
                            "endpoint": endpoint,
                            "status": response.status_code,
                            "elapsed_ms": round((time.perf_counter() - started) * 1000, 2),
                        }
                    },
                )
                return payload

        def _on_retry(attempt: int, exc: Exception) -> None:
            with suppress(Exception):
                get_upstream_retries_total().labels(provider=provider, endpoint=endpoint).inc()
            logger.warning(
                f"{provider}.retry",
                extra={
                    "extra": {
                        "url": safe_url,
                        "endpoint": endpoint,
                        "attempt": attempt + 1,
                        "error": redact(str(exc), self._secrets),
                    }
                },
            )

        with observe_upstream_request(provider=provider, endpoint=endpoint):
            try:
                return await retry_async(
                    _call, policy=self._retry, retry_on=is_retryable, on_retry=_on_retry
                )
            except PriceServiceError as exc:
                logger.warning(
                    f"{provider}.failure",
                    extra={
                        "extra": {
                            "url": safe_url,
                            "endpoint": endpoint,
                            "code": exc.code,
                            "error": redact(exc.message, self._secrets),
                        }
                    },
                )
                raise
