from __future__ import annotations

import json
import logging
from typing import Any

import httpx
import pytest
import respx

from price_service.domain.exceptions.price import (
    CircuitOpenError,
    InvalidInput,
    RateLimitExceeded,
    ServiceUnavailable,
    SymbolNotFound,
    Unauthorized,
)
from price_service.infrastructure.http.resilient_client import (
    ResilientHttpClient,
    default_error_mapper,
)
from price_service.infrastructure.logging.logger import REDACTED, set_request_context
from price_service.infrastructure.resilience.circuit_breaker import CircuitBreaker, CircuitState
from price_service.infrastructure.resilience.retry import RetryPolicy

URL = "https://upstream.test/quote"


def _client(http: httpx.AsyncClient, **kwargs: Any) -> ResilientHttpClient:
    return ResilientHttpClient(
        provider="upstream",
        http=http,
        retry_policy=RetryPolicy(total=2, base=0.0),
        secrets=("s3cr3t",),
        **kwargs,
    )


@pytest.mark.parametrize(
    ("status", "expected"),
    [
        (429, RateLimitExceeded),
        (401, Unauthorized),
        (403, Unauthorized),
        (404, SymbolNotFound),
        (400, InvalidInput),
        (500, ServiceUnavailable),
        (503, ServiceUnavailable),
    ],
)
def test_default_error_mapper(status: int, expected: type) -> None:
    assert isinstance(default_error_mapper(httpx.Response(status)), expected)


def test_default_error_mapper_passes_success() -> None:
    assert default_error_mapper(httpx.Response(200)) is None


@pytest.mark.asyncio
@respx.mock
async def test_returns_decoded_json_and_sends_headers() -> None:
    route = respx.get(URL).mock(return_value=httpx.Response(200, json={"c": 1}))
    set_request_context(request_id="req-123")

    async with httpx.AsyncClient() as http:
        payload = await _client(http).get_json(URL, endpoint="quote", params={"symbol": "AAPL"})

    assert payload == {"c": 1}
    sent = route.calls.last.request
    assert sent.url.params["symbol"] == "AAPL"
    assert sent.headers["Accept"] == "application/json"
    assert sent.headers["X-Request-ID"] == "req-123"


@pytest.mark.asyncio
@respx.mock
async def test_retries_5xx_then_succeeds() -> None:
    route = respx.get(URL).mock(
        side_effect=[httpx.Response(502), httpx.Response(200, json={"ok": True})]
    )

    async with httpx.AsyncClient() as http:
        assert await _client(http).get_json(URL, endpoint="quote") == {"ok": True}
    assert route.call_count == 2


@pytest.mark.asyncio
@respx.mock
async def test_transport_errors_become_service_unavailable() -> None:
    route = respx.get(URL).mock(side_effect=httpx.ConnectError("refused"))

    async with httpx.AsyncClient() as http:
        with pytest.raises(ServiceUnavailable, match="ConnectError"):
            await _client(http).get_json(URL, endpoint="quote")
    assert route.call_count == 3


@pytest.mark.asyncio
@respx.mock
async def test_client_errors_are_not_retried() -> None:
    route = respx.get(URL).mock(return_value=httpx.Response(404))

    async with httpx.AsyncClient() as http:
        with pytest.raises(SymbolNotFound):
            await _client(http).get_json(URL, endpoint="quote")
    assert route.call_count == 1


@pytest.mark.asyncio
@respx.mock
async def test_non_json_body_is_service_unavailable() -> None:
    respx.get(URL).mock(return_value=httpx.Response(200, text="<html>"))

    async with httpx.AsyncClient() as http:
        client = ResilientHttpClient(
            provider="upstream", http=http, retry_policy=RetryPolicy(total=0)
        )
        with pytest.raises(ServiceUnavailable, match="non-JSON"):
            await client.get_json(URL, endpoint="quote")


@pytest.mark.asyncio
@respx.mock
async def test_breaker_opens_and_short_circuits() -> None:
    route = respx.get(URL).mock(return_value=httpx.Response(503))
    breaker = CircuitBreaker(max_failures=2, reset_timeout_s=60.0, name="upstream")

    async with httpx.AsyncClient() as http:
        client = ResilientHttpClient(
            provider="upstream",
            http=http,
            retry_policy=RetryPolicy(total=5, base=0.0),
            breaker=breaker,
        )
        with pytest.raises(CircuitOpenError):
            await client.get_json(URL, endpoint="quote")

    # Two real attempts trip the breaker; the third is short-circuited.
    assert route.call_count == 2
    assert breaker.state is CircuitState.OPEN


@pytest.mark.asyncio
@respx.mock
async def test_secrets_are_redacted_from_logs(caplog: pytest.LogCaptureFixture) -> None:
    respx.get(URL).mock(return_value=httpx.Response(500))
    caplog.set_level(logging.INFO)

    async with httpx.AsyncClient() as http:
        with pytest.raises(ServiceUnavailable):
            await _client(http).get_json(URL, endpoint="quote", params={"token": "s3cr3t"})

    logged = [
        json.dumps(getattr(r, "extra", {})) + r.getMessage()
        for r in caplog.records
        if r.name.startswith("price_service")
    ]
    assert logged
    assert all("s3cr3t" not in line for line in logged)
    assert any(REDACTED in line for line in logged)


@pytest.mark.asyncio
@respx.mock
async def test_on_response_hook_sees_every_response() -> None:
    respx.get(URL).mock(side_effect=[httpx.Response(503), httpx.Response(200, json={})])
    statuses: list[int] = []

    async with httpx.AsyncClient() as http:
        client = _client(http, on_response=lambda r: statuses.append(r.status_code))
        await client.get_json(URL, endpoint="quote")

    assert statuses == [503, 200]


@pytest.mark.asyncio
async def test_owned_client_is_closed() -> None:
    client = ResilientHttpClient(provider="upstream")

    await client.aclose()

    assert client._client.is_closed
