# Copyright (c)
# SPDX-License-Identifier: MIT
"""Unit tests for RequestIdMiddleware behavior and header rules."""

from __future__ import annotations

from fastapi import FastAPI, Request
from fastapi.testclient import TestClient

from price_service.infrastructure.middleware.request_id import (
    _SAFE_RE,
    REQUEST_ID_HEADER,
    RequestIdMiddleware,
    coerce_request_id,
)


def _app() -> FastAPI:
    app = FastAPI()
    app.add_middleware(RequestIdMiddleware)

    @app.get("/id")
    def get_id(request: Request) -> dict[str, str | None]:
        return {"rid": getattr(request.state, "request_id", None)}

    return app


def test_middleware_generates_id_and_sets_state_and_header() -> None:
    r = TestClient(_app()).get("/id")

    assert r.status_code == 200
    rid = r.json()["rid"]
    assert r.headers.get(REQUEST_ID_HEADER) == rid
    assert _SAFE_RE.match(rid)


def test_middleware_keeps_valid_incoming_and_replaces_invalid() -> None:
    client = TestClient(_app())

    valid = "abc-123_456:@Z"
    r1 = client.get("/id", headers={REQUEST_ID_HEADER: valid})
    assert r1.json()["rid"] == valid
    assert r1.headers.get(REQUEST_ID_HEADER) == valid

    invalid = "bad id with space"
    r2 = client.get("/id", headers={REQUEST_ID_HEADER: invalid})
    generated = r2.headers.get(REQUEST_ID_HEADER)
    assert generated and generated != invalid
    assert _SAFE_RE.match(generated)


def test_coerce_request_id_rejects_oversized_values() -> None:
    assert coerce_request_id("x" * 128) == "x" * 128
    assert coerce_request_id("x" * 129) != "x" * 129
    assert coerce_request_id(None)
