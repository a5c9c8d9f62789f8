# src/price_service/adapters/routers/metrics_router.py
# Copyright (c)
# SPDX-License-Identifier: MIT
"""Prometheus scrape endpoint (`/metrics`).

Warms the lazily created collectors so their series appear on the very
first scrape.

Layer:
    adapters/routers
"""

from __future__ import annotations

from collections.abc import Callable
from contextlib import suppress
from typing import Any

from fastapi import APIRouter, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from price_service.infrastructure.logging.logger import get_json_logger
from price_service.infrastructure.observability.metrics import (
    get_breaker_events_total,
    get_cache_operation_duration_seconds,
    get_cache_operations_total,
    get_rate_limited_total,
    get_upstream_errors_total,
    get_upstream_latency_seconds,
    get_upstream_retries_total,
)

logger = get_json_logger(__name__)
router = APIRouter()

_COLLECTORS: tuple[Callable[[], Any], ...] = (
    get_cache_operations_total,
    get_cache_operation_duration_seconds,
    get_upstream_latency_seconds,
    get_upstream_errors_total,
    get_upstream_retries_total,
    get_breaker_events_total,
    get_rate_limited_total,
)


def _warm() -> None:
    for getter in _COLLECTORS:
        with suppress(Exception):
            getter()


@router.get("/metrics", include_in_schema=False)
async def metrics_probe() -> Response:
    """Expose Prometheus metrics in the text exposition format."""
    _warm()
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
