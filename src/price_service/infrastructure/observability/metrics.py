# src/price_service/infrastructure/observability/metrics.py
# Copyright (c)
# SPDX-License-Identifier: MIT
"""Prometheus metrics for the price service.

Collectors
----------
* ``price_service_cache_operations_total{operation,outcome}`` (Counter)
* ``price_service_cache_operation_duration_seconds{operation}`` (Histogram)
* ``price_service_upstream_latency_seconds{provider,endpoint,outcome}`` (Histogram)
* ``price_service_upstream_errors_total{provider,endpoint,reason}`` (Counter)
* ``price_service_upstream_http_status_total{provider,endpoint,status_code}`` (Counter)
* ``price_service_upstream_retries_total{provider,endpoint}`` (Counter)
* ``price_service_breaker_events_total{endpoint,state}`` (Counter)
* ``price_service_rate_limited_total`` (Counter)

Design
------
Collectors are created against the *current* default registry
(:data:`prometheus_client.REGISTRY`) through accessor functions. If a
collector with the same name already exists in the active registry it is
reused, so module re-imports and tests that swap the registry never hit
duplicate-registration errors.
"""

from __future__ import annotations

from collections.abc import Generator, Sequence
from contextlib import contextmanager, suppress
from dataclasses import dataclass, field
from time import perf_counter
from typing import Final, TypeVar

import prometheus_client as prom
from prometheus_client import Counter, Histogram

__all__ = [
    "get_cache_operations_total",
    "get_cache_operation_duration_seconds",
    "get_upstream_latency_seconds",
    "get_upstream_errors_total",
    "get_upstream_http_status_total",
    "get_upstream_retries_total",
    "get_breaker_events_total",
    "get_rate_limited_total",
    "observe_upstream_request",
    "UpstreamObservation",
]

_LATENCY_BUCKETS: Final[tuple[float, ...]] = (
    0.005,
    0.01,
    0.025,
    0.05,
    0.1,
    0.25,
    0.5,
    1.0,
    2.5,
    5.0,
    10.0,
    30.0,
)

_C = TypeVar("_C", Counter, Histogram)


def _get_or_create(
    kind: type[_C],
    name: str,
    doc: str,
    labelnames: Sequence[str] = (),
    **kwargs: object,
) -> _C:
    """Return a collector bound to the current default registry.

    1. Reuse an existing collector with ``name`` if it has the right type.
    2. Otherwise register a new one.
    3. If a concurrent registration raced us, look it up again.
    """
    registry = prom.REGISTRY
    mapping = getattr(registry, "_names_to_collectors", {})
    existing = mapping.get(name)
    if isinstance(existing, kind):
        return existing

    try:
        return kind(  # type: ignore[arg-type]
            name, doc, tuple(labelnames), registry=registry, **kwargs
        )
    except ValueError as exc:
        if "Duplicated timeseries" in str(exc):
            again = getattr(registry, "_names_to_collectors", {}).get(name)
            if isinstance(again, kind):
                return again
        raise


def get_cache_operations_total() -> Counter:
    return _get_or_create(
        Counter,
        "price_service_cache_operations_total",
        "Cache operations by outcome (hit, miss, set, delete, error).",
        ("operation", "outcome"),
    )


def get_cache_operation_duration_seconds() -> Histogram:
    return _get_or_create(
        Histogram,
        "price_service_cache_operation_duration_seconds",
        "Latency of cache operations (seconds).",
        ("operation",),
        buckets=_LATENCY_BUCKETS,
    )


def get_upstream_latency_seconds() -> Histogram:
    return _get_or_create(
        Histogram,
        "price_service_upstream_latency_seconds",
        "Latency of upstream provider calls, including retries (seconds).",
        ("provider", "endpoint", "outcome"),
        buckets=_LATENCY_BUCKETS,
    )


def get_upstream_errors_total() -> Counter:
    return _get_or_create(
        Counter,
        "price_service_upstream_errors_total",
        "Errors returned by upstream provider calls.",
        ("provider", "endpoint", "reason"),
    )


def get_upstream_http_status_total() -> Counter:
    return _get_or_create(
        Counter,
        "price_service_upstream_http_status_total",
        "HTTP status codes returned by upstream providers.",
        ("provider", "endpoint", "status_code"),
    )


def get_upstream_retries_total() -> Counter:
    return _get_or_create(
        Counter,
        "price_service_upstream_retries_total",
        "Retries attempted for upstream calls.",
        ("provider", "endpoint"),
    )


def get_breaker_events_total() -> Counter:
    return _get_or_create(
        Counter,
        "price_service_breaker_events_total",
        "Circuit-breaker state transitions and short-circuits.",
        ("endpoint", "state"),
    )


def get_rate_limited_total() -> Counter:
    return _get_or_create(
        Counter,
        "price_service_rate_limited_total",
        "Requests rejected by the per-IP rate limiter.",
    )


@dataclass
class UpstreamObservation:
    """Mutable state for one observed upstream call."""

    provider: str
    endpoint: str
    start: float = field(default_factory=perf_counter)
    error_reason: str | None = None

    @property
    def outcome(self) -> str:
        return "error" if self.error_reason else "success"

    def mark_error(self, reason: str) -> None:
        self.error_reason = reason


@contextmanager
def observe_upstream_request(
    *, provider: str, endpoint: str
) -> Generator[UpstreamObservation, None, None]:
    """Record latency and, on failure, an error count for one upstream call.

    Exceptions escaping the block are re-raised after being recorded with
    their class name as the reason.
    """
    obs = UpstreamObservation(provider=provider, endpoint=endpoint)
    try:
        yield obs
    except Exception as exc:
        if obs.error_reason is None:
            obs.mark_error(type(exc).__name__)
        raise
    finally:
        elapsed = perf_counter() - obs.start
        with suppress(Exception):
            get_upstream_latency_seconds().labels(
                provider=obs.provider, endpoint=obs.endpoint, outcome=obs.outcome
            ).observe(elapsed)
            if obs.error_reason is not None:
                get_upstream_errors_total().labels(
                    provider=obs.provider, endpoint=obs.endpoint, reason=obs.error_reason
                ).inc()
