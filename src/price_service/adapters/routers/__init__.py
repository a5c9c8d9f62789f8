"""Routers Package Export (Adapters Layer).

Purpose:
    Stable exports for the application bootstrap: the ``/api/v1`` aggregator,
    the health router and the Prometheus scrape router.

Layer:
    adapters/routers
"""

from __future__ import annotations

from .api_router import router as api_router  # noqa: F401
from .health_router import router as health  # noqa: F401
from .metrics_router import router as metrics  # noqa: F401

__all__ = ["api_router", "health", "metrics"]
