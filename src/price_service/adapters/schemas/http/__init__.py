# Copyright (c)
# SPDX-License-Identifier: MIT
"""HTTP Schemas package (Adapters Layer).

Purpose:
    Public, adapter-facing HTTP schema surface for the price service. It
    intentionally does NOT expose BaseHTTPSchema.

Layer:
    adapters/schemas/http
"""

from __future__ import annotations

from price_service.adapters.schemas.http.envelopes import (
    ErrorEnvelope,
    ErrorObject,
    SuccessEnvelope,
)
from price_service.adapters.schemas.http.prices import (
    CacheInvalidated,
    ClosePriceHTTP,
    CurrentPriceHTTP,
    HealthData,
    HistoricalPricesHTTP,
)

__all__ = [
    # Envelopes
    "ErrorObject",
    "ErrorEnvelope",
    "SuccessEnvelope",
    # Resources
    "CurrentPriceHTTP",
    "ClosePriceHTTP",
    "HistoricalPricesHTTP",
    "HealthData",
    "CacheInvalidated",
]
