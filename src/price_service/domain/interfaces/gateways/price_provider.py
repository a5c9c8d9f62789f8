# Copyright (c)
# SPDX-License-Identifier: MIT
"""
Price Provider Protocol (Domain Interface)

Purpose:
    Capability surface every upstream adapter implements. The provider map
    composes two implementations behind the same surface and dispatches by
    operation.

Layer: domain/interfaces/gateways
"""
from __future__ import annotations

from collections.abc import Sequence
from typing import Protocol, runtime_checkable

from price_service.domain.entities.prices import CurrentPrice, HistoricalSeries
from price_service.domain.enums.prices import Resolution


@runtime_checkable
class PriceProvider(Protocol):
    """Upstream market-data capability."""

    name: str

    async def get_current_prices(self, symbols: Sequence[str]) -> list[CurrentPrice]:
        """Return current prices for ``symbols``.

        Quote-style providers fetch symbols one at a time, log and skip
        per-symbol failures, and may return fewer prices than requested.

        Raises:
            PriceServiceError: When the batch as a whole cannot be served.
        """
        ...

    async def get_historical_prices(
        self, symbol: str, resolution: Resolution
    ) -> HistoricalSeries:
        """Return the full series for ``(symbol, resolution)``, newest first.

        Raises:
            SymbolNotFound: If the upstream has no data for ``symbol``.
            InvalidInput: If the resolution is not supported.
            RateLimitExceeded: If the upstream throttled the call.
            ServiceUnavailable: On transport failure or an open breaker.
        """
        ...
