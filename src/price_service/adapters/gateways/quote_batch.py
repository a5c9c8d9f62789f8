# src/price_service/adapters/gateways/quote_batch.py
# Copyright (c)
# SPDX-License-Identifier: MIT
"""Sequential per-symbol quote batching shared by the quote-style gateways."""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Sequence

from price_service.domain.entities.prices import CurrentPrice
from price_service.domain.exceptions.price import (
    CircuitOpenError,
    PriceServiceError,
    SymbolNotFound,
)
from price_service.infrastructure.logging.logger import get_json_logger

logger = get_json_logger(__name__)


async def fetch_each(
    provider: str,
    symbols: Sequence[str],
    fetch_one: Callable[[str], Awaitable[CurrentPrice]],
) -> list[CurrentPrice]:
    """Fetch symbols one at a time, skipping the ones that fail.

    Unknown symbols are dropped silently from the result. When nothing was
    fetched and at least one symbol failed for a reason other than being
    unknown, the first such error is raised so callers can tell an outage
    from a batch of bad tickers. An open breaker ends the loop early.

    Args:
        provider: Label used in log lines.
        symbols: Canonical tickers, in request order.
        fetch_one: Coroutine function fetching one symbol.

    Returns:
        Prices for the symbols that resolved, in request order.

    Raises:
        PriceServiceError: If every symbol failed and one failure was not
            ``SymbolNotFound``.
    """
    prices: list[CurrentPrice] = []
    first_error: PriceServiceError | None = None

    for symbol in symbols:
        try:
            prices.append(await fetch_one(symbol))
        except SymbolNotFound as exc:
            logger.info(
                f"{provider}.symbol_not_found",
                extra={"extra": {"symbol": symbol, "error": exc.message}},
            )
        except PriceServiceError as exc:
            logger.warning(
                f"{provider}.quote_failed",
                extra={"extra": {"symbol": symbol, "code": exc.code, "error": exc.message}},
            )
            if first_error is None:
                first_error = exc
            if isinstance(exc, CircuitOpenError):
                break

    if not prices and first_error is not None:
        raise first_error
    return prices
