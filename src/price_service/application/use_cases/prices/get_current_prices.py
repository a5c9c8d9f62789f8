# src/price_service/application/use_cases/prices/get_current_prices.py
# Copyright (c)
# SPDX-License-Identifier: MIT
"""
Use Case: Get Current Prices

Purpose:
    Serve current prices for a comma-separated symbol list through the
    read-through cache. Misses are fetched from the quotes provider in one
    batch and written back before the response is built.

Layer: application/use_cases
"""

from __future__ import annotations

from price_service.domain.entities.prices import CurrentPrice
from price_service.domain.exceptions.price import PriceServiceError, ServiceUnavailable
from price_service.domain.interfaces.gateways.price_provider import PriceProvider
from price_service.domain.value_objects.symbols import parse_symbol_list
from price_service.infrastructure.caching.price_cache import PriceCache
from price_service.infrastructure.logging.logger import get_json_logger

logger = get_json_logger(__name__)


class GetCurrentPrices:
    """Use case to fetch current prices.

    Args:
        provider: Provider map (or any :class:`PriceProvider`).
        cache: Typed price cache.
        max_symbols: Cap on symbols per request.
        serve_partial_on_failure: Return cached hits when the provider fails
            on the misses instead of failing the whole request.
    """

    def __init__(
        self,
        provider: PriceProvider,
        cache: PriceCache,
        *,
        max_symbols: int = 50,
        serve_partial_on_failure: bool = True,
    ) -> None:
        self._provider = provider
        self._cache = cache
        self._max_symbols = max_symbols
        self._serve_partial = serve_partial_on_failure

    async def execute(self, raw_symbols: str) -> list[CurrentPrice]:
        """Return current prices in request order.

        Args:
            raw_symbols: Comma-separated tickers as received.

        Returns:
            Prices for the symbols that resolved; unknown symbols are omitted.

        Raises:
            InvalidInput: Empty list, too many symbols or a malformed symbol.
            ServiceUnavailable: Provider failure with nothing served from cache.
        """
        symbols = parse_symbol_list(raw_symbols, max_symbols=self._max_symbols)

        found: dict[str, CurrentPrice] = {}
        misses: list[str] = []
        for symbol in symbols:
            cached = await self._cache.get_current(symbol)
            if cached is None:
                misses.append(symbol)
            else:
                found[symbol] = cached

        logger.info(
            "prices.current.lookup",
            extra={
                "extra": {"requested": len(symbols), "hits": len(found), "misses": len(misses)}
            },
        )

        if misses:
            try:
                fetched = await self._provider.get_current_prices(misses)
            except PriceServiceError as exc:
                logger.warning(
                    "prices.current.provider_failed",
                    extra={"extra": {"misses": misses, "code": exc.code, "error": exc.message}},
                )
                if not found or not self._serve_partial:
                    raise ServiceUnavailable("failed to fetch price data") from exc
                fetched = []

            wanted = set(misses)
            for price in fetched:
                if price.symbol not in wanted or price.symbol in found:
                    continue
                await self._cache.set_current(price)
                found[price.symbol] = price

        return [found[s] for s in symbols if s in found]
