# src/price_service/adapters/routers/prices_router.py
# Copyright (c)
# SPDX-License-Identifier: MIT
"""Price endpoints.

Routes:
    GET /api/v1/price/current?symbols=AAPL,MSFT
    GET /api/v1/price/historical?symbol=AAPL&resolution=daily[&date=|&from=&to=]

Query validation lives in the use cases so every rule answers with the same
``INVALID_INPUT`` envelope and message.
"""

from __future__ import annotations

from typing import Annotated

from fastapi import Depends, Query

from price_service.adapters.deps.api_key import require_api_key
from price_service.adapters.routers.base_router import BaseRouter
from price_service.adapters.schemas.http.envelopes import SuccessEnvelope
from price_service.adapters.schemas.http.prices import CurrentPriceHTTP, HistoricalPricesHTTP
from price_service.application.use_cases.prices.get_current_prices import GetCurrentPrices
from price_service.application.use_cases.prices.get_historical_prices import (
    GetHistoricalPrices,
)
from price_service.dependencies.prices import get_current_prices_uc, get_historical_prices_uc

router = BaseRouter(
    version="v1",
    resource="price",
    tags=["prices"],
    dependencies=[Depends(require_api_key)],
)


@router.get(
    "/current",
    response_model=SuccessEnvelope[list[CurrentPriceHTTP]],
    summary="Current prices for a comma-separated symbol list",
    operation_id="get_current_prices",
)
async def get_current_prices(
    uc: Annotated[GetCurrentPrices, Depends(get_current_prices_uc)],
    symbols: Annotated[
        str | None,
        Query(description="Comma-separated tickers, e.g. AAPL,MSFT", examples=["AAPL,MSFT"]),
    ] = None,
) -> SuccessEnvelope[list[CurrentPriceHTTP]]:
    prices = await uc.execute(symbols or "")
    return BaseRouter.ok(
        [CurrentPriceHTTP.from_entity(p) for p in prices], timestamp=BaseRouter.now()
    )


@router.get(
    "/historical",
    response_model=SuccessEnvelope[HistoricalPricesHTTP],
    response_model_exclude_none=True,
    summary="Historical close prices for one symbol",
    operation_id="get_historical_prices",
)
async def get_historical_prices(
    uc: Annotated[GetHistoricalPrices, Depends(get_historical_prices_uc)],
    symbol: Annotated[str | None, Query(examples=["AAPL"])] = None,
    resolution: Annotated[
        str | None, Query(description="daily (default), weekly or monthly")
    ] = None,
    date: Annotated[str | None, Query(description="Single date, YYYY-MM-DD")] = None,
    from_date: Annotated[
        str | None, Query(alias="from", description="Range start, YYYY-MM-DD")
    ] = None,
    to_date: Annotated[str | None, Query(alias="to", description="Range end, YYYY-MM-DD")] = None,
) -> SuccessEnvelope[HistoricalPricesHTTP]:
    result = await uc.load(
        symbol or "",
        resolution,
        date_param=date,
        from_date=from_date,
        to_date=to_date,
    )
    # fetched_at is None for cache-served results; the body then has no timestamp.
    return BaseRouter.ok(
        HistoricalPricesHTTP.from_entity(result.series), timestamp=result.fetched_at
    )
