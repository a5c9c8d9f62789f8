# src/price_service/adapters/routers/cache_router.py
# Copyright (c)
# SPDX-License-Identifier: MIT
"""Cache administration endpoint (``POST /api/v1/invalid-cache``)."""

from __future__ import annotations

from typing import Annotated

from fastapi import Depends

from price_service.adapters.deps.api_key import require_api_key
from price_service.adapters.routers.base_router import BaseRouter
from price_service.adapters.schemas.http.envelopes import SuccessEnvelope
from price_service.adapters.schemas.http.prices import CacheInvalidated
from price_service.application.use_cases.cache.invalidate_cache import InvalidateCache
from price_service.dependencies.prices import get_invalidate_cache_uc

router = BaseRouter(version="v1", tags=["cache"], dependencies=[Depends(require_api_key)])


@router.post(
    "/invalid-cache",
    response_model=SuccessEnvelope[CacheInvalidated],
    summary="Flush every cached price and series",
    operation_id="invalidate_cache",
)
async def invalidate_cache(
    uc: Annotated[InvalidateCache, Depends(get_invalidate_cache_uc)],
) -> SuccessEnvelope[CacheInvalidated]:
    await uc.execute()
    return BaseRouter.ok(CacheInvalidated(), timestamp=BaseRouter.now())
