# Copyright (c)
# SPDX-License-Identifier: MIT
"""API router aggregator: mounts every ``/api/v1`` router."""

from __future__ import annotations

from fastapi import APIRouter

from price_service.adapters.routers.cache_router import router as cache_router
from price_service.adapters.routers.prices_router import router as prices_router

router = APIRouter()
router.include_router(prices_router)
router.include_router(cache_router)
