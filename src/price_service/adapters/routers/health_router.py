# Copyright (c)
# SPDX-License-Identifier: MIT
"""Health endpoint (Adapters Layer).

``GET /health`` is a liveness signal: it answers from process state only and
never touches Redis or the upstreams, so an upstream outage does not take
the service out of rotation.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Annotated

from fastapi import APIRouter, Depends

from price_service.adapters.schemas.http.envelopes import SuccessEnvelope
from price_service.adapters.schemas.http.prices import HealthData
from price_service.config.settings import Settings
from price_service.dependencies.prices import get_app_settings

router = APIRouter(tags=["health"])


@router.get(
    "/health",
    response_model=SuccessEnvelope[HealthData],
    summary="Liveness",
    operation_id="health",
)
async def health(
    settings: Annotated[Settings, Depends(get_app_settings)],
) -> SuccessEnvelope[HealthData]:
    return SuccessEnvelope[HealthData](
        data=HealthData(version=settings.service_version), timestamp=datetime.now(tz=UTC)
    )
