# Copyright (c)
# SPDX-License-Identifier: MIT
"""
Base Router (Adapters Layer)

Purpose:
    Canonical APIRouter wrapper for price-service endpoints:
      - Versioned routing with stable prefixes (e.g., "/api/v1/price").
      - Standard error responses documented with ErrorEnvelope.
      - A helper wrapping payloads in the success envelope.

Layer:
    adapters/routers
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import UTC, datetime
from enum import Enum
from typing import Any

from fastapi import APIRouter

from price_service.adapters.schemas.http.envelopes import ErrorEnvelope, SuccessEnvelope
from price_service.infrastructure.logging.logger import get_json_logger

_LOGGER = get_json_logger(__name__)

TagType = str | Enum

#: Error statuses every API route may answer with.
ERROR_RESPONSES: dict[int | str, dict[str, Any]] = {
    400: {"model": ErrorEnvelope, "description": "Invalid input"},
    401: {"model": ErrorEnvelope, "description": "Missing or invalid API key"},
    404: {"model": ErrorEnvelope, "description": "Symbol not found"},
    429: {"model": ErrorEnvelope, "description": "Rate limit exceeded"},
    503: {"model": ErrorEnvelope, "description": "Upstream or cache unavailable"},
}


class BaseRouter(APIRouter):
    """Router with a ``/api/{version}/{resource}`` prefix and envelope helpers.

    Args:
        version: API version segment (e.g., "v1").
        resource: Resource segment (e.g., "price"); empty for the version root.
        tags: Default tags applied to all routes mounted on this router.
        dependencies: Optional dependencies applied to every route.
        **kwargs: Additional APIRouter kwargs.
    """

    def __init__(
        self,
        *,
        version: str,
        resource: str = "",
        tags: Sequence[TagType] | None = None,
        dependencies: Sequence[Any] | None = None,
        **kwargs: Any,
    ) -> None:
        prefix = f"/api/{version}" + (f"/{resource}" if resource else "")
        super().__init__(
            prefix=prefix,
            tags=list(tags) if tags is not None else None,
            dependencies=list(dependencies) if dependencies is not None else None,
            responses=ERROR_RESPONSES,
            **kwargs,
        )
        _LOGGER.debug(
            "router_initialized",
            extra={"extra": {"prefix": prefix, "tags": [str(t) for t in tags or []]}},
        )

    @staticmethod
    def ok(data: Any, *, timestamp: datetime | None = None) -> SuccessEnvelope[Any]:
        """Wrap ``data`` in the success envelope.

        Args:
            data: Response payload.
            timestamp: Explicit envelope timestamp; omitted from the body when
                ``None``. Use :meth:`now` for responses stamped at send time.
        """
        return SuccessEnvelope[Any](data=data, timestamp=timestamp)

    @staticmethod
    def now() -> datetime:
        return datetime.now(tz=UTC)
