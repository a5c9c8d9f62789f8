# src/price_service/adapters/deps/api_key.py
# Copyright (c)
# SPDX-License-Identifier: MIT
"""API key dependency for the ``/api/v1`` routers.

Loopback callers (``127.0.0.1``, ``::1``) bypass the check. Everyone else
must send ``X-API-Key`` equal to the configured server key; with no server
key configured every non-loopback request is rejected.
"""

from __future__ import annotations

import hmac
from typing import Annotated, Final

from fastapi import Depends, Request
from fastapi.security import APIKeyHeader

from price_service.config.settings import Settings
from price_service.dependencies.prices import get_app_settings
from price_service.domain.exceptions.price import Unauthorized

LOOPBACK_HOSTS: Final[frozenset[str]] = frozenset({"127.0.0.1", "::1"})

scheme = APIKeyHeader(name="X-API-Key", auto_error=False)


def is_loopback(request: Request) -> bool:
    host = request.client.host if request.client else ""
    return host in LOOPBACK_HOSTS


def require_api_key(
    request: Request,
    settings: Annotated[Settings, Depends(get_app_settings)],
    api_key: Annotated[str | None, Depends(scheme)] = None,
) -> None:
    """Reject non-loopback requests without the server API key.

    Raises:
        Unauthorized: Missing server key, missing header or wrong key.
    """
    if is_loopback(request):
        return

    expected = settings.server_api_key
    if not expected:
        raise Unauthorized("API key is not configured on server")

    provided = (api_key or "").strip()
    if not provided:
        raise Unauthorized("API key is required")
    if not hmac.compare_digest(provided.encode(), expected.encode()):
        raise Unauthorized("Invalid API key")
