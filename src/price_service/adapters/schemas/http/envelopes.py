# src/price_service/adapters/schemas/http/envelopes.py
# Copyright (c)
# SPDX-License-Identifier: MIT
"""HTTP Envelopes (Adapters Layer).

Purpose:
    Canonical transport-facing HTTP envelopes:
      - SuccessEnvelope[T]: ``{success: true, data, timestamp?}``; ``timestamp``
        is left unset for cache-served historical data and dropped from the
        body by routes serializing with ``response_model_exclude_none``
      - ErrorEnvelope: ``{success: false, error: {code, message}}``
"""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import Field

from price_service.adapters.schemas.http.base import BaseHTTPSchema
from price_service.domain.enums.prices import ErrorKind

__all__ = ["ErrorObject", "ErrorEnvelope", "SuccessEnvelope"]


class ErrorObject(BaseHTTPSchema):
    """Structured error inside :class:`ErrorEnvelope`.

    ``code`` is one of the closed :class:`ErrorKind` values.
    """

    code: ErrorKind = Field(..., description="Stable machine-readable error code.")
    message: str = Field(..., description="Human-readable message.")


class ErrorEnvelope(BaseHTTPSchema):
    success: Literal[False] = False
    error: ErrorObject


class SuccessEnvelope[T](BaseHTTPSchema):
    """Success wrapper for every 2xx body."""

    success: Literal[True] = True
    data: T
    timestamp: datetime | None = None
