# Copyright (c)
# SPDX-License-Identifier: MIT
"""Pydantic settings for the price-service client."""

from __future__ import annotations

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class PriceServiceClientSettings(BaseSettings):
    """Configuration for callers embedding :class:`PriceServiceClient`.

    Environment variables (with ``model_config.env_prefix``):

    * ``PRICE_SERVICE_BASE_URL``
    * ``PRICE_SERVICE_API_KEY``
    * ``PRICE_SERVICE_TIMEOUT_S``
    * ``PRICE_SERVICE_MAX_RETRIES``
    """

    base_url: str = Field(
        "http://localhost:8081",
        description="Base URL of the price service, without a trailing slash.",
    )
    api_key: SecretStr = Field(
        SecretStr(""),
        description="Sent as ``X-API-Key`` when non-empty.",
    )
    timeout_s: float = Field(
        30.0,
        gt=0,
        description="Per-request timeout in seconds.",
    )
    max_retries: int = Field(
        3,
        ge=0,
        description="Retries after the first attempt for retryable failures.",
    )

    model_config: SettingsConfigDict = SettingsConfigDict(
        env_prefix="PRICE_SERVICE_",
        extra="ignore",
    )
