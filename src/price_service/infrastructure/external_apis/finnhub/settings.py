# Copyright (c)
# SPDX-License-Identifier: MIT
"""Pydantic settings for the Finnhub transport client."""

from __future__ import annotations

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class FinnhubSettings(BaseSettings):
    """Configuration for the Finnhub quote API.

    Environment variables (with ``model_config.env_prefix``):

    * ``FINNHUB_BASE_URL``
    * ``FINNHUB_API_KEY``
    * ``FINNHUB_TIMEOUT_S``
    * ``FINNHUB_MAX_RETRIES``
    """

    base_url: str = Field(
        "https://finnhub.io/api/v1",
        description="Base URL for the Finnhub REST API.",
    )
    api_key: SecretStr = Field(
        SecretStr(""),
        description="Finnhub API token, sent as the ``token`` query parameter.",
    )
    timeout_s: float = Field(
        30.0,
        description="Per-request timeout in seconds.",
    )
    max_retries: int = Field(
        2,
        description="Maximum number of retry attempts for retryable failures.",
    )
    candle_lookback_days: int = Field(
        365 * 5,
        description="Trailing window requested from /stock/candle.",
    )

    model_config: SettingsConfigDict = SettingsConfigDict(
        env_prefix="FINNHUB_",
        extra="ignore",
    )
