# Copyright (c)
# SPDX-License-Identifier: MIT
"""Pydantic settings for the Alpha Vantage transport client."""

from __future__ import annotations

from collections.abc import Iterable

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


def _default_fixtures() -> list[str]:
    """Pairs answered from bundled fixtures if env is not set."""
    return ["IBM:daily"]


class AlphaVantageSettings(BaseSettings):
    """Configuration for the Alpha Vantage query API.

    Environment variables (with ``model_config.env_prefix``):

    * ``ALPHA_VANTAGE_BASE_URL``
    * ``ALPHA_VANTAGE_API_KEY``
    * ``ALPHA_VANTAGE_TIMEOUT_S``
    * ``ALPHA_VANTAGE_MAX_RETRIES``
    * ``ALPHA_VANTAGE_FIXTURES`` (comma-separated ``SYMBOL:resolution`` pairs)
    """

    base_url: str = Field(
        "https://www.alphavantage.co/query",
        description="Alpha Vantage query endpoint.",
    )
    api_key: SecretStr = Field(
        SecretStr(""),
        description="Alpha Vantage API key, sent as the ``apikey`` query parameter.",
    )
    timeout_s: float = Field(
        30.0,
        description="Per-request timeout in seconds.",
    )
    max_retries: int = Field(
        2,
        description="Maximum number of retry attempts for retryable failures.",
    )
    fixtures_raw: str | None = Field(
        None,
        description="Comma-separated SYMBOL:resolution pairs served from fixtures.",
        validation_alias="ALPHA_VANTAGE_FIXTURES",
    )

    model_config: SettingsConfigDict = SettingsConfigDict(
        env_prefix="ALPHA_VANTAGE_",
        extra="ignore",
        populate_by_name=True,
    )

    @property
    def fixtures(self) -> frozenset[tuple[str, str]]:
        """Return normalized ``(SYMBOL, resolution)`` pairs."""
        raw = self.fixtures_raw
        parts: Iterable[str] = raw.split(",") if raw is not None else _default_fixtures()
        pairs: set[tuple[str, str]] = set()
        for part in parts:
            symbol, sep, resolution = part.strip().partition(":")
            if symbol and sep and resolution:
                pairs.add((symbol.strip().upper(), resolution.strip().lower()))
        return frozenset(pairs)
