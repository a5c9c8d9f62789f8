# src/price_service/config/settings.py
# Copyright (c)
# SPDX-License-Identifier: MIT
"""Price Service Configuration (Pydantic Settings, v2)

Summary:
    Typed, validated configuration for the price service. Environment names
    are explicit ``validation_alias`` values so the service reads the same
    variables as the rest of the deployment (``PORT``, ``API_KEY``,
    ``REDIS_HOST``, ``FINNHUB_API_KEY`` ...).

Design:
    - Pydantic v2 BaseSettings with ``extra='forbid'`` to catch typos in
      keyword construction and ``.env`` files.
    - ``populate_by_name`` so tests can build ``Settings(api_key=...)``.
    - Derived values (Redis URL, TTLs in seconds, holiday set)
      are exposed as properties so raw env stays inspectable.
    - Singleton accessor ``get_settings()`` with LRU cache.
"""

from __future__ import annotations

import logging
from enum import Enum
from functools import lru_cache
from urllib.parse import quote

from pydantic import Field, SecretStr, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from price_service.domain.services.market_calendar import Observance

logger = logging.getLogger(__name__)


class Environment(str, Enum):
    """Logical deployment environment."""

    DEVELOPMENT = "development"
    TEST = "test"
    PRODUCTION = "production"


class Settings(BaseSettings):
    """Typed application configuration for the price service."""

    # ---------------------------
    # Core
    # ---------------------------
    environment: Environment = Field(
        default=Environment.DEVELOPMENT,
        description="Logical deployment environment.",
        validation_alias="ENVIRONMENT",
    )
    port: int = Field(
        default=8081,
        ge=1,
        le=65535,
        description="HTTP listen port.",
        validation_alias="PORT",
    )
    api_key: SecretStr | None = Field(
        default=None,
        description="Server API key. When unset, every non-loopback request is rejected.",
        validation_alias="API_KEY",
    )
    service_version: str = Field(
        default="1.0.0",
        description="Version reported by /health.",
        validation_alias="SERVICE_VERSION",
    )
    log_level: str = Field(
        default="INFO",
        description="Root log level.",
        validation_alias="LOG_LEVEL",
    )

    # ---------------------------
    # Redis (cache store)
    # ---------------------------
    redis_url: str | None = Field(
        default=None,
        description="Full Redis URL; overrides the host/port/password/db fields.",
        validation_alias="REDIS_URL",
    )
    redis_host: str = Field(default="localhost", validation_alias="REDIS_HOST")
    redis_port: int = Field(default=6379, ge=1, le=65535, validation_alias="REDIS_PORT")
    redis_password: SecretStr | None = Field(default=None, validation_alias="REDIS_PASSWORD")
    redis_db: int = Field(default=0, ge=0, validation_alias="REDIS_DB")
    redis_socket_timeout_s: float = Field(
        default=3.0,
        ge=0.1,
        le=60.0,
        description="Socket timeout in seconds for Redis commands.",
        validation_alias="REDIS_SOCKET_TIMEOUT_S",
    )
    cache_namespace: str = Field(
        default="",
        description="Optional prefix applied to every cache key.",
        validation_alias="CACHE_NAMESPACE",
    )

    # ---------------------------
    # Cache policy
    # ---------------------------
    default_ttl_minutes: int = Field(
        default=60,
        ge=1,
        description="TTL for cached prices in minutes.",
        validation_alias="DEFAULT_TTL_MINUTES",
    )
    historical_ttl_minutes: int | None = Field(
        default=None,
        ge=1,
        description="Optional TTL override for historical series; defaults to DEFAULT_TTL_MINUTES.",
        validation_alias="HISTORICAL_TTL_MINUTES",
    )
    max_symbols_per_request: int = Field(
        default=50,
        ge=1,
        description="Maximum symbols accepted by /price/current.",
        validation_alias="MAX_SYMBOLS_PER_REQUEST",
    )
    serve_partial_on_provider_failure: bool = Field(
        default=True,
        description="Return cached hits with 200 when the provider fails on the misses.",
        validation_alias="SERVE_PARTIAL_ON_PROVIDER_FAILURE",
    )

    # ---------------------------
    # Rate limiting
    # ---------------------------
    rate_limit_requests: int = Field(
        default=100,
        ge=1,
        description="Requests allowed per client IP per window.",
        validation_alias="RATE_LIMIT_REQUESTS",
    )
    rate_limit_window_minutes: float = Field(
        default=1,
        gt=0,
        description="Fixed rate-limit window in minutes.",
        validation_alias="RATE_LIMIT_WINDOW_MINUTES",
    )

    # ---------------------------
    # Upstream providers
    # ---------------------------
    quotes_provider: str = Field(
        default="finnhub",
        description="Provider serving current quotes (finnhub | alpha_vantage).",
        validation_alias="QUOTES_PROVIDER",
    )
    series_provider: str = Field(
        default="alpha_vantage",
        description="Provider serving historical series (finnhub | alpha_vantage).",
        validation_alias="SERIES_PROVIDER",
    )
    finnhub_api_key: SecretStr = Field(
        default=SecretStr(""),
        validation_alias="FINNHUB_API_KEY",
    )
    finnhub_base_url: str = Field(
        default="https://finnhub.io/api/v1",
        validation_alias="FINNHUB_BASE_URL",
    )
    alpha_vantage_api_key: SecretStr = Field(
        default=SecretStr(""),
        validation_alias="ALPHA_VANTAGE_API_KEY",
    )
    alpha_vantage_base_url: str = Field(
        default="https://www.alphavantage.co/query",
        validation_alias="ALPHA_VANTAGE_BASE_URL",
    )
    alpha_vantage_fixtures_raw: str = Field(
        default="IBM:daily",
        description="Comma-separated SYMBOL:resolution pairs answered from bundled fixtures.",
        validation_alias="ALPHA_VANTAGE_FIXTURES",
    )
    upstream_timeout_s: float = Field(
        default=30.0,
        gt=0,
        description="Outbound HTTP timeout in seconds.",
        validation_alias="UPSTREAM_TIMEOUT_S",
    )
    upstream_max_retries: int = Field(
        default=2,
        ge=0,
        le=10,
        description="Retries after the first attempt for retryable upstream failures.",
        validation_alias="UPSTREAM_MAX_RETRIES",
    )
    upstream_backoff: str = Field(
        default="linear",
        description="Retry backoff for upstream calls (linear | exponential).",
        validation_alias="UPSTREAM_BACKOFF",
    )
    breaker_max_failures: int = Field(
        default=5,
        ge=1,
        validation_alias="BREAKER_MAX_FAILURES",
    )
    breaker_reset_timeout_s: float = Field(
        default=60.0,
        gt=0,
        validation_alias="BREAKER_RESET_TIMEOUT_S",
    )

    # ---------------------------
    # Market calendar
    # ---------------------------
    market_holidays_raw: str = Field(
        default="all",
        description="Comma-separated holiday names, or 'all'.",
        validation_alias="MARKET_HOLIDAYS",
    )
    holiday_observance: Observance = Field(
        default=Observance.AS_IS,
        description="Weekend rule for fixed-date holidays: as_is or federal.",
        validation_alias="HOLIDAY_OBSERVANCE",
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="forbid",
        case_sensitive=False,
        populate_by_name=True,
    )

    @field_validator("upstream_backoff")
    @classmethod
    def _check_backoff(cls, value: str) -> str:
        normalized = value.strip().lower()
        if normalized not in {"linear", "exponential"}:
            raise ValueError("UPSTREAM_BACKOFF must be 'linear' or 'exponential'")
        return normalized

    @field_validator("quotes_provider", "series_provider")
    @classmethod
    def _normalize_provider(cls, value: str) -> str:
        return value.strip().lower().replace("-", "_")

    # ---------------------------
    # Derived values
    # ---------------------------
    @property
    def resolved_redis_url(self) -> str:
        """Return the Redis URL, composing it from host/port/db when needed."""
        if self.redis_url:
            return self.redis_url
        auth = ""
        if self.redis_password is not None and self.redis_password.get_secret_value():
            auth = f":{quote(self.redis_password.get_secret_value(), safe='')}@"
        return f"redis://{auth}{self.redis_host}:{self.redis_port}/{self.redis_db}"

    @property
    def default_ttl_s(self) -> int:
        """Return the default cache TTL in seconds."""
        return self.default_ttl_minutes * 60

    @property
    def historical_ttl_s(self) -> int:
        """Return the historical cache TTL in seconds."""
        minutes = self.historical_ttl_minutes or self.default_ttl_minutes
        return minutes * 60

    @property
    def rate_limit_window_s(self) -> float:
        """Return the rate-limit window in seconds."""
        return float(self.rate_limit_window_minutes) * 60.0

    @property
    def market_holidays(self) -> list[str] | None:
        """Return configured holiday names, or ``None`` for the full set."""
        raw = self.market_holidays_raw.strip()
        if not raw or raw.lower() == "all":
            return None
        return [p.strip().lower() for p in raw.split(",") if p.strip()]

    @property
    def server_api_key(self) -> str:
        """Return the trimmed server API key, or an empty string."""
        if self.api_key is None:
            return ""
        return self.api_key.get_secret_value().strip()


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached singleton `Settings` instance.

    Returns:
        Settings: Validated application settings.

    Raises:
        RuntimeError: If configuration is invalid.
    """
    try:
        settings = Settings()
        logger.info(
            "Settings initialized",
            extra={
                "extra": {
                    "environment": settings.environment.value,
                    "port": settings.port,
                    "api_key_set": bool(settings.server_api_key),
                    "redis_url_set": bool(settings.redis_url),
                    "default_ttl_minutes": settings.default_ttl_minutes,
                    "max_symbols_per_request": settings.max_symbols_per_request,
                    "rate_limit": {
                        "requests": settings.rate_limit_requests,
                        "window_minutes": settings.rate_limit_window_minutes,
                    },
                    "providers": {
                        "quotes": settings.quotes_provider,
                        "series": settings.series_provider,
                    },
                }
            },
        )
        return settings
    except ValidationError as exc:
        logger.exception("Invalid application configuration")
        raise RuntimeError(f"Invalid configuration: {exc}") from exc
