from __future__ import annotations

import pytest
from pydantic import ValidationError

from price_service.client.settings import PriceServiceClientSettings
from price_service.config.settings import (
    Environment,
    Settings,
    get_settings,
)
from price_service.domain.services.market_calendar import Observance


def test_reads_deployment_environment_names(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("PORT", "9090")
    monkeypatch.setenv("API_KEY", "  env-key ")
    monkeypatch.setenv("DEFAULT_TTL_MINUTES", "5")
    monkeypatch.setenv("RATE_LIMIT_REQUESTS", "7")
    monkeypatch.setenv("RATE_LIMIT_WINDOW_MINUTES", "0.5")
    monkeypatch.setenv("ENVIRONMENT", "production")
    monkeypatch.setenv("HOLIDAY_OBSERVANCE", "federal")

    s = get_settings()

    assert s.port == 9090
    assert s.server_api_key == "env-key"
    assert s.default_ttl_s == 300
    assert s.historical_ttl_s == 300
    assert s.rate_limit_requests == 7
    assert s.rate_limit_window_s == 30.0
    assert s.environment is Environment.PRODUCTION
    assert s.holiday_observance is Observance.FEDERAL
    assert get_settings() is s


def test_defaults() -> None:
    s = Settings()

    assert s.port == 8081
    assert s.server_api_key == ""
    assert s.default_ttl_s == 3600
    assert s.max_symbols_per_request == 50
    assert s.rate_limit_requests == 100
    assert s.rate_limit_window_s == 60.0
    assert s.quotes_provider == "finnhub"
    assert s.series_provider == "alpha_vantage"
    assert s.market_holidays is None
    assert s.serve_partial_on_provider_failure is True


def test_historical_ttl_override() -> None:
    s = Settings(default_ttl_minutes=10, historical_ttl_minutes=120)

    assert s.default_ttl_s == 600
    assert s.historical_ttl_s == 7200


@pytest.mark.parametrize(
    ("kwargs", "expected"),
    [
        ({}, "redis://localhost:6379/0"),
        ({"redis_host": "cache", "redis_port": 6380, "redis_db": 2}, "redis://cache:6380/2"),
        ({"redis_password": "p@ss:word"}, "redis://:p%40ss%3Aword@localhost:6379/0"),
        ({"redis_url": "redis://elsewhere:1/3", "redis_host": "ignored"}, "redis://elsewhere:1/3"),
    ],
)
def test_resolved_redis_url(kwargs: dict[str, object], expected: str) -> None:
    assert Settings(**kwargs).resolved_redis_url == expected


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("all", None),
        ("", None),
        ("New_Years_Day, Christmas ,", ["new_years_day", "christmas"]),
    ],
)
def test_market_holidays(raw: str, expected: list[str] | None) -> None:
    assert Settings(market_holidays_raw=raw).market_holidays == expected


def test_provider_names_are_normalized() -> None:
    s = Settings(quotes_provider=" Alpha-Vantage ", series_provider="FINNHUB")

    assert s.quotes_provider == "alpha_vantage"
    assert s.series_provider == "finnhub"


def test_backoff_is_validated() -> None:
    assert Settings(upstream_backoff=" Exponential ").upstream_backoff == "exponential"
    with pytest.raises(ValidationError):
        Settings(upstream_backoff="fibonacci")


def test_unknown_fields_are_rejected() -> None:
    with pytest.raises(ValidationError):
        Settings(redis_hots="typo")  # type: ignore[call-arg]


def test_invalid_environment_surfaces_as_runtime_error(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("PORT", "not-a-port")

    with pytest.raises(RuntimeError, match="Invalid configuration"):
        get_settings()


def test_client_settings_from_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("PRICE_SERVICE_BASE_URL", "http://prices:8081")
    monkeypatch.setenv("PRICE_SERVICE_API_KEY", "client-key")
    monkeypatch.setenv("PRICE_SERVICE_MAX_RETRIES", "0")

    s = PriceServiceClientSettings()

    assert s.base_url == "http://prices:8081"
    assert s.api_key.get_secret_value() == "client-key"
    assert s.max_retries == 0
    assert s.timeout_s == 30.0
