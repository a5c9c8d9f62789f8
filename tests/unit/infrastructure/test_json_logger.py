from __future__ import annotations

import json
import logging

from price_service.infrastructure.logging.logger import (
    REDACTED,
    _JsonFormatter,
    configure_root_logging,
    get_request_id,
    redact,
    set_request_context,
)


def test_redact_replaces_every_secret() -> None:
    text = "https://x/quote?symbol=AAPL&token=abc&apikey=xyz"

    assert redact(text, ["abc", None, "", "xyz"]) == (
        f"https://x/quote?symbol=AAPL&token={REDACTED}&apikey={REDACTED}"
    )


def test_formatter_emits_stable_keys_extras_and_request_id() -> None:
    set_request_context(request_id="rid-1")
    record = logging.LogRecord(
        "price_service.test", logging.INFO, __file__, 1, "cache.hit", (), None
    )
    record.extra = {"key": "current:AAPL"}

    payload = json.loads(_JsonFormatter().format(record))

    assert payload["level"] == "INFO"
    assert payload["logger"] == "price_service.test"
    assert payload["message"] == "cache.hit"
    assert payload["request_id"] == "rid-1"
    assert payload["key"] == "current:AAPL"
    assert "ts" in payload
    assert get_request_id() == "rid-1"


def test_configure_root_logging_is_idempotent() -> None:
    configure_root_logging("debug")
    configure_root_logging("INFO")

    root = logging.getLogger()
    json_handlers = [h for h in root.handlers if isinstance(h.formatter, _JsonFormatter)]
    assert len(json_handlers) == 1
    assert root.level == logging.INFO
