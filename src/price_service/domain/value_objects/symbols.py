# src/price_service/domain/value_objects/symbols.py
# Copyright (c)
# SPDX-License-Identifier: MIT
"""Ticker symbol normalization (Domain Layer).

Purpose:
    Normalize user-supplied tickers into the canonical form used as cache keys
    and upstream parameters: trimmed, upper-case, 1-10 characters from
    ``[A-Z0-9]`` with an optional ``.XX`` exchange/class suffix.

Layer:
    domain/value_objects
"""

from __future__ import annotations

import re
from typing import Final

from price_service.domain.exceptions.price import InvalidInput

__all__ = ["normalize_symbol", "parse_symbol_list"]

_SYMBOL_RE: Final[re.Pattern[str]] = re.compile(r"^[A-Z0-9]{1,10}(\.[A-Z]{1,2})?$")


def normalize_symbol(raw: str) -> str:
    """Return the canonical form of ``raw``.

    Raises:
        InvalidInput: If the trimmed, upper-cased value is not a valid ticker.
    """
    symbol = (raw or "").strip().upper()
    if not symbol:
        raise InvalidInput("symbol parameter is required")
    if not _SYMBOL_RE.match(symbol):
        raise InvalidInput(f"invalid symbol: {symbol}")
    return symbol


def parse_symbol_list(raw: str, *, max_symbols: int) -> list[str]:
    """Split a comma-separated ticker list into unique canonical symbols.

    Blank entries are dropped; the first occurrence of a duplicate wins and
    input order is otherwise preserved.

    Args:
        raw: Comma-separated tickers, e.g. ``"aapl, MSFT"``.
        max_symbols: Maximum number of non-blank entries accepted.

    Returns:
        Canonical symbols in request order.

    Raises:
        InvalidInput: If the list is empty, too long, or contains an invalid symbol.
    """
    parts = [p.strip() for p in (raw or "").split(",")]
    parts = [p for p in parts if p]
    if not parts:
        raise InvalidInput("symbols parameter is required")
    if len(parts) > max_symbols:
        raise InvalidInput(f"too many symbols requested (max {max_symbols})")

    seen: set[str] = set()
    out: list[str] = []
    for part in parts:
        symbol = normalize_symbol(part)
        if symbol in seen:
            continue
        seen.add(symbol)
        out.append(symbol)
    return out
