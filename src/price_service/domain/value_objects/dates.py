# src/price_service/domain/value_objects/dates.py
# Copyright (c)
# SPDX-License-Identifier: MIT
"""Date window value object (Domain Layer).

Purpose:
    Validate the ``date`` / ``from`` / ``to`` query parameters of a historical
    request and expose the result as a :class:`DateWindow`. Dates stay
    ``YYYY-MM-DD`` strings; comparisons are lexical.

Layer:
    domain/value_objects
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import UTC, date, datetime
from typing import Final

from price_service.domain.exceptions.price import InvalidInput

__all__ = ["DateWindow", "parse_iso_date", "validate_date_params"]

_ISO_DATE_RE: Final[re.Pattern[str]] = re.compile(r"^\d{4}-\d{2}-\d{2}$")


@dataclass(frozen=True, slots=True)
class DateWindow:
    """Validated request window.

    Attributes:
        from_date: Inclusive start (``YYYY-MM-DD``).
        to_date: Inclusive end (``YYYY-MM-DD``).
        single: True when the window came from a single ``date`` parameter.
    """

    from_date: str
    to_date: str
    single: bool = False


def _today() -> date:
    return datetime.now(tz=UTC).date()


def parse_iso_date(raw: str, *, today: date | None = None) -> date:
    """Parse a strict, calendar-correct ``YYYY-MM-DD`` date that is not in the future.

    Raises:
        InvalidInput: On bad format, impossible calendar dates or future dates.
    """
    if not _ISO_DATE_RE.match(raw or ""):
        raise InvalidInput("invalid date format, use YYYY-MM-DD")
    try:
        parsed = date.fromisoformat(raw)
    except ValueError as exc:
        raise InvalidInput("invalid date format, use YYYY-MM-DD") from exc
    if parsed > (today or _today()):
        raise InvalidInput("date cannot be in the future")
    return parsed


def validate_date_params(
    date_param: str | None,
    from_param: str | None,
    to_param: str | None,
    *,
    today: date | None = None,
) -> DateWindow | None:
    """Validate the historical date parameters.

    Exactly one of ``date`` or the ``from``/``to`` pair may be given, or none.

    Returns:
        The validated window, or ``None`` when no date parameter was given.

    Raises:
        InvalidInput: On conflicting, incomplete or invalid parameters.
    """
    has_date = bool(date_param)
    has_from = bool(from_param)
    has_to = bool(to_param)

    if has_date and (has_from or has_to):
        raise InvalidInput("cannot use 'date' parameter with 'from'/'to' parameters")
    if has_from != has_to:
        raise InvalidInput("both 'from' and 'to' parameters are required for date range queries")

    if date_param:
        parse_iso_date(date_param, today=today)
        return DateWindow(from_date=date_param, to_date=date_param, single=True)

    if from_param and to_param:
        try:
            start = parse_iso_date(from_param, today=today)
        except InvalidInput as exc:
            raise InvalidInput(f"invalid 'from' date: {exc.message}") from exc
        try:
            end = parse_iso_date(to_param, today=today)
        except InvalidInput as exc:
            raise InvalidInput(f"invalid 'to' date: {exc.message}") from exc
        if start > end:
            raise InvalidInput("'from' date must be earlier than or equal to 'to' date")
        return DateWindow(from_date=from_param, to_date=to_param)

    return None
