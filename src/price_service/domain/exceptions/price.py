# Copyright (c)
# SPDX-License-Identifier: MIT
"""
Price Domain Exceptions

Purpose:
    One exception per :class:`ErrorKind`. Every upstream or boundary failure
    is raised as exactly one of these and mapped to HTTP by the adapters.

Layer: domain/exceptions
"""
from __future__ import annotations

from typing import Any

from price_service.domain.enums.prices import ErrorKind

from .base import DomainError


class PriceServiceError(DomainError):
    """Base for errors that carry an :class:`ErrorKind`."""

    kind: ErrorKind = ErrorKind.SERVICE_UNAVAILABLE
    default_message: str = "service unavailable"

    def __init__(self, message: str = "", *, details: dict[str, Any] | None = None) -> None:
        super().__init__(message or self.default_message, details=details)

    @property
    def code(self) -> str:  # type: ignore[override]
        return self.kind.value

    @property
    def http_status(self) -> int:
        """HTTP status associated with this error's kind."""
        return self.kind.http_status


class SymbolNotFound(PriceServiceError):
    """Upstream has no data for the requested symbol."""

    kind = ErrorKind.SYMBOL_NOT_FOUND
    default_message = "symbol not found"


class MarketClosed(PriceServiceError):
    """Market is closed for the requested operation."""

    kind = ErrorKind.MARKET_CLOSED
    default_message = "market is closed"


class RateLimitExceeded(PriceServiceError):
    """Caller or upstream rate limit was exceeded."""

    kind = ErrorKind.RATE_LIMIT_EXCEEDED
    default_message = "Rate limit exceeded. Please try again later."


class ServiceUnavailable(PriceServiceError):
    """A dependency is unavailable or failed after retries."""

    kind = ErrorKind.SERVICE_UNAVAILABLE
    default_message = "service unavailable"


class CircuitOpenError(ServiceUnavailable):
    """The circuit breaker short-circuited the call without executing it."""

    default_message = "circuit breaker is open"


class InvalidInput(PriceServiceError):
    """Request parameters failed validation."""

    kind = ErrorKind.INVALID_INPUT
    default_message = "invalid input"


class Unauthorized(PriceServiceError):
    """Missing or invalid API key."""

    kind = ErrorKind.UNAUTHORIZED
    default_message = "unauthorized"


_BY_KIND: dict[ErrorKind, type[PriceServiceError]] = {
    ErrorKind.SYMBOL_NOT_FOUND: SymbolNotFound,
    ErrorKind.MARKET_CLOSED: MarketClosed,
    ErrorKind.RATE_LIMIT_EXCEEDED: RateLimitExceeded,
    ErrorKind.SERVICE_UNAVAILABLE: ServiceUnavailable,
    ErrorKind.INVALID_INPUT: InvalidInput,
    ErrorKind.UNAUTHORIZED: Unauthorized,
}


def error_for_code(code: str | None, message: str = "") -> PriceServiceError:
    """Rebuild the domain exception for a wire error code.

    Unknown codes map to :class:`ServiceUnavailable`.
    """
    try:
        kind = ErrorKind(code or "")
    except ValueError:
        kind = ErrorKind.SERVICE_UNAVAILABLE
    return _BY_KIND[kind](message)
