# Copyright (c)
# SPDX-License-Identifier: MIT
"""
Base Domain Exceptions.

Summary:
    Root of the exception hierarchy. Every error raised by the price service
    carries a stable ``code`` and a client-safe ``message`` so the HTTP
    boundary and the price-service client can map it without inspection.

Layer:
    domain/exceptions
"""
from __future__ import annotations

from typing import Any


class DomainError(Exception):
    """Base class for all domain/application exceptions."""

    code: str = "DOMAIN_ERROR"

    def __init__(self, message: str = "", *, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details: dict[str, Any] = details or {}

    def to_error_object(self) -> dict[str, str]:
        """Return the ``{code, message}`` body used inside error envelopes."""
        return {"code": self.code, "message": self.message}
