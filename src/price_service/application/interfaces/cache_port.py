# src/price_service/application/interfaces/cache_port.py
# Copyright (c)
# SPDX-License-Identifier: MIT
"""Application Interface: Cache Port.

Synopsis:
    Minimal JSON cache behavior used by the price cache facade. Enables
    swapping Redis for in-memory or other implementations.

Layer:
    application/interfaces
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Protocol


class CachePort(Protocol):
    """JSON cache with TTL semantics.

    Implementations store values as JSON-serializable mappings and apply TTL
    in seconds. A TTL ``<= 0`` means "do not cache".
    """

    async def get_json(self, key: str) -> Mapping[str, Any] | None:
        """Get a JSON value by key.

        Returns:
            Deserialized JSON mapping if present, else ``None``.

        Raises:
            Exception: Backend failures other than a missing key propagate.
        """

    async def set_json(self, key: str, value: Mapping[str, Any], *, ttl: int) -> None:
        """Set a JSON value with TTL (seconds)."""

    async def delete(self, *keys: str) -> int:
        """Delete keys; return the number removed."""

    async def delete_prefix(self, prefix: str) -> int:
        """Delete every key starting with ``prefix``; return the number removed."""

    async def flush(self) -> int:
        """Delete every entry this cache owns; return the number removed."""
