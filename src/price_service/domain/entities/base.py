# Copyright (c)
# SPDX-License-Identifier: MIT
"""Base Entity (Domain Layer).

Purpose:
    Mixin for immutable price entities. Provides frozen dataclass semantics,
    an invariant hook and a JSON-mapping hook shared by the cache store and
    the HTTP presenters.

Layer:
    domain/entities
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True, slots=True)
class BaseEntity:
    """Base mixin for domain entities.

    Concrete entities declare their fields, override :meth:`__post_init__` for
    invariant checks and implement :meth:`to_dict` with their wire shape.
    """

    def __post_init__(self) -> None:
        """Hook for subclasses to extend with invariant checks."""
        return

    def to_dict(self) -> dict[str, Any]:
        """Return the JSON-compatible wire representation."""
        raise NotImplementedError
