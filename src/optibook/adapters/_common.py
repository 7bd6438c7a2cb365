"""Shared helpers for the domain adapters."""

from __future__ import annotations

import itertools
import time
from typing import Any, Protocol

from optibook.engine import OptimisticMutations

_temp_counter = itertools.count(1)


class _HasId(Protocol):
    id: str


def now_ms() -> int:
    """Current epoch timestamp in milliseconds."""
    return int(time.time() * 1000)


def temp_id(prefix: str = "temp") -> str:
    """Placeholder id for an object the server has not assigned an id to yet."""
    return f"{prefix}_{now_ms()}_{next(_temp_counter)}"


def token_for(engine: OptimisticMutations[Any], item_id: str) -> str | None:
    """Record token holding the domain object with ``item_id``, if any.

    Adapters address items by their domain id while the engine addresses
    records by token; the newest record wins when a restore re-added an item.
    """
    match: str | None = None
    for record in engine.store:
        data: _HasId = record.data
        if data.id == item_id:
            match = record.id
    return match
