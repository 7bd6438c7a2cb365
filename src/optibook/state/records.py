"""Optimistic records and the partial-merge rules for their data."""

from __future__ import annotations

import copy
import dataclasses
from collections.abc import Mapping
from datetime import UTC, datetime
from enum import StrEnum
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, ConfigDict

T = TypeVar("T")


def utcnow() -> datetime:
    return datetime.now(UTC)


class RecordStatus(StrEnum):
    PENDING = "pending"
    SUCCESS = "success"
    ERROR = "error"
    ROLLBACK = "rollback"


class OptimisticRecord(BaseModel, Generic[T]):
    """One logical item under optimistic management."""

    model_config = ConfigDict(extra="forbid", arbitrary_types_allowed=True)

    id: str
    data: T
    is_optimistic: bool
    timestamp: datetime
    status: RecordStatus
    original_data: T | None = None
    error: str | None = None


def as_partial(value: Any) -> dict[str, Any]:
    """Flatten a record value into a field mapping usable as a partial update."""
    if isinstance(value, BaseModel):
        return {name: getattr(value, name) for name in type(value).model_fields}
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return {f.name: getattr(value, f.name) for f in dataclasses.fields(value)}
    if isinstance(value, Mapping):
        return dict(value)
    raise TypeError(f"Record data must be a mapping, pydantic model or dataclass, not {type(value).__name__}")


def merge_partial(value: T, partial: Mapping[str, Any] | Any) -> T:
    """Shallow-merge ``partial`` into ``value`` field by field.

    ``partial`` may be a mapping or a full value of the same shape. Keys in
    the partial overwrite; the original value is never mutated.
    """
    patch = partial if isinstance(partial, Mapping) else as_partial(partial)
    if not patch:
        return value
    if isinstance(value, BaseModel):
        return value.model_copy(update=dict(patch))
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return dataclasses.replace(value, **patch)  # type: ignore[type-var]
    if isinstance(value, Mapping):
        merged = dict(value)
        merged.update(patch)
        return merged  # type: ignore[return-value]
    raise TypeError(f"Cannot merge a partial update into {type(value).__name__}")


def snapshot(value: T) -> T:
    """Detached copy of a record value, safe to restore later."""
    return copy.deepcopy(value)


class _Missing:
    def __repr__(self) -> str:
        return "MISSING"


MISSING: Any = _Missing()
"""Marks a key that was absent before a partial update added it."""


def touched_fields(value: Any, partial: Mapping[str, Any] | Any) -> dict[str, Any]:
    """Detached prior values of the keys ``partial`` is about to overwrite.

    Keys the value does not have yet map to :data:`MISSING`.
    """
    patch = partial if isinstance(partial, Mapping) else as_partial(partial)
    current = as_partial(value)
    return {key: snapshot(current[key]) if key in current else MISSING for key in patch}


def revert_fields(value: T, prior: Mapping[str, Any]) -> T:
    """Undo a partial update recorded with :func:`touched_fields`.

    Only the recorded keys change; keys the update introduced are dropped
    again. Fixed-shape values (models, dataclasses) always have every key.
    """
    restored = {key: old for key, old in prior.items() if old is not MISSING}
    reverted = merge_partial(value, restored)
    added = {key for key, old in prior.items() if old is MISSING}
    if added and isinstance(reverted, Mapping):
        return {key: item for key, item in reverted.items() if key not in added}  # type: ignore[return-value]
    return reverted
