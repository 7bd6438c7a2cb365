"""Apply several optimistic changes under one confirmation call.

A batch is all-or-nothing at the call boundary: the confirmation returns a
single awaitable for the whole list, so a partial server-side success
cannot be told apart from a failure and every item is reconciled together.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Iterable, Mapping, Sequence
from typing import Any, Generic, NamedTuple, TypeVar

from optibook.mutations.coordinator import MutationCoordinator
from optibook.state.records import snapshot, touched_fields

_logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")


class BatchPatch(NamedTuple):
    """A partial update addressed to one record token."""

    id: str
    data: Mapping[str, Any]


def _as_patches(updates: Iterable[BatchPatch | tuple[str, Mapping[str, Any]]]) -> list[BatchPatch]:
    return [u if isinstance(u, BatchPatch) else BatchPatch(*u) for u in updates]


class BatchCoordinator(Generic[T]):
    """Batch verbs sharing the store and feedback of a :class:`MutationCoordinator`."""

    def __init__(self, mutations: MutationCoordinator[T]) -> None:
        self._mutations = mutations
        self._store = mutations.store

    async def batch_create(
        self,
        items: Sequence[T],
        confirm_batch: Callable[[list[T]], Awaitable[R]],
    ) -> R:
        """Add every item, confirm once, then remove all or roll back all."""
        values = list(items)
        tokens = [self._store.add(item) for item in values]
        try:
            result = await confirm_batch(values)
        except Exception as exc:
            for token in tokens:
                self._store.rollback(token)
            _logger.debug("Batch create of %d item(s) rolled back: %s", len(tokens), exc)
            self._mutations.report_failure(exc)
            raise
        for token in tokens:
            self._store.remove(token)
        self._mutations.report_success(result)
        return result

    async def batch_update(
        self,
        updates: Iterable[BatchPatch | tuple[str, Mapping[str, Any]]],
        confirm_batch: Callable[[list[BatchPatch]], Awaitable[R]],
    ) -> R:
        """Apply every patch, confirm once, undo every patch on failure.

        Undo restores the prior values of the patched fields and drops
        fields a patch introduced.

        Patches for unknown tokens are not applied locally but are still
        handed to the confirmation.
        """
        patches = _as_patches(updates)
        priors: dict[str, dict[str, Any]] = {}
        for patch in patches:
            record = self._store.get(patch.id)
            if record is None:
                continue
            prior = priors.setdefault(patch.id, {})
            for key, value in touched_fields(record.data, patch.data).items():
                prior.setdefault(key, value)
            self._store.update(patch.id, patch.data)

        try:
            result = await confirm_batch(patches)
        except Exception as exc:
            for token, prior in priors.items():
                self._store.revert(token, prior)
            _logger.debug("Batch update of %d record(s) restored: %s", len(priors), exc)
            self._mutations.report_failure(exc)
            raise
        self._mutations.report_success(result)
        return result

    async def batch_delete(
        self,
        tokens: Iterable[str],
        confirm_batch: Callable[[list[str]], Awaitable[R]],
    ) -> R:
        """Remove every record, confirm once, re-add every snapshot on failure.

        Restored records get new tokens.
        """
        ids = list(tokens)
        saved: dict[str, Any] = {}
        for token in ids:
            record = self._store.get(token)
            if record is not None and token not in saved:
                saved[token] = snapshot(record.data)
        for token in saved:
            self._store.remove(token)

        try:
            result = await confirm_batch(ids)
        except Exception as exc:
            for value in saved.values():
                self._store.add(value)
            _logger.debug("Batch delete of %d record(s) restored: %s", len(saved), exc)
            self._mutations.report_failure(exc)
            raise
        self._mutations.report_success(result)
        return result
