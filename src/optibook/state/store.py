"""In-memory record store for optimistic mutations.

This is the only component allowed to change records. Coordinators, the
retry manager and the auto-rollback timers all go through its primitive
mutators, so the record invariants are enforced in one place.
"""

from __future__ import annotations

import itertools
import logging
from collections.abc import Callable, Iterable, Iterator, Mapping
from datetime import datetime
from typing import Any, Generic, TypeVar

from optibook.config import MutationOptions
from optibook.exceptions import OptibookLoopError
from optibook.state.records import (
    OptimisticRecord,
    RecordStatus,
    merge_partial,
    revert_fields,
    snapshot,
    utcnow,
)
from optibook.state.timers import RollbackTimers

_logger = logging.getLogger(__name__)

T = TypeVar("T")

Listener = Callable[[list[Any]], None]


class RecordStore(Generic[T]):
    """Ordered collection of :class:`OptimisticRecord` values.

    Unknown tokens are tolerated everywhere: confirmations can resolve after
    their record was already removed or rolled back by another path, so
    ``update``, ``remove``, ``rollback`` and ``mark_error`` on a stale token
    are silent no-ops.
    """

    def __init__(
        self,
        initial: Iterable[T] = (),
        *,
        options: MutationOptions | None = None,
        clock: Callable[[], datetime] = utcnow,
        timers: RollbackTimers | None = None,
    ) -> None:
        self._options = options or MutationOptions()
        self._clock = clock
        self._timers = timers or RollbackTimers()
        self._counter = itertools.count(1)
        self._records: dict[str, OptimisticRecord[T]] = {}
        self._listeners: list[Listener] = []
        for value in initial:
            self._insert(value, status=RecordStatus.SUCCESS)

    @property
    def options(self) -> MutationOptions:
        return self._options

    @property
    def timers(self) -> RollbackTimers:
        return self._timers

    # ------------------------------------------------------------------
    # Read model
    # ------------------------------------------------------------------

    @property
    def data(self) -> list[T]:
        """Data of every record, in insertion order."""
        return [record.data for record in self._records.values()]

    @property
    def records(self) -> list[OptimisticRecord[T]]:
        return list(self._records.values())

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, token: object) -> bool:
        return token in self._records

    def __iter__(self) -> Iterator[OptimisticRecord[T]]:
        return iter(list(self._records.values()))

    def tokens(self) -> list[str]:
        return list(self._records)

    def get(self, token: str) -> OptimisticRecord[T] | None:
        return self._records.get(token)

    get_optimistic_item = get

    def is_optimistic(self, token: str) -> bool:
        record = self._records.get(token)
        return record is not None and record.is_optimistic

    def find(self, predicate: Callable[[T], bool]) -> OptimisticRecord[T] | None:
        """First record whose data satisfies ``predicate``."""
        for record in self._records.values():
            if predicate(record.data):
                return record
        return None

    def with_status(self, status: RecordStatus) -> list[OptimisticRecord[T]]:
        return [record for record in self._records.values() if record.status == status]

    # ------------------------------------------------------------------
    # Primitive mutators
    # ------------------------------------------------------------------

    def _next_token(self) -> str:
        millis = int(self._clock().timestamp() * 1000)
        return f"optimistic_{millis}_{next(self._counter)}"

    def _insert(self, value: T, *, status: RecordStatus) -> str:
        token = self._next_token()
        self._records[token] = OptimisticRecord(
            id=token,
            data=value,
            is_optimistic=status == RecordStatus.PENDING,
            timestamp=self._clock(),
            status=status,
        )
        return token

    def add(self, value: T) -> str:
        """Insert a pending optimistic record and return its token."""
        token = self._insert(value, status=RecordStatus.PENDING)
        if self._options.rollback_enabled:
            try:
                self._timers.schedule(token, self._options.rollback_delay, self.rollback)
            except OptibookLoopError:
                del self._records[token]
                raise
        _logger.debug("Added optimistic record token=%s", token)
        self._notify()
        return token

    def seed(self, value: T) -> str:
        """Insert an already-confirmed record and return its token."""
        token = self._insert(value, status=RecordStatus.SUCCESS)
        self._notify()
        return token

    def update(self, token: str, partial: Mapping[str, Any] | T) -> None:
        """Shallow-merge ``partial`` into the record data.

        Status, optimistic flag and the original-data snapshot are left alone.
        """
        record = self._records.get(token)
        if record is None:
            return
        record.data = merge_partial(record.data, partial)
        self._notify()

    def remove(self, token: str) -> None:
        self._timers.cancel(token)
        if self._records.pop(token, None) is None:
            return
        _logger.debug("Removed record token=%s", token)
        self._notify()

    def rollback(self, token: str) -> None:
        """Mark a record rolled back. The record stays with its last data."""
        self._timers.cancel(token)
        record = self._records.get(token)
        if record is None:
            return
        record.is_optimistic = False
        record.status = RecordStatus.ROLLBACK
        _logger.debug("Rolled back record token=%s", token)
        self._call_on_rollback(record.data)
        self._notify()

    def rollback_all(self) -> None:
        """Roll back every optimistic record and clear all countdowns."""
        self._timers.cancel_all()
        rolled_back = [record for record in self._records.values() if record.is_optimistic]
        for record in rolled_back:
            record.is_optimistic = False
            record.status = RecordStatus.ROLLBACK
        for record in rolled_back:
            self._call_on_rollback(record.data)
        if rolled_back:
            _logger.debug("Rolled back %d optimistic record(s)", len(rolled_back))
            self._notify()

    def mark_error(self, token: str, message: str) -> None:
        """Move a record to the ``error`` state, keeping its data for a retry."""
        self._timers.cancel(token)
        record = self._records.get(token)
        if record is None:
            return
        record.is_optimistic = False
        record.status = RecordStatus.ERROR
        record.error = message
        self._notify()

    def mark_pending(self, token: str) -> None:
        """Re-enter the ``pending`` state, e.g. at the start of a retry."""
        record = self._records.get(token)
        if record is None:
            return
        record.is_optimistic = True
        record.status = RecordStatus.PENDING
        record.error = None
        self._notify()

    def clear_errors(self) -> None:
        changed = False
        for record in self._records.values():
            if record.status == RecordStatus.ERROR:
                record.status = RecordStatus.SUCCESS
                record.error = None
                changed = True
        if changed:
            self._notify()

    def capture_original(self, token: str) -> T | None:
        """Snapshot current data as ``original_data`` unless one is already held.

        Returns the snapshot that is in effect, or ``None`` for an unknown token.
        """
        record = self._records.get(token)
        if record is None:
            return None
        if record.original_data is None:
            record.original_data = snapshot(record.data)
        return record.original_data

    def restore(self, token: str, value: T) -> None:
        """Replace the record data wholesale. Status and flag are left alone."""
        record = self._records.get(token)
        if record is None:
            return
        record.data = value
        self._notify()

    def revert(self, token: str, prior: Mapping[str, Any]) -> None:
        """Undo one partial update given the prior values it overwrote."""
        record = self._records.get(token)
        if record is None:
            return
        self.restore(token, revert_fields(record.data, prior))

    def release_original(self, token: str) -> None:
        record = self._records.get(token)
        if record is not None:
            record.original_data = None

    # ------------------------------------------------------------------
    # Subscribers and disposal
    # ------------------------------------------------------------------

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Call ``listener(data)`` after every mutation. Returns an unsubscribe callable."""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def close(self) -> None:
        """Cancel every pending countdown and drop all listeners."""
        self._timers.cancel_all()
        self._listeners.clear()

    def _notify(self) -> None:
        if not self._listeners:
            return
        data = self.data
        for listener in list(self._listeners):
            try:
                listener(data)
            except Exception:
                _logger.warning("Record store listener failed", exc_info=True)

    def _call_on_rollback(self, data: T) -> None:
        callback = self._options.on_rollback
        if callback is None:
            return
        try:
            callback(data)
        except Exception:
            _logger.warning("on_rollback callback failed", exc_info=True)
