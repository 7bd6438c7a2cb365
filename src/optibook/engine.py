"""High-level facade over the record store and its coordinators."""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Iterable, Mapping, Sequence
from datetime import datetime
from typing import Any, Generic, TypeVar

from optibook.config import MutationOptions
from optibook.mutations.batch import BatchCoordinator, BatchPatch
from optibook.mutations.coordinator import FeedbackMessage, MutationCoordinator
from optibook.mutations.retry import RetryManager
from optibook.state.records import OptimisticRecord, RecordStatus, utcnow
from optibook.state.store import RecordStore

T = TypeVar("T")
R = TypeVar("R")


class OptimisticMutations(Generic[T]):
    """Optimistic engine for one collection of records.

    Usage::

        async with OptimisticMutations(bookings, options=MutationOptions(
            auto_rollback=True, rollback_delay=10.0,
        )) as engine:
            await engine.create(draft, api.create_booking)
            engine.data  # derived read model, insertion order

    Domain adapters hold one instance per collection they manage.
    """

    def __init__(
        self,
        initial: Iterable[T] = (),
        *,
        options: MutationOptions | None = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._store: RecordStore[T] = RecordStore(initial, options=options, clock=clock)
        self._mutations = MutationCoordinator(self._store)
        self._batch = BatchCoordinator(self._mutations)
        self._retry = RetryManager(self._store)

    # ------------------------------------------------------------------
    # Context manager lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> OptimisticMutations[T]:
        return self

    async def __aexit__(self, *exc: Any) -> None:
        self.close()

    def close(self) -> None:
        """Cancel pending auto-rollbacks and drop subscribers."""
        self._store.close()

    # ------------------------------------------------------------------
    # Read model
    # ------------------------------------------------------------------

    @property
    def store(self) -> RecordStore[T]:
        return self._store

    @property
    def options(self) -> MutationOptions:
        return self._store.options

    @property
    def data(self) -> list[T]:
        return self._store.data

    @property
    def message(self) -> FeedbackMessage | None:
        return self._mutations.message

    def clear_message(self) -> None:
        self._mutations.clear_message()

    def is_optimistic(self, token: str) -> bool:
        return self._store.is_optimistic(token)

    def get_optimistic_item(self, token: str) -> OptimisticRecord[T] | None:
        return self._store.get(token)

    def find(self, predicate: Callable[[T], bool]) -> OptimisticRecord[T] | None:
        return self._store.find(predicate)

    def subscribe(self, listener: Callable[[list[Any]], None]) -> Callable[[], None]:
        return self._store.subscribe(listener)

    # ------------------------------------------------------------------
    # Store primitives
    # ------------------------------------------------------------------

    def add_optimistic(self, value: T) -> str:
        return self._store.add(value)

    def seed(self, value: T) -> str:
        return self._store.seed(value)

    def update_optimistic(self, token: str, partial: Mapping[str, Any]) -> None:
        self._store.update(token, partial)

    def remove_optimistic(self, token: str) -> None:
        self._store.remove(token)

    def rollback_optimistic(self, token: str) -> None:
        self._store.rollback(token)

    def rollback_all(self) -> None:
        self._store.rollback_all()

    def clear_errors(self) -> None:
        self._store.clear_errors()

    # ------------------------------------------------------------------
    # Mutation verbs
    # ------------------------------------------------------------------

    async def create(self, value: T, confirm: Callable[[T], Awaitable[R]]) -> R:
        return await self._mutations.create(value, confirm)

    async def update(
        self,
        token: str,
        partial: Mapping[str, Any],
        confirm: Callable[[str, Mapping[str, Any]], Awaitable[R]],
    ) -> R | None:
        return await self._mutations.update(token, partial, confirm)

    async def remove(self, token: str, confirm: Callable[[str], Awaitable[R]]) -> R | None:
        return await self._mutations.remove(token, confirm)

    async def batch_create(self, items: Sequence[T], confirm_batch: Callable[[list[T]], Awaitable[R]]) -> R:
        return await self._batch.batch_create(items, confirm_batch)

    async def batch_update(
        self,
        updates: Iterable[BatchPatch | tuple[str, Mapping[str, Any]]],
        confirm_batch: Callable[[list[BatchPatch]], Awaitable[R]],
    ) -> R:
        return await self._batch.batch_update(updates, confirm_batch)

    async def batch_delete(self, tokens: Iterable[str], confirm_batch: Callable[[list[str]], Awaitable[R]]) -> R:
        return await self._batch.batch_delete(tokens, confirm_batch)

    async def retry_failed(self, token: str, confirm: Callable[[T], Awaitable[R]]) -> R | None:
        return await self._retry.retry_failed(token, confirm)

    async def retry_all_failed(self, confirm: Callable[[T], Awaitable[R]]) -> list[R]:
        return await self._retry.retry_all_failed(confirm)

    # ------------------------------------------------------------------
    # Status queries
    # ------------------------------------------------------------------

    def failed_items(self) -> list[T]:
        return [record.data for record in self._store.with_status(RecordStatus.ERROR)]

    def pending_items(self) -> list[T]:
        return [record.data for record in self._store.with_status(RecordStatus.PENDING)]

    def success_items(self) -> list[T]:
        return [record.data for record in self._store.with_status(RecordStatus.SUCCESS)]

    def has_failed_items(self) -> bool:
        return bool(self._store.with_status(RecordStatus.ERROR))

    def has_pending_items(self) -> bool:
        return bool(self._store.with_status(RecordStatus.PENDING))

    def optimistic_count(self) -> int:
        return sum(1 for record in self._store if record.is_optimistic)
