"""Create/update/remove verbs on top of the record store.

Each verb applies its change to the store first, awaits the caller's
confirmation coroutine, then reconciles the record from the outcome. The
confirmation error is always re-raised after reconciliation so the call
site decides how to surface it.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass
from typing import Any, Generic, Literal, TypeVar

from optibook.config import MutationOptions
from optibook.state.records import snapshot, touched_fields
from optibook.state.store import RecordStore

_logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")


@dataclass(frozen=True, slots=True)
class FeedbackMessage:
    """User-facing outcome of the last mutation (toast / inline message)."""

    kind: Literal["success", "error"]
    text: str


class MutationCoordinator(Generic[T]):
    """Drive single records through the optimistic life cycle.

    ::

        pending --(confirm succeeds)--> [record removed]
        pending --(confirm fails)-----> rollback
    """

    def __init__(self, store: RecordStore[T]) -> None:
        self._store = store
        self.message: FeedbackMessage | None = None

    @property
    def store(self) -> RecordStore[T]:
        return self._store

    @property
    def options(self) -> MutationOptions:
        return self._store.options

    def clear_message(self) -> None:
        self.message = None

    # ------------------------------------------------------------------
    # Outcome reporting
    # ------------------------------------------------------------------

    def report_success(self, result: Any) -> None:
        options = self.options
        if options.success_message:
            self.message = FeedbackMessage("success", options.success_message)
        if options.on_success is not None:
            try:
                options.on_success(result)
            except Exception:
                _logger.warning("on_success callback failed", exc_info=True)

    def report_failure(self, exc: BaseException) -> None:
        options = self.options
        self.message = FeedbackMessage("error", options.error_message or str(exc) or "An error occurred")
        if options.on_error is not None:
            try:
                options.on_error(exc)
            except Exception:
                _logger.warning("on_error callback failed", exc_info=True)

    # ------------------------------------------------------------------
    # Verbs
    # ------------------------------------------------------------------

    async def create(self, value: T, confirm: Callable[[T], Awaitable[R]]) -> R:
        """Add ``value`` optimistically and confirm it.

        On success the speculative record is discarded; the caller merges
        the confirmed object into its own source of truth. On failure the
        record is rolled back (or moved to ``error`` with
        ``retain_failures``) and the error is re-raised.
        """
        token = self._store.add(value)
        try:
            result = await confirm(value)
        except Exception as exc:
            if self.options.retain_failures:
                self._store.mark_error(token, str(exc) or type(exc).__name__)
            else:
                self._store.rollback(token)
            _logger.debug("Create failed token=%s: %s", token, exc)
            self.report_failure(exc)
            raise
        self._store.remove(token)
        self.report_success(result)
        return result

    async def update(
        self,
        token: str,
        partial: Mapping[str, Any],
        confirm: Callable[[str, Mapping[str, Any]], Awaitable[R]],
    ) -> R | None:
        """Merge ``partial`` into an existing record and confirm it.

        If the confirmation fails only the fields this call touched go back
        to their prior values, so a concurrent update confirmed meanwhile is
        kept. ``original_data`` holds the pre-update value while the call is
        in flight. Returns ``None`` without calling ``confirm`` when ``token``
        is unknown.
        """
        record = self._store.get(token)
        if record is None:
            _logger.debug("Update skipped, unknown token=%s", token)
            return None

        prior = touched_fields(record.data, partial)
        self._store.capture_original(token)
        self._store.update(token, partial)
        try:
            result = await confirm(token, partial)
        except Exception as exc:
            self._store.revert(token, prior)
            self._store.release_original(token)
            self.report_failure(exc)
            raise
        self._store.release_original(token)
        self.report_success(result)
        return result

    async def remove(self, token: str, confirm: Callable[[str], Awaitable[R]]) -> R | None:
        """Remove a record optimistically and confirm the deletion.

        On failure the snapshot is re-inserted under a new token. Returns
        ``None`` without calling ``confirm`` when ``token`` is unknown.
        """
        record = self._store.get(token)
        if record is None:
            _logger.debug("Remove skipped, unknown token=%s", token)
            return None

        saved = snapshot(record.data)
        self._store.remove(token)
        try:
            result = await confirm(token)
        except Exception as exc:
            restored = self._store.add(saved)
            _logger.debug("Remove failed token=%s, restored as %s", token, restored)
            self.report_failure(exc)
            raise
        self.report_success(result)
        return result
