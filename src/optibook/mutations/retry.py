"""Resubmit confirmations for records in the ``error`` state."""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from typing import Generic, TypeVar

from optibook.state.records import RecordStatus
from optibook.state.store import RecordStore

_logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")


class RetryManager(Generic[T]):
    def __init__(self, store: RecordStore[T]) -> None:
        self._store = store

    def failed_tokens(self) -> list[str]:
        return [record.id for record in self._store.with_status(RecordStatus.ERROR)]

    async def retry_failed(self, token: str, confirm: Callable[[T], Awaitable[R]]) -> R | None:
        """Resubmit one failed record.

        The record goes back to ``pending`` for the duration of the call.
        On success it is removed; on failure it returns to ``error`` with the
        new message and the error is re-raised. Records that are not in the
        ``error`` state are left alone and ``None`` is returned.
        """
        record = self._store.get(token)
        if record is None or record.status != RecordStatus.ERROR:
            return None

        data = record.data
        self._store.mark_pending(token)
        try:
            result = await confirm(data)
        except Exception as exc:
            self._store.mark_error(token, str(exc) or type(exc).__name__)
            raise
        self._store.remove(token)
        return result

    async def retry_all_failed(self, confirm: Callable[[T], Awaitable[R]]) -> list[R]:
        """Retry every failed record in order, one at a time.

        A failing retry is logged and skipped so it cannot abort the others.
        Returns the results of the retries that succeeded.
        """
        results: list[R] = []
        for token in self.failed_tokens():
            # An earlier retry may have resolved or removed this one meanwhile.
            record = self._store.get(token)
            if record is None or record.status != RecordStatus.ERROR:
                continue
            try:
                result = await self.retry_failed(token, confirm)
            except Exception:
                _logger.warning("Failed to retry record %s", token, exc_info=True)
                continue
            results.append(result)  # type: ignore[arg-type]
        return results
