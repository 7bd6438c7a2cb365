"""Auto-rollback countdowns owned by a record store."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable

from optibook.exceptions import OptibookLoopError

_logger = logging.getLogger(__name__)


class RollbackTimers:
    """Map from record token to a cancellable scheduled rollback.

    Each countdown is an :class:`asyncio.TimerHandle` on the running loop.
    A handle is forgotten as soon as it fires or is cancelled, so
    :meth:`pending` only reports countdowns that can still fire.
    """

    def __init__(self, *, loop: asyncio.AbstractEventLoop | None = None) -> None:
        self._loop = loop
        self._handles: dict[str, asyncio.TimerHandle] = {}

    def __len__(self) -> int:
        return len(self._handles)

    def __contains__(self, token: object) -> bool:
        return token in self._handles

    def pending(self, token: str) -> bool:
        return token in self._handles

    def schedule(self, token: str, delay: float, callback: Callable[[str], None]) -> None:
        """Call ``callback(token)`` after ``delay`` seconds unless cancelled first.

        Scheduling again for the same token replaces the earlier countdown.
        """
        try:
            loop = self._loop or asyncio.get_running_loop()
        except RuntimeError as exc:
            raise OptibookLoopError("Auto-rollback needs a running event loop") from exc

        self.cancel(token)
        self._handles[token] = loop.call_later(delay, self._fire, token, callback)
        _logger.debug("Scheduled auto-rollback token=%s delay=%.3fs", token, delay)

    def _fire(self, token: str, callback: Callable[[str], None]) -> None:
        if self._handles.pop(token, None) is None:
            return
        _logger.debug("Auto-rollback fired token=%s", token)
        callback(token)

    def cancel(self, token: str) -> bool:
        """Cancel the countdown for ``token``. Returns whether one was pending."""
        handle = self._handles.pop(token, None)
        if handle is None:
            return False
        handle.cancel()
        return True

    def cancel_all(self) -> None:
        handles = list(self._handles.values())
        self._handles.clear()
        for handle in handles:
            handle.cancel()
