"""Custom exception hierarchy for optibook."""

from __future__ import annotations


class OptibookError(Exception):
    """Base exception for all optibook errors."""


class OptibookConfigError(OptibookError):
    """Invalid or missing configuration."""


class OptibookLoopError(OptibookError):
    """An operation needed a running asyncio event loop and none was available.

    Auto-rollback timers are scheduled on the running loop, so adding a
    record to a store configured with ``auto_rollback=True`` outside of a
    coroutine raises this error.
    """


class OptibookValidationError(OptibookError):
    """Caller-side validation failed before anything touched the store."""

    def __init__(self, message: str, *, errors: dict[str, str] | None = None) -> None:
        self.errors = dict(errors or {})
        super().__init__(message)


class OptibookTransportError(OptibookError):
    """HTTP-level failure (network, non-2xx, invalid JSON)."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        endpoint: str = "",
    ) -> None:
        self.status_code = status_code
        self.endpoint = endpoint
        super().__init__(message)


class OptibookApiError(OptibookError):
    """The data API answered with an application-level error payload."""

    def __init__(
        self,
        message: str,
        *,
        code: str = "",
        endpoint: str = "",
    ) -> None:
        self.code = code
        self.endpoint = endpoint
        super().__init__(message)


class OptibookAuthenticationError(OptibookApiError):
    """Login or signup rejected, or the session is no longer valid."""
