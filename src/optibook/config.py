"""Configuration for the optimistic mutation engine and the data API."""

from __future__ import annotations

import dataclasses
import os
from collections.abc import Callable
from typing import Any

from optibook.exceptions import OptibookConfigError


def _env_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "y", "on"}:
        return True
    if normalized in {"0", "false", "no", "n", "off"}:
        return False
    return default


def _env_float(value: str | None, name: str) -> float | None:
    if value is None or not value.strip():
        return None
    try:
        return float(value)
    except ValueError as exc:
        raise OptibookConfigError(f"{name} must be a number, got {value!r}") from exc


@dataclasses.dataclass(frozen=True)
class MutationOptions:
    """Per-instance behaviour of a record store and its coordinators.

    Parameters
    ----------
    success_message : str or None
        Feedback text published after a confirmed mutation.
    error_message : str or None
        Feedback text published after a failed mutation. When unset the
        text of the confirmation error is used.
    auto_rollback : bool
        Roll back optimistic records that are not resolved within
        ``rollback_delay`` seconds.
    rollback_delay : float
        Auto-rollback window in seconds. Must be positive when
        ``auto_rollback`` is enabled.
    retain_failures : bool
        Move records whose ``create`` confirmation failed to the ``error``
        state (retryable) instead of ``rollback``.
    on_success : callable or None
        Called with the confirmation result after every successful verb.
    on_error : callable or None
        Called with the exception after every failed verb.
    on_rollback : callable or None
        Called with the record data whenever a record is rolled back.
    """

    success_message: str | None = None
    error_message: str | None = None
    auto_rollback: bool = False
    rollback_delay: float = 0.0
    retain_failures: bool = False
    on_success: Callable[[Any], None] | None = None
    on_error: Callable[[BaseException], None] | None = None
    on_rollback: Callable[[Any], None] | None = None

    def __post_init__(self) -> None:
        if self.rollback_delay < 0:
            raise OptibookConfigError("rollback_delay must not be negative")
        if self.auto_rollback and self.rollback_delay <= 0:
            raise OptibookConfigError("auto_rollback requires a positive rollback_delay")

    @property
    def rollback_enabled(self) -> bool:
        """Whether records should get an auto-rollback countdown."""
        return self.auto_rollback and self.rollback_delay > 0

    def with_overrides(self, **overrides: Any) -> MutationOptions:
        """Return a copy with the given fields replaced."""
        return dataclasses.replace(self, **overrides)

    @classmethod
    def from_env(cls, **overrides: Any) -> MutationOptions:
        """Create options from ``OPTIBOOK_*`` environment variables.

        Reads ``OPTIBOOK_AUTO_ROLLBACK``, ``OPTIBOOK_ROLLBACK_DELAY`` and
        ``OPTIBOOK_RETAIN_FAILURES``. Explicit keyword arguments override
        environment values.
        """
        env = os.environ
        kwargs: dict[str, Any] = {}

        if "auto_rollback" not in overrides:
            kwargs["auto_rollback"] = _env_bool(env.get("OPTIBOOK_AUTO_ROLLBACK"), False)

        delay = _env_float(env.get("OPTIBOOK_ROLLBACK_DELAY"), "OPTIBOOK_ROLLBACK_DELAY")
        if delay is not None and "rollback_delay" not in overrides:
            kwargs["rollback_delay"] = delay

        if "retain_failures" not in overrides:
            kwargs["retain_failures"] = _env_bool(env.get("OPTIBOOK_RETAIN_FAILURES"), False)

        kwargs.update(overrides)
        return cls(**kwargs)


@dataclasses.dataclass(frozen=True)
class ApiConfig:
    """Connection settings for the relational data API.

    Parameters
    ----------
    base_url : str
        API root, e.g. ``"https://console.example.com"``. Endpoint paths
        such as ``/api/bookings`` are appended verbatim.
    token : str or None
        Bearer token sent as ``Authorization`` header when set.
    timeout : float
        Total request timeout in seconds.
    """

    base_url: str = "http://localhost:3000"
    token: str | None = None
    timeout: float = 15.0

    def __post_init__(self) -> None:
        if not self.base_url.strip():
            raise OptibookConfigError("base_url must be non-empty")
        if self.timeout <= 0:
            raise OptibookConfigError("timeout must be positive")

    @classmethod
    def from_env(cls, **overrides: Any) -> ApiConfig:
        """Create configuration from ``OPTIBOOK_API_*`` environment variables."""
        env = os.environ
        kwargs: dict[str, Any] = {}

        base_url = env.get("OPTIBOOK_API_BASE_URL")
        if base_url is not None:
            kwargs["base_url"] = base_url.rstrip("/")

        token = env.get("OPTIBOOK_API_TOKEN")
        if token:
            kwargs["token"] = token

        timeout = _env_float(env.get("OPTIBOOK_API_TIMEOUT"), "OPTIBOOK_API_TIMEOUT")
        if timeout is not None and "timeout" not in overrides:
            kwargs["timeout"] = timeout

        kwargs.update(overrides)
        return cls(**kwargs)
