"""Optimistic form submission with validation and feedback."""

from __future__ import annotations

import asyncio
import dataclasses
import logging
from collections.abc import Awaitable, Callable, Mapping
from typing import Any, Generic, TypeVar

from optibook.exceptions import OptibookValidationError
from optibook.mutations.coordinator import FeedbackMessage
from optibook.state.records import as_partial, merge_partial, snapshot

_logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")

ValidationRule = Callable[[Any], "str | None"]


@dataclasses.dataclass(frozen=True)
class FormOptions:
    """Behaviour of an :class:`OptimisticForm`.

    ``auto_reset`` restores the initial data ``reset_delay`` seconds after a
    successful submit. ``validation_rules`` maps field names to callables
    returning an error text or ``None``; without rules every empty field
    (``""`` or ``None``) is reported as required.
    """

    success_message: str | None = None
    error_message: str | None = None
    auto_reset: bool = False
    reset_delay: float = 0.0
    validation_rules: Mapping[str, ValidationRule] | None = None
    on_success: Callable[[Any], None] | None = None
    on_error: Callable[[BaseException], None] | None = None
    on_reset: Callable[[], None] | None = None


def _call_quietly(callback: Callable[..., None] | None, *args: Any) -> None:
    if callback is None:
        return
    try:
        callback(*args)
    except Exception:
        _logger.warning("Form callback %r failed", callback, exc_info=True)


def required_fields(data: Any) -> dict[str, str]:
    errors: dict[str, str] = {}
    for key, value in as_partial(data).items():
        if value is None or value == "":
            errors[key] = f"{key} is required"
    return errors


class OptimisticForm(Generic[T, R]):
    """Form state plus a submit that calls a confirmation coroutine.

    Usage::

        form = OptimisticForm({"email": "", "password": ""}, api_login,
                              FormOptions(success_message="Login successful!"))
        form.set_data({"email": "a@b.c", "password": "secret"})
        result = await form.submit()
    """

    def __init__(
        self,
        initial: T,
        submit_call: Callable[[T], Awaitable[R]],
        options: FormOptions | None = None,
    ) -> None:
        self._initial = snapshot(initial)
        self._submit_call = submit_call
        self._options = options or FormOptions()
        self.data: T = snapshot(initial)
        self.is_submitting = False
        self.is_dirty = False
        self.message: FeedbackMessage | None = None
        self.errors: dict[str, str] = {}
        self._reset_handle: asyncio.TimerHandle | None = None

    @property
    def has_errors(self) -> bool:
        return bool(self.errors)

    @property
    def is_valid(self) -> bool:
        return not self.errors and not self.is_submitting

    def set_data(self, data: T | Callable[[T], T]) -> None:
        self.data = data(self.data) if callable(data) else data
        self.is_dirty = True

    def patch(self, **fields: Any) -> None:
        self.set_data(merge_partial(self.data, fields))

    def validate(self, data: T) -> dict[str, str]:
        rules = self._options.validation_rules
        if rules is None:
            return required_fields(data)
        errors: dict[str, str] = {}
        for key, value in as_partial(data).items():
            rule = rules.get(key)
            if rule is None:
                continue
            error = rule(value)
            if error:
                errors[key] = error
        return errors

    async def submit(self, data: T | None = None) -> R:
        """Validate and submit.

        Raises :class:`OptibookValidationError` without calling the
        confirmation when validation fails; any error from the confirmation
        is re-raised after ``message`` and ``on_error`` are updated.
        """
        payload = self.data if data is None else data
        errors = self.validate(payload)
        if errors:
            self.errors = errors
            raise OptibookValidationError("Form validation failed", errors=errors)

        self.is_submitting = True
        self.message = None
        self.errors = {}
        try:
            result = await self._submit_call(payload)
        except Exception as exc:
            options = self._options
            self.message = FeedbackMessage("error", options.error_message or str(exc) or "An error occurred")
            _call_quietly(options.on_error, exc)
            raise
        finally:
            self.is_submitting = False

        options = self._options
        _call_quietly(options.on_success, result)
        if options.success_message:
            self.message = FeedbackMessage("success", options.success_message)
        if options.auto_reset and options.reset_delay > 0:
            self._schedule_reset(options.reset_delay)
        return result

    def _schedule_reset(self, delay: float) -> None:
        self.cancel_pending_reset()
        loop = asyncio.get_running_loop()
        self._reset_handle = loop.call_later(delay, self.reset)

    def cancel_pending_reset(self) -> None:
        if self._reset_handle is not None:
            self._reset_handle.cancel()
            self._reset_handle = None

    def reset(self) -> None:
        self.cancel_pending_reset()
        self.data = snapshot(self._initial)
        self.message = None
        self.errors = {}
        self.is_dirty = False
        _call_quietly(self._options.on_reset)

    def clear_message(self) -> None:
        self.message = None

    def set_error(self, field: str, error: str) -> None:
        self.errors = {**self.errors, field: error}

    def clear_error(self, field: str) -> None:
        self.errors = {k: v for k, v in self.errors.items() if k != field}

    def clear_all_errors(self) -> None:
        self.errors = {}
