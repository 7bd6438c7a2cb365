from __future__ import annotations

import asyncio
from collections.abc import Mapping
from typing import Any

import pytest

from optibook.config import MutationOptions
from optibook.mutations.coordinator import FeedbackMessage, MutationCoordinator
from optibook.state.records import RecordStatus
from optibook.state.store import RecordStore


class _ApiDown(Exception):
    pass


def _coordinator(initial: list[dict[str, Any]] | None = None, **options: Any) -> MutationCoordinator[dict[str, Any]]:
    return MutationCoordinator(RecordStore(initial or [], options=MutationOptions(**options)))


@pytest.mark.asyncio
async def test_create_success_removes_speculative_record() -> None:
    coordinator = _coordinator(success_message="Saved")
    seen_during_call: list[bool] = []

    async def _confirm(value: dict[str, Any]) -> dict[str, Any]:
        token = coordinator.store.tokens()[0]
        seen_during_call.append(coordinator.store.is_optimistic(token))
        return {**value, "id": "srv-1"}

    result = await coordinator.create({"name": "Court 1"}, _confirm)

    assert result == {"name": "Court 1", "id": "srv-1"}
    assert seen_during_call == [True]
    assert len(coordinator.store) == 0
    assert coordinator.message == FeedbackMessage("success", "Saved")


@pytest.mark.asyncio
async def test_create_failure_keeps_rolled_back_record() -> None:
    errors: list[BaseException] = []
    rolled_back: list[Any] = []
    coordinator = _coordinator(on_error=errors.append, on_rollback=rolled_back.append)

    async def _confirm(_value: dict[str, Any]) -> dict[str, Any]:
        raise _ApiDown("HTTP 500")

    with pytest.raises(_ApiDown):
        await coordinator.create({"name": "Court 1"}, _confirm)

    [record] = coordinator.store.records
    assert record.status == RecordStatus.ROLLBACK
    assert not record.is_optimistic
    assert record.data == {"name": "Court 1"}
    assert coordinator.message == FeedbackMessage("error", "HTTP 500")
    assert len(errors) == 1
    assert rolled_back == [{"name": "Court 1"}]


@pytest.mark.asyncio
async def test_create_failure_with_retain_failures_enters_error_state() -> None:
    coordinator = _coordinator(retain_failures=True, error_message="Could not save")

    async def _confirm(_value: dict[str, Any]) -> dict[str, Any]:
        raise _ApiDown("HTTP 503")

    with pytest.raises(_ApiDown):
        await coordinator.create({"name": "Court 1"}, _confirm)

    [record] = coordinator.store.records
    assert record.status == RecordStatus.ERROR
    assert record.error == "HTTP 503"
    assert coordinator.message == FeedbackMessage("error", "Could not save")


@pytest.mark.asyncio
async def test_update_success_keeps_merged_value() -> None:
    coordinator = _coordinator([{"id": "b1", "status": "pending"}])
    token = coordinator.store.tokens()[0]
    calls: list[tuple[str, Mapping[str, Any]]] = []

    async def _confirm(tok: str, partial: Mapping[str, Any]) -> str:
        calls.append((tok, partial))
        return "ok"

    result = await coordinator.update(token, {"status": "confirmed"}, _confirm)

    assert result == "ok"
    assert calls == [(token, {"status": "confirmed"})]
    record = coordinator.store.get(token)
    assert record is not None
    assert record.data == {"id": "b1", "status": "confirmed"}
    assert record.original_data is None


@pytest.mark.asyncio
async def test_update_failure_restores_original_value() -> None:
    coordinator = _coordinator([{"id": "b1", "status": "pending"}])
    token = coordinator.store.tokens()[0]

    async def _confirm(_tok: str, _partial: Mapping[str, Any]) -> None:
        raise _ApiDown("HTTP 500")

    with pytest.raises(_ApiDown):
        await coordinator.update(token, {"status": "confirmed"}, _confirm)

    record = coordinator.store.get(token)
    assert record is not None
    assert record.data == {"id": "b1", "status": "pending"}
    assert record.original_data is None
    assert coordinator.message is not None and coordinator.message.kind == "error"


@pytest.mark.asyncio
async def test_update_failure_drops_field_the_update_introduced() -> None:
    coordinator = _coordinator([{"id": "t1"}])
    token = coordinator.store.tokens()[0]

    async def _confirm(_tok: str, _partial: Mapping[str, Any]) -> None:
        raise _ApiDown("network down")

    with pytest.raises(_ApiDown):
        await coordinator.update(token, {"status": "confirmed"}, _confirm)

    assert coordinator.store.data == [{"id": "t1"}]


@pytest.mark.asyncio
async def test_failed_update_keeps_fields_confirmed_meanwhile() -> None:
    coordinator = _coordinator([{"id": "r", "v": 0, "w": 0}])
    token = coordinator.store.tokens()[0]
    release = asyncio.Event()

    async def _slow_failure(_tok: str, _partial: Mapping[str, Any]) -> None:
        await release.wait()
        raise _ApiDown("timeout")

    async def _accepted(_tok: str, _partial: Mapping[str, Any]) -> str:
        return "ok"

    slow = asyncio.create_task(coordinator.update(token, {"w": 2}, _slow_failure))
    await asyncio.sleep(0)
    assert coordinator.store.data == [{"id": "r", "v": 0, "w": 2}]

    await coordinator.update(token, {"v": 1}, _accepted)
    release.set()
    with pytest.raises(_ApiDown):
        await slow

    assert coordinator.store.data == [{"id": "r", "v": 1, "w": 0}]


@pytest.mark.asyncio
async def test_update_unknown_token_skips_confirmation() -> None:
    coordinator = _coordinator()
    called = False

    async def _confirm(_tok: str, _partial: Mapping[str, Any]) -> None:
        nonlocal called
        called = True

    assert await coordinator.update("missing", {"x": 1}, _confirm) is None
    assert not called


@pytest.mark.asyncio
async def test_remove_success_drops_record() -> None:
    coordinator = _coordinator([{"id": "f1"}])
    token = coordinator.store.tokens()[0]

    async def _confirm(_tok: str) -> bool:
        assert token not in coordinator.store
        return True

    assert await coordinator.remove(token, _confirm) is True
    assert coordinator.store.data == []


@pytest.mark.asyncio
async def test_remove_failure_restores_under_new_token() -> None:
    coordinator = _coordinator([{"id": "f1"}])
    token = coordinator.store.tokens()[0]

    async def _confirm(_tok: str) -> None:
        raise _ApiDown("HTTP 500")

    with pytest.raises(_ApiDown):
        await coordinator.remove(token, _confirm)

    assert coordinator.store.data == [{"id": "f1"}]
    assert token not in coordinator.store
    [restored] = coordinator.store.tokens()
    assert restored != token


@pytest.mark.asyncio
async def test_late_confirmation_after_rollback_is_harmless() -> None:
    coordinator = _coordinator()

    async def _confirm(value: dict[str, Any]) -> dict[str, Any]:
        coordinator.store.rollback_all()
        for token in coordinator.store.tokens():
            coordinator.store.remove(token)
        return value

    assert await coordinator.create({"id": "x"}, _confirm) == {"id": "x"}
    assert len(coordinator.store) == 0


@pytest.mark.asyncio
async def test_callback_failure_does_not_mask_result() -> None:
    def _broken(_result: Any) -> None:
        raise RuntimeError("toast bug")

    coordinator = _coordinator(on_success=_broken, success_message="Saved")

    async def _confirm(value: dict[str, Any]) -> dict[str, Any]:
        return value

    assert await coordinator.create({"id": "x"}, _confirm) == {"id": "x"}
    assert coordinator.message == FeedbackMessage("success", "Saved")

    coordinator.clear_message()
    assert coordinator.message is None
