from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

from optibook.config import MutationOptions
from optibook.state.records import MISSING, RecordStatus, revert_fields, touched_fields
from optibook.state.store import RecordStore


def _dt() -> datetime:
    return datetime(2026, 1, 1, tzinfo=UTC)


@dataclass(frozen=True)
class _Slot:
    id: str
    status: str


def test_initial_values_are_confirmed_records() -> None:
    store: RecordStore[dict[str, Any]] = RecordStore([{"id": "a"}, {"id": "b"}])

    assert store.data == [{"id": "a"}, {"id": "b"}]
    assert all(record.status == RecordStatus.SUCCESS for record in store)
    assert not any(store.is_optimistic(token) for token in store.tokens())


def test_tokens_are_distinct_even_within_one_millisecond() -> None:
    store: RecordStore[dict[str, Any]] = RecordStore(clock=_dt)

    tokens = [store.add({"n": n}) for n in range(50)]

    assert len(set(tokens)) == 50
    assert all(token.startswith("optimistic_") for token in tokens)


def test_add_then_rollback_clears_optimistic_flag() -> None:
    store: RecordStore[dict[str, Any]] = RecordStore()
    token = store.add({"x": 1})

    assert store.is_optimistic(token)
    assert store.get(token).status == RecordStatus.PENDING  # type: ignore[union-attr]

    store.rollback(token)

    record = store.get(token)
    assert record is not None
    assert not store.is_optimistic(token)
    assert record.status == RecordStatus.ROLLBACK
    assert record.data == {"x": 1}


def test_remove_drops_record_and_flag() -> None:
    store: RecordStore[dict[str, Any]] = RecordStore()
    token = store.add({"x": 1})

    store.remove(token)

    assert token not in store
    assert not store.is_optimistic(token)
    assert store.get_optimistic_item(token) is None


def test_update_merges_partial_and_keeps_status() -> None:
    store: RecordStore[dict[str, Any]] = RecordStore()
    token = store.add({"id": "b1", "status": "pending", "notes": "x"})

    store.update(token, {"status": "confirmed"})

    record = store.get(token)
    assert record is not None
    assert record.data == {"id": "b1", "status": "confirmed", "notes": "x"}
    assert record.status == RecordStatus.PENDING
    assert record.is_optimistic


def test_update_merges_into_dataclass_values() -> None:
    store: RecordStore[_Slot] = RecordStore([_Slot(id="s1", status="open")])
    token = store.tokens()[0]

    store.update(token, {"status": "closed"})

    assert store.data == [_Slot(id="s1", status="closed")]


def test_unknown_token_operations_are_noops() -> None:
    calls: list[object] = []
    store: RecordStore[dict[str, Any]] = RecordStore([{"id": "a"}])
    store.subscribe(calls.append)

    store.update("missing", {"x": 1})
    store.remove("missing")
    store.rollback("missing")
    store.mark_error("missing", "boom")

    assert store.data == [{"id": "a"}]
    assert calls == []


def test_rollback_all_only_touches_optimistic_records() -> None:
    rolled_back: list[Any] = []
    store: RecordStore[dict[str, Any]] = RecordStore(
        [{"id": "seeded"}],
        options=MutationOptions(on_rollback=rolled_back.append),
    )
    first = store.add({"id": "one"})
    second = store.add({"id": "two"})

    store.rollback_all()

    assert rolled_back == [{"id": "one"}, {"id": "two"}]
    assert store.get(first).status == RecordStatus.ROLLBACK  # type: ignore[union-attr]
    assert store.get(second).status == RecordStatus.ROLLBACK  # type: ignore[union-attr]
    assert store.with_status(RecordStatus.SUCCESS)[0].data == {"id": "seeded"}


def test_clear_errors_is_idempotent() -> None:
    notifications: list[object] = []
    store: RecordStore[dict[str, Any]] = RecordStore()
    token = store.add({"id": "a"})
    store.mark_error(token, "boom")
    store.subscribe(notifications.append)

    store.clear_errors()
    once = [(r.id, r.status, r.error) for r in store]
    store.clear_errors()
    twice = [(r.id, r.status, r.error) for r in store]

    assert once == twice == [(token, RecordStatus.SUCCESS, None)]
    assert len(notifications) == 1


def test_mark_error_keeps_data_for_retry() -> None:
    store: RecordStore[dict[str, Any]] = RecordStore()
    token = store.add({"id": "a"})

    store.mark_error(token, "HTTP 500")

    record = store.get(token)
    assert record is not None
    assert record.status == RecordStatus.ERROR
    assert record.error == "HTTP 500"
    assert record.data == {"id": "a"}
    assert not record.is_optimistic


def test_capture_original_keeps_first_snapshot() -> None:
    store: RecordStore[dict[str, Any]] = RecordStore([{"v": 1}])
    token = store.tokens()[0]

    store.capture_original(token)
    store.update(token, {"v": 2})
    kept = store.capture_original(token)

    assert kept == {"v": 1}
    store.release_original(token)
    assert store.get(token).original_data is None  # type: ignore[union-attr]


def test_subscribers_see_every_mutation_and_can_unsubscribe() -> None:
    seen: list[list[Any]] = []
    store: RecordStore[dict[str, Any]] = RecordStore()
    unsubscribe = store.subscribe(seen.append)

    token = store.add({"v": 1})
    store.update(token, {"v": 2})
    unsubscribe()
    store.remove(token)

    assert seen == [[{"v": 1}], [{"v": 2}]]


def test_failing_listener_does_not_break_mutation() -> None:
    store: RecordStore[dict[str, Any]] = RecordStore()

    def _broken(_data: list[Any]) -> None:
        raise RuntimeError("listener bug")

    store.subscribe(_broken)
    token = store.add({"v": 1})

    assert store.is_optimistic(token)


def test_seed_inserts_confirmed_record() -> None:
    store: RecordStore[dict[str, Any]] = RecordStore()

    token = store.seed({"id": "server-1"})

    record = store.get(token)
    assert record is not None
    assert record.status == RecordStatus.SUCCESS
    assert not record.is_optimistic


def test_timestamp_comes_from_clock() -> None:
    store: RecordStore[dict[str, Any]] = RecordStore(clock=_dt)

    token = store.add({"v": 1})

    assert store.get(token).timestamp == _dt()  # type: ignore[union-attr]
    assert token.startswith(f"optimistic_{int(_dt().timestamp() * 1000)}_")


def test_restore_replaces_data_wholesale() -> None:
    seen: list[list[Any]] = []
    store: RecordStore[dict[str, Any]] = RecordStore([{"id": "a", "extra": 1}])
    token = store.tokens()[0]
    store.subscribe(seen.append)

    store.restore(token, {"id": "a"})
    store.restore("missing", {"id": "ghost"})

    assert store.data == [{"id": "a"}]
    assert seen == [[{"id": "a"}]]
    assert store.get(token).status == RecordStatus.SUCCESS  # type: ignore[union-attr]


def test_revert_only_touches_recorded_fields() -> None:
    store: RecordStore[dict[str, Any]] = RecordStore([{"id": "a", "v": 0}])
    token = store.tokens()[0]
    prior = touched_fields({"id": "a", "v": 0}, {"v": 5, "note": "x"})
    store.update(token, {"v": 5, "note": "x"})
    store.update(token, {"w": 7})

    store.revert(token, prior)

    assert prior == {"v": 0, "note": MISSING}
    assert store.data == [{"id": "a", "v": 0, "w": 7}]


def test_revert_fields_on_dataclass() -> None:
    slot = _Slot(id="s1", status="open")
    prior = touched_fields(slot, {"status": "closed"})

    assert revert_fields(_Slot(id="s1", status="closed"), prior) == slot
