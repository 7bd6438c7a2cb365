from __future__ import annotations

from collections.abc import Mapping
from datetime import UTC, date, datetime, time
from typing import Any

import pytest

from optibook.adapters.bookings import OptimisticBookings
from optibook.exceptions import OptibookApiError
from optibook.models.booking import Booking, BookingStatus, CreateBookingData
from optibook.mutations.coordinator import FeedbackMessage
from optibook.state.records import RecordStatus


class _FakeApi:
    def __init__(self, responses: Mapping[str, Any] | None = None) -> None:
        self.responses = dict(responses or {})
        self.calls: list[tuple[str, str, Any]] = []

    async def request(
        self,
        method: str,
        endpoint: str,
        *,
        json_body: Mapping[str, Any] | None = None,
    ) -> dict[str, Any]:
        self.calls.append((method, endpoint, json_body))
        outcome = self.responses.get(f"{method} {endpoint}", {})
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


def _booking(booking_id: str = "b1", **overrides: Any) -> Booking:
    fields: dict[str, Any] = {
        "id": booking_id,
        "facility_id": "f1",
        "user_id": "u1",
        "start_time": datetime(2026, 3, 2, 10, tzinfo=UTC),
        "end_time": datetime(2026, 3, 2, 11, tzinfo=UTC),
    }
    fields.update(overrides)
    return Booking(**fields)


def _server_booking(booking_id: str, **overrides: Any) -> dict[str, Any]:
    return {"booking": _booking(booking_id, **overrides).to_api()}


def _create_data() -> CreateBookingData:
    return CreateBookingData(
        facility_id="f1",
        name="Ada",
        email="ada@example.com",
        booking_date=date(2026, 3, 2),
        start_time=time(10),
        end_time=time(11),
    )


def test_create_booking_data_rejects_inverted_slot() -> None:
    with pytest.raises(ValueError):
        CreateBookingData(
            facility_id="f1",
            name="Ada",
            email="ada@example.com",
            date=date(2026, 3, 2),
            start_time=time(11),
            end_time=time(10),
        )


@pytest.mark.asyncio
async def test_create_booking_replaces_draft_with_server_booking() -> None:
    api = _FakeApi({"POST /api/bookings": _server_booking("srv-1")})
    created: list[Booking] = []
    bookings = OptimisticBookings(api, on_booking_created=created.append)

    booking = await bookings.create_booking(_create_data())

    assert booking.id == "srv-1"
    assert [b.id for b in bookings.bookings] == ["srv-1"]
    assert not bookings.is_optimistic("srv-1")
    assert created == [booking]
    method, endpoint, body = api.calls[0]
    assert (method, endpoint) == ("POST", "/api/bookings")
    assert body["facilityId"] == "f1"
    assert body["date"] == "2026-03-02"
    assert bookings.engine.message == FeedbackMessage("success", "Booking updated successfully")


@pytest.mark.asyncio
async def test_create_booking_failure_leaves_rolled_back_draft() -> None:
    api = _FakeApi({"POST /api/bookings": OptibookApiError("Slot taken", code="409")})
    bookings = OptimisticBookings(api)

    with pytest.raises(OptibookApiError):
        await bookings.create_booking(_create_data())

    [record] = bookings.engine.store.records
    assert record.status == RecordStatus.ROLLBACK
    assert record.data.id.startswith("temp_")
    assert record.data.customer_name == "Ada"
    assert bookings.engine.message == FeedbackMessage("error", "Failed to update booking")


@pytest.mark.asyncio
async def test_status_update_patches_and_merges_server_copy() -> None:
    api = _FakeApi(
        {"PATCH /api/bookings/b1": _server_booking("b1", status="confirmed", notes="server note")}
    )
    updated: list[Booking] = []
    bookings = OptimisticBookings(api, [_booking("b1")], on_booking_updated=updated.append)

    result = await bookings.confirm_booking("b1")

    assert result is not None and result.status == BookingStatus.CONFIRMED
    assert api.calls == [("PATCH", "/api/bookings/b1", {"status": BookingStatus.CONFIRMED})]
    current = bookings.get_booking_by_id("b1")
    assert current is not None
    assert current.status == BookingStatus.CONFIRMED
    assert current.notes == "server note"
    assert updated == [result]


@pytest.mark.asyncio
async def test_failed_cancel_restores_previous_status() -> None:
    api = _FakeApi({"PATCH /api/bookings/b1": OptibookApiError("nope")})
    bookings = OptimisticBookings(api, [_booking("b1", status="confirmed")])

    with pytest.raises(OptibookApiError):
        await bookings.cancel_booking("b1")

    assert bookings.get_booking_by_id("b1").status == BookingStatus.CONFIRMED  # type: ignore[union-attr]


@pytest.mark.asyncio
async def test_notes_update_uses_camel_case_body() -> None:
    api = _FakeApi({"PATCH /api/bookings/b1": _server_booking("b1", notes="Bring rackets")})
    bookings = OptimisticBookings(api, [_booking("b1")])

    await bookings.update_booking_notes("b1", "Bring rackets")

    assert api.calls[0][2] == {"notes": "Bring rackets"}
    assert bookings.get_booking_by_id("b1").notes == "Bring rackets"  # type: ignore[union-attr]


@pytest.mark.asyncio
async def test_update_of_unknown_booking_is_skipped() -> None:
    api = _FakeApi()
    bookings = OptimisticBookings(api)

    assert await bookings.complete_booking("ghost") is None
    assert await bookings.delete_booking("ghost") is False
    assert api.calls == []


@pytest.mark.asyncio
async def test_failed_delete_brings_booking_back() -> None:
    api = _FakeApi({"DELETE /api/bookings/b1": OptibookApiError("locked")})
    deleted: list[str] = []
    bookings = OptimisticBookings(api, [_booking("b1")], on_booking_deleted=deleted.append)

    with pytest.raises(OptibookApiError):
        await bookings.delete_booking("b1")

    assert [b.id for b in bookings.bookings] == ["b1"]
    assert deleted == []


@pytest.mark.asyncio
async def test_delete_booking() -> None:
    api = _FakeApi()
    deleted: list[str] = []
    bookings = OptimisticBookings(api, [_booking("b1"), _booking("b2")], on_booking_deleted=deleted.append)

    assert await bookings.delete_booking("b1") is True
    assert [b.id for b in bookings.bookings] == ["b2"]
    assert deleted == ["b1"]


def test_queries() -> None:
    bookings = OptimisticBookings(
        _FakeApi(),
        [
            _booking("b1", status="confirmed"),
            _booking("b2", facility_id="f2", start_time=datetime(2026, 3, 5, 9, tzinfo=UTC)),
            _booking("b3", status="cancelled", start_time=datetime(2026, 4, 1, 9, tzinfo=UTC)),
        ],
    )

    assert [b.id for b in bookings.get_bookings_by_status(BookingStatus.CONFIRMED)] == ["b1"]
    assert [b.id for b in bookings.get_bookings_by_facility("f2")] == ["b2"]
    in_march = bookings.get_bookings_by_date_range(
        datetime(2026, 3, 2, 10, tzinfo=UTC), datetime(2026, 3, 31, tzinfo=UTC)
    )
    assert [b.id for b in in_march] == ["b1", "b2"]
    assert bookings.get_booking_by_id("missing") is None
