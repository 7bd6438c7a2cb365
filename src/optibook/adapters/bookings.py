"""Optimistic booking CRUD for the provider calendar and bookings table."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Mapping
from datetime import UTC, datetime
from typing import Any

from optibook._transport import DataApi
from optibook.adapters._common import temp_id, token_for
from optibook.config import MutationOptions
from optibook.engine import OptimisticMutations
from optibook.models._base import camel_patch, unwrap
from optibook.models.booking import Booking, BookingStatus, CreateBookingData
from optibook.state.records import as_partial

_logger = logging.getLogger(__name__)


class OptimisticBookings:
    """Booking collection whose edits show up before the API confirms them."""

    def __init__(
        self,
        api: DataApi,
        initial: Iterable[Booking] = (),
        *,
        options: MutationOptions | None = None,
        on_booking_created: Callable[[Booking], None] | None = None,
        on_booking_updated: Callable[[Booking], None] | None = None,
        on_booking_deleted: Callable[[str], None] | None = None,
    ) -> None:
        base = options or MutationOptions()
        self._api = api
        self._engine: OptimisticMutations[Booking] = OptimisticMutations(
            initial,
            options=base.with_overrides(
                success_message=base.success_message or "Booking updated successfully",
                error_message=base.error_message or "Failed to update booking",
            ),
        )
        self._on_created = on_booking_created
        self._on_updated = on_booking_updated
        self._on_deleted = on_booking_deleted

    @property
    def engine(self) -> OptimisticMutations[Booking]:
        return self._engine

    @property
    def bookings(self) -> list[Booking]:
        return self._engine.data

    def is_optimistic(self, booking_id: str) -> bool:
        token = token_for(self._engine, booking_id)
        return token is not None and self._engine.is_optimistic(token)

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    async def create_booking(self, data: CreateBookingData) -> Booking:
        """Show a pending booking immediately, then replace it with the server's."""
        now = datetime.now(UTC)
        draft = Booking(
            id=temp_id(),
            facility_id=data.facility_id,
            user_id="current_user",
            start_time=data.starts_at(UTC),
            end_time=data.ends_at(UTC),
            status=BookingStatus.PENDING,
            notes=data.notes,
            created_at=now,
            updated_at=now,
            customer_name=data.name,
            customer_email=data.email,
        )

        async def _confirm(_draft: Booking) -> Booking:
            payload = await self._api.request("POST", "/api/bookings", json_body=data.to_api())
            return Booking.model_validate(unwrap(payload, "booking"))

        booking = await self._engine.create(draft, _confirm)
        self._engine.seed(booking)
        _logger.debug("Booking created id=%s", booking.id)
        if self._on_created is not None:
            self._on_created(booking)
        return booking

    async def _patch(self, booking_id: str, changes: Mapping[str, Any]) -> Booking | None:
        token = token_for(self._engine, booking_id)
        if token is None:
            _logger.debug("Booking %s not loaded, update skipped", booking_id)
            return None

        async def _confirm(_token: str, updates: Mapping[str, Any]) -> Booking:
            payload = await self._api.request(
                "PATCH", f"/api/bookings/{booking_id}", json_body=camel_patch(updates)
            )
            return Booking.model_validate(unwrap(payload, "booking"))

        booking = await self._engine.update(token, changes, _confirm)
        if booking is None:
            return None
        self._engine.update_optimistic(token, as_partial(booking))
        if self._on_updated is not None:
            self._on_updated(booking)
        return booking

    async def update_booking_status(self, booking_id: str, status: BookingStatus) -> Booking | None:
        return await self._patch(booking_id, {"status": BookingStatus(status)})

    async def update_booking_notes(self, booking_id: str, notes: str) -> Booking | None:
        return await self._patch(booking_id, {"notes": notes})

    async def cancel_booking(self, booking_id: str) -> Booking | None:
        return await self.update_booking_status(booking_id, BookingStatus.CANCELLED)

    async def confirm_booking(self, booking_id: str) -> Booking | None:
        return await self.update_booking_status(booking_id, BookingStatus.CONFIRMED)

    async def complete_booking(self, booking_id: str) -> Booking | None:
        return await self.update_booking_status(booking_id, BookingStatus.COMPLETED)

    async def delete_booking(self, booking_id: str) -> bool:
        """Hide the booking immediately; it comes back if the API refuses."""
        token = token_for(self._engine, booking_id)
        if token is None:
            return False

        async def _confirm(_token: str) -> dict[str, Any]:
            return await self._api.request("DELETE", f"/api/bookings/{booking_id}")

        await self._engine.remove(token, _confirm)
        if self._on_deleted is not None:
            self._on_deleted(booking_id)
        return True

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_booking_by_id(self, booking_id: str) -> Booking | None:
        return next((b for b in self.bookings if b.id == booking_id), None)

    def get_bookings_by_status(self, status: BookingStatus) -> list[Booking]:
        return [b for b in self.bookings if b.status == status]

    def get_bookings_by_facility(self, facility_id: str) -> list[Booking]:
        return [b for b in self.bookings if b.facility_id == facility_id]

    def get_bookings_by_date_range(self, start: datetime, end: datetime) -> list[Booking]:
        """Bookings starting within ``[start, end]`` (inclusive)."""
        return [b for b in self.bookings if start <= b.start_time <= end]
