"""Booking models."""

from __future__ import annotations

from datetime import date, datetime, time, tzinfo
from enum import StrEnum

from pydantic import Field, model_validator

from optibook.models._base import ConsoleModel


class BookingStatus(StrEnum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    COMPLETED = "completed"


class Booking(ConsoleModel):
    """A booking of one facility slot."""

    id: str
    facility_id: str
    user_id: str = ""
    start_time: datetime
    end_time: datetime
    status: BookingStatus = BookingStatus.PENDING
    notes: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    customer_name: str | None = None
    customer_email: str | None = None
    customer_phone: str | None = None
    total_amount: float | None = None
    facility_name: str | None = None


class CreateBookingData(ConsoleModel):
    """Booking dialog input.

    ``booking_date`` (sent as ``date``), ``start_time`` and ``end_time``
    are the raw picker values; :meth:`starts_at` / :meth:`ends_at` combine
    them.
    """

    facility_id: str = Field(min_length=1)
    name: str = Field(min_length=1)
    email: str = Field(min_length=3)
    booking_date: date = Field(alias="date")
    start_time: time
    end_time: time
    notes: str | None = None

    @model_validator(mode="after")
    def _check_slot(self) -> CreateBookingData:
        if self.end_time <= self.start_time:
            raise ValueError("end_time must be after start_time")
        return self

    def starts_at(self, tz: tzinfo | None = None) -> datetime:
        return datetime.combine(self.booking_date, self.start_time, tzinfo=tz)

    def ends_at(self, tz: tzinfo | None = None) -> datetime:
        return datetime.combine(self.booking_date, self.end_time, tzinfo=tz)
