"""Facility models."""

from __future__ import annotations

from datetime import datetime
from enum import StrEnum

from pydantic import Field

from optibook.models._base import ConsoleModel


class FacilityStatus(StrEnum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    MAINTENANCE = "maintenance"


class Facility(ConsoleModel):
    id: str
    name: str
    organization_id: str
    description: str | None = None
    location: str | None = None
    capacity: int | None = None
    amenities: list[str] = Field(default_factory=list)
    images: list[str] = Field(default_factory=list)
    status: FacilityStatus = FacilityStatus.ACTIVE
    created_at: datetime | None = None
    updated_at: datetime | None = None


class CreateFacilityData(ConsoleModel):
    name: str = Field(min_length=1)
    organization_id: str = Field(min_length=1)
    description: str | None = None
    location: str | None = None
    capacity: int | None = Field(default=None, ge=0)
    amenities: list[str] = Field(default_factory=list)
    images: list[str] = Field(default_factory=list)


class UpdateFacilityData(ConsoleModel):
    """Partial facility edit; only explicitly set fields are sent."""

    name: str | None = None
    description: str | None = None
    location: str | None = None
    capacity: int | None = Field(default=None, ge=0)
    amenities: list[str] | None = None
    images: list[str] | None = None
    status: FacilityStatus | None = None

    def to_patch(self) -> dict[str, object]:
        """Snake-case partial for the record store."""
        return {name: getattr(self, name) for name in self.model_fields_set}
