"""Optimistic facility management for a provider organization."""

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
from optibook.models.facility import CreateFacilityData, Facility, FacilityStatus, UpdateFacilityData
from optibook.state.records import as_partial

_logger = logging.getLogger(__name__)


class OptimisticFacilities:
    def __init__(
        self,
        api: DataApi,
        initial: Iterable[Facility] = (),
        *,
        options: MutationOptions | None = None,
        on_facility_created: Callable[[Facility], None] | None = None,
        on_facility_updated: Callable[[Facility], None] | None = None,
        on_facility_deleted: Callable[[str], None] | None = None,
    ) -> None:
        base = options or MutationOptions()
        self._api = api
        self._engine: OptimisticMutations[Facility] = OptimisticMutations(
            initial,
            options=base.with_overrides(
                success_message=base.success_message or "Facility updated successfully",
                error_message=base.error_message or "Failed to update facility",
            ),
        )
        self._on_created = on_facility_created
        self._on_updated = on_facility_updated
        self._on_deleted = on_facility_deleted

    @property
    def engine(self) -> OptimisticMutations[Facility]:
        return self._engine

    @property
    def facilities(self) -> list[Facility]:
        return self._engine.data

    def is_optimistic(self, facility_id: str) -> bool:
        token = token_for(self._engine, facility_id)
        return token is not None and self._engine.is_optimistic(token)

    async def create_facility(self, data: CreateFacilityData) -> Facility:
        now = datetime.now(UTC)
        draft = Facility(
            id=temp_id(),
            name=data.name,
            organization_id=data.organization_id,
            description=data.description,
            location=data.location,
            capacity=data.capacity,
            amenities=list(data.amenities),
            images=list(data.images),
            status=FacilityStatus.ACTIVE,
            created_at=now,
            updated_at=now,
        )

        async def _confirm(_draft: Facility) -> Facility:
            payload = await self._api.request("POST", "/api/facilities", json_body=data.to_api())
            return Facility.model_validate(unwrap(payload, "facility"))

        facility = await self._engine.create(draft, _confirm)
        self._engine.seed(facility)
        if self._on_created is not None:
            self._on_created(facility)
        return facility

    async def update_facility(
        self,
        facility_id: str,
        updates: UpdateFacilityData | Mapping[str, Any],
    ) -> Facility | None:
        """Apply ``updates`` locally, confirm with a PATCH, restore on failure.

        Only explicitly set fields of an :class:`UpdateFacilityData` are sent.
        """
        changes = updates.to_patch() if isinstance(updates, UpdateFacilityData) else dict(updates)
        token = token_for(self._engine, facility_id)
        if token is None:
            _logger.debug("Facility %s not loaded, update skipped", facility_id)
            return None

        async def _confirm(_token: str, patch: Mapping[str, Any]) -> Facility:
            payload = await self._api.request(
                "PATCH", f"/api/facilities/{facility_id}", json_body=camel_patch(patch)
            )
            return Facility.model_validate(unwrap(payload, "facility"))

        facility = await self._engine.update(token, changes, _confirm)
        if facility is None:
            return None
        self._engine.update_optimistic(token, as_partial(facility))
        if self._on_updated is not None:
            self._on_updated(facility)
        return facility

    async def update_facility_status(self, facility_id: str, status: FacilityStatus) -> Facility | None:
        return await self.update_facility(facility_id, {"status": FacilityStatus(status)})

    async def activate_facility(self, facility_id: str) -> Facility | None:
        return await self.update_facility_status(facility_id, FacilityStatus.ACTIVE)

    async def deactivate_facility(self, facility_id: str) -> Facility | None:
        return await self.update_facility_status(facility_id, FacilityStatus.INACTIVE)

    async def set_maintenance_mode(self, facility_id: str) -> Facility | None:
        return await self.update_facility_status(facility_id, FacilityStatus.MAINTENANCE)

    async def update_facility_capacity(self, facility_id: str, capacity: int) -> Facility | None:
        return await self.update_facility(facility_id, UpdateFacilityData(capacity=capacity))

    async def update_facility_amenities(self, facility_id: str, amenities: list[str]) -> Facility | None:
        return await self.update_facility(facility_id, UpdateFacilityData(amenities=amenities))

    async def update_facility_images(self, facility_id: str, images: list[str]) -> Facility | None:
        return await self.update_facility(facility_id, UpdateFacilityData(images=images))

    async def delete_facility(self, facility_id: str) -> bool:
        token = token_for(self._engine, facility_id)
        if token is None:
            return False

        async def _confirm(_token: str) -> dict[str, Any]:
            return await self._api.request("DELETE", f"/api/facilities/{facility_id}")

        await self._engine.remove(token, _confirm)
        if self._on_deleted is not None:
            self._on_deleted(facility_id)
        return True

    async def batch_update_status(self, facility_ids: Iterable[str], status: FacilityStatus) -> list[Facility]:
        """Set one status on several facilities with a single confirmation.

        Either every facility keeps the new status or all are restored.
        """
        status = FacilityStatus(status)
        id_by_token: dict[str, str] = {}
        for facility_id in facility_ids:
            token = token_for(self._engine, facility_id)
            if token is not None:
                id_by_token[token] = facility_id

        async def _confirm(patches: list[Any]) -> list[Facility]:
            body = {"ids": [id_by_token[p.id] for p in patches], "status": status.value}
            payload = await self._api.request("PATCH", "/api/facilities", json_body=body)
            items = payload.get("facilities")
            return [Facility.model_validate(item) for item in items] if isinstance(items, list) else []

        return await self._engine.batch_update(
            [(token, {"status": status}) for token in id_by_token], _confirm
        )

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_facility_by_id(self, facility_id: str) -> Facility | None:
        return next((f for f in self.facilities if f.id == facility_id), None)

    def get_facilities_by_status(self, status: FacilityStatus) -> list[Facility]:
        return [f for f in self.facilities if f.status == status]

    def get_facilities_by_organization(self, organization_id: str) -> list[Facility]:
        return [f for f in self.facilities if f.organization_id == organization_id]

    def get_active_facilities(self) -> list[Facility]:
        return self.get_facilities_by_status(FacilityStatus.ACTIVE)

    def get_inactive_facilities(self) -> list[Facility]:
        return self.get_facilities_by_status(FacilityStatus.INACTIVE)

    def get_maintenance_facilities(self) -> list[Facility]:
        return self.get_facilities_by_status(FacilityStatus.MAINTENANCE)

    def search_facilities(self, query: str) -> list[Facility]:
        """Case-insensitive match on name, description and location."""
        needle = query.lower()
        return [
            f
            for f in self.facilities
            if needle in f.name.lower()
            or needle in (f.description or "").lower()
            or needle in (f.location or "").lower()
        ]

    def get_facilities_by_amenity(self, amenity: str) -> list[Facility]:
        return [f for f in self.facilities if amenity in f.amenities]

    def get_facilities_by_capacity(self, min_capacity: int) -> list[Facility]:
        return [f for f in self.facilities if f.capacity is not None and f.capacity >= min_capacity]
