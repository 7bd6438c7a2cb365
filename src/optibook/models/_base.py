"""Base model for console data API payloads.

Every domain model inherits from :class:`ConsoleModel` which provides:

* ``alias_generator=to_camel`` so camelCase API keys map automatically
  to snake_case fields (``facilityId`` -> ``facility_id``).
* ``frozen=True`` so record data only changes through the record store's
  partial merge (``model_copy(update=...)``).
* :meth:`ConsoleModel.to_api` for request bodies.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class ConsoleModel(BaseModel):
    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        populate_by_name=True,
        alias_generator=to_camel,
    )

    def to_api(self, *, exclude_unset: bool = False) -> dict[str, Any]:
        """JSON-ready camelCase payload."""
        return self.model_dump(mode="json", by_alias=True, exclude_unset=exclude_unset)


def unwrap(payload: dict[str, Any], key: str) -> dict[str, Any]:
    """Return ``payload[key]`` when the API wraps the object, else the payload itself."""
    inner = payload.get(key)
    if isinstance(inner, dict):
        return inner
    return payload


def camel_patch(changes: Mapping[str, Any]) -> dict[str, Any]:
    """Snake-case partial update as a camelCase request body."""
    return {to_camel(key): value for key, value in changes.items()}
