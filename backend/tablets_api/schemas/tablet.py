"""Tablet Schemas: Pydantic models for the tablet field bag and the tablet JSON shape.

Invariants:
    - TabletFields treats an absent key and an explicit null the same way (not provided)
    - price is coerced to float (numeric strings accepted); NaN/inf rejected
    - Unknown keys in a field bag are ignored
    - TabletResponse serializes with camelCase keys and ISO-8601 UTC timestamps

Design Decisions:
    - Presence checks live in services/tablet_operations.py, not here: the create
      path must report every missing field at once, before any type coercion
    - alias_generator=to_camel: Python attributes stay snake_case, wire keys match
      the frontend (genericName, createdAt, updatedAt)
"""

from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class TabletFields(BaseModel):
    """Field bag accepted by create and update."""
    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, extra="ignore",
    )

    name: str | None = None
    generic_name: str | None = None
    price: float | None = Field(None, allow_inf_nan=False)
    description: str | None = None

    def provided(self) -> dict:
        """Column values for the fields that were given (non-null)."""
        return self.model_dump(exclude_none=True)


class TabletResponse(BaseModel):
    """Public tablet representation."""
    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, from_attributes=True,
    )

    id: str
    name: str
    generic_name: str
    price: float
    description: str | None = None
    created_at: datetime
    updated_at: datetime

    @field_validator("created_at", "updated_at")
    @classmethod
    def assume_utc(cls, v: datetime) -> datetime:
        """Drivers without timezone support (SQLite) return naive UTC values."""
        return v if v.tzinfo is not None else v.replace(tzinfo=timezone.utc)

    def to_json(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)
