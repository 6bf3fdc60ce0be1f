"""
Health Ingestion Schemas
========================
Pydantic shapes for batches of device health samples posted by the
mobile client to ``POST /api/v1/health/{permission}``.

Every sample carries the device store's own UUID, the app that recorded
it (``dataOrigin``), the sample instant in epoch milliseconds and one
value column that depends on the permission.
"""

from __future__ import annotations

import uuid
from typing import ClassVar, Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field, field_validator

PERMISSIONS: tuple[str, ...] = (
    "Weight",
    "Height",
    "BodyFat",
    "BodyWaterMass",
    "BoneMass",
    "LeanBodyMass",
    "BasalMetabolicRate",
)

_UUID_VERSIONS = frozenset({1, 3, 4, 5})


# ---------------------------------------------------------------------------
# Items
# ---------------------------------------------------------------------------


class HealthItem(BaseModel):
    """Fields shared by every device sample."""

    model_config = ConfigDict(populate_by_name=True)

    # Wire name of the value column
    value_field: ClassVar[str]

    id: str
    data_origin: str = Field(..., alias="dataOrigin", min_length=1)
    time: int = Field(..., ge=0)

    @field_validator("id")
    @classmethod
    def valid_uuid(cls, value: str) -> str:
        try:
            parsed = uuid.UUID(value)
        except ValueError as exc:
            raise ValueError("id must be a valid UUID") from exc
        if parsed.version not in _UUID_VERSIONS:
            raise ValueError("id must be a valid UUID")
        return value

    @property
    def value(self) -> float:
        return self.model_dump(by_alias=True)[self.value_field]


class WeightItem(HealthItem):
    value_field = "weight"
    weight: float = Field(..., ge=0)


class HeightItem(HealthItem):
    value_field = "height"
    height: float = Field(..., ge=0)


class BodyFatItem(HealthItem):
    value_field = "percentage"
    percentage: float = Field(..., ge=0, le=100)


class BodyWaterMassItem(HealthItem):
    value_field = "mass"
    mass: float = Field(..., ge=0)


class BoneMassItem(HealthItem):
    value_field = "mass"
    mass: float = Field(..., ge=0)


class LeanBodyMassItem(HealthItem):
    value_field = "mass"
    mass: float = Field(..., ge=0)


class BasalMetabolicRateItem(HealthItem):
    value_field = "basalMetabolicRate"
    basal_metabolic_rate: float = Field(..., alias="basalMetabolicRate", ge=0)


ITEM_MODELS: dict[str, type[HealthItem]] = {
    "Weight": WeightItem,
    "Height": HeightItem,
    "BodyFat": BodyFatItem,
    "BodyWaterMass": BodyWaterMassItem,
    "BoneMass": BoneMassItem,
    "LeanBodyMass": LeanBodyMassItem,
    "BasalMetabolicRate": BasalMetabolicRateItem,
}


# ---------------------------------------------------------------------------
# Batch
# ---------------------------------------------------------------------------

ItemT = TypeVar("ItemT", bound=HealthItem)


class HealthBatch(BaseModel, Generic[ItemT]):
    data: list[ItemT] = Field(..., min_length=1)

    @field_validator("data")
    @classmethod
    def unique_ids(cls, items: list[ItemT]) -> list[ItemT]:
        seen: set[str] = set()
        for item in items:
            if item.id in seen:
                raise ValueError(f"Duplicate id in batch: {item.id}")
            seen.add(item.id)
        return items


def batch_model(permission: str) -> type[HealthBatch]:
    """Return the batch schema for ``permission`` (KeyError if unknown)."""
    return HealthBatch[ITEM_MODELS[permission]]  # type: ignore[index]


# ---------------------------------------------------------------------------
# Responses
# ---------------------------------------------------------------------------


class IngestResult(BaseModel):
    inserted: int
    skipped: list[str]


class PermissionInfo(BaseModel):
    name: str
    value_field: str
    unit: str
