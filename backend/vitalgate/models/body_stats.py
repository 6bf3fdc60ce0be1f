"""
Body Stats Schemas
==================
Pydantic models for the body-stats API.

Tape measurements are entered by the user (centimetres, 0–500). Weight,
height and BMI are not entered here; their history comes from the device
samples ingested through the health endpoints.
"""

from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

BODY_STAT_FIELDS: tuple[str, ...] = (
    "waist",
    "neck",
    "chest",
    "right_arm",
    "left_arm",
    "right_forearm",
    "left_forearm",
    "shoulders",
    "hips",
    "right_thigh",
    "left_thigh",
    "right_calve",
    "left_calve",
)

# Fields served from device samples rather than body_stats rows
DEVICE_FIELDS: tuple[str, ...] = ("weight", "height", "bmi")

HISTORY_FIELDS: tuple[str, ...] = BODY_STAT_FIELDS + DEVICE_FIELDS

PERIODS: tuple[str, ...] = ("month", "year", "all")

DEFAULT_PERIOD = "month"


def _measurement() -> Any:
    return Field(default=None, ge=0, le=500)


# ---------------------------------------------------------------------------
# Request
# ---------------------------------------------------------------------------


class BodyStatsUpdate(BaseModel):
    """Today's measurements. Omitted fields are left untouched; ``null`` clears."""

    model_config = ConfigDict(extra="forbid")

    waist: Optional[float] = _measurement()
    neck: Optional[float] = _measurement()
    chest: Optional[float] = _measurement()
    right_arm: Optional[float] = _measurement()
    left_arm: Optional[float] = _measurement()
    right_forearm: Optional[float] = _measurement()
    left_forearm: Optional[float] = _measurement()
    shoulders: Optional[float] = _measurement()
    hips: Optional[float] = _measurement()
    right_thigh: Optional[float] = _measurement()
    left_thigh: Optional[float] = _measurement()
    right_calve: Optional[float] = _measurement()
    left_calve: Optional[float] = _measurement()

    @model_validator(mode="after")
    def at_least_one_field(self) -> BodyStatsUpdate:
        if not self.model_fields_set:
            raise ValueError("At least one field is required")
        return self

    def changes(self) -> dict[str, Optional[float]]:
        return self.model_dump(exclude_unset=True)


# ---------------------------------------------------------------------------
# Response
# ---------------------------------------------------------------------------


class HistoryPoint(BaseModel):
    record_date: str  # yyyy-mm-dd
    value: Optional[float] = None


class BodyStatHistory(BaseModel):
    field: str
    period: str
    history: list[HistoryPoint]


class LatestValue(BaseModel):
    value: Optional[float] = None
    record_date: Optional[str] = None
