"""
Sync Record Types
=================
The body-measurement data types the sync client reads from the device
health store, with the API permission each one is uploaded under, plus
the user-selectable history ranges and sync intervals.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional


@dataclass(frozen=True)
class DataType:
    name: str          # key in the device export, e.g. "body_fat"
    permission: str    # API path segment, e.g. "BodyFat"
    value_field: str   # wire name of the measured value


DATA_TYPES: tuple[DataType, ...] = (
    DataType("weight", "Weight", "weight"),
    DataType("height", "Height", "height"),
    DataType("body_fat", "BodyFat", "percentage"),
    DataType("body_water_mass", "BodyWaterMass", "mass"),
    DataType("bone_mass", "BoneMass", "mass"),
    DataType("lean_body_mass", "LeanBodyMass", "mass"),
    DataType("basal_metabolic_rate", "BasalMetabolicRate", "basalMetabolicRate"),
)

HISTORY_RANGE_DAYS: dict[str, int] = {
    "1 day": 1,
    "2 days": 2,
    "1 week": 7,
    "15 days": 15,
    "21 days": 21,
    "30 days": 30,
}
DEFAULT_HISTORY_RANGE = "1 week"

SYNC_INTERVAL_HOURS: dict[str, int] = {
    "Every 1 hour": 1,
    "Every 2 hours": 2,
    "Every 6 hours": 6,
    "Every 12 hours": 12,
    "Once a day": 24,
}
DEFAULT_SYNC_INTERVAL = "Every 1 hour"


def history_window(range_key: str, now: Optional[datetime] = None) -> tuple[datetime, datetime]:
    """Return ``(start, end)`` for a history range; unknown keys mean one week."""
    end = now or datetime.now(timezone.utc)
    days = HISTORY_RANGE_DAYS.get(range_key, HISTORY_RANGE_DAYS[DEFAULT_HISTORY_RANGE])
    return end - timedelta(days=days), end


def interval_seconds(interval_key: str) -> int:
    """Seconds between syncs for an interval option; unknown keys mean hourly."""
    hours = SYNC_INTERVAL_HOURS.get(interval_key, SYNC_INTERVAL_HOURS[DEFAULT_SYNC_INTERVAL])
    return hours * 3600


def to_epoch_ms(moment: datetime) -> int:
    return int(moment.timestamp() * 1000)
