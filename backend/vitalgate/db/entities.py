"""
Entities
========
Table-backed models. Column names are snake_case; the mobile wire format
(camelCase ``dataOrigin`` etc.) is handled by the request schemas in
``vitalgate.models``, not here.

Tables:
    users                               one row per account
    body_stats                          UNIQUE(user_id, record_date)
    body_measurement_<kind>             UNIQUE(id), vendor-assigned sample id
"""

from __future__ import annotations

from datetime import date, datetime
from typing import ClassVar, Optional

from vitalgate.db.entity import Entity


class User(Entity):
    __table__ = "users"

    id: str
    email: str
    password: str
    full_name: str
    fcm_token: Optional[str] = None
    birthdate: Optional[date] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class BodyStats(Entity):
    """User-entered body measurements (centimetres), one record per day."""

    __table__ = "body_stats"

    id: str
    user_id: str
    record_date: str  # yyyy-mm-dd, UTC
    waist: Optional[float] = None
    neck: Optional[float] = None
    chest: Optional[float] = None
    right_arm: Optional[float] = None
    left_arm: Optional[float] = None
    right_forearm: Optional[float] = None
    left_forearm: Optional[float] = None
    shoulders: Optional[float] = None
    hips: Optional[float] = None
    right_thigh: Optional[float] = None
    left_thigh: Optional[float] = None
    right_calve: Optional[float] = None
    left_calve: Optional[float] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


# ---------------------------------------------------------------------------
# Device-sourced body measurements
# ---------------------------------------------------------------------------


class BodyMeasurement(Entity):
    """Common columns of every device body-measurement table.

    ``time`` is the sample instant in epoch milliseconds, as reported by
    the device health store.
    """

    # Name of the column holding the measured value
    value_field: ClassVar[str]

    id: str
    user_id: Optional[str] = None
    data_origin: str
    time: int
    created_at: Optional[datetime] = None

    @property
    def value(self) -> Optional[float]:
        return getattr(self, self.value_field)


class BodyMeasurementWeight(BodyMeasurement):
    __table__ = "body_measurement_weight"
    value_field = "weight"

    weight: Optional[float] = None  # kilograms


class BodyMeasurementHeight(BodyMeasurement):
    __table__ = "body_measurement_height"
    value_field = "height"

    height: Optional[float] = None  # metres


class BodyMeasurementBodyFat(BodyMeasurement):
    __table__ = "body_measurement_body_fat"
    value_field = "percentage"

    percentage: Optional[float] = None


class BodyMeasurementBodyWaterMass(BodyMeasurement):
    __table__ = "body_measurement_body_water_mass"
    value_field = "mass"

    mass: Optional[float] = None  # kilograms


class BodyMeasurementBoneMass(BodyMeasurement):
    __table__ = "body_measurement_bone_mass"
    value_field = "mass"

    mass: Optional[float] = None  # kilograms


class BodyMeasurementLeanBodyMass(BodyMeasurement):
    __table__ = "body_measurement_lean_body_mass"
    value_field = "mass"

    mass: Optional[float] = None  # kilograms


class BodyMeasurementBasalMetabolicRate(BodyMeasurement):
    __table__ = "body_measurement_basal_metabolic_rate"
    value_field = "basal_metabolic_rate"

    basal_metabolic_rate: Optional[float] = None  # kcal/day
