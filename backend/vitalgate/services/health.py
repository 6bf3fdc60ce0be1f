"""
Health Ingestion Service
========================
Stores batches of device body-measurement samples.

Samples are keyed by the id the device health store assigned them, so
ingestion is idempotent: ids already stored are reported as skipped and
never written twice. Re-posting the same batch is a no-op, including when
two uploaders post overlapping batches at once: the write is an upsert
that ignores ids another request stored in the meantime.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Sequence

from vitalgate.db.entities import (
    BodyMeasurement,
    BodyMeasurementBasalMetabolicRate,
    BodyMeasurementBodyFat,
    BodyMeasurementBodyWaterMass,
    BodyMeasurementBoneMass,
    BodyMeasurementHeight,
    BodyMeasurementLeanBodyMass,
    BodyMeasurementWeight,
)
from vitalgate.models.health import ITEM_MODELS, HealthItem, IngestResult, PermissionInfo

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Permission config
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PermissionConfig:
    entity: type[BodyMeasurement]
    unit: str

    @property
    def value_field(self) -> str:
        return self.entity.value_field


PERMISSION_CONFIG: dict[str, PermissionConfig] = {
    "Weight": PermissionConfig(BodyMeasurementWeight, "kg"),
    "Height": PermissionConfig(BodyMeasurementHeight, "m"),
    "BodyFat": PermissionConfig(BodyMeasurementBodyFat, "%"),
    "BodyWaterMass": PermissionConfig(BodyMeasurementBodyWaterMass, "kg"),
    "BoneMass": PermissionConfig(BodyMeasurementBoneMass, "kg"),
    "LeanBodyMass": PermissionConfig(BodyMeasurementLeanBodyMass, "kg"),
    "BasalMetabolicRate": PermissionConfig(BodyMeasurementBasalMetabolicRate, "kcal/day"),
}


class UnsupportedPermissionError(Exception):
    def __init__(self, permission: str) -> None:
        self.permission = permission
        super().__init__(f"Unsupported permission: {permission}")


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------


class HealthService:
    def store(self, user_id: str, permission: str, items: Sequence[HealthItem]) -> IngestResult:
        config = PERMISSION_CONFIG.get(permission)
        if config is None:
            raise UnsupportedPermissionError(permission)

        entity = config.entity
        ids = [item.id for item in items]
        existing = entity.query().where_in("id", ids).order_by("id").get_all()
        existing_ids = {row.id for row in existing}

        rows = [
            {
                "id": item.id,
                "user_id": user_id,
                "data_origin": item.data_origin,
                "time": item.time,
                config.value_field: item.value,
            }
            for item in items
            if item.id not in existing_ids
        ]
        stored_ids = {
            row.id for row in entity.upsert_many(rows, on_conflict="id", ignore_duplicates=True)
        }

        skipped = [item_id for item_id in ids if item_id not in stored_ids]
        logger.info(
            "Stored %d %s samples for user %s (%d already present)",
            len(stored_ids), permission, user_id, len(skipped),
        )
        return IngestResult(inserted=len(stored_ids), skipped=skipped)

    def permissions(self) -> list[PermissionInfo]:
        return [
            PermissionInfo(name=name, value_field=ITEM_MODELS[name].value_field, unit=config.unit)
            for name, config in PERMISSION_CONFIG.items()
        ]
