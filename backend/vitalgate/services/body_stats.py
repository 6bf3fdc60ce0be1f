"""
Body Stats Service
==================
One ``body_stats`` row per user per UTC day, plus the history and
"latest value" views the app's charts are drawn from.

History sources:
- tape measurements (waist, neck, ...): the user's body_stats rows
- weight / height: device samples from body_measurement_weight/height,
  reduced to one point per UTC day (the last sample of that day)
- bmi: daily weight / latest height², rounded to one decimal

Heights are stored in metres, as the device health store reports them.
"""

from __future__ import annotations

import logging
import math
from datetime import datetime, timezone
from typing import Optional
from uuid import uuid4

import pandas as pd

from vitalgate.db.entities import (
    BodyMeasurement,
    BodyMeasurementHeight,
    BodyMeasurementWeight,
    BodyStats,
)
from vitalgate.models.body_stats import (
    BODY_STAT_FIELDS,
    HISTORY_FIELDS,
    PERIODS,
    HistoryPoint,
    LatestValue,
)

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------


class BodyStatsError(Exception):
    """Raised for invalid history queries and storage failures."""


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def today() -> str:
    return datetime.now(timezone.utc).date().isoformat()


def period_start(period: str, now: Optional[datetime] = None) -> Optional[pd.Timestamp]:
    """Start of the history window: one calendar month/year back, or None."""
    if period == "all":
        return None
    current = pd.Timestamp(now or datetime.now(timezone.utc))
    if period == "month":
        return current - pd.DateOffset(months=1)
    if period == "year":
        return current - pd.DateOffset(years=1)
    raise BodyStatsError(f"Invalid period. Must be one of: {', '.join(PERIODS)}")


def epoch_ms_to_date(epoch_ms: int) -> str:
    return datetime.fromtimestamp(epoch_ms / 1000, tz=timezone.utc).date().isoformat()


def bmi(weight: float, height: float) -> float:
    """kg / m², rounded half-up to one decimal."""
    return math.floor(weight / (height * height) * 10 + 0.5) / 10


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------


class BodyStatsService:
    # ---- Writes ----------------------------------------------------------

    def create_or_update_today(self, user_id: str, data: dict[str, Optional[float]]) -> BodyStats:
        """Insert today's record, or update only the supplied fields of it."""
        record_date = today()
        now = datetime.now(timezone.utc).isoformat()
        try:
            if BodyStats.find_one(user_id=user_id, record_date=record_date) is None:
                # A concurrent first write of the day may win; its row is kept
                # and the fields below are applied on top of it.
                BodyStats.upsert_many(
                    [
                        {
                            "id": str(uuid4()),
                            "user_id": user_id,
                            "record_date": record_date,
                            "created_at": now,
                            "updated_at": now,
                        }
                    ],
                    on_conflict="user_id,record_date",
                    ignore_duplicates=True,
                )

            updated = BodyStats.update_where(
                {**data, "updated_at": now}, user_id=user_id, record_date=record_date
            )
            if not updated:
                raise RuntimeError(f"body_stats row for {record_date} vanished during update")
            return updated[0]
        except Exception as exc:
            logger.exception("Failed to store body stats for user %s", user_id)
            raise BodyStatsError("Failed to create or update body stats") from exc

    # ---- Reads -----------------------------------------------------------

    def get_today(self, user_id: str) -> Optional[BodyStats]:
        return BodyStats.find_one(user_id=user_id, record_date=today())

    def get_history(self, user_id: str, field: str, period: str = "month") -> list[HistoryPoint]:
        if field not in HISTORY_FIELDS:
            raise BodyStatsError(f"Invalid field. Must be one of: {', '.join(HISTORY_FIELDS)}")
        start = period_start(period)

        if field == "weight":
            return _to_points(self._daily_samples(BodyMeasurementWeight, user_id, start))
        if field == "height":
            return _to_points(self._daily_samples(BodyMeasurementHeight, user_id, start))
        if field == "bmi":
            return self._bmi_history(user_id, start)

        query = BodyStats.where("user_id", user_id)
        if start is not None:
            query = query.where("record_date", ">=", start.date().isoformat())
        records = query.order_by("record_date").get_all()

        return [
            HistoryPoint(record_date=record.record_date, value=getattr(record, field))
            for record in records
            if getattr(record, field) is not None
        ]

    def get_latest(self, user_id: str) -> dict[str, LatestValue]:
        latest: dict[str, LatestValue] = {}

        weight = _latest_sample(BodyMeasurementWeight, user_id)
        height = _latest_sample(BodyMeasurementHeight, user_id)
        latest["weight"] = _sample_value(weight)
        latest["height"] = _sample_value(height)

        if weight is not None and weight.value is not None and height is not None and (height.value or 0) > 0:
            latest["bmi"] = LatestValue(
                value=bmi(weight.value, height.value),
                record_date=epoch_ms_to_date(max(weight.time, height.time)),
            )
        else:
            latest["bmi"] = LatestValue()

        records = BodyStats.where("user_id", user_id).order_by("record_date", "desc").get_all()
        for field in BODY_STAT_FIELDS:
            match = next((r for r in records if getattr(r, field) is not None), None)
            latest[field] = (
                LatestValue(value=getattr(match, field), record_date=match.record_date)
                if match
                else LatestValue()
            )

        return latest

    # ---- Device samples --------------------------------------------------

    def _daily_samples(
        self, entity: type[BodyMeasurement], user_id: str, start: Optional[pd.Timestamp]
    ) -> pd.Series:
        """Last sample of each UTC day, indexed by ``yyyy-mm-dd``."""
        query = entity.where("user_id", user_id)
        if start is not None:
            query = query.where("time", ">=", int(start.timestamp() * 1000))
        samples = query.order_by("time").order_by("id").get_all()

        frame = pd.DataFrame(
            [{"time": s.time, "value": s.value} for s in samples if s.value is not None],
            columns=["time", "value"],
        )
        if frame.empty:
            return pd.Series(dtype="float64")

        frame = frame.sort_values("time", kind="stable")
        frame["record_date"] = pd.to_datetime(frame["time"], unit="ms", utc=True).dt.strftime("%Y-%m-%d")
        return frame.groupby("record_date", sort=True)["value"].last()

    def _bmi_history(self, user_id: str, start: Optional[pd.Timestamp]) -> list[HistoryPoint]:
        height = _latest_sample(BodyMeasurementHeight, user_id)
        if height is None or not height.value or height.value <= 0:
            return []

        weights = self._daily_samples(BodyMeasurementWeight, user_id, start)
        return _to_points(weights.map(lambda w: bmi(w, height.value)))


def _latest_sample(entity: type[BodyMeasurement], user_id: str) -> Optional[BodyMeasurement]:
    return entity.where("user_id", user_id).order_by("time", "desc").first()


def _sample_value(sample: Optional[BodyMeasurement]) -> LatestValue:
    if sample is None:
        return LatestValue()
    return LatestValue(value=sample.value, record_date=epoch_ms_to_date(sample.time))


def _to_points(series: pd.Series) -> list[HistoryPoint]:
    return [HistoryPoint(record_date=str(day), value=float(value)) for day, value in series.items()]
