"""
Entity Base
===========
Active-record style base for the pydantic models that map onto Supabase
tables. Subclasses declare ``__table__`` and their columns; class methods
give the rest of the app a small, uniform persistence API:

    User.find(user_id)
    User.find_one(email=email)
    BodyStats.where("user_id", user_id).order_by("record_date", "desc").get()
    BodyStats.update_where({"waist": 80}, user_id=user_id, record_date=today)
    BodyMeasurementWeight.upsert_many(rows, on_conflict="id", ignore_duplicates=True)
"""

from __future__ import annotations

import logging
from typing import Any, ClassVar, Optional, TypeVar

from pydantic import BaseModel, ConfigDict

from vitalgate.db.query import QueryBuilder
from vitalgate.db.supabase import get_supabase_client

logger = logging.getLogger(__name__)

E = TypeVar("E", bound="Entity")


class Entity(BaseModel):
    """Base class for table-backed models."""

    __table__: ClassVar[str]
    __primary_key__: ClassVar[str] = "id"

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    # ---- Table access ----------------------------------------------------

    @classmethod
    def table(cls) -> Any:
        """Return a fresh request builder for this entity's table."""
        return get_supabase_client().table(cls.__table__)

    # ---- Query builder ---------------------------------------------------

    @classmethod
    def query(cls: type[E]) -> QueryBuilder[E]:
        return QueryBuilder(cls)

    @classmethod
    def where(cls: type[E], field: str, *args: Any) -> QueryBuilder[E]:
        return cls.query().where(field, *args)

    @classmethod
    def find(cls: type[E], key: Any) -> Optional[E]:
        return cls.query().where(cls.__primary_key__, key).first()

    @classmethod
    def find_one(cls: type[E], **conditions: Any) -> Optional[E]:
        query = cls.query()
        for field, value in conditions.items():
            query = query.where(field, value)
        return query.first()

    # ---- Writes ----------------------------------------------------------

    @classmethod
    def create(cls: type[E], **values: Any) -> E:
        """Insert one row and return it as stored."""
        rows = cls.insert_many([values])
        if not rows:
            logger.error("Insert into %s returned no rows", cls.__table__)
            raise RuntimeError(f"Failed to insert into {cls.__table__}")
        return rows[0]

    @classmethod
    def insert_many(cls: type[E], rows: list[dict[str, Any]]) -> list[E]:
        if not rows:
            return []
        result = cls.table().insert(rows).execute()
        return [cls.model_validate(row) for row in (result.data or [])]

    @classmethod
    def upsert_many(
        cls: type[E],
        rows: list[dict[str, Any]],
        on_conflict: str,
        ignore_duplicates: bool = False,
    ) -> list[E]:
        """Insert rows, resolving unique-key conflicts on ``on_conflict``.

        With ``ignore_duplicates`` conflicting rows are left untouched and
        only the rows actually written come back; otherwise they are merged.
        """
        if not rows:
            return []
        result = (
            cls.table()
            .upsert(rows, on_conflict=on_conflict, ignore_duplicates=ignore_duplicates)
            .execute()
        )
        return [cls.model_validate(row) for row in (result.data or [])]

    @classmethod
    def update_where(cls: type[E], values: dict[str, Any], **conditions: Any) -> list[E]:
        """Update every row matching ``conditions`` and return the updated rows."""
        if not conditions:
            raise ValueError("update_where requires at least one condition")
        request = cls.table().update(values)
        for field, value in conditions.items():
            request = request.eq(field, value)
        result = request.execute()
        return [cls.model_validate(row) for row in (result.data or [])]
