"""
Query Builder
=============
Chained ``where / order_by / limit`` queries for entities, translated
into the PostgREST filter calls the Supabase client understands.

    BodyStats.where("user_id", user_id)
             .where("record_date", ">=", "2026-01-01")
             .order_by("record_date")
             .get()

The builder only accumulates options; nothing touches the database until
``get()``, ``get_all()``, ``first()`` or ``exists()`` is called.
``options()`` exposes the accumulated options as a plain dict, which is
what the entity layer and the tests reason about.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Generic, Iterable, Optional, TypeVar

if TYPE_CHECKING:
    from vitalgate.db.entity import Entity

E = TypeVar("E", bound="Entity")

# Comparison operator -> PostgREST filter method on the request builder
OPERATORS: dict[str, str] = {
    "=": "eq",
    "!=": "neq",
    ">": "gt",
    ">=": "gte",
    "<": "lt",
    "<=": "lte",
    "in": "in_",
}

_MISSING = object()

# PostgREST's default max-rows
PAGE_SIZE = 1000


@dataclass(frozen=True)
class Condition:
    field: str
    operator: str
    value: Any

    @property
    def method(self) -> str:
        return OPERATORS[self.operator]


@dataclass(frozen=True)
class Ordering:
    field: str
    descending: bool = False


class QueryBuilder(Generic[E]):
    """Accumulates query options for one entity class."""

    def __init__(self, entity: type[E]) -> None:
        self._entity = entity
        self._conditions: list[Condition] = []
        self._orderings: list[Ordering] = []
        self._limit: Optional[int] = None
        self._offset: Optional[int] = None

    # ---- Chaining --------------------------------------------------------

    def where(self, field: str, operator: Any, value: Any = _MISSING) -> QueryBuilder[E]:
        """Add a filter. ``where(f, v)`` is shorthand for ``where(f, "=", v)``."""
        if value is _MISSING:
            operator, value = "=", operator
        if operator not in OPERATORS:
            raise ValueError(f"Unsupported operator: {operator!r}")
        if operator == "in":
            value = list(value)
        self._conditions.append(Condition(field, operator, value))
        return self

    def where_in(self, field: str, values: Iterable[Any]) -> QueryBuilder[E]:
        return self.where(field, "in", values)

    def order_by(self, field: str, direction: str = "asc") -> QueryBuilder[E]:
        direction = direction.lower()
        if direction not in ("asc", "desc"):
            raise ValueError(f"Unsupported order direction: {direction!r}")
        self._orderings.append(Ordering(field, descending=direction == "desc"))
        return self

    def limit(self, count: int) -> QueryBuilder[E]:
        if count < 0:
            raise ValueError("limit must be non-negative")
        self._limit = count
        return self

    def offset(self, count: int) -> QueryBuilder[E]:
        if count < 0:
            raise ValueError("offset must be non-negative")
        self._offset = count
        return self

    def options(self) -> dict[str, Any]:
        """Return the accumulated native query options."""
        return {
            "where": [(c.field, c.operator, c.value) for c in self._conditions],
            "order": [(o.field, "desc" if o.descending else "asc") for o in self._orderings],
            "limit": self._limit,
            "offset": self._offset,
        }

    # ---- Execution -------------------------------------------------------

    def get(self) -> list[E]:
        """Run the query and hydrate every returned row."""
        return [self._entity.model_validate(row) for row in self._execute()]

    def first(self) -> Optional[E]:
        """Run the query with ``limit 1`` and return the row, if any."""
        previous = self._limit
        self._limit = 1
        try:
            rows = self._execute()
        finally:
            self._limit = previous
        return self._entity.model_validate(rows[0]) if rows else None

    def get_all(self, page_size: int = PAGE_SIZE) -> list[E]:
        """Run the query page by page until the table is exhausted.

        PostgREST silently truncates a single response at the server's
        ``max-rows``, which may be below ``page_size``; paging stops on the
        first empty page, so a lower cap only costs extra round-trips. The
        query must be ordered for the pages to line up.
        """
        if page_size < 1:
            raise ValueError("page_size must be positive")
        previous = (self._limit, self._offset)
        rows: list[dict[str, Any]] = []
        try:
            while True:
                self._offset, self._limit = len(rows), page_size
                page = self._execute()
                if not page:
                    break
                rows.extend(page)
        finally:
            self._limit, self._offset = previous
        return [self._entity.model_validate(row) for row in rows]

    def exists(self) -> bool:
        return self.first() is not None

    def _execute(self) -> list[dict[str, Any]]:
        # An empty IN list can never match; skip the round-trip.
        if any(c.operator == "in" and not c.value for c in self._conditions):
            return []
        request = self.apply(self._entity.table().select("*"))
        result = request.execute()
        return list(result.data or [])

    def apply(self, request: Any) -> Any:
        """Translate the accumulated options onto a PostgREST request builder."""
        for condition in self._conditions:
            request = getattr(request, condition.method)(condition.field, condition.value)
        for ordering in self._orderings:
            request = request.order(ordering.field, desc=ordering.descending)
        if self._offset is not None:
            # PostgREST ranges are inclusive on both ends
            end = self._offset + (self._limit if self._limit is not None else PAGE_SIZE) - 1
            request = request.range(self._offset, end)
        elif self._limit is not None:
            request = request.limit(self._limit)
        return request
