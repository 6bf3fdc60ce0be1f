"""
Shared fixtures
===============
``fake_db`` replaces the Supabase client used by the entity layer with an
in-memory fake that understands the PostgREST calls the query builder
emits (select / insert / upsert / update, eq / neq / gt / gte / lt / lte / in_,
order, limit, range). Every table read and write in the app goes through
``vitalgate.db.entity``, so one patch covers routers and services alike.
"""

from __future__ import annotations

import copy
import uuid
from typing import Any, Callable, Optional
from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient

from vitalgate.core.security import TokenPayload, generate_access_token, hash_password

# ---------------------------------------------------------------------------
# In-memory Supabase fake
# ---------------------------------------------------------------------------


class _Result:
    def __init__(self, data: list[dict[str, Any]]) -> None:
        self.data = data


class FakeRequest:
    """One PostgREST request against a FakeSupabase table."""

    def __init__(self, db: FakeSupabase, table: str) -> None:
        self._db = db
        self._table = table
        self._op = "select"
        self._payload: Any = None
        self._filters: list[Callable[[dict[str, Any]], bool]] = []
        self._order: list[tuple[str, bool]] = []
        self._limit: Optional[int] = None
        self._range: Optional[tuple[int, int]] = None
        self._conflict: list[str] = []
        self._ignore_duplicates = False
        self.calls: list[tuple] = []
        db.requests.append(self)

    # ---- Operations ------------------------------------------------------

    def select(self, *columns: str) -> FakeRequest:
        self.calls.append(("select", columns))
        return self

    def insert(self, rows: Any) -> FakeRequest:
        self.calls.append(("insert", rows))
        self._op = "insert"
        self._payload = rows if isinstance(rows, list) else [rows]
        return self

    def upsert(self, rows: Any, on_conflict: str = "", ignore_duplicates: bool = False) -> FakeRequest:
        self.calls.append(("upsert", rows, on_conflict, ignore_duplicates))
        self._op = "upsert"
        self._payload = rows if isinstance(rows, list) else [rows]
        self._conflict = [c.strip() for c in on_conflict.split(",") if c.strip()] or ["id"]
        self._ignore_duplicates = ignore_duplicates
        return self

    def update(self, values: dict[str, Any]) -> FakeRequest:
        self.calls.append(("update", values))
        self._op = "update"
        self._payload = values
        return self

    # ---- Filters ---------------------------------------------------------

    def _filter(self, name: str, field: str, value: Any, test: Callable[[Any], bool]) -> FakeRequest:
        self.calls.append((name, field, value))
        self._filters.append(lambda row: test(row.get(field)))
        return self

    def eq(self, field: str, value: Any) -> FakeRequest:
        return self._filter("eq", field, value, lambda v: v == value)

    def neq(self, field: str, value: Any) -> FakeRequest:
        return self._filter("neq", field, value, lambda v: v != value)

    def gt(self, field: str, value: Any) -> FakeRequest:
        return self._filter("gt", field, value, lambda v: v is not None and v > value)

    def gte(self, field: str, value: Any) -> FakeRequest:
        return self._filter("gte", field, value, lambda v: v is not None and v >= value)

    def lt(self, field: str, value: Any) -> FakeRequest:
        return self._filter("lt", field, value, lambda v: v is not None and v < value)

    def lte(self, field: str, value: Any) -> FakeRequest:
        return self._filter("lte", field, value, lambda v: v is not None and v <= value)

    def in_(self, field: str, values: list[Any]) -> FakeRequest:
        return self._filter("in_", field, values, lambda v: v in values)

    # ---- Modifiers -------------------------------------------------------

    def order(self, field: str, desc: bool = False) -> FakeRequest:
        self.calls.append(("order", field, desc))
        self._order.append((field, desc))
        return self

    def limit(self, count: int) -> FakeRequest:
        self.calls.append(("limit", count))
        self._limit = count
        return self

    def range(self, start: int, end: int) -> FakeRequest:
        self.calls.append(("range", start, end))
        self._range = (start, end)
        return self

    # ---- Execution -------------------------------------------------------

    def execute(self) -> _Result:
        if self._db.fail_on == (self._table, self._op):
            raise RuntimeError(f"simulated {self._op} failure on {self._table}")

        rows = self._db.tables.setdefault(self._table, [])

        if self._op == "insert":
            taken = {row.get("id") for row in rows}
            if any(row.get("id") in taken for row in self._payload):
                raise RuntimeError("duplicate key value violates unique constraint")
            inserted = [copy.deepcopy(row) for row in self._payload]
            rows.extend(inserted)
            return _Result(copy.deepcopy(inserted))

        if self._op == "upsert":
            return _Result(self._upsert(rows))

        matched = [row for row in rows if all(f(row) for f in self._filters)]

        if self._op == "update":
            for row in matched:
                row.update(copy.deepcopy(self._payload))
            return _Result(copy.deepcopy(matched))

        for field, desc in reversed(self._order):
            matched.sort(key=lambda r: (r.get(field) is None, r.get(field)), reverse=desc)
        if self._range is not None:
            matched = matched[self._range[0]:self._range[1] + 1]
        elif self._limit is not None:
            matched = matched[: self._limit]
        if self._db.max_rows is not None:
            matched = matched[: self._db.max_rows]
        return _Result(copy.deepcopy(matched))

    def _upsert(self, rows: list[dict[str, Any]]) -> list[dict[str, Any]]:
        written = []
        for new in self._payload:
            key = [new.get(column) for column in self._conflict]
            current = next(
                (row for row in rows if [row.get(column) for column in self._conflict] == key),
                None,
            )
            if current is None:
                rows.append(copy.deepcopy(new))
                written.append(copy.deepcopy(new))
            elif not self._ignore_duplicates:
                current.update(copy.deepcopy(new))
                written.append(copy.deepcopy(current))
        return written


class FakeSupabase:
    def __init__(self) -> None:
        self.tables: dict[str, list[dict[str, Any]]] = {}
        self.requests: list[FakeRequest] = []
        # (table, op) whose execute() raises, to exercise storage failures
        self.fail_on: Optional[tuple[str, str]] = None
        # PostgREST max-rows: reads return at most this many rows
        self.max_rows: Optional[int] = None

    def table(self, name: str) -> FakeRequest:
        return FakeRequest(self, name)

    def seed(self, table: str, rows: list[dict[str, Any]]) -> None:
        self.tables.setdefault(table, []).extend(copy.deepcopy(rows))

    def rows(self, table: str) -> list[dict[str, Any]]:
        return self.tables.get(table, [])


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

TEST_PASSWORD = "secret123"


@pytest.fixture
def fake_db():
    db = FakeSupabase()
    with patch("vitalgate.db.entity.get_supabase_client", return_value=db):
        yield db


@pytest.fixture
def client():
    from vitalgate.main import app

    return TestClient(app)


@pytest.fixture
def user(fake_db) -> dict[str, Any]:
    row = {
        "id": str(uuid.uuid4()),
        "email": "jane@example.com",
        "password": hash_password(TEST_PASSWORD),
        "full_name": "Jane Doe",
        "fcm_token": "",
        "birthdate": None,
        "created_at": "2026-01-01T00:00:00+00:00",
        "updated_at": "2026-01-01T00:00:00+00:00",
    }
    fake_db.seed("users", [row])
    return row


@pytest.fixture
def auth_headers(user) -> dict[str, str]:
    token = generate_access_token(TokenPayload(user_id=user["id"], email=user["email"]))
    return {"Authorization": f"Bearer {token}"}
