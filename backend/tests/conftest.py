import re
from contextlib import asynccontextmanager
from datetime import datetime, timedelta, timezone

import httpx
import pytest
from fastapi.testclient import TestClient
from psycopg import errors as pg_errors

from teller_dashboard.config import DATA_DIR, settings
from teller_dashboard.main import create_app
from teller_dashboard.services.demo_dataset import DemoDataset

_INSERT = re.compile(r"INSERT INTO (\w+) \(([^)]*)\)")
_CONFLICT = re.compile(r"ON CONFLICT \(([^)]*)\)")
_RETURNING = re.compile(r"RETURNING (.*)$")
_SELECT = re.compile(r"SELECT (.*?) FROM (\w+)(?: WHERE (.*))?$")


def _projection(spec, row):
    result = {}
    for item in spec.split(","):
        item = item.strip()
        if " AS " in item:
            source, alias = (part.strip() for part in item.split(" AS "))
        else:
            source = alias = item
        result[alias] = row.get(source)
    return result


class FakeCursor:
    """Understands just enough SQL to back the manual-data stores."""

    def __init__(self, database):
        self.database = database
        self._rows = []

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        return False

    async def execute(self, query, params=()):
        normalized = " ".join(query.split())
        self.database.queries.append(normalized)
        self._rows = []

        if self.database.fail_with is not None:
            raise self.database.fail_with

        if normalized == "SELECT 1":
            self._rows = [{"?column?": 1}]
            return

        if normalized.startswith(("CREATE ", "ALTER ", "COMMENT ")):
            if "DROP CONSTRAINT" in normalized:
                self.database.constraints = [
                    name for name in self.database.constraints if not name.endswith("_account_id_fkey")
                ]
            return

        if "FROM pg_constraint" in normalized:
            self._rows = [{"conname": name} for name in sorted(self.database.constraints)]
            return

        if normalized.startswith("INSERT INTO"):
            self._insert(normalized, params)
            return

        match = _SELECT.match(normalized)
        if match:
            columns, table, where = match.groups()
            rows = self.database.tables.get(table, {}).values()
            if where:
                keys = [clause.split("=")[0].strip() for clause in where.split(" AND ")]
                rows = [row for row in rows if all(row.get(key) == value for key, value in zip(keys, params))]
            self._rows = [_projection(columns, row) for row in rows]
            return

        raise AssertionError(f"Unhandled query: {normalized}")

    def _insert(self, normalized, params):
        table, column_list = _INSERT.search(normalized).groups()
        columns = [column.strip() for column in column_list.split(",") if column.strip() != "updated_at"]
        values = dict(zip(columns, params))

        fk_accounts = self.database.fk_accounts
        if fk_accounts is not None and "account_id" in values and values["account_id"] not in fk_accounts:
            raise pg_errors.ForeignKeyViolation("insert or update violates foreign key constraint")

        keys = [column.strip() for column in _CONFLICT.search(normalized).group(1).split(",")]
        key = tuple(values[column] for column in keys)
        rows = self.database.tables.setdefault(table, {})
        existing = rows.get(key)

        if existing is not None and "DO NOTHING" in normalized:
            return

        row = existing if existing is not None else {}
        row.update(values)
        row["updated_at"] = self.database.next_timestamp()
        rows[key] = row

        returning = _RETURNING.search(normalized)
        if returning:
            self._rows = [_projection(returning.group(1), row)]

    async def fetchone(self):
        if not self._rows:
            return None
        return self._rows[0]

    async def fetchall(self):
        return list(self._rows)


class FakeConnection:
    def __init__(self, database):
        self.database = database

    def cursor(self):
        return FakeCursor(self.database)


class FakeDatabase:
    """Drop-in for ``Database``: same coroutine surface, tables kept in dicts."""

    def __init__(self):
        self.tables = {}
        self.queries = []
        self.constraints = []
        self.fk_accounts = None
        self.fail_with = None
        self.opened = False
        self.closed = False
        self._tick = 0

    def next_timestamp(self):
        self._tick += 1
        return datetime(2026, 1, 1, tzinfo=timezone.utc) + timedelta(seconds=self._tick)

    async def open(self):
        self.opened = True

    async def close(self):
        self.closed = True

    @asynccontextmanager
    async def connection(self):
        yield FakeConnection(self)

    async def ping(self):
        async with self.connection() as connection:
            async with connection.cursor() as cursor:
                await cursor.execute("SELECT 1")

    def writes(self):
        return [query for query in self.queries if query.startswith("INSERT INTO")]


@pytest.fixture
def fake_db():
    return FakeDatabase()


def _upstream_unreachable(request):
    raise httpx.ConnectError("upstream not configured in this test", request=request)


@pytest.fixture
def configure(monkeypatch):
    """Override fields on the shared settings object for one test."""

    def apply(**overrides):
        for name, value in overrides.items():
            monkeypatch.setattr(settings, name, value)
        return settings

    return apply


@pytest.fixture
def demo_dataset():
    return DemoDataset.from_file(DATA_DIR / "db.json")


@pytest.fixture
def make_client():
    def build(stores, upstream=None):
        http_client = httpx.AsyncClient(transport=httpx.MockTransport(upstream or _upstream_unreachable))
        return TestClient(create_app(stores=stores, http_client=http_client))

    return build
