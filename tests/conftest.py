"""
Shared fixtures: an in-memory backend and an app wired to it.
"""

from __future__ import annotations

import copy
import time
from typing import Any, Iterable

import jwt
import pytest
from httpx import ASGITransport, AsyncClient

from core.backend import BackendError, SelectResult
from core.deps import get_backend
from main import create_app

TEST_SECRET = "test-secret"


class FakeBackend:
    """
    In-memory stand-in for SupabaseBackend with the same method surface.

    `calls` records every write as (method, table, row_count).
    """

    def __init__(self, tables: dict[str, list[dict[str, Any]]] | None = None) -> None:
        self.tables: dict[str, list[dict[str, Any]]] = {name: list(rows) for name, rows in (tables or {}).items()}
        self.calls: list[tuple[str, str, int]] = []
        self.fail_on_call: int | None = None
        # Select calls as (table, count_mode).
        self.selects: list[tuple[str, str | None]] = []
        self.fail_selects = False
        # Mimic a backend that cannot estimate: "estimated" counts come back as None.
        self.no_estimates = False
        self._next_id = 1000

    def _rows(self, table: str) -> list[dict[str, Any]]:
        return self.tables.setdefault(table, [])

    def _maybe_fail(self) -> None:
        if self.fail_on_call is not None and len(self.calls) == self.fail_on_call:
            raise BackendError("simulated backend failure", code="XX000")

    @staticmethod
    def _matches(row: dict[str, Any], filters: Iterable[tuple[str, str, Any]]) -> bool:
        for column, op, value in filters:
            current = row.get(column)
            if op == "eq" and str(current) != str(value):
                return False
            if op == "neq" and current is not None and str(current) == str(value):
                return False
            if op == "not_null" and current is None:
                return False
            if op == "ilike":
                needle = str(value).strip("%").lower()
                if current is None or needle not in str(current).lower():
                    return False
        return True

    async def select(
        self,
        table: str,
        *,
        filters=(),
        order=None,
        descending=False,
        offset=None,
        limit=None,
        count=None,
    ) -> SelectResult:
        self.selects.append((table, count))
        if self.fail_selects:
            raise BackendError('invalid input syntax for type bigint: "abc"', code="22P02")
        rows = [r for r in self._rows(table) if self._matches(r, filters)]
        if order:
            rows.sort(key=lambda r: str(r.get(order) or ""), reverse=descending)
        total = len(rows) if count else None
        if count == "estimated" and self.no_estimates:
            total = None
        start = offset or 0
        end = start + limit if limit is not None else None
        return SelectResult(rows=copy.deepcopy(rows[start:end]), count=total)

    async def insert(self, table: str, rows: list[dict[str, Any]], *, returning: bool = False) -> list[dict[str, Any]]:
        self.calls.append(("insert", table, len(rows)))
        self._maybe_fail()
        existing = {r.get("id") for r in self._rows(table)}
        prepared: list[dict[str, Any]] = []
        for row in rows:
            row = dict(row)
            if "id" not in row:
                self._next_id += 1
                row["id"] = self._next_id
            if row["id"] in existing:
                raise BackendError(
                    'duplicate key value violates unique constraint "%s_pkey"' % table,
                    code="23505",
                )
            existing.add(row["id"])
            prepared.append(row)
        self._rows(table).extend(prepared)
        return copy.deepcopy(prepared) if returning else []

    async def upsert(
        self,
        table: str,
        rows: list[dict[str, Any]],
        *,
        on_conflict: str = "id",
        ignore_duplicates: bool = False,
    ) -> None:
        self.calls.append(("upsert_ignore" if ignore_duplicates else "upsert_merge", table, len(rows)))
        self._maybe_fail()
        by_key = {r.get(on_conflict): r for r in self._rows(table)}
        for row in rows:
            current = by_key.get(row.get(on_conflict))
            if current is None:
                stored = dict(row)
                self._rows(table).append(stored)
                by_key[row.get(on_conflict)] = stored
            elif not ignore_duplicates:
                current.update(row)

    async def update(self, table: str, values: dict[str, Any], *, filters) -> list[dict[str, Any]]:
        self.calls.append(("update", table, 1))
        changed = []
        for row in self._rows(table):
            if self._matches(row, filters):
                row.update(values)
                changed.append(copy.deepcopy(row))
        return changed

    async def delete(self, table: str, *, filters) -> None:
        self.calls.append(("delete", table, 1))
        self.tables[table] = [r for r in self._rows(table) if not self._matches(r, filters)]

    async def aclose(self) -> None:
        return None


def make_token(*, secret: str = TEST_SECRET, expires_in: int = 3600, **claims: Any) -> str:
    now = int(time.time())
    payload = {"sub": "tester", "iat": now, "exp": now + expires_in, **claims}
    return jwt.encode(payload, secret, algorithm="HS256")


@pytest.fixture(autouse=True)
def _jwt_secret(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("JWT_SECRET", TEST_SECRET)
    monkeypatch.delenv("MY_API_KEY", raising=False)
    monkeypatch.delenv("JWT_ALG", raising=False)


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def app(backend: FakeBackend):
    application = create_app()
    application.dependency_overrides[get_backend] = lambda: backend
    yield application
    application.dependency_overrides.clear()


@pytest.fixture
def auth_headers() -> dict[str, str]:
    return {"Authorization": f"Bearer {make_token()}"}


@pytest.fixture
def call(app):
    """
    Issue one request against the app: `await call("GET", "/api/movies")`.
    """

    async def _call(method: str, url: str, **kwargs: Any):
        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            return await client.request(method, url, **kwargs)

    return _call


@pytest.fixture
def token_factory():
    return make_token
