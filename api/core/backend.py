"""
Backend data API (Supabase).

One instance is created at startup (see `api/main.py`) and handed to route
handlers through `core.deps.get_backend`. All mutable state lives in the
remote store; this object only wraps the SDK client so the rest of the app
(and the tests) depend on a small method surface instead of the query builder.

Filters are `(column, op, value)` tuples:
- ("id", "eq", 5)
- ("video_url", "neq", "")
- ("video_url", "not_null", None)
- ("original_title", "ilike", "%mat%")
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable

from postgrest.exceptions import APIError
from postgrest.types import ReturnMethod
from supabase import AsyncClient, acreate_client

from . import config

Filter = tuple[str, str, Any]


class BackendError(RuntimeError):
    """The backend rejected an operation (constraint violation, bad column, ...)."""

    def __init__(self, message: str, code: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.code = code


@dataclass(frozen=True)
class SelectResult:
    rows: list[dict[str, Any]]
    count: int | None = None


def _apply_filters(query: Any, filters: Iterable[Filter]) -> Any:
    for column, op, value in filters:
        if op == "eq":
            query = query.eq(column, value)
        elif op == "neq":
            query = query.neq(column, value)
        elif op == "not_null":
            query = query.not_.is_(column, "null")
        elif op == "ilike":
            query = query.ilike(column, value)
        else:
            raise ValueError(f"Unsupported filter operator: {op}")
    return query


class SupabaseBackend:
    def __init__(self, client: AsyncClient, *, url: str = "") -> None:
        self._client = client
        self.url = url

    @classmethod
    async def from_env(cls) -> "SupabaseBackend":
        url = config.supabase_url()
        client = await acreate_client(url, config.supabase_key())
        return cls(client, url=url)

    async def aclose(self) -> None:
        await self._client.postgrest.aclose()

    async def _execute(self, query: Any) -> Any:
        try:
            return await query.execute()
        except APIError as exc:
            raise BackendError(exc.message or str(exc), code=exc.code) from exc

    async def select(
        self,
        table: str,
        *,
        filters: Iterable[Filter] = (),
        order: str | None = None,
        descending: bool = False,
        offset: int | None = None,
        limit: int | None = None,
        count: str | None = None,
    ) -> SelectResult:
        query = self._client.table(table).select("*", count=count)
        query = _apply_filters(query, filters)
        if order:
            query = query.order(order, desc=descending)
        if limit is not None:
            # Ranges are inclusive on both ends.
            start = offset or 0
            query = query.range(start, start + limit - 1)

        resp = await self._execute(query)
        rows = resp.data if isinstance(resp.data, list) else []
        return SelectResult(rows=rows, count=resp.count if count else None)

    async def insert(
        self,
        table: str,
        rows: list[dict[str, Any]],
        *,
        returning: bool = False,
    ) -> list[dict[str, Any]]:
        method = ReturnMethod.representation if returning else ReturnMethod.minimal
        resp = await self._execute(self._client.table(table).insert(rows, returning=method))
        if not returning:
            return []
        return list(resp.data or [])

    async def upsert(
        self,
        table: str,
        rows: list[dict[str, Any]],
        *,
        on_conflict: str = "id",
        ignore_duplicates: bool = False,
    ) -> None:
        query = self._client.table(table).upsert(
            rows,
            on_conflict=on_conflict,
            ignore_duplicates=ignore_duplicates,
            returning=ReturnMethod.minimal,
        )
        await self._execute(query)

    async def update(
        self,
        table: str,
        values: dict[str, Any],
        *,
        filters: Iterable[Filter],
    ) -> list[dict[str, Any]]:
        query = _apply_filters(self._client.table(table).update(values), filters)
        resp = await self._execute(query)
        return list(resp.data or [])

    async def delete(self, table: str, *, filters: Iterable[Filter]) -> None:
        query = _apply_filters(self._client.table(table).delete(returning=ReturnMethod.minimal), filters)
        await self._execute(query)
