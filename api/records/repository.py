"""
Record persistence.

Thin query helpers over the backend client for one catalog table
(movies / series / anime). No schema is enforced here; rows are passed
through to the backend as-is.
"""

from __future__ import annotations

from typing import Any

from core.backend import Filter, SelectResult, SupabaseBackend

PAGE_SIZE = 30
ORDER_COLUMN = "release_date"
TITLE_COLUMN = "original_title"
VIDEO_COLUMN = "video_url"

# Rows that have a playable video: not null and not empty.
WITH_VIDEO_FILTERS: tuple[Filter, ...] = (
    (VIDEO_COLUMN, "not_null", None),
    (VIDEO_COLUMN, "neq", ""),
)


def page_offset(page: int, *, page_size: int = PAGE_SIZE) -> int:
    return (page - 1) * page_size


async def list_page(
    backend: SupabaseBackend,
    table: str,
    *,
    page: int,
    filters: tuple[Filter, ...] = (),
    count: str = "exact",
) -> SelectResult:
    """
    One page of rows, newest release first.
    """
    return await backend.select(
        table,
        filters=filters,
        order=ORDER_COLUMN,
        descending=True,
        offset=page_offset(page),
        limit=PAGE_SIZE,
        count=count,
    )


async def search_by_title(
    backend: SupabaseBackend,
    table: str,
    query: str,
    *,
    page: int,
    count: str = "estimated",
) -> SelectResult:
    """
    Case-insensitive substring match on the original title.
    """
    return await list_page(
        backend,
        table,
        page=page,
        filters=((TITLE_COLUMN, "ilike", f"%{query}%"),),
        count=count,
    )


async def get_by_id(backend: SupabaseBackend, table: str, record_id: int | str) -> dict[str, Any] | None:
    result = await backend.select(table, filters=(("id", "eq", record_id),), limit=1)
    return result.rows[0] if result.rows else None


async def insert_one(backend: SupabaseBackend, table: str, row: dict[str, Any]) -> dict[str, Any]:
    rows = await backend.insert(table, [row], returning=True)
    if not rows:
        raise RuntimeError(f"Insert into {table} returned no row.")
    return rows[0]


async def insert_many(backend: SupabaseBackend, table: str, rows: list[dict[str, Any]]) -> None:
    await backend.insert(table, rows)


async def update_by_id(
    backend: SupabaseBackend,
    table: str,
    record_id: int | str,
    values: dict[str, Any],
) -> dict[str, Any] | None:
    """
    Returns the updated row, or None when no row has this id.
    """
    rows = await backend.update(table, values, filters=(("id", "eq", record_id),))
    return rows[0] if rows else None


async def delete_by_id(backend: SupabaseBackend, table: str, record_id: int | str) -> None:
    await backend.delete(table, filters=(("id", "eq", record_id),))
