"""
Record business logic.

Each function backs one generated route. Client mistakes become
HTTPException(400/404); backend rejections propagate as BackendError and are
rendered as 400 by `core.errors`; anything else is a 500.
"""

from __future__ import annotations

import logging
import math
from typing import Any

from fastapi import HTTPException, status

from core.backend import BackendError, SelectResult, SupabaseBackend
from ingestion import chunking
from ingestion import service as ingestion_service

from . import repository
from .schemas import MessageResponse, PageResponse

logger = logging.getLogger(__name__)

# Plain bulk create sends large batches; bulk-upload uses small configurable ones.
BULK_CREATE_CHUNK_SIZE = 5000


def parse_int(raw: str | None) -> int | None:
    """
    Lenient integer parsing for query strings: junk becomes None.
    """
    text = (raw or "").strip()
    if not text:
        return None
    try:
        return int(text)
    except ValueError:
        return None


def parse_page(raw: str | None) -> int:
    return max(1, parse_int(raw) or 1)


def parse_chunk_size(raw: str | None) -> int:
    return max(1, parse_int(raw) or chunking.DEFAULT_CHUNK_SIZE)


def _to_page(page: int, result: SelectResult) -> PageResponse:
    total = result.count
    total_pages = math.ceil(total / repository.PAGE_SIZE) if total is not None else None
    return PageResponse(page=page, total=total, totalPages=total_pages, results=result.rows)


async def create(backend: SupabaseBackend, table: str, body: Any) -> dict[str, Any]:
    if isinstance(body, list):
        # Stops at the first failing chunk; earlier chunks stay written.
        for chunk in chunking.chunked(body, BULK_CREATE_CHUNK_SIZE):
            await repository.insert_many(backend, table, chunk)
        logger.info("bulk_create table=%s records=%s", table, len(body))
        return MessageResponse(message=f"{len(body)} records inserted into {table}").model_dump()

    if isinstance(body, dict):
        return await repository.insert_one(backend, table, body)

    raise HTTPException(
        status_code=status.HTTP_400_BAD_REQUEST,
        detail="Body must be a JSON object or an array of objects.",
    )


async def list_records(backend: SupabaseBackend, table: str, *, page: int) -> PageResponse:
    result = await repository.list_page(backend, table, page=page)
    return _to_page(page, result)


async def list_with_video(backend: SupabaseBackend, table: str, *, page: int) -> PageResponse:
    result = await repository.list_page(backend, table, page=page, filters=repository.WITH_VIDEO_FILTERS)
    return _to_page(page, result)


async def get_record(backend: SupabaseBackend, table: str, record_id: int | str) -> dict[str, Any]:
    try:
        row = await repository.get_by_id(backend, table, record_id)
    except BackendError as exc:
        # e.g. a non-numeric id against a bigint column: treat as a miss.
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=exc.message) from exc
    if row is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"No {table} row with id {record_id}",
        )
    return row


async def search(
    backend: SupabaseBackend,
    table: str,
    *,
    q: str | None,
    record_id: str | None,
    page: int,
    exact_count: bool = False,
) -> dict[str, Any] | PageResponse:
    record_id = (record_id or "").strip()
    q = (q or "").strip()

    if record_id:
        return await get_record(backend, table, record_id)

    if not q:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Provide either ?q or ?id",
        )

    result = await repository.search_by_title(
        backend,
        table,
        q,
        page=page,
        count="exact" if exact_count else "estimated",
    )
    return _to_page(page, result)


async def update(backend: SupabaseBackend, table: str, record_id: str, body: Any) -> dict[str, Any]:
    if not isinstance(body, dict) or not body:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Body must be a non-empty JSON object.",
        )

    row = await repository.update_by_id(backend, table, record_id, body)
    if row is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"No {table} row with id {record_id}",
        )
    return row


async def delete(backend: SupabaseBackend, table: str, record_id: str) -> MessageResponse:
    await repository.delete_by_id(backend, table, record_id)
    return MessageResponse(message=f"{table} with id {record_id} deleted")


def _bulk_source(body: Any) -> tuple[list[Any] | None, str | None]:
    """
    Returns (items, file_url); exactly one of them is set.
    """
    if isinstance(body, list):
        return body, None

    if isinstance(body, dict):
        items = body.get("items")
        file_url = body.get("fileUrl")
        has_items = isinstance(items, list)
        has_url = isinstance(file_url, str) and bool(file_url.strip())
        if has_items and not has_url:
            return items, None
        if has_url and not has_items:
            return None, file_url.strip()

    raise HTTPException(
        status_code=status.HTTP_400_BAD_REQUEST,
        detail="Provide either an array body, { items: [...] }, or { fileUrl } pointing to NDJSON",
    )


async def bulk_upload(backend: SupabaseBackend, table: str, body: Any, *, chunk_size: int) -> MessageResponse:
    items, file_url = _bulk_source(body)

    if items is not None:
        result = await ingestion_service.insert_chunks(
            backend,
            table,
            items,
            chunk_size=chunk_size,
            mode=ingestion_service.MODE_SKIP,
        )
        if result.error:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=result.error)
        return MessageResponse(
            message=f"Inserted {result.inserted_total} records into {table} in chunks of {chunk_size}"
        )

    total = await ingestion_service.ingest_ndjson_from_url(backend, table, file_url, chunk_size=chunk_size)
    return MessageResponse(message=f"Stream-inserted {total} records into {table} in chunks of {chunk_size}")
