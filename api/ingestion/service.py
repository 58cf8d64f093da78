"""
Ingestion "service layer".

This file contains write orchestration that is independent of FastAPI's
routing layer:
- chunked bulk insert (skip / merge / insert modes)
- streaming NDJSON ingestion from a remote URL

Both are strictly sequential: one backend write at a time, no retries, and no
rollback of chunks that were already written.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any

import httpx

from core.backend import BackendError, SupabaseBackend

from . import chunking

logger = logging.getLogger(__name__)

MODE_SKIP = "skip"
MODE_MERGE = "merge"
MODE_INSERT = "insert"

DEFAULT_FETCH_TIMEOUT_S = 60.0


def _http_client() -> httpx.AsyncClient:
    return httpx.AsyncClient(timeout=DEFAULT_FETCH_TIMEOUT_S, follow_redirects=True)


class FetchError(RuntimeError):
    pass


class IngestError(RuntimeError):
    pass


@dataclass(frozen=True)
class InsertResult:
    inserted_total: int
    error: str | None = None


async def _write_chunk(backend: SupabaseBackend, table: str, chunk: list[dict[str, Any]], mode: str) -> None:
    if mode == MODE_SKIP:
        await backend.upsert(table, chunk, on_conflict="id", ignore_duplicates=True)
    elif mode == MODE_MERGE:
        await backend.upsert(table, chunk, on_conflict="id")
    else:
        await backend.insert(table, chunk)


async def insert_chunks(
    backend: SupabaseBackend,
    table: str,
    rows: list[dict[str, Any]],
    *,
    chunk_size: int = chunking.DEFAULT_CHUNK_SIZE,
    mode: str = MODE_SKIP,
) -> InsertResult:
    """
    Write `rows` to `table` one chunk at a time.

    Stops at the first failing chunk and reports how many records made it in
    before that; earlier chunks stay committed.
    """
    chunks = chunking.chunked(rows, chunk_size)
    inserted_total = 0

    for i, chunk in enumerate(chunks, start=1):
        try:
            await _write_chunk(backend, table, chunk, mode)
        except BackendError as exc:
            logger.warning(
                "bulk_insert_chunk_failed table=%s mode=%s chunk=%s/%s inserted=%s error=%s",
                table,
                mode,
                i,
                len(chunks),
                inserted_total,
                exc.message,
            )
            return InsertResult(
                inserted_total=inserted_total,
                error=f"Chunk {i}/{len(chunks)} failed: {exc.message}",
            )
        inserted_total += len(chunk)
        logger.debug("bulk_insert_chunk table=%s chunk=%s/%s size=%s", table, i, len(chunks), len(chunk))

    return InsertResult(inserted_total=inserted_total)


async def _flush(
    backend: SupabaseBackend,
    table: str,
    buffer: list[dict[str, Any]],
    chunk_size: int,
) -> int:
    result = await insert_chunks(backend, table, buffer, chunk_size=chunk_size, mode=MODE_SKIP)
    if result.error:
        raise IngestError(result.error)
    return result.inserted_total


async def _ingest_lines(
    backend: SupabaseBackend,
    table: str,
    resp: httpx.Response,
    chunk_size: int,
) -> int:
    buffer: list[dict[str, Any]] = []
    total = 0

    async for line in resp.aiter_lines():
        trimmed = line.strip()
        if not trimmed:
            continue
        # A malformed line aborts the whole ingestion (json.JSONDecodeError).
        buffer.append(json.loads(trimmed))
        if len(buffer) >= chunk_size:
            total += await _flush(backend, table, buffer, chunk_size)
            buffer = []

    if buffer:
        total += await _flush(backend, table, buffer, chunk_size)
    return total


async def ingest_ndjson_from_url(
    backend: SupabaseBackend,
    table: str,
    file_url: str,
    *,
    chunk_size: int = chunking.DEFAULT_CHUNK_SIZE,
    client: httpx.AsyncClient | None = None,
) -> int:
    """
    Stream an NDJSON file from `file_url` into `table` in skip mode.

    At most one chunk of parsed records is held in memory. Returns the total
    number of records written.
    """
    if chunk_size <= 0:
        raise ValueError("chunk_size must be > 0")

    owns_client = client is None
    http = client or _http_client()
    try:
        async with http.stream("GET", file_url) as resp:
            if not resp.is_success:
                raise FetchError(f"Failed to fetch fileUrl: {resp.status_code} {resp.reason_phrase}")
            total = await _ingest_lines(backend, table, resp, chunk_size)
    finally:
        if owns_client:
            await http.aclose()

    logger.info("ndjson_ingest_complete table=%s url=%s inserted=%s chunk_size=%s", table, file_url, total, chunk_size)
    return total
