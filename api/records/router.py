"""
Record API endpoints.

`build_router(table)` generates the same CRUD/search/bulk routes for every
catalog table. Literal sub-paths (`/with-video`, `/search`, `/bulk-upload`)
are registered before the id routes, and the GET id route only matches
digits, so `search` is never parsed as an id.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Body, Depends, Query

from auth import dependencies as auth_dependencies
from core.backend import SupabaseBackend
from core.deps import get_backend

from . import schemas, service


def build_router(table: str) -> APIRouter:
    router = APIRouter(prefix=f"/api/{table}", tags=[table])

    @router.post("")
    async def create_record(
        body: Any = Body(default=None),
        backend: SupabaseBackend = Depends(get_backend),
        _: dict = Depends(auth_dependencies.require_auth),
    ) -> dict:
        return await service.create(backend, table, body)

    @router.get("", response_model=schemas.PageResponse)
    async def list_records(
        page: str | None = Query(default=None),
        backend: SupabaseBackend = Depends(get_backend),
    ) -> schemas.PageResponse:
        return await service.list_records(backend, table, page=service.parse_page(page))

    @router.get("/with-video", response_model=schemas.PageResponse)
    async def list_with_video(
        page: str | None = Query(default=None),
        backend: SupabaseBackend = Depends(get_backend),
    ) -> schemas.PageResponse:
        return await service.list_with_video(backend, table, page=service.parse_page(page))

    # GET /api/{table}/search?q=Avenger&page=1&count=exact
    # GET /api/{table}/search?id=123
    @router.get("/search")
    async def search_records(
        q: str | None = Query(default=None),
        record_id: str | None = Query(default=None, alias="id"),
        page: str | None = Query(default=None),
        count: str | None = Query(default=None),
        backend: SupabaseBackend = Depends(get_backend),
    ) -> Any:
        return await service.search(
            backend,
            table,
            q=q,
            record_id=record_id,
            page=service.parse_page(page),
            exact_count=(count == "exact"),
        )

    @router.post("/bulk-upload", response_model=schemas.MessageResponse)
    async def bulk_upload(
        body: Any = Body(default=None),
        chunk_size: str | None = Query(default=None, alias="chunkSize"),
        backend: SupabaseBackend = Depends(get_backend),
        _: dict = Depends(auth_dependencies.require_auth),
    ) -> schemas.MessageResponse:
        return await service.bulk_upload(
            backend,
            table,
            body,
            chunk_size=service.parse_chunk_size(chunk_size),
        )

    # Id routes last.
    @router.get("/{record_id:int}")
    async def get_record(
        record_id: int,
        backend: SupabaseBackend = Depends(get_backend),
    ) -> dict:
        return await service.get_record(backend, table, record_id)

    @router.put("/{record_id}")
    async def update_record(
        record_id: str,
        body: Any = Body(default=None),
        backend: SupabaseBackend = Depends(get_backend),
        _: dict = Depends(auth_dependencies.require_auth),
    ) -> dict:
        return await service.update(backend, table, record_id, body)

    @router.delete("/{record_id}", response_model=schemas.MessageResponse)
    async def delete_record(
        record_id: str,
        backend: SupabaseBackend = Depends(get_backend),
        _: dict = Depends(auth_dependencies.require_auth),
    ) -> schemas.MessageResponse:
        return await service.delete(backend, table, record_id)

    return router
