"""
Pydantic schemas for record endpoints.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class PageResponse(BaseModel):
    page: int = Field(..., ge=1)
    # Null when the backend could not produce a count (estimated search).
    total: int | None = None
    totalPages: int | None = None
    results: list[dict[str, Any]] = Field(default_factory=list)


class MessageResponse(BaseModel):
    message: str
