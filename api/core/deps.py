"""
FastAPI dependencies shared by feature routers.
"""

from __future__ import annotations

from fastapi import Request

from .backend import SupabaseBackend


def get_backend(request: Request) -> SupabaseBackend:
    backend = getattr(request.app.state, "backend", None)
    if backend is None:
        raise RuntimeError("Backend client is not initialized. It is created on startup.")
    return backend
