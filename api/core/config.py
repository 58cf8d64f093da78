"""
Environment-backed settings.

Every setting is a small function so tests can monkeypatch the environment
without reloading modules.
"""

from __future__ import annotations

import os

DEFAULT_PORT = 3000
DEFAULT_MAX_BODY_BYTES = 50 * 1024 * 1024  # 50 MiB

# Tables exposed through the generated CRUD routes.
RECORD_TABLES: tuple[str, ...] = ("movies", "series", "anime")


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def supabase_url() -> str:
    url = os.environ.get("SUPABASE_URL", "").strip()
    if not url:
        raise RuntimeError("SUPABASE_URL is not set.")
    return url.rstrip("/")


def supabase_key() -> str:
    key = (os.environ.get("SUPABASE_ANON_KEY") or os.environ.get("SUPABASE_KEY") or "").strip()
    if not key:
        raise RuntimeError("SUPABASE_ANON_KEY is not set.")
    return key


def jwt_secret() -> str:
    # MY_API_KEY is the name older deployments used for the same secret.
    return (os.environ.get("JWT_SECRET") or os.environ.get("MY_API_KEY") or "").strip()


def jwt_algorithm() -> str:
    return os.environ.get("JWT_ALG", "HS256").strip() or "HS256"


def host() -> str:
    return os.environ.get("HOST", "0.0.0.0").strip() or "0.0.0.0"


def port() -> int:
    return _env_int("PORT", DEFAULT_PORT)


def max_body_bytes() -> int:
    value = _env_int("MAX_BODY_BYTES", DEFAULT_MAX_BODY_BYTES)
    return value if value > 0 else DEFAULT_MAX_BODY_BYTES


def cors_origins() -> list[str]:
    raw = os.environ.get("CORS_ORIGINS", "*")
    origins = [o.strip() for o in raw.split(",") if o.strip()]
    return origins or ["*"]


def log_level() -> str:
    return os.environ.get("LOG_LEVEL", "INFO").strip().upper() or "INFO"
