"""
Bearer-token verification.

Tokens are JWTs signed with a process-wide shared secret (JWT_SECRET).
Only signature and expiry are checked; there are no scopes or roles.
"""

from __future__ import annotations

from typing import Any

import jwt

from core import config


class AuthSecurityError(RuntimeError):
    pass


def decode_token(token: str, *, secret: str | None = None) -> dict[str, Any]:
    raw = (token or "").strip()
    if not raw:
        raise AuthSecurityError("Token is empty.")

    key = config.jwt_secret() if secret is None else secret
    if not key:
        # Never accept tokens when the server has no secret configured.
        raise AuthSecurityError("JWT secret is not configured.")

    try:
        payload = jwt.decode(raw, key, algorithms=[config.jwt_algorithm()])
    except jwt.InvalidTokenError as exc:
        raise AuthSecurityError(f"Invalid token: {exc}") from exc

    if not isinstance(payload, dict):
        raise AuthSecurityError("Token payload is not an object.")
    return payload
