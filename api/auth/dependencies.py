"""
Auth dependencies for mutating FastAPI routes.

- no Authorization header               -> 401 Unauthorized
- header present but not a valid token  -> 403 Forbidden
- valid token                           -> claims on request.state.user
"""

from __future__ import annotations

import logging

from fastapi import Header, HTTPException, Request, status

from . import security

logger = logging.getLogger(__name__)


def _extract_bearer_token(authorization: str | None) -> str:
    raw = (authorization or "").strip()
    if not raw:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized",
        )

    parts = raw.split(" ", 1)
    scheme = parts[0].strip().lower()
    token = parts[1].strip() if len(parts) == 2 else ""
    if scheme != "bearer" or not token:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Forbidden",
        )
    return token


async def require_auth(
    request: Request,
    authorization: str | None = Header(default=None),
) -> dict:
    token = _extract_bearer_token(authorization)
    try:
        claims = security.decode_token(token)
    except security.AuthSecurityError as exc:
        logger.info("auth_rejected path=%s reason=%s", request.url.path, exc)
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Forbidden",
        ) from exc

    request.state.user = claims
    return claims
