"""
Error rendering.

Every error leaves the API as `{"error": "<message>"}`:
- HTTPException            -> its status code, `detail` as the message
- RequestValidationError   -> 400
- backend.BackendError     -> 400, backend message passed through
- anything else            -> 500, str(exc) passed through (ErrorHandlerMiddleware)
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request, status
from fastapi import HTTPException as FastAPIHTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.datastructures import Headers
from starlette.exceptions import HTTPException
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from .backend import BackendError

logger = logging.getLogger(__name__)


def error_response(status_code: int, message: str, headers: dict[str, str] | None = None) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message}, headers=headers)


def _validation_message(exc: RequestValidationError) -> str:
    parts: list[str] = []
    for err in exc.errors():
        loc = ".".join(str(x) for x in err.get("loc", ()) if x != "body")
        msg = str(err.get("msg") or "invalid value")
        parts.append(f"{loc}: {msg}" if loc else msg)
    return "; ".join(parts) or "Invalid request."


async def _http_exception_handler(_: Request, exc: HTTPException) -> JSONResponse:
    return error_response(exc.status_code, str(exc.detail), headers=getattr(exc, "headers", None))


async def _validation_exception_handler(_: Request, exc: RequestValidationError) -> JSONResponse:
    return error_response(status.HTTP_400_BAD_REQUEST, _validation_message(exc))


async def _backend_error_handler(request: Request, exc: BackendError) -> JSONResponse:
    logger.warning("backend_error path=%s status=%s message=%s", request.url.path, exc.code, exc.message)
    return error_response(status.HTTP_400_BAD_REQUEST, exc.message)


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(HTTPException, _http_exception_handler)
    app.add_exception_handler(RequestValidationError, _validation_exception_handler)
    app.add_exception_handler(BackendError, _backend_error_handler)


class ErrorHandlerMiddleware(BaseHTTPMiddleware):
    """Turn any unhandled exception into a 500 with the underlying message."""

    async def dispatch(self, request: Request, call_next):
        try:
            return await call_next(request)
        except Exception as exc:
            logger.exception("unhandled_error method=%s path=%s", request.method, request.url.path)
            return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, str(exc) or exc.__class__.__name__)


class _BodyTooLarge(FastAPIHTTPException):
    pass


class BodySizeLimitMiddleware:
    """
    Reject request bodies larger than `max_bytes`.

    A declared Content-Length is checked up front; the streamed body is also
    counted as the app reads it, so chunked uploads without a length are capped
    the same way.
    """

    def __init__(self, app: ASGIApp, *, max_bytes: int) -> None:
        self.app = app
        self.max_bytes = max_bytes

    def _too_large_message(self) -> str:
        return f"Request body too large. Max is {self.max_bytes} bytes."

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        raw = Headers(scope=scope).get("content-length")
        if raw is not None:
            try:
                declared = int(raw)
            except ValueError:
                await error_response(status.HTTP_400_BAD_REQUEST, "Invalid Content-Length header.")(scope, receive, send)
                return
            if declared > self.max_bytes:
                await error_response(status.HTTP_413_REQUEST_ENTITY_TOO_LARGE, self._too_large_message())(
                    scope, receive, send
                )
                return

        received = 0
        response_started = False

        async def limited_receive() -> Message:
            nonlocal received
            message = await receive()
            if message["type"] == "http.request":
                received += len(message.get("body", b""))
                if received > self.max_bytes:
                    # Raised inside the body read; rendered by the HTTPException handler.
                    raise _BodyTooLarge(
                        status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
                        detail=self._too_large_message(),
                    )
            return message

        async def tracking_send(message: Message) -> None:
            nonlocal response_started
            if message["type"] == "http.response.start":
                response_started = True
            await send(message)

        try:
            await self.app(scope, limited_receive, tracking_send)
        except _BodyTooLarge as exc:
            if response_started:
                raise
            await error_response(exc.status_code, str(exc.detail))(scope, receive, send)
