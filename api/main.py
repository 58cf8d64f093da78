import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from core import config
from core.backend import SupabaseBackend
from core.errors import BodySizeLimitMiddleware, ErrorHandlerMiddleware, register_exception_handlers
from records.router import build_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # One backend client per process, shared by every request.
    backend = await SupabaseBackend.from_env()
    app.state.backend = backend
    logger.info("backend client initialized url=%s", backend.url)
    try:
        yield
    finally:
        await backend.aclose()
        app.state.backend = None


def create_app() -> FastAPI:
    logging.basicConfig(level=config.log_level(), format="%(asctime)s %(levelname)s %(name)s %(message)s")

    app = FastAPI(title="media-catalog-api", lifespan=lifespan)

    app.add_middleware(ErrorHandlerMiddleware)
    app.add_middleware(BodySizeLimitMiddleware, max_bytes=config.max_body_bytes())
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors_origins(),
        allow_methods=["*"],
        allow_headers=["*"],
    )
    register_exception_handlers(app)

    for table in config.RECORD_TABLES:
        app.include_router(build_router(table))

    @app.get("/")
    def root() -> dict:
        return {"ok": True}

    @app.get("/health")
    def health() -> dict:
        return {"status": "ok"}

    return app


app = create_app()


if __name__ == "__main__":
    logger.info("starting server host=%s port=%s", config.host(), config.port())
    uvicorn.run(app, host=config.host(), port=config.port(), log_level=config.log_level().lower())
