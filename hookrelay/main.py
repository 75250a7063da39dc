from __future__ import annotations

import uuid
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from hookrelay.api.v1.router import v1_router
from hookrelay.config import get_settings
from hookrelay.db.sync_session import close_sync_db, init_sync_db
from hookrelay.events import build_registry
from hookrelay.utils.exceptions import HookRelayError
from hookrelay.utils.logging import get_logger, setup_logging

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan: startup and shutdown events."""
    settings = get_settings()
    app.state.settings = settings

    setup_logging(settings.LOG_LEVEL, settings.LOG_FORMAT)

    init_sync_db()
    app.state.event_types = build_registry(settings)
    logger.info("Application started", event_types=len(app.state.event_types))

    yield

    logger.info("Shutting down...")
    close_sync_db()
    logger.info("Shutdown complete")


def create_app() -> FastAPI:
    """Application factory."""
    settings = get_settings()

    app = FastAPI(
        title=settings.APP_NAME,
        version=settings.APP_VERSION,
        description="Webhook queue inspection and delivery operations",
        docs_url="/docs" if settings.DEBUG else None,
        redoc_url="/redoc" if settings.DEBUG else None,
        lifespan=lifespan,
    )

    @app.middleware("http")
    async def add_request_id(request: Request, call_next):
        request.state.request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        response = await call_next(request)
        response.headers["X-Request-ID"] = request.state.request_id
        return response

    @app.exception_handler(HookRelayError)
    async def hookrelay_error_handler(request: Request, exc: HookRelayError):
        return JSONResponse(
            status_code=exc.status_code,
            content={
                "success": False,
                "request_id": getattr(request.state, "request_id", ""),
                "error": {"code": type(exc).__name__, "message": exc.message},
            },
        )

    app.include_router(v1_router, prefix="/api/v1")

    return app
