from __future__ import annotations

import logging
import uuid

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from src.cadence.api.routes import chat_router, cron_router, debug_router, health_router, sync_router
from src.cadence.api.schemas.common import describe_cause, fail
from src.cadence.config import Settings, get_settings
from src.cadence.db.repositories.bootstrap_repository import ensure_tables
from src.cadence.db.session import db_transaction
from src.cadence.middleware import RequestBodyLimitMiddleware, RequestContextMiddleware
from src.cadence.services.container import ServiceContainer

logger = logging.getLogger("cadence.api")


def create_app(settings: Settings | None = None, services: ServiceContainer | None = None) -> FastAPI:
    settings = settings or (services.settings if services else get_settings())
    services = services or ServiceContainer.build(settings)

    app = FastAPI(title="Cadence Fantasy API", version="0.1.0", docs_url="/api/docs", redoc_url="/api/redoc")
    app.state.services = services

    app.add_middleware(RequestContextMiddleware, timeout_seconds=settings.request_timeout_seconds)
    app.add_middleware(RequestBodyLimitMiddleware, max_bytes=settings.request_body_limit_bytes)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allow_origins,
        allow_credentials=False,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
        expose_headers=["X-Request-Id"],
    )

    @app.on_event("startup")
    def on_startup() -> None:
        with db_transaction(services.engine) as connection:
            ensure_tables(connection)

    @app.on_event("shutdown")
    def on_shutdown() -> None:
        services.dispose()

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(request: Request, exc: RequestValidationError):
        request_id = getattr(request.state, "request_id", uuid.uuid4().hex)
        message = "; ".join([err.get("msg", "invalid input") for err in exc.errors()])
        return JSONResponse(
            status_code=422,
            content=fail(message=message, error_type="RequestValidationError", request_id=request_id),
        )

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_error(request: Request, exc: StarletteHTTPException):
        request_id = getattr(request.state, "request_id", uuid.uuid4().hex)
        return JSONResponse(
            status_code=exc.status_code,
            content=fail(message=str(exc.detail), error_type="HTTPException", request_id=request_id),
        )

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        request_id = getattr(request.state, "request_id", uuid.uuid4().hex)
        logger.exception("Unhandled API error", extra={"request_id": request_id})
        return JSONResponse(
            status_code=500,
            content=fail(
                message=str(exc),
                error_type=type(exc).__name__,
                request_id=request_id,
                details=describe_cause(exc),
            ),
        )

    app.include_router(health_router, prefix="/api")
    app.include_router(chat_router, prefix="/api")
    app.include_router(cron_router, prefix="/api")
    app.include_router(sync_router, prefix="/api")
    app.include_router(debug_router, prefix="/api")

    return app
