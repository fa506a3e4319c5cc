"""Stacks Backend -- FastAPI Application Entry Point."""

import logging
from contextlib import asynccontextmanager
from typing import Optional

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from stacks import __version__
from stacks.api.v1.router import api_v1_router
from stacks.config import Settings
from stacks.context import AppContext
from stacks.core.exceptions import StacksException
from stacks.models import Base
from stacks.schemas.common import ErrorDetail, ErrorResponse

logger = structlog.get_logger(__name__)


def _error_response(status_code: int, code: str, message: str, field: Optional[str] = None) -> JSONResponse:
    body = ErrorResponse(error=ErrorDetail(code=code, message=message, field=field))
    return JSONResponse(status_code=status_code, content=body.model_dump())


async def stacks_exception_handler(request: Request, exc: StacksException) -> JSONResponse:
    return _error_response(exc.status_code, exc.code, exc.message, exc.field)


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    first = errors[0] if errors else {}
    loc = [str(part) for part in first.get("loc", ()) if part not in ("body", "query", "path")]
    return _error_response(
        422,
        "validation_error",
        first.get("msg", "Invalid request"),
        loc[-1] if loc else None,
    )


async def database_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    """Store errors are logged with their cause and answered generically."""
    logger.error(
        "unhandled_database_error",
        path=request.url.path,
        method=request.method,
        error=str(exc),
        exc_info=True,
    )
    return _error_response(500, "internal_error", "Internal server error")


def create_app(settings: Optional[Settings] = None, context: Optional[AppContext] = None) -> FastAPI:
    """Build the application.

    Tests pass a prepared ``context`` (in-memory database, cache disabled);
    otherwise one is built from ``settings`` or the environment.
    """
    if context is None:
        context = AppContext.from_settings(settings or Settings())
    settings = context.settings

    logging.basicConfig(
        level=logging.INFO if settings.DEBUG else logging.WARNING,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan: startup and shutdown events."""
        logger.info("stacks_starting", environment=settings.ENVIRONMENT, debug=settings.DEBUG)

        async with context.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("database_tables_ready")

        if context.cache.enabled:
            if await context.cache.health_check():
                logger.info("redis_cache_connected")
            else:
                logger.warning("redis_cache_unavailable")

        yield

        logger.info("stacks_shutting_down")
        await context.close()

    app = FastAPI(
        title="Stacks API",
        description="Local deals marketplace API",
        version=__version__,
        docs_url="/docs" if settings.DEBUG else None,
        redoc_url="/redoc" if settings.DEBUG else None,
        lifespan=lifespan,
    )
    app.state.context = context

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.get_cors_origins(),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(StacksException, stacks_exception_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(SQLAlchemyError, database_error_handler)

    app.include_router(api_v1_router, prefix="/api/v1")

    @app.get("/")
    async def root():
        """Root endpoint with API information."""
        return {
            "name": "Stacks API",
            "version": __version__,
            "docs": "/docs" if settings.DEBUG else None,
            "health": "/api/v1/health",
        }

    return app


app = create_app()
