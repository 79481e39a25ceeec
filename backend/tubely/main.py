"""
Tubely API - FastAPI Application Entry Point.

This module assembles the upload service:

- Lifespan management: logging setup, asset directory creation, MongoDB
  connect/close
- Request logging middleware adding ``X-Request-ID`` / ``X-Process-Time``
- Exception handlers rendering every failure as ``{"error": "<message>"}``
- Static serving of the thumbnail asset root under ``/assets``
- Health check endpoint

API Structure:
    POST /videos/{video_id}/thumbnail  - thumbnail upload
    POST /videos/{video_id}/video      - video upload
    GET  /thumbnails/{video_id}        - cached thumbnail bytes
    GET  /assets/{file}                - persisted thumbnail files
    GET  /health                       - liveness probe

Usage:
    uvicorn tubely.main:app --host 0.0.0.0 --port 8091
"""

import logging
import time
import uuid

from contextlib import asynccontextmanager
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from fastapi import FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException as StarletteHTTPException

from tubely import __version__
from tubely.api import api_router
from tubely.config import Settings, get_settings
from tubely.core.database import close_db, init_db
from tubely.exceptions import TubelyError
from tubely.services.thumbnail_cache import ThumbnailCache
from tubely.utils.logger import setup_logging


# Configure module logger
logger = logging.getLogger(__name__)

# HTTP status code constants
HTTP_ERROR_THRESHOLD = 400
HTTP_SERVER_ERROR_THRESHOLD = 500


# =============================================================================
# Application Lifespan Management
# =============================================================================


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Manage application startup and shutdown.

    Startup configures logging, creates the asset root and connects to
    MongoDB. Shutdown closes the MongoDB client.
    """
    settings: Settings = app.state.settings

    setup_logging(log_level=settings.log_level, json_logs=settings.json_logs)

    logger.info(
        "Tubely API starting",
        extra={
            "app_name": settings.app_name,
            "environment": settings.app_env,
            "debug": settings.debug,
            "bind": f"{settings.host}:{settings.port}",
        },
    )

    Path(settings.assets_root).mkdir(parents=True, exist_ok=True)

    try:
        await init_db(settings)
    except Exception as e:
        logger.exception("Failed to initialize MongoDB")
        raise RuntimeError(f"MongoDB initialization failed: {e}") from e

    logger.info("Tubely API ready to accept requests")

    yield

    await close_db()
    logger.info("Tubely API shutdown complete")


# =============================================================================
# Middleware
# =============================================================================


async def request_logging_middleware(request: Request, call_next) -> Response:
    """
    Log each request with its status and duration.

    Adds ``X-Request-ID`` and ``X-Process-Time`` headers to the response.
    """
    request_id = request.headers.get("x-request-id") or uuid.uuid4().hex
    start_time = time.perf_counter()

    response = await call_next(request)

    process_time_ms = round((time.perf_counter() - start_time) * 1000, 2)
    response.headers["X-Process-Time"] = f"{process_time_ms}ms"
    response.headers["X-Request-ID"] = request_id

    log_level = logging.INFO if response.status_code < HTTP_ERROR_THRESHOLD else logging.WARNING
    logger.log(
        log_level,
        "Request completed",
        extra={
            "request_id": request_id,
            "method": request.method,
            "path": request.url.path,
            "status_code": response.status_code,
            "duration_ms": process_time_ms,
        },
    )
    return response


# =============================================================================
# Exception Handlers
# =============================================================================


async def tubely_error_handler(request: Request, exc: TubelyError) -> JSONResponse:
    """Render a pipeline failure as ``{"error": message}`` with its status."""
    if exc.status_code >= HTTP_SERVER_ERROR_THRESHOLD:
        logger.error(
            f"{type(exc).__name__} on {request.method} {request.url.path}: {exc.message}",
            exc_info=exc.__cause__ or exc,
        )
    else:
        logger.warning(
            f"{type(exc).__name__} on {request.method} {request.url.path}: {exc.message}"
        )
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


async def http_error_handler(_request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Unmatched routes, wrong methods and other framework errors in the same shape."""
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": str(exc.detail)},
        headers=getattr(exc, "headers", None),
    )


async def validation_error_handler(_request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    message = errors[0].get("msg", "Invalid request") if errors else "Invalid request"
    return JSONResponse(status_code=400, content={"error": message})


async def internal_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Log unexpected errors without exposing internals to the client."""
    logger.error(
        f"Internal server error on {request.method} {request.url.path}: {exc!s}",
        exc_info=exc,
    )
    return JSONResponse(status_code=500, content={"error": "Internal Server Error"})


# =============================================================================
# Application Factory
# =============================================================================


def create_app(settings: Settings | None = None) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        settings: Settings to use; defaults to ``get_settings()``.

    Returns:
        FastAPI: Application with routers, middleware, handlers, the
        ``/assets`` mount and a fresh ``ThumbnailCache`` on ``app.state``.
    """
    settings = settings or get_settings()

    app = FastAPI(
        title="Tubely API",
        description=(
            "Upload service for video thumbnails and fast-start MP4 videos "
            "published to S3-compatible object storage."
        ),
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
        debug=settings.debug,
    )

    app.state.settings = settings
    app.state.thumbnail_cache = ThumbnailCache()

    app.middleware("http")(request_logging_middleware)

    app.add_exception_handler(TubelyError, tubely_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(Exception, internal_error_handler)

    app.include_router(api_router)

    @app.get("/health", response_class=JSONResponse, tags=["health"], summary="Health Check")
    async def health_check() -> dict[str, Any]:
        """Liveness probe; does not check MongoDB or S3."""
        return {
            "status": "healthy",
            "timestamp": datetime.now(UTC).isoformat(),
            "version": __version__,
            "service": settings.app_name,
        }

    app.mount(
        "/assets",
        StaticFiles(directory=settings.assets_root, check_dir=False),
        name="assets",
    )

    return app


app = create_app()
