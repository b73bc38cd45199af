"""FastAPI application entry point for the PhotoQueue server.

Configures the FastAPI app with routers, middleware, error handlers and
lifecycle management.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

import structlog
import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from photoqueue_server import __version__
from photoqueue_server.api import health_router, subscriptions_router, uploads_router
from photoqueue_server.api.uploads import get_upload_storage
from photoqueue_server.config import Settings, get_settings
from photoqueue_server.logging import LoggingMiddleware, log_api_error, setup_logging
from photoqueue_server.vapid import load_vapid
from photoqueue_server.web import create_shell_router

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Load VAPID credentials and prepare storage before serving.

    Raises:
        VapidConfigError: If no VAPID key pair is configured
    """
    settings: Settings = app.state.settings

    logger.info(
        "server_starting",
        version=__version__,
        uploads_dir=str(settings.uploads_dir),
        subscriptions_path=str(settings.subscriptions_path),
        static_dir=str(settings.static_dir) if settings.static_dir else None,
        log_level=settings.log_level,
    )

    app.state.vapid = load_vapid(settings)

    storage = get_upload_storage(settings)
    logger.info("storage_initialized", path=str(storage.base_path))

    yield

    logger.info("server_stopping")


async def _http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.detail},
        headers=getattr(exc, "headers", None),
    )


async def _validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    # Non-JSON or mistyped bodies get 400
    log_api_error(logger, request.url.path, "validation", "invalid request body")
    return JSONResponse(status_code=400, content={"error": "Invalid request body."})


def create_app(settings: Settings | None = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        settings: Settings to use instead of the environment-derived ones

    Returns:
        Configured FastAPI application instance.
    """
    if settings is None:
        settings = get_settings()

    app = FastAPI(
        title="PhotoQueue Server",
        description="Receives offline-queued photo uploads and notifies subscribers",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.dependency_overrides[get_settings] = lambda: settings

    app.add_exception_handler(StarletteHTTPException, _http_error)
    app.add_exception_handler(RequestValidationError, _validation_error)

    @app.middleware("http")
    async def limit_body_size(request: Request, call_next):
        length = request.headers.get("content-length")
        if length and length.isdigit() and int(length) > settings.max_body_bytes:
            return JSONResponse(status_code=413, content={"error": "Payload too large."})
        return await call_next(request)

    app.middleware("http")(LoggingMiddleware(app))

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(health_router)
    app.include_router(subscriptions_router)
    app.include_router(uploads_router)

    # Catch-all, so it goes last
    if settings.static_dir is not None:
        app.include_router(create_shell_router(settings.static_dir))

    return app


# Create the application instance
app = create_app()


def run() -> None:
    """Run the server using uvicorn.

    This is the CLI entry point defined in pyproject.toml.
    """
    settings = get_settings()
    setup_logging(settings.log_level)

    uvicorn.run(
        "photoqueue_server.main:app",
        host=settings.host,
        port=settings.port,
        reload=False,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    run()
