"""Structured logging for the PhotoQueue server.

Uses structlog for contextual JSON logging with request tracking,
audit events, and FastAPI middleware integration. Image data and full push
endpoints (capability URLs) are never logged.

Usage:
    from photoqueue_server.logging import setup_logging, get_logger

    setup_logging("INFO")
    log = get_logger("photoqueue_server.api")
    log.info("upload_stored", filename="photo-....png", file_size=50000)
"""

from __future__ import annotations

import logging
import sys
import time
import uuid
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any
from urllib.parse import urlsplit

import structlog
from structlog.types import EventDict, Processor

if TYPE_CHECKING:
    from fastapi import Request, Response
    from starlette.middleware.base import RequestResponseEndpoint

# Context variable for request ID
_request_id_var: ContextVar[str | None] = ContextVar("request_id", default=None)


def get_request_id() -> str | None:
    """Get the current request ID from context."""
    return _request_id_var.get()


def set_request_id(request_id: str | None) -> None:
    """Set the request ID in context."""
    _request_id_var.set(request_id)


def _add_request_id(
    logger: logging.Logger, method_name: str, event_dict: EventDict
) -> EventDict:
    request_id = get_request_id()
    if request_id:
        event_dict["request_id"] = request_id
    return event_dict


def _add_log_level(
    logger: logging.Logger, method_name: str, event_dict: EventDict
) -> EventDict:
    event_dict["level"] = method_name.upper()
    return event_dict


def _add_timestamp(
    logger: logging.Logger, method_name: str, event_dict: EventDict
) -> EventDict:
    """Add ISO 8601 timestamp to event dict."""
    event_dict["timestamp"] = datetime.now(tz=timezone.utc).isoformat()
    return event_dict


def setup_logging(level: str = "INFO") -> None:
    """Configure structlog with JSON rendering.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """
    shared_processors: list[Processor] = [
        structlog.stdlib.add_logger_name,
        _add_timestamp,
        _add_log_level,
        _add_request_id,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        processor=structlog.processors.JSONRenderer(),
        foreign_pre_chain=shared_processors,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(level.upper())

    # Route uvicorn through the same JSON formatter
    for logger_name in ["uvicorn", "uvicorn.error", "uvicorn.access"]:
        uvicorn_logger = logging.getLogger(logger_name)
        uvicorn_logger.handlers.clear()
        uvicorn_logger.addHandler(handler)
        uvicorn_logger.propagate = False


def get_logger(name: str | None = None) -> structlog.BoundLogger:
    """Get a bound logger with optional name.

    Args:
        name: Optional logger name (e.g., 'photoqueue_server.api')
    """
    if name:
        return structlog.get_logger(name)
    return structlog.get_logger()


def client_ip(request: Request) -> str:
    """Client address, honouring X-Forwarded-For behind a proxy."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


def endpoint_host(endpoint: str) -> str:
    """Push service host of a subscription endpoint, safe to log."""
    return urlsplit(endpoint).netloc or "unknown"


class LoggingMiddleware:
    """HTTP middleware for request logging and request ID tracking.

    Logs request start and completion with timing information and adds
    request_id to all logs within the request context.
    """

    def __init__(self, app: Any) -> None:
        self.app = app
        self.logger = get_logger("photoqueue_server.middleware")

    async def __call__(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        request_id = request.headers.get("x-request-id") or str(uuid.uuid4())
        set_request_id(request_id)

        self.logger.info(
            "request_started",
            method=request.method,
            path=request.url.path,
            client_ip=client_ip(request),
        )

        start_time = time.monotonic()
        try:
            response = await call_next(request)
            duration_ms = (time.monotonic() - start_time) * 1000

            self.logger.info(
                "request_completed",
                method=request.method,
                path=request.url.path,
                status_code=response.status_code,
                duration_ms=round(duration_ms, 2),
            )

            response.headers["X-Request-ID"] = request_id
            return response
        except Exception as exc:
            duration_ms = (time.monotonic() - start_time) * 1000
            self.logger.error(
                "request_failed",
                method=request.method,
                path=request.url.path,
                duration_ms=round(duration_ms, 2),
                error=str(exc),
            )
            raise
        finally:
            set_request_id(None)


# --- Audit Event Functions ---


def log_upload_received(
    logger: structlog.BoundLogger,
    mime: str,
    file_size: int,
    client_ip: str,
) -> None:
    """Log a decoded upload accepted for storage.

    Args:
        logger: Logger instance
        mime: Image MIME type from the data URL
        file_size: Decoded size in bytes
        client_ip: Client IP address
    """
    logger.info(
        "upload_received",
        mime=mime,
        file_size=file_size,
        client_ip=client_ip,
    )


def log_upload_stored(
    logger: structlog.BoundLogger,
    filename: str,
    filepath: str,
) -> None:
    """Log an upload written to the uploads directory."""
    logger.info(
        "upload_stored",
        filename=filename,
        filepath=filepath,
    )


def log_fanout_completed(
    logger: structlog.BoundLogger,
    delivered: int,
    gone: int,
    failed: int,
) -> None:
    """Log the outcome of one push fanout.

    Args:
        logger: Logger instance
        delivered: Subscriptions the push service accepted
        gone: Subscriptions pruned (push service answered 404/410)
        failed: Subscriptions kept after a transient failure
    """
    logger.info(
        "fanout_completed",
        delivered=delivered,
        gone=gone,
        failed=failed,
    )


def log_subscription_added(
    logger: structlog.BoundLogger,
    endpoint: str,
    total: int,
) -> None:
    """Log a new push subscription (endpoint host only)."""
    logger.info(
        "subscription_added",
        push_service=endpoint_host(endpoint),
        total=total,
    )


def log_api_error(
    logger: structlog.BoundLogger,
    endpoint: str,
    error_type: str,
    message: str,
) -> None:
    """Log an API error.

    Args:
        logger: Logger instance
        endpoint: API endpoint that errored
        error_type: Type of error (e.g., "validation", "internal")
        message: Error message (sanitized - no image data)
    """
    logger.error(
        "api_error",
        endpoint=endpoint,
        error_type=error_type,
        message=message,
    )
