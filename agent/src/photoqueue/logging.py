"""Structured JSON logging for the PhotoQueue client.

Provides audit-friendly logging with contextual fields for queue drains,
upload attempts and shell cache transitions. Image payloads are never logged.

Usage:
    import logging
    from photoqueue.logging import setup_logging

    setup_logging("INFO")
    log = logging.getLogger("photoqueue.sync")
    log.info("drain_finished", extra={"delivered": 2, "remaining": 0})
"""

from __future__ import annotations

import logging
import sys
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path

from pythonjsonlogger import jsonlogger

from photoqueue import __version__


class PhotoQueueJsonFormatter(jsonlogger.JsonFormatter):
    """JSON formatter that adds client context to all log records."""

    def add_fields(
        self,
        log_record: dict,
        record: logging.LogRecord,
        message_dict: dict,
    ) -> None:
        """Add standard fields to every log record."""
        super().add_fields(log_record, record, message_dict)

        log_record["timestamp"] = self.formatTime(record)
        log_record["level"] = record.levelname
        log_record["logger"] = record.name

        log_record["client_version"] = __version__

        if "message" not in log_record and record.getMessage():
            log_record["message"] = record.getMessage()

    def formatTime(self, record: logging.LogRecord, datefmt: str | None = None) -> str:
        """Format time as ISO 8601."""
        dt = datetime.fromtimestamp(record.created, tz=timezone.utc)
        return dt.isoformat()


def setup_logging(
    level: str = "INFO",
    log_file: Path | None = None,
    max_bytes: int = 10_000_000,  # 10MB
    backup_count: int = 5,
) -> None:
    """Configure root logger with JSON formatting.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Optional path for rotating file handler
        max_bytes: Max size per log file for rotation
        backup_count: Number of backup files to keep
    """
    formatter = PhotoQueueJsonFormatter()

    root_logger = logging.getLogger()
    root_logger.setLevel(level.upper())

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    # JSON to stderr so CLI output on stdout stays clean
    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    if log_file:
        log_file = Path(log_file)
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            log_file,
            maxBytes=max_bytes,
            backupCount=backup_count,
        )
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)


# --- Audit Event Functions ---


def log_upload_success(
    logger: logging.Logger,
    record_id: str,
    filename: str | None,
    server_response_time_ms: float,
) -> None:
    """Log a delivery acknowledged by the server."""
    logger.info(
        "Upload successful",
        extra={
            "event": "upload_success",
            "record_id": record_id,
            "server_filename": filename,
            "server_response_time_ms": round(server_response_time_ms, 2),
        },
    )


def log_upload_failed(
    logger: logging.Logger,
    record_id: str,
    error: str,
    status_code: int | None = None,
) -> None:
    """Log a failed delivery attempt.

    Args:
        logger: Logger instance
        record_id: Capture record identifier
        error: Error message (never includes the payload)
        status_code: HTTP status when the server answered
    """
    extra = {
        "event": "upload_failed",
        "record_id": record_id,
        "error": error,
    }
    if status_code is not None:
        extra["status_code"] = status_code
    logger.warning("Upload failed", extra=extra)


def log_record_queued(logger: logging.Logger, record_id: str, reason: str) -> None:
    """Log a capture placed in the durable queue."""
    logger.info(
        "Capture queued",
        extra={"event": "record_queued", "record_id": record_id, "reason": reason},
    )


def log_record_dead_lettered(
    logger: logging.Logger,
    record_id: str,
    error: str,
    rejections: int,
) -> None:
    """Log a record moved out of the queue after repeated rejections."""
    logger.error(
        "Capture dead-lettered",
        extra={
            "event": "record_dead_lettered",
            "record_id": record_id,
            "error": error,
            "rejections": rejections,
        },
    )


def log_drain_finished(
    logger: logging.Logger,
    trigger: str,
    delivered: int,
    remaining: int,
    stopped_at: str | None = None,
) -> None:
    """Log the end of a queue drain."""
    extra = {
        "event": "drain_finished",
        "trigger": trigger,
        "delivered": delivered,
        "remaining": remaining,
    }
    if stopped_at:
        extra["stopped_at"] = stopped_at
    logger.info("Drain finished", extra=extra)


def log_state_change(
    logger: logging.Logger,
    old_state: str,
    new_state: str,
    trigger: str | None = None,
) -> None:
    """Log a state transition (connectivity or cache generation)."""
    extra = {
        "event": "state_change",
        "old_state": old_state,
        "new_state": new_state,
    }
    if trigger:
        extra["trigger"] = trigger
    logger.info("State changed", extra=extra)


def log_cache_activated(
    logger: logging.Logger,
    cache_name: str,
    deleted: list[str],
) -> None:
    """Log activation of a shell cache generation."""
    logger.info(
        "Cache generation activated",
        extra={
            "event": "cache_activated",
            "cache_name": cache_name,
            "deleted": deleted,
        },
    )
