"""Photo upload API endpoint.

Decodes the base64 data URL sent by the client, stores the image and
notifies push subscribers. Whatever happens to the notification, a stored
upload is acknowledged.
"""

from functools import lru_cache
from pathlib import Path
from typing import Any

import structlog
from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import AliasChoices, BaseModel, Field

from photoqueue_server.api.subscriptions import get_subscription_store, get_vapid
from photoqueue_server.config import Settings, get_settings
from photoqueue_server.logging import (
    client_ip,
    log_api_error,
    log_upload_received,
    log_upload_stored,
)
from photoqueue_server.payload import Err, extension_for, parse_data_url
from photoqueue_server.push import PushFanout, PushSender, WebPushSender, upload_notification
from photoqueue_server.storage import SubscriptionStore, UploadStorage, upload_stem
from photoqueue_server.vapid import VapidConfig

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api", tags=["uploads"])


# --- Dependencies ---


@lru_cache
def _upload_storage(path: Path) -> UploadStorage:
    return UploadStorage(base_path=path)


def get_upload_storage(settings: Settings = Depends(get_settings)) -> UploadStorage:
    """Get the UploadStorage for the configured uploads directory."""
    return _upload_storage(settings.uploads_dir)


def get_push_sender(vapid: VapidConfig = Depends(get_vapid)) -> PushSender:
    return WebPushSender(vapid)


def get_fanout(
    store: SubscriptionStore = Depends(get_subscription_store),
    sender: PushSender = Depends(get_push_sender),
) -> PushFanout:
    return PushFanout(store, sender)


# --- Schemas ---


class UploadRequest(BaseModel):
    """Upload body. ``dataUrl`` is the legacy name of ``payload``."""

    payload: Any = Field(None, validation_alias=AliasChoices("payload", "dataUrl"))
    created_at: int | None = Field(None, validation_alias="createdAt")


class UploadResponse(BaseModel):
    ok: bool = True
    filename: str


# --- Endpoints ---


@router.post("/upload", response_model=UploadResponse)
async def upload_photo(
    body: UploadRequest,
    request: Request,
    storage: UploadStorage = Depends(get_upload_storage),
    fanout: PushFanout = Depends(get_fanout),
) -> UploadResponse:
    """Store one photo sent as ``{payload: <data URL>, createdAt: <epoch ms>}``.

    Returns the stored filename. Malformed payloads get 400 and nothing is
    written.
    """
    parsed = parse_data_url(body.payload)
    if isinstance(parsed, Err):
        logger.warning("upload_rejected", reason=parsed.reason)
        raise HTTPException(status_code=400, detail=parsed.reason)

    try:
        stem = upload_stem(body.created_at)
    except ValueError as e:
        logger.warning("upload_rejected", reason=str(e))
        raise HTTPException(status_code=400, detail="Invalid createdAt.")

    log_upload_received(logger, parsed.mime, len(parsed.data), client_ip(request))

    try:
        filepath = await storage.store(stem, extension_for(parsed.mime), parsed.data)
    except OSError as e:
        log_api_error(logger, "/api/upload", "storage", str(e))
        raise HTTPException(status_code=500, detail="Failed to store upload.")

    log_upload_stored(logger, filepath.name, str(filepath))

    try:
        await fanout.notify(upload_notification(filepath.name))
    except Exception as e:
        log_api_error(logger, "/api/upload", "push_fanout", str(e))

    return UploadResponse(filename=filepath.name)
