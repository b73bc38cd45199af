"""Push subscription API endpoints."""

from functools import lru_cache
from pathlib import Path
from typing import Any

import structlog
from fastapi import APIRouter, Body, Depends, HTTPException, Request
from pydantic import BaseModel

from photoqueue_server.config import Settings, get_settings
from photoqueue_server.logging import log_subscription_added
from photoqueue_server.storage.subscriptions import SubscriptionStore
from photoqueue_server.vapid import VapidConfig

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api", tags=["push"])


# --- Dependencies ---


@lru_cache
def _subscription_store(path: Path) -> SubscriptionStore:
    # One store (and lock) per file for the life of the process
    return SubscriptionStore(path)


def get_subscription_store(settings: Settings = Depends(get_settings)) -> SubscriptionStore:
    """Get the shared SubscriptionStore for the configured file."""
    return _subscription_store(settings.subscriptions_path)


def get_vapid(request: Request) -> VapidConfig:
    """VAPID credentials loaded at startup."""
    return request.app.state.vapid


# --- Schemas ---


class VapidKeyResponse(BaseModel):
    publicKey: str


class OkResponse(BaseModel):
    ok: bool = True


# --- Endpoints ---


@router.get("/vapidPublicKey", response_model=VapidKeyResponse)
async def vapid_public_key(vapid: VapidConfig = Depends(get_vapid)) -> VapidKeyResponse:
    """Public key the client needs to create a push subscription."""
    return VapidKeyResponse(publicKey=vapid.public_key)


@router.post("/subscribe", response_model=OkResponse)
async def subscribe(
    subscription: dict[str, Any] | None = Body(None),
    store: SubscriptionStore = Depends(get_subscription_store),
) -> OkResponse:
    """Store a push subscription descriptor ``{endpoint, keys, ...}``.

    Subscribing the same endpoint again is a no-op.
    """
    endpoint = subscription.get("endpoint") if subscription else None
    if not isinstance(endpoint, str) or not endpoint:
        logger.warning("invalid_subscription")
        raise HTTPException(status_code=400, detail="Invalid subscription.")

    if await store.add(subscription):
        log_subscription_added(logger, endpoint, await store.count())
    return OkResponse()
