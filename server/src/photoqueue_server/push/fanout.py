"""Push fanout with pruning of expired subscriptions.

One payload goes to every stored subscription concurrently. Each outcome is
classified: delivered and failed subscriptions are kept, subscriptions the
push service reports gone (404/410) are removed in one atomic rewrite after
all attempts have resolved.
"""

import asyncio
import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Protocol

import structlog
from pywebpush import WebPushException, webpush

from photoqueue_server.logging import endpoint_host, log_fanout_completed
from photoqueue_server.storage.subscriptions import SubscriptionStore
from photoqueue_server.vapid import VapidConfig

logger = structlog.get_logger(__name__)

GONE_STATUSES = frozenset({404, 410})


class PushDelivery(str, Enum):
    """Outcome of one push attempt."""

    DELIVERED = "delivered"
    GONE = "gone"  # subscription expired or unsubscribed, drop it
    FAILED = "failed"  # anything else, keep it


@dataclass
class FanoutResult:
    """Endpoints grouped by outcome."""

    delivered: list[str] = field(default_factory=list)
    gone: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)


class PushSender(Protocol):
    async def send(self, subscription: dict[str, Any], data: str) -> PushDelivery: ...


def upload_notification(filename: str) -> dict[str, str]:
    """Notification announcing a stored upload."""
    return {
        "title": "Upload synced",
        "body": f"Photo uploaded: {filename}",
        "url": "/",
    }


class WebPushSender:
    """Sends encrypted web push messages signed with the server's VAPID key."""

    def __init__(self, vapid: VapidConfig, ttl: int = 60) -> None:
        """Initialize the sender.

        Args:
            vapid: Application server key pair and contact subject
            ttl: Seconds the push service keeps an undelivered message
        """
        self._vapid = vapid
        self._ttl = ttl

    async def send(self, subscription: dict[str, Any], data: str) -> PushDelivery:
        # webpush() blocks on its HTTP request
        try:
            await asyncio.to_thread(
                webpush,
                subscription_info=subscription,
                data=data,
                vapid_private_key=self._vapid.private_key,
                vapid_claims={"sub": self._vapid.subject},
                ttl=self._ttl,
            )
        except WebPushException as e:
            status = e.response.status_code if e.response is not None else None
            if status in GONE_STATUSES:
                return PushDelivery.GONE
            logger.warning(
                "push_send_failed",
                push_service=endpoint_host(subscription.get("endpoint", "")),
                status_code=status,
                error=str(e),
            )
            return PushDelivery.FAILED
        return PushDelivery.DELIVERED


class PushFanout:
    """Delivers payloads to every subscription and prunes the gone ones."""

    def __init__(self, store: SubscriptionStore, sender: PushSender) -> None:
        self._store = store
        self._sender = sender

    async def _deliver(self, subscription: dict[str, Any], data: str) -> PushDelivery:
        try:
            return await self._sender.send(subscription, data)
        except Exception as e:
            logger.warning(
                "push_send_error",
                push_service=endpoint_host(subscription["endpoint"]),
                error=str(e),
            )
            return PushDelivery.FAILED

    async def notify(self, payload: dict[str, Any]) -> FanoutResult:
        """Send one payload to all current subscriptions.

        Returns:
            Endpoints grouped by delivery outcome
        """
        subscriptions = await self._store.all()
        result = FanoutResult()
        if not subscriptions:
            return result

        data = json.dumps(payload)
        outcomes = await asyncio.gather(
            *(self._deliver(subscription, data) for subscription in subscriptions)
        )

        for subscription, outcome in zip(subscriptions, outcomes):
            endpoint = subscription["endpoint"]
            if outcome is PushDelivery.DELIVERED:
                result.delivered.append(endpoint)
            elif outcome is PushDelivery.GONE:
                result.gone.append(endpoint)
            else:
                result.failed.append(endpoint)

        if result.gone:
            await self._store.prune(result.gone)

        log_fanout_completed(logger, len(result.delivered), len(result.gone), len(result.failed))
        return result
