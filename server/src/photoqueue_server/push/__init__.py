"""Web push delivery to stored subscriptions."""

from photoqueue_server.push.fanout import (
    FanoutResult,
    PushDelivery,
    PushFanout,
    PushSender,
    WebPushSender,
    upload_notification,
)

__all__ = [
    "FanoutResult",
    "PushDelivery",
    "PushFanout",
    "PushSender",
    "WebPushSender",
    "upload_notification",
]
