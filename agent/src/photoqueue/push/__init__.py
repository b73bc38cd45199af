"""Push module: incoming push messages and notification display."""

from photoqueue.push.messages import (
    Notification,
    NotificationDispatcher,
    PushMessage,
    parse_push,
)

__all__ = ["Notification", "NotificationDispatcher", "PushMessage", "parse_push"]
