"""Push message handling: parse incoming pushes and show notifications."""

import json
import logging
from dataclasses import dataclass
from typing import Callable, Protocol

logger = logging.getLogger(__name__)

DEFAULT_TITLE = "PhotoQueue"
DEFAULT_BODY = "New notification"
DEFAULT_URL = "/"
DEFAULT_ICON = "/icons/icon-192.png"


@dataclass(frozen=True)
class PushMessage:
    """Payload delivered by the server: ``{title, body, url}``."""

    title: str = DEFAULT_TITLE
    body: str = DEFAULT_BODY
    url: str = DEFAULT_URL


@dataclass(frozen=True)
class Notification:
    """A notification ready to be displayed."""

    title: str
    body: str
    url: str
    icon: str = DEFAULT_ICON
    badge: str = DEFAULT_ICON


def parse_push(data: bytes | str | None) -> PushMessage:
    """Merge a JSON push payload over the defaults.

    Missing fields keep their default, fields sent empty stay empty.
    Unparseable data yields the default message.
    """
    if not data:
        return PushMessage()

    try:
        decoded = json.loads(data)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        logger.warning("Push payload parse failed: %s", e)
        return PushMessage()

    if not isinstance(decoded, dict):
        logger.warning("Push payload is not an object")
        return PushMessage()

    defaults = PushMessage()
    return PushMessage(
        title=str(decoded.get("title", defaults.title)),
        body=str(decoded.get("body", defaults.body)),
        url=str(decoded.get("url", defaults.url)),
    )


class Client(Protocol):
    """An open application window."""

    def navigate(self, url: str) -> None: ...

    def focus(self) -> None: ...


class NotificationDispatcher:
    """Turns push messages into displayed notifications and handles clicks."""

    def __init__(
        self,
        display: Callable[[Notification], None],
        open_window: Callable[[str], None],
        icon: str = DEFAULT_ICON,
    ) -> None:
        """Initialize the dispatcher.

        Args:
            display: Shows a notification to the user
            open_window: Opens a new application window at a URL
            icon: Icon and badge used for every notification
        """
        self._display = display
        self._open_window = open_window
        self._icon = icon

    def handle_push(self, data: bytes | str | None) -> Notification:
        """Parse a push and display the resulting notification."""
        message = parse_push(data)
        notification = Notification(
            title=message.title,
            body=message.body,
            url=message.url,
            icon=self._icon,
            badge=self._icon,
        )
        self._display(notification)
        logger.info("Notification shown", extra={"title": notification.title})
        return notification

    def click(self, notification: Notification, clients: list[Client]) -> None:
        """Focus the first open window on the notification URL, or open one."""
        url = notification.url or DEFAULT_URL
        if clients:
            client = clients[0]
            client.navigate(url)
            client.focus()
            return
        self._open_window(url)
