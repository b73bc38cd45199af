"""Sync session: the explicit owner of background-sync registrations.

A SyncSession stands in for the platform side of background sync. It holds
the connectivity flag, the registered sync tags and the listeners that handle
a tag when it fires. One session is created per client process and handed to
whichever component needs to register a sync.
"""

import logging
from typing import Awaitable, Callable

from photoqueue.logging import log_state_change

logger = logging.getLogger(__name__)

SyncListener = Callable[[str], Awaitable[bool]]


class SyncSession:
    """Connectivity state plus pending background-sync tags.

    Example:
        session = SyncSession(online=False)
        session.register("sync-uploads")
        session.set_online(True)
        await session.fire_pending()
    """

    def __init__(self, online: bool = True, background_sync_supported: bool = True) -> None:
        """Initialize the session.

        Args:
            online: Initial connectivity state
            background_sync_supported: Whether tags can be registered at all.
                When False, callers fall back to draining on connectivity events.
        """
        self._online = online
        self.background_sync_supported = background_sync_supported
        self._tags: list[str] = []
        self._listeners: list[SyncListener] = []

    @property
    def online(self) -> bool:
        """Last known connectivity state."""
        return self._online

    def set_online(self, online: bool) -> bool:
        """Update connectivity state.

        Returns:
            True if the state changed
        """
        if online == self._online:
            return False
        log_state_change(
            logger,
            "online" if self._online else "offline",
            "online" if online else "offline",
            trigger="connectivity",
        )
        self._online = online
        return True

    def on_sync(self, listener: SyncListener) -> None:
        """Register a listener invoked with each fired tag.

        The listener returns True when the tag's work is done; the tag then
        stays cleared until registered again.
        """
        self._listeners.append(listener)

    def register(self, tag: str) -> bool:
        """Register a background-sync tag.

        Registering an already pending tag is a no-op.

        Returns:
            False if background sync is unsupported, True otherwise
        """
        if not self.background_sync_supported:
            return False
        if tag not in self._tags:
            self._tags.append(tag)
            logger.debug("Sync tag registered", extra={"tag": tag})
        return True

    def pending_tags(self) -> list[str]:
        """Tags registered and not yet completed."""
        return list(self._tags)

    async def fire_pending(self) -> list[str]:
        """Deliver every pending tag to the listeners.

        Does nothing while offline. A tag is cleared when any listener
        reports it done; a listener error leaves it pending for the next
        connectivity change.

        Returns:
            The tags that were cleared
        """
        if not self._online:
            return []

        cleared = []
        for tag in list(self._tags):
            done = False
            for listener in self._listeners:
                try:
                    done = await listener(tag) or done
                except Exception:
                    logger.exception("Sync listener failed", extra={"tag": tag})
            if done:
                self._tags.remove(tag)
                cleared.append(tag)
        return cleared
