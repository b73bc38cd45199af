"""Connectivity monitor: probes the server and reports online/offline transitions."""

import asyncio
import logging
from typing import Any, Awaitable, Callable

from photoqueue.sync.session import SyncSession

logger = logging.getLogger(__name__)

Probe = Callable[[], Awaitable[bool]]
TransitionCallback = Callable[[], Awaitable[Any]]


class ConnectivityMonitor:
    """Background task that periodically probes the server.

    Each probe result updates the session. When the state flips to online
    the ``on_restored`` callbacks run; when it flips to offline the
    ``on_lost`` callbacks run.
    """

    def __init__(self, probe: Probe, session: SyncSession, interval: float = 15.0) -> None:
        """Initialize the monitor.

        Args:
            probe: Coroutine returning True when the server is reachable
            session: Session whose online flag is kept current
            interval: Seconds between probes
        """
        self._probe = probe
        self._session = session
        self._interval = interval
        self._restored: list[TransitionCallback] = []
        self._lost: list[TransitionCallback] = []
        self._task: asyncio.Task | None = None
        self._running = False

    def on_restored(self, callback: TransitionCallback) -> None:
        """Register a callback fired when connectivity returns."""
        self._restored.append(callback)

    def on_lost(self, callback: TransitionCallback) -> None:
        """Register a callback fired when connectivity is lost."""
        self._lost.append(callback)

    async def check(self) -> bool:
        """Probe once and fire transition callbacks.

        Returns:
            The probed connectivity state
        """
        online = await self._probe()
        was_online = self._session.online

        if online == was_online:
            return online

        self._session.set_online(online)
        callbacks = self._restored if online else self._lost
        for callback in callbacks:
            await callback()

        return online

    async def run(self) -> None:
        """Probe until stopped."""
        self._running = True
        while self._running:
            try:
                await self.check()
            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.error("Connectivity check failed: %s", e)

            await asyncio.sleep(self._interval)

    def start(self) -> None:
        """Start probing in a background task."""
        if self._task is None or self._task.done():
            self._task = asyncio.create_task(self.run())

    async def stop(self) -> None:
        """Stop the background task."""
        self._running = False
        if self._task and not self._task.done():
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
        self._task = None
