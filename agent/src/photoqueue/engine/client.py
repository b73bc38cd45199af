"""Client runtime wiring the queue, sync coordinator and shell cache together."""

import logging
from pathlib import Path
from typing import Any, Callable

import httpx

from photoqueue.capture import encode_file
from photoqueue.config import Settings
from photoqueue.exceptions import PhotoQueueError
from photoqueue.shell import (
    CacheStorage,
    FetchInterceptor,
    HttpFetcher,
    ShellCacheManager,
)
from photoqueue.sync import (
    ConnectivityMonitor,
    PhotoUploader,
    StatusMessage,
    SyncCoordinator,
    SyncSession,
    UploadQueue,
)

logger = logging.getLogger(__name__)


class PhotoQueueClient:
    """High-level runtime for the offline-first client.

    Owns one SyncSession for the lifetime of the process and hands it to the
    coordinator; nothing in the client keeps registration state globally.

    Example:
        async with PhotoQueueClient(settings) as client:
            await client.probe()
            status = await client.submit_file(Path("photo.png"))
    """

    def __init__(
        self,
        config: Settings,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            config: Settings instance with all configuration
            transport: Optional httpx transport shared by all HTTP clients
        """
        self.config = config

        self.session = SyncSession(
            online=False,
            background_sync_supported=config.background_sync,
        )
        self.queue = UploadQueue(config.queue_path)
        self.uploader = PhotoUploader(
            server_url=config.server_url,
            timeout=config.request_timeout,
            transport=transport,
        )
        self.coordinator = SyncCoordinator(
            self.queue,
            self.uploader,
            self.session,
            sync_tag=config.sync_tag,
            max_rejections=config.max_rejections,
        )

        self.cache_storage = CacheStorage(config.cache_path)
        self.fetcher = HttpFetcher(timeout=config.request_timeout, transport=transport)
        self.cache_manager = ShellCacheManager(
            self.cache_storage,
            self.fetcher,
            origin=config.server_url,
            cache_name=config.cache_name,
            cache_prefix=config.cache_prefix,
            manifest=config.load_shell_manifest(),
        )
        self.interceptor = FetchInterceptor(
            self.cache_storage,
            self.fetcher,
            origin=config.server_url,
            cache_name=config.cache_name,
            api_prefix=config.api_prefix,
            offline_page=config.offline_page,
        )

        self.monitor = ConnectivityMonitor(
            self.uploader.check_server,
            self.session,
            interval=config.probe_interval,
        )
        self.monitor.on_restored(self._handle_restored)
        self.monitor.on_lost(self._handle_lost)

        self._status_callbacks: list[Callable[[StatusMessage], None]] = []

    def on_status(self, callback: Callable[[StatusMessage], None]) -> None:
        """Register a callback receiving every connectivity-driven status."""
        self._status_callbacks.append(callback)

    def _emit(self, message: StatusMessage) -> None:
        for callback in self._status_callbacks:
            callback(message)

    async def _handle_restored(self) -> None:
        self._emit(await self.coordinator.handle_connectivity_restored())

    async def _handle_lost(self) -> None:
        self._emit(self.coordinator.handle_connectivity_lost())

    async def probe(self) -> bool:
        """Set the session's connectivity from one server probe, without triggers."""
        online = await self.uploader.check_server()
        self.session.set_online(online)
        return online

    async def submit_file(self, path: Path) -> StatusMessage:
        """Encode an image file and deliver or queue it.

        Raises:
            ValueError: If the file is not an image
            OSError: If the file cannot be read
        """
        return await self.coordinator.submit(encode_file(path))

    async def update_shell(self) -> list[str]:
        """Install the current shell generation and activate it.

        Returns:
            Names of the superseded caches that were deleted

        Raises:
            CacheInstallError: If any shell resource cannot be fetched
        """
        await self.cache_manager.install()
        return self.cache_manager.activate()

    async def start(self) -> None:
        """Bring the client up: refresh the shell and start the connectivity monitor.

        Records left in the queue by a previous run get a fresh sync
        registration, fired right away when the server is reachable.
        """
        online = await self.probe()

        if online:
            try:
                await self.update_shell()
            except PhotoQueueError as e:
                logger.warning("Shell update failed: %s", e)

        if self.queue.count():
            self.session.register(self.config.sync_tag)
            if online:
                if self.session.background_sync_supported:
                    await self.session.fire_pending()
                else:
                    self._emit(await self.coordinator.flush())

        self.monitor.start()
        logger.info("PhotoQueue client started, data_dir=%s", self.config.data_path)

    async def close(self) -> None:
        """Stop background work and release resources."""
        await self.monitor.stop()
        await self.uploader.close()
        await self.fetcher.close()
        self.queue.close()
        self.cache_storage.close()

    async def __aenter__(self) -> "PhotoQueueClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    def get_status(self) -> dict[str, Any]:
        """Get current client status."""
        return {
            "online": self.session.online,
            "server_url": self.config.server_url,
            "background_sync": self.session.background_sync_supported,
            "pending_tags": self.session.pending_tags(),
            "draining": self.coordinator.draining,
            "queue": self.queue.get_stats(),
            "cache": {
                "name": self.config.cache_name,
                "state": self.cache_manager.state.value,
                "generations": self.cache_storage.keys(),
            },
            "data_dir": str(self.config.data_path),
        }
