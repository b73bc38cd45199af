"""Sync coordinator: decides when to drain the upload queue and runs the drain."""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

import httpx

from photoqueue.exceptions import StorageError
from photoqueue.logging import (
    log_drain_finished,
    log_record_dead_lettered,
    log_record_queued,
    log_upload_failed,
    log_upload_success,
)
from photoqueue.sync.queue import CaptureRecord, UploadQueue
from photoqueue.sync.session import SyncSession
from photoqueue.sync.uploader import PhotoUploader, UploadResult

logger = logging.getLogger(__name__)

DEFAULT_SYNC_TAG = "sync-uploads"


class SyncStatus(str, Enum):
    """Every user-visible outcome of a coordinator operation."""

    SENT = "sent"
    QUEUED = "queued"
    REJECTED = "rejected"
    SYNCED = "synced"
    PARTIAL = "partial"
    EMPTY = "empty"
    OFFLINE = "offline"
    ONLINE = "online"
    BUSY = "busy"
    UNSUPPORTED = "unsupported"
    PUSH_ENABLED = "push_enabled"
    PUSH_FAILED = "push_failed"
    STORAGE_ERROR = "storage_error"
    NOT_FOUND = "not_found"


@dataclass(frozen=True)
class StatusMessage:
    """Non-blocking status shown to the user after an operation."""

    status: SyncStatus
    text: str
    level: str = "info"  # "ok", "info", "warn", "bad"


@dataclass
class DrainReport:
    """Outcome of one drain over the queue."""

    trigger: str
    delivered: list[str] = field(default_factory=list)
    dead_lettered: list[str] = field(default_factory=list)
    stopped_at: str | None = None
    error: str | None = None
    remaining: int = 0
    coalesced: bool = False

    @property
    def completed(self) -> bool:
        """True when the drain ran and reached the end of the queue."""
        return not self.coalesced and self.stopped_at is None


class SyncCoordinator:
    """Single-flight drain of the upload queue with stop-on-failure semantics.

    Triggers:
    - a background-sync event for ``sync_tag`` (delivered through the session)
    - a connectivity-restored event, draining directly only when background
      sync is unavailable
    - an explicit ``flush()``

    A trigger that arrives while a drain is running is coalesced: it returns
    immediately and never starts a second drain over the same queue.
    """

    def __init__(
        self,
        queue: UploadQueue,
        uploader: PhotoUploader,
        session: SyncSession,
        sync_tag: str = DEFAULT_SYNC_TAG,
        max_rejections: int = 3,
    ) -> None:
        """Initialize the coordinator.

        Args:
            queue: Durable queue of pending captures
            uploader: HTTP client used for deliveries
            session: Session owning connectivity and sync registrations
            sync_tag: Background-sync tag that means "drain the upload queue"
            max_rejections: Permanent rejections before a record is dead-lettered
        """
        self._queue = queue
        self._uploader = uploader
        self._session = session
        self.sync_tag = sync_tag
        self.max_rejections = max_rejections
        self._draining = False

        session.on_sync(self._on_sync)

    @property
    def draining(self) -> bool:
        """True while a drain is in progress."""
        return self._draining

    # --- Capture path ---

    async def submit(self, payload: str, created_at: int | None = None) -> StatusMessage:
        """Deliver a fresh capture now, or queue it for the next sync.

        Args:
            payload: Image encoded as a data URL
            created_at: Capture time in epoch ms (defaults to now)
        """
        record = CaptureRecord.create(payload, created_at)

        if self._session.online:
            result = await self._uploader.upload(record)
            if result.success:
                log_upload_success(logger, record.id, result.filename, result.elapsed_ms)
                return StatusMessage(SyncStatus.SENT, "Sent right away (online).", "ok")

            log_upload_failed(logger, record.id, result.error or "unknown", result.status_code)
            if result.permanent:
                return StatusMessage(
                    SyncStatus.REJECTED,
                    f"The server rejected this photo: {result.error}",
                    "bad",
                )

        try:
            self._queue.enqueue(record)
        except StorageError as e:
            logger.error("Queue write failed", extra={"record_id": record.id, "error": str(e)})
            return StatusMessage(
                SyncStatus.STORAGE_ERROR,
                f"Could not save the photo locally: {e.message}",
                "bad",
            )

        reason = "online_send_failed" if self._session.online else "offline"
        log_record_queued(logger, record.id, reason)

        if self._session.register(self.sync_tag):
            return StatusMessage(
                SyncStatus.QUEUED,
                "Saved to the queue. Sync will send it when you are online.",
                "info",
            )
        return StatusMessage(
            SyncStatus.QUEUED,
            "Saved to the queue. Background sync is unavailable; "
            "it will be sent when connectivity returns or on flush.",
            "info",
        )

    # --- Triggers ---

    async def handle_sync_event(self, tag: str) -> DrainReport | None:
        """Handle a background-sync event. Tags other than ours are ignored."""
        if tag != self.sync_tag:
            return None
        return await self.drain(trigger="background-sync")

    async def _on_sync(self, tag: str) -> bool:
        report = await self.handle_sync_event(tag)
        # Captures queued while the drain ran still need the tag
        return report is not None and report.completed and self._queue.count() == 0

    async def handle_connectivity_restored(self) -> StatusMessage:
        """React to the device coming back online.

        With background sync available the session fires pending tags;
        otherwise the queue is flushed directly.
        """
        self._session.set_online(True)

        if not self._session.background_sync_supported:
            return await self.flush()

        await self._session.fire_pending()
        try:
            remaining = self._queue.count()
        except StorageError as e:
            return self._storage_error(e)
        if remaining:
            return StatusMessage(
                SyncStatus.ONLINE,
                f"Back online. {remaining} photo(s) still queued for the next sync.",
                "warn",
            )
        return StatusMessage(SyncStatus.ONLINE, "Back online.", "ok")

    def handle_connectivity_lost(self) -> StatusMessage:
        """React to the device going offline."""
        self._session.set_online(False)
        return StatusMessage(
            SyncStatus.OFFLINE,
            "Offline. The app shell keeps working from cache.",
            "warn",
        )

    async def flush(self) -> StatusMessage:
        """Explicit user-invoked drain (also the fallback when background sync is missing)."""
        if not self._session.online:
            return StatusMessage(
                SyncStatus.OFFLINE,
                "You are offline. Restore the network and try again.",
                "warn",
            )

        try:
            if self._queue.count() == 0:
                return StatusMessage(SyncStatus.EMPTY, "The queue is empty.", "info")
            report = await self.drain(trigger="manual")
        except StorageError as e:
            return self._storage_error(e)

        return self.describe(report)

    # --- Drain ---

    async def drain(self, trigger: str) -> DrainReport:
        """Attempt delivery of every queued record, in insertion order.

        Stops at the first failure and leaves that record and everything
        after it queued. Coalesced if a drain is already running.

        Raises:
            StorageError: If the queue cannot be read or updated
        """
        if self._draining:
            logger.info("Drain already in progress, trigger coalesced", extra={"trigger": trigger})
            return DrainReport(trigger=trigger, coalesced=True)

        self._draining = True
        try:
            return await self._drain(trigger)
        finally:
            self._draining = False

    async def _settle(self, record: CaptureRecord) -> tuple[str, UploadResult]:
        """Attempt one queued record and apply the outcome to the queue.

        Returns:
            ("delivered" | "dead_lettered" | "failed", upload result)
        """
        result = await self._uploader.upload(record)

        if result.success:
            self._queue.remove(record.id)
            log_upload_success(logger, record.id, result.filename, result.elapsed_ms)
            return "delivered", result

        error = result.error or "unknown"
        log_upload_failed(logger, record.id, error, result.status_code)

        if result.permanent:
            rejections = self._queue.record_rejection(record.id, error)
            if rejections >= self.max_rejections:
                self._queue.dead_letter(record.id, error)
                log_record_dead_lettered(logger, record.id, error, rejections)
                return "dead_lettered", result

        return "failed", result

    async def _drain(self, trigger: str) -> DrainReport:
        report = DrainReport(trigger=trigger)
        attempted: set[str] = set()

        # Re-read after each pass to pick up records queued meanwhile
        while report.stopped_at is None:
            batch = [r for r in self._queue.list_all() if r.id not in attempted]
            if not batch:
                break

            for record in batch:
                attempted.add(record.id)
                outcome, result = await self._settle(record)

                if outcome == "delivered":
                    report.delivered.append(record.id)
                    continue
                if outcome == "dead_lettered":
                    report.dead_lettered.append(record.id)
                    continue

                report.stopped_at = record.id
                report.error = result.error or "unknown"
                break

        report.remaining = self._queue.count()
        log_drain_finished(
            logger,
            trigger,
            len(report.delivered),
            report.remaining,
            report.stopped_at,
        )
        return report

    async def send_one(self, record_id: str) -> StatusMessage:
        """Send a single queued record now, outside of queue order."""
        if not self._session.online:
            return StatusMessage(SyncStatus.OFFLINE, "You are offline.", "warn")
        if self._draining:
            return StatusMessage(SyncStatus.BUSY, "A sync is already running.", "info")

        self._draining = True
        try:
            record = self._queue.get(record_id)
            if record is None:
                return StatusMessage(
                    SyncStatus.NOT_FOUND, f"No queued photo with id {record_id}.", "warn"
                )
            outcome, result = await self._settle(record)
        except StorageError as e:
            return self._storage_error(e)
        finally:
            self._draining = False

        if outcome == "delivered":
            return StatusMessage(SyncStatus.SENT, "Sent.", "ok")
        if outcome == "dead_lettered":
            return StatusMessage(
                SyncStatus.REJECTED,
                f"The server rejected this photo: {result.error}",
                "bad",
            )
        return StatusMessage(SyncStatus.QUEUED, "Sending failed. It stays in the queue.", "warn")

    # --- Push opt-in ---

    async def enable_push(self, subscription: dict[str, Any] | None) -> StatusMessage:
        """Send a push subscription created by the platform to the server.

        Args:
            subscription: Subscription descriptor, or None when the platform
                cannot create one (push unsupported or permission denied)
        """
        if subscription is None:
            return StatusMessage(
                SyncStatus.UNSUPPORTED,
                "Push notifications are not available; skipping push.",
                "warn",
            )
        try:
            await self._uploader.subscribe(subscription)
        except httpx.HTTPError as e:
            logger.warning("Push subscription failed", extra={"error": str(e)})
            return StatusMessage(
                SyncStatus.PUSH_FAILED,
                "Could not enable push notifications.",
                "warn",
            )
        return StatusMessage(SyncStatus.PUSH_ENABLED, "Push notifications enabled.", "ok")

    @staticmethod
    def describe(report: DrainReport) -> StatusMessage:
        """Turn a drain report into a user-facing status."""
        if report.coalesced:
            return StatusMessage(SyncStatus.BUSY, "A sync is already running.", "info")
        if report.stopped_at is not None:
            return StatusMessage(
                SyncStatus.PARTIAL,
                f"Could not send everything ({report.remaining} left). Try again.",
                "warn",
            )
        return StatusMessage(
            SyncStatus.SYNCED,
            f"Queue sent ({len(report.delivered)} photo(s)).",
            "ok",
        )

    @staticmethod
    def _storage_error(error: StorageError) -> StatusMessage:
        logger.error("Queue storage error", extra={"error": str(error)})
        return StatusMessage(
            SyncStatus.STORAGE_ERROR,
            f"Local storage problem: {error.message}",
            "bad",
        )
