"""Sync module: durable capture queue, uploader and drain coordination."""

from photoqueue.sync.connectivity import ConnectivityMonitor
from photoqueue.sync.coordinator import (
    DrainReport,
    StatusMessage,
    SyncCoordinator,
    SyncStatus,
)
from photoqueue.sync.queue import CaptureRecord, UploadQueue
from photoqueue.sync.session import SyncSession
from photoqueue.sync.uploader import PhotoUploader, UploadResult

__all__ = [
    "CaptureRecord",
    "ConnectivityMonitor",
    "DrainReport",
    "PhotoUploader",
    "StatusMessage",
    "SyncCoordinator",
    "SyncSession",
    "SyncStatus",
    "UploadQueue",
    "UploadResult",
]
