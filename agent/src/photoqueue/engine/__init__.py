"""Engine module for client runtime orchestration."""

from photoqueue.engine.client import PhotoQueueClient

__all__ = ["PhotoQueueClient"]
