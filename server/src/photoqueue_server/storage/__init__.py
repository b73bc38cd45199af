"""Persistent server state: uploaded files and push subscriptions."""

from photoqueue_server.storage.filesystem import UploadStorage, upload_stem
from photoqueue_server.storage.subscriptions import SubscriptionStore

__all__ = ["SubscriptionStore", "UploadStorage", "upload_stem"]
