"""Exceptions raised by the PhotoQueue client.

Storage, network and cache errors all derive from PhotoQueueError so callers
can surface them as a single non-fatal notice.
"""


class PhotoQueueError(Exception):
    """Base exception for all client errors."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class StorageError(PhotoQueueError):
    """Raised when the local queue or cache store fails (quota, corruption, I/O)."""

    def __init__(self, operation: str, cause: Exception | None = None):
        details = {"operation": operation}
        if cause:
            details["cause"] = str(cause)
        message = f"Storage operation failed: {operation}"
        if cause:
            message = f"{message} ({cause})"
        super().__init__(message, details)
        self.operation = operation
        self.cause = cause


class NetworkError(PhotoQueueError):
    """Raised when a request never produced a response (offline, DNS, timeout)."""

    def __init__(self, url: str, cause: Exception | None = None):
        details = {"url": url}
        if cause:
            details["cause"] = str(cause)
        super().__init__(f"Network request failed: {url}", details)
        self.url = url
        self.cause = cause


class CacheInstallError(PhotoQueueError):
    """Raised when a shell resource cannot be fetched during install."""

    def __init__(self, path: str, reason: str):
        super().__init__(
            f"Failed to cache shell resource {path}: {reason}",
            {"path": path, "reason": reason},
        )
        self.path = path
        self.reason = reason


class InvalidStateError(PhotoQueueError):
    """Raised when a cache generation transition is not allowed."""
