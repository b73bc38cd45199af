"""Async filesystem storage for uploaded photos.

Files are named from their capture time and never overwritten.
All file I/O operations are async using aiofiles.
"""

import os
import time
from datetime import datetime, timezone
from pathlib import Path

import aiofiles
import aiofiles.os


def upload_stem(created_at: int | None = None) -> str:
    """Base filename for a capture taken at ``created_at`` (epoch ms).

    ``photo-<UTC ISO timestamp>`` with ':' and '.' replaced by '-', e.g.
    ``photo-2024-05-01T10-20-30-123Z``. Server time is used when absent.

    Raises:
        ValueError: If the timestamp is outside the representable range
    """
    if created_at is None:
        created_at = int(time.time() * 1000)
    try:
        dt = datetime.fromtimestamp(created_at / 1000, tz=timezone.utc)
    except (OverflowError, OSError) as e:
        raise ValueError(f"createdAt out of range: {created_at}") from e

    stamp = dt.strftime("%Y-%m-%dT%H:%M:%S") + f".{dt.microsecond // 1000:03d}Z"
    return "photo-" + stamp.replace(":", "-").replace(".", "-")


class UploadStorage:
    """Async file storage for decoded upload images."""

    def __init__(self, base_path: Path) -> None:
        """Initialize file storage.

        Args:
            base_path: Directory receiving uploads. Created if it doesn't exist.
        """
        self.base_path = Path(base_path)
        self.base_path.mkdir(parents=True, exist_ok=True)

    async def store(self, stem: str, extension: str, data: bytes) -> Path:
        """Write data to ``<stem>.<extension>`` without replacing existing files.

        When the name is taken, ``-1``, ``-2``... is appended to the stem.
        Each candidate is created exclusively, so concurrent uploads with
        the same timestamp each get their own file.

        Returns:
            Full path to the stored file.
        """
        attempt = 0
        while True:
            suffix = f"-{attempt}" if attempt else ""
            filepath = self.base_path / f"{stem}{suffix}.{extension}"
            created = False
            try:
                async with aiofiles.open(filepath, "xb") as f:
                    created = True
                    await f.write(data)
                return filepath
            except FileExistsError:
                attempt += 1
            except OSError:
                # Never leave a truncated upload behind
                if created:
                    await aiofiles.os.remove(filepath)
                raise

    def is_writable(self) -> bool:
        """True if a file can be created in the uploads directory."""
        test_file = self.base_path / ".ready_check"
        try:
            test_file.touch()
            test_file.unlink()
        except OSError:
            return False
        return True

    def get_storage_stats(self) -> dict:
        """Get storage statistics.

        Synchronous; used for monitoring, not in the hot path.
        """
        total_files = 0
        total_size = 0
        with os.scandir(self.base_path) as entries:
            for entry in entries:
                if entry.is_file() and entry.name.startswith("photo-"):
                    total_files += 1
                    total_size += entry.stat().st_size

        return {
            "total_files": total_files,
            "total_size_mb": round(total_size / (1024 * 1024), 2),
        }
