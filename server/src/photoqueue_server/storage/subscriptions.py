"""JSON-file store of push subscriptions.

Every change re-reads the file and replaces it atomically (temp file and
os.replace) while holding an asyncio lock, so writers in one process never
lose each other's updates. Across processes the last writer wins.
"""

import asyncio
import json
import uuid
from pathlib import Path
from typing import Any, Iterable

import aiofiles
import aiofiles.os
import structlog

logger = structlog.get_logger(__name__)

Subscription = dict[str, Any]


class SubscriptionStore:
    """Set of push subscriptions keyed by endpoint."""

    def __init__(self, path: Path) -> None:
        self.path = Path(path)
        self._lock = asyncio.Lock()

    async def _read(self) -> list[Subscription]:
        try:
            async with aiofiles.open(self.path, "r", encoding="utf-8") as f:
                content = await f.read()
        except FileNotFoundError:
            return []

        try:
            data = json.loads(content)
        except json.JSONDecodeError as e:
            logger.warning("subscriptions_unreadable", path=str(self.path), error=str(e))
            return []

        if not isinstance(data, list):
            logger.warning("subscriptions_unreadable", path=str(self.path), error="not a list")
            return []
        return [s for s in data if isinstance(s, dict) and s.get("endpoint")]

    async def _write(self, subscriptions: list[Subscription]) -> None:
        """Replace the file in one step; readers see the old or the new list."""
        await aiofiles.os.makedirs(self.path.parent, exist_ok=True)
        tmp_path = self.path.with_name(f".{self.path.name}.{uuid.uuid4().hex}.tmp")
        try:
            async with aiofiles.open(tmp_path, "w", encoding="utf-8") as f:
                await f.write(json.dumps(subscriptions, indent=2))
                await f.flush()
            await aiofiles.os.replace(tmp_path, self.path)
        except OSError:
            if tmp_path.exists():
                tmp_path.unlink()
            raise

    async def all(self) -> list[Subscription]:
        """Current subscriptions, in insertion order."""
        return await self._read()

    async def add(self, subscription: Subscription) -> bool:
        """Store a subscription unless its endpoint is already known.

        Returns:
            True if it was added
        """
        async with self._lock:
            subscriptions = await self._read()
            if any(s["endpoint"] == subscription["endpoint"] for s in subscriptions):
                return False
            subscriptions.append(subscription)
            await self._write(subscriptions)
            return True

    async def prune(self, endpoints: Iterable[str]) -> int:
        """Remove subscriptions whose endpoint is in ``endpoints``.

        Applied to the freshly read set, so subscriptions added meanwhile
        are kept.

        Returns:
            Number of subscriptions removed
        """
        gone = set(endpoints)
        if not gone:
            return 0

        async with self._lock:
            subscriptions = await self._read()
            survivors = [s for s in subscriptions if s["endpoint"] not in gone]
            removed = len(subscriptions) - len(survivors)
            if removed:
                await self._write(survivors)
            return removed

    async def count(self) -> int:
        return len(await self._read())
