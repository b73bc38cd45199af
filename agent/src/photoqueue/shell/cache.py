"""Versioned shell cache: named cache storage and the generation lifecycle.

Every shell change bumps a version tag. A new tag means a new named cache:
install fills it all-or-nothing, activate deletes every other cache of this
application. No per-resource staleness is tracked.
"""

import asyncio
import json
import logging
import sqlite3
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Callable, Iterable
from urllib.parse import urljoin

from photoqueue.exceptions import CacheInstallError, InvalidStateError, NetworkError, StorageError
from photoqueue.logging import log_cache_activated, log_state_change
from photoqueue.shell.fetch import Fetcher, Request, Response

logger = logging.getLogger(__name__)


class CacheStorage:
    """Named caches persisted in a single SQLite file.

    Each read and each write is one statement or one transaction, so a
    request never observes a half-written entry.
    """

    def __init__(self, db_path: Path) -> None:
        self.db_path = db_path
        try:
            db_path.parent.mkdir(parents=True, exist_ok=True)
            self._conn = sqlite3.connect(str(db_path), check_same_thread=False)
            self._conn.row_factory = sqlite3.Row
            self._conn.execute("PRAGMA foreign_keys = ON")
            self._create_tables()
        except (sqlite3.Error, OSError) as e:
            raise StorageError("open_cache_storage", e) from e

    def _create_tables(self) -> None:
        self._conn.execute("""
            CREATE TABLE IF NOT EXISTS caches (
                name TEXT PRIMARY KEY,
                installed INTEGER NOT NULL DEFAULT 0,
                created_at TEXT NOT NULL
            )
        """)
        self._conn.execute("""
            CREATE TABLE IF NOT EXISTS cache_entries (
                cache_name TEXT NOT NULL REFERENCES caches (name) ON DELETE CASCADE,
                key TEXT NOT NULL,
                status INTEGER NOT NULL,
                headers_json TEXT NOT NULL,
                body BLOB NOT NULL,
                url TEXT NOT NULL,
                PRIMARY KEY (cache_name, key)
            )
        """)
        self._conn.commit()

    def _query(self, operation: str, sql: str, params: tuple = ()) -> list[sqlite3.Row]:
        try:
            return self._conn.execute(sql, params).fetchall()
        except sqlite3.Error as e:
            raise StorageError(operation, e) from e

    def _write(self, operation: str, statements: Iterable[tuple[str, tuple]]) -> None:
        """Run statements in one transaction."""
        try:
            with self._conn:
                for sql, params in statements:
                    self._conn.execute(sql, params)
        except sqlite3.Error as e:
            raise StorageError(operation, e) from e

    def open(self, name: str) -> "Cache":
        """Return a handle to the named cache (created on first write)."""
        return Cache(self, name)

    def has(self, name: str) -> bool:
        return bool(self._query("has", "SELECT 1 FROM caches WHERE name = ?", (name,)))

    def is_installed(self, name: str) -> bool:
        """True if the named cache was filled by a completed install."""
        rows = self._query(
            "is_installed", "SELECT installed FROM caches WHERE name = ?", (name,)
        )
        return bool(rows and rows[0]["installed"])

    def keys(self) -> list[str]:
        """Names of all caches, oldest first."""
        rows = self._query("keys", "SELECT name FROM caches ORDER BY created_at, name")
        return [row["name"] for row in rows]

    def delete(self, name: str) -> bool:
        """Delete a cache and all its entries.

        Returns:
            True if the cache existed
        """
        existed = self.has(name)
        self._write("delete_cache", [("DELETE FROM caches WHERE name = ?", (name,))])
        return existed

    def match(self, key: str) -> Response | None:
        """Look a key up across all caches, oldest cache first."""
        rows = self._query(
            "match",
            """
            SELECT e.status, e.headers_json, e.body, e.url
            FROM cache_entries e JOIN caches c ON c.name = e.cache_name
            WHERE e.key = ?
            ORDER BY c.created_at, c.name
            LIMIT 1
            """,
            (key,),
        )
        return _to_response(rows[0]) if rows else None

    def close(self) -> None:
        self._conn.close()


def _to_response(row: sqlite3.Row) -> Response:
    return Response(
        status=row["status"],
        body=bytes(row["body"]),
        headers=json.loads(row["headers_json"]),
        url=row["url"],
    )


class Cache:
    """One named cache generation."""

    def __init__(self, storage: CacheStorage, name: str) -> None:
        self._storage = storage
        self.name = name

    def _ensure_statement(self) -> tuple[str, tuple]:
        return (
            "INSERT OR IGNORE INTO caches (name, installed, created_at) VALUES (?, 0, ?)",
            (self.name, datetime.utcnow().isoformat()),
        )

    @staticmethod
    def _entry_statement(name: str, key: str, response: Response) -> tuple[str, tuple]:
        return (
            """
            INSERT OR REPLACE INTO cache_entries
                (cache_name, key, status, headers_json, body, url)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            (
                name,
                key,
                response.status,
                json.dumps(response.headers),
                response.body,
                response.url,
            ),
        )

    def match(self, key: str) -> Response | None:
        rows = self._storage._query(
            "match",
            "SELECT status, headers_json, body, url FROM cache_entries "
            "WHERE cache_name = ? AND key = ?",
            (self.name, key),
        )
        return _to_response(rows[0]) if rows else None

    def put(self, key: str, response: Response) -> None:
        """Store one response, replacing any existing entry for the key."""
        self._storage._write(
            "put",
            [self._ensure_statement(), self._entry_statement(self.name, key, response)],
        )

    def put_all(self, entries: list[tuple[str, Response]], installed: bool = False) -> None:
        """Store several responses in one transaction.

        Args:
            entries: (key, response) pairs
            installed: Mark the cache as filled by a completed install
        """
        statements = [self._ensure_statement()]
        statements.extend(self._entry_statement(self.name, k, r) for k, r in entries)
        if installed:
            statements.append(
                ("UPDATE caches SET installed = 1 WHERE name = ?", (self.name,))
            )
        self._storage._write("put_all", statements)

    def delete(self, key: str) -> None:
        self._storage._write(
            "delete_entry",
            [("DELETE FROM cache_entries WHERE cache_name = ? AND key = ?", (self.name, key))],
        )

    def keys(self) -> list[str]:
        rows = self._storage._query(
            "cache_keys",
            "SELECT key FROM cache_entries WHERE cache_name = ? ORDER BY key",
            (self.name,),
        )
        return [row["key"] for row in rows]


class GenerationState(str, Enum):
    """Lifecycle states of one shell cache generation."""

    PENDING = "pending"
    INSTALLING = "installing"
    INSTALLED = "installed"
    ACTIVATING = "activating"
    ACTIVE = "active"
    FAILED = "failed"


class ShellCacheManager:
    """State machine driving install and activation of one cache generation.

    PENDING -> INSTALLING -> INSTALLED -> ACTIVATING -> ACTIVE,
    with INSTALLING -> FAILED when any shell resource cannot be fetched.
    A FAILED generation may be installed again.
    """

    def __init__(
        self,
        storage: CacheStorage,
        fetcher: Fetcher,
        origin: str,
        cache_name: str,
        cache_prefix: str,
        manifest: list[str],
    ) -> None:
        """Initialize the manager.

        Args:
            storage: Cache storage holding every generation
            fetcher: Network fetcher used during install
            origin: Origin the shell is served from (e.g. http://localhost:3000)
            cache_name: Name of this generation (prefix + version tag)
            cache_prefix: Prefix identifying this application's caches
            manifest: Shell resource paths to cache
        """
        if not cache_name.startswith(cache_prefix):
            raise ValueError(f"cache name {cache_name!r} must start with {cache_prefix!r}")

        self._storage = storage
        self._fetcher = fetcher
        self.origin = origin.rstrip("/")
        self.cache_name = cache_name
        self.cache_prefix = cache_prefix
        self.manifest = list(manifest)
        self._claim_callbacks: list[Callable[[str], None]] = []

        # A completed install survives restarts; activation is re-run
        self._state = (
            GenerationState.INSTALLED
            if storage.is_installed(cache_name)
            else GenerationState.PENDING
        )

    @property
    def state(self) -> GenerationState:
        return self._state

    def _transition(self, new_state: GenerationState, trigger: str) -> None:
        log_state_change(logger, self._state.value, new_state.value, trigger=trigger)
        self._state = new_state

    def on_claim(self, callback: Callable[[str], None]) -> None:
        """Register a client to be taken over when this generation activates."""
        self._claim_callbacks.append(callback)

    async def _fetch_resource(self, path: str) -> tuple[str, Response]:
        request = Request(url=urljoin(self.origin + "/", path.lstrip("/")))
        try:
            response = await self._fetcher(request)
        except NetworkError as e:
            raise CacheInstallError(path, str(e)) from e
        if not response.ok:
            raise CacheInstallError(path, f"HTTP {response.status}")
        return request.cache_key, response

    async def install(self) -> int:
        """Fetch and store every manifest resource, all-or-nothing.

        Returns:
            Number of resources cached (0 if already installed)

        Raises:
            CacheInstallError: If any resource fails; nothing is stored
            StorageError: If the cache cannot be written
            InvalidStateError: If an install or activation is in progress
        """
        if self._state in (GenerationState.INSTALLED, GenerationState.ACTIVE):
            return 0
        if self._state not in (GenerationState.PENDING, GenerationState.FAILED):
            raise InvalidStateError(f"Cannot install from state {self._state.value}")

        self._transition(GenerationState.INSTALLING, "install")
        try:
            entries = await asyncio.gather(
                *(self._fetch_resource(path) for path in self.manifest)
            )
            self._storage.open(self.cache_name).put_all(list(entries), installed=True)
        except (CacheInstallError, StorageError):
            self._transition(GenerationState.FAILED, "install_failed")
            raise

        self._transition(GenerationState.INSTALLED, "install")
        return len(entries)

    def activate(self) -> list[str]:
        """Make this generation current and delete all others.

        Returns:
            Names of the deleted caches

        Raises:
            InvalidStateError: If the generation is not installed
        """
        if self._state == GenerationState.ACTIVE:
            return []
        if self._state != GenerationState.INSTALLED:
            raise InvalidStateError(f"Cannot activate from state {self._state.value}")

        self._transition(GenerationState.ACTIVATING, "activate")
        deleted = []
        try:
            for name in self._storage.keys():
                if name.startswith(self.cache_prefix) and name != self.cache_name:
                    self._storage.delete(name)
                    deleted.append(name)
        except StorageError:
            self._transition(GenerationState.INSTALLED, "activate_failed")
            raise

        self._transition(GenerationState.ACTIVE, "activate")
        log_cache_activated(logger, self.cache_name, deleted)

        for callback in self._claim_callbacks:
            callback(self.cache_name)
        return deleted
