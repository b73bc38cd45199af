"""PhotoQueue client configuration settings using pydantic-settings."""

import logging
from functools import cached_property
from pathlib import Path

import yaml
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_SHELL_MANIFEST = [
    "/",
    "/index.html",
    "/styles.css",
    "/app.js",
    "/idb.js",
    "/offline.html",
    "/manifest.webmanifest",
    "/icons/icon-192.png",
    "/icons/icon-512.png",
]


class Settings(BaseSettings):
    """Configuration settings for the PhotoQueue client.

    Settings are loaded from environment variables with the PHOTOQUEUE_ prefix.
    For example, PHOTOQUEUE_SERVER_URL=https://photos.example.com sets server_url.
    """

    model_config = SettingsConfigDict(
        env_prefix="PHOTOQUEUE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Server settings
    server_url: str = "http://localhost:3000"
    api_prefix: str = "/api/"
    request_timeout: float = 30.0  # seconds

    # Shell cache
    cache_prefix: str = "photoqueue-"
    cache_version: str = "v2"  # bump on every shell change
    offline_page: str = "/offline.html"
    manifest_file: Path = Path("~/.config/photoqueue/shell.yaml")

    # Sync
    sync_tag: str = "sync-uploads"
    background_sync: bool = True
    probe_interval: float = 15.0  # seconds between connectivity probes
    max_rejections: int = 3  # 4xx rejections before a record is dead-lettered

    # File paths
    data_dir: Path = Path("~/.local/share/photoqueue")

    # Logging
    log_level: str = "INFO"

    @field_validator("probe_interval")
    @classmethod
    def validate_probe_interval(cls, v: float) -> float:
        """Ensure probe interval is positive."""
        if v <= 0:
            raise ValueError("probe_interval must be greater than 0")
        return v

    @field_validator("max_rejections")
    @classmethod
    def validate_max_rejections(cls, v: int) -> int:
        """Ensure at least one rejection is allowed before dead-lettering."""
        if v < 1:
            raise ValueError("max_rejections must be at least 1")
        return v

    @field_validator("api_prefix")
    @classmethod
    def validate_api_prefix(cls, v: str) -> str:
        """Normalize the API prefix to /name/ form."""
        return "/" + v.strip("/") + "/"

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Ensure log level is valid."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v.upper() not in valid_levels:
            raise ValueError(f"log_level must be one of {valid_levels}")
        return v.upper()

    @cached_property
    def data_path(self) -> Path:
        """Return expanded data directory path."""
        return self.data_dir.expanduser()

    @property
    def queue_path(self) -> Path:
        """SQLite file holding the upload queue."""
        return self.data_path / "queue.db"

    @property
    def cache_path(self) -> Path:
        """SQLite file holding the shell cache generations."""
        return self.data_path / "caches.db"

    @property
    def cache_name(self) -> str:
        """Name of the current shell cache generation."""
        return f"{self.cache_prefix}{self.cache_version}"

    def load_shell_manifest(self) -> list[str]:
        """Load the list of shell resource paths.

        Reads ``paths`` from the YAML manifest file when it exists, otherwise
        returns the bundled manifest. Offline page is always included.
        """
        manifest = list(DEFAULT_SHELL_MANIFEST)
        manifest_path = self.manifest_file.expanduser()

        if manifest_path.exists():
            try:
                with open(manifest_path) as f:
                    data = yaml.safe_load(f) or {}
                paths = data.get("paths") if isinstance(data, dict) else None
                if paths:
                    manifest = [str(p) for p in paths]
            except (yaml.YAMLError, OSError) as e:
                logging.warning(f"Failed to load shell manifest from {manifest_path}: {e}")

        if self.offline_page not in manifest:
            manifest.append(self.offline_page)
        return manifest
