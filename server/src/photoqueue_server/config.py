"""Server configuration with environment variable loading."""

import functools
from pathlib import Path

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """PhotoQueue server settings.

    All settings can be overridden via environment variables with PHOTOQUEUE_ prefix.
    Example: PHOTOQUEUE_UPLOADS_DIR, PHOTOQUEUE_LOG_LEVEL

    The bare PORT and VAPID_* variables used by hosting platforms are also read.
    """

    # HTTP
    host: str = "0.0.0.0"
    port: int = Field(3000, validation_alias=AliasChoices("PHOTOQUEUE_PORT", "PORT"))
    max_body_bytes: int = 15 * 1024 * 1024  # larger bodies get 413

    # File storage
    uploads_dir: Path = Path("uploads")
    subscriptions_path: Path = Path("subscriptions.json")

    # Push (VAPID)
    vapid_path: Path = Path("vapid.json")
    vapid_public_key: str | None = Field(
        None,
        validation_alias=AliasChoices("PHOTOQUEUE_VAPID_PUBLIC_KEY", "VAPID_PUBLIC_KEY"),
    )
    vapid_private_key: str | None = Field(
        None,
        validation_alias=AliasChoices("PHOTOQUEUE_VAPID_PRIVATE_KEY", "VAPID_PRIVATE_KEY"),
    )
    vapid_subject: str | None = Field(
        None,
        validation_alias=AliasChoices("PHOTOQUEUE_VAPID_SUBJECT", "VAPID_SUBJECT"),
    )

    # Optional app shell hosting (index.html, sw.js, manifest, icons...)
    static_dir: Path | None = None

    # Logging
    log_level: str = "INFO"

    # CORS
    cors_origins: list[str] = ["*"]

    model_config = {
        "env_prefix": "PHOTOQUEUE_",
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
        "populate_by_name": True,
    }


@functools.lru_cache
def get_settings() -> Settings:
    """Get cached settings instance.

    Settings are loaded once and cached for the lifetime of the process.
    Use this function for dependency injection in FastAPI.
    """
    return Settings()
