"""PhotoQueue configuration module.

Provides centralized configuration management using pydantic-settings.

Usage:
    from photoqueue.config import get_settings

    settings = get_settings()
    print(settings.server_url)
    print(settings.load_shell_manifest())
"""

from functools import lru_cache

from photoqueue.config.settings import DEFAULT_SHELL_MANIFEST, Settings

__all__ = ["DEFAULT_SHELL_MANIFEST", "Settings", "get_settings"]


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached settings instance.

    To reload settings, call get_settings.cache_clear() first.
    """
    return Settings()
