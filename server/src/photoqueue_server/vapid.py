"""VAPID credential loading.

Keys come from the environment first (no secrets on disk in hosted
deployments), then from a local vapid.json of the form
``{"publicKey": ..., "privateKey": ..., "subject": ...}``.
"""

import json
from dataclasses import dataclass

import structlog

from photoqueue_server.config import Settings
from photoqueue_server.exceptions import VapidConfigError

logger = structlog.get_logger(__name__)

DEFAULT_SUBJECT = "mailto:pwa-demo@example.com"


@dataclass(frozen=True)
class VapidConfig:
    """Application server identity used to sign push requests."""

    public_key: str
    private_key: str
    subject: str = DEFAULT_SUBJECT


def load_vapid(settings: Settings) -> VapidConfig:
    """Resolve the VAPID key pair from settings, then from the key file.

    Raises:
        VapidConfigError: If neither source provides both keys
    """
    if settings.vapid_public_key and settings.vapid_private_key:
        logger.info("vapid_loaded", source="environment")
        return VapidConfig(
            public_key=settings.vapid_public_key,
            private_key=settings.vapid_private_key,
            subject=settings.vapid_subject or DEFAULT_SUBJECT,
        )

    path = settings.vapid_path
    if path.exists():
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            raise VapidConfigError(f"Cannot read {path}: {e}") from e

        if isinstance(data, dict) and data.get("publicKey") and data.get("privateKey"):
            logger.info("vapid_loaded", source=str(path))
            return VapidConfig(
                public_key=data["publicKey"],
                private_key=data["privateKey"],
                subject=data.get("subject") or settings.vapid_subject or DEFAULT_SUBJECT,
            )

    raise VapidConfigError(
        "Missing VAPID keys. Create vapid.json with {publicKey, privateKey} "
        "or set VAPID_PUBLIC_KEY and VAPID_PRIVATE_KEY (and optionally VAPID_SUBJECT)."
    )
