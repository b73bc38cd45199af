"""Shared fixtures for server tests.

The app is built from per-test settings (temporary uploads directory and
subscriptions file) and a FakePushSender replaces web push delivery.
"""

import base64
from pathlib import Path
from typing import Any

import pytest
from fastapi.testclient import TestClient

from photoqueue_server.api.uploads import get_push_sender
from photoqueue_server.config import Settings
from photoqueue_server.main import create_app
from photoqueue_server.push import PushDelivery

# 1x1 transparent PNG
PNG_BYTES = base64.b64decode(
    "iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAQAAAC1HAwCAAAAC0lEQVR42mNkYAAAAAYAAjCB0C8AAAAASUVORK5CYII="
)


class FakePushSender:
    """Records sends; outcome per endpoint defaults to delivered."""

    def __init__(self) -> None:
        self.sent: list[tuple[str, str]] = []
        self.outcomes: dict[str, PushDelivery] = {}

    async def send(self, subscription: dict[str, Any], data: str) -> PushDelivery:
        self.sent.append((subscription["endpoint"], data))
        return self.outcomes.get(subscription["endpoint"], PushDelivery.DELIVERED)


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return Settings(
        uploads_dir=tmp_path / "uploads",
        subscriptions_path=tmp_path / "subscriptions.json",
        vapid_path=tmp_path / "vapid.json",
        vapid_public_key="BPublicKeyForTests",
        vapid_private_key="private-key-for-tests",
    )


@pytest.fixture
def push_sender() -> FakePushSender:
    return FakePushSender()


@pytest.fixture
def app(settings: Settings, push_sender: FakePushSender):
    application = create_app(settings)
    application.dependency_overrides[get_push_sender] = lambda: push_sender
    return application


@pytest.fixture
def client(app):
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def png_bytes() -> bytes:
    return PNG_BYTES


@pytest.fixture
def png_data_url() -> str:
    return "data:image/png;base64," + base64.b64encode(PNG_BYTES).decode("ascii")
