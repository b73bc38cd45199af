"""Shared fixtures for client tests.

FakeServer stands in for the PhotoQueue server behind an httpx.MockTransport,
so HTTP behaviour (offline, rejections, shell files) is scripted per test.
"""

import base64
import json
from pathlib import Path

import httpx
import pytest

from photoqueue.config import Settings
from photoqueue.sync import PhotoUploader, SyncCoordinator, SyncSession, UploadQueue

ORIGIN = "http://photoqueue.test"

# 1x1 transparent PNG
PNG_BYTES = base64.b64decode(
    "iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAQAAAC1HAwCAAAAC0lEQVR42mNkYAAAAAYAAjCB0C8AAAAASUVORK5CYII="
)
PNG_DATA_URL = "data:image/png;base64," + base64.b64encode(PNG_BYTES).decode("ascii")


class FakeServer:
    """Scriptable server: connectivity flag, upload outcomes and static files."""

    def __init__(self) -> None:
        self.online = True
        self.uploads: list[dict] = []
        self.subscriptions: list[dict] = []
        self.upload_statuses: list[int] = []  # consumed one per upload; 200 when empty
        self.files: dict[str, bytes] = {}
        self.requests: list[str] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        if not self.online:
            raise httpx.ConnectError("offline", request=request)

        path = request.url.path
        self.requests.append(f"{request.method} {path}")

        if path == "/health":
            return httpx.Response(200, json={"ok": True})

        if path == "/api/upload" and request.method == "POST":
            status = self.upload_statuses.pop(0) if self.upload_statuses else 200
            if status != 200:
                return httpx.Response(status, json={"error": f"status {status}"})
            body = json.loads(request.content)
            self.uploads.append(body)
            return httpx.Response(
                200, json={"ok": True, "filename": f"photo-{len(self.uploads)}.png"}
            )

        if path == "/api/subscribe" and request.method == "POST":
            self.subscriptions.append(json.loads(request.content))
            return httpx.Response(200, json={"ok": True})

        if path == "/api/vapidPublicKey":
            return httpx.Response(200, json={"publicKey": "BPublicKey"})

        if path in self.files:
            return httpx.Response(200, content=self.files[path])
        return httpx.Response(404, text="Not Found")

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


@pytest.fixture
def server() -> FakeServer:
    return FakeServer()


@pytest.fixture
def queue(tmp_path: Path):
    q = UploadQueue(tmp_path / "queue.db")
    yield q
    q.close()


@pytest.fixture
async def uploader(server: FakeServer):
    up = PhotoUploader(ORIGIN, timeout=5.0, transport=server.transport())
    yield up
    await up.close()


@pytest.fixture
def session() -> SyncSession:
    return SyncSession(online=True)


@pytest.fixture
def coordinator(queue: UploadQueue, uploader: PhotoUploader, session: SyncSession) -> SyncCoordinator:
    return SyncCoordinator(queue, uploader, session)


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return Settings(
        server_url=ORIGIN,
        data_dir=tmp_path / "data",
        manifest_file=tmp_path / "shell.yaml",
        probe_interval=0.05,
    )


@pytest.fixture
def png_bytes() -> bytes:
    return PNG_BYTES


@pytest.fixture
def png_data_url() -> str:
    return PNG_DATA_URL
