"""Tests for the client runtime wiring, including the offline capture scenario."""

from pathlib import Path

import pytest

from photoqueue.config import DEFAULT_SHELL_MANIFEST
from photoqueue.engine import PhotoQueueClient
from photoqueue.shell import GenerationState, Request
from photoqueue.sync import SyncStatus


@pytest.fixture
def photo(tmp_path: Path, png_bytes: bytes) -> Path:
    path = tmp_path / "photo.png"
    path.write_bytes(png_bytes)
    return path


@pytest.fixture
async def client(settings, server):
    server.files = {path: f"content of {path}".encode() for path in DEFAULT_SHELL_MANIFEST}
    c = PhotoQueueClient(settings, transport=server.transport())
    yield c
    await c.close()


class TestPhotoQueueClient:
    """Test client start-up and the capture path."""

    async def test_start_installs_and_activates_shell(self, client):
        await client.start()

        assert client.session.online
        assert client.cache_manager.state is GenerationState.ACTIVE
        assert client.cache_storage.keys() == ["photoqueue-v2"]

    async def test_start_offline_skips_shell_update(self, client, server):
        server.online = False

        await client.start()

        assert not client.session.online
        assert client.cache_manager.state is GenerationState.PENDING

    async def test_start_resumes_queue_left_by_previous_run(self, settings, server, photo):
        async with PhotoQueueClient(settings, transport=server.transport()) as first:
            server.online = False
            await first.probe()
            assert (await first.submit_file(photo)).status is SyncStatus.QUEUED

        server.online = True
        async with PhotoQueueClient(settings, transport=server.transport()) as second:
            await second.start()
            assert second.queue.count() == 0

        assert len(server.uploads) == 1

    async def test_offline_capture_then_restore_drains_queue(self, client, server, photo):
        """Offline capture is queued, then delivered once connectivity returns."""
        statuses = []
        client.on_status(statuses.append)

        server.online = False
        await client.probe()
        message = await client.submit_file(photo)
        assert message.status is SyncStatus.QUEUED
        assert client.queue.count() == 1

        server.online = True
        await client.monitor.check()

        assert client.queue.count() == 0
        assert len(server.uploads) == 1
        assert server.uploads[0]["payload"].startswith("data:image/png;base64,")
        assert [s.status for s in statuses] == [SyncStatus.ONLINE]

    async def test_offline_navigation_served_from_shell(self, client, server):
        await client.start()
        server.online = False

        response = await client.interceptor.handle(Request(url="/photos/42", mode="navigate"))

        assert response.body == b"content of /offline.html"

    async def test_get_status(self, client):
        await client.probe()
        status = client.get_status()

        assert status["online"] is True
        assert status["queue"] == {"pending": 0, "failed": 0, "total": 0}
        assert status["cache"]["name"] == "photoqueue-v2"
