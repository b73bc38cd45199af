"""Tests for the upload endpoint."""

import errno
import json
from pathlib import Path

import aiofiles
import pytest
from fastapi.testclient import TestClient

from photoqueue_server.main import create_app
from photoqueue_server.push import PushDelivery
from photoqueue_server.storage import UploadStorage, upload_stem

CREATED_AT = 1_700_000_000_123  # 2023-11-14T22:13:20.123Z


class TestUploadEndpoint:
    """Test decoding, storage and response of uploads."""

    def test_upload_stores_decoded_bytes(self, client, settings, png_bytes, png_data_url):
        response = client.post("/api/upload", json={"payload": png_data_url, "createdAt": CREATED_AT})

        assert response.status_code == 200
        assert response.json() == {"ok": True, "filename": "photo-2023-11-14T22-13-20-123Z.png"}
        stored = settings.uploads_dir / "photo-2023-11-14T22-13-20-123Z.png"
        assert stored.read_bytes() == png_bytes

    def test_legacy_data_url_key(self, client, png_data_url):
        response = client.post("/api/upload", json={"dataUrl": png_data_url, "createdAt": CREATED_AT})

        assert response.status_code == 200

    def test_jpeg_is_stored_as_jpg(self, client):
        response = client.post(
            "/api/upload",
            json={"payload": "data:image/jpeg;base64,/9j/4AAQ", "createdAt": CREATED_AT},
        )

        assert response.json()["filename"].endswith(".jpg")

    def test_missing_created_at_uses_server_time(self, client, png_data_url):
        response = client.post("/api/upload", json={"payload": png_data_url})

        assert response.status_code == 200
        assert response.json()["filename"].startswith("photo-20")

    def test_equal_timestamps_never_overwrite(self, client, settings, png_data_url):
        names = [
            client.post("/api/upload", json={"payload": png_data_url, "createdAt": CREATED_AT}).json()["filename"]
            for _ in range(3)
        ]

        assert names == [
            "photo-2023-11-14T22-13-20-123Z.png",
            "photo-2023-11-14T22-13-20-123Z-1.png",
            "photo-2023-11-14T22-13-20-123Z-2.png",
        ]
        assert len(list(settings.uploads_dir.iterdir())) == 3

    def test_not_an_image_is_rejected_and_nothing_written(self, client, settings, push_sender):
        client.post("/api/subscribe", json={"endpoint": "https://push.example/a"})

        response = client.post("/api/upload", json={"payload": "not-an-image", "createdAt": CREATED_AT})

        assert response.status_code == 400
        assert response.json() == {"error": "Expected payload (base64 image data URL)."}
        assert list(settings.uploads_dir.iterdir()) == []
        assert push_sender.sent == []

    @pytest.mark.parametrize(
        "body",
        [
            {"payload": "data:image/png;base64,!!!"},
            {"createdAt": CREATED_AT},
            {"payload": None},
        ],
    )
    def test_malformed_payloads(self, client, settings, body):
        response = client.post("/api/upload", json=body)

        assert response.status_code == 400
        assert "error" in response.json()
        assert list(settings.uploads_dir.iterdir()) == []

    def test_non_json_body_is_400(self, client):
        response = client.post(
            "/api/upload",
            content=b"payload=abc",
            headers={"Content-Type": "application/x-www-form-urlencoded"},
        )

        assert response.status_code == 400
        assert response.json() == {"error": "Invalid request body."}

    def test_invalid_created_at(self, client, png_data_url):
        response = client.post("/api/upload", json={"payload": png_data_url, "createdAt": "yesterday"})

        assert response.status_code == 400

    def test_oversized_body_is_413(self, settings, push_sender, png_data_url):
        settings.max_body_bytes = 64
        with TestClient(create_app(settings)) as client:
            response = client.post("/api/upload", json={"payload": png_data_url})

        assert response.status_code == 413
        assert response.json() == {"error": "Payload too large."}


class TestUploadNotifications:
    """Test push fanout after a stored upload."""

    def test_upload_notifies_subscribers(self, client, push_sender, png_data_url):
        client.post("/api/subscribe", json={"endpoint": "https://push.example/a", "keys": {}})

        response = client.post("/api/upload", json={"payload": png_data_url, "createdAt": CREATED_AT})

        assert len(push_sender.sent) == 1
        endpoint, data = push_sender.sent[0]
        assert endpoint == "https://push.example/a"
        assert json.loads(data) == {
            "title": "Upload synced",
            "body": f"Photo uploaded: {response.json()['filename']}",
            "url": "/",
        }

    def test_push_failure_does_not_fail_upload(self, client, push_sender, settings, png_data_url):
        async def broken_send(subscription, data):
            raise RuntimeError("push service down")

        push_sender.send = broken_send
        client.post("/api/subscribe", json={"endpoint": "https://push.example/a"})

        response = client.post("/api/upload", json={"payload": png_data_url})

        assert response.status_code == 200
        assert json.loads(settings.subscriptions_path.read_text())[0]["endpoint"] == "https://push.example/a"

    def test_gone_subscription_is_pruned_after_upload(self, client, push_sender, settings, png_data_url):
        client.post("/api/subscribe", json={"endpoint": "https://push.example/alive"})
        client.post("/api/subscribe", json={"endpoint": "https://push.example/gone"})
        push_sender.outcomes["https://push.example/gone"] = PushDelivery.GONE

        client.post("/api/upload", json={"payload": png_data_url})

        remaining = json.loads(settings.subscriptions_path.read_text())
        assert [s["endpoint"] for s in remaining] == ["https://push.example/alive"]


class TestUploadStorage:
    """Test file naming and exclusive creation."""

    def test_upload_stem(self):
        assert upload_stem(CREATED_AT) == "photo-2023-11-14T22-13-20-123Z"
        assert upload_stem(0) == "photo-1970-01-01T00-00-00-000Z"

    def test_upload_stem_out_of_range(self):
        with pytest.raises(ValueError):
            upload_stem(10**20)

    async def test_store_writes_bytes(self, tmp_path, png_bytes):
        storage = UploadStorage(tmp_path / "uploads")

        path = await storage.store("photo-x", "png", png_bytes)

        assert path.name == "photo-x.png"
        assert path.read_bytes() == png_bytes
        assert storage.get_storage_stats()["total_files"] == 1

    async def test_failed_write_leaves_no_file(self, tmp_path, png_bytes, monkeypatch):
        storage = UploadStorage(tmp_path / "uploads")

        class FullDiskFile:
            def __init__(self, path, mode):
                self._path = Path(path)
                self._mode = mode

            async def __aenter__(self):
                self._path.open(self._mode).close()
                return self

            async def __aexit__(self, *exc_info):
                return False

            async def write(self, data):
                raise OSError(errno.ENOSPC, "No space left on device")

        monkeypatch.setattr(aiofiles, "open", FullDiskFile)

        with pytest.raises(OSError):
            await storage.store("photo-x", "png", png_bytes)

        assert list(storage.base_path.iterdir()) == []
