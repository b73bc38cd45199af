"""Tests for the typer CLI."""

import json
from pathlib import Path

import pytest
from typer.testing import CliRunner

from photoqueue import __version__
from photoqueue.cli import app
from photoqueue.config import get_settings
from photoqueue.sync import CaptureRecord, UploadQueue

runner = CliRunner()


@pytest.fixture
def data_dir(tmp_path: Path, monkeypatch) -> Path:
    data = tmp_path / "data"
    monkeypatch.setenv("PHOTOQUEUE_DATA_DIR", str(data))
    # Nothing listens on the discard port; every request fails fast
    monkeypatch.setenv("PHOTOQUEUE_SERVER_URL", "http://127.0.0.1:9")
    monkeypatch.setenv("PHOTOQUEUE_MANIFEST_FILE", str(tmp_path / "shell.yaml"))
    get_settings.cache_clear()
    yield data
    get_settings.cache_clear()


def _last_json(output: str):
    return json.loads(output.strip().splitlines()[-1])


class TestCli:
    """Test CLI commands against an unreachable server."""

    def test_version(self):
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.output

    def test_capture_offline_queues_photo(self, data_dir, tmp_path, png_bytes):
        photo = tmp_path / "photo.png"
        photo.write_bytes(png_bytes)

        result = runner.invoke(app, ["capture", str(photo), "--json"])

        assert result.exit_code == 0
        assert _last_json(result.output)["status"] == "queued"

        listed = runner.invoke(app, ["queue", "list", "--json"])
        records = _last_json(listed.output)
        assert len(records) == 1

    def test_capture_rejects_non_image(self, data_dir, tmp_path):
        notes = tmp_path / "notes.txt"
        notes.write_text("hello")

        result = runner.invoke(app, ["capture", str(notes)])

        assert result.exit_code == 1
        assert "Choose an image file" in result.output

    def test_flush_offline(self, data_dir):
        result = runner.invoke(app, ["flush", "--json"])

        assert result.exit_code == 0
        assert _last_json(result.output)["status"] == "offline"

    def test_queue_clear_and_failed(self, data_dir):
        with UploadQueue(data_dir / "queue.db") as queue:
            kept = CaptureRecord.create("data:image/png;base64,AA==")
            poison = CaptureRecord.create("data:image/png;base64,AA==")
            queue.enqueue(kept)
            queue.enqueue(poison)
            queue.dead_letter(poison.id, "Client error: 400")

        failed = runner.invoke(app, ["queue", "failed", "--json"])
        assert _last_json(failed.output) == [
            {"id": poison.id, "createdAt": poison.created_at, "error": "Client error: 400"}
        ]

        cleared = runner.invoke(app, ["queue", "clear", "--yes", "--json"])
        assert _last_json(cleared.output) == {"status": "cleared", "removed": 2}

        listed = runner.invoke(app, ["queue", "list"])
        assert "The queue is empty." in listed.output
        failed = runner.invoke(app, ["queue", "failed", "--json"])
        assert _last_json(failed.output) == []

    def test_status_json(self, data_dir):
        result = runner.invoke(app, ["status", "--json"])

        assert result.exit_code == 0
        status = _last_json(result.output)
        assert status["online"] is False
        assert status["queue"]["pending"] == 0

    def test_push_show(self):
        result = runner.invoke(app, ["push", "show", '{"title": "Upload synced", "body": "Photo uploaded: a.png"}'])

        assert result.exit_code == 0
        assert "Upload synced" in result.output
        assert "Photo uploaded: a.png" in result.output

    def test_queue_remove(self, data_dir):
        with UploadQueue(data_dir / "queue.db") as queue:
            record = CaptureRecord.create("data:image/png;base64,AA==")
            queue.enqueue(record)

        removed = runner.invoke(app, ["queue", "remove", record.id, "--json"])
        assert removed.exit_code == 0
        assert _last_json(removed.output) == {"status": "removed", "id": record.id}

        again = runner.invoke(app, ["queue", "remove", record.id, "--json"])
        assert again.exit_code == 1
        assert _last_json(again.output)["status"] == "not_found"

    def test_queue_send_offline(self, data_dir):
        with UploadQueue(data_dir / "queue.db") as queue:
            record = CaptureRecord.create("data:image/png;base64,AA==")
            queue.enqueue(record)

        result = runner.invoke(app, ["queue", "send", record.id, "--json"])

        assert result.exit_code == 0
        assert _last_json(result.output)["status"] == "offline"

    def test_queue_purge_keeps_recent_failures(self, data_dir):
        with UploadQueue(data_dir / "queue.db") as queue:
            record = CaptureRecord.create("data:image/png;base64,AA==")
            queue.enqueue(record)
            queue.dead_letter(record.id, "Client error: 400")

        result = runner.invoke(app, ["queue", "purge", "--days", "7", "--json"])

        assert result.exit_code == 0
        assert _last_json(result.output) == {"status": "purged", "removed": 0}
