"""Tests for VAPID credential loading."""

import json

import pytest
from fastapi.testclient import TestClient

from photoqueue_server.config import Settings
from photoqueue_server.exceptions import VapidConfigError
from photoqueue_server.main import create_app
from photoqueue_server.vapid import DEFAULT_SUBJECT, VapidConfig, load_vapid


class TestLoadVapid:
    """Test key sources and their order."""

    def test_settings_keys_win(self, tmp_path):
        (tmp_path / "vapid.json").write_text(json.dumps({"publicKey": "file-pub", "privateKey": "file-priv"}))
        settings = Settings(
            vapid_path=tmp_path / "vapid.json",
            vapid_public_key="env-pub",
            vapid_private_key="env-priv",
        )

        assert load_vapid(settings) == VapidConfig("env-pub", "env-priv", DEFAULT_SUBJECT)

    def test_bare_environment_variables(self, tmp_path, monkeypatch):
        monkeypatch.setenv("VAPID_PUBLIC_KEY", "env-pub")
        monkeypatch.setenv("VAPID_PRIVATE_KEY", "env-priv")
        monkeypatch.setenv("VAPID_SUBJECT", "mailto:ops@example.com")

        vapid = load_vapid(Settings(vapid_path=tmp_path / "vapid.json"))

        assert vapid == VapidConfig("env-pub", "env-priv", "mailto:ops@example.com")

    def test_key_file_fallback(self, tmp_path):
        path = tmp_path / "vapid.json"
        path.write_text(json.dumps({"publicKey": "pub", "privateKey": "priv", "subject": "mailto:me@example.com"}))

        assert load_vapid(Settings(vapid_path=path)) == VapidConfig("pub", "priv", "mailto:me@example.com")

    def test_missing_keys(self, tmp_path):
        with pytest.raises(VapidConfigError):
            load_vapid(Settings(vapid_path=tmp_path / "vapid.json"))

    def test_incomplete_key_file(self, tmp_path):
        path = tmp_path / "vapid.json"
        path.write_text(json.dumps({"publicKey": "pub"}))

        with pytest.raises(VapidConfigError):
            load_vapid(Settings(vapid_path=path))

    def test_server_refuses_to_start_without_keys(self, tmp_path):
        settings = Settings(
            uploads_dir=tmp_path / "uploads",
            subscriptions_path=tmp_path / "subscriptions.json",
            vapid_path=tmp_path / "vapid.json",
        )

        with pytest.raises(VapidConfigError):
            with TestClient(create_app(settings)):
                pass
