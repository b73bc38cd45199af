"""Tests for health endpoints."""

from photoqueue_server.storage import UploadStorage


class TestHealth:
    """Test liveness and readiness."""

    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json() == {"ok": True}
        assert "X-Request-ID" in response.headers

    def test_ready(self, client):
        response = client.get("/health/ready")

        assert response.status_code == 200
        assert response.json()["ready"] is True

    def test_not_ready_when_uploads_not_writable(self, client, monkeypatch):
        monkeypatch.setattr(UploadStorage, "is_writable", lambda self: False)

        response = client.get("/health/ready")

        assert response.status_code == 503
        assert response.json() == {"error": "Storage not writable"}

    def test_unknown_route_uses_error_shape(self, client):
        response = client.get("/api/nothing-here")

        assert response.status_code == 404
        assert "error" in response.json()
