"""Tests for the push subscription endpoints and store."""

import asyncio
import json

from photoqueue_server.storage import SubscriptionStore


class TestSubscribeEndpoint:
    """Test subscription registration."""

    def test_subscribe_stores_descriptor(self, client, settings):
        subscription = {
            "endpoint": "https://push.example/abc",
            "expirationTime": None,
            "keys": {"p256dh": "key", "auth": "secret"},
        }

        response = client.post("/api/subscribe", json=subscription)

        assert response.status_code == 200
        assert response.json() == {"ok": True}
        assert json.loads(settings.subscriptions_path.read_text()) == [subscription]

    def test_duplicate_endpoint_is_stored_once(self, client, settings):
        for _ in range(2):
            assert client.post("/api/subscribe", json={"endpoint": "https://push.example/abc"}).status_code == 200

        assert len(json.loads(settings.subscriptions_path.read_text())) == 1

    def test_missing_endpoint_is_400(self, client, settings):
        for body in ({}, {"keys": {}}, {"endpoint": ""}, {"endpoint": 5}):
            response = client.post("/api/subscribe", json=body)
            assert response.status_code == 400
            assert response.json() == {"error": "Invalid subscription."}

        assert not settings.subscriptions_path.exists()

    def test_empty_body_is_400(self, client):
        assert client.post("/api/subscribe").status_code == 400

    def test_vapid_public_key(self, client):
        response = client.get("/api/vapidPublicKey")

        assert response.json() == {"publicKey": "BPublicKeyForTests"}


class TestSubscriptionStore:
    """Test the JSON-file store."""

    async def test_missing_file_is_empty(self, tmp_path):
        assert await SubscriptionStore(tmp_path / "subs.json").all() == []

    async def test_corrupt_file_is_treated_as_empty(self, tmp_path):
        path = tmp_path / "subs.json"
        path.write_text("{not json")
        store = SubscriptionStore(path)

        assert await store.all() == []
        assert await store.add({"endpoint": "https://push.example/a"})
        assert [s["endpoint"] for s in await store.all()] == ["https://push.example/a"]

    async def test_prune_keeps_subscriptions_added_meanwhile(self, tmp_path):
        store = SubscriptionStore(tmp_path / "subs.json")
        await store.add({"endpoint": "https://push.example/gone"})
        await store.add({"endpoint": "https://push.example/kept"})

        await asyncio.gather(
            store.prune(["https://push.example/gone"]),
            store.add({"endpoint": "https://push.example/new"}),
        )

        endpoints = {s["endpoint"] for s in await store.all()}
        assert endpoints == {"https://push.example/kept", "https://push.example/new"}

    async def test_rewrite_leaves_no_temp_files(self, tmp_path):
        store = SubscriptionStore(tmp_path / "subs.json")
        await store.add({"endpoint": "https://push.example/a"})
        await store.prune(["https://push.example/a"])

        assert [p.name for p in tmp_path.iterdir()] == ["subs.json"]
        assert await store.count() == 0
