"""Tests for the sync session and the connectivity monitor."""

import asyncio

from photoqueue.sync import ConnectivityMonitor, SyncSession


class TestSyncSession:
    """Test tag registration and firing."""

    async def test_register_is_idempotent(self):
        session = SyncSession()
        assert session.register("sync-uploads")
        assert session.register("sync-uploads")
        assert session.pending_tags() == ["sync-uploads"]

    def test_register_without_background_sync(self):
        session = SyncSession(background_sync_supported=False)
        assert session.register("sync-uploads") is False
        assert session.pending_tags() == []

    async def test_fire_pending_waits_for_connectivity(self):
        fired = []

        async def listener(tag):
            fired.append(tag)
            return True

        session = SyncSession(online=False)
        session.on_sync(listener)
        session.register("sync-uploads")

        assert await session.fire_pending() == []
        assert fired == []

        session.set_online(True)
        assert await session.fire_pending() == ["sync-uploads"]
        assert session.pending_tags() == []

    async def test_failing_listener_keeps_tag(self):
        async def listener(tag):
            raise RuntimeError("boom")

        session = SyncSession()
        session.on_sync(listener)
        session.register("sync-uploads")

        assert await session.fire_pending() == []
        assert session.pending_tags() == ["sync-uploads"]

    def test_set_online_reports_changes(self):
        session = SyncSession(online=True)
        assert session.set_online(True) is False
        assert session.set_online(False) is True
        assert session.online is False


class TestConnectivityMonitor:
    """Test online/offline transition detection."""

    async def test_transitions_fire_callbacks(self):
        states = iter([True, False, False, True])
        events = []

        async def probe():
            return next(states)

        async def restored():
            events.append("restored")

        async def lost():
            events.append("lost")

        session = SyncSession(online=False)
        monitor = ConnectivityMonitor(probe, session)
        monitor.on_restored(restored)
        monitor.on_lost(lost)

        for _ in range(4):
            await monitor.check()

        assert events == ["restored", "lost", "restored"]
        assert session.online is True

    async def test_session_is_online_before_restore_callbacks(self):
        seen = []
        session = SyncSession(online=False)

        async def probe():
            return True

        async def restored():
            seen.append(session.online)

        monitor = ConnectivityMonitor(probe, session)
        monitor.on_restored(restored)
        await monitor.check()

        assert seen == [True]

    async def test_background_task_keeps_probing(self):
        calls = []

        async def probe():
            calls.append(1)
            if len(calls) == 2:
                raise RuntimeError("probe crashed")
            return True

        monitor = ConnectivityMonitor(probe, SyncSession(online=False), interval=0.01)
        monitor.start()
        await asyncio.sleep(0.1)
        await monitor.stop()

        assert len(calls) >= 3
