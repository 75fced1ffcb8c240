"""
Tests for the Snapshot Scheduler.
"""

import asyncio

import pytest

from cookie_afk.errors import BackupIOError
from cookie_afk.scheduler import SnapshotScheduler


class TestTick:
    """A single scheduled backup attempt."""

    @pytest.mark.asyncio
    async def test_idle_ticks_write_nothing(self, coordinator, store, backup_path):
        scheduler = SnapshotScheduler(coordinator, interval=60)

        for _ in range(5):
            await scheduler.tick()

        assert scheduler.idle_skips == 5
        assert scheduler.failures == 0
        assert len(store) == 0
        assert not backup_path.exists()

    @pytest.mark.asyncio
    async def test_active_tick_backs_up(self, coordinator, session, store):
        scheduler = SnapshotScheduler(coordinator, interval=60)
        await session.start("ABC")

        await scheduler.tick()

        assert scheduler.backups_taken == 1
        assert scheduler.last_backup_at == store.latest().captured_at
        assert store.latest().token == "ABC"

    @pytest.mark.asyncio
    async def test_failures_are_counted_not_raised(self, coordinator, session, store, monkeypatch):
        scheduler = SnapshotScheduler(coordinator, interval=60)
        await session.start("ABC")

        def broken_push(snapshot):
            raise BackupIOError("disk full")

        monkeypatch.setattr(store, "push", broken_push)
        await scheduler.tick()

        monkeypatch.undo()
        await scheduler.tick()

        assert scheduler.failures == 1
        assert scheduler.backups_taken == 1

    @pytest.mark.asyncio
    async def test_driver_failure_keeps_session(self, coordinator, session, handle_factory):
        scheduler = SnapshotScheduler(coordinator, interval=60)
        await session.start("ABC")
        handle_factory.fail_on.add("read_token")

        await scheduler.tick()

        assert scheduler.failures == 1
        assert session.active


class TestLoop:
    """run/start/stop."""

    def test_interval_must_be_positive(self, coordinator):
        with pytest.raises(ValueError):
            SnapshotScheduler(coordinator, interval=0)

    @pytest.mark.asyncio
    async def test_run_fixed_iterations(self, coordinator, session, store):
        scheduler = SnapshotScheduler(coordinator, interval=0.001)
        await session.start("ABC")

        await scheduler.run(iterations=3)

        assert scheduler.runs == 3
        assert len(store) == 3

    @pytest.mark.asyncio
    async def test_start_and_stop(self, coordinator):
        scheduler = SnapshotScheduler(coordinator, interval=0.001)

        scheduler.start()
        assert scheduler.running
        await asyncio.sleep(0.02)
        await scheduler.stop()

        assert not scheduler.running
        assert scheduler.runs >= 1
        assert scheduler.get_stats()["idle_skips"] == scheduler.idle_skips

    @pytest.mark.asyncio
    async def test_start_is_idempotent(self, coordinator):
        scheduler = SnapshotScheduler(coordinator, interval=60)

        first = scheduler.start()
        second = scheduler.start()
        await scheduler.stop()

        assert first is second

    @pytest.mark.asyncio
    async def test_stop_without_start(self, coordinator):
        scheduler = SnapshotScheduler(coordinator)

        await scheduler.stop()

        assert not scheduler.running
