"""
Tests for the Session lifecycle.

The handle exists exactly while the session is ACTIVE, whatever the outcome
of start/stop.
"""

import pytest

from cookie_afk.errors import AlreadyActive, DriverError, NotActive
from cookie_afk.session import mask_token


class TestStart:
    """INACTIVE -> ACTIVE."""

    @pytest.mark.asyncio
    async def test_start_loads_token(self, session, handle_factory):
        await session.start("ABC")

        assert session.active
        assert handle_factory.last.token == "ABC"
        assert session.started_at is not None

    @pytest.mark.asyncio
    async def test_start_twice_rejected(self, session, handle_factory):
        await session.start("ABC")

        with pytest.raises(AlreadyActive):
            await session.start("XYZ")

        assert len(handle_factory.created) == 1
        assert handle_factory.last.token == "ABC"

    @pytest.mark.asyncio
    async def test_browser_unavailable_stays_inactive(self, session, handle_factory):
        handle_factory.fail_create = True

        with pytest.raises(DriverError):
            await session.start("ABC")

        assert not session.active

    @pytest.mark.asyncio
    async def test_load_failure_closes_handle(self, session, handle_factory):
        handle_factory.fail_on.add("load")

        with pytest.raises(DriverError):
            await session.start("ABC")

        assert not session.active
        assert handle_factory.last.closed

    @pytest.mark.asyncio
    async def test_load_and_close_failure_still_inactive(self, session, handle_factory):
        handle_factory.fail_on.update({"load", "close"})

        with pytest.raises(DriverError):
            await session.start("ABC")

        assert not session.active


class TestStop:
    """ACTIVE -> INACTIVE."""

    @pytest.mark.asyncio
    async def test_stop_returns_token_and_closes(self, session, handle_factory):
        await session.start("ABC")

        token = await session.stop()

        assert token == "ABC"
        assert not session.active
        assert handle_factory.last.closed
        assert handle_factory.events.index("read_token:end") < handle_factory.events.index("close:start")

    @pytest.mark.asyncio
    async def test_stop_when_inactive(self, session):
        with pytest.raises(NotActive):
            await session.stop()

    @pytest.mark.asyncio
    async def test_unreadable_token_keeps_session(self, session, handle_factory):
        await session.start("ABC")
        handle_factory.fail_on.add("read_token")

        with pytest.raises(DriverError):
            await session.stop()

        assert session.active
        assert not handle_factory.last.closed

    @pytest.mark.asyncio
    async def test_close_failure_after_read_returns_token(self, session, handle_factory):
        await session.start("ABC")
        handle_factory.fail_on.add("close")

        token = await session.stop()

        assert token == "ABC"
        assert not session.active

    @pytest.mark.asyncio
    async def test_restart_after_stop(self, session, handle_factory):
        await session.start("ABC")
        await session.stop()
        await session.start("DEF")

        assert len(handle_factory.created) == 2
        assert handle_factory.last.token == "DEF"


class TestActiveOperations:
    """Operations that need a running game."""

    @pytest.mark.asyncio
    async def test_inactive_operations_raise(self, session):
        for operation in (session.snapshot_token, session.metrics, session.screenshot):
            with pytest.raises(NotActive):
                await operation()

    @pytest.mark.asyncio
    async def test_snapshot_token_does_not_stop(self, session):
        await session.start("ABC")

        assert await session.snapshot_token() == "ABC"
        assert session.active

    @pytest.mark.asyncio
    async def test_metrics_and_screenshot(self, session):
        await session.start("ABC")

        metrics = await session.metrics()
        image = await session.screenshot()

        assert metrics.cookies == 1500.0
        assert metrics.cookies_per_hour == 9000.0
        assert image.startswith(b"\x89PNG")

    @pytest.mark.asyncio
    async def test_reset_discards_handle(self, session, handle_factory):
        await session.start("ABC")

        await session.reset()

        assert not session.active
        assert session.uptime() is None
        assert handle_factory.last.closed


class TestMaskToken:
    """Save codes are shortened in logs."""

    def test_short_token_hidden(self):
        assert mask_token("ABC") == "***"

    def test_long_token_ends_kept(self):
        assert mask_token("0123456789abcdefXYZ") == "012345...defXYZ"
