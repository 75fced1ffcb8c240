"""
Session - the single game session and its two-state lifecycle.

    INACTIVE --start(token)--> ACTIVE --stop()--> INACTIVE

The automation handle exists if and only if the session is ACTIVE. Every
operation leaves the session in one of those two states, whether it succeeds
or fails. A Session is not safe for concurrent use on its own; callers go
through SessionCoordinator.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from cookie_afk.driver import GameHandle, HandleFactory, Metrics
from cookie_afk.errors import AlreadyActive, DriverError, NotActive

logger = logging.getLogger(__name__)


def mask_token(token: str) -> str:
    """Shorten a save code for logs."""
    if len(token) <= 12:
        return "***"
    return f"{token[:6]}...{token[-6:]}"


class Session:
    """Owns the automation handle of the one running game, if any."""

    def __init__(self, handle_factory: HandleFactory):
        self._handle_factory = handle_factory
        self._handle: Optional[GameHandle] = None
        self.started_at: Optional[datetime] = None

    @property
    def active(self) -> bool:
        return self._handle is not None

    def uptime(self) -> Optional[timedelta]:
        if self.started_at is None:
            return None
        return datetime.now(timezone.utc) - self.started_at

    def _require_handle(self) -> GameHandle:
        if self._handle is None:
            raise NotActive("No game session is running")
        return self._handle

    async def _discard(self, handle: GameHandle) -> None:
        """Close a handle we are giving up on; a failure here is only logged."""
        try:
            await handle.close()
        except DriverError as e:
            logger.warning(f"Failed to close browser handle: {e}")

    async def start(self, token: str) -> None:
        """
        Open a browser and load ``token`` into the game.

        Raises:
            AlreadyActive: a session is already running
            DriverError: the browser could not be opened or the save not loaded
        """
        if self.active:
            raise AlreadyActive("A game session is already running")

        handle = await self._handle_factory()
        try:
            await handle.load(token)
        except Exception:
            await self._discard(handle)
            raise

        self._handle = handle
        self.started_at = datetime.now(timezone.utc)
        logger.info(f"Session started with save {mask_token(token)}")

    async def stop(self) -> str:
        """
        Read the final save code, then close the browser.

        If the save code cannot be read the browser is left running and the
        session stays ACTIVE, so nothing resumable is thrown away.
        """
        handle = self._require_handle()
        token = await handle.read_token()

        self._handle = None
        self.started_at = None
        await self._discard(handle)
        logger.info(f"Session stopped with save {mask_token(token)}")
        return token

    async def snapshot_token(self) -> str:
        return await self._require_handle().read_token()

    async def metrics(self) -> Metrics:
        return await self._require_handle().read_metrics()

    async def screenshot(self) -> bytes:
        return await self._require_handle().screenshot()

    async def reset(self) -> None:
        """Drop the handle after an unrecoverable failure; the session becomes INACTIVE."""
        handle, self._handle = self._handle, None
        self.started_at = None
        if handle is not None:
            logger.warning("Resetting session, browser handle discarded")
            await self._discard(handle)
