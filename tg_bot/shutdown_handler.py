"""
Graceful shutdown handler for the AFK bot.

Ensures:
- The snapshot scheduler stops before the session is touched
- A running game gets a final backup so /resume works after restart
- The browser is released
"""

import logging
from typing import Optional

from telegram.ext import Application

from cookie_afk.coordinator import SessionCoordinator
from cookie_afk.scheduler import SnapshotScheduler

logger = logging.getLogger(__name__)


class SessionShutdownHandler:
    """
    Runs as the Application's post_shutdown hook.

    Usage:
        handler = SessionShutdownHandler(coordinator, scheduler)
        app = Application.builder().token(token).post_shutdown(handler).build()
    """

    def __init__(self, coordinator: SessionCoordinator, scheduler: Optional[SnapshotScheduler] = None):
        self.coordinator = coordinator
        self.scheduler = scheduler
        self._done = False

    async def __call__(self, application: Application) -> None:
        await self.shutdown()

    async def shutdown(self) -> None:
        if self._done:
            return
        self._done = True

        # Phase 1: stop unattended backups
        if self.scheduler is not None:
            logger.info("Stopping snapshot scheduler...")
            await self.scheduler.stop()

        # Phase 2: save state and release the browser
        logger.info("Saving session state...")
        await self.coordinator.shutdown()
        logger.info("Shutdown complete")
