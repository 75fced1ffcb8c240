"""
Command Dispatcher - runs parsed commands against the shared session.

Each command takes the coordinator's lock once for its whole duration, so two
users' commands never interleave. Replies go through a Responder so the
dispatcher does not depend on Telegram types.
"""

import logging
from abc import ABC, abstractmethod
from datetime import timedelta

from cookie_afk.coordinator import SessionCoordinator
from cookie_afk.errors import (
    AlreadyActive,
    InstanceAlreadyStarted,
    InstanceNotStarted,
    NotActive,
)
from cookie_afk.session import Session
from tg_bot.commands import CommandName, ParsedCommand, parse_command

logger = logging.getLogger(__name__)

STARTED_MESSAGE = (
    "Browser started! Use /screenshot to get a screenshot of the current session "
    "or /details to get details"
)


def format_uptime(uptime: timedelta) -> str:
    """H:MM:SS, or "N days, H:MM:SS" past a day."""
    return str(timedelta(seconds=int(uptime.total_seconds())))


class Responder(ABC):
    """Where command replies are sent."""

    @abstractmethod
    async def send_text(self, text: str, preformatted: bool = False) -> None:
        ...

    @abstractmethod
    async def send_document(self, data: bytes, filename: str) -> None:
        ...


def _require_active(session: Session) -> None:
    if not session.active:
        raise InstanceNotStarted("No game session is running")


def _require_inactive(session: Session) -> None:
    if session.active:
        raise InstanceAlreadyStarted("A game session is already running")


class CommandDispatcher:
    """Maps each CommandName to a handler coroutine."""

    def __init__(self, coordinator: SessionCoordinator):
        self.coordinator = coordinator
        self._handlers = {
            CommandName.START: self._start,
            CommandName.RESUME: self._resume,
            CommandName.SCREENSHOT: self._screenshot,
            CommandName.DETAILS: self._details,
            CommandName.BACKUP: self._backup,
            CommandName.STOP: self._stop,
        }

    async def dispatch(self, text: str, responder: Responder) -> ParsedCommand:
        """Parse ``text`` and run it. Errors propagate to the caller for reporting."""
        parsed = parse_command(text)
        logger.info(f"Command: {parsed.name.value}")
        await self.run(parsed, responder)
        return parsed

    async def run(self, parsed: ParsedCommand, responder: Responder) -> None:
        handler = self._handlers[parsed.name]
        try:
            await handler(parsed.argument, responder)
        except NotActive as e:
            raise InstanceNotStarted(str(e)) from e
        except AlreadyActive as e:
            raise InstanceAlreadyStarted(str(e)) from e

    async def _start(self, argument: str, responder: Responder) -> None:
        async with self.coordinator.session() as session:
            _require_inactive(session)
            await responder.send_text("Starting a new browser session...")
            await session.start(argument)
        await responder.send_text(STARTED_MESSAGE)

    async def _resume(self, argument: str, responder: Responder) -> None:
        async with self.coordinator.session() as session:
            _require_inactive(session)
            backup = self.coordinator.latest_backup()
            await responder.send_text(
                f"Starting a new browser session with backup taken at {backup.display_time()}"
            )
            await session.start(backup.token)
        await responder.send_text(STARTED_MESSAGE)

    async def _screenshot(self, argument: str, responder: Responder) -> None:
        async with self.coordinator.session() as session:
            _require_active(session)
            await responder.send_text("Taking screenshot...")
            screenshot = await session.screenshot()
        await responder.send_document(screenshot, "screenshot.png")

    async def _details(self, argument: str, responder: Responder) -> None:
        async with self.coordinator.session() as session:
            _require_active(session)
            metrics = await session.metrics()
            uptime = session.uptime()

        cookies = metrics.cookies_display or f"{metrics.cookies:,.0f}"
        per_hour = metrics.per_hour_display or f"{metrics.cookies_per_hour:,.0f}"
        await responder.send_text(
            f"You have {cookies} cookies and currently producing {per_hour} cookies per hour"
        )
        if uptime is not None:
            await responder.send_text(f"Game running for {format_uptime(uptime)}")

    async def _backup(self, argument: str, responder: Responder) -> None:
        async with self.coordinator.session() as session:
            _require_active(session)
            await responder.send_text("Starting backup...")
            await self.coordinator.backup_held(session)
        await responder.send_text("Backup complete")

    async def _stop(self, argument: str, responder: Responder) -> None:
        async with self.coordinator.session() as session:
            _require_active(session)
            save_code = await session.stop()
        await responder.send_text("Browser successfully stopped. Here is your code:")
        await responder.send_text(save_code, preformatted=True)
