"""
Session Coordinator - exclusive access to the one game session.

All callers (Telegram command handlers and the snapshot scheduler) share one
SessionCoordinator. Its asyncio.Lock serializes them: waiters are woken in the
order they queued, so a burst of commands cannot starve the scheduler or the
other way around.

Usage:
    coordinator = SessionCoordinator(Session(factory), store)

    async with coordinator.session() as session:
        await session.start(token)

    await coordinator.backup_now()
"""

import asyncio
import inspect
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Awaitable, Callable, Optional, TypeVar, Union

from cookie_afk.backup_store import BackupStore
from cookie_afk.errors import CookieAfkError, NoBackupsFound, NotActive
from cookie_afk.session import Session
from cookie_afk.snapshot import Snapshot

logger = logging.getLogger(__name__)

T = TypeVar("T")


class SessionCoordinator:
    """Single owner of the Session plus the Backup Store it composes with."""

    def __init__(self, session: Session, store: BackupStore):
        self._session = session
        self.store = store
        self._lock = asyncio.Lock()

    @property
    def locked(self) -> bool:
        return self._lock.locked()

    @asynccontextmanager
    async def session(self) -> AsyncIterator[Session]:
        """Hold the lock for the duration of the block."""
        async with self._lock:
            yield self._session

    async def with_session(self, fn: Callable[[Session], Union[T, Awaitable[T]]]) -> T:
        """Apply ``fn`` to the session under the lock and return its result."""
        async with self.session() as session:
            result = fn(session)
            if inspect.isawaitable(result):
                result = await result
            return result

    async def backup_held(self, session: Session, scheduled: bool = False) -> Optional[Snapshot]:
        """Backup for a caller that already holds the lock via session()."""
        try:
            token = await session.snapshot_token()
        except NotActive:
            if not scheduled:
                raise
            logger.info("No active session, skipping scheduled backup")
            return None

        snapshot = Snapshot(token=token)
        await asyncio.to_thread(self.store.push, snapshot)
        return snapshot

    async def backup_now(self, scheduled: bool = False) -> Optional[Snapshot]:
        """
        Snapshot the active session into the backup store.

        An idle session is an error for on-demand calls (NotActive) but only
        an informational skip for scheduled calls, which then return None.
        """
        async with self.session() as session:
            return await self.backup_held(session, scheduled)

    def latest_backup(self) -> Snapshot:
        latest = self.store.latest()
        if latest is None:
            raise NoBackupsFound("There are no backups to resume from")
        return latest

    def resume_latest(self) -> str:
        """Newest backed-up token. Does not touch the session."""
        return self.latest_backup().token

    async def shutdown(self) -> None:
        """Take a last backup of a running game and release the browser."""
        async with self.session() as session:
            if not session.active:
                return
            try:
                await self.backup_held(session, scheduled=True)
                logger.info("Final backup taken before shutdown")
            except CookieAfkError as e:
                logger.error(f"Final backup failed: {e}")
            await session.reset()
