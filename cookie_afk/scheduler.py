"""
Snapshot Scheduler - unattended periodic backups.

Every ``interval`` seconds the scheduler asks the coordinator for a scheduled
backup. An idle session is the normal state between games and is only logged
at INFO; any failure is logged at ERROR and the loop keeps going.
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Optional

from cookie_afk.coordinator import SessionCoordinator
from cookie_afk.errors import BackupError, CookieAfkError

logger = logging.getLogger(__name__)

DEFAULT_INTERVAL_SECONDS = 60


class SnapshotScheduler:
    """
    Runs ``coordinator.backup_now(scheduled=True)`` on a fixed interval.

    Usage:
        scheduler = SnapshotScheduler(coordinator, interval=60)
        scheduler.start()      # spawns the loop on the running event loop
        ...
        await scheduler.stop()
    """

    def __init__(self, coordinator: SessionCoordinator, interval: float = DEFAULT_INTERVAL_SECONDS):
        if interval <= 0:
            raise ValueError(f"Scheduler interval must be positive, got {interval}")
        self.coordinator = coordinator
        self.interval = interval
        self._task: Optional[asyncio.Task] = None

        # Stats
        self.runs = 0
        self.backups_taken = 0
        self.idle_skips = 0
        self.failures = 0
        self.last_backup_at: Optional[datetime] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def tick(self) -> None:
        """Run one backup attempt. Never raises."""
        self.runs += 1
        try:
            snapshot = await self.coordinator.backup_now(scheduled=True)
        except BackupError as e:
            self.failures += 1
            logger.error(f"Scheduled backup could not be stored: {e}")
            return
        except CookieAfkError as e:
            self.failures += 1
            logger.error(f"Scheduled backup failed: {e}")
            return
        except Exception:
            self.failures += 1
            logger.exception("Unexpected error in scheduled backup")
            return

        if snapshot is None:
            self.idle_skips += 1
            return

        self.backups_taken += 1
        self.last_backup_at = snapshot.captured_at
        logger.info("Back up done")

    async def run(self, iterations: Optional[int] = None) -> None:
        """Sleep then tick, forever or for ``iterations`` rounds."""
        logger.info(f"Snapshot scheduler running every {self.interval}s")
        count = 0
        while iterations is None or count < iterations:
            await asyncio.sleep(self.interval)
            await self.tick()
            count += 1

    def start(self) -> asyncio.Task:
        """Spawn the loop as a background task."""
        if self.running:
            return self._task
        self._task = asyncio.create_task(self.run(), name="snapshot-scheduler")
        return self._task

    async def stop(self) -> None:
        """Cancel the background loop and wait for it to finish."""
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info(f"Snapshot scheduler stopped: {self.get_stats()}")

    def get_stats(self) -> dict:
        return {
            "interval_seconds": self.interval,
            "running": self.running,
            "runs": self.runs,
            "backups_taken": self.backups_taken,
            "idle_skips": self.idle_skips,
            "failures": self.failures,
            "last_backup_at": self.last_backup_at.isoformat() if self.last_backup_at else None,
            "checked_at": datetime.now(timezone.utc).isoformat(),
        }
