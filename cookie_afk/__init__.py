"""
Cookie Clicker AFK core.

One browser-driven game session shared by many concurrent callers, with a
bounded, durable log of save-code backups taken on demand and on a schedule.
"""

from .backup_store import BackupStore, JsonlBackupStore, SqliteBackupStore, open_backup_store
from .coordinator import SessionCoordinator
from .driver import CookieClickerBrowser, GameHandle, Metrics, browser_factory
from .scheduler import SnapshotScheduler
from .session import Session
from .snapshot import Snapshot

__version__ = "0.2.0"

__all__ = [
    "BackupStore",
    "JsonlBackupStore",
    "SqliteBackupStore",
    "open_backup_store",
    "SessionCoordinator",
    "CookieClickerBrowser",
    "GameHandle",
    "Metrics",
    "browser_factory",
    "SnapshotScheduler",
    "Session",
    "Snapshot",
]
