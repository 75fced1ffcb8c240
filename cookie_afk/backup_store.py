"""
Backup Store - bounded, durable log of save-code snapshots.

Two backends share one contract:
- JsonlBackupStore: one JSON record per line, rewritten atomically on every push
  (temp file + fsync + os.replace, guarded by a file lock).
- SqliteBackupStore: a ``backups`` table, one transaction per push.

Both keep at most ``capacity`` snapshots, oldest-first, evicting exactly one
oldest entry when a push arrives at capacity. A push either lands on disk or
leaves the store exactly as it was.

Usage:
    store = JsonlBackupStore.load(Path("~/.cookie_afk/backups.jsonl").expanduser())
    store.push(Snapshot(token="Mi4wNDh8fDE3..."))
    latest = store.latest()
"""

import json
import logging
import os
import sqlite3
import tempfile
from abc import ABC, abstractmethod
from collections import deque
from contextlib import closing
from pathlib import Path
from typing import Deque, Iterable, Iterator, Optional, Tuple, Union

import filelock

from cookie_afk.errors import BackupDecodeError, BackupEncodeError, BackupIOError
from cookie_afk.snapshot import Snapshot

logger = logging.getLogger(__name__)

DEFAULT_CAPACITY = 512

# Seconds to wait for another process holding the store lock
LOCK_TIMEOUT = 10

PathLike = Union[str, Path]


class BackupStore(ABC):
    """Common bounded FIFO behaviour; subclasses decide how to persist."""

    def __init__(self, path: PathLike, capacity: int = DEFAULT_CAPACITY, entries: Iterable[Snapshot] = ()):
        if capacity < 1:
            raise ValueError(f"Backup capacity must be positive, got {capacity}")
        self.path = Path(path)
        self.capacity = capacity
        # maxlen keeps only the newest `capacity` records when loading an oversized file
        self._entries: Deque[Snapshot] = deque(entries, maxlen=capacity)

    @classmethod
    @abstractmethod
    def load(cls, path: PathLike, capacity: int = DEFAULT_CAPACITY) -> "BackupStore":
        """Read durable storage, returning an empty store if none exists yet."""

    @abstractmethod
    def _persist(self, snapshot: Snapshot, entries: Tuple[Snapshot, ...]) -> None:
        """Make ``entries`` (which ends with ``snapshot``) durable."""

    def push(self, snapshot: Snapshot) -> None:
        """Append a snapshot, evicting the oldest one at capacity, then persist."""
        previous = tuple(self._entries)
        evicted = self._entries[0] if len(self._entries) >= self.capacity else None
        self._entries.append(snapshot)

        try:
            self._persist(snapshot, tuple(self._entries))
        except Exception:
            self._entries = deque(previous, maxlen=self.capacity)
            raise

        if evicted is not None:
            logger.debug(f"Evicted backup taken at {evicted.display_time()}")
        logger.info(f"Backup stored ({len(self._entries)}/{self.capacity}) at {self.path}")

    def latest(self) -> Optional[Snapshot]:
        """Most recently pushed snapshot, or None."""
        if not self._entries:
            return None
        return self._entries[-1]

    @property
    def entries(self) -> Tuple[Snapshot, ...]:
        """Snapshots oldest-first."""
        return tuple(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[Snapshot]:
        return iter(self.entries)


class JsonlBackupStore(BackupStore):
    """Line-delimited JSON file, rewritten atomically on every push."""

    def __init__(self, path: PathLike, capacity: int = DEFAULT_CAPACITY, entries: Iterable[Snapshot] = ()):
        super().__init__(path, capacity, entries)
        self._lock = filelock.FileLock(f"{self.path}.lock", timeout=LOCK_TIMEOUT)

    @classmethod
    def load(cls, path: PathLike, capacity: int = DEFAULT_CAPACITY) -> "JsonlBackupStore":
        path = Path(path)
        if not path.exists():
            logger.info(f"No backup file at {path}, starting empty")
            return cls(path, capacity)

        try:
            text = path.read_text(encoding="utf-8")
        except UnicodeDecodeError as e:
            raise BackupDecodeError(f"{path} is not valid UTF-8: {e}") from e
        except OSError as e:
            raise BackupIOError(f"Cannot read {path}: {e}") from e

        entries = []
        for lineno, line in enumerate(text.splitlines(), start=1):
            if not line.strip():
                continue
            try:
                entries.append(Snapshot.from_dict(json.loads(line)))
            except (KeyError, TypeError, ValueError) as e:
                raise BackupDecodeError(f"{path}:{lineno}: bad backup record ({e})") from e

        store = cls(path, capacity, entries)
        if len(entries) > capacity:
            logger.warning(f"{path} holds {len(entries)} backups, keeping newest {capacity}")
        logger.info(f"Loaded {len(store)} backups from {path}")
        return store

    def _encode(self, entries: Tuple[Snapshot, ...]) -> bytes:
        try:
            text = "".join(json.dumps(s.to_dict(), ensure_ascii=False) + "\n" for s in entries)
            return text.encode("utf-8")
        except (TypeError, ValueError, UnicodeEncodeError) as e:
            raise BackupEncodeError(f"Cannot encode backups: {e}") from e

    def _persist(self, snapshot: Snapshot, entries: Tuple[Snapshot, ...]) -> None:
        payload = self._encode(entries)
        temp_path = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with self._lock:
                # Write to temp file then rename (atomic on POSIX and Windows)
                temp_fd, temp_path = tempfile.mkstemp(dir=self.path.parent, suffix=".jsonl.tmp")
                with os.fdopen(temp_fd, "wb") as f:
                    f.write(payload)
                    f.flush()
                    os.fsync(f.fileno())
                os.replace(temp_path, self.path)
                temp_path = None
        except (OSError, filelock.Timeout) as e:
            raise BackupIOError(f"Failed to write {self.path}: {e}") from e
        finally:
            if temp_path and os.path.exists(temp_path):
                os.unlink(temp_path)


class SqliteBackupStore(BackupStore):
    """SQLite table of backups; the row id preserves insertion order."""

    SCHEMA = """
        CREATE TABLE IF NOT EXISTS "backups" (
            "id" INTEGER NOT NULL UNIQUE,
            "save_code" TEXT NOT NULL,
            "created_at" TEXT NOT NULL,
            PRIMARY KEY("id" AUTOINCREMENT)
        );
        CREATE INDEX IF NOT EXISTS "backups_created_at" ON "backups" ("created_at" DESC);
    """

    def _connect(self) -> sqlite3.Connection:
        return sqlite3.connect(str(self.path), timeout=LOCK_TIMEOUT)

    @classmethod
    def load(cls, path: PathLike, capacity: int = DEFAULT_CAPACITY) -> "SqliteBackupStore":
        store = cls(path, capacity)
        try:
            store.path.parent.mkdir(parents=True, exist_ok=True)
            with closing(store._connect()) as conn:
                conn.executescript(cls.SCHEMA)
                rows = conn.execute(
                    'SELECT "save_code", "created_at" FROM "backups" ORDER BY "id" DESC LIMIT ?',
                    (capacity,),
                ).fetchall()
        except (OSError, sqlite3.OperationalError) as e:
            raise BackupIOError(f"Cannot open {store.path}: {e}") from e
        except sqlite3.Error as e:
            raise BackupDecodeError(f"{store.path} is not a usable backup database: {e}") from e

        for save_code, created_at in reversed(rows):
            try:
                store._entries.append(Snapshot.from_dict({"save_code": save_code, "saved_at": created_at}))
            except (TypeError, ValueError) as e:
                raise BackupDecodeError(f"{store.path}: bad backup row ({e})") from e

        logger.info(f"Loaded {len(store)} backups from {store.path}")
        return store

    def _persist(self, snapshot: Snapshot, entries: Tuple[Snapshot, ...]) -> None:
        record = snapshot.to_dict()
        try:
            with closing(self._connect()) as conn:
                with conn:
                    conn.execute(
                        'INSERT INTO "backups" ("save_code", "created_at") VALUES (?, ?)',
                        (record["save_code"], record["saved_at"]),
                    )
                    conn.execute(
                        'DELETE FROM "backups" WHERE "id" NOT IN '
                        '(SELECT "id" FROM "backups" ORDER BY "id" DESC LIMIT ?)',
                        (self.capacity,),
                    )
        except UnicodeEncodeError as e:
            raise BackupEncodeError(f"Cannot encode backup: {e}") from e
        except sqlite3.Error as e:
            raise BackupIOError(f"Failed to write {self.path}: {e}") from e


BACKENDS = {
    "jsonl": JsonlBackupStore,
    "sqlite": SqliteBackupStore,
}


def open_backup_store(config) -> BackupStore:
    """Load the backend selected by ``config.backup_backend``."""
    backend = BACKENDS.get(config.backup_backend)
    if backend is None:
        raise ValueError(
            f"Unknown BACKUP_BACKEND {config.backup_backend!r} (expected one of {', '.join(BACKENDS)})"
        )
    return backend.load(config.persistent_data_path, config.backup_capacity)
