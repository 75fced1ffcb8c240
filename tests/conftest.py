"""
Cookie AFK Test Configuration

Shared fixtures: an in-memory game handle standing in for the browser, backup
stores in a temporary directory, and a responder that records replies.
"""

import asyncio
from typing import List, Optional, Set, Tuple

import pytest

from cookie_afk.backup_store import JsonlBackupStore
from cookie_afk.coordinator import SessionCoordinator
from cookie_afk.driver import GameHandle, Metrics
from cookie_afk.errors import DriverError
from cookie_afk.session import Session
from tg_bot.dispatcher import CommandDispatcher, Responder


class FakeGameHandle(GameHandle):
    """Game handle that keeps the save code in memory and records every call."""

    def __init__(self, events: Optional[List[str]] = None, fail_on: Optional[Set[str]] = None, delay: float = 0.0):
        self.events = events if events is not None else []
        self.fail_on = fail_on if fail_on is not None else set()
        self.delay = delay
        self.token = ""
        self.closed = False

    async def _step(self, name: str) -> None:
        self.events.append(f"{name}:start")
        await asyncio.sleep(self.delay)
        if name in self.fail_on:
            self.events.append(f"{name}:failed")
            raise DriverError(f"{name} failed")
        self.events.append(f"{name}:end")

    async def load(self, token: str) -> None:
        await self._step("load")
        self.token = token

    async def read_token(self) -> str:
        await self._step("read_token")
        return self.token

    async def read_metrics(self) -> Metrics:
        await self._step("read_metrics")
        return Metrics(cookies=1500.0, cookies_per_second=2.5, cookies_display="1,500", per_hour_display="9,000")

    async def screenshot(self) -> bytes:
        await self._step("screenshot")
        return b"\x89PNG fake"

    async def close(self) -> None:
        await self._step("close")
        self.closed = True


class FakeHandleFactory:
    """Creates FakeGameHandles sharing one event log."""

    def __init__(self):
        self.created: List[FakeGameHandle] = []
        self.events: List[str] = []
        self.fail_on: Set[str] = set()
        self.fail_create = False
        self.delay = 0.0

    async def __call__(self) -> FakeGameHandle:
        if self.fail_create:
            raise DriverError("cannot connect to browser")
        handle = FakeGameHandle(events=self.events, fail_on=self.fail_on, delay=self.delay)
        self.created.append(handle)
        return handle

    @property
    def last(self) -> FakeGameHandle:
        return self.created[-1]


class RecordingResponder(Responder):
    """Collects replies instead of sending them."""

    def __init__(self):
        self.replies: List[Tuple[str, str]] = []

    async def send_text(self, text: str, preformatted: bool = False) -> None:
        self.replies.append(("pre" if preformatted else "text", text))

    async def send_document(self, data: bytes, filename: str) -> None:
        self.replies.append(("document", filename))
        self.document = data

    @property
    def texts(self) -> List[str]:
        return [body for kind, body in self.replies if kind != "document"]


# Temporary backup file
@pytest.fixture
def backup_path(tmp_path):
    return tmp_path / "data" / "backups.jsonl"


@pytest.fixture
def store(backup_path):
    return JsonlBackupStore.load(backup_path, capacity=5)


@pytest.fixture
def handle_factory():
    return FakeHandleFactory()


@pytest.fixture
def session(handle_factory):
    return Session(handle_factory)


@pytest.fixture
def coordinator(session, store):
    return SessionCoordinator(session, store)


@pytest.fixture
def dispatcher(coordinator):
    return CommandDispatcher(coordinator)


@pytest.fixture
def responder():
    return RecordingResponder()


# Keep real configuration out of tests
@pytest.fixture(autouse=True)
def setup_test_env(monkeypatch, tmp_path):
    for name in (
        "TELEGRAM_BOT_TOKEN",
        "TELEGRAM_ALLOWED_CHAT_IDS",
        "PERSISTENT_DATA_PATH",
        "BACKUP_BACKEND",
        "BACKUP_CAPACITY",
        "BACKUP_INTERVAL_SECONDS",
        "DRIVER_URL",
        "GAME_URL",
        "PAGE_READY_ATTEMPTS",
        "PAGE_READY_INTERVAL",
        "LOG_LEVEL",
    ):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("COOKIE_AFK_LOG_DIR", str(tmp_path / "logs"))
