"""
Configuration for the Cookie Clicker AFK bot.

Everything comes from the environment; a ``.env`` file in the working directory
is loaded first if present. Secrets are never logged.
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Set

from dotenv import load_dotenv

from cookie_afk.backup_store import DEFAULT_CAPACITY
from cookie_afk.driver import COOKIE_CLICKER_BETA_URL
from cookie_afk.scheduler import DEFAULT_INTERVAL_SECONDS

logger = logging.getLogger(__name__)

DEFAULT_DATA_DIR = Path.home() / ".cookie_afk"

load_dotenv()


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning(f"Ignoring non-integer {name}={raw!r}, using {default}")
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        logger.warning(f"Ignoring non-numeric {name}={raw!r}, using {default}")
        return default


def _parse_chat_ids() -> Set[int]:
    """Parse allowed chat IDs from TELEGRAM_ALLOWED_CHAT_IDS="123,-100456"."""
    ids_str = os.getenv("TELEGRAM_ALLOWED_CHAT_IDS", "")
    ids = set()
    for id_str in ids_str.split(","):
        id_str = id_str.strip()
        if id_str.lstrip("-").isdigit():
            ids.add(int(id_str))
    return ids


def _default_data_path() -> Path:
    env_path = os.getenv("PERSISTENT_DATA_PATH", "").strip()
    if env_path:
        return Path(env_path).expanduser()
    return DEFAULT_DATA_DIR / "backups.jsonl"


@dataclass
class AfkConfig:
    """Bot, backup and browser settings."""

    # === REQUIRED ===
    telegram_token: str = field(default_factory=lambda: os.getenv("TELEGRAM_BOT_TOKEN", "").strip())

    # === ACCESS ===
    # Empty means every chat may send commands
    allowed_chat_ids: Set[int] = field(default_factory=_parse_chat_ids)

    # === BACKUPS ===
    persistent_data_path: Path = field(default_factory=_default_data_path)
    backup_backend: str = field(default_factory=lambda: os.getenv("BACKUP_BACKEND", "jsonl").strip().lower())
    backup_capacity: int = field(default_factory=lambda: _env_int("BACKUP_CAPACITY", DEFAULT_CAPACITY))
    backup_interval_seconds: float = field(
        default_factory=lambda: _env_float("BACKUP_INTERVAL_SECONDS", DEFAULT_INTERVAL_SECONDS)
    )

    # === BROWSER ===
    driver_url: str = field(default_factory=lambda: os.getenv("DRIVER_URL", "").strip())
    game_url: str = field(default_factory=lambda: os.getenv("GAME_URL", "").strip() or COOKIE_CLICKER_BETA_URL)
    page_ready_attempts: int = field(default_factory=lambda: _env_int("PAGE_READY_ATTEMPTS", 60))
    page_ready_interval: float = field(default_factory=lambda: _env_float("PAGE_READY_INTERVAL", 0.5))

    # === LOGGING ===
    log_level: str = field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO").strip().upper())
    log_dir: Path = field(
        default_factory=lambda: Path(os.getenv("COOKIE_AFK_LOG_DIR", "") or DEFAULT_DATA_DIR / "logs").expanduser()
    )

    def is_valid(self) -> bool:
        """Check if minimum required config is set."""
        return not self.get_missing() and not self.get_problems()

    def get_missing(self) -> List[str]:
        """Get list of missing required config."""
        missing = []
        if not self.telegram_token:
            missing.append("TELEGRAM_BOT_TOKEN")
        return missing

    def get_problems(self) -> List[str]:
        """Get list of values that are set but unusable."""
        problems = []
        if self.backup_capacity < 1:
            problems.append(f"BACKUP_CAPACITY must be >= 1 (got {self.backup_capacity})")
        if self.backup_interval_seconds <= 0:
            problems.append(f"BACKUP_INTERVAL_SECONDS must be > 0 (got {self.backup_interval_seconds})")
        if self.backup_backend not in ("jsonl", "sqlite"):
            problems.append(f"BACKUP_BACKEND must be 'jsonl' or 'sqlite' (got {self.backup_backend!r})")
        if self.page_ready_attempts < 1:
            problems.append(f"PAGE_READY_ATTEMPTS must be >= 1 (got {self.page_ready_attempts})")
        return problems

    def is_allowed(self, chat_id: int) -> bool:
        """Check whether a chat may control the session."""
        if not self.allowed_chat_ids:
            return True
        return chat_id in self.allowed_chat_ids

    def mask_key(self, key: str) -> str:
        """Mask the bot token for safe logging."""
        if not key or len(key) < 8:
            return "***"
        return f"{key[:4]}...{key[-4:]}"


_config: Optional[AfkConfig] = None


def get_config() -> AfkConfig:
    """Get singleton config instance."""
    global _config
    if _config is None:
        _config = AfkConfig()
    return _config


def reload_config() -> AfkConfig:
    """Re-read .env / environment and reset the singleton."""
    global _config
    load_dotenv(override=True)
    _config = AfkConfig()
    return _config
