"""
Tests for environment configuration.
"""

from pathlib import Path

from cookie_afk.backup_store import DEFAULT_CAPACITY
from cookie_afk.config import AfkConfig, reload_config
from cookie_afk.driver import COOKIE_CLICKER_BETA_URL


class TestDefaults:
    """Nothing set."""

    def test_defaults(self):
        config = AfkConfig()

        assert config.backup_capacity == DEFAULT_CAPACITY
        assert config.backup_interval_seconds == 60
        assert config.backup_backend == "jsonl"
        assert config.game_url == COOKIE_CLICKER_BETA_URL
        assert config.persistent_data_path.name == "backups.jsonl"

    def test_token_missing(self):
        config = AfkConfig()

        assert config.get_missing() == ["TELEGRAM_BOT_TOKEN"]
        assert not config.is_valid()


class TestFromEnvironment:
    """Values read from the environment."""

    def test_reads_values(self, monkeypatch, tmp_path):
        monkeypatch.setenv("TELEGRAM_BOT_TOKEN", "123456:abcdef")
        monkeypatch.setenv("PERSISTENT_DATA_PATH", str(tmp_path / "b.db"))
        monkeypatch.setenv("BACKUP_BACKEND", "SQLite")
        monkeypatch.setenv("BACKUP_CAPACITY", "10")
        monkeypatch.setenv("BACKUP_INTERVAL_SECONDS", "2.5")
        monkeypatch.setenv("DRIVER_URL", "http://localhost:9222")

        config = AfkConfig()

        assert config.is_valid()
        assert config.persistent_data_path == Path(tmp_path / "b.db")
        assert config.backup_backend == "sqlite"
        assert config.backup_capacity == 10
        assert config.backup_interval_seconds == 2.5
        assert config.driver_url == "http://localhost:9222"

    def test_bad_number_falls_back(self, monkeypatch):
        monkeypatch.setenv("BACKUP_CAPACITY", "lots")

        assert AfkConfig().backup_capacity == DEFAULT_CAPACITY

    def test_problems_reported(self, monkeypatch):
        monkeypatch.setenv("TELEGRAM_BOT_TOKEN", "123456:abcdef")
        monkeypatch.setenv("BACKUP_CAPACITY", "0")
        monkeypatch.setenv("BACKUP_BACKEND", "redis")

        problems = AfkConfig().get_problems()

        assert len(problems) == 2

    def test_reload(self, monkeypatch):
        monkeypatch.setenv("TELEGRAM_BOT_TOKEN", "first-token")
        assert reload_config().telegram_token == "first-token"


class TestAccess:
    """Chat allowlist."""

    def test_empty_allows_all(self):
        assert AfkConfig().is_allowed(42)

    def test_allowlist(self, monkeypatch):
        monkeypatch.setenv("TELEGRAM_ALLOWED_CHAT_IDS", "42, -100123, junk")
        config = AfkConfig()

        assert config.allowed_chat_ids == {42, -100123}
        assert config.is_allowed(-100123)
        assert not config.is_allowed(7)

    def test_mask_key(self):
        assert AfkConfig().mask_key("123456:abcdefgh") == "1234...efgh"
