"""
Error types for the AFK session core.

Every error carries a ``kind`` that the Telegram front end reports verbatim to
the requester. Nothing in here is fatal to the process.
"""

from typing import Optional


class CookieAfkError(Exception):
    """Base class for all errors raised by cookie_afk and tg_bot."""

    kind = "CookieAfkError"

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or self.kind)


# === SESSION ERRORS ===

class SessionError(CookieAfkError):
    kind = "SessionError"


class AlreadyActive(SessionError):
    kind = "AlreadyActive"


class NotActive(SessionError):
    kind = "NotActive"


class DriverError(SessionError):
    """Opaque failure from the browser automation layer."""

    kind = "DriverError"


class PageNotReady(DriverError):
    """The game page did not become ready within the polling budget."""

    kind = "PageNotReady"


class SaveCodeNotFound(DriverError):
    kind = "SaveCodeNotFound"


class CookieCountNotFound(DriverError):
    kind = "CookieCountNotFound"


# === BACKUP ERRORS ===

class BackupError(CookieAfkError):
    kind = "BackupError"


class BackupIOError(BackupError):
    kind = "IOError"


class BackupEncodeError(BackupError):
    kind = "EncodeError"


class BackupDecodeError(BackupError):
    kind = "DecodeError"


# === COMMAND ERRORS ===

class CommandError(CookieAfkError):
    kind = "CommandError"


class InvalidCommand(CommandError):
    kind = "InvalidCommand"


class InstanceNotStarted(CommandError):
    kind = "InstanceNotStarted"


class InstanceAlreadyStarted(CommandError):
    kind = "InstanceAlreadyStarted"


class NoBackupsFound(CommandError):
    kind = "NoBackupsFound"


class Unauthorized(CommandError):
    """The chat is not on the allowlist."""

    kind = "Unauthorized"


__all__ = [
    "CookieAfkError",
    "SessionError",
    "AlreadyActive",
    "NotActive",
    "DriverError",
    "PageNotReady",
    "SaveCodeNotFound",
    "CookieCountNotFound",
    "BackupError",
    "BackupIOError",
    "BackupEncodeError",
    "BackupDecodeError",
    "CommandError",
    "InvalidCommand",
    "InstanceNotStarted",
    "InstanceAlreadyStarted",
    "NoBackupsFound",
    "Unauthorized",
]
