"""
User-Friendly Error Handler.

Every failed command gets a reply naming the error kind verbatim, followed by
a short explanation and what to try next. Replies use Telegram HTML.
"""

import html
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List

from cookie_afk.errors import (
    BackupError,
    CookieAfkError,
    DriverError,
    InstanceAlreadyStarted,
    InstanceNotStarted,
    InvalidCommand,
    NoBackupsFound,
    PageNotReady,
    Unauthorized,
)
from tg_bot.commands import get_help_text

logger = logging.getLogger(__name__)


class ErrorCategory(Enum):
    """Categories of errors for appropriate handling."""
    INVALID_COMMAND = "invalid_command"
    NOT_STARTED = "not_started"
    ALREADY_STARTED = "already_started"
    NO_BACKUPS = "no_backups"
    UNAUTHORIZED = "unauthorized"
    BROWSER = "browser"
    TIMEOUT = "timeout"
    STORAGE = "storage"
    INTERNAL = "internal"


@dataclass
class FriendlyError:
    """A user-friendly error with suggestions."""
    message: str
    suggestions: List[str] = field(default_factory=list)


ERROR_TEMPLATES: Dict[ErrorCategory, FriendlyError] = {
    ErrorCategory.INVALID_COMMAND: FriendlyError(
        message="I didn't understand that command.",
    ),
    ErrorCategory.NOT_STARTED: FriendlyError(
        message="No game is running.",
        suggestions=["Use /start <save code> or /resume first"],
    ),
    ErrorCategory.ALREADY_STARTED: FriendlyError(
        message="A game is already running.",
        suggestions=["Use /stop to end it before starting another"],
    ),
    ErrorCategory.NO_BACKUPS: FriendlyError(
        message="There is no backup to resume from.",
        suggestions=["Start with /start <save code>"],
    ),
    ErrorCategory.UNAUTHORIZED: FriendlyError(
        message="This chat is not allowed to control the game.",
    ),
    ErrorCategory.BROWSER: FriendlyError(
        message="The browser reported an error.",
        suggestions=["Try again in a few seconds", "Use /screenshot to see what the page shows"],
    ),
    ErrorCategory.TIMEOUT: FriendlyError(
        message="The game page took too long to load.",
        suggestions=["Try again in a moment"],
    ),
    ErrorCategory.STORAGE: FriendlyError(
        message="The backup could not be written.",
        suggestions=["Check disk space and PERSISTENT_DATA_PATH"],
    ),
    ErrorCategory.INTERNAL: FriendlyError(
        message="Internal error. It has been logged.",
    ),
}


def classify_error(error: Exception) -> ErrorCategory:
    """Map an exception to the template used in the reply."""
    if isinstance(error, InvalidCommand):
        return ErrorCategory.INVALID_COMMAND
    if isinstance(error, InstanceNotStarted):
        return ErrorCategory.NOT_STARTED
    if isinstance(error, InstanceAlreadyStarted):
        return ErrorCategory.ALREADY_STARTED
    if isinstance(error, NoBackupsFound):
        return ErrorCategory.NO_BACKUPS
    if isinstance(error, Unauthorized):
        return ErrorCategory.UNAUTHORIZED
    if isinstance(error, PageNotReady):
        return ErrorCategory.TIMEOUT
    if isinstance(error, DriverError):
        return ErrorCategory.BROWSER
    if isinstance(error, BackupError):
        return ErrorCategory.STORAGE
    return ErrorCategory.INTERNAL


def error_kind(error: Exception) -> str:
    """Name shown to the user."""
    if isinstance(error, CookieAfkError):
        return error.kind
    return "InternalError"


def format_error_message(error: Exception) -> str:
    """
    Format an error into a Telegram HTML reply.

    Args:
        error: The exception to format

    Returns:
        HTML message starting with ``Error: <pre>Kind</pre>``
    """
    category = classify_error(error)
    template = ERROR_TEMPLATES[category]

    lines = [
        f"Error: <pre>{html.escape(error_kind(error))}</pre>",
        f"<i>{html.escape(template.message)}</i>",
    ]

    for suggestion in template.suggestions:
        lines.append(f"  - {html.escape(suggestion)}")

    if category is ErrorCategory.INVALID_COMMAND:
        lines.append("")
        lines.append(html.escape(get_help_text()))

    return "\n".join(lines)


__all__ = [
    "ErrorCategory",
    "FriendlyError",
    "classify_error",
    "error_kind",
    "format_error_message",
    "ERROR_TEMPLATES",
]
