"""
Telegram Bot Command System - the closed command set and its parser.

Incoming text is decoded once into a ParsedCommand; nothing downstream looks at
the raw message again.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List

from cookie_afk.errors import InvalidCommand

logger = logging.getLogger(__name__)


class CommandName(Enum):
    START = "start"
    RESUME = "resume"
    SCREENSHOT = "screenshot"
    DETAILS = "details"
    BACKUP = "backup"
    STOP = "stop"


@dataclass(frozen=True)
class Command:
    """A bot command definition."""
    name: CommandName
    description: str
    usage: str
    takes_argument: bool = False


COMMANDS: Dict[CommandName, Command] = {
    CommandName.START: Command(
        name=CommandName.START,
        description="Start a game from a save code (empty for a new game)",
        usage="/start <save code>",
        takes_argument=True,
    ),
    CommandName.RESUME: Command(
        name=CommandName.RESUME,
        description="Start a game from the newest backup",
        usage="/resume",
    ),
    CommandName.SCREENSHOT: Command(
        name=CommandName.SCREENSHOT,
        description="Screenshot of the running game",
        usage="/screenshot",
    ),
    CommandName.DETAILS: Command(
        name=CommandName.DETAILS,
        description="Cookie count and production rate",
        usage="/details",
    ),
    CommandName.BACKUP: Command(
        name=CommandName.BACKUP,
        description="Back up the current save code now",
        usage="/backup",
    ),
    CommandName.STOP: Command(
        name=CommandName.STOP,
        description="Stop the game and get its save code",
        usage="/stop",
    ),
}

_BY_VERB = {name.value: name for name in CommandName}


@dataclass(frozen=True)
class ParsedCommand:
    name: CommandName
    argument: str = ""

    @property
    def command(self) -> Command:
        return COMMANDS[self.name]


def parse_command(text: str) -> ParsedCommand:
    """
    Decode message text into a command.

    The verb is everything before the first space, case-sensitive, with an
    optional leading "/" and "@botname" suffix. The argument is the rest.

    Raises:
        InvalidCommand: the verb is not one of the known commands
    """
    text = (text or "").strip()
    verb, _, argument = text.partition(" ")

    if verb.startswith("/"):
        verb = verb[1:]
    verb = verb.split("@", 1)[0]

    name = _BY_VERB.get(verb)
    if name is None:
        raise InvalidCommand(f"Unknown command: {verb or '(empty)'}")

    argument = argument.strip()
    if argument and not COMMANDS[name].takes_argument:
        logger.debug(f"Ignoring argument to /{verb}")
        argument = ""

    return ParsedCommand(name=name, argument=argument)


def get_help_text() -> str:
    """Usage lines for every command."""
    lines: List[str] = ["Available commands:"]
    for cmd in COMMANDS.values():
        lines.append(f"  {cmd.usage} - {cmd.description}")
    return "\n".join(lines)
