"""
Snapshot - an immutable, timestamped capture of a game save code.
"""

import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict

# Fractions longer than microseconds (e.g. nanosecond timestamps)
_LONG_FRACTION = re.compile(r"(\.\d{6})\d+")


def parse_timestamp(value: str) -> datetime:
    """
    Parse an ISO 8601 timestamp, including a trailing "Z" and sub-microsecond
    digits, which fromisoformat rejects before Python 3.11.
    """
    if not isinstance(value, str):
        raise TypeError(f"Timestamp must be a string, got {type(value).__name__}")
    if value.endswith(("Z", "z")):
        value = value[:-1] + "+00:00"
    return datetime.fromisoformat(_LONG_FRACTION.sub(r"\1", value))


@dataclass(frozen=True)
class Snapshot:
    """A resumable save code plus the moment it was captured."""

    token: str
    captured_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def __post_init__(self):
        if not isinstance(self.token, str) or not self.token:
            raise ValueError("Snapshot token must be a non-empty string")
        if self.captured_at.tzinfo is None:
            object.__setattr__(self, "captured_at", self.captured_at.replace(tzinfo=timezone.utc))

    def display_time(self) -> str:
        """Capture time formatted for chat replies."""
        return self.captured_at.astimezone(timezone.utc).strftime("%Y-%m-%d %H:%M:%S UTC")

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "saved_at": self.captured_at.isoformat(),
            "save_code": self.token,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Snapshot":
        """Create from dictionary. Raises KeyError/ValueError/TypeError on bad input."""
        return cls(
            token=data["save_code"],
            captured_at=parse_timestamp(data["saved_at"]),
        )
