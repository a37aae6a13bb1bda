"""
Seq event levels.

The ingestion endpoint reports the minimum level it accepts using these
names; ordering follows the declaration order (Verbose is most permissive).
"""

from __future__ import annotations

from enum import Enum
from typing import Optional


class LogEventLevel(str, Enum):
    """Event severity levels, least to most severe."""

    VERBOSE = "Verbose"
    DEBUG = "Debug"
    INFORMATION = "Information"
    WARNING = "Warning"
    ERROR = "Error"
    FATAL = "Fatal"

    @property
    def rank(self) -> int:
        return _ORDER.index(self)

    def __lt__(self, other):  # type: ignore[override]
        if not isinstance(other, LogEventLevel):
            return NotImplemented
        return self.rank < other.rank

    def __le__(self, other):  # type: ignore[override]
        if not isinstance(other, LogEventLevel):
            return NotImplemented
        return self.rank <= other.rank

    def __gt__(self, other):  # type: ignore[override]
        if not isinstance(other, LogEventLevel):
            return NotImplemented
        return self.rank > other.rank

    def __ge__(self, other):  # type: ignore[override]
        if not isinstance(other, LogEventLevel):
            return NotImplemented
        return self.rank >= other.rank

    @classmethod
    def parse(cls, value: str) -> Optional["LogEventLevel"]:
        """Case-insensitive lookup by name; returns None for unknown names."""
        wanted = value.strip().lower()
        for level in cls:
            if level.value.lower() == wanted:
                return level
        return None


_ORDER = list(LogEventLevel)

# Most permissive level; used whenever the server gives no instruction
MINIMUM_LEVEL = LogEventLevel.VERBOSE
