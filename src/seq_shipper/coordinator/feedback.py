"""
Level-control feedback for the shipper.

The ingestion endpoint tells each shipper the minimum level it is willing
to accept. The coordinator writes that level into a shared LevelSwitch;
upstream filtering reads it (and may subscribe to changes) to avoid
buffering events the server would discard anyway.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Callable, Optional

from loguru import logger

from ..levels import LogEventLevel


@dataclass(frozen=True)
class LevelChange:
    """Immutable notification emitted when the switch level changes.

    Attributes:
        previous: Level before the change
        current: Level after the change
        reason: Optional context (e.g., "server", "no_reply")
    """

    previous: LogEventLevel
    current: LogEventLevel
    reason: str | None = None

    @property
    def raised(self) -> bool:
        """True when the new level filters more events than the old one."""
        return self.current > self.previous


LevelSubscriber = Callable[[LevelChange], None]


class LevelSwitch:
    """Thread-safe shared cell holding a minimum accepted level.

    Passed by reference into the coordinator; any number of readers may
    consult `minimum_level` concurrently. Subscribers are called outside
    the lock, in registration order, and their exceptions are logged and
    swallowed so one bad subscriber cannot break shipping.

    Example:
        switch = LevelSwitch(LogEventLevel.INFORMATION)

        def on_change(change: LevelChange):
            print(change.current)

        switch.subscribe(on_change)
        switch.set(LogEventLevel.WARNING, reason="server")
    """

    def __init__(self, initial: LogEventLevel = LogEventLevel.INFORMATION) -> None:
        self._level = initial
        self._lock = threading.Lock()
        self._subs: list[LevelSubscriber] = []

    @property
    def minimum_level(self) -> LogEventLevel:
        with self._lock:
            return self._level

    @minimum_level.setter
    def minimum_level(self, value: LogEventLevel) -> None:
        self.set(value)

    def set(self, value: LogEventLevel, reason: Optional[str] = None) -> None:
        """Update the level; notifies subscribers only on an actual change."""
        with self._lock:
            previous = self._level
            self._level = value
            subs = list(self._subs)

        if previous == value:
            return

        logger.debug(f"Minimum level changed {previous.value} -> {value.value} ({reason})")
        change = LevelChange(previous=previous, current=value, reason=reason)
        for callback in subs:
            try:
                callback(change)
            except Exception as exc:
                logger.debug(f"Level subscriber error (ignored): {type(exc).__name__}: {exc}")

    def is_enabled(self, level: LogEventLevel) -> bool:
        """Whether an event at `level` passes the current minimum."""
        return level >= self.minimum_level

    def subscribe(self, callback: LevelSubscriber) -> None:
        with self._lock:
            if callback not in self._subs:
                self._subs.append(callback)

    def unsubscribe(self, callback: LevelSubscriber) -> None:
        """Remove a subscriber; no-op when it was never added."""
        with self._lock:
            try:
                self._subs.remove(callback)
            except ValueError:
                pass

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subs)
