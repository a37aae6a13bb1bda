from __future__ import annotations

import atexit
import os
import threading
from dataclasses import dataclass
from enum import Enum
from time import monotonic
from typing import IO, Callable, Optional

from loguru import logger

from ..batch import BatchReader
from ..bookmark import BookmarkStore
from ..client import DeliveryClient
from ..config import Settings
from ..errors import BookmarkLockedError, ConfigurationError
from ..fileset import FileSetEnumerator
from ..levels import MINIMUM_LEVEL, LogEventLevel
from ..metrics import metrics_registry
from ..models import Accepted, Batch, Bookmark, Outcome, Rejected
from ..utils import file_length, generate_id, is_file_in_use, try_lock, unlock
from .feedback import LevelSwitch
from .timer import TickTimer

# Ask the server for its level at least this often, even with nothing to ship
REQUIRED_LEVEL_CHECK_INTERVAL = 120.0


class ShipperState(str, Enum):
    IDLE = "idle"
    LOCKING = "locking"
    READING = "reading"
    NO_DATA = "no_data"
    SHIPPING = "shipping"
    SETTLING = "settling"
    SHUTTING_DOWN = "shutting_down"


@dataclass(frozen=True)
class ShipperHealth:
    """Point-in-time snapshot of a coordinator."""

    state: ShipperState
    bookmark: Optional[Bookmark]
    minimum_accepted_level: Optional[LogEventLevel]
    ticks: int
    last_outcome: Optional[str]
    unloading: bool


class ShippingCoordinator:
    """Ships rotated buffer files to Seq on a timer.

    Each tick takes the bookmark lock, reads a batch from the bookmarked
    position, posts it and moves the bookmark according to the reply. While
    batches come back full the tick keeps draining under the same lock.
    With nothing to ship it handles rotation: rolling onto the next file or
    deleting the oldest one once a third file exists.

    Example:
        shipper = ShippingCoordinator(
            "https://seq.example.com",
            "/var/buffer/myapp",
            batch_posting_limit=500,
            period=2.0,
        )
        shipper.start()
        ...
        shipper.close()  # stops the timer and flushes once more
    """

    def __init__(
        self,
        server_url: str,
        buffer_base_filename: str,
        api_key: Optional[str] = None,
        batch_posting_limit: int = 1000,
        period: float = 2.0,
        event_body_limit_bytes: Optional[int] = None,
        level_switch: Optional[LevelSwitch] = None,
        *,
        client: Optional[DeliveryClient] = None,
        http_timeout: Optional[float] = None,
        clock: Callable[[], float] = monotonic,
    ):
        if batch_posting_limit <= 0:
            raise ConfigurationError("batch_posting_limit must be > 0")
        if period <= 0:
            raise ConfigurationError("period must be > 0")
        if event_body_limit_bytes is not None and event_body_limit_bytes <= 0:
            raise ConfigurationError("event_body_limit_bytes must be > 0")

        self._batch_posting_limit = batch_posting_limit
        self._period = period
        self._event_body_limit_bytes = event_body_limit_bytes
        self._clock = clock

        self._client = client or DeliveryClient(server_url, api_key, timeout=http_timeout)
        self._bookmarks = BookmarkStore(buffer_base_filename + ".bookmark")
        self._log_folder = self._bookmarks.folder
        self._files = FileSetEnumerator(buffer_base_filename)
        self._reader = BatchReader()
        self._timer = TickTimer(self._on_tick)

        # Guards level state, unloading flag and health fields
        self._state_lock = threading.RLock()
        # At most one tick per process
        self._tick_lock = threading.RLock()

        self._level_switch = level_switch
        self._next_required_level_check = clock() + REQUIRED_LEVEL_CHECK_INTERVAL
        self._unloading = False
        self._started = False
        self._state = ShipperState.IDLE
        self._ticks = 0
        self._last_outcome: Optional[str] = None

    @classmethod
    def from_settings(
        cls, settings: Settings, level_switch: Optional[LevelSwitch] = None
    ) -> "ShippingCoordinator":
        if level_switch is None and settings.control_level is not None:
            level_switch = LevelSwitch(settings.control_level)
        return cls(
            settings.SERVER_URL,
            settings.BUFFER_BASE_FILENAME,
            api_key=settings.API_KEY,
            batch_posting_limit=settings.BATCH_POSTING_LIMIT,
            period=settings.PERIOD_SECONDS,
            event_body_limit_bytes=settings.EVENT_BODY_LIMIT_BYTES,
            level_switch=level_switch,
            http_timeout=settings.HTTP_TIMEOUT_SECONDS,
        )

    def __repr__(self) -> str:
        return f"ShippingCoordinator(bookmark={self._bookmarks.path!r})"

    # ---------- lifecycle ----------

    def start(self) -> None:
        """Arm the timer and register the exit-time flush."""
        with self._state_lock:
            if self._unloading:
                raise RuntimeError("coordinator is shut down")
            if self._started:
                return
            self._started = True
        atexit.register(self.close)
        self._timer.start(self._period)
        logger.info(f"Shipping {self._files.folder}/{self._files.pattern} to {self._client.endpoint}")

    def close(self) -> None:
        """Stop the timer, wait for any in-flight tick, then flush once more.

        Safe to call multiple times.
        """
        with self._state_lock:
            if self._unloading:
                return
            self._unloading = True
            self._state = ShipperState.SHUTTING_DOWN

        atexit.unregister(self.close)
        self._timer.dispose()
        try:
            self._on_tick()
        finally:
            self._client.close()
            logger.debug(f"{self!r} closed")

    def __enter__(self) -> "ShippingCoordinator":
        self.start()
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    # ---------- collaborator-facing state ----------

    @property
    def minimum_accepted_level(self) -> Optional[LogEventLevel]:
        """Last minimum level indicated by the server, if any."""
        with self._state_lock:
            return self._level_switch.minimum_level if self._level_switch else None

    @property
    def level_switch(self) -> Optional[LevelSwitch]:
        with self._state_lock:
            return self._level_switch

    @property
    def state(self) -> ShipperState:
        with self._state_lock:
            return self._state

    def health(self) -> ShipperHealth:
        with self._state_lock:
            return ShipperHealth(
                state=self._state,
                bookmark=self._bookmarks.peek(),
                minimum_accepted_level=(
                    self._level_switch.minimum_level if self._level_switch else None
                ),
                ticks=self._ticks,
                last_outcome=self._last_outcome,
                unloading=self._unloading,
            )

    def ship_once(self) -> None:
        """Run one tick synchronously on the calling thread."""
        self._on_tick()

    # ---------- tick ----------

    def _on_tick(self) -> None:
        minimum_accepted_level: Optional[LogEventLevel] = None
        outcome = "completed"

        with self._tick_lock:
            try:
                self._set_state(ShipperState.LOCKING)
                with self._bookmarks.open() as handle:
                    minimum_accepted_level = self._drain(handle)
            except BookmarkLockedError:
                # Another shipper owns this buffer right now
                outcome = "locked"
                logger.debug(f"Bookmark {self._bookmarks.path} is locked; skipping tick")
            except Exception as exc:
                outcome = "failed"
                logger.exception(f"Exception while emitting periodic batch from {self!r}: {exc}")
            finally:
                metrics_registry.ticks_total.labels(outcome=outcome).inc()
                with self._state_lock:
                    self._ticks += 1
                    self._last_outcome = outcome
                    self._apply_level(minimum_accepted_level)
                    if self._unloading:
                        self._state = ShipperState.SHUTTING_DOWN
                    else:
                        self._state = ShipperState.IDLE
                        if self._started:
                            self._timer.start(self._period)

    def _drain(self, handle: IO[bytes]) -> Optional[LogEventLevel]:
        """Ship batches while they come back full; returns the last server level."""
        minimum_accepted_level: Optional[LogEventLevel] = None

        while True:
            self._set_state(ShipperState.READING)
            bookmark = self._bookmarks.read(handle)
            file_set = self._files.list()

            current, offset = bookmark.file, bookmark.offset
            if current is None or not os.path.exists(current):
                offset = 0
                current = file_set[0] if file_set else None

            if current is None:
                self._set_state(ShipperState.NO_DATA)
                return minimum_accepted_level

            batch = self._reader.read(
                current, offset, self._batch_posting_limit, self._event_body_limit_bytes
            )
            dropped = batch.lines_attempted - len(batch.lines)
            if dropped:
                metrics_registry.events_dropped_total.labels(reason="oversized_or_blank").inc(
                    dropped
                )

            advanced = False
            if batch.lines_attempted > 0 or self._level_check_due():
                self._set_state(ShipperState.SHIPPING)
                with self._state_lock:
                    self._next_required_level_check = (
                        self._clock() + REQUIRED_LEVEL_CHECK_INTERVAL
                    )

                result = self._client.deliver(batch.lines)
                advanced = self._settle(handle, result, batch, current)
                if isinstance(result, Accepted):
                    minimum_accepted_level = result.minimum_level
            else:
                self._set_state(ShipperState.NO_DATA)
                self._housekeep(handle, file_set, current, batch.next_offset)

            self._set_state(ShipperState.SETTLING)
            # Only a full batch that actually moved the bookmark means more
            # data may be waiting; a failed one waits for the next tick
            if not (advanced and batch.lines_attempted == self._batch_posting_limit):
                return minimum_accepted_level

    def _settle(self, handle: IO[bytes], result: Outcome, batch: Batch, current: str) -> bool:
        """Apply a delivery outcome to the bookmark. Returns True if it advanced."""
        if isinstance(result, Accepted):
            self._bookmarks.write(handle, batch.next_offset, current)
            metrics_registry.batches_total.labels(outcome="accepted").inc()
            metrics_registry.events_shipped_total.inc(len(batch.lines))
            if batch.lines:
                logger.debug(f"Shipped {len(batch.lines)} events from {current}")
            return True

        if isinstance(result, Rejected):
            self._quarantine(result)
            self._bookmarks.write(handle, batch.next_offset, current)
            metrics_registry.batches_total.labels(outcome="rejected").inc()
            metrics_registry.events_dropped_total.labels(reason="rejected").inc(len(batch.lines))
            return True

        metrics_registry.batches_total.labels(outcome="transient").inc()
        if result.error is not None:
            logger.warning(f"Shipping failed, will retry: {type(result.error).__name__}: {result.error}")
        else:
            logger.warning(
                f"Received failed HTTP shipping result {result.status_code}: {result.body}"
            )
        return False

    def _quarantine(self, result: Rejected) -> str:
        """Keep a rejected payload on disk for an operator to inspect."""
        filename = f"invalid-{result.status_code}-{generate_id()}.json"
        path = os.path.join(self._log_folder, filename)
        logger.warning(
            f"HTTP shipping failed with {result.status_code}: {result.body}; "
            f"dumping payload to {path}"
        )
        with open(path, "w", encoding="utf-8") as fh:
            fh.write(result.payload)
        return path

    def _housekeep(
        self, handle: IO[bytes], file_set: list[str], current: str, next_offset: int
    ) -> None:
        # Only move on if no other process has the current file locked and
        # its length is as we found it
        if (
            len(file_set) == 2
            and file_set[0] == current
            and self._is_unlocked_at_length(current, next_offset)
        ):
            logger.info(f"Rolling bookmark forward from {current} to {file_set[1]}")
            self._bookmarks.write(handle, 0, file_set[1])

        if len(file_set) > 2:
            # A third file means the writer has moved past the oldest one
            oldest = file_set[0]
            try:
                os.remove(oldest)
            except OSError as e:
                logger.warning(f"Could not delete shipped buffer file {oldest}: {e}")
                return
            metrics_registry.files_deleted_total.inc()
            logger.info(f"Deleted buffer file {oldest}")
            if oldest == current:
                self._bookmarks.write(handle, 0, file_set[1])

    def _is_unlocked_at_length(self, file: str, max_len: int) -> bool:
        try:
            with open(file, "r+b") as fh:
                try_lock(fh)
                try:
                    return file_length(fh) <= max_len
                finally:
                    unlock(fh)
        except OSError as e:
            if not is_file_in_use(e):
                logger.warning(f"Unexpected I/O exception while testing locked status of {file}: {e}")
        except Exception as e:
            logger.warning(f"Unexpected exception while testing locked status of {file}: {e}")
        return False

    # ---------- state helpers ----------

    def _level_check_due(self) -> bool:
        with self._state_lock:
            return (
                self._level_switch is not None
                and self._next_required_level_check < self._clock()
            )

    def _apply_level(self, minimum_accepted_level: Optional[LogEventLevel]) -> None:
        """Called under _state_lock at the end of every tick."""
        if minimum_accepted_level is None:
            # No reply this tick: open the gate fully until the server says otherwise
            if self._level_switch is not None:
                self._level_switch.set(MINIMUM_LEVEL, reason="no_reply")
        elif self._level_switch is None:
            self._level_switch = LevelSwitch(minimum_accepted_level)
        else:
            self._level_switch.set(minimum_accepted_level, reason="server")

        if self._level_switch is not None:
            metrics_registry.minimum_level.set(self._level_switch.minimum_level.rank)

    def _set_state(self, state: ShipperState) -> None:
        with self._state_lock:
            if not self._unloading:
                self._state = state
