from __future__ import annotations

import threading
from typing import Callable, Optional

from loguru import logger


class TickTimer:
    """One-shot, re-armable timer driving shipping ticks.

    The callback runs on a daemon timer thread. The timer never fires while
    a callback is in flight, and it is only re-armed by an explicit
    `start()` (the coordinator calls it at the end of each tick), so ticks
    never overlap. A `start()` made while the callback is running is held
    back and armed as soon as the callback returns.
    """

    def __init__(self, on_tick: Callable[[], None], name: str = "seq-shipper-tick"):
        self._on_tick = on_tick
        self._name = name
        self._lock = threading.Lock()
        self._idle = threading.Condition(self._lock)
        self._timer: Optional[threading.Timer] = None
        self._running = False
        self._running_ident: Optional[int] = None
        self._pending_interval: Optional[float] = None
        self._disposed = False

    @property
    def disposed(self) -> bool:
        return self._disposed

    def start(self, interval: float) -> None:
        """Arm (or re-arm) the timer to fire once after `interval` seconds."""
        with self._lock:
            if self._disposed:
                return
            if self._running:
                self._pending_interval = interval
                return
            self._arm(interval)

    def dispose(self, timeout: Optional[float] = None) -> bool:
        """Stop firing; wait for an in-flight callback to finish.

        Returns False if the wait timed out.
        """
        with self._lock:
            self._disposed = True
            self._pending_interval = None
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None
            if self._running and self._running_ident == threading.get_ident():
                # disposing from inside the callback; nothing to wait for
                return True
            return self._idle.wait_for(lambda: not self._running, timeout=timeout)

    def _arm(self, interval: float) -> None:
        # Caller holds self._lock
        if self._timer is not None:
            self._timer.cancel()
        timer = threading.Timer(interval, self._fire)
        timer.daemon = True
        timer.name = self._name
        self._timer = timer
        timer.start()

    def _fire(self) -> None:
        with self._lock:
            if self._disposed or self._running:
                return
            self._running = True
            self._running_ident = threading.get_ident()
            self._timer = None

        try:
            self._on_tick()
        except Exception as exc:
            logger.exception(f"Unhandled error in tick callback: {exc}")
        finally:
            with self._lock:
                self._running = False
                self._running_ident = None
                interval, self._pending_interval = self._pending_interval, None
                if interval is not None and not self._disposed:
                    self._arm(interval)
                self._idle.notify_all()
