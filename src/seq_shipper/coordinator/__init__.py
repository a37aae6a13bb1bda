"""Shipping coordinator

Timer-driven bookmark → read → deliver → settle loop with:
- cross-process exclusion through the bookmark file lock
- same-tick draining while batches are full
- file rotation (rollover onto the next file, deletion of shipped files)
- quarantine of permanently rejected payloads
- server-driven minimum level feedback (LevelSwitch)
"""

from .feedback import LevelChange, LevelSubscriber, LevelSwitch
from .shipper import (
    REQUIRED_LEVEL_CHECK_INTERVAL,
    ShipperHealth,
    ShipperState,
    ShippingCoordinator,
)
from .timer import TickTimer

__all__ = [
    # feedback
    "LevelChange",
    "LevelSubscriber",
    "LevelSwitch",
    # runtime
    "ShippingCoordinator",
    "ShipperHealth",
    "ShipperState",
    "TickTimer",
    "REQUIRED_LEVEL_CHECK_INTERVAL",
]
