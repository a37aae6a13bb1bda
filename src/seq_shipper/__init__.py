"""
Seq Log Shipper

Durable shipper for rotated JSON buffer files: reads them line by line,
posts bulk batches to a Seq server and resumes from a locked on-disk
bookmark after restarts or crashes.

Usage:
    from seq_shipper import ShippingCoordinator, LevelSwitch

    switch = LevelSwitch()
    shipper = ShippingCoordinator(
        "https://seq.example.com", "/var/buffer/myapp", level_switch=switch
    )
    shipper.start()
    ...
    shipper.close()
"""

from .batch import BatchReader
from .bookmark import BookmarkStore
from .client import DeliveryClient, encode_events
from .coordinator import LevelSwitch, ShipperHealth, ShipperState, ShippingCoordinator
from .errors import BookmarkLockedError, ConfigurationError, ShipperError
from .fileset import FileSetEnumerator
from .levels import LogEventLevel
from .models import Accepted, Batch, Bookmark, Rejected, TransientFailure

__version__ = "1.0.0"
__all__ = [
    "ShippingCoordinator",
    "ShipperHealth",
    "ShipperState",
    "LevelSwitch",
    "LogEventLevel",
    "BookmarkStore",
    "FileSetEnumerator",
    "BatchReader",
    "DeliveryClient",
    "encode_events",
    "Bookmark",
    "Batch",
    "Accepted",
    "Rejected",
    "TransientFailure",
    "ShipperError",
    "BookmarkLockedError",
    "ConfigurationError",
]
