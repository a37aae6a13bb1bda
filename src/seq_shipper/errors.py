"""
Custom exceptions for the Seq log shipper.

Every error raised inside a shipping tick is caught at the tick boundary;
these types exist so callers and logs can tell the failure classes apart.
"""


class ShipperError(Exception):
    """Base error for the shipper."""

    pass


class BookmarkLockedError(ShipperError):
    """Another process (or handle) currently holds the bookmark lock."""

    pass


class ConfigurationError(ShipperError):
    """Invalid or incomplete shipper configuration."""

    pass
