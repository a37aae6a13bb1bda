"""
Utility functions for the shipper.

Includes URL normalization, random identifiers and the platform-specific
file locking helpers used by the bookmark store and rotation probe.
"""

import errno
import os
import sys
import uuid
from typing import IO

if sys.platform.startswith("win"):
    import msvcrt
else:
    import fcntl

# Windows ERROR_SHARING_VIOLATION / ERROR_LOCK_VIOLATION
_WIN_IN_USE_CODES = {32, 33}
# flock contention is EWOULDBLOCK; msvcrt.locking reports it as a bare EACCES
if sys.platform.startswith("win"):
    _IN_USE_ERRNOS = {errno.EACCES}
else:
    _IN_USE_ERRNOS = {errno.EAGAIN, errno.EWOULDBLOCK}


def generate_id() -> str:
    """Generate a random hex identifier (no dashes)."""
    return uuid.uuid4().hex


def normalize_server_base_address(server_url: str) -> str:
    """Ensure the server URL ends with '/'.

    Relative resources are resolved against this base, so without the
    trailing slash the last path segment would be replaced:
    'https://seq.example.com/seq' + 'api/events/raw' must keep '/seq/'.
    """
    base = server_url.strip()
    if not base.endswith("/"):
        base += "/"
    return base


def is_file_in_use(error: BaseException) -> bool:
    """True when `error` proves another process holds the file open/locked.

    Unknown errors are not proof; callers decide how conservative to be.
    """
    if not isinstance(error, OSError):
        return False
    winerror = getattr(error, "winerror", None)
    if winerror is not None:
        return winerror in _WIN_IN_USE_CODES
    if isinstance(error, BlockingIOError):
        return True
    return error.errno in _IN_USE_ERRNOS


def try_lock(fh: IO) -> None:
    """Take a non-blocking exclusive lock on an open file.

    Raises OSError (see `is_file_in_use`) when someone else holds it.
    """
    if sys.platform.startswith("win"):
        fh.seek(0)
        msvcrt.locking(fh.fileno(), msvcrt.LK_NBLCK, 1)
    else:
        fcntl.flock(fh.fileno(), fcntl.LOCK_EX | fcntl.LOCK_NB)


def unlock(fh: IO) -> None:
    if sys.platform.startswith("win"):
        fh.seek(0)
        msvcrt.locking(fh.fileno(), msvcrt.LK_UNLCK, 1)
    else:
        fcntl.flock(fh.fileno(), fcntl.LOCK_UN)


def file_length(fh: IO) -> int:
    return os.fstat(fh.fileno()).st_size
