"""
Bookmark store: persisted shipping cursor guarded by an exclusive file lock.

The lock is held for a whole shipping tick, so it doubles as the
cross-process mutual exclusion that stops two shippers sending the same
lines. Record format is a single line: "<offset>:::<file>".
"""

from __future__ import annotations

import os
from contextlib import contextmanager
from typing import IO, Iterator, Optional

from loguru import logger

from .errors import BookmarkLockedError
from .models import Bookmark, ZERO_BOOKMARK
from .utils import is_file_in_use, try_lock, unlock

SEPARATOR = ":::"


class BookmarkStore:
    """Reads and writes `<base>.bookmark` under an OS advisory lock."""

    def __init__(self, path: str):
        self._path = os.path.abspath(path)

    @property
    def path(self) -> str:
        return self._path

    @property
    def folder(self) -> str:
        return os.path.dirname(self._path)

    @contextmanager
    def open(self) -> Iterator[IO[bytes]]:
        """Open (creating if needed) and lock the bookmark for one tick.

        Raises:
            BookmarkLockedError: another holder has the lock
        """
        fd = os.open(self._path, os.O_RDWR | os.O_CREAT, 0o644)
        fh = os.fdopen(fd, "r+b")
        try:
            try:
                try_lock(fh)
            except OSError as e:
                if is_file_in_use(e):
                    raise BookmarkLockedError(f"bookmark {self._path} is locked") from e
                raise
            try:
                yield fh
            finally:
                try:
                    unlock(fh)
                except OSError as e:
                    logger.debug(f"Bookmark unlock failed (closing anyway): {e}")
        finally:
            fh.close()

    def read(self, handle: IO[bytes]) -> Bookmark:
        """Parse the record; anything malformed yields the zero bookmark."""
        handle.seek(0)
        raw = handle.read()
        handle.seek(0)
        if not raw:
            return ZERO_BOOKMARK
        return parse_bookmark(raw.decode("utf-8", errors="replace"))

    def write(self, handle: IO[bytes], offset: int, file: str) -> None:
        """Overwrite the record: truncate, then one write."""
        record = f"{offset}{SEPARATOR}{file}\n".encode("utf-8")
        handle.seek(0)
        handle.truncate()
        handle.write(record)
        handle.flush()

    def clear(self, handle: IO[bytes]) -> None:
        """Forget the cursor; the next tick starts from the oldest file."""
        handle.seek(0)
        handle.truncate()
        handle.flush()

    def peek(self) -> Optional[Bookmark]:
        """Read the current bookmark without taking the lock (diagnostics)."""
        try:
            with open(self._path, "rb") as fh:
                raw = fh.read()
        except FileNotFoundError:
            return None
        return parse_bookmark(raw.decode("utf-8", errors="replace"))


def parse_bookmark(text: str) -> Bookmark:
    line = text.splitlines()[0] if text else ""
    parts = [p for p in line.split(SEPARATOR) if p]
    if len(parts) != 2:
        return ZERO_BOOKMARK
    try:
        offset = int(parts[0])
    except ValueError:
        logger.debug(f"Ignoring malformed bookmark offset: {parts[0]!r}")
        return ZERO_BOOKMARK
    if offset < 0:
        return ZERO_BOOKMARK
    return Bookmark(offset=offset, file=parts[1].strip())
