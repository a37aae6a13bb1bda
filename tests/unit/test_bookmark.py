"""
Unit tests for BookmarkStore.
"""

import sys

import pytest

from seq_shipper.bookmark import BookmarkStore, parse_bookmark
from seq_shipper.errors import BookmarkLockedError
from seq_shipper.models import Bookmark, ZERO_BOOKMARK

posix_only = pytest.mark.skipif(sys.platform.startswith("win"), reason="flock semantics")


@pytest.fixture
def store(tmp_path):
    return BookmarkStore(str(tmp_path / "log-.bookmark"))


def test_open_creates_file_and_reads_zero(store, tmp_path):
    """A missing bookmark is created empty and reads as the zero bookmark."""
    with store.open() as handle:
        assert store.read(handle) == ZERO_BOOKMARK
    assert (tmp_path / "log-.bookmark").exists()


@pytest.mark.parametrize(
    "bookmark",
    [
        Bookmark(0, "/var/buf/log-20240601.json"),
        Bookmark(123456789012, "/var/buf/log-20240601_001.json"),
        Bookmark(3, "C:\\buffer\\log-20240601.json"),
    ],
)
def test_write_then_read(store, bookmark):
    with store.open() as handle:
        store.write(handle, bookmark.offset, bookmark.file)
    with store.open() as handle:
        assert store.read(handle) == bookmark


def test_write_overwrites_longer_record(store):
    """Truncate before write: a shorter record leaves no trailing garbage."""
    with store.open() as handle:
        store.write(handle, 1234567890, "/a/very/long/path/log-20240601.json")
        store.write(handle, 7, "/b.json")
        assert store.read(handle) == Bookmark(7, "/b.json")

    with open(store.path, "rb") as fh:
        assert fh.read() == b"7:::/b.json\n"


@pytest.mark.parametrize(
    "content",
    ["", "garbage", "12:::", ":::/x.json", "abc:::/x.json", "-5:::/x.json", "1:::2:::3"],
)
def test_malformed_content_is_zero_bookmark(content):
    assert parse_bookmark(content) == ZERO_BOOKMARK


def test_malformed_file_never_raises(store):
    with open(store.path, "wb") as fh:
        fh.write(b"\x00\xff not a bookmark")
    with store.open() as handle:
        assert store.read(handle) == ZERO_BOOKMARK


def test_clear(store):
    with store.open() as handle:
        store.write(handle, 10, "/x.json")
        store.clear(handle)
        assert store.read(handle) == ZERO_BOOKMARK


def test_peek(store):
    assert store.peek() is None
    with store.open() as handle:
        store.write(handle, 42, "/x.json")
    assert store.peek() == Bookmark(42, "/x.json")


@posix_only
def test_second_open_is_locked_out(store):
    """Only one holder at a time, even within the same process."""
    with store.open():
        with pytest.raises(BookmarkLockedError):
            with store.open():
                pass

    # released after the first holder exits
    with store.open() as handle:
        assert store.read(handle) == ZERO_BOOKMARK
