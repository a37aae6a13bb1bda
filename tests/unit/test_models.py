"""
Unit tests for levels, server reply parsing and URL normalization.
"""

import errno
import sys

import pytest

from seq_shipper.levels import MINIMUM_LEVEL, LogEventLevel
from seq_shipper.models import read_event_input_result
from seq_shipper.utils import is_file_in_use, normalize_server_base_address


def test_levels_are_ordered():
    assert LogEventLevel.VERBOSE < LogEventLevel.DEBUG < LogEventLevel.INFORMATION
    assert LogEventLevel.WARNING < LogEventLevel.ERROR < LogEventLevel.FATAL
    assert max(LogEventLevel) == LogEventLevel.FATAL
    assert MINIMUM_LEVEL == LogEventLevel.VERBOSE


@pytest.mark.parametrize(
    "text,expected",
    [
        ("Warning", LogEventLevel.WARNING),
        ("warning", LogEventLevel.WARNING),
        (" ERROR ", LogEventLevel.ERROR),
        ("Trace", None),
    ],
)
def test_level_parse(text, expected):
    assert LogEventLevel.parse(text) == expected


@pytest.mark.parametrize(
    "body,expected",
    [
        ('{"MinimumLevelAccepted":"Error"}', LogEventLevel.ERROR),
        ('{"MinimumLevelAccepted":"information","Other":1}', LogEventLevel.INFORMATION),
        ('{"MinimumLevelAccepted":null}', None),
        ('{"MinimumLevelAccepted":"Loud"}', None),
        ('{"MinimumLevelAccepted":3}', None),
        ("{}", None),
        ("", None),
        (None, None),
        ("<html>oops</html>", None),
        ("[1,2]", None),
    ],
)
def test_read_event_input_result(body, expected):
    assert read_event_input_result(body) == expected


@pytest.mark.parametrize(
    "url,expected",
    [
        ("https://seq.example.com", "https://seq.example.com/"),
        ("https://seq.example.com/", "https://seq.example.com/"),
        ("https://seq.example.com/seq", "https://seq.example.com/seq/"),
        ("http://localhost:5341/a/b/", "http://localhost:5341/a/b/"),
    ],
)
def test_normalize_server_base_address(url, expected):
    assert normalize_server_base_address(url) == expected


def test_is_file_in_use():
    assert is_file_in_use(BlockingIOError(11, "Resource temporarily unavailable"))
    assert not is_file_in_use(FileNotFoundError(2, "No such file"))
    assert not is_file_in_use(ValueError("not an OS error"))

    sharing_violation = OSError(13, "denied")
    sharing_violation.winerror = 32
    assert is_file_in_use(sharing_violation)

    other_windows_error = OSError(13, "denied")
    other_windows_error.winerror = 5
    assert not is_file_in_use(other_windows_error)


@pytest.mark.skipif(sys.platform.startswith("win"), reason="POSIX errno semantics")
def test_permission_error_is_not_file_in_use():
    assert not is_file_in_use(PermissionError(errno.EACCES, "Permission denied"))
    assert is_file_in_use(OSError(errno.EWOULDBLOCK, "Resource temporarily unavailable"))
