"""
Unit tests for FileSetEnumerator.
"""

import os

from seq_shipper.fileset import FileSetEnumerator


def _touch(path):
    with open(path, "wb"):
        pass


def test_lists_matching_files_sorted(tmp_path):
    for name in ["log-20240603.json", "log-20240601.json", "log-20240602_001.json", "log-20240602.json"]:
        _touch(tmp_path / name)

    files = FileSetEnumerator(str(tmp_path / "log-")).list()

    assert [os.path.basename(f) for f in files] == [
        "log-20240601.json",
        "log-20240602.json",
        "log-20240602_001.json",
        "log-20240603.json",
    ]
    assert all(os.path.isabs(f) for f in files)


def test_ignores_bookmark_quarantine_and_other_bases(tmp_path):
    _touch(tmp_path / "log-20240601.json")
    _touch(tmp_path / "log-.bookmark")
    _touch(tmp_path / "invalid-400-abc.json")
    _touch(tmp_path / "other-20240601.json")
    _touch(tmp_path / "log-20240601.txt")

    files = FileSetEnumerator(str(tmp_path / "log-")).list()

    assert [os.path.basename(f) for f in files] == ["log-20240601.json"]


def test_missing_directory_is_empty(tmp_path):
    assert FileSetEnumerator(str(tmp_path / "nope" / "log-")).list() == []


def test_reevaluated_every_call(tmp_path):
    enum = FileSetEnumerator(str(tmp_path / "log-"))
    assert enum.list() == []
    _touch(tmp_path / "log-1.json")
    assert len(enum.list()) == 1
    os.remove(tmp_path / "log-1.json")
    assert enum.list() == []


def test_base_name_with_glob_characters(tmp_path):
    _touch(tmp_path / "app[1]-20240601.json")
    _touch(tmp_path / "app1-20240601.json")

    files = FileSetEnumerator(str(tmp_path / "app[1]-")).list()

    assert [os.path.basename(f) for f in files] == ["app[1]-20240601.json"]
