"""Buffer file discovery."""

from __future__ import annotations

import glob
import os


class FileSetEnumerator:
    """Lists `<base>*.json` buffer files, oldest first.

    Ordering is plain string order of the paths; the writer's naming
    scheme (date/sequence suffix) makes that chronological. Nothing is
    cached: files come and go between ticks.
    """

    def __init__(self, buffer_base_filename: str):
        base = os.path.abspath(buffer_base_filename)
        self._folder = os.path.dirname(base)
        self._pattern = glob.escape(os.path.basename(base)) + "*.json"

    @property
    def folder(self) -> str:
        return self._folder

    @property
    def pattern(self) -> str:
        return self._pattern

    def list(self) -> list[str]:
        if not os.path.isdir(self._folder):
            return []
        paths = glob.glob(os.path.join(glob.escape(self._folder), self._pattern))
        return sorted(p for p in paths if os.path.isfile(p))
