from __future__ import annotations

from typing import Optional

from loguru import logger

from .models import Batch

BOM = b"\xef\xbb\xbf"


class BatchReader:
    """
    Extracts complete lines (one JSON event each) from a buffer file.

    Usage:
        reader = BatchReader()
        batch = reader.read("/var/buf/log-20240601.json", 0, max_lines=1000)
        # ship batch.lines, then resume from batch.next_offset

    Offsets are raw byte positions, so a resumed read always starts on the
    same line boundary the previous read stopped at. A trailing line with
    no terminator is still being written and is left for a later read.
    """

    def read(
        self,
        file: str,
        start_offset: int,
        max_lines: int,
        max_event_bytes: Optional[int] = None,
    ) -> Batch:
        lines: list[str] = []
        attempted = 0
        offset = start_offset

        # Shared read: the writer may still be appending
        with open(file, "rb") as fh:
            if offset == 0 and fh.read(len(BOM)) == BOM:
                offset = len(BOM)
            fh.seek(offset)

            while attempted < max_lines:
                raw = fh.readline()
                if not raw.endswith(b"\n"):
                    # EOF, or a partial line the writer hasn't finished
                    break

                offset += len(raw)
                # Count is the indicator that work was done, so it advances
                # even when the line itself is dropped
                attempted += 1

                body = raw.rstrip(b"\r\n")
                if not body.strip():
                    continue

                if max_event_bytes is not None and len(body) > max_event_bytes:
                    logger.warning(
                        f"Event JSON representation exceeds the byte size limit of "
                        f"{max_event_bytes} and will be dropped; data: {_preview(body)}"
                    )
                    continue

                try:
                    lines.append(body.decode("utf-8"))
                except UnicodeDecodeError as e:
                    logger.warning(
                        f"Event at byte {offset - len(raw)} of {file} is not valid UTF-8 "
                        f"({e.reason} at position {e.start}); invalid bytes replaced with U+FFFD"
                    )
                    lines.append(body.decode("utf-8", errors="replace"))

        return Batch(lines=lines, next_offset=offset, lines_attempted=attempted)


def _preview(body: bytes, limit: int = 256) -> str:
    text = body[:limit].decode("utf-8", errors="replace")
    return text + ("..." if len(body) > limit else "")
