"""
Data models for the shipper.

Bookmarks, batches and delivery outcomes are plain frozen dataclasses;
the server reply is validated with pydantic.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Optional, Union

from pydantic import BaseModel, ValidationError, validator

from .levels import LogEventLevel


@dataclass(frozen=True)
class Bookmark:
    """Shipping cursor: next line begins at `offset` bytes into `file`."""

    offset: int = 0
    file: Optional[str] = None

    @property
    def is_empty(self) -> bool:
        return self.file is None


ZERO_BOOKMARK = Bookmark()


@dataclass(frozen=True)
class Batch:
    """Lines extracted from one buffer file by a single read.

    Attributes:
        lines: Raw event payloads (already JSON), oversized/blank lines excluded
        next_offset: Byte offset the next read should resume from
        lines_attempted: Lines consumed, including dropped ones
    """

    lines: list[str] = field(default_factory=list)
    next_offset: int = 0
    lines_attempted: int = 0


# --- Delivery outcomes ---


@dataclass(frozen=True)
class Accepted:
    """2xx reply; optionally carries the server's minimum accepted level."""

    payload: str
    status_code: int
    minimum_level: Optional[LogEventLevel] = None


@dataclass(frozen=True)
class Rejected:
    """400/413 reply: the payload can never be delivered as built."""

    payload: str
    status_code: int
    body: str = ""


@dataclass(frozen=True)
class TransientFailure:
    """Any other status, or a transport exception. Retry next tick."""

    payload: str
    status_code: Optional[int] = None
    body: str = ""
    error: Optional[BaseException] = None


Outcome = Union[Accepted, Rejected, TransientFailure]


class EventInputResult(BaseModel):
    """Reply body of the raw events endpoint."""

    MinimumLevelAccepted: Optional[LogEventLevel] = None

    @validator("MinimumLevelAccepted", pre=True)
    def _parse_level(cls, v):
        if v is None or isinstance(v, LogEventLevel):
            return v
        if isinstance(v, str):
            # unknown names are ignored rather than failing the reply
            return LogEventLevel.parse(v)
        return None


def read_event_input_result(body: Optional[str]) -> Optional[LogEventLevel]:
    """Extract the server-advertised minimum level from a reply body."""
    if not body or not body.strip():
        return None
    try:
        data = json.loads(body)
    except ValueError:
        return None
    if not isinstance(data, dict):
        return None
    try:
        return EventInputResult(**data).MinimumLevelAccepted
    except ValidationError:
        return None
