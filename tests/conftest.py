"""
Pytest configuration and fixtures for seq-log-shipper.

Provides buffer-file helpers and an in-memory Seq endpoint built on
httpx.MockTransport.
"""

import json
from typing import Callable, Optional

import httpx
import pytest
from loguru import logger

from seq_shipper.client import DeliveryClient

BOM = b"\xef\xbb\xbf"


def event_line(i: int) -> str:
    return json.dumps({"@t": f"2024-06-01T00:00:{i % 60:02d}Z", "@mt": "Event {N}", "N": i})


def write_buffer(path, lines, *, bom: bool = True, newline: str = "\n", partial: Optional[str] = None):
    """Write a buffer file the way the upstream writer does (BOM + one event per line)."""
    data = b"".join((line + newline).encode("utf-8") for line in lines)
    if partial is not None:
        data += partial.encode("utf-8")
    with open(path, "wb") as fh:
        fh.write((BOM if bom else b"") + data)
    return str(path)


def append_buffer(path, lines, newline: str = "\n"):
    with open(path, "ab") as fh:
        fh.write(b"".join((line + newline).encode("utf-8") for line in lines))


class SeqEndpoint:
    """Records posted requests and replies from a scripted list of responses.

    Each scripted item is either an httpx.Response, an int status code or an
    Exception class/instance to raise. When the script runs out, replies 201.
    """

    def __init__(self):
        self.requests: list[httpx.Request] = []
        self.script: list = []

    def reply(self, *items) -> "SeqEndpoint":
        self.script.extend(items)
        return self

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        item = self.script.pop(0) if self.script else 201
        if isinstance(item, type) and issubclass(item, Exception):
            raise item("scripted failure", request=request)
        if isinstance(item, Exception):
            raise item
        if isinstance(item, int):
            return httpx.Response(item, json={"MinimumLevelAccepted": None})
        return item

    @property
    def bodies(self) -> list[str]:
        return [r.content.decode("utf-8") for r in self.requests]

    def events(self, i: int = -1) -> list:
        return json.loads(self.bodies[i])["Events"]


@pytest.fixture
def log_messages():
    """Capture loguru output as (level name, message) pairs."""
    messages = []
    handler_id = logger.add(
        lambda m: messages.append((m.record["level"].name, m.record["message"])), level="DEBUG"
    )
    yield messages
    logger.remove(handler_id)


@pytest.fixture
def endpoint():
    return SeqEndpoint()


@pytest.fixture
def delivery_client(endpoint):
    client = DeliveryClient(
        "https://seq.example.com/seq", "secret-key", transport=httpx.MockTransport(endpoint.handler)
    )
    yield client
    client.close()


@pytest.fixture
def buffer_base(tmp_path):
    """Base path for buffer files: <tmp>/log-*.json, bookmark <tmp>/log-.bookmark."""
    return str(tmp_path / "log-")


@pytest.fixture
def make_shipper(buffer_base, endpoint) -> Callable:
    """Factory for coordinators wired to the in-memory endpoint."""
    created = []

    def _make(**kwargs):
        from seq_shipper.coordinator import ShippingCoordinator

        client = DeliveryClient(
            "https://seq.example.com", kwargs.pop("api_key", None),
            transport=httpx.MockTransport(endpoint.handler),
        )
        kwargs.setdefault("batch_posting_limit", 10)
        shipper = ShippingCoordinator(
            "https://seq.example.com", buffer_base, client=client, **kwargs
        )
        created.append(shipper)
        return shipper

    yield _make

    for shipper in created:
        shipper.close()
