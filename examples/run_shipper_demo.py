"""
Demo: buffer files → Seq, with server-driven level feedback

Writes a few rotated buffer files into a temp directory and ships them to
an in-process fake Seq endpoint (httpx.MockTransport). The fake server
starts asking for Warning and above halfway through, and rejects one
oversized batch with 413 so the quarantine path is visible.

Set SEQ_URL to ship to a real server instead.
"""

import json
import os
import tempfile

import httpx
from loguru import logger

from seq_shipper import DeliveryClient, LevelSwitch, LogEventLevel, ShippingCoordinator
from seq_shipper.coordinator import LevelChange

received = []


def fake_seq(request: httpx.Request) -> httpx.Response:
    """Fake raw-events endpoint."""
    events = json.loads(request.content)["Events"]
    if any(len(json.dumps(e)) > 2000 for e in events):
        return httpx.Response(413, text="Payload too large")
    received.extend(events)
    level = "Warning" if len(received) >= 10 else None
    return httpx.Response(201, json={"MinimumLevelAccepted": level})


def write_file(path: str, start: int, count: int, pad: int = 0) -> None:
    with open(path, "wb") as fh:
        fh.write(b"\xef\xbb\xbf")
        for i in range(start, start + count):
            event = {"@t": "2024-06-01T12:00:00Z", "@mt": "Demo event {N}", "N": i}
            if pad:
                event["Padding"] = "x" * pad
            fh.write((json.dumps(event) + "\n").encode("utf-8"))


def main():
    logger.info("🚀 Seq shipper demo")
    logger.info("=" * 70)

    folder = tempfile.mkdtemp(prefix="seq-shipper-")
    base = os.path.join(folder, "demo-")
    write_file(base + "20240601.json", 0, 8)
    write_file(base + "20240602.json", 8, 8)
    write_file(base + "20240603.json", 16, 2, pad=4000)
    logger.info(f"📁 Buffer files in {folder}")

    switch = LevelSwitch(LogEventLevel.VERBOSE)

    def on_level(change: LevelChange):
        logger.info(f"🎚️  Minimum level {change.previous.value} -> {change.current.value} ({change.reason})")

    switch.subscribe(on_level)

    server_url = os.environ.get("SEQ_URL")
    client = None
    if not server_url:
        server_url = "http://fake-seq.local"
        client = DeliveryClient(server_url, transport=httpx.MockTransport(fake_seq))

    shipper = ShippingCoordinator(
        server_url,
        base,
        batch_posting_limit=5,
        period=0.5,
        level_switch=switch,
        client=client,
    )

    # drive ticks by hand so the output is deterministic
    for _ in range(8):
        shipper.ship_once()
        h = shipper.health()
        logger.info(
            f"tick={h.ticks} outcome={h.last_outcome} "
            f"bookmark={os.path.basename(h.bookmark.file or '-')}@{h.bookmark.offset}"
        )

    shipper.close()

    logger.info("")
    logger.info(f"📊 Events received by server: {len(received)}")
    logger.info(f"📦 Remaining buffer files: {sorted(os.listdir(folder))}")


if __name__ == "__main__":
    main()
