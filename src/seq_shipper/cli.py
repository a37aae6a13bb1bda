from __future__ import annotations

import json
import signal
import sys
import threading
from typing import Optional

import typer
from loguru import logger
from pydantic import ValidationError

from .bookmark import BookmarkStore
from .config import Settings
from .coordinator import ShippingCoordinator
from .errors import BookmarkLockedError
from .fileset import FileSetEnumerator

app = typer.Typer(help="Seq log shipper CLI (ship buffered JSON events to Seq)")

# ---------------------------
# Common options
# ---------------------------


def server_url_opt() -> str:
    return typer.Option(..., "--server-url", envvar="SEQ_SHIPPER_SERVER_URL", help="Seq server URL")


def buffer_opt() -> str:
    return typer.Option(
        ...,
        "--buffer",
        envvar="SEQ_SHIPPER_BUFFER_BASE_FILENAME",
        help="Buffer base path; files are <buffer>*.json, bookmark is <buffer>.bookmark",
    )


def api_key_opt() -> Optional[str]:
    return typer.Option(None, "--api-key", envvar="SEQ_SHIPPER_API_KEY", help="Seq API key")


def batch_limit_opt(default=1000) -> int:
    return typer.Option(
        default, "--batch-limit", envvar="SEQ_SHIPPER_BATCH_POSTING_LIMIT", help="Max events per POST"
    )


def period_opt(default=2.0) -> float:
    return typer.Option(
        default, "--period", envvar="SEQ_SHIPPER_PERIOD_SECONDS", help="Seconds between ticks"
    )


def body_limit_opt() -> Optional[int]:
    return typer.Option(
        None,
        "--event-body-limit",
        envvar="SEQ_SHIPPER_EVENT_BODY_LIMIT_BYTES",
        help="Drop single events larger than this many bytes",
    )


def level_opt() -> Optional[str]:
    return typer.Option(
        None,
        "--control-level",
        envvar="SEQ_SHIPPER_CONTROL_LEVEL_SWITCH",
        help="Initial minimum level for server-controlled filtering",
    )


def log_level_opt() -> str:
    return typer.Option("INFO", "--log-level", help="Diagnostic log level")


def log_json_opt() -> bool:
    return typer.Option(False, "--log-json", help="Emit diagnostics as JSON lines")


def configure_logging(level: str = "INFO", serialize: bool = False) -> None:
    logger.remove()
    logger.add(sys.stderr, level=level.upper(), serialize=serialize)


def _settings(**kwargs) -> Settings:
    values = {k: v for k, v in kwargs.items() if v is not None}
    try:
        return Settings(**values)
    except ValidationError as e:
        logger.error(f"Invalid configuration: {e}")
        raise typer.Exit(code=2)


# ---------------------------
# Shipping
# ---------------------------


@app.command("run")
def run(
    server_url: str = server_url_opt(),
    buffer: str = buffer_opt(),
    api_key: Optional[str] = api_key_opt(),
    batch_limit: int = batch_limit_opt(),
    period: float = period_opt(),
    event_body_limit: Optional[int] = body_limit_opt(),
    control_level: Optional[str] = level_opt(),
    log_level: str = log_level_opt(),
    log_json: bool = log_json_opt(),
):
    """Ship continuously until SIGINT/SIGTERM, then flush once more."""
    configure_logging(log_level, log_json)
    settings = _settings(
        SERVER_URL=server_url,
        BUFFER_BASE_FILENAME=buffer,
        API_KEY=api_key,
        BATCH_POSTING_LIMIT=batch_limit,
        PERIOD_SECONDS=period,
        EVENT_BODY_LIMIT_BYTES=event_body_limit,
        CONTROL_LEVEL_SWITCH=control_level,
    )

    stop = threading.Event()

    def _handle_signal(signum, frame):
        logger.info(f"Received signal {signum}, shutting down")
        stop.set()

    signal.signal(signal.SIGINT, _handle_signal)
    signal.signal(signal.SIGTERM, _handle_signal)

    shipper = ShippingCoordinator.from_settings(settings)
    shipper.start()
    try:
        while not stop.wait(1.0):
            pass
    finally:
        shipper.close()
        logger.success("Shipper stopped")


@app.command("ship-once")
def ship_once(
    server_url: str = server_url_opt(),
    buffer: str = buffer_opt(),
    api_key: Optional[str] = api_key_opt(),
    batch_limit: int = batch_limit_opt(),
    event_body_limit: Optional[int] = body_limit_opt(),
    log_level: str = log_level_opt(),
    log_json: bool = log_json_opt(),
):
    """Run a single shipping tick (drains while batches are full)."""
    configure_logging(log_level, log_json)
    settings = _settings(
        SERVER_URL=server_url,
        BUFFER_BASE_FILENAME=buffer,
        API_KEY=api_key,
        BATCH_POSTING_LIMIT=batch_limit,
        EVENT_BODY_LIMIT_BYTES=event_body_limit,
    )
    shipper = ShippingCoordinator.from_settings(settings)
    try:
        shipper.ship_once()
        h = shipper.health()
    finally:
        shipper.close()
    typer.echo(
        json.dumps(
            {
                "outcome": h.last_outcome,
                "offset": h.bookmark.offset if h.bookmark else None,
                "file": h.bookmark.file if h.bookmark else None,
            },
            indent=2,
        )
    )


# ---------------------------
# Inspection
# ---------------------------


@app.command("files")
def files(buffer: str = buffer_opt()):
    """List the buffer file set in shipping order."""
    for path in FileSetEnumerator(buffer).list():
        typer.echo(path)


@app.command("bookmark")
def bookmark(buffer: str = buffer_opt()):
    """Print the current bookmark (without taking the lock)."""
    current = BookmarkStore(buffer + ".bookmark").peek()
    typer.echo(
        json.dumps(
            {"offset": current.offset, "file": current.file} if current else None, indent=2
        )
    )


@app.command("reset-bookmark")
def reset_bookmark(buffer: str = buffer_opt()):
    """Clear the bookmark so shipping restarts from the oldest buffer file."""
    store = BookmarkStore(buffer + ".bookmark")
    try:
        with store.open() as handle:
            store.clear(handle)
    except BookmarkLockedError:
        logger.error("Bookmark is locked by a running shipper; stop it first")
        raise typer.Exit(code=1)
    logger.success(f"Cleared {store.path}")


if __name__ == "__main__":
    app()
