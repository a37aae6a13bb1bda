from __future__ import annotations

from time import monotonic
from typing import Optional, Sequence

import httpx
from loguru import logger

from .errors import ConfigurationError
from .metrics import metrics_registry
from .models import Accepted, Outcome, Rejected, TransientFailure, read_event_input_result
from .utils import normalize_server_base_address

API_KEY_HEADER = "X-Seq-ApiKey"
BULK_UPLOAD_RESOURCE = "api/events/raw"

# Payload is permanently undeliverable as constructed
REJECTED_STATUSES = frozenset({400, 413})


def encode_events(lines: Sequence[str]) -> str:
    """Wrap raw JSON event lines in the bulk envelope, verbatim."""
    return '{"Events":[' + ",".join(lines) + "]}"


class DeliveryClient:
    """Posts bulk event payloads to the Seq raw ingestion endpoint.

    One synchronous POST per call; the reply is classified into
    Accepted / Rejected / TransientFailure instead of raising, so the
    coordinator can decide what happens to the bookmark.
    """

    def __init__(
        self,
        server_url: str,
        api_key: Optional[str] = None,
        *,
        timeout: Optional[float] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        if not server_url or not server_url.strip():
            raise ConfigurationError("server_url is required")

        self._base_url = normalize_server_base_address(server_url)
        self._api_key = api_key.strip() if api_key and api_key.strip() else None

        kwargs: dict = {"base_url": self._base_url}
        if timeout is not None:
            kwargs["timeout"] = timeout
        if transport is not None:
            kwargs["transport"] = transport
        self._client: Optional[httpx.Client] = httpx.Client(**kwargs)

    @property
    def base_url(self) -> str:
        return self._base_url

    @property
    def endpoint(self) -> str:
        return self._base_url + BULK_UPLOAD_RESOURCE

    def close(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None

    def __enter__(self) -> "DeliveryClient":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    def deliver(self, lines: Sequence[str]) -> Outcome:
        payload = encode_events(lines)
        if self._client is None:
            raise RuntimeError("DeliveryClient is closed")

        headers = {"Content-Type": "application/json; charset=utf-8"}
        if self._api_key:
            headers[API_KEY_HEADER] = self._api_key

        t0 = monotonic()
        try:
            resp = self._client.post(
                BULK_UPLOAD_RESOURCE, content=payload.encode("utf-8"), headers=headers
            )
        except httpx.HTTPError as exc:
            logger.warning(f"HTTP shipping to {self.endpoint} failed: {type(exc).__name__}: {exc}")
            return TransientFailure(payload=payload, error=exc)
        finally:
            metrics_registry.delivery_latency_ms.observe((monotonic() - t0) * 1000.0)

        status = resp.status_code
        if resp.is_success:
            return Accepted(
                payload=payload,
                status_code=status,
                minimum_level=read_event_input_result(resp.text),
            )
        if status in REJECTED_STATUSES:
            return Rejected(payload=payload, status_code=status, body=resp.text)
        return TransientFailure(payload=payload, status_code=status, body=resp.text)
