"""Transports that carry one batch of trace events to the service.

A transport raises on failure; the delivery worker decides what to do with the
exception (report it and drop the batch).
"""

from typing import TYPE_CHECKING, Protocol, runtime_checkable

import httpx

from decision_trace.exceptions import DeliveryError, ServiceError
from decision_trace.logging import get_trace_logger

from ._events import TraceEvent

if TYPE_CHECKING:
    from decision_trace.service import TraceService

logger = get_trace_logger(__name__)


@runtime_checkable
class EventTransport(Protocol):
    """Delivers a batch of events. Called from the delivery worker's event loop."""

    async def send(self, events: list[TraceEvent]) -> None:
        """Deliver ``events`` in order. Raise on failure."""
        ...


class HttpEventTransport:
    """POSTs ``{"events": [...]}`` to ``{api_url}/ingest``.

    A fresh ``httpx.AsyncClient`` is opened per batch because the transport is
    used from the worker thread's private event loop.
    """

    def __init__(
        self,
        api_url: str,
        *,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._url = f"{api_url.rstrip('/')}/ingest"
        self._timeout = timeout
        self._transport = transport

    @property
    def url(self) -> str:
        return self._url

    async def send(self, events: list[TraceEvent]) -> None:
        payload = {"events": [event.to_json() for event in events]}
        try:
            async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
                response = await client.post(self._url, json=payload)
                response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise DeliveryError(f"Ingest request failed with HTTP {e.response.status_code}: {e.response.reason_phrase}") from e
        except httpx.HTTPError as e:
            raise DeliveryError(f"Ingest request to {self._url} failed: {e}") from e
        logger.debug(f"Delivered {len(events)} trace events to {self._url}")


class ServiceTransport:
    """Hands batches straight to an in-process TraceService.

    Uses the same JSON payload as the HTTP transport so the service boundary is
    exercised exactly as it would be over the network.
    """

    def __init__(self, service: "TraceService") -> None:
        self._service = service

    async def send(self, events: list[TraceEvent]) -> None:
        try:
            self._service.ingest({"events": [event.to_json() for event in events]})
        except ServiceError as e:
            raise DeliveryError(f"In-process ingest rejected batch: {e}") from e
