"""Tests for HTTP and in-process event transports."""

import json

import httpx
import pytest

from decision_trace import TraceService
from decision_trace.exceptions import DeliveryError, IngestPayloadError
from decision_trace.tracing import EventTransport, EventType, HttpEventTransport, ServiceTransport
from tests.support.helpers import RecordingTransport, make_event


class TestHttpEventTransport:
    """Test HttpEventTransport against httpx.MockTransport."""

    def test_url_joins_ingest_path(self):
        assert HttpEventTransport("http://localhost:3001/api").url == "http://localhost:3001/api/ingest"
        assert HttpEventTransport("http://localhost:3001/api/").url == "http://localhost:3001/api/ingest"

    def test_satisfies_protocol(self):
        assert isinstance(HttpEventTransport("http://x"), EventTransport)
        assert isinstance(RecordingTransport(), EventTransport)

    @pytest.mark.asyncio
    async def test_posts_events_envelope(self):
        requests: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(200, json={"accepted": True, "processed": 2})

        transport = HttpEventTransport("http://traces/api", transport=httpx.MockTransport(handler))
        events = [
            make_event(EventType.RUN_START, runId="r1", pipeline="p"),
            make_event(EventType.STEP, stepId="s1", runId="r1"),
        ]
        await transport.send(events)

        [request] = requests
        assert request.method == "POST"
        assert str(request.url) == "http://traces/api/ingest"
        body = json.loads(request.content)
        assert [event["type"] for event in body["events"]] == ["run_start", "step"]
        assert body["events"][1]["data"] == {"stepId": "s1", "runId": "r1"}
        assert body["events"][0]["timestamp"] == "2024-01-01T00:00:00.000Z"

    @pytest.mark.asyncio
    async def test_http_error_status_raises_delivery_error(self):
        transport = HttpEventTransport(
            "http://traces/api",
            transport=httpx.MockTransport(lambda request: httpx.Response(503)),
        )
        with pytest.raises(DeliveryError, match="HTTP 503"):
            await transport.send([make_event(EventType.STEP, stepId="s1")])

    @pytest.mark.asyncio
    async def test_network_error_raises_delivery_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        transport = HttpEventTransport("http://traces/api", transport=httpx.MockTransport(handler))
        with pytest.raises(DeliveryError, match="connection refused"):
            await transport.send([make_event(EventType.STEP, stepId="s1")])


class TestServiceTransport:
    """Test delivery straight into a TraceService."""

    @pytest.mark.asyncio
    async def test_events_reach_store(self, service: TraceService):
        transport = ServiceTransport(service)
        await transport.send([make_event(EventType.RUN_START, runId="r1", pipeline="p", timestamp="2024-01-01T00:00:00.000Z")])

        assert service.get_run("r1")["pipeline"] == "p"

    @pytest.mark.asyncio
    async def test_service_error_becomes_delivery_error(self):
        class RejectingService:
            def ingest(self, payload: object) -> dict[str, object]:
                raise IngestPayloadError("events must be an array")

        transport = ServiceTransport(RejectingService())  # type: ignore[arg-type]
        with pytest.raises(DeliveryError, match="events must be an array"):
            await transport.send([make_event(EventType.STEP, stepId="s1")])
