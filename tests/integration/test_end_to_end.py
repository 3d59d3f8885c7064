"""End-to-end tests: instrumented pipeline -> client -> service -> queries."""

import json
from collections.abc import Callable

import httpx

from decision_trace import HttpEventTransport, ServiceTransport, TraceClient, TraceService
from decision_trace.exceptions import DeliveryError
from tests.support.helpers import FailingTransport, RecordingTransport


def _competitor_pipeline(client: TraceClient) -> None:
    """Keyword generation, search, then a price filter that drops almost everything."""
    candidates = [{"asin": f"B{i:04d}", "price": 10.0 + i % 50} for i in range(5000)]
    with client.run("competitor-selection", input={"asin": "B0X", "title": "Steel water bottle"}):
        client.record_step(
            "keyword-generation",
            "llm",
            input={"title": "Steel water bottle"},
            output={"keywords": ["insulated bottle", "steel flask"]},
            reasoning="Extracted material and product type",
        )
        client.record_step("candidate-search", "search", output={"count": len(candidates)})
        client.record_step(
            "price-filter",
            "filter",
            candidates=candidates[:30],
            filtered=[{"candidate": c, "reasons": ["price out of range"]} for c in candidates[30:]],
            reasoning="Kept candidates within 0.5x-2x of the reference price",
        )


class TestInProcessPipeline:
    """Test a full run through ServiceTransport."""

    def test_filter_elimination_over_summarized_step(self, make_client: Callable[..., TraceClient], service: TraceService):
        client = make_client(transport=ServiceTransport(service))
        _competitor_pipeline(client)
        client.flush(timeout=5.0)

        result = service.filter_elimination()
        assert result["count"] == 1
        [match] = result["matches"]
        assert match["pipeline"] == "competitor-selection"
        assert match["stepName"] == "price-filter"
        assert round(match["eliminationRate"], 1) == 99.4
        assert match["candidatesIn"] == 30
        assert match["filteredOut"] == 4970

        run = service.get_run(match["runId"])
        assert run["status"] == "success"
        assert [s["name"] for s in run["steps"]] == ["keyword-generation", "candidate-search", "price-filter"]
        filtered = run["steps"][2]["filtered"]
        assert filtered["isSummary"] is True
        assert len(filtered["sample"]) == 100

    def test_failed_pipeline_recorded_as_error(self, make_client: Callable[..., TraceClient], service: TraceService):
        client = make_client(transport=ServiceTransport(service))
        try:
            with client.run("categorize"):
                client.record_step("classify", "llm")
                raise TimeoutError("model timed out")
        except TimeoutError:
            pass
        client.flush(timeout=5.0)

        [run] = service.list_runs(status="error")["runs"]
        assert run["error"] == "TimeoutError: model timed out"
        stats = service.pipeline_stats("categorize")["stats"]
        assert stats["errorCount"] == 1
        assert stats["avgStepCount"] == 1

    def test_many_runs_listed_newest_first(self, make_client: Callable[..., TraceClient], service: TraceService):
        client = make_client(transport=ServiceTransport(service), batch_size=3)
        run_ids = []
        for _ in range(5):
            with client.run("ranking") as run_id:
                client.record_step("rank", "rank")
            run_ids.append(run_id)
        client.flush(timeout=5.0)

        listed = service.list_runs(pipeline="ranking")
        assert listed["total"] == 5
        assert {run["runId"] for run in listed["runs"]} == set(run_ids)
        starts = [run["startTime"] for run in listed["runs"]]
        assert starts == sorted(starts, reverse=True)


class TestDeliveryGuarantees:
    """Test ordering, disabled mode and failing backends end to end."""

    def test_events_delivered_in_order_across_batches(self, make_client: Callable[..., TraceClient], transport: RecordingTransport):
        client = make_client(transport=transport, batch_size=2)
        client.start_run("p")
        client.record_step("A", "transform")
        client.record_step("B", "transform")
        client.record_step("C", "transform")
        client.end_run()
        client.flush(timeout=5.0)

        names = [event.data.get("name") for event in transport.events if event.type == "step"]
        assert names == ["A", "B", "C"]
        assert [len(batch) for batch in transport.batches] == [2, 2, 1]

    def test_disabled_client_sends_nothing(self, make_client: Callable[..., TraceClient], transport: RecordingTransport):
        client = make_client(transport=transport, enabled=False)
        _competitor_pipeline(client)
        client.flush(timeout=1.0)

        assert transport.batches == []
        assert client.batcher._worker.started is False

    def test_failing_backend_reports_once_per_batch(self, make_client: Callable[..., TraceClient]):
        transport = FailingTransport()
        errors: list[Exception] = []
        client = make_client(transport=transport, batch_size=2, on_error=errors.append)

        _competitor_pipeline(client)
        client.flush(timeout=5.0)

        # run_start + 3 steps + run_end = 5 events -> batches of 2, 2, 1.
        assert transport.calls == 3
        assert len(errors) == 3
        assert all(isinstance(e, DeliveryError) for e in errors)

        client.flush(timeout=5.0)
        assert transport.calls == 3

    def test_http_backend_down(self, make_client: Callable[..., TraceClient]):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        errors: list[Exception] = []
        http = HttpEventTransport("http://localhost:1/api", transport=httpx.MockTransport(handler))
        client = make_client(transport=http, on_error=errors.append)
        _competitor_pipeline(client)
        client.flush(timeout=5.0)

        assert len(errors) == 1
        assert isinstance(errors[0], DeliveryError)

    def test_http_backend_receives_wire_events(self, make_client: Callable[..., TraceClient], service: TraceService):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json=service.ingest(json.loads(request.content)))

        http = HttpEventTransport("http://traces/api", transport=httpx.MockTransport(handler))
        client = make_client(transport=http)
        _competitor_pipeline(client)
        client.flush(timeout=5.0)

        assert service.filter_elimination(threshold=99)["count"] == 1
