"""Transport-agnostic service boundary for ingest and queries.

@public

TraceService takes and returns JSON-shaped values with camelCase keys, so an
HTTP framework only needs to route requests to it and map ServiceError
subclasses to their ``status_code`` and ``to_dict()`` body.

Operations:
    ingest(payload)                       -> {"accepted": true, "processed": n}
    list_runs(**params)                   -> {"runs", "total", "limit", "offset"}
    get_run(run_id)                       -> run dict (RunNotFoundError when unknown)
    list_steps(**params)                  -> {"steps", "total", "limit", "offset"}
    filter_elimination(threshold, pipeline) -> {"matches", "count"}
    list_pipelines()                      -> {"pipelines"}
    pipeline_stats(pipeline)              -> {"pipeline", "totalRuns", "stats"}
    health()                              -> {"status": "ok", "timestamp"}

Example:
    >>> service = TraceService()
    >>> client = TraceClient(transport=ServiceTransport(service))
    >>> service.filter_elimination(threshold="95")["count"]
"""

from collections.abc import Mapping, Sequence
from typing import Any, cast

from pydantic import ValidationError

from decision_trace.exceptions import IngestPayloadError
from decision_trace.logging import get_trace_logger
from decision_trace.query import QueryEngine, RunQuery, StepQuery
from decision_trace.store import MemoryTraceStore, TraceStore, get_trace_store
from decision_trace.tracing._events import TraceEvent, utc_now_iso

logger = get_trace_logger(__name__)


def _events_of(payload: Any) -> list[Any]:
    if isinstance(payload, Mapping):
        payload = cast(Mapping[str, Any], payload).get("events")
    if isinstance(payload, Sequence) and not isinstance(payload, str | bytes | bytearray):
        return list(cast(Sequence[Any], payload))
    raise IngestPayloadError("events must be an array")


class TraceService:
    """Ingest and query operations over one TraceStore.

    @public
    """

    def __init__(self, store: TraceStore | None = None) -> None:
        if store is None:
            store = get_trace_store() or MemoryTraceStore()
        self._store: TraceStore = store
        self._engine = QueryEngine(self._store)

    @property
    def store(self) -> TraceStore:
        return self._store

    @property
    def engine(self) -> QueryEngine:
        return self._engine

    def ingest(self, payload: Any) -> dict[str, Any]:
        """Apply a batch of events in order.

        ``payload`` is ``{"events": [...]}`` or the list itself. Individual
        malformed events are skipped; only a non-list batch is rejected.

        Raises:
            IngestPayloadError: the batch is not a list.
        """
        events = _events_of(payload)
        skipped = 0
        for raw in events:
            try:
                event = TraceEvent.model_validate(raw)
            except ValidationError as e:
                skipped += 1
                logger.warning(f"Skipping malformed trace event: {e.error_count()} validation errors")
                continue
            self._store.ingest(event)
        if skipped:
            logger.info(f"Ingested batch of {len(events)} events ({skipped} skipped)")
        return {"accepted": True, "processed": len(events)}

    def list_runs(self, **params: Any) -> dict[str, Any]:
        """Filtered, paginated runs. Accepts raw query-string values."""
        page = self._engine.list_runs(RunQuery.model_validate(params))
        return {
            "runs": [run.to_json() for run in page.items],
            "total": page.total,
            "limit": page.limit,
            "offset": page.offset,
        }

    def get_run(self, run_id: str) -> dict[str, Any]:
        """Full run with steps.

        Raises:
            RunNotFoundError: ``run_id`` is unknown.
        """
        return self._engine.get_run(run_id).to_json()

    def list_steps(self, **params: Any) -> dict[str, Any]:
        """Filtered, paginated steps. Accepts raw query-string values."""
        page = self._engine.list_steps(StepQuery.model_validate(params))
        return {
            "steps": [step.to_json() for step in page.items],
            "total": page.total,
            "limit": page.limit,
            "offset": page.offset,
        }

    def filter_elimination(self, threshold: Any = None, pipeline: str | None = None) -> dict[str, Any]:
        """Filter steps whose elimination rate is at least ``threshold`` percent (default 90)."""
        report = self._engine.filter_elimination(threshold=threshold, pipeline=pipeline)
        return {
            "matches": [match.model_dump(by_alias=True) for match in report.matches],
            "count": report.count,
        }

    def list_pipelines(self) -> dict[str, Any]:
        return {"pipelines": self._engine.list_pipelines()}

    def pipeline_stats(self, pipeline: str) -> dict[str, Any]:
        """Aggregates for one pipeline; ``stats`` is None when it has no runs."""
        stats = self._engine.pipeline_stats(pipeline)
        return {
            "pipeline": pipeline,
            "totalRuns": stats.total_runs if stats is not None else 0,
            "stats": stats.model_dump(by_alias=True) if stats is not None else None,
        }

    def health(self) -> dict[str, Any]:
        return {"status": "ok", "timestamp": utc_now_iso()}
