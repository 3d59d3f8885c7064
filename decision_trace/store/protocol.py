"""Trace store protocol and singleton management.

Defines the TraceStore protocol that all storage backends must implement,
along with get/set helpers for the process-global singleton.
"""

from collections.abc import Iterable
from typing import Protocol, runtime_checkable

from decision_trace.store._models import Run, Step
from decision_trace.tracing._events import TraceEvent


@runtime_checkable
class TraceStore(Protocol):
    """Protocol for trace storage backends.

    Implementations: MemoryTraceStore (in-process). A persistent backend
    implements the same methods; the query engine only talks to this protocol.
    Returned records are snapshots; mutating them never changes the store.
    """

    def ingest(self, event: TraceEvent) -> None:
        """Apply one run_start / step / run_end event. Best-effort; never raises for payload shape."""
        ...

    def get_run(self, run_id: str) -> Run | None:
        """Return the run with its steps, or None when the id is unknown."""
        ...

    def list_runs(self, pipeline: str | None = None) -> list[Run]:
        """All runs, or only those of ``pipeline`` (via the pipeline index)."""
        ...

    def list_steps(self, run_ids: Iterable[str] | None = None) -> list[Step]:
        """All stored steps, including orphans, or only those owned by ``run_ids``."""
        ...

    def list_pipelines(self) -> list[str]:
        """Pipeline names in first-seen order."""
        ...

    def pipeline_run_ids(self, pipeline: str) -> list[str]:
        """Run ids of ``pipeline`` in start order. Empty for an unknown pipeline."""
        ...


_trace_store: TraceStore | None = None


def get_trace_store() -> TraceStore | None:
    """Get the process-global trace store singleton."""
    return _trace_store


def set_trace_store(store: TraceStore | None) -> None:
    """Set the process-global trace store singleton."""
    global _trace_store
    _trace_store = store
