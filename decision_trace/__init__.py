"""Decision Trace - capture and query per-step decision traces of multi-stage pipelines.

@public

Decision Trace records *why* a multi-stage, non-deterministic pipeline
(candidate generation, filtering, ranking, LLM calls) produced its output, not
just that it ran. Each run is a sequence of steps; each step can carry the
candidates it kept, the candidates it filtered out with reasons, and the
reasoning behind the decision.

Core Capabilities:
    - **Instrumentation**: TraceClient records runs and steps without ever
      blocking or failing the instrumented pipeline
    - **Bounded capture**: oversized candidate arrays are replaced by a
      Summary (first N items, true total, numeric field statistics)
    - **Batched delivery**: events are sent in batches from a background
      thread; failed batches are reported and dropped (at-most-once)
    - **Cross-pipeline queries**: filtered run/step listings, pipeline stats,
      and the filter-elimination query over full and summarized steps alike

Quick Start:
    >>> from decision_trace import ServiceTransport, TraceClient, TraceService
    >>>
    >>> service = TraceService()
    >>> client = TraceClient(transport=ServiceTransport(service))
    >>>
    >>> with client.run("competitor-selection", input={"asin": "B0X"}):
    ...     client.record_step(
    ...         "relevance-filter",
    ...         "filter",
    ...         candidates=kept,
    ...         filtered=dropped,
    ...         reasoning="Dropped accessories and bundles",
    ...     )
    >>> client.flush()
    >>> service.filter_elimination(threshold=90)

Environment Variables:
    - TRACE_API_URL: Base URL of the trace API for the HTTP transport
    - TRACE_ENABLED: Set to false to turn instrumentation into a no-op
"""

from .exceptions import (
    DecisionTraceError,
    DeliveryError,
    IngestPayloadError,
    RunNotFoundError,
    ServiceError,
)
from .logging import LoggingConfig, get_trace_logger, setup_logging
from .query import EliminationMatch, EliminationReport, Page, PipelineStats, QueryEngine, RunQuery, StepQuery
from .service import TraceService
from .settings import Settings, settings
from .store import MemoryTraceStore, Run, Step, TraceStore, get_trace_store, set_trace_store
from .summary import FieldStatistics, Summary, count_items, is_summary, summarize_sequence
from .tracing import (
    EventTransport,
    EventType,
    HttpEventTransport,
    RunStatus,
    ServiceTransport,
    StepType,
    TraceClient,
    TraceEvent,
    get_trace_client,
    init_trace_client,
    set_trace_client,
)

__version__ = "0.1.0"

__all__ = [
    # Config/Settings
    "Settings",
    "settings",
    # Logging
    "LoggingConfig",
    "get_trace_logger",
    "setup_logging",
    # Errors
    "DecisionTraceError",
    "DeliveryError",
    "IngestPayloadError",
    "RunNotFoundError",
    "ServiceError",
    # Summaries
    "FieldStatistics",
    "Summary",
    "count_items",
    "is_summary",
    "summarize_sequence",
    # Client
    "EventTransport",
    "EventType",
    "HttpEventTransport",
    "RunStatus",
    "ServiceTransport",
    "StepType",
    "TraceClient",
    "TraceEvent",
    "get_trace_client",
    "init_trace_client",
    "set_trace_client",
    # Store
    "MemoryTraceStore",
    "Run",
    "Step",
    "TraceStore",
    "get_trace_store",
    "set_trace_store",
    # Queries
    "EliminationMatch",
    "EliminationReport",
    "Page",
    "PipelineStats",
    "QueryEngine",
    "RunQuery",
    "StepQuery",
    "TraceService",
]
