"""Trace store protocol and backends for recorded runs and steps."""

from ._models import Run, Step
from .memory import MemoryTraceStore
from .protocol import TraceStore, get_trace_store, set_trace_store

__all__ = [
    "MemoryTraceStore",
    "Run",
    "Step",
    "TraceStore",
    "get_trace_store",
    "set_trace_store",
]
