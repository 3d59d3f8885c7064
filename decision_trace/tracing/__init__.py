"""Client-side trace capture: the recorder, the event batcher and transports."""

from ._batcher import DeliveryWorker, EventBatch, EventBatcher
from ._events import EventType, RunStatus, StepType, TraceEvent
from ._transport import EventTransport, HttpEventTransport, ServiceTransport
from .client import TraceClient, get_trace_client, init_trace_client, set_trace_client

__all__ = [
    "DeliveryWorker",
    "EventBatch",
    "EventBatcher",
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
]
