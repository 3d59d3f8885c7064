"""Test transports and event builders."""

import threading
from typing import Any

from decision_trace.exceptions import DeliveryError
from decision_trace.tracing import TraceEvent


class RecordingTransport:
    """Transport that keeps every batch it was asked to send."""

    def __init__(self) -> None:
        self.batches: list[list[TraceEvent]] = []

    async def send(self, events: list[TraceEvent]) -> None:
        self.batches.append(list(events))

    @property
    def events(self) -> list[TraceEvent]:
        return [event for batch in self.batches for event in batch]


class FailingTransport:
    """Transport whose backend is permanently down."""

    def __init__(self) -> None:
        self.calls = 0

    async def send(self, events: list[TraceEvent]) -> None:
        self.calls += 1
        raise DeliveryError("backend unavailable")


class GatedTransport(RecordingTransport):
    """Recording transport whose first send blocks until ``release()``."""

    def __init__(self) -> None:
        super().__init__()
        self.entered = threading.Event()
        self._gate = threading.Event()

    def release(self) -> None:
        self._gate.set()

    async def send(self, events: list[TraceEvent]) -> None:
        self.entered.set()
        self._gate.wait(timeout=5.0)
        await super().send(events)


def make_event(event_type: str, timestamp: str = "2024-01-01T00:00:00.000Z", **data: Any) -> TraceEvent:
    return TraceEvent.model_validate({"type": event_type, "data": data, "timestamp": timestamp})


def run_start(run_id: str, pipeline: str = "p", timestamp: str = "2024-01-01T00:00:00.000Z", **extra: Any) -> dict[str, Any]:
    """Wire-format run_start event."""
    return {
        "type": "run_start",
        "data": {"runId": run_id, "pipeline": pipeline, "timestamp": timestamp, **extra},
        "timestamp": timestamp,
    }


def step(
    step_id: str,
    run_id: str,
    *,
    type: str = "filter",
    name: str | None = None,
    timestamp: str = "2024-01-01T00:00:01.000Z",
    **extra: Any,
) -> dict[str, Any]:
    """Wire-format step event."""
    return {
        "type": "step",
        "data": {"stepId": step_id, "runId": run_id, "type": type, "name": name or step_id, "timestamp": timestamp, **extra},
        "timestamp": timestamp,
    }


def run_end(run_id: str, status: str = "success", duration: int | None = 100, timestamp: str = "2024-01-01T00:00:02.000Z", **extra: Any) -> dict[str, Any]:
    """Wire-format run_end event."""
    return {
        "type": "run_end",
        "data": {"runId": run_id, "status": status, "duration": duration, "timestamp": timestamp, **extra},
        "timestamp": timestamp,
    }


def summary_dict(total: int, sample: list[Any] | None = None) -> dict[str, Any]:
    """Wire-format summary as produced by the client."""
    sample = sample or []
    return {"isSummary": True, "total": total, "sample": sample, "sampleSize": len(sample), "statistics": None}
