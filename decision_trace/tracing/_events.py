"""Trace event envelope and id/timestamp helpers shared by client and service."""

import time
from datetime import UTC, datetime
from enum import StrEnum
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, JsonValue


class EventType(StrEnum):
    """Kinds of events a client emits during a run."""

    RUN_START = "run_start"
    STEP = "step"
    RUN_END = "run_end"


class RunStatus(StrEnum):
    """Run lifecycle status."""

    RUNNING = "running"
    SUCCESS = "success"
    ERROR = "error"


class StepType(StrEnum):
    """Controlled step-type vocabulary. Any other string is accepted as an extension."""

    LLM = "llm"
    FILTER = "filter"
    SEARCH = "search"
    RANK = "rank"
    TRANSFORM = "transform"


class TraceEvent(BaseModel):
    """One event on the wire: ``{"type", "data", "timestamp"}``."""

    model_config = ConfigDict(frozen=True)

    type: EventType
    data: dict[str, JsonValue] = Field(default_factory=dict)
    timestamp: str = Field(default_factory=lambda: utc_now_iso())

    def to_json(self) -> dict[str, JsonValue]:
        return self.model_dump(mode="json")


def utc_now_iso() -> str:
    """Current UTC time as an ISO-8601 string with millisecond precision and a ``Z`` suffix.

    A fixed width and suffix keep timestamps comparable as plain strings.
    """
    return datetime.now(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def new_trace_id(prefix: str) -> str:
    """Unique id of the form ``<prefix>_<epoch-ms>_<12 hex chars>``."""
    return f"{prefix}_{time.time_ns() // 1_000_000}_{uuid4().hex[:12]}"
