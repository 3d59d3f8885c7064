"""Run and Step records held by trace stores."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, JsonValue
from pydantic.alias_generators import to_camel

_WIRE = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


class Step(BaseModel):
    """One recorded decision point. Immutable once stored.

    ``candidates`` and ``filtered`` hold either a raw list or a summary dict
    (``{"isSummary": true, "total": ...}``); use ``decision_trace.summary.count_items``
    to count them.
    """

    model_config = ConfigDict(**_WIRE, frozen=True)

    step_id: str
    run_id: str | None = None
    name: str | None = None
    type: str | None = None
    input: JsonValue = None
    output: JsonValue = None
    candidates: JsonValue = None
    filtered: JsonValue = None
    metadata: JsonValue = None
    reasoning: str | None = None
    timestamp: str | None = None
    duration: float | None = None

    def to_json(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class Run(BaseModel):
    """One pipeline execution with its steps in arrival order."""

    model_config = _WIRE

    run_id: str
    pipeline: str | None = None
    input: JsonValue = None
    output: JsonValue = None
    error: JsonValue = None
    status: str | None = None
    start_time: str | None = None
    end_time: str | None = None
    duration: float | None = None
    metadata: JsonValue = None
    steps: list[Step] = Field(default_factory=list)

    @property
    def step_count(self) -> int:
        return len(self.steps)

    def to_json(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)
