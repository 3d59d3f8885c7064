"""Query parameters and result shapes.

Parameter models accept raw query-string values. Malformed or out-of-range
pagination, bound and threshold values fall back to their defaults instead of
raising.
"""

import math
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

DEFAULT_LIMIT = 100
DEFAULT_OFFSET = 0
DEFAULT_THRESHOLD = 90.0

_T = TypeVar("_T")

_PARAMS = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore", frozen=True)


def _coerce_int(value: Any, default: int | None) -> int | None:
    if value is None or value == "" or isinstance(value, bool):
        return default
    try:
        number = int(value)
    except (TypeError, ValueError):
        try:
            number = int(float(value))
        except (TypeError, ValueError, OverflowError):
            return default
    return number if number >= 0 else default


def _coerce_count(value: Any, default: int) -> int:
    coerced = _coerce_int(value, default)
    return default if coerced is None else coerced


def coerce_threshold(value: Any) -> float:
    """Threshold percentage from a raw value; 90 when missing or not a finite number."""
    if value is None or value == "" or isinstance(value, bool):
        return DEFAULT_THRESHOLD
    try:
        threshold = float(value)
    except (TypeError, ValueError):
        return DEFAULT_THRESHOLD
    return threshold if math.isfinite(threshold) else DEFAULT_THRESHOLD


class _PageParams(BaseModel):
    model_config = _PARAMS

    limit: int = DEFAULT_LIMIT
    offset: int = DEFAULT_OFFSET

    @field_validator("limit", mode="before")
    @classmethod
    def _coerce_limit(cls, value: Any) -> int:
        return _coerce_count(value, DEFAULT_LIMIT)

    @field_validator("offset", mode="before")
    @classmethod
    def _coerce_offset(cls, value: Any) -> int:
        return _coerce_count(value, DEFAULT_OFFSET)


class RunQuery(_PageParams):
    """Filters for run listing. Time bounds compare ``startTime`` as strings."""

    pipeline: str | None = None
    status: str | None = None
    start_time: str | None = None
    end_time: str | None = None
    min_steps: int | None = None
    max_steps: int | None = None

    @field_validator("min_steps", "max_steps", mode="before")
    @classmethod
    def _coerce_step_bound(cls, value: Any) -> int | None:
        return _coerce_int(value, None)

    @field_validator("pipeline", "status", "start_time", "end_time", mode="before")
    @classmethod
    def _blank_is_unset(cls, value: Any) -> str | None:
        return None if value is None or value == "" else str(value)


class StepQuery(_PageParams):
    """Filters for step listing."""

    run_id: str | None = None
    name: str | None = None
    type: str | None = None
    pipeline: str | None = None

    @field_validator("run_id", "name", "type", "pipeline", mode="before")
    @classmethod
    def _blank_is_unset(cls, value: Any) -> str | None:
        return None if value is None or value == "" else str(value)


class Page(BaseModel, Generic[_T]):
    """One page of results; ``total`` counts all matches before pagination."""

    items: list[_T] = Field(default_factory=list)
    total: int = 0
    limit: int = DEFAULT_LIMIT
    offset: int = DEFAULT_OFFSET


class EliminationMatch(BaseModel):
    """A filter step whose elimination rate reached the threshold."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    run_id: str
    pipeline: str | None
    step_id: str
    step_name: str | None
    elimination_rate: float
    candidates_in: int
    candidates_out: int
    filtered_out: int


class EliminationReport(BaseModel):
    """Result of the filter-elimination query."""

    matches: list[EliminationMatch] = Field(default_factory=list)
    threshold: float = DEFAULT_THRESHOLD

    @property
    def count(self) -> int:
        return len(self.matches)


class PipelineStats(BaseModel):
    """Aggregates over every run of one pipeline."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    total_runs: int
    success_count: int
    error_count: int
    avg_duration: float | None
    avg_step_count: float
