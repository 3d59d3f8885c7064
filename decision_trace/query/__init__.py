"""Read-only query engine over trace stores."""

from ._models import (
    DEFAULT_LIMIT,
    DEFAULT_OFFSET,
    DEFAULT_THRESHOLD,
    EliminationMatch,
    EliminationReport,
    Page,
    PipelineStats,
    RunQuery,
    StepQuery,
    coerce_threshold,
)
from .engine import QueryEngine, elimination_counts

__all__ = [
    "DEFAULT_LIMIT",
    "DEFAULT_OFFSET",
    "DEFAULT_THRESHOLD",
    "EliminationMatch",
    "EliminationReport",
    "Page",
    "PipelineStats",
    "QueryEngine",
    "RunQuery",
    "StepQuery",
    "coerce_threshold",
    "elimination_counts",
]
