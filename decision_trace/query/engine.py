"""Read-only queries over a trace store.

The engine never looks at a step's payload beyond three conventions: the
``type`` field, the ``candidates`` and ``filtered`` fields, and the
``isSummary`` discriminator on those two. Raw lists and summaries are counted
through ``count_items`` so both representations give the same answer.
"""

from collections.abc import Sequence
from typing import Any, TypeVar

from decision_trace.exceptions import RunNotFoundError
from decision_trace.logging import get_trace_logger
from decision_trace.store import Run, Step, TraceStore
from decision_trace.summary import count_items
from decision_trace.tracing._events import RunStatus, StepType

from ._models import (
    EliminationMatch,
    EliminationReport,
    Page,
    PipelineStats,
    RunQuery,
    StepQuery,
    coerce_threshold,
)

logger = get_trace_logger(__name__)

_T = TypeVar("_T")


def _paginate(items: Sequence[_T], limit: int, offset: int) -> Page[_T]:
    return Page(items=list(items[offset : offset + limit]), total=len(items), limit=limit, offset=offset)


def elimination_counts(step: Step) -> tuple[int, int] | None:
    """``(candidates, filtered)`` counts of a filter step, or None when it does not qualify."""
    if step.type != StepType.FILTER or step.candidates is None or step.filtered is None:
        return None
    kept = count_items(step.candidates)
    dropped = count_items(step.filtered)
    if kept is None or dropped is None:
        return None
    return kept, dropped


def _average(values: Sequence[float]) -> float | None:
    return sum(values) / len(values) if values else None


class QueryEngine:
    """Filtered listings, run lookup, cross-pipeline filter analysis and pipeline stats."""

    def __init__(self, store: TraceStore) -> None:
        self._store = store

    @property
    def store(self) -> TraceStore:
        return self._store

    def list_runs(self, query: RunQuery | None = None) -> Page[Run]:
        """Runs matching ``query``, newest start time first."""
        query = query or RunQuery()
        runs = self._store.list_runs(query.pipeline)

        if query.status is not None:
            runs = [run for run in runs if run.status == query.status]
        if query.start_time is not None:
            runs = [run for run in runs if run.start_time is not None and run.start_time >= query.start_time]
        if query.end_time is not None:
            runs = [run for run in runs if run.start_time is not None and run.start_time <= query.end_time]
        if query.min_steps is not None:
            runs = [run for run in runs if run.step_count >= query.min_steps]
        if query.max_steps is not None:
            runs = [run for run in runs if run.step_count <= query.max_steps]

        runs.sort(key=lambda run: run.start_time or "", reverse=True)
        return _paginate(runs, query.limit, query.offset)

    def get_run(self, run_id: str) -> Run:
        """The run with its steps.

        Raises:
            RunNotFoundError: ``run_id`` is unknown.
        """
        run = self._store.get_run(run_id)
        if run is None:
            raise RunNotFoundError(run_id)
        return run

    def list_steps(self, query: StepQuery | None = None) -> Page[Step]:
        """Steps matching ``query``, newest timestamp first."""
        query = query or StepQuery()
        run_ids = self._store.pipeline_run_ids(query.pipeline) if query.pipeline is not None else None
        steps = self._store.list_steps(run_ids)

        if query.run_id is not None:
            steps = [step for step in steps if step.run_id == query.run_id]
        if query.name is not None:
            steps = [step for step in steps if step.name == query.name]
        if query.type is not None:
            steps = [step for step in steps if step.type == query.type]

        steps.sort(key=lambda step: step.timestamp or "", reverse=True)
        return _paginate(steps, query.limit, query.offset)

    def filter_elimination(self, threshold: Any = None, pipeline: str | None = None) -> EliminationReport:
        """Filter steps that removed at least ``threshold`` percent of what they saw.

        Elimination rate is ``filtered / (candidates + filtered)``. Steps with
        nothing in either field are skipped, as are steps whose fields are
        neither a list nor a summary. Runs are scanned in store order and
        steps in arrival order.
        """
        percent = coerce_threshold(threshold)
        cutoff = percent / 100
        matches: list[EliminationMatch] = []

        for run in self._store.list_runs(pipeline or None):
            for step in run.steps:
                counts = elimination_counts(step)
                if counts is None:
                    continue
                kept, dropped = counts
                seen = kept + dropped
                if seen <= 0:
                    continue
                rate = dropped / seen
                if rate < cutoff:
                    continue
                matches.append(
                    EliminationMatch(
                        run_id=run.run_id,
                        pipeline=run.pipeline,
                        step_id=step.step_id,
                        step_name=step.name,
                        elimination_rate=rate * 100,
                        candidates_in=kept,
                        candidates_out=seen - dropped,
                        filtered_out=dropped,
                    )
                )

        logger.debug(f"Filter-elimination query (threshold={percent}%, pipeline={pipeline}) matched {len(matches)} steps")
        return EliminationReport(matches=matches, threshold=percent)

    def list_pipelines(self) -> list[str]:
        return self._store.list_pipelines()

    def pipeline_stats(self, pipeline: str) -> PipelineStats | None:
        """Aggregates over the pipeline's runs, or None when it has none."""
        runs = self._store.list_runs(pipeline)
        if not runs:
            return None
        durations = [run.duration for run in runs if run.duration is not None]
        return PipelineStats(
            total_runs=len(runs),
            success_count=sum(1 for run in runs if run.status == RunStatus.SUCCESS),
            error_count=sum(1 for run in runs if run.status == RunStatus.ERROR),
            avg_duration=_average(durations),
            avg_step_count=sum(run.step_count for run in runs) / len(runs),
        )
