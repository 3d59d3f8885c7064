"""In-memory trace store.

Dict-based storage implementing the full TraceStore protocol. All data is
lost when the process exits; a persistent backend replaces it behind the same
protocol.
"""

from collections.abc import Iterable
from threading import RLock
from typing import Any

from pydantic import ValidationError

from decision_trace.logging import get_trace_logger
from decision_trace.store._models import Run, Step
from decision_trace.tracing._events import EventType, RunStatus, TraceEvent

logger = get_trace_logger(__name__)


class MemoryTraceStore:
    """Dict-based trace store.

    Storage layout: runs by id, steps by id (including steps whose run is
    unknown), and a pipeline -> run ids index in start order. One re-entrant
    lock serializes every ingest and read; reads return deep copies so a
    caller never sees a run whose step list is being appended to.
    """

    def __init__(self) -> None:
        self._runs: dict[str, Run] = {}
        self._steps: dict[str, Step] = {}
        self._runs_by_pipeline: dict[str, list[str]] = {}
        self._lock = RLock()

    def ingest(self, event: TraceEvent) -> None:
        """Apply one event. Malformed payloads are logged and skipped; a run_end keeps its valid fields."""
        with self._lock:
            match event.type:
                case EventType.RUN_START:
                    self._apply_run_start(event.data)
                case EventType.STEP:
                    self._apply_step(event.data)
                case EventType.RUN_END:
                    self._apply_run_end(event.data)

    def _apply_run_start(self, data: dict[str, Any]) -> None:
        try:
            run = Run.model_validate(
                {
                    "runId": data.get("runId"),
                    "pipeline": data.get("pipeline"),
                    "input": data.get("input"),
                    "metadata": data.get("metadata"),
                    "startTime": data.get("timestamp"),
                    "status": RunStatus.RUNNING.value,
                }
            )
        except ValidationError as e:
            logger.warning(f"Skipping malformed run_start event: {e.error_count()} validation errors")
            return

        previous = self._runs.get(run.run_id)
        if previous is not None and previous.pipeline != run.pipeline and previous.pipeline is not None:
            ids = self._runs_by_pipeline.get(previous.pipeline, [])
            if run.run_id in ids:
                ids.remove(run.run_id)
        self._runs[run.run_id] = run

        if run.pipeline is not None:
            ids = self._runs_by_pipeline.setdefault(run.pipeline, [])
            if run.run_id not in ids:
                ids.append(run.run_id)

    def _apply_step(self, data: dict[str, Any]) -> None:
        try:
            step = Step.model_validate(data)
        except ValidationError as e:
            logger.warning(f"Skipping malformed step event: {e.error_count()} validation errors")
            return

        self._steps[step.step_id] = step
        run = self._runs.get(step.run_id) if step.run_id is not None else None
        if run is None:
            logger.debug(f"Step {step.step_id} stored without a run: unknown run {step.run_id}")
            return
        run.steps.append(step)

    def _apply_run_end(self, data: dict[str, Any]) -> None:
        run_id = data.get("runId")
        run = self._runs.get(run_id) if isinstance(run_id, str) else None
        if run is None:
            logger.debug(f"Dropping run_end for unknown run {run_id}")
            return

        update: dict[str, Any] = {
            "output": data.get("output"),
            "error": data.get("error"),
            "duration": data.get("duration"),
            "end_time": data.get("timestamp"),
        }
        if data.get("status") is not None:
            update["status"] = data["status"]
        current = run.model_dump(exclude={"steps"})
        try:
            finished = Run.model_validate({**current, **update})
        except ValidationError:
            finished = Run.model_validate({**current, **self._valid_fields(run_id, current, update)})
        finished.steps = run.steps
        self._runs[run.run_id] = finished

    @staticmethod
    def _valid_fields(run_id: Any, current: dict[str, Any], update: dict[str, Any]) -> dict[str, Any]:
        """Subset of ``update`` whose fields validate one at a time; invalid ones keep their current value."""
        valid: dict[str, Any] = {}
        for key, value in update.items():
            try:
                Run.model_validate({**current, key: value})
            except ValidationError:
                logger.warning(f"Ignoring invalid {key} in run_end event for run {run_id}")
                continue
            valid[key] = value
        return valid

    def get_run(self, run_id: str) -> Run | None:
        """Deep copy of the run, or None."""
        with self._lock:
            run = self._runs.get(run_id)
            return run.model_copy(deep=True) if run is not None else None

    def list_runs(self, pipeline: str | None = None) -> list[Run]:
        """Deep copies of all runs, or of the runs indexed under ``pipeline``."""
        with self._lock:
            if pipeline is None:
                runs = list(self._runs.values())
            else:
                runs = [self._runs[run_id] for run_id in self._runs_by_pipeline.get(pipeline, []) if run_id in self._runs]
            return [run.model_copy(deep=True) for run in runs]

    def list_steps(self, run_ids: Iterable[str] | None = None) -> list[Step]:
        """All steps in ingest order, optionally restricted to ``run_ids``."""
        with self._lock:
            steps = [step.model_copy(deep=True) for step in self._steps.values()]
        if run_ids is None:
            return steps
        wanted = set(run_ids)
        return [step for step in steps if step.run_id in wanted]

    def list_pipelines(self) -> list[str]:
        with self._lock:
            return list(self._runs_by_pipeline)

    def pipeline_run_ids(self, pipeline: str) -> list[str]:
        with self._lock:
            return list(self._runs_by_pipeline.get(pipeline, []))
