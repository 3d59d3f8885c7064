"""Instrumentation client that records pipeline runs and their decision steps.

@public

A TraceClient records one active run at a time. Every call returns
immediately: events are buffered and delivered by a background thread, and a
delivery failure is handed to ``on_error`` instead of being raised. A disabled
client records nothing and never starts a thread.

Example:
    >>> client = TraceClient(api_url="http://localhost:3001/api")
    >>> with client.run("competitor-selection", input={"asin": "B0X"}):
    ...     client.record_step(
    ...         "price-filter",
    ...         "filter",
    ...         candidates=kept,
    ...         filtered=[{"candidate": c, "reasons": ["price out of range"]} for c in dropped],
    ...         reasoning="Dropped candidates outside 0.5x-2x of the reference price",
    ...     )
    >>> client.flush()

Note:
    Starting a new run while another is active silently discards the active
    run's local step buffer; that run never receives a ``run_end`` event. Use
    one client per concurrently executing run.
"""

import time
from collections.abc import Generator, Mapping
from contextlib import contextmanager
from datetime import timedelta
from typing import Any

from pydantic import JsonValue
from pydantic_core import to_jsonable_python

from decision_trace.logging import get_trace_logger
from decision_trace.settings import Settings
from decision_trace.summary import DEFAULT_SUMMARY_LIMIT, summarize_sequence

from ._batcher import EventBatcher, ErrorHandler
from ._events import EventType, RunStatus, TraceEvent, new_trace_id, utc_now_iso
from ._transport import EventTransport, HttpEventTransport

logger = get_trace_logger(__name__)


def _snapshot(value: Any) -> JsonValue:
    """JSON-compatible copy of a caller value; unknown objects become ``str``."""
    return to_jsonable_python(value, by_alias=True, fallback=str)


def _text(value: Any) -> str | None:
    return None if value is None else str(value)


def _milliseconds(value: Any) -> float | None:
    if value is None:
        return None
    if isinstance(value, timedelta):
        return value.total_seconds() * 1000
    return float(value)


def _error_text(error: BaseException | str | None) -> str | None:
    if error is None or isinstance(error, str):
        return error
    return f"{type(error).__name__}: {error}"


class TraceClient:
    """Per-pipeline recorder of runs and steps.

    @public

    Args:
        transport: Where batches go. Defaults to an HttpEventTransport for ``api_url``.
        api_url: Base URL of the trace API, used when no transport is given.
        enabled: When False every operation is a no-op returning None.
        metadata: Client-wide metadata merged into every run (call-specific keys win).
        on_error: Called once with the exception of each failed delivery or capture.
        batch_size: Pending-event count that triggers a background flush.
        summary_limit: Default maximum length of ``candidates``/``filtered``.
        delivery_timeout: HTTP timeout in seconds for the default transport.
    """

    def __init__(
        self,
        *,
        transport: EventTransport | None = None,
        api_url: str = "http://localhost:3001/api",
        enabled: bool = True,
        metadata: Mapping[str, Any] | None = None,
        on_error: ErrorHandler | None = None,
        batch_size: int = 10,
        summary_limit: int = DEFAULT_SUMMARY_LIMIT,
        delivery_timeout: float = 10.0,
    ) -> None:
        self.enabled = enabled
        self.metadata: dict[str, Any] = dict(metadata or {})
        self.summary_limit = summary_limit
        self._transport = transport or HttpEventTransport(api_url, timeout=delivery_timeout)
        self._on_error = on_error
        self._batcher = EventBatcher(self._transport, batch_size=batch_size, on_error=on_error)

        self._run_id: str | None = None
        self._run_started: float | None = None
        self._steps: list[dict[str, JsonValue]] = []

    @classmethod
    def from_settings(cls, settings: Settings, **overrides: Any) -> "TraceClient":
        """Build a client from Settings; keyword overrides take precedence."""
        config: dict[str, Any] = {
            "api_url": settings.trace_api_url,
            "enabled": settings.trace_enabled,
            "batch_size": settings.trace_batch_size,
            "summary_limit": settings.trace_summary_limit,
            "delivery_timeout": settings.trace_delivery_timeout,
        }
        config.update(overrides)
        return cls(**config)

    @property
    def run_id(self) -> str | None:
        """Id of the active run, or None."""
        return self._run_id

    @property
    def steps(self) -> list[dict[str, JsonValue]]:
        """Steps recorded so far in the active run."""
        return list(self._steps)

    @property
    def batcher(self) -> EventBatcher:
        return self._batcher

    def _report(self, operation: str, error: Exception) -> None:
        """Log a capture failure and hand it to ``on_error``; never raises."""
        logger.warning(f"Trace {operation} skipped: {type(error).__name__}: {error}")
        if self._on_error is None:
            return
        try:
            self._on_error(error)
        except Exception as handler_error:
            logger.warning(f"Trace error handler raised: {handler_error}")

    def _emit(self, event_type: EventType, data: dict[str, JsonValue]) -> None:
        if not self.enabled:
            return
        try:
            self._batcher.add(TraceEvent(type=event_type, data=data))
        except Exception as e:
            self._report(f"{event_type} event", e)

    def start_run(
        self,
        pipeline: str,
        input: Any = None,
        metadata: Mapping[str, Any] | None = None,
    ) -> str | None:
        """Begin a run and emit ``run_start``.

        Returns:
            The new run id, or None when disabled or when the run payload
            could not be captured (the failure goes to ``on_error``).
        """
        if not self.enabled:
            return None

        run_id = new_trace_id("run")
        try:
            data: dict[str, JsonValue] = {
                "runId": run_id,
                "pipeline": _text(pipeline),
                "input": _snapshot(input),
                "metadata": _snapshot({**self.metadata, **(metadata or {})}),
                "timestamp": utc_now_iso(),
            }
        except Exception as e:
            self._report("start_run", e)
            return None

        if self._run_id is not None:
            logger.debug(f"Run {self._run_id} replaced by a new run before end_run; its local steps are discarded")
        self._run_id = run_id
        self._run_started = time.monotonic()
        self._steps = []

        self._emit(EventType.RUN_START, data)
        return run_id

    def record_step(
        self,
        name: str | None = None,
        type: str | None = None,
        *,
        input: Any = None,
        output: Any = None,
        candidates: Any = None,
        filtered: Any = None,
        metadata: Mapping[str, Any] | None = None,
        reasoning: str | None = None,
        duration: float | timedelta | None = None,
        candidate_limit: int | None = None,
        filtered_limit: int | None = None,
    ) -> str | None:
        """Record one decision point of the active run.

        ``candidates`` and ``filtered`` are summarized independently when
        longer than their limit (``candidate_limit`` / ``filtered_limit``,
        defaulting to the client's ``summary_limit``). Payloads are snapshotted,
        so the caller's objects are neither mutated nor referenced afterwards.
        ``duration`` is in milliseconds; a timedelta is converted.

        Returns:
            The new step id, or None when disabled, when no run is active, or
            when the step could not be captured (the failure goes to ``on_error``).
        """
        if not self.enabled or self._run_id is None:
            return None

        step_id = new_trace_id("step")
        limit = self.summary_limit
        try:
            step: dict[str, JsonValue] = {
                "stepId": step_id,
                "runId": self._run_id,
                "name": _text(name),
                "type": _text(type),
                "input": _snapshot(input),
                "output": _snapshot(output),
                "candidates": _snapshot(summarize_sequence(candidates, limit if candidate_limit is None else candidate_limit)),
                "filtered": _snapshot(summarize_sequence(filtered, limit if filtered_limit is None else filtered_limit)),
                "metadata": _snapshot(dict(metadata or {})),
                "reasoning": _text(reasoning),
                "timestamp": utc_now_iso(),
                "duration": _milliseconds(duration),
            }
        except Exception as e:
            self._report("record_step", e)
            return None

        self._steps.append(step)
        self._emit(EventType.STEP, step)
        return step_id

    def end_run(
        self,
        status: RunStatus | str = RunStatus.SUCCESS,
        output: Any = None,
        error: BaseException | str | None = None,
    ) -> str | None:
        """Finish the active run and emit ``run_end``.

        An ``output`` that cannot be captured is reported to ``on_error`` and
        sent as null; the run is still ended.

        Returns:
            The completed run id, or None when disabled or no run is active.
        """
        if not self.enabled or self._run_id is None:
            return None

        started = self._run_started if self._run_started is not None else time.monotonic()
        completed_run_id = self._run_id
        try:
            captured_output = _snapshot(output)
        except Exception as e:
            self._report("end_run output", e)
            captured_output = None

        self._emit(
            EventType.RUN_END,
            {
                "runId": completed_run_id,
                "status": str(status),
                "output": captured_output,
                "error": _error_text(error),
                "duration": round((time.monotonic() - started) * 1000),
                "stepCount": len(self._steps),
                "timestamp": utc_now_iso(),
            },
        )

        self._run_id = None
        self._run_started = None
        self._steps = []
        return completed_run_id

    @contextmanager
    def run(
        self,
        pipeline: str,
        input: Any = None,
        metadata: Mapping[str, Any] | None = None,
    ) -> Generator[str | None, None, None]:
        """Context manager around start_run/end_run.

        Ends the run with ``success`` on normal exit, or with ``error`` and the
        exception text when the body raises. The exception is re-raised.
        """
        run_id = self.start_run(pipeline, input=input, metadata=metadata)
        try:
            yield run_id
        except BaseException as e:
            if run_id is not None and self._run_id == run_id:
                self.end_run(RunStatus.ERROR, error=e)
            raise
        if run_id is not None and self._run_id == run_id:
            self.end_run(RunStatus.SUCCESS)

    def flush(self, timeout: float = 30.0) -> None:
        """Send pending events and block until every submitted batch was attempted."""
        self._batcher.flush(timeout=timeout)

    def shutdown(self, timeout: float = 30.0) -> None:
        """Flush and stop the delivery thread. The client records nothing afterwards."""
        self._batcher.shutdown(timeout=timeout)
        self.enabled = False


_trace_client: TraceClient | None = None


def init_trace_client(**config: Any) -> TraceClient:
    """Create a TraceClient and install it as the process-wide default.

    @public
    """
    global _trace_client
    _trace_client = TraceClient(**config)
    return _trace_client


def get_trace_client() -> TraceClient:
    """Process-wide default client, created from the global settings on first use.

    @public
    """
    global _trace_client
    if _trace_client is None:
        from decision_trace.settings import settings

        _trace_client = TraceClient.from_settings(settings)
    return _trace_client


def set_trace_client(client: TraceClient | None) -> None:
    """Replace (or clear) the process-wide default client."""
    global _trace_client
    _trace_client = client
