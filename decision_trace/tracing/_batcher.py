"""Pending-event buffer and background delivery thread.

Delivery is at-most-once: a batch whose send fails is reported to the error
handler exactly once and then dropped. There is no retry and no requeue.
Stronger guarantees belong in a durable EventTransport, not here.
"""

import asyncio
import contextlib
from collections.abc import Callable
from typing import TypeAlias
from dataclasses import dataclass, field
from threading import Event, Lock, Thread

from decision_trace.logging import get_trace_logger

from ._events import TraceEvent
from ._transport import EventTransport

ErrorHandler: TypeAlias = Callable[[Exception], None]

logger = get_trace_logger(__name__)

_SENTINEL = object()


@dataclass(frozen=True)
class EventBatch:
    """Ordered events swapped out of the pending buffer in one step."""

    events: list[TraceEvent] = field(default_factory=list)


class DeliveryWorker:
    """Background thread that sends batches through a transport.

    Uses a dedicated thread with its own asyncio event loop. Callers push
    batches via ``submit()``, which uses ``loop.call_soon_threadsafe()`` and
    never blocks. Batches are sent one at a time in submission order.
    """

    def __init__(self, transport: EventTransport, *, on_error: ErrorHandler | None = None) -> None:
        """Store config. Does NOT start the worker thread."""
        self._transport = transport
        self._on_error = on_error
        self._loop: asyncio.AbstractEventLoop | None = None
        self._queue: asyncio.Queue[EventBatch | Event | object] | None = None
        self._thread: Thread | None = None
        self._shutdown = False
        self._ready = Event()

    @property
    def started(self) -> bool:
        return self._thread is not None

    def start(self) -> None:
        """Start the background delivery thread."""
        if self._thread is not None:
            return
        self._thread = Thread(target=self._thread_main, name="trace-delivery", daemon=True)
        self._thread.start()
        if not self._ready.wait(timeout=5.0):
            logger.warning("Trace delivery thread did not start within 5 seconds")
        else:
            logger.info("Trace delivery thread started")

    def _thread_main(self) -> None:
        self._loop = asyncio.new_event_loop()
        self._queue = asyncio.Queue()
        self._ready.set()
        try:
            self._loop.run_until_complete(self._run())
        finally:
            self._loop.close()
            self._loop = None

    async def _run(self) -> None:
        assert self._queue is not None, "_run() must be called after _queue is initialized"
        while True:
            item = await self._queue.get()
            if item is _SENTINEL:
                break
            if isinstance(item, Event):
                item.set()
                continue
            assert isinstance(item, EventBatch)
            await self._deliver(item)

    async def _deliver(self, batch: EventBatch) -> None:
        try:
            await self._transport.send(batch.events)
        except Exception as e:
            logger.warning(f"Dropping batch of {len(batch.events)} trace events: {e}")
            self._report(e)

    def _report(self, error: Exception) -> None:
        if self._on_error is None:
            return
        try:
            self._on_error(error)
        except Exception as handler_error:
            logger.warning(f"Trace error handler raised: {handler_error}")

    def submit(self, batch: EventBatch) -> bool:
        """Enqueue a batch for delivery. Thread-safe, non-blocking.

        Returns False when the worker is not running and the batch was not accepted.
        """
        if self._shutdown or self._loop is None or self._queue is None:
            return False
        try:
            self._loop.call_soon_threadsafe(self._queue.put_nowait, batch)
        except RuntimeError:
            return False
        return True

    def drain(self, timeout: float = 30.0) -> bool:
        """Block until every batch submitted so far has been attempted."""
        if self._loop is None or self._queue is None:
            return True
        barrier = Event()
        try:
            self._loop.call_soon_threadsafe(self._queue.put_nowait, barrier)
        except RuntimeError:
            return True
        if not barrier.wait(timeout=timeout):
            logger.warning(f"Trace delivery drain timed out after {timeout:.0f}s; some batches may still be in flight")
            return False
        return True

    def shutdown(self, timeout: float = 30.0) -> None:
        """Send stop sentinel and join the thread. Already-queued batches are sent first."""
        if self._shutdown:
            return
        self._shutdown = True
        if self._loop is not None and self._queue is not None:
            with contextlib.suppress(RuntimeError):
                self._loop.call_soon_threadsafe(self._queue.put_nowait, _SENTINEL)
        if self._thread is not None:
            self._thread.join(timeout=timeout)
            logger.info("Trace delivery thread stopped")


class EventBatcher:
    """Accumulates events and hands full buffers to the delivery worker.

    ``add()`` is synchronous and never waits on I/O. The buffer is swapped out
    and submitted under one lock, so an event appended concurrently with a
    flush lands either in the batch being flushed or in the fresh buffer,
    never in both and never in neither, and batches reach the worker in the
    order they were cut.
    """

    def __init__(
        self,
        transport: EventTransport,
        *,
        batch_size: int = 10,
        on_error: ErrorHandler | None = None,
    ) -> None:
        self._batch_size = max(batch_size, 1)
        self._worker = DeliveryWorker(transport, on_error=on_error)
        self._pending: list[TraceEvent] = []
        self._lock = Lock()
        self._closed = False

    @property
    def batch_size(self) -> int:
        return self._batch_size

    @property
    def pending_count(self) -> int:
        with self._lock:
            return len(self._pending)

    def _dispatch_pending(self) -> None:
        """Swap out the buffer and submit it. Caller holds ``_lock``."""
        events, self._pending = self._pending, []
        if not events:
            return
        if self._closed:
            logger.debug(f"Batcher is shut down; discarding {len(events)} trace events")
            return
        self._worker.start()
        if not self._worker.submit(EventBatch(events=events)):
            logger.warning(f"Trace delivery worker unavailable; discarding {len(events)} trace events")

    def add(self, event: TraceEvent) -> None:
        """Append an event; dispatch the buffer once it reaches ``batch_size``."""
        with self._lock:
            self._pending.append(event)
            if len(self._pending) >= self._batch_size:
                self._dispatch_pending()

    def flush(self, timeout: float = 30.0) -> None:
        """Send whatever is pending and wait until all submitted batches were attempted.

        With nothing pending and no worker running this returns immediately
        without sending anything.
        """
        with self._lock:
            self._dispatch_pending()
        if self._worker.started:
            self._worker.drain(timeout=timeout)

    def shutdown(self, timeout: float = 30.0) -> None:
        """Flush pending events and stop the delivery thread."""
        with self._lock:
            self._dispatch_pending()
            self._closed = True
        self._worker.shutdown(timeout=timeout)
