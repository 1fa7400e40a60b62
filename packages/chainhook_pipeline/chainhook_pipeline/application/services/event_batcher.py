"""Size- and timeout-triggered batching of incoming Chainhook events."""

from __future__ import annotations

import asyncio
import logging
import time
from collections import deque
from collections.abc import Awaitable, Callable, Iterable
from typing import Any

from chainhook_pipeline.application.error_handling import ErrorLog
from chainhook_pipeline.application.models import BatchMetrics
from chainhook_pipeline.config import BatchConfig
from chainhook_pipeline.domain.entities import QueuedEvent
from chainhook_pipeline.infrastructure.logging import get_logger
from chainhook_pipeline.infrastructure.monitoring import PipelineMetricsCollector

BatchCallback = Callable[[list[QueuedEvent]], Awaitable[None]]

# Share of the queue retained when it overflows.
OVERFLOW_RETAIN_RATIO = 0.8


class EventBatcher:
    """Accumulates events in a bounded queue and delivers them in batches.

    A batch is delivered as soon as ``batch_size`` events are queued, or when
    the flush timer armed by the first event of a partial batch fires. Every
    registered callback receives each batch in turn; a failing callback is
    recorded and does not stop the others. Deliveries are serialized, so a
    slow callback delays the next batch.

    Timers and deliveries are scheduled on the running event loop. Events
    added outside a loop stay queued until ``flush()`` or ``process_batch()``
    is awaited.
    """

    def __init__(
        self,
        config: BatchConfig | None = None,
        *,
        name: str = "default",
        error_log: ErrorLog | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        """Initialize the batcher.

        Args:
            config: Batch size, timeout and queue limits
            name: Label used in logs and Prometheus metrics
            error_log: Log receiving callback failures
            logger: Logger to use instead of the module logger
        """
        self._config = config or BatchConfig()
        self._name = name
        self._logger = logger or get_logger(__name__)
        self._error_log = error_log if error_log is not None else ErrorLog(logger=self._logger)
        self._collector = PipelineMetricsCollector(component=f"batcher:{name}")

        self._queue: list[QueuedEvent] = []
        self._callbacks: list[BatchCallback] = []
        self._timer: asyncio.TimerHandle | None = None
        self._in_flight: set[asyncio.Task[None]] = set()
        self._delivery_lock = asyncio.Lock()
        self._destroyed = False

        self._total_batches = 0
        self._total_events = 0
        self._batch_timings: deque[float] = deque(maxlen=self._config.max_timing_samples)

        self._logger.info(
            "EventBatcher initialized",
            extra={
                "batcher": name,
                "batch_size": self._config.batch_size,
                "batch_timeout_ms": self._config.batch_timeout_ms,
                "max_queue_size": self._config.max_queue_size,
            },
        )

    @property
    def name(self) -> str:
        return self._name

    @property
    def config(self) -> BatchConfig:
        return self._config

    @property
    def error_log(self) -> ErrorLog:
        return self._error_log

    @property
    def has_pending_timer(self) -> bool:
        return self._timer is not None

    def register_batch_callback(self, callback: BatchCallback) -> None:
        self._callbacks.append(callback)
        self._logger.debug(
            "Batch callback registered",
            extra={"batcher": self._name, "callback_count": len(self._callbacks)},
        )

    def add_event(self, event: dict[str, Any]) -> bool:
        """Queue an event.

        Returns:
            True if the event was queued, False once the batcher is destroyed
        """
        if self._destroyed:
            self._logger.warning(
                "Event rejected by destroyed batcher", extra={"batcher": self._name}
            )
            return False

        max_queue_size = self._config.max_queue_size
        if len(self._queue) >= max_queue_size:
            retained = int(max_queue_size * OVERFLOW_RETAIN_RATIO)
            dropped = len(self._queue) - retained
            self._queue = self._queue[dropped:]
            self._collector.record_events_dropped(dropped)
            self._logger.warning(
                f"Event queue at max capacity ({max_queue_size}). Dropping oldest events.",
                extra={"batcher": self._name, "dropped": dropped, "retained": retained},
            )

        self._queue.append(QueuedEvent(payload=event))
        self._collector.record_events_enqueued(1, len(self._queue))

        if len(self._queue) >= self._config.batch_size:
            self._dispatch_batch()
        elif self._timer is None:
            self._schedule_processing()

        return True

    def add_events(self, events: Iterable[dict[str, Any]]) -> bool:
        accepted = True
        for event in events:
            accepted = self.add_event(event) and accepted
        return accepted

    async def process_batch(self) -> None:
        """Deliver the next batch, then keep going while events remain."""
        batch = self._take_batch()
        if not batch:
            return
        await self._deliver(batch)

    async def flush(self) -> None:
        """Deliver everything queued, waiting for deliveries already under way."""
        self._cancel_timer()

        while self._in_flight:
            await asyncio.gather(*list(self._in_flight))

        while self._queue:
            batch = self._take_batch()
            await self._deliver(batch, schedule_next=False)

        self._logger.info("Event batcher flushed", extra={"batcher": self._name})

    def get_metrics(self) -> BatchMetrics:
        average_batch_size = (
            self._total_events / self._total_batches if self._total_batches else 0.0
        )
        average_processing_time = (
            sum(self._batch_timings) / len(self._batch_timings) if self._batch_timings else 0.0
        )
        return BatchMetrics(
            total_batches=self._total_batches,
            total_events=self._total_events,
            average_batch_size=round(average_batch_size, 2),
            average_processing_time=round(average_processing_time, 4),
        )

    def get_queue_size(self) -> int:
        return len(self._queue)

    def get_timing_sample_count(self) -> int:
        return len(self._batch_timings)

    def reset_metrics(self) -> None:
        self._total_batches = 0
        self._total_events = 0
        self._batch_timings.clear()
        self._logger.info("Batcher metrics reset", extra={"batcher": self._name})

    def clear_queue(self) -> None:
        self._queue = []
        self._cancel_timer()
        self._collector.set_queue_size(0)
        self._logger.warning("Event queue cleared", extra={"batcher": self._name})

    def destroy(self) -> None:
        self.clear_queue()
        self._callbacks = []
        self._destroyed = True
        self._logger.info("EventBatcher destroyed", extra={"batcher": self._name})

    def _take_batch(self) -> list[QueuedEvent]:
        """Remove the next batch from the queue and count it."""
        batch_size = self._config.batch_size
        batch = self._queue[:batch_size]
        if not batch:
            return batch

        del self._queue[:batch_size]
        self._total_batches += 1
        self._total_events += len(batch)
        self._collector.set_queue_size(len(self._queue))
        return batch

    def _dispatch_batch(self) -> None:
        """Take a batch now and deliver it in the background."""
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            self._logger.debug(
                "No running event loop; batch left queued", extra={"batcher": self._name}
            )
            return

        batch = self._take_batch()
        if not batch:
            return

        task = loop.create_task(self._deliver(batch))
        self._in_flight.add(task)
        task.add_done_callback(self._in_flight.discard)

    def _schedule_processing(self) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return

        self._timer = loop.call_later(
            self._config.batch_timeout_ms / 1000, self._on_timer_expired
        )

    def _on_timer_expired(self) -> None:
        self._timer = None
        self._dispatch_batch()

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    async def _deliver(self, batch: list[QueuedEvent], schedule_next: bool = True) -> None:
        async with self._delivery_lock:
            start = time.perf_counter()
            self._logger.debug(
                f"Processing batch of {len(batch)} events",
                extra={"batcher": self._name, "batch_size": len(batch)},
            )

            for callback in list(self._callbacks):
                try:
                    await callback(batch)
                except Exception as e:
                    self._collector.record_callback_error()
                    self._error_log.handle_handler_error(
                        getattr(callback, "__qualname__", repr(callback)), str(e), e
                    )

            elapsed = time.perf_counter() - start
            self._batch_timings.append(elapsed * 1000)
            self._collector.record_batch(elapsed, len(self._queue))

        if not schedule_next:
            return
        if self._queue:
            self._dispatch_batch()
        else:
            self._cancel_timer()
