"""Live event-processing counters and persisted metrics snapshots."""

from __future__ import annotations

import logging
from collections import deque
from datetime import UTC, datetime, timedelta

from chainhook_pipeline.application.models import CurrentMetrics
from chainhook_pipeline.domain.entities import MetricsSnapshot
from chainhook_pipeline.domain.enums import ConnectionStatus
from chainhook_pipeline.domain.exceptions import StorageError
from chainhook_pipeline.domain.interfaces import MetricsStore
from chainhook_pipeline.infrastructure.logging import get_logger
from chainhook_pipeline.infrastructure.persistence import InMemoryMetricsStore

MAX_PROCESSING_SAMPLES = 1000


class MetricsTracker:
    """Counts received, processed and failed events.

    The average processing time is computed over the most recent samples;
    minimum and maximum cover every event since the last reset.
    """

    def __init__(
        self,
        store: MetricsStore | None = None,
        *,
        max_samples: int = MAX_PROCESSING_SAMPLES,
        logger: logging.Logger | None = None,
    ) -> None:
        self._store = store or InMemoryMetricsStore()
        self._logger = logger or get_logger(__name__)
        self._samples: deque[float] = deque(maxlen=max_samples)
        self._reset_counters()

    def _reset_counters(self) -> None:
        self._events_received = 0
        self._events_processed = 0
        self._events_failed = 0
        self._min_processing_time: float | None = None
        self._max_processing_time = 0.0
        self._samples.clear()

    def track_event_received(self) -> None:
        self._events_received += 1

    def track_event_processed(self, processing_time: float) -> None:
        """Count a processed event and record its duration in milliseconds."""
        if processing_time < 0:
            raise ValueError("processing_time cannot be negative")

        self._events_processed += 1
        self._samples.append(processing_time)
        if self._min_processing_time is None or processing_time < self._min_processing_time:
            self._min_processing_time = processing_time
        self._max_processing_time = max(self._max_processing_time, processing_time)

    def track_event_failed(self) -> None:
        self._events_failed += 1

    def get_current_metrics(self) -> CurrentMetrics:
        average = sum(self._samples) / len(self._samples) if self._samples else 0.0
        return CurrentMetrics(
            events_received=self._events_received,
            events_processed=self._events_processed,
            events_failed=self._events_failed,
            average_processing_time=average,
            min_processing_time=self._min_processing_time or 0.0,
            max_processing_time=self._max_processing_time,
        )

    def reset_current_metrics(self) -> None:
        self._reset_counters()
        self._logger.info("Current metrics reset")

    async def save_metrics(
        self, connection_status: ConnectionStatus = ConnectionStatus.DISCONNECTED
    ) -> MetricsSnapshot:
        """Persist a snapshot of the live counters.

        Raises:
            StorageError: If the snapshot cannot be stored
        """
        current = self.get_current_metrics()
        snapshot = MetricsSnapshot(
            events_received=current.events_received,
            events_processed=current.events_processed,
            events_failed=current.events_failed,
            average_processing_time=current.average_processing_time,
            min_processing_time=current.min_processing_time,
            max_processing_time=current.max_processing_time,
            connection_status=connection_status,
        )

        try:
            await self._store.insert(snapshot)
        except Exception as e:
            self._logger.error("Failed to save metrics snapshot", exc_info=e)
            raise StorageError(operation="insert", collection="metrics", reason=str(e)) from e

        self._logger.debug(
            "Metrics snapshot saved",
            extra={
                "events_received": snapshot.events_received,
                "connection_status": snapshot.connection_status.value,
            },
        )
        return snapshot

    async def get_metrics_history(self, limit: int = 100) -> list[MetricsSnapshot]:
        """Return the most recent snapshots, newest first."""
        try:
            return await self._store.list_recent(limit)
        except Exception as e:
            self._logger.error("Failed to read metrics history", exc_info=e)
            raise StorageError(operation="query", collection="metrics", reason=str(e)) from e

    async def get_average_processing_time(self, hours: float = 1) -> float:
        """Average processing time over the snapshots of the last ``hours``."""
        snapshots = await self._snapshots_since(hours)
        if not snapshots:
            return self.get_current_metrics().average_processing_time
        return sum(s.average_processing_time for s in snapshots) / len(snapshots)

    async def get_failure_rate(self, hours: float = 1) -> float:
        """Failure percentage over the last ``hours``.

        Uses the most recent snapshot in the window, since snapshot counters
        are cumulative.
        """
        snapshots = await self._snapshots_since(hours)
        if snapshots:
            latest = snapshots[-1]
            processed, failed = latest.events_processed, latest.events_failed
        else:
            processed, failed = self._events_processed, self._events_failed

        handled = processed + failed
        if handled == 0:
            return 0.0
        return failed / handled * 100

    async def _snapshots_since(self, hours: float) -> list[MetricsSnapshot]:
        since = datetime.now(UTC) - timedelta(hours=hours)
        try:
            return await self._store.list_since(since)
        except Exception as e:
            self._logger.error("Failed to read metrics window", extra={"hours": hours}, exc_info=e)
            raise StorageError(operation="query", collection="metrics", reason=str(e)) from e
