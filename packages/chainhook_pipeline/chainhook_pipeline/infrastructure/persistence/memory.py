"""In-memory implementations of the monitoring stores.

Each store guards its records with an ``asyncio.Lock`` and hands out shallow
copies, so callers must go through ``update`` to change stored state.
"""

from __future__ import annotations

import asyncio
import copy
from typing import TYPE_CHECKING

from chainhook_pipeline.domain.exceptions import NotFoundError, StorageError
from chainhook_pipeline.domain.interfaces import (
    AlertStore,
    EventLogStore,
    HealthStatusStore,
    MetricsStore,
)
from chainhook_pipeline.infrastructure.logging import get_logger

if TYPE_CHECKING:
    from datetime import datetime

    from chainhook_pipeline.domain.entities import (
        Alert,
        EventLog,
        HealthStatus,
        MetricsSnapshot,
    )
    from chainhook_pipeline.domain.enums import AlertSeverity, EventStatus

logger = get_logger(__name__)


class InMemoryEventLogStore(EventLogStore):
    """Event log store keyed by event ID with oldest-first eviction at capacity."""

    def __init__(self, max_records: int = 100_000) -> None:
        self._logs: dict[str, EventLog] = {}
        self._lock = asyncio.Lock()
        self.max_records = max_records

    async def insert(self, log: EventLog) -> None:
        async with self._lock:
            if log.event_id in self._logs:
                raise StorageError(
                    operation="insert",
                    collection="event_logs",
                    record_id=log.event_id,
                    reason="duplicate event ID",
                )
            if len(self._logs) >= self.max_records:
                self._evict_oldest()
            self._logs[log.event_id] = copy.copy(log)

    async def get(self, event_id: str) -> EventLog | None:
        async with self._lock:
            log = self._logs.get(event_id)
            return copy.copy(log) if log else None

    async def update(self, log: EventLog) -> None:
        async with self._lock:
            if log.event_id not in self._logs:
                raise NotFoundError("EventLog", log.event_id)
            self._logs[log.event_id] = copy.copy(log)

    async def find(
        self,
        status: EventStatus | None = None,
        event_type: str | None = None,
        limit: int = 100,
    ) -> list[EventLog]:
        async with self._lock:
            matches = [
                log
                for log in self._logs.values()
                if (status is None or log.status == status)
                and (event_type is None or log.event_type == event_type)
            ]
        matches.sort(key=lambda log: log.received_at, reverse=True)
        return [copy.copy(log) for log in matches[:limit]]

    async def count(self, status: EventStatus | None = None) -> int:
        async with self._lock:
            if status is None:
                return len(self._logs)
            return sum(1 for log in self._logs.values() if log.status == status)

    async def delete_received_before(self, cutoff: datetime) -> int:
        async with self._lock:
            stale = [eid for eid, log in self._logs.items() if log.received_at < cutoff]
            for event_id in stale:
                del self._logs[event_id]
        return len(stale)

    def _evict_oldest(self) -> None:
        """Drop the oldest 10% of logs. Caller holds the lock."""
        ordered = sorted(self._logs.values(), key=lambda log: log.received_at)
        evict_count = max(1, len(ordered) // 10)
        for log in ordered[:evict_count]:
            del self._logs[log.event_id]

        logger.warning(
            f"Evicted {evict_count} oldest event logs due to capacity",
            extra={"evicted_count": evict_count, "total_logs": len(self._logs)},
        )


class InMemoryMetricsStore(MetricsStore):
    """Append-only snapshot list capped at ``max_snapshots``."""

    def __init__(self, max_snapshots: int = 10_000) -> None:
        self._snapshots: list[MetricsSnapshot] = []
        self._lock = asyncio.Lock()
        self.max_snapshots = max_snapshots

    async def insert(self, snapshot: MetricsSnapshot) -> None:
        async with self._lock:
            self._snapshots.append(copy.copy(snapshot))
            if len(self._snapshots) > self.max_snapshots:
                del self._snapshots[: len(self._snapshots) - self.max_snapshots]

    async def list_recent(self, limit: int = 100) -> list[MetricsSnapshot]:
        async with self._lock:
            ordered = sorted(self._snapshots, key=lambda s: s.timestamp, reverse=True)
        return [copy.copy(s) for s in ordered[:limit]]

    async def list_since(self, since: datetime) -> list[MetricsSnapshot]:
        async with self._lock:
            window = [s for s in self._snapshots if s.timestamp >= since]
        window.sort(key=lambda s: s.timestamp)
        return [copy.copy(s) for s in window]


class InMemoryAlertStore(AlertStore):
    """Alert store keyed by alert ID."""

    def __init__(self) -> None:
        self._alerts: dict[str, Alert] = {}
        self._lock = asyncio.Lock()

    async def insert(self, alert: Alert) -> None:
        async with self._lock:
            if alert.alert_id in self._alerts:
                raise StorageError(
                    operation="insert",
                    collection="alerts",
                    record_id=alert.alert_id,
                    reason="duplicate alert ID",
                )
            self._alerts[alert.alert_id] = copy.copy(alert)

    async def get(self, alert_id: str) -> Alert | None:
        async with self._lock:
            alert = self._alerts.get(alert_id)
            return copy.copy(alert) if alert else None

    async def update(self, alert: Alert) -> None:
        async with self._lock:
            if alert.alert_id not in self._alerts:
                raise NotFoundError("Alert", alert.alert_id)
            self._alerts[alert.alert_id] = copy.copy(alert)

    async def find(
        self,
        resolved: bool | None = None,
        severity: AlertSeverity | None = None,
        limit: int = 100,
    ) -> list[Alert]:
        async with self._lock:
            matches = [
                alert
                for alert in self._alerts.values()
                if (resolved is None or alert.resolved == resolved)
                and (severity is None or alert.severity == severity)
            ]
        matches.sort(key=lambda alert: alert.created_at, reverse=True)
        return [copy.copy(alert) for alert in matches[:limit]]

    async def count(self, resolved: bool | None = None) -> int:
        async with self._lock:
            if resolved is None:
                return len(self._alerts)
            return sum(1 for alert in self._alerts.values() if alert.resolved == resolved)

    async def delete_resolved_before(self, cutoff: datetime) -> int:
        async with self._lock:
            stale = [
                alert_id
                for alert_id, alert in self._alerts.items()
                if alert.resolved and alert.created_at < cutoff
            ]
            for alert_id in stale:
                del self._alerts[alert_id]
        return len(stale)


class InMemoryHealthStatusStore(HealthStatusStore):
    """Latest health status per node URL."""

    def __init__(self) -> None:
        self._statuses: dict[str, HealthStatus] = {}
        self._lock = asyncio.Lock()

    async def get(self, node_url: str) -> HealthStatus | None:
        async with self._lock:
            status = self._statuses.get(node_url)
            return copy.copy(status) if status else None

    async def upsert(self, status: HealthStatus) -> None:
        async with self._lock:
            self._statuses[status.node_url] = copy.copy(status)

    async def list_all(self) -> list[HealthStatus]:
        async with self._lock:
            return [copy.copy(status) for status in self._statuses.values()]
