"""Persisted snapshot of event processing metrics."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime

from chainhook_pipeline.domain.enums import ConnectionStatus


@dataclass
class MetricsSnapshot:
    """Point-in-time copy of the tracker counters, tagged with node connectivity."""

    events_received: int = 0
    events_processed: int = 0
    events_failed: int = 0
    average_processing_time: float = 0.0
    min_processing_time: float = 0.0
    max_processing_time: float = 0.0
    connection_status: ConnectionStatus = ConnectionStatus.DISCONNECTED
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))
    last_connection_check: datetime = field(default_factory=lambda: datetime.now(UTC))

    def __post_init__(self) -> None:
        self.connection_status = ConnectionStatus(self.connection_status)
        if self.timestamp.tzinfo is None:
            self.timestamp = self.timestamp.replace(tzinfo=UTC)
        if self.last_connection_check.tzinfo is None:
            self.last_connection_check = self.last_connection_check.replace(tzinfo=UTC)
