"""Domain entities for the Chainhook pipeline."""

from __future__ import annotations

from .alert import Alert
from .event_log import EventLog
from .health_status import HealthStatus
from .metrics_snapshot import MetricsSnapshot
from .queued_event import QueuedEvent

__all__ = ["Alert", "EventLog", "HealthStatus", "MetricsSnapshot", "QueuedEvent"]
