"""Domain interfaces for the Chainhook pipeline.

Abstract storage contracts implemented by the infrastructure layer.
"""

from __future__ import annotations

from .alert_store import AlertStore
from .event_log_store import EventLogStore
from .health_status_store import HealthStatusStore
from .metrics_store import MetricsStore

__all__ = ["AlertStore", "EventLogStore", "HealthStatusStore", "MetricsStore"]
