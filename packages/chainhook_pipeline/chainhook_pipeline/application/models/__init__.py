"""Application layer models for the Chainhook pipeline."""

from __future__ import annotations

from .monitoring_models import (
    AlertInfo,
    CurrentMetrics,
    EventLogInfo,
    HealthCheckResult,
    MetricsSnapshotInfo,
    MonitoringStatus,
    NodeHealthInfo,
)
from .pipeline_models import BatchMetrics, OperationFilter, RouteMetrics

__all__ = [
    "AlertInfo",
    "BatchMetrics",
    "CurrentMetrics",
    "EventLogInfo",
    "HealthCheckResult",
    "MetricsSnapshotInfo",
    "MonitoringStatus",
    "NodeHealthInfo",
    "OperationFilter",
    "RouteMetrics",
]
