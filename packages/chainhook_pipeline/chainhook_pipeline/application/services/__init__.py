"""Application services for the Chainhook pipeline."""

from __future__ import annotations

from .alert_service import AlertService
from .event_batcher import BatchCallback, EventBatcher
from .event_logger import EventLogger
from .event_pipeline import EventPipeline
from .event_tracker import EventTracker
from .health_monitor import HealthMonitor
from .metrics_tracker import MetricsTracker
from .monitoring_orchestrator import MonitoringOrchestrator
from .operation_router import OperationHandler, OperationRouter, Route

__all__ = [
    "AlertService",
    "BatchCallback",
    "EventBatcher",
    "EventLogger",
    "EventPipeline",
    "EventTracker",
    "HealthMonitor",
    "MetricsTracker",
    "MonitoringOrchestrator",
    "OperationHandler",
    "OperationRouter",
    "Route",
]
