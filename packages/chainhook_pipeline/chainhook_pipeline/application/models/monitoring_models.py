"""Pydantic models exposed by the monitoring services and admin API."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from chainhook_pipeline.domain.enums import (
    AlertSeverity,
    AlertType,
    ConnectionStatus,
    EventStatus,
)


class CurrentMetrics(BaseModel):
    """Live event-processing counters held by the metrics tracker."""

    events_received: int = Field(default=0, ge=0)
    events_processed: int = Field(default=0, ge=0)
    events_failed: int = Field(default=0, ge=0)
    average_processing_time: float = Field(
        default=0.0, ge=0, description="Rolling average in milliseconds"
    )
    min_processing_time: float = Field(default=0.0, ge=0)
    max_processing_time: float = Field(default=0.0, ge=0)


class HealthCheckResult(BaseModel):
    """Outcome of one health check against a node."""

    is_connected: bool
    response_time: float = Field(..., ge=0, description="Check duration in milliseconds")
    status_code: int | None = Field(default=None, description="HTTP status, if any response")
    error: str | None = Field(default=None, description="Failure description")


class NodeHealthInfo(BaseModel):
    """Recorded connectivity of a node."""

    model_config = ConfigDict(from_attributes=True)

    node_url: str
    is_connected: bool
    last_check: datetime
    response_time: float
    failed_attempts: int
    last_error: str | None = None
    connected_since: datetime | None = None


class AlertInfo(BaseModel):
    """Alert as returned by the admin API."""

    model_config = ConfigDict(from_attributes=True)

    alert_id: str
    type: AlertType
    severity: AlertSeverity
    message: str
    details: dict[str, Any] = Field(default_factory=dict)
    resolved: bool
    created_at: datetime
    resolved_at: datetime | None = None


class EventLogInfo(BaseModel):
    """Event log as returned by the admin API."""

    model_config = ConfigDict(from_attributes=True)

    event_id: str
    event_type: str
    status: EventStatus
    payload: dict[str, Any]
    received_at: datetime
    processed_at: datetime | None = None
    processing_time: float | None = None
    error_message: str | None = None
    handler: str | None = None
    transaction_hash: str | None = None
    block_height: int | None = None


class MetricsSnapshotInfo(BaseModel):
    """Persisted metrics snapshot as returned by the admin API."""

    model_config = ConfigDict(from_attributes=True)

    timestamp: datetime
    events_received: int
    events_processed: int
    events_failed: int
    average_processing_time: float
    min_processing_time: float
    max_processing_time: float
    connection_status: ConnectionStatus
    last_connection_check: datetime


class MonitoringStatus(BaseModel):
    """Aggregated monitoring state for external reporting."""

    is_running: bool
    node_url: str
    health_check_interval: int = Field(..., description="Milliseconds")
    metrics_interval: int = Field(..., description="Milliseconds")
    node_health: NodeHealthInfo | None = None
    current_metrics: CurrentMetrics
    unresolved_alerts: int = Field(..., ge=0)
