"""Domain enums for the Chainhook pipeline."""

from __future__ import annotations

from enum import Enum


class EventStatus(str, Enum):
    """Lifecycle status of a logged Chainhook event."""

    RECEIVED = "received"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (EventStatus.COMPLETED, EventStatus.FAILED)


class AlertSeverity(str, Enum):
    """Alert severity levels."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class AlertType(str, Enum):
    """Alert categories."""

    PERFORMANCE = "performance"
    CONNECTION = "connection"
    FAILED_EVENT = "failed_event"
    ANOMALY = "anomaly"


class ConnectionStatus(str, Enum):
    """Connectivity of the Chainhook node at snapshot time."""

    CONNECTED = "connected"
    DISCONNECTED = "disconnected"


class ErrorType(str, Enum):
    """Categories recorded in the pipeline error log."""

    PARSE_ERROR = "PARSE_ERROR"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    HANDLER_ERROR = "HANDLER_ERROR"
    NOTIFICATION_ERROR = "NOTIFICATION_ERROR"
    DELIVERY_ERROR = "DELIVERY_ERROR"
    WEBSOCKET_ERROR = "WEBSOCKET_ERROR"
    UNKNOWN_ERROR = "UNKNOWN_ERROR"
