"""Alert entity raised by anomaly and connectivity checks."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any
from uuid import uuid4

from chainhook_pipeline.domain.enums import AlertSeverity, AlertType


@dataclass
class Alert:
    """An operator-facing notification.

    Alerts are only mutated to mark them resolved.
    """

    type: AlertType
    severity: AlertSeverity
    message: str
    details: dict[str, Any] = field(default_factory=dict)
    alert_id: str = field(default_factory=lambda: uuid4().hex)
    resolved: bool = False
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    resolved_at: datetime | None = None

    def __post_init__(self) -> None:
        if not self.message:
            raise ValueError("Alert message cannot be empty")

        self.type = AlertType(self.type)
        self.severity = AlertSeverity(self.severity)
        if self.created_at.tzinfo is None:
            self.created_at = self.created_at.replace(tzinfo=UTC)

    def resolve(self) -> None:
        if not self.resolved:
            self.resolved = True
            self.resolved_at = datetime.now(UTC)
