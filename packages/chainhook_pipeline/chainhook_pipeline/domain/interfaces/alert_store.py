"""Abstract interface for alert persistence."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from datetime import datetime

    from chainhook_pipeline.domain.entities import Alert
    from chainhook_pipeline.domain.enums import AlertSeverity


class AlertStore(ABC):
    """Contract for storing and querying alerts."""

    @abstractmethod
    async def insert(self, alert: Alert) -> None:
        """Persist a new alert."""
        ...

    @abstractmethod
    async def get(self, alert_id: str) -> Alert | None:
        """Return the alert with the given ID, if any."""
        ...

    @abstractmethod
    async def update(self, alert: Alert) -> None:
        """Replace a stored alert.

        Raises:
            NotFoundError: If the alert does not exist
        """
        ...

    @abstractmethod
    async def find(
        self,
        resolved: bool | None = None,
        severity: AlertSeverity | None = None,
        limit: int = 100,
    ) -> list[Alert]:
        """Return matching alerts, newest first."""
        ...

    @abstractmethod
    async def count(self, resolved: bool | None = None) -> int:
        """Count alerts, optionally by resolution state."""
        ...

    @abstractmethod
    async def delete_resolved_before(self, cutoff: datetime) -> int:
        """Delete resolved alerts created before ``cutoff``; return how many were removed."""
        ...
