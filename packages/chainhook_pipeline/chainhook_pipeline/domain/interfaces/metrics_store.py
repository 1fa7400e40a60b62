"""Abstract interface for metrics snapshot persistence."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from datetime import datetime

    from chainhook_pipeline.domain.entities import MetricsSnapshot


class MetricsStore(ABC):
    """Contract for storing periodic metrics snapshots."""

    @abstractmethod
    async def insert(self, snapshot: MetricsSnapshot) -> None:
        """Persist a snapshot."""
        ...

    @abstractmethod
    async def list_recent(self, limit: int = 100) -> list[MetricsSnapshot]:
        """Return the latest snapshots, newest first."""
        ...

    @abstractmethod
    async def list_since(self, since: datetime) -> list[MetricsSnapshot]:
        """Return snapshots taken at or after ``since``, oldest first."""
        ...
