"""Abstract interface for event log persistence."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from datetime import datetime

    from chainhook_pipeline.domain.entities import EventLog
    from chainhook_pipeline.domain.enums import EventStatus


class EventLogStore(ABC):
    """Contract for storing and querying Chainhook event logs."""

    @abstractmethod
    async def insert(self, log: EventLog) -> None:
        """Persist a new event log.

        Raises:
            StorageError: If the event ID already exists or the write fails
        """
        ...

    @abstractmethod
    async def get(self, event_id: str) -> EventLog | None:
        """Return the event log with the given ID, if any."""
        ...

    @abstractmethod
    async def update(self, log: EventLog) -> None:
        """Replace a stored event log.

        Raises:
            NotFoundError: If the event log does not exist
        """
        ...

    @abstractmethod
    async def find(
        self,
        status: EventStatus | None = None,
        event_type: str | None = None,
        limit: int = 100,
    ) -> list[EventLog]:
        """Return matching event logs, most recently received first."""
        ...

    @abstractmethod
    async def count(self, status: EventStatus | None = None) -> int:
        """Count event logs, optionally restricted to one status."""
        ...

    @abstractmethod
    async def delete_received_before(self, cutoff: datetime) -> int:
        """Delete event logs received before ``cutoff``; return how many were removed."""
        ...
