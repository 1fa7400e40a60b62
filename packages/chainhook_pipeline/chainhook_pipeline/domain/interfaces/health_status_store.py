"""Abstract interface for node health status persistence."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from chainhook_pipeline.domain.entities import HealthStatus


class HealthStatusStore(ABC):
    """Contract for storing the latest health status per node URL."""

    @abstractmethod
    async def get(self, node_url: str) -> HealthStatus | None:
        """Return the status recorded for ``node_url``, if any."""
        ...

    @abstractmethod
    async def upsert(self, status: HealthStatus) -> None:
        """Insert or replace the status for ``status.node_url``."""
        ...

    @abstractmethod
    async def list_all(self) -> list[HealthStatus]:
        """Return every recorded node status."""
        ...
