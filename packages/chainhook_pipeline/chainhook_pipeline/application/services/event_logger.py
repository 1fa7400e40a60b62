"""Persistent lifecycle log of Chainhook events."""

from __future__ import annotations

import logging
from datetime import UTC, datetime, timedelta
from typing import Any
from uuid import uuid4

from chainhook_pipeline.domain.entities import EventLog
from chainhook_pipeline.domain.enums import EventStatus
from chainhook_pipeline.domain.exceptions import NotFoundError, StorageError
from chainhook_pipeline.domain.interfaces import EventLogStore
from chainhook_pipeline.infrastructure.logging import get_logger
from chainhook_pipeline.infrastructure.monitoring import PipelineMetricsCollector
from chainhook_pipeline.infrastructure.persistence import InMemoryEventLogStore


def generate_event_id() -> str:
    return f"event_{uuid4().hex}"


class EventLogger:
    """Records received events and their status transitions.

    Store failures are logged and re-raised as ``StorageError``.
    """

    def __init__(
        self,
        store: EventLogStore | None = None,
        *,
        logger: logging.Logger | None = None,
    ) -> None:
        self._store = store or InMemoryEventLogStore()
        self._logger = logger or get_logger(__name__)
        self._collector = PipelineMetricsCollector(component="event_logger")

    async def log_event(
        self,
        event_type: str,
        payload: dict[str, Any],
        *,
        event_id: str | None = None,
        status: EventStatus = EventStatus.RECEIVED,
        handler: str | None = None,
        transaction_hash: str | None = None,
        block_height: int | None = None,
    ) -> EventLog:
        """Persist a new event log entry.

        Args:
            event_type: Event category
            payload: Raw event body
            event_id: Identifier to use; generated when omitted
            status: Initial lifecycle status
            handler: Handler expected to process the event
            transaction_hash: Hash of the first transaction in the event
            block_height: Height of the block carrying the event

        Returns:
            The stored event log

        Raises:
            StorageError: If the entry cannot be stored
        """
        log = EventLog(
            event_id=event_id or generate_event_id(),
            event_type=event_type,
            status=status,
            payload=payload,
            handler=handler,
            transaction_hash=transaction_hash,
            block_height=block_height,
        )

        try:
            await self._store.insert(log)
        except StorageError:
            self._logger.error(
                "Failed to log event",
                extra={"event_id": log.event_id, "event_type": event_type},
            )
            raise
        except Exception as e:
            self._logger.error(
                "Failed to log event",
                extra={"event_id": log.event_id, "event_type": event_type},
                exc_info=e,
            )
            raise StorageError(
                operation="insert", collection="event_logs", record_id=log.event_id, reason=str(e)
            ) from e

        self._collector.record_event_status(log.status.value)
        self._logger.debug(
            "Event logged",
            extra={"event_id": log.event_id, "event_type": event_type, "status": log.status.value},
        )
        return log

    async def update_event_status(
        self,
        event_id: str,
        status: EventStatus,
        processing_time: float | None = None,
        error_message: str | None = None,
    ) -> EventLog | None:
        """Move an event to a new status.

        Returns:
            The updated event log, or None if the event is unknown
        """
        log = await self.get_event_log(event_id)
        if log is None:
            self._logger.warning("Event log not found for update", extra={"event_id": event_id})
            return None

        log.transition(status, processing_time=processing_time, error_message=error_message)
        try:
            await self._store.update(log)
        except NotFoundError:
            # Purged between read and write.
            return None
        except Exception as e:
            self._logger.error(
                "Failed to update event status",
                extra={"event_id": event_id, "status": str(status)},
                exc_info=e,
            )
            raise StorageError(
                operation="update", collection="event_logs", record_id=event_id, reason=str(e)
            ) from e

        self._collector.record_event_status(log.status.value, processing_time)
        self._logger.debug(
            "Event status updated",
            extra={
                "event_id": event_id,
                "status": log.status.value,
                "processing_time": processing_time,
            },
        )
        return log

    async def get_event_log(self, event_id: str) -> EventLog | None:
        try:
            return await self._store.get(event_id)
        except Exception as e:
            self._logger.error("Failed to read event log", extra={"event_id": event_id}, exc_info=e)
            raise StorageError(
                operation="query", collection="event_logs", record_id=event_id, reason=str(e)
            ) from e

    async def get_events_by_status(self, status: EventStatus, limit: int = 100) -> list[EventLog]:
        return await self._find(status=EventStatus(status), limit=limit)

    async def get_events_by_type(self, event_type: str, limit: int = 100) -> list[EventLog]:
        return await self._find(event_type=event_type, limit=limit)

    async def get_failed_events(self, limit: int = 50) -> list[EventLog]:
        return await self._find(status=EventStatus.FAILED, limit=limit)

    async def get_event_count(self, status: EventStatus | None = None) -> int:
        try:
            return await self._store.count(status)
        except Exception as e:
            self._logger.error("Failed to count event logs", exc_info=e)
            raise StorageError(operation="count", collection="event_logs", reason=str(e)) from e

    async def clear_old_logs(self, days: int) -> int:
        """Delete event logs received more than ``days`` days ago.

        Returns:
            Number of deleted entries
        """
        cutoff = datetime.now(UTC) - timedelta(days=days)
        try:
            deleted = await self._store.delete_received_before(cutoff)
        except Exception as e:
            self._logger.error("Failed to clear old event logs", extra={"days": days}, exc_info=e)
            raise StorageError(operation="delete", collection="event_logs", reason=str(e)) from e

        self._logger.info("Old event logs cleared", extra={"days": days, "deleted": deleted})
        return deleted

    async def _find(
        self,
        status: EventStatus | None = None,
        event_type: str | None = None,
        limit: int = 100,
    ) -> list[EventLog]:
        try:
            return await self._store.find(status=status, event_type=event_type, limit=limit)
        except Exception as e:
            self._logger.error(
                "Failed to query event logs",
                extra={"status": str(status) if status else None, "event_type": event_type},
                exc_info=e,
            )
            raise StorageError(operation="query", collection="event_logs", reason=str(e)) from e
