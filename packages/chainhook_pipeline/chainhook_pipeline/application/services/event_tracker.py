"""Per-event monitoring around Chainhook event processing."""

from __future__ import annotations

import contextlib
import logging
import time
from collections.abc import AsyncIterator, Mapping
from typing import Any

from chainhook_pipeline.application.services.alert_service import AlertService
from chainhook_pipeline.application.services.event_logger import EventLogger
from chainhook_pipeline.application.services.metrics_tracker import MetricsTracker
from chainhook_pipeline.domain.entities import EventLog
from chainhook_pipeline.domain.enums import AlertSeverity, AlertType, EventStatus
from chainhook_pipeline.infrastructure.logging import get_logger

DEFAULT_SLOW_EVENT_THRESHOLD_MS = 5000


def extract_event_context(event: Any) -> tuple[str | None, int | None]:
    """Pull the first transaction hash and the block height out of an event."""
    if not isinstance(event, Mapping):
        return None, None

    transaction_hash = None
    transactions = event.get("transactions")
    if isinstance(transactions, list) and transactions and isinstance(transactions[0], dict):
        transaction_hash = transactions[0].get("transaction_hash")

    block_height = None
    block_identifier = event.get("block_identifier")
    if isinstance(block_identifier, dict):
        block_height = block_identifier.get("index")

    return transaction_hash, block_height


class EventTracker:
    """Logs, counts and alerts on each processed event.

    Usage::

        async with tracker.track(event, handler="badge_mint"):
            await process(event)

    The event is logged as received and counted on entry. On a clean exit it
    is marked completed, with a performance alert when it took longer than the
    slow-event threshold. On an exception it is marked failed, a failed-event
    alert is raised, and the exception propagates.

    Monitoring failures are logged and never interrupt event processing.
    """

    def __init__(
        self,
        event_logger: EventLogger,
        metrics_tracker: MetricsTracker,
        alert_service: AlertService | None = None,
        *,
        slow_event_threshold_ms: float = DEFAULT_SLOW_EVENT_THRESHOLD_MS,
        logger: logging.Logger | None = None,
    ) -> None:
        self._event_logger = event_logger
        self._metrics_tracker = metrics_tracker
        self._alert_service = alert_service
        self._slow_event_threshold_ms = slow_event_threshold_ms
        self._logger = logger or get_logger(__name__)

    @contextlib.asynccontextmanager
    async def track(
        self,
        event: Any,
        *,
        event_type: str | None = None,
        handler: str | None = None,
    ) -> AsyncIterator[EventLog | None]:
        start = time.perf_counter()
        if isinstance(event, Mapping):
            payload = dict(event)
            event_type = event_type or payload.get("type") or "unknown"
        else:
            payload = {"raw": event}
            event_type = event_type or "unknown"
        transaction_hash, block_height = extract_event_context(event)

        log: EventLog | None = None
        try:
            log = await self._event_logger.log_event(
                event_type,
                payload,
                handler=handler,
                transaction_hash=transaction_hash,
                block_height=block_height,
            )
            log = await self._event_logger.update_event_status(log.event_id, EventStatus.PROCESSING)
        except Exception as e:
            self._logger.error(
                "Error logging chainhook event", extra={"event_type": event_type}, exc_info=e
            )
        self._metrics_tracker.track_event_received()

        try:
            yield log
        except Exception as e:
            processing_time = (time.perf_counter() - start) * 1000
            await self._record_failure(log, event_type, processing_time, e)
            raise

        processing_time = (time.perf_counter() - start) * 1000
        await self._record_success(log, event_type, processing_time)

    async def _record_success(
        self, log: EventLog | None, event_type: str, processing_time: float
    ) -> None:
        self._metrics_tracker.track_event_processed(processing_time)
        try:
            if log is not None:
                await self._event_logger.update_event_status(
                    log.event_id, EventStatus.COMPLETED, processing_time=processing_time
                )

            if self._alert_service and processing_time > self._slow_event_threshold_ms:
                await self._alert_service.create_alert(
                    AlertType.PERFORMANCE,
                    AlertSeverity.MEDIUM,
                    f"Slow event processing detected: {processing_time:.0f}ms",
                    {
                        "event_id": log.event_id if log else None,
                        "processing_time": processing_time,
                        "event_type": event_type,
                    },
                )
        except Exception as e:
            self._logger.error(
                "Error in chainhook event monitoring", extra={"event_type": event_type}, exc_info=e
            )

    async def _record_failure(
        self,
        log: EventLog | None,
        event_type: str,
        processing_time: float,
        error: Exception,
    ) -> None:
        self._metrics_tracker.track_event_failed()
        try:
            if log is not None:
                await self._event_logger.update_event_status(
                    log.event_id,
                    EventStatus.FAILED,
                    processing_time=processing_time,
                    error_message=str(error) or error.__class__.__name__,
                )

            if self._alert_service:
                await self._alert_service.create_alert(
                    AlertType.FAILED_EVENT,
                    AlertSeverity.HIGH,
                    f"Event processing failed: {error}",
                    {
                        "event_id": log.event_id if log else None,
                        "error": str(error),
                        "event_type": event_type,
                    },
                )
        except Exception as e:
            self._logger.error(
                "Error in chainhook event monitoring", extra={"event_type": event_type}, exc_info=e
            )
