"""Batcher-to-router wiring for Chainhook block events."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from chainhook_pipeline.application.error_handling import ErrorLog
from chainhook_pipeline.application.services.event_batcher import EventBatcher
from chainhook_pipeline.application.services.event_tracker import EventTracker
from chainhook_pipeline.application.services.operation_router import OperationRouter
from chainhook_pipeline.domain.entities import QueuedEvent
from chainhook_pipeline.domain.exceptions import ValidationError
from chainhook_pipeline.infrastructure.logging import get_logger

if TYPE_CHECKING:
    from chainhook_pipeline.application.services.monitoring_orchestrator import (
        MonitoringOrchestrator,
    )
    from chainhook_pipeline.config import PipelineConfig


class EventPipeline:
    """Feeds batched Chainhook events through the operation router.

    Every operation of every transaction in an event is routed with a context
    carrying ``block_height`` and ``transaction_hash``. When a tracker is
    supplied, each event is logged and counted around its routing.
    """

    def __init__(
        self,
        batcher: EventBatcher,
        router: OperationRouter,
        tracker: EventTracker | None = None,
        *,
        error_log: ErrorLog | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self._batcher = batcher
        self._router = router
        self._tracker = tracker
        self._error_log = error_log if error_log is not None else router.error_log
        self._logger = logger or get_logger(__name__)

        self._batcher.register_batch_callback(self.process_batch)

    @classmethod
    def from_config(
        cls,
        config: PipelineConfig,
        monitoring: MonitoringOrchestrator | None = None,
        *,
        logger: logging.Logger | None = None,
    ) -> EventPipeline:
        """Build a pipeline whose components share one error log."""
        error_log = ErrorLog(max_entries=config.error_log.max_entries, logger=logger)
        batcher = EventBatcher(config.batching, name="chainhook", error_log=error_log, logger=logger)
        router = OperationRouter(
            name="chainhook",
            max_timing_samples=config.routing.max_timing_samples,
            error_log=error_log,
            logger=logger,
        )

        tracker = None
        if monitoring is not None:
            tracker = EventTracker(
                monitoring.event_logger,
                monitoring.metrics_tracker,
                monitoring.alert_service,
                slow_event_threshold_ms=config.tracking.slow_event_threshold_ms,
                logger=logger,
            )

        return cls(batcher, router, tracker, error_log=error_log, logger=logger)

    @property
    def batcher(self) -> EventBatcher:
        return self._batcher

    @property
    def router(self) -> OperationRouter:
        return self._router

    @property
    def error_log(self) -> ErrorLog:
        return self._error_log

    def submit(self, event: dict[str, Any]) -> bool:
        return self._batcher.add_event(event)

    def submit_many(self, events: list[dict[str, Any]]) -> bool:
        return self._batcher.add_events(events)

    async def process_batch(self, batch: list[QueuedEvent]) -> None:
        """Route every event of a batch; a bad event does not stop the rest."""
        for queued in batch:
            try:
                await self.process_event(queued.payload)
            except ValidationError as e:
                self._error_log.handle_parse_error(e.message, e)
            except Exception as e:
                self._error_log.handle_unknown_error(
                    "Unexpected error processing chainhook event", e
                )

    async def process_event(self, event: dict[str, Any]) -> int:
        """Route the operations of one event.

        Returns:
            Number of routed operations

        Raises:
            ValidationError: If the event is not a Chainhook block event
        """
        if self._tracker is None:
            return await self._route_event(event)

        async with self._tracker.track(event, handler=f"router:{self._router.name}"):
            return await self._route_event(event)

    async def flush(self) -> None:
        await self._batcher.flush()

    def close(self) -> None:
        self._batcher.destroy()
        self._router.destroy()

    async def _route_event(self, event: Any) -> int:
        if not isinstance(event, dict):
            raise ValidationError("Chainhook event must be an object", field="event")

        transactions = event.get("transactions") or []
        if not isinstance(transactions, list):
            raise ValidationError("Chainhook event transactions must be a list", field="transactions")

        block_identifier = event.get("block_identifier")
        block_height = block_identifier.get("index") if isinstance(block_identifier, dict) else None

        routed = 0
        for transaction in transactions:
            if not isinstance(transaction, dict):
                raise ValidationError("Chainhook transaction must be an object", field="transactions")

            context = {
                "block_height": block_height,
                "transaction_hash": transaction.get("transaction_hash"),
            }
            operations = transaction.get("operations") or []
            routed += await self._router.route_operation_batch(operations, context)

        self._logger.debug(
            "Chainhook event routed",
            extra={"block_height": block_height, "transactions": len(transactions), "routed": routed},
        )
        return routed
