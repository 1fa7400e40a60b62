"""Unit tests for EventPipeline."""

from __future__ import annotations

from typing import Any

import pytest
from chainhook_pipeline.application.services import (
    EventBatcher,
    EventPipeline,
    MonitoringOrchestrator,
    OperationRouter,
)
from chainhook_pipeline.config import BatchConfig, PipelineConfig
from chainhook_pipeline.domain.entities import QueuedEvent
from chainhook_pipeline.domain.enums import ErrorType, EventStatus
from chainhook_pipeline.domain.exceptions import ValidationError


def block_event(height: int, *transactions: dict[str, Any]) -> dict[str, Any]:
    return {
        "block_identifier": {"index": height, "hash": f"0xblock{height}"},
        "transactions": list(transactions),
    }


def transaction(tx_hash: str, *operation_types: str) -> dict[str, Any]:
    return {
        "transaction_hash": tx_hash,
        "operations": [{"type": op_type} for op_type in operation_types],
    }


class OperationRecorder:
    """Route handler that remembers what it was given."""

    def __init__(self) -> None:
        self.calls: list[tuple[dict[str, Any], dict[str, Any] | None]] = []

    async def __call__(self, operation: dict[str, Any], context: dict[str, Any] | None) -> bool:
        self.calls.append((operation, context))
        return True


class TestEventPipeline:
    """Test cases for EventPipeline."""

    @pytest.fixture
    def recorder(self) -> OperationRecorder:
        return OperationRecorder()

    @pytest.fixture
    def pipeline(self, recorder: OperationRecorder) -> EventPipeline:
        batcher = EventBatcher(BatchConfig(batch_size=2, batch_timeout_ms=1000))
        router = OperationRouter(name="test")
        router.register_route("badge_mint", recorder, {"type": "badge_mint"})
        return EventPipeline(batcher, router)

    def test_shares_router_error_log(self, pipeline: EventPipeline) -> None:
        """Test that the pipeline defaults to the router's error log."""
        assert pipeline.error_log is pipeline.router.error_log

    @pytest.mark.asyncio
    async def test_process_event_routes_with_context(
        self, pipeline: EventPipeline, recorder: OperationRecorder
    ) -> None:
        """Test that each operation is routed with its block and transaction."""
        event = block_event(
            1000,
            transaction("0xaaa", "badge_mint", "stx_transfer"),
            transaction("0xbbb", "badge_mint"),
        )

        routed = await pipeline.process_event(event)

        assert routed == 2
        assert [context for _, context in recorder.calls] == [
            {"block_height": 1000, "transaction_hash": "0xaaa"},
            {"block_height": 1000, "transaction_hash": "0xbbb"},
        ]
        assert pipeline.router.get_metrics().total_operations == 3

    @pytest.mark.asyncio
    async def test_event_without_transactions(self, pipeline: EventPipeline) -> None:
        assert await pipeline.process_event({"block_identifier": {"index": 1}}) == 0

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "event",
        [
            "not an event",
            {"transactions": "0xabc"},
            {"transactions": ["0xabc"]},
        ],
    )
    async def test_invalid_event_raises(self, pipeline: EventPipeline, event: Any) -> None:
        """Test events that are not Chainhook block events."""
        with pytest.raises(ValidationError):
            await pipeline.process_event(event)

    @pytest.mark.asyncio
    async def test_submit_and_flush(
        self, pipeline: EventPipeline, recorder: OperationRecorder
    ) -> None:
        """Test that submitted events reach the router through the batcher."""
        assert pipeline.submit(block_event(1, transaction("0x1", "badge_mint"))) is True
        assert pipeline.submit_many(
            [
                block_event(2, transaction("0x2", "badge_mint")),
                block_event(3, transaction("0x3", "badge_mint")),
            ]
        )

        await pipeline.flush()

        assert [context["block_height"] for _, context in recorder.calls] == [1, 2, 3]
        assert pipeline.batcher.get_metrics().total_batches == 2

    @pytest.mark.asyncio
    async def test_bad_event_does_not_stop_batch(
        self, pipeline: EventPipeline, recorder: OperationRecorder
    ) -> None:
        """Test that an invalid event is logged and the next one still runs."""
        pipeline.submit_many(
            [
                {"transactions": "broken"},
                block_event(7, transaction("0x7", "badge_mint")),
            ]
        )

        await pipeline.flush()

        assert len(recorder.calls) == 1
        errors = pipeline.error_log.get_errors_by_type(ErrorType.PARSE_ERROR)
        assert len(errors) == 1
        assert "transactions must be a list" in errors[0].message

    def test_close_stops_accepting_events(self, pipeline: EventPipeline) -> None:
        """Test that a closed pipeline refuses events and drops its routes."""
        pipeline.close()

        assert pipeline.submit(block_event(1)) is False
        assert pipeline.router.get_route_count() == 0

    @pytest.mark.asyncio
    async def test_from_config_with_monitoring(self) -> None:
        """Test a pipeline wired to the monitoring services."""
        monitoring = MonitoringOrchestrator()
        pipeline = EventPipeline.from_config(PipelineConfig(), monitoring)
        recorder = OperationRecorder()
        pipeline.router.register_route("badge_mint", recorder)

        assert pipeline.batcher.name == "chainhook"
        assert pipeline.router.name == "chainhook"
        assert pipeline.batcher.error_log is pipeline.error_log
        assert pipeline.router.error_log is pipeline.error_log

        await pipeline.process_event(block_event(5, transaction("0x5", "badge_mint")))

        metrics = monitoring.metrics_tracker.get_current_metrics()
        assert metrics.events_received == 1
        assert metrics.events_processed == 1
        completed = await monitoring.event_logger.get_events_by_status(EventStatus.COMPLETED)
        assert len(completed) == 1
        assert completed[0].handler == "router:chainhook"
        assert completed[0].block_height == 5
        assert completed[0].transaction_hash == "0x5"
        await monitoring.health_monitor.close()

    @pytest.mark.asyncio
    async def test_tracked_failure_is_recorded(self) -> None:
        """Test that a tracked invalid event fails its log entry."""
        monitoring = MonitoringOrchestrator()
        pipeline = EventPipeline.from_config(PipelineConfig(), monitoring)

        pipeline.submit({"transactions": "broken"})
        await pipeline.flush()

        failed = await monitoring.event_logger.get_failed_events()
        assert len(failed) == 1
        assert monitoring.metrics_tracker.get_current_metrics().events_failed == 1
        assert pipeline.error_log.get_error_count(ErrorType.PARSE_ERROR) == 1
        await monitoring.health_monitor.close()

    @pytest.mark.asyncio
    async def test_tracked_non_object_event_is_parse_error(self) -> None:
        """Test that a tracked event that is not an object is a parse error."""
        monitoring = MonitoringOrchestrator()
        pipeline = EventPipeline.from_config(PipelineConfig(), monitoring)

        event = QueuedEvent(payload=["not", "a", "dict"])  # type: ignore[arg-type]

        await pipeline.process_batch([event])

        assert pipeline.error_log.get_error_count(ErrorType.PARSE_ERROR) == 1
        assert pipeline.error_log.get_error_count(ErrorType.UNKNOWN_ERROR) == 0
        assert monitoring.metrics_tracker.get_current_metrics().events_failed == 1
        failed = await monitoring.event_logger.get_failed_events()
        assert len(failed) == 1
        assert failed[0].error_message == "Chainhook event must be an object"
        await monitoring.health_monitor.close()
