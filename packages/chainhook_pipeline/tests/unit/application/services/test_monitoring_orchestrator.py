"""Unit tests for MonitoringOrchestrator."""

from __future__ import annotations

import asyncio
from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock, patch

import httpx
import pytest
from chainhook_pipeline.application.services import (
    AlertService,
    EventLogger,
    HealthMonitor,
    MetricsTracker,
    MonitoringOrchestrator,
)
from chainhook_pipeline.config import AlertThresholds, MonitoringConfig
from chainhook_pipeline.domain.entities import EventLog
from chainhook_pipeline.domain.enums import AlertType, ConnectionStatus, EventStatus
from chainhook_pipeline.infrastructure.persistence import InMemoryEventLogStore

NODE_URL = "http://localhost:20456"


class NodeStub:
    """Mock transport handler whose health can be toggled."""

    def __init__(self, healthy: bool = True) -> None:
        self.healthy = healthy
        self.calls = 0

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.calls += 1
        return httpx.Response(200 if self.healthy else 503)


def fast_config(**overrides: object) -> MonitoringConfig:
    """Monitoring config with intervals short enough for tests."""
    values: dict[str, object] = {
        "node_url": NODE_URL,
        "health_check_interval": 10,
        "metrics_interval": 10,
    }
    values.update(overrides)
    return MonitoringConfig.model_construct(**values)


class TestMonitoringOrchestrator:
    """Test cases for MonitoringOrchestrator."""

    @pytest.fixture
    def node(self) -> NodeStub:
        return NodeStub()

    @pytest.fixture
    def health_monitor(self, node: NodeStub) -> HealthMonitor:
        client = httpx.AsyncClient(transport=httpx.MockTransport(node))
        return HealthMonitor(client=client)

    @pytest.fixture
    def orchestrator(self, health_monitor: HealthMonitor) -> MonitoringOrchestrator:
        return MonitoringOrchestrator(
            MonitoringConfig(node_url=NODE_URL), health_monitor=health_monitor
        )

    def test_default_sub_services(self) -> None:
        """Test that missing sub-services are created from the config."""
        config = MonitoringConfig(
            health_check_path="/ping",
            alert_thresholds=AlertThresholds(performance_threshold=1234),
        )
        orchestrator = MonitoringOrchestrator(config)

        assert orchestrator.health_monitor.health_url(NODE_URL) == f"{NODE_URL}/ping"
        assert orchestrator.alert_service.thresholds.performance_threshold == 1234
        assert isinstance(orchestrator.event_logger, EventLogger)
        assert isinstance(orchestrator.metrics_tracker, MetricsTracker)
        assert orchestrator.is_running is False

    @pytest.mark.asyncio
    async def test_initialize_and_shutdown(
        self, orchestrator: MonitoringOrchestrator, node: NodeStub
    ) -> None:
        """Test that initialize checks the node once and starts the loops."""
        await orchestrator.initialize()

        assert orchestrator.is_running is True
        assert node.calls == 1
        assert set(orchestrator._tasks) == {"health_check", "metrics", "anomaly_detection"}
        tasks = list(orchestrator._tasks.values())

        await orchestrator.shutdown()

        assert orchestrator.is_running is False
        assert orchestrator._tasks == {}
        assert all(task.done() for task in tasks)

    @pytest.mark.asyncio
    async def test_initialize_twice_is_noop(
        self, orchestrator: MonitoringOrchestrator, node: NodeStub
    ) -> None:
        """Test that a running orchestrator ignores a second initialize."""
        await orchestrator.initialize()
        tasks = dict(orchestrator._tasks)

        await orchestrator.initialize()

        assert node.calls == 1
        assert orchestrator._tasks == tasks
        await orchestrator.shutdown()

    @pytest.mark.asyncio
    async def test_initialize_failure_propagates(self) -> None:
        """Test that a failing first check aborts startup."""
        health_monitor = AsyncMock(spec=HealthMonitor)
        health_monitor.check_health.side_effect = RuntimeError("store unavailable")
        orchestrator = MonitoringOrchestrator(health_monitor=health_monitor)

        with pytest.raises(RuntimeError, match="store unavailable"):
            await orchestrator.initialize()

        assert orchestrator.is_running is False
        assert orchestrator._tasks == {}

    @pytest.mark.asyncio
    async def test_connection_alert_after_repeated_failures(
        self, health_monitor: HealthMonitor, node: NodeStub
    ) -> None:
        """Test that reaching the failure threshold raises a critical alert."""
        node.healthy = False
        orchestrator = MonitoringOrchestrator(
            MonitoringConfig(
                node_url=NODE_URL,
                alert_thresholds=AlertThresholds(max_consecutive_failures=2),
            ),
            health_monitor=health_monitor,
        )

        await orchestrator.run_health_check()
        assert await orchestrator.alert_service.get_alert_count() == 0

        await orchestrator.run_health_check()

        alerts = await orchestrator.alert_service.get_critical_alerts()
        assert len(alerts) == 1
        assert alerts[0].type == AlertType.CONNECTION
        assert alerts[0].details["node_url"] == NODE_URL

    @pytest.mark.asyncio
    async def test_collect_metrics_tags_connectivity(
        self, orchestrator: MonitoringOrchestrator, node: NodeStub
    ) -> None:
        """Test that snapshots record whether the node was reachable."""
        await orchestrator.collect_metrics()
        await orchestrator.run_health_check()
        await orchestrator.collect_metrics()

        history = await orchestrator.metrics_tracker.get_metrics_history(10)
        statuses = [snapshot.connection_status for snapshot in history]
        assert sorted(statuses) == [ConnectionStatus.CONNECTED, ConnectionStatus.DISCONNECTED]

    @pytest.mark.asyncio
    async def test_detect_anomalies(self, orchestrator: MonitoringOrchestrator) -> None:
        """Test that a slow hour of processing raises a performance alert."""
        assert await orchestrator.detect_anomalies() is False

        orchestrator.metrics_tracker.track_event_processed(6000)

        assert await orchestrator.detect_anomalies() is True
        alerts = await orchestrator.alert_service.get_unresolved_alerts()
        assert [alert.type for alert in alerts] == [AlertType.PERFORMANCE]

    @pytest.mark.asyncio
    async def test_get_status(self, orchestrator: MonitoringOrchestrator) -> None:
        """Test the aggregated status view."""
        status = await orchestrator.get_status()
        assert status.node_health is None
        assert status.unresolved_alerts == 0

        await orchestrator.run_health_check()
        orchestrator.metrics_tracker.track_event_received()
        await orchestrator.alert_service.check_connection_anomaly(False, 10)

        status = await orchestrator.get_status()

        assert status.is_running is False
        assert status.node_url == NODE_URL
        assert status.health_check_interval == 30_000
        assert status.node_health is not None
        assert status.node_health.is_connected is True
        assert status.current_metrics.events_received == 1
        assert status.unresolved_alerts == 1

    @pytest.mark.asyncio
    async def test_background_loops_run(
        self, health_monitor: HealthMonitor, node: NodeStub
    ) -> None:
        """Test that each loop ticks on its interval."""
        orchestrator = MonitoringOrchestrator(fast_config(), health_monitor=health_monitor)

        with patch.object(MonitoringOrchestrator, "anomaly_check_interval_ms", 10):
            with patch.object(
                orchestrator, "detect_anomalies", AsyncMock(return_value=False)
            ) as detect:
                await orchestrator.initialize()
                await asyncio.sleep(0.1)
                await orchestrator.shutdown()

        assert node.calls > 1
        assert len(await orchestrator.metrics_tracker.get_metrics_history(100)) > 0
        assert detect.await_count > 0

    @pytest.mark.asyncio
    async def test_loop_survives_tick_errors(self, health_monitor: HealthMonitor) -> None:
        """Test that a failing tick is logged and the loop keeps running."""
        orchestrator = MonitoringOrchestrator(fast_config(), health_monitor=health_monitor)
        failing_save = AsyncMock(side_effect=RuntimeError("snapshot store down"))

        with patch.object(orchestrator.metrics_tracker, "save_metrics", failing_save):
            await orchestrator.initialize()
            await asyncio.sleep(0.1)
            await orchestrator.shutdown()

        assert failing_save.await_count > 1

    @pytest.mark.asyncio
    async def test_shutdown_applies_log_retention(self, health_monitor: HealthMonitor) -> None:
        """Test that shutdown purges logs older than the retention window."""
        store = InMemoryEventLogStore()
        await store.insert(
            EventLog(
                event_id="stale",
                event_type="badge_mint",
                status=EventStatus.COMPLETED,
                payload={},
                received_at=datetime.now(UTC) - timedelta(days=31),
            )
        )
        orchestrator = MonitoringOrchestrator(
            MonitoringConfig(node_url=NODE_URL, log_retention_days=30),
            event_logger=EventLogger(store),
            health_monitor=health_monitor,
        )

        await orchestrator.shutdown()

        assert await store.count() == 0

    @pytest.mark.asyncio
    async def test_shutdown_without_retention(self, health_monitor: HealthMonitor) -> None:
        """Test that no retention setting skips the event log purge."""
        event_logger = AsyncMock(spec=EventLogger)
        alert_service = AsyncMock(spec=AlertService)
        orchestrator = MonitoringOrchestrator(
            MonitoringConfig(node_url=NODE_URL, log_retention_days=None),
            event_logger=event_logger,
            alert_service=alert_service,
            health_monitor=health_monitor,
        )

        await orchestrator.shutdown()

        event_logger.clear_old_logs.assert_not_called()
        alert_service.clear_resolved_alerts.assert_awaited_once_with(7)
