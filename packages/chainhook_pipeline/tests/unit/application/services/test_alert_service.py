"""Unit tests for AlertService."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock

import pytest
from chainhook_pipeline.application.services import AlertService
from chainhook_pipeline.config import AlertThresholds
from chainhook_pipeline.domain.entities import Alert
from chainhook_pipeline.domain.enums import AlertSeverity, AlertType
from chainhook_pipeline.domain.exceptions import StorageError
from chainhook_pipeline.domain.interfaces import AlertStore
from chainhook_pipeline.infrastructure.persistence import InMemoryAlertStore


@pytest.mark.asyncio
class TestAlertService:
    """Test cases for AlertService."""

    def setup_method(self) -> None:
        """Set up test fixtures."""
        self.store = InMemoryAlertStore()
        self.service = AlertService(store=self.store)

    async def test_high_processing_time_raises_performance_alert(self) -> None:
        """Test the processing time threshold."""
        assert await self.service.check_performance_anomaly(6000, 1, 10) is True

        alerts = await self.service.get_unresolved_alerts()
        assert len(alerts) == 1
        assert alerts[0].type == AlertType.PERFORMANCE
        assert alerts[0].severity == AlertSeverity.HIGH
        assert alerts[0].details["average_time"] == 6000

    async def test_high_failure_rate_raises_anomaly_alert(self) -> None:
        """Test the failure rate threshold."""
        assert await self.service.check_performance_anomaly(1000, 5, 10) is True

        alerts = await self.service.get_unresolved_alerts()
        assert len(alerts) == 1
        assert alerts[0].type == AlertType.ANOMALY
        assert alerts[0].details["failure_rate"] == 50

    async def test_both_thresholds_exceeded(self) -> None:
        """Test that both alerts are raised together."""
        assert await self.service.check_performance_anomaly(9000, 9, 10) is True
        assert await self.service.get_alert_count() == 2

    async def test_no_anomaly(self) -> None:
        """Test values below every threshold."""
        assert await self.service.check_performance_anomaly(1000, 0, 0) is False
        assert await self.service.check_performance_anomaly(5000, 1, 10) is False
        assert await self.service.get_alert_count() == 0

    async def test_connection_anomaly(self) -> None:
        """Test the consecutive failure threshold."""
        assert await self.service.check_connection_anomaly(False, 4) is False
        assert await self.service.check_connection_anomaly(True, 10) is False
        assert await self.service.check_connection_anomaly(False, 5, "http://node:20456") is True

        critical = await self.service.get_critical_alerts()
        assert len(critical) == 1
        assert critical[0].type == AlertType.CONNECTION
        assert critical[0].details == {"failed_attempts": 5, "node_url": "http://node:20456"}

    async def test_custom_thresholds(self) -> None:
        """Test that configured thresholds replace the defaults."""
        service = AlertService(
            AlertThresholds(
                performance_threshold=100, failure_rate_threshold=1, max_consecutive_failures=1
            )
        )

        assert await service.check_performance_anomaly(150, 0, 10) is True
        assert await service.check_connection_anomaly(False, 1) is True
        assert service.thresholds.performance_threshold == 100

    async def test_resolve_alert(self) -> None:
        """Test resolving an alert removes it from the unresolved list."""
        alert = await self.service.create_alert(
            AlertType.FAILED_EVENT, AlertSeverity.HIGH, "Event processing failed"
        )

        resolved = await self.service.resolve_alert(alert.alert_id)

        assert resolved is not None
        assert resolved.resolved is True
        assert resolved.resolved_at is not None
        assert await self.service.get_unresolved_alerts() == []
        assert await self.service.get_alert_count(resolved=True) == 1

    async def test_resolve_missing_alert(self) -> None:
        """Test resolving an unknown alert ID."""
        assert await self.service.resolve_alert("missing") is None

    async def test_alerts_by_severity(self) -> None:
        """Test severity queries with and without the resolved filter."""
        low = await self.service.create_alert(AlertType.ANOMALY, AlertSeverity.LOW, "low one")
        await self.service.create_alert(AlertType.ANOMALY, AlertSeverity.LOW, "low two")
        await self.service.create_alert(AlertType.ANOMALY, AlertSeverity.HIGH, "high")
        await self.service.resolve_alert(low.alert_id)

        assert len(await self.service.get_alerts_by_severity(AlertSeverity.LOW)) == 2
        unresolved_low = await self.service.get_alerts_by_severity(
            AlertSeverity.LOW, resolved=False
        )
        assert [a.message for a in unresolved_low] == ["low two"]

    async def test_critical_alerts_exclude_resolved(self) -> None:
        """Test that resolved critical alerts are not listed."""
        alert = await self.service.create_alert(
            AlertType.CONNECTION, AlertSeverity.CRITICAL, "down"
        )
        await self.service.resolve_alert(alert.alert_id)

        assert await self.service.get_critical_alerts() == []

    async def test_clear_resolved_alerts(self) -> None:
        """Test that only old resolved alerts are deleted."""
        old = Alert(
            type=AlertType.ANOMALY,
            severity=AlertSeverity.LOW,
            message="old",
            created_at=datetime.now(UTC) - timedelta(days=10),
        )
        old.resolve()
        await self.store.insert(old)
        recent = await self.service.create_alert(AlertType.ANOMALY, AlertSeverity.LOW, "recent")
        await self.service.resolve_alert(recent.alert_id)
        await self.service.create_alert(AlertType.ANOMALY, AlertSeverity.LOW, "open")

        deleted = await self.service.clear_resolved_alerts(7)

        assert deleted == 1
        assert await self.service.get_alert(old.alert_id) is None
        assert await self.service.get_alert_count() == 2

    async def test_store_failure_raises_storage_error(self) -> None:
        """Test that store failures surface as StorageError."""
        store = AsyncMock(spec=AlertStore)
        store.insert.side_effect = RuntimeError("write failed")
        service = AlertService(store=store)

        with pytest.raises(StorageError) as exc_info:
            await service.create_alert(AlertType.ANOMALY, AlertSeverity.LOW, "x")

        assert exc_info.value.details["collection"] == "alerts"
        assert "write failed" in exc_info.value.message
