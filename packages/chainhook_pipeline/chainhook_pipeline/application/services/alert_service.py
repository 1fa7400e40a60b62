"""Alert creation, threshold checks and resolution."""

from __future__ import annotations

import logging
from datetime import UTC, datetime, timedelta
from typing import Any

from chainhook_pipeline.config import AlertThresholds
from chainhook_pipeline.domain.entities import Alert
from chainhook_pipeline.domain.enums import AlertSeverity, AlertType
from chainhook_pipeline.domain.exceptions import StorageError
from chainhook_pipeline.domain.interfaces import AlertStore
from chainhook_pipeline.infrastructure.logging import get_logger
from chainhook_pipeline.infrastructure.monitoring import PipelineMetricsCollector
from chainhook_pipeline.infrastructure.persistence import InMemoryAlertStore


class AlertService:
    """Raises alerts when metrics or connectivity cross configured thresholds."""

    def __init__(
        self,
        thresholds: AlertThresholds | None = None,
        *,
        store: AlertStore | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self._thresholds = thresholds or AlertThresholds()
        self._store = store or InMemoryAlertStore()
        self._logger = logger or get_logger(__name__)
        self._collector = PipelineMetricsCollector(component="alert_service")

    @property
    def thresholds(self) -> AlertThresholds:
        return self._thresholds

    async def create_alert(
        self,
        type: AlertType,
        severity: AlertSeverity,
        message: str,
        details: dict[str, Any] | None = None,
    ) -> Alert:
        """Persist and report a new alert.

        Raises:
            StorageError: If the alert cannot be stored
        """
        alert = Alert(type=type, severity=severity, message=message, details=details or {})

        try:
            await self._store.insert(alert)
        except Exception as e:
            self._logger.error(
                "Failed to create alert",
                extra={"alert_type": alert.type.value, "severity": alert.severity.value},
                exc_info=e,
            )
            raise StorageError(
                operation="insert", collection="alerts", record_id=alert.alert_id, reason=str(e)
            ) from e

        self._collector.record_alert(alert.type.value, alert.severity.value)
        self._logger.warning(
            f"Alert created: {message}",
            extra={
                "alert_id": alert.alert_id,
                "alert_type": alert.type.value,
                "severity": alert.severity.value,
            },
        )
        return alert

    async def check_performance_anomaly(
        self, avg_time: float, failed_count: int, total_count: int
    ) -> bool:
        """Raise alerts for slow processing or a high failure rate.

        Args:
            avg_time: Average processing time in milliseconds
            failed_count: Failed events in the measured window
            total_count: Events handled in the measured window

        Returns:
            True if any alert was raised
        """
        anomaly = False

        if avg_time > self._thresholds.performance_threshold:
            await self.create_alert(
                AlertType.PERFORMANCE,
                AlertSeverity.HIGH,
                f"High average processing time: {avg_time:.0f}ms",
                {"average_time": avg_time, "threshold": self._thresholds.performance_threshold},
            )
            anomaly = True

        failure_rate = failed_count / total_count * 100 if total_count > 0 else 0.0
        if failure_rate > self._thresholds.failure_rate_threshold:
            await self.create_alert(
                AlertType.ANOMALY,
                AlertSeverity.HIGH,
                f"High failure rate: {failure_rate:.2f}%",
                {
                    "failure_rate": failure_rate,
                    "failed_count": failed_count,
                    "total_count": total_count,
                    "threshold": self._thresholds.failure_rate_threshold,
                },
            )
            anomaly = True

        return anomaly

    async def check_connection_anomaly(
        self, is_connected: bool, failed_attempts: int, node_url: str | None = None
    ) -> bool:
        """Raise a critical alert once consecutive failures reach the threshold."""
        if is_connected or failed_attempts < self._thresholds.max_consecutive_failures:
            return False

        details: dict[str, Any] = {"failed_attempts": failed_attempts}
        if node_url:
            details["node_url"] = node_url
        await self.create_alert(
            AlertType.CONNECTION,
            AlertSeverity.CRITICAL,
            f"Connection to Chainhook node lost ({failed_attempts} failed attempts)",
            details,
        )
        return True

    async def resolve_alert(self, alert_id: str) -> Alert | None:
        """Mark an alert resolved.

        Returns:
            The resolved alert, or None if it does not exist
        """
        alert = await self._call("query", self._store.get, alert_id, record_id=alert_id)
        if alert is None:
            return None

        alert.resolve()
        await self._call("update", self._store.update, alert, record_id=alert_id)
        self._logger.info("Alert resolved", extra={"alert_id": alert_id})
        return alert

    async def get_alert(self, alert_id: str) -> Alert | None:
        return await self._call("query", self._store.get, alert_id, record_id=alert_id)

    async def get_unresolved_alerts(self, limit: int = 50) -> list[Alert]:
        return await self._call("query", self._store.find, resolved=False, limit=limit)

    async def get_critical_alerts(self, limit: int = 20) -> list[Alert]:
        return await self.get_alerts_by_severity(AlertSeverity.CRITICAL, limit, resolved=False)

    async def get_alerts_by_severity(
        self, severity: AlertSeverity, limit: int = 50, resolved: bool | None = None
    ) -> list[Alert]:
        return await self._call(
            "query",
            self._store.find,
            resolved=resolved,
            severity=AlertSeverity(severity),
            limit=limit,
        )

    async def get_alert_count(self, resolved: bool | None = None) -> int:
        return await self._call("count", self._store.count, resolved)

    async def clear_resolved_alerts(self, days: int = 7) -> int:
        """Delete resolved alerts created more than ``days`` days ago."""
        cutoff = datetime.now(UTC) - timedelta(days=days)
        deleted = await self._call("delete", self._store.delete_resolved_before, cutoff)
        self._logger.info("Resolved alerts cleared", extra={"days": days, "deleted": deleted})
        return deleted

    async def _call(
        self, operation: str, method: Any, *args: Any, record_id: str | None = None, **kwargs: Any
    ) -> Any:
        try:
            return await method(*args, **kwargs)
        except Exception as e:
            self._logger.error(
                f"Alert store {operation} failed", extra={"record_id": record_id}, exc_info=e
            )
            raise StorageError(
                operation=operation, collection="alerts", record_id=record_id, reason=str(e)
            ) from e
