"""Lifecycle owner for Chainhook monitoring.

The orchestrator composes the event logger, metrics tracker, health monitor
and alert service, and runs three background loops:

* health checks every ``health_check_interval`` ms
* metrics snapshots every ``metrics_interval`` ms
* anomaly detection every ``anomaly_check_interval_ms`` ms

Each loop logs and survives its own failures. Startup is fail-fast.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Awaitable, Callable

from chainhook_pipeline.application.models import MonitoringStatus, NodeHealthInfo
from chainhook_pipeline.application.services.alert_service import AlertService
from chainhook_pipeline.application.services.event_logger import EventLogger
from chainhook_pipeline.application.services.health_monitor import HealthMonitor
from chainhook_pipeline.application.services.metrics_tracker import MetricsTracker
from chainhook_pipeline.config import MonitoringConfig
from chainhook_pipeline.domain.enums import ConnectionStatus
from chainhook_pipeline.infrastructure.logging import get_logger

RESOLVED_ALERT_RETENTION_DAYS = 7


class MonitoringOrchestrator:
    """Runs periodic health, metrics and anomaly checks for one Chainhook node."""

    anomaly_check_interval_ms = 60_000

    def __init__(
        self,
        config: MonitoringConfig | None = None,
        *,
        event_logger: EventLogger | None = None,
        metrics_tracker: MetricsTracker | None = None,
        health_monitor: HealthMonitor | None = None,
        alert_service: AlertService | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        """Initialize the orchestrator.

        Sub-services that are not supplied are created with in-memory stores.

        Args:
            config: Node URL, intervals, retention and alert thresholds
            event_logger: Event lifecycle log
            metrics_tracker: Event counters and snapshots
            health_monitor: Node health checker
            alert_service: Alert creation and threshold checks
            logger: Logger shared with sub-services created here
        """
        self._config = config or MonitoringConfig()
        self._logger = logger or get_logger(__name__)

        self._event_logger = event_logger or EventLogger(logger=logger)
        self._metrics_tracker = metrics_tracker or MetricsTracker(logger=logger)
        self._health_monitor = health_monitor or HealthMonitor(
            health_path=self._config.health_check_path, logger=logger
        )
        self._alert_service = alert_service or AlertService(
            self._config.alert_thresholds, logger=logger
        )

        self._running = False
        self._tasks: dict[str, asyncio.Task[None]] = {}

    @property
    def config(self) -> MonitoringConfig:
        return self._config

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def event_logger(self) -> EventLogger:
        return self._event_logger

    @property
    def metrics_tracker(self) -> MetricsTracker:
        return self._metrics_tracker

    @property
    def health_monitor(self) -> HealthMonitor:
        return self._health_monitor

    @property
    def alert_service(self) -> AlertService:
        return self._alert_service

    async def initialize(self) -> None:
        """Check the node once, then start the background loops.

        Raises:
            Exception: Any failure of the initial health check propagates
        """
        if self._running:
            self._logger.warning("Monitoring system already running")
            return

        self._logger.info(
            "Initializing monitoring system", extra={"node_url": self._config.node_url}
        )

        try:
            await self._health_monitor.check_health(
                self._config.node_url, self._config.health_check_timeout
            )
        except Exception as e:
            self._logger.error("Failed to initialize monitoring system", exc_info=e)
            raise

        self._running = True
        self._tasks = {
            "health_check": asyncio.create_task(
                self._run_periodically(
                    "health_check", self._config.health_check_interval, self.run_health_check
                )
            ),
            "metrics": asyncio.create_task(
                self._run_periodically(
                    "metrics", self._config.metrics_interval, self.collect_metrics
                )
            ),
            "anomaly_detection": asyncio.create_task(
                self._run_periodically(
                    "anomaly_detection", self.anomaly_check_interval_ms, self.detect_anomalies
                )
            ),
        }

        self._logger.info(
            "Monitoring system initialized successfully",
            extra={
                "health_check_interval": self._config.health_check_interval,
                "metrics_interval": self._config.metrics_interval,
                "anomaly_check_interval": self.anomaly_check_interval_ms,
            },
        )

    async def shutdown(self) -> None:
        """Stop the loops, apply retention and release the HTTP client."""
        self._logger.info("Shutting down monitoring system")
        self._running = False

        tasks, self._tasks = list(self._tasks.values()), {}
        for task in tasks:
            if not task.done():
                task.cancel()
        for task in tasks:
            with contextlib.suppress(asyncio.CancelledError):
                await task

        try:
            if self._config.log_retention_days:
                cleared = await self._event_logger.clear_old_logs(self._config.log_retention_days)
                self._logger.info("Old logs cleared", extra={"count": cleared})

            await self._alert_service.clear_resolved_alerts(RESOLVED_ALERT_RETENTION_DAYS)
        finally:
            await self._health_monitor.close()

        self._logger.info("Monitoring system shut down")

    async def run_health_check(self) -> None:
        """Check the node and raise a connection alert after repeated failures."""
        result = await self._health_monitor.check_health(
            self._config.node_url, self._config.health_check_timeout
        )
        if result.is_connected:
            return

        health = await self._health_monitor.get_health_status(self._config.node_url)
        if health is not None:
            await self._alert_service.check_connection_anomaly(
                health.is_connected, health.failed_attempts, self._config.node_url
            )

    async def collect_metrics(self) -> None:
        """Persist a metrics snapshot tagged with the node's connectivity."""
        health = await self._health_monitor.get_health_status(self._config.node_url)
        connection_status = (
            ConnectionStatus.CONNECTED
            if health is not None and health.is_connected
            else ConnectionStatus.DISCONNECTED
        )
        await self._metrics_tracker.save_metrics(connection_status)
        self._logger.debug("Metrics saved", extra={"connection_status": connection_status.value})

    async def detect_anomalies(self) -> bool:
        """Compare the last hour of metrics against the alert thresholds."""
        current = self._metrics_tracker.get_current_metrics()
        avg_time = await self._metrics_tracker.get_average_processing_time(1)
        failure_rate = await self._metrics_tracker.get_failure_rate(1)

        is_anomaly = await self._alert_service.check_performance_anomaly(
            avg_time,
            current.events_failed,
            current.events_processed + current.events_failed,
        )
        if is_anomaly:
            self._logger.warning(
                "Performance anomaly detected",
                extra={"avg_time": avg_time, "failure_rate": failure_rate},
            )
        return is_anomaly

    async def get_status(self) -> MonitoringStatus:
        """Aggregate node health, live metrics and the unresolved-alert count."""
        try:
            health = await self._health_monitor.get_health_status(self._config.node_url)
            unresolved = await self._alert_service.get_alert_count(resolved=False)
        except Exception as e:
            self._logger.error("Failed to get monitoring status", exc_info=e)
            raise

        return MonitoringStatus(
            is_running=self._running,
            node_url=self._config.node_url,
            health_check_interval=self._config.health_check_interval,
            metrics_interval=self._config.metrics_interval,
            node_health=NodeHealthInfo.model_validate(health) if health else None,
            current_metrics=self._metrics_tracker.get_current_metrics(),
            unresolved_alerts=unresolved,
        )

    async def _run_periodically(
        self, name: str, interval_ms: float, tick: Callable[[], Awaitable[object]]
    ) -> None:
        while self._running:
            try:
                await asyncio.sleep(interval_ms / 1000)
                await tick()
            except asyncio.CancelledError:
                break
            except Exception as e:
                self._logger.error(f"Error in {name} loop", extra={"loop": name}, exc_info=e)
