"""HTTP health checks against Chainhook nodes."""

from __future__ import annotations

import logging
import time
from datetime import UTC, datetime

import httpx

from chainhook_pipeline.application.models import HealthCheckResult
from chainhook_pipeline.domain.entities import HealthStatus
from chainhook_pipeline.domain.exceptions import StorageError
from chainhook_pipeline.domain.interfaces import HealthStatusStore
from chainhook_pipeline.infrastructure.logging import get_logger
from chainhook_pipeline.infrastructure.monitoring import PipelineMetricsCollector
from chainhook_pipeline.infrastructure.persistence import InMemoryHealthStatusStore

DEFAULT_HEALTH_PATH = "/health"
DEFAULT_TIMEOUT_MS = 5000


class HealthMonitor:
    """Probes node health endpoints and keeps per-node connectivity records.

    Connectivity problems never raise from ``check_health``; they are reported
    in the returned result and counted as consecutive failures.
    """

    def __init__(
        self,
        store: HealthStatusStore | None = None,
        *,
        client: httpx.AsyncClient | None = None,
        health_path: str = DEFAULT_HEALTH_PATH,
        logger: logging.Logger | None = None,
    ) -> None:
        """Initialize the monitor.

        Args:
            store: Store for per-node health records
            client: HTTP client to use; one is created and owned when omitted
            health_path: Path appended to the node URL for each check
            logger: Logger to use instead of the module logger
        """
        self._store = store or InMemoryHealthStatusStore()
        self._client = client or httpx.AsyncClient()
        self._owns_client = client is None
        self._health_path = health_path
        self._logger = logger or get_logger(__name__)
        self._collector = PipelineMetricsCollector(component="health_monitor")

    def health_url(self, node_url: str) -> str:
        return f"{node_url.rstrip('/')}{self._health_path}"

    async def check_health(
        self, node_url: str, timeout_ms: int = DEFAULT_TIMEOUT_MS
    ) -> HealthCheckResult:
        """Run one health check and record its outcome.

        Raises:
            StorageError: If the outcome cannot be recorded
        """
        url = self.health_url(node_url)
        start = time.perf_counter()
        status_code: int | None = None
        error: str | None = None

        try:
            response = await self._client.get(url, timeout=timeout_ms / 1000)
            status_code = response.status_code
            if not response.is_success:
                error = f"HTTP {status_code}"
        except httpx.TimeoutException:
            error = f"Health check timed out after {timeout_ms}ms"
        except httpx.HTTPError as e:
            error = str(e) or e.__class__.__name__

        elapsed = time.perf_counter() - start
        result = HealthCheckResult(
            is_connected=error is None,
            response_time=elapsed * 1000,
            status_code=status_code,
            error=error,
        )

        await self._record(node_url, result)
        self._collector.record_node_health(node_url, result.is_connected, elapsed)

        if result.is_connected:
            self._logger.debug(
                "Node health check passed",
                extra={"node_url": node_url, "response_time": result.response_time},
            )
        else:
            self._logger.warning(
                "Node health check failed",
                extra={"node_url": node_url, "error": error, "status_code": status_code},
            )
        return result

    async def get_health_status(self, node_url: str) -> HealthStatus | None:
        try:
            return await self._store.get(node_url)
        except Exception as e:
            self._logger.error("Failed to read health status", extra={"node_url": node_url}, exc_info=e)
            raise StorageError(
                operation="query", collection="health_status", record_id=node_url, reason=str(e)
            ) from e

    async def get_all_health_status(self) -> list[HealthStatus]:
        try:
            return await self._store.list_all()
        except Exception as e:
            self._logger.error("Failed to list health statuses", exc_info=e)
            raise StorageError(operation="query", collection="health_status", reason=str(e)) from e

    async def get_uptime(self, node_url: str) -> float:
        """Seconds since the node's current connected streak began, 0 if disconnected."""
        status = await self.get_health_status(node_url)
        if status is None or not status.is_connected or status.connected_since is None:
            return 0.0
        return (datetime.now(UTC) - status.connected_since).total_seconds()

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def _record(self, node_url: str, result: HealthCheckResult) -> None:
        status = await self.get_health_status(node_url) or HealthStatus(node_url=node_url)
        if result.is_connected:
            status.record_success(result.response_time)
        else:
            status.record_failure(result.response_time, result.error or "unknown error")

        try:
            await self._store.upsert(status)
        except Exception as e:
            self._logger.error("Failed to record health status", extra={"node_url": node_url}, exc_info=e)
            raise StorageError(
                operation="upsert", collection="health_status", record_id=node_url, reason=str(e)
            ) from e
