"""Monitoring REST API endpoints."""

from __future__ import annotations

from fastapi import APIRouter, HTTPException, Query, Response, status
from fastapi.responses import JSONResponse
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from pydantic import BaseModel, Field

from chainhook_pipeline.application.models import (
    AlertInfo,
    BatchMetrics,
    CurrentMetrics,
    EventLogInfo,
    MetricsSnapshotInfo,
    MonitoringStatus,
    RouteMetrics,
)
from chainhook_pipeline.application.services import EventPipeline, MonitoringOrchestrator
from chainhook_pipeline.domain.enums import AlertSeverity
from chainhook_pipeline.infrastructure.logging import get_logger

logger = get_logger(__name__)


class PipelineMetricsResponse(BaseModel):
    """Batcher and router state of the event pipeline."""

    queue_size: int = Field(..., ge=0, description="Events waiting to be batched")
    batching: BatchMetrics = Field(..., description="Batcher metrics")
    routing: RouteMetrics = Field(..., description="Router metrics")
    route_count: int = Field(..., ge=0, description="Registered routes")
    errors: dict[str, int] = Field(default_factory=dict, description="Recorded errors by type")


def create_monitoring_router(orchestrator: MonitoringOrchestrator) -> APIRouter:
    """Create the monitoring router.

    Args:
        orchestrator: Monitoring orchestrator instance

    Returns:
        Configured FastAPI router
    """
    router = APIRouter(
        prefix="/api/v1/monitoring",
        tags=["Monitoring"],
        responses={
            404: {"description": "Record not found"},
            500: {"description": "Internal server error"},
        },
    )

    @router.get(  # type: ignore[misc]
        "/status",
        response_model=MonitoringStatus,
        summary="Get monitoring status",
        description="Node health, live metrics and the number of unresolved alerts",
    )
    async def get_status() -> MonitoringStatus:
        try:
            return await orchestrator.get_status()
        except Exception as e:
            logger.error("Failed to get monitoring status", exc_info=e)
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Failed to retrieve monitoring status",
            ) from e

    @router.get(  # type: ignore[misc]
        "/health",
        summary="Check node health",
        description="Latest recorded connectivity of the Chainhook node",
    )
    async def check_health() -> JSONResponse:
        """Report the node's last health check.

        Returns:
            200 when the node is connected, 503 otherwise
        """
        node_url = orchestrator.config.node_url
        try:
            health = await orchestrator.health_monitor.get_health_status(node_url)
            uptime = await orchestrator.health_monitor.get_uptime(node_url)
        except Exception as e:
            logger.error("Health check failed", exc_info=e)
            return JSONResponse(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                content={"status": "error", "node_url": node_url, "error": str(e)},
            )

        if health is None:
            return JSONResponse(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                content={"status": "unknown", "node_url": node_url},
            )

        return JSONResponse(
            status_code=(
                status.HTTP_200_OK if health.is_connected else status.HTTP_503_SERVICE_UNAVAILABLE
            ),
            content={
                "status": "healthy" if health.is_connected else "unhealthy",
                "node_url": node_url,
                "response_time": health.response_time,
                "failed_attempts": health.failed_attempts,
                "last_check": health.last_check.isoformat(),
                "last_error": health.last_error,
                "uptime_seconds": uptime,
            },
        )

    @router.get(  # type: ignore[misc]
        "/metrics",
        response_model=CurrentMetrics,
        summary="Get current metrics",
    )
    async def get_current_metrics() -> CurrentMetrics:
        return orchestrator.metrics_tracker.get_current_metrics()

    @router.get(  # type: ignore[misc]
        "/metrics/history",
        response_model=list[MetricsSnapshotInfo],
        summary="Get metrics history",
        description="Persisted metrics snapshots, newest first",
    )
    async def get_metrics_history(
        limit: int = Query(default=100, ge=1, le=1000),
    ) -> list[MetricsSnapshotInfo]:
        try:
            snapshots = await orchestrator.metrics_tracker.get_metrics_history(limit)
        except Exception as e:
            logger.error("Failed to get metrics history", exc_info=e)
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Failed to retrieve metrics history",
            ) from e
        return [MetricsSnapshotInfo.model_validate(s) for s in snapshots]

    @router.get(  # type: ignore[misc]
        "/alerts",
        response_model=list[AlertInfo],
        summary="List unresolved alerts",
    )
    async def list_alerts(
        limit: int = Query(default=50, ge=1, le=500),
        severity: AlertSeverity | None = Query(default=None),
    ) -> list[AlertInfo]:
        alert_service = orchestrator.alert_service
        try:
            if severity is None:
                alerts = await alert_service.get_unresolved_alerts(limit)
            else:
                alerts = await alert_service.get_alerts_by_severity(
                    severity, limit, resolved=False
                )
        except Exception as e:
            logger.error("Failed to list alerts", exc_info=e)
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Failed to retrieve alerts",
            ) from e
        return [AlertInfo.model_validate(alert) for alert in alerts]

    @router.post(  # type: ignore[misc]
        "/alerts/{alert_id}/resolve",
        response_model=AlertInfo,
        summary="Resolve an alert",
    )
    async def resolve_alert(alert_id: str) -> AlertInfo:
        """Mark an alert resolved.

        Raises:
            HTTPException: 404 if the alert does not exist
        """
        try:
            alert = await orchestrator.alert_service.resolve_alert(alert_id)
        except Exception as e:
            logger.error("Failed to resolve alert", exc_info=e, extra={"alert_id": alert_id})
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Failed to resolve alert",
            ) from e

        if alert is None:
            logger.warning("Alert not found", extra={"alert_id": alert_id})
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"Alert '{alert_id}' not found",
            )

        logger.info("Alert resolved via API", extra={"alert_id": alert_id})
        return AlertInfo.model_validate(alert)

    @router.get(  # type: ignore[misc]
        "/events/failed",
        response_model=list[EventLogInfo],
        summary="List failed events",
    )
    async def list_failed_events(
        limit: int = Query(default=50, ge=1, le=500),
    ) -> list[EventLogInfo]:
        try:
            events = await orchestrator.event_logger.get_failed_events(limit)
        except Exception as e:
            logger.error("Failed to list failed events", exc_info=e)
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Failed to retrieve failed events",
            ) from e
        return [EventLogInfo.model_validate(event) for event in events]

    return router


def create_pipeline_router(pipeline: EventPipeline) -> APIRouter:
    """Create the router reporting batcher and router state."""
    router = APIRouter(prefix="/api/v1/pipeline", tags=["Pipeline"])

    @router.get(  # type: ignore[misc]
        "/metrics",
        response_model=PipelineMetricsResponse,
        summary="Get pipeline metrics",
    )
    async def get_pipeline_metrics() -> PipelineMetricsResponse:
        return PipelineMetricsResponse(
            queue_size=pipeline.batcher.get_queue_size(),
            batching=pipeline.batcher.get_metrics(),
            routing=pipeline.router.get_metrics(),
            route_count=pipeline.router.get_route_count(),
            errors=pipeline.error_log.get_error_summary(),
        )

    return router


def create_metrics_router() -> APIRouter:
    """Create the router serving the Prometheus exposition format."""
    router = APIRouter(tags=["Metrics"])

    @router.get("/metrics", include_in_schema=False)  # type: ignore[misc]
    async def prometheus_metrics() -> Response:
        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

    return router


def create_admin_router(
    orchestrator: MonitoringOrchestrator,
    pipeline: EventPipeline | None = None,
) -> APIRouter:
    """Create the complete admin router with all sub-routers.

    Args:
        orchestrator: Monitoring orchestrator instance
        pipeline: Event pipeline to report on, if any

    Returns:
        Configured FastAPI router with all admin endpoints
    """
    admin_router = APIRouter()

    admin_router.include_router(create_monitoring_router(orchestrator))
    if pipeline is not None:
        admin_router.include_router(create_pipeline_router(pipeline))
    admin_router.include_router(create_metrics_router())

    return admin_router
