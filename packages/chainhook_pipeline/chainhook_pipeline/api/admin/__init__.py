"""Admin API endpoints."""

from .monitoring_api import (
    create_admin_router,
    create_metrics_router,
    create_monitoring_router,
    create_pipeline_router,
)

__all__ = [
    "create_admin_router",
    "create_metrics_router",
    "create_monitoring_router",
    "create_pipeline_router",
]
