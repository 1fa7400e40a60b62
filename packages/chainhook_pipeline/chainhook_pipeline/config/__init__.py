"""Configuration package for the Chainhook pipeline."""

from .config import (
    AlertThresholds,
    BatchConfig,
    ErrorLogConfig,
    MonitoringConfig,
    PipelineConfig,
    RoutingConfig,
    TrackingConfig,
    get_config,
    load_config,
    load_monitoring_config,
    reload_config,
)

__all__ = [
    "AlertThresholds",
    "BatchConfig",
    "ErrorLogConfig",
    "MonitoringConfig",
    "PipelineConfig",
    "RoutingConfig",
    "TrackingConfig",
    "get_config",
    "load_config",
    "load_monitoring_config",
    "reload_config",
]
