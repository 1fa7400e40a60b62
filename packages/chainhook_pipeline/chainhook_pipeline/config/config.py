"""Centralized configuration for the Chainhook pipeline.

Values come from defaults, a ``.env`` file, or environment variables prefixed
with ``CHAINHOOK_`` (nested sections use ``__``, e.g.
``CHAINHOOK_MONITORING__NODE_URL``). All intervals and thresholds are in
milliseconds.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Any

from pydantic import BaseModel, Field, field_validator
from pydantic import ValidationError as PydanticValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from chainhook_pipeline.domain.exceptions import ConfigurationError
from chainhook_pipeline.infrastructure.logging import LoggingConfig


class BatchConfig(BaseModel):
    """Event batcher configuration."""

    batch_size: int = Field(default=50, ge=1, le=10_000, description="Events per batch")
    batch_timeout_ms: int = Field(
        default=1000, ge=1, le=300_000, description="Flush delay for a partial batch"
    )
    max_queue_size: int = Field(
        default=10_000, ge=1, le=10_000_000, description="Queue length that triggers overflow"
    )
    max_timing_samples: int = Field(
        default=500, ge=1, le=100_000, description="Batch timings kept for the rolling average"
    )


class RoutingConfig(BaseModel):
    """Operation router configuration."""

    max_timing_samples: int = Field(
        default=1000, ge=1, le=100_000, description="Routing timings kept for the rolling average"
    )


class AlertThresholds(BaseModel):
    """Thresholds used by anomaly detection."""

    performance_threshold: int = Field(
        default=5000, ge=100, description="Average processing time that raises an alert"
    )
    failure_rate_threshold: float = Field(
        default=10, ge=1, le=100, description="Failure percentage that raises an alert"
    )
    max_consecutive_failures: int = Field(
        default=5, ge=1, le=1000, description="Failed health checks before a connection alert"
    )


class MonitoringConfig(BaseModel):
    """Chainhook node monitoring configuration."""

    node_url: str = Field(
        default="http://localhost:20456", description="Base URL of the Chainhook node"
    )
    health_check_path: str = Field(default="/health", description="Node health endpoint path")
    health_check_interval: int = Field(
        default=30_000, ge=5000, description="Interval between node health checks"
    )
    health_check_timeout: int = Field(
        default=5000, ge=100, le=60_000, description="Timeout for one node health check"
    )
    metrics_interval: int = Field(
        default=60_000, ge=10_000, description="Interval between metrics snapshots"
    )
    log_retention_days: int | None = Field(
        default=30, ge=1, description="Event logs older than this are purged on shutdown"
    )
    alert_thresholds: AlertThresholds = Field(default_factory=AlertThresholds)

    @field_validator("node_url")
    @classmethod
    def validate_node_url(cls, v: str) -> str:
        """Require a non-empty node URL without a trailing slash."""
        if not v or not v.strip():
            raise ValueError("Node URL cannot be empty")
        return v.strip().rstrip("/")


class TrackingConfig(BaseModel):
    """Per-event tracking configuration."""

    slow_event_threshold_ms: float = Field(
        default=5000, ge=0, description="Processing time that raises a slow-event alert"
    )


class ErrorLogConfig(BaseModel):
    """In-memory error log configuration."""

    max_entries: int = Field(default=1000, ge=1, le=1_000_000, description="Entries retained")


class PipelineConfig(BaseSettings):
    """Main pipeline configuration.

    All configuration values can be overridden using environment variables
    with the prefix CHAINHOOK_ (e.g., CHAINHOOK_BATCHING__BATCH_SIZE).
    """

    model_config = SettingsConfigDict(
        env_prefix="CHAINHOOK_",
        env_nested_delimiter="__",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    batching: BatchConfig = Field(default_factory=BatchConfig)
    routing: RoutingConfig = Field(default_factory=RoutingConfig)
    monitoring: MonitoringConfig = Field(default_factory=MonitoringConfig)
    tracking: TrackingConfig = Field(default_factory=TrackingConfig)
    error_log: ErrorLogConfig = Field(default_factory=ErrorLogConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @property
    def health_check_url(self) -> str:
        """Full URL probed by health checks."""
        return f"{self.monitoring.node_url}{self.monitoring.health_check_path}"


def _configuration_error(error: PydanticValidationError, prefix: str = "") -> ConfigurationError:
    first = error.errors()[0]
    config_key = ".".join(str(part) for part in (prefix, *first["loc"]) if part) or "config"
    return ConfigurationError(
        config_key,
        first["msg"],
        details={"error_count": error.error_count()},
    )


def load_config() -> PipelineConfig:
    """Build a configuration from the environment.

    Raises:
        ConfigurationError: If any value fails validation
    """
    try:
        return PipelineConfig()
    except PydanticValidationError as e:
        raise _configuration_error(e) from e


def load_monitoring_config(**values: Any) -> MonitoringConfig:
    """Validate monitoring settings supplied directly rather than from the environment.

    Raises:
        ConfigurationError: If any value fails validation
    """
    try:
        return MonitoringConfig.model_validate(values)
    except PydanticValidationError as e:
        raise _configuration_error(e, prefix="monitoring") from e


@lru_cache(maxsize=1)
def get_config() -> PipelineConfig:
    """Get the cached configuration instance.

    Returns:
        PipelineConfig: The configuration instance
    """
    return load_config()


def reload_config() -> PipelineConfig:
    """Clear the cache and re-read the environment.

    Returns:
        PipelineConfig: The new configuration instance
    """
    get_config.cache_clear()
    return get_config()
