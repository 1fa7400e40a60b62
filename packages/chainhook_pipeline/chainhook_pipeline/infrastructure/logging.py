"""Logging setup shared by the pipeline services.

Services log through ``get_logger(__name__)`` and pass their context with
``extra=``. Batcher, router and health monitor records carry ``batcher``,
``router`` or ``node_url``; ``ComponentFilter`` turns those into a single
``component`` label (``batcher:chainhook``, ``router:chainhook``,
``node:http://...``). Batcher and router labels match their Prometheus
``component`` label.
"""

from __future__ import annotations

import json
import logging
import logging.handlers
import sys
from datetime import UTC, datetime
from enum import Enum
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, field_validator

DEFAULT_COMPONENT = "pipeline"
DEFAULT_SERVICE_NAME = "chainhook-pipeline"

# Context keys, in priority order, that name the component a record came from.
_COMPONENT_KEYS = (("batcher", "batcher"), ("router", "router"), ("node_url", "node"))

_RECORD_ATTRIBUTES = frozenset(vars(logging.LogRecord("", 0, "", 0, "", (), None))) | {
    "message",
    "asctime",
    "component",
}


class LogLevel(str, Enum):
    """Valid log levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class LoggingConfig(BaseModel):
    """Logging settings, nested under ``CHAINHOOK_LOGGING__*``."""

    level: LogLevel = Field(default=LogLevel.INFO, description="Root log level")
    format: str = Field(
        default="%(asctime)s - %(name)s - %(levelname)s - [%(component)s] %(message)s",
        description="Text format; %(component)s is filled in by ComponentFilter",
    )
    date_format: str = Field(default="%Y-%m-%d %H:%M:%S", description="Timestamp format")
    service_name: str = Field(
        default=DEFAULT_SERVICE_NAME, min_length=1, description="Service name in JSON records"
    )
    console_enabled: bool = Field(default=True, description="Log to stdout")
    file_enabled: bool = Field(default=False, description="Log to a rotating file")
    file_path: Path | None = Field(default=None, description="Log file path")
    max_bytes: int = Field(default=10_485_760, ge=1_048_576, description="Rotation size in bytes")
    backup_count: int = Field(default=5, ge=1, le=100, description="Rotated files to keep")
    json_format: bool = Field(default=False, description="Emit one JSON object per line")

    @field_validator("file_path")
    @classmethod
    def validate_file_path(cls, v: Path | None) -> Path | None:
        """Create the log directory if needed."""
        if v is not None:
            v.parent.mkdir(parents=True, exist_ok=True)
        return v


def component_label(record: logging.LogRecord) -> str:
    """Name the batcher, router or node a record is about."""
    for key, prefix in _COMPONENT_KEYS:
        value = getattr(record, key, None)
        if value:
            return f"{prefix}:{value}"
    return DEFAULT_COMPONENT


class ComponentFilter(logging.Filter):
    """Stamp ``record.component`` so formatters can reference it."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not getattr(record, "component", None):
            record.component = component_label(record)
        return True


class StructuredFormatter(logging.Formatter):
    """One JSON object per record.

    Context passed through ``extra`` becomes top-level keys next to
    ``service`` and ``component``.
    """

    def __init__(self, service_name: str = DEFAULT_SERVICE_NAME) -> None:
        super().__init__()
        self.service_name = service_name

    def format(self, record: logging.LogRecord) -> str:
        log_data: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, UTC).isoformat(),
            "level": record.levelname,
            "service": self.service_name,
            "component": getattr(record, "component", None) or component_label(record),
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        for key, value in record.__dict__.items():
            if key not in _RECORD_ATTRIBUTES:
                log_data[key] = value

        return json.dumps(log_data, default=str)


def setup_logging(config: LoggingConfig | None = None) -> None:
    """Replace the root handlers according to ``config``.

    Args:
        config: Logging configuration. If None, uses defaults.
    """
    if config is None:
        config = LoggingConfig()

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(config.level.value)

    formatter: logging.Formatter
    if config.json_format:
        formatter = StructuredFormatter(config.service_name)
    else:
        formatter = logging.Formatter(config.format, datefmt=config.date_format)

    handlers: list[logging.Handler] = []
    if config.console_enabled:
        handlers.append(logging.StreamHandler(sys.stdout))
    if config.file_enabled and config.file_path:
        handlers.append(
            logging.handlers.RotatingFileHandler(
                filename=config.file_path,
                maxBytes=config.max_bytes,
                backupCount=config.backup_count,
                encoding="utf-8",
            )
        )

    for handler in handlers:
        handler.addFilter(ComponentFilter())
        handler.setFormatter(formatter)
        root_logger.addHandler(handler)

    logging.getLogger(__name__).info(
        "Logging configured",
        extra={
            "log_level": config.level.value,
            "json_format": config.json_format,
            "service_name": config.service_name,
        },
    )


def get_logger(name: str) -> logging.Logger:
    """Return the module logger for ``name`` (usually ``__name__``)."""
    return logging.getLogger(name)
