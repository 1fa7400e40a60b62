"""Persistence adapters for monitoring records."""

from __future__ import annotations

from .memory import (
    InMemoryAlertStore,
    InMemoryEventLogStore,
    InMemoryHealthStatusStore,
    InMemoryMetricsStore,
)

__all__ = [
    "InMemoryAlertStore",
    "InMemoryEventLogStore",
    "InMemoryHealthStatusStore",
    "InMemoryMetricsStore",
]
