"""Monitoring infrastructure for the Chainhook pipeline."""

from __future__ import annotations

from .metrics import PipelineMetricsCollector

__all__ = ["PipelineMetricsCollector"]
