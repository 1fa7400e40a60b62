"""Chainhook event pipeline: batching, routing and monitoring of blockchain events."""

from chainhook_pipeline.version import __version__

__all__ = ["__version__"]
