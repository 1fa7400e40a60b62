"""Version information for chainhook_pipeline."""

__version__ = "0.1.0"
