"""Infrastructure layer: logging, persistence and metrics export."""
