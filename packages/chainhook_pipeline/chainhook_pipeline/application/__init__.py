"""Application layer: batching, routing and monitoring services."""
