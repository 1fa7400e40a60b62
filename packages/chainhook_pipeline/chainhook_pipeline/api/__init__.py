"""HTTP API for the Chainhook pipeline."""
