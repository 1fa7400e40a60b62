"""Command line interface for the Chainhook pipeline."""
