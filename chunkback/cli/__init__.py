"""Command-line interface for Chunkback."""
