"""Command-line interface for corpus-metrics."""
