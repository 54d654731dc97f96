"""Language parsers for corpus-metrics."""

from .rust import RustParser

__all__ = ["RustParser"]
