"""corpus-metrics - structural and complexity metrics for Rust code corpora."""

__version__ = "0.3.0"

from .core.exceptions import CorpusMetricsError

__all__ = ["CorpusMetricsError", "__version__"]
