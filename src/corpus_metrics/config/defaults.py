"""Default configurations for corpus-metrics."""

from pathlib import Path

# Only Rust sources are analyzed
RUST_FILE_EXTENSION = ".rs"

# tree-sitter-language-pack grammar name
RUST_LANGUAGE = "rust"

# Marker written to `meta` when analyzing a local checkout
LOCAL_MARKER = "<LOCAL>"

# Observer strategies selectable from configuration
OBSERVER_UNAGGREGATED = "unaggregated"
OBSERVER_HISTOGRAM = "histogram"
OBSERVER_CHOICES = (OBSERVER_UNAGGREGATED, OBSERVER_HISTOGRAM)

# Histogram bucket counts (values >= N land in the overflow bucket)
DEFAULT_BUCKETS = 64
SMALL_BUCKETS = 32
STATEMENT_BUCKETS = 16
COHESION_BUCKETS = 8

# GitHub access
GITHUB_API_URL = "https://api.github.com"
GITHUB_RAW_URL = "https://raw.githubusercontent.com"
DEFAULT_FETCH_CONCURRENCY = 16
DEFAULT_RAW_CONTENT_PER_HOUR = 5000
DEFAULT_API_PER_HOUR = 60  # unauthenticated quota, replaced by /rate_limit
RATE_LIMIT_WINDOW_SECONDS = 3600.0
DEFAULT_HTTP_TIMEOUT = 30.0

DEFAULT_CACHE_DIR = Path.home() / ".cache" / "corpus-metrics"
DEFAULT_CONFIG_FILENAME = "corpus-metrics.yaml"

# Environment overrides
ENV_GITHUB_TOKEN = "GITHUB_TOKEN"
ENV_WORKERS = "CORPUS_METRICS_WORKERS"
ENV_CACHE_DIR = "CORPUS_METRICS_CACHE_DIR"
ENV_LOG_LEVEL = "CORPUS_METRICS_LOG_LEVEL"
