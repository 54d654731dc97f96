"""Typed exception hierarchy for corpus-metrics.

Hierarchy
---------
CorpusMetricsError (base)
├── InputError                – problems with a single source file (recoverable)
│   ├── SourceLoadError       – unreadable file / invalid encoding
│   └── ParsingError          – tree-sitter reported a syntax error
├── InternalError             – defects in a collector (never caught by the core)
│   ├── CollectorInvariantError
│   └── MetricShapeError
├── RemoteError               – repository fetcher failures (not retried)
│   ├── FetchError
│   ├── RateLimitError
│   └── CacheError
└── ConfigError               – configuration / validation errors

Input errors are skipped and logged by the source loader. Internal errors
abort the run: they mean a collector produced numbers that cannot be trusted.
Remote errors carry the operation, repository and path in ``context`` and are
surfaced to the CLI as a non-zero exit.
"""

from typing import Any


class CorpusMetricsError(Exception):
    """Base exception for corpus-metrics."""

    def __init__(self, message: str, context: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.context = context or {}

    def __str__(self) -> str:
        message = super().__str__()
        if not self.context:
            return message
        details = ", ".join(f"{key}={value}" for key, value in self.context.items())
        return f"{message} ({details})"


# ── Input layer ─────────────────────────────────────────────────────────


class InputError(CorpusMetricsError):
    """A single source file could not be turned into a syntax tree."""

    pass


class SourceLoadError(InputError):
    """File could not be read or is not valid UTF-8."""

    pass


class ParsingError(InputError):
    """Source text did not parse cleanly."""

    pass


# ── Internal invariants ─────────────────────────────────────────────────


class InternalError(CorpusMetricsError):
    """A collector broke one of its own invariants."""

    pass


class CollectorInvariantError(InternalError):
    """Collector state is inconsistent (e.g. a callable with zero depth)."""

    pass


class MetricShapeError(InternalError):
    """Aggregated metric JSON has a shape the flatten utility does not know."""

    pass


# ── Remote layer ────────────────────────────────────────────────────────


class RemoteError(CorpusMetricsError):
    """Repository fetcher failure."""

    pass


class FetchError(RemoteError):
    """HTTP request failed or returned an unexpected payload."""

    pass


class RateLimitError(RemoteError):
    """Rate limit quota could not be satisfied."""

    pass


class CacheError(RemoteError):
    """On-disk content cache could not be read or written."""

    pass


# ── Configuration layer ─────────────────────────────────────────────────


class ConfigError(CorpusMetricsError):
    """Configuration / validation errors."""

    pass
