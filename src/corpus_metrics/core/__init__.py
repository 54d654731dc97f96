"""Core functionality for corpus-metrics."""

from .exceptions import (
    CacheError,
    CollectorInvariantError,
    ConfigError,
    CorpusMetricsError,
    FetchError,
    InputError,
    InternalError,
    MetricShapeError,
    ParsingError,
    RateLimitError,
    RemoteError,
    SourceLoadError,
)
from .git import GitError, GitManager, GitNotAvailableError, GitNotRepoError
from .models import RepoMetadata, RepoResult, SourceFile

__all__ = [
    # Exceptions
    "CacheError",
    "CollectorInvariantError",
    "ConfigError",
    "CorpusMetricsError",
    "FetchError",
    "InputError",
    "InternalError",
    "MetricShapeError",
    "ParsingError",
    "RateLimitError",
    "RemoteError",
    "SourceLoadError",
    # Git
    "GitError",
    "GitManager",
    "GitNotAvailableError",
    "GitNotRepoError",
    # Models
    "RepoMetadata",
    "RepoResult",
    "SourceFile",
]
