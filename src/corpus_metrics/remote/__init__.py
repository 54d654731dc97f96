"""GitHub repository fetching: HTTP client, rate limiting and disk cache."""

from .cache import ContentCache
from .github import GitHubFetcher, validate_repo_name
from .rate_limit import TokenBucket

__all__ = ["ContentCache", "GitHubFetcher", "TokenBucket", "validate_repo_name"]
