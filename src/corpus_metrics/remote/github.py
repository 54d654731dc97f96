"""GitHub repository fetcher.

Downloads the ``.rs`` files of a repository at its latest commit and the
repository statistics reported under ``repo_metrics``.

Requests go through two token buckets: the REST API bucket is sized from
``/rate_limit`` on first use, and raw file downloads use a separate hourly
quota. Every tree listing and file body is cached on disk by commit, so a
second run over the same commit does not touch the network.
"""

from __future__ import annotations

import asyncio
import re
from typing import Any
from urllib.parse import quote

import httpx
import orjson
from loguru import logger

from .. import __version__
from ..config.defaults import (
    DEFAULT_API_PER_HOUR,
    GITHUB_API_URL,
    GITHUB_RAW_URL,
    RUST_FILE_EXTENSION,
)
from ..config.settings import GitHubConfig
from ..core.exceptions import FetchError, RateLimitError
from ..core.models import SourceFile
from ..core.source_loader import parse_sources
from ..parsers.rust import RustParser
from .cache import ContentCache
from .rate_limit import TokenBucket

_REPO_NAME_RE = re.compile(r"^[A-Za-z0-9_.-]+/[A-Za-z0-9_.-]+$")

REPO_METRIC_FIELDS = {
    "stars": "stargazers_count",
    "watchers": "watchers_count",
    "forks": "forks_count",
    "open_issues": "open_issues_count",
    "size": "size",
}


def validate_repo_name(repo: str) -> str:
    """Check that ``repo`` has the ``owner/name`` form.

    Raises:
        FetchError: If the name is malformed
    """
    repo = repo.strip()
    if not _REPO_NAME_RE.match(repo):
        raise FetchError(
            "Repository must be given as owner/name",
            {"operation": "validate", "repo": repo},
        )
    return repo


class GitHubFetcher:
    """Rate-limited, cached client for the GitHub REST API and raw content.

    Use as an async context manager so the HTTP client is closed:

        async with GitHubFetcher(config.github) as fetcher:
            commit = await fetcher.get_latest_commit("rust-lang/log")
            files = await fetcher.fetch_repo_files("rust-lang/log", commit)
    """

    def __init__(
        self,
        config: GitHubConfig,
        transport: httpx.AsyncBaseTransport | None = None,
        api_url: str = GITHUB_API_URL,
        raw_url: str = GITHUB_RAW_URL,
    ) -> None:
        """Initialize the fetcher.

        Args:
            config: Token, cache directory, concurrency and quota settings
            transport: Optional httpx transport (tests pass a MockTransport)
            api_url: Base URL of the REST API
            raw_url: Base URL for raw file contents
        """
        self.config = config
        self.api_url = api_url.rstrip("/")
        self.raw_url = raw_url.rstrip("/")

        headers = {
            "Accept": "application/vnd.github+json",
            "User-Agent": f"corpus-metrics/{__version__}",
        }
        if config.token:
            headers["Authorization"] = f"Bearer {config.token}"

        self._client = httpx.AsyncClient(
            headers=headers,
            timeout=config.timeout,
            follow_redirects=True,
            transport=transport,
        )
        self.cache = ContentCache(config.cache_dir)
        self._semaphore = asyncio.Semaphore(config.concurrency)
        self._raw_bucket = TokenBucket(config.raw_content_per_hour)
        self._api_bucket: TokenBucket | None = None

    async def __aenter__(self) -> GitHubFetcher:
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.close()

    async def close(self) -> None:
        await self._client.aclose()

    # ------------------------------------------------------------------
    # HTTP plumbing
    # ------------------------------------------------------------------

    async def _get(
        self,
        url: str,
        context: dict[str, Any],
        params: dict[str, Any] | None = None,
    ) -> httpx.Response:
        try:
            response = await self._client.get(url, params=params)
        except httpx.HTTPError as e:
            raise FetchError(f"Request failed: {e}", context) from e

        if response.status_code in (403, 429) and (
            response.headers.get("x-ratelimit-remaining") == "0"
            or "retry-after" in response.headers
        ):
            raise RateLimitError(
                "GitHub rate limit exceeded",
                {
                    **context,
                    "status": response.status_code,
                    "reset": response.headers.get("x-ratelimit-reset"),
                },
            )
        if response.is_error:
            raise FetchError(
                f"GitHub returned HTTP {response.status_code}",
                {**context, "status": response.status_code},
            )
        return response

    @staticmethod
    def _json(response: httpx.Response, context: dict[str, Any]) -> Any:
        try:
            return orjson.loads(response.content)
        except orjson.JSONDecodeError as e:
            raise FetchError("Response is not valid JSON", context) from e

    async def _api_limiter(self) -> TokenBucket:
        if self._api_bucket is None:
            self._api_bucket = await self._create_api_bucket()
        return self._api_bucket

    async def _create_api_bucket(self) -> TokenBucket:
        # /rate_limit does not count against the quota
        context = {"operation": "rate_limit"}
        response = await self._get(f"{self.api_url}/rate_limit", context)
        data = self._json(response, context)
        try:
            core = data["resources"]["core"]
            limit = int(core["limit"])
            remaining = int(core["remaining"])
        except (KeyError, TypeError, ValueError) as e:
            raise FetchError("Unexpected /rate_limit payload", context) from e

        logger.info(f"GitHub API quota: {remaining}/{limit} requests remaining")
        return TokenBucket(limit or DEFAULT_API_PER_HOUR, tokens=remaining)

    async def _api_get(
        self,
        path: str,
        context: dict[str, Any],
        params: dict[str, Any] | None = None,
    ) -> httpx.Response:
        bucket = await self._api_limiter()
        await bucket.acquire()
        return await self._get(f"{self.api_url}{path}", context, params)

    # ------------------------------------------------------------------
    # Repository data
    # ------------------------------------------------------------------

    async def get_latest_commit(self, repo: str) -> str:
        """SHA of the newest commit on the default branch.

        Raises:
            FetchError: If the repository has no commits or the request fails
        """
        repo = validate_repo_name(repo)
        context = {"operation": "get_latest_commit", "repo": repo}
        response = await self._api_get(
            f"/repos/{repo}/commits", context, params={"per_page": 1}
        )
        commits = self._json(response, context)
        if not isinstance(commits, list) or not commits:
            raise FetchError("Repository has no commits", context)
        try:
            return commits[0]["sha"]
        except (KeyError, TypeError) as e:
            raise FetchError("Unexpected commit payload", context) from e

    async def get_repo_tree(self, repo: str, commit: str) -> list[dict[str, Any]]:
        """Every entry of the repository tree at ``commit``.

        Entry paths are relative to the repository root. When GitHub
        truncates the recursive listing, the tree is walked one subtree at a
        time instead.
        """
        repo = validate_repo_name(repo)
        cache_key = f"tree/{repo}/{commit}"
        cached = await self.cache.get(cache_key)
        if cached is not None:
            logger.debug(f"Using cached tree for {repo}@{commit[:12]}")
            return cached

        context = {"operation": "get_repo_tree", "repo": repo, "path": commit}
        response = await self._api_get(
            f"/repos/{repo}/git/trees/{commit}", context, params={"recursive": 1}
        )
        data = self._json(response, context)
        if data.get("truncated"):
            logger.warning(
                f"Tree listing for {repo} was truncated, walking subtrees instead"
            )
            entries = await self._walk_tree(repo, commit)
        else:
            entries = data.get("tree", [])

        await self.cache.set(cache_key, entries)
        return entries

    async def _walk_tree(self, repo: str, commit: str) -> list[dict[str, Any]]:
        entries: list[dict[str, Any]] = []
        pending = [("", commit)]
        while pending:
            prefix, sha = pending.pop()
            context = {"operation": "get_repo_tree", "repo": repo, "path": prefix}
            response = await self._api_get(
                f"/repos/{repo}/git/trees/{sha}", context
            )
            for entry in self._json(response, context).get("tree", []):
                path = f"{prefix}{entry['path']}"
                entries.append({**entry, "path": path})
                if entry.get("type") == "tree":
                    pending.append((f"{path}/", entry["sha"]))
        return sorted(entries, key=lambda entry: entry["path"])

    async def get_file(self, repo: str, commit: str, path: str) -> bytes:
        """Raw bytes of one file at ``commit``."""
        cache_key = f"file/{repo}/{commit}/{path}"
        cached = await self.cache.get(cache_key)
        if cached is not None:
            return cached.encode("utf-8")

        context = {"operation": "get_file", "repo": repo, "path": path}
        async with self._semaphore:
            await self._raw_bucket.acquire()
            response = await self._get(
                f"{self.raw_url}/{repo}/{commit}/{quote(path)}", context
            )
        content = response.content
        try:
            text = content.decode("utf-8")
        except UnicodeDecodeError:
            # the loader reports the encoding problem
            return content
        await self.cache.set(cache_key, text)
        return content

    async def fetch_repo_files(
        self, repo: str, commit: str, parser: RustParser | None = None
    ) -> list[SourceFile]:
        """Download and parse every ``.rs`` blob of the repository.

        Returns:
            Parsed files sorted by path (files that fail to parse are skipped)
        """
        repo = validate_repo_name(repo)
        tree = await self.get_repo_tree(repo, commit)
        blobs = [
            entry
            for entry in tree
            if entry.get("type") == "blob"
            and entry["path"].endswith(RUST_FILE_EXTENSION)
        ]
        wanted = sorted(entry["path"] for entry in blobs)
        total_size = sum(entry.get("size") or 0 for entry in blobs)
        logger.info(
            f"Downloading {len(wanted)} Rust files ({total_size} bytes) from {repo}"
        )

        contents = await asyncio.gather(
            *(self.get_file(repo, commit, path) for path in wanted)
        )
        logger.debug(f"Cache stats: {self.cache.stats}")
        return parse_sources(zip(wanted, contents), parser)

    async def get_repo_info(self, repo: str) -> dict[str, Any]:
        """Repository payload of ``GET /repos/{owner}/{name}``."""
        repo = validate_repo_name(repo)
        context = {"operation": "get_repo_info", "repo": repo}
        response = await self._api_get(f"/repos/{repo}", context)
        info = self._json(response, context)
        if not isinstance(info, dict):
            raise FetchError("Unexpected repository payload", context)
        return info

    async def get_commit_count(self, repo: str) -> int:
        """Number of commits on the default branch.

        With one commit per page, the page number of the ``last`` link equals
        the commit count.
        """
        repo = validate_repo_name(repo)
        context = {"operation": "get_commit_count", "repo": repo}
        response = await self._api_get(
            f"/repos/{repo}/commits", context, params={"per_page": 1}
        )
        last = response.links.get("last")
        if last is None:
            # everything fits on the first page
            return len(self._json(response, context))

        page = httpx.URL(last["url"]).params.get("page")
        if page is None or not page.isdigit():
            raise FetchError("Cannot read commit count from Link header", context)
        return int(page)

    async def get_repo_metrics(self, repo: str) -> dict[str, int]:
        """Stars, watchers, forks, open issues, size and commit count."""
        info = await self.get_repo_info(repo)
        try:
            metrics = {
                name: int(info[field]) for name, field in REPO_METRIC_FIELDS.items()
            }
        except (KeyError, TypeError, ValueError) as e:
            raise FetchError(
                "Repository payload is missing statistics",
                {"operation": "get_repo_metrics", "repo": repo},
            ) from e
        metrics["commit_count"] = await self.get_commit_count(repo)
        return metrics
