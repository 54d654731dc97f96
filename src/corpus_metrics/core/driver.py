"""Aggregation driver: run every collector over a corpus and build the report."""

from __future__ import annotations

import asyncio
import time
from collections.abc import Sequence
from concurrent.futures import Executor, ThreadPoolExecutor
from pathlib import Path
from typing import Any

from loguru import logger

from ..analysis.collectors import get_metric_collectors
from ..analysis.collectors.base import MetricCollector
from ..analysis.flatten import count_metrics
from ..analysis.observers import get_observer_factory
from ..config.defaults import LOCAL_MARKER
from ..config.settings import AnalysisConfig
from ..remote.github import GitHubFetcher, validate_repo_name
from .exceptions import CorpusMetricsError
from .models import RepoMetadata, RepoResult, SourceFile
from .source_loader import load_source_files


def collect_file_metrics(
    files: Sequence[SourceFile],
    collectors: Sequence[MetricCollector],
    executor: Executor | None = None,
) -> dict[str, Any]:
    """Run every collector over ``files``.

    Collectors run one after another in registry order; only the files of
    a single collector are spread over ``executor``.

    Args:
        files: Parsed source files
        collectors: Collectors to run (see ``get_metric_collectors``)
        executor: Optional executor for per-file work

    Returns:
        Aggregated metrics keyed by collector name, sorted by key
    """
    logger.info(f"Collecting metrics from {len(files)} files...")
    metrics: dict[str, Any] = {}
    for collector in collectors:
        start = time.perf_counter()
        metrics[collector.name] = collector.collect_metric(files, executor)
        elapsed = (time.perf_counter() - start) * 1000
        logger.debug(f"Collector {collector.name} finished in {elapsed:.1f}ms")

    metrics = dict(sorted(metrics.items()))
    logger.info(f"Collected {count_metrics(metrics)} repo metrics")
    return metrics


def build_collectors(config: AnalysisConfig) -> list[MetricCollector]:
    """Collectors selected by ``config`` (observer kind, code analysis)."""
    return get_metric_collectors(
        get_observer_factory(config.observer),
        include_code_analysis=config.include_code_analysis,
    )


def analyze_files(
    files: Sequence[SourceFile], config: AnalysisConfig
) -> dict[str, Any]:
    """Collect metrics for already parsed files.

    With ``config.parallel`` a single thread pool is created for the whole
    run and shared by all collectors.
    """
    collectors = build_collectors(config)
    if config.parallel and len(files) > 1:
        with ThreadPoolExecutor(max_workers=config.max_workers) as executor:
            return collect_file_metrics(files, collectors, executor)
    return collect_file_metrics(files, collectors)


def collect_local_repo(
    path: Path, config: AnalysisConfig | None = None
) -> RepoResult:
    """Collect metrics for a local git checkout.

    Args:
        path: Checkout root
        config: Analysis configuration (defaults when omitted)

    Returns:
        Report with ``<LOCAL>`` as both url and commit

    Raises:
        GitError: If ``path`` is not a usable git checkout
    """
    config = config or AnalysisConfig()
    logger.info(f"Loading files from {path}...")
    files = load_source_files(path)
    metrics = analyze_files(files, config)
    return RepoResult(RepoMetadata(url=LOCAL_MARKER, commit=LOCAL_MARKER), metrics)


async def collect_github_repo(
    repo: str,
    config: AnalysisConfig | None = None,
    fetcher: GitHubFetcher | None = None,
) -> RepoResult:
    """Collect metrics for the latest commit of a GitHub repository.

    Args:
        repo: Repository as ``owner/name``
        config: Analysis configuration (defaults when omitted)
        fetcher: Fetcher to reuse; a new one is created and closed otherwise

    Returns:
        Report whose metrics also contain ``repo_metrics``

    Raises:
        RemoteError: If fetching fails
    """
    config = config or AnalysisConfig()
    if fetcher is None:
        async with GitHubFetcher(config.github) as owned:
            return await collect_github_repo(repo, config, owned)

    repo = validate_repo_name(repo)
    logger.info(f"Downloading https://github.com/{repo}...")
    commit = await fetcher.get_latest_commit(repo)
    files = await fetcher.fetch_repo_files(repo, commit)

    metrics = await asyncio.to_thread(analyze_files, files, config)
    metrics["repo_metrics"] = await fetcher.get_repo_metrics(repo)
    metrics = dict(sorted(metrics.items()))
    logger.info(f"Collected {count_metrics(metrics)} total metrics for {repo}")

    meta = RepoMetadata(url=f"git@github.com:{repo}.git", commit=commit)
    return RepoResult(meta, metrics)


async def bulk_collect_github_repos(
    repos: Sequence[str],
    config: AnalysisConfig | None = None,
    fetcher: GitHubFetcher | None = None,
) -> list[RepoResult]:
    """Collect metrics for several repositories, one after another.

    The first failure aborts the run. The error is re-raised with the
    failing repository recorded in its context.
    """
    config = config or AnalysisConfig()
    if fetcher is None:
        async with GitHubFetcher(config.github) as owned:
            return await bulk_collect_github_repos(repos, config, owned)

    results: list[RepoResult] = []
    for index, repo in enumerate(repos, start=1):
        logger.info(f"[{index}/{len(repos)}] Collecting metrics for {repo}")
        try:
            results.append(await collect_github_repo(repo, config, fetcher))
        except CorpusMetricsError as e:
            e.context.setdefault("repo", repo)
            logger.error(f"Collecting metrics for {repo} failed: {e}")
            raise
    return results
