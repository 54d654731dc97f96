"""corpus-metrics command line interface."""

from __future__ import annotations

import asyncio
import os
import sys
from pathlib import Path
from typing import Any

import typer
from loguru import logger

from .. import __version__
from ..analysis.flatten import flatten_metrics, get_metric_list
from ..config.defaults import (
    DEFAULT_CONFIG_FILENAME,
    ENV_LOG_LEVEL,
    OBSERVER_CHOICES,
    OBSERVER_UNAGGREGATED,
)
from ..config.settings import AnalysisConfig
from ..core.driver import (
    build_collectors,
    bulk_collect_github_repos,
    collect_file_metrics,
    collect_github_repo,
    collect_local_repo,
)
from ..core.exceptions import ConfigError, CorpusMetricsError
from ..core.models import RepoResult
from .output import print_error, print_info, write_json

app = typer.Typer(
    name="corpus-metrics",
    help="📊 Collect structural and complexity metrics for Rust code",
    add_completion=False,
    no_args_is_help=True,
)


def setup_logging(verbose: bool) -> None:
    """Send loguru output to stderr at the requested level."""
    level = "DEBUG" if verbose else os.environ.get(ENV_LOG_LEVEL, "INFO").upper()
    logger.remove()
    logger.add(sys.stderr, level=level)


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"corpus-metrics {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Enable debug logging"
    ),
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit",
    ),
) -> None:
    """📊 Collect structural and complexity metrics for Rust code.

    [bold cyan]Examples:[/bold cyan]

    [green]Analyze a local checkout:[/green]
        $ corpus-metrics collect-repo ./my-crate

    [green]Analyze the latest commit of a GitHub repository:[/green]
        $ corpus-metrics collect-github rust-lang/log --flat

    [green]Analyze a list of repositories:[/green]
        $ corpus-metrics collect-bulk repos.txt --output results.json
    """
    setup_logging(verbose)


def _load_config(config_file: Path | None) -> AnalysisConfig:
    if config_file is not None and not config_file.exists():
        raise ConfigError(
            "Configuration file does not exist", {"path": str(config_file)}
        )
    return AnalysisConfig.load(config_file or Path.cwd() / DEFAULT_CONFIG_FILENAME)


def _report(result: RepoResult, flat: bool) -> dict[str, Any]:
    data = result.to_dict()
    if flat:
        data["metrics"] = flatten_metrics(result.metrics)
    return data


def read_repo_list(list_file: Path) -> list[str]:
    """Repository names from a file with one ``owner/name`` per line.

    Blank lines and lines starting with ``#`` are ignored.
    """
    repos = []
    for line in list_file.read_text(encoding="utf-8").splitlines():
        line = line.strip()
        if line and not line.startswith("#"):
            repos.append(line)
    return repos


CONFIG_OPTION = typer.Option(
    None,
    "--config",
    "-c",
    help=f"YAML configuration file (default: ./{DEFAULT_CONFIG_FILENAME})",
    dir_okay=False,
)
OUTPUT_OPTION = typer.Option(
    None, "--output", "-o", help="Write JSON to this file instead of stdout"
)
FLAT_OPTION = typer.Option(
    False, "--flat", help="Replace nested metrics with dotted-path leaves"
)


@app.command("collect-repo")
def collect_repo(
    path: Path = typer.Argument(
        ...,
        help="Path to the checked out repository",
        exists=True,
        file_okay=False,
        dir_okay=True,
        readable=True,
    ),
    flat: bool = FLAT_OPTION,
    config_file: Path | None = CONFIG_OPTION,
    sequential: bool = typer.Option(
        False, "--sequential", help="Process files on a single thread"
    ),
    output: Path | None = OUTPUT_OPTION,
) -> None:
    """Collect metrics for a checked out repository."""
    try:
        config = _load_config(config_file)
        if sequential:
            config.parallel = False
        result = collect_local_repo(path, config)
        write_json(_report(result, flat), output)
    except CorpusMetricsError as e:
        logger.debug(f"collect-repo failed: {e!r}")
        print_error(f"Collecting metrics failed: {e}")
        raise typer.Exit(1) from None


@app.command("collect-github")
def collect_github(
    name: str = typer.Argument(..., help="Repository as owner/name"),
    token: str | None = typer.Option(
        None,
        "--token",
        help="GitHub token (defaults to $GITHUB_TOKEN)",
        show_default=False,
    ),
    cache_dir: Path | None = typer.Option(
        None, "--cache-dir", help="Directory for cached GitHub responses"
    ),
    flat: bool = FLAT_OPTION,
    config_file: Path | None = CONFIG_OPTION,
    output: Path | None = OUTPUT_OPTION,
) -> None:
    """Collect metrics for the latest commit of a GitHub repository."""
    try:
        config = _load_config(config_file)
        _apply_github_options(config, token, cache_dir)
        result = asyncio.run(collect_github_repo(name, config))
        write_json(_report(result, flat), output)
    except CorpusMetricsError as e:
        logger.debug(f"collect-github failed: {e!r}")
        print_error(f"Collecting metrics for {name} failed: {e}")
        raise typer.Exit(1) from None


@app.command("collect-bulk")
def collect_bulk(
    list_file: Path = typer.Argument(
        ...,
        help="File with one owner/name per line (# starts a comment)",
        exists=True,
        dir_okay=False,
        readable=True,
    ),
    token: str | None = typer.Option(
        None,
        "--token",
        help="GitHub token (defaults to $GITHUB_TOKEN)",
        show_default=False,
    ),
    cache_dir: Path | None = typer.Option(
        None, "--cache-dir", help="Directory for cached GitHub responses"
    ),
    flat: bool = FLAT_OPTION,
    config_file: Path | None = CONFIG_OPTION,
    output: Path | None = OUTPUT_OPTION,
) -> None:
    """Collect metrics for every repository listed in LIST_FILE."""
    repos = read_repo_list(list_file)
    if not repos:
        print_error(f"No repositories listed in {list_file}")
        raise typer.Exit(1)

    try:
        config = _load_config(config_file)
        _apply_github_options(config, token, cache_dir)
        print_info(f"Collecting metrics for {len(repos)} repositories")
        results = asyncio.run(bulk_collect_github_repos(repos, config))
        write_json([_report(result, flat) for result in results], output)
    except CorpusMetricsError as e:
        logger.debug(f"collect-bulk failed: {e!r}")
        print_error(f"Bulk collection failed: {e}")
        raise typer.Exit(1) from None


@app.command("list-metrics")
def list_metrics(
    observer: str = typer.Option(
        OBSERVER_UNAGGREGATED,
        "--observer",
        help=f"Observer kind ({', '.join(OBSERVER_CHOICES)})",
    ),
    code_analysis: bool = typer.Option(
        True,
        "--code-analysis/--no-code-analysis",
        help="Include the code_analysis metrics",
    ),
) -> None:
    """List the dotted names of every metric a report contains."""
    try:
        config = AnalysisConfig(
            observer=observer, include_code_analysis=code_analysis
        )
    except ConfigError as e:
        print_error(str(e))
        raise typer.Exit(1) from None

    metrics = collect_file_metrics([], build_collectors(config))
    for name in get_metric_list(metrics):
        typer.echo(name)


def _apply_github_options(
    config: AnalysisConfig, token: str | None, cache_dir: Path | None
) -> None:
    if token:
        config.github.token = token
    if cache_dir is not None:
        config.github.cache_dir = cache_dir.expanduser()


if __name__ == "__main__":
    app()
