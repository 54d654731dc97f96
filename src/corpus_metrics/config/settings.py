"""Analysis configuration loaded from YAML with environment overrides."""

from __future__ import annotations

import os
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any

import yaml

from ..core.exceptions import ConfigError
from .defaults import (
    DEFAULT_CACHE_DIR,
    DEFAULT_FETCH_CONCURRENCY,
    DEFAULT_HTTP_TIMEOUT,
    DEFAULT_RAW_CONTENT_PER_HOUR,
    ENV_CACHE_DIR,
    ENV_GITHUB_TOKEN,
    ENV_WORKERS,
    OBSERVER_CHOICES,
    OBSERVER_UNAGGREGATED,
)


@dataclass
class GitHubConfig:
    """Settings for the GitHub repository fetcher."""

    token: str | None = None
    cache_dir: Path = DEFAULT_CACHE_DIR
    concurrency: int = DEFAULT_FETCH_CONCURRENCY
    raw_content_per_hour: int = DEFAULT_RAW_CONTENT_PER_HOUR
    timeout: float = DEFAULT_HTTP_TIMEOUT

    def __post_init__(self) -> None:
        self.cache_dir = Path(self.cache_dir).expanduser()
        if self.concurrency < 1:
            raise ConfigError(
                "github.concurrency must be at least 1",
                {"value": self.concurrency},
            )
        if self.raw_content_per_hour < 1:
            raise ConfigError(
                "github.raw_content_per_hour must be at least 1",
                {"value": self.raw_content_per_hour},
            )


@dataclass
class AnalysisConfig:
    """Complete analysis configuration."""

    # "unaggregated" keeps raw samples, "histogram" keeps bucketed summaries
    observer: str = OBSERVER_UNAGGREGATED

    # Parallelize across files (collectors always run one after another)
    parallel: bool = True
    max_workers: int | None = None

    # Add the conventional metrics (cyclomatic, halstead, loc, ...) namespace
    include_code_analysis: bool = True

    github: GitHubConfig = field(default_factory=GitHubConfig)

    def __post_init__(self) -> None:
        if self.observer not in OBSERVER_CHOICES:
            raise ConfigError(
                f"observer must be one of {', '.join(OBSERVER_CHOICES)}",
                {"value": self.observer},
            )
        if self.max_workers is not None and self.max_workers < 1:
            raise ConfigError(
                "max_workers must be at least 1", {"value": self.max_workers}
            )

    @classmethod
    def load(cls, path: Path | None) -> AnalysisConfig:
        """Load configuration from a YAML file and apply environment overrides.

        Args:
            path: Path to YAML configuration file (None or missing = defaults)

        Returns:
            AnalysisConfig instance

        Raises:
            ConfigError: If the file is not valid YAML or has unknown keys
        """
        data: dict[str, Any] = {}
        if path is not None and path.exists():
            try:
                with open(path) as f:
                    data = yaml.safe_load(f) or {}
            except yaml.YAMLError as e:
                raise ConfigError(
                    f"Invalid YAML configuration: {e}", {"path": str(path)}
                ) from e
            if not isinstance(data, dict):
                raise ConfigError(
                    "Configuration root must be a mapping", {"path": str(path)}
                )

        config = cls.from_dict(data)
        config.apply_environment(os.environ)
        return config

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> AnalysisConfig:
        """Create config from dictionary.

        Args:
            data: Configuration dictionary

        Returns:
            AnalysisConfig instance
        """
        _reject_unknown_keys(cls, data, "")
        github_data = data.get("github") or {}
        _reject_unknown_keys(GitHubConfig, github_data, "github.")

        top_level = {k: v for k, v in data.items() if k != "github"}
        return cls(github=GitHubConfig(**github_data), **top_level)

    def apply_environment(self, environ: os._Environ[str] | dict[str, str]) -> None:
        """Override settings from environment variables."""
        token = environ.get(ENV_GITHUB_TOKEN)
        if token:
            self.github.token = token

        cache_dir = environ.get(ENV_CACHE_DIR)
        if cache_dir:
            self.github.cache_dir = Path(cache_dir).expanduser()

        workers = environ.get(ENV_WORKERS)
        if workers:
            try:
                self.max_workers = max(1, int(workers))
            except ValueError as e:
                raise ConfigError(
                    f"{ENV_WORKERS} must be an integer", {"value": workers}
                ) from e

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization (the token is never written)."""
        data = asdict(self)
        data["github"]["cache_dir"] = str(self.github.cache_dir)
        data["github"].pop("token", None)
        return data

    def save(self, path: Path) -> None:
        """Save configuration to YAML file."""
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w") as f:
            yaml.dump(self.to_dict(), f, default_flow_style=False, sort_keys=False)


def _reject_unknown_keys(cls: type, data: dict[str, Any], prefix: str) -> None:
    known = {f.name for f in fields(cls)}
    unknown = sorted(set(data) - known)
    if unknown:
        raise ConfigError(
            "Unknown configuration keys: "
            + ", ".join(f"{prefix}{key}" for key in unknown)
        )
