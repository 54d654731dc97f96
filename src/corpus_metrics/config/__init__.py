"""Configuration for corpus-metrics."""

from .settings import AnalysisConfig, GitHubConfig

__all__ = ["AnalysisConfig", "GitHubConfig"]
