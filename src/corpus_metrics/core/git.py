"""Git integration for the local source loader.

Only files tracked by git are analyzed, so build outputs, vendored
checkouts and other ignored files never enter the corpus.

Error Handling:
    - GitNotAvailableError: Git binary not found in PATH
    - GitNotRepoError: Directory is not inside a git work tree
    - GitError: Any other git failure
"""

import subprocess
from pathlib import Path

from loguru import logger

from .exceptions import CorpusMetricsError


class GitError(CorpusMetricsError):
    """Base exception for git-related errors."""

    pass


class GitNotAvailableError(GitError):
    """Git binary is not available in PATH."""

    pass


class GitNotRepoError(GitError):
    """Directory is not a git repository."""

    pass


class GitManager:
    """Thin wrapper around the git commands the loader needs.

    Example:
        >>> manager = GitManager(Path("/path/to/repo"))
        >>> files = manager.list_tracked_files(".rs")
    """

    def __init__(self, project_root: Path):
        """Initialize git manager.

        Args:
            project_root: Root directory of the checkout

        Raises:
            GitNotAvailableError: If git binary is not available
            GitNotRepoError: If project_root is not a git repository
        """
        self.project_root = project_root.resolve()

        if not self.is_git_available():
            raise GitNotAvailableError("Git binary not found in PATH")

        if not self.is_git_repo():
            raise GitNotRepoError(
                f"Not a git repository: {self.project_root}",
                {"path": str(self.project_root)},
            )

    def is_git_available(self) -> bool:
        """Check if git command is available in PATH."""
        try:
            subprocess.run(  # nosec B607 - git is intentionally called via PATH
                ["git", "--version"],
                capture_output=True,
                check=True,
                timeout=5,
            )
            return True
        except (
            subprocess.CalledProcessError,
            FileNotFoundError,
            subprocess.TimeoutExpired,
        ):
            return False

    def is_git_repo(self) -> bool:
        """Check if project directory is inside a git work tree."""
        try:
            subprocess.run(  # nosec B607 - git is intentionally called via PATH
                ["git", "rev-parse", "--git-dir"],
                cwd=self.project_root,
                capture_output=True,
                check=True,
                timeout=5,
            )
            return True
        except (
            subprocess.CalledProcessError,
            FileNotFoundError,
            subprocess.TimeoutExpired,
        ):
            return False

    def list_tracked_files(self, extension: str) -> list[str]:
        """List tracked files with the given extension.

        Args:
            extension: File suffix including the dot (e.g. ``".rs"``)

        Returns:
            Sorted POSIX paths relative to the project root

        Raises:
            GitError: If ``git ls-files`` fails
        """
        try:
            result = subprocess.run(  # nosec B607 - git is intentionally called via PATH
                ["git", "ls-files", "-z", "--cached"],
                cwd=self.project_root,
                capture_output=True,
                check=True,
                timeout=60,
            )
        except subprocess.CalledProcessError as e:
            stderr = e.stderr.decode("utf-8", errors="replace").strip()
            raise GitError(
                f"git ls-files failed: {stderr}", {"path": str(self.project_root)}
            ) from e
        except subprocess.TimeoutExpired as e:
            raise GitError(
                "git ls-files timed out", {"path": str(self.project_root)}
            ) from e

        paths = [
            entry
            for entry in result.stdout.decode("utf-8", errors="replace").split("\0")
            if entry and entry.endswith(extension)
        ]
        logger.debug(f"git ls-files: {len(paths)} tracked {extension} files")
        return sorted(paths)
