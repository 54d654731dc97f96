"""Shared fixtures for corpus-metrics tests."""

from __future__ import annotations

import shutil
import subprocess
import textwrap
from collections.abc import Callable
from pathlib import Path

import pytest

from corpus_metrics.core.models import SourceFile
from corpus_metrics.parsers.rust import RustParser


@pytest.fixture(scope="session")
def rust_parser() -> RustParser:
    """One real tree-sitter Rust parser for the whole session."""
    return RustParser()


@pytest.fixture
def parse_rust(rust_parser: RustParser) -> Callable[..., SourceFile]:
    """Parse dedented Rust source into a ``SourceFile``."""

    def _parse(code: str, path: str = "src/lib.rs") -> SourceFile:
        source = textwrap.dedent(code).encode("utf-8")
        return SourceFile(path=path, tree=rust_parser.parse(source, path), source=source)

    return _parse


@pytest.fixture
def find_nodes() -> Callable:
    """Return every node of the given type, in source order."""

    def _find(file: SourceFile, node_type: str) -> list:
        found = []
        stack = [file.tree.root_node]
        while stack:
            node = stack.pop()
            if node.type == node_type:
                found.append(node)
            stack.extend(reversed(node.children))
        return found

    return _find


def _git(cwd: Path, *args: str) -> None:
    subprocess.run(["git", *args], cwd=cwd, check=True, capture_output=True)


@pytest.fixture
def git_repo(tmp_path: Path) -> Callable[[dict[str, str | bytes]], Path]:
    """Create a git repository with the given files tracked."""
    if shutil.which("git") is None:
        pytest.skip("git is not installed")

    def _create(files: dict[str, str | bytes], untracked: dict[str, str] | None = None) -> Path:
        repo = tmp_path / "repo"
        repo.mkdir()
        _git(repo, "init", "-q")
        for relative, content in files.items():
            path = repo / relative
            path.parent.mkdir(parents=True, exist_ok=True)
            if isinstance(content, bytes):
                path.write_bytes(content)
            else:
                path.write_text(textwrap.dedent(content))
        _git(repo, "add", "-A")
        for relative, content in (untracked or {}).items():
            path = repo / relative
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(content)
        return repo

    return _create
