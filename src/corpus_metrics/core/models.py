"""Data models for corpus-metrics."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from tree_sitter import Tree


@dataclass(frozen=True)
class SourceFile:
    """A parsed Rust source file.

    Attributes:
        path: POSIX path relative to the corpus root (unique within a corpus)
        tree: tree-sitter syntax tree (read-only for collectors)
        source: UTF-8 bytes the tree was parsed from
    """

    path: str
    tree: Tree = field(repr=False, compare=False)
    source: bytes = field(repr=False)

    @property
    def root(self):
        return self.tree.root_node


@dataclass
class RepoMetadata:
    """Identifies the analyzed revision."""

    url: str
    commit: str

    def to_dict(self) -> dict[str, str]:
        return {"url": self.url, "commit": self.commit}


@dataclass
class RepoResult:
    """Final report for one repository."""

    meta: RepoMetadata
    metrics: dict[str, Any]

    def to_dict(self) -> dict[str, Any]:
        return {"meta": self.meta.to_dict(), "metrics": self.metrics}
