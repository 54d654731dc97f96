"""Base abstractions for metric collectors.

A collector turns every ``SourceFile`` of a corpus into a private per-file
metric and then merges those metrics into one JSON-serializable value. The
registry and the driver only see the ``MetricCollector`` interface:
``name`` and ``collect_metric(files)``.

Most collectors are tree visitors. ``TreeVisitor`` walks a tree-sitter tree
with an explicit stack so that deeply nested input cannot exhaust the Python
call stack, and ``VisitorCollector`` binds a visitor class to the collector
contract.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable, Iterable, Sequence
from concurrent.futures import Executor
from typing import TYPE_CHECKING, Any, Generic, TypeVar

from ..observers import reduce_monoid

if TYPE_CHECKING:
    from tree_sitter import Node

    from ...core.models import SourceFile

MetricT = TypeVar("MetricT")
VisitorT = TypeVar("VisitorT", bound="TreeVisitor")


def to_json(value: Any) -> Any:
    """Convert an aggregated metric to plain JSON-compatible data."""
    if hasattr(value, "to_json"):
        return value.to_json()
    return value


class MetricCollector(ABC, Generic[MetricT]):
    """Abstract base class for corpus metric collectors.

    Subclasses implement per-file extraction and cross-file aggregation.
    Per-file metrics must not share mutable state, so ``collect_file`` can run
    on several files at once.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Unique output key of this collector."""
        pass

    @abstractmethod
    def collect_file(self, file: SourceFile) -> MetricT:
        """Extract the per-file metric for one source file."""
        pass

    @abstractmethod
    def aggregate_metrics(self, metrics: Sequence[MetricT]) -> Any:
        """Merge per-file metrics into one aggregated metric."""
        pass

    def collect_metric(
        self, files: Sequence[SourceFile], executor: Executor | None = None
    ) -> Any:
        """Collect and aggregate this metric over ``files``.

        Args:
            files: Parsed source files
            executor: Optional executor used to process files concurrently
                (``Executor.map`` keeps input order)

        Returns:
            JSON-serializable aggregated metric
        """
        if executor is None:
            per_file = [self.collect_file(file) for file in files]
        else:
            per_file = list(executor.map(self.collect_file, files))
        return to_json(self.aggregate_metrics(per_file))

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r})"


class TreeVisitor:
    """Iterative pre/post-order walker over a tree-sitter tree.

    Override ``enter`` to inspect a node (return False to skip its
    children), ``leave`` to run code after all children were visited, and
    ``children`` to restrict which children are walked.
    """

    def enter(self, node: Node) -> bool:
        return True

    def leave(self, node: Node) -> None:
        pass

    def children(self, node: Node) -> Iterable[Node]:
        return node.children

    def walk(self, root: Node) -> None:
        stack: list[tuple[Node, bool]] = [(root, False)]
        while stack:
            node, leaving = stack.pop()
            if leaving:
                self.leave(node)
                continue
            descend = self.enter(node)
            stack.append((node, True))
            if descend:
                children = list(self.children(node))
                stack.extend((child, False) for child in reversed(children))

    def visit_file(self, file: SourceFile) -> None:
        self.walk(file.tree.root_node)


class VisitorCollector(MetricCollector[MetricT], Generic[VisitorT, MetricT]):
    """Collector built from a visitor factory plus extract/aggregate functions.

    Args:
        name: Output key
        visitor_factory: Builds a fresh visitor for every file
        extract: Turns a visitor that walked a file into the per-file metric
        aggregate: Merges the per-file metrics

    Example:
        >>> collector = VisitorCollector(
        ...     "if_count",
        ...     IfCountVisitor,
        ...     extract=lambda v: v.count,
        ...     aggregate=sum,
        ... )
    """

    def __init__(
        self,
        name: str,
        visitor_factory: Callable[[], VisitorT],
        extract: Callable[[VisitorT], MetricT],
        aggregate: Callable[[Sequence[MetricT]], Any],
    ) -> None:
        self._name = name
        self._visitor_factory = visitor_factory
        self._extract = extract
        self._aggregate = aggregate

    @property
    def name(self) -> str:
        return self._name

    def collect_file(self, file: SourceFile) -> MetricT:
        visitor = self._visitor_factory()
        visitor.visit_file(file)
        return self._extract(visitor)

    def aggregate_metrics(self, metrics: Sequence[MetricT]) -> Any:
        return self._aggregate(metrics)


def monoid_aggregate(identity: Callable[[], Any]) -> Callable[[Sequence[Any]], Any]:
    """Aggregation that folds per-file monoids starting from ``identity()``."""

    def aggregate(metrics: Sequence[Any]) -> Any:
        return reduce_monoid(metrics, identity())

    return aggregate
