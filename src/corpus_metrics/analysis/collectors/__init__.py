"""Metric collector implementations.

Every collector implements ``MetricCollector``: a unique ``name`` plus
``collect_metric(files)`` returning JSON-serializable data. Visitor-based
collectors are assembled with ``VisitorCollector``.

Example:
    from corpus_metrics.analysis.collectors import TreeVisitor, VisitorCollector

    class FnCounter(TreeVisitor):
        def __init__(self):
            self.count = 0

        def enter(self, node):
            if node.type == "function_item":
                self.count += 1
            return True

    collector = VisitorCollector(
        "fn_count", FnCounter, extract=lambda v: v.count, aggregate=sum
    )
"""

from .base import MetricCollector, TreeVisitor, VisitorCollector, monoid_aggregate
from .cohesion import MethodAccess, analyze_method, count_components, impl_lcom4
from .complexity import ScoreState, score_block, score_callable, score_expression
from .counters import macro_argument_size
from .registry import get_metric_collectors

__all__ = [
    "MetricCollector",
    "TreeVisitor",
    "VisitorCollector",
    "monoid_aggregate",
    "MethodAccess",
    "analyze_method",
    "count_components",
    "impl_lcom4",
    "ScoreState",
    "score_block",
    "score_callable",
    "score_expression",
    "macro_argument_size",
    "get_metric_collectors",
]
