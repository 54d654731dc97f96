"""Metric analysis for Rust corpora.

The analysis layer is made of three parts:

- observers: monoid aggregation strategies (``Histogram``, ``Unaggregated``)
- collectors: one ``MetricCollector`` per metric family
- flatten: helpers that walk the nested metrics JSON

Example:
    from corpus_metrics.analysis import get_metric_collectors, histogram_factory
    from corpus_metrics.core.driver import collect_file_metrics

    collectors = get_metric_collectors(histogram_factory)
    metrics = collect_file_metrics(files, collectors)
"""

from .collectors import MetricCollector, TreeVisitor, VisitorCollector
from .collectors.registry import get_metric_collectors
from .flatten import count_metrics, flatten_metrics, get_metric_list
from .observers import (
    Histogram,
    ObserverGroup,
    Unaggregated,
    get_observer_factory,
    histogram_factory,
    reduce_monoid,
    unaggregated_factory,
)

__all__ = [
    # Observers
    "Histogram",
    "ObserverGroup",
    "Unaggregated",
    "get_observer_factory",
    "histogram_factory",
    "reduce_monoid",
    "unaggregated_factory",
    # Collectors
    "MetricCollector",
    "TreeVisitor",
    "VisitorCollector",
    "get_metric_collectors",
    # Flatten
    "count_metrics",
    "flatten_metrics",
    "get_metric_list",
]
