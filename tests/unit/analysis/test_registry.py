"""Tests for the collector registry and the collector base classes."""

from concurrent.futures import ThreadPoolExecutor

from corpus_metrics.analysis.collectors import (
    MetricCollector,
    TreeVisitor,
    VisitorCollector,
    get_metric_collectors,
)
from corpus_metrics.analysis.observers import histogram_factory

EXPECTED_NAMES = [
    "complexity",
    "enums",
    "fn_arg_count",
    "fn_arg_mutability",
    "fn_depth",
    "if_count",
    "lack_of_cohesion",
    "macro",
    "per_file",
    "statement_size",
    "structs",
    "trait_def",
]


class _FnCounter(TreeVisitor):
    def __init__(self):
        self.count = 0

    def enter(self, node):
        if node.type == "function_item":
            self.count += 1
        return True


class TestRegistry:
    """Explicit collector list."""

    def test_names_in_output_order(self):
        """Collectors are returned sorted by name."""
        names = [collector.name for collector in get_metric_collectors()]
        assert names == EXPECTED_NAMES

    def test_code_analysis_is_optional(self):
        """code_analysis is only added on request."""
        names = [
            collector.name
            for collector in get_metric_collectors(include_code_analysis=True)
        ]
        assert names == sorted([*EXPECTED_NAMES, "code_analysis"])

    def test_fresh_list_every_call(self):
        """Each call builds new collector instances."""
        first = get_metric_collectors()
        second = get_metric_collectors()
        assert first is not second
        assert all(a is not b for a, b in zip(first, second))

    def test_all_are_metric_collectors(self):
        """The registry only holds MetricCollector instances."""
        assert all(
            isinstance(collector, MetricCollector)
            for collector in get_metric_collectors(histogram_factory, True)
        )


class TestVisitorCollector:
    """Binding a visitor to the collector contract."""

    def test_fresh_visitor_per_file(self, parse_rust):
        """Per-file state never leaks between files."""
        collector = VisitorCollector(
            "fn_count", _FnCounter, extract=lambda v: v.count, aggregate=list
        )
        files = [
            parse_rust("fn a() {} fn b() {}", path="a.rs"),
            parse_rust("fn c() {}", path="b.rs"),
        ]
        assert collector.collect_metric(files) == [2, 1]

    def test_executor_keeps_input_order(self, parse_rust):
        """Parallel collection returns per-file metrics in input order."""
        collector = VisitorCollector(
            "fn_count", _FnCounter, extract=lambda v: v.count, aggregate=list
        )
        files = [
            parse_rust(" ".join(f"fn f{j}() {{}}" for j in range(i)), path=f"{i}.rs")
            for i in range(10)
        ]
        with ThreadPoolExecutor(max_workers=4) as executor:
            assert collector.collect_metric(files, executor) == list(range(10))

    def test_repr(self):
        """repr shows the collector name."""
        collector = VisitorCollector("x", _FnCounter, lambda v: v.count, sum)
        assert repr(collector) == "VisitorCollector(name='x')"
