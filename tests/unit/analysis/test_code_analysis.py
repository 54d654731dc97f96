"""Tests for the conventional code metrics collector."""

import math

import pytest

from corpus_metrics.analysis.collectors.code_analysis import (
    SpaceMeasurement,
    halstead_measures,
    maintainability_index,
    make_code_analysis_collector,
    measure_space,
)
from corpus_metrics.analysis.flatten import count_metrics


@pytest.fixture
def sample(parse_rust):
    return parse_rust(
        """
        struct Counter {
            value: u32,
        }

        impl Counter {
            // Increment when allowed.
            fn bump(&mut self, step: u32, allowed: bool) -> Option<u32> {
                if allowed && step > 0 {
                    self.value += step;
                }
                let checked = self.value.checked_add(1)?;
                return Some(checked);
            }
        }
        """
    )


class TestMeasureSpace:
    """Raw counts of one space."""

    def test_decisions_and_exits(self, sample, find_nodes):
        """if, && and ? are decisions; return and ? are exits."""
        measurement = measure_space(find_nodes(sample, "function_item")[0])
        assert measurement.decisions == 3
        assert measurement.exits == 2

    def test_comment_lines(self, sample, find_nodes):
        """Comments are recorded on their own lines."""
        measurement = measure_space(find_nodes(sample, "impl_item")[0])
        assert len(measurement.comment_lines) == 1

    def test_operands_include_identifiers_and_literals(self, sample, find_nodes):
        """Identifiers and literals are operands."""
        measurement = measure_space(find_nodes(sample, "function_item")[0])
        assert measurement.operands["step"] >= 2
        assert measurement.operands["1"] == 1
        assert "if" in measurement.operators


class TestDerivedMeasures:
    """Halstead and maintainability formulas."""

    def test_halstead_values(self):
        """Known operator/operand counts give the textbook values."""
        measurement = SpaceMeasurement(
            first_line=0,
            last_line=0,
            operators={"=": 1, ";": 1},
            operands={"x": 1, "1": 1},
        )
        values = halstead_measures(measurement)
        assert values["length"] == 4.0
        assert values["vocabulary"] == 4.0
        assert values["volume"] == pytest.approx(8.0)
        assert values["difficulty"] == pytest.approx(1.0)
        assert values["level"] == pytest.approx(1.0)
        assert values["effort"] == pytest.approx(8.0)

    def test_halstead_skipped_without_operands(self):
        """Halstead is undefined without operators or operands."""
        measurement = SpaceMeasurement(first_line=0, last_line=0, operators={";": 1})
        assert halstead_measures(measurement) is None

    def test_maintainability_finite(self, sample, find_nodes):
        """The maintainability index is finite for real code."""
        values = maintainability_index(measure_space(find_nodes(sample, "function_item")[0]))
        assert values is not None
        assert all(math.isfinite(value) for value in values.values())
        assert values["mi_visual_studio"] >= 0.0

    def test_maintainability_skipped_when_degenerate(self):
        """No volume means no maintainability observation."""
        measurement = SpaceMeasurement(first_line=0, last_line=0)
        assert maintainability_index(measurement) is None


class TestCodeAnalysisCollector:
    """Collector output layout."""

    def test_layout(self, sample):
        """Each space kind has the same metric families."""
        collector = make_code_analysis_collector()
        assert collector.name == "code_analysis"
        result = collector.collect_metric([sample])
        assert set(result) == {"function", "struct", "trait", "impl"}
        function = result["function"]
        assert set(function) == {"cyclomatic", "halstead", "loc", "mi", "nargs", "nexits"}
        assert function["cyclomatic"]["value"] == [4.0]
        assert function["nargs"] == [3.0]
        assert function["nexits"] == [2.0]
        assert result["struct"]["nargs"] == []
        assert result["trait"]["cyclomatic"]["value"] == []
        assert len(result["impl"]["loc"]["sloc"]) == 1

    def test_loc(self, parse_rust):
        """Line counts of a small function."""
        file = parse_rust("fn f() {\n\n    // note\n    g();\n}\n")
        result = make_code_analysis_collector().collect_metric([file])
        loc = result["function"]["loc"]
        assert loc["sloc"] == [5.0]
        assert loc["cloc"] == [1.0]
        assert loc["blank"] == [1.0]
        assert loc["ploc"] == [3.0]

    def test_all_leaves_are_lists(self, sample):
        """Every code analysis leaf is a list of floats."""
        result = make_code_analysis_collector().collect_metric([sample])
        assert count_metrics(result) == 4 * (1 + 14 + 5 + 3 + 2)
