"""Tests for the cognitive complexity scorer."""

import pytest

from corpus_metrics.analysis.collectors.complexity import (
    callable_kind,
    make_complexity_collector,
    score_callable,
)
from corpus_metrics.analysis.collectors.registry import get_metric_collectors
from corpus_metrics.analysis.observers import unaggregated_factory
from corpus_metrics.core.driver import collect_file_metrics


@pytest.fixture
def score(parse_rust, find_nodes):
    """Score the first fn item of a snippet."""

    def _score(code: str) -> int:
        file = parse_rust(code)
        return score_callable(find_nodes(file, "function_item")[0])

    return _score


class TestWorkedExamples:
    """Reference scores for small functions."""

    def test_single_if(self, score):
        """A lone if costs 1."""
        assert score("fn f() { if true { g(); } }") == 1

    def test_nested_if(self, score):
        """An if nested in an if costs 1 + 2."""
        assert score("fn f() { if true { if true { g(); } } }") == 3

    def test_nested_if_with_else(self, score):
        """An else on the inner if adds a flat 1."""
        code = "fn f() { if true { if true { g(); } else { h(); } } }"
        assert score(code) == 4

    def test_if_while_break(self, score):
        """if (1) + nested while (2) + break (1)."""
        code = """
        fn f() {
            if a {
                while b {
                    g();
                    break;
                }
            }
        }
        """
        assert score(code) == 4

    def test_same_logical_operator(self, score):
        """A run of the same operator costs 1."""
        assert score("fn f() -> bool { a && b && c }") == 1

    def test_mixed_logical_operators(self, score):
        """Each change of operator costs 1."""
        assert score("fn f() -> bool { a && b || c }") == 2

    def test_negation_resets_sequence(self, score):
        """! starts a new operator sequence."""
        assert score("fn f() -> bool { !(a || b) && !(c || d) }") == 3


class TestConstructs:
    """Scores of individual constructs."""

    def test_empty_function(self, score):
        """A straight-line function scores 0."""
        assert score("fn f() { let x = 1; g(x); }") == 0

    def test_else_if_chain(self, score):
        """else if nests the inner if one level deeper."""
        assert score("fn f() { if a { } else if b { } }") == 4

    def test_match(self, score):
        """match costs 1 + nesting regardless of arm count."""
        assert score("fn f() { match x { 1 => {}, 2 => {}, _ => {} } }") == 1

    def test_match_guard(self, score):
        """A guard costs 1 + nesting on top of the match."""
        assert score("fn f() { match x { n if n > 0 => {}, _ => {} } }") == 2

    def test_match_arm_block_nests_twice(self, score):
        """A block arm body adds a level on top of the arm's own level."""
        assert score("fn f() { match x { _ => { if c { g(); } } } }") == 4

    def test_else_block_nests_once(self, score):
        """An else block body sits one level deeper than the if."""
        assert score("fn f() { if a { } else { if c { g(); } } }") == 4

    def test_for_loop(self, score):
        """for costs 1."""
        assert score("fn f() { for x in xs { g(x); } }") == 1

    def test_loop_nests_without_cost(self, score):
        """loop itself is free but nests its body."""
        assert score("fn f() { loop { if a { break; } } }") == 3

    def test_continue(self, score):
        """Bare continue costs 1."""
        assert score("fn f() { while a { continue; } }") == 2

    def test_break_with_value(self, score):
        """break with a value scores only the value."""
        assert score("fn f() -> i32 { loop { break 1; } }") == 0

    def test_bare_block_nests(self, score):
        """A bare block adds a nesting level."""
        assert score("fn f() { { if a { } } }") == 2

    def test_unsafe_block_nests(self, score):
        """unsafe blocks add a nesting level."""
        assert score("fn f() { unsafe { if a { } } }") == 2

    def test_closure_not_counted_in_parent(self, score):
        """Closures contribute nothing to the enclosing function."""
        assert score("fn f() { let g = |a: bool| if a { 1 } else { 2 }; }") == 0

    def test_nested_item_not_counted_in_parent(self, score):
        """Nested fn items contribute nothing to the enclosing function."""
        assert score("fn f() { fn g() { if a { } } }") == 0

    def test_macro_scores_zero(self, score):
        """Macro arguments are not scored."""
        assert score('fn f() { assert!(a && b || c, "x"); }') == 0

    def test_condition_operators(self, score):
        """Operators in a condition are scored at the current nesting."""
        assert score("fn f() { if a && b { } }") == 2


class TestCallableKind:
    """Classification of callables."""

    def test_kinds(self, parse_rust, find_nodes):
        """Free fns, impl methods, trait defaults and closures are told apart."""
        file = parse_rust(
            """
            fn free() {}
            impl S { fn method(&self) {} }
            trait T { fn default(&self) {} }
            fn outer() { let c = || 1; }
            """
        )
        kinds = [callable_kind(n) for n in find_nodes(file, "function_item")]
        assert kinds == ["item_fn", "impl_item_fn", "trait_item_fn", "item_fn"]
        closure = find_nodes(file, "closure_expression")[0]
        assert callable_kind(closure) == "closure"


class TestComplexityCollector:
    """Collector output per callable kind."""

    def test_collect(self, parse_rust):
        """Every callable contributes exactly one observation."""
        file = parse_rust(
            """
            fn free(a: bool) {
                let g = |x: bool| if x { 1 } else { 2 };
            }
            impl S {
                fn method(&self) { if a { } }
            }
            trait T {
                fn default(&self) { for x in y { } }
                fn required(&self);
            }
            """
        )
        collector = make_complexity_collector(unaggregated_factory)
        assert collector.name == "complexity"
        result = collector.collect_metric([file])
        assert result == {
            "item_fn": [0],
            "impl_item_fn": [1],
            "trait_item_fn": [1],
            "closure": [2],
            "all_fn": [0, 2, 1, 1],
        }


class TestDeepNesting:
    """Pathologically nested input is scored without recursion."""

    def test_deeply_nested_ifs(self, score):
        """500 nested ifs cost 1 + 2 + ... + 500."""
        code = "fn f() { " + "if a { " * 500 + "g();" + " }" * 500 + " }"
        assert score(code) == 500 * 501 // 2

    def test_deeply_nested_parentheses(self, score):
        """Thousands of parentheses around one && cost 1."""
        code = "fn f() -> bool { " + "(" * 3000 + "a && b" + ")" * 3000 + " }"
        assert score(code) == 1

    def test_all_collectors_complete(self, parse_rust):
        """Every collector handles the deep file."""
        file = parse_rust("fn f() { " + "if a { " * 500 + "g();" + " }" * 500 + " }")
        metrics = collect_file_metrics(
            [file], get_metric_collectors(include_code_analysis=True)
        )
        assert metrics["complexity"]["all_fn"] == [125250]
        assert metrics["fn_depth"] == [501]
        assert metrics["if_count"] == 500
