"""Tests for argument count, argument mutability and nesting depth collectors."""

import pytest

from corpus_metrics.analysis.collectors.functions import (
    DepthVisitor,
    function_parameters,
    is_mut_ref_parameter,
    make_fn_arg_count_collector,
    make_fn_arg_mutability_collector,
    make_fn_depth_collector,
)
from corpus_metrics.analysis.observers import unaggregated_factory
from corpus_metrics.core.exceptions import CollectorInvariantError


class TestArgCount:
    """Parameter counts, receiver included."""

    def test_counts(self, parse_rust):
        """Free functions, methods and trait signatures are counted."""
        file = parse_rust(
            """
            fn none() {}
            fn two(a: i32, b: i32) {}
            impl S { fn method(&self, x: i32) {} }
            trait T { fn required(&mut self); }
            """
        )
        collector = make_fn_arg_count_collector(unaggregated_factory)
        assert collector.name == "fn_arg_count"
        assert collector.collect_metric([file]) == [0, 2, 2, 1]

    def test_attributes_not_counted(self, parse_rust, find_nodes):
        """Parameter attributes are not parameters."""
        file = parse_rust("fn f(#[allow(unused)] a: i32, b: i32) {}")
        assert len(function_parameters(find_nodes(file, "function_item")[0])) == 2


class TestArgMutability:
    """By-mutable-reference parameters."""

    def test_mut_ref_detection(self, parse_rust, find_nodes):
        """Only &mut self and &mut T parameters count."""
        file = parse_rust(
            """
            impl S {
                fn f(&mut self, a: &mut i32, b: &i32, mut c: i32, d: &mut [u8]) {}
            }
            """
        )
        params = function_parameters(find_nodes(file, "function_item")[0])
        assert [is_mut_ref_parameter(p) for p in params] == [
            True,
            True,
            False,
            False,
            True,
        ]

    def test_shared_self_is_not_mut(self, parse_rust, find_nodes):
        """&self and self are not mutable references."""
        file = parse_rust("impl S { fn a(&self) {} fn b(self) {} fn c(mut self) {} }")
        for function in find_nodes(file, "function_item"):
            (receiver,) = function_parameters(function)
            assert not is_mut_ref_parameter(receiver)

    def test_collector(self, parse_rust):
        """Functions and closures are reported separately and together."""
        file = parse_rust(
            """
            fn f(a: &mut Vec<i32>) {
                let g = |x: &mut i32, y: i32| *x += y;
                let h = || 0;
            }
            """
        )
        collector = make_fn_arg_mutability_collector(unaggregated_factory)
        assert collector.collect_metric([file]) == {
            "fn_mut_ref_args": [1],
            "closure_mut_ref_args": [1, 0],
            "all_mut_ref_args": [1, 1, 0],
        }


class TestFnDepth:
    """Maximum block nesting per callable."""

    def collect(self, parse_rust, code):
        collector = make_fn_depth_collector(unaggregated_factory)
        return collector.collect_metric([parse_rust(code)])

    def test_flat_function(self, parse_rust):
        """A function body alone is depth 1."""
        assert self.collect(parse_rust, "fn f() { g(); }") == [1]

    def test_nested_blocks(self, parse_rust):
        """Every block adds a level."""
        code = """
        fn f() {
            if a {
                for x in xs {
                    g(x);
                }
            } else {
                h();
            }
        }
        """
        assert self.collect(parse_rust, code) == [3]

    def test_closure_is_measured_separately(self, parse_rust):
        """Closures reset the depth and do not deepen the enclosing fn."""
        code = """
        fn f() {
            let g = |x: i32| {
                if x > 0 {
                    if x > 1 { h(); }
                }
            };
        }
        """
        assert self.collect(parse_rust, code) == [3, 1]

    def test_expression_closure_has_implicit_block(self, parse_rust):
        """A closure without a block body counts one level."""
        assert self.collect(parse_rust, "fn f() { let g = |x: i32| x + 1; }") == [1, 1]

    def test_nested_fn_item(self, parse_rust):
        """Nested fn items are measured on their own."""
        code = """
        fn outer() {
            fn inner() {
                loop { if a { break; } }
            }
        }
        """
        assert self.collect(parse_rust, code) == [3, 1]

    def test_zero_depth_is_an_invariant_violation(self, parse_rust, find_nodes):
        """A callable that never entered a block raises."""
        file = parse_rust("fn f() {}")
        function = find_nodes(file, "function_item")[0]
        visitor = DepthVisitor(unaggregated_factory)
        visitor.enter(function)
        with pytest.raises(CollectorInvariantError):
            visitor.leave(function)
