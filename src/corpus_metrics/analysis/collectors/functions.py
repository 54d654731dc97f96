"""Function-level collectors: argument count, argument mutability, nesting depth."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from loguru import logger

from ...config.defaults import DEFAULT_BUCKETS, SMALL_BUCKETS
from ...core.exceptions import CollectorInvariantError
from ..observers import Observer, ObserverFactory, ObserverGroup, reduce_monoid
from ..rust_nodes import CALLABLE_TYPES, significant_children
from .base import MetricCollector, TreeVisitor, VisitorCollector, monoid_aggregate

if TYPE_CHECKING:
    from tree_sitter import Node


def function_parameters(node: Node) -> list[Node]:
    """Parameters of a fn item or signature, receiver included."""
    parameters = node.child_by_field_name("parameters")
    if parameters is None:
        return []
    return list(significant_children(parameters))


# ── argument count ──────────────────────────────────────────────────────


class ArgCountVisitor(TreeVisitor):
    def __init__(self, factory: ObserverFactory) -> None:
        self.observer = factory(DEFAULT_BUCKETS)

    def enter(self, node: Node) -> bool:
        if node.type in ("function_item", "function_signature_item"):
            self.observer.observe(len(function_parameters(node)))
        return True


def make_fn_arg_count_collector(factory: ObserverFactory) -> MetricCollector:
    return VisitorCollector(
        "fn_arg_count",
        lambda: ArgCountVisitor(factory),
        extract=lambda visitor: visitor.observer,
        aggregate=lambda metrics: reduce_monoid(metrics, factory(DEFAULT_BUCKETS)),
    )


# ── argument mutability ─────────────────────────────────────────────────


def _is_mut_reference_type(node: Node | None) -> bool:
    return node is not None and node.type == "reference_type" and any(
        child.type == "mutable_specifier" for child in node.children
    )


def _is_mut_reference_pattern(node: Node | None) -> bool:
    return node is not None and node.type == "reference_pattern" and any(
        child.type == "mutable_specifier" for child in node.children
    )


def is_mut_ref_parameter(param: Node) -> bool:
    """True for ``&mut self``, ``x: &mut T`` and closure ``&mut x`` patterns."""
    if param.type == "self_parameter":
        kinds = {child.type for child in param.children}
        return "&" in kinds and "mutable_specifier" in kinds
    if param.type == "parameter":
        return _is_mut_reference_type(
            param.child_by_field_name("type")
        ) or _is_mut_reference_pattern(param.child_by_field_name("pattern"))
    return _is_mut_reference_pattern(param)


@dataclass
class ArgMutabilityStats(ObserverGroup):
    """Number of by-mutable-reference parameters per callable."""

    fn_mut_ref_args: Observer
    closure_mut_ref_args: Observer
    all_mut_ref_args: Observer

    @classmethod
    def create(cls, factory: ObserverFactory) -> ArgMutabilityStats:
        return cls(
            fn_mut_ref_args=factory(SMALL_BUCKETS),
            closure_mut_ref_args=factory(SMALL_BUCKETS),
            all_mut_ref_args=factory(SMALL_BUCKETS),
        )


class ArgMutabilityVisitor(TreeVisitor):
    def __init__(self, factory: ObserverFactory) -> None:
        self.stats = ArgMutabilityStats.create(factory)

    def enter(self, node: Node) -> bool:
        if node.type in ("function_item", "function_signature_item"):
            count = sum(map(is_mut_ref_parameter, function_parameters(node)))
            self.stats.fn_mut_ref_args.observe(count)
            self.stats.all_mut_ref_args.observe(count)
        elif node.type == "closure_expression":
            params = node.child_by_field_name("parameters")
            count = (
                sum(map(is_mut_ref_parameter, significant_children(params)))
                if params is not None
                else 0
            )
            self.stats.closure_mut_ref_args.observe(count)
            self.stats.all_mut_ref_args.observe(count)
        return True


def make_fn_arg_mutability_collector(factory: ObserverFactory) -> MetricCollector:
    return VisitorCollector(
        "fn_arg_mutability",
        lambda: ArgMutabilityVisitor(factory),
        extract=lambda visitor: visitor.stats,
        aggregate=monoid_aggregate(lambda: ArgMutabilityStats.create(factory)),
    )


# ── nesting depth ───────────────────────────────────────────────────────


@dataclass
class _DepthFrame:
    start: int
    max_depth: int
    implicit_block: bool = False


class DepthVisitor(TreeVisitor):
    """Maximum block nesting depth per fn item and closure.

    Every ``block`` adds one level. Depth is measured relative to the
    callable's start, so nested callables never raise the depth of the
    callable that contains them. A closure without a block body counts as
    one implicit block.
    """

    def __init__(self, factory: ObserverFactory) -> None:
        self.observer = factory(DEFAULT_BUCKETS)
        self._current = 0
        self._frames: list[_DepthFrame] = []

    def _push_level(self) -> None:
        self._current += 1
        if self._frames:
            frame = self._frames[-1]
            frame.max_depth = max(frame.max_depth, self._current)

    def enter(self, node: Node) -> bool:
        kind = node.type
        if kind in CALLABLE_TYPES:
            frame = _DepthFrame(start=self._current, max_depth=self._current)
            self._frames.append(frame)
            if kind == "closure_expression":
                body = node.child_by_field_name("body")
                if body is None or body.type != "block":
                    frame.implicit_block = True
                    self._push_level()
        elif kind == "block":
            self._push_level()
        return True

    def leave(self, node: Node) -> None:
        kind = node.type
        if kind == "block":
            self._current -= 1
        elif kind in CALLABLE_TYPES:
            frame = self._frames.pop()
            if frame.implicit_block:
                self._current -= 1
            depth = frame.max_depth - frame.start
            if depth == 0:
                logger.error(
                    f"Zero nesting depth for {kind} at line {node.start_point[0] + 1}"
                )
                raise CollectorInvariantError(
                    "Callable reported zero nesting depth",
                    {"node": kind, "line": node.start_point[0] + 1},
                )
            self.observer.observe(depth)


def make_fn_depth_collector(factory: ObserverFactory) -> MetricCollector:
    return VisitorCollector(
        "fn_depth",
        lambda: DepthVisitor(factory),
        extract=lambda visitor: visitor.observer,
        aggregate=lambda metrics: reduce_monoid(metrics, factory(DEFAULT_BUCKETS)),
    )
