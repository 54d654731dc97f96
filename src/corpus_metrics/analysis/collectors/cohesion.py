"""LCOM4 (Lack of Cohesion of Methods) per impl block.

For every ``impl`` block, member functions are related when they access a
common ``self`` field or when one calls the other through ``self``. LCOM4 is
the number of connected components of that relation:

- LCOM4 = 1: every method works on shared state (cohesive)
- LCOM4 > 1: the block splits into independent groups of methods

Each impl block with at least one function contributes one observation.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from ...config.defaults import COHESION_BUCKETS
from ..observers import ObserverFactory, reduce_monoid
from ..rust_nodes import (
    ITEM_TYPES,
    is_self_expression,
    method_call_name,
    named_children_of_type,
    node_text,
)
from .base import MetricCollector, TreeVisitor, VisitorCollector

if TYPE_CHECKING:
    from tree_sitter import Node


@dataclass
class MethodAccess:
    """Fields read or written and methods called through ``self``.

    Attributes:
        name: Method name
        fields: Accessed ``self.<field>`` names (method callees excluded)
        calls: Names of ``self.<method>(...)`` calls
    """

    name: str
    fields: set[str] = field(default_factory=set)
    calls: set[str] = field(default_factory=set)


def analyze_method(function: Node) -> MethodAccess:
    """Collect ``self`` field accesses and method calls of one function.

    Closures are part of the function; nested items and macro arguments are
    not inspected.
    """
    name_node = function.child_by_field_name("name")
    access = MethodAccess(name=node_text(name_node) if name_node else "")
    body = function.child_by_field_name("body")
    if body is None:
        return access

    stack: list[Node] = [body]
    while stack:
        node = stack.pop()
        kind = node.type
        if kind in ITEM_TYPES or kind == "token_tree":
            continue

        if kind == "call_expression":
            method = method_call_name(node)
            if method is not None and is_self_expression(method[0]):
                access.calls.add(method[1])
                # the callee is a method, not a field; still scan arguments
                callee = node.child_by_field_name("function")
                stack.extend(child for child in node.children if child != callee)
                continue

        elif kind == "field_expression":
            if is_self_expression(node.child_by_field_name("value")):
                member = node.child_by_field_name("field")
                if member is not None:
                    access.fields.add(node_text(member))

        stack.extend(node.children)
    return access


def are_related(a: MethodAccess, b: MethodAccess) -> bool:
    """Two methods are related by a shared field or a call in either direction."""
    return bool(a.fields & b.fields) or b.name in a.calls or a.name in b.calls


def count_components(methods: list[MethodAccess]) -> int:
    """Connected components of the relatedness graph.

    Uses an iterative depth-first search seeded in source order.
    """
    size = len(methods)
    adjacency: list[list[int]] = [[] for _ in range(size)]
    for i in range(size):
        for j in range(i + 1, size):
            if are_related(methods[i], methods[j]):
                adjacency[i].append(j)
                adjacency[j].append(i)

    visited = [False] * size
    components = 0
    for seed in range(size):
        if visited[seed]:
            continue
        components += 1
        visited[seed] = True
        stack = [seed]
        while stack:
            current = stack.pop()
            for neighbor in adjacency[current]:
                if not visited[neighbor]:
                    visited[neighbor] = True
                    stack.append(neighbor)
    return components


def impl_lcom4(impl: Node) -> int | None:
    """LCOM4 of an ``impl_item``; None when it has no member functions."""
    functions = named_children_of_type(
        impl.child_by_field_name("body"), "function_item"
    )
    if not functions:
        return None
    return count_components([analyze_method(function) for function in functions])


class CohesionVisitor(TreeVisitor):
    def __init__(self, factory: ObserverFactory) -> None:
        self.observer = factory(COHESION_BUCKETS)

    def enter(self, node: Node) -> bool:
        if node.type == "impl_item":
            lcom4 = impl_lcom4(node)
            if lcom4 is not None:
                self.observer.observe(lcom4)
        return True


def make_lack_of_cohesion_collector(factory: ObserverFactory) -> MetricCollector:
    return VisitorCollector(
        "lack_of_cohesion",
        lambda: CohesionVisitor(factory),
        extract=lambda visitor: visitor.observer,
        aggregate=lambda metrics: reduce_monoid(metrics, factory(COHESION_BUCKETS)),
    )
