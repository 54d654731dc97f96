"""Single-pass counters: branch count, macro usage and statement size."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from ...config.defaults import DEFAULT_BUCKETS, STATEMENT_BUCKETS
from ..observers import Observer, ObserverFactory, ObserverGroup, reduce_monoid
from ..rust_nodes import (
    ATTRIBUTE_TYPES,
    COMMENT_TYPES,
    EXPRESSION_TYPES,
    ITEM_TYPES,
    PATH_EXPRESSION_TYPES,
    is_field_of,
)
from .base import MetricCollector, TreeVisitor, VisitorCollector, monoid_aggregate

if TYPE_CHECKING:
    from collections.abc import Iterable

    from tree_sitter import Node


# ── if count ────────────────────────────────────────────────────────────


class IfCountVisitor(TreeVisitor):
    """Counts every ``if`` expression, including each ``else if``."""

    def __init__(self) -> None:
        self.count = 0

    def enter(self, node: Node) -> bool:
        if node.type == "if_expression":
            self.count += 1
        return True


def make_if_count_collector() -> MetricCollector:
    return VisitorCollector(
        "if_count",
        IfCountVisitor,
        extract=lambda visitor: visitor.count,
        aggregate=sum,
    )


# ── macros ──────────────────────────────────────────────────────────────

_GROUP_TYPES = frozenset({"token_tree", "token_tree_pattern"})
_REPETITION_TYPES = frozenset({"token_repetition", "token_repetition_pattern"})
_OPENING = frozenset({"(", "[", "{"})
_CLOSING = frozenset({")", "]", "}"})


def _token_weight(node: Node) -> int:
    """Number of proc-macro tokens a top-level token-tree child stands for."""
    kind = node.type
    if kind in _GROUP_TYPES:
        return 1
    if kind == "macro_rule":
        return sum(_token_weight(child) for child in node.children)
    if kind in _REPETITION_TYPES:
        # `$` + one group + separator/operator punctuation
        weight = 2
        closed = False
        for child in node.children:
            if closed:
                weight += len(child.text)
            elif child.type == ")":
                closed = True
        return weight
    if kind == "metavariable":
        return 2
    if not node.is_named:
        text = node.text.decode("utf-8")
        if text and not any(ch.isalnum() or ch == "_" for ch in text):
            return len(text)
    return 1


def _delimited_children(children: list[Node]) -> list[Node]:
    start = next(
        (i for i, child in enumerate(children) if child.type in _OPENING), None
    )
    end = next(
        (
            i
            for i in range(len(children) - 1, -1, -1)
            if children[i].type in _CLOSING
        ),
        None,
    )
    if start is None or end is None or end <= start:
        return []
    return [
        child
        for child in children[start + 1 : end]
        if child.type not in COMMENT_TYPES
    ]


def macro_argument_size(node: Node) -> int:
    """Top-level token count inside the delimiters of a macro.

    Handles both ``name!(...)`` invocations and ``macro_rules!`` definitions.
    A nested delimited group counts as one token; multi-character
    punctuation counts one token per character.
    """
    if node.type == "macro_invocation":
        tree = next(
            (child for child in node.named_children if child.type == "token_tree"),
            None,
        )
        if tree is None:
            return 0
        members = _delimited_children(tree.children)
    else:
        members = _delimited_children(node.children)
    return sum(_token_weight(child) for child in members)


@dataclass
class MacroStats(ObserverGroup):
    """Macro argument sizes and invocations per file."""

    argument_size: Observer
    count_per_file: Observer

    @classmethod
    def create(cls, factory: ObserverFactory) -> MacroStats:
        return cls(
            argument_size=factory(DEFAULT_BUCKETS),
            count_per_file=factory(DEFAULT_BUCKETS),
        )


class MacroVisitor(TreeVisitor):
    def __init__(self, factory: ObserverFactory) -> None:
        self.stats = MacroStats.create(factory)
        self._in_file = 0

    def enter(self, node: Node) -> bool:
        if node.type in ("macro_invocation", "macro_definition"):
            self.stats.argument_size.observe(macro_argument_size(node))
            self._in_file += 1
            # macro input is unparsed tokens
            return False
        return True

    def walk(self, root: Node) -> None:
        super().walk(root)
        self.stats.count_per_file.observe(self._in_file)


def make_macro_collector(factory: ObserverFactory) -> MetricCollector:
    return VisitorCollector(
        "macro",
        lambda: MacroVisitor(factory),
        extract=lambda visitor: visitor.stats,
        aggregate=monoid_aggregate(lambda: MacroStats.create(factory)),
    )


# ── statement size ──────────────────────────────────────────────────────

# Blocks that belong to their parent construct rather than being an
# expression of their own
_BODY_BLOCK_PARENTS = frozenset(
    {
        "function_item",
        "if_expression",
        "while_expression",
        "loop_expression",
        "for_expression",
        "unsafe_block",
        "async_block",
        "try_block",
        "const_block",
        "gen_block",
    }
)

# Fields that hold patterns, names or types rather than expressions
_NON_EXPRESSION_FIELDS = {
    "let_declaration": ("pattern", "type"),
    "for_expression": ("pattern",),
    "let_condition": ("pattern",),
    "field_expression": ("field",),
    "closure_expression": ("parameters", "return_type"),
    "type_cast_expression": ("type",),
    "struct_expression": ("name",),
    "field_initializer": ("field",),
    "generic_function": ("type_arguments",),
}

_SKIPPED_SUBTREES = (
    ATTRIBUTE_TYPES
    | COMMENT_TYPES
    | frozenset({"label", "token_tree", "type_arguments", "visibility_modifier"})
)

# Item parts that may contain statements or expressions
_ITEM_EXPRESSION_FIELDS = ("body", "value")


def is_statement(node: Node) -> bool:
    """Named child of a block that is a statement or tail expression."""
    parent = node.parent
    return (
        parent is not None
        and parent.type == "block"
        and node.is_named
        and node.type not in _SKIPPED_SUBTREES
        and node.type != "empty_statement"
    )


def is_counted_expression(node: Node) -> bool:
    kind = node.type
    if kind not in EXPRESSION_TYPES:
        return False
    parent = node.parent
    if parent is None:
        return True
    if kind == "block" and parent.type in _BODY_BLOCK_PARENTS:
        return False
    if (
        kind == "field_expression"
        and parent.type == "call_expression"
        and is_field_of(parent, "function", node)
    ):
        # `recv.method(args)` is a single method-call expression
        return False
    return True


class StatementSizeVisitor(TreeVisitor):
    """Counts expression nodes per statement.

    Statements nested inside a statement (e.g. inside a block expression)
    are measured on their own and do not add to the enclosing statement.
    """

    def __init__(self, factory: ObserverFactory) -> None:
        self.observer = factory(STATEMENT_BUCKETS)
        self._count = 0
        self._saved: list[int] = []

    def children(self, node: Node) -> Iterable[Node]:
        kind = node.type
        if kind in ITEM_TYPES:
            return [
                child
                for name in _ITEM_EXPRESSION_FIELDS
                for child in node.children_by_field_name(name)
            ]
        if kind == "match_pattern":
            return node.children_by_field_name("condition")
        if kind == "generic_function":
            function = node.child_by_field_name("function")
            if function is not None and function.type == "field_expression":
                return [function]
            return []
        excluded = _NON_EXPRESSION_FIELDS.get(kind)
        if not excluded:
            return node.children
        hidden = {
            (child.start_byte, child.end_byte, child.type)
            for name in excluded
            for child in node.children_by_field_name(name)
        }
        return [
            child
            for child in node.children
            if (child.start_byte, child.end_byte, child.type) not in hidden
        ]

    def enter(self, node: Node) -> bool:
        if node.type in _SKIPPED_SUBTREES:
            return False
        if is_statement(node):
            self._saved.append(self._count)
            self._count = 0
        if is_counted_expression(node):
            self._count += 1
            if node.type in PATH_EXPRESSION_TYPES or node.type == "macro_invocation":
                return False
        return True

    def leave(self, node: Node) -> None:
        if is_statement(node):
            self.observer.observe(self._count)
            self._count = self._saved.pop()


def make_statement_size_collector(factory: ObserverFactory) -> MetricCollector:
    return VisitorCollector(
        "statement_size",
        lambda: StatementSizeVisitor(factory),
        extract=lambda visitor: visitor.observer,
        aggregate=lambda metrics: reduce_monoid(metrics, factory(STATEMENT_BUCKETS)),
    )
