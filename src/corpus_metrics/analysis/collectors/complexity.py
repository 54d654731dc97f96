"""Cognitive complexity of Rust callables.

The score grows with branching and with nesting:

- ``if``, ``match``, ``for`` and ``while`` cost ``1 + nesting``; their
  bodies and arms are scored one level deeper.
- An ``else`` block body is unwrapped and sits one level deeper. A match arm
  whose value is a block is not unwrapped: the arm is one level deeper and
  the block adds another, so ``match x { _ => { if c {} } }`` scores the
  ``if`` at nesting 2.
- ``else`` and bare ``break``/``continue`` cost a flat 1.
- A match guard costs ``1 + nesting`` plus the score of its condition.
- Sequences of logical operators cost 1 each time the operator changes
  (``a && b && c`` is 1, ``a && b || c`` is 2); ``!`` only resets the
  sequence.
- Bare blocks, ``loop`` and ``unsafe``/``async``/``try``/``const`` blocks add
  a nesting level without a cost of their own.

Every callable (fn item, method, closure) is scored independently, starting
at nesting 0. Closures and nested items contribute nothing to the callable
that contains them.

The scorer walks an explicit work stack instead of recursing, so deeply
nested expressions cannot exhaust the interpreter stack.

Example:
    >>> tree = parser.parse(b"fn f() { if a { if b {} } }")
    >>> fn = tree.root_node.named_children[0]
    >>> score_callable(fn)
    3
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, NamedTuple

from ...config.defaults import DEFAULT_BUCKETS
from ..observers import Observer, ObserverFactory, ObserverGroup
from ..rust_nodes import CALLABLE_TYPES, WRAPPED_BLOCK_TYPES, significant_children
from .base import MetricCollector, TreeVisitor, VisitorCollector, monoid_aggregate

if TYPE_CHECKING:
    from tree_sitter import Node


LOGICAL_OPERATORS = frozenset({"&&", "||"})

# Nodes whose named children are scored unchanged
_PASS_THROUGH = frozenset(
    {
        "expression_statement",
        "reference_expression",
        "type_cast_expression",
        "parenthesized_expression",
        "return_expression",
        "try_expression",
        "await_expression",
        "yield_expression",
        "arguments",
        "array_expression",
        "tuple_expression",
        "assignment_expression",
        "compound_assignment_expr",
        "index_expression",
        "range_expression",
        "field_initializer_list",
        "base_field_initializer",
        "let_condition",
    }
)


class ScoreState(NamedTuple):
    """Nesting level plus the previous logical operator of the active scan."""

    nesting: int = 0
    log_op: str | None = None

    def nested(self) -> ScoreState:
        return ScoreState(self.nesting + 1, self.log_op)

    def with_op(self, op: str) -> ScoreState:
        return ScoreState(self.nesting, op)


def _operator_cost(op: str, state: ScoreState) -> int:
    return 0 if state.log_op == op else 1


def _expand(
    node: Node, state: ScoreState
) -> tuple[int, list[tuple[Node | None, ScoreState]]]:
    """Own cost of ``node`` and the children to score next."""
    kind = node.type
    field = node.child_by_field_name

    if kind == "block":
        inner = state.nested()
        return 0, [(child, inner) for child in significant_children(node)]

    if kind in WRAPPED_BLOCK_TYPES:
        inner = next((c for c in node.named_children if c.type == "block"), None)
        return 0, _body(inner, state.nested())

    if kind == "loop_expression":
        return 0, _body(field("body"), state.nested())

    if kind == "if_expression":
        work = [(field("condition"), state)]
        work += _body(field("consequence"), state.nested())
        alternative = field("alternative")
        cost = 1 + state.nesting
        if alternative is not None:
            cost += 1
            branch = next(iter(significant_children(alternative)), None)
            if branch is not None and branch.type == "block":
                work += _body(branch, state.nested())
            elif branch is not None:
                work.append((branch, state.nested()))
        return cost, work

    if kind == "match_expression":
        work = [(field("value"), state)]
        body = field("body")
        cost = 1 + state.nesting
        arms = list(significant_children(body)) if body is not None else []
        for arm in arms:
            if arm.type != "match_arm":
                continue
            pattern = arm.child_by_field_name("pattern")
            guard = pattern.child_by_field_name("condition") if pattern else None
            if guard is not None:
                cost += 1 + state.nesting
                work.append((guard, state))
            work.append((arm.child_by_field_name("value"), state.nested()))
        return cost, work

    if kind in ("for_expression", "while_expression"):
        head = field("value") if kind == "for_expression" else field("condition")
        work = [(head, state)] + _body(field("body"), state.nested())
        return 1 + state.nesting, work

    if kind == "let_chain":
        cost = _operator_cost("&&", state)
        inner = state.with_op("&&")
        return cost, [(child, inner) for child in significant_children(node)]

    if kind == "binary_expression":
        op = field("operator")
        op_text = op.type if op is not None else ""
        if op_text in LOGICAL_OPERATORS:
            cost = _operator_cost(op_text, state)
            state = state.with_op(op_text)
        else:
            cost = 0
        return cost, [(field("left"), state), (field("right"), state)]

    if kind == "unary_expression":
        if node.children and node.children[0].type == "!":
            state = state.with_op("!")
        return 0, [(child, state) for child in significant_children(node)]

    if kind in ("break_expression", "continue_expression"):
        values = [c for c in significant_children(node) if c.type != "label"]
        if not values:
            return 1, []
        return 0, [(value, state) for value in values]

    if kind == "call_expression":
        return 0, [(field("function"), state), (field("arguments"), state)]

    if kind == "field_expression":
        return 0, [(field("value"), state)]

    if kind == "generic_function":
        return 0, [(field("function"), state)]

    if kind == "struct_expression":
        return 0, [(field("body"), state)]

    if kind == "field_initializer":
        return 0, [(field("value"), state)]

    if kind == "let_declaration":
        return 0, [(field("value"), state)]

    if kind in ("const_item", "static_item"):
        return 0, [(field("value"), state)]

    if kind in _PASS_THROUGH:
        return 0, [(child, state) for child in significant_children(node)]

    # Literals, paths, closures, macros, nested items and anything unknown
    return 0, []


def _body(block: Node | None, state: ScoreState) -> list[tuple[Node, ScoreState]]:
    """Statements of a construct's body block, scored at ``state``."""
    if block is None:
        return []
    if block.type != "block":
        return [(block, state)]
    return [(child, state) for child in significant_children(block)]


def _score(work: list[tuple[Node | None, ScoreState]]) -> int:
    total = 0
    while work:
        node, state = work.pop()
        if node is None:
            continue
        cost, children = _expand(node, state)
        total += cost
        work.extend(children)
    return total


def score_expression(node: Node, state: ScoreState | None = None) -> int:
    """Cognitive complexity of a single expression or statement."""
    return _score([(node, state or ScoreState())])


def score_block(block: Node, state: ScoreState | None = None) -> int:
    """Cognitive complexity of a block's statements, at ``state``'s nesting.

    The block itself adds no nesting: this is how fn bodies are scored.
    """
    return _score(list(_body(block, state or ScoreState())))


def score_callable(node: Node) -> int:
    """Score a fn item or closure as an independent unit at nesting 0."""
    body = node.child_by_field_name("body")
    if body is None:
        return 0
    if body.type == "block":
        return score_block(body)
    return score_expression(body)


# ── collector ───────────────────────────────────────────────────────────


@dataclass
class ComplexityStats(ObserverGroup):
    """Cognitive complexity per callable kind."""

    item_fn: Observer
    impl_item_fn: Observer
    trait_item_fn: Observer
    closure: Observer
    all_fn: Observer

    @classmethod
    def create(cls, factory: ObserverFactory) -> ComplexityStats:
        return cls(
            item_fn=factory(DEFAULT_BUCKETS),
            impl_item_fn=factory(DEFAULT_BUCKETS),
            trait_item_fn=factory(DEFAULT_BUCKETS),
            closure=factory(DEFAULT_BUCKETS),
            all_fn=factory(DEFAULT_BUCKETS),
        )


def callable_kind(node: Node) -> str:
    """Classify a callable as item fn, impl method, trait default method or closure."""
    if node.type == "closure_expression":
        return "closure"
    parent = node.parent
    if parent is not None and parent.type == "declaration_list":
        owner = parent.parent
        if owner is not None and owner.type == "impl_item":
            return "impl_item_fn"
        if owner is not None and owner.type == "trait_item":
            return "trait_item_fn"
    return "item_fn"


class ComplexityVisitor(TreeVisitor):
    def __init__(self, factory: ObserverFactory) -> None:
        self.stats = ComplexityStats.create(factory)

    def enter(self, node: Node) -> bool:
        if node.type in CALLABLE_TYPES:
            value = score_callable(node)
            getattr(self.stats, callable_kind(node)).observe(value)
            self.stats.all_fn.observe(value)
        return True


def make_complexity_collector(factory: ObserverFactory) -> MetricCollector:
    return VisitorCollector(
        "complexity",
        lambda: ComplexityVisitor(factory),
        extract=lambda visitor: visitor.stats,
        aggregate=monoid_aggregate(lambda: ComplexityStats.create(factory)),
    )

