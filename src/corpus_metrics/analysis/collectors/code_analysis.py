"""Conventional code metrics per syntactic space.

A *space* is a ``fn``, ``struct``, ``trait`` or ``impl`` item. For every
space the collector computes, over the whole subtree of the item:

- cyclomatic complexity (1 + decision points)
- Halstead measures from operator/operand token counts
- line counts (source, physical, comment, logical, blank)
- maintainability index (original, SEI and Visual Studio variants)
- argument and exit counts (functions only)

Values are floats and are always kept unaggregated. Degenerate statistics
(Halstead with no operators or operands, a non-finite maintainability index)
are not observed.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from ..observers import ObserverGroup, Unaggregated
from ..rust_nodes import COMMENT_TYPES, LITERAL_TYPES
from .base import MetricCollector, TreeVisitor, VisitorCollector, monoid_aggregate
from .functions import function_parameters

if TYPE_CHECKING:
    from tree_sitter import Node


SPACE_KINDS = {
    "function_item": "function",
    "struct_item": "struct",
    "trait_item": "trait",
    "impl_item": "impl",
}

DECISION_POINTS = frozenset(
    {
        "if_expression",
        "for_expression",
        "while_expression",
        "loop_expression",
        "match_arm",
        "try_expression",
    }
)

OPERAND_LEAVES = frozenset(
    {
        "identifier",
        "field_identifier",
        "type_identifier",
        "shorthand_field_identifier",
        "primitive_type",
        "self",
        "metavariable",
    }
)

# Closing delimiters are counted with their opening partner
CLOSING_TOKENS = frozenset({")", "]", "}"})


@dataclass
class SpaceMeasurement:
    """Raw counts gathered from one space subtree."""

    first_line: int
    last_line: int
    decisions: int = 0
    operators: dict[str, int] = field(default_factory=dict)
    operands: dict[str, int] = field(default_factory=dict)
    code_lines: set[int] = field(default_factory=set)
    comment_lines: set[int] = field(default_factory=set)
    statements: int = 0
    exits: int = 0

    @property
    def sloc(self) -> int:
        return self.last_line - self.first_line + 1


def measure_space(space: Node) -> SpaceMeasurement:
    """Walk a space subtree once and collect raw token and line counts."""
    measurement = SpaceMeasurement(
        first_line=space.start_point[0], last_line=space.end_point[0]
    )
    stack: list[Node] = [space]
    while stack:
        node = stack.pop()
        kind = node.type

        if kind in COMMENT_TYPES:
            measurement.comment_lines.update(
                range(node.start_point[0], node.end_point[0] + 1)
            )
            continue

        if kind in DECISION_POINTS:
            measurement.decisions += 1
        elif kind in ("binary_expression", "let_chain"):
            measurement.decisions += sum(
                1 for child in node.children if child.type in ("&&", "||")
            )

        if kind in ("return_expression", "try_expression"):
            measurement.exits += 1

        parent = node.parent
        if node.is_named and parent is not None and parent.type == "block":
            measurement.statements += 1

        if kind in LITERAL_TYPES or (kind in OPERAND_LEAVES and not node.children):
            text = node.text.decode("utf-8", errors="replace")
            measurement.operands[text] = measurement.operands.get(text, 0) + 1
            measurement.code_lines.update(
                range(node.start_point[0], node.end_point[0] + 1)
            )
            continue

        if not node.children:
            measurement.code_lines.add(node.start_point[0])
            if not node.is_named and kind not in CLOSING_TOKENS:
                measurement.operators[kind] = measurement.operators.get(kind, 0) + 1
            continue

        stack.extend(node.children)
    return measurement


@dataclass
class Cyclomatic(ObserverGroup):
    value: Unaggregated = field(default_factory=Unaggregated)

    def observe(self, m: SpaceMeasurement) -> None:
        self.value.observe(float(1 + m.decisions))


@dataclass
class Halstead(ObserverGroup):
    N1: Unaggregated = field(default_factory=Unaggregated)
    N2: Unaggregated = field(default_factory=Unaggregated)
    n1: Unaggregated = field(default_factory=Unaggregated)
    n2: Unaggregated = field(default_factory=Unaggregated)
    length: Unaggregated = field(default_factory=Unaggregated)
    vocabulary: Unaggregated = field(default_factory=Unaggregated)
    volume: Unaggregated = field(default_factory=Unaggregated)
    difficulty: Unaggregated = field(default_factory=Unaggregated)
    level: Unaggregated = field(default_factory=Unaggregated)
    effort: Unaggregated = field(default_factory=Unaggregated)
    time: Unaggregated = field(default_factory=Unaggregated)
    bugs: Unaggregated = field(default_factory=Unaggregated)
    estimated_program_length: Unaggregated = field(default_factory=Unaggregated)
    purity_ratio: Unaggregated = field(default_factory=Unaggregated)

    def observe(self, m: SpaceMeasurement) -> None:
        values = halstead_measures(m)
        if values is None:
            return
        for name, value in values.items():
            getattr(self, name).observe(value)


def halstead_measures(m: SpaceMeasurement) -> dict[str, float] | None:
    """Halstead measures, or None without operators or operands."""
    n1 = len(m.operators)
    n2 = len(m.operands)
    if n1 == 0 or n2 == 0:
        return None
    big_n1 = float(sum(m.operators.values()))
    big_n2 = float(sum(m.operands.values()))

    length = big_n1 + big_n2
    vocabulary = float(n1 + n2)
    volume = length * math.log2(vocabulary)
    difficulty = (n1 / 2.0) * (big_n2 / n2)
    effort = difficulty * volume
    estimated = n1 * math.log2(n1) + n2 * math.log2(n2)
    return {
        "N1": big_n1,
        "N2": big_n2,
        "n1": float(n1),
        "n2": float(n2),
        "length": length,
        "vocabulary": vocabulary,
        "volume": volume,
        "difficulty": difficulty,
        "level": 1.0 / difficulty,
        "effort": effort,
        "time": effort / 18.0,
        "bugs": effort ** (2.0 / 3.0) / 3000.0,
        "estimated_program_length": estimated,
        "purity_ratio": estimated / length,
    }


@dataclass
class Loc(ObserverGroup):
    sloc: Unaggregated = field(default_factory=Unaggregated)
    ploc: Unaggregated = field(default_factory=Unaggregated)
    cloc: Unaggregated = field(default_factory=Unaggregated)
    lloc: Unaggregated = field(default_factory=Unaggregated)
    blank: Unaggregated = field(default_factory=Unaggregated)

    def observe(self, m: SpaceMeasurement) -> None:
        occupied = m.code_lines | m.comment_lines
        self.sloc.observe(float(m.sloc))
        self.ploc.observe(float(len(m.code_lines)))
        self.cloc.observe(float(len(m.comment_lines)))
        self.lloc.observe(float(m.statements))
        self.blank.observe(float(max(0, m.sloc - len(occupied))))


def maintainability_index(m: SpaceMeasurement) -> dict[str, float] | None:
    """Maintainability index variants, or None when any is not finite."""
    halstead = halstead_measures(m)
    volume = halstead["volume"] if halstead else 0.0
    sloc = float(m.sloc)
    if volume <= 0 or sloc <= 0:
        return None
    cyclomatic = float(1 + m.decisions)
    comment_ratio = len(m.comment_lines) / sloc

    original = (
        171.0
        - 5.2 * math.log(volume)
        - 0.23 * cyclomatic
        - 16.2 * math.log(sloc)
    )
    sei = (
        171.0
        - 5.2 * math.log2(volume)
        - 0.23 * cyclomatic
        - 16.2 * math.log2(sloc)
        + 50.0 * math.sin(math.sqrt(comment_ratio * 2.4))
    )
    visual_studio = max(0.0, original * 100.0 / 171.0)
    values = {
        "mi_original": original,
        "mi_sei": sei,
        "mi_visual_studio": visual_studio,
    }
    if not all(math.isfinite(value) for value in values.values()):
        return None
    return values


@dataclass
class Maintainability(ObserverGroup):
    mi_original: Unaggregated = field(default_factory=Unaggregated)
    mi_sei: Unaggregated = field(default_factory=Unaggregated)
    mi_visual_studio: Unaggregated = field(default_factory=Unaggregated)

    def observe(self, m: SpaceMeasurement) -> None:
        values = maintainability_index(m)
        if values is None:
            return
        for name, value in values.items():
            getattr(self, name).observe(value)


@dataclass
class SpaceMetrics(ObserverGroup):
    """All conventional metrics for one space kind."""

    cyclomatic: Cyclomatic = field(default_factory=Cyclomatic)
    halstead: Halstead = field(default_factory=Halstead)
    loc: Loc = field(default_factory=Loc)
    mi: Maintainability = field(default_factory=Maintainability)
    nargs: Unaggregated = field(default_factory=Unaggregated)
    nexits: Unaggregated = field(default_factory=Unaggregated)

    def observe_space(self, space: Node) -> None:
        m = measure_space(space)
        self.cyclomatic.observe(m)
        self.halstead.observe(m)
        self.loc.observe(m)
        self.mi.observe(m)
        if space.type == "function_item":
            self.nargs.observe(float(len(function_parameters(space))))
            self.nexits.observe(float(m.exits))


@dataclass
class CodeAnalysisStats(ObserverGroup):
    function: SpaceMetrics = field(default_factory=SpaceMetrics)
    struct: SpaceMetrics = field(default_factory=SpaceMetrics)
    trait: SpaceMetrics = field(default_factory=SpaceMetrics)
    impl: SpaceMetrics = field(default_factory=SpaceMetrics)


class CodeAnalysisVisitor(TreeVisitor):
    def __init__(self) -> None:
        self.stats = CodeAnalysisStats()

    def enter(self, node: Node) -> bool:
        kind = SPACE_KINDS.get(node.type)
        if kind is not None:
            getattr(self.stats, kind).observe_space(node)
        return True


def make_code_analysis_collector() -> MetricCollector:
    return VisitorCollector(
        "code_analysis",
        CodeAnalysisVisitor,
        extract=lambda visitor: visitor.stats,
        aggregate=monoid_aggregate(CodeAnalysisStats),
    )
