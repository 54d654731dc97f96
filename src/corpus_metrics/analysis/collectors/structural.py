"""Type-shape collectors: structs, enums, trait definitions and per-file counts.

Every collector here is a stateless tree visitor whose per-file result is an
``ObserverGroup``; the corpus result is the monoid fold of those groups.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from ...config.defaults import DEFAULT_BUCKETS, SMALL_BUCKETS
from ..observers import Observer, ObserverFactory, ObserverGroup
from ..rust_nodes import (
    count_attributes,
    is_public,
    named_children_of_type,
    significant_children,
)
from .base import MetricCollector, TreeVisitor, VisitorCollector, monoid_aggregate

if TYPE_CHECKING:
    from tree_sitter import Node


# ── structs ─────────────────────────────────────────────────────────────


@dataclass
class StructStats(ObserverGroup):
    """Per-struct shape statistics."""

    fields_count: Observer
    public_fields_count: Observer
    attrs_count: Observer
    field_attr_count: Observer

    @classmethod
    def create(cls, factory: ObserverFactory) -> StructStats:
        return cls(
            fields_count=factory(DEFAULT_BUCKETS),
            public_fields_count=factory(DEFAULT_BUCKETS),
            attrs_count=factory(SMALL_BUCKETS),
            field_attr_count=factory(SMALL_BUCKETS),
        )


@dataclass
class _FieldShape:
    public: bool = False
    attrs: int = 0


def struct_fields(struct: Node) -> list[_FieldShape]:
    """Describe the fields of a ``struct_item`` (named or tuple form)."""
    body = struct.child_by_field_name("body")
    if body is None:
        return []

    if body.type == "field_declaration_list":
        return [
            _FieldShape(public=is_public(field), attrs=count_attributes(field))
            for field in named_children_of_type(body, "field_declaration")
        ]

    # Tuple structs: fields are flat `attrs* vis? type` runs separated by ","
    type_spans = {
        (t.start_byte, t.end_byte) for t in body.children_by_field_name("type")
    }
    shapes: list[_FieldShape] = []
    pending = _FieldShape()
    for child in body.children:
        if child.type == "attribute_item":
            pending.attrs += 1
        elif child.type == "visibility_modifier":
            pending.public = child.text == b"pub"
        elif (child.start_byte, child.end_byte) in type_spans:
            shapes.append(pending)
            pending = _FieldShape()
    return shapes


class StructVisitor(TreeVisitor):
    def __init__(self, factory: ObserverFactory) -> None:
        self.stats = StructStats.create(factory)

    def enter(self, node: Node) -> bool:
        if node.type == "struct_item":
            fields = struct_fields(node)
            self.stats.fields_count.observe(len(fields))
            self.stats.public_fields_count.observe(sum(f.public for f in fields))
            self.stats.attrs_count.observe(count_attributes(node))
            self.stats.field_attr_count.observe(sum(f.attrs for f in fields))
        return True


def make_structs_collector(factory: ObserverFactory) -> MetricCollector:
    return VisitorCollector(
        "structs",
        lambda: StructVisitor(factory),
        extract=lambda visitor: visitor.stats,
        aggregate=monoid_aggregate(lambda: StructStats.create(factory)),
    )


# ── enums ───────────────────────────────────────────────────────────────


@dataclass
class EnumStats(ObserverGroup):
    """Per-enum shape statistics."""

    variant_count: Observer
    attr_count: Observer
    variant_attr_count: Observer

    @classmethod
    def create(cls, factory: ObserverFactory) -> EnumStats:
        return cls(
            variant_count=factory(DEFAULT_BUCKETS),
            attr_count=factory(DEFAULT_BUCKETS),
            variant_attr_count=factory(DEFAULT_BUCKETS),
        )


class EnumVisitor(TreeVisitor):
    def __init__(self, factory: ObserverFactory) -> None:
        self.stats = EnumStats.create(factory)

    def enter(self, node: Node) -> bool:
        if node.type == "enum_item":
            variants = named_children_of_type(
                node.child_by_field_name("body"), "enum_variant"
            )
            self.stats.variant_count.observe(len(variants))
            self.stats.attr_count.observe(count_attributes(node))
            self.stats.variant_attr_count.observe(
                sum(count_attributes(variant) for variant in variants)
            )
        return True


def make_enums_collector(factory: ObserverFactory) -> MetricCollector:
    return VisitorCollector(
        "enums",
        lambda: EnumVisitor(factory),
        extract=lambda visitor: visitor.stats,
        aggregate=monoid_aggregate(lambda: EnumStats.create(factory)),
    )


# ── traits ──────────────────────────────────────────────────────────────


@dataclass
class TraitStats(ObserverGroup):
    """Per-trait definition statistics."""

    generic_param_count: Observer
    supertrait_count: Observer
    default_fn_count: Observer
    all_fn_count: Observer
    assoc_type_count: Observer

    @classmethod
    def create(cls, factory: ObserverFactory) -> TraitStats:
        return cls(
            generic_param_count=factory(DEFAULT_BUCKETS),
            supertrait_count=factory(DEFAULT_BUCKETS),
            default_fn_count=factory(DEFAULT_BUCKETS),
            all_fn_count=factory(DEFAULT_BUCKETS),
            assoc_type_count=factory(DEFAULT_BUCKETS),
        )


class TraitVisitor(TreeVisitor):
    def __init__(self, factory: ObserverFactory) -> None:
        self.stats = TraitStats.create(factory)

    def enter(self, node: Node) -> bool:
        if node.type != "trait_item":
            return True

        generics = node.child_by_field_name("type_parameters")
        bounds = node.child_by_field_name("bounds")
        body = node.child_by_field_name("body")

        default_fns = named_children_of_type(body, "function_item")
        declared_fns = named_children_of_type(body, "function_signature_item")

        self.stats.generic_param_count.observe(
            len(list(significant_children(generics))) if generics else 0
        )
        self.stats.supertrait_count.observe(
            len(list(significant_children(bounds))) if bounds else 0
        )
        self.stats.default_fn_count.observe(len(default_fns))
        self.stats.all_fn_count.observe(len(default_fns) + len(declared_fns))
        self.stats.assoc_type_count.observe(
            len(named_children_of_type(body, "associated_type"))
        )
        return True


def make_trait_def_collector(factory: ObserverFactory) -> MetricCollector:
    return VisitorCollector(
        "trait_def",
        lambda: TraitVisitor(factory),
        extract=lambda visitor: visitor.stats,
        aggregate=monoid_aggregate(lambda: TraitStats.create(factory)),
    )


# ── per-file counts ─────────────────────────────────────────────────────


@dataclass
class FileStats(ObserverGroup):
    """One observation per file for each module-level item count."""

    struct_count: Observer
    enum_count: Observer
    impl_block_count: Observer
    all_fn_count: Observer
    pub_fn_count: Observer

    @classmethod
    def create(cls, factory: ObserverFactory) -> FileStats:
        return cls(
            struct_count=factory(DEFAULT_BUCKETS),
            enum_count=factory(DEFAULT_BUCKETS),
            impl_block_count=factory(DEFAULT_BUCKETS),
            all_fn_count=factory(DEFAULT_BUCKETS),
            pub_fn_count=factory(SMALL_BUCKETS),
        )


class ModuleItemCounter(TreeVisitor):
    """Counts module-level items.

    Only the file root and inline ``mod`` bodies are descended, so items
    declared inside functions, impl blocks or traits are not counted.
    """

    _CONTAINERS = frozenset({"source_file", "mod_item", "declaration_list"})

    def __init__(self) -> None:
        self.structs = 0
        self.enums = 0
        self.impls = 0
        self.fns = 0
        self.pub_fns = 0

    def enter(self, node: Node) -> bool:
        kind = node.type
        if kind == "struct_item":
            self.structs += 1
        elif kind == "enum_item":
            self.enums += 1
        elif kind == "impl_item":
            self.impls += 1
        elif kind == "function_item":
            self.fns += 1
            if is_public(node):
                self.pub_fns += 1
        return kind in self._CONTAINERS


class FileVisitor(TreeVisitor):
    def __init__(self, factory: ObserverFactory) -> None:
        self.stats = FileStats.create(factory)

    def walk(self, root: Node) -> None:
        counter = ModuleItemCounter()
        counter.walk(root)
        self.stats.struct_count.observe(counter.structs)
        self.stats.enum_count.observe(counter.enums)
        self.stats.impl_block_count.observe(counter.impls)
        self.stats.all_fn_count.observe(counter.fns)
        self.stats.pub_fn_count.observe(counter.pub_fns)


def make_per_file_collector(factory: ObserverFactory) -> MetricCollector:
    return VisitorCollector(
        "per_file",
        lambda: FileVisitor(factory),
        extract=lambda visitor: visitor.stats,
        aggregate=monoid_aggregate(lambda: FileStats.create(factory)),
    )
