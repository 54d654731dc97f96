"""Helpers for reading tree-sitter-rust syntax nodes.

Node type names follow the tree-sitter-rust grammar shipped with
tree-sitter-language-pack.
"""

from __future__ import annotations

from collections.abc import Iterator
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from tree_sitter import Node


# Items that open a new scope for metric purposes (never part of an
# enclosing callable's body)
ITEM_TYPES = frozenset(
    {
        "function_item",
        "function_signature_item",
        "struct_item",
        "union_item",
        "enum_item",
        "impl_item",
        "trait_item",
        "mod_item",
        "const_item",
        "static_item",
        "type_item",
        "use_declaration",
        "extern_crate_declaration",
        "foreign_mod_item",
        "macro_definition",
        "associated_type",
    }
)

CALLABLE_TYPES = frozenset({"function_item", "closure_expression"})

COMMENT_TYPES = frozenset({"line_comment", "block_comment"})

ATTRIBUTE_TYPES = frozenset({"attribute_item", "inner_attribute_item"})

# Block-like expressions whose contents sit one nesting level deeper
WRAPPED_BLOCK_TYPES = frozenset(
    {"unsafe_block", "async_block", "try_block", "const_block", "gen_block"}
)

LITERAL_TYPES = frozenset(
    {
        "integer_literal",
        "float_literal",
        "string_literal",
        "raw_string_literal",
        "char_literal",
        "boolean_literal",
    }
)

# Path-like expressions that are a single expression and are not descended
PATH_EXPRESSION_TYPES = frozenset(
    {"identifier", "self", "scoped_identifier", "metavariable", "super", "crate"}
)

EXPRESSION_TYPES = (
    frozenset(
        {
            "unary_expression",
            "reference_expression",
            "try_expression",
            "binary_expression",
            "assignment_expression",
            "compound_assignment_expr",
            "type_cast_expression",
            "call_expression",
            "return_expression",
            "yield_expression",
            "generic_function",
            "await_expression",
            "field_expression",
            "array_expression",
            "tuple_expression",
            "macro_invocation",
            "unit_expression",
            "break_expression",
            "continue_expression",
            "index_expression",
            "closure_expression",
            "parenthesized_expression",
            "struct_expression",
            "if_expression",
            "match_expression",
            "while_expression",
            "loop_expression",
            "for_expression",
            "range_expression",
            "let_condition",
            "let_chain",
            "block",
        }
    )
    | WRAPPED_BLOCK_TYPES
    | LITERAL_TYPES
    | PATH_EXPRESSION_TYPES
)


def node_text(node: Node) -> str:
    """Decode the source text covered by ``node``."""
    text = node.text
    return text.decode("utf-8") if text is not None else ""


def is_doc_comment(node: Node) -> bool:
    """Return True for outer doc comments (``///`` and ``/** */``)."""
    if node.type not in COMMENT_TYPES:
        return False
    text = node_text(node)
    if node.type == "line_comment":
        return text.startswith("///") and not text.startswith("////")
    return (
        text.startswith("/**")
        and not text.startswith("/***")
        and text != "/**/"
    )


def count_attributes(node: Node) -> int:
    """Count outer attributes and doc comments directly preceding ``node``.

    Plain comments between attributes are skipped; any other sibling ends
    the scan.
    """
    count = 0
    sibling = node.prev_sibling
    while sibling is not None:
        if sibling.type == "attribute_item":
            count += 1
        elif sibling.type in COMMENT_TYPES:
            if is_doc_comment(sibling):
                count += 1
        else:
            break
        sibling = sibling.prev_sibling
    return count


def is_public(node: Node) -> bool:
    """True when ``node`` carries a bare ``pub`` (``pub(crate)`` is not public)."""
    for child in node.children:
        if child.type == "visibility_modifier":
            return node_text(child).strip() == "pub"
    return False


def named_children_of_type(node: Node | None, *types: str) -> list[Node]:
    if node is None:
        return []
    return [child for child in node.named_children if child.type in types]


def significant_children(node: Node) -> Iterator[Node]:
    """Named children that are not comments or attributes."""
    for child in node.named_children:
        if child.type in COMMENT_TYPES or child.type in ATTRIBUTE_TYPES:
            continue
        yield child


def is_field_of(parent: Node, field_name: str, child: Node) -> bool:
    """True when ``child`` is stored under ``field_name`` on ``parent``."""
    return any(node == child for node in parent.children_by_field_name(field_name))


def is_self_expression(node: Node | None) -> bool:
    return node is not None and node.type == "self"


def method_call_name(call: Node) -> tuple[Node, str] | None:
    """Split ``receiver.method(...)`` into (receiver, method name).

    Returns None for plain function calls.
    """
    function = call.child_by_field_name("function")
    if function is not None and function.type == "generic_function":
        function = function.child_by_field_name("function")
    if function is None or function.type != "field_expression":
        return None
    receiver = function.child_by_field_name("value")
    field = function.child_by_field_name("field")
    if receiver is None or field is None:
        return None
    return receiver, node_text(field)
