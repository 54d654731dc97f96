"""Rust parser backed by tree-sitter-language-pack."""

from __future__ import annotations

from typing import TYPE_CHECKING

from loguru import logger
from tree_sitter_language_pack import get_parser

from ..config.defaults import RUST_LANGUAGE
from ..core.exceptions import ParsingError

if TYPE_CHECKING:
    from tree_sitter import Node, Tree


class RustParser:
    """Parses Rust source into tree-sitter syntax trees.

    Sources that contain syntax errors raise ``ParsingError``.
    """

    def __init__(self) -> None:
        self._parser = get_parser(RUST_LANGUAGE)
        logger.debug(
            "Rust Tree-sitter parser initialized via tree-sitter-language-pack"
        )

    def parse(self, source: bytes, path: str = "<memory>") -> Tree:
        """Parse UTF-8 source bytes.

        Raises:
            ParsingError: If the tree contains syntax errors
        """
        tree = self._parser.parse(source)
        if tree.root_node.has_error:
            error = _first_error(tree.root_node)
            line = error.start_point[0] + 1 if error is not None else None
            raise ParsingError(
                "Rust source contains syntax errors", {"path": path, "line": line}
            )
        return tree

    def parse_text(self, text: str, path: str = "<memory>") -> Tree:
        return self.parse(text.encode("utf-8"), path)


def _first_error(root: Node) -> Node | None:
    stack = [root]
    while stack:
        node = stack.pop()
        if node.is_error or node.is_missing:
            return node
        if node.has_error:
            stack.extend(reversed(node.children))
    return None
