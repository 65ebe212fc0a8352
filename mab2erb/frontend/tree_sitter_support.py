"""
Tree-sitter infrastructure for Ruby sources.
Provides grammar loading and utilities for walking parsed documents.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Iterator, List, Optional

import tree_sitter_ruby as tsruby
from tree_sitter import Language, Node, Parser, Tree


@lru_cache(maxsize=1)
def ruby_language() -> Language:
    return Language(tsruby.language())


class RubyDocument:
    """
    Wrapper for a Tree-sitter parsed Ruby document.
    """

    def __init__(self, text: str):
        self.text = text
        self.tree: Optional[Tree] = None
        self._text_bytes = text.encode("utf-8")
        self._parse()

    def get_parser(self) -> Parser:
        """
        Get parser for the language.

        Returns:
            Parser instance
        """
        return Parser(ruby_language())

    def _parse(self):
        """Parse the document with Tree-sitter."""
        parser = self.get_parser()
        self.tree = parser.parse(self._text_bytes)

    @property
    def source_bytes(self) -> bytes:
        return self._text_bytes

    @property
    def root_node(self) -> Node:
        """Get the root node of the parsed tree."""
        if not self.tree:
            raise RuntimeError("Document not parsed")
        return self.tree.root_node

    def find_nodes_by_type(self, node_type: str, start_node: Optional[Node] = None) -> List[Node]:
        """
        Find all nodes of a specific type.

        Args:
            node_type: Type of nodes to find
            start_node: Node to start search from (default: root)

        Returns:
            List of matching nodes, in document order
        """
        if start_node is None:
            start_node = self.root_node
        return [node for node in self.walk_tree(start_node) if node.type == node_type]

    def walk_tree(self, start_node: Optional[Node] = None) -> Iterator[Node]:
        """
        Walk the tree using TreeCursor for efficient traversal.

        Args:
            start_node: Node to start from (default: root)

        Yields:
            Node objects in depth-first order
        """
        if start_node is None:
            start_node = self.root_node

        cursor = start_node.walk()
        visited_children = False

        while True:
            if not visited_children:
                yield cursor.node

                if not cursor.goto_first_child():
                    visited_children = True
            elif cursor.goto_next_sibling():
                visited_children = False
            elif not cursor.goto_parent():
                break
            else:
                visited_children = True

    def get_node_text(self, node: Node) -> str:
        """Get text content for a node."""
        return self._text_bytes[node.start_byte:node.end_byte].decode("utf-8")

    @staticmethod
    def line_of(node: Node) -> int:
        """1-based first line of a node."""
        return node.start_point[0] + 1

    def has_error(self) -> bool:
        """Check if the tree has any syntax errors."""
        if not self.tree:
            return True
        return self.root_node.has_error

    def get_errors(self) -> List[Node]:
        """ERROR nodes and nodes the parser had to insert, in document order."""
        return [
            node for node in self.walk_tree()
            if node.type == "ERROR" or node.is_missing
        ]

    def first_error_line(self) -> Optional[int]:
        """1-based line of the first syntax error, None for a clean tree."""
        errors = self.get_errors()
        if not errors:
            return None
        return min(self.line_of(node) for node in errors)


__all__ = ["RubyDocument", "ruby_language"]
