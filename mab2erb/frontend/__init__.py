"""
Markaby source front end: tree-sitter-ruby parsing and lowering.
"""

from __future__ import annotations

import logging
from typing import Optional

from ..errors import ParseError
from ..nodes import Node
from .lowering import RubyLowering
from .tree_sitter_support import RubyDocument

logger = logging.getLogger(__name__)


def parse_markaby(text: str, source: Optional[str] = None) -> Optional[Node]:
    """
    Parses Markaby source into a node tree.

    Args:
        text: Ruby source of the template
        source: Name used in error messages (usually the file path)

    Returns:
        Root node, or None for a document without statements

    Raises:
        ParseError: The source is not syntactically valid Ruby
    """
    doc = RubyDocument(text)
    if doc.has_error():
        line = doc.first_error_line()
        where = f" in {source}" if source else ""
        raise ParseError(f"Syntax error{where}", source=source, line=line)
    root = RubyLowering(doc).lower_program()
    logger.debug("Parsed %s: %s", source or "<string>", "empty" if root is None else root.kind.value)
    return root


__all__ = ["parse_markaby", "RubyDocument", "RubyLowering"]
