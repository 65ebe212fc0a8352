from __future__ import annotations

from dataclasses import replace
from typing import Optional

from ..config.model import ConvertOptions
from ..nodes import K, Node
from .dispatcher import NodeDispatcher


def convert(root: Optional[Node], options: Optional[ConvertOptions] = None) -> str:
    """
    Converts one document tree into ERB text.

    Every call builds its own buffer and dispatcher. On failure the
    ConversionError propagates and no partial output is returned.

    Args:
        root: Document tree (None for an empty document)
        options: Conversion settings

    Returns:
        ERB text, lines joined with "\\n"

    Raises:
        ConversionError: A node cannot be represented in ERB
        ValidationError: options.validate_output is set and the output is malformed
    """
    options = options or ConvertOptions()
    log = options.get_logger()
    if root is None:
        return ""

    if not options.preserve_comments and not is_comment_only(root):
        root = strip_comments(root)

    dispatcher = NodeDispatcher(options)
    dispatcher.visit(root)
    text = dispatcher.buffer.render()
    log.info("Converted document: %d output lines", dispatcher.buffer.line_count)

    if options.validate_output:
        from ..validation import validate_erb
        validate_erb(text, options.directives)
    return text


def is_comment_only(root: Node) -> bool:
    if root.kind is K.COMMENT:
        return True
    return root.kind is K.BEGIN and all(c is not None and c.kind is K.COMMENT for c in root.children)


def strip_comments(node: Optional[Node]) -> Optional[Node]:
    """Tree without comment statements; comment-only slots become empty."""
    if node is None or node.kind is K.COMMENT:
        return None
    if not node.children:
        return node
    children = []
    for child in node.children:
        if node.kind is K.BEGIN and child is not None and child.kind is K.COMMENT:
            continue
        children.append(strip_comments(child))
    return replace(node, children=tuple(children))


__all__ = ["convert", "is_comment_only", "strip_comments"]
