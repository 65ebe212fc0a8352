"""
Argument lists of top-level helper and method calls.

Calls written as a whole directive (`<%= link_to "Home", root_path %>`)
are rendered without parentheses, which makes the bracing of option
hashes significant: an opening brace right after the method name would
read as a block, and options following positional arguments are braced
unless the helper is listed in `Vocabulary.bare_hash_helpers`.
"""

from __future__ import annotations

import textwrap
from typing import List, Optional, Sequence

from ..config.model import ConvertOptions
from ..nodes import K, Node
from .extractor import ContentExtractor, InterpolationStyle, quote

_HASH_KINDS = (K.HASH, K.KWARGS)


def is_multiline_string(node: Optional[Node]) -> bool:
    """String literal (plain or interpolated) whose text spans several lines."""
    if node is None:
        return False
    if node.kind is K.STR:
        return "\n" in (node.value or "")
    if node.kind is K.DSTR:
        return any(p is not None and p.kind is K.STR and "\n" in (p.value or "") for p in node.children)
    return False


class CallFormatter:
    def __init__(self, options: ConvertOptions, extractor: ContentExtractor):
        self.vocab = options.vocabulary
        self.extractor = extractor

    def arguments(self, name: str, args: Sequence[Optional[Node]]) -> str:
        """Comma-separated arguments of an output call, hashes braced per policy."""
        items = [a for a in args if a is not None]
        hash_count = sum(1 for a in items if a.kind in _HASH_KINDS)
        rendered: List[str] = []
        for index, arg in enumerate(items):
            if arg.kind in _HASH_KINDS:
                pairs = self.extractor.hash_pairs(arg)
                braced = self._brace(name, arg, index, len(items), hash_count)
                rendered.append("{" + pairs + "}" if braced else pairs)
            elif arg.kind is K.STR:
                rendered.append(quote(arg.value or "", prefer='"'))
            else:
                rendered.append(self.extractor.code(arg))
        return ", ".join(rendered)

    def _brace(self, name: str, arg: Node, index: int, total: int, hash_count: int) -> bool:
        if arg.kind is K.HASH:
            return True
        if hash_count > 1 or index != total - 1:
            return True
        if index > 0:
            return name not in self.vocab.bare_hash_helpers
        return False

    def call(self, node: Node, args: Optional[Sequence[Optional[Node]]] = None) -> str:
        """
        Whole-directive rendering of a call: `name args` or `recv.name args`.

        Parentheses are added only when the first argument is a braced hash.
        """
        head = self.head(node)
        text = self.arguments(node.method, node.args if args is None else args)
        if not text:
            return head
        if text.startswith("{"):
            return f"{head}({text})"
        return f"{head} {text}"

    def head(self, node: Node) -> str:
        if node.receiver is None:
            return node.method
        dot = "&." if node.kind is K.CSEND else "."
        return f"{self.extractor.operand(node.receiver)}{dot}{node.method}"

    def block_opener(self, node: Node, params: str) -> str:
        """`name args do |params|` for a block call; option hashes are flattened."""
        head = self.head(node)
        parts: List[str] = []
        for arg in node.args:
            if arg is None:
                continue
            if arg.kind in _HASH_KINDS:
                parts.append(self.extractor.hash_pairs(arg))
            else:
                parts.append(self.extractor.code(arg))
        opener = f"{head} {', '.join(parts)}" if parts else head
        opener += " do"
        if params:
            opener += f" |{params}|"
        return opener

    def text_block_lines(self, node: Node) -> List[str]:
        """
        Lines of a multi-line string argument rendered as template text.

        Interpolations become output directives; common indentation and
        surrounding blank lines are removed.
        """
        if node.kind is K.DSTR:
            text = self.extractor.interpolate(node, InterpolationStyle.ERB)
        else:
            text = self.extractor.directives.text(node.value or "")
        lines = textwrap.dedent(text).split("\n")
        while lines and not lines[0].strip():
            lines.pop(0)
        while lines and not lines[-1].strip():
            lines.pop()
        return [line.rstrip() for line in lines]


__all__ = ["CallFormatter", "is_multiline_string"]
