"""
Pure predicates over syntax subtrees.

These decide which conversion shape a construct can take: whether a
conditional may collapse into an inline ternary, whether a call chain is
a tag call, and so on. None of them depend on conversion state.
"""

from __future__ import annotations

import re
from typing import Optional

from ..config.model import Vocabulary
from ..nodes import CALL_KINDS, K, Node, NodeCategory

# Statement forms that never fit into a single directive.
COMPOUND_KINDS = frozenset({
    K.BEGIN, K.KWBEGIN, K.IF, K.WHILE, K.UNTIL, K.FOR, K.CASE, K.RESCUE, K.ENSURE, K.BLOCK,
})

# Markaby builder methods that write markup without being tags themselves.
MARKUP_METHODS = frozenset({"text", "tag!", "empty_tag!", "end_form", "content_for", "capture"})

# Categories of statements that never stand for a value.
STATEMENT_CATEGORIES = frozenset({
    NodeCategory.ASSIGNMENT,
    NodeCategory.CONDITIONAL,
    NodeCategory.LOOP,
    NodeCategory.BLOCK_CALL,
    NodeCategory.SEQUENCE,
    NodeCategory.EXCEPTION_BLOCK,
    NodeCategory.CASE_BLOCK,
    NodeCategory.CONTROL_JUMP,
    NodeCategory.COMMENT,
    NodeCategory.DEFINITION,
})

_MARKUP_RE = re.compile(r"<\s*/?\s*[A-Za-z!]")


def is_compound(node: Optional[Node]) -> bool:
    return node is not None and node.kind in COMPOUND_KINDS


def chain_base(node: Node) -> Optional[Node]:
    """
    Receiver-less link at the bottom of a call chain: div.a.b! -> div.

    Returns None when the chain bottoms out in something other than a call
    (a variable, a literal, ...).
    """
    current: Optional[Node] = node
    while current is not None and current.kind in CALL_KINDS:
        if current.receiver is None:
            return current
        current = current.receiver
    return None


def is_tag_call(node: Optional[Node], vocab: Vocabulary) -> bool:
    """Call whose chain starts at a known tag: h1, div.item, td.price!(...)."""
    if node is None or node.kind is not K.SEND:
        return False
    base = chain_base(node)
    return base is not None and vocab.is_tag(base.method)


def is_markup_call(node: Optional[Node], vocab: Vocabulary) -> bool:
    """Single call that writes markup: a tag, a helper or a builder method."""
    if node is None or node.kind not in CALL_KINDS:
        return False
    if node.receiver is None and (vocab.is_helper(node.method) or node.method in MARKUP_METHODS):
        return True
    return is_tag_call(node, vocab)


def contains_markup_call(node: Optional[Node], vocab: Vocabulary) -> bool:
    """True when a tag, helper or builder call appears anywhere in the subtree."""
    if node is None:
        return False
    if is_markup_call(node, vocab):
        return True
    return any(contains_markup_call(child, vocab) for child in node.children)


def string_contains_markup(node: Optional[Node]) -> bool:
    """Literal or interpolated string whose literal text holds tag-like markup."""
    if node is None:
        return False
    if node.kind is K.STR:
        return bool(_MARKUP_RE.search(node.value or ""))
    if node.kind is K.DSTR:
        return any(
            part is not None and part.kind is K.STR and _MARKUP_RE.search(part.value or "")
            for part in node.children
        )
    return False


def ternary_branch_ok(node: Optional[Node], vocab: Vocabulary) -> bool:
    """Branch that can stand on one side of `cond ? a : b`."""
    if node is None:
        return False
    if node.category in STATEMENT_CATEGORIES:
        return False
    if contains_markup_call(node, vocab):
        return False
    return not string_contains_markup(node)


def is_static_dstr(node: Node) -> bool:
    """Interpolated string that has only literal parts."""
    return node.kind is K.DSTR and all(p is not None and p.kind is K.STR for p in node.children)


__all__ = [
    "COMPOUND_KINDS",
    "MARKUP_METHODS",
    "STATEMENT_CATEGORIES",
    "is_compound",
    "chain_base",
    "is_tag_call",
    "is_markup_call",
    "contains_markup_call",
    "string_contains_markup",
    "ternary_branch_ok",
    "is_static_dstr",
]
