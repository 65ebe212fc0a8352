"""
Generic syntax tree consumed by the conversion engine.

The node vocabulary follows the shapes of the whitequark Ruby parser,
which is what Markaby documents are ordinarily parsed into:

    send      value=method name   children=(receiver | None, *args)
    block     children=(call, args, body | None)
    if        children=(condition, then | None, else | None)
    lvasgn    value=name          children=(value,)
    op_asgn   value=operator      children=(target, value)
    dstr      children=(str | expression, ...)
    rescue    children=(body, resbody..., else | None)
    resbody   children=(exception list | None, variable | None, body | None)
    case      children=(subject | None, when..., else | None)
    when      children=(condition..., body | None)

Nodes are immutable; absent slots are stored as None.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional, Tuple, Union


class NodeKind(str, Enum):
    # literals
    STR = "str"
    DSTR = "dstr"
    INT = "int"
    FLOAT = "float"
    SYM = "sym"
    DSYM = "dsym"
    REGEXP = "regexp"
    TRUE = "true"
    FALSE = "false"
    NIL = "nil"
    SELF = "self"
    ARRAY = "array"
    HASH = "hash"
    KWARGS = "kwargs"
    PAIR = "pair"
    IRANGE = "irange"
    ERANGE = "erange"

    # variables
    LVAR = "lvar"
    IVAR = "ivar"
    CVAR = "cvar"
    GVAR = "gvar"
    CONST = "const"

    # assignments
    LVASGN = "lvasgn"
    IVASGN = "ivasgn"
    CVASGN = "cvasgn"
    GVASGN = "gvasgn"
    CASGN = "casgn"
    OP_ASGN = "op_asgn"

    # calls
    SEND = "send"
    CSEND = "csend"
    BLOCK = "block"
    BLOCK_PASS = "block_pass"
    SPLAT = "splat"
    KWSPLAT = "kwsplat"
    ARGS = "args"
    ARG = "arg"
    MLHS = "mlhs"

    # operators
    AND = "and"
    OR = "or"
    DEFINED = "defined?"

    # control flow
    IF = "if"
    WHILE = "while"
    UNTIL = "until"
    FOR = "for"
    CASE = "case"
    WHEN = "when"
    BEGIN = "begin"
    KWBEGIN = "kwbegin"
    RESCUE = "rescue"
    RESBODY = "resbody"
    ENSURE = "ensure"
    NEXT = "next"
    BREAK = "break"
    REDO = "redo"
    RETRY = "retry"
    RETURN = "return"
    YIELD = "yield"

    # everything else
    DEF = "def"
    COMMENT = "comment"
    RAW = "raw"


class NodeCategory(str, Enum):
    """Coarse syntactic form of a node."""
    CALL = "call"
    ASSIGNMENT = "assignment"
    CONDITIONAL = "conditional"
    LOOP = "loop"
    BLOCK_CALL = "block-call"
    LITERAL_STRING = "literal-string"
    LITERAL_NUMBER = "literal-number"
    LITERAL_SYMBOL = "literal-symbol"
    LITERAL_COLLECTION = "literal-collection"
    INTERPOLATED_STRING = "interpolated-string"
    EXCEPTION_BLOCK = "exception-block"
    CASE_BLOCK = "case-block"
    CONTROL_JUMP = "control-jump"
    OPERATOR_EXPRESSION = "operator-expression"
    VARIABLE = "variable"
    SEQUENCE = "sequence"
    COMMENT = "comment"
    DEFINITION = "definition"
    OTHER = "other"


K = NodeKind

_CATEGORIES: Dict[NodeKind, NodeCategory] = {
    K.STR: NodeCategory.LITERAL_STRING,
    K.DSTR: NodeCategory.INTERPOLATED_STRING,
    K.INT: NodeCategory.LITERAL_NUMBER,
    K.FLOAT: NodeCategory.LITERAL_NUMBER,
    K.SYM: NodeCategory.LITERAL_SYMBOL,
    K.DSYM: NodeCategory.LITERAL_SYMBOL,
    K.ARRAY: NodeCategory.LITERAL_COLLECTION,
    K.HASH: NodeCategory.LITERAL_COLLECTION,
    K.KWARGS: NodeCategory.LITERAL_COLLECTION,
    K.IRANGE: NodeCategory.LITERAL_COLLECTION,
    K.ERANGE: NodeCategory.LITERAL_COLLECTION,
    K.LVAR: NodeCategory.VARIABLE,
    K.IVAR: NodeCategory.VARIABLE,
    K.CVAR: NodeCategory.VARIABLE,
    K.GVAR: NodeCategory.VARIABLE,
    K.CONST: NodeCategory.VARIABLE,
    K.LVASGN: NodeCategory.ASSIGNMENT,
    K.IVASGN: NodeCategory.ASSIGNMENT,
    K.CVASGN: NodeCategory.ASSIGNMENT,
    K.GVASGN: NodeCategory.ASSIGNMENT,
    K.CASGN: NodeCategory.ASSIGNMENT,
    K.OP_ASGN: NodeCategory.ASSIGNMENT,
    K.SEND: NodeCategory.CALL,
    K.CSEND: NodeCategory.CALL,
    K.BLOCK: NodeCategory.BLOCK_CALL,
    K.AND: NodeCategory.OPERATOR_EXPRESSION,
    K.OR: NodeCategory.OPERATOR_EXPRESSION,
    K.IF: NodeCategory.CONDITIONAL,
    K.WHILE: NodeCategory.LOOP,
    K.UNTIL: NodeCategory.LOOP,
    K.FOR: NodeCategory.LOOP,
    K.CASE: NodeCategory.CASE_BLOCK,
    K.BEGIN: NodeCategory.SEQUENCE,
    K.KWBEGIN: NodeCategory.EXCEPTION_BLOCK,
    K.RESCUE: NodeCategory.EXCEPTION_BLOCK,
    K.ENSURE: NodeCategory.EXCEPTION_BLOCK,
    K.NEXT: NodeCategory.CONTROL_JUMP,
    K.BREAK: NodeCategory.CONTROL_JUMP,
    K.REDO: NodeCategory.CONTROL_JUMP,
    K.RETRY: NodeCategory.CONTROL_JUMP,
    K.RETURN: NodeCategory.CONTROL_JUMP,
    K.COMMENT: NodeCategory.COMMENT,
    K.DEF: NodeCategory.DEFINITION,
}

# Method names rendered as infix operators.
BINARY_OPERATORS = frozenset({
    "==", "!=", "===", "=~", "!~", "<=>", "<", "<=", ">", ">=",
    "+", "-", "*", "/", "%", "**", "&", "|", "^", "<<", ">>",
})

ASSIGNMENT_KINDS = frozenset({K.LVASGN, K.IVASGN, K.CVASGN, K.GVASGN, K.CASGN, K.OP_ASGN})
JUMP_KINDS = frozenset({K.NEXT, K.BREAK, K.REDO, K.RETRY, K.RETURN})
CALL_KINDS = frozenset({K.SEND, K.CSEND})

NodeValue = Union[str, None]


@dataclass(frozen=True)
class Node:
    """
    Immutable syntax tree node.

    Attributes:
        kind: Syntactic form
        children: Child slots in kind-specific order; absent slots are None
        value: Literal payload (text, method or variable name, operator)
        line: 1-based source line, when known
    """
    kind: NodeKind
    children: Tuple[Optional["Node"], ...] = ()
    value: NodeValue = None
    line: Optional[int] = None

    @property
    def category(self) -> NodeCategory:
        if self.kind in CALL_KINDS and self.value in BINARY_OPERATORS and len(self.children) == 2:
            return NodeCategory.OPERATOR_EXPRESSION
        return _CATEGORIES.get(self.kind, NodeCategory.OTHER)

    # ---- send / csend accessors ----

    @property
    def receiver(self) -> Optional[Node]:
        return self.children[0] if self.children else None

    @property
    def method(self) -> str:
        return self.value or ""

    @property
    def args(self) -> Tuple[Optional[Node], ...]:
        return self.children[1:]

    def child(self, index: int) -> Optional[Node]:
        """Child slot by index, None when the slot does not exist."""
        if index < len(self.children):
            return self.children[index]
        return None

    def is_call(self, name: Optional[str] = None) -> bool:
        if self.kind not in CALL_KINDS:
            return False
        return name is None or self.value == name

    def __repr__(self) -> str:
        return format_node(self)


def format_node(node: Optional[Node]) -> str:
    """S-expression rendering, used in error context and test diagnostics."""
    if node is None:
        return "nil"
    parts = [node.kind.value]
    if node.value is not None:
        parts.append(repr(node.value))
    parts.extend(format_node(c) for c in node.children)
    return "(" + " ".join(parts) + ")"


def unwrap_begin(node: Optional[Node]) -> Optional[Node]:
    """Strip single-statement parentheses: (begin x) -> x."""
    while node is not None and node.kind is K.BEGIN and len(node.children) == 1:
        node = node.children[0]
    return node


def statements(node: Optional[Node]) -> Tuple[Node, ...]:
    """Statements of a body slot: a begin sequence is flattened, None is empty."""
    if node is None:
        return ()
    if node.kind is K.BEGIN:
        return tuple(c for c in node.children if c is not None)
    return (node,)


__all__ = [
    "NodeKind",
    "NodeCategory",
    "Node",
    "K",
    "BINARY_OPERATORS",
    "ASSIGNMENT_KINDS",
    "JUMP_KINDS",
    "CALL_KINDS",
    "format_node",
    "unwrap_begin",
    "statements",
]
