"""
Inline rendering of expression nodes.

ContentExtractor turns an expression subtree into the text that goes
inside a directive, an attribute value or an argument list. It is total
(unknown kinds render as an empty string) and never touches the output
buffer.
"""

from __future__ import annotations

import re
from enum import Enum
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from ..config.model import ConvertOptions, Directives
from ..nodes import BINARY_OPERATORS, CALL_KINDS, K, Node, NodeKind, unwrap_begin

_SIMPLE_SYMBOL_RE = re.compile(r"\A(?:[A-Za-z_]\w*[?!=]?|\[\]=?|[-+*/%<>=!~^&|]+)\Z")
_SETTER_RE = re.compile(r"\A[A-Za-z_]\w*=\Z")
_PREFIX_OPERATORS = {"!": "!", "-@": "-", "+@": "+", "~": "~"}

# Binding strength of infix forms; a tighter context parenthesizes looser operands.
_BINARY_PRECEDENCE = {
    "**": 90,
    "*": 80, "/": 80, "%": 80,
    "+": 70, "-": 70,
    "<<": 60, ">>": 60,
    "&": 55,
    "|": 50, "^": 50,
    "<": 45, "<=": 45, ">": 45, ">=": 45,
    "==": 40, "!=": 40, "===": 40, "=~": 40, "!~": 40, "<=>": 40,
}
_KIND_PRECEDENCE = {
    K.AND: 30,
    K.OR: 25,
    K.IRANGE: 20,
    K.ERANGE: 20,
    K.IF: 15,
    K.LVASGN: 10, K.IVASGN: 10, K.CVASGN: 10, K.GVASGN: 10, K.CASGN: 10, K.OP_ASGN: 10,
}
_TIGHTEST = 100

Segment = Tuple[bool, str]


class InterpolationStyle(str, Enum):
    """How the code parts of an interpolated string are rejoined."""
    RUBY = "ruby"  # "text #{code}"
    ERB = "erb"    # text <%= code %>


def _escape_double(text: str) -> str:
    return (
        text.replace("\\", "\\\\")
        .replace('"', '\\"')
        .replace("#{", "\\#{")
        .replace("#@", "\\#@")
        .replace("#$", "\\#$")
        .replace("\n", "\\n")
        .replace("\t", "\\t")
    )


def quote(text: str, prefer: str = "'") -> str:
    """
    Ruby string literal for plain text.

    Single quotes by default, double quotes when the text holds a single
    quote or a control character. With prefer='"' the choice is inverted.
    """
    needs_double = "\n" in text or "\t" in text
    if prefer == '"' and '"' in text and "'" not in text and not needs_double:
        prefer = "'"
    elif prefer == "'" and ("'" in text or needs_double):
        prefer = '"'
    if prefer == "'":
        return "'" + text.replace("\\", "\\\\") + "'"
    return '"' + _escape_double(text) + '"'


def symbol(name: str) -> str:
    if _SIMPLE_SYMBOL_RE.match(name):
        return ":" + name
    return ':"' + _escape_double(name) + '"'


class ContentExtractor:
    """
    Pure node -> inline text renderer.

    `extract` follows the content rules (string literals unquoted);
    `code` is the variant for nested positions where string literals
    must stay quoted.
    """

    def __init__(self, options: ConvertOptions):
        self.options = options
        self.directives: Directives = options.directives
        self._renderers: Dict[NodeKind, Callable[[Node], str]] = {
            K.STR: lambda n: n.value or "",
            K.DSTR: self.ruby_string,
            K.INT: lambda n: n.value or "0",
            K.FLOAT: lambda n: n.value or "0.0",
            K.REGEXP: lambda n: n.value or "//",
            K.RAW: lambda n: n.value or "",
            K.SYM: lambda n: symbol(n.value or ""),
            K.DSYM: lambda n: ":" + self.ruby_string(n),
            K.TRUE: lambda n: "true",
            K.FALSE: lambda n: "false",
            K.NIL: lambda n: "nil",
            K.SELF: lambda n: "self",
            K.LVAR: lambda n: n.value or "",
            K.IVAR: lambda n: n.value or "",
            K.CVAR: lambda n: n.value or "",
            K.GVAR: lambda n: n.value or "",
            K.CONST: self._const,
            K.ARRAY: self._array,
            K.HASH: lambda n: "{" + self.hash_pairs(n) + "}",
            K.KWARGS: lambda n: "{" + self.hash_pairs(n) + "}",
            K.PAIR: self._pair,
            K.IRANGE: lambda n: self._range(n, ".."),
            K.ERANGE: lambda n: self._range(n, "..."),
            K.LVASGN: self._assignment,
            K.IVASGN: self._assignment,
            K.CVASGN: self._assignment,
            K.GVASGN: self._assignment,
            K.CASGN: self._assignment,
            K.OP_ASGN: self._op_assignment,
            K.SEND: self._send,
            K.CSEND: self._send,
            K.BLOCK: self._block,
            K.BLOCK_PASS: lambda n: "&" + self.code(n.child(0)),
            K.SPLAT: lambda n: "*" + self.code(n.child(0)),
            K.KWSPLAT: lambda n: "**" + self.code(n.child(0)),
            K.AND: lambda n: self._logical(n, "&&"),
            K.OR: lambda n: self._logical(n, "||"),
            K.DEFINED: lambda n: f"defined?({self.code(n.child(0))})",
            K.IF: self._conditional,
            K.BEGIN: self._parenthesized,
            K.YIELD: lambda n: self._keyword_call("yield", n.children),
            K.NEXT: lambda n: self._keyword_call("next", n.children, parens=False),
            K.BREAK: lambda n: self._keyword_call("break", n.children, parens=False),
            K.RETURN: lambda n: self._keyword_call("return", n.children, parens=False),
            K.REDO: lambda n: "redo",
            K.RETRY: lambda n: "retry",
        }

    # ---- public API ----

    def extract(self, node: Optional[Node]) -> str:
        """Inline text of an expression; unknown kinds give ""."""
        if node is None:
            return ""
        renderer = self._renderers.get(node.kind)
        return renderer(node) if renderer else ""

    def code(self, node: Optional[Node], prefer: str = "'") -> str:
        """Like extract, but string literals come back as Ruby literals."""
        if node is not None and node.kind is K.STR:
            return quote(node.value or "", prefer)
        return self.extract(node)

    def condition(self, node: Optional[Node]) -> str:
        """Guard expression text; redundant outer parentheses are dropped."""
        return self.code(unwrap_begin(node))

    def operand(self, node: Optional[Node], context: int = _TIGHTEST, right: bool = False) -> str:
        """
        Code for an operand position, parenthesized when precedence requires it.

        Args:
            node: Operand
            context: Binding strength of the enclosing operator (receivers use the tightest)
            right: Operand sits on the right of a left-associative operator
        """
        text = self.code(node)
        prec = _precedence(node)
        if prec is not None and (prec < context or (right and prec == context)):
            return f"({text})"
        return text

    def segments(self, node: Node) -> List[Segment]:
        """
        Interpolated string parts as (is_code, text) pairs.

        Adjacent literal parts are merged; nested interpolated strings
        are flattened.
        """
        out: List[Segment] = []
        for part in node.children:
            if part is None:
                continue
            if part.kind is K.STR:
                piece: Segment = (False, part.value or "")
            elif part.kind is K.DSTR:
                for seg in self.segments(part):
                    _push(out, seg)
                continue
            elif part.kind is K.BEGIN:
                piece = (True, "; ".join(self.code(c) for c in part.children if c is not None))
            else:
                piece = (True, self.code(part))
            _push(out, piece)
        return out

    def interpolate(self, node: Node, style: InterpolationStyle = InterpolationStyle.RUBY) -> str:
        """Interpolated string body (without quotes) joined in the given style."""
        pieces: List[str] = []
        for is_code, text in self.segments(node):
            if style is InterpolationStyle.RUBY:
                pieces.append("#{" + text + "}" if is_code else _escape_double(text))
            else:
                pieces.append(self.directives.output(text) if is_code else self.directives.text(text))
        return "".join(pieces)

    def ruby_string(self, node: Node) -> str:
        return '"' + self.interpolate(node, InterpolationStyle.RUBY) + '"'

    def hash_pairs(self, node: Node) -> str:
        """`key => value, ...` without braces."""
        return ", ".join(self.extract(p) for p in node.children if p is not None)

    def call_args(self, args: Sequence[Optional[Node]]) -> str:
        """Argument list of a nested call; bare trailing options stay bare."""
        rendered: List[str] = []
        for arg in args:
            if arg is None:
                continue
            if arg.kind is K.KWARGS:
                rendered.append(self.hash_pairs(arg))
            else:
                rendered.append(self.code(arg))
        return ", ".join(rendered)

    def block_params(self, params: Optional[Node]) -> str:
        """Formal parameters of a block: `a, (b, c), *rest`."""
        if params is None:
            return ""
        names: List[str] = []
        for param in params.children:
            if param is None:
                continue
            if param.kind is K.MLHS:
                names.append("(" + self.block_params(param) + ")")
            else:
                names.append(param.value or "")
        return ", ".join(names)

    def call_head(self, node: Node) -> str:
        """Call text used in front of a block: no instance-scope rewriting."""
        return self._send(node, scoped=False)

    # ---- renderers ----

    def _const(self, node: Node) -> str:
        scope = node.child(0)
        if scope is None:
            return node.value or ""
        return f"{self.extract(scope)}::{node.value}"

    def _array(self, node: Node) -> str:
        return "[" + ", ".join(self.code(item) for item in node.children if item is not None) + "]"

    def _pair(self, node: Node) -> str:
        key, value = node.child(0), node.child(1)
        if key is not None and key.kind is K.SYM:
            key_text = symbol(key.value or "")
        else:
            key_text = self.code(key)
        return f"{key_text} => {self.code(value)}"

    def _range(self, node: Node, op: str) -> str:
        return f"{self.code(node.child(0))}{op}{self.code(node.child(1))}"

    def _assignment(self, node: Node) -> str:
        if node.kind is K.CASGN:
            target = self._const(Node(K.CONST, (node.child(0),), node.value))
            value = node.child(1)
        else:
            target = node.value or ""
            value = node.child(0)
        if value is None:
            return target
        return f"{target} = {self.code(value)}"

    def assignment_target(self, node: Node) -> str:
        """Left-hand side of an (operator) assignment."""
        if node.kind in CALL_KINDS:
            return self._send(node, scoped=False)
        if node.kind is K.CASGN:
            return self._const(Node(K.CONST, (node.child(0),), node.value))
        return node.value or ""

    def _op_assignment(self, node: Node) -> str:
        target = node.child(0)
        target_text = self.assignment_target(target) if target is not None else ""
        return f"{target_text} {node.value}= {self.code(node.child(1))}"

    def _send(self, node: Node, scoped: bool = True) -> str:
        recv = node.receiver
        name = node.method
        args = [a for a in node.args if a is not None]

        if recv is not None and not args and name in _PREFIX_OPERATORS:
            return _PREFIX_OPERATORS[name] + self.operand(recv)
        if recv is not None and len(args) == 1 and name in BINARY_OPERATORS:
            prec = _BINARY_PRECEDENCE[name]
            return f"{self.operand(recv, prec)} {name} {self.operand(args[0], prec, right=True)}"
        if recv is not None and name == "[]":
            return f"{self.operand(recv)}[{self.call_args(args)}]"
        if recv is not None and name == "[]=" and args:
            return f"{self.operand(recv)}[{self.call_args(args[:-1])}] = {self.code(args[-1])}"

        if recv is None:
            if not args:
                return self.options.scoped_name(name) if scoped else name
            return f"{name}({self.call_args(args)})"

        dot = "&." if node.kind is K.CSEND else "."
        head = self.operand(recv)
        if _SETTER_RE.match(name) and len(args) == 1:
            return f"{head}{dot}{name[:-1]} = {self.code(args[0])}"
        if not args:
            return f"{head}{dot}{name}"
        return f"{head}{dot}{name}({self.call_args(args)})"

    def _block(self, node: Node) -> str:
        call = node.child(0)
        head = self.call_head(call) if call is not None else ""
        params = self.block_params(node.child(1))
        body = node.child(2)
        inner = ""
        if body is not None:
            stmts = body.children if body.kind is K.BEGIN else (body,)
            inner = "; ".join(self.code(s) for s in stmts if s is not None)
        pipe = f"|{params}| " if params else ""
        return f"{head} {{ {pipe}{inner} }}" if inner else f"{head} {{ {pipe}}}"

    def _logical(self, node: Node, op: str) -> str:
        prec = _KIND_PRECEDENCE[node.kind]
        return f"{self.operand(node.child(0), prec)} {op} {self.operand(node.child(1), prec, right=True)}"

    def _conditional(self, node: Node) -> str:
        cond = self.condition(node.child(0))
        then, other = node.child(1), node.child(2)
        if then is not None and other is not None:
            return f"{cond} ? {self.code(then)} : {self.code(other)}"
        if then is not None:
            return f"({self.code(then)} if {cond})"
        if other is not None:
            return f"({self.code(other)} unless {cond})"
        return cond

    def _parenthesized(self, node: Node) -> str:
        return "(" + "; ".join(self.code(c) for c in node.children if c is not None) + ")"

    def _keyword_call(self, keyword: str, args: Sequence[Optional[Node]], parens: bool = True) -> str:
        present = [a for a in args if a is not None]
        if not present:
            return keyword
        text = self.call_args(present)
        return f"{keyword}({text})" if parens else f"{keyword} {text}"


def _precedence(node: Optional[Node]) -> Optional[int]:
    """Binding strength of an infix form, None for atoms."""
    if node is None:
        return None
    if node.kind in CALL_KINDS:
        if node.receiver is not None and len(node.children) == 2 and node.method in _BINARY_PRECEDENCE:
            return _BINARY_PRECEDENCE[node.method]
        return None
    return _KIND_PRECEDENCE.get(node.kind)


def _push(out: List[Segment], seg: Segment) -> None:
    if out and not out[-1][0] and not seg[0]:
        out[-1] = (False, out[-1][1] + seg[1])
    else:
        out.append(seg)


__all__ = ["ContentExtractor", "InterpolationStyle", "quote", "symbol"]
