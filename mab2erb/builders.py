"""
Shorthand constructors for syntax tree nodes.

Used by the front end when lowering parse trees and by tests that build
trees directly:

    send(None, "h1", str_("Hello"))          # h1 "Hello"
    block(send(ivar("@items"), "each"), args("item"), body)
"""

from __future__ import annotations

from typing import Iterable, Optional

from .nodes import K, Node, NodeKind


def s(kind: NodeKind, *children: Optional[Node], value: Optional[str] = None, line: Optional[int] = None) -> Node:
    return Node(kind, tuple(children), value, line)


# ---- literals ----

def str_(text: str, line: Optional[int] = None) -> Node:
    return Node(K.STR, (), text, line)


def dstr(*parts: Node | str, line: Optional[int] = None) -> Node:
    """Interpolated string; plain str parts are wrapped into literal nodes."""
    nodes = tuple(str_(p) if isinstance(p, str) else p for p in parts)
    return Node(K.DSTR, nodes, None, line)


def int_(value: int | str) -> Node:
    return Node(K.INT, (), str(value))


def float_(value: float | str) -> Node:
    return Node(K.FLOAT, (), str(value))


def sym(name: str) -> Node:
    return Node(K.SYM, (), name)


def true() -> Node:
    return Node(K.TRUE)


def false() -> Node:
    return Node(K.FALSE)


def nil() -> Node:
    return Node(K.NIL)


def array(*items: Node) -> Node:
    return Node(K.ARRAY, tuple(items))


def pair(key: Node, value: Node) -> Node:
    return Node(K.PAIR, (key, value))


def hash_(*pairs: Node) -> Node:
    """Braced hash literal: {:a => 1}."""
    return Node(K.HASH, tuple(pairs))


def kwargs(*pairs: Node) -> Node:
    """Bare trailing hash argument: foo :a => 1."""
    return Node(K.KWARGS, tuple(pairs))


def attrs(**values: Node | str) -> Node:
    """Bare symbol-keyed hash; str values become string literals."""
    return kwargs(*(
        pair(sym(k), str_(v) if isinstance(v, str) else v)
        for k, v in values.items()
    ))


# ---- variables ----

def lvar(name: str) -> Node:
    return Node(K.LVAR, (), name)


def ivar(name: str) -> Node:
    return Node(K.IVAR, (), name if name.startswith("@") else "@" + name)


def const(name: str, scope: Optional[Node] = None) -> Node:
    return Node(K.CONST, (scope,), name)


def lvasgn(name: str, value: Optional[Node]) -> Node:
    return Node(K.LVASGN, (value,), name)


def ivasgn(name: str, value: Optional[Node]) -> Node:
    return Node(K.IVASGN, (value,), name)


# ---- calls ----

def send(receiver: Optional[Node], method: str, *args: Node, line: Optional[int] = None) -> Node:
    return Node(K.SEND, (receiver, *args), method, line)


def call(method: str, *args: Node) -> Node:
    """Receiver-less call."""
    return send(None, method, *args)


def args(*names: str | Node) -> Node:
    return Node(K.ARGS, tuple(Node(K.ARG, (), n) if isinstance(n, str) else n for n in names))


def block(call_node: Node, params: Optional[Node], *body: Node, line: Optional[int] = None) -> Node:
    return Node(K.BLOCK, (call_node, params if params is not None else args(), seq(body)), None, line)


def block_pass(target: Optional[Node]) -> Node:
    return Node(K.BLOCK_PASS, (target,))


# ---- control flow ----

def seq(body: Iterable[Node]) -> Optional[Node]:
    """Body slot from a list of statements: None, the statement, or a begin."""
    items = tuple(body)
    if not items:
        return None
    if len(items) == 1:
        return items[0]
    return Node(K.BEGIN, items)


def begin(*stmts: Node) -> Node:
    return Node(K.BEGIN, tuple(stmts))


def if_(cond: Node, then: Optional[Node], else_: Optional[Node] = None, line: Optional[int] = None) -> Node:
    return Node(K.IF, (cond, then, else_), None, line)


def unless(cond: Node, body: Optional[Node], else_: Optional[Node] = None) -> Node:
    return Node(K.IF, (cond, else_, body))


def and_(left: Node, right: Node) -> Node:
    return Node(K.AND, (left, right))


def or_(left: Node, right: Node) -> Node:
    return Node(K.OR, (left, right))


def comment(text: str, line: Optional[int] = None) -> Node:
    return Node(K.COMMENT, (), text, line)


__all__ = [
    "s", "str_", "dstr", "int_", "float_", "sym", "true", "false", "nil",
    "array", "pair", "hash_", "kwargs", "attrs",
    "lvar", "ivar", "const", "lvasgn", "ivasgn",
    "send", "call", "args", "block", "block_pass",
    "seq", "begin", "if_", "unless", "and_", "or_", "comment",
]
