"""
Lowering of tree-sitter-ruby concrete syntax trees into mab2erb nodes.

Tree-sitter gives a concrete tree that does not know which identifiers
are local variables, keeps string delimiters and escapes as tokens, and
splits heredocs into a beginning and a detached body. RubyLowering
resolves all three and produces the whitequark-shaped nodes the
conversion engine works with.
"""

from __future__ import annotations

import re
from dataclasses import replace
from typing import Callable, Dict, List, Optional, Sequence, Set, Union

from tree_sitter import Node as TSNode

from ..builders import seq
from ..nodes import K, Node, NodeKind
from .tree_sitter_support import RubyDocument

# Node types that never produce a statement or an argument.
SKIPPED_TYPES = frozenset({"empty_statement", "uninterpreted", "heredoc_body", "heredoc_end"})

_DEFINITION_TYPES = {
    "method": "method",
    "singleton_method": "method",
    "class": "class",
    "singleton_class": "class",
    "module": "module",
}

_SIMPLE_ESCAPES = {
    "n": "\n", "t": "\t", "r": "\r", "s": " ", "0": "\0",
    "e": "\x1b", "a": "\a", "b": "\b", "f": "\f", "v": "\v",
}

_UNICODE_ESCAPE_RE = re.compile(r"\\u\{?([0-9A-Fa-f ]+)\}?")
_HEX_ESCAPE_RE = re.compile(r"\\x([0-9A-Fa-f]{1,2})")
_OCTAL_ESCAPE_RE = re.compile(r"\\([0-7]{1,3})")

Part = Union[str, Node]


def decode_escape(text: str) -> str:
    """Character(s) denoted by a double-quoted string escape sequence."""
    match = _UNICODE_ESCAPE_RE.fullmatch(text)
    if match:
        return "".join(chr(int(code, 16)) for code in match.group(1).split())
    match = _HEX_ESCAPE_RE.fullmatch(text)
    if match:
        return chr(int(match.group(1), 16))
    match = _OCTAL_ESCAPE_RE.fullmatch(text)
    if match and text != "\\0":
        return chr(int(match.group(1), 8))
    if len(text) >= 2 and text[0] == "\\":
        return _SIMPLE_ESCAPES.get(text[1], text[1:])
    return text


def decode_single_quoted(text: str) -> str:
    """Single-quoted strings only know the `\\\\` and `\\'` escapes."""
    return re.sub(r"\\([\\'])", r"\1", text)


class RubyLowering:
    """
    One-shot converter from a parsed RubyDocument to a node tree.

    Local variables are tracked on a scope stack: the document is the
    outermost scope, every block opens a nested one. A bare identifier
    that was assigned (or bound as a block, loop or rescue variable)
    before it is used lowers to an lvar; any other bare identifier is a
    receiver-less call.
    """

    def __init__(self, doc: RubyDocument):
        self.doc = doc
        self._scopes: List[Set[str]] = [set()]
        beginnings = doc.find_nodes_by_type("heredoc_beginning")
        bodies = doc.find_nodes_by_type("heredoc_body")
        self._heredoc_bodies: Dict[int, TSNode] = {
            opener.start_byte: body for opener, body in zip(beginnings, bodies)
        }
        self._handlers: Dict[str, Callable[[TSNode], Optional[Node]]] = {
            "identifier": self._identifier,
            "constant": lambda n: Node(K.CONST, (None,), self._text(n)),
            "instance_variable": lambda n: Node(K.IVAR, (), self._text(n)),
            "class_variable": lambda n: Node(K.CVAR, (), self._text(n)),
            "global_variable": lambda n: Node(K.GVAR, (), self._text(n)),
            "self": lambda n: Node(K.SELF),
            "nil": lambda n: Node(K.NIL),
            "true": lambda n: Node(K.TRUE),
            "false": lambda n: Node(K.FALSE),
            "integer": lambda n: Node(K.INT, (), self._text(n)),
            "float": lambda n: Node(K.FLOAT, (), self._text(n)),
            "string": self._string,
            "chained_string": self._chained_string,
            "heredoc_beginning": self._heredoc,
            "character": self._character,
            "simple_symbol": lambda n: Node(K.SYM, (), self._text(n)[1:]),
            "hash_key_symbol": lambda n: Node(K.SYM, (), self._text(n)),
            "delimited_symbol": self._delimited_symbol,
            "bare_symbol": lambda n: Node(K.SYM, (), self._text(n)),
            "bare_string": lambda n: Node(K.STR, (), self._text(n)),
            "string_array": self._word_array,
            "symbol_array": self._word_array,
            "regex": lambda n: Node(K.REGEXP, (), self._text(n)),
            "array": lambda n: Node(K.ARRAY, self._lower_all(n.named_children)),
            "hash": lambda n: Node(K.HASH, self._lower_all(n.named_children)),
            "pair": self._pair,
            "splat_argument": lambda n: Node(K.SPLAT, (self._first_named(n),)),
            "hash_splat_argument": lambda n: Node(K.KWSPLAT, (self._first_named(n),)),
            "block_argument": lambda n: Node(K.BLOCK_PASS, (self._first_named(n),)),
            "range": self._range,
            "parenthesized_statements": lambda n: Node(K.BEGIN, tuple(self._statements(n))),
            "call": self._call,
            "element_reference": self._element_reference,
            "scope_resolution": self._scope_resolution,
            "assignment": self._assignment,
            "operator_assignment": self._operator_assignment,
            "binary": self._binary,
            "unary": self._unary,
            "conditional": self._ternary,
            "if": self._if,
            "unless": lambda n: self._if(n, negated=True),
            "if_modifier": lambda n: self._modifier(n, K.IF),
            "unless_modifier": lambda n: self._modifier(n, K.IF, negated=True),
            "while_modifier": lambda n: self._modifier(n, K.WHILE),
            "until_modifier": lambda n: self._modifier(n, K.UNTIL),
            "rescue_modifier": self._rescue_modifier,
            "while": lambda n: self._loop(n, K.WHILE),
            "until": lambda n: self._loop(n, K.UNTIL),
            "for": self._for,
            "case": self._case,
            "begin": self._begin,
            "body_statement": self._exception_body,
            "block_body": lambda n: seq(self._statements(n)),
            "next": lambda n: self._jump(n, K.NEXT),
            "break": lambda n: self._jump(n, K.BREAK),
            "return": lambda n: self._jump(n, K.RETURN),
            "yield": lambda n: self._jump(n, K.YIELD),
            "redo": lambda n: Node(K.REDO),
            "retry": lambda n: Node(K.RETRY),
            "comment": self._comment,
        }

    # ---- entry points ----

    def lower_program(self) -> Optional[Node]:
        return seq(self._statements(self.doc.root_node))

    def lower(self, ts_node: Optional[TSNode]) -> Optional[Node]:
        """Node for one concrete node; skipped node types give None."""
        if ts_node is None or ts_node.type in SKIPPED_TYPES:
            return None
        if ts_node.type in _DEFINITION_TYPES:
            node: Optional[Node] = Node(K.DEF, (), _DEFINITION_TYPES[ts_node.type])
        else:
            handler = self._handlers.get(ts_node.type)
            node = handler(ts_node) if handler is not None else Node(K.RAW, (), self._text(ts_node))
        if node is not None and node.line is None:
            node = replace(node, line=self.doc.line_of(ts_node))
        return node

    # ---- helpers ----

    def _text(self, ts_node: TSNode) -> str:
        return self.doc.get_node_text(ts_node)

    def _lower_all(self, ts_nodes: Sequence[TSNode]) -> tuple:
        return tuple(
            node for node in (self.lower(n) for n in ts_nodes if n.type != "comment")
            if node is not None
        )

    def _first_named(self, ts_node: TSNode) -> Optional[Node]:
        for child in ts_node.named_children:
            if child.type != "comment":
                return self.lower(child)
        return None

    def _statements(self, ts_node: Optional[TSNode]) -> List[Node]:
        """Lowered statements among the named children of a container."""
        if ts_node is None:
            return []
        out: List[Node] = []
        for child in ts_node.named_children:
            node = self.lower(child)
            if node is not None:
                out.append(node)
        return out

    def _body(self, ts_node: Optional[TSNode]) -> Optional[Node]:
        return seq(self._statements(ts_node))

    def _declare(self, name: str) -> None:
        self._scopes[-1].add(name)

    def _is_local(self, name: str) -> bool:
        return any(name in scope for scope in self._scopes)

    def _field(self, ts_node: TSNode, name: str) -> Optional[TSNode]:
        return ts_node.child_by_field_name(name)

    # ---- variables and calls ----

    def _identifier(self, ts_node: TSNode) -> Node:
        name = self._text(ts_node)
        if not name.endswith(("?", "!")) and self._is_local(name):
            return Node(K.LVAR, (), name)
        return Node(K.SEND, (None,), name)

    def _call(self, ts_node: TSNode) -> Node:
        receiver_ts = self._field(ts_node, "receiver")
        method_ts = self._field(ts_node, "method")
        receiver = self.lower(receiver_ts) if receiver_ts is not None else None
        name = self._text(method_ts) if method_ts is not None else "call"
        safe = any(child.type == "&." for child in ts_node.children)
        args = self._arguments(self._field(ts_node, "arguments"))
        call = Node(K.CSEND if safe else K.SEND, (receiver, *args), name, self.doc.line_of(ts_node))

        block_ts = self._field(ts_node, "block")
        if block_ts is None:
            return call
        return self._block(call, block_ts)

    def _arguments(self, ts_node: Optional[TSNode]) -> List[Node]:
        if ts_node is None:
            return []
        return self._argument_nodes(ts_node.named_children)

    def _argument_nodes(self, ts_nodes: Sequence[TSNode]) -> List[Node]:
        """Call arguments; bare `key => value` pairs are grouped into one kwargs node."""
        out: List[Node] = []
        pairs: List[Node] = []
        for child in ts_nodes:
            if child.type in ("comment", "heredoc_body"):
                continue
            node = self.lower(child)
            if node is None:
                continue
            if node.kind in (K.PAIR, K.KWSPLAT):
                pairs.append(node)
                continue
            if pairs and node.kind is not K.BLOCK_PASS:
                out.append(Node(K.KWARGS, tuple(pairs)))
                pairs = []
            out.append(node)
        if pairs:
            # options stay last, after a block argument
            index = len(out) - 1 if out and out[-1].kind is K.BLOCK_PASS else len(out)
            out.insert(index, Node(K.KWARGS, tuple(pairs)))
        return out

    def _block(self, call: Node, ts_node: TSNode) -> Node:
        self._scopes.append(set())
        try:
            params = self._block_params(self._field(ts_node, "parameters"))
            parts: List[Node] = []
            for child in ts_node.named_children:
                if child.type == "block_parameters":
                    continue
                if child.type in ("body_statement", "block_body"):
                    body = self.lower(child)
                    if body is not None:
                        parts.extend(body.children if body.kind is K.BEGIN else (body,))
                    continue
                node = self.lower(child)
                if node is not None:
                    parts.append(node)
        finally:
            self._scopes.pop()
        return Node(K.BLOCK, (call, params, seq(parts)), None, call.line)

    def _block_params(self, ts_node: Optional[TSNode]) -> Node:
        if ts_node is None:
            return Node(K.ARGS)
        return Node(K.ARGS, tuple(self._param(p) for p in ts_node.named_children if p.type != "comment"))

    def _param(self, ts_node: TSNode) -> Node:
        if ts_node.type == "destructured_parameter":
            return Node(K.MLHS, tuple(self._param(p) for p in ts_node.named_children))
        name_ts = ts_node if ts_node.type == "identifier" else self._field(ts_node, "name")
        if name_ts is not None:
            self._declare(self._text(name_ts))
        return Node(K.ARG, (), self._text(ts_node))

    def _element_reference(self, ts_node: TSNode) -> Node:
        children = [c for c in ts_node.named_children if c.type != "comment"]
        target = self.lower(children[0]) if children else None
        args = self._argument_nodes(children[1:])
        return Node(K.SEND, (target, *args), "[]")

    def _scope_resolution(self, ts_node: TSNode) -> Node:
        scope_ts = self._field(ts_node, "scope")
        name_ts = self._field(ts_node, "name")
        scope = self.lower(scope_ts) if scope_ts is not None else None
        name = self._text(name_ts) if name_ts is not None else ""
        if name_ts is not None and name_ts.type == "constant":
            return Node(K.CONST, (scope,), name)
        return Node(K.SEND, (scope,), name)

    # ---- assignments ----

    def _assignment(self, ts_node: TSNode) -> Node:
        left = self._field(ts_node, "left")
        value = self._value(self._field(ts_node, "right"))
        if left is None:
            return Node(K.RAW, (), self._text(ts_node))
        kind = left.type
        if kind == "identifier":
            name = self._text(left)
            self._declare(name)
            return Node(K.LVASGN, (value,), name)
        if kind in _VARIABLE_ASSIGNMENTS:
            return Node(_VARIABLE_ASSIGNMENTS[kind], (value,), self._text(left))
        if kind == "constant":
            return Node(K.CASGN, (None, value), self._text(left))
        if kind == "scope_resolution":
            scope_ts, name_ts = self._field(left, "scope"), self._field(left, "name")
            scope = self.lower(scope_ts) if scope_ts is not None else None
            return Node(K.CASGN, (scope, value), self._text(name_ts) if name_ts is not None else "")
        if kind == "call":
            target = self._call(left)
            return Node(target.kind, (target.receiver, *target.args, value), target.method + "=")
        if kind == "element_reference":
            target = self._element_reference(left)
            return Node(K.SEND, (target.receiver, *target.args, value), "[]=")
        if kind == "left_assignment_list":
            for ident in self.doc.find_nodes_by_type("identifier", left):
                self._declare(self._text(ident))
        return Node(K.RAW, (), self._text(ts_node))

    def _value(self, ts_node: Optional[TSNode]) -> Optional[Node]:
        if ts_node is None:
            return None
        if ts_node.type == "right_assignment_list":
            return Node(K.ARRAY, self._lower_all(ts_node.named_children))
        return self.lower(ts_node)

    def _target(self, ts_node: TSNode) -> Node:
        """Left-hand side of an operator assignment."""
        kind = ts_node.type
        if kind == "identifier":
            name = self._text(ts_node)
            self._declare(name)
            return Node(K.LVASGN, (), name)
        if kind in _VARIABLE_ASSIGNMENTS:
            return Node(_VARIABLE_ASSIGNMENTS[kind], (), self._text(ts_node))
        if kind == "constant":
            return Node(K.CASGN, (None,), self._text(ts_node))
        if kind == "call":
            return self._call(ts_node)
        if kind == "element_reference":
            return self._element_reference(ts_node)
        return Node(K.RAW, (), self._text(ts_node))

    def _operator_assignment(self, ts_node: TSNode) -> Node:
        left = self._field(ts_node, "left")
        right = self._field(ts_node, "right")
        operator_ts = self._field(ts_node, "operator")
        if operator_ts is not None:
            operator = self._text(operator_ts)
        else:
            operator = next(
                (c.type for c in ts_node.children if not c.is_named and c.type.endswith("=")),
                "=",
            )
        if left is None:
            return Node(K.RAW, (), self._text(ts_node))
        return Node(K.OP_ASGN, (self._target(left), self._value(right)), operator[:-1])

    # ---- operators ----

    def _binary(self, ts_node: TSNode) -> Node:
        left = self.lower(self._field(ts_node, "left"))
        right = self.lower(self._field(ts_node, "right"))
        operator_ts = self._field(ts_node, "operator")
        operator = self._text(operator_ts) if operator_ts is not None else ""
        if operator in ("and", "&&"):
            return Node(K.AND, (left, right))
        if operator in ("or", "||"):
            return Node(K.OR, (left, right))
        return Node(K.SEND, (left, right), operator)

    def _unary(self, ts_node: TSNode) -> Node:
        operator_ts = self._field(ts_node, "operator")
        operator = self._text(operator_ts) if operator_ts is not None else ""
        operand = self.lower(self._field(ts_node, "operand"))
        if operator == "defined?":
            return Node(K.DEFINED, (_unwrap_single(operand),))
        if operator in ("!", "not"):
            return Node(K.SEND, (operand,), "!")
        if operator == "-" and operand is not None and operand.kind in (K.INT, K.FLOAT):
            return Node(operand.kind, (), "-" + (operand.value or ""))
        if operator in ("-", "+"):
            return Node(K.SEND, (operand,), operator + "@")
        return Node(K.SEND, (operand,), operator)

    def _range(self, ts_node: TSNode) -> Node:
        operator_ts = self._field(ts_node, "operator")
        exclusive = operator_ts is not None and self._text(operator_ts) == "..."
        return Node(
            K.ERANGE if exclusive else K.IRANGE,
            (self.lower(self._field(ts_node, "begin")), self.lower(self._field(ts_node, "end"))),
        )

    # ---- control flow ----

    def _ternary(self, ts_node: TSNode) -> Node:
        return Node(K.IF, (
            self.lower(self._field(ts_node, "condition")),
            self.lower(self._field(ts_node, "consequence")),
            self.lower(self._field(ts_node, "alternative")),
        ))

    def _if(self, ts_node: TSNode, negated: bool = False) -> Node:
        condition = self.lower(self._field(ts_node, "condition"))
        then = self._body(self._field(ts_node, "consequence"))
        alternative = self._field(ts_node, "alternative")
        other: Optional[Node] = None
        if alternative is not None:
            if alternative.type == "elsif":
                other = self._if(alternative)
            else:
                other = self._body(alternative)
        if negated:
            return Node(K.IF, (condition, other, then))
        return Node(K.IF, (condition, then, other))

    def _modifier(self, ts_node: TSNode, kind: NodeKind, negated: bool = False) -> Node:
        body = self.lower(self._field(ts_node, "body"))
        condition = self.lower(self._field(ts_node, "condition"))
        if kind is K.IF:
            return Node(K.IF, (condition, None, body) if negated else (condition, body, None))
        return Node(kind, (condition, body))

    def _loop(self, ts_node: TSNode, kind: NodeKind) -> Node:
        return Node(kind, (
            self.lower(self._field(ts_node, "condition")),
            self._body(self._field(ts_node, "body")),
        ))

    def _for(self, ts_node: TSNode) -> Node:
        pattern = self._field(ts_node, "pattern")
        value = self._field(ts_node, "value")
        variable: Optional[Node] = None
        if pattern is not None:
            if pattern.type == "left_assignment_list":
                variable = Node(K.MLHS, tuple(self._param(p) for p in pattern.named_children))
            else:
                variable = self._target(pattern)
        collection = None
        if value is not None:
            collection = self._first_named(value) if value.type == "in" else self.lower(value)
        return Node(K.FOR, (variable, collection, self._body(self._field(ts_node, "body"))))

    def _case(self, ts_node: TSNode) -> Node:
        subject = self.lower(self._field(ts_node, "value"))
        clauses: List[Node] = []
        other: Optional[Node] = None
        for child in ts_node.named_children:
            if child.type == "when":
                clauses.append(self._when(child))
            elif child.type == "else":
                other = self._body(child)
        return Node(K.CASE, (subject, *clauses, other))

    def _when(self, ts_node: TSNode) -> Node:
        conditions: List[Node] = []
        body: Optional[Node] = None
        for child in ts_node.named_children:
            if child.type == "pattern":
                node = self._first_named(child) if child.named_child_count else self.lower(child)
                if node is not None:
                    conditions.append(node)
            elif child.type == "then":
                body = self._body(child)
        return Node(K.WHEN, (*conditions, body), None, self.doc.line_of(ts_node))

    def _jump(self, ts_node: TSNode, kind: NodeKind) -> Node:
        args: List[Node] = []
        for child in ts_node.named_children:
            if child.type == "argument_list":
                args.extend(self._arguments(child))
            elif child.type != "comment":
                node = self.lower(child)
                if node is not None:
                    args.append(node)
        return Node(kind, tuple(args))

    # ---- exceptions ----

    def _begin(self, ts_node: TSNode) -> Node:
        body = self._exception_body(ts_node)
        if body is None:
            return Node(K.KWBEGIN)
        if body.kind is K.BEGIN:
            return Node(K.KWBEGIN, body.children)
        return Node(K.KWBEGIN, (body,))

    def _exception_body(self, ts_node: TSNode) -> Optional[Node]:
        """Statements followed by optional rescue, else and ensure clauses."""
        stmts: List[Node] = []
        clauses: List[Node] = []
        other: Optional[Node] = None
        ensure: Optional[TSNode] = None
        for child in ts_node.named_children:
            if child.type == "rescue":
                clauses.append(self._rescue_clause(child))
            elif child.type == "else":
                other = self._body(child)
            elif child.type == "ensure":
                ensure = child
            else:
                node = self.lower(child)
                if node is not None:
                    stmts.append(node)
        body = seq(stmts)
        if clauses or other is not None:
            body = Node(K.RESCUE, (body, *clauses, other))
        if ensure is not None:
            body = Node(K.ENSURE, (body, self._body(ensure)))
        return body

    def _rescue_clause(self, ts_node: TSNode) -> Node:
        exceptions_ts = self._field(ts_node, "exceptions")
        variable_ts = self._field(ts_node, "variable")
        exceptions = None
        if exceptions_ts is not None:
            exceptions = Node(K.ARRAY, self._lower_all(exceptions_ts.named_children))
        variable = None
        if variable_ts is not None:
            ident = next((c for c in variable_ts.named_children if c.type != "comment"), variable_ts)
            variable = self._target(ident)
        body = self._body(self._field(ts_node, "body"))
        return Node(K.RESBODY, (exceptions, variable, body), None, self.doc.line_of(ts_node))

    def _rescue_modifier(self, ts_node: TSNode) -> Node:
        body = self.lower(self._field(ts_node, "body"))
        handler = self.lower(self._field(ts_node, "handler"))
        return Node(K.RESCUE, (body, Node(K.RESBODY, (None, None, handler)), None))

    # ---- literals ----

    def _pair(self, ts_node: TSNode) -> Node:
        key_ts = self._field(ts_node, "key")
        value_ts = self._field(ts_node, "value")
        key = self.lower(key_ts)
        arrow = any(child.type == "=>" for child in ts_node.children)
        if key is not None and not arrow and key.kind in (K.STR, K.DSTR):
            # "name": value
            key = Node(K.SYM, (), key.value) if key.kind is K.STR else Node(K.DSYM, key.children)
        if value_ts is None and key is not None and key.kind is K.SYM:
            # shorthand `name:` refers to a local or method of that name
            value = self._identifier_named(key.value or "")
        else:
            value = self.lower(value_ts)
        return Node(K.PAIR, (key, value))

    def _identifier_named(self, name: str) -> Node:
        if self._is_local(name):
            return Node(K.LVAR, (), name)
        return Node(K.SEND, (None,), name)

    def _string(self, ts_node: TSNode) -> Node:
        text = self._text(ts_node)
        single = text.startswith("'") or text.startswith("%q")
        children = ts_node.children
        if len(children) >= 2 and not children[0].is_named and not children[-1].is_named:
            start, end = children[0].end_byte, children[-1].start_byte
        else:
            start, end = ts_node.start_byte, ts_node.end_byte
        return _string_node(self._literal_parts(ts_node, start, end, single=single))

    def _chained_string(self, ts_node: TSNode) -> Node:
        parts: List[Part] = []
        for child in ts_node.named_children:
            node = self.lower(child)
            if node is None:
                continue
            if node.kind is K.STR:
                parts.append(node.value or "")
            elif node.kind is K.DSTR:
                parts.extend((p.value or "") if p.kind is K.STR else p for p in node.children if p is not None)
        return _string_node(parts)

    def _character(self, ts_node: TSNode) -> Node:
        body = self._text(ts_node)[1:]
        return Node(K.STR, (), decode_escape(body) if body.startswith("\\") else body)

    def _delimited_symbol(self, ts_node: TSNode) -> Node:
        node = self._string(ts_node)
        if node.kind is K.STR:
            return Node(K.SYM, (), node.value)
        return Node(K.DSYM, node.children)

    def _word_array(self, ts_node: TSNode) -> Node:
        return Node(K.ARRAY, self._lower_all(ts_node.named_children))

    def _heredoc(self, ts_node: TSNode) -> Node:
        opener = self._text(ts_node)
        body = self._heredoc_bodies.get(ts_node.start_byte)
        if body is None:
            return Node(K.STR, (), "")
        raw = "'" in opener
        end_ts = next((c for c in body.children if c.type == "heredoc_end"), None)
        start = body.start_byte
        if body.start_point[1] != 0:
            # body node starts on the opener line
            newline = self.doc.source_bytes.find(b"\n", start)
            start = newline + 1 if newline != -1 else start
        end = end_ts.start_byte if end_ts is not None else body.end_byte
        parts = self._literal_parts(body, start, end, single=False, raw=raw)
        if parts and isinstance(parts[-1], str):
            # indented terminator
            parts[-1] = re.sub(r"\n[ \t]*\Z", "\n", parts[-1])
        if opener.startswith("<<~"):
            parts = _dedent_parts(parts)
        return _string_node(parts)

    def _literal_parts(self, ts_node: TSNode, start: int, end: int, single: bool, raw: bool = False) -> List[Part]:
        """
        Text between start and end bytes as literal text and interpolated nodes.

        Escape sequences are decoded; uncovered bytes are literal text.
        """
        source = self.doc.source_bytes
        parts: List[Part] = []
        cursor = start
        for child in ts_node.named_children:
            if child.start_byte < start or child.end_byte > end:
                continue
            if child.type not in ("interpolation", "escape_sequence"):
                continue
            if child.start_byte > cursor:
                parts.append(_literal(source[cursor:child.start_byte], single))
            if child.type == "escape_sequence" and not raw:
                escape = self._text(child)
                parts.append(decode_single_quoted(escape) if single else decode_escape(escape))
            elif child.type == "escape_sequence":
                parts.append(self._text(child))
            else:
                inner = self._statements(child)
                if len(inner) == 1:
                    parts.append(inner[0])
                elif inner:
                    parts.append(Node(K.BEGIN, tuple(inner)))
            cursor = child.end_byte
        if cursor < end:
            parts.append(_literal(source[cursor:end], single and not raw))
        return parts

    def _comment(self, ts_node: TSNode) -> Node:
        text = self._text(ts_node)
        if text.startswith("=begin"):
            lines = text.split("\n")[1:-1]
            value = "\n".join(lines).strip()
        else:
            value = text[1:].strip()
        return Node(K.COMMENT, (), value, self.doc.line_of(ts_node))


_VARIABLE_ASSIGNMENTS = {
    "instance_variable": K.IVASGN,
    "class_variable": K.CVASGN,
    "global_variable": K.GVASGN,
}


def _literal(raw: bytes, single: bool) -> str:
    text = raw.decode("utf-8")
    return decode_single_quoted(text) if single else text


def _unwrap_single(node: Optional[Node]) -> Optional[Node]:
    if node is not None and node.kind is K.BEGIN and len(node.children) == 1:
        return node.children[0]
    return node


def _string_node(parts: Sequence[Part]) -> Node:
    """STR when every part is literal text, DSTR otherwise."""
    merged: List[Part] = []
    for part in parts:
        if isinstance(part, str):
            if not part:
                continue
            if merged and isinstance(merged[-1], str):
                merged[-1] = merged[-1] + part
                continue
        merged.append(part)
    if all(isinstance(p, str) for p in merged):
        return Node(K.STR, (), "".join(merged))  # type: ignore[arg-type]
    return Node(K.DSTR, tuple(Node(K.STR, (), p) if isinstance(p, str) else p for p in merged))


def _dedent_parts(parts: Sequence[Part]) -> List[Part]:
    """Squiggly heredoc: remove the smallest indentation of literal line starts."""
    indents: List[int] = []
    at_line_start = True
    for part in parts:
        if not isinstance(part, str):
            at_line_start = False
            continue
        lines = part.split("\n")
        for index, line in enumerate(lines):
            starts_line = index > 0 or at_line_start
            if starts_line and line.strip():
                indents.append(len(line) - len(line.lstrip(" \t")))
        at_line_start = part.endswith("\n")
    width = min(indents) if indents else 0
    if not width:
        return list(parts)

    out: List[Part] = []
    at_line_start = True
    for part in parts:
        if not isinstance(part, str):
            out.append(part)
            at_line_start = False
            continue
        lines = part.split("\n")
        trimmed = []
        for index, line in enumerate(lines):
            if index > 0 or at_line_start:
                line = _strip_indent(line, width)
            trimmed.append(line)
        out.append("\n".join(trimmed))
        at_line_start = part.endswith("\n")
    return out


def _strip_indent(line: str, width: int) -> str:
    count = 0
    while count < width and count < len(line) and line[count] in " \t":
        count += 1
    return line[count:]


__all__ = ["RubyLowering", "SKIPPED_TYPES", "decode_escape", "decode_single_quoted"]
