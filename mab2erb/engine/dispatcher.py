"""
Statement-level conversion.

NodeDispatcher walks the tree depth-first and writes template lines into
the OutputBuffer. Every statement kind has exactly one handler; kinds
that cannot appear as template statements are rejected with a
ConversionError naming the node.
"""

from __future__ import annotations

import re
import textwrap
from typing import Callable, Dict, FrozenSet, List, Optional, Tuple

from ..config.model import ConvertOptions
from ..errors import ConversionError
from ..nodes import (
    ASSIGNMENT_KINDS,
    BINARY_OPERATORS,
    CALL_KINDS,
    JUMP_KINDS,
    K,
    Node,
    NodeCategory,
    NodeKind,
    format_node,
    unwrap_begin,
)
from .attributes import AttributeSerializer, TagDescriptor
from .buffer import OutputBuffer
from .calls import CallFormatter, is_multiline_string
from .control_flow import ControlFlowReconstructor
from .extractor import ContentExtractor, InterpolationStyle, quote
from .predicates import contains_markup_call, is_compound, is_static_dstr, string_contains_markup

# Directive rendering of a simple statement: (is_output, code).
Directive = Tuple[bool, str]

_SETTER_RE = re.compile(r"\A[A-Za-z_]\w*=\Z")
_PREFIX_METHODS = frozenset({"!", "-@", "+@", "~", "[]"})

# Kinds that only occur inside other constructs or cannot be rendered as a statement.
REJECTED_KINDS: FrozenSet[NodeKind] = frozenset({
    K.RAW, K.SYM, K.DSYM, K.REGEXP, K.TRUE, K.FALSE, K.NIL, K.SELF,
    K.ARRAY, K.HASH, K.KWARGS, K.PAIR, K.IRANGE, K.ERANGE,
    K.BLOCK_PASS, K.SPLAT, K.KWSPLAT, K.ARGS, K.ARG, K.MLHS,
    K.DEFINED, K.WHEN, K.RESBODY,
})

DOCTYPE_LINE = "<!DOCTYPE html>"


class NodeDispatcher:
    """
    Recursive statement visitor.

    One dispatcher converts one document; it owns the per-call buffer and
    the helper components built around it.
    """

    def __init__(self, options: ConvertOptions, buffer: Optional[OutputBuffer] = None):
        self.options = options
        self.vocab = options.vocabulary
        self.directives = options.directives
        self.buffer = buffer if buffer is not None else OutputBuffer(options.get_logger())
        self.extractor = ContentExtractor(options)
        self.attributes = AttributeSerializer(options, self.extractor)
        self.calls = CallFormatter(options, self.extractor)
        self.flow = ControlFlowReconstructor(self)
        self._last_comment_line: Optional[int] = None

        flow = self.flow
        self._handlers: Dict[NodeKind, Callable[[Node], None]] = {
            K.SEND: self._send,
            K.CSEND: self._send,
            K.BLOCK: self._block,
            K.LVASGN: self._assignment,
            K.IVASGN: self._assignment,
            K.CVASGN: self._assignment,
            K.GVASGN: self._assignment,
            K.CASGN: self._assignment,
            K.OP_ASGN: self._assignment,
            K.IF: flow.conditional,
            K.WHILE: flow.loop,
            K.UNTIL: flow.loop,
            K.FOR: flow.for_loop,
            K.CASE: flow.case_block,
            K.RESCUE: flow.exception_block,
            K.ENSURE: flow.exception_block,
            K.KWBEGIN: self._kwbegin,
            K.BEGIN: self._sequence,
            K.STR: self._literal_text,
            K.DSTR: self._interpolated_text,
            K.INT: self._number,
            K.FLOAT: self._number,
            K.CONST: self._output_expression,
            K.LVAR: self._output_expression,
            K.IVAR: self._output_expression,
            K.CVAR: self._output_expression,
            K.GVAR: self._output_expression,
            K.YIELD: self._output_expression,
            K.NEXT: flow.jump,
            K.BREAK: flow.jump,
            K.REDO: flow.jump,
            K.RETRY: flow.jump,
            K.RETURN: flow.jump,
            K.AND: self._both_operands,
            K.OR: self._both_operands,
            K.COMMENT: self._comment,
            K.DEF: self._definition,
        }

    @property
    def handled_kinds(self) -> FrozenSet[NodeKind]:
        return frozenset(self._handlers)

    # ---- entry points ----

    def visit(self, node: Optional[Node]) -> None:
        if node is None:
            return
        if node.kind is not K.COMMENT:
            self._last_comment_line = None
        handler = self._handlers.get(node.kind)
        if handler is None:
            raise self.error(node)
        handler(node)

    def error(self, node: Node, message: Optional[str] = None) -> ConversionError:
        context = format_node(node)
        if len(context) > 120:
            context = context[:117] + "..."
        if node.line is not None:
            context = f"source line {node.line}: {context}"
        return ConversionError(
            message,
            node_kind=node.kind.value,
            line_number=self.buffer.line_count + 1,
            context=context,
        )

    def statement_directive(self, node: Optional[Node]) -> Optional[Directive]:
        """
        Single-directive form of a simple statement, None when the statement
        needs more than one line or writes markup.
        """
        if node is None or is_compound(node):
            return None
        if contains_markup_call(node, self.vocab):
            return None
        kind = node.kind
        if kind in CALL_KINDS:
            return self._call_directive(node)
        if kind in ASSIGNMENT_KINDS:
            value = node.child(1) if kind in (K.CASGN, K.OP_ASGN) else node.child(0)
            if value is not None and value.kind is K.BLOCK:
                return None
            return False, self._assignment_code(node)
        if kind in JUMP_KINDS:
            return False, self.extractor.extract(node)
        if node.category in (NodeCategory.VARIABLE, NodeCategory.LITERAL_NUMBER) or kind is K.YIELD:
            return True, self.extractor.extract(node)
        return None

    # ---- calls ----

    def _call_directive(self, node: Node) -> Optional[Directive]:
        recv, name = node.receiver, node.method
        args = [a for a in node.args if a is not None]
        x = self.extractor
        if recv is not None and name in BINARY_OPERATORS and len(args) == 1:
            return name != "<<", x.extract(node)
        if recv is not None and (name == "[]=" or _SETTER_RE.match(name)):
            return False, x.extract(node)
        if recv is not None and name in _PREFIX_METHODS:
            return True, x.extract(node)
        if recv is None and not args:
            scoped = self.options.scoped_name(name)
            return scoped != name, scoped
        if args and is_multiline_string(args[-1]):
            return None
        return True, self.calls.call(node)

    def _send(self, node: Node) -> None:
        recv, name = node.receiver, node.method
        if recv is None and self.vocab.is_helper(name):
            self._output_call(node)
            return
        if recv is None and name == "content_for":
            self._content_for_inline(node)
            return
        descriptor = self.attributes.describe(node)
        if descriptor is not None:
            self._emit_tag(descriptor)
            return
        if recv is None and name == "text":
            self._text(node)
            return
        if recv is None and name in ("tag!", "empty_tag!"):
            self._explicit_tag(node, None, has_block=False)
            return
        if recv is None and name == "end_form":
            self.buffer.append("</form>")
            return
        if recv is None and name in self.vocab.doctypes:
            self.buffer.append(DOCTYPE_LINE)
            return
        directive = self._call_directive(node)
        if directive is None:
            self._output_call(node)
            return
        is_output, code = directive
        self.buffer.append(self.directives.output(code) if is_output else self.directives.statement(code))

    def _output_call(self, node: Node) -> None:
        """`<%= name args %>`; a trailing multi-line string becomes a text block."""
        args = [a for a in node.args if a is not None]
        if args and is_multiline_string(args[-1]):
            head = self.calls.call(node, args[:-1])
            self.buffer.append(self.directives.output(f"{head} do"))
            with self.buffer.indented():
                for line in self.calls.text_block_lines(args[-1]):
                    self.buffer.append(line)
            self.buffer.append(self.directives.statement("end"))
            return
        self.buffer.append(self.directives.output(self.calls.call(node)))

    # ---- tags ----

    def _emit_tag(self, tag: TagDescriptor, body: Optional[Node] = None, has_block: bool = False) -> None:
        opening = tag.open_tag(self.directives)
        if has_block:
            self.buffer.append(opening)
            with self.buffer.indented():
                for item in tag.content:
                    self.buffer.append(self._inline_content(item))
                if body is not None:
                    self._tag_body(body)
            self.buffer.append(tag.close_tag())
            return
        if not tag.content:
            self.buffer.append(opening if tag.self_closing else opening + tag.close_tag())
            return
        inner = "".join(self._inline_content(item) for item in tag.content)
        self.buffer.append(opening + inner + tag.close_tag())

    def _inline_content(self, node: Node) -> str:
        """Tag content written on the tag's own line."""
        node = unwrap_begin(node) or node
        x = self.extractor
        if node.kind is K.STR:
            return self.directives.text(node.value or "")
        if node.kind is K.SYM:
            return self.directives.text(node.value or "")
        if node.kind in (K.INT, K.FLOAT):
            return x.extract(node)
        if node.kind is K.DSTR:
            if is_static_dstr(node):
                return x.interpolate(node, InterpolationStyle.ERB)
            return self.directives.output(x.ruby_string(node))
        return self.directives.output(x.code(node))

    def _tag_body(self, body: Node) -> None:
        """Block body of a tag; a string concatenation is split into text and output lines."""
        parts = _concatenation_parts(body)
        if parts is None:
            self.visit(body)
            return
        for part in parts:
            if part.kind is K.STR:
                self.buffer.append_lines(self.directives.text(part.value or ""))
            elif part.kind is K.DSTR:
                self.buffer.append(self.extractor.interpolate(part, InterpolationStyle.ERB))
            else:
                self.buffer.append(self.directives.output(self.extractor.code(part)))

    def _explicit_tag(self, call: Node, body: Optional[Node], has_block: bool) -> None:
        """`tag!(:name, attrs)` and `empty_tag!(:name, attrs)`."""
        args = [a for a in call.args if a is not None]
        if not args or args[0].kind not in (K.SYM, K.STR):
            raise self.error(call, f"{call.method} needs a literal tag name")
        attributes = []
        conditional = []
        content = []
        for arg in args[1:]:
            if arg.kind in (K.HASH, K.KWARGS):
                found, guarded = self.attributes.attributes(arg)
                attributes.extend(found)
                conditional.extend(guarded)
            else:
                content.append(arg)
        tag = TagDescriptor(
            name=args[0].value or "",
            attributes=tuple(attributes),
            conditional=tuple(conditional),
            self_closing=call.method == "empty_tag!",
            content=tuple(content),
        )
        if tag.self_closing and not has_block:
            self.buffer.append(tag.open_tag(self.directives)[:-1] + " />")
            return
        self._emit_tag(tag, body, has_block=has_block)

    def _text(self, node: Node) -> None:
        """Markaby `text`: literal text is written as is."""
        for arg in node.args:
            arg = unwrap_begin(arg)
            if arg is None:
                continue
            if arg.kind is K.STR:
                self.buffer.append_lines(_dedent(self.directives.text(arg.value or "")))
            elif arg.kind is K.DSTR:
                if is_static_dstr(arg) or string_contains_markup(arg):
                    self.buffer.append_lines(_dedent(self.extractor.interpolate(arg, InterpolationStyle.ERB)))
                else:
                    self.buffer.append(self.directives.output(self.extractor.ruby_string(arg)))
            else:
                self.buffer.append(self.directives.output(self.extractor.code(arg)))

    # ---- blocks ----

    def _block(self, node: Node) -> None:
        call, params, body = node.child(0), node.child(1), node.child(2)
        if call is None or call.kind not in CALL_KINDS:
            raise self.error(node, "block without a method call")
        recv, name = call.receiver, call.method

        descriptor = self.attributes.describe(call)
        if descriptor is not None:
            self._emit_tag(descriptor, body, has_block=True)
            return
        if recv is None and name == "content_for":
            self._content_for_block(call, body)
            return
        if self.vocab.is_iterator(name) and recv is not None:
            self.flow.iteration(node)
            return
        if recv is None and name in self.vocab.doctypes:
            self.buffer.append(DOCTYPE_LINE)
            self._emit_tag(TagDescriptor(name="html"), body, has_block=True)
            return
        if recv is None and name in ("tag!", "empty_tag!"):
            self._explicit_tag(call, body, has_block=True)
            return
        self._generic_block(call, params, body)

    def _generic_block(self, call: Node, params: Optional[Node], body: Optional[Node]) -> None:
        opener = self.calls.block_opener(call, self.extractor.block_params(params))
        self.buffer.append(self.directives.statement(opener))
        with self.buffer.indented():
            self.visit(body)
        self.buffer.append(self.directives.statement("end"))

    def _content_for_block(self, call: Node, body: Optional[Node]) -> None:
        key = self.extractor.code(call.args[0]) if call.args else ""
        inner = unwrap_begin(body)
        if inner is not None and inner.kind is K.STR:
            text = quote(inner.value or "", prefer='"')
            self.buffer.append(self.directives.statement(f"content_for {key}, {text}"))
            return
        self.buffer.append(self.directives.statement(f"content_for {key} do"))
        with self.buffer.indented():
            if inner is not None and inner.kind is K.ARRAY:
                self._joined_array(inner)
            else:
                self.visit(body)
        self.buffer.append(self.directives.statement("end"))

    def _joined_array(self, node: Node) -> None:
        """Array of markup snippets written as one `raw [...].join` directive."""
        items = [self.extractor.code(i) for i in node.children if i is not None]
        self.buffer.append(f"{self.directives.output_open} raw [")
        with self.buffer.indented():
            for index, item in enumerate(items):
                self.buffer.append(item + ("," if index < len(items) - 1 else ""))
        self.buffer.append(f"].join {self.directives.close}")

    def _content_for_inline(self, node: Node) -> None:
        args = [a for a in node.args if a is not None]
        if len(args) < 2:
            self.buffer.append(self.directives.output(self.calls.call(node)))
            return
        self.buffer.append(self.directives.statement(self.calls.call(node)))

    # ---- assignments ----

    def _assignment_code(self, node: Node) -> str:
        x = self.extractor
        if node.kind is K.OP_ASGN:
            return x.extract(node)
        value = node.child(1) if node.kind is K.CASGN else node.child(0)
        target = x.assignment_target(node)
        if value is None:
            return target
        if value.kind is K.STR:
            return f"{target} = " + quote(value.value or "", prefer='"')
        return f"{target} = {x.code(value)}"

    def _assignment(self, node: Node) -> None:
        value = node.child(1) if node.kind in (K.CASGN, K.OP_ASGN) else node.child(0)
        if value is not None and value.kind is K.BLOCK and node.kind is not K.OP_ASGN:
            call = value.child(0)
            if call is not None and call.is_call("capture") and call.receiver is None:
                target = self.extractor.assignment_target(node)
                params = self.extractor.block_params(value.child(1))
                opener = f"{target} = capture do" + (f" |{params}|" if params else "")
                self.buffer.append(self.directives.statement(opener))
                with self.buffer.indented():
                    self.visit(value.child(2))
                self.buffer.append(self.directives.statement("end"))
                return
        self.buffer.append(self.directives.statement(self._assignment_code(node)))

    # ---- other statements ----

    def _sequence(self, node: Node) -> None:
        for child in node.children:
            self.visit(child)

    def _kwbegin(self, node: Node) -> None:
        body = [c for c in node.children if c is not None]
        if len(body) == 1 and body[0].kind in (K.RESCUE, K.ENSURE):
            self.flow.exception_block(body[0])
            return
        self.buffer.append(self.directives.statement("begin"))
        with self.buffer.indented():
            for child in body:
                self.visit(child)
        self.buffer.append(self.directives.statement("end"))

    def _literal_text(self, node: Node) -> None:
        self.buffer.append_lines(_dedent(self.directives.text(node.value or "")))

    def _interpolated_text(self, node: Node) -> None:
        x = self.extractor
        if is_static_dstr(node) or string_contains_markup(node):
            self.buffer.append_lines(_dedent(x.interpolate(node, InterpolationStyle.ERB)))
        else:
            self.buffer.append(self.directives.output(x.ruby_string(node)))

    def _number(self, node: Node) -> None:
        self.buffer.append(self.extractor.extract(node))

    def _output_expression(self, node: Node) -> None:
        self.buffer.append(self.directives.output(self.extractor.extract(node)))

    def _both_operands(self, node: Node) -> None:
        for child in node.children:
            self.visit(child)

    def _comment(self, node: Node) -> None:
        previous = self._last_comment_line
        if previous is not None and node.line is not None and node.line - previous > 1:
            for _ in range(node.line - previous - 1):
                self.buffer.append("")
        self.buffer.append(self.directives.comment(node.value or ""))
        self._last_comment_line = node.line

    def _definition(self, node: Node) -> None:
        what = node.value or "method"
        raise self.error(node, f"{what.capitalize()} definition cannot be represented in a template")


def _concatenation_parts(node: Node) -> Optional[List[Node]]:
    """Operands of `"a" + x + "b"`, None unless the chain involves a string literal."""
    if not (node.kind is K.SEND and node.method == "+" and node.receiver is not None and len(node.args) == 1):
        return None
    parts: List[Node] = []

    def flatten(n: Node) -> None:
        if n.kind is K.SEND and n.method == "+" and n.receiver is not None and len(n.args) == 1:
            flatten(n.receiver)
            flatten(n.args[0])
        else:
            parts.append(n)

    flatten(node)
    if not any(p.kind in (K.STR, K.DSTR) for p in parts):
        return None
    return parts


def _dedent(text: str) -> str:
    """Multi-line literal text loses its common indentation and framing blank lines."""
    if "\n" not in text:
        return text
    lines = textwrap.dedent(text).split("\n")
    while lines and not lines[0].strip():
        lines.pop(0)
    while lines and not lines[-1].strip():
        lines.pop()
    return "\n".join(line.rstrip() for line in lines)


__all__ = ["NodeDispatcher", "REJECTED_KINDS", "DOCTYPE_LINE"]
