"""
Conditionals, loops, iteration blocks, exception blocks and case blocks.

Conditionals go through a fixed decision table, first match wins:

    1. inline ternary    both branches present and value-like
    2. modifier form     one branch, a statement that fits one directive
    3. unless block      true branch absent; a nested unless stays a block
    4. elsif chain       false branch is a conditional with a true branch
    5. if/else block     everything else
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

from ..errors import ConversionError
from ..nodes import K, Node, format_node
from .predicates import ternary_branch_ok

if TYPE_CHECKING:
    from .dispatcher import NodeDispatcher


class ControlFlowReconstructor:
    def __init__(self, dispatcher: "NodeDispatcher"):
        self.dispatcher = dispatcher
        self.buffer = dispatcher.buffer
        self.extractor = dispatcher.extractor
        self.directives = dispatcher.options.directives
        self.vocab = dispatcher.options.vocabulary

    # ---- helpers ----

    def _statement(self, code: str) -> None:
        self.buffer.append(self.directives.statement(code))

    def _body(self, node: Optional[Node]) -> None:
        with self.buffer.indented():
            if node is not None:
                self.dispatcher.visit(node)

    def _fail(self, message: str, node: Node) -> ConversionError:
        return ConversionError(
            message,
            node_kind=node.kind.value,
            line_number=self.buffer.line_count + 1,
            context=format_node(node)[:120],
        )

    # ---- conditionals ----

    def conditional(self, node: Node) -> None:
        cond, then, other = node.child(0), node.child(1), node.child(2)
        guard = self.extractor.condition(cond)

        if then is not None and other is not None \
                and ternary_branch_ok(then, self.vocab) and ternary_branch_ok(other, self.vocab):
            self.buffer.append(self.directives.output(self.extractor.extract(node)))
            return

        if (then is None) != (other is None):
            branch = then if then is not None else other
            inline = self.dispatcher.statement_directive(branch)
            if inline is not None:
                is_output, code = inline
                keyword = "if" if then is not None else "unless"
                text = f"{code} {keyword} {guard}"
                self.buffer.append(self.directives.output(text) if is_output else self.directives.statement(text))
                return

        if then is None and other is not None:
            self._statement(f"unless {guard}")
            if other.kind is K.IF and other.child(1) is None and other.child(2) is not None:
                with self.buffer.indented():
                    self._statement(f"unless {self.extractor.condition(other.child(0))}")
                    self._body(other.child(2))
                    self._statement("end")
            else:
                self._body(other)
            self._statement("end")
            return

        if other is not None and other.kind is K.IF and other.child(1) is not None:
            self._elsif_chain(guard, then, other)
            return

        self._statement(f"if {guard}")
        self._body(then)
        if other is not None:
            self._statement("else")
            self._body(other)
        self._statement("end")

    def _elsif_chain(self, guard: str, then: Optional[Node], chain: Node) -> None:
        self._statement(f"if {guard}")
        self._body(then)
        current: Optional[Node] = chain
        while current is not None and current.kind is K.IF and current.child(1) is not None:
            self._statement(f"elsif {self.extractor.condition(current.child(0))}")
            self._body(current.child(1))
            current = current.child(2)
        if current is not None:
            self._statement("else")
            self._body(current)
        self._statement("end")

    # ---- loops ----

    def loop(self, node: Node) -> None:
        """while / until."""
        keyword = "while" if node.kind is K.WHILE else "until"
        self._statement(f"{keyword} {self.extractor.condition(node.child(0))}")
        self._body(node.child(1))
        self._statement("end")

    def for_loop(self, node: Node) -> None:
        var, collection, body = node.child(0), node.child(1), node.child(2)
        if var is None or collection is None:
            raise self._fail("for loop without a loop variable or collection", node)
        if var.kind is K.MLHS:
            var_text = self.extractor.block_params(var)
        else:
            var_text = self.extractor.assignment_target(var)
        self._statement(f"for {var_text} in {self.extractor.code(collection)}")
        self._body(body)
        self._statement("end")

    def iteration(self, node: Node) -> None:
        """`items.each do |item|` style blocks."""
        call, params, body = node.child(0), node.child(1), node.child(2)
        head = self.extractor.call_head(call) if call is not None else ""
        names = self.extractor.block_params(params)
        opener = f"{head} do |{names}|" if names else f"{head} do"
        self._statement(opener)
        self._body(body)
        self._statement("end")

    # ---- exceptions ----

    def exception_block(self, node: Node) -> None:
        """begin / rescue / else / ensure / end, from a rescue or ensure node."""
        inner: Optional[Node] = node
        ensure_body: Optional[Node] = None
        has_ensure = node.kind is K.ENSURE
        if has_ensure:
            inner, ensure_body = node.child(0), node.child(1)

        self._statement("begin")
        if inner is not None and inner.kind is K.RESCUE:
            self._rescue_clauses(inner)
        else:
            self._body(inner)
        if has_ensure:
            self._statement("ensure")
            self._body(ensure_body)
        self._statement("end")

    def _rescue_clauses(self, node: Node) -> None:
        children = node.children
        self._body(children[0] if children else None)
        else_body = children[-1] if len(children) > 1 else None
        for clause in children[1:-1]:
            if clause is None or clause.kind is not K.RESBODY:
                raise self._fail("malformed rescue clause", node)
            exceptions, var, body = clause.child(0), clause.child(1), clause.child(2)
            text = "rescue"
            if exceptions is not None:
                if exceptions.kind is not K.ARRAY:
                    raise self._fail("rescue clause exception list must be a list", clause)
                types = ", ".join(self.extractor.code(e) for e in exceptions.children if e is not None)
                if types:
                    text += f" {types}"
            if var is not None:
                text += f" => {self.extractor.assignment_target(var)}"
            self._statement(text)
            self._body(body)
        if else_body is not None:
            self._statement("else")
            self._body(else_body)

    # ---- case ----

    def case_block(self, node: Node) -> None:
        children = node.children
        subject = children[0] if children else None
        clauses = [c for c in children[1:-1] if c is not None]
        else_body = children[-1] if len(children) > 1 else None
        if not clauses:
            raise self._fail("case statement without when clauses", node)

        self._statement(f"case {self.extractor.code(subject)}" if subject is not None else "case")
        with self.buffer.indented():
            for clause in clauses:
                if clause.kind is not K.WHEN:
                    raise self._fail("malformed case clause", clause)
                conditions = [c for c in clause.children[:-1] if c is not None]
                self._statement("when " + ", ".join(self.extractor.code(c) for c in conditions))
                self._body(clause.children[-1] if clause.children else None)
            if else_body is not None:
                self._statement("else")
                self._body(else_body)
        self._statement("end")

    # ---- jumps ----

    def jump(self, node: Node) -> None:
        """next / break / redo / retry / return, as a bare statement directive."""
        self._statement(self.extractor.extract(node))


__all__ = ["ControlFlowReconstructor"]
