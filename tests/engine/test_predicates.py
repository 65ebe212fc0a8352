"""
Tests for the pure subtree predicates.
"""

from mab2erb.builders import begin, call, dstr, if_, lvar, send, str_
from mab2erb.config import DEFAULT_VOCABULARY as vocab
from mab2erb.engine.predicates import (
    chain_base,
    contains_markup_call,
    is_markup_call,
    is_static_dstr,
    is_tag_call,
    string_contains_markup,
    ternary_branch_ok,
)
from mab2erb.nodes import K, Node


class TestTagCalls:

    def test_chain_base(self):
        chain = send(send(call("div"), "card"), "main!")
        assert chain_base(chain) == call("div")
        assert chain_base(send(lvar("x"), "card")) is None

    def test_tag_chains(self):
        assert is_tag_call(call("h1", str_("x")), vocab)
        assert is_tag_call(send(call("td"), "price!"), vocab)
        assert not is_tag_call(send(lvar("div"), "card"), vocab)
        assert not is_tag_call(call("widget"), vocab)

    def test_markup_calls(self):
        assert is_markup_call(call("link_to", str_("x")), vocab)
        assert is_markup_call(call("text", str_("x")), vocab)
        assert not is_markup_call(send(lvar("post"), "title"), vocab)

    def test_markup_found_anywhere_in_subtree(self):
        node = if_(lvar("a"), begin(send(lvar("x"), "y"), call("br")), None)
        assert contains_markup_call(node, vocab)
        assert not contains_markup_call(send(lvar("x"), "y"), vocab)


class TestTernaryEligibility:

    def test_plain_values(self):
        assert ternary_branch_ok(str_("Yes"), vocab)
        assert ternary_branch_ok(send(lvar("post"), "title"), vocab)
        assert ternary_branch_ok(call("name"), vocab)

    def test_markup_and_statements_disqualify(self):
        assert not ternary_branch_ok(call("p", str_("x")), vocab)
        assert not ternary_branch_ok(str_("<b>x</b>"), vocab)
        assert not ternary_branch_ok(call("link_to", str_("x")), vocab)
        assert not ternary_branch_ok(Node(K.NEXT), vocab)
        assert not ternary_branch_ok(None, vocab)


class TestStrings:

    def test_markup_detection(self):
        assert string_contains_markup(dstr("<b>", lvar("x"), "</b>"))
        assert string_contains_markup(str_("<!-- note -->"))
        assert not string_contains_markup(str_("1 < 2"))

    def test_static_dstr(self):
        assert is_static_dstr(dstr("a", "b"))
        assert not is_static_dstr(dstr("a", lvar("b")))

