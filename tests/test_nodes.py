"""
Tests for node categories.
"""

import pytest

from mab2erb.builders import block, call, if_, int_, ivar, lvar, s, send, str_
from mab2erb.engine.predicates import STATEMENT_CATEGORIES
from mab2erb.nodes import K, Node, NodeCategory


class TestCategories:

    @pytest.mark.parametrize("node, category", [
        (str_("x"), NodeCategory.LITERAL_STRING),
        (int_(1), NodeCategory.LITERAL_NUMBER),
        (lvar("a"), NodeCategory.VARIABLE),
        (ivar("@a"), NodeCategory.VARIABLE),
        (call("name"), NodeCategory.CALL),
        (send(lvar("a"), "+", int_(1)), NodeCategory.OPERATOR_EXPRESSION),
        (block(call("div"), None), NodeCategory.BLOCK_CALL),
        (if_(lvar("a"), str_("x"), None), NodeCategory.CONDITIONAL),
        (s(K.WHILE, lvar("a"), None), NodeCategory.LOOP),
        (s(K.NEXT), NodeCategory.CONTROL_JUMP),
        (Node(K.DEF, (), "method"), NodeCategory.DEFINITION),
        (Node(K.SELF), NodeCategory.OTHER),
    ])
    def test_kind_to_category(self, node, category):
        assert node.category is category

    def test_unary_call_is_not_an_operator_expression(self):
        assert send(lvar("a"), "-@").category is NodeCategory.CALL

    def test_values_are_not_statements(self):
        assert NodeCategory.VARIABLE not in STATEMENT_CATEGORIES
        assert NodeCategory.OPERATOR_EXPRESSION not in STATEMENT_CATEGORIES
        assert NodeCategory.CONTROL_JUMP in STATEMENT_CATEGORIES
