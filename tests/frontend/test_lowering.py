"""
Tests for lowering tree-sitter-ruby parse trees into mab2erb nodes.
"""

import pytest

from mab2erb.errors import ParseError
from mab2erb.frontend import parse_markaby
from mab2erb.frontend.lowering import decode_escape, decode_single_quoted
from mab2erb.nodes import K, statements


def _stmts(source: str):
    return statements(parse_markaby(source))


class TestIdentifiers:

    def test_unassigned_identifier_is_a_call(self):
        (node,) = _stmts("title\n")
        assert node.kind is K.SEND
        assert node.receiver is None
        assert node.method == "title"

    def test_assigned_identifier_is_a_local(self):
        assign, use = _stmts('title = "Posts"\nh1 title\n')
        assert assign.kind is K.LVASGN
        assert assign.value == "title"
        assert use.args[0].kind is K.LVAR

    def test_block_parameter_is_local_inside_block_only(self):
        loop, after = _stmts("@items.each do |item|\n  li item\nend\nh1 item\n")
        assert loop.kind is K.BLOCK
        body = loop.child(2)
        assert body.args[0].kind is K.LVAR
        assert after.args[0].kind is K.SEND

    def test_predicate_names_are_calls(self):
        (node,) = _stmts("logged_in?\n")
        assert node.kind is K.SEND
        assert node.method == "logged_in?"


class TestCalls:

    def test_tag_chain(self):
        (node,) = _stmts('div.card.featured! "x"\n')
        assert node.method == "featured!"
        assert node.receiver.method == "card"
        assert node.receiver.receiver.method == "div"
        assert node.args[0].kind is K.STR

    def test_bare_pairs_are_grouped(self):
        (node,) = _stmts('a "Home", :href => "/", :class => "nav"\n')
        text, options = node.args
        assert text.value == "Home"
        assert options.kind is K.KWARGS
        assert [p.child(0).value for p in options.children] == ["href", "class"]

    def test_label_style_keys(self):
        (node,) = _stmts('a "Home", href: "/"\n')
        key = node.args[1].children[0].child(0)
        assert key.kind is K.SYM
        assert key.value == "href"

    def test_block_call(self):
        (node,) = _stmts("div do\n  br\nend\n")
        assert node.kind is K.BLOCK
        assert node.child(0).method == "div"
        assert node.child(2).method == "br"

    def test_safe_navigation(self):
        (node,) = _stmts("user&.name\n")
        assert node.kind is K.CSEND


class TestStrings:

    def test_plain_string(self):
        (node,) = _stmts('text "a\\tb"\n')
        assert node.args[0].value == "a\tb"

    def test_single_quoted_string_keeps_backslash_sequences(self):
        (node,) = _stmts("text 'a\\nb'\n")
        assert node.args[0].value == "a\\nb"

    def test_interpolation(self):
        (node,) = _stmts('p "Hello #{name}!"\n')
        value = node.args[0]
        assert value.kind is K.DSTR
        assert [c.kind for c in value.children] == [K.STR, K.SEND, K.STR]
        assert value.children[0].value == "Hello "

    def test_symbols(self):
        (node,) = _stmts("text_field_tag :title\n")
        assert node.args[0].kind is K.SYM
        assert node.args[0].value == "title"


class TestControlFlow:

    def test_if_else(self):
        (node,) = _stmts('if ok\n  p "a"\nelse\n  p "b"\nend\n')
        assert node.kind is K.IF
        assert node.child(1).method == "p"
        assert node.child(2).method == "p"

    def test_unless_swaps_branches(self):
        (node,) = _stmts('unless ok\n  p "a"\nend\n')
        assert node.kind is K.IF
        assert node.child(1) is None
        assert node.child(2).method == "p"

    def test_elsif(self):
        (node,) = _stmts('if a\n  p "1"\nelsif b\n  p "2"\nend\n')
        assert node.child(2).kind is K.IF

    def test_modifier(self):
        (node,) = _stmts("br if show_break\n")
        assert node.kind is K.IF
        assert node.child(1).method == "br"

    def test_operator_assignment(self):
        (node,) = _stmts("@count += 1\n")
        assert node.kind is K.OP_ASGN
        assert node.value == "+"
        assert node.child(0).kind is K.IVASGN

    def test_method_definition(self):
        (node,) = _stmts("def foo\nend\n")
        assert node.kind is K.DEF


class TestComments:

    def test_comment_text(self):
        node, _ = _stmts("# header\nbr\n")
        assert node.kind is K.COMMENT
        assert node.value == "header"
        assert node.line == 1


class TestErrors:

    def test_syntax_error(self):
        with pytest.raises(ParseError) as exc:
            parse_markaby('div do\n  p "unterminated"\n', source="bad.mab")
        assert "Syntax error in bad.mab" in str(exc.value)
        assert exc.value.source == "bad.mab"

    def test_empty_document(self):
        assert parse_markaby("") is None


class TestEscapes:

    @pytest.mark.parametrize("escape, expected", [
        ("\\n", "\n"),
        ("\\t", "\t"),
        ('\\"', '"'),
        ("\\u00e9", "é"),
        ("\\x41", "A"),
        ("\\101", "A"),
    ])
    def test_double_quoted(self, escape, expected):
        assert decode_escape(escape) == expected

    def test_single_quoted(self):
        assert decode_single_quoted("it\\'s \\\\ \\n") == "it's \\ \\n"
