"""
Tests for the ERB syntax check.
"""

import pytest

from mab2erb import ConvertOptions, convert
from mab2erb.builders import args, block, call, ivar, lvar, send
from mab2erb.config import Directives
from mab2erb.errors import ValidationError
from mab2erb.validation import compile_erb, validate_erb


class TestCompile:

    def test_statements_and_text(self):
        compiled = compile_erb("<% if x %>\n  <p>a</p>\n<% end %>")
        assert compiled.source == "if x\n_buf << ''\nend\n"
        assert compiled.origins == (
            (1, "<% if x %>"),
            (2, "<p>a</p>"),
            (3, "<% end %>"),
        )

    def test_output_is_wrapped(self):
        compiled = compile_erb('<%= link_to "Home", root_path %>')
        assert compiled.source == '_buf << (link_to "Home", root_path)\n'

    def test_block_opening_output(self):
        compiled = compile_erb("<%= javascript_tag do %>\n  alert(1);\n<% end %>")
        assert compiled.source.split("\n")[0] == "_buf << javascript_tag do"

    def test_comments_are_dropped(self):
        compiled = compile_erb("<%# note %>\n<br>")
        assert compiled.source == "_buf << ''\n"

    def test_whitespace_text_is_dropped(self):
        compiled = compile_erb("<% x = 1 %>\n  \n<% y = 2 %>")
        assert compiled.source == "x = 1\ny = 2\n"

    def test_origin_lookup(self):
        compiled = compile_erb("<% a %>\n<% b %>")
        assert compiled.origin_of(2) == (2, "<% b %>")
        assert compiled.origin_of(99) == (2, "<% b %>")

    def test_unterminated_directive(self):
        with pytest.raises(ValidationError, match="Unterminated ERB directive") as exc:
            compile_erb("<p>ok</p>\n<p><% if x</p>")
        assert exc.value.line_number == 2

    def test_custom_delimiters(self):
        directives = Directives(statement_open="{%", output_open="{%=", comment_open="{%#", close="%}")
        compiled = compile_erb("{% if a %}\n{%= b %}\n{% end %}", directives)
        assert compiled.source == "if a\n_buf << (b)\nend\n"

    def test_doubled_opener_is_text(self):
        compiled = compile_erb("<p>a <%%= b %> c</p>\n<% x %>")
        assert compiled.source == "_buf << ''\nx\n"

    def test_split_closer_keeps_comment_whole(self):
        compiled = compile_erb("<%# see % > here %>\n<% x %>")
        assert compiled.source == "x\n"


class TestValidate:

    def test_valid_template(self):
        validate_erb("<% @items.each do |item| %>\n  <li><%= item.name %></li>\n<% end %>")

    def test_missing_end(self):
        with pytest.raises(ValidationError, match="Generated ERB is not valid Ruby"):
            validate_erb("<% if x %>\n  <p>a</p>")

    def test_broken_expression(self):
        with pytest.raises(ValidationError) as exc:
            validate_erb("<p><%= a + %></p>")
        assert exc.value.line_number == 1

    def test_converter_validates_on_request(self):
        tree = block(send(ivar("@items"), "each"), args("item"), call("li", send(lvar("item"), "name")))
        erb = convert(tree, ConvertOptions(validate_output=True))
        assert erb.startswith("<% @items.each do |item| %>")


class TestDirectives:

    def test_text_without_delimiters(self):
        assert Directives().text("a < b > c") == "a < b > c"

    def test_closed_opener_is_doubled(self):
        assert Directives().text("a <%= b %> c") == "a <%%= b %> c"

    def test_lone_opener_becomes_entity(self):
        assert Directives().text("<% x <% y %>") == "&lt;% x <%% y %>"

    def test_comment_closer_is_split(self):
        assert Directives().comment("a %> b") == "<%# a % > b %>"
