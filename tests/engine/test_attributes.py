"""
Tests for tag descriptors and attribute serialization.
"""

import pytest

from mab2erb.builders import call, dstr, if_, ivar, kwargs, lvar, nil, pair, send, str_, sym, unless
from mab2erb.config import ConvertOptions, Directives
from mab2erb.engine import AttributeSerializer, ContentExtractor
from mab2erb.engine.attributes import AttributeKind


@pytest.fixture
def serializer():
    options = ConvertOptions()
    return AttributeSerializer(options, ContentExtractor(options))


def _attrs(**values):
    return kwargs(*(pair(sym(k), v) for k, v in values.items()))


class TestDescribe:

    def test_plain_tag(self, serializer):
        tag = serializer.describe(call("h1", str_("Hello")))
        assert tag.name == "h1"
        assert tag.attribute_text == ""
        assert tag.content == (str_("Hello"),)

    def test_classes_and_ids_from_chain(self, serializer):
        tag = serializer.describe(send(send(call("div"), "card"), "main!"))
        assert tag.classes == ("card",)
        assert tag.ids == ("main",)
        assert tag.attribute_text == ' class="card" id="main"'

    def test_chain_class_appended_to_explicit_class(self, serializer):
        tag = serializer.describe(send(call("div"), "card", _attrs(**{"class": str_("wide")})))
        assert tag.attribute_text == ' class="wide card"'

    def test_not_a_tag(self, serializer):
        assert serializer.describe(call("widget")) is None
        assert serializer.describe(send(lvar("div"), "card")) is None
        assert serializer.describe(None) is None

    def test_self_closing(self, serializer):
        assert serializer.describe(call("br")).self_closing
        assert not serializer.describe(call("div")).self_closing


class TestAttributeValues:

    def test_literal_and_symbol_values(self, serializer):
        tag = serializer.describe(call("input", _attrs(type=sym("submit"), value=str_("Save"))))
        assert tag.attribute_text == ' type="submit" value="Save"'

    def test_nil_values_are_omitted(self, serializer):
        tag = serializer.describe(call("a", _attrs(href=str_("/"), title=nil())))
        assert tag.attribute_text == ' href="/"'

    def test_computed_values(self, serializer):
        tag = serializer.describe(call("a", _attrs(href=ivar("@url"))))
        assert tag.attributes[0].kind is AttributeKind.COMPUTED
        assert tag.attribute_text == ' href="<%= @url %>"'

    def test_interpolated_value(self, serializer):
        tag = serializer.describe(call("li", _attrs(id=dstr("post-", lvar("id")))))
        assert tag.attribute_text == ' id="<%= "post-#{id}" %>"'

    def test_quotes_are_escaped(self, serializer):
        tag = serializer.describe(call("p", _attrs(title=str_('say "hi"'))))
        assert tag.attribute_text == ' title="say &quot;hi&quot;"'

    def test_delimiters_in_literal_value(self, serializer):
        tag = serializer.describe(call("p", _attrs(title=str_("a <%= b %>"))))
        assert tag.attribute_text == ' title="a <%%= b %>"'


class TestConditionalAttributes:

    def test_guarded_attribute(self, serializer):
        tag = serializer.describe(call("li", _attrs(**{"class": if_(lvar("active"), str_("current"), None)})))
        assert tag.attributes == ()
        assert [c.kind for c in tag.conditional] == [AttributeKind.CONDITIONAL]
        assert tag.open_tag(Directives()) == '<li<% if active %> class="current"<% end %>>'

    def test_negated_guard(self, serializer):
        tag = serializer.describe(call("input", _attrs(disabled=unless(lvar("editable"), str_("disabled")))))
        assert tag.open_tag(Directives()) == '<input<% unless editable %> disabled="disabled"<% end %>>'

    def test_two_branch_conditional_is_a_computed_value(self, serializer):
        tag = serializer.describe(call("div", _attrs(**{"class": if_(lvar("a"), str_("x"), str_("y"))})))
        assert tag.attribute_text == " class=\"<%= a ? 'x' : 'y' %>\""
