"""
Tag call chains and attribute maps.

Markaby spells a tag as a call chain: `div.card.active!(:style => s)` is a
div with classes `card`, id `active` and a style attribute. The serializer
turns such a chain into a TagDescriptor that the dispatcher renders as an
opening tag.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Tuple

from ..config.model import ConvertOptions, Directives
from ..nodes import K, Node, unwrap_begin
from .extractor import ContentExtractor, InterpolationStyle

# Value kinds rendered as plain text.
_LITERAL_KINDS = frozenset({K.STR, K.INT, K.FLOAT, K.TRUE, K.FALSE, K.HASH, K.KWARGS, K.ARRAY})


class AttributeKind(str, Enum):
    LITERAL = "literal"
    COMPUTED = "computed"
    CONDITIONAL = "conditional"


@dataclass(frozen=True)
class Attribute:
    key: str
    value: str
    kind: AttributeKind = AttributeKind.LITERAL

    def render(self) -> str:
        return f' {self.key}="{self.value}"'


@dataclass(frozen=True)
class ConditionalAttribute:
    """Attribute written only when a guard holds: `<% if c %> key="v"<% end %>`."""
    condition: str
    key: str
    value: str
    negated: bool = False

    @property
    def kind(self) -> AttributeKind:
        return AttributeKind.CONDITIONAL

    def render(self, directives: Directives) -> str:
        keyword = "unless" if self.negated else "if"
        return (
            f"{directives.statement(f'{keyword} {self.condition}')}"
            f' {self.key}="{self.value}"'
            f"{directives.statement('end')}"
        )


@dataclass(frozen=True)
class TagDescriptor:
    """
    Everything needed to open and close one tag.

    Attributes:
        name: Tag name
        classes: Class names from the call chain, in source order
        ids: Ids from `name!` links of the call chain
        attributes: Rendered attributes, classes and ids merged in
        conditional: Attributes guarded by a condition
        self_closing: Void element (no closing tag when empty)
        content: Positional (non-attribute) arguments of the call
    """
    name: str
    classes: Tuple[str, ...] = ()
    ids: Tuple[str, ...] = ()
    attributes: Tuple[Attribute, ...] = ()
    conditional: Tuple[ConditionalAttribute, ...] = ()
    self_closing: bool = False
    content: Tuple[Node, ...] = field(default=(), compare=False)

    @property
    def attribute_text(self) -> str:
        return "".join(a.render() for a in self.attributes)

    def open_tag(self, directives: Directives) -> str:
        guarded = "".join(c.render(directives) for c in self.conditional)
        return f"<{self.name}{self.attribute_text}{guarded}>"

    def close_tag(self) -> str:
        return f"</{self.name}>"


class AttributeSerializer:
    """Builds TagDescriptors from tag call chains."""

    def __init__(self, options: ConvertOptions, extractor: ContentExtractor):
        self.options = options
        self.vocab = options.vocabulary
        self.directives = options.directives
        self.extractor = extractor

    def describe(self, call: Optional[Node]) -> Optional[TagDescriptor]:
        """
        Descriptor for a tag call chain, None when the chain is not a tag.

        Links ending in `!` become ids, other links classes; the chain must
        bottom out in a receiver-less call to a known tag name.
        """
        if call is None or call.kind is not K.SEND:
            return None

        links: List[Node] = []
        current = call
        while current.receiver is not None:
            links.append(current)
            current = current.receiver
            if current.kind is not K.SEND:
                return None
        if not self.vocab.is_tag(current.method):
            return None

        classes: List[str] = []
        ids: List[str] = []
        for link in reversed(links):
            if link.method.endswith("!"):
                ids.append(link.method[:-1])
            else:
                classes.append(link.method)

        attributes: List[Attribute] = []
        conditional: List[ConditionalAttribute] = []
        content: List[Node] = []
        for arg in call.args:
            if arg is None:
                continue
            if arg.kind in (K.HASH, K.KWARGS):
                self._collect(arg, attributes, conditional)
            else:
                content.append(arg)

        merged = self._merge(self._merge(attributes, "class", classes), "id", ids)
        return TagDescriptor(
            name=current.method,
            classes=tuple(classes),
            ids=tuple(ids),
            attributes=tuple(merged),
            conditional=tuple(conditional),
            self_closing=self.vocab.is_self_closing(current.method),
            content=tuple(content),
        )

    def attributes(self, hash_node: Node) -> Tuple[List[Attribute], List[ConditionalAttribute]]:
        """Attributes of a standalone hash (used by `tag!` and `empty_tag!`)."""
        attributes: List[Attribute] = []
        conditional: List[ConditionalAttribute] = []
        self._collect(hash_node, attributes, conditional)
        return attributes, conditional

    # ---- internals ----

    def _collect(self, hash_node: Node, out: List[Attribute], guarded: List[ConditionalAttribute]) -> None:
        for pair in hash_node.children:
            if pair is None or pair.kind is not K.PAIR:
                continue
            key = self._key(pair.child(0))
            value = unwrap_begin(pair.child(1))
            if value is None or value.kind is K.NIL:
                continue
            if value.kind is K.IF and (value.child(1) is None or value.child(2) is None):
                guarded.append(self._conditional(key, value))
            else:
                out.append(self._attribute(key, value))

    def _key(self, node: Optional[Node]) -> str:
        if node is None:
            return ""
        if node.kind in (K.SYM, K.STR):
            return self.directives.text(node.value or "")
        if node.kind in (K.DSTR, K.DSYM):
            return self.extractor.interpolate(node, InterpolationStyle.ERB)
        return self.directives.output(self.extractor.code(node))

    def _attribute(self, key: str, value: Node) -> Attribute:
        x = self.extractor
        if value.kind is K.SYM:
            return Attribute(key, self.directives.text(value.value or ""))
        if value.kind in _LITERAL_KINDS:
            return Attribute(key, self.directives.text(_escape_attr(x.extract(value))))
        if value.kind is K.DSTR:
            return Attribute(key, self.directives.output(x.ruby_string(value)), AttributeKind.COMPUTED)
        return Attribute(key, self.directives.output(x.extract(value)), AttributeKind.COMPUTED)

    def _conditional(self, key: str, value: Node) -> ConditionalAttribute:
        x = self.extractor
        then, other = value.child(1), value.child(2)
        branch = unwrap_begin(then if then is not None else other)
        if branch is None:
            text = ""
        elif branch.kind is K.STR:
            text = self.directives.text(_escape_attr(branch.value or ""))
        elif branch.kind is K.DSTR:
            text = x.interpolate(branch, InterpolationStyle.ERB)
        else:
            text = self.directives.output(x.code(branch))
        return ConditionalAttribute(
            condition=x.condition(value.child(0)),
            key=key,
            value=text,
            negated=then is None,
        )

    @staticmethod
    def _merge(attributes: List[Attribute], key: str, names: List[str]) -> List[Attribute]:
        """Appends chain class/id names to an explicit attribute, or adds a new one."""
        if not names:
            return attributes
        joined = " ".join(names)
        merged: List[Attribute] = []
        found = False
        for attr in attributes:
            if attr.key == key and not found:
                merged.append(Attribute(key, f"{attr.value} {joined}" if attr.value else joined, attr.kind))
                found = True
            else:
                merged.append(attr)
        if not found:
            merged.append(Attribute(key, joined))
        return merged


def _escape_attr(text: str) -> str:
    return text.replace('"', "&quot;")


__all__ = [
    "AttributeKind",
    "Attribute",
    "ConditionalAttribute",
    "TagDescriptor",
    "AttributeSerializer",
]
