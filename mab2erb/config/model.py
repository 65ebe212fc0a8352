from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field, replace
from typing import FrozenSet, Iterable, Optional

_HTML_TAGS = (
    "html head title body h1 h2 h3 h4 h5 h6 ul ol li a div span p table tr td th "
    "form input label select option textarea button meta br hr img link tbody thead "
    "tfoot hgroup i iframe object pre video dt dd dl em fieldset legend strong "
    "blockquote code b u s small sup sub script style section nav header footer "
    "article aside main caption colgroup col"
)

_SELF_CLOSING = "meta input br hr img link col"

_ITERATORS = "each map collect times each_with_index inject each_pair each_slice"

_HELPERS = (
    "render select_field observe_field form_tag form_for form_remote_tag submit_tag "
    "label_tag text_field_tag password_field_tag select_tag check_box_tag radio_button_tag "
    "file_field_tag link_to link_to_remote button_to url_for image_tag stylesheet_link_tag "
    "javascript_include_tag date_select time_select distance_of_time_in_words truncate "
    "highlight simple_format sanitize content_tag flash number_to_human_size ajax_form "
    "dialog_button cycle"
)

_DOCTYPES = "xhtml_transitional xhtml_strict html4_transitional html4_strict"

_IDENTIFIER_RE = re.compile(r"\A[a-z_]\w*\Z")


def _words(text: str) -> FrozenSet[str]:
    return frozenset(text.split())


@dataclass(frozen=True)
class Vocabulary:
    """
    Name sets that drive the conversion.

    Attributes:
        tags: Method names emitted as HTML tags
        self_closing: Tags rendered without a closing tag when empty
        iterators: Block calls rendered as `<% recv.each do |x| %>` loops
        helpers: View helpers rendered as output directives
        bare_hash_helpers: Helpers whose trailing options hash is never braced
        doctypes: Markaby doctype helpers wrapping the whole page
    """
    tags: FrozenSet[str] = _words(_HTML_TAGS)
    self_closing: FrozenSet[str] = _words(_SELF_CLOSING)
    iterators: FrozenSet[str] = _words(_ITERATORS)
    helpers: FrozenSet[str] = _words(_HELPERS)
    bare_hash_helpers: FrozenSet[str] = frozenset({"select_tag"})
    doctypes: FrozenSet[str] = _words(_DOCTYPES)

    def is_tag(self, name: Optional[str]) -> bool:
        return name in self.tags

    def is_self_closing(self, name: Optional[str]) -> bool:
        return name in self.self_closing

    def is_helper(self, name: Optional[str]) -> bool:
        return name in self.helpers

    def is_iterator(self, name: Optional[str]) -> bool:
        return name in self.iterators

    def extended(self, category: str, add: Iterable[str] = (), remove: Iterable[str] = ()) -> "Vocabulary":
        """
        Copy with names added to / removed from one category.

        Raises:
            KeyError: Unknown category name
        """
        if category not in VOCABULARY_CATEGORIES:
            raise KeyError(category)
        current: FrozenSet[str] = getattr(self, category)
        updated = (current | frozenset(add)) - frozenset(remove)
        return replace(self, **{category: updated})


VOCABULARY_CATEGORIES = ("tags", "self_closing", "iterators", "helpers", "bare_hash_helpers", "doctypes")

DEFAULT_VOCABULARY = Vocabulary()


@dataclass(frozen=True)
class Directives:
    """ERB delimiters used for the whole document."""
    statement_open: str = "<%"
    output_open: str = "<%="
    comment_open: str = "<%#"
    close: str = "%>"

    def statement(self, code: str) -> str:
        return f"{self.statement_open} {code} {self.close}"

    def output(self, code: str) -> str:
        return f"{self.output_open} {code} {self.close}"

    @property
    def literal_open(self) -> str:
        """Doubled opener: `<%% x %>` prints `<% x %>`."""
        return self.statement_open + "%"

    def comment(self, text: str) -> str:
        # A closer inside the comment would end it early; split it apart.
        body = text.replace(self.close, self.close[0] + " " + self.close[1:])
        return f"{self.comment_open} {body} {self.close}"

    def text(self, text: str) -> str:
        """
        Escapes delimiters in literal template text.

        An opener with a closer after it (and before the next opener) is
        doubled, so the whole region prints as written. A lone opener has
        no region to double and is written with an entity for its `<`.
        """
        opener, close = self.statement_open, self.close
        out = []
        pos = 0
        while True:
            index = text.find(opener, pos)
            if index < 0:
                out.append(text[pos:])
                return "".join(out)
            after = index + len(opener)
            closed_at = text.find(close, after)
            next_open = text.find(opener, after)
            out.append(text[pos:index])
            if closed_at >= 0 and (next_open < 0 or closed_at < next_open):
                out.append(self.literal_open)
            elif opener.startswith("<"):
                out.append("&lt;" + opener[1:])
            else:
                out.append(self.literal_open)
            pos = after


@dataclass
class ConvertOptions:
    """
    Per-conversion settings.

    Attributes:
        validate_output: Syntax-check the generated ERB before returning it
        default_to_instance_scope: Render bare lowercase references as @name
        preserve_comments: Keep source comments as comment directives
        logger: Diagnostics sink; defaults to the "mab2erb.engine" logger
        vocabulary: Tag, helper and iterator names
        directives: ERB delimiters
    """
    validate_output: bool = False
    default_to_instance_scope: bool = False
    preserve_comments: bool = False
    logger: Optional[logging.Logger] = None
    vocabulary: Vocabulary = field(default_factory=lambda: DEFAULT_VOCABULARY)
    directives: Directives = field(default_factory=Directives)

    def get_logger(self) -> logging.Logger:
        return self.logger or logging.getLogger("mab2erb.engine")

    def scoped_name(self, name: str) -> str:
        """
        Name for a receiver-less, argument-less reference.

        With default_to_instance_scope set, plain identifiers become instance
        variables; path helpers (*_path, *_url) and known helpers stay as they are.
        """
        if not self.default_to_instance_scope:
            return name
        if name.startswith("@") or not _IDENTIFIER_RE.match(name):
            return name
        if name.endswith("_path") or name.endswith("_url"):
            return name
        if self.vocabulary.is_helper(name):
            return name
        return "@" + name


__all__ = [
    "Vocabulary",
    "VOCABULARY_CATEGORIES",
    "DEFAULT_VOCABULARY",
    "Directives",
    "ConvertOptions",
]
