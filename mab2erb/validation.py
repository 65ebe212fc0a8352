"""
Syntax check of generated ERB.

The template is compiled the way Erubi compiles it with trimming enabled:
statement directives are copied verbatim, output directives are appended
to a buffer, comment directives and whitespace-only text are dropped and
other text, doubled `<%%` regions included, becomes a string literal.
The resulting Ruby program is parsed with tree-sitter-ruby; the first
syntax error is reported against the directive it came from.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import List, Optional, Tuple

from .config.model import Directives
from .errors import ValidationError
from .frontend.tree_sitter_support import RubyDocument

logger = logging.getLogger(__name__)

# Output directive that opens a block: `<%= form_for x do |f| %>`.
_BLOCK_OPENER_RE = re.compile(r"\bdo\s*(\|[^|]*\|)?\s*\Z")


@dataclass(frozen=True)
class CompiledTemplate:
    """
    Ruby program compiled from a template.

    Attributes:
        source: Ruby source text
        origins: For each Ruby line, the 1-based template line and directive it came from
    """
    source: str
    origins: Tuple[Tuple[int, str], ...]

    def origin_of(self, ruby_line: int) -> Tuple[Optional[int], Optional[str]]:
        if 1 <= ruby_line <= len(self.origins):
            return self.origins[ruby_line - 1]
        if self.origins:
            return self.origins[-1]
        return None, None


def _directive_pattern(directives: Directives) -> re.Pattern:
    openers = sorted(
        {directives.literal_open, directives.statement_open, directives.output_open, directives.comment_open},
        key=len,
        reverse=True,
    )
    alternation = "|".join(re.escape(o) for o in openers)
    return re.compile(f"({alternation})(.*?){re.escape(directives.close)}", re.DOTALL)


def compile_erb(text: str, directives: Optional[Directives] = None) -> CompiledTemplate:
    """
    Compiles template text into a Ruby program.

    Raises:
        ValidationError: A directive is not closed
    """
    directives = directives or Directives()
    pattern = _directive_pattern(directives)
    lines: List[str] = []
    origins: List[Tuple[int, str]] = []

    def emit(code: str, line: int, directive: str) -> None:
        for offset, piece in enumerate(code.split("\n")):
            lines.append(piece)
            origins.append((line + offset, directive))

    def line_at(index: int) -> int:
        return text.count("\n", 0, index) + 1

    cursor = 0
    for match in pattern.finditer(text):
        if match.group(1) == directives.literal_open:
            continue
        chunk = text[cursor:match.start()]
        if chunk.strip():
            emit("_buf << ''", line_at(cursor + len(chunk) - len(chunk.lstrip())), chunk.strip())
        opener, code = match.group(1), match.group(2).strip()
        line = line_at(match.start())
        if opener == directives.output_open:
            if _BLOCK_OPENER_RE.search(code):
                emit(f"_buf << {code}", line, match.group(0))
            else:
                emit(f"_buf << ({code})", line, match.group(0))
        elif opener != directives.comment_open:
            emit(code, line, match.group(0))
        cursor = match.end()

    rest = text[cursor:]
    unclosed = re.compile(re.escape(directives.statement_open) + "(?!%)").search(rest)
    if unclosed is not None:
        index = cursor + unclosed.start()
        line = line_at(index)
        raise ValidationError("Unterminated ERB directive", text[index:].split("\n", 1)[0], line)
    if rest.strip():
        emit("_buf << ''", line_at(cursor + len(rest) - len(rest.lstrip())), rest.strip())

    return CompiledTemplate("\n".join(lines) + "\n", tuple(origins))


def validate_erb(text: str, directives: Optional[Directives] = None) -> None:
    """
    Checks that the Ruby code embedded in a template is well formed.

    Args:
        text: Generated ERB
        directives: Delimiters the template was written with

    Raises:
        ValidationError: The template does not compile to valid Ruby
    """
    compiled = compile_erb(text, directives)
    doc = RubyDocument(compiled.source)
    if not doc.has_error():
        logger.debug("Validated %d compiled lines", len(compiled.origins))
        return
    ruby_line = doc.first_error_line() or len(compiled.origins)
    line, directive = compiled.origin_of(ruby_line)
    raise ValidationError("Generated ERB is not valid Ruby", directive=directive, line_number=line)


__all__ = ["CompiledTemplate", "compile_erb", "validate_erb"]
