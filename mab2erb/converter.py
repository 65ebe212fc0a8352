"""
Source-to-template conversion: parse Markaby text, convert the tree.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

from .config.model import ConvertOptions
from .engine import convert
from .frontend import parse_markaby


def convert_source(text: str, options: Optional[ConvertOptions] = None, source: Optional[str] = None) -> str:
    """
    Converts Markaby source text into ERB.

    Args:
        text: Markaby (Ruby) source
        options: Conversion settings
        source: Name of the document, used in error messages

    Returns:
        ERB text (empty for a document without statements)

    Raises:
        ParseError: The source is not valid Ruby
        ConversionError: A construct cannot be represented in ERB
        ValidationError: options.validate_output is set and the output is malformed
    """
    return convert(parse_markaby(text, source=source), options)


def convert_file(path: Path, options: Optional[ConvertOptions] = None) -> str:
    return convert_source(path.read_text(encoding="utf-8"), options, source=str(path))


__all__ = ["convert_source", "convert_file"]
