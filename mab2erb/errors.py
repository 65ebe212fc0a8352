"""
Exceptions raised by the converter.

All expected errors that should be displayed to the user
as clean messages (without stack traces) inherit from Mab2ErbError.
The batch driver catches them per document and moves on to the next file.

Programming errors and bugs should NOT inherit from Mab2ErbError —
they will propagate with full tracebacks.
"""

from __future__ import annotations

from typing import Optional


class Mab2ErbError(Exception):
    """
    Base class for all user-facing errors of the converter.
    """
    pass


class ParseError(Mab2ErbError):
    """
    The Markaby source could not be parsed into a syntax tree.

    Raised by the front end only; the conversion engine never sees
    malformed input.
    """

    def __init__(self, message: str, source: Optional[str] = None, line: Optional[int] = None):
        self.source = source
        self.line = line
        text = message if line is None else f"{message} (line {line})"
        super().__init__(text)


class ConversionError(Mab2ErbError):
    """
    A syntax tree node could not be converted.

    Attributes:
        node_kind: Kind of the offending node (e.g. "def", "case")
        line_number: Approximate output line at which conversion stopped
        context: Short description of the surrounding construct
    """

    def __init__(
        self,
        message: Optional[str] = None,
        node_kind: Optional[str] = None,
        line_number: Optional[int] = None,
        context: Optional[str] = None,
    ):
        self.node_kind = node_kind
        self.line_number = line_number
        self.context = context
        self.base_message = message or f"Unhandled node type: {node_kind}"
        super().__init__(self._format())

    def _format(self) -> str:
        text = self.base_message
        if self.node_kind:
            text += f" (node type: {self.node_kind})"
        if self.line_number is not None:
            text += f" at line {self.line_number}"
        if self.context:
            text += f"\nContext: {self.context}"
        return text


class ValidationError(Mab2ErbError):
    """
    Generated ERB failed the syntax check of its embedded Ruby code.

    Attributes:
        directive: Text of the ERB directive the error points at
        line_number: 1-based line of that directive in the generated output
    """

    def __init__(self, message: str, directive: Optional[str] = None, line_number: Optional[int] = None):
        self.directive = directive
        self.line_number = line_number
        text = message
        if line_number is not None:
            text += f" at line {line_number}"
        if directive:
            text += f": {directive}"
        super().__init__(text)


class ConfigError(Mab2ErbError):
    """Invalid mab2erb.yaml or CLI option combination."""
    pass


__all__ = ["Mab2ErbError", "ParseError", "ConversionError", "ValidationError", "ConfigError"]
