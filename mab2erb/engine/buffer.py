from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Callable, Iterator, List, Optional, TypeVar

INDENT = "  "

T = TypeVar("T")


@dataclass(frozen=True)
class OutputLine:
    depth: int
    text: str


class OutputBuffer:
    """
    Ordered, append-only list of indented output lines.

    Indentation is only changed through the scoped `indented()` context,
    so the depth is always restored when a nested construct finishes,
    even if its conversion raises.
    """

    def __init__(self, logger: Optional[logging.Logger] = None):
        self._lines: List[OutputLine] = []
        self._depth = 0
        self._logger = logger

    @property
    def depth(self) -> int:
        return self._depth

    @property
    def line_count(self) -> int:
        return len(self._lines)

    @property
    def lines(self) -> List[OutputLine]:
        return list(self._lines)

    def append(self, text: str) -> None:
        """Adds one line at the current depth."""
        self._lines.append(OutputLine(self._depth, text))
        if self._logger is not None and self._logger.isEnabledFor(logging.DEBUG):
            self._logger.debug("emit %4d: %s%s", len(self._lines), INDENT * self._depth, text)

    def append_lines(self, text: str) -> None:
        """Adds multi-line literal text, one output line per source line."""
        for line in text.split("\n"):
            self.append(line)

    @contextmanager
    def indented(self) -> Iterator[None]:
        self._depth += 1
        try:
            yield
        finally:
            self._depth -= 1

    def with_indent(self, body: Callable[[], T]) -> T:
        """Runs body one level deeper and returns its result."""
        with self.indented():
            return body()

    def render(self) -> str:
        return "\n".join(
            (INDENT * line.depth + line.text) if line.text else ""
            for line in self._lines
        )


__all__ = ["OutputBuffer", "OutputLine", "INDENT"]
