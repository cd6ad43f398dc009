"""Terminal output with ANSI styling, width awareness and an indent stack."""

from __future__ import annotations

import re
from contextlib import contextmanager
from enum import Enum
from typing import Iterator, TextIO

__all__ = ["Style", "Writer", "priority_style", "plain_writer", "color_writer"]


class Style(Enum):
    """An ANSI text style."""

    BOLD = "\033[1m"
    DIM = "\033[2m"
    RED = "\033[31m"
    BRIGHT_RED = "\033[91m"
    YELLOW = "\033[33m"
    CYAN = "\033[36m"
    GREEN = "\033[32m"
    STRIKETHROUGH = "\033[9m"

    @property
    def code(self) -> str:
        return self.value


_RESET = "\033[0m"

_PRIORITY_STYLES = {
    0: Style.BRIGHT_RED,
    1: Style.RED,
    2: Style.YELLOW,
    3: Style.CYAN,
    4: Style.DIM,
}

_CHUNKS = re.compile(r"[^\n]*\n|[^\n]+")


def priority_style(priority: int) -> Style:
    """Return the style used to render a priority level."""
    return _PRIORITY_STYLES.get(priority, Style.DIM)


class Writer:
    """A text stream wrapper that indents every new line by the current indent.

    Usable anywhere a file is expected for writing, e.g. ``print(..., file=w)``.
    """

    def __init__(self, out: TextIO, *, color: bool = False, width: int = 0) -> None:
        self._out = out
        self._color = color
        self._width = width
        self._stack: list[int] = []
        self._prefix = ""
        self._at_line_start = True

    def write(self, text: str) -> int:
        """Write text, prefixing each new line with the current indent."""
        for chunk in _CHUNKS.findall(text):
            if self._at_line_start and self._prefix:
                self._out.write(self._prefix)
                self._at_line_start = False
            self._out.write(chunk)
            self._at_line_start = chunk.endswith("\n")
        return len(text)

    def style(self, text: str, *args: Style) -> str:
        """Wrap text in the given styles; plain writers return it unchanged."""
        if not self._color or not args:
            return text
        return "".join(s.code for s in args) + text + _RESET

    def width(self) -> int:
        """Available width after the indent, or 0 when wrapping is disabled."""
        if self._width == 0:
            return 0
        return max(1, self._width - len(self._prefix))

    def push(self, n: int) -> None:
        """Add n spaces to the current indent."""
        self._stack.append(n)
        self._rebuild_prefix()

    def pop(self) -> None:
        """Remove the most recent indent level, if any."""
        if self._stack:
            self._stack.pop()
            self._rebuild_prefix()

    @contextmanager
    def indented(self, n: int) -> Iterator["Writer"]:
        """Indent by n spaces for the duration of the block."""
        self.push(n)
        try:
            yield self
        finally:
            self.pop()

    def clear_line(self) -> str:
        """Carriage return, clearing to end of line on colour terminals."""
        return "\r\033[K" if self._color else "\r"

    def _rebuild_prefix(self) -> None:
        self._prefix = " " * sum(self._stack)


def plain_writer(out: TextIO) -> Writer:
    """A writer that ignores styling and never wraps."""
    return Writer(out)


def color_writer(out: TextIO, width: int) -> Writer:
    """A writer that applies ANSI styling for a terminal of the given width."""
    return Writer(out, color=True, width=width)