"""Resolve analyzer line/column locations into absolute character ranges."""

import re
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

_TERMINATOR = re.compile(r"\r\n|\r|\n")


class OutOfRangeError(Exception):
    """Raised when a location points outside the snapshot."""


@dataclass(frozen=True)
class CharRange:
    """Half-open absolute character range ``[start, end)``."""

    start: int
    end: int

    def __post_init__(self):
        if self.start < 0 or self.end < self.start:
            raise ValueError(f"Invalid character range [{self.start}, {self.end})")

    @property
    def length(self) -> int:
        return self.end - self.start


class TextSnapshot:
    """Immutable view of a file's text at one moment.

    A trailing line terminator yields a final empty line, like an editor
    document does. Terminators may be mixed within one text.
    """

    def __init__(self, text: str):
        self._text = text
        self._contents: list[str] = []
        self._starts: list[int] = []

        position = 0
        for match in _TERMINATOR.finditer(text):
            self._starts.append(position)
            self._contents.append(text[position:match.start()])
            position = match.end()
        self._starts.append(position)
        self._contents.append(text[position:])

    @classmethod
    def from_text(cls, text: str) -> "TextSnapshot":
        return cls(text)

    @classmethod
    def from_file(cls, path: str | Path, encoding: str = "utf-8") -> "TextSnapshot":
        # newline="" keeps CR and CRLF terminators intact
        with open(path, encoding=encoding, newline="") as handle:
            return cls(handle.read())

    @property
    def text(self) -> str:
        return self._text

    @property
    def line_count(self) -> int:
        return len(self._contents)

    def _check_line(self, line: int) -> int:
        if line < 1 or line > self.line_count:
            raise OutOfRangeError(f"Line {line} is outside 1..{self.line_count}")
        return line - 1

    def line_content(self, line: int) -> str:
        """Content of a 1-based line, without its terminator."""
        return self._contents[self._check_line(line)]

    def line_start(self, line: int) -> int:
        """Absolute offset of the first character of a 1-based line."""
        return self._starts[self._check_line(line)]

    def get(self, char_range: CharRange) -> str:
        return self._text[char_range.start:char_range.end]

    def __repr__(self) -> str:
        return f"TextSnapshot(lines={self.line_count}, chars={len(self._text)})"


def resolve(
    snapshot: TextSnapshot,
    start_line: int,
    start_line_offset: Optional[int] = None,
    end_line: Optional[int] = None,
    end_line_offset: Optional[int] = None,
) -> CharRange:
    """Compute the absolute character range of a location.

    Absent offsets span the whole line, terminator excluded. An absent end
    line defaults to the start line. Raises ``OutOfRangeError`` when either
    line is not part of the snapshot.
    """
    start_base = snapshot.line_start(start_line)
    if end_line is None:
        end_line = start_line
    end_base = snapshot.line_start(end_line)

    if start_line_offset is None or end_line_offset is None:
        start = start_base
        end = end_base + len(snapshot.line_content(end_line))
    else:
        start = start_base + start_line_offset
        end = end_base + end_line_offset

    if end < start:
        raise OutOfRangeError(
            f"Location ends before it starts ({start_line}:{start_line_offset} "
            f"to {end_line}:{end_line_offset})"
        )
    return CharRange(start, end)


def resolve_line(snapshot: TextSnapshot, line: int) -> CharRange:
    """Range of a full line, terminator excluded."""
    return resolve(snapshot, line)
