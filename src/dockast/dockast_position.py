"""
Source coordinates for the dockast parser.

Classes:
    Position: A zero-based (line, character) coordinate.
    Range: A half-open span between two positions.
    TextDocument: Immutable source buffer that converts string offsets to
        positions and back.

Columns are counted in UTF-16 code units so that positions line up with what
editors report. Offsets are plain Python string indices. A line break is any of
``\\r\\n``, ``\\r`` or ``\\n``.

Example:
    >>> doc = TextDocument("FROM alpine\\nRUN ls")
    >>> doc.position_at(14)
    Position(1, 2)
    >>> doc.offset_at(Position(1, 2))
    14
"""

from __future__ import annotations

from bisect import bisect_right
from typing import Any, TypedDict


class PositionDict(TypedDict):
    line: int
    character: int


class RangeDict(TypedDict):
    start: PositionDict
    end: PositionDict


class Position:
    """A zero-based line and UTF-16 column.

    Attributes:
        line (int): Line number, starting at 0.
        character (int): Column in UTF-16 code units, starting at 0.
    """

    def __init__(self, line: int, character: int) -> None:
        self.line = line
        self.character = character

    def __repr__(self) -> str:
        return f"Position({self.line}, {self.character})"

    def __eq__(self, other: Any) -> bool:
        return (
            isinstance(other, Position)
            and self.line == other.line
            and self.character == other.character
        )

    def __lt__(self, other: Position) -> bool:
        return (self.line, self.character) < (other.line, other.character)

    def __le__(self, other: Position) -> bool:
        return (self.line, self.character) <= (other.line, other.character)

    def __hash__(self) -> int:
        return hash((self.line, self.character))

    def to_dict(self) -> PositionDict:
        return {"line": self.line, "character": self.character}


class Range:
    """A span of source text; ``end`` is exclusive.

    Attributes:
        start (Position): First position covered by the range.
        end (Position): Position just past the range.
    """

    def __init__(self, start: Position, end: Position) -> None:
        self.start = start
        self.end = end

    @classmethod
    def create(
        cls, start_line: int, start_character: int, end_line: int, end_character: int
    ) -> Range:
        return cls(
            Position(start_line, start_character), Position(end_line, end_character)
        )

    def __repr__(self) -> str:
        return (
            f"Range({self.start.line}:{self.start.character}"
            f"-{self.end.line}:{self.end.character})"
        )

    def __eq__(self, other: Any) -> bool:
        return (
            isinstance(other, Range)
            and self.start == other.start
            and self.end == other.end
        )

    def __hash__(self) -> int:
        return hash((self.start, self.end))

    def contains(self, position: Position) -> bool:
        """Checks whether a position lies in this range, both ends inclusive.

        Editors place the cursor after the last character of a token, so the end
        position is treated as inside.
        """
        return self.start <= position <= self.end

    def contains_range(self, other: Range) -> bool:
        return self.contains(other.start) and self.contains(other.end)

    def to_dict(self) -> RangeDict:
        return {"start": self.start.to_dict(), "end": self.end.to_dict()}


def _utf16_length(text: str) -> int:
    if text.isascii():
        return len(text)
    return sum(2 if ord(char) > 0xFFFF else 1 for char in text)


class TextDocument:
    """Read-only view over a source buffer with line bookkeeping.

    Attributes:
        text (str): The full source text.
        line_offsets (list[int]): String offset at which each line begins.
    """

    def __init__(self, text: str) -> None:
        self.text = text
        self.line_offsets = self._compute_line_offsets(text)

    @staticmethod
    def _compute_line_offsets(text: str) -> list[int]:
        offsets = [0]
        i = 0
        length = len(text)
        while i < length:
            char = text[i]
            if char == "\r" or char == "\n":
                if char == "\r" and i + 1 < length and text[i + 1] == "\n":
                    i += 1
                offsets.append(i + 1)
            i += 1
        return offsets

    @property
    def line_count(self) -> int:
        return len(self.line_offsets)

    def get_text(self, range_: Range | None = None) -> str:
        if range_ is None:
            return self.text
        return self.text[self.offset_at(range_.start) : self.offset_at(range_.end)]

    def substring(self, start: int, end: int) -> str:
        return self.text[start:end]

    def position_at(self, offset: int) -> Position:
        """Converts a string offset into a position.

        Offsets outside the buffer are clamped to its bounds.
        """
        offset = max(min(offset, len(self.text)), 0)
        line = bisect_right(self.line_offsets, offset) - 1
        line_start = self.line_offsets[line]
        return Position(line, _utf16_length(self.text[line_start:offset]))

    def offset_at(self, position: Position) -> int:
        """Converts a position into a string offset.

        Lines past the end map to the end of the buffer, negative lines to 0, and
        columns past the end of a line to the start of the next line.
        """
        if position.line >= len(self.line_offsets):
            return len(self.text)
        if position.line < 0:
            return 0
        line_start = self.line_offsets[position.line]
        if position.line + 1 < len(self.line_offsets):
            next_line_start = self.line_offsets[position.line + 1]
        else:
            next_line_start = len(self.text)
        offset = line_start
        units = 0
        while offset < next_line_start and units < position.character:
            units += 2 if ord(self.text[offset]) > 0xFFFF else 1
            offset += 1
        return offset

    def range_at(self, start: int, end: int) -> Range:
        """Builds a range from two string offsets."""
        return Range(self.position_at(start), self.position_at(end))

    def end_position(self) -> Position:
        return self.position_at(len(self.text))


__all__ = ["Position", "PositionDict", "Range", "RangeDict", "TextDocument"]
