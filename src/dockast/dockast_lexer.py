"""
Line scanner for Dockerfiles.

This module turns raw Dockerfile text into the ordered sequence of top-level
lines held by a ``Dockerfile``: at most one leading parser directive, then
comments and instructions in source order.

Classes:
    CharacterStream: Cursor over the source text with bounds-safe lookahead.
    ScanState: The states of a scan (directive, first line, lines, done).
    Scanner: Consumes a source buffer once and produces a ``Dockerfile``.

Features:
    - Detects a ``# name=value`` parser directive on the very first line and
      honors ``# escape=`` for the rest of the scan
    - Treats an escape character followed by a line break (optionally with
      spaces or tabs before the break) as a line continuation, both inside a
      keyword and inside the arguments
    - Records comments nested inside continued instructions without ending
      the instruction
    - Never raises on malformed input; unterminated constructs are kept as-is

Example:
    >>> dockerfile = Scanner("# escape=`\\nFROM alpine").scan()
    >>> dockerfile.get_escape_character()
    '`'
"""

import logging
from enum import Enum, auto

from dockast.dockast_ast import Comment, Line, ParserDirective
from dockast.dockast_constants import (
    DEFAULT_ESCAPE_CHARACTER,
    HORIZONTAL_WHITESPACE,
    NEWLINES,
    VALID_ESCAPE_CHARACTERS,
    Directive,
    is_newline,
    is_whitespace,
)
from dockast.dockast_dockerfile import Dockerfile
from dockast.dockast_instructions import create_instruction
from dockast.dockast_position import Position, Range, TextDocument

logger = logging.getLogger(__name__)


class CharacterStreamError(Exception):
    """Raised when a stream is read past its end."""


class CharacterStream:
    """
    A cursor over a source string.

    Lookahead never raises: reading outside the source yields an empty string,
    which matches no character class used by the scanners.

    Attributes:
        source (str): The input text.
        position (int): Index of the current character.
    """

    def __init__(self, source: str, position: int = 0) -> None:
        self.source = source
        self.position = position

    def next(self) -> str:
        """
        Consumes and returns the current character.

        Raises:
            CharacterStreamError: If the stream is already at its end.
        """
        if self.position >= len(self.source):
            raise CharacterStreamError(
                f"Attempted to read past end of source at position=<{self.position}>"
            )
        char = self.source[self.position]
        self.position += 1
        return char

    def peek(self, offset: int = 0) -> str:
        """Returns the character ``offset`` places after the cursor, or ``""``."""
        return self.char_at(self.position + offset)

    def char_at(self, index: int) -> str:
        """Returns the character at an absolute index, or ``""`` when out of bounds."""
        if index < 0 or index >= len(self.source):
            return ""
        return self.source[index]

    def current(self) -> str | None:
        return self.source[self.position] if self.position < len(self.source) else None

    def end_of_file(self) -> bool:
        return self.position >= len(self.source)

    def seek(self, position: int) -> None:
        self.position = max(0, min(position, len(self.source)))

    def find_line_break(self, start: int) -> int:
        """Returns the index of the first ``\\r`` or ``\\n`` at or after ``start``.

        Returns the source length when no line break follows.
        """
        for index in range(start, len(self.source)):
            if is_newline(self.source[index]):
                return index
        return len(self.source)

    def skip_horizontal_whitespace(self, start: int) -> int:
        """Returns the index of the first non space/tab character at or after ``start``."""
        index = start
        while self.char_at(index) != "" and self.char_at(index) in HORIZONTAL_WHITESPACE:
            index += 1
        return index

    def line_break_length(self, index: int) -> int:
        """Length of the line break starting at ``index``: 2 for ``\\r\\n``, 1 for
        ``\\r`` or ``\\n``, 0 when there is no line break there."""
        char = self.char_at(index)
        if char == "\r":
            return 2 if self.char_at(index + 1) == "\n" else 1
        if char == "\n":
            return 1
        return 0


class ScanState(Enum):
    """States of a scan.

    AWAITING_DIRECTIVE:
        Entry state. Looks for a parser directive on the first line, skipping
        only spaces and tabs. Exits with the first line classified as a
        directive, a comment, or neither.
    AWAITING_FIRST_LINE:
        Applies the first-line result: installs the escape character of a
        directive, records a leading comment, and places the cursor where line
        scanning begins.
    SCANNING_LINES:
        Skips blank space, records comments and instructions until the end of
        the source is reached.
    DONE:
        Terminal. The document's lines have been organized.
    """

    AWAITING_DIRECTIVE = auto()
    AWAITING_FIRST_LINE = auto()
    SCANNING_LINES = auto()
    DONE = auto()


class Scanner:
    """
    Single-pass scanner producing a ``Dockerfile`` from source text.

    A scanner instance is good for one scan; all state, including the escape
    character, is local to it.

    Attributes:
        document (TextDocument): The source buffer with line bookkeeping.
        stream (CharacterStream): Cursor over the source.
        dockerfile (Dockerfile): The document being populated.
        escape_char (str): The escape character in effect.
        state (ScanState): Current scan state.
    """

    def __init__(self, source: str) -> None:
        self.document = TextDocument(source)
        self.stream = CharacterStream(source)
        self.dockerfile = Dockerfile(self.document)
        self.escape_char = DEFAULT_ESCAPE_CHARACTER
        self.state = ScanState.AWAITING_DIRECTIVE
        self._first_line: Line | None = None

    def scan(self) -> Dockerfile:
        """Runs the scan to completion and returns the populated document."""
        while self.state is not ScanState.DONE:
            if self.state is ScanState.AWAITING_DIRECTIVE:
                self._first_line = self._read_directive_line()
                self.state = ScanState.AWAITING_FIRST_LINE
            elif self.state is ScanState.AWAITING_FIRST_LINE:
                self._apply_first_line(self._first_line)
                self.state = ScanState.SCANNING_LINES
            elif self.state is ScanState.SCANNING_LINES:
                self._scan_lines()
                self.dockerfile.organize_comments()
                self.state = ScanState.DONE

        logger.debug(
            "scanned %d instruction(s) and %d comment(s), escape character %r",
            len(self.dockerfile.get_instructions()),
            len(self.dockerfile.get_comments()),
            self.escape_char,
        )
        return self.dockerfile

    # -- directive window ---------------------------------------------------

    def _read_directive_line(self) -> Line | None:
        """Classifies the first line as a directive, a comment, or neither.

        Returns None when the first non-blank character of line 1 is not ``#``,
        when line 1 is empty, or when a ``#`` line runs to the end of the source
        without a ``=``; the line scanner then handles it from offset 0.
        """
        index = self.stream.skip_horizontal_whitespace(0)
        if self.stream.char_at(index) != "#":
            return None

        comment_start = index
        name_start: int | None = None
        name_end: int | None = None
        j = comment_start + 1
        while j < len(self.stream.source):
            char = self.stream.char_at(j)
            if char in HORIZONTAL_WHITESPACE:
                if name_start is not None and name_end is None:
                    name_end = j
            elif char in NEWLINES:
                return Comment(self.document, self.document.range_at(comment_start, j))
            elif char == "=":
                return self._read_directive_value(
                    comment_start, name_start, j if name_end is None else name_end, j
                )
            elif name_start is None:
                name_start = j
            j += 1
        return None

    def _read_directive_value(
        self, comment_start: int, name_start: int | None, name_end: int, equals: int
    ) -> Line:
        length = len(self.stream.source)
        value_start: int | None = None
        value_end: int | None = None
        line_end = length
        k = equals + 1
        while k < length:
            char = self.stream.char_at(k)
            if char in NEWLINES:
                if value_start is not None and value_end is None:
                    value_end = k
                line_end = k
                break
            if char in HORIZONTAL_WHITESPACE:
                if value_start is not None and value_end is None:
                    value_end = k
            elif value_start is None:
                value_start = k
            k += 1

        line_range = self.document.range_at(comment_start, line_end)
        if name_start is None:
            # "#=value" has no name, it's a regular comment
            return Comment(self.document, line_range)

        if value_start is None:
            # only whitespace after the '=', the value covers all of it
            value_start = equals + 1
            value_end = line_end
        elif value_end is None:
            value_end = length

        return ParserDirective(
            self.document,
            line_range,
            self.document.range_at(name_start, name_end),
            self.document.range_at(value_start, value_end),
        )

    def _apply_first_line(self, line: Line | None) -> None:
        if isinstance(line, ParserDirective):
            self.dockerfile.set_directive(line)
            if line.directive is Directive.ESCAPE:
                if line.value in VALID_ESCAPE_CHARACTERS:
                    self.escape_char = line.value
                else:
                    logger.debug(
                        "ignoring escape directive with invalid value %r", line.value
                    )
            logger.debug("parser directive %r=%r", line.name, line.value)
            self.stream.seek(self.document.offset_at(line.range.end))
        elif isinstance(line, Comment):
            self.dockerfile.add_comment(line)
            # the directive window closes after the first line
            self.stream.seek(self.document.offset_at(Position(1, 0)))
        else:
            self.stream.seek(0)

    # -- line scanning --------------------------------------------------------

    def _scan_lines(self) -> None:
        while not self.stream.end_of_file():
            char = self.stream.peek()
            if is_whitespace(char):
                self.stream.next()
            elif char == "#":
                self.stream.seek(self._scan_comment(self.stream.position))
            else:
                self.stream.seek(self._scan_instruction(self.stream.position))

    def _scan_comment(self, start: int) -> int:
        """Records the comment starting at ``start``; returns the index of its line break."""
        end = self.stream.find_line_break(start + 1)
        self.dockerfile.add_comment(Comment(self.document, self.document.range_at(start, end)))
        return end

    def _scan_instruction(self, start: int) -> int:
        """Reads an instruction keyword starting at ``start``.

        Escaped line breaks inside the keyword are elided. An escape character
        followed by anything else is kept in the keyword text. Returns the index
        at which line scanning resumes.
        """
        stream = self.stream
        escape_char = self.escape_char
        length = len(stream.source)
        keyword = stream.char_at(start)
        keyword_end: int | None = None
        j = start + 1
        while j < length:
            char = stream.char_at(j)
            if char == escape_char:
                following = stream.char_at(j + 1)
                if is_newline(following):
                    j += 1 + stream.line_break_length(j + 1)
                    continue
                if following != "" and following in HORIZONTAL_WHITESPACE:
                    k = stream.skip_horizontal_whitespace(j + 2)
                    if stream.line_break_length(k):
                        j = k + stream.line_break_length(k)
                        continue
                # the escape character is part of the keyword
                keyword += escape_char
                keyword_end = j + 1
                j += 1
                continue
            if char in HORIZONTAL_WHITESPACE:
                if keyword_end is None:
                    keyword_end = j
                return self._scan_arguments(start, keyword, keyword_end, j + 1)
            if char in NEWLINES:
                if keyword_end is None:
                    keyword_end = j
                line_range = self.document.range_at(start, keyword_end)
                self._add_instruction(line_range, keyword, line_range)
                return j
            keyword += char
            keyword_end = j + 1
            j += 1

        if keyword_end is None:
            keyword_end = length
        line_range = self.document.range_at(start, keyword_end)
        self._add_instruction(line_range, keyword, line_range)
        return length

    def _scan_arguments(self, start: int, keyword: str, keyword_end: int, k: int) -> int:
        """Scans the argument span of an instruction.

        ``escaped`` is set after a line continuation and cleared by the first
        non-whitespace character that follows it. While it is set, line breaks
        do not end the instruction and a ``#`` opens an embedded comment.
        """
        stream = self.stream
        escape_char = self.escape_char
        length = len(stream.source)
        keyword_range = self.document.range_at(start, keyword_end)
        escaped = False
        while k < length:
            char = stream.char_at(k)
            if char in NEWLINES:
                if escaped:
                    k += 1
                    continue
                self._add_instruction(self.document.range_at(start, k), keyword, keyword_range)
                return k
            if char == escape_char:
                following = stream.char_at(k + 1)
                if is_newline(following):
                    escaped = True
                    k += 1 + stream.line_break_length(k + 1)
                    continue
                if following != "" and following in HORIZONTAL_WHITESPACE:
                    whitespace_end = stream.skip_horizontal_whitespace(k + 2)
                    if stream.line_break_length(whitespace_end):
                        escaped = True
                        k = whitespace_end + stream.line_break_length(whitespace_end)
                    else:
                        k = whitespace_end
                    continue
                # an escaped character never ends the instruction, and it
                # closes the continued line like any other character
                escaped = False
                k += 2
                continue
            if char == "#":
                if escaped:
                    k = self._scan_comment(k)
                    continue
                k += 1
                continue
            if char not in HORIZONTAL_WHITESPACE:
                escaped = False
            k += 1

        self._add_instruction(self.document.range_at(start, length), keyword, keyword_range)
        return length

    def _add_instruction(self, line_range: Range, keyword: str, keyword_range: Range) -> None:
        instruction = create_instruction(
            self.document,
            line_range,
            self.dockerfile,
            self.escape_char,
            keyword,
            keyword_range,
        )
        self.dockerfile.add_instruction(instruction)


__all__ = ["CharacterStream", "CharacterStreamError", "ScanState", "Scanner"]
