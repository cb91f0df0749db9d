"""
Name/value declarations found in ARG, ENV and LABEL arguments.

A property is read either from a single ``NAME=VALUE`` argument or from the
legacy two-token ``NAME VALUE`` form. Names and values are unescaped with the
rules below; the raw value (quotes and escapes kept) stays available through
``Property.get_unescaped_value``.

Value rules:
    - a value wrapped in a matching pair of single or double quotes has the
      quotes stripped; escapes inside quotes are kept except for escaped line
      breaks, which are always elided
    - outside quotes, escape + line break is elided, escape + escape yields one
      escape character, escape + any other character yields that character
    - after a continuation, a line whose first non-whitespace character is
      ``#`` is a comment and is dropped together with the whitespace before it
    - a lone escape character at the end of the value is kept
"""

from __future__ import annotations

from typing import Any

from dockast.dockast_ast import Argument
from dockast.dockast_constants import HORIZONTAL_WHITESPACE, NEWLINES
from dockast.dockast_position import Range, TextDocument


def _line_break_length(text: str, index: int) -> int:
    if text[index : index + 2] == "\r\n":
        return 2
    if text[index : index + 1] in ("\r", "\n"):
        return 1
    return 0


def _skip_comment(text: str, index: int) -> int:
    """Returns the index just past the line break ending the comment at ``index``."""
    for j in range(index + 1, len(text)):
        if text[j] in NEWLINES:
            return j + _line_break_length(text, j)
    return len(text)


def find_leading_nonwhitespace(content: str, escape_char: str) -> int:
    """Returns the index of the first character that is neither blank space
    nor part of a line continuation."""
    i = 0
    length = len(content)
    while i < length:
        char = content[i]
        if char in HORIZONTAL_WHITESPACE:
            i += 1
            continue
        if char == escape_char:
            j = i + 1
            while j < length and content[j] in HORIZONTAL_WHITESPACE:
                j += 1
            if j < length and content[j] in NEWLINES:
                i = j + _line_break_length(content, j)
                continue
        return i
    return length


def unescape_value(value: str, escape_char: str) -> str:
    """
    Resolves a raw name or value to the string the builder would see.

    Args:
        value (str): Raw source text of a property name or value.
        escape_char (str): The escape character in effect.

    Returns:
        str: The value with quotes, escapes, continuations and embedded
        comments removed. Whitespace-only values resolve to ``""``.
    """
    escaped = False
    skip = find_leading_nonwhitespace(value, escape_char)
    if skip != 0 and value[skip : skip + 1] == "#":
        # the value starts on a continued line that is a comment
        escaped = True
    value = value[skip:]

    first = value[:1]
    last = value[-1:]
    literal = first in ("'", '"')
    in_single = first == "'" and last == "'"
    in_double = False
    if first == '"':
        i = 1
        while i < len(value):
            if value[i] == escape_char:
                i += 1
            elif value[i] == '"' and i == len(value) - 1:
                in_double = True
            i += 1
    if in_single or in_double:
        value = value[1:-1]

    quoted = in_single or in_double or literal
    # length of the result before whitespace that may precede a comment line
    comment_check: int | None = None
    result = ""
    length = len(value)
    i = 0
    while i < length:
        char = value[i]
        if char == escape_char:
            if i + 1 == length:
                result += escape_char
                break

            following = value[i + 1]
            if following in HORIZONTAL_WHITESPACE:
                j = i + 2
                while j < length and value[j] in HORIZONTAL_WHITESPACE:
                    j += 1
                if j < length and value[j] in NEWLINES:
                    escaped = True
                    i = j + _line_break_length(value, j)
                    continue
                if j < length and not quoted:
                    # an escaped space is kept, the rest is read normally
                    result += following
                    i += 2
                    continue

            if in_double:
                if following in NEWLINES:
                    escaped = True
                    i += 1 + _line_break_length(value, i + 1)
                    continue
                if following != '"':
                    if following == escape_char:
                        i += 1
                    result += escape_char
                i += 1
                continue
            if in_single or literal:
                if following in NEWLINES:
                    escaped = True
                    i += 1 + _line_break_length(value, i + 1)
                    continue
                result += escape_char
                i += 1
                continue

            if following == escape_char:
                result += escape_char
                i += 2
            elif following in NEWLINES:
                escaped = True
                i += 1 + _line_break_length(value, i + 1)
            else:
                result += following
                i += 2
            continue

        if char in HORIZONTAL_WHITESPACE:
            if escaped and comment_check is None:
                comment_check = len(result)
            result += char
            i += 1
            continue

        if char in NEWLINES:
            if escaped and comment_check is not None:
                # blank continued line, drop the whitespace read on it
                result = result[:comment_check]
                comment_check = None
            i += _line_break_length(value, i)
            continue

        if char == "#" and escaped:
            if comment_check is not None:
                result = result[:comment_check]
                comment_check = None
            i = _skip_comment(value, i)
            continue

        if escaped:
            escaped = False
            comment_check = None
        result += char
        i += 1

    return result


class Property:
    """
    A declared name with an optional value.

    Args:
        document (TextDocument): The parsed source buffer.
        escape_char (str): The escape character in effect.
        arg (Argument): The ``NAME=VALUE`` argument, or the name of the legacy
            two-token form.
        arg2 (Argument | None): The value of the legacy two-token form.

    Attributes:
        range (Range): Range of the whole declaration.
        name (str): The unescaped name.
        name_range (Range): Source range of the name.
        value (str | None): The unescaped value, None when no ``=`` was given.
        value_range (Range | None): Source range of the value.
    """

    def __init__(
        self,
        document: TextDocument,
        escape_char: str,
        arg: Argument,
        arg2: Argument | None = None,
    ) -> None:
        self.document = document
        self.escape_char = escape_char
        self.name_range = self._get_name_range(document, arg)
        self.name = unescape_value(document.get_text(self.name_range), escape_char)
        self.value_range: Range | None = None
        self.value: str | None = None
        if arg2 is not None:
            self.value_range = arg2.range
            self.value = unescape_value(document.get_text(self.value_range), escape_char)
            self.range = Range(self.name_range.start, self.value_range.end)
        else:
            if self.name_range != arg.range:
                self.value_range = self._get_value_range(document, arg)
                self.value = unescape_value(document.get_text(self.value_range), escape_char)
            self.range = arg.range

    @staticmethod
    def _get_name_range(document: TextDocument, arg: Argument) -> Range:
        value = arg.value
        index = value.find("=")
        if index != -1:
            initial = value[0]
            before = value[index - 1] if index > 0 else ""
            # "name"=value and 'name'=value split at the '=', so does name=value;
            # an opening quote without a matching one keeps the '=' in the name
            if initial not in ("'", '"') or initial == before:
                start = document.offset_at(arg.range.start)
                return Range(arg.range.start, document.position_at(start + index))
        return arg.range

    @staticmethod
    def _get_value_range(document: TextDocument, arg: Argument) -> Range:
        start = document.offset_at(arg.range.start)
        return Range(document.position_at(start + arg.value.find("=") + 1), arg.range.end)

    def get_range(self) -> Range:
        return self.range

    def get_name(self) -> str:
        return self.name

    def get_name_range(self) -> Range:
        return self.name_range

    def get_value(self) -> str | None:
        return self.value

    def get_value_range(self) -> Range | None:
        return self.value_range

    def get_unescaped_value(self) -> str | None:
        """
        Returns the value as written, quotes and escape characters included.

        Escaped line breaks with the whitespace that follows them, and comment
        lines inside a continued value, are left out.

        Returns:
            str | None: The raw value, or None if the property has no value.
        """
        if self.value_range is None:
            return None

        value = self.document.get_text(self.value_range)
        escape_char = self.escape_char
        escaped = False
        raw = ""
        length = len(value)
        i = 0
        while i < length:
            char = value[i]
            if char == escape_char:
                j = i + 1
                while j < length and value[j] in HORIZONTAL_WHITESPACE:
                    j += 1
                if j < length and value[j] in NEWLINES:
                    escaped = True
                    i = j + _line_break_length(value, j)
                    continue
                raw += char
                i += 1
                continue
            if char in NEWLINES:
                i += 1
                continue
            if char in HORIZONTAL_WHITESPACE:
                if not escaped:
                    raw += char
                i += 1
                continue
            if char == "#" and escaped:
                i = _skip_comment(value, i)
                continue
            raw += char
            escaped = False
            i += 1
        return raw

    def __repr__(self) -> str:
        return f"Property({self.name!r}, {self.value!r}, {self.range!r})"

    def __eq__(self, other: Any) -> bool:
        return (
            isinstance(other, Property)
            and self.name == other.name
            and self.name_range == other.name_range
            and self.value == other.value
            and self.value_range == other.value_range
            and self.range == other.range
        )

    def __hash__(self) -> int:
        return hash((self.name, self.value, self.range))


__all__ = ["Property", "find_leading_nonwhitespace", "unescape_value"]
