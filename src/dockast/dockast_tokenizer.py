"""
Argument and variable tokenizer.

An instruction's trailing text is split into ``Argument`` tokens on unescaped
whitespace; each argument's raw text can then be searched for ``$NAME`` and
``${NAME[:MODIFIER[PARAM]]}`` references.

Rules applied while splitting:
    - escape + line break (optionally with spaces or tabs before the break) is
      a line continuation; it is removed from the argument value and does not
      end the argument
    - a ``#`` that is the first non-whitespace character after a continuation
      opens a comment that runs to the end of that physical line
    - escape + ``$`` keeps both characters so that escaped references stay
      visible; escape + any other character keeps only that character
    - a lone escape at the end of the text is dropped from the value but kept
      in the argument's range

Example:
    >>> doc = TextDocument("RUN echo $HOME")
    >>> tokenizer = ArgumentTokenizer(doc, "\\\\")
    >>> [arg.value for arg in tokenizer.split_arguments("echo $HOME", 4)]
    ['echo', '$HOME']
"""

from __future__ import annotations

import json
import string
from typing import Callable

from dockast.dockast_ast import Argument, Variable
from dockast.dockast_constants import HORIZONTAL_WHITESPACE, NEWLINES, WHITESPACE, Tristate
from dockast.dockast_position import TextDocument

# characters that may appear in an unbraced variable name
NAME_CHARACTERS = frozenset(string.ascii_letters + string.digits + "_")

Classifier = Callable[[str, int], tuple[Tristate, Tristate]]


def _line_break_length(text: str, index: int) -> int:
    if text[index : index + 2] == "\r\n":
        return 2
    if text[index : index + 1] in ("\r", "\n"):
        return 1
    return 0


class ArgumentTokenizer:
    """
    Splits instruction text into arguments and finds variable references.

    Offsets handed to the tokenizer are the string offset of the first
    character of ``text`` within the document, so that produced ranges point
    back into the source.

    Attributes:
        document (TextDocument): The document the text was taken from.
        escape_char (str): The escape character in effect.
    """

    def __init__(self, document: TextDocument, escape_char: str) -> None:
        self.document = document
        self.escape_char = escape_char

    def escaped_line_break(self, text: str, index: int) -> int | None:
        """Matches ``[ \\t]*`` followed by a line break at ``index``.

        Returns the index just past the line break, or None when the text at
        ``index`` is not a continuation tail.
        """
        k = index
        while k < len(text) and text[k] in HORIZONTAL_WHITESPACE:
            k += 1
        length = _line_break_length(text, k)
        if length == 0:
            return None
        return k + length

    # -- arguments -----------------------------------------------------------

    def split_arguments(self, text: str, offset: int) -> list[Argument]:
        """Splits ``text`` into arguments on unescaped whitespace."""
        escape_char = self.escape_char
        length = len(text)
        args: list[Argument] = []
        buffer = ""
        found: int | None = None
        # end of the current argument when it was cut off by a continuation
        marker: int | None = None
        # inside an escaped line break sequence
        escaping = False
        # whitespace was seen after the continuation's line break
        escaped_whitespace = False
        # at the start of a continued line, where '#' opens a comment
        line_start = False
        comment = False

        def emit(end: int) -> None:
            args.append(Argument(buffer, self.document.range_at(offset + found, offset + end)))

        i = 0
        while i < length:
            char = text[i]
            if comment:
                if char in NEWLINES:
                    comment = False
                    escaped_whitespace = False
                    line_start = True
                i += 1
                continue

            if char in WHITESPACE:
                if escaping:
                    escaped_whitespace = char not in NEWLINES
                elif found is not None:
                    emit(i if marker is None else marker)
                    buffer, found, marker = "", None, None
                i += 1
                continue

            if char == escape_char:
                following = text[i + 1 : i + 2]
                resume = self.escaped_line_break(text, i + 1)
                if resume is not None:
                    escaping = True
                    line_start = True
                    if found is not None:
                        marker = i
                    i = resume
                    continue
                if following != "" and following in HORIZONTAL_WHITESPACE:
                    # escaped whitespace does not join arguments
                    if found is not None:
                        marker = i
                    i += 1
                    continue
                if escaped_whitespace and marker is not None:
                    emit(marker)
                    buffer, found = "", None
                escaped_whitespace = False
                escaping = False
                marker = None
                line_start = False
                buffer += char + following if following == "$" else following
                if found is None:
                    found = i
                i += 2
                continue

            if line_start and char == "#":
                comment = True
                line_start = False
                i += 1
                continue

            if escaped_whitespace and marker is not None:
                emit(marker)
                buffer, found = "", None
            escaped_whitespace = False
            escaping = False
            marker = None
            line_start = False
            buffer += char
            if found is None:
                found = i
            i += 1

        if found is not None:
            emit(length if marker is None else marker)
        return args

    def content_segments(self, text: str, offset: int) -> list[tuple[int, int]]:
        """Returns the per-line spans of an argument region as absolute offsets.

        ``text`` runs from the first argument's start to the last argument's
        end. Continuation sequences are cut off, comment lines and blank lines
        are dropped. Continued lines start at column 0 so that indentation is
        kept; every span ends after its last non-whitespace character.
        """
        segments: list[tuple[int, int]] = []
        line_begin = 0
        first = True
        length = len(text)
        while line_begin <= length:
            line_end = line_begin
            while line_end < length and text[line_end] not in NEWLINES:
                line_end += 1
            line = text[line_begin:line_end]
            is_last = line_end >= length

            body = line.rstrip(HORIZONTAL_WHITESPACE)
            if not is_last and body.endswith(self.escape_char):
                body = body[:-1].rstrip(HORIZONTAL_WHITESPACE)
            stripped = body.lstrip(HORIZONTAL_WHITESPACE)
            if stripped and (first or not stripped.startswith("#")):
                segments.append((offset + line_begin, offset + line_begin + len(body)))
            first = False

            if is_last:
                break
            line_begin = line_end + _line_break_length(text, line_end)
        return segments

    def json_strings(self, text: str, offset: int) -> list[Argument]:
        """Reads ``text`` as a JSON array of strings.

        Each element becomes an ``Argument`` holding the decoded string and the
        range of the quoted token. Anything other than a well-formed array of
        strings yields an empty list.
        """
        length = len(text)
        strings: list[Argument] = []

        def skip_blank(index: int) -> int:
            while index < length:
                if text[index] in WHITESPACE:
                    index += 1
                elif text[index] == self.escape_char:
                    resume = self.escaped_line_break(text, index + 1)
                    if resume is None:
                        return index
                    index = resume
                else:
                    return index
            return index

        i = skip_blank(0)
        if text[i : i + 1] != "[":
            return []
        i = skip_blank(i + 1)
        if text[i : i + 1] == "]":
            return []
        while i < length:
            if text[i] != '"':
                return []
            j = i + 1
            while j < length and text[j] != '"':
                if text[j] == "\\":
                    j += 1
                elif text[j] in NEWLINES:
                    return []
                j += 1
            if j >= length:
                return []
            try:
                value = json.loads(text[i : j + 1])
            except ValueError:
                return []
            strings.append(Argument(value, self.document.range_at(offset + i, offset + j + 1)))
            i = skip_blank(j + 1)
            if text[i : i + 1] == "]":
                return strings if skip_blank(i + 1) == length else []
            if text[i : i + 1] != ",":
                return []
            i = skip_blank(i + 1)
        return []

    # -- variables -----------------------------------------------------------

    def find_variables(self, text: str, offset: int, classify: Classifier) -> list[Variable]:
        """Finds the variable references in the raw text of one argument.

        ``classify(name, line)`` returns the ``(defined, build_variable)``
        answers for a reference starting on ``line``. An unterminated braced
        reference stops the search.
        """
        variables: list[Variable] = []
        length = len(text)
        i = 0
        while i < length:
            char = text[i]
            if char == self.escape_char:
                i += 2 if text[i + 1 : i + 2] == "$" else 1
                continue
            if char != "$":
                i += 1
                continue

            following = text[i + 1 : i + 2]
            if following == "{":
                braced = self._read_braced(text, offset, i, classify)
                if braced is None:
                    break
                variable, i = braced
                variables.append(variable)
            elif following == "" or following in WHITESPACE:
                i += 1
            else:
                variable, i = self._read_simple(text, offset, i, classify)
                variables.append(variable)
        return variables

    def _newline_after_escape(self, text: str, index: int) -> int | None:
        # [ \t\r]* followed by \n
        k = index
        while k < len(text) and text[k] in " \t\r":
            k += 1
        if k < len(text) and text[k] == "\n":
            return k
        return None

    def _create_variable(
        self,
        name: str,
        name_range: tuple[int, int],
        full_range: tuple[int, int],
        classify: Classifier,
        raw: str,
        modifier: str | None = None,
        modifier_range: tuple[int, int] | None = None,
        parameter: str | None = None,
        parameter_range: tuple[int, int] | None = None,
    ) -> Variable:
        document = self.document
        range_ = document.range_at(*full_range)
        defined, build_variable = classify(name, range_.start.line)
        return Variable(
            name,
            document.range_at(*name_range),
            range_,
            modifier,
            None if modifier_range is None else document.range_at(*modifier_range),
            parameter,
            None if parameter_range is None else document.range_at(*parameter_range),
            defined,
            build_variable,
            raw,
        )

    def _read_simple(
        self, text: str, offset: int, start: int, classify: Classifier
    ) -> tuple[Variable, int]:
        name = ""
        j = start + 1
        while j < len(text):
            char = text[j]
            if char in WHITESPACE:
                j += 1
                continue
            if char == self.escape_char:
                newline = self._newline_after_escape(text, j + 1)
                if newline is None:
                    break
                j = newline + 1
                continue
            if char not in NAME_CHARACTERS:
                break
            name += char
            j += 1
        variable = self._create_variable(
            name,
            (offset + start + 1, offset + j),
            (offset + start, offset + j),
            classify,
            "$" + name,
        )
        return variable, j

    def _read_braced(
        self, text: str, offset: int, start: int, classify: Classifier
    ) -> tuple[Variable, int] | None:
        raw = "${"
        name = ""
        name_end: int | None = None
        modifier_read: int | None = None
        parameter = ""
        parameter_start: int | None = None
        parameter_end: int | None = None

        j = start + 2
        while j < len(text):
            char = text[j]
            if char == self.escape_char:
                newline = self._newline_after_escape(text, j + 1)
                j = j + 1 if newline is None else newline + 1
                continue

            if char == "}":
                raw += "}"
                modifier: str | None = None
                modifier_range: tuple[int, int] | None = None
                parameter_range: tuple[int, int] | None = None
                if name_end is None:
                    name_end = j
                elif modifier_read is None:
                    # "${name:}" has an empty modifier right after the colon
                    modifier = ""
                    modifier_range = (offset + name_end + 1, offset + name_end + 1)
                else:
                    if parameter_start is None or parameter_end is None:
                        parameter_start = parameter_end = modifier_read + 1
                    else:
                        parameter_end += 1
                    modifier = text[modifier_read]
                    modifier_range = (offset + modifier_read, offset + modifier_read + 1)
                    parameter_range = (offset + parameter_start, offset + parameter_end)
                variable = self._create_variable(
                    name,
                    (offset + start + 2, offset + name_end),
                    (offset + start, offset + j + 1),
                    classify,
                    raw,
                    modifier,
                    modifier_range,
                    parameter if modifier_read is not None else None,
                    parameter_range,
                )
                return variable, j + 1

            if char in NEWLINES or (char in HORIZONTAL_WHITESPACE and modifier_read is None):
                j += 1
                continue

            if name_end is None:
                if char == ":":
                    name_end = j
                else:
                    name += char
            elif modifier_read is None:
                modifier_read = j
            else:
                if parameter_start is None:
                    parameter_start = j
                parameter_end = j
                parameter += char
            raw += char
            j += 1
        return None


__all__ = ["ArgumentTokenizer", "NAME_CHARACTERS"]
