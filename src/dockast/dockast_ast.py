"""
Record types produced by the dockast scanner and tokenizer.

Classes:
    Line:
        Base class for every top-level line of a Dockerfile. Owns the document
        and the range covering the line's full source extent.
    Comment:
        A ``#`` comment, either standalone or embedded inside a continued
        instruction.
    ParserDirective:
        The ``# name=value`` directive that may open a document.
    Argument:
        One whitespace-delimited argument of an instruction, with escapes
        removed from its value.
    Variable:
        A ``$NAME`` or ``${NAME...}`` reference found inside an argument.
    Flag:
        A ``--name=value`` option prefixed to an instruction's arguments.

All records are created once while a document is parsed and are never mutated
afterwards. Each one can be serialized with ``to_dict()`` for JSON output.
"""

from __future__ import annotations

from typing import Any, TypedDict

from dockast.dockast_constants import Directive, Tristate
from dockast.dockast_position import Position, Range, RangeDict, TextDocument


class LineDict(TypedDict, total=False):
    """Serialized form of a line.

    Fields:
        kind (str): "comment", "directive" or "instruction".
        range (RangeDict): The line's full range.
        text (str): The source text covered by the range.
        name (str): Directive name (directives only).
        value (str): Directive value (directives only).
        keyword (str): Upper-cased keyword (instructions only).
        arguments (list[ArgumentDict]): Instruction arguments.
        variables (list[VariableDict]): Variable references in the arguments.
    """

    kind: str
    range: RangeDict
    text: str
    name: str
    value: str
    keyword: str
    arguments: list["ArgumentDict"]
    variables: list["VariableDict"]


class ArgumentDict(TypedDict):
    value: str
    range: RangeDict


class VariableDict(TypedDict):
    name: str
    range: RangeDict
    modifier: str | None
    substitution_parameter: str | None
    defined: str
    build_variable: str


class Line:
    """A top-level line of a Dockerfile.

    Attributes:
        document (TextDocument): The parsed source buffer.
        range (Range): The full extent of the line, including any continued
            physical lines.
    """

    kind = "line"

    def __init__(self, document: TextDocument, range_: Range) -> None:
        self.document = document
        self.range = range_

    def get_range(self) -> Range:
        return self.range

    def get_text_content(self) -> str:
        return self.document.get_text(self.range)

    def is_after(self, other: Line) -> bool:
        return self.range.start.line > other.range.end.line

    def is_before(self, line: int) -> bool:
        """Returns True if this line ends on a line strictly before ``line``."""
        return self.range.end.line < line

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.range!r})"

    def to_dict(self) -> LineDict:
        return {
            "kind": self.kind,
            "range": self.range.to_dict(),
            "text": self.get_text_content(),
        }


class Comment(Line):
    """A ``#`` comment. The range starts at the ``#`` and stops before the line break."""

    kind = "comment"

    def get_content(self) -> str:
        """Returns the comment body without the leading ``#`` and flanking whitespace."""
        return self.get_text_content()[1:].strip()


class ParserDirective(Line):
    """A ``# name=value`` parser directive on the first line of a document.

    Attributes:
        name_range (Range): Range of the directive name, surrounding whitespace excluded.
        value_range (Range): Range of the directive value, trailing whitespace excluded.
        name (str): Text covered by ``name_range``.
        value (str): Text covered by ``value_range``.
    """

    kind = "directive"

    def __init__(
        self,
        document: TextDocument,
        range_: Range,
        name_range: Range,
        value_range: Range,
    ) -> None:
        super().__init__(document, range_)
        self.name_range = name_range
        self.value_range = value_range
        self.name = document.get_text(name_range)
        self.value = document.get_text(value_range)

    @property
    def directive(self) -> Directive | None:
        """The recognized directive kind, or None for an unknown name."""
        lowered = self.name.lower()
        for directive in Directive:
            if directive.value == lowered:
                return directive
        return None

    def get_directive(self) -> Directive | None:
        return self.directive

    def __str__(self) -> str:
        return f"# {self.name}={self.value}"

    def to_dict(self) -> LineDict:
        data = super().to_dict()
        data["name"] = self.name
        data["value"] = self.value
        return data


class Argument:
    """A single argument of an instruction.

    Attributes:
        value (str): The argument text with escape characters and continuation
            sequences removed. An escaped ``$`` keeps its escape character.
        range (Range): The raw source span of the argument.
    """

    def __init__(self, value: str, range_: Range) -> None:
        self.value = value
        self.range = range_

    def get_value(self) -> str:
        return self.value

    def get_range(self) -> Range:
        return self.range

    def is_after(self, position: Position) -> bool:
        return position < self.range.start

    def __repr__(self) -> str:
        return f"Argument({self.value!r}, {self.range!r})"

    def __eq__(self, other: Any) -> bool:
        return (
            isinstance(other, Argument)
            and self.value == other.value
            and self.range == other.range
        )

    def __hash__(self) -> int:
        return hash((self.value, self.range))

    def to_dict(self) -> ArgumentDict:
        return {"value": self.value, "range": self.range.to_dict()}


class Variable:
    """A variable reference found inside an argument.

    Args:
        name (str): The referenced name, continuation whitespace removed.
        name_range (Range): Source range of the name.
        range (Range): Source range of the whole reference, ``$`` and braces included.
        modifier (str | None): The character after ``:`` in a braced reference,
            ``""`` for a bare ``${name:}``, None when there is no modifier.
        modifier_range (Range | None): Range of the modifier.
        substitution_parameter (str | None): Text after the modifier, None when
            there is no modifier.
        substitution_parameter_range (Range | None): Range of the parameter.
        defined (Tristate): Whether a declaration is visible at the reference.
        build_variable (Tristate): Whether the visible declaration is an ARG.
        raw (str): The reference as written, escapes and whitespace removed.
    """

    def __init__(
        self,
        name: str,
        name_range: Range,
        range_: Range,
        modifier: str | None,
        modifier_range: Range | None,
        substitution_parameter: str | None,
        substitution_parameter_range: Range | None,
        defined: Tristate,
        build_variable: Tristate,
        raw: str,
    ) -> None:
        self.name = name
        self.name_range = name_range
        self.range = range_
        self.modifier = modifier
        self.modifier_range = modifier_range
        self.substitution_parameter = substitution_parameter
        self.substitution_parameter_range = substitution_parameter_range
        self.defined = defined
        self.build_variable = build_variable
        self.raw = raw

    def is_defined(self) -> Tristate:
        return self.defined

    def is_build_variable(self) -> Tristate:
        return self.build_variable

    def __str__(self) -> str:
        return self.raw

    def __repr__(self) -> str:
        return f"Variable({self.raw!r}, {self.range!r})"

    def __eq__(self, other: Any) -> bool:
        return (
            isinstance(other, Variable)
            and self.name == other.name
            and self.name_range == other.name_range
            and self.range == other.range
            and self.modifier == other.modifier
            and self.modifier_range == other.modifier_range
            and self.substitution_parameter == other.substitution_parameter
            and self.substitution_parameter_range == other.substitution_parameter_range
            and self.defined == other.defined
            and self.build_variable == other.build_variable
            and self.raw == other.raw
        )

    def __hash__(self) -> int:
        return hash((self.name, self.range, self.raw))

    def to_dict(self) -> VariableDict:
        return {
            "name": self.name,
            "range": self.range.to_dict(),
            "modifier": self.modifier,
            "substitution_parameter": self.substitution_parameter,
            "defined": self.defined.value,
            "build_variable": self.build_variable.value,
        }


class Flag:
    """A ``--name`` or ``--name=value`` option.

    Attributes:
        range (Range): Range of the whole flag, dashes included.
        name (str): Flag name without the leading dashes.
        name_range (Range): Range of the name.
        value (str | None): Text after ``=``, None when there is no ``=``.
        value_range (Range | None): Range of the value.
    """

    def __init__(
        self,
        range_: Range,
        name: str,
        name_range: Range,
        value: str | None,
        value_range: Range | None,
    ) -> None:
        self.range = range_
        self.name = name
        self.name_range = name_range
        self.value = value
        self.value_range = value_range

    def __str__(self) -> str:
        if self.value is None:
            return f"--{self.name}"
        return f"--{self.name}={self.value}"

    def __repr__(self) -> str:
        return f"Flag({str(self)!r}, {self.range!r})"

    def __eq__(self, other: Any) -> bool:
        return (
            isinstance(other, Flag)
            and self.range == other.range
            and self.name == other.name
            and self.name_range == other.name_range
            and self.value == other.value
            and self.value_range == other.value_range
        )

    def __hash__(self) -> int:
        return hash((self.name, self.value, self.range))


__all__ = [
    "Argument",
    "ArgumentDict",
    "Comment",
    "Flag",
    "Line",
    "LineDict",
    "ParserDirective",
    "Variable",
    "VariableDict",
]
