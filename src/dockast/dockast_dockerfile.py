"""
Document model and variable resolution.

A ``Dockerfile`` owns every top-level line of a parsed source. Build stages are
not stored: each ``ImageTemplate`` scope is computed on demand from the
instruction list, so a stage always reflects the document it came from.

Scopes:
    - the initial scope holds the instructions before the first FROM (all of
      them when there is no FROM); its ARGs are visible to FROM arguments only
    - each FROM opens a build stage that runs to the next FROM or the end of
      the document
    - the document itself is returned for positions that fall in no scope

Resolution:
    ``resolve_variable(name, line)`` walks the stage's ARG and ENV
    declarations that end before ``line`` from the nearest one backwards.
    A stage ARG declared without a value takes the value of the last initial
    ARG of the same name.
"""

from __future__ import annotations

from typing import Any, TypedDict

from dockast.dockast_ast import Comment, LineDict, ParserDirective
from dockast.dockast_constants import (
    DEFAULT_ESCAPE_CHARACTER,
    UNRESOLVED,
    VALID_ESCAPE_CHARACTERS,
    Directive,
    Keyword,
    Unresolved,
)
from dockast.dockast_instructions import (
    Arg,
    Cmd,
    Copy,
    Entrypoint,
    Env,
    From,
    Healthcheck,
    Instruction,
    Onbuild,
)
from dockast.dockast_position import Position, Range, RangeDict, TextDocument


class DockerfileDict(TypedDict):
    escape_character: str
    range: RangeDict
    directive: LineDict | None
    comments: list[LineDict]
    instructions: list[LineDict]


class ImageTemplate:
    """
    A scope of instructions and the comments inside it.

    Attributes:
        document (TextDocument): The parsed source buffer.
        instructions (list[Instruction]): Instructions of the scope, in order.
        comments (list[Comment]): Comments that start inside the scope's range.
    """

    def __init__(
        self,
        document: TextDocument,
        instructions: list[Instruction] | None = None,
        comments: list[Comment] | None = None,
    ) -> None:
        self.document = document
        self.instructions: list[Instruction] = [] if instructions is None else instructions
        self.comments: list[Comment] = [] if comments is None else comments

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.get_range()!r})"

    def __eq__(self, other: Any) -> bool:
        return (
            type(self) is type(other)
            and len(self.instructions) == len(other.instructions)
            and all(a is b for a, b in zip(self.instructions, other.instructions))
            and len(self.comments) == len(other.comments)
            and all(a is b for a, b in zip(self.comments, other.comments))
        )

    def __hash__(self) -> int:
        return hash(tuple(id(instruction) for instruction in self.instructions))

    def get_comments(self) -> list[Comment]:
        return list(self.comments)

    def get_instructions(self) -> list[Instruction]:
        return list(self.instructions)

    def get_instructions_by_keyword(self, keyword: str | Keyword) -> list[Instruction]:
        wanted = keyword.value if isinstance(keyword, Keyword) else keyword.upper()
        return [instruction for instruction in self.instructions if instruction.get_keyword() == wanted]

    def get_args(self) -> list[Arg]:
        return [instruction for instruction in self.instructions if isinstance(instruction, Arg)]

    def get_cmds(self) -> list[Cmd]:
        return [instruction for instruction in self.instructions if isinstance(instruction, Cmd)]

    def get_copies(self) -> list[Copy]:
        return [instruction for instruction in self.instructions if isinstance(instruction, Copy)]

    def get_entrypoints(self) -> list[Entrypoint]:
        return [instruction for instruction in self.instructions if isinstance(instruction, Entrypoint)]

    def get_envs(self) -> list[Env]:
        return [instruction for instruction in self.instructions if isinstance(instruction, Env)]

    def get_froms(self) -> list[From]:
        return [instruction for instruction in self.instructions if isinstance(instruction, From)]

    def get_healthchecks(self) -> list[Healthcheck]:
        return [instruction for instruction in self.instructions if isinstance(instruction, Healthcheck)]

    def get_onbuild_triggers(self) -> list[Instruction]:
        """Returns the instructions triggered by the scope's ONBUILD instructions."""
        triggers: list[Instruction] = []
        for instruction in self.instructions:
            if isinstance(instruction, Onbuild):
                trigger = instruction.get_trigger_instruction()
                if trigger is not None:
                    triggers.append(trigger)
        return triggers

    def get_range(self) -> Range | None:
        if not self.instructions:
            return None
        return Range(self.instructions[0].range.start, self.instructions[-1].range.end)

    def contains(self, position: Position) -> bool:
        range_ = self.get_range()
        return range_ is not None and range_.contains(position)

    def get_available_variables(self, line: int) -> list[str]:
        """
        Lists the names declared before ``line`` in this scope.

        ARG names come first, then ENV names, each in declaration order.
        """
        variables: list[str] = []
        for arg in self.get_args():
            if arg.is_before(line):
                prop = arg.get_property()
                if prop is not None:
                    variables.append(prop.name)
        for env in self.get_envs():
            if env.is_before(line):
                variables.extend(prop.name for prop in env.get_properties())
        return variables


class Dockerfile(ImageTemplate):
    """
    A parsed Dockerfile: the ordered lines plus the scope and resolution queries.

    The scanner populates a document through ``set_directive``,
    ``add_comment`` and ``add_instruction``, then calls ``organize_comments``
    once. Nothing is modified afterwards.

    Attributes:
        directive (ParserDirective | None): The leading parser directive.
    """

    def __init__(self, document: TextDocument) -> None:
        super().__init__(document)
        self.directive: ParserDirective | None = None

    def __eq__(self, other: Any) -> bool:
        return self is other

    def __hash__(self) -> int:
        return id(self)

    # -- population ------------------------------------------------------------

    def set_directive(self, directive: ParserDirective) -> None:
        self.directive = directive

    def add_comment(self, comment: Comment) -> None:
        self.comments.append(comment)

    def add_instruction(self, instruction: Instruction) -> None:
        self.instructions.append(instruction)

    def organize_comments(self) -> None:
        """Orders the comments by start position, embedded comments included."""
        self.comments.sort(key=lambda comment: (comment.range.start.line, comment.range.start.character))

    # -- read surface ------------------------------------------------------------

    def get_escape_character(self) -> str:
        if self.directive is not None and self.directive.directive is Directive.ESCAPE:
            if self.directive.value in VALID_ESCAPE_CHARACTERS:
                return self.directive.value
        return DEFAULT_ESCAPE_CHARACTER

    def get_directive(self) -> ParserDirective | None:
        return self.directive

    def get_range(self) -> Range:
        return Range(Position(0, 0), self.document.end_position())

    def contains(self, position: Position) -> bool:
        return self.get_range().contains(position)

    def get_initial_args(self) -> list[Arg]:
        """Returns the ARG instructions that come before the first FROM."""
        args: list[Arg] = []
        for instruction in self.instructions:
            if isinstance(instruction, From):
                break
            if isinstance(instruction, Arg):
                args.append(instruction)
        return args

    def _comments_within(self, range_: Range | None) -> list[Comment]:
        if range_ is None:
            return []
        return [comment for comment in self.comments if range_.contains(comment.range.start)]

    def get_initial_scope(self) -> ImageTemplate:
        """Returns the instructions before the first FROM as a scope."""
        instructions: list[Instruction] = []
        for instruction in self.instructions:
            if isinstance(instruction, From):
                break
            instructions.append(instruction)
        scope = ImageTemplate(self.document, instructions)
        scope.comments = self._comments_within(scope.get_range())
        return scope

    def get_build_stages(self) -> list[ImageTemplate]:
        """Returns one scope per FROM, each running up to the next FROM."""
        stages: list[ImageTemplate] = []
        current: list[Instruction] | None = None
        for instruction in self.instructions:
            if isinstance(instruction, From):
                current = [instruction]
                stages.append(ImageTemplate(self.document, current))
            elif current is not None:
                current.append(instruction)
        for stage in stages:
            stage.comments = self._comments_within(stage.get_range())
        return stages

    def get_containing_image(self, position: Position) -> ImageTemplate | None:
        """
        Returns the scope that contains a position.

        Args:
            position (Position): The position to look up.

        Returns:
            ImageTemplate | None: The initial scope or the build stage whose
            range contains the position, the document itself when the position
            is inside the document but in no scope, or None when the position
            is outside the document.
        """
        if not self.contains(position):
            return None
        initial = self.get_initial_scope()
        if initial.instructions and initial.contains(position):
            return initial
        for stage in self.get_build_stages():
            if stage.contains(position):
                return stage
        return self

    def get_scope_at_line(self, line: int) -> ImageTemplate | None:
        """Returns the scope whose declarations apply to ``line``.

        Unlike ``get_containing_image`` this looks at whole lines: a line
        belongs to the last build stage that starts on or before it, or to the
        initial scope when no FROM precedes it.
        """
        if line < 0 or line >= self.document.line_count:
            return None
        scope: ImageTemplate = self.get_initial_scope()
        for stage in self.get_build_stages():
            if stage.instructions[0].range.start.line <= line:
                scope = stage
            else:
                break
        return scope

    def resolve_variable(self, name: str, line: int) -> str | None | Unresolved:
        """
        Resolves a variable to its value at a line.

        Args:
            name (str): Variable name.
            line (int): Zero-based line of the reference.

        Returns:
            str | None | Unresolved: The declared value, None if the visible
            declaration has no value, or ``UNRESOLVED`` if no declaration is
            visible or the line is outside the document.
        """
        scope = self.get_scope_at_line(line)
        if scope is None:
            return UNRESOLVED

        for from_ in self.get_froms():
            if from_.range.start.line <= line <= from_.range.end.line:
                # a FROM only sees the ARGs declared before the first FROM
                return self._resolve_initial_arg(name, UNRESOLVED)

        for instruction in reversed(scope.instructions):
            if not instruction.is_before(line):
                continue
            if isinstance(instruction, Arg):
                prop = instruction.get_property()
                if prop is not None and prop.name == name:
                    if prop.value is None:
                        return self._resolve_initial_arg(name, None)
                    return prop.value
            elif isinstance(instruction, Env):
                for prop in reversed(instruction.get_properties()):
                    if prop.name == name:
                        return prop.value
        return UNRESOLVED

    def _resolve_initial_arg(self, name: str, default: str | None | Unresolved) -> str | None | Unresolved:
        value = default
        for arg in self.get_initial_args():
            prop = arg.get_property()
            if prop is not None and prop.name == name:
                value = prop.value
        return value

    def get_available_variables(self, line: int) -> list[str]:
        """Returns the names usable by an instruction at ``line``.

        A FROM line sees the initial ARG names; any other line sees the names
        declared before it in its scope. Lines outside the document give an
        empty list.
        """
        for from_ in self.get_froms():
            if from_.range.start.line <= line <= from_.range.end.line:
                names: list[str] = []
                for arg in self.get_initial_args():
                    prop = arg.get_property()
                    if prop is not None:
                        names.append(prop.name)
                return names
        scope = self.get_scope_at_line(line)
        if scope is None:
            return []
        return scope.get_available_variables(line)

    def to_dict(self) -> DockerfileDict:
        return {
            "escape_character": self.get_escape_character(),
            "range": self.get_range().to_dict(),
            "directive": None if self.directive is None else self.directive.to_dict(),
            "comments": [comment.to_dict() for comment in self.comments],
            "instructions": [instruction.to_dict() for instruction in self.instructions],
        }


__all__ = ["Dockerfile", "DockerfileDict", "ImageTemplate"]
