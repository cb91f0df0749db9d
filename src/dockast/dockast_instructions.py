"""
Instruction lines and the keyword catalog.

Every instruction keeps the raw keyword text and its range; arguments,
variables, properties and flags are derived from the document text each time
they are asked for, so repeated calls return equal results.

Classes:
    VariableResolver (Protocol): What an instruction needs from its document to
        answer variable questions. Passed in when the instruction is created.
    Instruction: Generic instruction with argument and variable accessors.
    ModifiableInstruction: Instruction whose leading ``--name=value``
        arguments are flags (ADD, COPY, FROM, HEALTHCHECK).
    JSONInstruction: Instruction that accepts the JSON array form (RUN, CMD,
        ENTRYPOINT, SHELL, VOLUME).
    PropertyInstruction: Instruction that declares name/value pairs
        (ARG, ENV, LABEL).
    From, Arg, Env, Label, Add, Copy, Healthcheck, Onbuild, Run, Cmd,
    Entrypoint, Shell, Volume: The keyword-specific representations.

Functions:
    create_instruction: Picks the representation for a keyword.
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING, Protocol

from dockast.dockast_ast import Argument, Flag, Line, LineDict, Variable
from dockast.dockast_constants import UNRESOLVED, Keyword, Tristate, Unresolved
from dockast.dockast_position import Position, Range, TextDocument
from dockast.dockast_property import Property
from dockast.dockast_tokenizer import ArgumentTokenizer

if TYPE_CHECKING:
    from dockast.dockast_dockerfile import ImageTemplate


class VariableResolver(Protocol):  # pragma: no cover
    """Read-only view of a document used by instructions.

    Methods:
        resolve_variable(name, line): The value visible at ``line``, None for a
            declaration without a value, ``UNRESOLVED`` when nothing is visible.
        get_containing_image(position): The scope containing a position.
        get_scope_at_line(line): The scope whose declarations apply to ``line``.
        get_initial_args(): ARG instructions before the first FROM.
    """

    def resolve_variable(self, name: str, line: int) -> str | None | Unresolved: ...  # pragma: no cover

    def get_containing_image(self, position: Position) -> ImageTemplate | None: ...  # pragma: no cover

    def get_scope_at_line(self, line: int) -> ImageTemplate | None: ...  # pragma: no cover

    def get_initial_args(self) -> list[Arg]: ...  # pragma: no cover


class Instruction(Line):
    """
    A keyword followed by its arguments.

    Args:
        document (TextDocument): The parsed source buffer.
        range_ (Range): Full extent of the instruction, continued lines included.
        resolver (VariableResolver): The owning document's resolver.
        escape_char (str): The escape character in effect.
        instruction (str): The keyword as written.
        instruction_range (Range): Range of the keyword.
    """

    kind = "instruction"

    def __init__(
        self,
        document: TextDocument,
        range_: Range,
        resolver: VariableResolver,
        escape_char: str,
        instruction: str,
        instruction_range: Range,
    ) -> None:
        super().__init__(document, range_)
        self.resolver = resolver
        self.escape_char = escape_char
        self.instruction = instruction
        self.instruction_range = instruction_range
        self.tokenizer = ArgumentTokenizer(document, escape_char)

    def __str__(self) -> str:
        return " ".join([self.get_keyword()] + [arg.value for arg in self.get_arguments()])

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.instruction!r}, {self.range!r})"

    def get_range_content(self, range_: Range | None) -> str | None:
        if range_ is None:
            return None
        return self.document.get_text(range_)

    def get_instruction_range(self) -> Range:
        return self.instruction_range

    def get_instruction(self) -> str:
        """Returns the keyword exactly as written."""
        return self.instruction

    def get_keyword(self) -> str:
        return self.instruction.upper()

    def starts_stage(self) -> bool:
        """True for instructions that open a new build stage."""
        return False

    def _split_arguments(self) -> list[Argument]:
        offset = self.document.offset_at(self.instruction_range.end)
        end = self.document.offset_at(self.range.end)
        return self.tokenizer.split_arguments(self.document.substring(offset, end), offset)

    def get_arguments(self) -> list[Argument]:
        return self._split_arguments()

    def get_arguments_range(self) -> Range | None:
        args = self.get_arguments()
        if not args:
            return None
        return Range(args[0].range.start, args[-1].range.end)

    def get_arguments_ranges(self) -> list[Range]:
        """Returns one range per physical line of arguments.

        Continuation sequences and comment lines are left out of the ranges.
        """
        args = self.get_arguments()
        if not args:
            return []
        first, last = args[0].range, args[-1].range
        if first.start.line == last.end.line:
            return [Range(first.start, last.end)]
        start = self.document.offset_at(first.start)
        end = self.document.offset_at(last.end)
        segments = self.tokenizer.content_segments(self.document.substring(start, end), start)
        return [self.document.range_at(seg_start, seg_end) for seg_start, seg_end in segments]

    def get_raw_arguments_content(self) -> str | None:
        return self.get_range_content(self.get_arguments_range())

    def get_arguments_content(self) -> str | None:
        """Returns the argument text with continuations and comment lines removed."""
        if not self.get_arguments():
            return None
        return "".join(self.document.get_text(range_) for range_ in self.get_arguments_ranges())

    def get_variables(self) -> list[Variable]:
        variables: list[Variable] = []
        for arg in self._split_arguments():
            offset = self.document.offset_at(arg.range.start)
            raw = self.document.substring(offset, self.document.offset_at(arg.range.end))
            variables.extend(self.tokenizer.find_variables(raw, offset, self._classify))
        return variables

    def get_expanded_arguments(self) -> list[Argument]:
        """
        Returns the arguments with resolvable variable references replaced.

        A reference is replaced when it resolves to a non-empty value; other
        references are kept as written.

        Returns:
            list[Argument]: One argument per ``get_arguments()`` entry, ranges unchanged.
        """
        text = self.document.text
        expanded_args: list[Argument] = []
        for arg in self.get_arguments():
            offset = self.document.offset_at(arg.range.start)
            variables = self.tokenizer.find_variables(arg.value, offset, self._unclassified)
            swaps = [
                self.resolver.resolve_variable(variable.name, variable.name_range.start.line)
                for variable in variables
            ]
            if all(swap is UNRESOLVED for swap in swaps):
                expanded_args.append(arg)
                continue

            expanded = ""
            for variable, swap in zip(variables, swaps):
                start = self.document.offset_at(variable.range.start)
                end = self.document.offset_at(variable.range.end)
                if isinstance(swap, str) and swap:
                    expanded += text[offset:start] + swap
                else:
                    expanded += text[offset:end]
                offset = end
            arg_end = self.document.offset_at(arg.range.end)
            if arg_end != offset:
                expanded += text[offset:arg_end]
            expanded_args.append(Argument(expanded, arg.range))
        return expanded_args

    def _unclassified(self, name: str, line: int) -> tuple[Tristate, Tristate]:
        return Tristate.UNKNOWN, Tristate.UNKNOWN

    def _classify(self, name: str, line: int) -> tuple[Tristate, Tristate]:
        if line < 0 or line >= self.document.line_count:
            return Tristate.UNKNOWN, Tristate.UNKNOWN
        resolved = self.resolver.resolve_variable(name, line)
        defined = Tristate.NO if resolved is UNRESOLVED else Tristate.YES
        return defined, self.is_build_variable(name, line)

    def is_build_variable(self, name: str, line: int) -> Tristate:
        """
        Classifies a name referenced at ``line``.

        Returns:
            Tristate: YES when the nearest visible declaration is an ARG, NO when
            an ENV declares it, UNKNOWN when nothing declares it.
        """
        if self.starts_stage():
            for arg in self.resolver.get_initial_args():
                prop = arg.get_property()
                if prop is not None and prop.name == name:
                    return Tristate.YES
            return Tristate.UNKNOWN

        scope = self.resolver.get_scope_at_line(line)
        if scope is None:
            return Tristate.UNKNOWN
        for env in reversed(scope.get_envs()):
            if env.is_before(line) and any(prop.name == name for prop in env.get_properties()):
                return Tristate.NO
        for arg in reversed(scope.get_args()):
            if arg.is_before(line):
                prop = arg.get_property()
                if prop is not None and prop.name == name:
                    return Tristate.YES
        return Tristate.UNKNOWN

    def to_dict(self) -> LineDict:
        data = super().to_dict()
        data["keyword"] = self.get_keyword()
        data["arguments"] = [arg.to_dict() for arg in self.get_arguments()]
        data["variables"] = [variable.to_dict() for variable in self.get_variables()]
        return data


class ModifiableInstruction(Instruction):
    """An instruction whose leading ``--`` arguments are flags.

    Flag parsing stops at the first argument that does not start with ``--``.
    ``get_arguments()`` leaves the flags out.
    """

    def get_flags(self) -> list[Flag]:
        flags: list[Flag] = []
        for arg in self._split_arguments():
            if not arg.value.startswith("--"):
                break
            flags.append(self._create_flag(arg))
        return flags

    def _create_flag(self, arg: Argument) -> Flag:
        start = self.document.offset_at(arg.range.start)
        end = self.document.offset_at(arg.range.end)
        index = arg.value.find("=")
        if index == -1:
            name = arg.value[2:]
            return Flag(arg.range, name, self.document.range_at(start + 2, end), None, None)
        name = arg.value[2:index]
        return Flag(
            arg.range,
            name,
            self.document.range_at(start + 2, start + index),
            arg.value[index + 1 :],
            self.document.range_at(start + index + 1, end),
        )

    def get_arguments(self) -> list[Argument]:
        args = self._split_arguments()
        return args[len(self.get_flags()) :]


class JSONInstruction(Instruction):
    def get_json_strings(self) -> list[Argument]:
        """Returns the elements of a ``["a", "b"]`` argument list.

        Each element is an ``Argument`` whose value is the decoded string and
        whose range covers the quoted token. Shell-form arguments, and arrays
        that are not made of strings only, give an empty list.
        """
        args_range = self.get_arguments_range()
        if args_range is None:
            return []
        start = self.document.offset_at(args_range.start)
        end = self.document.offset_at(args_range.end)
        return self.tokenizer.json_strings(self.document.substring(start, end), start)


class PropertyInstruction(Instruction):
    """An instruction that declares one or more name/value pairs."""

    def get_property_arguments(self) -> list[Argument]:
        """Returns the arguments with quoted values re-joined.

        ``a="x y"`` is split into two arguments by whitespace; the quote left
        open by the first one pulls the next argument into the same property.
        ``a=x\\ y`` is re-joined the same way at the escaped space.
        """
        joined: list[Argument] = []
        quote: str | None = None
        escaped_space = False
        for arg in self.get_arguments():
            if (quote is not None or escaped_space) and joined:
                previous = joined.pop()
                gap_start = self.document.offset_at(previous.range.end)
                gap_end = self.document.offset_at(arg.range.start)
                gap = self._strip_continuations(self.document.substring(gap_start, gap_end))
                joined.append(Argument(previous.value + gap + arg.value, Range(previous.range.start, arg.range.end)))
            else:
                joined.append(arg)
            quote = self._track_quote(self.get_range_content(arg.range) or "", quote)
            escaped_space = self._ends_at_escaped_space(arg)
        return joined

    def _ends_at_escaped_space(self, arg: Argument) -> bool:
        end = self.document.offset_at(arg.range.end)
        tail = self.document.substring(end, self.document.offset_at(self.range.end))
        if tail[:1] != self.escape_char or tail[1:2] not in (" ", "\t"):
            return False
        return self.tokenizer.escaped_line_break(tail, 1) is None

    def _strip_continuations(self, text: str) -> str:
        pattern = re.escape(self.escape_char) + r"[ \t]*(?:\r\n|\r|\n)"
        return re.sub(pattern, "", text)

    def _track_quote(self, raw: str, quote: str | None) -> str | None:
        i = 0
        while i < len(raw):
            char = raw[i]
            if char == self.escape_char and quote != "'":
                i += 2
                continue
            if quote is None and char in ("'", '"'):
                quote = char
            elif char == quote:
                quote = None
            i += 1
        return quote

    def get_properties(self) -> list[Property]:
        args = self.get_property_arguments()
        document, escape_char = self.document, self.escape_char
        if not args:
            return []
        if len(args) == 1:
            return [Property(document, escape_char, args[0])]
        if "=" not in args[0].value:
            if len(args) == 2:
                return [Property(document, escape_char, args[0], args[1])]
            # NAME VALUE WITH SPACES, everything after the name is the value
            value_range = Range(args[1].range.start, args[-1].range.end)
            value = Argument(document.get_text(value_range), value_range)
            return [Property(document, escape_char, args[0], value)]
        return [Property(document, escape_char, arg) for arg in args]


class From(ModifiableInstruction):
    """
    The stage-introducing FROM instruction.

    The image reference is split into ``registry/name:tag`` or
    ``registry/name@digest``. Separators inside variable references are not
    considered, and a registry is only recognized when the text before the
    first ``/`` contains ``.`` or ``:`` or is ``localhost``.
    """

    def starts_stage(self) -> bool:
        return True

    def _get_image_argument(self) -> Argument | None:
        args = self.get_arguments()
        return args[0] if args else None

    def get_image(self) -> str | None:
        return self.get_range_content(self.get_image_range())

    def get_image_range(self) -> Range | None:
        arg = self._get_image_argument()
        return None if arg is None else arg.range

    def _get_image_components(self) -> dict[str, tuple[int, int]]:
        """Splits the image reference into offset spans keyed by component."""
        arg = self._get_image_argument()
        if arg is None:
            return {}
        base = self.document.offset_at(arg.range.start)
        raw = self.document.substring(base, self.document.offset_at(arg.range.end))
        variable_spans = [
            (
                self.document.offset_at(variable.range.start) - base,
                self.document.offset_at(variable.range.end) - base,
            )
            for variable in self.tokenizer.find_variables(raw, base, self._unclassified)
        ]

        def outside(index: int) -> bool:
            return all(not start <= index < end for start, end in variable_spans)

        def find(char: str, last: bool) -> int | None:
            indices = [i for i, c in enumerate(raw) if c == char and outside(i)]
            if not indices:
                return None
            return indices[-1] if last else indices[0]

        components: dict[str, tuple[int, int]] = {}
        name_start = 0
        name_end = len(raw)

        slash = find("/", last=False)
        if slash is not None:
            prefix = raw[:slash]
            if prefix == "localhost" or any(c in ".:" and outside(i) for i, c in enumerate(prefix)):
                components["registry"] = (base, base + slash)
                name_start = slash + 1

        digest = find("@", last=True)
        if digest is not None:
            components["digest"] = (base + digest + 1, base + len(raw))
            name_end = digest
        else:
            colon = find(":", last=True)
            last_slash = find("/", last=True)
            if colon is not None and (last_slash is None or colon > last_slash):
                components["tag"] = (base + colon + 1, base + len(raw))
                name_end = colon

        components["name"] = (base + name_start, base + name_end)
        return components

    def _get_component_range(self, component: str) -> Range | None:
        span = self._get_image_components().get(component)
        if span is None:
            return None
        return self.document.range_at(*span)

    def get_image_name(self) -> str | None:
        return self.get_range_content(self.get_image_name_range())

    def get_image_name_range(self) -> Range | None:
        return self._get_component_range("name")

    def get_image_tag(self) -> str | None:
        return self.get_range_content(self.get_image_tag_range())

    def get_image_tag_range(self) -> Range | None:
        return self._get_component_range("tag")

    def get_image_digest(self) -> str | None:
        return self.get_range_content(self.get_image_digest_range())

    def get_image_digest_range(self) -> Range | None:
        return self._get_component_range("digest")

    def get_registry(self) -> str | None:
        return self.get_range_content(self.get_registry_range())

    def get_registry_range(self) -> Range | None:
        return self._get_component_range("registry")

    def get_build_stage(self) -> str | None:
        args = self.get_arguments()
        if len(args) > 2 and args[1].value.upper() == "AS":
            return args[2].value
        return None

    def get_build_stage_range(self) -> Range | None:
        args = self.get_arguments()
        if len(args) > 2 and args[1].value.upper() == "AS":
            return args[2].range
        return None


class Arg(PropertyInstruction):
    def get_property(self) -> Property | None:
        """Returns the declared property, or None unless exactly one is declared."""
        properties = self.get_properties()
        return properties[0] if len(properties) == 1 else None


class Env(PropertyInstruction):
    pass


class Label(PropertyInstruction):
    pass


class Add(ModifiableInstruction):
    pass


class Copy(ModifiableInstruction):
    pass


class Healthcheck(ModifiableInstruction):
    def get_subcommand(self) -> Argument | None:
        """Returns the CMD or NONE argument that follows the flags."""
        args = self.get_arguments()
        return args[0] if args else None


class Onbuild(Instruction):
    def get_trigger(self) -> str | None:
        """Returns the upper-cased keyword of the triggered instruction."""
        args = self.get_arguments()
        return args[0].value.upper() if args else None

    def get_trigger_instruction(self) -> Instruction | None:
        """Parses the trigger in place as an instruction of its own."""
        args = self.get_arguments()
        if not args:
            return None
        return create_instruction(
            self.document,
            Range(args[0].range.start, self.range.end),
            self.resolver,
            self.escape_char,
            args[0].value,
            args[0].range,
        )


class Run(JSONInstruction):
    pass


class Cmd(JSONInstruction):
    pass


class Entrypoint(JSONInstruction):
    pass


class Shell(JSONInstruction):
    pass


class Volume(JSONInstruction):
    pass


INSTRUCTION_TYPES: dict[str, type[Instruction]] = {
    Keyword.ADD.value: Add,
    Keyword.ARG.value: Arg,
    Keyword.CMD.value: Cmd,
    Keyword.COPY.value: Copy,
    Keyword.ENTRYPOINT.value: Entrypoint,
    Keyword.ENV.value: Env,
    Keyword.FROM.value: From,
    Keyword.HEALTHCHECK.value: Healthcheck,
    Keyword.LABEL.value: Label,
    Keyword.ONBUILD.value: Onbuild,
    Keyword.RUN.value: Run,
    Keyword.SHELL.value: Shell,
    Keyword.VOLUME.value: Volume,
}


def create_instruction(
    document: TextDocument,
    range_: Range,
    resolver: VariableResolver,
    escape_char: str,
    instruction: str,
    instruction_range: Range,
) -> Instruction:
    """
    Builds the representation matching a keyword.

    Keywords are matched case-insensitively; unrecognized keywords get the
    generic ``Instruction``.

    Returns:
        Instruction: The new instruction.
    """
    cls = INSTRUCTION_TYPES.get(instruction.upper(), Instruction)
    return cls(document, range_, resolver, escape_char, instruction, instruction_range)


__all__ = [
    "Add",
    "Arg",
    "Cmd",
    "Copy",
    "Entrypoint",
    "Env",
    "From",
    "Healthcheck",
    "INSTRUCTION_TYPES",
    "Instruction",
    "JSONInstruction",
    "Label",
    "ModifiableInstruction",
    "Onbuild",
    "PropertyInstruction",
    "Run",
    "Shell",
    "VariableResolver",
    "Volume",
    "create_instruction",
]
