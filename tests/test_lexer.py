import logging
import re

import pytest
from hypothesis import given
from hypothesis import strategies as st

from conftest import assert_range
from dockast.dockast_ast import ParserDirective
from dockast.dockast_constants import Directive
from dockast.dockast_instructions import From, Instruction, Run
from dockast.dockast_lexer import CharacterStream, CharacterStreamError, ScanState, Scanner
from dockast.dockast_parser import parse


def get_directive(content: str) -> ParserDirective:
    directive = parse(content).get_directive()
    assert directive is not None
    return directive


def test_character_stream_reads_and_peeks() -> None:
    stream = CharacterStream("ab")
    assert stream.peek() == "a"
    assert stream.peek(1) == "b"
    assert stream.peek(2) == ""
    assert stream.next() == "a"
    assert stream.current() == "b"
    assert stream.next() == "b"
    assert stream.current() is None
    assert stream.end_of_file()


def test_character_stream_next_past_end_raises() -> None:
    stream = CharacterStream("")
    with pytest.raises(CharacterStreamError):
        stream.next()


def test_character_stream_helpers() -> None:
    stream = CharacterStream("a \t\r\nb")
    assert stream.char_at(-1) == ""
    assert stream.char_at(99) == ""
    assert stream.skip_horizontal_whitespace(1) == 3
    assert stream.find_line_break(0) == 3
    assert stream.find_line_break(5) == 6
    assert stream.line_break_length(3) == 2
    assert stream.line_break_length(4) == 1
    assert stream.line_break_length(0) == 0
    stream.seek(100)
    assert stream.position == 6
    stream.seek(-3)
    assert stream.position == 0


def test_scanner_reaches_done() -> None:
    scanner = Scanner("FROM alpine")
    assert scanner.state is ScanState.AWAITING_DIRECTIVE
    scanner.scan()
    assert scanner.state is ScanState.DONE


def test_escape_directive_ranges() -> None:
    directive = get_directive("# escape=`")
    assert directive.name == "escape"
    assert directive.value == "`"
    assert directive.directive is Directive.ESCAPE
    assert_range(directive.name_range, 0, 2, 0, 8)
    assert_range(directive.value_range, 0, 9, 0, 10)
    assert_range(directive.range, 0, 0, 0, 10)


def test_directive_whitespace_only_value() -> None:
    directive = get_directive("# escape= \t\r\n")
    assert directive.value == " \t"
    assert_range(directive.value_range, 0, 9, 0, 11)


def test_directive_name_is_case_insensitive() -> None:
    directive = get_directive("#\t\tEscape   =`")
    assert_range(directive.name_range, 0, 3, 0, 9)
    assert_range(directive.value_range, 0, 13, 0, 14)
    assert directive.get_directive() is Directive.ESCAPE
    assert str(directive) == "# Escape=`"


def test_directive_value_stops_at_whitespace() -> None:
    assert get_directive("# escape=asdf asdf").value == "asdf"


def test_directive_empty_value() -> None:
    directive = get_directive("# escape=")
    assert directive.value == ""
    assert_range(directive.value_range, 0, 9, 0, 9)


def test_unknown_directive_is_kept() -> None:
    directive = get_directive("# unknown=value")
    assert directive.name == "unknown"
    assert directive.directive is None


def test_escape_character_selection() -> None:
    assert parse("").get_escape_character() == "\\"
    assert parse("# escape=\\").get_escape_character() == "\\"
    assert parse("# escape=`").get_escape_character() == "`"
    assert parse("# escape=a").get_escape_character() == "\\"


def test_directive_only_on_first_line() -> None:
    dockerfile = parse("# comment\n# escape=`")
    assert dockerfile.get_directive() is None
    assert dockerfile.get_escape_character() == "\\"
    assert len(dockerfile.get_comments()) == 2


def test_comment_counts() -> None:
    assert len(parse("FROM alpine").get_comments()) == 0
    assert len(parse("# escape=`").get_comments()) == 0
    assert len(parse("# Escape=`").get_comments()) == 0
    assert len(parse("# escape").get_comments()) == 1
    assert len(parse("#=value").get_comments()) == 1
    assert len(parse("FROM scratch\n# comment\nRUN echo \"$VAR\"").get_comments()) == 1


def test_comment_content_and_range() -> None:
    dockerfile = parse("FROM scratch\n  #  hello world  \nRUN ls")
    comment = dockerfile.get_comments()[0]
    assert_range(comment.range, 1, 2, 1, 18)
    assert comment.get_content() == "hello world"
    assert len(dockerfile.get_instructions()) == 2


def test_instruction_ranges() -> None:
    dockerfile = parse("FROM alpine\r\nRUN   ls -la\n\nCMD")
    from_, run, cmd = dockerfile.get_instructions()
    assert_range(from_.range, 0, 0, 0, 11)
    assert_range(run.range, 1, 0, 1, 12)
    assert_range(run.get_instruction_range(), 1, 0, 1, 3)
    assert_range(cmd.range, 3, 0, 3, 3)
    assert cmd.get_arguments() == []


def test_keyword_case_and_dispatch() -> None:
    dockerfile = parse("from alpine\nFOO bar")
    from_, unknown = dockerfile.get_instructions()
    assert isinstance(from_, From)
    assert from_.get_instruction() == "from"
    assert from_.get_keyword() == "FROM"
    assert type(unknown) is Instruction
    assert unknown.get_keyword() == "FOO"


def test_keyword_continuation() -> None:
    instruction = parse("FR\\\nOM alpine").get_instructions()[0]
    assert isinstance(instruction, From)
    assert instruction.get_keyword() == "FROM"
    assert_range(instruction.get_instruction_range(), 0, 0, 1, 2)
    assert [arg.value for arg in instruction.get_arguments()] == ["alpine"]


def test_argument_continuation() -> None:
    dockerfile = parse("RUN echo \\\n hello\nCMD ls")
    run, cmd = dockerfile.get_instructions()
    assert_range(run.range, 0, 0, 1, 6)
    assert [arg.value for arg in run.get_arguments()] == ["echo", "hello"]
    assert_range(cmd.range, 2, 0, 2, 6)


def test_continuation_with_trailing_whitespace() -> None:
    dockerfile = parse("RUN echo \\  \t\n hello")
    assert len(dockerfile.get_instructions()) == 1
    assert [arg.value for arg in dockerfile.get_instructions()[0].get_arguments()] == ["echo", "hello"]


def test_lone_carriage_return_continuation() -> None:
    dockerfile = parse("RUN a\\\rb")
    run = dockerfile.get_instructions()[0]
    assert len(dockerfile.get_instructions()) == 1
    assert [arg.value for arg in run.get_arguments()] == ["ab"]
    assert_range(run.range, 0, 0, 1, 1)


def test_escape_directive_changes_continuation() -> None:
    dockerfile = parse("# escape=`\nRUN echo `\n hello")
    run = dockerfile.get_instructions()[0]
    assert len(dockerfile.get_instructions()) == 1
    assert_range(run.range, 1, 0, 2, 6)
    assert [arg.value for arg in run.get_arguments()] == ["echo", "hello"]

    dockerfile = parse("RUN echo `\n hello")
    assert [i.get_keyword() for i in dockerfile.get_instructions()] == ["RUN", "HELLO"]


def test_embedded_comment_keeps_instruction_open() -> None:
    dockerfile = parse("RUN echo \\\n# comment\n hello")
    run = dockerfile.get_instructions()[0]
    assert isinstance(run, Run)
    assert len(dockerfile.get_instructions()) == 1
    assert_range(run.range, 0, 0, 2, 6)
    assert [arg.value for arg in run.get_arguments()] == ["echo", "hello"]
    comment = dockerfile.get_comments()[0]
    assert_range(comment.range, 1, 0, 1, 9)


def test_comments_are_sorted() -> None:
    dockerfile = parse("# first\nRUN a \\\n# embedded\n b\n# last")
    assert [c.get_content() for c in dockerfile.get_comments()] == ["first", "embedded", "last"]


def test_hash_inside_arguments_is_not_a_comment() -> None:
    dockerfile = parse("RUN echo # not a comment")
    assert dockerfile.get_comments() == []
    assert len(dockerfile.get_instructions()[0].get_arguments()) == 5


def test_invalid_escape_directive_is_logged(caplog: pytest.LogCaptureFixture) -> None:
    caplog.set_level(logging.DEBUG, logger="dockast.dockast_lexer")
    parse("# escape=a\nFROM alpine")
    assert "ignoring escape directive" in caplog.text


@given(st.text(max_size=200))  # type: ignore[misc]
def test_scan_never_raises(source: str) -> None:
    dockerfile = parse(source)
    end = dockerfile.get_range().end
    for line in dockerfile.get_instructions() + dockerfile.get_comments():
        assert line.range.start <= line.range.end
        assert line.range.end <= end


@given(st.text(alphabet="RUNFOM \\`#\n\r\t$a=", max_size=80))  # type: ignore[misc]
def test_instructions_are_ordered(source: str) -> None:
    instructions = parse(source).get_instructions()
    for previous, current in zip(instructions, instructions[1:]):
        assert previous.range.end <= current.range.start


def test_escaped_characters_end_a_continued_line() -> None:
    dockerfile = parse("RUN echo \\\n\\$\nCMD x")
    assert [i.get_keyword() for i in dockerfile.get_instructions()] == ["RUN", "CMD"]
    assert_range(dockerfile.get_instructions()[0].range, 0, 0, 1, 2)

    dockerfile = parse("RUN echo \\\n  \\\\\nFROM alpine\nARG a=1\nRUN echo $a")
    assert len(dockerfile.get_froms()) == 1
    assert len(dockerfile.get_instructions()) == 4
    assert dockerfile.resolve_variable("a", 4) == "1"


def is_continued_line(line: str) -> bool:
    stripped = line.strip(" \t")
    return stripped == "" or stripped.startswith("#") or stripped.endswith("\\")


@given(st.text(alphabet="RUNFOM \\#\n\r\t$a=", max_size=80))  # type: ignore[misc]
def test_instructions_stop_at_plain_line_breaks(source: str) -> None:
    dockerfile = parse(source)
    for instruction in dockerfile.get_instructions():
        lines = re.split(r"\r\n|\r|\n", dockerfile.document.get_text(instruction.range))
        for line in lines[:-1]:
            assert is_continued_line(line)
