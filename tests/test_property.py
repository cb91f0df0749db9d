from conftest import assert_range
from dockast.dockast_constants import UNRESOLVED
from dockast.dockast_instructions import Arg, PropertyInstruction
from dockast.dockast_parser import parse
from dockast.dockast_property import Property, find_leading_nonwhitespace, unescape_value


def properties(content: str) -> list[Property]:
    instruction = parse(content).get_instructions()[0]
    assert isinstance(instruction, PropertyInstruction)
    return instruction.get_properties()


def test_unescape_plain_and_quoted() -> None:
    assert unescape_value("value", "\\") == "value"
    assert unescape_value('"a b"', "\\") == "a b"
    assert unescape_value("'a\\b'", "\\") == "a\\b"
    assert unescape_value('"a\\"b"', "\\") == 'a"b'
    # an unmatched quote is kept
    assert unescape_value('"abc', "\\") == '"abc'


def test_unescape_escapes() -> None:
    assert unescape_value("a\\ b", "\\") == "a b"
    assert unescape_value("a\\\\b", "\\") == "a\\b"
    assert unescape_value("a\\", "\\") == "a\\"
    assert unescape_value("a`b", "`") == "ab"


def test_unescape_continuations() -> None:
    assert unescape_value("a\\\nb", "\\") == "ab"
    assert unescape_value("a\\\r\nb", "\\") == "ab"
    assert unescape_value("a\\\n  b", "\\") == "a  b"


def test_unescape_drops_comment_lines() -> None:
    assert unescape_value("a\\\n# comment\nb", "\\") == "ab"
    assert unescape_value("a\\\n  # comment\nb", "\\") == "ab"


def test_unescape_blank_values() -> None:
    assert unescape_value("", "\\") == ""
    assert unescape_value("  ", "\\") == ""


def test_find_leading_nonwhitespace() -> None:
    assert find_leading_nonwhitespace("abc", "\\") == 0
    assert find_leading_nonwhitespace("  abc", "\\") == 2
    assert find_leading_nonwhitespace(" \\\n  abc", "\\") == 5
    assert find_leading_nonwhitespace("\\x", "\\") == 0
    assert find_leading_nonwhitespace(" \t", "\\") == 2


def test_name_value_property() -> None:
    (prop,) = properties("ARG a=b")
    assert prop.get_name() == "a"
    assert prop.get_value() == "b"
    assert_range(prop.get_name_range(), 0, 4, 0, 5)
    assert_range(prop.get_value_range(), 0, 6, 0, 7)
    assert_range(prop.get_range(), 0, 4, 0, 7)


def test_property_without_value() -> None:
    (prop,) = properties("ARG a")
    assert prop.value is None
    assert prop.value_range is None
    assert prop.get_unescaped_value() is None

    (prop,) = properties("ARG a=")
    assert prop.value == ""
    assert_range(prop.value_range, 0, 6, 0, 6)


def test_legacy_name_value_form() -> None:
    (prop,) = properties("ENV a b")
    assert (prop.name, prop.value) == ("a", "b")
    assert_range(prop.range, 0, 4, 0, 7)

    (prop,) = properties("ENV a b c")
    assert prop.value == "b c"
    assert_range(prop.value_range, 0, 6, 0, 9)


def test_multiple_properties() -> None:
    props = properties("ENV a=1 b=2")
    assert [(p.name, p.value) for p in props] == [("a", "1"), ("b", "2")]


def test_quoted_values_are_rejoined() -> None:
    props = properties('ENV a="x y" b=2')
    assert [(p.name, p.value) for p in props] == [("a", "x y"), ("b", "2")]
    assert_range(props[0].range, 0, 4, 0, 11)
    assert props[0].get_unescaped_value() == '"x y"'


def test_quoted_names() -> None:
    (prop,) = properties('LABEL "a b"=c')
    assert prop.name == "a b"
    assert prop.value == "c"
    assert_range(prop.name_range, 0, 6, 0, 11)

    (prop,) = properties('ARG "a=b"')
    assert prop.name == "a=b"
    assert prop.value is None


def test_unescaped_value_elides_continuations() -> None:
    (prop,) = properties("ENV a=b\\\nc")
    assert prop.value == "bc"
    assert prop.get_unescaped_value() == "bc"

    (prop,) = properties("ENV a='x\\y'")
    assert prop.value == "x\\y"
    assert prop.get_unescaped_value() == "'x\\y'"


def test_arg_property_requires_single_declaration() -> None:
    arg = parse("ARG a=1 b=2").get_instructions()[0]
    assert isinstance(arg, Arg)
    assert arg.get_property() is None
    assert len(arg.get_properties()) == 2

    arg = parse("ARG").get_instructions()[0]
    assert isinstance(arg, Arg)
    assert arg.get_property() is None
    assert arg.get_properties() == []


def test_property_equality() -> None:
    assert properties("ARG a=b") == properties("ARG a=b")
    assert properties("ARG a=b") != properties("ARG a=c")


def test_escaped_space_keeps_value_together() -> None:
    dockerfile = parse("FROM alpine\nENV a=b\\ c\nRUN echo $c")
    env = dockerfile.get_instructions()[1]
    assert isinstance(env, PropertyInstruction)
    (prop,) = env.get_properties()
    assert (prop.name, prop.value) == ("a", "b c")
    assert_range(prop.range, 1, 4, 1, 10)
    assert_range(prop.value_range, 1, 6, 1, 10)
    assert prop.get_unescaped_value() == "b\\ c"
    assert dockerfile.get_available_variables(2) == ["a"]
    assert dockerfile.resolve_variable("a", 2) == "b c"
    assert dockerfile.resolve_variable("c", 2) is UNRESOLVED


def test_escaped_space_joins_only_its_own_property() -> None:
    props = properties("ENV a=b\\ c d=e")
    assert [(p.name, p.value) for p in props] == [("a", "b c"), ("d", "e")]

    props = properties("ENV a=b\\ \n c=d")
    assert [(p.name, p.value) for p in props] == [("a", "b"), ("c", "d")]
