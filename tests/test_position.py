from hypothesis import given
from hypothesis import strategies as st

from conftest import assert_range
from dockast.dockast_position import Position, Range, TextDocument


def test_position_repr_and_eq() -> None:
    assert repr(Position(1, 2)) == "Position(1, 2)"
    assert Position(1, 2) == Position(1, 2)
    assert Position(1, 2) != Position(2, 1)
    assert hash(Position(3, 4)) == hash(Position(3, 4))


def test_position_ordering() -> None:
    assert Position(0, 5) < Position(1, 0)
    assert Position(1, 0) < Position(1, 1)
    assert Position(1, 1) <= Position(1, 1)
    assert not Position(2, 0) <= Position(1, 9)


def test_range_create_and_repr() -> None:
    range_ = Range.create(0, 1, 2, 3)
    assert repr(range_) == "Range(0:1-2:3)"
    assert range_ == Range(Position(0, 1), Position(2, 3))
    assert range_.to_dict() == {
        "start": {"line": 0, "character": 1},
        "end": {"line": 2, "character": 3},
    }


def test_range_contains_is_inclusive() -> None:
    range_ = Range.create(0, 5, 0, 9)
    assert range_.contains(Position(0, 5))
    assert range_.contains(Position(0, 9))
    assert not range_.contains(Position(0, 4))
    assert not range_.contains(Position(0, 10))
    assert range_.contains_range(Range.create(0, 6, 0, 8))
    assert not range_.contains_range(Range.create(0, 6, 1, 0))


def test_line_offsets_for_all_line_breaks() -> None:
    doc = TextDocument("a\r\nb\rc\nd")
    assert doc.line_offsets == [0, 3, 5, 7]
    assert doc.line_count == 4
    assert TextDocument("").line_count == 1


def test_position_at() -> None:
    doc = TextDocument("FROM alpine\nRUN ls")
    assert doc.position_at(0) == Position(0, 0)
    assert doc.position_at(11) == Position(0, 11)
    assert doc.position_at(12) == Position(1, 0)
    assert doc.position_at(14) == Position(1, 2)


def test_position_at_clamps() -> None:
    doc = TextDocument("abc")
    assert doc.position_at(-5) == Position(0, 0)
    assert doc.position_at(50) == Position(0, 3)


def test_offset_at_out_of_bounds() -> None:
    doc = TextDocument("ab\ncd")
    assert doc.offset_at(Position(5, 0)) == 5
    assert doc.offset_at(Position(-1, 3)) == 0
    # columns past the end of a line stop at the next line's start
    assert doc.offset_at(Position(0, 10)) == 3


def test_columns_count_utf16_units() -> None:
    doc = TextDocument("a\U0001f600b")
    assert doc.position_at(2) == Position(0, 3)
    assert doc.offset_at(Position(0, 3)) == 2
    assert doc.end_position() == Position(0, 4)


def test_get_text_and_range_at() -> None:
    doc = TextDocument("FROM alpine\nRUN ls")
    range_ = doc.range_at(5, 11)
    assert_range(range_, 0, 5, 0, 11)
    assert doc.get_text(range_) == "alpine"
    assert doc.get_text() == "FROM alpine\nRUN ls"
    assert doc.substring(12, 15) == "RUN"


@given(st.text(alphabet=st.characters(blacklist_categories=["Cs"]), max_size=60))  # type: ignore[misc]
def test_offsets_survive_position_conversion(text: str) -> None:
    doc = TextDocument(text)
    for offset in range(len(text) + 1):
        assert doc.offset_at(doc.position_at(offset)) == offset
