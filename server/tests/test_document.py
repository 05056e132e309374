import pytest

from glimpse.categories import IdentifierCategory
from glimpse.errors import OffsetOutOfRangeError
from glimpse.models import Position
from glimpse.services.document import TextDocument


def test_positions_and_offsets():
    doc = TextDocument("a.vue", 1, "ab\ncd\n")

    assert doc.line_count == 3
    assert doc.position_at(0) == Position(line=0, character=0)
    assert doc.position_at(4) == Position(line=1, character=1)
    # The end of the text is a valid position.
    assert doc.position_at(6) == Position(line=2, character=0)
    assert doc.offset_at(Position(line=1, character=1)) == 4
    # Characters past the end of the text are clamped.
    assert doc.offset_at(Position(line=2, character=9)) == 6


def test_out_of_range_positions():
    doc = TextDocument("a.vue", 1, "ab")

    with pytest.raises(OffsetOutOfRangeError):
        doc.position_at(3)
    with pytest.raises(OffsetOutOfRangeError):
        doc.offset_at(Position(line=4, character=0))
    # Still an IndexError for callers that only know the builtin.
    with pytest.raises(IndexError):
        doc.position_at(-1)


def test_create_range():
    doc = TextDocument("a.vue", 1, "x\n{{ count }}")
    found = doc.create_range(5, 10, "count", IdentifierCategory.REF)

    assert found.start_position == Position(line=1, character=3)
    assert found.end_position == Position(line=1, character=8)

    with pytest.raises(OffsetOutOfRangeError):
        doc.create_range(4, 9, "count", IdentifierCategory.REF)
    with pytest.raises(OffsetOutOfRangeError):
        doc.create_range(10, 15, "count", IdentifierCategory.REF)
