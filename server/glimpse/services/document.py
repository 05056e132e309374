from __future__ import annotations

import bisect
from typing import List

from glimpse.categories import IdentifierCategory
from glimpse.errors import OffsetOutOfRangeError
from glimpse.models import IdentifierRange, Position


class TextDocument:
    """An immutable snapshot of one editor document."""

    def __init__(self, uri: str, version: int, text: str):
        self.uri = uri
        self.version = version
        self.text = text
        self._line_starts: List[int] = [0]
        for i, ch in enumerate(text):
            if ch == "\n":
                self._line_starts.append(i + 1)

    def __len__(self) -> int:
        return len(self.text)

    @property
    def line_count(self) -> int:
        return len(self._line_starts)

    def position_at(self, offset: int) -> Position:
        if offset < 0 or offset > len(self.text):
            raise OffsetOutOfRangeError(f"offset {offset} outside document of length {len(self.text)}")
        line = bisect.bisect_right(self._line_starts, offset) - 1
        return Position(line=line, character=offset - self._line_starts[line])

    def offset_at(self, position: Position) -> int:
        if position.line < 0 or position.line >= len(self._line_starts):
            raise OffsetOutOfRangeError(f"line {position.line} outside document")
        offset = self._line_starts[position.line] + position.character
        return min(offset, len(self.text))

    def create_range(self, start: int, end: int, name: str, category: IdentifierCategory) -> IdentifierRange:
        """
        Build the range of one identifier occurrence.

        Raises `OffsetOutOfRangeError` when the offsets fall outside the text or do
        not cover `name`, which happens when the template AST and the live text
        drift apart.
        """
        if start < 0 or end > len(self.text) or start > end:
            raise OffsetOutOfRangeError(f"range [{start}, {end}) outside document of length {len(self.text)}")
        if self.text[start:end] != name:
            raise OffsetOutOfRangeError(
                f"range [{start}, {end}) holds {self.text[start:end]!r}, expected {name!r}"
            )
        return IdentifierRange(
            name=name,
            category=category,
            start=start,
            end=end,
            start_position=self.position_at(start),
            end_position=self.position_at(end),
        )
