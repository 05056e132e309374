import re
from typing import Mapping, Optional, Tuple

from glimpse.categories import IDENTIFIER_CATEGORIES
from glimpse.config import DEFAULT_CATEGORY_ICONS
from glimpse.models import AnalysisResult, HoverInfo

_WORD_CHAR_RE = re.compile(r"[A-Za-z0-9_$]")


def word_at(text: str, offset: int) -> Optional[Tuple[str, int, int]]:
    """The identifier-like word touching `offset`, as `(word, start, end)`."""
    if offset < 0 or offset > len(text):
        return None
    start = offset
    while start > 0 and _WORD_CHAR_RE.match(text[start - 1]):
        start -= 1
    end = offset
    while end < len(text) and _WORD_CHAR_RE.match(text[end]):
        end += 1
    if start == end:
        return None
    return text[start:end], start, end


def find_hover(
    result: AnalysisResult,
    text: str,
    offset: int,
    icons: Optional[Mapping[str, str]] = None,
) -> Optional[HoverInfo]:
    found = word_at(text, offset)
    if found is None:
        return None
    word, start, end = found
    icons = icons or DEFAULT_CATEGORY_ICONS

    for descriptor in IDENTIFIER_CATEGORIES:
        details = result.script_identifiers.get(descriptor.key).get(word)
        if details is None:
            continue
        return HoverInfo(
            name=word,
            category=descriptor.key,
            label=descriptor.label,
            icon=icons.get(descriptor.key.value, ""),
            definition=details.definition,
            start=start,
            end=end,
        )
    return None
