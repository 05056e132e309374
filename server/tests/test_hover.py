from glimpse.categories import IdentifierCategory
from glimpse.services.analysis import analyze_vue_file
from glimpse.services.hover import find_hover, word_at


TEXT = """\
<template>
  <button @click="increment">{{ count }}</button>
</template>

<script setup>
import { ref } from 'vue'
const count = ref(0)
function increment() { count.value++ }
</script>
"""


def test_hover_describes_classified_identifier():
    result = analyze_vue_file(TEXT)
    offset = TEXT.index("{{ count }}") + 5

    info = find_hover(result, TEXT, offset)

    assert info is not None
    assert info.name == "count"
    assert info.category == IdentifierCategory.REF
    assert info.label == "Ref"
    assert info.icon == "🔹"
    assert info.definition == "const count = ref(0)"
    assert TEXT[info.start : info.end] == "count"


def test_hover_uses_icon_overrides():
    result = analyze_vue_file(TEXT)
    offset = TEXT.index("increment")

    info = find_hover(result, TEXT, offset, icons={"methods": "M"})

    assert info.category == IdentifierCategory.METHODS
    assert info.icon == "M"


def test_hover_misses():
    result = analyze_vue_file(TEXT)

    assert find_hover(result, TEXT, TEXT.index("<button") - 1) is None
    # A word, but not a script identifier.
    assert find_hover(result, TEXT, TEXT.index("button") + 2) is None


def test_word_at():
    assert word_at("a + $emit(x)", 5) == ("$emit", 4, 9)
    # The end of a word still touches it.
    assert word_at("foo bar", 3) == ("foo", 0, 3)
    assert word_at("  ", 1) is None
    assert word_at("abc", 10) is None
