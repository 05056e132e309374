from glimpse.categories import IdentifierCategory
from glimpse.models import ScriptIdentifierDetails, ScriptIdentifiers
from glimpse.services.analysis import analyze_vue_file
from glimpse.services.document import TextDocument
from glimpse.services.sfc_parser import parse_sfc
from glimpse.services.template_analysis import (
    TemplateOccurrenceResolver,
    iter_free_identifiers,
    pattern_names,
)
from glimpse.services.syntax import node_text, parse_typescript


def _sfc(template: str, script: str) -> str:
    return f"<template>\n{template}\n</template>\n\n<script setup>\n{script}\n</script>\n"


def _range_names(result, category):
    return [r.name for r in result.ranges_for(category)]


def test_loop_variable_shadows_script_binding():
    text = _sfc(
        '<ul>\n  <li v-for="item in list">{{ item }}</li>\n</ul>\n<p>{{ item }}</p>',
        "import { ref } from 'vue'\nconst item = ref(0)\nconst list = ref([])",
    )
    result = analyze_vue_file(text)

    refs = result.ranges_for(IdentifierCategory.REF)
    item_ranges = [r for r in refs if r.name == "item"]

    # Only the occurrence outside the loop is a script reference.
    assert len(item_ranges) == 1
    assert item_ranges[0].start == text.index("{{ item }}</p>") + 3
    # The v-for source is still scanned.
    assert [r.name for r in refs if r.name == "list"] == ["list"]


def test_ranges_match_document_text_and_positions():
    text = _sfc(
        '<div :class="active" @click="toggle">{{ count + 1 }}</div>',
        "import { ref } from 'vue'\nconst active = ref(false)\nconst count = ref(0)\nfunction toggle() {}",
    )
    result = analyze_vue_file(text)

    ranges = result.all_ranges()
    assert [r.name for r in ranges] == ["active", "toggle", "count"]
    for r in ranges:
        assert text[r.start : r.end] == r.name
        # Everything sits on the second line of the document.
        assert r.start_position.line == 1
        assert r.end_position.character - r.start_position.character == len(r.name)
    assert _range_names(result, IdentifierCategory.METHODS) == ["toggle"]


def test_framework_builtins():
    text = _sfc(
        "<button @click=\"$emit('save', $event)\">{{ $attrs.id }}</button>\n"
        '<footer v-if="$slots.footer"></footer>',
        "const a = 1",
    )
    result = analyze_vue_file(text)

    assert _range_names(result, IdentifierCategory.EMITS) == ["$emit"]
    assert _range_names(result, IdentifierCategory.PASSTHROUGH) == ["$attrs", "$slots"]
    # `$event` has no handler and is not declared.
    assert all(r.name != "$event" for r in result.all_ranges())


def test_property_names_are_not_identifiers():
    text = _sfc(
        "<span>{{ user.name }}</span>",
        "import { reactive } from 'vue'\nconst user = reactive({})\nconst name = 'x'",
    )
    result = analyze_vue_file(text)

    assert _range_names(result, IdentifierCategory.REACTIVE) == ["user"]
    assert _range_names(result, IdentifierCategory.LOCAL_STATE) == []


def test_arrow_parameters_are_local():
    text = _sfc(
        "<span>{{ items.map(i => i.id).join(sep) }}</span>",
        "const i = 1\nconst sep = ','\nconst items = useItems()",
    )
    result = analyze_vue_file(text)

    assert _range_names(result, IdentifierCategory.REF) == ["items"]
    assert _range_names(result, IdentifierCategory.LOCAL_STATE) == ["sep"]


def test_slot_props_and_destructured_loops():
    text = _sfc(
        '<DataTable #row="{ row }">{{ row.id }}</DataTable>\n'
        '<li v-for="({ id }, index) in rows" :key="id">{{ index }}{{ total }}</li>',
        "const row = 1\nconst id = 2\nconst index = 3\nconst total = 4\nconst rows = []",
    )
    result = analyze_vue_file(text)

    assert _range_names(result, IdentifierCategory.LOCAL_STATE) == ["rows", "total"]


def test_dynamic_argument_and_v_pre():
    text = _sfc(
        '<a :[attrName]="value">x</a>\n<div v-pre>{{ value }}</div>',
        "const attrName = 'href'\nconst value = '#'",
    )
    result = analyze_vue_file(text)

    assert _range_names(result, IdentifierCategory.LOCAL_STATE) == ["attrName", "value"]


def test_event_statement_lists():
    text = _sfc(
        '<button @click="count = 0; reset()">x</button>',
        "import { ref } from 'vue'\nconst count = ref(1)\nfunction reset() {}",
    )
    result = analyze_vue_file(text)

    assert _range_names(result, IdentifierCategory.REF) == ["count"]
    assert _range_names(result, IdentifierCategory.METHODS) == ["reset"]


def test_mismatched_document_drops_ranges_instead_of_failing():
    text = _sfc("<p>{{ value }}</p>", "const value = 1")
    root = parse_sfc(text).descriptor.template.ast
    identifiers = ScriptIdentifiers(local_state={"value": ScriptIdentifierDetails(definition="const value = 1")})

    # A document that drifted away from the AST offsets.
    document = TextDocument("drifted.vue", 2, "<p></p>")
    ranges = TemplateOccurrenceResolver(identifiers, document).resolve(root)

    assert all(not items for items in ranges.values())


def test_pattern_names():
    assert pattern_names("item") == {"item"}
    assert pattern_names("{ id, name: label }") == {"id", "label"}
    assert pattern_names("[first, ...rest]") == {"first", "rest"}
    assert pattern_names("") == set()


def test_free_identifiers_follow_only_chain_roots():
    tree = parse_typescript("(a.b.c + d[e] + f({ g }))")
    names = [node_text(n) for n in iter_free_identifiers(tree.root_node)]
    assert names == ["a", "d", "e", "f", "g"]


def test_relational_operators_inside_interpolations():
    text = _sfc(
        "<div>{{ a < b ? c : a }}</div><span>{{ c }}</span>\n"
        "<em>{{ a<b }}</em><b>{{ b > c }}</b>",
        "import { ref } from 'vue'\nconst a = ref(1)\nconst b = ref(2)\nconst c = ref(3)",
    )
    result = analyze_vue_file(text)

    refs = result.ranges_for(IdentifierCategory.REF)
    assert [r.name for r in refs] == ["a", "b", "c", "a", "c", "a", "b", "b", "c"]
    for r in refs:
        assert text[r.start : r.end] == r.name


def test_comparison_without_spaces_keeps_following_markup():
    text = _sfc(
        "<span>{{ n<list.length ? n : 0 }}</span><p>{{ list }}</p>",
        "import { ref } from 'vue'\nconst n = ref(0)\nconst list = ref([])",
    )
    result = analyze_vue_file(text)

    assert _range_names(result, IdentifierCategory.REF) == ["n", "list", "n", "list"]


def test_loop_scope_survives_block_inside_paragraph():
    # HTML would close the <p> before the <div>; the template keeps the author's nesting.
    text = _sfc(
        '<p v-for="item in list"><div>{{ item }}</div> {{ item }}</p>\n<span>{{ item }}</span>',
        "import { ref } from 'vue'\nconst item = ref(0)\nconst list = ref([])",
    )
    result = analyze_vue_file(text)

    refs = result.ranges_for(IdentifierCategory.REF)
    assert [r.name for r in refs] == ["list", "item"]
    assert refs[1].start == text.index("{{ item }}</span>") + 3


def test_loop_scope_survives_nested_list_items():
    text = _sfc(
        '<li v-for="row in rows"><li>{{ row }}</li></li>',
        "const row = 1\nconst rows = []",
    )
    result = analyze_vue_file(text)

    assert _range_names(result, IdentifierCategory.LOCAL_STATE) == ["rows"]
