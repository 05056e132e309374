import pytest

from glimpse.categories import IdentifierCategory
from glimpse.errors import ScriptParseError
from glimpse.services.options_api.analyzer import analyze_options_api
from glimpse.services.options_api.helpers import find_component_definition, find_setup_function
from glimpse.services.syntax import parse_script


def _names(identifiers, category):
    return set(identifiers.get(category))


COMPONENT = """\
import { mapState, mapActions } from 'pinia'

export default {
  props: ['title'],
  inject: ['theme'],
  data() {
    return { count: 0 }
  },
  computed: {
    double() {
      return this.count * 2
    },
    ...mapState(useStore, ['user', 'role']),
  },
  methods: {
    increment() {
      this.count++
    },
    ...mapActions(useStore, ['logout']),
  },
}
"""


def test_options_sections_are_classified():
    ids = analyze_options_api(COMPONENT)

    assert _names(ids, IdentifierCategory.PROPS) == {"title"}
    assert _names(ids, IdentifierCategory.LOCAL_STATE) == {"theme"}
    assert _names(ids, IdentifierCategory.REACTIVE) == {"count"}
    assert _names(ids, IdentifierCategory.COMPUTED) == {"double"}
    # mapState was imported from pinia, so its names are pinia state.
    assert _names(ids, IdentifierCategory.PINIA) == {"user", "role"}
    # mapActions names are plain methods, never sub-branded.
    assert _names(ids, IdentifierCategory.METHODS) == {"increment", "logout"}


def test_details_carry_option_source():
    ids = analyze_options_api(COMPONENT)

    assert ids.props["title"].definition == "props: 'title'"
    assert ids.reactive["count"].definition == "count: 0"
    assert ids.pinia["user"].definition == "...mapState(useStore, ['user', 'role'])"


def test_map_state_without_import_is_generic_store():
    ids = analyze_options_api(
        "export default { computed: { ...mapState(['a', 'b']) } }\n"
    )
    assert _names(ids, IdentifierCategory.STORE) == {"a", "b"}
    assert _names(ids, IdentifierCategory.PINIA) == set()


def test_map_state_from_vuex():
    ids = analyze_options_api(
        "import { mapGetters } from 'vuex'\n"
        "export default { computed: { ...mapGetters('cart', ['items']) } }\n"
    )
    assert _names(ids, IdentifierCategory.VUEX) == {"items"}


SETUP_COMPONENT = """\
import { defineComponent, ref as vueRef, reactive, computed } from 'vue'

export default defineComponent({
  props: { size: Number },
  setup() {
    const count = vueRef(0)
    const state = reactive({})
    const total = computed(() => count.value)
    const label = 'hi'
    const onClick = () => {}
    function reset() {}
    let dynamic = 1
    dynamic = 2
    const unknown = someCall()
    return { count, state, total, label, onClick, reset, dynamic, unknown, missing, inline: vueRef(1) }
  },
})
"""


def test_setup_returns_are_refined_by_initializer():
    ids = analyze_options_api(SETUP_COMPONENT, lang="ts")

    assert _names(ids, IdentifierCategory.PROPS) == {"size"}
    assert _names(ids, IdentifierCategory.REF) == {"count", "inline"}
    assert _names(ids, IdentifierCategory.REACTIVE) == {"state"}
    assert _names(ids, IdentifierCategory.COMPUTED) == {"total"}
    assert _names(ids, IdentifierCategory.LOCAL_STATE) == {"label"}
    assert _names(ids, IdentifierCategory.METHODS) == {"onClick", "reset"}

    # Reassigned, unrecognised and undeclared bindings are dropped, not guessed.
    for dropped in ("dynamic", "unknown", "missing"):
        assert dropped not in ids

    assert ids.ref["count"].definition == "const count = vueRef(0)"


def test_setup_as_function_valued_property():
    tree = parse_script("export default { setup: function () { return {} } }\n")
    component = find_component_definition(tree)

    assert component is not None
    assert find_setup_function(component) is not None


def test_no_component_definition_yields_empty_identifiers():
    ids = analyze_options_api("const notAComponent = 1\n")
    assert all(not names for _, names in ids.items())


def test_parse_error_is_raised():
    with pytest.raises(ScriptParseError):
        analyze_options_api("export default { props: [ }\n")
