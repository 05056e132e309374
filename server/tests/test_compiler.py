import pytest

from glimpse.errors import ScriptCompileError
from glimpse.services.binding_types import BindingTypes
from glimpse.services.compiler import BindingOracle, compile_script
from glimpse.services.sfc_parser import parse_sfc


def _bindings(script: str, attrs: str = 'setup lang="ts"') -> dict:
    descriptor = parse_sfc(f"<script {attrs}>\n{script}\n</script>\n").descriptor
    return compile_script(descriptor, id="test").bindings


def test_imports_and_declarations():
    bindings = _bindings(
        """\
import { ref, computed, reactive } from 'vue'
import Child from './Child.vue'
import { format } from './utils'
import * as helpers from './helpers'
import type { User } from './types'

const count = ref(0)
const double = computed(() => count.value * 2)
const state = reactive({ a: 1 })
const max = 10
const user = useUser()
let mutable = 1
function reset() {}
const list = [1, 2]
"""
    )

    # Vue's own exports, namespaces and .vue default imports never hold refs.
    assert bindings["ref"] == BindingTypes.SETUP_CONST
    assert bindings["Child"] == BindingTypes.SETUP_CONST
    assert bindings["helpers"] == BindingTypes.SETUP_CONST
    assert bindings["format"] == BindingTypes.SETUP_MAYBE_REF
    # Type-only imports are not bindings.
    assert "User" not in bindings

    assert bindings["count"] == BindingTypes.SETUP_REF
    assert bindings["double"] == BindingTypes.SETUP_REF
    assert bindings["state"] == BindingTypes.SETUP_REACTIVE_CONST
    assert bindings["max"] == BindingTypes.LITERAL_CONST
    assert bindings["user"] == BindingTypes.SETUP_MAYBE_REF
    assert bindings["mutable"] == BindingTypes.SETUP_LET
    assert bindings["reset"] == BindingTypes.SETUP_CONST
    assert bindings["list"] == BindingTypes.SETUP_CONST


def test_ref_calls_only_count_when_imported_from_vue():
    bindings = _bindings("const count = ref(0)")
    assert bindings["count"] == BindingTypes.SETUP_MAYBE_REF

    bindings = _bindings("import { ref as vueRef } from 'vue'\nconst count = vueRef(0)")
    assert bindings["count"] == BindingTypes.SETUP_REF


def test_type_literal_props():
    bindings = _bindings("const props = defineProps<{ title: string; count?: number }>()")

    assert bindings["title"] == BindingTypes.PROPS
    assert bindings["count"] == BindingTypes.PROPS
    # The props object itself is reported as a reactive const.
    assert bindings["props"] == BindingTypes.SETUP_REACTIVE_CONST


def test_interface_props_with_defaults():
    bindings = _bindings(
        """\
interface Base { id: number }
interface Props extends Base { label?: string }
const props = withDefaults(defineProps<Props>(), { label: 'x' })
"""
    )

    assert bindings["id"] == BindingTypes.PROPS
    assert bindings["label"] == BindingTypes.PROPS
    assert bindings["props"] == BindingTypes.SETUP_REACTIVE_CONST


def test_runtime_array_props_without_assignment():
    bindings = _bindings("defineProps(['foo', 'bar'])", attrs="setup")
    assert bindings == {"foo": BindingTypes.PROPS, "bar": BindingTypes.PROPS}


def test_destructured_props():
    bindings = _bindings(
        "const { title, count: total = 0, ...rest } = "
        "defineProps<{ title: string; count: number; other: boolean }>()"
    )

    assert bindings["title"] == BindingTypes.PROPS
    assert bindings["total"] == BindingTypes.PROPS_ALIASED
    assert bindings["rest"] == BindingTypes.SETUP_REACTIVE_CONST
    assert bindings["count"] == BindingTypes.PROPS
    assert bindings["other"] == BindingTypes.PROPS


def test_define_model_registers_prop_and_ref():
    bindings = _bindings("const model = defineModel<string>()")
    assert bindings["model"] == BindingTypes.SETUP_REF
    assert bindings["modelValue"] == BindingTypes.PROPS


def test_emits_binding_is_const():
    bindings = _bindings("const emit = defineEmits(['change'])")
    assert bindings["emit"] == BindingTypes.SETUP_CONST


def test_duplicate_define_props_is_rejected():
    with pytest.raises(ScriptCompileError, match="duplicate defineProps"):
        _bindings("defineProps(['a'])\ndefineProps(['b'])", attrs="setup")


def test_exports_are_rejected_in_script_setup():
    with pytest.raises(ScriptCompileError, match="ES module exports"):
        _bindings("export const x = 1")

    # Type exports are fine.
    bindings = _bindings("export interface Item { id: number }\nconst a = 1")
    assert bindings == {"a": BindingTypes.LITERAL_CONST}


def test_syntax_error_carries_document_offset():
    text = "<script setup>\nconst = ;\n</script>\n"
    descriptor = parse_sfc(text).descriptor

    with pytest.raises(ScriptCompileError) as excinfo:
        compile_script(descriptor, id="broken")

    assert excinfo.value.offset is not None
    assert descriptor.script_setup.start <= excinfo.value.offset <= descriptor.script_setup.end


def test_companion_script_contributes_bindings():
    text = """\
<script lang="ts">
import { helper } from './helper'
export const shared = 1
</script>
<script setup lang="ts">
const local = helper()
</script>
"""
    bindings = compile_script(parse_sfc(text).descriptor, id="x").bindings

    assert bindings["helper"] == BindingTypes.SETUP_MAYBE_REF
    assert bindings["shared"] == BindingTypes.LITERAL_CONST
    assert bindings["local"] == BindingTypes.SETUP_MAYBE_REF


def test_mismatched_languages_are_rejected():
    text = '<script lang="ts">\nexport default {}\n</script>\n<script setup>\nconst a = 1\n</script>\n'
    with pytest.raises(ScriptCompileError, match="same language"):
        compile_script(parse_sfc(text).descriptor, id="x")


def test_options_component_bindings():
    bindings = _bindings(
        "export default { props: ['a'], inject: ['b'], data() { return { c: 1 } }, "
        "computed: { d() { return 1 } }, setup() { return { e: 1 } } }",
        attrs="",
    )

    assert bindings == {
        "a": BindingTypes.PROPS,
        "b": BindingTypes.OPTIONS,
        "c": BindingTypes.DATA,
        "d": BindingTypes.OPTIONS,
        "e": BindingTypes.SETUP_MAYBE_REF,
    }


def test_oracle_ids_are_unique_and_monotonic():
    oracle = BindingOracle()
    assert oracle.next_id() == "glimpse-1"
    assert oracle.next_id() == "glimpse-2"

    descriptor = parse_sfc("<script setup>\nconst a = 1\n</script>\n").descriptor
    assert oracle.compile(descriptor) == {"a": BindingTypes.LITERAL_CONST}
    assert oracle.next_id() == "glimpse-4"


def test_missing_script_is_a_compile_error():
    with pytest.raises(ScriptCompileError):
        compile_script(parse_sfc("<template><div></div></template>").descriptor, id="x")
