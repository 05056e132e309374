import re
from typing import Dict, Mapping, Set

# State-management families whose imports get their own Store sub-brand.
PINIA_MODULE = "pinia"
VUEX_MODULE = "vuex"

VUE_MODULE = "vue"

# `useUserStore`, `useCartStore`, ...
STORE_HOOK_PATTERN = re.compile(r"^use[A-Z].*Store$")
STORE_TO_REFS_HELPER = "storeToRefs"

EMITS_MACRO = "defineEmits"
PROPS_MACRO = "defineProps"
WITH_DEFAULTS_MACRO = "withDefaults"
MODEL_MACRO = "defineModel"
PASSTHROUGH_ACCESSORS: Set[str] = {"useAttrs", "useSlots"}
COMPUTED_API = "computed"

# Reactivity APIs as exported by `vue`, grouped by the category they produce.
REF_APIS: Set[str] = {"ref", "shallowRef", "toRef", "customRef"}
REACTIVE_APIS: Set[str] = {"reactive", "shallowReactive"}
REACTIVITY_APIS: Set[str] = REF_APIS | REACTIVE_APIS | {COMPUTED_API}

# The host is expected to coalesce edits for this long before asking for analysis.
ANALYSIS_DEBOUNCE_MS = 300

DEFAULT_FILENAME = "component.vue"

CATEGORY_LABELS: Dict[str, str] = {
    "props": "Prop",
    "passthrough": "Passthrough",
    "emits": "Emit",
    "ref": "Ref",
    "reactive": "Reactive",
    "computed": "Computed Property",
    "store": "Store State",
    "pinia": "Pinia State",
    "vuex": "Vuex State",
    "methods": "Method",
    "localState": "Local Variable",
}

DEFAULT_CATEGORY_ICONS: Dict[str, str] = {
    "props": "℗",
    "passthrough": "📥",
    "emits": "📤",
    "ref": "🔹",
    "reactive": "🔷",
    "computed": "⚡",
    "store": "📦",
    "pinia": "🍍",
    "vuex": "📦",
    "methods": "ƒ",
    "localState": "•",
}

# Theme color ids contain a dot, anything else is a literal CSS color.
DEFAULT_CATEGORY_COLORS: Dict[str, str] = {
    "props": "gitDecoration.modifiedResourceForeground",
    "passthrough": "gitDecoration.modifiedResourceForeground",
    "emits": "gitDecoration.deletedResourceForeground",
    "ref": "gitDecoration.renamedResourceForeground",
    "reactive": "gitDecoration.renamedResourceForeground",
    "computed": "gitDecoration.renamedResourceForeground",
    "store": "gitDecoration.conflictingResourceForeground",
    "pinia": "gitDecoration.conflictingResourceForeground",
    "vuex": "gitDecoration.conflictingResourceForeground",
    "methods": "gitDecoration.untrackedResourceForeground",
    "localState": "editorHint.foreground",
}


def _merge_overrides(defaults: Mapping[str, str], overrides: Mapping[str, str]) -> Dict[str, str]:
    merged = dict(defaults)
    for key, value in overrides.items():
        # Unknown category keys are ignored rather than added.
        if key in merged and isinstance(value, str):
            merged[key] = value
    return merged


def generate_icon_map(defaults: Mapping[str, str], overrides: Mapping[str, str]) -> Dict[str, str]:
    """
    Build the final category -> icon map from the defaults plus user overrides.

    Pure function so presentation layers can call it without touching any
    settings store.
    """
    return _merge_overrides(defaults, overrides)


def generate_color_map(defaults: Mapping[str, str], overrides: Mapping[str, str]) -> Dict[str, str]:
    return _merge_overrides(defaults, overrides)
