from dataclasses import dataclass
from enum import Enum
from typing import Dict, Tuple

from glimpse.config import CATEGORY_LABELS


class IdentifierCategory(str, Enum):
    """Semantic origin buckets, declared in display priority order (highest first)."""

    EMITS = "emits"
    PASSTHROUGH = "passthrough"
    PROPS = "props"
    PINIA = "pinia"
    VUEX = "vuex"
    STORE = "store"
    COMPUTED = "computed"
    REF = "ref"
    REACTIVE = "reactive"
    METHODS = "methods"
    LOCAL_STATE = "localState"


@dataclass(frozen=True)
class CategoryDescriptor:
    key: IdentifierCategory
    label: str
    # Attribute on ScriptIdentifiers holding this category's name -> details map.
    script_property: str
    # Attribute on AnalysisResult holding this category's ranges.
    result_property: str


def _snake(key: str) -> str:
    return "".join(f"_{c.lower()}" if c.isupper() else c for c in key)


CATEGORY_PRIORITY: Tuple[IdentifierCategory, ...] = (
    IdentifierCategory.EMITS,
    IdentifierCategory.PASSTHROUGH,
    IdentifierCategory.PROPS,
    IdentifierCategory.PINIA,
    IdentifierCategory.VUEX,
    IdentifierCategory.STORE,
    IdentifierCategory.COMPUTED,
    IdentifierCategory.REF,
    IdentifierCategory.REACTIVE,
    IdentifierCategory.METHODS,
    IdentifierCategory.LOCAL_STATE,
)

IDENTIFIER_CATEGORIES: Tuple[CategoryDescriptor, ...] = tuple(
    CategoryDescriptor(
        key=key,
        label=CATEGORY_LABELS[key.value],
        script_property=_snake(key.value),
        result_property=f"{_snake(key.value)}_ranges",
    )
    for key in CATEGORY_PRIORITY
)

CATEGORY_DESCRIPTORS: Dict[IdentifierCategory, CategoryDescriptor] = {
    d.key: d for d in IDENTIFIER_CATEGORIES
}

# Framework builtins reachable from any template without a script declaration.
VUE_BUILTIN_HANDLERS: Dict[str, IdentifierCategory] = {
    "$emit": IdentifierCategory.EMITS,
    "$attrs": IdentifierCategory.PASSTHROUGH,
    "$slots": IdentifierCategory.PASSTHROUGH,
}
