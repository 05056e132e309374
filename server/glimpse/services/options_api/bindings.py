from __future__ import annotations

from typing import List

from tree_sitter import Node

from glimpse.services.binding_types import BindingMetadata, BindingTypes
from glimpse.services.options_api.helpers import (
    iter_option_members,
    option_function,
    option_value,
    returned_objects,
)
from glimpse.services.syntax import array_string_elements, object_keys


def object_or_array_keys(value: Node | None) -> List[str]:
    """`['a', 'b']` -> `a, b`; `{ a: String, b() {} }` -> `a, b`."""
    if value is None:
        return []
    if value.type == "array":
        return array_string_elements(value)
    if value.type == "object":
        return object_keys(value)
    return []


def analyze_bindings_from_options(component_def: Node) -> BindingMetadata:
    """
    Coarse bindings of a component options object, as Vue's compiler infers them
    for components without `<script setup>`.
    """
    bindings: BindingMetadata = {}

    for key, member in iter_option_members(component_def):
        if key in {"setup", "data"}:
            function = option_function(member)
            if function is None:
                continue
            kind = BindingTypes.SETUP_MAYBE_REF if key == "setup" else BindingTypes.DATA
            for returned in returned_objects(function):
                for name in object_keys(returned):
                    bindings[name] = kind
            continue

        value = option_value(member)
        if value is None:
            continue

        if key == "props":
            for name in object_or_array_keys(value):
                bindings[name] = BindingTypes.PROPS
        elif key == "inject":
            for name in object_or_array_keys(value):
                bindings[name] = BindingTypes.OPTIONS
        elif key in {"computed", "methods"} and value.type == "object":
            for name in object_keys(value):
                bindings[name] = BindingTypes.OPTIONS

    return bindings
