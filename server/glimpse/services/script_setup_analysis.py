from __future__ import annotations

import logging
from typing import List, Mapping, Optional, Tuple

from tree_sitter import Node

from glimpse.categories import IdentifierCategory
from glimpse.config import (
    COMPUTED_API,
    EMITS_MACRO,
    PASSTHROUGH_ACCESSORS,
    PROPS_MACRO,
    STORE_HOOK_PATTERN,
    STORE_TO_REFS_HELPER,
)
from glimpse.models import ScriptIdentifiers
from glimpse.services.binding_types import BindingTypes
from glimpse.services.identifiers import IdentifierCollector, store_category_for
from glimpse.services.import_analysis import ImportAnalysis, analyze_imports
from glimpse.services.syntax import (
    DECLARATION_NODE_TYPES,
    callee_name,
    collect_pattern_identifiers,
    declaration_kind,
    enclosing_statement,
    is_function_node,
    iter_declarators,
    node_text,
    parse_script,
    top_level_statements,
    unwrap_expression,
    walk_tree,
)

logger = logging.getLogger(__name__)

IMPLICIT_EMIT_NAME = "emit"
IMPLICIT_EMIT_DEFINITION = "const emit = defineEmits(...)"

_PROP_BINDINGS = {BindingTypes.PROPS, BindingTypes.PROPS_ALIASED}
_REF_BINDINGS = {BindingTypes.SETUP_REF, BindingTypes.SETUP_MAYBE_REF}


def category_for_binding(binding: Optional[BindingTypes], definition: str) -> IdentifierCategory:
    """Map a coarse compiler binding to a category. Unknown kinds are local state."""
    if binding in _PROP_BINDINGS:
        return IdentifierCategory.PROPS
    if binding in _REF_BINDINGS:
        return IdentifierCategory.REF
    if binding == BindingTypes.SETUP_REACTIVE_CONST:
        # The compiler reports `const props = defineProps()` as reactive.
        if PROPS_MACRO in definition:
            return IdentifierCategory.PROPS
        return IdentifierCategory.REACTIVE
    return IdentifierCategory.LOCAL_STATE


def _call_category(callee: str, imports: ImportAnalysis) -> Optional[IdentifierCategory]:
    if callee == EMITS_MACRO:
        return IdentifierCategory.EMITS
    if callee in PASSTHROUGH_ACCESSORS:
        return IdentifierCategory.PASSTHROUGH
    if callee == COMPUTED_API:
        return IdentifierCategory.COMPUTED
    if STORE_HOOK_PATTERN.match(callee):
        return store_category_for(callee, imports)
    return None


def _statement_text(statement: Node) -> str:
    return node_text(statement).strip()


def _find_props_definition(root: Node) -> Optional[str]:
    for node in walk_tree(root):
        if node.type == "call_expression" and callee_name(node) == PROPS_MACRO:
            return _statement_text(enclosing_statement(node))
    return None


def _has_bare_emits_call(root: Node) -> bool:
    for node in walk_tree(root):
        if node.type != "call_expression" or callee_name(node) != EMITS_MACRO:
            continue
        if node.parent is None or node.parent.type != "variable_declarator":
            return True
    return False


def analyze_script_setup(
    bindings: Mapping[str, BindingTypes],
    content: str,
    import_analysis: Optional[ImportAnalysis] = None,
    lang: Optional[str] = None,
) -> ScriptIdentifiers:
    """
    Classify the bindings of a `<script setup>` block.

    `bindings` come from the compiler; `content` is the original block text,
    which still has the macro calls the compiler erases. Explicit patterns in
    the source win over the compiler's coarse kinds, and each name lands in
    exactly one category.
    """
    tree = parse_script(content, lang)
    root = tree.root_node
    imports = import_analysis if import_analysis is not None else analyze_imports(root)
    logger.debug("Import analysis: %s", imports)

    collector = IdentifierCollector()
    # Declarators left for the compiler's verdict: (name, definition).
    fallback: List[Tuple[str, str]] = []

    for statement in top_level_statements(root):
        if statement.type in {"function_declaration", "generator_function_declaration"}:
            name = statement.child_by_field_name("name")
            if name is not None:
                collector.claim(node_text(name), IdentifierCategory.METHODS, _statement_text(statement))
            continue

        if statement.type not in DECLARATION_NODE_TYPES:
            continue

        definition = _statement_text(statement)
        is_const = declaration_kind(statement) == "const"

        for declarator in iter_declarators(statement):
            target = declarator.child_by_field_name("name")
            init = unwrap_expression(declarator.child_by_field_name("value"))
            if target is None:
                continue
            callee = callee_name(init)

            if callee and target.type == "identifier":
                category = _call_category(callee, imports)
                if category is not None:
                    collector.claim(node_text(target), category, definition)
                    continue

            elif callee == STORE_TO_REFS_HELPER and target.type == "object_pattern":
                category = store_category_for(STORE_TO_REFS_HELPER, imports)
                for ident in collect_pattern_identifiers(target):
                    collector.claim(node_text(ident), category, definition)
                continue

            if target.type != "identifier":
                continue

            name = node_text(target)
            if is_const and is_function_node(init):
                collector.claim(name, IdentifierCategory.METHODS, definition)
            else:
                fallback.append((name, definition))

    if _has_bare_emits_call(root):
        collector.claim(IMPLICIT_EMIT_NAME, IdentifierCategory.EMITS, IMPLICIT_EMIT_DEFINITION)

    for name, definition in fallback:
        collector.claim(name, category_for_binding(bindings.get(name), definition), definition)

    props_definition = None
    for name, binding in bindings.items():
        if binding in _PROP_BINDINGS and name not in collector:
            if props_definition is None:
                props_definition = _find_props_definition(root) or ""
            collector.claim(name, IdentifierCategory.PROPS, props_definition or f"prop: {name}")

    identifiers = collector.build()
    logger.debug(
        "Script setup classified: %s",
        {category.value: sorted(names) for category, names in identifiers.items() if names},
    )
    return identifiers
