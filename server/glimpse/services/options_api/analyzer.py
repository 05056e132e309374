from __future__ import annotations

import logging
from typing import Dict, Mapping, Optional, Set

from tree_sitter import Node

from glimpse.categories import IdentifierCategory
from glimpse.config import COMPUTED_API, REACTIVE_APIS, REACTIVITY_APIS, REF_APIS
from glimpse.errors import ScriptParseError
from glimpse.models import ScriptIdentifiers
from glimpse.services.binding_types import BindingTypes
from glimpse.services.identifiers import IdentifierCollector, store_category_for
from glimpse.services.import_analysis import ImportAnalysis, analyze_imports, analyze_vue_imports
from glimpse.services.options_api.bindings import analyze_bindings_from_options
from glimpse.services.options_api.helpers import (
    find_component_definition,
    find_option,
    find_setup_function,
    iter_option_members,
    option_function,
    option_value,
    returned_objects,
)
from glimpse.services.syntax import (
    array_string_elements,
    byte_to_char_offset,
    call_arguments,
    callee_name,
    describe_syntax_error,
    first_syntax_error,
    is_function_node,
    is_static_node,
    iter_declarators,
    node_text,
    object_member_key,
    parse_script,
    string_value,
    unwrap_expression,
    walk_tree,
)

logger = logging.getLogger(__name__)

DEFAULT_OPTIONS_DEFINITION = "Defined in component options"

_PLACEHOLDER_CATEGORIES: Dict[BindingTypes, IdentifierCategory] = {
    BindingTypes.PROPS: IdentifierCategory.PROPS,
    BindingTypes.DATA: IdentifierCategory.REACTIVE,
    BindingTypes.SETUP_MAYBE_REF: IdentifierCategory.REF,
    BindingTypes.SETUP_REF: IdentifierCategory.REF,
    BindingTypes.OPTIONS: IdentifierCategory.LOCAL_STATE,
}

_ASSIGNMENT_NODE_TYPES = {"assignment_expression", "augmented_assignment_expression"}


def _option_definitions(component_def: Node) -> Dict[str, str]:
    """Source text of the option entry that declares each name."""
    definitions: Dict[str, str] = {}

    def record_members(container: Node, option: str) -> None:
        if container.type == "array":
            for element in container.named_children:
                name = string_value(element)
                if name:
                    definitions.setdefault(name, f"{option}: {node_text(element)}")
            return
        if container.type != "object":
            return
        for member in container.named_children:
            key = object_member_key(member)
            if key:
                definitions.setdefault(key, node_text(member).strip())

    for key, member in iter_option_members(component_def):
        if key in {"data", "setup"}:
            function = option_function(member)
            if function is not None:
                for returned in returned_objects(function):
                    record_members(returned, key)
            continue
        value = option_value(member)
        if value is not None and key in {"props", "inject", "computed", "methods"}:
            record_members(value, key)
    return definitions


def _setup_declarations(body: Node) -> Dict[str, tuple[Node, Optional[Node]]]:
    """Top-level declarations of a setup() body: name -> (statement, initializer)."""
    found: Dict[str, tuple[Node, Optional[Node]]] = {}
    for statement in body.named_children:
        if statement.type in {"lexical_declaration", "variable_declaration"}:
            for declarator in iter_declarators(statement):
                target = declarator.child_by_field_name("name")
                if target is not None and target.type == "identifier":
                    found[node_text(target)] = (
                        statement,
                        unwrap_expression(declarator.child_by_field_name("value")),
                    )
        elif statement.type in {"function_declaration", "generator_function_declaration"}:
            name = statement.child_by_field_name("name")
            if name is not None:
                found[node_text(name)] = (statement, statement)
    return found


def _reassigned_names(body: Node) -> Set[str]:
    names: Set[str] = set()
    for node in walk_tree(body):
        if node.type in _ASSIGNMENT_NODE_TYPES:
            left = node.child_by_field_name("left")
        elif node.type == "update_expression":
            left = node.child_by_field_name("argument")
        else:
            continue
        left = unwrap_expression(left)
        if left is not None and left.type == "identifier":
            names.add(node_text(left))
    return names


def _classify_initializer(init: Optional[Node], vue_aliases: Mapping[str, str]) -> Optional[IdentifierCategory]:
    """Category of a setup() value, or None when it cannot be told confidently."""
    if init is None:
        return None
    if init.type in {"function_declaration", "generator_function_declaration"} or is_function_node(init):
        return IdentifierCategory.METHODS
    callee = callee_name(init)
    if callee is not None:
        api = vue_aliases.get(callee)
        if api is None and callee in REACTIVITY_APIS:
            api = callee
        if api in REF_APIS:
            return IdentifierCategory.REF
        if api in REACTIVE_APIS:
            return IdentifierCategory.REACTIVE
        if api == COMPUTED_API:
            return IdentifierCategory.COMPUTED
        return None
    if is_static_node(init):
        return IdentifierCategory.LOCAL_STATE
    return None


def _refine_setup(
    component_def: Node,
    collector: IdentifierCollector,
    setup_names: Set[str],
    vue_aliases: Mapping[str, str],
) -> None:
    setup = find_setup_function(component_def)
    body = setup.child_by_field_name("body") if setup is not None else None
    if body is None or body.type != "statement_block":
        for name in setup_names:
            collector.release(name)
        return

    declarations = _setup_declarations(body)
    reassigned = _reassigned_names(body)

    # Returned key -> (object member, value expression); shorthand members have no value.
    returned_members: Dict[str, tuple[Node, Optional[Node]]] = {}
    for returned in returned_objects(setup):
        for member in returned.named_children:
            key = object_member_key(member)
            if not key:
                continue
            if member.type == "pair":
                returned_members[key] = (member, unwrap_expression(member.child_by_field_name("value")))
            elif member.type == "method_definition":
                returned_members[key] = (member, member)
            else:
                returned_members[key] = (member, None)

    for name in sorted(setup_names):
        member, value = returned_members.get(name, (None, None))
        local = name
        if value is not None and value.type == "identifier":
            local = node_text(value)
            value = None

        if value is not None:
            definition = node_text(member).strip()
            category = (
                IdentifierCategory.METHODS if value.type == "method_definition"
                else _classify_initializer(value, vue_aliases)
            )
        else:
            declared = declarations.get(local)
            if declared is None or local in reassigned:
                category = None
                definition = ""
            else:
                statement, init = declared
                definition = node_text(statement).strip()
                category = _classify_initializer(init, vue_aliases)

        collector.release(name)
        if category is None:
            logger.debug("Dropping setup() binding %s: initializer not recognised", name)
            continue
        collector.claim(name, category, definition)


def _spread_call(member: Node) -> Optional[Node]:
    if member.type != "spread_element" or not member.named_children:
        return None
    call = unwrap_expression(member.named_children[0])
    if call is None or call.type != "call_expression":
        return None
    return call


def _first_array_argument(call: Node) -> Optional[Node]:
    for arg in call_arguments(call):
        arg = unwrap_expression(arg)
        if arg is not None and arg.type == "array":
            return arg
    return None


def _refine_section(
    component_def: Node,
    option: str,
    target: IdentifierCategory,
    collector: IdentifierCollector,
    imports: ImportAnalysis,
) -> None:
    member = find_option(component_def, option)
    value = option_value(member) if member is not None else None
    if value is None or value.type != "object":
        return

    for member in value.named_children:
        key = object_member_key(member)
        if key:
            collector.move(key, IdentifierCategory.LOCAL_STATE, target)
            continue

        call = _spread_call(member)
        if call is None:
            continue
        array = _first_array_argument(call)
        if array is None:
            continue

        if target == IdentifierCategory.COMPUTED:
            callee = callee_name(call)
            category = store_category_for(callee, imports) if callee else IdentifierCategory.STORE
        else:
            category = target

        definition = node_text(member).strip()
        for name in array_string_elements(array):
            if not collector.move(name, IdentifierCategory.LOCAL_STATE, category):
                collector.claim(name, category, definition)
            logger.debug("Options API: %s from %s", name, callee_name(call))


def classify_options(
    component_def: Node,
    imports: Optional[ImportAnalysis] = None,
    vue_aliases: Optional[Mapping[str, str]] = None,
) -> ScriptIdentifiers:
    """Classify the bindings of an options-API component object."""
    imports = imports if imports is not None else ImportAnalysis()
    vue_aliases = vue_aliases or {}

    bindings = analyze_bindings_from_options(component_def)
    definitions = _option_definitions(component_def)
    logger.debug("Options API base bindings: %s", bindings)

    collector = IdentifierCollector()
    setup_names: Set[str] = set()
    for name, binding in bindings.items():
        category = _PLACEHOLDER_CATEGORIES.get(binding)
        if category is None:
            continue
        if collector.claim(name, category, definitions.get(name, DEFAULT_OPTIONS_DEFINITION)):
            if binding == BindingTypes.SETUP_MAYBE_REF:
                setup_names.add(name)

    _refine_setup(component_def, collector, setup_names, vue_aliases)
    _refine_section(component_def, "computed", IdentifierCategory.COMPUTED, collector, imports)
    _refine_section(component_def, "methods", IdentifierCategory.METHODS, collector, imports)

    return collector.build()


def analyze_options_api(
    content: str,
    lang: Optional[str] = None,
    import_analysis: Optional[ImportAnalysis] = None,
) -> ScriptIdentifiers:
    """
    Classify a plain `<script>` component.

    Raises `ScriptParseError` when the script does not parse; a script without a
    component object yields empty identifiers.
    """
    tree = parse_script(content, lang)
    root = tree.root_node
    error = first_syntax_error(root)
    if error is not None:
        source = content.encode("utf-8")
        raise ScriptParseError(
            describe_syntax_error(source, error),
            offset=byte_to_char_offset(source, error.start_byte),
        )

    component_def = find_component_definition(root)
    if component_def is None:
        logger.debug("Options API: no component definition found")
        return ScriptIdentifiers()

    imports = import_analysis if import_analysis is not None else analyze_imports(root)
    identifiers = classify_options(component_def, imports, analyze_vue_imports(root))
    logger.debug(
        "Options API classified: %s",
        {category.value: sorted(names) for category, names in identifiers.items() if names},
    )
    return identifiers
