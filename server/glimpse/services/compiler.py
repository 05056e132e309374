from __future__ import annotations

import itertools
import logging
import threading
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Set

from tree_sitter import Node, Tree

from glimpse.config import (
    EMITS_MACRO,
    MODEL_MACRO,
    PROPS_MACRO,
    VUE_MODULE,
    WITH_DEFAULTS_MACRO,
)
from glimpse.errors import ScriptCompileError
from glimpse.services.binding_types import BindingMetadata, BindingTypes
from glimpse.services.options_api.bindings import (
    analyze_bindings_from_options,
    object_or_array_keys,
)
from glimpse.services.options_api.helpers import find_component_definition
from glimpse.services.sfc_parser import SFCBlock, SFCDescriptor
from glimpse.services.syntax import (
    byte_to_char_offset,
    call_arguments,
    callee_name,
    collect_pattern_identifiers,
    declaration_kind,
    describe_syntax_error,
    first_syntax_error,
    is_call_of,
    is_literal_node,
    is_static_node,
    iter_declarators,
    node_text,
    parse_script,
    resolve_object_key,
    string_value,
    unwrap_expression,
)

logger = logging.getLogger(__name__)

# Calls whose result is a ref once the matching API is imported from `vue`.
_REF_PRODUCING_APIS = ("ref", "computed", "shallowRef", "customRef", "toRef")

_CONST_MACROS = {PROPS_MACRO, EMITS_MACRO, WITH_DEFAULTS_MACRO, "defineSlots"}

_CONST_DECLARATIONS = {
    "function_declaration",
    "generator_function_declaration",
    "class_declaration",
    "abstract_class_declaration",
    "enum_declaration",
}

_TYPE_DECLARATIONS = {"interface_declaration", "type_alias_declaration"}

# Expressions that evaluate to a fresh non-ref value.
_NEVER_REF_NODES = {
    "unary_expression",
    "binary_expression",
    "array",
    "object",
    "function_expression",
    "function",
    "arrow_function",
    "update_expression",
    "class",
}

# Utility types that keep the keys of their first type argument.
_KEY_PRESERVING_TYPES = {"Partial", "Required", "Readonly"}


@dataclass
class SFCScriptCompileResult:
    id: str
    bindings: BindingMetadata
    lang: Optional[str] = None
    setup: bool = False
    # Local name -> prop key for destructured props bound under another name.
    props_aliases: Dict[str, str] = field(default_factory=dict)


@dataclass
class _UserImport:
    local: str
    imported: str  # "default", "*" or the exported name
    source: str
    is_type: bool


def _parse_block(block: SFCBlock, lang: Optional[str]) -> Tree:
    tree = parse_script(block.content, lang)
    error = first_syntax_error(tree.root_node)
    if error is not None:
        source = block.content.encode("utf-8")
        offset = block.start + byte_to_char_offset(source, error.start_byte)
        raise ScriptCompileError(
            f"[<script{' setup' if block.setup else ''}>] {describe_syntax_error(source, error)}",
            offset=offset,
        )
    return tree


def _has_keyword(node: Node, keyword: str) -> bool:
    return any(c.type == keyword for c in node.children)


def _collect_user_imports(root: Node) -> List[_UserImport]:
    imports: List[_UserImport] = []
    for statement in root.named_children:
        if statement.type != "import_statement":
            continue
        source = string_value(statement.child_by_field_name("source"))
        if source is None:
            continue
        statement_is_type = _has_keyword(statement, "type")

        for clause in statement.named_children:
            if clause.type != "import_clause":
                continue
            for part in clause.named_children:
                if part.type == "identifier":
                    imports.append(_UserImport(node_text(part), "default", source, statement_is_type))
                elif part.type == "namespace_import":
                    for ident in part.named_children:
                        if ident.type == "identifier":
                            imports.append(_UserImport(node_text(ident), "*", source, statement_is_type))
                elif part.type == "named_imports":
                    for spec in part.named_children:
                        if spec.type != "import_specifier":
                            continue
                        name = spec.child_by_field_name("name")
                        alias = spec.child_by_field_name("alias")
                        if name is None:
                            continue
                        imported = string_value(name) if name.type == "string" else node_text(name)
                        local = node_text(alias) if alias is not None else imported
                        imports.append(
                            _UserImport(
                                local,
                                imported or "",
                                source,
                                statement_is_type or _has_keyword(spec, "type"),
                            )
                        )
    return imports


def _import_binding_type(entry: _UserImport) -> BindingTypes:
    if (
        entry.imported == "*"
        or (entry.imported == "default" and entry.source.endswith(".vue"))
        or entry.source == VUE_MODULE
    ):
        return BindingTypes.SETUP_CONST
    return BindingTypes.SETUP_MAYBE_REF


def _can_never_be_ref(node: Optional[Node], reactive_alias: Optional[str]) -> bool:
    node = unwrap_expression(node)
    if node is None:
        return False
    if reactive_alias and is_call_of(node, reactive_alias):
        return True
    if node.type in _NEVER_REF_NODES:
        return True
    if node.type == "sequence_expression":
        parts = node.named_children
        return bool(parts) and _can_never_be_ref(parts[-1], reactive_alias)
    return is_literal_node(node)


def _is_props_call(node: Optional[Node]) -> bool:
    """`defineProps()` either bare or wrapped in `withDefaults()`."""
    node = unwrap_expression(node)
    if is_call_of(node, PROPS_MACRO):
        return True
    if is_call_of(node, WITH_DEFAULTS_MACRO):
        args = call_arguments(node)
        return bool(args) and is_call_of(args[0], PROPS_MACRO)
    return False


class _ScriptContext:
    """Mutable state of one compilation: imports, local types, macro declarations."""

    def __init__(self, lang: Optional[str]):
        self.lang = lang
        self.user_imports: Dict[str, _UserImport] = {}
        self.vue_aliases: Dict[str, str] = {}  # imported name -> local name
        self.type_declarations: Dict[str, Node] = {}
        self.prop_keys: List[str] = []
        self.model_keys: List[str] = []
        self.destructured_props: Dict[str, str] = {}  # local -> key
        self.props_rest: Optional[str] = None
        self.has_define_props = False
        self.has_define_emits = False
        self.script_bindings: BindingMetadata = {}
        self.setup_bindings: BindingMetadata = {}

    def register_imports(self, root: Node) -> None:
        for entry in _collect_user_imports(root):
            self.user_imports[entry.local] = entry
            if entry.source == VUE_MODULE and not entry.is_type:
                self.vue_aliases[entry.imported] = entry.local

    def register_types(self, root: Node) -> None:
        for statement in root.named_children:
            declaration = statement
            if statement.type == "export_statement":
                declaration = statement.child_by_field_name("declaration")
            if declaration is None or declaration.type not in _TYPE_DECLARATIONS:
                continue
            name = declaration.child_by_field_name("name")
            if name is not None:
                self.type_declarations[node_text(name)] = declaration

    # --- Declarations ---

    def walk_declaration(self, statement: Node, bindings: BindingMetadata) -> None:
        if statement.type in _CONST_DECLARATIONS:
            name = statement.child_by_field_name("name")
            if name is not None:
                bindings[node_text(name)] = BindingTypes.SETUP_CONST
            return

        is_const = declaration_kind(statement) == "const"
        declarators = list(iter_declarators(statement))
        is_all_literal = is_const and all(
            (d.child_by_field_name("name") is not None)
            and d.child_by_field_name("name").type == "identifier"
            and is_static_node(unwrap_expression(d.child_by_field_name("value")))
            for d in declarators
        )
        reactive_alias = self.vue_aliases.get("reactive")
        ref_aliases = {self.vue_aliases[api] for api in _REF_PRODUCING_APIS if api in self.vue_aliases}
        ref_aliases.add(MODEL_MACRO)

        for declarator in declarators:
            target = declarator.child_by_field_name("name")
            init = unwrap_expression(declarator.child_by_field_name("value"))
            if target is None:
                continue
            is_const_macro = is_const and is_call_of(init, _CONST_MACROS)

            if target.type == "identifier":
                name = node_text(target)
                if is_all_literal or (is_const and is_static_node(init)):
                    binding = BindingTypes.LITERAL_CONST
                elif reactive_alias and is_call_of(init, reactive_alias):
                    binding = BindingTypes.SETUP_REACTIVE_CONST if is_const else BindingTypes.SETUP_LET
                elif is_const_macro or (is_const and _can_never_be_ref(init, reactive_alias)):
                    binding = (
                        BindingTypes.SETUP_REACTIVE_CONST
                        if _is_props_call(init)
                        else BindingTypes.SETUP_CONST
                    )
                elif is_const:
                    if is_call_of(init, ref_aliases):
                        binding = BindingTypes.SETUP_REF
                    else:
                        binding = BindingTypes.SETUP_MAYBE_REF
                else:
                    binding = BindingTypes.SETUP_LET
                bindings[name] = binding
                continue

            # Destructured props are registered by the props pass.
            if _is_props_call(init):
                continue

            if is_const_macro:
                pattern_binding = BindingTypes.SETUP_CONST
            elif is_const:
                pattern_binding = BindingTypes.SETUP_MAYBE_REF
            else:
                pattern_binding = BindingTypes.SETUP_LET
            for ident in collect_pattern_identifiers(target):
                bindings[node_text(ident)] = pattern_binding

    def walk_script(self, root: Node) -> None:
        for statement in root.named_children:
            declaration = statement
            if statement.type == "export_statement":
                declaration = statement.child_by_field_name("declaration")
                if declaration is None:
                    continue
            if declaration.type in _CONST_DECLARATIONS or declaration.type in {
                "lexical_declaration",
                "variable_declaration",
            }:
                self.walk_declaration(declaration, self.script_bindings)

    def walk_setup(self, root: Node, block: SFCBlock) -> None:
        source = block.content.encode("utf-8")

        def offset_of(node: Node) -> int:
            return block.start + byte_to_char_offset(source, node.start_byte)

        for statement in root.named_children:
            if statement.type == "export_statement":
                if not self._is_type_export(statement):
                    raise ScriptCompileError(
                        "<script setup> cannot contain ES module exports. If you are using a "
                        "previous version of <script setup>, please consult the updated RFC.",
                        offset=offset_of(statement),
                    )
                continue

            if statement.type == "expression_statement":
                expression = unwrap_expression(statement.named_children[0]) if statement.named_children else None
                self._process_macros(expression, None, offset_of)
                continue

            if statement.type in {"lexical_declaration", "variable_declaration"}:
                for declarator in iter_declarators(statement):
                    self._process_macros(
                        unwrap_expression(declarator.child_by_field_name("value")),
                        declarator.child_by_field_name("name"),
                        offset_of,
                    )
                self.walk_declaration(statement, self.setup_bindings)
                continue

            if statement.type in _CONST_DECLARATIONS:
                self.walk_declaration(statement, self.setup_bindings)

    def _is_type_export(self, statement: Node) -> bool:
        declaration = statement.child_by_field_name("declaration")
        if declaration is not None:
            return declaration.type in _TYPE_DECLARATIONS
        # `export type { Foo } from './types'`
        return _has_keyword(statement, "type")

    # --- Macros ---

    def _process_macros(self, expression: Optional[Node], target: Optional[Node], offset_of) -> None:
        if expression is None:
            return
        name = callee_name(expression)
        if name == WITH_DEFAULTS_MACRO:
            args = call_arguments(expression)
            if not args or not is_call_of(args[0], PROPS_MACRO):
                raise ScriptCompileError(
                    "withDefaults' first argument must be a defineProps call.",
                    offset=offset_of(expression),
                )
            self._process_define_props(unwrap_expression(args[0]), target, offset_of)
        elif name == PROPS_MACRO:
            self._process_define_props(expression, target, offset_of)
        elif name == EMITS_MACRO:
            if self.has_define_emits:
                raise ScriptCompileError("duplicate defineEmits() call", offset=offset_of(expression))
            self.has_define_emits = True
        elif name == MODEL_MACRO:
            args = call_arguments(expression)
            model_name = string_value(unwrap_expression(args[0])) if args else None
            model_name = model_name or "modelValue"
            if model_name in self.model_keys:
                raise ScriptCompileError(f"duplicate model name {model_name!r}", offset=offset_of(expression))
            self.model_keys.append(model_name)

    def _process_define_props(self, call: Node, target: Optional[Node], offset_of) -> None:
        if self.has_define_props:
            raise ScriptCompileError("duplicate defineProps() call", offset=offset_of(call))
        self.has_define_props = True

        args = call_arguments(call)
        type_arguments = call.child_by_field_name("type_arguments")
        if args and type_arguments is not None:
            raise ScriptCompileError(
                "defineProps() cannot accept both type and non-type arguments at the same time. "
                "Use one or the other.",
                offset=offset_of(call),
            )

        if type_arguments is not None:
            type_nodes = [c for c in type_arguments.named_children if c.type != "comment"]
            if type_nodes:
                self.prop_keys.extend(self._type_keys(type_nodes[0], set()))
        elif args:
            self.prop_keys.extend(object_or_array_keys(unwrap_expression(args[0])))

        if target is not None and target.type == "object_pattern":
            self._process_props_destructure(target)

    def _process_props_destructure(self, pattern: Node) -> None:
        for element in pattern.named_children:
            if element.type == "shorthand_property_identifier_pattern":
                name = node_text(element)
                self.destructured_props[name] = name
            elif element.type == "object_assignment_pattern":
                left = element.child_by_field_name("left")
                if left is not None:
                    name = node_text(left)
                    self.destructured_props[name] = name
            elif element.type == "pair_pattern":
                key = resolve_object_key(element.child_by_field_name("key"))
                value = element.child_by_field_name("value")
                if value is not None and value.type == "assignment_pattern":
                    value = value.child_by_field_name("left")
                if key and value is not None and value.type == "identifier":
                    self.destructured_props[node_text(value)] = key
            elif element.type == "rest_pattern":
                for ident in collect_pattern_identifiers(element):
                    self.props_rest = node_text(ident)

    def _type_keys(self, node: Optional[Node], seen: Set[str]) -> List[str]:
        if node is None:
            return []
        kind = node.type
        if kind in {"object_type", "interface_body"}:
            keys: List[str] = []
            for member in node.named_children:
                if member.type in {"property_signature", "method_signature"}:
                    key = resolve_object_key(member.child_by_field_name("name"))
                    if key:
                        keys.append(key)
            return keys
        if kind in {"intersection_type", "union_type", "parenthesized_type"}:
            keys = []
            for child in node.named_children:
                for key in self._type_keys(child, seen):
                    if key not in keys:
                        keys.append(key)
            return keys
        if kind == "type_identifier":
            return self._declared_type_keys(node_text(node), seen)
        if kind == "generic_type":
            name_node = node.child_by_field_name("name")
            name = node_text(name_node) if name_node is not None else ""
            if name in _KEY_PRESERVING_TYPES:
                arguments = node.child_by_field_name("type_arguments")
                if arguments is not None and arguments.named_children:
                    return self._type_keys(arguments.named_children[0], seen)
                return []
            return self._declared_type_keys(name, seen)
        return []

    def _declared_type_keys(self, name: str, seen: Set[str]) -> List[str]:
        declaration = self.type_declarations.get(name)
        if declaration is None or name in seen:
            logger.debug("Props type %s is not declared locally; skipping", name)
            return []
        seen = seen | {name}
        if declaration.type == "type_alias_declaration":
            return self._type_keys(declaration.child_by_field_name("value"), seen)

        keys: List[str] = []
        for child in declaration.named_children:
            if child.type == "extends_type_clause":
                for base in child.named_children:
                    keys.extend(k for k in self._type_keys(base, seen) if k not in keys)
        keys.extend(k for k in self._type_keys(declaration.child_by_field_name("body"), seen) if k not in keys)
        return keys

    # --- Result ---

    def binding_metadata(self) -> BindingMetadata:
        bindings: BindingMetadata = {}
        for local, entry in self.user_imports.items():
            if entry.is_type:
                continue
            bindings[local] = _import_binding_type(entry)
        bindings.update(self.script_bindings)
        bindings.update(self.setup_bindings)

        for key in self.prop_keys:
            bindings[key] = BindingTypes.PROPS
        for key in self.model_keys:
            bindings[key] = BindingTypes.PROPS
        for local, key in self.destructured_props.items():
            bindings[local] = BindingTypes.PROPS if local == key else BindingTypes.PROPS_ALIASED
        if self.props_rest:
            bindings[self.props_rest] = BindingTypes.SETUP_REACTIVE_CONST
        return bindings


def compile_script(descriptor: SFCDescriptor, *, id: str) -> SFCScriptCompileResult:
    """
    Infer the bindings a component exposes to its template.

    Components with `<script setup>` get Vue's setup binding rules (the companion
    `<script>` contributes its imports, declarations and options); plain `<script>`
    components get the bindings of their options object.
    """
    script = descriptor.script
    setup = descriptor.script_setup
    if script is None and setup is None:
        raise ScriptCompileError(f"[{descriptor.filename}] SFC contains no <script> tags.")
    if script is not None and setup is not None and (script.lang or None) != (setup.lang or None):
        raise ScriptCompileError("<script> and <script setup> must have the same language type.")

    lang = setup.lang if setup is not None else script.lang

    if setup is None:
        tree = _parse_block(script, lang)
        component = find_component_definition(tree)
        bindings = analyze_bindings_from_options(component) if component is not None else {}
        return SFCScriptCompileResult(id=id, bindings=bindings, lang=lang, setup=False)

    ctx = _ScriptContext(lang)
    option_bindings: BindingMetadata = {}
    script_tree = _parse_block(script, lang) if script is not None else None
    setup_tree = _parse_block(setup, lang)

    if script_tree is not None:
        component = find_component_definition(script_tree)
        if component is not None:
            option_bindings = analyze_bindings_from_options(component)
        ctx.register_imports(script_tree.root_node)
        ctx.register_types(script_tree.root_node)
    ctx.register_imports(setup_tree.root_node)
    ctx.register_types(setup_tree.root_node)

    if script_tree is not None:
        ctx.walk_script(script_tree.root_node)
    ctx.walk_setup(setup_tree.root_node, setup)

    bindings = dict(option_bindings)
    bindings.update(ctx.binding_metadata())
    aliases = {local: key for local, key in ctx.destructured_props.items() if local != key}

    logger.debug("Compiled %s (%s): %d bindings", descriptor.filename, id, len(bindings))
    return SFCScriptCompileResult(
        id=id,
        bindings=bindings,
        lang=lang,
        setup=True,
        props_aliases=aliases,
    )


class BindingOracle:
    """
    Thin adapter over `compile_script` that hands out a fresh compilation id per
    call. Compilation failures are not caught here.
    """

    def __init__(self, prefix: str = "glimpse"):
        self._prefix = prefix
        self._counter = itertools.count(1)
        self._lock = threading.Lock()

    def next_id(self) -> str:
        with self._lock:
            return f"{self._prefix}-{next(self._counter)}"

    def compile(self, descriptor: SFCDescriptor) -> BindingMetadata:
        return compile_script(descriptor, id=self.next_id()).bindings
