from __future__ import annotations

from typing import Iterable, Iterator, List, Optional, Set

from tree_sitter import Language, Node, Parser, Tree
import tree_sitter_javascript as tsjavascript
import tree_sitter_typescript as tstypescript


# Load TypeScript, TSX and JavaScript grammars
TYPESCRIPT_LANGUAGE = Language(tstypescript.language_typescript())
TSX_LANGUAGE = Language(tstypescript.language_tsx())
JAVASCRIPT_LANGUAGE = Language(tsjavascript.language())

_TYPESCRIPT_LANGS: Set[str] = {"ts", "mts", "cts", "typescript"}
_TSX_LANGS: Set[str] = {"tsx"}

FUNCTION_NODE_TYPES: Set[str] = {
    "function_expression",
    "function",
    "arrow_function",
    "generator_function",
}

DECLARATION_NODE_TYPES: Set[str] = {"lexical_declaration", "variable_declaration"}

# Wrappers that do not change which value an expression evaluates to.
_TRANSPARENT_EXPRESSIONS: Set[str] = {
    "parenthesized_expression",
    "as_expression",
    "satisfies_expression",
    "non_null_expression",
    "type_assertion",
}

_LITERAL_NODE_TYPES: Set[str] = {
    "string",
    "number",
    "true",
    "false",
    "null",
    "undefined",
}


def language_for(lang: Optional[str]) -> Language:
    lang = (lang or "").lower()
    if lang in _TYPESCRIPT_LANGS:
        return TYPESCRIPT_LANGUAGE
    if lang in _TSX_LANGS:
        return TSX_LANGUAGE
    return JAVASCRIPT_LANGUAGE


def parse_script(content: str, lang: Optional[str] = None) -> Tree:
    parser = Parser(language_for(lang))
    return parser.parse(content.encode("utf-8"))


def parse_typescript(content: str) -> Tree:
    parser = Parser(TYPESCRIPT_LANGUAGE)
    return parser.parse(content.encode("utf-8"))


def root_of(tree_or_node: Tree | Node) -> Node:
    if isinstance(tree_or_node, Tree):
        return tree_or_node.root_node
    return tree_or_node


def node_text(node: Optional[Node]) -> str:
    if node is None or node.text is None:
        return ""
    return node.text.decode("utf-8", errors="ignore")


def byte_to_char_offset(data: bytes, byte_offset: int) -> int:
    return len(data[:byte_offset].decode("utf-8", errors="ignore"))


def first_syntax_error(node: Node) -> Optional[Node]:
    """Return the first ERROR or missing node below `node`, in document order."""
    if not node.has_error:
        return None
    if node.type == "ERROR" or node.is_missing:
        return node
    for child in node.children:
        found = first_syntax_error(child)
        if found is not None:
            return found
    return node


def describe_syntax_error(source: bytes, node: Node) -> str:
    line = node.start_point.row + 1
    column = node.start_point.column + 1
    if node.is_missing:
        return f"Missing '{node.type}' at {line}:{column}"
    snippet = source[node.start_byte : node.end_byte].decode("utf-8", errors="ignore")
    snippet = snippet.strip().splitlines()[0] if snippet.strip() else ""
    return f"Unexpected token at {line}:{column}: {snippet[:40]!r}"


def unwrap_expression(node: Optional[Node]) -> Optional[Node]:
    while node is not None and node.type in _TRANSPARENT_EXPRESSIONS:
        inner = node.named_children[0] if node.named_children else None
        if inner is None:
            break
        node = inner
    return node


def callee_name(node: Optional[Node]) -> Optional[str]:
    """Name of a plain identifier callee, e.g. `computed` for `computed(() => 1)`."""
    node = unwrap_expression(node)
    if node is None or node.type != "call_expression":
        return None
    function = node.child_by_field_name("function")
    if function is None or function.type != "identifier":
        return None
    return node_text(function)


def is_call_of(node: Optional[Node], names: str | Iterable[str]) -> bool:
    name = callee_name(node)
    if name is None:
        return False
    if isinstance(names, str):
        return name == names
    return name in set(names)


def call_arguments(node: Node) -> List[Node]:
    node = unwrap_expression(node)
    args = node.child_by_field_name("arguments") if node is not None else None
    if args is None:
        return []
    return [c for c in args.named_children if c.type != "comment"]


def is_function_node(node: Optional[Node]) -> bool:
    node = unwrap_expression(node)
    return node is not None and node.type in FUNCTION_NODE_TYPES


def declaration_kind(statement: Node) -> Optional[str]:
    """`const`, `let` or `var` for a lexical/variable declaration statement."""
    for child in statement.children:
        if child.type in {"const", "let", "var"}:
            return child.type
    return None


def iter_declarators(statement: Node) -> Iterator[Node]:
    for child in statement.named_children:
        if child.type == "variable_declarator":
            yield child


def top_level_statements(root: Node) -> Iterator[Node]:
    for child in root.named_children:
        if child.type == "comment":
            continue
        yield child


def string_value(node: Optional[Node]) -> Optional[str]:
    """Value of a string literal (or a template string without substitutions)."""
    if node is None:
        return None
    if node.type == "string":
        return node_text(node)[1:-1]
    if node.type == "template_string":
        if any(c.type == "template_substitution" for c in node.named_children):
            return None
        return node_text(node)[1:-1]
    return None


def is_literal_node(node: Optional[Node]) -> bool:
    node = unwrap_expression(node)
    if node is None:
        return False
    if node.type in _LITERAL_NODE_TYPES or node.type in {"regex", "template_string"}:
        return True
    return False


def is_static_node(node: Optional[Node]) -> bool:
    """True when the expression only combines literal values."""
    if node is None:
        return False
    if node.type == "parenthesized_expression":
        return all(is_static_node(c) for c in node.named_children)
    if node.type == "unary_expression":
        argument = node.child_by_field_name("argument")
        return is_static_node(argument)
    if node.type == "binary_expression":
        return is_static_node(node.child_by_field_name("left")) and is_static_node(
            node.child_by_field_name("right")
        )
    if node.type == "ternary_expression":
        return all(is_static_node(c) for c in node.named_children)
    if node.type == "sequence_expression":
        return all(is_static_node(c) for c in node.named_children)
    if node.type == "template_string":
        return all(
            is_static_node(sub.named_children[0]) if sub.named_children else True
            for sub in node.named_children
            if sub.type == "template_substitution"
        )
    return node.type in _LITERAL_NODE_TYPES and node.type != "undefined"


def resolve_object_key(key: Optional[Node]) -> Optional[str]:
    """Static name of an object key, or None for computed keys."""
    if key is None:
        return None
    if key.type in {"property_identifier", "identifier", "private_property_identifier"}:
        return node_text(key)
    if key.type == "number":
        return node_text(key)
    if key.type == "string":
        return string_value(key)
    return None


def object_member_key(member: Node) -> Optional[str]:
    if member.type == "pair":
        return resolve_object_key(member.child_by_field_name("key"))
    if member.type == "method_definition":
        return resolve_object_key(member.child_by_field_name("name"))
    if member.type == "shorthand_property_identifier":
        return node_text(member)
    return None


def object_keys(node: Node) -> List[str]:
    keys: List[str] = []
    for member in node.named_children:
        key = object_member_key(member)
        if key:
            keys.append(key)
    return keys


def array_string_elements(node: Node) -> List[str]:
    values: List[str] = []
    for element in node.named_children:
        value = string_value(element)
        if value is not None:
            values.append(value)
    return values


def collect_pattern_identifiers(node: Node) -> List[Node]:
    """
    Collect the binding identifiers introduced by a declaration/parameter pattern.

    Handles plain identifiers, object/array destructuring, defaults and rest
    elements for both the TypeScript and JavaScript grammars. Default values,
    object keys and type annotations never introduce bindings.
    """
    idents: List[Node] = []

    def walk(x: Node) -> None:
        if x.type in {"identifier", "shorthand_property_identifier_pattern"}:
            idents.append(x)
            return

        # For `{ key: value }` patterns, only the value side introduces bindings.
        if x.type == "pair_pattern":
            value = x.child_by_field_name("value")
            if value is not None:
                walk(value)
            return

        # `{ a = 1 }` / `[a = 1]` / `(a = 1) =>`: only the left side binds.
        if x.type in {"object_assignment_pattern", "assignment_pattern"}:
            left = x.child_by_field_name("left")
            if left is not None:
                walk(left)
            return

        # TS parameters: `a: number = 1` keeps its binding in the `pattern` field.
        if x.type in {"required_parameter", "optional_parameter"}:
            pattern = x.child_by_field_name("pattern")
            if pattern is not None:
                walk(pattern)
            return

        if x.type in {
            "type_annotation",
            "member_expression",
            "subscript_expression",
            "call_expression",
            "property_identifier",
            "accessibility_modifier",
            "comment",
        }:
            return

        for c in x.named_children:
            walk(c)

    walk(node)
    return idents


def function_parameter_names(function: Node) -> List[str]:
    function = unwrap_expression(function)
    if function is None:
        return []
    single = function.child_by_field_name("parameter")
    if single is not None:
        return [node_text(single)]
    params = function.child_by_field_name("parameters")
    if params is None:
        return []
    return [node_text(n) for n in collect_pattern_identifiers(params)]


def enclosing_statement(node: Node) -> Node:
    """Walk up to the statement owning `node` (a direct child of the program)."""
    current = node
    while current.parent is not None and current.parent.type not in {"program", "statement_block"}:
        current = current.parent
    return current


def walk_tree(node: Node) -> Iterator[Node]:
    yield node
    for child in node.children:
        yield from walk_tree(child)
