from __future__ import annotations

import logging
from typing import Dict, FrozenSet, Iterator, List, Optional, Set

from tree_sitter import Node

from glimpse.categories import CATEGORY_PRIORITY, VUE_BUILTIN_HANDLERS, IdentifierCategory
from glimpse.errors import OffsetOutOfRangeError
from glimpse.models import AnalysisResult, IdentifierRange, ScriptIdentifiers
from glimpse.services.document import TextDocument
from glimpse.services.sfc_parser import (
    DirectiveNode,
    ElementNode,
    InterpolationNode,
    RootNode,
    SimpleExpressionNode,
    TemplateChildNode,
)
from glimpse.services.syntax import (
    FUNCTION_NODE_TYPES,
    byte_to_char_offset,
    function_parameter_names,
    node_text,
    parse_typescript,
    walk_tree,
)

logger = logging.getLogger(__name__)

BUILTIN_SIGIL = "$"

_CANDIDATE_NODE_TYPES = {"identifier", "shorthand_property_identifier"}
_SKIPPED_NODE_TYPES = {"type_annotation", "type_arguments", "comment"}


def pattern_names(content: str) -> Set[str]:
    """
    Names bound by a template binding pattern such as a `v-for` alias or slot
    props: `item`, `{ id, name }`, `[first, ...rest]`.
    """
    if not content.strip():
        return set()
    tree = parse_typescript(f"({content}) => 0")
    for node in walk_tree(tree.root_node):
        if node.type == "arrow_function":
            return set(function_parameter_names(node))
    return set()


def _parse_expression(content: str) -> tuple[Node, bytes, int]:
    """
    Parse a template expression, returning `(root, source, shift)`.

    Expressions are parsed wrapped in parentheses so object literals read as
    expressions; statement lists (`a = 1; b()`) fall back to the raw text.
    """
    wrapped = f"({content})"
    source = wrapped.encode("utf-8")
    tree = parse_typescript(wrapped)
    if not tree.root_node.has_error:
        return tree.root_node, source, 1
    source = content.encode("utf-8")
    return parse_typescript(content).root_node, source, 0


def iter_free_identifiers(node: Node, local: FrozenSet[str] = frozenset()) -> Iterator[Node]:
    """
    Yield identifier nodes that reference something outside the expression.

    Only the base of a property chain counts (`a` in `a.b.c`), and parameters of
    arrow/function expressions are local to their bodies.
    """
    kind = node.type
    if kind in _CANDIDATE_NODE_TYPES:
        if node_text(node) not in local:
            yield node
        return
    if kind in _SKIPPED_NODE_TYPES:
        return
    if kind == "member_expression":
        obj = node.child_by_field_name("object")
        if obj is not None:
            yield from iter_free_identifiers(obj, local)
        return
    if kind in FUNCTION_NODE_TYPES:
        inner = local | frozenset(function_parameter_names(node))
        body = node.child_by_field_name("body")
        if body is not None:
            yield from iter_free_identifiers(body, inner)
        return
    for child in node.named_children:
        yield from iter_free_identifiers(child, local)


class TemplateOccurrenceResolver:
    """
    Walks a template AST and records a range for every occurrence of a
    classified script identifier.
    """

    def __init__(self, identifiers: ScriptIdentifiers, document: TextDocument):
        self.identifiers = identifiers
        self.document = document
        self.ranges: Dict[IdentifierCategory, List[IdentifierRange]] = {c: [] for c in CATEGORY_PRIORITY}

    def resolve(self, root: RootNode) -> Dict[IdentifierCategory, List[IdentifierRange]]:
        for child in root.children:
            self._visit(child, frozenset())
        return self.ranges

    def _visit(self, node: TemplateChildNode, scope: FrozenSet[str]) -> None:
        if isinstance(node, InterpolationNode):
            self._scan(node.content, scope)
            return
        if not isinstance(node, ElementNode):
            return
        if any(d.name == "pre" for d in node.directives()):
            return

        element_scope = scope
        for_directive = node.find_directive("for")
        if for_directive is not None and for_directive.for_parse_result is not None:
            parsed = for_directive.for_parse_result
            self._scan(parsed.source, scope)
            names: Set[str] = set()
            for alias in parsed.aliases():
                names |= pattern_names(alias.content)
            element_scope = scope | frozenset(names)

        child_scope = element_scope
        slot_directive = node.find_directive("slot")
        if slot_directive is not None and slot_directive.exp is not None:
            child_scope = element_scope | frozenset(pattern_names(slot_directive.exp.content))

        for directive in node.directives():
            self._scan_directive(directive, element_scope)

        for child in node.children:
            self._visit(child, child_scope)

    def _scan_directive(self, directive: DirectiveNode, scope: FrozenSet[str]) -> None:
        if directive.arg is not None and not directive.arg.is_static:
            self._scan(directive.arg, scope)
        # The v-for source is scanned with the outer scope; slot props are a pattern.
        if directive.name in {"for", "slot"} or directive.exp is None:
            return
        self._scan(directive.exp, scope)

    def _scan(self, exp: SimpleExpressionNode, scope: FrozenSet[str]) -> None:
        if not exp.content.strip():
            return
        root, source, shift = _parse_expression(exp.content)
        for ident in iter_free_identifiers(root):
            name = node_text(ident)
            start = exp.offset + byte_to_char_offset(source, ident.start_byte) - shift
            self._record(name, start, scope)

    def _category_for(self, name: str, scope: FrozenSet[str]) -> Optional[IdentifierCategory]:
        if name.startswith(BUILTIN_SIGIL) and name not in self.identifiers:
            return VUE_BUILTIN_HANDLERS.get(name)
        if name in scope:
            return None
        for category in CATEGORY_PRIORITY:
            if name in self.identifiers.get(category):
                return category
        return None

    def _record(self, name: str, start: int, scope: FrozenSet[str]) -> None:
        category = self._category_for(name, scope)
        if category is None:
            return
        try:
            found = self.document.create_range(start, start + len(name), name, category)
        except OffsetOutOfRangeError as e:
            logger.debug("Dropping occurrence of %s: %s", name, e)
            return
        self.ranges[category].append(found)


def analyze_template(
    root: Optional[RootNode],
    identifiers: ScriptIdentifiers,
    document: TextDocument,
) -> AnalysisResult:
    """Resolve template occurrences of the classified identifiers into an AnalysisResult."""
    if root is None:
        return AnalysisResult(script_identifiers=identifiers)
    ranges = TemplateOccurrenceResolver(identifiers, document).resolve(root)
    return AnalysisResult.from_ranges(ranges, identifiers)
