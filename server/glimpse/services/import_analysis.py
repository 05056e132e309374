from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, FrozenSet, Iterator, Optional, Tuple

from tree_sitter import Node, Tree

from glimpse.config import PINIA_MODULE, REACTIVITY_APIS, VUE_MODULE, VUEX_MODULE
from glimpse.services.syntax import node_text, root_of, string_value


@dataclass(frozen=True)
class ImportAnalysis:
    """Which local names came from the supported state-management libraries."""

    has_pinia: bool = False
    has_vuex: bool = False
    pinia_import_names: FrozenSet[str] = field(default_factory=frozenset)
    vuex_import_names: FrozenSet[str] = field(default_factory=frozenset)


def _import_source(statement: Node) -> Optional[str]:
    source = statement.child_by_field_name("source")
    if source is None:
        for child in statement.named_children:
            if child.type == "string":
                source = child
                break
    return string_value(source)


def _import_clause(statement: Node) -> Optional[Node]:
    for child in statement.named_children:
        if child.type == "import_clause":
            return child
    return None


def iter_named_imports(statement: Node) -> Iterator[Tuple[str, str]]:
    """Yield `(imported, local)` pairs for `import { a, b as c } from "x"`."""
    clause = _import_clause(statement)
    if clause is None:
        return
    for child in clause.named_children:
        if child.type != "named_imports":
            continue
        for spec in child.named_children:
            if spec.type != "import_specifier":
                continue
            name_node = spec.child_by_field_name("name")
            alias_node = spec.child_by_field_name("alias")
            if name_node is None:
                continue
            imported = string_value(name_node) if name_node.type == "string" else node_text(name_node)
            local = node_text(alias_node) if alias_node is not None else imported
            if imported and local:
                yield imported, local


def iter_import_statements(tree_or_node: Tree | Node) -> Iterator[Tuple[Node, str]]:
    root = root_of(tree_or_node)
    for statement in root.named_children:
        if statement.type != "import_statement":
            continue
        source = _import_source(statement)
        if source is not None:
            yield statement, source


def analyze_imports(tree_or_node: Tree | Node) -> ImportAnalysis:
    """
    Detect named imports from Pinia or Vuex in a parsed script.

    Accepts a tree-sitter Tree (or its root node) produced by either the
    TypeScript or the JavaScript grammar. Only named imports are tracked; the
    recorded name is the local one, so `import { storeToRefs as toRefs }`
    records `toRefs`.
    """
    has_pinia = False
    has_vuex = False
    pinia_names: set[str] = set()
    vuex_names: set[str] = set()

    for statement, source in iter_import_statements(tree_or_node):
        if source == PINIA_MODULE:
            has_pinia = True
            target = pinia_names
        elif source == VUEX_MODULE:
            has_vuex = True
            target = vuex_names
        else:
            continue

        for _imported, local in iter_named_imports(statement):
            target.add(local)

    return ImportAnalysis(
        has_pinia=has_pinia,
        has_vuex=has_vuex,
        pinia_import_names=frozenset(pinia_names),
        vuex_import_names=frozenset(vuex_names),
    )


def analyze_vue_imports(tree_or_node: Tree | Node) -> Dict[str, str]:
    """
    Map local aliases of Vue reactivity APIs to their exported names.

    `import { ref as vueRef, reactive as R } from 'vue'` yields
    `{"vueRef": "ref", "R": "reactive"}`.
    """
    aliases: Dict[str, str] = {}
    for statement, source in iter_import_statements(tree_or_node):
        if source != VUE_MODULE:
            continue
        for imported, local in iter_named_imports(statement):
            if imported in REACTIVITY_APIS:
                aliases[local] = imported
    return aliases
