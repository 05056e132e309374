from __future__ import annotations

from typing import Iterator, List, Optional

from tree_sitter import Node, Tree

from glimpse.services.syntax import (
    call_arguments,
    is_call_of,
    is_function_node,
    object_member_key,
    root_of,
    unwrap_expression,
)


def find_component_definition(tree_or_node: Tree | Node) -> Optional[Node]:
    """
    Find the object literal describing the component.

    Handles `export default {}` and `export default defineComponent({})`.
    """
    root = root_of(tree_or_node)
    for statement in root.named_children:
        if statement.type != "export_statement":
            continue
        if not any(c.type == "default" for c in statement.children):
            continue
        value = unwrap_expression(statement.child_by_field_name("value"))
        if value is None:
            continue
        if value.type == "object":
            return value
        if is_call_of(value, "defineComponent"):
            args = call_arguments(value)
            first = unwrap_expression(args[0]) if args else None
            if first is not None and first.type == "object":
                return first
        return None
    return None


def iter_option_members(component_def: Node) -> Iterator[tuple[str, Node]]:
    """Yield `(key, member)` for every statically named option."""
    for member in component_def.named_children:
        key = object_member_key(member)
        if key:
            yield key, member


def find_option(component_def: Node, name: str) -> Optional[Node]:
    for key, member in iter_option_members(component_def):
        if key == name:
            return member
    return None


def option_value(member: Node) -> Optional[Node]:
    """Value node of `key: value`; None for methods and shorthands."""
    if member.type != "pair":
        return None
    return unwrap_expression(member.child_by_field_name("value"))


def option_function(member: Optional[Node]) -> Optional[Node]:
    """
    The function behind an option written as `setup() {}`, `setup: function () {}`
    or `setup: () => {}`.
    """
    if member is None:
        return None
    if member.type == "method_definition":
        return member
    value = option_value(member)
    if value is not None and is_function_node(value):
        return value
    return None


def find_setup_function(component_def: Node) -> Optional[Node]:
    return option_function(find_option(component_def, "setup"))


def returned_objects(function: Node) -> List[Node]:
    """
    Object literals returned from a function's top-level body.

    Arrow functions with an expression body (`() => ({ a: 1 })`) count too.
    """
    body = function.child_by_field_name("body")
    if body is None:
        return []
    if body.type != "statement_block":
        body = unwrap_expression(body)
        return [body] if body is not None and body.type == "object" else []

    found: List[Node] = []
    for statement in body.named_children:
        if statement.type != "return_statement":
            continue
        for child in statement.named_children:
            value = unwrap_expression(child)
            if value is not None and value.type == "object":
                found.append(value)
    return found
