from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Union

from tree_sitter import Language, Node, Parser
import tree_sitter_html as tshtml

from glimpse.config import DEFAULT_FILENAME
from glimpse.errors import SFCParseError
from glimpse.services.syntax import byte_to_char_offset

HTML_LANGUAGE = Language(tshtml.language())

logger = logging.getLogger(__name__)

_DIRECTIVE_START_RE = re.compile(r"^(v-[A-Za-z0-9-]|:|\.|@|#)")
_DIRECTIVE_RE = re.compile(
    r"(?:^v-([a-z0-9-]+))?(?:(?::|^\.|^@|^#)(\[[^\]]+\]|[^\.]+))?(.+)?$",
    re.IGNORECASE,
)
_FOR_ALIAS_RE = re.compile(r"([\s\S]*?)\s+(?:in|of)\s+(\S[\s\S]*)")
_FOR_ITERATOR_RE = re.compile(r",([^,\}\]]*)(?:,([^,\}\]]*))?$")
_STRIP_PARENS_RE = re.compile(r"^\(|\)$")
_INTERPOLATION_RE = re.compile(r"\{\{([\s\S]*?)\}\}")
# Regions where `{{` is not an interpolation.
_RAW_REGION_RE = re.compile(r"<!--[\s\S]*?-->|<(script|style)\b[^>]*>[\s\S]*?</\1\s*>", re.IGNORECASE)

# Children that interrupt the text in which interpolations are searched.
_OPAQUE_CHILDREN = {"element", "script_element", "style_element", "comment", "erroneous_end_tag"}

_VOID_ELEMENTS = {
    "area", "base", "br", "col", "embed", "hr", "img", "input",
    "link", "meta", "source", "track", "wbr",
}


@dataclass
class SFCParseDiagnostic:
    message: str
    offset: int


# --- Template AST (shaped after Vue's compiler-core nodes) ---


@dataclass
class SimpleExpressionNode:
    content: str
    # Absolute char offset of `content` inside the whole document.
    offset: int
    is_static: bool = False

    @property
    def end(self) -> int:
        return self.offset + len(self.content)


@dataclass
class AttributeNode:
    name: str
    value: Optional[str]
    offset: int


@dataclass
class ForParseResult:
    source: SimpleExpressionNode
    value: Optional[SimpleExpressionNode] = None
    key: Optional[SimpleExpressionNode] = None
    index: Optional[SimpleExpressionNode] = None

    def aliases(self) -> List[SimpleExpressionNode]:
        return [a for a in (self.value, self.key, self.index) if a is not None]


@dataclass
class DirectiveNode:
    name: str  # "bind", "on", "for", "slot", "if", "model", ...
    raw_name: str
    offset: int
    arg: Optional[SimpleExpressionNode] = None
    modifiers: List[str] = field(default_factory=list)
    exp: Optional[SimpleExpressionNode] = None
    for_parse_result: Optional[ForParseResult] = None


@dataclass
class TextNode:
    content: str
    offset: int


@dataclass
class InterpolationNode:
    content: SimpleExpressionNode
    offset: int


@dataclass
class ElementNode:
    tag: str
    start: int
    end: int
    props: List[Union[AttributeNode, DirectiveNode]] = field(default_factory=list)
    children: List["TemplateChildNode"] = field(default_factory=list)

    def directives(self) -> List[DirectiveNode]:
        return [p for p in self.props if isinstance(p, DirectiveNode)]

    def find_directive(self, name: str) -> Optional[DirectiveNode]:
        for d in self.directives():
            if d.name == name:
                return d
        return None


TemplateChildNode = Union[ElementNode, TextNode, InterpolationNode]


@dataclass
class RootNode:
    children: List[TemplateChildNode] = field(default_factory=list)


# --- Descriptor ---


@dataclass
class SFCBlock:
    type: str
    content: str
    # Char offsets of `content` inside the whole document.
    start: int
    end: int
    attrs: Dict[str, Union[str, bool]] = field(default_factory=dict)
    lang: Optional[str] = None
    setup: bool = False


@dataclass
class SFCTemplateBlock(SFCBlock):
    ast: Optional[RootNode] = None


@dataclass
class SFCDescriptor:
    filename: str
    source: str
    template: Optional[SFCTemplateBlock] = None
    script: Optional[SFCBlock] = None
    script_setup: Optional[SFCBlock] = None
    styles: List[SFCBlock] = field(default_factory=list)
    custom_blocks: List[SFCBlock] = field(default_factory=list)

    def has_blocks(self) -> bool:
        return bool(
            self.template
            or self.script
            or self.script_setup
            or self.styles
            or self.custom_blocks
        )


@dataclass
class SFCParseResult:
    descriptor: SFCDescriptor
    errors: List[SFCParseDiagnostic] = field(default_factory=list)


def _mask_interpolations(text: str) -> bytes:
    """
    UTF-8 bytes of `text` with every `{{ }}` body blanked out.

    The HTML grammar reads `<` inside an expression as a tag; blanking each
    character with as many spaces as it has bytes keeps every byte offset valid.
    """
    chars = list(text)
    pos = 0
    regions = list(_RAW_REGION_RE.finditer(text))
    for region in regions + [None]:
        end = region.start() if region is not None else len(text)
        for match in _INTERPOLATION_RE.finditer(text, pos, end):
            for i in range(match.start(1), match.end(1)):
                chars[i] = " " * len(chars[i].encode("utf-8"))
        if region is not None:
            pos = region.end()
    return "".join(chars).encode("utf-8")


def parse_sfc(text: str, filename: str = DEFAULT_FILENAME) -> SFCParseResult:
    """
    Split a `.vue` file into its blocks and build the template AST.

    Diagnostics are collected rather than raised; `SFCParseError` is raised only
    when the text has errors and not a single block could be recovered.
    """
    return _SFCBuilder(text, filename).build()


class _SFCBuilder:
    def __init__(self, text: str, filename: str):
        self.text = text
        self.filename = filename
        self.source = text.encode("utf-8")
        self.errors: List[SFCParseDiagnostic] = []

    def _char(self, byte_offset: int) -> int:
        return byte_to_char_offset(self.source, byte_offset)

    def _slice(self, start_byte: int, end_byte: int) -> tuple[str, int]:
        start = self._char(start_byte)
        end = self._char(end_byte)
        return self.text[start:end], start

    def _error(self, message: str, byte_offset: int) -> None:
        self.errors.append(SFCParseDiagnostic(message=message, offset=self._char(byte_offset)))

    def build(self) -> SFCParseResult:
        parser = Parser(HTML_LANGUAGE)
        tree = parser.parse(_mask_interpolations(self.text))
        descriptor = SFCDescriptor(filename=self.filename, source=self.text)

        for node in tree.root_node.named_children:
            if node.type == "script_element":
                block = self._block(node, "script")
                if block.setup:
                    if descriptor.script_setup is not None:
                        self._error("Single file component can contain only one <script setup> element", node.start_byte)
                        continue
                    descriptor.script_setup = block
                else:
                    if descriptor.script is not None:
                        self._error("Single file component can contain only one <script> element", node.start_byte)
                        continue
                    descriptor.script = block
            elif node.type == "style_element":
                descriptor.styles.append(self._block(node, "style"))
            elif node.type == "element":
                tag = self._tag_name(node)
                if tag == "template":
                    if descriptor.template is not None:
                        self._error("Single file component can contain only one <template> element", node.start_byte)
                        continue
                    descriptor.template = self._template_block(node)
                elif tag:
                    descriptor.custom_blocks.append(self._block(node, tag))

        self._collect_syntax_errors(tree.root_node)

        if self.errors and not descriptor.has_blocks():
            raise SFCParseError(
                f"{self.filename}: no usable block ({self.errors[0].message} at offset {self.errors[0].offset})"
            )

        return SFCParseResult(descriptor=descriptor, errors=self.errors)

    def _collect_syntax_errors(self, node: Node) -> None:
        if not node.has_error:
            return
        if node.type == "ERROR":
            self._error("Invalid markup", node.start_byte)
            return
        if node.is_missing:
            self._error(f"Missing '{node.type}'", node.start_byte)
            return
        for child in node.children:
            self._collect_syntax_errors(child)

    # --- Blocks ---

    def _start_tag(self, node: Node) -> Optional[Node]:
        for child in node.children:
            if child.type in {"start_tag", "self_closing_tag"}:
                return child
        return None

    def _end_tag(self, node: Node) -> Optional[Node]:
        last = node.children[-1] if node.children else None
        if last is not None and last.type == "end_tag":
            return last
        return None

    def _tag_name(self, node: Node) -> str:
        tag = self._start_tag(node)
        if tag is None:
            return ""
        for child in tag.named_children:
            if child.type == "tag_name":
                text, _ = self._slice(child.start_byte, child.end_byte)
                return text
        return ""

    def _attrs(self, tag: Optional[Node]) -> Dict[str, Union[str, bool]]:
        attrs: Dict[str, Union[str, bool]] = {}
        if tag is None:
            return attrs
        for attribute in tag.named_children:
            if attribute.type != "attribute":
                continue
            name, value, _, _ = self._attribute_parts(attribute)
            if name:
                attrs[name] = True if value is None else value
        return attrs

    def _content_span(self, node: Node) -> tuple[int, int]:
        tag = self._start_tag(node)
        start = tag.end_byte if tag is not None else node.start_byte
        end_tag = self._end_tag(node)
        end = end_tag.start_byte if end_tag is not None else node.end_byte
        return start, max(start, end)

    def _block(self, node: Node, block_type: str) -> SFCBlock:
        start_byte, end_byte = self._content_span(node)
        content, start = self._slice(start_byte, end_byte)
        attrs = self._attrs(self._start_tag(node))
        lang = attrs.get("lang")
        return SFCBlock(
            type=block_type,
            content=content,
            start=start,
            end=start + len(content),
            attrs=attrs,
            lang=lang if isinstance(lang, str) else None,
            setup=block_type == "script" and "setup" in attrs,
        )

    def _template_block(self, node: Node) -> SFCTemplateBlock:
        block = self._block(node, "template")
        ast: Optional[RootNode] = None
        if block.lang in (None, "html"):
            ast = RootNode(children=self._children(node))
        else:
            logger.debug("Skipping template with lang=%s", block.lang)
        return SFCTemplateBlock(
            type=block.type,
            content=block.content,
            start=block.start,
            end=block.end,
            attrs=block.attrs,
            lang=block.lang,
            ast=ast,
        )

    # --- Template tree ---

    def _children(self, node: Node) -> List[TemplateChildNode]:
        tag = self._start_tag(node)
        if tag is None or tag.type == "self_closing_tag":
            return []
        content_start, content_end = self._content_span(node)
        return self._child_nodes(node.children, content_start, content_end)

    def _child_nodes(self, nodes: Sequence[Node], content_start: int, content_end: int) -> List[TemplateChildNode]:
        children: List[TemplateChildNode] = []
        cursor = content_start
        i = 0

        while i < len(nodes):
            child = nodes[i]
            i += 1
            if child.type not in _OPAQUE_CHILDREN:
                continue
            self._text_gap(cursor, child.start_byte, children)
            cursor = child.end_byte
            if child.type != "element":
                continue

            close = self._explicit_close(child, nodes, i)
            if close is None:
                children.append(self._element(child))
                continue
            # Closed implicitly by the HTML rules: the author's end tag comes later.
            children.append(self._element(child, nodes[i:close], nodes[close]))
            cursor = nodes[close].end_byte
            i = close + 1

        self._text_gap(cursor, content_end, children)
        return children

    def _explicit_close(self, node: Node, siblings: Sequence[Node], start: int) -> Optional[int]:
        """Index of the stray `</tag>` among `siblings` that really closes `node`."""
        tag = self._start_tag(node)
        if tag is None or tag.type == "self_closing_tag" or self._end_tag(node) is not None:
            return None
        name = self._tag_name(node).lower()
        if name in _VOID_ELEMENTS:
            return None
        for j in range(start, len(siblings)):
            sibling = siblings[j]
            if sibling.type != "erroneous_end_tag":
                continue
            for part in sibling.named_children:
                if part.type == "erroneous_end_tag_name":
                    text, _ = self._slice(part.start_byte, part.end_byte)
                    if text.lower() == name:
                        return j
        return None

    def _text_gap(self, start_byte: int, end_byte: int, out: List[TemplateChildNode]) -> None:
        if end_byte <= start_byte:
            return
        segment, base = self._slice(start_byte, end_byte)
        last = 0
        for match in _INTERPOLATION_RE.finditer(segment):
            if segment[last : match.start()].strip():
                out.append(TextNode(content=segment[last : match.start()], offset=base + last))
            raw = match.group(1)
            content = raw.strip()
            leading = len(raw) - len(raw.lstrip())
            out.append(
                InterpolationNode(
                    content=SimpleExpressionNode(
                        content=content,
                        offset=base + match.start(1) + leading,
                    ),
                    offset=base + match.start(),
                )
            )
            last = match.end()
        if segment[last:].strip():
            out.append(TextNode(content=segment[last:], offset=base + last))

    def _element(self, node: Node, adopted: Sequence[Node] = (), close: Optional[Node] = None) -> ElementNode:
        tag = self._start_tag(node)
        props: List[Union[AttributeNode, DirectiveNode]] = []
        if tag is not None:
            for attribute in tag.named_children:
                if attribute.type == "attribute":
                    prop = self._prop(attribute)
                    if prop is not None:
                        props.append(prop)

        if close is None:
            end_byte = node.end_byte
            children = self._children(node)
        else:
            end_byte = close.end_byte
            children = self._child_nodes(list(node.children) + list(adopted), tag.end_byte, close.start_byte)

        return ElementNode(
            tag=self._tag_name(node),
            start=self._char(node.start_byte),
            end=self._char(end_byte),
            props=props,
            children=children,
        )

    def _attribute_parts(self, attribute: Node) -> tuple[str, Optional[str], int, int]:
        """Return `(name, value, name_offset, value_offset)` for an HTML attribute."""
        name = ""
        name_offset = self._char(attribute.start_byte)
        value: Optional[str] = None
        value_offset = -1

        for child in attribute.children:
            if child.type == "attribute_name":
                name, name_offset = self._slice(child.start_byte, child.end_byte)
            elif child.type == "attribute_value":
                value, value_offset = self._slice(child.start_byte, child.end_byte)
            elif child.type == "quoted_attribute_value":
                inner = None
                for c in child.named_children:
                    if c.type == "attribute_value":
                        inner = c
                        break
                if inner is not None:
                    value, value_offset = self._slice(inner.start_byte, inner.end_byte)
                else:
                    # `attr=""`: empty value right after the opening quote.
                    value, value_offset = "", self._char(child.start_byte) + 1

        return name, value, name_offset, value_offset

    def _prop(self, attribute: Node) -> Optional[Union[AttributeNode, DirectiveNode]]:
        name, value, name_offset, value_offset = self._attribute_parts(attribute)
        if not name:
            return None
        if not _DIRECTIVE_START_RE.match(name):
            return AttributeNode(name=name, value=value, offset=name_offset)

        match = _DIRECTIVE_RE.match(name)
        if match is None:
            return AttributeNode(name=name, value=value, offset=name_offset)

        dir_name = match.group(1)
        if not dir_name:
            if name.startswith(":") or name.startswith("."):
                dir_name = "bind"
            elif name.startswith("@"):
                dir_name = "on"
            else:
                dir_name = "slot"

        arg: Optional[SimpleExpressionNode] = None
        raw_arg = match.group(2)
        if raw_arg:
            is_dynamic = raw_arg.startswith("[")
            if is_dynamic:
                arg = SimpleExpressionNode(
                    content=raw_arg[1:-1] if raw_arg.endswith("]") else raw_arg[1:],
                    offset=name_offset + match.start(2) + 1,
                    is_static=False,
                )
            else:
                arg = SimpleExpressionNode(
                    content=raw_arg,
                    offset=name_offset + match.start(2),
                    is_static=True,
                )

        modifiers = match.group(3)[1:].split(".") if match.group(3) else []
        if name.startswith("."):
            modifiers.append("prop")

        exp = None
        if value:
            exp = SimpleExpressionNode(content=value, offset=value_offset)

        directive = DirectiveNode(
            name=dir_name,
            raw_name=name,
            offset=name_offset,
            arg=arg,
            modifiers=modifiers,
            exp=exp,
        )
        if dir_name == "for" and exp is not None:
            directive.for_parse_result = parse_for_expression(exp)
            if directive.for_parse_result is None:
                self.errors.append(
                    SFCParseDiagnostic(message="v-for has invalid expression", offset=exp.offset)
                )
        return directive


def parse_for_expression(exp: SimpleExpressionNode) -> Optional[ForParseResult]:
    """Split `(item, index) in items` into its source and alias expressions."""
    content = exp.content
    match = _FOR_ALIAS_RE.match(content)
    if match is None:
        return None

    lhs = match.group(1)
    rhs = match.group(2).rstrip()
    result = ForParseResult(
        source=SimpleExpressionNode(content=rhs, offset=exp.offset + match.start(2))
    )

    value_content = _STRIP_PARENS_RE.sub("", lhs.strip()).strip()
    trimmed_offset = max(lhs.find(value_content), 0)

    iterator_match = _FOR_ITERATOR_RE.search(value_content)
    if iterator_match:
        value_content = _FOR_ITERATOR_RE.sub("", value_content).strip()

        key_content = iterator_match.group(1).strip()
        key_offset = -1
        if key_content:
            key_offset = content.find(key_content, trimmed_offset + len(value_content))
            result.key = SimpleExpressionNode(content=key_content, offset=exp.offset + key_offset)

        if iterator_match.group(2):
            index_content = iterator_match.group(2).strip()
            if index_content:
                search_from = key_offset + len(key_content) if key_content else trimmed_offset + len(value_content)
                index_offset = content.find(index_content, search_from)
                result.index = SimpleExpressionNode(content=index_content, offset=exp.offset + index_offset)

    if value_content:
        result.value = SimpleExpressionNode(content=value_content, offset=exp.offset + trimmed_offset)

    return result
