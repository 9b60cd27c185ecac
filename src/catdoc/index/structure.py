"""Reduce query captures into a two-level class/method/function hierarchy."""

from __future__ import annotations

import logging
from collections.abc import Iterator, Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path

from tree_sitter import Node, QueryCursor

from catdoc.index.models import ANONYMOUS, CodeItem, FileStructure, ItemKind
from catdoc.syntax.grammar import Grammar
from catdoc.syntax.parser import ParsedSource, SourceParser

logger = logging.getLogger(__name__)

Captures = Mapping[str, Sequence[Node]]


@dataclass(slots=True)
class _DraftItem:
    kind: ItemKind
    name: str
    node: Node
    children: list[_DraftItem] | None


class StructureExtractor:
    """Parses a file, runs its language query and builds a :class:`FileStructure`."""

    def __init__(self, parser: SourceParser | None = None) -> None:
        self.parser = parser or SourceParser()

    def extract_file(
        self, path: Path, relative_path: str, content_hash: str
    ) -> FileStructure | None:
        """Return the file structure, or None when the file cannot be parsed or queried."""
        parsed = self.parser.parse(path)
        if parsed is None:
            return None
        return self.extract(parsed, relative_path, content_hash)

    def extract(
        self, parsed: ParsedSource, relative_path: str, content_hash: str
    ) -> FileStructure | None:
        query = self.parser.registry.query_for(parsed.spec)
        if query is None:
            logger.debug(
                "Cannot extract structure for %s: no compiled query for scheme %s",
                relative_path,
                parsed.scheme,
            )
            return None
        captures = QueryCursor(query).captures(parsed.root)
        items = reduce_captures(captures, parsed.spec.grammar)
        logger.debug("Extracted %d root items from %s", len(items), relative_path)
        return FileStructure(path=relative_path, items=items, content_hash=content_hash)


def reduce_captures(captures: Captures, grammar: Grammar) -> tuple[CodeItem, ...]:
    """Create one item per definition node, then nest methods under their classes."""
    drafts: list[_DraftItem] = []
    by_node: dict[int, _DraftItem] = {}

    for tag, node in _in_document_order(captures, ".definition"):
        classified = _classify(tag, node, grammar)
        if classified is None:
            continue
        kind, definition = classified
        if definition.id in by_node:
            continue
        draft = _DraftItem(
            kind=kind,
            name=_resolve_name(definition, grammar),
            node=definition,
            children=[] if kind == "class" else None,
        )
        drafts.append(draft)
        by_node[definition.id] = draft

    for _, node in _in_document_order(captures, ".name"):
        owner = _owning_draft(node, by_node)
        text = _text(node)
        if owner is not None and owner.name == ANONYMOUS and text:
            owner.name = text

    roots: list[_DraftItem] = []
    for draft in drafts:
        parent = _enclosing_class(draft.node, by_node)
        if parent is None or draft.kind == "class" or parent.children is None:
            roots.append(draft)
            continue
        draft.kind = "method"
        parent.children.append(draft)
    return tuple(_freeze(draft) for draft in _ordered(roots))


def _in_document_order(captures: Captures, suffix: str) -> list[tuple[str, Node]]:
    selected = [
        (tag, node) for tag, nodes in captures.items() if tag.endswith(suffix) for node in nodes
    ]
    selected.sort(key=lambda capture: (capture[1].start_byte, -capture[1].end_byte, capture[0]))
    return selected


def _classify(tag: str, node: Node, grammar: Grammar) -> tuple[ItemKind, Node] | None:
    if node.type in grammar.class_types:
        return "class", node
    if node.type in grammar.method_types:
        return "method", node
    if node.type in grammar.function_types:
        return "function", node
    if node.type in grammar.assignment_wrapper_types and tag.startswith("function"):
        value = _first_descendant(node, grammar.callable_value_types)
        return "function", value if value is not None else node
    return None


def _resolve_name(definition: Node, grammar: Grammar) -> str:
    parent = definition.parent
    if parent is not None and parent.type == grammar.declarator_type:
        name_node = parent.child_by_field_name("name")
    else:
        name_node = definition.child_by_field_name("name")

    if name_node is None and grammar.declarator_type is not None:
        if definition.type in grammar.assignment_wrapper_types:
            declarator = _first_descendant(definition, frozenset({grammar.declarator_type}))
            if declarator is not None:
                name_node = declarator.child_by_field_name("name")
        else:
            for ancestor in _ancestors(definition):
                if ancestor.type == grammar.declarator_type:
                    name_node = ancestor.child_by_field_name("name")
                    break

    if name_node is None and parent is not None and parent.type == grammar.assignment_type:
        left = parent.child_by_field_name("left")
        if left is not None and left.type == "identifier":
            name_node = left
        elif left is not None and left.type == grammar.member_type:
            name_node = left.child_by_field_name(grammar.member_property_field)

    name = _text(name_node) if name_node is not None else ""
    return name or ANONYMOUS


def _text(node: Node) -> str:
    raw = node.text
    return raw.decode("utf-8", errors="replace") if raw else ""


def _ancestors(node: Node) -> Iterator[Node]:
    current = node.parent
    while current is not None:
        yield current
        current = current.parent


def _first_descendant(node: Node, types: frozenset[str]) -> Node | None:
    """First node of ``types`` below ``node`` in pre-order, walked with an explicit stack."""
    stack = list(reversed(node.children))
    while stack:
        current = stack.pop()
        if current.type in types:
            return current
        stack.extend(reversed(current.children))
    return None


def _owning_draft(node: Node, by_node: dict[int, _DraftItem]) -> _DraftItem | None:
    for ancestor in _ancestors(node):
        draft = by_node.get(ancestor.id)
        if draft is not None:
            return draft
    return None


def _enclosing_class(node: Node, by_node: dict[int, _DraftItem]) -> _DraftItem | None:
    for ancestor in _ancestors(node):
        draft = by_node.get(ancestor.id)
        if draft is not None and draft.kind == "class":
            return draft
    return None


def _ordered(drafts: list[_DraftItem]) -> list[_DraftItem]:
    return sorted(drafts, key=lambda item: (item.node.start_byte, -item.node.end_byte))


def _freeze(draft: _DraftItem) -> CodeItem:
    children = None
    if draft.children is not None:
        children = tuple(_freeze(child) for child in _ordered(draft.children))
    return CodeItem(
        kind=draft.kind,
        name=draft.name,
        start_line=draft.node.start_point[0] + 1,
        end_line=draft.node.end_point[0] + 1,
        children=children,
    )
