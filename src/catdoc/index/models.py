"""Typed models for scan state and the directory tree snapshot."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Literal, TypeAlias

ItemKind = Literal["class", "method", "function"]
ANONYMOUS = "anonymous"


@dataclass(slots=True, frozen=True)
class FileRecord:
    """Cache entry for one file: its content hash and when it was last scanned."""

    content_hash: str
    last_parsed_at: int


@dataclass(slots=True)
class ProjectCache:
    """Per-file hash cache keyed by absolute path; mutated during a scan."""

    files: dict[str, FileRecord] = field(default_factory=dict)
    last_updated: int = 0


@dataclass(slots=True, frozen=True)
class CodeItem:
    """Class, method or function with its 1-based inclusive line range.

    Only classes carry ``children``; everything else keeps ``None``.
    """

    kind: ItemKind
    name: str
    start_line: int
    end_line: int
    children: tuple[CodeItem, ...] | None = None


@dataclass(slots=True, frozen=True)
class FileStructure:
    """Top-level code items of one source file."""

    path: str
    items: tuple[CodeItem, ...]
    content_hash: str


@dataclass(slots=True, frozen=True)
class FileNode:
    structure: FileStructure


@dataclass(slots=True, frozen=True)
class DirectoryNode:
    """Directory entry; keys are exact filesystem entry names."""

    children: Mapping[str, TreeNode] = field(default_factory=dict)


TreeNode: TypeAlias = DirectoryNode | FileNode


@dataclass(slots=True, frozen=True)
class ScanResult:
    """Outcome of one full scan pass."""

    tree: DirectoryNode
    updated_paths: tuple[str, ...]
    changed_paths: tuple[str, ...]
    removed_paths: tuple[str, ...]
    file_count: int
    duration_ms: int
    timestamp: str


def iter_file_structures(node: TreeNode) -> list[FileStructure]:
    """Return every file structure under ``node`` in key order."""
    if isinstance(node, FileNode):
        return [node.structure]
    output: list[FileStructure] = []
    for name in sorted(node.children):
        output.extend(iter_file_structures(node.children[name]))
    return output


def item_to_dict(item: CodeItem) -> dict[str, object]:
    payload: dict[str, object] = {
        "kind": item.kind,
        "name": item.name,
        "start_line": item.start_line,
        "end_line": item.end_line,
    }
    if item.children is not None:
        payload["children"] = [item_to_dict(child) for child in item.children]
    return payload


def node_to_dict(node: TreeNode) -> dict[str, object]:
    """Serialize a tree node into its tagged JSON form."""
    if isinstance(node, FileNode):
        structure = node.structure
        return {
            "type": "file_structure",
            "path": structure.path,
            "items": [item_to_dict(item) for item in structure.items],
            "content_hash": structure.content_hash,
        }
    return {
        "type": "directory",
        "children": {name: node_to_dict(child) for name, child in node.children.items()},
    }


def node_from_dict(payload: object) -> TreeNode | None:
    """Rebuild a tree node from JSON; None for anything that does not validate."""
    if not isinstance(payload, dict):
        return None
    node_type = payload.get("type")
    if node_type == "file_structure":
        path = payload.get("path")
        content_hash = payload.get("content_hash")
        raw_items = payload.get("items")
        if not isinstance(path, str) or not isinstance(content_hash, str):
            return None
        if not isinstance(raw_items, list):
            return None
        items = _items_from_list(raw_items)
        if items is None:
            return None
        return FileNode(FileStructure(path=path, items=items, content_hash=content_hash))
    if node_type == "directory":
        raw_children = payload.get("children")
        if not isinstance(raw_children, dict):
            return None
        children: dict[str, TreeNode] = {}
        for name, raw_child in raw_children.items():
            child = node_from_dict(raw_child)
            if child is None:
                return None
            children[name] = child
        return DirectoryNode(children=children)
    return None


def _items_from_list(raw_items: list[object]) -> tuple[CodeItem, ...] | None:
    items: list[CodeItem] = []
    for raw in raw_items:
        if not isinstance(raw, dict):
            return None
        kind = raw.get("kind")
        name = raw.get("name")
        start_line = raw.get("start_line")
        end_line = raw.get("end_line")
        if kind not in ("class", "method", "function"):
            return None
        if not isinstance(name, str):
            return None
        if not isinstance(start_line, int) or not isinstance(end_line, int):
            return None
        children: tuple[CodeItem, ...] | None = None
        raw_children = raw.get("children")
        if raw_children is not None:
            if not isinstance(raw_children, list):
                return None
            children = _items_from_list(raw_children)
            if children is None:
                return None
        items.append(
            CodeItem(
                kind=kind,
                name=name,
                start_line=start_line,
                end_line=end_line,
                children=children,
            )
        )
    return tuple(items)
