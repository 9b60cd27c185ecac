"""Incremental directory tree merge over the previous scan snapshot."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field, replace
from pathlib import Path

from catdoc.index.changes import has_changed, record_file
from catdoc.index.models import DirectoryNode, FileNode, FileStructure, ProjectCache, TreeNode
from catdoc.index.structure import StructureExtractor
from catdoc.workspace.ignore import IgnoreRules

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class MergeStats:
    """Paths touched during one merge pass."""

    updated_paths: set[str] = field(default_factory=set)
    changed_paths: set[str] = field(default_factory=set)
    seen_paths: set[str] = field(default_factory=set)


class TreeMerger:
    """Rebuilds the directory tree, reusing unchanged file nodes from the previous one."""

    def __init__(
        self,
        root: Path,
        rules: IgnoreRules,
        extractor: StructureExtractor,
        *,
        follow_symlinks: bool = True,
    ) -> None:
        self._root = root.resolve()
        self._rules = rules
        self._extractor = extractor
        self._follow_symlinks = follow_symlinks

    def merge(
        self, previous: DirectoryNode | None, cache: ProjectCache
    ) -> tuple[DirectoryNode, MergeStats]:
        """Walk the workspace, refresh ``cache`` in place and return the new tree."""
        stats = MergeStats()
        tree = self._merge_directory(self._root, "", previous, cache, stats, frozenset())
        return tree or DirectoryNode(children={}), stats

    def _merge_directory(
        self,
        directory: Path,
        relative_dir: str,
        previous: DirectoryNode | None,
        cache: ProjectCache,
        stats: MergeStats,
        visited: frozenset[str],
    ) -> DirectoryNode | None:
        real = os.path.realpath(directory)
        if real in visited:
            logger.debug("Skipping symlink cycle at %s", directory)
            return None
        branch_visited = visited | {real}
        try:
            with os.scandir(directory) as entries:
                ordered_entries = sorted(entries, key=lambda item: item.name)
        except OSError as exc:
            logger.debug("Error reading directory %s: %s", directory, exc)
            return None

        children: dict[str, TreeNode] = {}
        for entry in ordered_entries:
            relative = f"{relative_dir}/{entry.name}" if relative_dir else entry.name
            if entry.is_symlink() and not self._follow_symlinks:
                continue
            try:
                is_dir = entry.is_dir()
                is_file = entry.is_file()
            except OSError:
                continue
            prior = previous.children.get(entry.name) if previous is not None else None
            if is_dir:
                if self._rules.ignores(relative, is_dir=True):
                    continue
                subtree = self._merge_directory(
                    Path(entry.path),
                    relative,
                    prior if isinstance(prior, DirectoryNode) else None,
                    cache,
                    stats,
                    branch_visited,
                )
                if subtree is not None:
                    children[entry.name] = subtree
                continue
            if not is_file or not self._rules.accepts_file(relative):
                continue
            node = self._merge_file(
                Path(entry.path),
                relative,
                prior if isinstance(prior, FileNode) else None,
                cache,
                stats,
            )
            if node is not None:
                children[entry.name] = node

        if not children:
            return None
        return DirectoryNode(children=children)

    def _merge_file(
        self,
        path: Path,
        relative: str,
        previous: FileNode | None,
        cache: ProjectCache,
        stats: MergeStats,
    ) -> FileNode | None:
        status = has_changed(path, cache)
        record_file(cache, path, status.content_hash)
        stats.seen_paths.add(relative)
        if status.changed:
            stats.changed_paths.add(relative)

        if not status.changed and previous is not None:
            if previous.structure.content_hash == status.content_hash:
                return previous
            logger.debug("Correcting stored hash for unchanged file %s", relative)
            return FileNode(replace(previous.structure, content_hash=status.content_hash))

        try:
            structure = self._extractor.extract_file(path, relative, status.content_hash)
        except Exception:
            logger.exception("Structure extraction failed for %s; tracking by hash only", relative)
            return None
        if structure is None:
            return None
        stats.updated_paths.add(relative)
        return FileNode(structure)


def find_file(tree: TreeNode, relative_path: str) -> FileStructure | None:
    """Exact lookup of a file structure by its normalized relative path."""
    node: TreeNode = tree
    for part in relative_path.split("/"):
        if not isinstance(node, DirectoryNode):
            return None
        child = node.children.get(part)
        if child is None:
            return None
        node = child
    if isinstance(node, FileNode):
        return node.structure
    return None


def with_file_hashes(tree: DirectoryNode, hashes: dict[str, str]) -> tuple[DirectoryNode, int]:
    """Return a tree with the given files' hashes replaced, plus the number of updates."""
    updated = 0

    def rebuild(node: DirectoryNode) -> DirectoryNode:
        nonlocal updated
        children: dict[str, TreeNode] = {}
        changed = False
        for name, child in node.children.items():
            if isinstance(child, DirectoryNode):
                new_child: TreeNode = rebuild(child)
            else:
                new_hash = hashes.get(child.structure.path)
                if new_hash is None or new_hash == child.structure.content_hash:
                    new_child = child
                else:
                    new_child = FileNode(replace(child.structure, content_hash=new_hash))
                    updated += 1
            changed = changed or new_child is not child
            children[name] = new_child
        return DirectoryNode(children=children) if changed else node

    return rebuild(tree), updated
