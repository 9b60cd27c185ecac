"""Scan orchestration: cache and tree snapshot persistence around the tree merger."""

from __future__ import annotations

import logging
import os
import time
from collections.abc import Iterable
from datetime import UTC, datetime
from pathlib import Path

from catdoc.config import CatdocConfig
from catdoc.index.changes import cache_to_dict, find_changed_files, load_cache, now_ms
from catdoc.index.discovery import md5_file
from catdoc.index.models import (
    DirectoryNode,
    FileStructure,
    ProjectCache,
    ScanResult,
    node_from_dict,
    node_to_dict,
)
from catdoc.index.structure import StructureExtractor
from catdoc.index.tree import TreeMerger, find_file, with_file_hashes
from catdoc.jsonio import atomic_write_json, read_json_object
from catdoc.workspace.ignore import IgnoreRules, build_ignore_rules
from catdoc.workspace.paths import PathOutsideWorkspaceError, sanitize_name, to_workspace_relative

logger = logging.getLogger(__name__)


class ScanManager:
    """Runs full scans and owns the persisted scan cache and tree snapshot."""

    def __init__(
        self,
        config: CatdocConfig,
        *,
        extractor: StructureExtractor | None = None,
        rules: IgnoreRules | None = None,
    ) -> None:
        self._root = config.workspace_root.resolve()
        self._rules = rules or build_ignore_rules(config)
        self._follow_symlinks = config.index.follow_symlinks
        self._extractor = extractor or StructureExtractor()
        self.root_key = sanitize_name(self._root.name) or "workspace"
        self.cache_path = config.data_dir / f".{self.root_key}.cache.json"
        self.tree_path = config.data_dir / f"{self.root_key}.tree.json"

    @property
    def root(self) -> Path:
        return self._root

    @property
    def rules(self) -> IgnoreRules:
        return self._rules

    def scan(self, force: bool = False) -> ScanResult:
        """Run a full scan; ``force`` ignores the stored tree and cache."""
        start = time.perf_counter()
        logger.debug("Starting scan of %s%s", self._root, " (forced)" if force else "")
        persisted = load_cache(self.cache_path)
        cache = ProjectCache() if force else persisted
        previous = None if force else self.load_tree()
        merger = TreeMerger(
            self._root,
            self._rules,
            self._extractor,
            follow_symlinks=self._follow_symlinks,
        )
        tree, stats = merger.merge(previous, cache)

        seen_keys = {str(self._root / relative) for relative in stats.seen_paths}
        stale_keys = sorted(set(persisted.files) - seen_keys)
        for key in stale_keys:
            cache.files.pop(key, None)
        cache.last_updated = now_ms()

        atomic_write_json(self.cache_path, cache_to_dict(cache))
        self._write_tree(tree)
        duration_ms = int((time.perf_counter() - start) * 1000)
        result = ScanResult(
            tree=tree,
            updated_paths=tuple(sorted(stats.updated_paths)),
            changed_paths=tuple(sorted(stats.changed_paths)),
            removed_paths=tuple(self._relative_key(key) for key in stale_keys),
            file_count=len(stats.seen_paths),
            duration_ms=duration_ms,
            timestamp=_utc_now_iso(),
        )
        logger.info(
            "Scan finished: %d files, %d updated, %d removed in %d ms",
            result.file_count,
            len(result.updated_paths),
            len(result.removed_paths),
            duration_ms,
        )
        return result

    def load_tree(self) -> DirectoryNode | None:
        """Return the stored tree snapshot, or None when absent or invalid."""
        payload = read_json_object(self.tree_path)
        if payload is None:
            return None
        node = node_from_dict(payload.get(self.root_key))
        if not isinstance(node, DirectoryNode):
            logger.warning("Ignoring invalid tree snapshot %s", self.tree_path)
            return None
        return node

    def load_cache(self) -> ProjectCache:
        return load_cache(self.cache_path)

    def find_file(self, path: str) -> FileStructure | None:
        tree = self.load_tree()
        if tree is None:
            return None
        return find_file(tree, to_workspace_relative(self._root, path))

    def refresh_hashes(self, paths: Iterable[str]) -> int:
        """Update stored hashes of the given files without re-extracting them."""
        tree = self.load_tree()
        if tree is None:
            return 0
        hashes: dict[str, str] = {}
        for path in paths:
            relative = to_workspace_relative(self._root, path)
            try:
                hashes[relative] = md5_file(self._root / relative)
            except OSError as exc:
                logger.debug("Cannot hash %s: %s", relative, exc)
        updated_tree, updated = with_file_hashes(tree, hashes)
        if updated:
            self._write_tree(updated_tree)
        return updated

    def changed_files(self) -> list[str]:
        """List files whose hash differs from the stored cache, without updating it."""
        return find_changed_files(
            self._root,
            self.load_cache(),
            self._rules,
            follow_symlinks=self._follow_symlinks,
        )

    def _write_tree(self, tree: DirectoryNode) -> None:
        atomic_write_json(self.tree_path, {self.root_key: node_to_dict(tree)})

    def _relative_key(self, key: str) -> str:
        try:
            return to_workspace_relative(self._root, key)
        except PathOutsideWorkspaceError:
            return key.replace(os.sep, "/")


def _utc_now_iso() -> str:
    return datetime.now(tz=UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")
