"""Deterministic source file discovery and content hashing."""

from __future__ import annotations

import hashlib
import logging
import os
from dataclasses import dataclass
from pathlib import Path

from catdoc.workspace.ignore import IgnoreRules

logger = logging.getLogger(__name__)

_HASH_CHUNK_BYTES = 1024 * 128


@dataclass(slots=True, frozen=True)
class SourceCandidate:
    """Eligible source file found during traversal."""

    relative_path: str
    full_path: Path


def discover_source_files(
    root: Path,
    rules: IgnoreRules,
    *,
    follow_symlinks: bool = True,
) -> list[SourceCandidate]:
    """Walk the workspace and return eligible files sorted by relative path.

    Each directory on the stack carries the real paths already visited on its
    own branch, so a symlink pointing back at an ancestor is skipped while a
    sibling branch reaching the same target is still walked.
    """
    resolved_root = root.resolve()
    candidates: list[SourceCandidate] = []
    stack: list[tuple[Path, frozenset[str]]] = [(resolved_root, frozenset())]
    while stack:
        current, visited = stack.pop()
        real = os.path.realpath(current)
        if real in visited:
            logger.debug("Skipping symlink cycle at %s", current)
            continue
        branch_visited = visited | {real}
        try:
            with os.scandir(current) as entries:
                ordered_entries = sorted(entries, key=lambda item: item.name)
        except OSError as exc:
            logger.debug("Unable to list %s: %s", current, exc)
            continue
        for entry in reversed(ordered_entries):
            full_path = Path(entry.path)
            relative = full_path.relative_to(resolved_root).as_posix()
            if entry.is_symlink() and not follow_symlinks:
                continue
            try:
                is_dir = entry.is_dir()
                is_file = entry.is_file()
            except OSError:
                continue
            if is_dir:
                if not rules.ignores(relative, is_dir=True):
                    stack.append((full_path, branch_visited))
                continue
            if is_file and rules.accepts_file(relative):
                candidates.append(SourceCandidate(relative_path=relative, full_path=full_path))
    candidates.sort(key=lambda item: item.relative_path)
    return candidates


def md5_bytes(data: bytes) -> str:
    return hashlib.md5(data, usedforsecurity=False).hexdigest()


def md5_file(path: Path) -> str:
    """Compute the MD5 content hash in chunked reads."""
    digest = hashlib.md5(usedforsecurity=False)
    with path.open("rb") as handle:
        while True:
            chunk = handle.read(_HASH_CHUNK_BYTES)
            if not chunk:
                break
            digest.update(chunk)
    return digest.hexdigest()
