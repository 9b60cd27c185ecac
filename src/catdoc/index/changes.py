"""Content-hash change detection and the persisted scan cache."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from pathlib import Path

from catdoc.index.discovery import discover_source_files, md5_file
from catdoc.index.models import FileRecord, ProjectCache
from catdoc.jsonio import read_json_object
from catdoc.workspace.ignore import IgnoreRules

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class ChangeStatus:
    """Result of comparing a file against its cache entry."""

    changed: bool
    content_hash: str


def has_changed(path: Path, cache: ProjectCache) -> ChangeStatus:
    """Compare the file's current hash with the cached one.

    Unreadable files are reported as changed with an empty hash. The cache is
    never written here.
    """
    try:
        current_hash = md5_file(path)
    except OSError as exc:
        logger.debug("Error hashing %s: %s", path, exc)
        return ChangeStatus(changed=True, content_hash="")
    entry = cache.files.get(str(path))
    if entry is None or entry.content_hash != current_hash:
        return ChangeStatus(changed=True, content_hash=current_hash)
    return ChangeStatus(changed=False, content_hash=current_hash)


def record_file(cache: ProjectCache, path: Path, content_hash: str) -> None:
    cache.files[str(path)] = FileRecord(content_hash=content_hash, last_parsed_at=now_ms())


def find_changed_files(
    root: Path,
    cache: ProjectCache,
    rules: IgnoreRules,
    *,
    follow_symlinks: bool = True,
) -> list[str]:
    """Return relative paths of eligible files whose hash differs from the cache."""
    changed: list[str] = []
    for candidate in discover_source_files(root, rules, follow_symlinks=follow_symlinks):
        if has_changed(candidate.full_path, cache).changed:
            logger.debug("Found changed file: %s", candidate.relative_path)
            changed.append(candidate.relative_path)
    return changed


def load_cache(path: Path) -> ProjectCache:
    """Load the scan cache; missing or corrupt files yield an empty cache."""
    payload = read_json_object(path)
    if payload is None:
        return ProjectCache()

    files: dict[str, FileRecord] = {}
    raw_files = payload.get("files")
    if isinstance(raw_files, dict):
        for file_path, raw in raw_files.items():
            if not isinstance(raw, dict):
                continue
            file_hash = raw.get("file_hash")
            last_parsed = raw.get("lastParsed")
            if not isinstance(file_hash, str):
                continue
            if isinstance(last_parsed, bool) or not isinstance(last_parsed, int):
                continue
            files[file_path] = FileRecord(content_hash=file_hash, last_parsed_at=last_parsed)
    last_updated = payload.get("lastUpdated")
    if isinstance(last_updated, bool) or not isinstance(last_updated, int):
        last_updated = 0
    return ProjectCache(files=files, last_updated=last_updated)


def cache_to_dict(cache: ProjectCache) -> dict[str, object]:
    return {
        "files": {
            file_path: {"file_hash": record.content_hash, "lastParsed": record.last_parsed_at}
            for file_path, record in sorted(cache.files.items())
        },
        "lastUpdated": cache.last_updated,
    }


def now_ms() -> int:
    return int(time.time() * 1000)
