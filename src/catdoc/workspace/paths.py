"""Workspace-relative path normalization helpers."""

from __future__ import annotations

import hashlib
import os
import re
from pathlib import Path
from typing import Final

WINDOWS_ABSOLUTE_PATTERN: Final[re.Pattern[str]] = re.compile(r"^[a-zA-Z]:[\\/]")
_UNSAFE_NAME_CHARS: Final[re.Pattern[str]] = re.compile(r"[^a-zA-Z0-9_\-.]")


class PathOutsideWorkspaceError(ValueError):
    """Raised when a path resolves outside of the workspace root."""

    def __init__(self, path: str, root: Path) -> None:
        super().__init__(f"Path is outside the workspace: {path}")
        self.path = path
        self.root = root


def normalize_path(candidate: str) -> str:
    """Normalize separators and strip leading './' segments from a relative path."""
    normalized = candidate.replace("\\", "/").strip()
    while "//" in normalized:
        normalized = normalized.replace("//", "/")
    while normalized.startswith("./"):
        normalized = normalized[2:]
    return normalized.rstrip("/")


def is_absolute_style(candidate: str) -> bool:
    normalized = candidate.replace("\\", "/")
    return normalized.startswith("/") or WINDOWS_ABSOLUTE_PATTERN.match(normalized) is not None


def to_workspace_relative(root: Path, candidate: str | os.PathLike[str]) -> str:
    """Return the normalized workspace-relative form of a relative or absolute path.

    Absolute paths must live under ``root``; relative paths must not climb out
    of it with ``..`` segments.
    """
    raw = os.fspath(candidate)
    resolved_root = root.resolve()
    if is_absolute_style(raw):
        absolute = Path(raw)
        try:
            relative = absolute.relative_to(resolved_root)
        except ValueError:
            try:
                relative = absolute.resolve(strict=False).relative_to(resolved_root)
            except ValueError as exc:
                raise PathOutsideWorkspaceError(raw, resolved_root) from exc
        return normalize_path(relative.as_posix())

    normalized = normalize_path(raw)
    parts = [part for part in normalized.split("/") if part not in ("", ".")]
    if any(part == ".." for part in parts):
        raise PathOutsideWorkspaceError(raw, resolved_root)
    return "/".join(parts)


def sanitize_name(name: str) -> str:
    """Replace characters that are unsafe in file names with underscores."""
    return _UNSAFE_NAME_CHARS.sub("_", name)


def doc_artifact_name(relative_path: str) -> str:
    """Return the per-file documentation artifact name for a normalized path.

    The readable part flattens separators and unsafe characters, which can
    map distinct paths to the same text, so a digest of the normalized path
    keeps names distinct.
    """
    normalized = normalize_path(relative_path)
    digest = hashlib.sha256(normalized.encode("utf-8")).hexdigest()[:12]
    return f"{sanitize_name(normalized.replace('/', '__'))}.{digest}.json"
