"""Ignore rules shared by scanning and watching."""

from __future__ import annotations

import fnmatch
import logging
from dataclasses import dataclass, field
from pathlib import Path

import pathspec

from catdoc.config import CatdocConfig

logger = logging.getLogger(__name__)

EXPLICIT_IGNORED_NAMES = frozenset({"node_modules", ".git", "dist", "logs"})


@dataclass(slots=True, frozen=True)
class IgnoreRules:
    """Explicit ignore names, fnmatch globs, .gitignore rules and the data dir prefix."""

    include_extensions: tuple[str, ...]
    exclude_globs: tuple[str, ...] = ()
    ignored_names: frozenset[str] = EXPLICIT_IGNORED_NAMES
    gitignore: pathspec.PathSpec | None = None
    internal_prefix: str | None = None
    _extensions: frozenset[str] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(
            self, "_extensions", frozenset(ext.lower() for ext in self.include_extensions)
        )

    def ignores(self, relative_path: str, *, is_dir: bool = False) -> bool:
        """Return True when a normalized relative path must be skipped."""
        if not relative_path:
            return False
        parts = relative_path.split("/")
        if any(part in self.ignored_names for part in parts):
            return True
        if self.internal_prefix is not None and (
            relative_path == self.internal_prefix
            or relative_path.startswith(f"{self.internal_prefix}/")
        ):
            return True
        candidate = f"{relative_path}/" if is_dir else relative_path
        if should_exclude(candidate, self.exclude_globs):
            return True
        if self.gitignore is not None and self.gitignore.match_file(candidate):
            return True
        return False

    def has_allowed_extension(self, relative_path: str) -> bool:
        """Return True when the file extension is in the allow-list."""
        return Path(relative_path).suffix.lower() in self._extensions

    def accepts_file(self, relative_path: str) -> bool:
        """Return True for files that are both eligible by extension and not ignored."""
        return self.has_allowed_extension(relative_path) and not self.ignores(relative_path)


def should_exclude(relative_path: str, exclude_globs: tuple[str, ...]) -> bool:
    """Return True when a path matches configured ignore globs."""
    anchored = f"/{relative_path}"
    return any(
        fnmatch.fnmatch(relative_path, pattern) or fnmatch.fnmatch(anchored, pattern)
        for pattern in exclude_globs
    )


def load_gitignore(root: Path) -> pathspec.PathSpec | None:
    """Load root .gitignore rules, if present and readable."""
    gitignore_path = root / ".gitignore"
    if not gitignore_path.is_file():
        return None
    try:
        lines = gitignore_path.read_text(encoding="utf-8", errors="replace").splitlines()
    except OSError as exc:
        logger.warning("Could not read %s: %s", gitignore_path, exc)
        return None
    return pathspec.GitIgnoreSpec.from_lines(lines)


def build_ignore_rules(config: CatdocConfig) -> IgnoreRules:
    """Build ignore rules for a workspace from effective config."""
    root = config.workspace_root
    internal_prefix: str | None = None
    if config.data_dir.is_relative_to(root):
        internal_prefix = config.data_dir.relative_to(root).as_posix() or None
    return IgnoreRules(
        include_extensions=config.index.include_extensions,
        exclude_globs=config.index.exclude_globs,
        gitignore=load_gitignore(root) if config.index.respect_gitignore else None,
        internal_prefix=internal_prefix,
    )
