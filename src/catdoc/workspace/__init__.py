"""Workspace path, ignore and version-control helpers."""

from .ignore import IgnoreRules, build_ignore_rules, load_gitignore, should_exclude
from .paths import (
    PathOutsideWorkspaceError,
    doc_artifact_name,
    normalize_path,
    sanitize_name,
    to_workspace_relative,
)
from .vcs import git_changed_paths, parse_porcelain_status

__all__ = [
    "IgnoreRules",
    "PathOutsideWorkspaceError",
    "build_ignore_rules",
    "doc_artifact_name",
    "git_changed_paths",
    "load_gitignore",
    "normalize_path",
    "parse_porcelain_status",
    "sanitize_name",
    "should_exclude",
    "to_workspace_relative",
]
