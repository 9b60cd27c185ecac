"""Version-control status query used for one-shot change checks."""

from __future__ import annotations

import logging
import subprocess
from pathlib import Path

from catdoc.workspace.paths import normalize_path

logger = logging.getLogger(__name__)

_GIT_TIMEOUT_SECONDS = 10


def git_changed_paths(root: Path) -> tuple[str, ...]:
    """Return modified, added and untracked paths reported by ``git status``."""
    try:
        result = subprocess.run(
            ["git", "status", "--porcelain=v1", "-z", "--untracked-files=all"],
            cwd=root,
            capture_output=True,
            timeout=_GIT_TIMEOUT_SECONDS,
            check=False,
        )
    except (subprocess.TimeoutExpired, FileNotFoundError) as exc:
        logger.warning("git status unavailable for %s: %s", root, exc)
        return ()
    if result.returncode != 0:
        stderr = result.stderr.decode("utf-8", errors="replace").strip()
        logger.warning("git status failed for %s: %s", root, stderr)
        return ()
    return parse_porcelain_status(result.stdout.decode("utf-8", errors="replace"))


def parse_porcelain_status(output: str) -> tuple[str, ...]:
    """Parse NUL-separated ``git status --porcelain=v1 -z`` output.

    Deleted entries are dropped; renames and copies report their new path.
    The result is sorted and de-duplicated.
    """
    entries = output.split("\0")
    paths: set[str] = set()
    index = 0
    while index < len(entries):
        entry = entries[index]
        index += 1
        if len(entry) < 4:
            continue
        status, path = entry[:2], entry[3:]
        if status[0] in "RC":
            # the original path follows as its own NUL-terminated field
            index += 1
        if "D" in status:
            continue
        if status == "??" or "M" in status or "A" in status or status[0] in "RC":
            paths.add(normalize_path(path))
    return tuple(sorted(paths))
