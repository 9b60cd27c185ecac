"""Atomic file persistence helpers."""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path

logger = logging.getLogger(__name__)


def atomic_write_text(path: Path, text: str) -> None:
    """Replace ``path`` with UTF-8 ``text`` through a temporary sibling, keeping its mode."""
    tmp = path.with_name(f".{path.name}.tmp")
    tmp.write_bytes(text.encode("utf-8"))
    if path.exists():
        os.chmod(tmp, path.stat().st_mode)
    tmp.replace(path)


def atomic_write_json(path: Path, payload: object, *, indent: int | None = 2) -> None:
    """Write JSON through a temporary sibling file and replace the target."""
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_suffix(path.suffix + ".tmp")
    with tmp.open("w", encoding="utf-8") as handle:
        json.dump(payload, handle, sort_keys=True, indent=indent, ensure_ascii=False)
        handle.write("\n")
    tmp.replace(path)


def read_json_object(path: Path) -> dict[str, object] | None:
    """Return the JSON object stored at ``path``.

    Missing files, unreadable files, invalid JSON and non-object payloads all
    return None; the last three are logged so a corrupt file reads as a cold
    start instead of an error.
    """
    if not path.exists():
        return None
    try:
        with path.open("r", encoding="utf-8") as handle:
            payload = json.load(handle)
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
        logger.warning("Ignoring unreadable JSON file %s: %s", path, exc)
        return None
    if not isinstance(payload, dict):
        logger.warning("Ignoring JSON file %s: top-level value is not an object", path)
        return None
    return payload
