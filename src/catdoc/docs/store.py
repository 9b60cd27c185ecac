"""In-memory documentation store with debounced JSON persistence."""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from pathlib import Path
from typing import TYPE_CHECKING

from catdoc.docs.models import (
    STORE_VERSION,
    FileDocumentation,
    ProjectDocumentation,
    documentation_from_dict,
)
from catdoc.jsonio import atomic_write_json, read_json_object
from catdoc.workspace.paths import doc_artifact_name, normalize_path

if TYPE_CHECKING:
    from catdoc.pipeline.debounce import Debouncer

logger = logging.getLogger(__name__)

_SAVE_KEY = "docs.json"


class DocumentationStore:
    """Single source of truth for generated documentation.

    Mutations update memory immediately and the per-file artifact right away;
    the aggregate ``docs.json`` is written through :meth:`save`, which is
    debounced when a debouncer is supplied.
    """

    def __init__(
        self,
        docs_path: Path,
        files_dir: Path,
        *,
        debouncer: Debouncer | None = None,
    ) -> None:
        self.docs_path = docs_path
        self.files_dir = files_dir
        self._debouncer = debouncer
        self._project = ProjectDocumentation(last_updated=_utc_now_iso())
        self._dirty = False

    @property
    def project(self) -> ProjectDocumentation:
        return self._project

    @property
    def dirty(self) -> bool:
        return self._dirty

    def load(self) -> ProjectDocumentation:
        """Load ``docs.json``; missing or corrupt stores start empty."""
        payload = read_json_object(self.docs_path)
        project = ProjectDocumentation(last_updated=_utc_now_iso())
        if payload is not None:
            version = payload.get("version")
            last_updated = payload.get("lastUpdated")
            raw_files = payload.get("files")
            project.version = version if isinstance(version, str) else STORE_VERSION
            if isinstance(last_updated, str):
                project.last_updated = last_updated
            if isinstance(raw_files, dict):
                for key, raw in raw_files.items():
                    doc = documentation_from_dict(raw)
                    if doc is None:
                        logger.warning("Skipping invalid documentation record for %s", key)
                        continue
                    project.files[normalize_path(key)] = doc
        self._project = project
        self._dirty = False
        logger.debug("Loaded %d documentation records", len(project.files))
        return project

    def get(self, path: str) -> FileDocumentation | None:
        return self._project.files.get(normalize_path(path))

    def paths(self) -> tuple[str, ...]:
        return tuple(sorted(self._project.files))

    def upsert(self, doc: FileDocumentation) -> None:
        """Insert or replace a record, write its per-file artifact and schedule a save."""
        key = normalize_path(doc.path)
        self._project.files[key] = doc
        self._project.last_updated = _utc_now_iso()
        self._dirty = True
        atomic_write_json(self._artifact_path(key), doc.to_dict())
        self.save()

    def remove(self, path: str) -> bool:
        """Drop the record and its per-file artifact; returns False when absent."""
        key = normalize_path(path)
        removed = self._project.files.pop(key, None)
        artifact = self._artifact_path(key)
        try:
            artifact.unlink(missing_ok=True)
        except OSError as exc:
            logger.warning("Could not delete documentation artifact %s: %s", artifact, exc)
        if removed is None:
            return False
        self._project.last_updated = _utc_now_iso()
        self._dirty = True
        self.save()
        return True

    def save(self) -> None:
        """Persist ``docs.json``, coalescing bursts when debounced."""
        if self._debouncer is None:
            self.flush()
            return
        self._debouncer.trigger(_SAVE_KEY, self.flush)

    def flush(self) -> None:
        """Write ``docs.json`` now and cancel any pending debounced save."""
        if self._debouncer is not None:
            self._debouncer.cancel(_SAVE_KEY)
        atomic_write_json(self.docs_path, self._project.to_dict())
        self._dirty = False
        logger.debug("Documentation store saved to %s", self.docs_path)

    def close(self) -> None:
        if self._dirty:
            self.flush()

    def _artifact_path(self, key: str) -> Path:
        return self.files_dir / doc_artifact_name(key)


def _utc_now_iso() -> str:
    return datetime.now(tz=UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")
