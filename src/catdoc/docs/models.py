"""Documentation records and their persisted JSON form."""

from __future__ import annotations

from dataclasses import dataclass, field

STORE_VERSION = "1.0.0"
PREVIEW_LINES = 5


@dataclass(slots=True, frozen=True)
class FileDocumentation:
    """Generated documentation for one file.

    ``content`` is kept in memory only; persisted copies never include it.
    """

    path: str
    summary: str
    preview: str
    type: str
    content_hash: str | None
    last_modified: str
    last_updated: str
    content: str | None = field(default=None, compare=False, repr=False)

    def to_dict(self) -> dict[str, object]:
        """Return the persisted form, without raw file content."""
        payload: dict[str, object] = {
            "path": self.path,
            "summary": self.summary,
            "preview": self.preview,
            "type": self.type,
            "lastModified": self.last_modified,
            "lastUpdated": self.last_updated,
        }
        if self.content_hash is not None:
            payload["contentHash"] = self.content_hash
        return payload


@dataclass(slots=True)
class ProjectDocumentation:
    """All documentation records keyed by normalized relative path."""

    version: str = STORE_VERSION
    last_updated: str = ""
    files: dict[str, FileDocumentation] = field(default_factory=dict)

    def to_dict(self) -> dict[str, object]:
        return {
            "version": self.version,
            "lastUpdated": self.last_updated,
            "files": {path: doc.to_dict() for path, doc in sorted(self.files.items())},
        }


def documentation_from_dict(payload: object) -> FileDocumentation | None:
    """Rebuild a record from its persisted form; None when it does not validate."""
    if not isinstance(payload, dict):
        return None
    path = payload.get("path")
    summary = payload.get("summary")
    preview = payload.get("preview")
    file_type = payload.get("type")
    last_modified = payload.get("lastModified")
    last_updated = payload.get("lastUpdated")
    content_hash = payload.get("contentHash")
    for value in (path, summary, preview, file_type, last_modified, last_updated):
        if not isinstance(value, str):
            return None
    if content_hash is not None and not isinstance(content_hash, str):
        return None
    return FileDocumentation(
        path=path,
        summary=summary,
        preview=preview,
        type=file_type,
        content_hash=content_hash,
        last_modified=last_modified,
        last_updated=last_updated,
    )


def build_preview(content: str) -> str:
    """First lines of the file, with an ellipsis line once the limit is reached."""
    lines = content.split("\n")[:PREVIEW_LINES]
    preview = "\n".join(lines)
    if len(lines) >= PREVIEW_LINES:
        preview += "\n..."
    return preview
