"""Structured JSONL log of per-file generation outcomes."""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from datetime import UTC, datetime
from pathlib import Path
from typing import Literal

EventOutcome = Literal["documented", "skipped", "failed", "removed"]


@dataclass(slots=True, frozen=True)
class GenerationEvent:
    """Outcome of processing one queued path."""

    timestamp: str
    path: str
    outcome: EventOutcome
    duration_ms: int
    error: str | None = None


def utc_timestamp() -> str:
    """Return an ISO-8601 UTC timestamp."""
    return datetime.now(tz=UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


class JsonlEventLog:
    """Append-only JSONL event log and bounded reader."""

    def __init__(self, path: Path) -> None:
        self._path = path
        self._path.parent.mkdir(parents=True, exist_ok=True)

    @property
    def path(self) -> Path:
        return self._path

    def record(
        self,
        path: str,
        outcome: EventOutcome,
        *,
        duration_ms: int = 0,
        error: str | None = None,
    ) -> GenerationEvent:
        event = GenerationEvent(
            timestamp=utc_timestamp(),
            path=path,
            outcome=outcome,
            duration_ms=duration_ms,
            error=error,
        )
        self.append(event)
        return event

    def append(self, event: GenerationEvent) -> None:
        """Append one event as a single JSON line."""
        with self._path.open("a", encoding="utf-8") as handle:
            handle.write(json.dumps(asdict(event), sort_keys=True))
            handle.write("\n")

    def read(self, since: str | None = None, limit: int = 50) -> list[dict[str, object]]:
        """Read recent events, optionally filtered by timestamp lower bound."""
        if limit < 1:
            return []
        entries: list[dict[str, object]] = []
        if not self._path.exists():
            return entries
        with self._path.open("r", encoding="utf-8") as handle:
            for line in handle:
                stripped = line.strip()
                if not stripped:
                    continue
                try:
                    record = json.loads(stripped)
                except json.JSONDecodeError:
                    continue
                if not isinstance(record, dict):
                    continue
                if since is not None:
                    ts = record.get("timestamp")
                    if not isinstance(ts, str) or ts < since:
                        continue
                entries.append(record)
        return entries[-limit:]
