from __future__ import annotations

import json
from pathlib import Path

from catdoc.docs import DocumentationStore, FileDocumentation, build_preview
from catdoc.pipeline import Debouncer, ManualScheduler
from catdoc.workspace import doc_artifact_name


def _doc(path: str, summary: str = "- does things") -> FileDocumentation:
    return FileDocumentation(
        path=path,
        summary=summary,
        preview="line",
        type="py",
        content_hash="abc",
        last_modified="2024-01-01T00:00:00.000Z",
        last_updated="2024-01-01T00:00:01.000Z",
        content="secret file content",
    )


def test_upsert_writes_artifact_and_store_without_content(tmp_path: Path) -> None:
    store = DocumentationStore(tmp_path / "docs.json", tmp_path / "files")

    store.upsert(_doc("src/app.py"))

    artifact_path = tmp_path / "files" / doc_artifact_name("src/app.py")
    artifact = json.loads(artifact_path.read_text(encoding="utf-8"))
    persisted = json.loads((tmp_path / "docs.json").read_text(encoding="utf-8"))
    assert artifact["path"] == "src/app.py"
    assert "content" not in artifact
    assert persisted["version"] == "1.0.0"
    assert set(persisted["files"]) == {"src/app.py"}
    assert "secret file content" not in (tmp_path / "docs.json").read_text(encoding="utf-8")
    assert persisted["files"]["src/app.py"]["contentHash"] == "abc"


def test_remove_deletes_record_and_artifact(tmp_path: Path) -> None:
    store = DocumentationStore(tmp_path / "docs.json", tmp_path / "files")
    store.upsert(_doc("src/app.py"))

    assert store.remove("./src/app.py") is True

    assert store.get("src/app.py") is None
    assert not (tmp_path / "files" / doc_artifact_name("src/app.py")).exists()
    persisted = json.loads((tmp_path / "docs.json").read_text(encoding="utf-8"))
    assert persisted["files"] == {}
    assert store.remove("src/app.py") is False


def test_removing_one_path_keeps_artifact_of_similarly_named_path(tmp_path: Path) -> None:
    store = DocumentationStore(tmp_path / "docs.json", tmp_path / "files")
    store.upsert(_doc("a/b.py", summary="nested"))
    store.upsert(_doc("a__b.py", summary="flat"))

    assert store.remove("a__b.py") is True

    remaining = sorted(path.name for path in (tmp_path / "files").iterdir())
    assert remaining == [doc_artifact_name("a/b.py")]
    artifact = json.loads((tmp_path / "files" / remaining[0]).read_text(encoding="utf-8"))
    assert artifact["path"] == "a/b.py"
    assert artifact["summary"] == "nested"


def test_saves_are_debounced_into_one_write(tmp_path: Path) -> None:
    scheduler = ManualScheduler()
    store = DocumentationStore(
        tmp_path / "docs.json", tmp_path / "files", debouncer=Debouncer(2.0, scheduler)
    )

    store.upsert(_doc("a.py"))
    scheduler.advance(1.0)
    store.upsert(_doc("b.py"))
    scheduler.advance(1.5)

    assert not (tmp_path / "docs.json").exists()
    assert store.dirty is True

    scheduler.advance(0.5)

    persisted = json.loads((tmp_path / "docs.json").read_text(encoding="utf-8"))
    assert set(persisted["files"]) == {"a.py", "b.py"}
    assert store.dirty is False
    assert scheduler.pending() == 0


def test_flush_writes_immediately_and_cancels_pending_save(tmp_path: Path) -> None:
    scheduler = ManualScheduler()
    store = DocumentationStore(
        tmp_path / "docs.json", tmp_path / "files", debouncer=Debouncer(2.0, scheduler)
    )
    store.upsert(_doc("a.py"))

    store.flush()

    assert (tmp_path / "docs.json").exists()
    assert scheduler.advance(5.0) == 0


def test_load_round_trips_persisted_records(tmp_path: Path) -> None:
    first = DocumentationStore(tmp_path / "docs.json", tmp_path / "files")
    first.upsert(_doc("src/app.py", summary="- main entry"))

    second = DocumentationStore(tmp_path / "docs.json", tmp_path / "files")
    project = second.load()

    loaded = second.get("src/app.py")
    assert loaded is not None
    assert loaded.summary == "- main entry"
    assert loaded.content is None
    assert second.paths() == ("src/app.py",)
    assert project.last_updated == first.project.last_updated


def test_corrupt_store_loads_empty(tmp_path: Path) -> None:
    (tmp_path / "docs.json").write_text("{\"files\": [1, 2", encoding="utf-8")
    store = DocumentationStore(tmp_path / "docs.json", tmp_path / "files")

    project = store.load()

    assert project.files == {}
    assert store.dirty is False


def test_invalid_records_are_skipped_on_load(tmp_path: Path) -> None:
    payload = {
        "version": "1.0.0",
        "lastUpdated": "2024-01-01T00:00:00.000Z",
        "files": {"bad.py": {"path": "bad.py"}, "good.py": _doc("good.py").to_dict()},
    }
    (tmp_path / "docs.json").write_text(json.dumps(payload), encoding="utf-8")
    store = DocumentationStore(tmp_path / "docs.json", tmp_path / "files")

    store.load()

    assert store.paths() == ("good.py",)


def test_preview_keeps_first_five_lines() -> None:
    assert build_preview("a\nb") == "a\nb"
    assert build_preview("1\n2\n3\n4\n5\n6\n7") == "1\n2\n3\n4\n5\n..."
