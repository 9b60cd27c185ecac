from __future__ import annotations

import json
from pathlib import Path

from catdoc.config import load_effective_config
from catdoc.index import ScanManager, md5_file


def _write(root: Path, relative: str, text: str) -> Path:
    target = root / relative
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(text, encoding="utf-8")
    return target


def test_scan_writes_cache_and_tagged_tree_snapshot(tmp_path: Path) -> None:
    _write(tmp_path, "src/a.py", "def foo():\n    pass\n")
    manager = ScanManager(load_effective_config(tmp_path))

    result = manager.scan()

    assert result.file_count == 1
    assert result.updated_paths == ("src/a.py",)
    snapshot = json.loads(manager.tree_path.read_text(encoding="utf-8"))
    root = snapshot[manager.root_key]
    assert root["type"] == "directory"
    node = root["children"]["src"]["children"]["a.py"]
    assert node["type"] == "file_structure"
    assert node["path"] == "src/a.py"
    assert node["items"] == [{"kind": "function", "name": "foo", "start_line": 1, "end_line": 2}]
    cache = json.loads(manager.cache_path.read_text(encoding="utf-8"))
    assert set(cache) == {"files", "lastUpdated"}


def test_repeat_scan_is_byte_identical(tmp_path: Path) -> None:
    _write(tmp_path, "a.py", "class A:\n    def f(self):\n        pass\n")
    _write(tmp_path, "web/app.js", "function main() {\n  return 1;\n}\n")
    manager = ScanManager(load_effective_config(tmp_path))

    manager.scan()
    first = manager.tree_path.read_bytes()
    first_hashes = json.loads(manager.cache_path.read_text(encoding="utf-8"))["files"]
    second_result = manager.scan()
    second_hashes = json.loads(manager.cache_path.read_text(encoding="utf-8"))["files"]

    assert manager.tree_path.read_bytes() == first
    assert second_result.updated_paths == ()
    assert second_result.changed_paths == ()
    assert {key: value["file_hash"] for key, value in first_hashes.items()} == {
        key: value["file_hash"] for key, value in second_hashes.items()
    }


def test_only_modified_file_is_reextracted(tmp_path: Path) -> None:
    a = _write(tmp_path, "a.py", "def foo():\n    pass\n")
    _write(tmp_path, "b.py", "def bar():\n    pass\n")
    manager = ScanManager(load_effective_config(tmp_path))
    manager.scan()
    before = json.loads(manager.tree_path.read_text(encoding="utf-8"))[manager.root_key]

    a.write_text("def foo():\n    return 1\n\n\ndef extra():\n    pass\n", encoding="utf-8")
    result = manager.scan()
    after = json.loads(manager.tree_path.read_text(encoding="utf-8"))[manager.root_key]

    assert result.updated_paths == ("a.py",)
    assert after["children"]["b.py"] == before["children"]["b.py"]
    assert [item["name"] for item in after["children"]["a.py"]["items"]] == ["foo", "extra"]


def test_force_scan_reextracts_everything(tmp_path: Path) -> None:
    _write(tmp_path, "a.py", "x = 1\n")
    _write(tmp_path, "b.ts", "export const y = 2;\n")
    manager = ScanManager(load_effective_config(tmp_path))
    manager.scan()

    result = manager.scan(force=True)

    assert result.updated_paths == ("a.py", "b.ts")


def test_deleted_file_is_pruned_from_cache_and_tree(tmp_path: Path) -> None:
    _write(tmp_path, "a.py", "x = 1\n")
    gone = _write(tmp_path, "pkg/b.py", "y = 2\n")
    manager = ScanManager(load_effective_config(tmp_path))
    manager.scan()

    gone.unlink()
    result = manager.scan()

    assert result.removed_paths == ("pkg/b.py",)
    assert manager.find_file("pkg/b.py") is None
    assert str(gone.resolve()) not in manager.load_cache().files


def test_corrupt_snapshots_are_a_cold_start(tmp_path: Path) -> None:
    _write(tmp_path, "a.py", "x = 1\n")
    manager = ScanManager(load_effective_config(tmp_path))
    manager.scan()
    manager.tree_path.write_text("[]", encoding="utf-8")
    manager.cache_path.write_text("{broken", encoding="utf-8")

    result = manager.scan()

    assert result.updated_paths == ("a.py",)
    assert manager.find_file("a.py") is not None


def test_refresh_hashes_updates_tree_without_reextraction(tmp_path: Path) -> None:
    a = _write(tmp_path, "a.py", "def foo():\n    pass\n")
    manager = ScanManager(load_effective_config(tmp_path))
    manager.scan()

    a.write_text("def foo():\n    pass\n# trailing\n", encoding="utf-8")

    assert manager.refresh_hashes(["a.py"]) == 1
    structure = manager.find_file("a.py")
    assert structure is not None
    assert structure.content_hash == md5_file(a)
    assert [item.name for item in structure.items] == ["foo"]
    assert manager.refresh_hashes(["a.py"]) == 0


def test_changed_files_does_not_touch_cache(tmp_path: Path) -> None:
    a = _write(tmp_path, "a.py", "x = 1\n")
    _write(tmp_path, "b.py", "y = 1\n")
    manager = ScanManager(load_effective_config(tmp_path))
    manager.scan()
    cache_bytes = manager.cache_path.read_bytes()

    a.write_text("x = 2\n", encoding="utf-8")
    _write(tmp_path, "c.js", "var c;\n")

    assert manager.changed_files() == ["a.py", "c.js"]
    assert manager.cache_path.read_bytes() == cache_bytes


def test_data_dir_contents_are_never_scanned(tmp_path: Path) -> None:
    config = load_effective_config(tmp_path)
    _write(tmp_path, "a.py", "x = 1\n")
    _write(config.data_dir, "files/stray.py", "z = 1\n")

    result = ScanManager(config).scan()

    assert result.file_count == 1


def test_deeply_nested_file_does_not_abort_the_scan(tmp_path: Path) -> None:
    _write(tmp_path, "ok.py", "def foo():\n    pass\n")
    _write(tmp_path, "deep.py", "X = " + " + ".join(["1"] * 900) + "\n")
    manager = ScanManager(load_effective_config(tmp_path))

    result = manager.scan()

    assert result.file_count == 2
    ok = manager.find_file("ok.py")
    assert ok is not None
    assert [item.name for item in ok.items] == ["foo"]
    assert manager.cache_path.exists()
