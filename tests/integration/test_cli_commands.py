from __future__ import annotations

import json
from pathlib import Path

import httpx
import pytest

from catdoc import cli
from catdoc.config import GeneratorConfig
from catdoc.docs import ChatCompletionClient


def _workspace(tmp_path: Path) -> Path:
    (tmp_path / "src").mkdir()
    (tmp_path / "src" / "a.py").write_text("def foo():\n    return 1\n", encoding="utf-8")
    (tmp_path / "src" / "b.ts").write_text("export class B {\n}\n", encoding="utf-8")
    return tmp_path


def test_scan_command_prints_result(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    root = _workspace(tmp_path)

    assert cli.main(["--workspace", str(root), "scan"]) == 0

    result = json.loads(capsys.readouterr().out)
    assert result["file_count"] == 2
    assert result["updated_paths"] == ["src/a.py", "src/b.ts"]
    assert (root / ".catdoc").is_dir()


def test_changed_command_lists_hash_changes(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    root = _workspace(tmp_path)
    cli.main(["--workspace", str(root), "scan"])
    capsys.readouterr()
    (root / "src" / "a.py").write_text("def foo():\n    return 2\n", encoding="utf-8")

    assert cli.main(["--workspace", str(root), "changed"]) == 0

    assert capsys.readouterr().out.splitlines() == ["src/a.py"]


def test_generate_command_without_api_key_fails(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    monkeypatch.delenv("GOOGLE_API_KEY", raising=False)
    root = _workspace(tmp_path)

    assert cli.main(["--workspace", str(root), "generate"]) == 2
    assert "GOOGLE_API_KEY" in capsys.readouterr().err


def test_invalid_config_file_fails(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    root = _workspace(tmp_path)
    (root / "catdoc.toml").write_text("[pipeline]\nconcurrency = 0\n", encoding="utf-8")

    assert cli.main(["--workspace", str(root), "scan"]) == 2
    assert "pipeline.concurrency" in capsys.readouterr().err


def test_generate_then_html_and_events(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    root = _workspace(tmp_path)

    def handle(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"choices": [{"message": {"content": "- generated"}}]})

    def client_factory(config: GeneratorConfig) -> ChatCompletionClient:
        return ChatCompletionClient(config, api_key="k", transport=httpx.MockTransport(handle))

    monkeypatch.setattr(cli, "ChatCompletionClient", client_factory)

    assert cli.main(["--workspace", str(root), "--concurrency", "1", "generate"]) == 0
    assert cli.main(["--workspace", str(root), "html"]) == 0
    assert cli.main(["--workspace", str(root), "events", "--limit", "5"]) == 0

    out = capsys.readouterr().out
    index = root / ".catdoc" / "html" / "index.html"
    assert str(index) in out
    assert "- generated" in index.read_text(encoding="utf-8")
    docs = json.loads((root / ".catdoc" / "docs.json").read_text(encoding="utf-8"))
    assert sorted(docs["files"]) == ["src/a.py", "src/b.ts"]
    assert '"outcome": "documented"' in out


def test_debug_flag_writes_debug_log(tmp_path: Path) -> None:
    root = _workspace(tmp_path)

    assert cli.main(["--workspace", str(root), "--debug", "scan"]) == 0

    log_path = root / ".catdoc" / "logs" / "catdoc-debug.log"
    assert log_path.exists()
    assert "Scan finished" in log_path.read_text(encoding="utf-8")
    cli.configure_logging(False)


def _fake_client(monkeypatch: pytest.MonkeyPatch, content: str) -> None:
    def handle(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"choices": [{"message": {"content": content}}]})

    def client_factory(config: GeneratorConfig) -> ChatCompletionClient:
        return ChatCompletionClient(config, api_key="k", transport=httpx.MockTransport(handle))

    monkeypatch.setattr(cli, "ChatCompletionClient", client_factory)


def test_generate_rejects_path_outside_workspace(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    (tmp_path / "ws").mkdir()
    root = _workspace(tmp_path / "ws")
    _fake_client(monkeypatch, "- generated")

    assert cli.main(["--workspace", str(root), "generate", "../outside.py"]) == 2

    err = capsys.readouterr().err
    assert err.startswith("catdoc: ")
    assert "outside the workspace" in err


def test_docstrings_command_rewrites_changed_files(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    root = _workspace(tmp_path)
    documented = 'def foo():\n    """Return one."""\n    return 1'
    _fake_client(monkeypatch, f"```python\n{documented}\n```")
    cli.main(["--workspace", str(root), "scan"])
    (root / "src" / "a.py").write_text("def foo():\n    return 1\n\n", encoding="utf-8")
    capsys.readouterr()

    assert cli.main(["--workspace", str(root), "docstrings"]) == 0

    assert json.loads(capsys.readouterr().out) == {"src/a.py": "written"}
    assert (root / "src" / "a.py").read_text(encoding="utf-8") == documented + "\n"
    assert (root / "src" / "b.ts").read_text(encoding="utf-8") == "export class B {\n}\n"
