from __future__ import annotations

from pathlib import Path

from catdoc.docs import FileDocumentation, ProjectDocumentation, render_html, write_html


def _project() -> ProjectDocumentation:
    project = ProjectDocumentation(last_updated="2024-01-01T00:00:00.000Z")
    for path, summary in (("z.ts", "- last"), ("a.py", "- uses <script> & more")):
        project.files[path] = FileDocumentation(
            path=path,
            summary=summary,
            preview="if a < b:",
            type=path.rsplit(".", 1)[-1],
            content_hash=None,
            last_modified="2024-01-01T00:00:00.000Z",
            last_updated="2024-01-01T00:00:00.000Z",
        )
    return project


def test_render_html_escapes_and_sorts_by_path() -> None:
    page = render_html(_project())

    assert "&lt;script&gt; &amp; more" in page
    assert "<script>" not in page
    assert "if a &lt; b:" in page
    assert page.index("<h2>a.py</h2>") < page.index("<h2>z.ts</h2>")


def test_write_html_creates_index_file(tmp_path: Path) -> None:
    target = write_html(_project(), tmp_path / "html")

    assert target == tmp_path / "html" / "index.html"
    assert "Project Documentation" in target.read_text(encoding="utf-8")
