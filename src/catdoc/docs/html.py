"""Static HTML index of the documentation store."""

from __future__ import annotations

import html
from pathlib import Path

from catdoc.docs.models import ProjectDocumentation

_PAGE = """<!DOCTYPE html>
<html>
<head>
<meta charset="utf-8">
<title>Project Documentation</title>
<style>
body {{ font-family: system-ui; max-width: 1200px; margin: 0 auto; padding: 20px; }}
.file {{ margin-bottom: 30px; border: 1px solid #eee; padding: 20px; border-radius: 8px; }}
pre {{ background: #f6f8fa; padding: 15px; border-radius: 6px; overflow-x: auto; }}
.summary {{ margin: 15px 0; padding: 15px; background: #f0f7ff; border-radius: 6px; }}
</style>
</head>
<body>
<h1>Project Documentation</h1>
<p>Last updated: {last_updated}</p>
{sections}
</body>
</html>
"""

_SECTION = """<div class="file">
<h2>{path}</h2>
<div class="summary">
<h3>Summary</h3>
<pre>{summary}</pre>
</div>
<h3>Preview</h3>
<pre><code>{preview}</code></pre>
</div>"""


def render_html(project: ProjectDocumentation) -> str:
    """Render every record, sorted by path, with all text escaped."""
    sections = [
        _SECTION.format(
            path=html.escape(path),
            summary=html.escape(doc.summary),
            preview=html.escape(doc.preview),
        )
        for path, doc in sorted(project.files.items())
    ]
    return _PAGE.format(
        last_updated=html.escape(project.last_updated),
        sections="\n".join(sections),
    )


def write_html(project: ProjectDocumentation, html_dir: Path) -> Path:
    html_dir.mkdir(parents=True, exist_ok=True)
    target = html_dir / "index.html"
    target.write_text(render_html(project), encoding="utf-8")
    return target
