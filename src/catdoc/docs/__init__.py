"""Documentation records, persistence, summary and docstring generation, HTML export."""

from .docstrings import DocstringWriter, strip_code_fences
from .generator import (
    ChatCompletionClient,
    GenerationError,
    SummaryGenerator,
    TextGenerator,
)
from .html import render_html, write_html
from .models import FileDocumentation, ProjectDocumentation, build_preview
from .store import DocumentationStore

__all__ = [
    "ChatCompletionClient",
    "DocstringWriter",
    "DocumentationStore",
    "FileDocumentation",
    "GenerationError",
    "ProjectDocumentation",
    "SummaryGenerator",
    "TextGenerator",
    "build_preview",
    "render_html",
    "strip_code_fences",
    "write_html",
]
