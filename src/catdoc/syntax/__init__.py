"""Tree-sitter languages, grammar roles and capture query schemes."""

from .grammar import JAVASCRIPT_GRAMMAR, PYTHON_GRAMMAR, TYPESCRIPT_GRAMMAR, Grammar
from .parser import ParsedSource, SourceParser
from .registry import QUERIES, LanguageRegistry, LanguageSpec, default_registry

__all__ = [
    "JAVASCRIPT_GRAMMAR",
    "PYTHON_GRAMMAR",
    "QUERIES",
    "TYPESCRIPT_GRAMMAR",
    "Grammar",
    "LanguageRegistry",
    "LanguageSpec",
    "ParsedSource",
    "SourceParser",
    "default_registry",
]
