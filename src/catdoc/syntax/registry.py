"""Language registry: extension selection, tree-sitter languages and capture query schemes."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import PurePosixPath

import tree_sitter_javascript
import tree_sitter_python
import tree_sitter_typescript
from tree_sitter import Language, Query, QueryError

from catdoc.syntax.grammar import JAVASCRIPT_GRAMMAR, PYTHON_GRAMMAR, TYPESCRIPT_GRAMMAR, Grammar

logger = logging.getLogger(__name__)

PYTHON_QUERY = """
(class_definition name: (identifier) @class.name) @class.definition
(function_definition name: (identifier) @function.name) @function.definition

(expression_statement
  (assignment
    left: [(identifier) @function.name
           (attribute attribute: (identifier) @function.name)]
    right: (lambda))) @function.definition
"""

_ECMASCRIPT_DEFINITIONS = """
(class_declaration) @class.definition
(class) @class.definition
(method_definition) @method.definition
(function_declaration) @function.definition
"""

JAVASCRIPT_QUERY = (
    _ECMASCRIPT_DEFINITIONS
    + """
(lexical_declaration
  (variable_declarator
    name: (identifier) @function.name
    value: [(arrow_function) (function_expression)])) @function.definition

(variable_declaration
  (variable_declarator
    name: (identifier) @function.name
    value: [(arrow_function) (function_expression)])) @function.definition

(expression_statement
  (assignment_expression
    left: [(identifier) @function.name
           (member_expression property: (property_identifier) @function.name)]
    right: [(arrow_function) (function_expression)])) @function.definition
"""
)

TYPESCRIPT_QUERY = (
    _ECMASCRIPT_DEFINITIONS
    + """
(abstract_class_declaration) @class.definition

(lexical_declaration
  (variable_declarator
    name: (identifier) @function.name
    value: (arrow_function))) @function.definition

(variable_declaration
  (variable_declarator
    name: (identifier) @function.name
    value: (arrow_function))) @function.definition
"""
)

QUERIES: dict[str, str] = {
    "python": PYTHON_QUERY,
    "javascript": JAVASCRIPT_QUERY,
    "jsx": JAVASCRIPT_QUERY,
    "typescript": TYPESCRIPT_QUERY,
    "tsx": TYPESCRIPT_QUERY,
}


@dataclass(slots=True, frozen=True)
class LanguageSpec:
    """One supported language: its query scheme, extensions, grammar roles and parser language."""

    scheme: str
    extensions: tuple[str, ...]
    grammar: Grammar
    language: Language

    def supports_path(self, path: str) -> bool:
        return PurePosixPath(path.replace("\\", "/")).suffix.lower() in self.extensions


@dataclass(slots=True)
class LanguageRegistry:
    """Ordered language registry with a per-scheme compiled query cache."""

    _languages: list[LanguageSpec] = field(default_factory=list)
    _queries: dict[str, str] = field(default_factory=lambda: dict(QUERIES))
    _compiled: dict[str, Query] = field(default_factory=dict)

    def register(self, spec: LanguageSpec) -> None:
        """Register a language in deterministic insertion order."""
        self._languages.append(spec)

    def select(self, path: str) -> LanguageSpec | None:
        """Return the language for the path's extension, or None when unsupported."""
        for spec in self._languages:
            if spec.supports_path(path):
                return spec
        return None

    def schemes(self) -> tuple[str, ...]:
        return tuple(spec.scheme for spec in self._languages)

    def set_query(self, scheme: str, source: str) -> None:
        """Replace the query scheme and drop its cached compilation."""
        self._queries[scheme] = source
        self._compiled.pop(scheme, None)

    def query_for(self, spec: LanguageSpec) -> Query | None:
        """Return the compiled query for the scheme, or None when it cannot compile."""
        cached = self._compiled.get(spec.scheme)
        if cached is not None:
            return cached
        source = self._queries.get(spec.scheme)
        if source is None:
            logger.debug("No query defined for scheme %s", spec.scheme)
            return None
        try:
            compiled = Query(spec.language, source)
        except QueryError as exc:
            logger.error("Query compilation failed for scheme %s: %s", spec.scheme, exc)
            return None
        logger.debug("Compiled query for scheme %s", spec.scheme)
        self._compiled[spec.scheme] = compiled
        return compiled


def default_registry() -> LanguageRegistry:
    """Build the registry for Python, JavaScript, JSX, TypeScript and TSX."""
    python = Language(tree_sitter_python.language())
    javascript = Language(tree_sitter_javascript.language())
    typescript = Language(tree_sitter_typescript.language_typescript())
    tsx = Language(tree_sitter_typescript.language_tsx())
    registry = LanguageRegistry()
    registry.register(LanguageSpec("python", (".py",), PYTHON_GRAMMAR, python))
    registry.register(LanguageSpec("javascript", (".js",), JAVASCRIPT_GRAMMAR, javascript))
    registry.register(LanguageSpec("jsx", (".jsx",), JAVASCRIPT_GRAMMAR, javascript))
    registry.register(LanguageSpec("typescript", (".ts",), TYPESCRIPT_GRAMMAR, typescript))
    registry.register(LanguageSpec("tsx", (".tsx",), TYPESCRIPT_GRAMMAR, tsx))
    return registry
