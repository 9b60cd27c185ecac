"""Source parsing entry point used by the structure extractor."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from tree_sitter import Node, Parser, Tree

from catdoc.syntax.registry import LanguageRegistry, LanguageSpec, default_registry

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class ParsedSource:
    """Syntax tree plus the language and text it was built from."""

    tree: Tree
    spec: LanguageSpec
    text: str

    @property
    def scheme(self) -> str:
        return self.spec.scheme

    @property
    def root(self) -> Node:
        return self.tree.root_node


class SourceParser:
    """Selects a language by extension and parses the file with tree-sitter.

    Parsing is error tolerant: a file with syntax errors still yields a tree
    whose malformed regions are ``ERROR`` nodes.
    """

    def __init__(self, registry: LanguageRegistry | None = None) -> None:
        self.registry = registry or default_registry()

    def parse(self, path: Path) -> ParsedSource | None:
        """Parse the file at ``path``; None for unsupported or unreadable input."""
        spec = self.registry.select(path.name)
        if spec is None:
            return None
        try:
            data = path.read_bytes()
        except OSError as exc:
            logger.debug("Unable to read %s for parsing: %s", path, exc)
            return None
        return self.parse_bytes(spec, data, label=str(path))

    def parse_bytes(
        self, spec: LanguageSpec, data: bytes, *, label: str = "<bytes>"
    ) -> ParsedSource:
        tree = Parser(spec.language).parse(data)
        if tree.root_node.has_error:
            logger.debug("Parsed %s with scheme %s despite syntax errors", label, spec.scheme)
        else:
            logger.debug("Parsed %s with scheme %s", label, spec.scheme)
        return ParsedSource(tree=tree, spec=spec, text=data.decode("utf-8", errors="replace"))
