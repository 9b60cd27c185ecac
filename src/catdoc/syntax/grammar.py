"""Structural roles of tree-sitter node types per language."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(slots=True, frozen=True)
class Grammar:
    """Which node types define classes, methods and functions in one language.

    ``assignment_wrapper_types`` are statements captured for an
    assignment-style function definition; the extractor replaces them with
    the first nested node of ``callable_value_types``. The remaining fields
    say where a definition's name lives when it has no ``name`` field.
    """

    name: str
    class_types: frozenset[str]
    method_types: frozenset[str]
    function_types: frozenset[str]
    callable_value_types: frozenset[str]
    assignment_wrapper_types: frozenset[str]
    declarator_type: str | None = None
    assignment_type: str | None = None
    member_type: str | None = None
    member_property_field: str = "property"


PYTHON_GRAMMAR = Grammar(
    name="python",
    class_types=frozenset({"class_definition"}),
    method_types=frozenset(),
    function_types=frozenset({"function_definition", "lambda"}),
    callable_value_types=frozenset({"lambda"}),
    assignment_wrapper_types=frozenset({"expression_statement"}),
    assignment_type="assignment",
    member_type="attribute",
    member_property_field="attribute",
)


def _ecmascript_grammar(name: str) -> Grammar:
    return Grammar(
        name=name,
        class_types=frozenset({"class_declaration", "abstract_class_declaration", "class"}),
        method_types=frozenset({"method_definition"}),
        function_types=frozenset(
            {"function_declaration", "arrow_function", "function_expression"}
        ),
        callable_value_types=frozenset({"arrow_function", "function_expression"}),
        assignment_wrapper_types=frozenset(
            {"lexical_declaration", "variable_declaration", "expression_statement"}
        ),
        declarator_type="variable_declarator",
        assignment_type="assignment_expression",
        member_type="member_expression",
    )


JAVASCRIPT_GRAMMAR = _ecmascript_grammar("javascript")
TYPESCRIPT_GRAMMAR = _ecmascript_grammar("typescript")
