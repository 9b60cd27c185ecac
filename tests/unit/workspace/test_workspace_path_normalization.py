from __future__ import annotations

from pathlib import Path

import pytest

from catdoc.workspace import (
    PathOutsideWorkspaceError,
    doc_artifact_name,
    normalize_path,
    to_workspace_relative,
)


def test_normalize_path_uses_forward_slashes_without_dot_prefix() -> None:
    assert normalize_path("./src\\pkg//mod.py") == "src/pkg/mod.py"
    assert normalize_path("././a/b/") == "a/b"


def test_absolute_path_inside_root_becomes_relative(tmp_path: Path) -> None:
    target = tmp_path / "src" / "app.py"

    assert to_workspace_relative(tmp_path, str(target)) == "src/app.py"
    assert to_workspace_relative(tmp_path, target) == "src/app.py"


def test_relative_path_is_normalized(tmp_path: Path) -> None:
    assert to_workspace_relative(tmp_path, "./src/./app.py") == "src/app.py"


def test_absolute_path_outside_root_is_rejected(tmp_path: Path) -> None:
    outside = tmp_path.parent / "elsewhere.py"

    with pytest.raises(PathOutsideWorkspaceError):
        to_workspace_relative(tmp_path / "root", str(outside))


def test_parent_traversal_is_rejected(tmp_path: Path) -> None:
    with pytest.raises(PathOutsideWorkspaceError):
        to_workspace_relative(tmp_path, "src/../../secret.py")


def test_doc_artifact_name_flattens_separators() -> None:
    name = doc_artifact_name("src/utils/file utils.ts")

    assert name.startswith("src__utils__file_utils.ts.")
    assert name.endswith(".json")
    assert doc_artifact_name("./main.py") == doc_artifact_name("main.py")


def test_doc_artifact_names_differ_when_flattened_text_collides() -> None:
    assert doc_artifact_name("a/b.py") != doc_artifact_name("a__b.py")
    assert doc_artifact_name("a b.py") != doc_artifact_name("a_b.py")
