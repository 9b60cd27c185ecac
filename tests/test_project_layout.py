from __future__ import annotations

from pathlib import Path


def test_required_package_paths_exist() -> None:
    root = Path(__file__).resolve().parents[1]
    required = [
        "src/catdoc/cli.py",
        "src/catdoc/config.py",
        "src/catdoc/docs/__init__.py",
        "src/catdoc/index/__init__.py",
        "src/catdoc/logging/__init__.py",
        "src/catdoc/pipeline/__init__.py",
        "src/catdoc/syntax/__init__.py",
        "src/catdoc/workspace/__init__.py",
    ]
    for rel in required:
        assert (root / rel).exists(), rel
