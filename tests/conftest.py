"""Shared fixtures for importfence tests."""

import json
from pathlib import Path

import pytest

from importfence.rules.store import DEFAULT_RULE_FILENAME, RuleStore, load_rule_store


def _write_rule(root: Path, directory: str, data: dict | str) -> Path:
    """Write a rule file into root/directory. Strings are written verbatim."""
    target_dir = root / directory if directory else root
    target_dir.mkdir(parents=True, exist_ok=True)
    path = target_dir / DEFAULT_RULE_FILENAME
    text = data if isinstance(data, str) else json.dumps(data, indent=2)
    path.write_text(text)
    return path


def _write_module(root: Path, relpath: str, source: str = "") -> Path:
    """Write a Python source file, creating parent directories."""
    path = root / relpath
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(source)
    return path


@pytest.fixture
def write_rule():
    return _write_rule


@pytest.fixture
def write_module():
    return _write_module


@pytest.fixture
def rule_tree(tmp_path: Path) -> Path:
    """Repository with rules at several levels.

    pkg              allowed [""], forbidden ["internal"]
    pkg/apis/foo     allowed ["pkg/apis"]
    pkg/apis/bar     allowed ["k8s.io"], inherits
    extensions       allowed [""], forbidden ["third_party"]
    """
    _write_rule(tmp_path, "pkg", {"allowed": [""], "forbidden": ["internal"]})
    _write_rule(tmp_path, "pkg/apis/foo", {"allowed": ["pkg/apis"], "forbidden": []})
    _write_rule(
        tmp_path,
        "pkg/apis/bar",
        {"allowed": ["k8s.io"], "inheritFromAncestors": True},
    )
    _write_rule(tmp_path, "extensions", {"allowed": [""], "forbidden": ["third_party"]})
    return tmp_path


@pytest.fixture
def rule_store(rule_tree: Path) -> RuleStore:
    return load_rule_store(rule_tree)
