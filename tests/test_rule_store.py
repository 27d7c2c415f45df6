"""Tests for rules/store.py — rule discovery and ConfigError reporting."""

from __future__ import annotations

from pathlib import Path

import pytest

from importfence.rules.models import Rule
from importfence.rules.store import ConfigError, RuleStore, load_rule_store, parse_rule_file


class TestLoadRuleStore:
    def test_empty_tree_has_no_rules(self, tmp_path: Path):
        store = load_rule_store(tmp_path)
        assert len(store) == 0
        assert store.directories() == []

    def test_keys_rules_by_relative_directory(self, rule_store: RuleStore):
        assert rule_store.directories() == ["extensions", "pkg", "pkg/apis/bar", "pkg/apis/foo"]
        assert "pkg/apis/foo" in rule_store
        assert "pkg/apis" not in rule_store

    def test_rule_content(self, rule_store: RuleStore):
        rule = rule_store.get("pkg/apis/foo")
        assert rule is not None
        assert rule.allowed == ["pkg/apis"]
        assert rule.forbidden == []
        assert rule.inherit_from_ancestors is False
        assert rule.path.endswith(".import-restrictions.json")

    def test_inherit_flag_loaded(self, rule_store: RuleStore):
        rule = rule_store.get("pkg/apis/bar")
        assert rule is not None
        assert rule.inherit_from_ancestors is True

    def test_root_rule_uses_empty_directory(self, tmp_path: Path, write_rule):
        write_rule(tmp_path, "", {"allowed": [""]})
        store = load_rule_store(tmp_path)
        assert store.directories() == [""]
        assert store.get("") is not None

    def test_excluded_directories_skipped(self, tmp_path: Path, write_rule):
        write_rule(tmp_path, "node_modules/lib", "{ not json")
        write_rule(tmp_path, "pkg", {"allowed": [""]})
        store = load_rule_store(tmp_path)
        assert store.directories() == ["pkg"]

    def test_custom_filename(self, tmp_path: Path):
        (tmp_path / "pkg").mkdir()
        (tmp_path / "pkg" / "rules.json").write_text('{"allowed": ["x"]}')
        store = load_rule_store(tmp_path, filename="rules.json")
        assert store.directories() == ["pkg"]

    def test_iterates_in_directory_order(self, rule_store: RuleStore):
        assert [r.directory for r in rule_store] == rule_store.directories()

    def test_missing_root_is_config_error(self, tmp_path: Path):
        with pytest.raises(ConfigError):
            load_rule_store(tmp_path / "nope")

    def test_store_root(self, rule_tree: Path, rule_store: RuleStore):
        assert rule_store.root == rule_tree


class TestMalformedRules:
    def test_invalid_json_reports_file_and_line(self, tmp_path: Path, write_rule):
        path = write_rule(tmp_path, "pkg", '{\n  "allowed": ["a"],\n  "forbidden": [\n}')
        with pytest.raises(ConfigError) as exc_info:
            load_rule_store(tmp_path)
        err = exc_info.value
        assert err.path == str(path)
        assert err.line == 4
        assert "invalid JSON" in err.message

    def test_unknown_field_reports_its_line(self, tmp_path: Path, write_rule):
        path = write_rule(tmp_path, "pkg", '{\n  "allowed": [""],\n  "denied": ["x"]\n}')
        with pytest.raises(ConfigError) as exc_info:
            load_rule_store(tmp_path)
        err = exc_info.value
        assert err.path == str(path)
        assert err.line == 3
        assert "denied" in err.message
        assert f"{path}:3" in str(err)

    def test_non_string_prefix(self, tmp_path: Path, write_rule):
        write_rule(tmp_path, "pkg", '{\n  "forbidden": ["x", 42]\n}')
        with pytest.raises(ConfigError) as exc_info:
            load_rule_store(tmp_path)
        assert exc_info.value.line == 2
        assert "forbidden" in exc_info.value.message

    def test_bad_element_in_multiline_list_reports_element_line(
        self, tmp_path: Path, write_rule
    ):
        write_rule(tmp_path, "pkg", '{\n  "forbidden": [\n    "x",\n    "y",\n    42\n  ]\n}')
        with pytest.raises(ConfigError) as exc_info:
            load_rule_store(tmp_path)
        assert exc_info.value.line == 5
        assert "forbidden.2" in exc_info.value.message

    def test_non_object_document(self, tmp_path: Path, write_rule):
        write_rule(tmp_path, "pkg", '["pkg"]')
        with pytest.raises(ConfigError) as exc_info:
            load_rule_store(tmp_path)
        assert exc_info.value.line == 1

    def test_one_bad_file_fails_whole_load(self, rule_tree: Path, write_rule):
        write_rule(rule_tree, "deep/nested/pkg", '{"allowed": "pkg"}')
        with pytest.raises(ConfigError):
            load_rule_store(rule_tree)


class TestParseRuleFile:
    def test_returns_rule(self, tmp_path: Path, write_rule):
        path = write_rule(tmp_path, "a", {"allowed": ["x"], "forbidden": ["y"]})
        rule = parse_rule_file(path, "a")
        assert isinstance(rule, Rule)
        assert rule.directory == "a"
        assert rule.forbidden == ["y"]

    def test_rules_are_frozen(self, tmp_path: Path, write_rule):
        path = write_rule(tmp_path, "a", {"allowed": ["x"]})
        rule = parse_rule_file(path, "a")
        with pytest.raises(Exception):
            rule.directory = "b"  # type: ignore[misc]


class TestRuleStore:
    def test_duplicate_directory_rejected(self, tmp_path: Path):
        rule = Rule(directory="a", path="a/.import-restrictions.json")
        with pytest.raises(ConfigError):
            RuleStore(tmp_path, [rule, rule])

    def test_get_missing_returns_none(self, tmp_path: Path):
        assert RuleStore(tmp_path).get("x") is None
