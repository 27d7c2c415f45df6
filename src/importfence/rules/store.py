"""RuleStore: discover and parse per-directory rule files."""

from __future__ import annotations

import json
import logging
import os
import re
from collections.abc import Iterable, Iterator
from pathlib import Path

from pydantic import ValidationError

from importfence.rules.models import ROOT_DIRECTORY, Rule, RuleDeclaration

logger = logging.getLogger(__name__)

DEFAULT_RULE_FILENAME = ".import-restrictions.json"
DEFAULT_EXCLUDE_DIRS: tuple[str, ...] = (".git", "__pycache__", ".venv", "node_modules")

_DECODER = json.JSONDecoder()
_WHITESPACE = re.compile(r"\s*")


class ConfigError(Exception):
    """Raised when a rule declaration is malformed. Always fatal for the run."""

    def __init__(self, path: str | Path, line: int | None, message: str) -> None:
        self.path = str(path)
        self.line = line
        self.message = message
        location = self.path if line is None else f"{self.path}:{line}"
        super().__init__(f"{location}: {message}")


class RuleStore:
    """Immutable set of rules keyed by repository-relative directory."""

    def __init__(self, root: Path, rules: Iterable[Rule] = ()) -> None:
        self._root = root
        self._rules: dict[str, Rule] = {}
        for rule in rules:
            if rule.directory in self._rules:
                raise ConfigError(
                    rule.path, None, f"duplicate rule for directory '{rule.directory}'"
                )
            self._rules[rule.directory] = rule

    @property
    def root(self) -> Path:
        return self._root

    def get(self, directory: str) -> Rule | None:
        return self._rules.get(directory)

    def directories(self) -> list[str]:
        return sorted(self._rules)

    def __contains__(self, directory: object) -> bool:
        return directory in self._rules

    def __len__(self) -> int:
        return len(self._rules)

    def __iter__(self) -> Iterator[Rule]:
        return iter(self._rules[d] for d in self.directories())


def load_rule_store(
    root: Path,
    *,
    filename: str = DEFAULT_RULE_FILENAME,
    exclude_dirs: Iterable[str] = DEFAULT_EXCLUDE_DIRS,
) -> RuleStore:
    """Scan root for rule files and parse them all.

    Any malformed file raises ConfigError; nothing is returned partially.
    """
    if not root.is_dir():
        raise ConfigError(root, None, "repository root is not a directory")

    excluded = set(exclude_dirs)
    rules: list[Rule] = []
    for dirpath, dirnames, filenames in os.walk(root):
        dirnames[:] = sorted(d for d in dirnames if d not in excluded)
        if filename not in filenames:
            continue
        current = Path(dirpath)
        rel = current.relative_to(root).as_posix()
        directory = ROOT_DIRECTORY if rel == "." else rel
        rules.append(parse_rule_file(current / filename, directory))

    logger.info(f"Loaded {len(rules)} rule file(s) under {root}")
    return RuleStore(root, rules)


def parse_rule_file(path: Path, directory: str) -> Rule:
    """Parse one rule file into a Rule owned by directory."""
    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise ConfigError(path, None, f"cannot read rule file: {e}") from e

    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise ConfigError(path, e.lineno, f"invalid JSON: {e.msg}") from e

    if not isinstance(data, dict):
        raise ConfigError(path, 1, "rule file must contain a JSON object")

    try:
        decl = RuleDeclaration.model_validate(data)
    except ValidationError as e:
        err = e.errors()[0]
        loc = err["loc"]
        field = ".".join(str(part) for part in loc) or "<root>"
        raise ConfigError(path, _line_of_error(text, loc), f"{field}: {err['msg']}") from e

    return Rule(
        directory=directory,
        path=str(path),
        allowed=list(decl.allowed),
        forbidden=list(decl.forbidden),
        inherit_from_ancestors=decl.inherit_from_ancestors,
    )


def _line_of_error(text: str, loc: tuple[int | str, ...]) -> int:
    """Line of the key named by loc, or of the list element it indexes."""
    if not loc or not isinstance(loc[0], str):
        return 1
    match = re.search(rf'"{re.escape(loc[0])}"\s*:\s*', text)
    if match is None:
        return 1
    offset = match.start()
    if len(loc) > 1 and isinstance(loc[1], int) and text.startswith("[", match.end()):
        element = _element_offset(text, match.end() + 1, loc[1])
        if element is not None:
            offset = element
    return text.count("\n", 0, offset) + 1


def _element_offset(text: str, pos: int, index: int) -> int | None:
    # text is already known to be valid JSON
    for _ in range(index):
        pos = _skip_ws(text, pos)
        if text.startswith("]", pos):
            return None
        _, pos = _DECODER.raw_decode(text, pos)
        pos = _skip_ws(text, pos)
        if not text.startswith(",", pos):
            return None
        pos += 1
    return _skip_ws(text, pos)


def _skip_ws(text: str, pos: int) -> int:
    return _WHITESPACE.match(text, pos).end()
