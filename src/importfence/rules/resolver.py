"""Effective rule resolution: closest directory wins, inheritance is opt-in."""

from __future__ import annotations

import threading

from importfence.rules.models import (
    ROOT_DIRECTORY,
    EffectiveRuleSet,
    Rule,
    ScopedPrefix,
    default_rule_set,
)
from importfence.rules.store import RuleStore


def ancestor_directories(package_path: str) -> list[str]:
    """Directories from the package itself up to the repository root, inclusive.

    >>> ancestor_directories("pkg/apis/foo")
    ['pkg/apis/foo', 'pkg/apis', 'pkg', '']
    """
    parts = [p for p in package_path.strip("/").split("/") if p]
    dirs = ["/".join(parts[:i]) for i in range(len(parts), 0, -1)]
    dirs.append(ROOT_DIRECTORY)
    return dirs


class RuleResolver:
    """Memoizing resolver over a loaded RuleStore. Safe to share across threads."""

    def __init__(self, store: RuleStore) -> None:
        self._store = store
        self._cache: dict[str, EffectiveRuleSet] = {}
        self._lock = threading.Lock()

    @property
    def store(self) -> RuleStore:
        return self._store

    def resolve(self, package_path: str) -> EffectiveRuleSet:
        with self._lock:
            cached = self._cache.get(package_path)
            if cached is None:
                cached = self._compute(package_path)
                self._cache[package_path] = cached
            return cached

    def cache_size(self) -> int:
        with self._lock:
            return len(self._cache)

    def _compute(self, package_path: str) -> EffectiveRuleSet:
        layers: list[Rule] = []
        for directory in ancestor_directories(package_path):
            rule = self._store.get(directory)
            if rule is None:
                continue
            layers.append(rule)
            if not rule.inherit_from_ancestors:
                break

        if not layers:
            return default_rule_set(package_path)

        allowed: list[ScopedPrefix] = []
        forbidden: list[ScopedPrefix] = []
        for rule in layers:
            _extend_unique(allowed, rule.allowed, rule.directory)
            _extend_unique(forbidden, rule.forbidden, rule.directory)

        return EffectiveRuleSet(
            package=package_path,
            allowed=allowed,
            forbidden=forbidden,
            chain=[rule.directory for rule in layers],
        )


def _extend_unique(target: list[ScopedPrefix], prefixes: list[str], directory: str) -> None:
    seen = {p.prefix for p in target}
    for prefix in prefixes:
        if prefix not in seen:
            seen.add(prefix)
            target.append(ScopedPrefix(prefix=prefix, directory=directory))


def resolve(store: RuleStore, package_path: str) -> EffectiveRuleSet:
    """One-shot resolution without a shared cache."""
    return RuleResolver(store).resolve(package_path)
