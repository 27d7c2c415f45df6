"""Boundary evaluation: check every import edge against its importer's rules."""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field

from importfence.graph.models import ImportGraph
from importfence.rules.models import EffectiveRuleSet
from importfence.rules.resolver import RuleResolver

NO_ALLOWED_PREFIX = "no allowed prefix matched"


class ViolationKind(StrEnum):
    FORBIDDEN = "forbidden"  # matched a forbidden prefix
    NOT_ALLOWED = "not_allowed"  # matched no allowed prefix


class Violation(BaseModel):
    """An import edge rejected by the importer's effective rule set."""

    model_config = ConfigDict(frozen=True)

    importer: str
    imported: str
    kind: ViolationKind
    matched_rule: str = Field(serialization_alias="matchedRule")
    rule_directory: str | None = Field(default=None, serialization_alias="ruleDirectory")
    resolution_chain: list[str] = Field(
        default_factory=list, serialization_alias="resolutionChain"
    )

    @property
    def sort_key(self) -> tuple[str, str]:
        return (self.importer, self.imported)

    def describe(self) -> str:
        if self.kind is ViolationKind.FORBIDDEN:
            return f'forbidden prefix "{self.matched_rule}"'
        return self.matched_rule


def prefix_matches(prefix: str, path: str) -> bool:
    """Segment-boundary prefix match; the empty prefix matches everything.

    >>> prefix_matches("a/b", "a/b/c"), prefix_matches("a/b", "a/bc")
    (True, False)
    """
    if prefix == "":
        return True
    return path == prefix or path.startswith(prefix + "/")


def check_import(rules: EffectiveRuleSet, imported: str) -> Violation | None:
    """Decide a single edge. Forbidden prefixes win over allowed ones."""
    for scoped in rules.forbidden:
        if prefix_matches(scoped.prefix, imported):
            return Violation(
                importer=rules.package,
                imported=imported,
                kind=ViolationKind.FORBIDDEN,
                matched_rule=scoped.prefix,
                rule_directory=scoped.directory,
                resolution_chain=list(rules.chain),
            )

    if any(prefix_matches(scoped.prefix, imported) for scoped in rules.allowed):
        return None

    return Violation(
        importer=rules.package,
        imported=imported,
        kind=ViolationKind.NOT_ALLOWED,
        matched_rule=NO_ALLOWED_PREFIX,
        rule_directory=rules.chain[0] if rules.chain else None,
        resolution_chain=list(rules.chain),
    )


def evaluate(graph: ImportGraph, resolver: RuleResolver) -> list[Violation]:
    """Check all edges of graph; result is sorted by importer, then imported."""
    violations: list[Violation] = []
    for edge in graph.sorted_edges():
        violation = check_import(resolver.resolve(edge.importer), edge.imported)
        if violation is not None:
            violations.append(violation)
    return violations
