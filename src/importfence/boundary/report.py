"""Render violations as grouped human text or JSON, and pick the exit status."""

from __future__ import annotations

import json
from itertools import groupby
from typing import TYPE_CHECKING

from pydantic import BaseModel, Field

from importfence.boundary.evaluator import Violation
from importfence.rules.models import display_directory

if TYPE_CHECKING:
    from importfence.checker import RootResult, RunResult


class RootSummary(BaseModel):
    root: str
    status: str
    packages: int = 0
    violations: int = 0
    error: str | None = None
    failed_package: str | None = Field(default=None, serialization_alias="failedPackage")


class ReportSummary(BaseModel):
    roots: int = 0
    violations: int = 0
    failures: int = 0
    exit_code: int = Field(default=0, serialization_alias="exitCode")


class JsonReport(BaseModel):
    violations: list[Violation] = Field(default_factory=list)
    failures: list[RootSummary] = Field(default_factory=list)
    roots: list[RootSummary] = Field(default_factory=list)
    summary: ReportSummary = Field(default_factory=ReportSummary)


def format_chain(chain: list[str]) -> str:
    if not chain:
        return "<default: allow everything>"
    return " -> ".join(display_directory(d) for d in chain)


def _violation_lines(violations: list[Violation]) -> list[str]:
    lines: list[str] = []
    ordered = sorted(violations, key=lambda v: v.sort_key)
    for importer, group in groupby(ordered, key=lambda v: v.importer):
        items = list(group)
        lines.append(importer or ".")
        lines.append(f"  rules: {format_chain(items[0].resolution_chain)}")
        for v in items:
            decided = display_directory(v.rule_directory)
            lines.append(f"  x {v.imported}: {v.describe()} (rule in {decided})")
    return lines


def report(violations: list[Violation]) -> tuple[str, int]:
    """Human text grouped by importer, and exit code 1 when anything was found."""
    if not violations:
        return "No import boundary violations found.", 0
    importers = {v.importer for v in violations}
    lines = _violation_lines(violations)
    lines.append("")
    lines.append(f"Found {len(violations)} violation(s) in {len(importers)} package(s).")
    return "\n".join(lines), 1


def render_text(result: RunResult) -> str:
    """Per-root status lines followed by the grouped violation report."""
    lines: list[str] = []
    for root in result.roots:
        name = root.root or "."
        if root.error is not None:
            lines.append(f"{name}: {root.status}: {root.error}")
        else:
            lines.append(
                f"{name}: {root.status} "
                f"({root.package_count} package(s), {len(root.violations)} violation(s))"
            )

    text, _ = report(result.violations)
    lines.append("")
    lines.append(text)
    if result.failures:
        lines.append(
            f"{len(result.failures)} root(s) could not be inspected; result is incomplete."
        )
    return "\n".join(lines)


def build_json_report(result: RunResult) -> JsonReport:
    violations = result.violations
    return JsonReport(
        violations=violations,
        failures=[_root_summary(r) for r in result.failures],
        roots=[_root_summary(r) for r in result.roots],
        summary=ReportSummary(
            roots=len(result.roots),
            violations=len(violations),
            failures=len(result.failures),
            exit_code=result.exit_code,
        ),
    )


def render_json(result: RunResult) -> str:
    payload = build_json_report(result).model_dump(mode="json", by_alias=True)
    return json.dumps(payload, indent=2, sort_keys=False)


def _root_summary(result: RootResult) -> RootSummary:
    return RootSummary(
        root=result.root,
        status=str(result.status),
        packages=result.package_count,
        violations=len(result.violations),
        error=result.error,
        failed_package=result.failed_package,
    )
