"""Boundary evaluation and violation reporting."""

from importfence.boundary.evaluator import (
    NO_ALLOWED_PREFIX,
    Violation,
    ViolationKind,
    check_import,
    evaluate,
    prefix_matches,
)
from importfence.boundary.report import (
    build_json_report,
    format_chain,
    render_json,
    render_text,
    report,
)

__all__ = [
    "NO_ALLOWED_PREFIX",
    "Violation",
    "ViolationKind",
    "build_json_report",
    "check_import",
    "evaluate",
    "format_chain",
    "prefix_matches",
    "render_json",
    "render_text",
    "report",
]
