"""Run the boundary check over several root packages concurrently."""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterable
from concurrent.futures import Executor, ThreadPoolExecutor
from dataclasses import dataclass, field
from enum import StrEnum

from importfence.boundary.evaluator import Violation, evaluate
from importfence.config import CheckerConfig
from importfence.graph.builder import CheckCancelled, ExpandFilter, expand
from importfence.graph.listers import CachingImportLister, ImportLister, ImportLookupError
from importfence.graph.models import ImportGraph, normalize_package_path
from importfence.rules.resolver import RuleResolver
from importfence.rules.store import RuleStore

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_VIOLATIONS = 1
EXIT_ERROR = 2


class RootStatus(StrEnum):
    PASSED = "passed"
    VIOLATIONS = "violations"
    FAILED = "failed"  # imports could not be listed
    CANCELLED = "cancelled"


@dataclass
class RootResult:
    root: str
    status: RootStatus
    graph: ImportGraph | None = None
    violations: list[Violation] = field(default_factory=list)
    error: str | None = None
    failed_package: str | None = None

    @property
    def package_count(self) -> int:
        return len(self.graph.nodes) if self.graph is not None else 0


@dataclass
class RunResult:
    roots: list[RootResult] = field(default_factory=list)

    @property
    def violations(self) -> list[Violation]:
        """Union of all roots' violations, de-duplicated and sorted."""
        unique: dict[tuple[str, str], Violation] = {}
        for result in self.roots:
            for v in result.violations:
                unique.setdefault(v.sort_key, v)
        return [unique[key] for key in sorted(unique)]

    @property
    def failures(self) -> list[RootResult]:
        return [
            r for r in self.roots if r.status in (RootStatus.FAILED, RootStatus.CANCELLED)
        ]

    @property
    def exit_code(self) -> int:
        if self.failures:
            return EXIT_ERROR
        if any(r.violations for r in self.roots):
            return EXIT_VIOLATIONS
        return EXIT_OK


def run_check(
    roots: Iterable[str],
    store: RuleStore,
    lister: ImportLister,
    *,
    config: CheckerConfig | None = None,
    expand_filter: ExpandFilter | None = None,
    resolver: RuleResolver | None = None,
    cancel_event: threading.Event | None = None,
) -> RunResult:
    """Expand and evaluate every root.

    The store must already be loaded: a ConfigError is raised before any
    root is looked at. Roots share one resolver and one import cache. Setting
    cancel_event stops roots still being expanded, as a fail-fast failure does.
    """
    config = config or CheckerConfig()
    resolver = resolver or RuleResolver(store)
    cached = lister if isinstance(lister, CachingImportLister) else CachingImportLister(lister)
    cancel = cancel_event if cancel_event is not None else threading.Event()

    ordered = list(dict.fromkeys(normalize_package_path(r) for r in roots))
    if not ordered:
        return RunResult()

    workers = max(1, config.max_workers)
    with (
        ThreadPoolExecutor(max_workers=workers, thread_name_prefix="importfence-list") as list_pool,
        ThreadPoolExecutor(
            max_workers=min(workers, len(ordered)), thread_name_prefix="importfence-root"
        ) as root_pool,
    ):
        futures = [
            root_pool.submit(
                _check_root,
                root,
                cached,
                resolver,
                list_pool,
                expand_filter,
                cancel,
                config.fail_fast,
            )
            for root in ordered
        ]
        results = [f.result() for f in futures]

    return RunResult(roots=results)


def _check_root(
    root: str,
    lister: ImportLister,
    resolver: RuleResolver,
    executor: Executor,
    expand_filter: ExpandFilter | None,
    cancel: threading.Event,
    fail_fast: bool,
) -> RootResult:
    if cancel.is_set():
        return RootResult(root=root, status=RootStatus.CANCELLED, error="run cancelled")
    try:
        graph = expand(
            root,
            lister,
            expand_filter=expand_filter,
            executor=executor,
            cancel_event=cancel,
        )
    except ImportLookupError as e:
        logger.warning(f"Inspection of {root} failed: {e}")
        if fail_fast:
            cancel.set()
        return RootResult(
            root=root,
            status=RootStatus.FAILED,
            error=str(e),
            failed_package=e.package_path,
        )
    except CheckCancelled:
        return RootResult(root=root, status=RootStatus.CANCELLED, error="run cancelled")

    violations = evaluate(graph, resolver)
    status = RootStatus.VIOLATIONS if violations else RootStatus.PASSED
    logger.debug(f"Checked {root}: {len(graph.nodes)} package(s), {len(violations)} violation(s)")
    return RootResult(root=root, status=status, graph=graph, violations=violations)
