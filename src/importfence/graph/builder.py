"""Breadth-first expansion of a root package's transitive import graph."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Iterable
from concurrent.futures import Executor, ThreadPoolExecutor

from importfence.graph.listers import ImportLister
from importfence.graph.models import ImportGraph

logger = logging.getLogger(__name__)

DEFAULT_MAX_WORKERS = 8

ExpandFilter = Callable[[str], bool]


class CheckCancelled(Exception):
    """Raised when a run is cancelled while a root is being expanded."""

    def __init__(self, root: str) -> None:
        self.root = root
        super().__init__(f"expansion of '{root}' was cancelled")


def prefix_filter(prefixes: Iterable[str]) -> ExpandFilter:
    """Expand only paths under one of prefixes (segment-boundary match)."""
    from importfence.boundary.evaluator import prefix_matches

    frozen = tuple(prefixes)
    return lambda path: any(prefix_matches(p, path) for p in frozen)


def expand(
    root_package: str,
    lister: ImportLister,
    *,
    expand_filter: ExpandFilter | None = None,
    max_workers: int = DEFAULT_MAX_WORKERS,
    executor: Executor | None = None,
    cancel_event: threading.Event | None = None,
) -> ImportGraph:
    """Build the transitive import graph of root_package.

    Each frontier is listed concurrently. A package is expanded at most once,
    so import cycles terminate. Paths rejected by expand_filter are kept as
    leaves: their incoming edges are recorded but their own imports are not
    listed. ImportLookupError from the lister propagates unchanged.
    """
    if executor is not None:
        return _expand(root_package, lister, expand_filter, executor, cancel_event)
    with ThreadPoolExecutor(
        max_workers=max(1, max_workers), thread_name_prefix="importfence-list"
    ) as pool:
        return _expand(root_package, lister, expand_filter, pool, cancel_event)


def _expand(
    root_package: str,
    lister: ImportLister,
    expand_filter: ExpandFilter | None,
    executor: Executor,
    cancel_event: threading.Event | None,
) -> ImportGraph:
    graph = ImportGraph(root=root_package)
    visited = {root_package}
    frontier = [root_package]
    depth = 0

    while frontier:
        if cancel_event is not None and cancel_event.is_set():
            raise CheckCancelled(root_package)
        logger.debug(f"Expanding {root_package}: depth {depth}, {len(frontier)} package(s)")

        results = executor.map(lister.list_direct_imports, frontier)
        next_frontier: list[str] = []
        for package, imports in zip(frontier, results):
            graph.nodes.add(package)
            for imported in sorted(imports):
                if imported == package:
                    continue
                graph.add_edge(package, imported)
                if imported in visited:
                    continue
                visited.add(imported)
                if expand_filter is None or expand_filter(imported):
                    next_frontier.append(imported)
                else:
                    graph.leaves.add(imported)

        frontier = next_frontier
        depth += 1

    logger.debug(
        f"Expanded {root_package}: {len(graph.nodes)} package(s), {len(graph.edges)} edge(s)"
    )
    return graph
