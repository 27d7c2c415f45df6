"""Import graph containers."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import NamedTuple


class ImportEdge(NamedTuple):
    importer: str
    imported: str


def normalize_package_path(path: str) -> str:
    """Canonical slash form: no leading './', no surrounding slashes."""
    path = path.replace("\\", "/").strip()
    while path.startswith("./"):
        path = path[2:]
    path = path.strip("/")
    return "" if path == "." else path


@dataclass
class ImportGraph:
    """Transitive import graph of one root package.

    ``nodes`` holds every package whose imports were listed; ``leaves`` holds
    imported paths that were recorded but deliberately not expanded.
    """

    root: str
    nodes: set[str] = field(default_factory=set)
    leaves: set[str] = field(default_factory=set)
    edges: set[ImportEdge] = field(default_factory=set)

    def add_edge(self, importer: str, imported: str) -> None:
        self.edges.add(ImportEdge(importer, imported))

    def sorted_edges(self) -> list[ImportEdge]:
        return sorted(self.edges)

    def imports_of(self, package: str) -> list[str]:
        return sorted(e.imported for e in self.edges if e.importer == package)

    @property
    def packages(self) -> set[str]:
        return self.nodes | self.leaves
