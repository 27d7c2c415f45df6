"""Import graph: lister collaborators and transitive expansion."""

from importfence.graph.builder import CheckCancelled, expand, prefix_filter
from importfence.graph.listers import (
    CachingImportLister,
    CommandImportLister,
    ImportLister,
    ImportLookupError,
    PythonImportLister,
    StaticImportLister,
)
from importfence.graph.models import ImportEdge, ImportGraph, normalize_package_path

__all__ = [
    "CachingImportLister",
    "CheckCancelled",
    "CommandImportLister",
    "ImportEdge",
    "ImportGraph",
    "ImportLister",
    "ImportLookupError",
    "PythonImportLister",
    "StaticImportLister",
    "expand",
    "normalize_package_path",
    "prefix_filter",
]
