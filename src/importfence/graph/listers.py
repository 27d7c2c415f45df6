"""Import listers: the collaborator that reports a package's direct imports.

The core only depends on the ImportLister protocol. Concrete listers cover
Python sources (stdlib ast), a precomputed JSON mapping, and an external
command such as ``go list``. All subprocess calls go through _run_command(),
which is the single mock target in tests.
"""

from __future__ import annotations

import ast
import json
import logging
import subprocess
import threading
from collections.abc import Iterable, Mapping, Sequence
from pathlib import Path
from typing import Protocol, runtime_checkable

from pydantic import TypeAdapter

from importfence.graph.models import normalize_package_path

logger = logging.getLogger(__name__)

PACKAGE_PLACEHOLDER = "{package}"

_MAPPING_ADAPTER = TypeAdapter(dict[str, list[str]])


class ImportLookupError(Exception):
    """Raised when a package's direct imports cannot be determined."""

    def __init__(self, package_path: str, reason: str) -> None:
        self.package_path = package_path
        self.reason = reason
        super().__init__(f"cannot list imports of '{package_path}': {reason}")


@runtime_checkable
class ImportLister(Protocol):
    def list_direct_imports(self, package_path: str) -> set[str]: ...


class StaticImportLister:
    """Lister backed by a fixed mapping of package -> direct imports."""

    def __init__(self, mapping: Mapping[str, Iterable[str]]) -> None:
        self._mapping: dict[str, frozenset[str]] = {
            normalize_package_path(pkg): frozenset(normalize_package_path(i) for i in imports)
            for pkg, imports in mapping.items()
        }

    @classmethod
    def from_json(cls, path: Path) -> StaticImportLister:
        """Load ``{"pkg/a": ["pkg/b", ...]}`` from a JSON file."""
        data = json.loads(path.read_text(encoding="utf-8"))
        return cls(_MAPPING_ADAPTER.validate_python(data))

    def __contains__(self, package_path: object) -> bool:
        return package_path in self._mapping

    def list_direct_imports(self, package_path: str) -> set[str]:
        imports = self._mapping.get(package_path)
        if imports is None:
            raise ImportLookupError(package_path, "package is not known")
        return set(imports)


class PythonImportLister:
    """Treat each directory of .py files as a package and parse its imports.

    Modules that resolve to a directory of the repository become
    repository-relative paths (``src/app/core``); everything else is
    rendered as a slash path of the dotted name (``os/path``, ``pydantic``).
    """

    def __init__(self, repo_root: Path, source_roots: Sequence[str] = ("",)) -> None:
        self._root = repo_root
        self._source_roots = [normalize_package_path(s) for s in source_roots] or [""]

    def list_direct_imports(self, package_path: str) -> set[str]:
        directory = self._root / package_path if package_path else self._root
        if not directory.is_dir():
            raise ImportLookupError(package_path, "no such package directory")

        imports: set[str] = set()
        for py_file in sorted(directory.glob("*.py")):
            try:
                tree = ast.parse(py_file.read_text(encoding="utf-8"), filename=str(py_file))
            except (SyntaxError, UnicodeDecodeError) as e:
                raise ImportLookupError(package_path, f"cannot parse {py_file.name}: {e}") from e
            except OSError as e:
                raise ImportLookupError(package_path, f"cannot read {py_file.name}: {e}") from e
            imports.update(self._imports_in(tree, package_path))

        imports.discard(package_path)
        return imports

    def is_local(self, path: str) -> bool:
        """True when path names a package directory inside the repository."""
        return _has_python(self._root / path if path else self._root)

    def _imports_in(self, tree: ast.AST, package_path: str) -> set[str]:
        found: set[str] = set()
        for node in ast.walk(tree):
            if isinstance(node, ast.Import):
                for alias in node.names:
                    found.add(self._resolve(alias.name))
            elif isinstance(node, ast.ImportFrom):
                if node.level:
                    module = self._absolute_module(package_path, node.level, node.module)
                else:
                    module = node.module or ""
                submodules: set[str] = set()
                for alias in node.names:
                    if alias.name == "*":
                        continue
                    submodule = f"{module}.{alias.name}" if module else alias.name
                    local = self._resolve_local(submodule)
                    if local is not None:
                        submodules.add(local)
                found.update(submodules)
                if module:
                    local = self._resolve_local(module)
                    if local is not None:
                        found.add(local)
                    elif not submodules:
                        # plain directories that only hold the imported packages are not edges
                        found.add(module.replace(".", "/"))
        return found

    def _absolute_module(self, package_path: str, level: int, module: str | None) -> str:
        base = self._module_name(package_path)
        if base is None:
            raise ImportLookupError(package_path, "relative import outside any source root")
        parts = base.split(".") if base else []
        if level > len(parts):
            raise ImportLookupError(package_path, "relative import beyond top-level package")
        parts = parts[: len(parts) - (level - 1)]
        if module:
            parts.extend(module.split("."))
        return ".".join(parts)

    def _module_name(self, package_path: str) -> str | None:
        for source_root in self._source_roots:
            if not source_root:
                return package_path.replace("/", ".")
            if package_path == source_root:
                return ""
            if package_path.startswith(source_root + "/"):
                return package_path[len(source_root) + 1 :].replace("/", ".")
        return None

    def _resolve(self, module: str) -> str:
        local = self._resolve_local(module)
        return local if local is not None else module.replace(".", "/")

    def _resolve_local(self, module: str) -> str | None:
        parts = [p for p in module.split(".") if p]
        for source_root in self._source_roots:
            base = self._root / source_root if source_root else self._root
            for i in range(len(parts), 0, -1):
                if _has_python(base.joinpath(*parts[:i])):
                    rel = "/".join(parts[:i])
                    return f"{source_root}/{rel}" if source_root else rel
        return None


def _has_python(directory: Path) -> bool:
    return directory.is_dir() and any(directory.glob("*.py"))


def _run_command(
    argv: list[str],
    *,
    cwd: str | Path | None = None,
    timeout: float = 60,
) -> subprocess.CompletedProcess[str]:
    return subprocess.run(argv, capture_output=True, text=True, timeout=timeout, cwd=cwd)


class CommandImportLister:
    """Run an external command that prints one direct import per line.

    ``{package}`` in any argument is replaced by the package path; without a
    placeholder the package path is appended as the last argument.
    """

    def __init__(
        self,
        argv: Sequence[str],
        *,
        cwd: Path | None = None,
        timeout: float = 60,
    ) -> None:
        if not argv:
            raise ValueError("command lister needs a non-empty command")
        self._argv = list(argv)
        self._cwd = cwd
        self._timeout = timeout

    def command_for(self, package_path: str) -> list[str]:
        if any(PACKAGE_PLACEHOLDER in arg for arg in self._argv):
            return [arg.replace(PACKAGE_PLACEHOLDER, package_path) for arg in self._argv]
        return [*self._argv, package_path]

    def list_direct_imports(self, package_path: str) -> set[str]:
        argv = self.command_for(package_path)
        try:
            result = _run_command(argv, cwd=self._cwd, timeout=self._timeout)
        except FileNotFoundError as e:
            raise ImportLookupError(package_path, f"{argv[0]} not found") from e
        except subprocess.TimeoutExpired as e:
            raise ImportLookupError(package_path, f"{argv[0]} timed out") from e

        if result.returncode != 0:
            detail = result.stderr.strip().splitlines()
            reason = detail[0] if detail else f"exit status {result.returncode}"
            raise ImportLookupError(package_path, reason)

        imports = {
            normalize_package_path(line)
            for line in result.stdout.splitlines()
            if line.strip()
        }
        imports.discard(package_path)
        return imports


class _Pending:
    def __init__(self) -> None:
        self.done = threading.Event()
        self.imports: frozenset[str] = frozenset()
        self.error: Exception | None = None


class CachingImportLister:
    """Thread-safe run-scoped cache around another lister.

    Each package is listed at most once, even under concurrent requests;
    failures are cached as well and re-raised to every caller.
    """

    def __init__(self, inner: ImportLister) -> None:
        self._inner = inner
        self._entries: dict[str, _Pending] = {}
        self._lock = threading.Lock()

    @property
    def inner(self) -> ImportLister:
        return self._inner

    def list_direct_imports(self, package_path: str) -> set[str]:
        with self._lock:
            entry = self._entries.get(package_path)
            owner = entry is None
            if entry is None:
                entry = _Pending()
                self._entries[package_path] = entry

        if owner:
            try:
                entry.imports = frozenset(self._inner.list_direct_imports(package_path))
            except Exception as e:
                entry.error = e
                raise
            finally:
                entry.done.set()
            return set(entry.imports)

        logger.debug(f"Import cache hit: {package_path}")
        entry.done.wait()
        if entry.error is not None:
            raise entry.error
        return set(entry.imports)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
