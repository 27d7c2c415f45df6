"""CLI entry point for importfence."""

from __future__ import annotations

import argparse
import logging
import shlex
import sys
from pathlib import Path
from typing import cast

from importfence import __version__
from importfence.boundary.report import format_chain, render_json, render_text
from importfence.checker import EXIT_ERROR, run_check
from importfence.config import CONFIG_FILENAME, LISTER_KINDS, CheckerConfig, load_checker_config
from importfence.graph.builder import ExpandFilter, expand, prefix_filter
from importfence.graph.listers import (
    CommandImportLister,
    ImportLister,
    ImportLookupError,
    PythonImportLister,
    StaticImportLister,
)
from importfence.graph.models import normalize_package_path
from importfence.rules.models import display_directory
from importfence.rules.resolver import RuleResolver
from importfence.rules.store import ConfigError, RuleStore, load_rule_store


class UsageError(Exception):
    """Raised for invalid lister or config combinations given on the command line."""


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


def _load_config(args: argparse.Namespace) -> tuple[Path, CheckerConfig]:
    repo_root = cast(Path, args.repo_root).resolve()
    config_path = cast(Path | None, args.config) or repo_root / CONFIG_FILENAME
    config = load_checker_config(config_path)

    if getattr(args, "max_workers", None) is not None:
        config.max_workers = max(1, cast(int, args.max_workers))
    if getattr(args, "fail_fast", False):
        config.fail_fast = True
    if getattr(args, "lister", None):
        config.lister = cast(str, args.lister)
    if getattr(args, "imports_file", None):
        config.imports_file = cast(str, args.imports_file)
    if getattr(args, "command_line", None):
        config.command = shlex.split(cast(str, args.command_line))
    if getattr(args, "expand_prefix", None):
        config.expand_prefixes = [normalize_package_path(p) for p in args.expand_prefix]
    if getattr(args, "source_root", None):
        config.source_roots = list(args.source_root)
    if getattr(args, "format", None):
        config.output_format = cast(str, args.format)
    return repo_root, config


def _load_store(repo_root: Path, config: CheckerConfig) -> RuleStore:
    return load_rule_store(
        repo_root,
        filename=config.rule_filename,
        exclude_dirs=config.exclude_dirs,
    )


def build_lister(repo_root: Path, config: CheckerConfig) -> tuple[ImportLister, ExpandFilter | None]:
    """Create the configured lister and the matching expansion filter."""
    expand_filter = prefix_filter(config.expand_prefixes) if config.expand_prefixes else None

    if config.lister == "python":
        lister = PythonImportLister(repo_root, config.source_roots)
        return lister, expand_filter or lister.is_local

    if config.lister == "static":
        if not config.imports_file:
            raise UsageError("the static lister needs --imports-file")
        imports_path = Path(config.imports_file)
        if not imports_path.is_absolute():
            imports_path = repo_root / imports_path
        try:
            return StaticImportLister.from_json(imports_path), expand_filter
        except (OSError, ValueError) as e:
            raise UsageError(f"cannot load imports file {imports_path}: {e}") from e

    if config.lister == "command":
        if not config.command:
            raise UsageError("the command lister needs --command")
        return CommandImportLister(config.command, cwd=repo_root), expand_filter

    raise UsageError(f"unknown lister: {config.lister}")


def _cmd_check(args: argparse.Namespace) -> int:
    repo_root, config = _load_config(args)
    store = _load_store(repo_root, config)
    lister, expand_filter = build_lister(repo_root, config)

    roots = cast(list[str], args.roots)
    result = run_check(roots, store, lister, config=config, expand_filter=expand_filter)

    if config.output_format == "json":
        print(render_json(result))
    else:
        print(render_text(result))
    return result.exit_code


def _cmd_explain(args: argparse.Namespace) -> int:
    repo_root, config = _load_config(args)
    store = _load_store(repo_root, config)
    package = normalize_package_path(cast(str, args.package))
    rules = RuleResolver(store).resolve(package)

    print(f"Package: {package or '.'}")
    print(f"Resolution chain: {format_chain(rules.chain)}")
    print("Allowed:")
    for scoped in rules.allowed:
        print(f'  "{scoped.prefix}"  (from {display_directory(scoped.directory)})')
    print("Forbidden:")
    if not rules.forbidden:
        print("  (none)")
    for scoped in rules.forbidden:
        print(f'  "{scoped.prefix}"  (from {display_directory(scoped.directory)})')
    return 0


def _cmd_rules(args: argparse.Namespace) -> int:
    repo_root, config = _load_config(args)
    store = _load_store(repo_root, config)
    if not len(store):
        print(f"No {config.rule_filename} files under {repo_root}")
        return 0
    for rule in store:
        inherit = " (inherits)" if rule.inherit_from_ancestors else ""
        print(
            f"{display_directory(rule.directory)}{inherit}: "
            f"{len(rule.allowed)} allowed, {len(rule.forbidden)} forbidden"
        )
    return 0


def _cmd_graph(args: argparse.Namespace) -> int:
    repo_root, config = _load_config(args)
    lister, expand_filter = build_lister(repo_root, config)
    root = normalize_package_path(cast(str, args.root))
    try:
        graph = expand(
            root, lister, expand_filter=expand_filter, max_workers=config.max_workers
        )
    except ImportLookupError as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_ERROR
    for edge in graph.sorted_edges():
        print(f"{edge.importer or '.'} -> {edge.imported}")
    return 0


def _add_common(p: argparse.ArgumentParser) -> None:
    _ = p.add_argument(
        "--repo-root",
        type=Path,
        default=Path.cwd(),
        dest="repo_root",
        help="Repository root (default: current directory)",
    )
    _ = p.add_argument(
        "--config", type=Path, default=None, help=f"Tool config file (default: {CONFIG_FILENAME})"
    )


def _add_lister_options(p: argparse.ArgumentParser) -> None:
    _ = p.add_argument("--lister", choices=list(LISTER_KINDS), default=None)
    _ = p.add_argument(
        "--imports-file", dest="imports_file", default=None, help="JSON package->imports map"
    )
    _ = p.add_argument(
        "--command",
        dest="command_line",
        default=None,
        help="Import lister command, '{package}' is substituted",
    )
    _ = p.add_argument(
        "--expand-prefix",
        dest="expand_prefix",
        action="append",
        default=None,
        help="Only expand imports under this prefix (repeatable)",
    )
    _ = p.add_argument(
        "--source-root",
        dest="source_root",
        action="append",
        default=None,
        help="Python source root relative to the repo root (repeatable)",
    )
    _ = p.add_argument("--max-workers", type=int, default=None, dest="max_workers")


def main() -> None:
    parser = argparse.ArgumentParser(
        prog="importfence",
        description="Check package import boundaries against per-directory rules",
    )
    _ = parser.add_argument(
        "-V", "--version", action="version", version=f"importfence {__version__}"
    )
    _ = parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    subparsers = parser.add_subparsers(dest="command")

    # check subcommand
    check_p = subparsers.add_parser("check", help="Check root packages for violations")
    _ = check_p.add_argument("roots", nargs="+", help="Root package paths to check")
    _add_common(check_p)
    _add_lister_options(check_p)
    _ = check_p.add_argument("--format", choices=["text", "json"], default=None)
    _ = check_p.add_argument(
        "--fail-fast",
        action="store_true",
        dest="fail_fast",
        help="Cancel remaining roots after the first inspection failure",
    )

    # explain subcommand
    explain_p = subparsers.add_parser("explain", help="Show a package's effective rules")
    _ = explain_p.add_argument("package", help="Package path")
    _add_common(explain_p)

    # rules subcommand
    rules_p = subparsers.add_parser("rules", help="List loaded rule files")
    _add_common(rules_p)

    # graph subcommand
    graph_p = subparsers.add_parser("graph", help="Print a root's transitive import edges")
    _ = graph_p.add_argument("root", help="Root package path")
    _add_common(graph_p)
    _add_lister_options(graph_p)

    args = parser.parse_args()
    _configure_logging(cast(bool, args.verbose))

    dispatch = {
        "check": _cmd_check,
        "explain": _cmd_explain,
        "rules": _cmd_rules,
        "graph": _cmd_graph,
    }
    command = cast(str | None, args.command)
    handler = dispatch.get(command) if command is not None else None
    if not handler:
        parser.print_help()
        sys.exit(EXIT_ERROR)

    try:
        code = handler(args)
    except ConfigError as e:
        print(f"Error: invalid rule file: {e}", file=sys.stderr)
        sys.exit(EXIT_ERROR)
    except UsageError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(EXIT_ERROR)
    if code:
        sys.exit(code)
