"""CheckerConfig dataclass and loader for tool settings."""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

from importfence.rules.store import DEFAULT_EXCLUDE_DIRS, DEFAULT_RULE_FILENAME

logger = logging.getLogger(__name__)

CONFIG_FILENAME = ".importfence.json"
LISTER_KINDS = ("python", "static", "command")


def _safe_int(value: str, default: int) -> int:
    try:
        return int(value)
    except ValueError:
        return default


@dataclass
class CheckerConfig:
    rule_filename: str = DEFAULT_RULE_FILENAME
    exclude_dirs: list[str] = field(default_factory=lambda: list(DEFAULT_EXCLUDE_DIRS))
    max_workers: int = 8
    fail_fast: bool = False
    lister: str = "python"
    source_roots: list[str] = field(default_factory=lambda: [""])
    imports_file: str | None = None
    command: list[str] = field(default_factory=list)
    expand_prefixes: list[str] = field(default_factory=list)
    output_format: str = "text"


def load_checker_config(path: Path | None = None) -> CheckerConfig:
    """Load the ``checker`` section of .importfence.json with env var overrides.

    An unreadable tool config falls back to defaults. Rule files are never
    treated this leniently; see importfence.rules.store.
    """
    config = CheckerConfig()
    if path and path.exists():
        try:
            text = path.read_text()
            if text.strip():
                data = json.loads(text)
                section = data.get("checker", {})
                if isinstance(section, dict):
                    _apply(config, section)
        except (json.JSONDecodeError, OSError, AttributeError) as e:
            logger.warning(f"Failed to load checker config from {path}: {e}")

    if env_workers := os.environ.get("IMPORTFENCE_MAX_WORKERS"):
        config.max_workers = max(1, _safe_int(env_workers, config.max_workers))
    if env_fail_fast := os.environ.get("IMPORTFENCE_FAIL_FAST"):
        config.fail_fast = env_fail_fast.lower() in ("true", "1", "yes")
    if env_filename := os.environ.get("IMPORTFENCE_RULE_FILENAME"):
        config.rule_filename = env_filename
    return config


def _str_list(value: object) -> list[str] | None:
    if isinstance(value, list) and all(isinstance(v, str) for v in value):
        return list(value)
    return None


def _apply(cfg: CheckerConfig, data: dict[str, object]) -> None:
    if isinstance(data.get("rule_filename"), str) and data["rule_filename"]:
        cfg.rule_filename = data["rule_filename"]  # type: ignore[assignment]
    if (dirs := _str_list(data.get("exclude_dirs"))) is not None:
        cfg.exclude_dirs = dirs
    workers = data.get("max_workers")
    if isinstance(workers, int) and not isinstance(workers, bool) and workers > 0:
        cfg.max_workers = workers
    if isinstance(data.get("fail_fast"), bool):
        cfg.fail_fast = data["fail_fast"]  # type: ignore[assignment]
    if data.get("lister") in LISTER_KINDS:
        cfg.lister = data["lister"]  # type: ignore[assignment]
    if (roots := _str_list(data.get("source_roots"))) is not None:
        cfg.source_roots = roots
    if isinstance(data.get("imports_file"), str):
        cfg.imports_file = data["imports_file"]  # type: ignore[assignment]
    if (command := _str_list(data.get("command"))) is not None:
        cfg.command = command
    if (prefixes := _str_list(data.get("expand_prefixes"))) is not None:
        cfg.expand_prefixes = prefixes
    if data.get("output_format") in ("text", "json"):
        cfg.output_format = data["output_format"]  # type: ignore[assignment]
