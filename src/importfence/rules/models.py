"""Pydantic models for rule declarations and effective rule sets."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, StrictBool, StrictStr, field_validator

ROOT_DIRECTORY = ""


def display_directory(directory: str | None) -> str:
    """Render a rule directory for humans: the repository root shows as '.'."""
    if directory is None:
        return "<default>"
    return directory or "."


def _normalize_prefix(prefix: str) -> str:
    if prefix.startswith("/"):
        raise ValueError(f"prefix must be relative, got {prefix!r}")
    normalized = prefix.rstrip("/")
    if normalized and any(seg in ("", ".", "..") for seg in normalized.split("/")):
        raise ValueError(f"prefix has an empty, '.' or '..' segment: {prefix!r}")
    return normalized


class RuleDeclaration(BaseModel):
    """Schema of a single rule file."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    allowed: list[StrictStr] = Field(default_factory=list)
    forbidden: list[StrictStr] = Field(default_factory=list)
    inherit_from_ancestors: StrictBool = Field(default=False, alias="inheritFromAncestors")

    @field_validator("allowed", "forbidden")
    @classmethod
    def _check_prefixes(cls, value: list[str]) -> list[str]:
        return [_normalize_prefix(p) for p in value]


class Rule(BaseModel):
    """A loaded rule, owned by the directory that declares it."""

    model_config = ConfigDict(frozen=True)

    directory: str
    path: str  # rule file on disk
    allowed: list[str] = Field(default_factory=list)
    forbidden: list[str] = Field(default_factory=list)
    inherit_from_ancestors: bool = False


class ScopedPrefix(BaseModel):
    """A prefix together with the directory whose rule declared it."""

    model_config = ConfigDict(frozen=True)

    prefix: str
    directory: str | None = None  # None = built-in default


class EffectiveRuleSet(BaseModel):
    """Rules that actually apply to a package after inheritance resolution."""

    model_config = ConfigDict(frozen=True)

    package: str
    allowed: list[ScopedPrefix] = Field(default_factory=list)
    forbidden: list[ScopedPrefix] = Field(default_factory=list)
    chain: list[str] = Field(default_factory=list)  # closest directory first

    @property
    def is_default(self) -> bool:
        return not self.chain

    @property
    def allowed_prefixes(self) -> list[str]:
        return [p.prefix for p in self.allowed]

    @property
    def forbidden_prefixes(self) -> list[str]:
        return [p.prefix for p in self.forbidden]


def default_rule_set(package: str) -> EffectiveRuleSet:
    return EffectiveRuleSet(package=package, allowed=[ScopedPrefix(prefix="")])
