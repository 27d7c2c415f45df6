"""Rule engine: rule files, the rule store and effective rule resolution."""

from importfence.rules.models import (
    EffectiveRuleSet,
    Rule,
    RuleDeclaration,
    ScopedPrefix,
    display_directory,
)
from importfence.rules.resolver import RuleResolver, ancestor_directories, resolve
from importfence.rules.store import (
    DEFAULT_RULE_FILENAME,
    ConfigError,
    RuleStore,
    load_rule_store,
    parse_rule_file,
)

__all__ = [
    "DEFAULT_RULE_FILENAME",
    "ConfigError",
    "EffectiveRuleSet",
    "Rule",
    "RuleDeclaration",
    "RuleResolver",
    "RuleStore",
    "ScopedPrefix",
    "ancestor_directories",
    "display_directory",
    "load_rule_store",
    "parse_rule_file",
    "resolve",
]
