"""Rule values, the registry, and the built-in rule set."""

from aiplint.rules import declarative, fields, files, methods, resources
from aiplint.rules.base import (
    RULE_ID_RE,
    CheckContext,
    Registry,
    Rule,
    declarative_friendly_message,
    declarative_friendly_service,
)

BUILTIN_RULES: tuple[Rule, ...] = (
    *files.RULES,
    *resources.RULES,
    *fields.RULES,
    *methods.RULES,
    *declarative.RULES,
)


def default_registry() -> Registry:
    """Return a fresh registry holding every built-in rule."""
    return Registry(BUILTIN_RULES)


__all__ = [
    "BUILTIN_RULES",
    "RULE_ID_RE",
    "CheckContext",
    "Registry",
    "Rule",
    "declarative_friendly_message",
    "declarative_friendly_service",
    "default_registry",
]
