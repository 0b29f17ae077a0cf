"""Lint configuration: parse ``aiplint.yml`` and decide rule enablement per file."""

from __future__ import annotations

import fnmatch
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

import yaml

from aiplint.findings import Severity, config_error

if TYPE_CHECKING:
    from pathlib import Path

    from aiplint.findings import Finding
    from aiplint.rules.base import Registry, Rule

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

DEFAULT_CONFIG_NAME = "aiplint.yml"
SUPPORTED_CONFIG_VERSIONS: frozenset[int] = frozenset({1})
_TOP_LEVEL_KEYS: frozenset[str] = frozenset(
    {"version", "enabled_rules", "disabled_rules", "path_overrides", "fail_on", "jobs", "timeout"}
)


class ConfigFileError(ValueError):
    """The configuration file is unreadable or malformed."""


# ---------------------------------------------------------------------------
# Data classes
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PathOverride:
    """Enable/disable sets that apply to files matching ``glob``."""

    glob: str
    enabled_rules: tuple[str, ...] = ()
    disabled_rules: tuple[str, ...] = ()

    def applies_to(self, path: str) -> bool:
        return fnmatch.fnmatch(path, self.glob)


@dataclass(frozen=True)
class LintConfig:
    """Validated lint configuration.

    Enablement starts from each rule's default, then applies the global
    ``enabled_rules``/``disabled_rules`` and every matching path override in
    declaration order.  Within one scope a disable beats an enable.
    """

    enabled_rules: tuple[str, ...] = ()
    disabled_rules: tuple[str, ...] = ()
    path_overrides: tuple[PathOverride, ...] = ()
    fail_on: Severity = Severity.ERROR
    jobs: int = 1
    timeout: float | None = None

    def is_rule_enabled(self, rule: Rule, path: str) -> bool:
        enabled = _apply_scope(rule, rule.default_enabled, self.enabled_rules, self.disabled_rules)
        for override in self.path_overrides:
            if override.applies_to(path):
                enabled = _apply_scope(
                    rule, enabled, override.enabled_rules, override.disabled_rules
                )
        return enabled

    def selectors(self) -> list[tuple[str, str]]:
        """Return ``(scope, selector)`` pairs in declaration order."""
        pairs: list[tuple[str, str]] = [("enabled_rules", s) for s in self.enabled_rules]
        pairs.extend(("disabled_rules", s) for s in self.disabled_rules)
        for override in self.path_overrides:
            scope = f"path_overrides[{override.glob!r}]"
            pairs.extend((f"{scope}.enabled_rules", s) for s in override.enabled_rules)
            pairs.extend((f"{scope}.disabled_rules", s) for s in override.disabled_rules)
        return pairs


def _apply_scope(
    rule: Rule, current: bool, enabled: tuple[str, ...], disabled: tuple[str, ...]
) -> bool:
    if any(rule.matches(s) for s in disabled):
        return False
    if any(rule.matches(s) for s in enabled):
        return True
    return current


def unknown_selector_findings(config: LintConfig, registry: Registry) -> list[Finding]:
    """One config-error finding per selector that names no registered rule."""
    return [
        config_error(f"Unknown rule '{selector}' in {scope}.")
        for scope, selector in config.selectors()
        if not registry.knows(selector)
    ]


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------


def _parse_selectors(value: Any, context: str) -> tuple[str, ...]:
    if value is None:
        return ()
    if not isinstance(value, list) or not all(isinstance(s, str) and s.strip() for s in value):
        msg = f"{context} must be a list of rule ids"
        raise ConfigFileError(msg)
    return tuple(s.strip() for s in value)


def _parse_overrides(value: Any, source: str) -> tuple[PathOverride, ...]:
    if value is None:
        return ()
    if not isinstance(value, dict):
        msg = f"{source}: 'path_overrides' must be a mapping of glob to rule sets"
        raise ConfigFileError(msg)
    overrides: list[PathOverride] = []
    for glob, body in value.items():
        context = f"{source}: path_overrides['{glob}']"
        if not isinstance(glob, str) or not glob:
            msg = f"{source}: path_overrides keys must be non-empty glob strings"
            raise ConfigFileError(msg)
        if body is None:
            body = {}
        if not isinstance(body, dict):
            msg = f"{context} must be a mapping"
            raise ConfigFileError(msg)
        extra = set(body) - {"enabled_rules", "disabled_rules"}
        if extra:
            msg = f"{context}: unknown key(s) {sorted(extra)}"
            raise ConfigFileError(msg)
        overrides.append(
            PathOverride(
                glob=glob,
                enabled_rules=_parse_selectors(
                    body.get("enabled_rules"), f"{context}.enabled_rules"
                ),
                disabled_rules=_parse_selectors(
                    body.get("disabled_rules"), f"{context}.disabled_rules"
                ),
            )
        )
    return tuple(overrides)


def parse_config(data: Any, source: str = DEFAULT_CONFIG_NAME) -> LintConfig:
    """Validate a decoded YAML document and return a :class:`LintConfig`.

    Raises :class:`ConfigFileError` on schema errors.
    """
    if not isinstance(data, dict):
        msg = f"{source} must be a YAML mapping"
        raise ConfigFileError(msg)

    version = data.get("version")
    if version is None:
        msg = f"{source}: missing required 'version' field"
        raise ConfigFileError(msg)
    if version not in SUPPORTED_CONFIG_VERSIONS:
        expected = sorted(SUPPORTED_CONFIG_VERSIONS)
        msg = f"{source}: unsupported version {version}, expected one of {expected}"
        raise ConfigFileError(msg)

    unknown = set(data) - _TOP_LEVEL_KEYS
    if unknown:
        msg = f"{source}: unknown key(s) {sorted(unknown)}"
        raise ConfigFileError(msg)

    try:
        fail_on = Severity.parse(str(data.get("fail_on", "error")))
    except ValueError as exc:
        msg = f"{source}: {exc}"
        raise ConfigFileError(msg) from exc

    jobs = data.get("jobs", 1)
    if not isinstance(jobs, int) or isinstance(jobs, bool) or jobs < 1:
        msg = f"{source}: 'jobs' must be a positive integer"
        raise ConfigFileError(msg)

    timeout = data.get("timeout")
    if timeout is not None and (
        isinstance(timeout, bool) or not isinstance(timeout, (int, float)) or timeout <= 0
    ):
        msg = f"{source}: 'timeout' must be a positive number of seconds"
        raise ConfigFileError(msg)

    return LintConfig(
        enabled_rules=_parse_selectors(data.get("enabled_rules"), f"{source}: enabled_rules"),
        disabled_rules=_parse_selectors(data.get("disabled_rules"), f"{source}: disabled_rules"),
        path_overrides=_parse_overrides(data.get("path_overrides"), source),
        fail_on=fail_on,
        jobs=jobs,
        timeout=float(timeout) if timeout is not None else None,
    )


def load_config(path: Path) -> LintConfig:
    """Read and validate a configuration file."""
    try:
        with path.open("r", encoding="utf-8") as fh:
            data = yaml.safe_load(fh)
    except OSError as exc:
        msg = f"Cannot read configuration {path}: {exc}"
        raise ConfigFileError(msg) from exc
    except yaml.YAMLError as exc:
        msg = f"Invalid YAML in {path}: {exc}"
        raise ConfigFileError(msg) from exc
    return parse_config(data, source=path.name)
