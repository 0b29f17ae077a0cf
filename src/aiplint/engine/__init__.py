"""Evaluation engine: configuration, suppression, and parallel rule dispatch."""

from aiplint.engine.config import (
    DEFAULT_CONFIG_NAME,
    ConfigFileError,
    LintConfig,
    PathOverride,
    load_config,
    parse_config,
    unknown_selector_findings,
)
from aiplint.engine.engine import evaluate, iter_nodes, plan
from aiplint.engine.executor import CheckTask, run_tasks
from aiplint.engine.suppression import (
    DIRECTIVE_RE,
    Suppression,
    apply_suppressions,
    collect_suppressions,
    parse_directives,
)

__all__ = [
    "DEFAULT_CONFIG_NAME",
    "DIRECTIVE_RE",
    "CheckTask",
    "ConfigFileError",
    "LintConfig",
    "PathOverride",
    "Suppression",
    "apply_suppressions",
    "collect_suppressions",
    "evaluate",
    "iter_nodes",
    "load_config",
    "parse_config",
    "parse_directives",
    "plan",
    "run_tasks",
    "unknown_selector_findings",
]
