"""Lint orchestrator: load descriptors and config, evaluate, format results."""

from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from aiplint.descriptor import DescriptorError, load_model
from aiplint.engine import ConfigFileError, LintConfig, evaluate, load_config
from aiplint.findings import Severity, has_failures
from aiplint.resources import extract_resources
from aiplint.rules import default_registry

if TYPE_CHECKING:
    from collections.abc import Iterable
    from pathlib import Path

    from aiplint.descriptor import DescriptorModel
    from aiplint.findings import Finding
    from aiplint.rules import Registry

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class LintError(Exception):
    """Raised when descriptors or configuration cannot be loaded."""


# ---------------------------------------------------------------------------
# Data classes
# ---------------------------------------------------------------------------


@dataclass
class LintResult:
    """Result of a lint run."""

    findings: list[Finding] = field(default_factory=list)
    fail_on: Severity = Severity.ERROR
    rules_evaluated: int = 0
    files_linted: int = 0
    resources_found: int = 0
    elapsed_ms: float = 0.0

    @property
    def failed(self) -> bool:
        return has_failures(self.findings, self.fail_on)

    def count(self, severity: Severity) -> int:
        return sum(1 for f in self.findings if f.severity is severity)


# ---------------------------------------------------------------------------
# Entry points
# ---------------------------------------------------------------------------


def lint(
    model: DescriptorModel,
    *,
    registry: Registry | None = None,
    config: LintConfig | None = None,
    jobs: int | None = None,
    timeout: float | None = None,
    fail_on: Severity | None = None,
) -> LintResult:
    """Extract resources from *model*, evaluate every rule, and summarise.

    ``jobs``, ``timeout`` and ``fail_on`` override the values in *config*.
    """
    start = time.monotonic()
    registry = registry if registry is not None else default_registry()
    config = config or LintConfig()

    resources = extract_resources(model)
    findings = evaluate(model, resources, registry, config, jobs=jobs, timeout=timeout)

    elapsed = (time.monotonic() - start) * 1000
    return LintResult(
        findings=findings,
        fail_on=fail_on if fail_on is not None else config.fail_on,
        rules_evaluated=len(registry),
        files_linted=len(model.linted_files),
        resources_found=len(resources.resources),
        elapsed_ms=elapsed,
    )


def lint_paths(
    paths: Iterable[Path],
    *,
    config_path: Path | None = None,
    targets: Iterable[str] | None = None,
    registry: Registry | None = None,
    jobs: int | None = None,
    timeout: float | None = None,
    fail_on: Severity | None = None,
) -> LintResult:
    """Load descriptor files (and optionally a config file) and lint them.

    Raises
    ------
    LintError
        When the descriptors fail to build or the configuration is invalid.
    """
    config = LintConfig()
    if config_path is not None:
        try:
            config = load_config(config_path)
        except ConfigFileError as exc:
            msg = f"Invalid configuration: {exc}"
            raise LintError(msg) from exc
        logger.debug("Loaded configuration from %s", config_path)

    try:
        model = load_model(list(paths), targets=targets)
    except DescriptorError as exc:
        msg = f"Invalid descriptors: {exc}"
        raise LintError(msg) from exc

    try:
        return lint(
            model,
            registry=registry,
            config=config,
            jobs=jobs,
            timeout=timeout,
            fail_on=fail_on,
        )
    except ValueError as exc:
        msg = f"Invalid lint options: {exc}"
        raise LintError(msg) from exc


# ---------------------------------------------------------------------------
# Formatters
# ---------------------------------------------------------------------------


def _summary(result: LintResult) -> str:
    elapsed_str = f"{result.elapsed_ms / 1000:.1f}s"
    scope = f"{result.rules_evaluated} rules, {result.files_linted} files, {elapsed_str}"
    if not result.findings:
        return f"\u2713 No findings ({scope})"
    counts = ", ".join(
        f"{result.count(s)} {s.value}{'s' if result.count(s) != 1 else ''}"
        for s in Severity
        if result.count(s)
    )
    total = len(result.findings)
    return f"{total} finding{'s' if total != 1 else ''}: {counts} ({scope})"


def format_text(result: LintResult) -> str:
    """Format a LintResult as human-readable text.

    Example output::

        ✗ library/v1/library.proto:14 error core::0144::repeated-field-names
          Repeated field 'author' must use a plural name, such as 'authors'.
          suggestion: authors

        1 finding: 1 error (16 rules, 1 files, 0.0s)
    """
    lines: list[str] = []
    for f in result.findings:
        marker = "\u2717" if f.severity.rank >= result.fail_on.rank else "!"
        lines.append(f"{marker} {f.location} {f.severity.value} {f.rule_id}")
        lines.append(f"  {f.message}")
        if f.suggestion is not None:
            lines.append(f"  suggestion: {f.suggestion}")
        lines.append("")
    lines.append(_summary(result))
    return "\n".join(lines)


def format_json(result: LintResult) -> str:
    """Format a LintResult as structured JSON with ``findings`` and ``summary``."""
    output: dict[str, object] = {
        "findings": [f.to_dict() for f in result.findings],
        "summary": {
            "findings_count": len(result.findings),
            "errors": result.count(Severity.ERROR),
            "warnings": result.count(Severity.WARNING),
            "notices": result.count(Severity.NOTICE),
            "rules_evaluated": result.rules_evaluated,
            "files_linted": result.files_linted,
            "resources_found": result.resources_found,
            "fail_on": result.fail_on.value,
            "failed": result.failed,
            "elapsed_ms": result.elapsed_ms,
        },
    }
    return json.dumps(output, indent=2)


def format_porcelain(result: LintResult) -> str:
    """Format findings one per line: ``path:line:severity:rule_id:message``.

    A missing line is an empty field.  Returns an empty string when there are
    no findings.
    """
    lines: list[str] = []
    for f in result.findings:
        line = str(f.location.line) if f.location.line is not None else ""
        lines.append(f"{f.location.path}:{line}:{f.severity.value}:{f.rule_id}:{f.message}")
    return "\n".join(lines)
