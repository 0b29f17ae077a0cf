"""Evaluation engine: plan (node, rule) checks, run them, suppress, and sort."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from aiplint.engine.config import LintConfig, unknown_selector_findings
from aiplint.engine.executor import CheckTask, run_tasks
from aiplint.engine.suppression import apply_suppressions, collect_suppressions
from aiplint.findings import sort_findings
from aiplint.rules.base import CheckContext

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator

    from aiplint.descriptor.model import DescriptorModel
    from aiplint.engine.suppression import Suppression
    from aiplint.findings import Finding
    from aiplint.resources.extractor import ResourceIndex
    from aiplint.rules.base import Registry

logger = logging.getLogger(__name__)


def iter_nodes(model: DescriptorModel, resources: ResourceIndex) -> Iterator[tuple[Any, str]]:
    """Yield ``(node, file path)`` in evaluation order.

    Nodes of linted files come first in walk order, then resources whose
    message lives in a linted file, ordered by type.
    """
    linted = {f.path for f in model.linted_files}
    for node in model.walk():
        yield node, node.location.path
    for resource in resources.resources:
        if resource.location.path in linted:
            yield resource, resource.location.path


def plan(
    model: DescriptorModel,
    resources: ResourceIndex,
    registry: Registry,
    config: LintConfig,
) -> list[CheckTask]:
    """Return every (node, rule) pair that should run, in deterministic order."""
    contexts = {rule.id: CheckContext(model, resources, rule) for rule in registry}
    enabled_cache: dict[tuple[str, str], bool] = {}
    tasks: list[CheckTask] = []
    for node, path in iter_nodes(model, resources):
        for rule in registry:
            if not rule.applies_to(node.kind):
                continue
            key = (rule.id, path)
            if key not in enabled_cache:
                enabled_cache[key] = config.is_rule_enabled(rule, path)
            if enabled_cache[key]:
                tasks.append(CheckTask(rule, node, contexts[rule.id]))
    return tasks


def evaluate(
    model: DescriptorModel,
    resources: ResourceIndex,
    registry: Registry,
    config: LintConfig | None = None,
    *,
    suppressions: Iterable[Suppression] | None = None,
    jobs: int | None = None,
    timeout: float | None = None,
) -> list[Finding]:
    """Evaluate *registry* against *model* and return sorted findings.

    ``jobs`` and ``timeout`` default to the values in *config*.  When
    *suppressions* is None they are collected from the model's comments.
    Neither a failing rule nor a bad configuration aborts the run; both are
    reported as findings.
    """
    config = config or LintConfig()
    jobs = jobs if jobs is not None else config.jobs
    timeout = timeout if timeout is not None else config.timeout

    findings: list[Finding] = unknown_selector_findings(config, registry)

    tasks = plan(model, resources, registry, config)
    logger.debug(
        "Planned %d check(s) for %d rule(s) over %d file(s) (jobs=%d, timeout=%s)",
        len(tasks),
        len(registry),
        len(model.linted_files),
        jobs,
        timeout,
    )
    findings.extend(run_tasks(tasks, jobs=jobs, timeout=timeout))

    if suppressions is None:
        suppressions = collect_suppressions(model)
    findings = apply_suppressions(findings, suppressions, registry)
    return sort_findings(findings)
