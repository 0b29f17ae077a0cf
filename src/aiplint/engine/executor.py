"""Run (node, rule) checks on worker threads with failure isolation and timeouts."""

from __future__ import annotations

import logging
import queue
import threading
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from aiplint.findings import INTERNAL_ERROR, Finding, Severity

if TYPE_CHECKING:
    from collections.abc import Sequence

    from aiplint.rules.base import CheckContext, Rule

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CheckTask:
    """One rule applied to one node."""

    rule: Rule
    node: Any
    context: CheckContext

    def run(self) -> list[Finding]:
        prerequisite = self.rule.prerequisite
        if prerequisite is not None and not prerequisite(self.node, self.context):
            return []
        return list(self.rule.check(self.node, self.context))


def internal_error(task: CheckTask, message: str) -> Finding:
    return Finding(
        rule_id=task.rule.id,
        severity=Severity.ERROR,
        message=message,
        location=task.node.location,
        category=INTERNAL_ERROR,
    )


def _failure(task: CheckTask, exc: BaseException) -> Finding:
    logger.warning(
        "Rule %s failed on %s: %s: %s",
        task.rule.id,
        task.node.location.element or task.node.location.path,
        type(exc).__name__,
        exc,
    )
    return internal_error(task, f"Rule '{task.rule.id}' raised {type(exc).__name__}: {exc}")


def _expired(task: CheckTask, timeout: float) -> Finding:
    logger.warning(
        "Rule %s timed out after %gs on %s",
        task.rule.id,
        timeout,
        task.node.location.element or task.node.location.path,
    )
    return internal_error(task, f"Rule '{task.rule.id}' did not finish within {timeout:g}s.")


def _run_sequential(tasks: Sequence[CheckTask]) -> list[Finding]:
    findings: list[Finding] = []
    for task in tasks:
        try:
            findings.extend(task.run())
        except Exception as exc:  # noqa: BLE001
            findings.append(_failure(task, exc))
    return findings


def _run_pooled(tasks: Sequence[CheckTask], jobs: int) -> list[Finding]:
    findings: list[Finding] = []
    with ThreadPoolExecutor(max_workers=jobs, thread_name_prefix="aiplint") as pool:
        futures = {pool.submit(task.run): task for task in tasks}
        for future in as_completed(futures):
            try:
                findings.extend(future.result())
            except Exception as exc:  # noqa: BLE001
                findings.append(_failure(futures[future], exc))
    return findings


def _run_timed(tasks: Sequence[CheckTask], jobs: int, timeout: float) -> list[Finding]:
    # Each check runs on its own daemon thread; at most *jobs* are live at once.
    results: queue.SimpleQueue[tuple[int, list[Finding], Exception | None]] = queue.SimpleQueue()

    def _work(index: int) -> None:
        try:
            results.put((index, tasks[index].run(), None))
        except Exception as exc:  # noqa: BLE001
            results.put((index, [], exc))

    findings: list[Finding] = []
    running: dict[int, float] = {}
    next_index = 0
    abandoned = 0
    while next_index < len(tasks) or running:
        while next_index < len(tasks) and len(running) < jobs:
            running[next_index] = time.monotonic()
            threading.Thread(
                target=_work, args=(next_index,), name=f"aiplint-check-{next_index}", daemon=True
            ).start()
            next_index += 1

        deadline = min(running.values()) + timeout
        try:
            index, found, exc = results.get(timeout=max(0.0, deadline - time.monotonic()))
        except queue.Empty:
            pass
        else:
            # Results of abandoned checks arrive late and are dropped.
            if running.pop(index, None) is not None:
                if exc is None:
                    findings.extend(found)
                else:
                    findings.append(_failure(tasks[index], exc))

        now = time.monotonic()
        for index, started in list(running.items()):
            if now - started >= timeout:
                del running[index]
                abandoned += 1
                findings.append(_expired(tasks[index], timeout))
    if abandoned:
        logger.debug("Abandoned %d timed-out check(s) on daemon threads", abandoned)
    return findings


def run_tasks(
    tasks: Sequence[CheckTask],
    *,
    jobs: int = 1,
    timeout: float | None = None,
) -> list[Finding]:
    """Run every task and return the accumulated findings (unordered).

    A task that raises yields one internal-error finding.  With a *timeout*,
    checks run on daemon threads; one running longer than *timeout* seconds
    yields one internal-error finding and is abandoned, so a stuck check
    blocks neither the rest of the run nor interpreter exit.
    """
    if jobs < 1:
        msg = f"jobs must be at least 1, got {jobs}"
        raise ValueError(msg)
    if timeout is not None and timeout <= 0:
        msg = f"timeout must be positive, got {timeout}"
        raise ValueError(msg)
    if not tasks:
        return []
    if timeout is not None:
        return _run_timed(tasks, jobs, timeout)
    if jobs == 1:
        return _run_sequential(tasks)
    return _run_pooled(tasks, jobs)
