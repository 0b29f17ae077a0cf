"""In-source suppression directives.

A node opts out of one rule with a directive in its leading comments::

    // (-- api-linter: core::0140::lower-snake=disabled --)

The ``aiplint:`` prefix is accepted as well.  A directive suppresses findings
of that exact rule id at that exact node and nowhere else.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import TYPE_CHECKING

from aiplint.findings import config_error

if TYPE_CHECKING:
    from collections.abc import Iterable

    from aiplint.descriptor.model import DescriptorModel, SourceLocation
    from aiplint.findings import Finding
    from aiplint.rules.base import Registry

DIRECTIVE_RE = re.compile(
    r"\(--\s*(?:api-linter|aiplint)\s*:\s*([A-Za-z0-9_:.-]+)\s*=\s*disabled\s*--\)"
)


@dataclass(frozen=True)
class Suppression:
    rule_id: str
    location: SourceLocation


def parse_directives(comments: str) -> list[str]:
    """Return the rule ids named by directives in *comments*, in order."""
    return DIRECTIVE_RE.findall(comments or "")


def collect_suppressions(model: DescriptorModel) -> list[Suppression]:
    """Gather every directive attached to a node of a linted file."""
    found: dict[Suppression, None] = {}
    for node in model.walk():
        for rule_id in parse_directives(node.comments):
            found.setdefault(Suppression(rule_id, node.location), None)
    return list(found)


def apply_suppressions(
    findings: Iterable[Finding],
    suppressions: Iterable[Suppression],
    registry: Registry,
) -> list[Finding]:
    """Drop suppressed findings.

    A suppression naming a rule id the registry does not know removes nothing
    and produces one config-error finding at the node that carries it.
    """
    active: set[tuple[SourceLocation, str]] = set()
    problems: list[Finding] = []
    for suppression in dict.fromkeys(suppressions):
        if suppression.rule_id not in registry:
            problems.append(
                config_error(
                    f"Suppression names unknown rule '{suppression.rule_id}'.",
                    location=suppression.location,
                )
            )
            continue
        active.add((suppression.location, suppression.rule_id))
    kept = [f for f in findings if (f.location, f.rule_id) not in active]
    return kept + problems
