"""Rule values, the rule registry, and the per-check context."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable

from aiplint.descriptor.model import NodeKind
from aiplint.findings import VIOLATION, Finding, Severity

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator

    from aiplint.descriptor.model import DescriptorModel, Field, Message, Method, Service, SourceLocation
    from aiplint.resources.extractor import Resource, ResourceIndex

RULE_ID_RE = re.compile(r"^[a-z][a-z0-9]*(::[a-z0-9][a-z0-9-]*)+$")

Check = Callable[[Any, "CheckContext"], "Iterable[Finding]"]
Prerequisite = Callable[[Any, "CheckContext"], bool]

# ---------------------------------------------------------------------------
# Data classes
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Rule:
    """A single, independent rule.

    ``kinds`` names the node kinds the rule inspects; the engine only hands it
    nodes of those kinds.  ``prerequisite``, when set, must hold for the check
    to run at all.
    """

    id: str
    summary: str
    kinds: frozenset[NodeKind]
    check: Check
    severity: Severity = Severity.ERROR
    prerequisite: Prerequisite | None = None
    default_enabled: bool = True

    def applies_to(self, kind: NodeKind) -> bool:
        return kind in self.kinds

    def matches(self, selector: str) -> bool:
        """True when *selector* is this rule's id or one of its ``::`` groups."""
        return self.id == selector or self.id.startswith(selector + "::")


@dataclass(frozen=True)
class CheckContext:
    """Read-only view handed to every check.

    One context exists per (rule, run); it carries the rule so checks can
    build findings without knowing their own id.
    """

    model: DescriptorModel
    resources: ResourceIndex
    rule: Rule

    def finding(
        self,
        node: Any,
        message: str,
        *,
        suggestion: str | None = None,
        severity: Severity | None = None,
        location: SourceLocation | None = None,
    ) -> Finding:
        return Finding(
            rule_id=self.rule.id,
            severity=severity if severity is not None else self.rule.severity,
            message=message,
            location=location if location is not None else node.location,
            suggestion=suggestion,
            category=VIOLATION,
        )

    # -- lookups ----------------------------------------------------------

    def resource_for(self, message: Message) -> Resource | None:
        return self.resources.for_message(message)

    def field_message(self, field: Field) -> Message | None:
        """Return the message a message-typed field points at."""
        if field.type.kind != "message":
            return None
        return self.model.find_message(field.type.name)

    def declarative_friendly(self, message: Message) -> bool:
        resource = self.resources.for_message(message)
        return resource is not None and resource.declarative_friendly

    def method_resources(self, method: Method) -> Iterator[Resource]:
        """Yield resources a method touches.

        Looks at the request and response messages, their message-typed
        fields one level deep, and resource references on request fields.
        """
        for message in (method.request, method.response):
            resource = self.resources.for_message(message)
            if resource is not None:
                yield resource
            for f in message.fields:
                target = self.field_message(f)
                if target is not None:
                    nested = self.resources.for_message(target)
                    if nested is not None:
                        yield nested
        for f in method.request.fields:
            ref = f.resource_reference
            if ref is None:
                continue
            referenced = self.resources.get(ref.type) if ref.type else None
            if referenced is not None:
                yield referenced

    def service_resources(self, service: Service) -> list[Resource]:
        seen: dict[str, Resource] = {}
        for method in service.methods:
            for resource in self.method_resources(method):
                seen.setdefault(resource.message, resource)
        return [seen[k] for k in sorted(seen)]


# ---------------------------------------------------------------------------
# Prerequisites shared by several rules
# ---------------------------------------------------------------------------


def declarative_friendly_message(message: Message, ctx: CheckContext) -> bool:
    return ctx.declarative_friendly(message)


def declarative_friendly_service(service: Service, ctx: CheckContext) -> bool:
    return any(r.declarative_friendly for r in ctx.service_resources(service))


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------


class Registry:
    """Ordered-by-id, uniquely keyed, immutable collection of rules.

    Registries are plain values: build one per process and pass it to the
    engine.  ``subset`` and ``union`` return new registries.
    """

    def __init__(self, rules: Iterable[Rule] = ()) -> None:
        by_id: dict[str, Rule] = {}
        for rule in rules:
            if not RULE_ID_RE.match(rule.id):
                msg = f"Invalid rule id '{rule.id}'"
                raise ValueError(msg)
            if not rule.kinds:
                msg = f"Rule '{rule.id}' declares no node kinds"
                raise ValueError(msg)
            if rule.id in by_id:
                msg = f"Duplicate rule id '{rule.id}'"
                raise ValueError(msg)
            by_id[rule.id] = rule
        self._rules: dict[str, Rule] = {k: by_id[k] for k in sorted(by_id)}

    def __iter__(self) -> Iterator[Rule]:
        return iter(self._rules.values())

    def __len__(self) -> int:
        return len(self._rules)

    def __contains__(self, rule_id: object) -> bool:
        return rule_id in self._rules

    def __repr__(self) -> str:
        return f"Registry({len(self._rules)} rules)"

    def get(self, rule_id: str) -> Rule | None:
        return self._rules.get(rule_id)

    def ids(self) -> list[str]:
        return list(self._rules)

    def select(self, selector: str) -> list[Rule]:
        """Return the rules an id or ``::`` group prefix selects."""
        return [r for r in self._rules.values() if r.matches(selector)]

    def knows(self, selector: str) -> bool:
        return any(r.matches(selector) for r in self._rules.values())

    def subset(self, selectors: Iterable[str]) -> Registry:
        wanted = list(selectors)
        return Registry(r for r in self._rules.values() if any(r.matches(s) for s in wanted))

    def union(self, other: Registry) -> Registry:
        """Combine two registries; overlapping ids raise ``ValueError``."""
        return Registry([*self, *other])
