"""Resource rules: type names, patterns, parents, and the name field."""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

from aiplint.descriptor.model import NodeKind
from aiplint.findings import Severity
from aiplint.resources import ISSUE_DUPLICATE, ISSUE_PARENT, ISSUE_PATTERN, ISSUE_TYPE
from aiplint.rules.base import Rule

if TYPE_CHECKING:
    from collections.abc import Iterator

    from aiplint.findings import Finding
    from aiplint.resources import Resource
    from aiplint.rules.base import CheckContext

_SERVICE_NAME_RE = re.compile(r"^[a-z0-9]([a-z0-9-]*[a-z0-9])?(\.[a-z0-9]([a-z0-9-]*[a-z0-9])?)+$")
_KIND_RE = re.compile(r"^[A-Z][A-Za-z0-9]*$")


def _check_type_name(resource: Resource, ctx: CheckContext) -> Iterator[Finding]:
    for issue in ctx.resources.issues_for(resource, ISSUE_TYPE):
        yield ctx.finding(resource, f"Resource on '{resource.message}': {issue.text}.")
    for issue in ctx.resources.issues_for(resource, ISSUE_DUPLICATE):
        yield ctx.finding(resource, f"Resource on '{resource.message}': {issue.text}.")
    if not resource.type:
        return

    service, sep, kind = resource.type.partition("/")
    if not sep or "/" in kind or not _SERVICE_NAME_RE.match(service) or not kind:
        yield ctx.finding(
            resource,
            f"Resource type '{resource.type}' must have the form "
            "'{service.name}/{Kind}', e.g. 'library.example.com/Book'.",
        )
    elif not _KIND_RE.match(kind):
        fixed = "".join(part[:1].upper() + part[1:] for part in re.split(r"[_\W]+", kind))
        yield ctx.finding(
            resource,
            f"Resource type kind '{kind}' must be UpperCamelCase.",
            suggestion=f"{service}/{fixed}" if fixed else None,
        )


def _check_patterns(resource: Resource, ctx: CheckContext) -> Iterator[Finding]:
    for issue in ctx.resources.issues_for(resource, ISSUE_PATTERN):
        label = resource.type or resource.message
        yield ctx.finding(resource, f"Resource '{label}': {issue.text}.")


def _check_parent(resource: Resource, ctx: CheckContext) -> Iterator[Finding]:
    for issue in ctx.resources.issues_for(resource, ISSUE_PARENT):
        yield ctx.finding(resource, f"Resource '{resource.type}' has an {issue.text}.")


def _check_name_field(resource: Resource, ctx: CheckContext) -> Iterator[Finding]:
    message = ctx.model.find_message(resource.message)
    if message is None:
        return
    name_field = message.field(resource.name_field)
    if name_field is None:
        yield ctx.finding(
            resource,
            f"Resource message '{message.name}' must have a '{resource.name_field}' field "
            "of type string.",
            suggestion=f"string {resource.name_field}",
        )
    elif name_field.repeated or not name_field.type.is_scalar("string"):
        yield ctx.finding(
            name_field,
            f"Resource name field '{name_field.name}' must be a singular string.",
            suggestion="string",
        )


RULES: tuple[Rule, ...] = (
    Rule(
        id="core::0123::resource-type-name",
        summary="Resource types are unique and follow '{service.name}/{Kind}'.",
        kinds=frozenset({NodeKind.RESOURCE}),
        check=_check_type_name,
    ),
    Rule(
        id="core::0123::resource-pattern",
        summary="Resources declare well-formed name patterns.",
        kinds=frozenset({NodeKind.RESOURCE}),
        check=_check_patterns,
    ),
    Rule(
        id="core::0123::resource-parent",
        summary="A resource's parent is not ambiguous.",
        kinds=frozenset({NodeKind.RESOURCE}),
        check=_check_parent,
        severity=Severity.WARNING,
    ),
    Rule(
        id="core::0123::resource-name-field",
        summary="Resource messages have a singular string name field.",
        kinds=frozenset({NodeKind.RESOURCE}),
        check=_check_name_field,
    ),
)
