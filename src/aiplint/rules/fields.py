"""Field rules: naming, repeated-field plurals, resource references."""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

from aiplint.descriptor.model import NodeKind
from aiplint.findings import Severity
from aiplint.resources import snake_case
from aiplint.rules.base import Rule
from aiplint.rules.inflection import is_plural_field_name, pluralize_field_name

if TYPE_CHECKING:
    from collections.abc import Iterator

    from aiplint.descriptor.model import Field
    from aiplint.findings import Finding
    from aiplint.rules.base import CheckContext

_LOWER_SNAKE_RE = re.compile(r"^[a-z][a-z0-9]*(_[a-z0-9]+)*$")


def _check_lower_snake(field: Field, ctx: CheckContext) -> Iterator[Finding]:
    if _LOWER_SNAKE_RE.match(field.name):
        return
    suggestion = re.sub(r"_+", "_", snake_case(field.name)).strip("_")
    yield ctx.finding(
        field,
        f"Field '{field.name}' must be lower_snake_case.",
        suggestion=suggestion if _LOWER_SNAKE_RE.match(suggestion) else None,
    )


def _is_repeated_list(field: Field, ctx: CheckContext) -> bool:
    return field.repeated and not field.type.is_map


def _check_repeated_field_names(field: Field, ctx: CheckContext) -> Iterator[Finding]:
    if is_plural_field_name(field.name):
        return
    plural = pluralize_field_name(field.name)
    yield ctx.finding(
        field,
        f"Repeated field '{field.name}' must use a plural name, such as '{plural}'.",
        suggestion=plural,
    )


def _check_resource_reference(field: Field, ctx: CheckContext) -> Iterator[Finding]:
    ref = field.resource_reference
    if ref is None:
        return
    for label, value in (("type", ref.type), ("child_type", ref.child_type)):
        if not value or value == "*":
            continue
        if ctx.resources.get(value) is None:
            yield ctx.finding(
                field,
                f"Field '{field.name}' references unknown resource {label} '{value}'.",
            )


RULES: tuple[Rule, ...] = (
    Rule(
        id="core::0140::lower-snake",
        summary="Field names use lower_snake_case.",
        kinds=frozenset({NodeKind.FIELD}),
        check=_check_lower_snake,
    ),
    Rule(
        id="core::0144::repeated-field-names",
        summary="Repeated fields use plural names.",
        kinds=frozenset({NodeKind.FIELD}),
        check=_check_repeated_field_names,
        prerequisite=_is_repeated_list,
    ),
    Rule(
        id="core::0122::unknown-resource-reference",
        summary="Resource references name a resource defined in the loaded files.",
        kinds=frozenset({NodeKind.FIELD}),
        check=_check_resource_reference,
        severity=Severity.WARNING,
    ),
)
