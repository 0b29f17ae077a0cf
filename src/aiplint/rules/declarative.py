"""Rules for declarative-friendly resources.

Declarative-friendly resources are managed by tools that reconcile a desired
state, so their messages carry a few well-known fields with fixed shapes and
their services avoid imperative custom methods.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from aiplint.descriptor.model import NodeKind
from aiplint.findings import Severity
from aiplint.rules.base import Rule, declarative_friendly_message, declarative_friendly_service
from aiplint.rules.methods import standard_method_prefix

if TYPE_CHECKING:
    from collections.abc import Iterator

    from aiplint.descriptor.model import Field, Message, Service
    from aiplint.findings import Finding
    from aiplint.rules.base import CheckContext

ANNOTATIONS_TYPE = "map<string, string>"


def _describe(field: Field) -> str:
    return f"repeated {field.type}" if field.repeated else str(field.type)


# ---------------------------------------------------------------------------
# Message shape
# ---------------------------------------------------------------------------


def _check_annotations(message: Message, ctx: CheckContext) -> Iterator[Finding]:
    annotations = message.field("annotations")
    if annotations is None:
        yield ctx.finding(
            message,
            f"Declarative-friendly resource '{message.name}' is missing the "
            f"'{ANNOTATIONS_TYPE} annotations' field.",
            suggestion=f"{ANNOTATIONS_TYPE} annotations",
        )
        return
    if not annotations.type.is_map_of("string", "string"):
        yield ctx.finding(
            annotations,
            f"Field 'annotations' has the wrong type: expected '{ANNOTATIONS_TYPE}', "
            f"got '{_describe(annotations)}'.",
            suggestion=ANNOTATIONS_TYPE,
        )


def _check_reconciling(message: Message, ctx: CheckContext) -> Iterator[Finding]:
    reconciling = message.field("reconciling")
    if reconciling is None:
        return
    if reconciling.repeated or not reconciling.type.is_scalar("bool"):
        yield ctx.finding(
            reconciling,
            f"Field 'reconciling' must be a singular bool, not '{_describe(reconciling)}'.",
            suggestion="bool",
        )
    if not reconciling.has_behavior("OUTPUT_ONLY"):
        yield ctx.finding(
            reconciling,
            "Field 'reconciling' must be annotated as OUTPUT_ONLY.",
            suggestion="OUTPUT_ONLY",
        )


def _check_etag(message: Message, ctx: CheckContext) -> Iterator[Finding]:
    etag = message.field("etag")
    if etag is None:
        return
    if etag.repeated or not etag.type.is_scalar("string"):
        yield ctx.finding(
            etag,
            f"Field 'etag' must be a singular string, not '{_describe(etag)}'.",
            suggestion="string",
        )


# ---------------------------------------------------------------------------
# Services
# ---------------------------------------------------------------------------


def _check_custom_methods(service: Service, ctx: CheckContext) -> Iterator[Finding]:
    for method in service.methods:
        if standard_method_prefix(method.name) is not None:
            continue
        yield ctx.finding(
            method,
            f"Service '{service.name}' manages declarative-friendly resources; "
            f"custom method '{method.name}' should be avoided.",
        )


RULES: tuple[Rule, ...] = (
    Rule(
        id="core::0148::declarative-friendly-annotations",
        summary="Declarative-friendly resources have a map<string, string> annotations field.",
        kinds=frozenset({NodeKind.MESSAGE}),
        check=_check_annotations,
        prerequisite=declarative_friendly_message,
    ),
    Rule(
        id="core::0128::declarative-friendly-reconciling",
        summary="A reconciling field on a declarative-friendly resource is an output-only bool.",
        kinds=frozenset({NodeKind.MESSAGE}),
        check=_check_reconciling,
        prerequisite=declarative_friendly_message,
    ),
    Rule(
        id="core::0154::declarative-friendly-etag",
        summary="An etag field on a declarative-friendly resource is a singular string.",
        kinds=frozenset({NodeKind.MESSAGE}),
        check=_check_etag,
        prerequisite=declarative_friendly_message,
    ),
    Rule(
        id="core::0136::declarative-friendly-custom-methods",
        summary="Services with declarative-friendly resources avoid custom methods.",
        kinds=frozenset({NodeKind.SERVICE}),
        check=_check_custom_methods,
        severity=Severity.WARNING,
        prerequisite=declarative_friendly_service,
    ),
)
