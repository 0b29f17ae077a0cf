"""Method rules: naming, standard method shape, and Add/Remove custom methods."""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

from aiplint.descriptor.model import NodeKind
from aiplint.resources import lower_camel, snake_case
from aiplint.rules.base import Rule

if TYPE_CHECKING:
    from collections.abc import Iterator

    from aiplint.descriptor.model import Field, Method
    from aiplint.findings import Finding
    from aiplint.rules.base import CheckContext

STANDARD_METHOD_VERBS: dict[str, str] = {
    "Get": "get",
    "List": "get",
    "Create": "post",
    "Update": "patch",
    "Delete": "delete",
}

_UPPER_CAMEL_RE = re.compile(r"^[A-Z][A-Za-z0-9]*$")
_STANDARD_RE = re.compile(r"^(Get|List|Create|Update|Delete)(?=[A-Z])")
_ADD_REMOVE_RE = re.compile(r"^(Add|Remove)(?=[A-Z])")
_PATH_VARIABLE_RE = re.compile(r"\{([A-Za-z_][\w.]*)(?:=[^}]*)?\}")
_CUSTOM_VERB_RE = re.compile(r":[A-Za-z0-9]*$")


def standard_method_prefix(name: str) -> str | None:
    """Return ``Get``/``List``/``Create``/``Update``/``Delete`` for standard method names."""
    match = _STANDARD_RE.match(name)
    return match.group(1) if match else None


def is_add_remove_method(method: Method, ctx: CheckContext) -> bool:
    return _ADD_REMOVE_RE.match(method.name) is not None


def _is_standard_method(method: Method, ctx: CheckContext) -> bool:
    return standard_method_prefix(method.name) is not None


def _has_http_standard_method(method: Method, ctx: CheckContext) -> bool:
    return method.http is not None and _is_standard_method(method, ctx)


# ---------------------------------------------------------------------------
# Naming and standard methods
# ---------------------------------------------------------------------------


def _check_method_names(method: Method, ctx: CheckContext) -> Iterator[Finding]:
    if _UPPER_CAMEL_RE.match(method.name):
        return
    suggestion = "".join(part[:1].upper() + part[1:] for part in re.split(r"[_\W]+", method.name))
    yield ctx.finding(
        method,
        f"Method '{method.name}' must be UpperCamelCase.",
        suggestion=suggestion or None,
    )


def _check_request_name(method: Method, ctx: CheckContext) -> Iterator[Finding]:
    expected = f"{method.name}Request"
    if method.request.name != expected:
        yield ctx.finding(
            method,
            f"Request message of '{method.name}' should be named '{expected}', "
            f"not '{method.request.name}'.",
            suggestion=expected,
        )


def _check_http_verb(method: Method, ctx: CheckContext) -> Iterator[Finding]:
    prefix = standard_method_prefix(method.name)
    if method.http is None or prefix is None:
        return
    expected = STANDARD_METHOD_VERBS[prefix]
    if method.http.verb != expected:
        yield ctx.finding(
            method,
            f"Standard method '{method.name}' must use HTTP {expected.upper()}, "
            f"not {method.http.verb.upper()}.",
            suggestion=expected.upper(),
        )


# ---------------------------------------------------------------------------
# Add / Remove custom methods
# ---------------------------------------------------------------------------


def _identifying_field(method: Method) -> Field | None:
    """Find the request field that identifies the target resource.

    The first HTTP path variable naming a request field wins, then a field
    carrying a resource reference, then a field called ``name``.
    """
    request = method.request
    if method.http is not None:
        for match in _PATH_VARIABLE_RE.finditer(method.http.path):
            candidate = request.field(match.group(1).split(".")[0])
            if candidate is not None:
                return candidate
    for f in request.fields:
        if f.resource_reference is not None and f.resource_reference.type:
            return f
    return request.field("name")


def _expected_field_name(method: Method, target: Field, ctx: CheckContext) -> str | None:
    """Derive the identifying field name from the resource type, when known."""
    ref = target.resource_reference
    if ref is not None and ref.type:
        resource = ctx.resources.get(ref.type)
        if resource is not None:
            return snake_case(resource.singular)
        return snake_case(ref.type.rpartition("/")[2])
    resource = ctx.resource_for(method.response)
    if resource is not None:
        return snake_case(resource.singular)
    return None


def _check_add_remove(method: Method, ctx: CheckContext) -> Iterator[Finding]:
    # One finding per violated clause.
    http = method.http
    if http is None:
        yield ctx.finding(method, f"'{method.name}' must have an HTTP binding using POST.")
    elif http.verb != "post":
        yield ctx.finding(
            method,
            f"'{method.name}' must use HTTP POST, not {http.verb.upper()}.",
            suggestion="POST",
        )

    expected_request = f"{method.name}Request"
    if method.request.name != expected_request:
        yield ctx.finding(
            method,
            f"Request message of '{method.name}' should be named '{expected_request}', "
            f"not '{method.request.name}'.",
            suggestion=expected_request,
        )

    target = _identifying_field(method)
    if target is not None:
        expected_field = _expected_field_name(method, target, ctx)
        if target.name == "name":
            hint = f"'{expected_field}'" if expected_field else "the resource type"
            yield ctx.finding(
                target,
                f"'{method.name}' should identify the resource with a field named after "
                f"{hint}, not 'name'.",
                suggestion=expected_field,
            )
        elif expected_field is not None and target.name != expected_field:
            yield ctx.finding(
                target,
                f"'{method.name}' should identify the resource with a field named "
                f"'{expected_field}', not '{target.name}'.",
                suggestion=expected_field,
            )

    suffix = ":" + lower_camel(method.name)
    if http is None:
        yield ctx.finding(method, f"HTTP path of '{method.name}' must end with '{suffix}'.")
    elif not http.path.endswith(suffix):
        yield ctx.finding(
            method,
            f"HTTP path of '{method.name}' must end with '{suffix}'.",
            suggestion=_CUSTOM_VERB_RE.sub("", http.path) + suffix,
        )


RULES: tuple[Rule, ...] = (
    Rule(
        id="core::0130::method-names",
        summary="Method names use UpperCamelCase.",
        kinds=frozenset({NodeKind.METHOD}),
        check=_check_method_names,
    ),
    Rule(
        id="core::0130::standard-method-request-name",
        summary="Standard methods take a request message named after the method.",
        kinds=frozenset({NodeKind.METHOD}),
        check=_check_request_name,
        prerequisite=_is_standard_method,
    ),
    Rule(
        id="core::0130::standard-method-http-verb",
        summary="Standard methods bind the HTTP verb their kind prescribes.",
        kinds=frozenset({NodeKind.METHOD}),
        check=_check_http_verb,
        prerequisite=_has_http_standard_method,
    ),
    Rule(
        id="core::0144::add-remove-method-shape",
        summary="Add/Remove methods use POST, a matching request, a typed resource field, and a matching custom verb.",
        kinds=frozenset({NodeKind.METHOD}),
        check=_check_add_remove,
        prerequisite=is_add_remove_method,
    ),
)
