"""Build a resolved :class:`DescriptorModel` from raw descriptor documents.

A descriptor document is a plain mapping, as produced by any front end::

    path: library/v1/library.proto
    package: library.v1
    messages:
      - name: Book
        line: 12
        resource:
          type: library.googleapis.com/Book
          pattern: [publishers/{publisher}/books/{book}]
          style: [DECLARATIVE_FRIENDLY]
        fields:
          - {name: name, number: 1, type: string}
          - {name: authors, number: 2, type: string, repeated: true}
    services:
      - name: Library
        methods:
          - name: GetBook
            request: GetBookRequest
            response: Book
            http: {verb: get, path: "/v1/{name=publishers/*/books/*}"}

Type names follow protobuf scoping: a relative name is searched from the
innermost enclosing scope outward, a leading ``.`` makes it fully qualified.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from aiplint.descriptor.model import (
    FIELD_BEHAVIORS,
    HTTP_VERBS,
    MAP_KEY_TYPES,
    RESOURCE_STYLES,
    SCALAR_TYPES,
    DescriptorModel,
    EnumType,
    Field,
    FieldType,
    File,
    HttpRule,
    Message,
    Method,
    ResourceDescriptor,
    ResourceReference,
    Service,
    SourceLocation,
)

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

_MAP_TYPE_RE = re.compile(r"^map\s*<\s*([\w.]+)\s*,\s*([\w.]+)\s*>$")

# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class DescriptorError(ValueError):
    """Raised when a descriptor document is malformed."""


class ResolutionError(DescriptorError):
    """Raised when a type reference does not resolve within the loaded files."""

    def __init__(self, symbol: str, referrer: str) -> None:
        self.symbol = symbol
        self.referrer = referrer
        super().__init__(f"Unresolved symbol '{symbol}' referenced by '{referrer}'")


# ---------------------------------------------------------------------------
# Symbol table
# ---------------------------------------------------------------------------


@dataclass
class _Symbols:
    """Declared message and enum names across every document."""

    messages: set[str]
    enums: set[str]

    def resolve(self, name: str, scope: str, referrer: str) -> tuple[str, str]:
        """Resolve *name* from *scope*; return ``(kind, full_name)``."""
        if name.startswith("."):
            candidates = [name[1:]]
        else:
            candidates = []
            parts = scope.split(".") if scope else []
            while True:
                prefix = ".".join(parts)
                candidates.append(f"{prefix}.{name}" if prefix else name)
                if not parts:
                    break
                parts.pop()
        for candidate in candidates:
            if candidate in self.messages:
                return "message", candidate
            if candidate in self.enums:
                return "enum", candidate
        raise ResolutionError(name, referrer)


def _collect_symbols(documents: list[Mapping[str, Any]]) -> _Symbols:
    symbols = _Symbols(messages=set(), enums=set())
    seen: set[str] = set()

    def _declare(full_name: str, bucket: set[str]) -> None:
        if full_name in seen:
            msg = f"Duplicate declaration of '{full_name}'"
            raise DescriptorError(msg)
        seen.add(full_name)
        bucket.add(full_name)

    def _walk(data: Mapping[str, Any], scope: str) -> None:
        name = _require_name(data, f"message in scope '{scope or '<root>'}'")
        full_name = _join(scope, name)
        _declare(full_name, symbols.messages)
        for enum in data.get("enums") or []:
            enum_name = _require_name(enum, f"enum in '{full_name}'")
            _declare(_join(full_name, enum_name), symbols.enums)
        for nested in data.get("messages") or []:
            _walk(nested, full_name)

    for doc in documents:
        package = str(doc.get("package") or "")
        for message in doc.get("messages") or []:
            _walk(message, package)
        for enum in doc.get("enums") or []:
            enum_name = _require_name(enum, f"enum in '{doc.get('path')}'")
            _declare(_join(package, enum_name), symbols.enums)
    return symbols


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _join(scope: str, name: str) -> str:
    return f"{scope}.{name}" if scope else name


def _require_name(data: Mapping[str, Any], context: str) -> str:
    if not isinstance(data, dict):
        msg = f"{context}: expected a mapping, got {type(data).__name__}"
        raise DescriptorError(msg)
    name = data.get("name")
    if not isinstance(name, str) or not name:
        msg = f"{context}: 'name' must be a non-empty string"
        raise DescriptorError(msg)
    return name


def _str_tuple(raw: object, context: str) -> tuple[str, ...]:
    if raw is None:
        return ()
    if isinstance(raw, str):
        return (raw,)
    if not isinstance(raw, list):
        msg = f"{context}: expected a string or a list of strings"
        raise DescriptorError(msg)
    return tuple(str(item) for item in raw)


def _int_value(raw: object, context: str) -> int:
    if isinstance(raw, bool) or not isinstance(raw, int):
        msg = f"{context}: expected an integer, got {raw!r}"
        raise DescriptorError(msg)
    return raw


def _location(data: Mapping[str, Any], path: str, element: str) -> SourceLocation:
    line = data.get("line")
    return SourceLocation(
        path=path,
        line=_int_value(line, f"'{element}' line") if line is not None else None,
        element=element,
    )


# ---------------------------------------------------------------------------
# Builders
# ---------------------------------------------------------------------------


def _parse_type(raw: str, scope: str, symbols: _Symbols, referrer: str) -> FieldType:
    raw = raw.strip()
    match = _MAP_TYPE_RE.match(raw)
    if match:
        key_name, value_name = match.group(1), match.group(2)
        if key_name not in MAP_KEY_TYPES:
            msg = f"{referrer}: invalid map key type '{key_name}'"
            raise DescriptorError(msg)
        key = FieldType(kind="scalar", name=key_name)
        value = _parse_type(value_name, scope, symbols, referrer)
        if value.is_map:
            msg = f"{referrer}: map values cannot be maps"
            raise DescriptorError(msg)
        return FieldType(kind="map", name="map", key=key, value=value)
    if raw in SCALAR_TYPES:
        return FieldType(kind="scalar", name=raw)
    kind, full_name = symbols.resolve(raw, scope, referrer)
    return FieldType(kind=kind, name=full_name)


def _build_resource(raw: object, context: str) -> ResourceDescriptor:
    if not isinstance(raw, dict):
        msg = f"{context}: resource must be a mapping"
        raise DescriptorError(msg)
    styles = _str_tuple(raw.get("style"), f"{context} resource.style")
    for style in styles:
        if style not in RESOURCE_STYLES:
            msg = f"{context}: invalid resource style '{style}', must be one of {sorted(RESOURCE_STYLES)}"
            raise DescriptorError(msg)
    return ResourceDescriptor(
        type=str(raw.get("type") or ""),
        patterns=_str_tuple(raw.get("pattern"), f"{context} resource.pattern"),
        styles=styles,
        name_field=str(raw.get("name_field") or ""),
        singular=str(raw.get("singular") or ""),
        plural=str(raw.get("plural") or ""),
    )


def _build_field(
    data: Mapping[str, Any], message: str, path: str, symbols: _Symbols
) -> Field:
    name = _require_name(data, f"field in '{message}'")
    full_name = _join(message, name)
    type_raw = data.get("type")
    if not isinstance(type_raw, str) or not type_raw:
        msg = f"Field '{full_name}': 'type' must be a non-empty string"
        raise DescriptorError(msg)
    field_type = _parse_type(type_raw, message, symbols, full_name)

    behaviors = _str_tuple(data.get("behaviors"), f"Field '{full_name}' behaviors")
    for behavior in behaviors:
        if behavior not in FIELD_BEHAVIORS:
            msg = (
                f"Field '{full_name}': invalid field behavior '{behavior}', "
                f"must be one of {sorted(FIELD_BEHAVIORS)}"
            )
            raise DescriptorError(msg)

    reference: ResourceReference | None = None
    ref_raw = data.get("resource_reference")
    if ref_raw is not None:
        if not isinstance(ref_raw, dict):
            msg = f"Field '{full_name}': resource_reference must be a mapping"
            raise DescriptorError(msg)
        reference = ResourceReference(
            type=str(ref_raw.get("type") or ""),
            child_type=str(ref_raw.get("child_type") or ""),
        )

    repeated = bool(data.get("repeated", False))
    if repeated and field_type.is_map:
        msg = f"Field '{full_name}': map fields cannot be repeated"
        raise DescriptorError(msg)

    return Field(
        name=name,
        full_name=full_name,
        number=_int_value(data.get("number", 0), f"Field '{full_name}' number"),
        type=field_type,
        message=message,
        repeated=repeated,
        behaviors=frozenset(behaviors),
        resource_reference=reference,
        location=_location(data, path, full_name),
        comments=str(data.get("comments") or ""),
    )


def _build_enum(data: Mapping[str, Any], scope: str, path: str) -> EnumType:
    name = _require_name(data, f"enum in '{scope}'")
    full_name = _join(scope, name)
    return EnumType(
        name=name,
        full_name=full_name,
        values=_str_tuple(data.get("values"), f"Enum '{full_name}' values"),
        location=_location(data, path, full_name),
    )


def _build_message(
    data: Mapping[str, Any], scope: str, path: str, symbols: _Symbols
) -> Message:
    name = _require_name(data, f"message in '{scope}'")
    full_name = _join(scope, name)
    resource_raw = data.get("resource")
    return Message(
        name=name,
        full_name=full_name,
        file=path,
        fields=tuple(
            _build_field(f, full_name, path, symbols) for f in data.get("fields") or []
        ),
        messages=tuple(
            _build_message(m, full_name, path, symbols) for m in data.get("messages") or []
        ),
        enums=tuple(_build_enum(e, full_name, path) for e in data.get("enums") or []),
        resource=(
            _build_resource(resource_raw, f"Message '{full_name}'")
            if resource_raw is not None
            else None
        ),
        location=_location(data, path, full_name),
        comments=str(data.get("comments") or ""),
    )


def _build_http(raw: object, context: str) -> HttpRule:
    if not isinstance(raw, dict):
        msg = f"{context}: http must be a mapping"
        raise DescriptorError(msg)
    verb = str(raw.get("verb") or "").lower()
    if verb not in HTTP_VERBS:
        msg = f"{context}: invalid HTTP verb '{verb}', must be one of {sorted(HTTP_VERBS)}"
        raise DescriptorError(msg)
    return HttpRule(verb=verb, path=str(raw.get("path") or ""), body=str(raw.get("body") or ""))


def _build_service(
    data: Mapping[str, Any],
    package: str,
    path: str,
    symbols: _Symbols,
    messages: Mapping[str, Message],
) -> Service:
    name = _require_name(data, f"service in '{path}'")
    full_name = _join(package, name)
    methods: list[Method] = []
    for raw in data.get("methods") or []:
        method_name = _require_name(raw, f"method in '{full_name}'")
        method_full = _join(full_name, method_name)
        resolved: dict[str, Message] = {}
        for role in ("request", "response"):
            type_raw = raw.get(role)
            if not isinstance(type_raw, str) or not type_raw:
                msg = f"Method '{method_full}': '{role}' must be a non-empty string"
                raise DescriptorError(msg)
            kind, type_name = symbols.resolve(type_raw, package, method_full)
            if kind != "message":
                msg = f"Method '{method_full}': {role} type '{type_raw}' is not a message"
                raise DescriptorError(msg)
            resolved[role] = messages[type_name]
        http_raw = raw.get("http")
        methods.append(
            Method(
                name=method_name,
                full_name=method_full,
                service=full_name,
                request=resolved["request"],
                response=resolved["response"],
                http=_build_http(http_raw, f"Method '{method_full}'") if http_raw else None,
                client_streaming=bool(raw.get("client_streaming", False)),
                server_streaming=bool(raw.get("server_streaming", False)),
                location=_location(raw, path, method_full),
                comments=str(raw.get("comments") or ""),
            )
        )
    return Service(
        name=name,
        full_name=full_name,
        file=path,
        methods=tuple(methods),
        location=_location(data, path, full_name),
        comments=str(data.get("comments") or ""),
    )


def build_model(documents: Iterable[Mapping[str, Any]]) -> DescriptorModel:
    """Resolve *documents* into an immutable :class:`DescriptorModel`.

    Two passes: declare every message and enum name, then build the nodes
    with every type reference resolved.

    Raises
    ------
    ResolutionError
        When a request, response or field type does not resolve.
    DescriptorError
        When a document is malformed.
    """
    docs = list(documents)
    paths: set[str] = set()
    for doc in docs:
        path = doc.get("path") if isinstance(doc, dict) else None
        if not isinstance(path, str) or not path:
            msg = "Descriptor document missing 'path'"
            raise DescriptorError(msg)
        if path in paths:
            msg = f"Duplicate descriptor document for '{path}'"
            raise DescriptorError(msg)
        paths.add(path)

    symbols = _collect_symbols(docs)

    # --- Pass 1: messages (fields hold resolved names only) ---
    file_messages: list[tuple[Message, ...]] = []
    messages_by_name: dict[str, Message] = {}
    for doc in docs:
        package = str(doc.get("package") or "")
        built = tuple(
            _build_message(m, package, doc["path"], symbols) for m in doc.get("messages") or []
        )
        file_messages.append(built)
        for top in built:
            stack = [top]
            while stack:
                message = stack.pop()
                messages_by_name[message.full_name] = message
                stack.extend(message.messages)

    # --- Pass 2: services (methods link to message nodes) ---
    files: list[File] = []
    for doc, messages in zip(docs, file_messages):
        path = doc["path"]
        package = str(doc.get("package") or "")
        files.append(
            File(
                path=path,
                package=package,
                messages=messages,
                enums=tuple(_build_enum(e, package, path) for e in doc.get("enums") or []),
                services=tuple(
                    _build_service(s, package, path, symbols, messages_by_name)
                    for s in doc.get("services") or []
                ),
                dependency=bool(doc.get("dependency", False)),
                location=SourceLocation(path=path, line=None, element=path),
                comments=str(doc.get("comments") or ""),
            )
        )

    return DescriptorModel(files=tuple(files), messages_by_name=messages_by_name)
