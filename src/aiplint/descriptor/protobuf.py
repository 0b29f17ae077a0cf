"""Convert compiled protobuf descriptor sets into descriptor documents.

Expects the output of ``protoc --include_imports --include_source_info
--descriptor_set_out=...``.  Source info supplies line numbers and leading
comments; without it locations carry no line.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from google.api import annotations_pb2, field_behavior_pb2, resource_pb2
from google.protobuf import descriptor_pb2
from google.protobuf.message import DecodeError

from aiplint.descriptor.builder import DescriptorError

if TYPE_CHECKING:
    from collections.abc import Iterable
    from pathlib import Path

logger = logging.getLogger(__name__)

# FileDescriptorProto / DescriptorProto / ServiceDescriptorProto field numbers
# used in SourceCodeInfo paths.
_FILE_MESSAGE = 4
_FILE_ENUM = 5
_FILE_SERVICE = 6
_MESSAGE_FIELD = 2
_MESSAGE_NESTED = 3
_MESSAGE_ENUM = 4
_SERVICE_METHOD = 2

_FieldProto = descriptor_pb2.FieldDescriptorProto


class _SourceInfo:
    """Line and leading-comment lookup keyed by SourceCodeInfo path."""

    def __init__(self, file_proto: descriptor_pb2.FileDescriptorProto) -> None:
        self._locations: dict[tuple[int, ...], descriptor_pb2.SourceCodeInfo.Location] = {}
        for loc in file_proto.source_code_info.location:
            self._locations.setdefault(tuple(loc.path), loc)

    def annotate(self, data: dict[str, Any], path: tuple[int, ...]) -> dict[str, Any]:
        loc = self._locations.get(path)
        if loc is not None:
            if loc.span:
                data["line"] = loc.span[0] + 1
            if loc.leading_comments:
                data["comments"] = loc.leading_comments
        return data


def _scalar_name(field_proto: descriptor_pb2.FieldDescriptorProto) -> str:
    return _FieldProto.Type.Name(field_proto.type).removeprefix("TYPE_").lower()


def _type_string(
    field_proto: descriptor_pb2.FieldDescriptorProto, map_entries: dict[str, str]
) -> str:
    if field_proto.type in (_FieldProto.TYPE_MESSAGE, _FieldProto.TYPE_ENUM, _FieldProto.TYPE_GROUP):
        entry = map_entries.get(field_proto.type_name)
        return entry if entry is not None else field_proto.type_name
    return _scalar_name(field_proto)


def _collect_map_entries(
    messages: Iterable[descriptor_pb2.DescriptorProto], scope: str, out: dict[str, str]
) -> None:
    for message in messages:
        full_name = f"{scope}.{message.name}"
        if message.options.map_entry:
            key = {f.number: f for f in message.field}
            out[full_name] = f"map<{_type_string(key[1], out)}, {_type_string(key[2], out)}>"
        _collect_map_entries(message.nested_type, full_name, out)


def _convert_resource(message: descriptor_pb2.DescriptorProto) -> dict[str, Any] | None:
    if not message.options.HasExtension(resource_pb2.resource):
        return None
    descriptor = message.options.Extensions[resource_pb2.resource]
    styles = [
        resource_pb2.ResourceDescriptor.Style.Name(style)
        for style in descriptor.style
        if style != resource_pb2.ResourceDescriptor.STYLE_UNSPECIFIED
    ]
    return {
        "type": descriptor.type,
        "pattern": list(descriptor.pattern),
        "style": styles,
        "name_field": descriptor.name_field,
        "singular": descriptor.singular,
        "plural": descriptor.plural,
    }


def _convert_field(
    field_proto: descriptor_pb2.FieldDescriptorProto,
    map_entries: dict[str, str],
    info: _SourceInfo,
    path: tuple[int, ...],
) -> dict[str, Any]:
    type_string = _type_string(field_proto, map_entries)
    data: dict[str, Any] = {
        "name": field_proto.name,
        "number": field_proto.number,
        "type": type_string,
        "repeated": (
            field_proto.label == _FieldProto.LABEL_REPEATED and not type_string.startswith("map<")
        ),
    }
    behaviors = field_proto.options.Extensions[field_behavior_pb2.field_behavior]
    if behaviors:
        data["behaviors"] = [
            field_behavior_pb2.FieldBehavior.Name(b)
            for b in behaviors
            if b != field_behavior_pb2.FIELD_BEHAVIOR_UNSPECIFIED
        ]
    if field_proto.options.HasExtension(resource_pb2.resource_reference):
        ref = field_proto.options.Extensions[resource_pb2.resource_reference]
        data["resource_reference"] = {"type": ref.type, "child_type": ref.child_type}
    return info.annotate(data, path)


def _convert_enum(
    enum_proto: descriptor_pb2.EnumDescriptorProto, info: _SourceInfo, path: tuple[int, ...]
) -> dict[str, Any]:
    return info.annotate(
        {"name": enum_proto.name, "values": [v.name for v in enum_proto.value]}, path
    )


def _convert_message(
    message: descriptor_pb2.DescriptorProto,
    map_entries: dict[str, str],
    info: _SourceInfo,
    path: tuple[int, ...],
) -> dict[str, Any]:
    data: dict[str, Any] = {
        "name": message.name,
        "fields": [
            _convert_field(f, map_entries, info, (*path, _MESSAGE_FIELD, i))
            for i, f in enumerate(message.field)
        ],
        "messages": [
            _convert_message(m, map_entries, info, (*path, _MESSAGE_NESTED, i))
            for i, m in enumerate(message.nested_type)
            if not m.options.map_entry
        ],
        "enums": [
            _convert_enum(e, info, (*path, _MESSAGE_ENUM, i))
            for i, e in enumerate(message.enum_type)
        ],
    }
    resource = _convert_resource(message)
    if resource is not None:
        data["resource"] = resource
    return info.annotate(data, path)


def _convert_http(method: descriptor_pb2.MethodDescriptorProto) -> dict[str, Any] | None:
    if not method.options.HasExtension(annotations_pb2.http):
        return None
    rule = method.options.Extensions[annotations_pb2.http]
    verb = rule.WhichOneof("pattern")
    if verb is None:
        return None
    path = rule.custom.path if verb == "custom" else getattr(rule, verb)
    return {"verb": verb, "path": path, "body": rule.body}


def _convert_service(
    service: descriptor_pb2.ServiceDescriptorProto, info: _SourceInfo, path: tuple[int, ...]
) -> dict[str, Any]:
    methods: list[dict[str, Any]] = []
    for i, method in enumerate(service.method):
        data: dict[str, Any] = {
            "name": method.name,
            "request": method.input_type,
            "response": method.output_type,
            "client_streaming": method.client_streaming,
            "server_streaming": method.server_streaming,
        }
        http = _convert_http(method)
        if http is not None:
            data["http"] = http
        methods.append(info.annotate(data, (*path, _SERVICE_METHOD, i)))
    return info.annotate({"name": service.name, "methods": methods}, path)


def convert_file(
    file_proto: descriptor_pb2.FileDescriptorProto, *, dependency: bool = False
) -> dict[str, Any]:
    """Convert one ``FileDescriptorProto`` into a descriptor document."""
    info = _SourceInfo(file_proto)
    scope = f".{file_proto.package}" if file_proto.package else ""
    map_entries: dict[str, str] = {}
    _collect_map_entries(file_proto.message_type, scope, map_entries)

    return {
        "path": file_proto.name,
        "package": file_proto.package,
        "dependency": dependency,
        "messages": [
            _convert_message(m, map_entries, info, (_FILE_MESSAGE, i))
            for i, m in enumerate(file_proto.message_type)
        ],
        "enums": [
            _convert_enum(e, info, (_FILE_ENUM, i)) for i, e in enumerate(file_proto.enum_type)
        ],
        "services": [
            _convert_service(s, info, (_FILE_SERVICE, i))
            for i, s in enumerate(file_proto.service)
        ],
    }


def documents_from_descriptor_set(
    descriptor_set: descriptor_pb2.FileDescriptorSet,
    *,
    targets: set[str] | None = None,
) -> list[dict[str, Any]]:
    """Convert every file in *descriptor_set*.

    Files named in *targets* are linted and the rest become dependencies.
    Without targets, the files no other file imports are linted.
    """
    if targets is None:
        imported = {dep for f in descriptor_set.file for dep in f.dependency}
        targets = {f.name for f in descriptor_set.file if f.name not in imported}
    missing = targets - {f.name for f in descriptor_set.file}
    for name in sorted(missing):
        logger.warning("Target %s not found in descriptor set", name)
    return [convert_file(f, dependency=f.name not in targets) for f in descriptor_set.file]


def read_descriptor_set(path: Path, *, targets: set[str] | None = None) -> list[dict[str, Any]]:
    """Read a serialized ``FileDescriptorSet`` from *path*."""
    descriptor_set = descriptor_pb2.FileDescriptorSet()
    try:
        descriptor_set.ParseFromString(path.read_bytes())
    except (OSError, DecodeError) as exc:
        msg = f"{path}: cannot read descriptor set: {exc}"
        raise DescriptorError(msg) from exc
    logger.debug("Decoded %d file(s) from %s", len(descriptor_set.file), path)
    return documents_from_descriptor_set(descriptor_set, targets=targets)
