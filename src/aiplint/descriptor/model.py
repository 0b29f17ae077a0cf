"""Immutable descriptor model: files, messages, fields, services, methods."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, ClassVar

if TYPE_CHECKING:
    from collections.abc import Iterator, Mapping

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

SCALAR_TYPES: frozenset[str] = frozenset(
    {
        "double",
        "float",
        "int32",
        "int64",
        "uint32",
        "uint64",
        "sint32",
        "sint64",
        "fixed32",
        "fixed64",
        "sfixed32",
        "sfixed64",
        "bool",
        "string",
        "bytes",
    }
)
MAP_KEY_TYPES: frozenset[str] = SCALAR_TYPES - {"double", "float", "bytes"}
FIELD_BEHAVIORS: frozenset[str] = frozenset(
    {
        "OPTIONAL",
        "REQUIRED",
        "OUTPUT_ONLY",
        "INPUT_ONLY",
        "IMMUTABLE",
        "UNORDERED_LIST",
        "NON_EMPTY_DEFAULT",
        "IDENTIFIER",
    }
)
HTTP_VERBS: frozenset[str] = frozenset({"get", "put", "post", "delete", "patch", "custom"})

STYLE_DEFAULT = "DEFAULT"
STYLE_DECLARATIVE_FRIENDLY = "DECLARATIVE_FRIENDLY"
RESOURCE_STYLES: frozenset[str] = frozenset({STYLE_DEFAULT, STYLE_DECLARATIVE_FRIENDLY})


class NodeKind(str, Enum):
    """Kinds of node a rule can inspect."""

    FILE = "file"
    SERVICE = "service"
    METHOD = "method"
    MESSAGE = "message"
    FIELD = "field"
    RESOURCE = "resource"


# ---------------------------------------------------------------------------
# Value types
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class SourceLocation:
    """Where a node was declared.

    ``element`` is the fully-qualified name of the node, so two nodes declared
    on the same line still have distinct locations.
    """

    path: str
    line: int | None = None
    element: str = ""

    def __str__(self) -> str:
        if self.line is None:
            return self.path
        return f"{self.path}:{self.line}"


@dataclass(frozen=True)
class FieldType:
    """Declared type of a field.

    ``kind`` is one of ``scalar``, ``message``, ``enum`` or ``map``.  For
    message and enum types ``name`` holds the resolved fully-qualified name.
    """

    kind: str
    name: str
    key: FieldType | None = None
    value: FieldType | None = None

    @property
    def is_map(self) -> bool:
        return self.kind == "map"

    def is_scalar(self, name: str | None = None) -> bool:
        if self.kind != "scalar":
            return False
        return name is None or self.name == name

    def is_map_of(self, key: str, value: str) -> bool:
        """Return True for ``map<key, value>`` where both sides are scalars."""
        return (
            self.kind == "map"
            and self.key is not None
            and self.value is not None
            and self.key.is_scalar(key)
            and self.value.is_scalar(value)
        )

    def __str__(self) -> str:
        if self.kind == "map":
            return f"map<{self.key}, {self.value}>"
        return self.name


@dataclass(frozen=True)
class ResourceReference:
    """``google.api.resource_reference`` on a field."""

    type: str = ""
    child_type: str = ""


@dataclass(frozen=True)
class ResourceDescriptor:
    """``google.api.resource`` on a message."""

    type: str
    patterns: tuple[str, ...] = ()
    styles: tuple[str, ...] = ()
    name_field: str = ""
    singular: str = ""
    plural: str = ""

    @property
    def style(self) -> str:
        if STYLE_DECLARATIVE_FRIENDLY in self.styles:
            return STYLE_DECLARATIVE_FRIENDLY
        return STYLE_DEFAULT


@dataclass(frozen=True)
class HttpRule:
    """``google.api.http`` binding of a method."""

    verb: str
    path: str
    body: str = ""


# ---------------------------------------------------------------------------
# Nodes
#
# Nodes compare by identity so they can key auxiliary indexes.
# ---------------------------------------------------------------------------


@dataclass(frozen=True, eq=False)
class EnumType:
    """An enum declaration; only used to resolve field types."""

    name: str
    full_name: str
    values: tuple[str, ...] = ()
    location: SourceLocation = field(default_factory=lambda: SourceLocation(""))


@dataclass(frozen=True, eq=False)
class Field:
    kind: ClassVar[NodeKind] = NodeKind.FIELD

    name: str
    full_name: str
    number: int
    type: FieldType
    message: str  # full name of the owning message
    repeated: bool = False
    behaviors: frozenset[str] = frozenset()
    resource_reference: ResourceReference | None = None
    location: SourceLocation = field(default_factory=lambda: SourceLocation(""))
    comments: str = ""

    def has_behavior(self, behavior: str) -> bool:
        return behavior in self.behaviors


@dataclass(frozen=True, eq=False)
class Message:
    kind: ClassVar[NodeKind] = NodeKind.MESSAGE

    name: str
    full_name: str
    file: str
    fields: tuple[Field, ...] = ()
    messages: tuple[Message, ...] = ()
    enums: tuple[EnumType, ...] = ()
    resource: ResourceDescriptor | None = None
    location: SourceLocation = field(default_factory=lambda: SourceLocation(""))
    comments: str = ""

    def field(self, name: str) -> Field | None:
        """Return the field called *name*, or None."""
        for f in self.fields:
            if f.name == name:
                return f
        return None


@dataclass(frozen=True, eq=False)
class Method:
    kind: ClassVar[NodeKind] = NodeKind.METHOD

    name: str
    full_name: str
    service: str  # full name of the owning service
    request: Message
    response: Message
    http: HttpRule | None = None
    client_streaming: bool = False
    server_streaming: bool = False
    location: SourceLocation = field(default_factory=lambda: SourceLocation(""))
    comments: str = ""


@dataclass(frozen=True, eq=False)
class Service:
    kind: ClassVar[NodeKind] = NodeKind.SERVICE

    name: str
    full_name: str
    file: str
    methods: tuple[Method, ...] = ()
    location: SourceLocation = field(default_factory=lambda: SourceLocation(""))
    comments: str = ""


@dataclass(frozen=True, eq=False)
class File:
    kind: ClassVar[NodeKind] = NodeKind.FILE

    path: str
    package: str = ""
    messages: tuple[Message, ...] = ()
    enums: tuple[EnumType, ...] = ()
    services: tuple[Service, ...] = ()
    dependency: bool = False
    location: SourceLocation = field(default_factory=lambda: SourceLocation(""))
    comments: str = ""

    @property
    def name(self) -> str:
        return self.path

    @property
    def full_name(self) -> str:
        return self.path

    def all_messages(self) -> Iterator[Message]:
        """Yield every message in the file, nested ones included, in pre-order."""
        for message in self.messages:
            yield from _walk_messages(message)


Node = File | Service | Method | Message | Field


def _walk_messages(message: Message) -> Iterator[Message]:
    yield message
    for nested in message.messages:
        yield from _walk_messages(nested)


# ---------------------------------------------------------------------------
# Model
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class DescriptorModel:
    """A fully-resolved set of files.

    Built by :func:`aiplint.descriptor.builder.build_model`; every type name
    stored in the model resolves through :meth:`message`.
    """

    files: tuple[File, ...]
    messages_by_name: Mapping[str, Message] = field(default_factory=dict)

    @property
    def linted_files(self) -> tuple[File, ...]:
        return tuple(f for f in self.files if not f.dependency)

    def message(self, full_name: str) -> Message:
        return self.messages_by_name[full_name]

    def find_message(self, full_name: str) -> Message | None:
        return self.messages_by_name.get(full_name)

    def file(self, path: str) -> File | None:
        for f in self.files:
            if f.path == path:
                return f
        return None

    def walk(self, *, include_dependencies: bool = False) -> Iterator[Node]:
        """Yield nodes in a fixed pre-order.

        Per file: the file, then each message depth-first (message, its
        fields, its nested messages), then each service followed by its
        methods.
        """
        for f in self.files:
            if f.dependency and not include_dependencies:
                continue
            yield f
            for message in f.all_messages():
                yield message
                yield from message.fields
            for service in f.services:
                yield service
                yield from service.methods
