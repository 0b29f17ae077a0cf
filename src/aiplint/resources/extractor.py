"""Resource extraction: derive logical resources from message options.

Walks every file of a :class:`DescriptorModel` once and indexes each message
that carries a resource descriptor.  Parent links live in the index, keyed by
resource type, never on the records themselves.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, ClassVar

from aiplint.descriptor.model import (
    STYLE_DECLARATIVE_FRIENDLY,
    NodeKind,
    SourceLocation,
)
from aiplint.resources.patterns import NamePattern, parse_pattern

if TYPE_CHECKING:
    from collections.abc import Mapping

    from aiplint.descriptor.model import DescriptorModel, Message, ResourceDescriptor

logger = logging.getLogger(__name__)

_CAMEL_BOUNDARY_RE = re.compile(r"(?<=[a-z0-9])(?=[A-Z])|(?<=[A-Z])(?=[A-Z][a-z])")

# Extraction issue codes.
ISSUE_PATTERN = "pattern"
ISSUE_TYPE = "type"
ISSUE_DUPLICATE = "duplicate"
ISSUE_PARENT = "parent"

# ---------------------------------------------------------------------------
# Data classes
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Resource:
    """A logical resource derived from one message."""

    kind: ClassVar[NodeKind] = NodeKind.RESOURCE

    type: str
    patterns: tuple[NamePattern, ...]
    style: str
    message: str  # full name of the annotated message
    location: SourceLocation
    name_field: str = "name"
    singular: str = ""
    plural: str = ""

    @property
    def declarative_friendly(self) -> bool:
        return self.style == STYLE_DECLARATIVE_FRIENDLY

    @property
    def type_kind(self) -> str:
        """The part of the type after ``/`` (``Book`` in ``library.example.com/Book``)."""
        return self.type.rpartition("/")[2]

    @property
    def full_name(self) -> str:
        return self.type


@dataclass(frozen=True)
class ExtractionIssue:
    """A non-fatal problem noticed during extraction."""

    code: str  # "pattern" | "type" | "duplicate" | "parent"
    resource_message: str  # full name of the annotated message
    text: str
    location: SourceLocation


@dataclass(frozen=True)
class ResourceIndex:
    """Immutable index of extracted resources.

    ``parents`` maps a resource type to its parent type; ``ambiguities`` maps
    a resource type to the tied candidates when no single parent exists.
    """

    resources: tuple[Resource, ...] = ()
    by_type: Mapping[str, Resource] = field(default_factory=dict)
    by_message: Mapping[str, Resource] = field(default_factory=dict)
    parents: Mapping[str, str] = field(default_factory=dict)
    ambiguities: Mapping[str, tuple[str, ...]] = field(default_factory=dict)
    issues: tuple[ExtractionIssue, ...] = ()

    def for_message(self, message: Message) -> Resource | None:
        return self.by_message.get(message.full_name)

    def get(self, resource_type: str) -> Resource | None:
        return self.by_type.get(resource_type)

    def parent(self, resource: Resource) -> Resource | None:
        parent_type = self.parents.get(resource.type)
        return self.by_type.get(parent_type) if parent_type is not None else None

    def children(self, resource: Resource) -> tuple[Resource, ...]:
        return tuple(r for r in self.resources if self.parents.get(r.type) == resource.type)

    def issues_for(
        self, resource: Resource, code: str | None = None
    ) -> tuple[ExtractionIssue, ...]:
        return tuple(
            i
            for i in self.issues
            if i.resource_message == resource.message and (code is None or i.code == code)
        )


# ---------------------------------------------------------------------------
# Naming helpers
# ---------------------------------------------------------------------------


def lower_camel(name: str) -> str:
    return name[:1].lower() + name[1:] if name else name


def snake_case(name: str) -> str:
    """``BookShelf`` -> ``book_shelf``."""
    return _CAMEL_BOUNDARY_RE.sub("_", name).lower()


# ---------------------------------------------------------------------------
# Extraction
# ---------------------------------------------------------------------------


def _build_resource(message: Message, descriptor: ResourceDescriptor) -> Resource:
    kind = descriptor.type.rpartition("/")[2]
    return Resource(
        type=descriptor.type,
        patterns=tuple(parse_pattern(p) for p in descriptor.patterns),
        style=descriptor.style,
        message=message.full_name,
        location=message.location,
        name_field=descriptor.name_field or "name",
        singular=descriptor.singular or lower_camel(kind),
        plural=descriptor.plural,
    )


def _find_parent(
    resource: Resource, candidates: tuple[Resource, ...]
) -> tuple[str | None, tuple[str, ...]]:
    """Return ``(parent_type, tied_types)`` using longest proper prefix matching."""
    best_length = 0
    best: set[str] = set()
    for candidate in candidates:
        if candidate.type == resource.type:
            continue
        for own in resource.patterns:
            for theirs in candidate.patterns:
                if not theirs.is_proper_prefix_of(own):
                    continue
                length = len(theirs.segments)
                if length > best_length:
                    best_length = length
                    best = {candidate.type}
                elif length == best_length:
                    best.add(candidate.type)
    if not best:
        return None, ()
    if len(best) == 1:
        return next(iter(best)), ()
    return None, tuple(sorted(best))


def extract_resources(model: DescriptorModel) -> ResourceIndex:
    """Build the resource index for every file in *model*.

    Extraction never raises: missing types, missing or malformed patterns,
    duplicate types and ambiguous parents are recorded as issues keyed by the
    annotated message.
    """
    issues: list[ExtractionIssue] = []
    by_type: dict[str, Resource] = {}
    by_message: dict[str, Resource] = {}

    for f in model.files:
        for message in f.all_messages():
            if message.resource is None:
                continue
            resource = _build_resource(message, message.resource)
            by_message[message.full_name] = resource

            found: list[tuple[str, str]] = [
                (ISSUE_PATTERN, text) for p in resource.patterns for text in p.issues
            ]
            if not resource.patterns:
                found.append((ISSUE_PATTERN, "resource declares no pattern"))
            if not resource.type:
                found.append((ISSUE_TYPE, "resource declares no type"))
            elif resource.type in by_type:
                found.append(
                    (
                        ISSUE_DUPLICATE,
                        f"resource type '{resource.type}' is already declared by "
                        f"'{by_type[resource.type].message}'",
                    )
                )
            else:
                by_type[resource.type] = resource
            issues.extend(
                ExtractionIssue(code, resource.message, text, resource.location)
                for code, text in found
            )

    unique = tuple(sorted(by_type.values(), key=lambda r: r.type))
    parents: dict[str, str] = {}
    ambiguities: dict[str, tuple[str, ...]] = {}
    for resource in unique:
        parent, tied = _find_parent(resource, unique)
        if parent is not None:
            parents[resource.type] = parent
        elif tied:
            ambiguities[resource.type] = tied
            issues.append(
                ExtractionIssue(
                    ISSUE_PARENT,
                    resource.message,
                    f"ambiguous parent: {', '.join(tied)} match equally long pattern prefixes",
                    resource.location,
                )
            )

    resources = tuple(sorted(by_message.values(), key=lambda r: (r.type, r.message)))
    logger.debug(
        "Extracted %d resource(s), %d parent link(s), %d issue(s)",
        len(resources),
        len(parents),
        len(issues),
    )
    return ResourceIndex(
        resources=resources,
        by_type=by_type,
        by_message=by_message,
        parents=parents,
        ambiguities=ambiguities,
        issues=tuple(issues),
    )
