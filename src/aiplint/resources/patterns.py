"""Resource name pattern parsing."""

from __future__ import annotations

import re
from dataclasses import dataclass

LITERAL = "literal"
VARIABLE = "variable"
WILDCARD = "wildcard"

_VARIABLE_RE = re.compile(r"^\{([a-z][a-z0-9_]*)\}$")
_LITERAL_RE = re.compile(r"^[A-Za-z0-9_.~-]+$")


@dataclass(frozen=True)
class PatternSegment:
    kind: str  # "literal" | "variable" | "wildcard"
    value: str

    def matches(self, other: PatternSegment) -> bool:
        """Segment-wise prefix comparison: literals must be equal, a variable
        or wildcard matches any variable or wildcard."""
        if self.kind == LITERAL or other.kind == LITERAL:
            return self.kind == other.kind and self.value == other.value
        return True

    def __str__(self) -> str:
        if self.kind == VARIABLE:
            return "{" + self.value + "}"
        return self.value


@dataclass(frozen=True)
class NamePattern:
    raw: str
    segments: tuple[PatternSegment, ...]
    issues: tuple[str, ...] = ()

    @property
    def variables(self) -> tuple[str, ...]:
        return tuple(s.value for s in self.segments if s.kind == VARIABLE)

    @property
    def is_valid(self) -> bool:
        return not self.issues

    def is_proper_prefix_of(self, other: NamePattern) -> bool:
        if not self.segments or len(self.segments) >= len(other.segments):
            return False
        return all(a.matches(b) for a, b in zip(self.segments, other.segments))


def parse_pattern(raw: str) -> NamePattern:
    """Split *raw* into segments and record anything malformed.

    Parsing never fails; problems are collected in ``issues``.
    """
    issues: list[str] = []
    segments: list[PatternSegment] = []

    if raw.count("{") != raw.count("}"):
        issues.append(f"pattern '{raw}' has unbalanced braces")

    seen: set[str] = set()
    for part in raw.split("/"):
        if not part:
            issues.append(f"pattern '{raw}' contains an empty segment")
            continue
        if part in ("*", "**"):
            segments.append(PatternSegment(kind=WILDCARD, value=part))
            continue
        match = _VARIABLE_RE.match(part)
        if match:
            name = match.group(1)
            if name in seen:
                issues.append(f"pattern '{raw}' repeats variable '{name}'")
            seen.add(name)
            segments.append(PatternSegment(kind=VARIABLE, value=name))
            continue
        if "{" in part or "}" in part:
            issues.append(f"pattern '{raw}' has malformed variable segment '{part}'")
            continue
        if not _LITERAL_RE.match(part):
            issues.append(f"pattern '{raw}' has invalid literal segment '{part}'")
        segments.append(PatternSegment(kind=LITERAL, value=part))

    if not seen:
        issues.append(f"pattern '{raw}' has no named variable")

    return NamePattern(raw=raw, segments=tuple(segments), issues=tuple(issues))
