"""Resource domain: pattern parsing and resource extraction."""

from aiplint.resources.extractor import (
    ISSUE_DUPLICATE,
    ISSUE_PARENT,
    ISSUE_PATTERN,
    ISSUE_TYPE,
    ExtractionIssue,
    Resource,
    ResourceIndex,
    extract_resources,
    lower_camel,
    snake_case,
)
from aiplint.resources.patterns import NamePattern, PatternSegment, parse_pattern

__all__ = [
    "ISSUE_DUPLICATE",
    "ISSUE_PARENT",
    "ISSUE_PATTERN",
    "ISSUE_TYPE",
    "ExtractionIssue",
    "NamePattern",
    "PatternSegment",
    "Resource",
    "ResourceIndex",
    "extract_resources",
    "lower_camel",
    "parse_pattern",
    "snake_case",
]
