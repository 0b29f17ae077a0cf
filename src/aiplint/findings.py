"""Diagnostic contract: severities, findings, ordering, and the exit contract."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

from aiplint.descriptor.model import SourceLocation

if TYPE_CHECKING:
    from collections.abc import Iterable

# Category of a finding: designed rule output, an isolated rule failure, or a
# bad configuration/suppression reference.
VIOLATION = "violation"
INTERNAL_ERROR = "internal-error"
CONFIG_ERROR = "config-error"

CONFIG_RULE_ID = "aiplint::config"
CONFIGURATION_LOCATION = SourceLocation(path="<configuration>")


class Severity(str, Enum):
    ERROR = "error"
    WARNING = "warning"
    NOTICE = "notice"

    @property
    def rank(self) -> int:
        return _RANKS[self]

    @classmethod
    def parse(cls, value: str) -> Severity:
        """Parse a case-insensitive severity name (``warn`` is accepted)."""
        normalized = value.strip().lower()
        if normalized == "warn":
            normalized = "warning"
        try:
            return cls(normalized)
        except ValueError:
            msg = f"invalid severity '{value}', must be one of {[s.value for s in cls]}"
            raise ValueError(msg) from None


_RANKS = {Severity.NOTICE: 0, Severity.WARNING: 1, Severity.ERROR: 2}


@dataclass(frozen=True)
class Finding:
    """A single diagnostic emitted against a specific node."""

    rule_id: str
    severity: Severity
    message: str
    location: SourceLocation
    suggestion: str | None = None
    category: str = VIOLATION

    def sort_key(self) -> tuple[str, int, str, str, str, str]:
        line = self.location.line if self.location.line is not None else 0
        return (
            self.location.path,
            line,
            self.rule_id,
            self.location.element,
            self.message,
            self.suggestion or "",
        )

    def to_dict(self) -> dict[str, object]:
        return {
            "rule_id": self.rule_id,
            "severity": self.severity.value,
            "category": self.category,
            "path": self.location.path,
            "line": self.location.line,
            "element": self.location.element,
            "message": self.message,
            "suggestion": self.suggestion,
        }


def sort_findings(findings: Iterable[Finding]) -> list[Finding]:
    """Order findings by (path, line, rule id) with stable tie-breakers."""
    return sorted(findings, key=Finding.sort_key)


def config_error(message: str, location: SourceLocation = CONFIGURATION_LOCATION) -> Finding:
    return Finding(
        rule_id=CONFIG_RULE_ID,
        severity=Severity.WARNING,
        message=message,
        location=location,
        category=CONFIG_ERROR,
    )


def has_failures(findings: Iterable[Finding], fail_on: Severity = Severity.ERROR) -> bool:
    """Return True when any finding is at or above *fail_on*."""
    return any(f.severity.rank >= fail_on.rank for f in findings)
