"""
Finding data model for Warden.

Findings are produced by the policy validator (structural risks in a
statement set) and by the analyzer from reduction output (unused grants and
ungranted usage). Each finding points at the statement or coverage entry it
is about.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Union

from warden.models.activity import CoverageEntry
from warden.models.statement import PermissionStatement


class FindingKind(Enum):
    """Kind of finding."""

    WILDCARD_ACTION = "wildcard_action"
    WILDCARD_RESOURCE = "wildcard_resource"
    UNUSED_GRANT = "unused_grant"
    UNGRANTED_USAGE = "ungranted_usage"
    PASS_ROLE_HAZARD = "pass_role_hazard"
    DENY_OVERLAP = "deny_overlap"


class Severity(Enum):
    """Severity level of a finding."""

    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @property
    def rank(self) -> int:
        """Numeric rank for comparison (higher = more severe)."""
        ranks = {
            Severity.CRITICAL: 4,
            Severity.HIGH: 3,
            Severity.MEDIUM: 2,
            Severity.LOW: 1,
        }
        return ranks.get(self, 0)

    def __gt__(self, other: "Severity") -> bool:
        return self.rank > other.rank

    def __ge__(self, other: "Severity") -> bool:
        return self.rank >= other.rank

    def __lt__(self, other: "Severity") -> bool:
        return self.rank < other.rank

    def __le__(self, other: "Severity") -> bool:
        return self.rank <= other.rank

    @classmethod
    def from_string(cls, value: str) -> Severity:
        """
        Create Severity from string value.

        Raises:
            ValueError: If value is not a valid severity
        """
        value_lower = value.lower()
        for severity in cls:
            if severity.value == value_lower:
                return severity
        raise ValueError(f"Invalid severity: {value}")


@dataclass(frozen=True)
class StatementRef:
    """
    Reference to one statement inside a principal's permission set.

    Attributes:
        principal_id: Owner of the permission set
        index: Position of the statement in the set
        statement: The statement itself
    """

    principal_id: str
    index: int
    statement: PermissionStatement

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "principal_id": self.principal_id,
            "index": self.index,
            "statement": self.statement.to_dict(),
        }


Subject = Union[StatementRef, CoverageEntry]


@dataclass(frozen=True)
class Finding:
    """
    A single analysis finding.

    Attributes:
        kind: What was found
        severity: How serious it is
        principal_id: Principal the finding belongs to
        subject: Statement reference or coverage entry the finding is about
        message: Human-readable explanation
    """

    kind: FindingKind
    severity: Severity
    principal_id: str
    subject: Subject
    message: str

    @property
    def statement_index(self) -> int | None:
        """Index of the subject statement, if the subject is a statement."""
        if isinstance(self.subject, StatementRef):
            return self.subject.index
        return None

    def sort_key(self) -> tuple[Any, ...]:
        """Ordering: severity descending, then statement index ascending."""
        if isinstance(self.subject, StatementRef):
            subject_key: tuple[Any, ...] = (0, self.subject.index, "", "")
        else:
            subject_key = (1, 0, self.subject.action, self.subject.resource_id)
        return (-self.severity.rank, *subject_key)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        if isinstance(self.subject, StatementRef):
            subject = {"type": "statement", **self.subject.to_dict()}
        else:
            subject = {"type": "coverage_entry", **self.subject.to_dict()}
        return {
            "kind": self.kind.value,
            "severity": self.severity.value,
            "principal_id": self.principal_id,
            "subject": subject,
            "message": self.message,
        }


def sort_findings(findings: list[Finding]) -> list[Finding]:
    """Sort findings by severity descending, then subject order (stable)."""
    return sorted(findings, key=lambda f: f.sort_key())
