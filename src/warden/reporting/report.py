"""
Report assembly for Warden.

Merges reduction output, findings and scores into one immutable Report.
Assembly either succeeds completely or raises; a partially populated
report is never returned.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime
from types import MappingProxyType
from typing import Any, Iterable, Mapping

from warden.models.activity import CoverageEntry
from warden.models.finding import Finding, StatementRef, sort_findings
from warden.models.statement import PermissionSet
from warden.reducer.reducer import ReductionResult
from warden.scoring.scorer import overall_score


class AssemblyError(Exception):
    """Raised when a report cannot be assembled."""

    pass


class InconsistentPrincipalSetError(AssemblyError):
    """Raised when findings or scores name principals the reduction lacks."""

    def __init__(self, principals: list[str]):
        self.principals = principals
        super().__init__(
            "Principals present in findings or scores but missing from the "
            f"reduction: {', '.join(principals)}"
        )


@dataclass(frozen=True)
class PrincipalReport:
    """
    Report section for one principal.

    Attributes:
        principal_id: Principal described
        findings: Findings, ordered by severity then subject
        score: Risk score (0-100)
        minimal_set: Least-privilege statements for observed usage
        gaps: Observed usage not granted by the existing set
        excess: Existing grants never exercised
    """

    principal_id: str
    findings: tuple[Finding, ...] = ()
    score: float = 0.0
    minimal_set: PermissionSet | None = None
    gaps: tuple[CoverageEntry, ...] = ()
    excess: tuple[StatementRef, ...] = ()

    @property
    def has_findings(self) -> bool:
        """Check if the principal has any findings."""
        return len(self.findings) > 0

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "principal_id": self.principal_id,
            "score": self.score,
            "findings": [f.to_dict() for f in self.findings],
            "minimal_set": self.minimal_set.to_dict() if self.minimal_set else None,
            "gaps": [g.to_dict() for g in self.gaps],
            "excess": [e.to_dict() for e in self.excess],
        }


@dataclass(frozen=True)
class Report:
    """
    Result of one analysis run.

    Attributes:
        generated_at: When the report was assembled
        per_principal: Read-only mapping of principal id to its section
        overall_score: Mean of per-principal scores
        diagnostics: Non-fatal problems reported by boundary adapters
    """

    generated_at: datetime
    per_principal: Mapping[str, PrincipalReport] = field(
        default_factory=lambda: MappingProxyType({})
    )
    overall_score: float = 0.0
    diagnostics: tuple[str, ...] = ()

    @property
    def principals(self) -> list[str]:
        """Principals in the report, sorted."""
        return sorted(self.per_principal)

    @property
    def findings(self) -> list[Finding]:
        """All findings across principals."""
        return [f for p in self.principals for f in self.per_principal[p].findings]

    @property
    def findings_by_severity(self) -> dict[str, int]:
        """Get count of findings by severity."""
        counts: dict[str, int] = {}
        for finding in self.findings:
            counts[finding.severity.value] = counts.get(finding.severity.value, 0) + 1
        return counts

    @property
    def findings_by_kind(self) -> dict[str, int]:
        """Get count of findings by kind."""
        counts: dict[str, int] = {}
        for finding in self.findings:
            counts[finding.kind.value] = counts.get(finding.kind.value, 0) + 1
        return counts

    def get(self, principal_id: str) -> PrincipalReport | None:
        """Get the section for one principal."""
        return self.per_principal.get(principal_id)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "generated_at": self.generated_at.isoformat(),
            "overall_score": self.overall_score,
            "principal_count": len(self.per_principal),
            "findings_count": len(self.findings),
            "findings_by_severity": self.findings_by_severity,
            "findings_by_kind": self.findings_by_kind,
            "principals": {p: self.per_principal[p].to_dict() for p in self.principals},
            "diagnostics": list(self.diagnostics),
        }

    def to_json(self, indent: int = 2) -> str:
        """Convert to JSON string."""
        return json.dumps(self.to_dict(), indent=indent, default=str)


def assemble(
    reduction: ReductionResult,
    findings_by_principal: Mapping[str, Iterable[Finding]],
    scores_by_principal: Mapping[str, float],
    generated_at: datetime,
    diagnostics: Iterable[str] = (),
) -> Report:
    """
    Merge analysis results into a Report.

    Args:
        reduction: Reducer output; defines the principal set
        findings_by_principal: Findings per principal
        scores_by_principal: Scores per principal
        generated_at: Report timestamp
        diagnostics: Non-fatal adapter diagnostics to carry along

    Returns:
        Fully assembled Report

    Raises:
        InconsistentPrincipalSetError: If findings or scores mention a
            principal the reduction does not know
    """
    known = set(reduction.principals)
    unknown = sorted((set(findings_by_principal) | set(scores_by_principal)) - known)
    if unknown:
        raise InconsistentPrincipalSetError(unknown)

    sections: dict[str, PrincipalReport] = {}
    for principal_id in reduction.principals:
        principal_reduction = reduction.reductions[principal_id]
        sections[principal_id] = PrincipalReport(
            principal_id=principal_id,
            findings=tuple(sort_findings(list(findings_by_principal.get(principal_id, ())))),
            score=float(scores_by_principal.get(principal_id, 0.0)),
            minimal_set=principal_reduction.minimal_set,
            gaps=principal_reduction.gaps,
            excess=principal_reduction.excess,
        )

    return Report(
        generated_at=generated_at,
        per_principal=MappingProxyType(sections),
        overall_score=overall_score(s.score for s in sections.values()),
        diagnostics=tuple(diagnostics),
    )
