"""
Warden - IAM least-privilege analysis

Compares the permissions principals hold with what they actually used,
and answers: "What is the smallest policy that would have allowed exactly
this activity, and which grants are risky or unused?"

Key Features:
- Read-only: never calls a cloud control plane
- Minimal permission sets derived from audit logs
- Gap and excess detection against existing policies
- Wildcard, role-passing and deny-overlap validation
- Weighted risk scores per principal

Quick Start:
    >>> from warden import LeastPrivilegeAnalyzer
    >>> from warden.adapters import load_activity_file, load_policy_file
    >>>
    >>> activity = load_activity_file("cloudtrail.json")
    >>> policies = load_policy_file("policies.yaml")
    >>> report = LeastPrivilegeAnalyzer().analyze(activity.records, policies)
    >>> print(f"Overall risk: {report.overall_score:.1f}")
"""

from __future__ import annotations

__version__ = "0.1.0"
__author__ = "Warden Contributors"

from warden.models import (
    ActivityRecord,
    CoverageEntry,
    Decision,
    Effect,
    Finding,
    FindingKind,
    MalformedRecordError,
    Outcome,
    PermissionSet,
    PermissionStatement,
    Severity,
    StatementRef,
)
from warden.config import AnalysisConfig
from warden.coverage import AnalysisWindow, CoverageIndex, WindowMode, build
from warden.reducer import PolicyReducer, ReductionResult, reduce
from warden.validator import PolicyValidator, validate
from warden.scoring import RiskScorer, score
from warden.reporting import (
    AssemblyError,
    InconsistentPrincipalSetError,
    Report,
    assemble,
)
from warden.analyzer import LeastPrivilegeAnalyzer, analyze

__all__ = [
    "__version__",
    # Models
    "ActivityRecord",
    "CoverageEntry",
    "Decision",
    "Effect",
    "Finding",
    "FindingKind",
    "MalformedRecordError",
    "Outcome",
    "PermissionSet",
    "PermissionStatement",
    "Severity",
    "StatementRef",
    # Configuration
    "AnalysisConfig",
    # Coverage
    "AnalysisWindow",
    "CoverageIndex",
    "WindowMode",
    "build",
    # Reduction
    "PolicyReducer",
    "ReductionResult",
    "reduce",
    # Validation
    "PolicyValidator",
    "validate",
    # Scoring
    "RiskScorer",
    "score",
    # Reporting
    "AssemblyError",
    "InconsistentPrincipalSetError",
    "Report",
    "assemble",
    # Pipeline
    "LeastPrivilegeAnalyzer",
    "analyze",
]
