"""
Data models for Warden.

This package provides the normalized models used throughout Warden:

- ActivityRecord: One observed call from an audit log feed
- CoverageEntry: Aggregated usage of one (actor, action, resource) tuple
- PermissionStatement / PermissionSet: Allow and deny rules per principal
- Finding: A validator or usage finding about a statement or entry
"""

from warden.models.activity import (
    ActivityRecord,
    CoverageEntry,
    MalformedRecordError,
    Outcome,
    parse_timestamp,
)
from warden.models.finding import (
    Finding,
    FindingKind,
    Severity,
    StatementRef,
    sort_findings,
)
from warden.models.statement import (
    Decision,
    Effect,
    Evaluation,
    PermissionSet,
    PermissionStatement,
    pattern_matches,
    pattern_subsumes,
)

__all__ = [
    # Activity module
    "ActivityRecord",
    "CoverageEntry",
    "MalformedRecordError",
    "Outcome",
    "parse_timestamp",
    # Finding module
    "Finding",
    "FindingKind",
    "Severity",
    "StatementRef",
    "sort_findings",
    # Statement module
    "Decision",
    "Effect",
    "Evaluation",
    "PermissionSet",
    "PermissionStatement",
    "pattern_matches",
    "pattern_subsumes",
]
