"""
Tests for Warden data models.

Tests cover:
- ActivityRecord parsing and serialization
- CoverageEntry merging
- Trailing-wildcard pattern matching
- PermissionStatement and PermissionSet evaluation
- Finding ordering
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

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
    parse_timestamp,
    pattern_matches,
    pattern_subsumes,
    sort_findings,
)


class TestParseTimestamp:
    """Tests for timestamp parsing."""

    def test_parse_zulu(self):
        """Test parsing the CloudTrail Z suffix."""
        ts = parse_timestamp("2024-03-01T12:00:00Z")
        assert ts == datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)

    def test_naive_is_utc(self):
        """Test naive datetimes are treated as UTC."""
        ts = parse_timestamp(datetime(2024, 3, 1, 12, 0))
        assert ts.tzinfo == timezone.utc

    def test_offset_preserved(self):
        """Test explicit offsets are kept."""
        ts = parse_timestamp("2024-03-01T12:00:00+02:00")
        assert ts.utcoffset() == timedelta(hours=2)

    @pytest.mark.parametrize("value", [None, "", "yesterday", 42])
    def test_invalid(self, value):
        """Test unrecognizable values raise ValueError."""
        with pytest.raises(ValueError):
            parse_timestamp(value)


class TestActivityRecord:
    """Tests for ActivityRecord."""

    def test_from_dict(self):
        """Test creating a record from its normalized form."""
        record = ActivityRecord.from_dict({
            "actor_id": "alice",
            "action": "read-object",
            "resource_id": "bucket/a",
            "timestamp": "2024-03-01T12:00:00Z",
        })

        assert record.actor_id == "alice"
        assert record.outcome == Outcome.ALLOWED
        assert record.is_allowed is True
        assert record.key == ("alice", "read-object", "bucket/a")

    def test_from_dict_denied(self):
        """Test denied outcome is parsed case-insensitively."""
        record = ActivityRecord.from_dict({
            "actor_id": "alice",
            "action": "read-object",
            "resource_id": "bucket/a",
            "timestamp": "2024-03-01T12:00:00Z",
            "outcome": "DENIED",
        })

        assert record.outcome == Outcome.DENIED
        assert record.is_allowed is False

    def test_from_dict_strips_whitespace(self):
        """Test identifiers are stripped."""
        record = ActivityRecord.from_dict({
            "actor_id": " alice ",
            "action": "read-object",
            "resource_id": "bucket/a",
            "timestamp": "2024-03-01T12:00:00Z",
        })
        assert record.actor_id == "alice"

    @pytest.mark.parametrize(
        "data",
        [
            "not a mapping",
            {"action": "read", "resource_id": "r", "timestamp": "2024-03-01T00:00:00Z"},
            {"actor_id": "", "action": "read", "resource_id": "r", "timestamp": "2024-03-01T00:00:00Z"},
            {"actor_id": "a", "action": "read", "resource_id": "r", "timestamp": "nope"},
            {"actor_id": "a", "action": "read", "resource_id": "r", "timestamp": "2024-03-01T00:00:00Z", "outcome": "maybe"},
        ],
    )
    def test_from_dict_malformed(self, data):
        """Test malformed records raise MalformedRecordError carrying the raw item."""
        with pytest.raises(MalformedRecordError) as exc_info:
            ActivityRecord.from_dict(data)
        assert exc_info.value.raw == data

    def test_malformed_is_value_error(self):
        """Test MalformedRecordError is a ValueError."""
        assert issubclass(MalformedRecordError, ValueError)

    def test_to_dict(self, base_time):
        """Test record serialization."""
        record = ActivityRecord("alice", "read-object", "bucket/a", base_time)
        data = record.to_dict()

        assert data["timestamp"] == base_time.isoformat()
        assert data["outcome"] == "allowed"

    def test_immutable(self, base_time):
        """Test records cannot be modified."""
        record = ActivityRecord("alice", "read-object", "bucket/a", base_time)
        with pytest.raises(AttributeError):
            record.actor_id = "mallory"


class TestCoverageEntry:
    """Tests for CoverageEntry."""

    def test_count_must_be_positive(self, base_time):
        """Test occurrence_count of zero is rejected."""
        with pytest.raises(ValueError):
            CoverageEntry("alice", "read", "r", base_time, occurrence_count=0)

    def test_merge(self, base_time):
        """Test merging sums counts and keeps the latest time."""
        first = CoverageEntry("alice", "read", "r", base_time, 2)
        second = CoverageEntry("alice", "read", "r", base_time + timedelta(days=1), 3)

        merged = first.merge(second)

        assert merged.occurrence_count == 5
        assert merged.last_seen == base_time + timedelta(days=1)

    def test_merge_different_keys(self, base_time):
        """Test merging entries with different keys fails."""
        first = CoverageEntry("alice", "read", "r", base_time)
        second = CoverageEntry("bob", "read", "r", base_time)
        with pytest.raises(ValueError):
            first.merge(second)


class TestPatternMatching:
    """Tests for trailing-wildcard patterns."""

    def test_exact(self):
        """Test literal patterns match only themselves."""
        assert pattern_matches("bucket/a", "bucket/a") is True
        assert pattern_matches("bucket/a", "bucket/ab") is False

    def test_trailing_wildcard(self):
        """Test prefix wildcard matching."""
        assert pattern_matches("bucket/*", "bucket/a/b") is True
        assert pattern_matches("bucket/*", "other/a") is False

    def test_star_matches_everything(self):
        """Test "*" matches any value."""
        assert pattern_matches("*", "anything") is True

    def test_inner_star_is_literal(self):
        """Test only a trailing star is a wildcard."""
        assert pattern_matches("bucket/*/x", "bucket/a/x") is False
        assert pattern_matches("bucket/*/x", "bucket/*/x") is True

    def test_case_sensitivity(self):
        """Test case handling is opt-in."""
        assert pattern_matches("s3:get*", "s3:GetObject") is False
        assert pattern_matches("s3:get*", "s3:GetObject", case_sensitive=False) is True

    def test_subsumes(self):
        """Test pattern subsumption."""
        assert pattern_subsumes("s3:*", "s3:Get*") is True
        assert pattern_subsumes("s3:Get*", "s3:*") is False
        assert pattern_subsumes("*", "s3:Get*") is True
        assert pattern_subsumes("bucket/a", "bucket/a") is True


class TestPermissionStatement:
    """Tests for PermissionStatement."""

    def test_allow_constructor(self):
        """Test building an allow statement from strings."""
        statement = PermissionStatement.allow("s3:GetObject", "bucket/*")

        assert statement.effect == Effect.ALLOW
        assert statement.actions == frozenset({"s3:GetObject"})
        assert statement.is_allow is True
        assert statement.is_deny is False

    def test_requires_actions_and_resources(self):
        """Test empty actions or resources are rejected."""
        with pytest.raises(ValueError):
            PermissionStatement.allow([], "bucket/*")
        with pytest.raises(ValueError):
            PermissionStatement.deny("s3:GetObject", [])

    def test_matches_case_insensitive_actions(self):
        """Test actions match case-insensitively, resources do not."""
        statement = PermissionStatement.allow("s3:getobject", "Bucket/*")

        assert statement.matches("S3:GetObject", "Bucket/key") is True
        assert statement.matches("s3:GetObject", "bucket/key") is False

    def test_matching_action_prefers_specific(self):
        """Test the most specific pattern is reported."""
        statement = PermissionStatement.allow(["s3:*", "s3:Get*", "s3:GetObject"], "*")
        assert statement.matching_action("s3:GetObject") == "s3:GetObject"

    def test_subsumes(self):
        """Test statement subsumption."""
        broad = PermissionStatement.deny("s3:*", "bucket/*")
        narrow = PermissionStatement.allow("s3:GetObject", "bucket/secret/*")

        assert broad.subsumes(narrow) is True
        assert narrow.subsumes(broad) is False

    def test_hashable_with_conditions(self):
        """Test conditions do not prevent hashing."""
        statement = PermissionStatement.allow(
            "s3:GetObject", "bucket/*", conditions={"aws:SourceIp": "10.0.0.0/8"}
        )
        assert hash(statement) == hash(PermissionStatement.allow("s3:GetObject", "bucket/*"))

    def test_dict_roundtrip(self):
        """Test serialization preserves the statement."""
        statement = PermissionStatement.deny(["b", "a"], "r/*", sid="NoWrites")
        data = statement.to_dict()

        assert data["actions"] == ["a", "b"]
        assert PermissionStatement.from_dict(data) == statement


class TestPermissionSet:
    """Tests for PermissionSet evaluation."""

    def test_implicit_deny(self):
        """Test an empty set denies everything."""
        evaluation = PermissionSet(principal_id="alice").evaluate("read", "r")

        assert evaluation.decision == Decision.IMPLICIT_DENY
        assert evaluation.statement_index is None
        assert evaluation.allowed is False

    def test_deny_overrides_allow(self, scoped_policy):
        """Test a matching deny wins over a more specific allow."""
        evaluation = scoped_policy.evaluate("s3:GetObject", "arn:aws:s3:::data/secret/key")

        assert evaluation.decision == Decision.EXPLICIT_DENY
        assert evaluation.statement_index == 2

    def test_most_specific_allow_decides(self, scoped_policy):
        """Test the most specific matching allow is reported."""
        evaluation = scoped_policy.evaluate("s3:PutObject", "arn:aws:s3:::data/uploads/x")

        assert evaluation.allowed is True
        assert evaluation.statement_index == 1

    def test_tie_goes_to_lowest_index(self):
        """Test equal specificity resolves to the earliest statement."""
        permission_set = PermissionSet(
            principal_id="alice",
            statements=(
                PermissionStatement.allow("read", "bucket/*"),
                PermissionStatement.allow("read", "bucket/*"),
            ),
        )
        assert permission_set.evaluate("read", "bucket/a").statement_index == 0

    def test_conditional_deny_skipped_when_unconditional_only(self):
        """Test conditional denies apply by default and are skipped on request."""
        permission_set = PermissionSet(
            principal_id="alice",
            statements=(
                PermissionStatement.allow("s3:GetObject", "bucket/*"),
                PermissionStatement.deny(
                    "s3:*", "*", conditions={"Bool": {"aws:SecureTransport": "false"}}
                ),
            ),
        )

        assert permission_set.allows("s3:GetObject", "bucket/a") is False
        evaluation = permission_set.evaluate(
            "s3:GetObject", "bucket/a", unconditional_only=True
        )
        assert evaluation.decision == Decision.ALLOW
        assert evaluation.statement_index == 0

    def test_allow_and_deny_statements(self, scoped_policy):
        """Test statements are split by effect with their index."""
        assert [i for i, _ in scoped_policy.allow_statements] == [0, 1]
        assert [i for i, _ in scoped_policy.deny_statements] == [2]

    def test_statements_coerced_to_tuple(self):
        """Test a list of statements is stored as a tuple."""
        permission_set = PermissionSet(
            principal_id="alice",
            statements=[PermissionStatement.allow("read", "r")],
        )
        assert isinstance(permission_set.statements, tuple)
        assert len(permission_set) == 1

    def test_dict_roundtrip(self, scoped_policy):
        """Test serialization preserves the set."""
        assert PermissionSet.from_dict(scoped_policy.to_dict()) == scoped_policy


class TestFinding:
    """Tests for Finding ordering and serialization."""

    def _finding(self, severity: Severity, index: int) -> Finding:
        statement = PermissionStatement.allow("*", "*")
        return Finding(
            kind=FindingKind.WILDCARD_ACTION,
            severity=severity,
            principal_id="carol",
            subject=StatementRef("carol", index, statement),
            message="test",
        )

    def test_severity_comparison(self):
        """Test severity ranks compare as expected."""
        assert Severity.CRITICAL > Severity.HIGH
        assert Severity.LOW < Severity.MEDIUM
        assert Severity.from_string("High") == Severity.HIGH

    def test_sort_findings(self):
        """Test findings sort by severity descending then index."""
        findings = [
            self._finding(Severity.LOW, 0),
            self._finding(Severity.HIGH, 2),
            self._finding(Severity.HIGH, 1),
            self._finding(Severity.CRITICAL, 3),
        ]
        ordered = sort_findings(findings)

        assert [(f.severity, f.statement_index) for f in ordered] == [
            (Severity.CRITICAL, 3),
            (Severity.HIGH, 1),
            (Severity.HIGH, 2),
            (Severity.LOW, 0),
        ]

    def test_coverage_subject(self, base_time):
        """Test findings about coverage entries have no statement index."""
        entry = CoverageEntry("bob", "delete-object", "bucket/x", base_time)
        finding = Finding(
            kind=FindingKind.UNGRANTED_USAGE,
            severity=Severity.MEDIUM,
            principal_id="bob",
            subject=entry,
            message="not granted",
        )

        assert finding.statement_index is None
        assert finding.to_dict()["subject"]["type"] == "coverage_entry"
