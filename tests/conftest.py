"""
Pytest configuration and fixtures for Warden tests.

This module provides common fixtures used across unit and integration tests.
"""

from __future__ import annotations

import json
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any
from unittest.mock import MagicMock

import pytest

from warden.config import AnalysisConfig, WindowConfig
from warden.coverage import AnalysisWindow, WindowMode
from warden.models import (
    ActivityRecord,
    CoverageEntry,
    Outcome,
    PermissionSet,
    PermissionStatement,
)

BASE_TIME = datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)


def make_record(
    actor: str,
    action: str,
    resource: str,
    minutes: int = 0,
    outcome: Outcome = Outcome.ALLOWED,
) -> ActivityRecord:
    """Build an ActivityRecord offset from a fixed base time."""
    return ActivityRecord(
        actor_id=actor,
        action=action,
        resource_id=resource,
        timestamp=BASE_TIME + timedelta(minutes=minutes),
        outcome=outcome,
    )


def make_entry(
    actor: str,
    action: str,
    resource: str,
    count: int = 1,
) -> CoverageEntry:
    """Build a CoverageEntry seen at the base time."""
    return CoverageEntry(
        actor_id=actor,
        action=action,
        resource_id=resource,
        last_seen=BASE_TIME,
        occurrence_count=count,
    )


# Sample data fixtures


@pytest.fixture
def record_factory():
    """Return the ActivityRecord builder."""
    return make_record


@pytest.fixture
def entry_factory():
    """Return the CoverageEntry builder."""
    return make_entry


@pytest.fixture
def base_time() -> datetime:
    """Return the reference time used by sample records."""
    return BASE_TIME


@pytest.fixture
def alice_records() -> list[ActivityRecord]:
    """Return alice reading two objects under one prefix."""
    return [
        make_record("alice", "read-object", "bucket/a"),
        make_record("alice", "read-object", "bucket/b", minutes=5),
    ]


@pytest.fixture
def bob_records() -> list[ActivityRecord]:
    """Return bob deleting a single object."""
    return [make_record("bob", "delete-object", "bucket/x")]


@pytest.fixture
def mixed_records(alice_records, bob_records) -> list[ActivityRecord]:
    """Return records for several actors, including denied calls."""
    return [
        *alice_records,
        *bob_records,
        make_record("alice", "read-object", "bucket/a", minutes=10),
        make_record("alice", "write-object", "bucket/a", minutes=15, outcome=Outcome.DENIED),
        make_record("dave", "list-buckets", "*", minutes=20),
    ]


@pytest.fixture
def alice_policy() -> PermissionSet:
    """Return alice's existing permission set."""
    return PermissionSet(
        principal_id="alice",
        statements=(PermissionStatement.allow("read-object", "bucket/*"),),
    )


@pytest.fixture
def carol_policy() -> PermissionSet:
    """Return carol's admin-style permission set."""
    return PermissionSet(
        principal_id="carol",
        statements=(PermissionStatement.allow("*", "*"),),
    )


@pytest.fixture
def scoped_policy() -> PermissionSet:
    """Return a permission set mixing allows and denies."""
    return PermissionSet(
        principal_id="erin",
        statements=(
            PermissionStatement.allow(["s3:GetObject", "s3:ListBucket"], "arn:aws:s3:::data/*"),
            PermissionStatement.allow("s3:PutObject", "arn:aws:s3:::data/uploads/*"),
            PermissionStatement.deny("s3:*", "arn:aws:s3:::data/secret/*"),
        ),
    )


@pytest.fixture
def wide_window() -> AnalysisWindow:
    """Return an unbounded fixed window."""
    return AnalysisWindow.fixed(None, None)


@pytest.fixture
def analysis_config() -> AnalysisConfig:
    """Return a sequential configuration with an unbounded window."""
    return AnalysisConfig(
        max_workers=1,
        window=WindowConfig(mode=WindowMode.FIXED),
    )


# File fixtures


def _cloudtrail_event(
    arn: str,
    event_source: str,
    event_name: str,
    event_time: str,
    request_parameters: dict[str, Any] | None = None,
    error_code: str | None = None,
) -> dict[str, Any]:
    event: dict[str, Any] = {
        "eventVersion": "1.08",
        "userIdentity": {"type": "AssumedRole", "arn": arn},
        "eventTime": event_time,
        "eventSource": event_source,
        "eventName": event_name,
        "awsRegion": "us-east-1",
        "requestParameters": request_parameters,
    }
    if error_code:
        event["errorCode"] = error_code
    return event


@pytest.fixture
def cloudtrail_events() -> list[dict[str, Any]]:
    """Return a small CloudTrail digest's events."""
    role_session = "arn:aws:sts::123456789012:assumed-role/app/i-0abc"
    return [
        _cloudtrail_event(
            role_session,
            "s3.amazonaws.com",
            "GetObject",
            "2024-03-01T12:00:00Z",
            {"bucketName": "data", "key": "reports/q1.csv"},
        ),
        _cloudtrail_event(
            role_session,
            "s3.amazonaws.com",
            "GetObject",
            "2024-03-01T12:05:00Z",
            {"bucketName": "data", "key": "reports/q2.csv"},
        ),
        _cloudtrail_event(
            role_session,
            "s3.amazonaws.com",
            "DeleteObject",
            "2024-03-01T12:10:00Z",
            {"bucketName": "data", "key": "reports/q1.csv"},
            error_code="AccessDenied",
        ),
    ]


@pytest.fixture
def cloudtrail_file(tmp_path: Path, cloudtrail_events) -> Path:
    """Write a CloudTrail digest to a temporary file."""
    path = tmp_path / "cloudtrail.json"
    path.write_text(json.dumps({"Records": cloudtrail_events}))
    return path


@pytest.fixture
def policy_file(tmp_path: Path) -> Path:
    """Write a per-principal IAM policy file."""
    path = tmp_path / "policies.json"
    path.write_text(
        json.dumps(
            {
                "arn:aws:iam::123456789012:role/app": {
                    "Version": "2012-10-17",
                    "Statement": [
                        {
                            "Effect": "Allow",
                            "Action": "s3:GetObject",
                            "Resource": "arn:aws:s3:::data/reports/*",
                        },
                        {
                            "Effect": "Allow",
                            "Action": ["iam:PassRole"],
                            "Resource": "*",
                        },
                    ],
                }
            }
        )
    )
    return path


@pytest.fixture
def mock_s3_client() -> MagicMock:
    """Return a mocked S3 client with an empty paginator."""
    client = MagicMock()
    paginator = MagicMock()
    paginator.paginate.return_value = [{"Contents": []}]
    client.get_paginator.return_value = paginator
    return client
