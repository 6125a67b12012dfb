"""
CloudTrail adapter for Warden.

Converts CloudTrail event records into ActivityRecords:

- actor: userIdentity.arn (assumed-role session ARNs are folded back to
  the IAM role ARN so every session of a role counts as the same principal)
- action: "<service>:<eventName>" where service comes from eventSource
- resource: first resources[].ARN, else an S3 ARN built from
  requestParameters, else "*"
- outcome: DENIED for access-denied error codes
"""

from __future__ import annotations

import re
from typing import Any

from warden.models.activity import ActivityRecord, MalformedRecordError, Outcome, parse_timestamp

ACCESS_DENIED_CODES = frozenset(
    {
        "AccessDenied",
        "AccessDeniedException",
        "UnauthorizedOperation",
        "Client.UnauthorizedOperation",
        "UnauthorizedAccess",
        "Forbidden",
    }
)

_ASSUMED_ROLE = re.compile(
    r"^arn:(?P<partition>[^:]+):sts::(?P<account>\d+):assumed-role/(?P<role>[^/]+)/.+$"
)


def normalize_actor(arn: str) -> str:
    """Map an STS assumed-role session ARN to its IAM role ARN."""
    match = _ASSUMED_ROLE.match(arn)
    if not match:
        return arn
    return (
        f"arn:{match.group('partition')}:iam::{match.group('account')}:"
        f"role/{match.group('role')}"
    )


def is_access_denied(error_code: str | None) -> bool:
    """Check if a CloudTrail errorCode means the call was denied."""
    if not error_code:
        return False
    return (
        error_code in ACCESS_DENIED_CODES
        or "AccessDenied" in error_code
        or "Unauthorized" in error_code
    )


def event_action(event: dict[str, Any]) -> str:
    """Build the IAM action name for an event."""
    source = event.get("eventSource")
    name = event.get("eventName")
    if not source or not name:
        raise MalformedRecordError("CloudTrail event lacks eventSource or eventName", raw=event)
    service = str(source).split(".", 1)[0]
    return f"{service}:{name}"


def event_resource(event: dict[str, Any]) -> str:
    """Best-effort resource identifier for an event."""
    resources = event.get("resources") or []
    if not isinstance(resources, list):
        resources = []
    for resource in resources:
        if isinstance(resource, dict) and resource.get("ARN"):
            return str(resource["ARN"])

    params = event.get("requestParameters") or {}
    if isinstance(params, dict) and params.get("bucketName"):
        key = params.get("key")
        if key:
            return f"arn:aws:s3:::{params['bucketName']}/{key}"
        return f"arn:aws:s3:::{params['bucketName']}"
    return "*"


def event_to_record(event: Any) -> ActivityRecord:
    """
    Convert a CloudTrail event into an ActivityRecord.

    Raises:
        MalformedRecordError: If the event lacks an identity, action or time
    """
    if not isinstance(event, dict):
        raise MalformedRecordError("CloudTrail event must be a mapping", raw=event)

    identity = event.get("userIdentity") or {}
    if not isinstance(identity, dict):
        raise MalformedRecordError("CloudTrail userIdentity must be a mapping", raw=event)
    actor = identity.get("arn") or identity.get("principalId")
    if not actor:
        raise MalformedRecordError("CloudTrail event lacks userIdentity.arn", raw=event)

    try:
        timestamp = parse_timestamp(event.get("eventTime"))
    except ValueError as e:
        raise MalformedRecordError(f"Invalid eventTime: {e}", raw=event) from e

    outcome = Outcome.DENIED if is_access_denied(event.get("errorCode")) else Outcome.ALLOWED

    return ActivityRecord(
        actor_id=normalize_actor(str(actor)),
        action=event_action(event),
        resource_id=event_resource(event),
        timestamp=timestamp,
        outcome=outcome,
    )


def is_cloudtrail_event(item: Any) -> bool:
    """Check if an item looks like a raw CloudTrail event."""
    return isinstance(item, dict) and "eventName" in item and "eventSource" in item
