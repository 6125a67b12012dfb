"""
Activity record model for Warden.

This module defines ActivityRecord, the normalized representation of one
observed API call taken from an audit log feed, and the Outcome of that
call. Records are immutable once ingested.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any


class MalformedRecordError(ValueError):
    """Raised when an activity record cannot be parsed."""

    def __init__(self, message: str, raw: Any = None):
        super().__init__(message)
        self.raw = raw


class Outcome(Enum):
    """Result of an observed call."""

    ALLOWED = "allowed"
    DENIED = "denied"

    @classmethod
    def from_string(cls, value: str) -> Outcome:
        """
        Create Outcome from string value.

        Args:
            value: String representation (case-insensitive)

        Returns:
            Matching Outcome enum value

        Raises:
            ValueError: If value is not a valid outcome
        """
        value_lower = value.lower()
        for outcome in cls:
            if outcome.value == value_lower:
                return outcome
        raise ValueError(f"Invalid outcome: {value}")


def parse_timestamp(value: Any) -> datetime:
    """
    Parse a timestamp into a timezone-aware datetime.

    Accepts datetime objects and ISO 8601 strings (including the trailing
    "Z" form used by CloudTrail). Naive values are assumed to be UTC.

    Raises:
        ValueError: If value is not a recognizable timestamp
    """
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str) and value:
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        parsed = datetime.fromisoformat(text)
    else:
        raise ValueError(f"Invalid timestamp: {value!r}")

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


@dataclass(frozen=True)
class ActivityRecord:
    """
    One observed action taken by a principal.

    Attributes:
        actor_id: Principal that performed the call
        action: Action verb (e.g. "s3:GetObject" or "read-object")
        resource_id: Opaque hierarchical resource path
        timestamp: When the call happened (timezone-aware)
        outcome: Whether the call was allowed or denied
    """

    actor_id: str
    action: str
    resource_id: str
    timestamp: datetime
    outcome: Outcome = Outcome.ALLOWED

    @property
    def is_allowed(self) -> bool:
        """Check if the call was allowed."""
        return self.outcome == Outcome.ALLOWED

    @property
    def key(self) -> tuple[str, str, str]:
        """Aggregation key used by the coverage index."""
        return (self.actor_id, self.action, self.resource_id)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "actor_id": self.actor_id,
            "action": self.action,
            "resource_id": self.resource_id,
            "timestamp": self.timestamp.isoformat(),
            "outcome": self.outcome.value,
        }

    @classmethod
    def from_dict(cls, data: Any) -> ActivityRecord:
        """
        Create an ActivityRecord from its normalized dictionary form.

        Args:
            data: Mapping with actor_id, action, resource_id, timestamp
                and an optional outcome (defaults to "allowed")

        Returns:
            ActivityRecord instance

        Raises:
            MalformedRecordError: If a field is missing or invalid
        """
        if not isinstance(data, dict):
            raise MalformedRecordError(
                f"Activity record must be a mapping, got {type(data).__name__}",
                raw=data,
            )

        values: dict[str, str] = {}
        for name in ("actor_id", "action", "resource_id"):
            value = data.get(name)
            if not isinstance(value, str) or not value.strip():
                raise MalformedRecordError(
                    f"Activity record field '{name}' is missing or empty", raw=data
                )
            values[name] = value.strip()

        try:
            timestamp = parse_timestamp(data.get("timestamp"))
        except ValueError as e:
            raise MalformedRecordError(str(e), raw=data) from e

        try:
            outcome = Outcome.from_string(str(data.get("outcome", "allowed")))
        except ValueError as e:
            raise MalformedRecordError(str(e), raw=data) from e

        return cls(
            actor_id=values["actor_id"],
            action=values["action"],
            resource_id=values["resource_id"],
            timestamp=timestamp,
            outcome=outcome,
        )


@dataclass(frozen=True)
class CoverageEntry:
    """
    Aggregated usage of one (actor, action, resource) tuple.

    Attributes:
        actor_id: Principal that exercised the action
        action: Action exercised
        resource_id: Resource the action was exercised on
        last_seen: Most recent allowed call
        occurrence_count: Number of allowed calls aggregated (at least 1)
    """

    actor_id: str
    action: str
    resource_id: str
    last_seen: datetime
    occurrence_count: int = 1

    def __post_init__(self) -> None:
        if self.occurrence_count < 1:
            raise ValueError("occurrence_count must be at least 1")

    @property
    def key(self) -> tuple[str, str, str]:
        """Unique key of this entry."""
        return (self.actor_id, self.action, self.resource_id)

    def merge(self, other: CoverageEntry) -> CoverageEntry:
        """Combine two entries with the same key."""
        if other.key != self.key:
            raise ValueError(f"Cannot merge coverage entries {self.key} and {other.key}")
        return CoverageEntry(
            actor_id=self.actor_id,
            action=self.action,
            resource_id=self.resource_id,
            last_seen=max(self.last_seen, other.last_seen),
            occurrence_count=self.occurrence_count + other.occurrence_count,
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "actor_id": self.actor_id,
            "action": self.action,
            "resource_id": self.resource_id,
            "last_seen": self.last_seen.isoformat(),
            "occurrence_count": self.occurrence_count,
        }
