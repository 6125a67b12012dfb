"""
Analysis window for coverage aggregation.

A window bounds which activity records count as usage. Two closing
policies are supported:

- FIXED: an explicit [start, end] range.
- SLIDING: the last `lookback_days` ending at the newest record in the
  feed. The anchor is the data, not the wall clock, so replaying a feed
  always yields the same window.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Iterable

from warden.models.activity import ActivityRecord


class WindowMode(Enum):
    """Window closing policy."""

    FIXED = "fixed"
    SLIDING = "sliding"


@dataclass(frozen=True)
class AnalysisWindow:
    """
    Time window used to decide which records count as usage.

    Attributes:
        mode: Closing policy
        lookback_days: Window length for SLIDING mode
        start: Inclusive start for FIXED mode (None = unbounded)
        end: Inclusive end for FIXED mode (None = unbounded)
    """

    mode: WindowMode = WindowMode.SLIDING
    lookback_days: int = 90
    start: datetime | None = None
    end: datetime | None = None

    def __post_init__(self) -> None:
        if self.lookback_days < 1:
            raise ValueError("lookback_days must be at least 1")
        if self.start and self.end and self.start > self.end:
            raise ValueError("Window start must not be after window end")

    @classmethod
    def fixed(cls, start: datetime | None, end: datetime | None) -> AnalysisWindow:
        """Create a fixed window."""
        return cls(mode=WindowMode.FIXED, start=start, end=end)

    @classmethod
    def sliding(cls, lookback_days: int = 90) -> AnalysisWindow:
        """Create a sliding window."""
        return cls(mode=WindowMode.SLIDING, lookback_days=lookback_days)

    def resolve(self, records: Iterable[ActivityRecord]) -> tuple[datetime | None, datetime | None]:
        """
        Resolve the concrete bounds for a record feed.

        Returns:
            (start, end); either may be None for an unbounded side
        """
        if self.mode == WindowMode.FIXED:
            return (self.start, self.end)

        latest: datetime | None = None
        for record in records:
            if latest is None or record.timestamp > latest:
                latest = record.timestamp
        if latest is None:
            return (None, None)
        return (latest - timedelta(days=self.lookback_days), latest)

    def to_dict(self) -> dict[str, object]:
        """Convert to dictionary."""
        return {
            "mode": self.mode.value,
            "lookback_days": self.lookback_days,
            "start": self.start.isoformat() if self.start else None,
            "end": self.end.isoformat() if self.end else None,
        }


def in_bounds(
    timestamp: datetime,
    start: datetime | None,
    end: datetime | None,
) -> bool:
    """Check if a timestamp lies inside inclusive bounds."""
    if start is not None and timestamp < start:
        return False
    if end is not None and timestamp > end:
        return False
    return True
