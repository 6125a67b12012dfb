"""
Coverage index for Warden.

Builds, from a feed of activity records, the set of (actor, action,
resource) tuples that were actually exercised. Only allowed calls count as
usage. Records are partitioned by actor and each partition is aggregated
independently, so partitions can be processed on a thread pool without any
shared mutable state; the per-actor results are merged afterwards.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Iterable, Iterator

from warden.coverage.window import AnalysisWindow, in_bounds
from warden.models.activity import ActivityRecord, CoverageEntry

logger = logging.getLogger(__name__)

EntryKey = tuple[str, str, str]


@dataclass(frozen=True)
class CoverageStats:
    """
    Counters collected while building an index.

    Attributes:
        records_seen: Records in the input feed
        records_counted: Records aggregated as usage
        records_denied: Records skipped because the call was denied
        records_outside_window: Allowed records outside the analysis window
        window_start: Resolved window start (None = unbounded)
        window_end: Resolved window end (None = unbounded)
    """

    records_seen: int = 0
    records_counted: int = 0
    records_denied: int = 0
    records_outside_window: int = 0
    window_start: datetime | None = None
    window_end: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "records_seen": self.records_seen,
            "records_counted": self.records_counted,
            "records_denied": self.records_denied,
            "records_outside_window": self.records_outside_window,
            "window_start": self.window_start.isoformat() if self.window_start else None,
            "window_end": self.window_end.isoformat() if self.window_end else None,
        }


class CoverageIndex:
    """
    Exercised usage, queryable by principal.

    Entries are unique per (actor_id, action, resource_id). The index is not
    modified after construction; merge() and from_entries() return new
    instances.
    """

    def __init__(
        self,
        entries: Iterable[CoverageEntry] = (),
        stats: CoverageStats | None = None,
    ):
        """
        Initialize the index.

        Args:
            entries: Coverage entries; duplicates of the same key are merged
            stats: Optional build statistics
        """
        merged = _merge_entries(entries)
        by_principal: dict[str, list[CoverageEntry]] = {}
        for entry in merged.values():
            by_principal.setdefault(entry.actor_id, []).append(entry)

        self._by_principal: dict[str, tuple[CoverageEntry, ...]] = {
            principal: tuple(sorted(items, key=lambda e: (e.action, e.resource_id)))
            for principal, items in sorted(by_principal.items())
        }
        self._by_key = merged
        self._stats = stats or CoverageStats()

    @classmethod
    def from_entries(cls, entries: Iterable[CoverageEntry]) -> CoverageIndex:
        """
        Re-aggregate existing entries into an index.

        Entries sharing a key have their counts summed and their last_seen
        maximized. Rebuilding an index from its own entries yields an equal
        index.
        """
        return cls(entries)

    @property
    def stats(self) -> CoverageStats:
        """Statistics collected while building the index."""
        return self._stats

    @property
    def principals(self) -> list[str]:
        """Principals with at least one entry, sorted."""
        return list(self._by_principal)

    def for_principal(self, principal_id: str) -> tuple[CoverageEntry, ...]:
        """Get the full usage set of a principal (empty if none)."""
        return self._by_principal.get(principal_id, ())

    def get(self, actor_id: str, action: str, resource_id: str) -> CoverageEntry | None:
        """Get a single entry by key."""
        return self._by_key.get((actor_id, action, resource_id))

    def entries(self) -> list[CoverageEntry]:
        """All entries ordered by principal, action, resource."""
        return [e for items in self._by_principal.values() for e in items]

    def merge(self, other: CoverageIndex) -> CoverageIndex:
        """Combine two indexes built from disjoint record feeds."""
        return CoverageIndex([*self.entries(), *other.entries()])

    def __len__(self) -> int:
        return len(self._by_key)

    def __iter__(self) -> Iterator[CoverageEntry]:
        return iter(self.entries())

    def __contains__(self, principal_id: object) -> bool:
        return principal_id in self._by_principal

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, CoverageIndex):
            return NotImplemented
        return self._by_key == other._by_key

    def __repr__(self) -> str:
        return f"CoverageIndex(principals={len(self._by_principal)}, entries={len(self)})"

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "stats": self._stats.to_dict(),
            "principals": {
                principal: [e.to_dict() for e in items]
                for principal, items in self._by_principal.items()
            },
        }


def build(
    records: Iterable[ActivityRecord],
    window: AnalysisWindow | None = None,
    max_workers: int | None = None,
) -> CoverageIndex:
    """
    Build a coverage index from activity records.

    Denied calls and calls outside the window are skipped. The result does
    not depend on record order.

    Args:
        records: Activity record feed
        window: Optional analysis window
        max_workers: Thread pool size for per-actor aggregation
            (None or 1 aggregates sequentially)

    Returns:
        CoverageIndex (empty for empty input)
    """
    records = list(records)
    start, end = window.resolve(records) if window else (None, None)

    partitions: dict[str, list[ActivityRecord]] = {}
    denied = 0
    outside = 0
    for record in records:
        if not record.is_allowed:
            denied += 1
            continue
        if not in_bounds(record.timestamp, start, end):
            outside += 1
            continue
        partitions.setdefault(record.actor_id, []).append(record)

    if max_workers and max_workers > 1 and len(partitions) > 1:
        with ThreadPoolExecutor(max_workers=max_workers) as executor:
            results = list(executor.map(_aggregate_partition, partitions.values()))
    else:
        results = [_aggregate_partition(p) for p in partitions.values()]

    stats = CoverageStats(
        records_seen=len(records),
        records_counted=len(records) - denied - outside,
        records_denied=denied,
        records_outside_window=outside,
        window_start=start,
        window_end=end,
    )

    index = CoverageIndex(
        (entry for partition in results for entry in partition.values()),
        stats=stats,
    )
    logger.debug(
        f"Built coverage index: {len(index)} entries for {len(index.principals)} "
        f"principals ({denied} denied, {outside} outside window)"
    )
    return index


def _aggregate_partition(records: list[ActivityRecord]) -> dict[EntryKey, CoverageEntry]:
    """Aggregate one actor's records; owns its result exclusively."""
    counts: dict[EntryKey, int] = {}
    last_seen: dict[EntryKey, datetime] = {}
    for record in records:
        key = record.key
        counts[key] = counts.get(key, 0) + 1
        previous = last_seen.get(key)
        if previous is None or record.timestamp > previous:
            last_seen[key] = record.timestamp

    return {
        key: CoverageEntry(
            actor_id=key[0],
            action=key[1],
            resource_id=key[2],
            last_seen=last_seen[key],
            occurrence_count=count,
        )
        for key, count in counts.items()
    }


def _merge_entries(entries: Iterable[CoverageEntry]) -> dict[EntryKey, CoverageEntry]:
    merged: dict[EntryKey, CoverageEntry] = {}
    for entry in entries:
        existing = merged.get(entry.key)
        merged[entry.key] = entry if existing is None else existing.merge(entry)
    return merged
