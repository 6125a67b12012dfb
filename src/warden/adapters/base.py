"""
Shared types for boundary adapters.

Adapters translate provider-native input into the normalized models. A
malformed input item never aborts a load: it is skipped, logged and
reported as a Diagnostic alongside the records that did parse.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Iterable

from warden.models.activity import ActivityRecord, MalformedRecordError
from warden.observability.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class Diagnostic:
    """
    A non-fatal problem found while loading input.

    Attributes:
        source: Where the item came from (file path, S3 key, ...)
        message: What was wrong
        position: Item position within the source, if known
    """

    source: str
    message: str
    position: int | None = None

    def __str__(self) -> str:
        where = self.source if self.position is None else f"{self.source}#{self.position}"
        return f"{where}: {self.message}"

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {"source": self.source, "message": self.message, "position": self.position}


@dataclass
class LoadResult:
    """
    Records loaded from a log source.

    Attributes:
        records: Successfully parsed records
        diagnostics: Items that were skipped
    """

    records: list[ActivityRecord] = field(default_factory=list)
    diagnostics: list[Diagnostic] = field(default_factory=list)

    @property
    def skipped(self) -> int:
        """Number of skipped items."""
        return len(self.diagnostics)

    def extend(self, other: LoadResult) -> None:
        """Append another result to this one."""
        self.records.extend(other.records)
        self.diagnostics.extend(other.diagnostics)


def parse_items(
    items: Iterable[Any],
    parser: Callable[[Any], ActivityRecord],
    source: str,
) -> LoadResult:
    """
    Parse raw items, isolating malformed ones.

    Args:
        items: Raw items (dicts) to parse
        parser: Converts one item to an ActivityRecord or raises
            MalformedRecordError
        source: Source label used in diagnostics

    Returns:
        LoadResult with parsed records and one diagnostic per skipped item
    """
    result = LoadResult()
    for position, item in enumerate(items):
        try:
            result.records.append(parser(item))
        except MalformedRecordError as e:
            result.diagnostics.append(Diagnostic(source=source, message=str(e), position=position))
            logger.record_skipped(f"{source}#{position}", str(e))
    return result
