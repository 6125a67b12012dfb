"""
Policy reducer for Warden.

Given a coverage index and the currently granted permission sets, computes
for every principal:

- the minimal statement set that covers exactly the observed usage,
- gaps: observed usage the existing permissions would not have allowed,
- excess: Allow statements never exercised within the analysis window.

Resource merging is deliberately conservative. Concrete resources are
grouped by their parent prefix (everything up to the last "/"), and a group
only becomes a wildcard pattern once it holds `merge_threshold` distinct
resources. The reducer never climbs above the parent prefix, so the
narrowest pattern that covers the observed entries is always the one used.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any, Mapping

from warden.coverage.index import CoverageIndex
from warden.models.activity import CoverageEntry
from warden.models.finding import StatementRef
from warden.models.statement import (
    WILDCARD,
    PermissionSet,
    PermissionStatement,
    pattern_matches,
    pattern_subsumes,
)

logger = logging.getLogger(__name__)

DEFAULT_MERGE_THRESHOLD = 2


@dataclass(frozen=True)
class PrincipalReduction:
    """
    Reduction output for a single principal.

    Attributes:
        principal_id: Principal analyzed
        minimal_set: Least-privilege statements covering observed usage
        gaps: Observed usage not allowed by the existing set
        excess: Existing Allow statements never exercised. Deny statements
            are never excess, so a principal without coverage reports only
            its Allow statements here.
        coverage_count: Number of coverage entries considered
    """

    principal_id: str
    minimal_set: PermissionSet
    gaps: tuple[CoverageEntry, ...] = ()
    excess: tuple[StatementRef, ...] = ()
    coverage_count: int = 0

    @property
    def excess_statements(self) -> list[PermissionStatement]:
        """Excess statements without their position."""
        return [ref.statement for ref in self.excess]

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "principal_id": self.principal_id,
            "minimal_set": self.minimal_set.to_dict(),
            "gaps": [g.to_dict() for g in self.gaps],
            "excess": [e.to_dict() for e in self.excess],
            "coverage_count": self.coverage_count,
        }


@dataclass(frozen=True)
class ReductionResult:
    """
    Reduction output for all principals.

    Attributes:
        reductions: Per-principal results keyed by principal id
    """

    reductions: dict[str, PrincipalReduction] = field(default_factory=dict)

    @property
    def principals(self) -> list[str]:
        """All principals that were reduced, sorted."""
        return sorted(self.reductions)

    def get(self, principal_id: str) -> PrincipalReduction | None:
        """Get the reduction for one principal."""
        return self.reductions.get(principal_id)

    @property
    def minimal_sets(self) -> dict[str, PermissionSet]:
        """Minimal permission set per principal."""
        return {p: self.reductions[p].minimal_set for p in self.principals}

    @property
    def gaps(self) -> list[CoverageEntry]:
        """All gaps across principals."""
        return [g for p in self.principals for g in self.reductions[p].gaps]

    @property
    def excess(self) -> list[StatementRef]:
        """All excess statements across principals."""
        return [e for p in self.principals for e in self.reductions[p].excess]

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {p: self.reductions[p].to_dict() for p in self.principals}


def parent_prefix(resource_id: str) -> str:
    """Resource path up to and including the last "/" ("" if none)."""
    position = resource_id.rfind("/")
    if position <= 0:
        return ""
    return resource_id[: position + 1]


def resource_classes(
    resources: set[str] | list[str],
    merge_threshold: int = DEFAULT_MERGE_THRESHOLD,
) -> dict[str, set[str]]:
    """
    Partition concrete resources into resource-pattern classes.

    Args:
        resources: Distinct concrete resource ids
        merge_threshold: Minimum distinct resources under one parent prefix
            before they are merged into "prefix*"

    Returns:
        Mapping of resource pattern to the resources it stands for. Every
        resource belongs to exactly one class and no two patterns match the
        same resource.
    """
    if merge_threshold < 2:
        raise ValueError("merge_threshold must be at least 2")

    groups: dict[str, set[str]] = {}
    for resource in resources:
        prefix = parent_prefix(resource)
        if prefix:
            groups.setdefault(prefix, set()).add(resource)

    candidates = sorted(
        prefix + WILDCARD
        for prefix, members in groups.items()
        if len(members) >= merge_threshold
    )
    # Deeper patterns are absorbed by any shallower pattern covering them.
    wildcards = [
        pattern
        for pattern in candidates
        if not any(
            other != pattern and pattern_subsumes(other, pattern)
            for other in candidates
        )
    ]

    classes: dict[str, set[str]] = {}
    for resource in sorted(resources):
        owner = next((w for w in wildcards if pattern_matches(w, resource)), resource)
        classes.setdefault(owner, set()).add(resource)
    return classes


def minimal_statements(
    entries: tuple[CoverageEntry, ...] | list[CoverageEntry],
    merge_threshold: int = DEFAULT_MERGE_THRESHOLD,
) -> tuple[PermissionStatement, ...]:
    """
    Build the least-privilege Allow statements for one principal's entries.

    One statement per resource class; its actions are the union of actions
    observed on the resources of that class. Actions differing only in case
    are folded into the first spelling seen.
    """
    classes = resource_classes({e.resource_id for e in entries}, merge_threshold)
    owner_of = {
        resource: pattern for pattern, members in classes.items() for resource in members
    }

    actions_by_class: dict[str, dict[str, str]] = {}
    for entry in entries:
        spellings = actions_by_class.setdefault(owner_of[entry.resource_id], {})
        spellings.setdefault(entry.action.lower(), entry.action)

    return tuple(
        PermissionStatement.allow(
            actions=set(actions_by_class[pattern].values()), resources=pattern
        )
        for pattern in sorted(actions_by_class)
    )


class PolicyReducer:
    """
    Computes least-privilege permission sets from observed usage.

    Principals are independent of each other, so each one is reduced on
    its own and results are collected once all principals are done.
    """

    def __init__(
        self,
        merge_threshold: int = DEFAULT_MERGE_THRESHOLD,
        max_workers: int | None = None,
    ):
        """
        Initialize the reducer.

        Args:
            merge_threshold: Minimum distinct resources before wildcarding
            max_workers: Thread pool size (None or 1 reduces sequentially)
        """
        if merge_threshold < 2:
            raise ValueError("merge_threshold must be at least 2")
        self.merge_threshold = merge_threshold
        self.max_workers = max_workers

    def reduce(
        self,
        index: CoverageIndex,
        existing: Mapping[str, PermissionSet] | None = None,
    ) -> ReductionResult:
        """
        Reduce every principal present in the index or the existing sets.

        Args:
            index: Observed usage
            existing: Currently granted permission set per principal

        Returns:
            ReductionResult covering index principals and existing principals
        """
        existing = existing or {}
        principals = sorted(set(index.principals) | set(existing))

        def work(principal_id: str) -> PrincipalReduction:
            return self.reduce_principal(
                principal_id,
                index.for_principal(principal_id),
                existing.get(principal_id),
            )

        if self.max_workers and self.max_workers > 1 and len(principals) > 1:
            with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
                results = list(executor.map(work, principals))
        else:
            results = [work(p) for p in principals]

        return ReductionResult(reductions={r.principal_id: r for r in results})

    def reduce_principal(
        self,
        principal_id: str,
        entries: tuple[CoverageEntry, ...],
        existing: PermissionSet | None = None,
    ) -> PrincipalReduction:
        """
        Reduce a single principal.

        Args:
            principal_id: Principal being reduced
            entries: The principal's coverage entries
            existing: The principal's current permission set, if any

        Returns:
            PrincipalReduction
        """
        existing = existing or PermissionSet(principal_id=principal_id)

        minimal = PermissionSet(
            principal_id=principal_id,
            statements=minimal_statements(entries, self.merge_threshold),
        )

        # Entries are successful calls, so conditional denies did not apply to them.
        gaps = tuple(
            e for e in entries
            if not existing.allows(e.action, e.resource_id, unconditional_only=True)
        )

        excess = tuple(
            StatementRef(principal_id=principal_id, index=index, statement=statement)
            for index, statement in existing.allow_statements
            if not any(statement.matches(e.action, e.resource_id) for e in entries)
        )

        if gaps:
            logger.warning(
                f"{principal_id}: {len(gaps)} observed action(s) not granted by "
                f"the existing permission set"
            )
        logger.debug(
            f"{principal_id}: {len(entries)} entries -> {len(minimal)} minimal "
            f"statements, {len(excess)} excess"
        )

        return PrincipalReduction(
            principal_id=principal_id,
            minimal_set=minimal,
            gaps=gaps,
            excess=excess,
            coverage_count=len(entries),
        )


def reduce(
    index: CoverageIndex,
    existing: Mapping[str, PermissionSet] | None = None,
    merge_threshold: int = DEFAULT_MERGE_THRESHOLD,
) -> ReductionResult:
    """Reduce with a default PolicyReducer."""
    return PolicyReducer(merge_threshold=merge_threshold).reduce(index, existing)
