"""
Permission statement model for Warden.

This module defines PermissionStatement (one allow/deny rule) and
PermissionSet (the ordered statements granted to one principal), together
with the trailing-wildcard pattern matching both of them rely on.

Evaluation follows deny-overrides-allow: any matching Deny wins over every
matching Allow, and when several Deny statements match, the most specific
one is reported as the deciding statement.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterable, Iterator

WILDCARD = "*"


class Effect(Enum):
    """Effect of a permission statement."""

    ALLOW = "allow"
    DENY = "deny"

    @classmethod
    def from_string(cls, value: str) -> Effect:
        """
        Create Effect from string value.

        Args:
            value: String representation (case-insensitive)

        Returns:
            Matching Effect enum value

        Raises:
            ValueError: If value is not a valid effect
        """
        value_lower = value.lower()
        for effect in cls:
            if effect.value == value_lower:
                return effect
        raise ValueError(f"Invalid effect: {value}")


class Decision(Enum):
    """Outcome of evaluating a permission set for one request."""

    ALLOW = "allow"
    EXPLICIT_DENY = "explicit_deny"
    IMPLICIT_DENY = "implicit_deny"


def is_wildcard(pattern: str) -> bool:
    """Check if a pattern ends with the trailing wildcard."""
    return pattern.endswith(WILDCARD)


def pattern_matches(pattern: str, value: str, case_sensitive: bool = True) -> bool:
    """
    Match a value against a pattern with an optional trailing wildcard.

    Args:
        pattern: Literal value, "*" or a prefix followed by "*"
        value: Concrete value to test
        case_sensitive: Compare case-sensitively (resources) or not (actions)

    Returns:
        True if the pattern covers the value
    """
    if not case_sensitive:
        pattern = pattern.lower()
        value = value.lower()
    if pattern == WILDCARD:
        return True
    if is_wildcard(pattern):
        return value.startswith(pattern[:-1])
    return pattern == value


def pattern_subsumes(general: str, specific: str, case_sensitive: bool = True) -> bool:
    """
    Check if every value matched by `specific` is also matched by `general`.

    Both arguments may be patterns. "s3:*" subsumes "s3:Get*" but not the
    other way round.
    """
    if not case_sensitive:
        general = general.lower()
        specific = specific.lower()
    if general == WILDCARD:
        return True
    if is_wildcard(general):
        return specific.startswith(general[:-1])
    return general == specific


def pattern_specificity(pattern: str) -> tuple[int, int]:
    """Rank a pattern: exact patterns first, then by literal prefix length."""
    if is_wildcard(pattern):
        return (0, len(pattern) - 1)
    return (1, len(pattern))


def _to_frozenset(values: str | Iterable[str]) -> frozenset[str]:
    if isinstance(values, str):
        return frozenset([values])
    return frozenset(values)


@dataclass(frozen=True)
class PermissionStatement:
    """
    One allow or deny rule.

    Attributes:
        effect: Allow or Deny
        actions: Action patterns (support a trailing wildcard)
        resources: Resource patterns (support a trailing wildcard)
        conditions: Condition key to value mapping, informational only
        sid: Optional statement identifier
    """

    effect: Effect
    actions: frozenset[str]
    resources: frozenset[str]
    conditions: dict[str, Any] = field(default_factory=dict, hash=False)
    sid: str | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "actions", _to_frozenset(self.actions))
        object.__setattr__(self, "resources", _to_frozenset(self.resources))
        if not self.actions:
            raise ValueError("Permission statement requires at least one action")
        if not self.resources:
            raise ValueError("Permission statement requires at least one resource")

    @classmethod
    def allow(
        cls,
        actions: str | Iterable[str],
        resources: str | Iterable[str],
        conditions: dict[str, Any] | None = None,
        sid: str | None = None,
    ) -> PermissionStatement:
        """Create an Allow statement."""
        return cls(
            effect=Effect.ALLOW,
            actions=_to_frozenset(actions),
            resources=_to_frozenset(resources),
            conditions=dict(conditions or {}),
            sid=sid,
        )

    @classmethod
    def deny(
        cls,
        actions: str | Iterable[str],
        resources: str | Iterable[str],
        conditions: dict[str, Any] | None = None,
        sid: str | None = None,
    ) -> PermissionStatement:
        """Create a Deny statement."""
        return cls(
            effect=Effect.DENY,
            actions=_to_frozenset(actions),
            resources=_to_frozenset(resources),
            conditions=dict(conditions or {}),
            sid=sid,
        )

    @property
    def is_allow(self) -> bool:
        """Check if this is an Allow statement."""
        return self.effect == Effect.ALLOW

    @property
    def is_deny(self) -> bool:
        """Check if this is a Deny statement."""
        return self.effect == Effect.DENY

    def matching_action(self, action: str) -> str | None:
        """Return the most specific action pattern matching `action`."""
        matches = [
            p for p in self.actions if pattern_matches(p, action, case_sensitive=False)
        ]
        if not matches:
            return None
        return max(matches, key=lambda p: (pattern_specificity(p), p))

    def matching_resource(self, resource: str) -> str | None:
        """Return the most specific resource pattern matching `resource`."""
        matches = [p for p in self.resources if pattern_matches(p, resource)]
        if not matches:
            return None
        return max(matches, key=lambda p: (pattern_specificity(p), p))

    def matches(self, action: str, resource: str) -> bool:
        """Check if this statement applies to an (action, resource) pair."""
        return (
            self.matching_action(action) is not None
            and self.matching_resource(resource) is not None
        )

    def match_specificity(self, action: str, resource: str) -> tuple[int, int]:
        """
        Specificity of this statement for a request it matches.

        Sums the rank of the best matching action and resource patterns.
        """
        action_pattern = self.matching_action(action)
        resource_pattern = self.matching_resource(resource)
        if action_pattern is None or resource_pattern is None:
            return (-1, -1)
        a_exact, a_len = pattern_specificity(action_pattern)
        r_exact, r_len = pattern_specificity(resource_pattern)
        return (a_exact + r_exact, a_len + r_len)

    def subsumes(self, other: PermissionStatement) -> bool:
        """Check if every request matched by `other` is matched by this statement."""
        actions_covered = all(
            any(pattern_subsumes(mine, theirs, case_sensitive=False) for mine in self.actions)
            for theirs in other.actions
        )
        if not actions_covered:
            return False
        return all(
            any(pattern_subsumes(mine, theirs) for mine in self.resources)
            for theirs in other.resources
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        data: dict[str, Any] = {
            "effect": self.effect.value,
            "actions": sorted(self.actions),
            "resources": sorted(self.resources),
        }
        if self.conditions:
            data["conditions"] = self.conditions
        if self.sid:
            data["sid"] = self.sid
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> PermissionStatement:
        """Create from the normalized dictionary form."""
        return cls(
            effect=Effect.from_string(data.get("effect", "allow")),
            actions=_to_frozenset(data["actions"]),
            resources=_to_frozenset(data["resources"]),
            conditions=dict(data.get("conditions") or {}),
            sid=data.get("sid"),
        )


@dataclass(frozen=True)
class Evaluation:
    """
    Result of evaluating a request against a permission set.

    Attributes:
        decision: Final decision
        statement_index: Index of the deciding statement (None when no
            statement matched)
    """

    decision: Decision
    statement_index: int | None = None

    @property
    def allowed(self) -> bool:
        """Check if the request is allowed."""
        return self.decision == Decision.ALLOW


@dataclass(frozen=True)
class PermissionSet:
    """
    Ordered permission statements granted to one principal.

    Attributes:
        principal_id: Principal these statements apply to
        statements: Statements in declaration order
    """

    principal_id: str
    statements: tuple[PermissionStatement, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "statements", tuple(self.statements))

    def __len__(self) -> int:
        return len(self.statements)

    def __iter__(self) -> Iterator[PermissionStatement]:
        return iter(self.statements)

    @property
    def allow_statements(self) -> list[tuple[int, PermissionStatement]]:
        """Allow statements with their index."""
        return [(i, s) for i, s in enumerate(self.statements) if s.is_allow]

    @property
    def deny_statements(self) -> list[tuple[int, PermissionStatement]]:
        """Deny statements with their index."""
        return [(i, s) for i, s in enumerate(self.statements) if s.is_deny]

    def evaluate(
        self, action: str, resource: str, unconditional_only: bool = False
    ) -> Evaluation:
        """
        Evaluate a request against the statements.

        Any matching Deny overrides every Allow. Among matching statements of
        the deciding effect, the most specific wins; equal specificity goes
        to the lowest index.

        Conditions are not evaluated. With unconditional_only, Deny
        statements carrying conditions are skipped.

        Args:
            action: Concrete action requested
            resource: Concrete resource requested
            unconditional_only: Ignore Deny statements that have conditions

        Returns:
            Evaluation with the decision and the deciding statement index
        """
        denies: list[tuple[tuple[int, int], int]] = []
        allows: list[tuple[tuple[int, int], int]] = []

        for index, statement in enumerate(self.statements):
            if not statement.matches(action, resource):
                continue
            if unconditional_only and statement.is_deny and statement.conditions:
                continue
            specificity = statement.match_specificity(action, resource)
            if statement.is_deny:
                denies.append((specificity, index))
            else:
                allows.append((specificity, index))

        if denies:
            return Evaluation(Decision.EXPLICIT_DENY, _most_specific(denies))
        if allows:
            return Evaluation(Decision.ALLOW, _most_specific(allows))
        return Evaluation(Decision.IMPLICIT_DENY)

    def allows(self, action: str, resource: str, unconditional_only: bool = False) -> bool:
        """Check if a request would be allowed."""
        return self.evaluate(action, resource, unconditional_only).allowed

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "principal_id": self.principal_id,
            "statements": [s.to_dict() for s in self.statements],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> PermissionSet:
        """Create from dictionary."""
        return cls(
            principal_id=data["principal_id"],
            statements=tuple(
                PermissionStatement.from_dict(s) for s in data.get("statements", [])
            ),
        )


def _most_specific(candidates: list[tuple[tuple[int, int], int]]) -> int:
    best = max(candidates, key=lambda c: (c[0], -c[1]))
    return best[1]
