"""
Validation rules for permission statements.

Each rule looks at one statement (with its permission set for context) and
returns zero or more findings. Rules are independent of each other and of
usage data.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable

from warden.models.finding import Finding, FindingKind, Severity, StatementRef
from warden.models.statement import WILDCARD, PermissionSet, PermissionStatement, pattern_matches

DEFAULT_PASS_ROLE_ACTIONS = ("iam:PassRole",)

DEFAULT_READ_ONLY_PREFIXES = (
    "get",
    "list",
    "describe",
    "read",
    "head",
    "view",
    "lookup",
    "search",
    "query",
    "batchget",
    "select",
)


@dataclass(frozen=True)
class RuleContext:
    """
    Settings shared by all rules.

    Attributes:
        pass_role_actions: Actions that hand a role to another service
        read_only_prefixes: Verb prefixes that mark an action as read-only
    """

    pass_role_actions: tuple[str, ...] = DEFAULT_PASS_ROLE_ACTIONS
    read_only_prefixes: tuple[str, ...] = DEFAULT_READ_ONLY_PREFIXES

    def is_read_only(self, action: str) -> bool:
        """Check if an action pattern only grants read access."""
        verb = action.split(":", 1)[-1].lower()
        if not verb or verb == WILDCARD:
            return False
        return verb.startswith(tuple(p.lower() for p in self.read_only_prefixes))


Rule = Callable[[StatementRef, PermissionSet, RuleContext], list[Finding]]


def is_service_wildcard(action: str) -> bool:
    """Check if an action pattern is "*" or "service:*"."""
    return action == WILDCARD or action.endswith(":" + WILDCARD)


def check_wildcard_action(
    ref: StatementRef, permission_set: PermissionSet, context: RuleContext
) -> list[Finding]:
    """Allow statements granting every action, or every action of a service."""
    statement = ref.statement
    if not statement.is_allow:
        return []
    wildcards = sorted(a for a in statement.actions if is_service_wildcard(a))
    if not wildcards:
        return []
    return [
        Finding(
            kind=FindingKind.WILDCARD_ACTION,
            severity=Severity.HIGH,
            principal_id=ref.principal_id,
            subject=ref,
            message=(
                f"Statement {ref.index} allows wildcard action(s): "
                f"{', '.join(wildcards)}"
            ),
        )
    ]


def check_wildcard_resource(
    ref: StatementRef, permission_set: PermissionSet, context: RuleContext
) -> list[Finding]:
    """Allow statements applying to every resource."""
    statement = ref.statement
    if not statement.is_allow or WILDCARD not in statement.resources:
        return []

    write_actions = sorted(a for a in statement.actions if not context.is_read_only(a))
    if write_actions:
        severity = Severity.HIGH
        message = (
            f"Statement {ref.index} allows non-read action(s) on all resources: "
            f"{', '.join(write_actions[:5])}"
        )
    else:
        severity = Severity.MEDIUM
        message = f"Statement {ref.index} allows read-only actions on all resources"

    return [
        Finding(
            kind=FindingKind.WILDCARD_RESOURCE,
            severity=severity,
            principal_id=ref.principal_id,
            subject=ref,
            message=message,
        )
    ]


def check_pass_role(
    ref: StatementRef, permission_set: PermissionSet, context: RuleContext
) -> list[Finding]:
    """Role passing allowed without naming specific roles."""
    statement = ref.statement
    if not statement.is_allow:
        return []

    granting = sorted(
        a
        for a in statement.actions
        if any(
            pattern_matches(a, target, case_sensitive=False)
            for target in context.pass_role_actions
        )
    )
    if not granting:
        return []

    unconstrained = sorted(r for r in statement.resources if WILDCARD in r)
    if not unconstrained:
        return []

    return [
        Finding(
            kind=FindingKind.PASS_ROLE_HAZARD,
            severity=Severity.CRITICAL,
            principal_id=ref.principal_id,
            subject=ref,
            message=(
                f"Statement {ref.index} allows {', '.join(granting)} on "
                f"unconstrained role resource(s): {', '.join(unconstrained)}"
            ),
        )
    ]


def check_deny_overlap(
    ref: StatementRef, permission_set: PermissionSet, context: RuleContext
) -> list[Finding]:
    """Allow statements made inert by an unconditional Deny."""
    statement = ref.statement
    if not statement.is_allow:
        return []

    for deny_index, deny in permission_set.deny_statements:
        if deny.conditions:
            continue
        if deny.subsumes(statement):
            return [
                Finding(
                    kind=FindingKind.DENY_OVERLAP,
                    severity=Severity.LOW,
                    principal_id=ref.principal_id,
                    subject=ref,
                    message=(
                        f"Statement {ref.index} is fully overridden by deny "
                        f"statement {deny_index} and has no effect"
                    ),
                )
            ]
    return []


DEFAULT_RULES: tuple[Rule, ...] = (
    check_wildcard_action,
    check_wildcard_resource,
    check_pass_role,
    check_deny_overlap,
)


def statement_refs(permission_set: PermissionSet) -> list[StatementRef]:
    """Wrap every statement of a set in a StatementRef."""
    return [
        StatementRef(principal_id=permission_set.principal_id, index=i, statement=s)
        for i, s in enumerate(permission_set.statements)
    ]


def describe_statement(statement: PermissionStatement) -> str:
    """Short one-line rendering used in messages and tables."""
    actions = ",".join(sorted(statement.actions))
    resources = ",".join(sorted(statement.resources))
    return f"{statement.effect.value.capitalize()} {actions} on {resources}"
