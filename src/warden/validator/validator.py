"""
Policy validator for Warden.

Applies structural and risk rules to a permission set independent of any
usage data. Validation is a pure function of its input: the permission set
is never modified and findings always come back in the same order
(severity descending, then statement index ascending).
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Iterable, Mapping

from warden.models.finding import Finding, sort_findings
from warden.models.statement import PermissionSet
from warden.validator.rules import (
    DEFAULT_PASS_ROLE_ACTIONS,
    DEFAULT_READ_ONLY_PREFIXES,
    DEFAULT_RULES,
    Rule,
    RuleContext,
    statement_refs,
)

logger = logging.getLogger(__name__)


class PolicyValidator:
    """Runs validation rules over permission sets."""

    def __init__(
        self,
        pass_role_actions: Iterable[str] = DEFAULT_PASS_ROLE_ACTIONS,
        read_only_prefixes: Iterable[str] = DEFAULT_READ_ONLY_PREFIXES,
        rules: Iterable[Rule] = DEFAULT_RULES,
        max_workers: int | None = None,
    ):
        """
        Initialize the validator.

        Args:
            pass_role_actions: Actions treated as role passing
            read_only_prefixes: Verb prefixes of read-only actions
            rules: Rules to apply, in tie-break order
            max_workers: Thread pool size for validate_all
        """
        self._context = RuleContext(
            pass_role_actions=tuple(pass_role_actions),
            read_only_prefixes=tuple(read_only_prefixes),
        )
        self._rules = tuple(rules)
        self.max_workers = max_workers

    @property
    def context(self) -> RuleContext:
        """Settings passed to every rule."""
        return self._context

    def validate(self, permission_set: PermissionSet) -> tuple[Finding, ...]:
        """
        Validate one permission set.

        Args:
            permission_set: Statements to check

        Returns:
            Findings ordered by severity descending, then statement index
        """
        findings: list[Finding] = []
        for ref in statement_refs(permission_set):
            for rule in self._rules:
                findings.extend(rule(ref, permission_set, self._context))
        return tuple(sort_findings(findings))

    def validate_all(
        self, permission_sets: Mapping[str, PermissionSet]
    ) -> dict[str, tuple[Finding, ...]]:
        """
        Validate several principals' permission sets.

        Returns:
            Findings per principal id
        """
        principals = sorted(permission_sets)
        if self.max_workers and self.max_workers > 1 and len(principals) > 1:
            with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
                results = list(
                    executor.map(lambda p: self.validate(permission_sets[p]), principals)
                )
        else:
            results = [self.validate(permission_sets[p]) for p in principals]

        findings = dict(zip(principals, results))
        total = sum(len(f) for f in findings.values())
        logger.debug(f"Validated {len(principals)} permission sets: {total} findings")
        return findings


def validate(permission_set: PermissionSet) -> tuple[Finding, ...]:
    """Validate with the default rules."""
    return PolicyValidator().validate(permission_set)
