"""
Least-privilege analysis pipeline for Warden.

Runs one batch analysis over a closed activity feed and a closed set of
permission sets:

    records -> coverage index -> reduction -> validation -> scoring -> report

Everything between ingestion and the report is pure and in-memory; per
principal work runs on a thread pool and the report is assembled on the
calling thread once every principal is done.
"""

from __future__ import annotations

import time
import uuid
from datetime import datetime, timezone
from typing import Iterable, Mapping

from warden.config.analysis_config import AnalysisConfig
from warden.coverage.index import CoverageIndex, build
from warden.models.activity import ActivityRecord
from warden.models.finding import Finding, FindingKind, Severity
from warden.models.statement import PermissionSet
from warden.observability.logging import get_logger
from warden.reducer.reducer import PolicyReducer, PrincipalReduction, ReductionResult
from warden.reporting.report import Report, assemble
from warden.scoring.scorer import RiskScorer
from warden.validator.rules import describe_statement
from warden.validator.validator import PolicyValidator

logger = get_logger(__name__)


def usage_findings(reduction: PrincipalReduction) -> list[Finding]:
    """
    Findings derived from reduction output.

    Gaps become UNGRANTED_USAGE (medium) and excess grants become
    UNUSED_GRANT (low).
    """
    findings: list[Finding] = []
    for entry in reduction.gaps:
        findings.append(
            Finding(
                kind=FindingKind.UNGRANTED_USAGE,
                severity=Severity.MEDIUM,
                principal_id=reduction.principal_id,
                subject=entry,
                message=(
                    f"{entry.action} on {entry.resource_id} was used "
                    f"{entry.occurrence_count} time(s) but is not granted"
                ),
            )
        )
    for ref in reduction.excess:
        findings.append(
            Finding(
                kind=FindingKind.UNUSED_GRANT,
                severity=Severity.LOW,
                principal_id=reduction.principal_id,
                subject=ref,
                message=(
                    f"Statement {ref.index} ({describe_statement(ref.statement)}) "
                    f"was not exercised in the analysis window"
                ),
            )
        )
    return findings


class LeastPrivilegeAnalyzer:
    """
    Analyzer comparing granted permissions with observed activity.

    Produces an immutable Report with minimal permission sets, gaps,
    excess grants, validator findings and risk scores per principal.
    """

    def __init__(self, config: AnalysisConfig | None = None):
        """
        Initialize the analyzer.

        Args:
            config: Optional analysis configuration
        """
        self._config = config or AnalysisConfig()
        self._reducer = PolicyReducer(
            merge_threshold=self._config.merge_threshold,
            max_workers=self._config.max_workers,
        )
        self._validator = PolicyValidator(
            pass_role_actions=self._config.validation.pass_role_actions,
            read_only_prefixes=self._config.validation.read_only_prefixes,
            max_workers=self._config.max_workers,
        )
        self._scorer = RiskScorer(self._config.scoring)

    @property
    def config(self) -> AnalysisConfig:
        """Get the analysis configuration."""
        return self._config

    def build_index(self, records: Iterable[ActivityRecord]) -> CoverageIndex:
        """Build the coverage index using the configured window."""
        return build(
            records,
            window=self._config.window.to_window(),
            max_workers=self._config.max_workers,
        )

    def analyze(
        self,
        records: Iterable[ActivityRecord],
        existing: Mapping[str, PermissionSet] | None = None,
        generated_at: datetime | None = None,
        diagnostics: Iterable[str] = (),
    ) -> Report:
        """
        Run a full analysis.

        Args:
            records: Activity record feed
            existing: Current permission set per principal
            generated_at: Report timestamp (defaults to now)
            diagnostics: Adapter diagnostics to include in the report

        Returns:
            Fully assembled Report

        Raises:
            AssemblyError: If intermediate results disagree on principals
        """
        analysis_id = f"lp-{uuid.uuid4().hex[:12]}"
        started = time.monotonic()
        records = list(records)
        existing = dict(existing or {})

        logger.analysis_started(analysis_id, len(records), len(existing))

        try:
            index = self.build_index(records)
            reduction = self._reducer.reduce(index, existing)
            findings = self.collect_findings(reduction, existing)
            scores = self.score(reduction, findings)
            report = assemble(
                reduction,
                findings,
                scores,
                generated_at or datetime.now(timezone.utc),
                diagnostics=diagnostics,
            )
        except Exception as e:
            logger.analysis_failed(analysis_id, str(e))
            raise

        logger.analysis_completed(
            analysis_id,
            principal_count=len(report.per_principal),
            finding_count=len(report.findings),
            overall_score=report.overall_score,
            duration_seconds=round(time.monotonic() - started, 3),
        )
        return report

    def collect_findings(
        self,
        reduction: ReductionResult,
        existing: Mapping[str, PermissionSet],
    ) -> dict[str, list[Finding]]:
        """Validator findings plus usage findings for every reduced principal."""
        validator_findings = self._validator.validate_all(
            {p: s for p, s in existing.items() if p in reduction.reductions}
        )
        findings: dict[str, list[Finding]] = {}
        for principal_id in reduction.principals:
            findings[principal_id] = [
                *validator_findings.get(principal_id, ()),
                *usage_findings(reduction.reductions[principal_id]),
            ]
        return findings

    def score(
        self,
        reduction: ReductionResult,
        findings: Mapping[str, list[Finding]],
    ) -> dict[str, float]:
        """Risk score per principal."""
        return {
            principal_id: self._scorer.score(
                findings.get(principal_id, []),
                reduction.reductions[principal_id].gaps,
                reduction.reductions[principal_id].excess,
            )
            for principal_id in reduction.principals
        }


def analyze(
    records: Iterable[ActivityRecord],
    existing: Mapping[str, PermissionSet] | None = None,
    config: AnalysisConfig | None = None,
) -> Report:
    """Run an analysis with the given (or default) configuration."""
    return LeastPrivilegeAnalyzer(config).analyze(records, existing)
