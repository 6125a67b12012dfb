"""
Risk scoring for Warden.

Turns validator findings, policy gaps and excess grants into a score in
[0, 100] where 100 is maximal risk.
"""

from __future__ import annotations

from typing import Iterable, Sequence

from warden.config.analysis_config import ScoringConfig
from warden.models.finding import Finding, FindingKind, Severity

# Gaps and excess are weighted directly; their findings are not counted twice.
USAGE_FINDING_KINDS = frozenset({FindingKind.UNGRANTED_USAGE, FindingKind.UNUSED_GRANT})


class RiskScorer:
    """Weighted-sum risk scorer."""

    def __init__(self, weights: ScoringConfig | None = None):
        """
        Initialize the scorer.

        Args:
            weights: Per-severity, gap and excess weights plus the cap
        """
        self._weights = weights or ScoringConfig()

    @property
    def weights(self) -> ScoringConfig:
        """Weights in use."""
        return self._weights

    def severity_weight(self, severity: Severity) -> float:
        """Weight of one finding of the given severity."""
        return {
            Severity.CRITICAL: self._weights.critical,
            Severity.HIGH: self._weights.high,
            Severity.MEDIUM: self._weights.medium,
            Severity.LOW: self._weights.low,
        }[severity]

    def score(
        self,
        findings: Iterable[Finding],
        gaps: Sequence[object] = (),
        excess: Sequence[object] = (),
    ) -> float:
        """
        Score one principal (or any slice of findings).

        Args:
            findings: Findings to weigh
            gaps: Observed-but-ungranted usage entries
            excess: Granted-but-unused statements

        Returns:
            Score between 0 and the configured cap
        """
        total = sum(
            self.severity_weight(f.severity)
            for f in findings
            if f.kind not in USAGE_FINDING_KINDS
        )
        total += len(gaps) * self._weights.gap
        total += len(excess) * self._weights.excess
        return float(min(total, self._weights.cap))

    @staticmethod
    def overall(scores: Iterable[float]) -> float:
        """Mean of per-principal scores (0 when there are none)."""
        values = list(scores)
        if not values:
            return 0.0
        return sum(values) / len(values)


def score(
    findings: Iterable[Finding],
    gaps: Sequence[object] = (),
    excess: Sequence[object] = (),
) -> float:
    """Score with the default weights."""
    return RiskScorer().score(findings, gaps, excess)


def overall_score(scores: Iterable[float]) -> float:
    """Mean of per-principal scores (0 when there are none)."""
    return RiskScorer.overall(scores)
