"""Risk scoring for Warden."""

from warden.scoring.scorer import (
    USAGE_FINDING_KINDS,
    RiskScorer,
    overall_score,
    score,
)

__all__ = [
    "USAGE_FINDING_KINDS",
    "RiskScorer",
    "overall_score",
    "score",
]
