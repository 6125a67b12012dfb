"""
Least-privilege reduction for Warden.

Compares observed usage with granted permissions to produce minimal
permission sets, policy gaps and excess grants.
"""

from warden.reducer.reducer import (
    DEFAULT_MERGE_THRESHOLD,
    PolicyReducer,
    PrincipalReduction,
    ReductionResult,
    minimal_statements,
    reduce,
    resource_classes,
)

__all__ = [
    "DEFAULT_MERGE_THRESHOLD",
    "PolicyReducer",
    "PrincipalReduction",
    "ReductionResult",
    "minimal_statements",
    "reduce",
    "resource_classes",
]
