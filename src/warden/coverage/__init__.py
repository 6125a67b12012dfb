"""
Coverage aggregation for Warden.

Turns an activity record feed into the set of actions each principal
actually exercised, bounded by an analysis window.
"""

from warden.coverage.index import (
    CoverageIndex,
    CoverageStats,
    build,
)
from warden.coverage.window import (
    AnalysisWindow,
    WindowMode,
)

__all__ = [
    "AnalysisWindow",
    "CoverageIndex",
    "CoverageStats",
    "WindowMode",
    "build",
]
