"""
Reporting for Warden.

Assembles the immutable analysis report handed to report sinks.
"""

from warden.reporting.report import (
    AssemblyError,
    InconsistentPrincipalSetError,
    PrincipalReport,
    Report,
    assemble,
)

__all__ = [
    "AssemblyError",
    "InconsistentPrincipalSetError",
    "PrincipalReport",
    "Report",
    "assemble",
]
