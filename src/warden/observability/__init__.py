"""
Observability for Warden.

Provides structured and human-readable logging for analysis runs.
"""

from warden.observability.logging import (
    HumanReadableFormatter,
    StructuredFormatter,
    WardenLogger,
    configure_logging,
    get_logger,
)

__all__ = [
    "HumanReadableFormatter",
    "StructuredFormatter",
    "WardenLogger",
    "configure_logging",
    "get_logger",
]
