"""
Policy validation for Warden.

Detects wildcard grants, role-passing hazards and allow statements
neutralized by denies.
"""

from warden.validator.rules import (
    DEFAULT_PASS_ROLE_ACTIONS,
    DEFAULT_READ_ONLY_PREFIXES,
    RuleContext,
)
from warden.validator.validator import (
    PolicyValidator,
    validate,
)

__all__ = [
    "DEFAULT_PASS_ROLE_ACTIONS",
    "DEFAULT_READ_ONLY_PREFIXES",
    "PolicyValidator",
    "RuleContext",
    "validate",
]
