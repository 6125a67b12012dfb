"""
Boundary adapters for Warden.

Translate provider-native inputs (CloudTrail events, IAM policy
documents, files and S3 objects) into the normalized models, and render
minimal permission sets back to IAM documents.
"""

from warden.adapters.base import (
    Diagnostic,
    LoadResult,
    parse_items,
)
from warden.adapters.cloudtrail import (
    event_to_record,
    normalize_actor,
)
from warden.adapters.iam_policy import (
    PolicyParseError,
    load_policy_file,
    parse_policy_document,
    permission_set_to_document,
)
from warden.adapters.sources import (
    S3LogSource,
    load_activity_file,
)

__all__ = [
    # Base
    "Diagnostic",
    "LoadResult",
    "parse_items",
    # CloudTrail
    "event_to_record",
    "normalize_actor",
    # IAM policies
    "PolicyParseError",
    "load_policy_file",
    "parse_policy_document",
    "permission_set_to_document",
    # Sources
    "S3LogSource",
    "load_activity_file",
]
