"""
Activity log sources for Warden.

Loads activity records from local files and from CloudTrail objects in S3.
Files may hold CloudTrail digests ({"Records": [...]}), JSON arrays, or
JSON lines, optionally gzip-compressed; each item may be either a raw
CloudTrail event or a normalized activity record.
"""

from __future__ import annotations

import gzip
import json
import logging
from pathlib import Path
from typing import Any, Iterator

import boto3
from botocore.exceptions import ClientError

from warden.adapters.base import Diagnostic, LoadResult, parse_items
from warden.adapters.cloudtrail import event_to_record, is_cloudtrail_event
from warden.models.activity import ActivityRecord

logger = logging.getLogger(__name__)


def record_from_any(item: Any) -> ActivityRecord:
    """Parse a raw CloudTrail event or a normalized record."""
    if is_cloudtrail_event(item):
        return event_to_record(item)
    return ActivityRecord.from_dict(item)


def decode_payload(text: str, source: str) -> tuple[list[Any], list[Diagnostic]]:
    """
    Split a log payload into raw items.

    Args:
        text: File or object contents
        source: Source label for diagnostics

    Returns:
        (items, diagnostics) where diagnostics cover undecodable lines
    """
    stripped = text.strip()
    if not stripped:
        return [], []

    try:
        data = json.loads(stripped)
    except json.JSONDecodeError:
        data = None
    else:
        if isinstance(data, dict) and "Records" in data:
            return list(data.get("Records") or []), []
        if isinstance(data, list):
            return data, []
        return [data], []

    items: list[Any] = []
    diagnostics: list[Diagnostic] = []
    for position, line in enumerate(stripped.splitlines()):
        if not line.strip():
            continue
        try:
            items.append(json.loads(line))
        except json.JSONDecodeError as e:
            diagnostics.append(
                Diagnostic(source=source, message=f"Invalid JSON: {e.msg}", position=position)
            )
            logger.warning(f"Skipped undecodable line {position} in {source}: {e.msg}")
    return items, diagnostics


def _read_bytes(raw: bytes, name: str) -> str:
    if name.endswith(".gz"):
        raw = gzip.decompress(raw)
    return raw.decode("utf-8")


def load_activity_file(path: str) -> LoadResult:
    """
    Load activity records from a local file.

    Args:
        path: JSON, JSON lines or gzip-compressed file

    Returns:
        LoadResult with parsed records and diagnostics for skipped items
    """
    file_path = Path(path).expanduser()
    text = _read_bytes(file_path.read_bytes(), file_path.name)
    items, diagnostics = decode_payload(text, str(file_path))

    result = parse_items(items, record_from_any, str(file_path))
    result.diagnostics[:0] = diagnostics
    logger.info(
        f"Loaded {len(result.records)} activity records from {file_path} "
        f"({result.skipped} skipped)"
    )
    return result


class S3LogSource:
    """
    CloudTrail log source backed by an S3 bucket.

    Reads every object under a prefix; objects ending in ".gz" are
    decompressed. Only reads are ever issued against the bucket.

    Attributes:
        bucket: S3 bucket name
        prefix: Key prefix to read
        region: AWS region
    """

    def __init__(
        self,
        bucket: str,
        prefix: str = "",
        region: str = "us-east-1",
        client: Any = None,
    ) -> None:
        """
        Initialize the S3 log source.

        Args:
            bucket: Bucket holding CloudTrail logs
            prefix: Key prefix (e.g. "AWSLogs/123456789012/CloudTrail/")
            region: AWS region
            client: Optional pre-built S3 client
        """
        self.bucket = bucket
        self.prefix = prefix
        self.region = region
        self._client = client

    def _get_s3_client(self) -> Any:
        """Get or create S3 client."""
        if self._client is None:
            self._client = boto3.client("s3", region_name=self.region)
        return self._client

    def iter_keys(self) -> Iterator[str]:
        """Yield object keys under the prefix."""
        client = self._get_s3_client()
        paginator = client.get_paginator("list_objects_v2")
        try:
            for page in paginator.paginate(Bucket=self.bucket, Prefix=self.prefix):
                for obj in page.get("Contents", []):
                    yield obj["Key"]
        except ClientError as e:
            self._raise_for(e, self.prefix)

    def read_object(self, key: str) -> str:
        """Read and decompress a single log object."""
        client = self._get_s3_client()
        try:
            response = client.get_object(Bucket=self.bucket, Key=key)
        except ClientError as e:
            self._raise_for(e, key)
        return _read_bytes(response["Body"].read(), key)

    def load(self) -> LoadResult:
        """
        Load all activity records under the prefix.

        Returns:
            LoadResult with parsed records and diagnostics for skipped items
        """
        result = LoadResult()
        object_count = 0
        for key in self.iter_keys():
            object_count += 1
            source = f"s3://{self.bucket}/{key}"
            try:
                text = self.read_object(key)
            except (OSError, UnicodeDecodeError) as e:
                result.diagnostics.append(Diagnostic(source=source, message=str(e)))
                logger.warning(f"Skipped unreadable object {source}: {e}")
                continue

            items, diagnostics = decode_payload(text, source)
            result.diagnostics.extend(diagnostics)
            result.extend(parse_items(items, record_from_any, source))

        logger.info(
            f"Loaded {len(result.records)} activity records from "
            f"{object_count} objects in s3://{self.bucket}/{self.prefix} "
            f"({result.skipped} skipped)"
        )
        return result

    def _raise_for(self, error: ClientError, key: str) -> None:
        error_code = error.response.get("Error", {}).get("Code", "Unknown")
        if error_code == "AccessDenied":
            raise PermissionError(
                f"Access denied when reading s3://{self.bucket}/{key}"
            ) from error
        if error_code == "NoSuchBucket":
            raise FileNotFoundError(f"Bucket does not exist: {self.bucket}") from error
        raise error
