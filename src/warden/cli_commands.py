"""
CLI command implementations for Warden.

Each command loads its inputs through the boundary adapters, runs the
analysis core and renders the result as a table or JSON.
"""

from __future__ import annotations

import argparse
import json
import logging
from typing import Any

import yaml

from warden.adapters.base import LoadResult
from warden.adapters.iam_policy import load_policy_file, permission_set_to_document
from warden.adapters.sources import S3LogSource, load_activity_file
from warden.analyzer import LeastPrivilegeAnalyzer
from warden.config.analysis_config import AnalysisConfig, load_config_from_env
from warden.coverage.window import WindowMode
from warden.models.activity import parse_timestamp
from warden.models.statement import PermissionSet
from warden.reducer.reducer import PolicyReducer
from warden.reporting.report import AssemblyError, Report
from warden.validator.validator import PolicyValidator

logger = logging.getLogger(__name__)

_INPUT_ERRORS = (OSError, ValueError, yaml.YAMLError, AssemblyError)


def load_config(args: argparse.Namespace) -> AnalysisConfig:
    """Build the analysis configuration from file, environment and flags."""
    config_path = getattr(args, "config", None)
    config = AnalysisConfig.from_file(config_path) if config_path else load_config_from_env()

    merge_threshold = getattr(args, "merge_threshold", None)
    if merge_threshold is not None:
        config.merge_threshold = merge_threshold

    lookback_days = getattr(args, "lookback_days", None)
    if lookback_days is not None:
        config.window.lookback_days = lookback_days

    start = getattr(args, "start", None)
    end = getattr(args, "end", None)
    window = getattr(args, "window", None)
    if window:
        config.window.mode = WindowMode(window)
    if start or end:
        config.window.mode = WindowMode.FIXED
        config.window.start = parse_timestamp(start) if start else None
        config.window.end = parse_timestamp(end) if end else None

    config.validate()
    return config


def load_activity(args: argparse.Namespace) -> LoadResult:
    """Load activity records from a file or an S3 prefix."""
    bucket = getattr(args, "s3_bucket", None)
    if bucket:
        source = S3LogSource(
            bucket=bucket,
            prefix=getattr(args, "s3_prefix", "") or "",
            region=getattr(args, "region", "us-east-1"),
        )
        return source.load()

    path = getattr(args, "activity", None)
    if not path:
        raise ValueError("Either --activity or --s3-bucket is required")
    return load_activity_file(path)


def load_policies(args: argparse.Namespace) -> dict[str, PermissionSet]:
    """Load existing permission sets (empty when no file is given)."""
    path = getattr(args, "policies", None)
    if not path:
        return {}
    return load_policy_file(path)


def _emit(text: str, output: str | None) -> None:
    if output:
        with open(output, "w", encoding="utf-8") as f:
            f.write(text)
            f.write("\n")
        print(f"Written to {output}")
    else:
        print(text)


def cmd_analyze(args: argparse.Namespace) -> int:
    """Run a full least-privilege analysis."""
    output_format = getattr(args, "format", "table")

    try:
        config = load_config(args)
        activity = load_activity(args)
        policies = load_policies(args)

        analyzer = LeastPrivilegeAnalyzer(config)
        report = analyzer.analyze(
            activity.records,
            policies,
            diagnostics=[str(d) for d in activity.diagnostics],
        )
    except _INPUT_ERRORS as e:
        logger.error(f"Analysis failed: {e}")
        print(f"Error: {e}")
        return 1

    if output_format == "json":
        _emit(report.to_json(), getattr(args, "output", None))
    else:
        _emit(format_report_table(report), getattr(args, "output", None))
    return 0


def cmd_validate(args: argparse.Namespace) -> int:
    """Validate permission sets without usage data."""
    output_format = getattr(args, "format", "table")

    try:
        config = load_config(args)
        policies = load_policies(args)
    except _INPUT_ERRORS as e:
        logger.error(f"Validation failed: {e}")
        print(f"Error: {e}")
        return 1

    validator = PolicyValidator(
        pass_role_actions=config.validation.pass_role_actions,
        read_only_prefixes=config.validation.read_only_prefixes,
    )
    findings = validator.validate_all(policies)

    if output_format == "json":
        print(json.dumps({
            principal: [f.to_dict() for f in items]
            for principal, items in findings.items()
        }, indent=2))
    else:
        print("\nPolicy Validation")
        print("=" * 100)
        print(f"{'Principal':<40} {'Severity':<10} {'Kind':<20} {'Statement':<10}")
        print("-" * 100)
        total = 0
        for principal, items in findings.items():
            for finding in items:
                total += 1
                print(
                    f"{principal[:39]:<40} "
                    f"{finding.severity.value:<10} "
                    f"{finding.kind.value:<20} "
                    f"{finding.statement_index!s:<10}"
                )
        print(f"\nTotal findings: {total}")

    return 0


def cmd_minimize(args: argparse.Namespace) -> int:
    """Print least-privilege IAM policy documents per principal."""
    principal_filter = getattr(args, "principal", None)

    try:
        config = load_config(args)
        activity = load_activity(args)
    except _INPUT_ERRORS as e:
        logger.error(f"Minimization failed: {e}")
        print(f"Error: {e}")
        return 1

    analyzer = LeastPrivilegeAnalyzer(config)
    index = analyzer.build_index(activity.records)
    reduction = PolicyReducer(merge_threshold=config.merge_threshold).reduce(index)

    documents: dict[str, Any] = {}
    for principal_id, minimal in reduction.minimal_sets.items():
        if principal_filter and principal_filter.lower() not in principal_id.lower():
            continue
        documents[principal_id] = permission_set_to_document(minimal)

    _emit(json.dumps(documents, indent=2), getattr(args, "output", None))
    return 0


def format_report_table(report: Report) -> str:
    """Render a report as a human-readable table."""
    lines = [
        "",
        "Least-Privilege Analysis",
        "=" * 100,
        f"{'Principal':<45} {'Score':<8} {'Findings':<10} {'Gaps':<6} "
        f"{'Excess':<8} {'Minimal':<8}",
        "-" * 100,
    ]
    for principal_id in report.principals:
        section = report.per_principal[principal_id]
        minimal_count = len(section.minimal_set) if section.minimal_set else 0
        lines.append(
            f"{principal_id[:44]:<45} "
            f"{section.score:<8.1f} "
            f"{len(section.findings):<10} "
            f"{len(section.gaps):<6} "
            f"{len(section.excess):<8} "
            f"{minimal_count:<8}"
        )

    lines.append("")
    lines.append(f"Overall score: {report.overall_score:.1f}")
    by_severity = report.findings_by_severity
    lines.append(
        "Findings: "
        + " | ".join(
            f"{severity}: {by_severity.get(severity, 0)}"
            for severity in ("critical", "high", "medium", "low")
        )
    )
    if report.diagnostics:
        lines.append(f"Skipped input items: {len(report.diagnostics)}")
    return "\n".join(lines)
