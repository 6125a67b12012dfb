"""
Warden CLI entry point.

This module provides the command-line interface for Warden.
"""

from __future__ import annotations

import argparse
import sys

from warden import __version__
from warden.cli_commands import cmd_analyze, cmd_minimize, cmd_validate
from warden.observability.logging import configure_logging


def _add_config_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--config",
        "-c",
        help="Analysis configuration file (JSON or YAML)",
    )
    parser.add_argument(
        "--merge-threshold",
        type=int,
        help="Distinct resources under one prefix before wildcarding",
    )


def _add_activity_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--activity",
        "-a",
        help="Activity log file (CloudTrail JSON, JSON lines, optionally .gz)",
    )
    parser.add_argument("--s3-bucket", help="Read CloudTrail logs from this S3 bucket")
    parser.add_argument("--s3-prefix", default="", help="Key prefix within the bucket")
    parser.add_argument(
        "--region",
        default="us-east-1",
        help="AWS region for S3 access (default: us-east-1)",
    )
    parser.add_argument(
        "--window",
        choices=["fixed", "sliding"],
        help="Analysis window mode",
    )
    parser.add_argument("--lookback-days", type=int, help="Sliding window length")
    parser.add_argument("--start", help="Fixed window start (ISO 8601)")
    parser.add_argument("--end", help="Fixed window end (ISO 8601)")


def create_parser() -> argparse.ArgumentParser:
    """Create CLI argument parser with subcommands."""
    parser = argparse.ArgumentParser(
        prog="warden",
        description="Warden - IAM least-privilege analysis",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default="WARNING",
        help="Log level (default: WARNING)",
    )
    parser.add_argument(
        "--log-format",
        choices=["human", "json"],
        default="human",
        help="Log format (default: human)",
    )

    subparsers = parser.add_subparsers(dest="command")

    analyze_parser = subparsers.add_parser(
        "analyze",
        help="Compare granted permissions with observed activity",
    )
    _add_activity_args(analyze_parser)
    _add_config_args(analyze_parser)
    analyze_parser.add_argument(
        "--policies",
        "-p",
        help="Existing policies per principal (JSON or YAML)",
    )
    analyze_parser.add_argument(
        "--format",
        choices=["table", "json"],
        default="table",
        help="Output format (default: table)",
    )
    analyze_parser.add_argument("--output", "-o", help="Write output to a file")

    validate_parser = subparsers.add_parser(
        "validate",
        help="Check policies for wildcard and role-passing risks",
    )
    _add_config_args(validate_parser)
    validate_parser.add_argument(
        "--policies",
        "-p",
        required=True,
        help="Policies per principal (JSON or YAML)",
    )
    validate_parser.add_argument(
        "--format",
        choices=["table", "json"],
        default="table",
        help="Output format (default: table)",
    )

    minimize_parser = subparsers.add_parser(
        "minimize",
        help="Generate least-privilege IAM policies from activity",
    )
    _add_activity_args(minimize_parser)
    _add_config_args(minimize_parser)
    minimize_parser.add_argument("--principal", help="Only principals matching this text")
    minimize_parser.add_argument("--output", "-o", help="Write output to a file")

    return parser


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = create_parser()
    args = parser.parse_args(argv)

    configure_logging(level=args.log_level, format=args.log_format)

    commands = {
        "analyze": cmd_analyze,
        "validate": cmd_validate,
        "minimize": cmd_minimize,
    }
    handler = commands.get(args.command)
    if handler is None:
        parser.print_help()
        return 1
    return handler(args)


if __name__ == "__main__":
    sys.exit(main())
