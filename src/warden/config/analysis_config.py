"""
Analysis configuration for Warden.

Provides configuration for the analysis window, resource merging, risk
weights, validation rules and worker pool size, loadable from JSON, YAML
or environment variables.
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any

import yaml

from warden.coverage.window import AnalysisWindow, WindowMode
from warden.models.activity import parse_timestamp
from warden.reducer.reducer import DEFAULT_MERGE_THRESHOLD
from warden.validator.rules import DEFAULT_PASS_ROLE_ACTIONS, DEFAULT_READ_ONLY_PREFIXES


@dataclass
class WindowConfig:
    """Configuration for the analysis window."""

    mode: WindowMode = WindowMode.SLIDING
    lookback_days: int = 90
    start: datetime | None = None
    end: datetime | None = None

    def to_window(self) -> AnalysisWindow:
        """Create the AnalysisWindow described by this configuration."""
        if self.mode == WindowMode.FIXED:
            return AnalysisWindow.fixed(self.start, self.end)
        return AnalysisWindow.sliding(self.lookback_days)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "mode": self.mode.value,
            "lookback_days": self.lookback_days,
            "start": self.start.isoformat() if self.start else None,
            "end": self.end.isoformat() if self.end else None,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> WindowConfig:
        """Create from dictionary."""
        start = data.get("start")
        end = data.get("end")
        return cls(
            mode=WindowMode(data.get("mode", "sliding")),
            lookback_days=int(data.get("lookback_days", 90)),
            start=parse_timestamp(start) if start else None,
            end=parse_timestamp(end) if end else None,
        )


@dataclass
class ScoringConfig:
    """Risk score weights."""

    critical: float = 40.0
    high: float = 15.0
    medium: float = 5.0
    low: float = 1.0
    gap: float = 10.0
    excess: float = 2.0
    cap: float = 100.0

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "critical": self.critical,
            "high": self.high,
            "medium": self.medium,
            "low": self.low,
            "gap": self.gap,
            "excess": self.excess,
            "cap": self.cap,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ScoringConfig:
        """Create from dictionary."""
        return cls(
            critical=float(data.get("critical", 40.0)),
            high=float(data.get("high", 15.0)),
            medium=float(data.get("medium", 5.0)),
            low=float(data.get("low", 1.0)),
            gap=float(data.get("gap", 10.0)),
            excess=float(data.get("excess", 2.0)),
            cap=float(data.get("cap", 100.0)),
        )


@dataclass
class ValidationConfig:
    """Configuration for policy validation rules."""

    pass_role_actions: list[str] = field(
        default_factory=lambda: list(DEFAULT_PASS_ROLE_ACTIONS)
    )
    read_only_prefixes: list[str] = field(
        default_factory=lambda: list(DEFAULT_READ_ONLY_PREFIXES)
    )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "pass_role_actions": self.pass_role_actions,
            "read_only_prefixes": self.read_only_prefixes,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ValidationConfig:
        """Create from dictionary."""
        return cls(
            pass_role_actions=list(
                data.get("pass_role_actions", DEFAULT_PASS_ROLE_ACTIONS)
            ),
            read_only_prefixes=list(
                data.get("read_only_prefixes", DEFAULT_READ_ONLY_PREFIXES)
            ),
        )


@dataclass
class AnalysisConfig:
    """
    Complete analysis configuration.

    Attributes:
        merge_threshold: Distinct resources under one prefix before the
            reducer merges them into a wildcard pattern
        max_workers: Thread pool size for per-principal work
        window: Analysis window settings
        scoring: Risk weights
        validation: Validation rule settings
    """

    merge_threshold: int = DEFAULT_MERGE_THRESHOLD
    max_workers: int = 4
    window: WindowConfig = field(default_factory=WindowConfig)
    scoring: ScoringConfig = field(default_factory=ScoringConfig)
    validation: ValidationConfig = field(default_factory=ValidationConfig)

    def __post_init__(self) -> None:
        self.validate()

    def validate(self) -> None:
        """
        Check configuration values.

        Raises:
            ValueError: If a value is out of range
        """
        if self.merge_threshold < 2:
            raise ValueError("merge_threshold must be at least 2")
        if self.max_workers < 1:
            raise ValueError("max_workers must be at least 1")
        if self.window.lookback_days < 1:
            raise ValueError("window.lookback_days must be at least 1")

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "merge_threshold": self.merge_threshold,
            "max_workers": self.max_workers,
            "window": self.window.to_dict(),
            "scoring": self.scoring.to_dict(),
            "validation": self.validation.to_dict(),
        }

    def to_json(self, indent: int = 2) -> str:
        """Convert to JSON string."""
        return json.dumps(self.to_dict(), indent=indent)

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> AnalysisConfig:
        """Create from dictionary."""
        data = data or {}
        return cls(
            merge_threshold=int(data.get("merge_threshold", DEFAULT_MERGE_THRESHOLD)),
            max_workers=int(data.get("max_workers", 4)),
            window=WindowConfig.from_dict(data.get("window", {})),
            scoring=ScoringConfig.from_dict(data.get("scoring", {})),
            validation=ValidationConfig.from_dict(data.get("validation", {})),
        )

    @classmethod
    def from_json(cls, json_str: str) -> AnalysisConfig:
        """Create from JSON string."""
        return cls.from_dict(json.loads(json_str))

    @classmethod
    def from_file(cls, path: str) -> AnalysisConfig:
        """Load configuration from a JSON or YAML file."""
        path = os.path.expanduser(path)
        with open(path, "r", encoding="utf-8") as f:
            if path.endswith(".json"):
                return cls.from_dict(json.load(f))
            return cls.from_dict(yaml.safe_load(f))

    def save(self, path: str) -> None:
        """Save configuration to a JSON or YAML file."""
        path = os.path.expanduser(path)
        Path(path).parent.mkdir(parents=True, exist_ok=True)

        with open(path, "w", encoding="utf-8") as f:
            if path.endswith(".json"):
                json.dump(self.to_dict(), f, indent=2)
            else:
                yaml.safe_dump(self.to_dict(), f, default_flow_style=False)


def _env_int(name: str) -> int | None:
    value = os.getenv(name)
    if value is None or value == "":
        return None
    try:
        return int(value)
    except ValueError as e:
        raise ValueError(f"{name} must be an integer, got {value!r}") from e


def load_config_from_env() -> AnalysisConfig:
    """
    Load configuration from environment variables.

    Environment variables:
        WARDEN_CONFIG_FILE: Path to configuration file
        WARDEN_MERGE_THRESHOLD: Resources before wildcard merging
        WARDEN_MAX_WORKERS: Thread pool size
        WARDEN_WINDOW_MODE: Window mode (fixed, sliding)
        WARDEN_LOOKBACK_DAYS: Sliding window length in days

    Returns:
        AnalysisConfig instance
    """
    config_file = os.getenv("WARDEN_CONFIG_FILE")
    if config_file and os.path.exists(config_file):
        config = AnalysisConfig.from_file(config_file)
    else:
        config = AnalysisConfig()

    merge_threshold = _env_int("WARDEN_MERGE_THRESHOLD")
    if merge_threshold is not None:
        config.merge_threshold = merge_threshold

    max_workers = _env_int("WARDEN_MAX_WORKERS")
    if max_workers is not None:
        config.max_workers = max_workers

    mode = os.getenv("WARDEN_WINDOW_MODE")
    if mode:
        config.window.mode = WindowMode(mode.lower())

    lookback = _env_int("WARDEN_LOOKBACK_DAYS")
    if lookback is not None:
        config.window.lookback_days = lookback

    config.validate()
    return config


def create_default_config() -> AnalysisConfig:
    """
    Create a default analysis configuration.

    Returns:
        AnalysisConfig with a 90-day sliding window
    """
    return AnalysisConfig(
        merge_threshold=DEFAULT_MERGE_THRESHOLD,
        max_workers=4,
        window=WindowConfig(mode=WindowMode.SLIDING, lookback_days=90),
    )
