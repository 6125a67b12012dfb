"""
Configuration management for Warden.

Provides configuration classes and utilities for the analysis window,
resource merging, risk weights and validation rules.
"""

from warden.config.analysis_config import (
    AnalysisConfig,
    ScoringConfig,
    ValidationConfig,
    WindowConfig,
    create_default_config,
    load_config_from_env,
)

__all__ = [
    "AnalysisConfig",
    "ScoringConfig",
    "ValidationConfig",
    "WindowConfig",
    "create_default_config",
    "load_config_from_env",
]
