"""
poolhook Configuration

Loads all sections of hook.toml.
Environment variables override TOML values.
"""

from .loader import (
    HookConfig,
    GuardConfig,
    FeeConfig,
    GovernanceConfig,
    OracleConfig,
    LoggingConfig,
    load_config,
)

__all__ = [
    "HookConfig",
    "GuardConfig",
    "FeeConfig",
    "GovernanceConfig",
    "OracleConfig",
    "LoggingConfig",
    "load_config",
]
