"""
poolhook TOML Configuration Loader

Loads all sections of hook.toml with environment variable overrides.
Each [section] is a dataclass with ``from_dict`` and ``apply_env``.

Environment variable mapping:
    [guard] cooldown_seconds       → POOLHOOK_COOLDOWN_SECONDS
    [guard] max_slippage_bps       → POOLHOOK_MAX_SLIPPAGE_BPS
    [guard] realized_slippage_mode → POOLHOOK_REALIZED_SLIPPAGE_MODE
    [fees] protocol_fee_bps        → POOLHOOK_PROTOCOL_FEE_BPS
    [oracle] period                → POOLHOOK_ORACLE_PERIOD
    [logging] level                → POOLHOOK_LOG_LEVEL
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

try:
    import tomllib as tomli  # Python 3.11+
except ImportError:
    import tomli  # type: ignore[no-redef]

from ..constants import (
    COOLDOWN_SECONDS,
    DEFAULT_PROTOCOL_FEE_BPS,
    MAX_PROPOSAL_DELAY,
    MAX_PROTOCOL_FEE_BPS,
    MAX_SLIPPAGE_BPS,
    MIN_PROPOSAL_DELAY,
    ORACLE_MAX_LOOKBACK_BUCKETS,
    ORACLE_PERIOD,
)
from ..exceptions import ConfigurationError
from ..logger import apply_logging_config

logger = logging.getLogger(__name__)

SLIPPAGE_MODES = ("strict", "advisory")
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def _env_int(name: str) -> Optional[int]:
    """Integer override from the environment, or None when unset."""
    if not (v := os.environ.get(name)):
        return None
    try:
        return int(v)
    except ValueError as e:
        raise ConfigurationError(f"{name} must be an integer (got {v!r})") from e


@dataclass
class GuardConfig:
    """[guard] section."""
    cooldown_seconds: int = COOLDOWN_SECONDS
    max_slippage_bps: int = MAX_SLIPPAGE_BPS
    realized_slippage_mode: str = "advisory"

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "GuardConfig":
        return cls(
            cooldown_seconds=data.get("cooldown_seconds", COOLDOWN_SECONDS),
            max_slippage_bps=data.get("max_slippage_bps", MAX_SLIPPAGE_BPS),
            realized_slippage_mode=str(data.get("realized_slippage_mode", "advisory")).lower(),
        )

    def apply_env(self) -> None:
        if (n := _env_int("POOLHOOK_COOLDOWN_SECONDS")) is not None:
            self.cooldown_seconds = n
        if (n := _env_int("POOLHOOK_MAX_SLIPPAGE_BPS")) is not None:
            self.max_slippage_bps = n
        if v := os.environ.get("POOLHOOK_REALIZED_SLIPPAGE_MODE"):
            self.realized_slippage_mode = v.lower()

    @property
    def strict_realized_slippage(self) -> bool:
        return self.realized_slippage_mode == "strict"


@dataclass
class FeeConfig:
    """[fees] section."""
    protocol_fee_bps: int = DEFAULT_PROTOCOL_FEE_BPS

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FeeConfig":
        return cls(protocol_fee_bps=data.get("protocol_fee_bps", DEFAULT_PROTOCOL_FEE_BPS))

    def apply_env(self) -> None:
        if (n := _env_int("POOLHOOK_PROTOCOL_FEE_BPS")) is not None:
            self.protocol_fee_bps = n


@dataclass
class GovernanceConfig:
    """[governance] section."""
    min_delay: int = MIN_PROPOSAL_DELAY
    max_delay: int = MAX_PROPOSAL_DELAY
    require_approval: bool = False

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "GovernanceConfig":
        return cls(
            min_delay=data.get("min_delay", MIN_PROPOSAL_DELAY),
            max_delay=data.get("max_delay", MAX_PROPOSAL_DELAY),
            require_approval=data.get("require_approval", False),
        )


@dataclass
class OracleConfig:
    """[oracle] section."""
    period: int = ORACLE_PERIOD
    max_lookback_buckets: int = ORACLE_MAX_LOOKBACK_BUCKETS

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "OracleConfig":
        return cls(
            period=data.get("period", ORACLE_PERIOD),
            max_lookback_buckets=data.get("max_lookback_buckets", ORACLE_MAX_LOOKBACK_BUCKETS),
        )

    def apply_env(self) -> None:
        if (n := _env_int("POOLHOOK_ORACLE_PERIOD")) is not None:
            self.period = n


@dataclass
class LoggingConfig:
    """[logging] section."""
    level: str = "INFO"
    file_output: bool = False

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LoggingConfig":
        return cls(
            level=str(data.get("level", "INFO")).upper(),
            file_output=data.get("file_output", False),
        )

    def apply_env(self) -> None:
        if v := os.environ.get("POOLHOOK_LOG_LEVEL"):
            self.level = v.upper()


# ---------------------------------------------------------------------------
# Top-level config
# ---------------------------------------------------------------------------

@dataclass
class HookConfig:
    """Complete hook configuration (all sections of hook.toml)."""
    guard: GuardConfig = field(default_factory=GuardConfig)
    fees: FeeConfig = field(default_factory=FeeConfig)
    governance: GovernanceConfig = field(default_factory=GovernanceConfig)
    oracle: OracleConfig = field(default_factory=OracleConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    # --- factories --------------------------------------------------------

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "HookConfig":
        """Create HookConfig from a parsed TOML dict."""
        return cls(
            guard=GuardConfig.from_dict(data.get("guard", {})),
            fees=FeeConfig.from_dict(data.get("fees", {})),
            governance=GovernanceConfig.from_dict(data.get("governance", {})),
            oracle=OracleConfig.from_dict(data.get("oracle", {})),
            logging=LoggingConfig.from_dict(data.get("logging", {})),
        )

    @classmethod
    def from_file(cls, config_path: str) -> "HookConfig":
        """
        Load configuration from a TOML file.

        A missing file yields the defaults (with env overrides applied).
        """
        path = Path(config_path)
        if not path.exists():
            logger.warning("Config file not found: %s, using defaults", config_path)
            cfg = cls()
            cfg.apply_env()
            cfg.validate()
            return cfg

        with open(path, "rb") as f:
            try:
                raw = tomli.load(f)
            except tomli.TOMLDecodeError as e:
                raise ConfigurationError(f"Malformed config file {config_path}: {e}") from e

        cfg = cls.from_dict(raw)
        cfg.apply_env()
        cfg.validate()
        return cfg

    # --- env overrides ----------------------------------------------------

    def apply_env(self) -> None:
        """Apply environment variable overrides to all sections."""
        self.guard.apply_env()
        self.fees.apply_env()
        self.oracle.apply_env()
        self.logging.apply_env()

    # --- validation -------------------------------------------------------

    def validate(self) -> bool:
        """
        Validate all configuration sections.

        Raises:
            ConfigurationError: on invalid config
        """
        for name, value in (
            ("cooldown_seconds", self.guard.cooldown_seconds),
            ("max_slippage_bps", self.guard.max_slippage_bps),
            ("protocol_fee_bps", self.fees.protocol_fee_bps),
            ("min_delay", self.governance.min_delay),
            ("max_delay", self.governance.max_delay),
            ("period", self.oracle.period),
            ("max_lookback_buckets", self.oracle.max_lookback_buckets),
        ):
            if isinstance(value, bool) or not isinstance(value, int):
                raise ConfigurationError(f"{name} must be an integer (got {value!r})")
        if self.guard.cooldown_seconds < 0:
            raise ConfigurationError("cooldown_seconds must be >= 0")
        if not 0 <= self.guard.max_slippage_bps <= 10_000:
            raise ConfigurationError(
                f"max_slippage_bps must be in [0, 10000] (got {self.guard.max_slippage_bps})"
            )
        if self.guard.realized_slippage_mode not in SLIPPAGE_MODES:
            raise ConfigurationError(
                f"Invalid realized_slippage_mode: {self.guard.realized_slippage_mode}"
            )
        if not 0 <= self.fees.protocol_fee_bps <= MAX_PROTOCOL_FEE_BPS:
            raise ConfigurationError(
                f"protocol_fee_bps must be in [0, {MAX_PROTOCOL_FEE_BPS}]"
            )
        if not 0 < self.governance.min_delay <= self.governance.max_delay:
            raise ConfigurationError("governance delays must satisfy 0 < min_delay <= max_delay")
        if self.oracle.period < 1:
            raise ConfigurationError("oracle period must be >= 1")
        if self.oracle.max_lookback_buckets < 0:
            raise ConfigurationError("max_lookback_buckets must be >= 0")
        if self.logging.level not in LOG_LEVELS:
            raise ConfigurationError(f"Invalid log level: {self.logging.level}")
        return True

    # --- serialisation ----------------------------------------------------

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to dict (for diagnostics, NOT for re-creating TOML)."""
        return {
            "guard": {
                "cooldown_seconds": self.guard.cooldown_seconds,
                "max_slippage_bps": self.guard.max_slippage_bps,
                "realized_slippage_mode": self.guard.realized_slippage_mode,
            },
            "fees": {"protocol_fee_bps": self.fees.protocol_fee_bps},
            "governance": {
                "min_delay": self.governance.min_delay,
                "max_delay": self.governance.max_delay,
                "require_approval": self.governance.require_approval,
            },
            "oracle": {
                "period": self.oracle.period,
                "max_lookback_buckets": self.oracle.max_lookback_buckets,
            },
            "logging": {
                "level": self.logging.level,
                "file_output": self.logging.file_output,
            },
        }


# -----------------------------------------------------------------------
# Convenience function
# -----------------------------------------------------------------------

def load_config(path: Optional[str] = None) -> HookConfig:
    """
    Load hook configuration.

    Resolution order:
        1. Explicit *path* argument
        2. POOLHOOK_CONFIG env var
        3. ./hook.toml in current directory
        4. Defaults (with env overrides)

    The [logging] section is applied to the process loggers.
    """
    if path is None:
        path = os.environ.get("POOLHOOK_CONFIG", "hook.toml")

    cfg = HookConfig.from_file(path)
    apply_logging_config(cfg.logging)
    return cfg
