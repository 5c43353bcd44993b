"""
Test suite for configuration loading and logging setup

Covers:
  - Defaults mirror the protocol constants
  - TOML loading, missing file, malformed file
  - Environment overrides, malformed overrides, value normalization
  - Validation errors
  - Logging configuration and terminal-safe formatting
"""

import logging

import pytest

from poolhook.config import GuardConfig, HookConfig, LoggingConfig, load_config
from poolhook.constants import COOLDOWN_SECONDS, MAX_SLIPPAGE_BPS, ONE_DAY, ORACLE_PERIOD
from poolhook.exceptions import ConfigurationError
from poolhook.logger import TerminalSafeFormatter, apply_logging_config, get_logger


SAMPLE_TOML = """
[guard]
cooldown_seconds = 30
realized_slippage_mode = "strict"

[fees]
protocol_fee_bps = 25

[governance]
min_delay = 3600
require_approval = true

[oracle]
period = 600
max_lookback_buckets = 3
"""


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in (
        "POOLHOOK_COOLDOWN_SECONDS",
        "POOLHOOK_MAX_SLIPPAGE_BPS",
        "POOLHOOK_REALIZED_SLIPPAGE_MODE",
        "POOLHOOK_PROTOCOL_FEE_BPS",
        "POOLHOOK_ORACLE_PERIOD",
        "POOLHOOK_LOG_LEVEL",
        "POOLHOOK_CONFIG",
    ):
        monkeypatch.delenv(name, raising=False)
    yield
    apply_logging_config(LoggingConfig())


class TestDefaults:

    def test_defaults(self):
        cfg = HookConfig()
        assert cfg.guard.cooldown_seconds == COOLDOWN_SECONDS
        assert cfg.guard.max_slippage_bps == MAX_SLIPPAGE_BPS
        assert not cfg.guard.strict_realized_slippage
        assert cfg.governance.min_delay == ONE_DAY
        assert cfg.governance.max_delay == 30 * ONE_DAY
        assert cfg.oracle.period == ORACLE_PERIOD
        assert cfg.validate()

    def test_to_dict(self):
        data = HookConfig().to_dict()
        assert data["guard"]["realized_slippage_mode"] == "advisory"
        assert data["fees"]["protocol_fee_bps"] == 0


class TestLoading:

    def test_load_from_file(self, tmp_path):
        path = tmp_path / "hook.toml"
        path.write_text(SAMPLE_TOML)
        cfg = load_config(str(path))
        assert cfg.guard.cooldown_seconds == 30
        assert cfg.guard.strict_realized_slippage
        assert cfg.guard.max_slippage_bps == MAX_SLIPPAGE_BPS
        assert cfg.fees.protocol_fee_bps == 25
        assert cfg.governance.min_delay == 3600
        assert cfg.governance.require_approval is True
        assert cfg.oracle.period == 600
        assert cfg.oracle.max_lookback_buckets == 3

    def test_missing_file_yields_defaults(self, tmp_path):
        cfg = load_config(str(tmp_path / "absent.toml"))
        assert cfg.guard.cooldown_seconds == COOLDOWN_SECONDS

    def test_path_from_environment(self, tmp_path, monkeypatch):
        path = tmp_path / "custom.toml"
        path.write_text(SAMPLE_TOML)
        monkeypatch.setenv("POOLHOOK_CONFIG", str(path))
        assert load_config().fees.protocol_fee_bps == 25

    def test_malformed_file(self, tmp_path):
        path = tmp_path / "hook.toml"
        path.write_text("[guard\ncooldown_seconds = ")
        with pytest.raises(ConfigurationError, match="Malformed"):
            load_config(str(path))


class TestEnvironmentOverrides:

    def test_env_overrides_file(self, tmp_path, monkeypatch):
        path = tmp_path / "hook.toml"
        path.write_text(SAMPLE_TOML)
        monkeypatch.setenv("POOLHOOK_COOLDOWN_SECONDS", "120")
        monkeypatch.setenv("POOLHOOK_REALIZED_SLIPPAGE_MODE", "ADVISORY")
        monkeypatch.setenv("POOLHOOK_ORACLE_PERIOD", "1800")
        monkeypatch.setenv("POOLHOOK_LOG_LEVEL", "debug")
        cfg = load_config(str(path))
        assert cfg.guard.cooldown_seconds == 120
        assert not cfg.guard.strict_realized_slippage
        assert cfg.oracle.period == 1800
        assert cfg.logging.level == "DEBUG"

    @pytest.mark.parametrize("name", [
        "POOLHOOK_COOLDOWN_SECONDS",
        "POOLHOOK_MAX_SLIPPAGE_BPS",
        "POOLHOOK_PROTOCOL_FEE_BPS",
        "POOLHOOK_ORACLE_PERIOD",
    ])
    def test_malformed_integer_override(self, tmp_path, monkeypatch, name):
        monkeypatch.setenv(name, "sixty")
        with pytest.raises(ConfigurationError, match=name):
            load_config(str(tmp_path / "absent.toml"))

    def test_file_values_normalized_like_env(self, tmp_path):
        path = tmp_path / "hook.toml"
        path.write_text('[guard]\nrealized_slippage_mode = "Strict"\n\n[logging]\nlevel = "warning"\n')
        cfg = load_config(str(path))
        assert cfg.guard.strict_realized_slippage
        assert cfg.logging.level == "WARNING"


class TestValidation:

    def test_non_integer_file_value(self, tmp_path):
        path = tmp_path / "hook.toml"
        path.write_text('[guard]\ncooldown_seconds = "soon"\n')
        with pytest.raises(ConfigurationError, match="cooldown_seconds"):
            load_config(str(path))

    def test_unknown_slippage_mode(self):
        cfg = HookConfig(guard=GuardConfig(realized_slippage_mode="lenient"))
        with pytest.raises(ConfigurationError):
            cfg.validate()

    def test_protocol_fee_cap(self, tmp_path):
        path = tmp_path / "hook.toml"
        path.write_text("[fees]\nprotocol_fee_bps = 5000\n")
        with pytest.raises(ConfigurationError):
            load_config(str(path))

    def test_inverted_delays(self, tmp_path):
        path = tmp_path / "hook.toml"
        path.write_text("[governance]\nmin_delay = 100\nmax_delay = 50\n")
        with pytest.raises(ConfigurationError):
            load_config(str(path))

    def test_unknown_log_level(self):
        cfg = HookConfig(logging=LoggingConfig(level="LOUD"))
        with pytest.raises(ConfigurationError):
            cfg.validate()


class TestLogging:

    def test_apply_logging_config_sets_level(self):
        apply_logging_config(LoggingConfig(level="WARNING", file_output=False))
        assert logging.getLogger().level == logging.WARNING
        apply_logging_config(LoggingConfig(level="INFO", file_output=False))
        assert logging.getLogger().level == logging.INFO

    def test_load_config_applies_logging_section(self, tmp_path):
        path = tmp_path / "hook.toml"
        path.write_text('[logging]\nlevel = "ERROR"\n')
        load_config(str(path))
        assert logging.getLogger().level == logging.ERROR

    def test_get_logger_returns_named_logger(self):
        assert get_logger("poolhook.test").name == "poolhook.test"

    def test_formatter_strips_control_characters(self):
        assert "\x1b" not in TerminalSafeFormatter.sanitize("pool\x1b[31m red")
