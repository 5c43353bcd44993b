"""
poolhook Constants

This module consolidates the protocol constants of the pool hook and the
environment configuration read from ``.env``. Constants are organized by
category for easy reference and maintenance.
"""
import ast
from dotenv import dotenv_values

# =============================================================================
# ENVIRONMENT CONFIGURATION
# =============================================================================
# Load environment variables once at module import
_config = dotenv_values(".env")

LOGGER_DEFAULTS = {
    'LOG_LEVEL':                       'INFO',
    'LOG_FORMAT':                      '%(asctime)s - %(levelname)s - %(name)s - %(message)s',
    'LOG_DATE_FORMAT':                 '%Y-%m-%dT%H:%M:%S',
    'LOG_CONSOLE_HIGHLIGHTING':        'True',
    'LOG_FILE_OUTPUT':                 'False',
}

LOG_MAX_FILE_SIZE = 10 * 1024 * 1024 # 10MB
LOG_BACKUP_COUNT = 5


# WARNING: THE VALUES BELOW ARE PART OF THE HOOK'S ECONOMIC CONTRACT. CHANGING THEM CHANGES
# WHICH OPERATIONS THE HOOK ACCEPTS; DO IT ONLY FOR TESTING OR A NEW DEPLOYMENT.

# ==================================================================================
# FIXED-POINT / NUMERIC
# ==================================================================================
PRICE_PRECISION = 10 ** 18          # last_price is token1 per token0, 18 decimals
Q96 = 2 ** 96
BPS_DENOMINATOR = 10_000
FEE_DENOMINATOR = 1_000_000         # LP fee is expressed in hundredths of a bip
MAX_RESERVE = 2 ** 128 - 1


# ==================================================================================
# PRICE / TICK BOUNDS  (Uniswap v4 TickMath)
# ==================================================================================
MIN_TICK = -887272
MAX_TICK = 887272
MIN_SQRT_PRICE = 4295128739
MAX_SQRT_PRICE = 1461446703485210103287273052203988822378723970342
MAX_TICK_SPACING = 32767
MIN_TICK_SPACING = 1


# ==================================================================================
# POOL PARAMETERS
# ==================================================================================
MIN_LIQUIDITY = 1000                # reserve floor once a pool is funded
MAX_LP_FEE = 100_000                # 10% in hundredths of a bip
MAX_PROTOCOL_FEE_BPS = 1_000        # 10% of liquidity movements
DEFAULT_PROTOCOL_FEE_BPS = 0


# ==================================================================================
# MEV GUARD
# ==================================================================================
COOLDOWN_SECONDS = 60
MAX_SLIPPAGE_BPS = 200


# ==================================================================================
# GOVERNANCE TIMELOCK
# ==================================================================================
ONE_DAY = 86_400
MIN_PROPOSAL_DELAY = ONE_DAY
MAX_PROPOSAL_DELAY = 30 * ONE_DAY


# ==================================================================================
# ORACLE
# ==================================================================================
ORACLE_PERIOD = 3600
ORACLE_MAX_LOOKBACK_BUCKETS = 5


# ==================================================================================
# CONFIGURATION WRAPPERS
# ==================================================================================
class ConfigString(str):
    """
    String subclass that stores a default value.
    """
    def __new__(cls, value, default):
        obj = str.__new__(cls, value)
        obj._default = default
        return obj

    def default(self):
        return self._default

class ConfigBool(int):
    """
    Int subclass acting as a boolean that stores a default value.
    """
    def __new__(cls, value, default):
        obj = int.__new__(cls, bool(value))
        obj._default = default
        return obj

    def default(self):
        return self._default

    def __repr__(self):
        return str(bool(self))

    def __str__(self):
        return str(bool(self))

    def __eq__(self, other):
        return bool(self) == other

    __hash__ = int.__hash__


# ==================================================================================
# DYNAMIC CONFIGURATION LOADING
# ==================================================================================
namespace = globals()

def parse_bool(v):
    """
    Convert "True"/"False" (any casing, with surrounding whitespace) into bool.
    Avoids exceptions by only calling ast.literal_eval for known literals.
    """
    if not isinstance(v, str):
        return v
    s = v.strip()
    if not s:
        return v
    if s.casefold() in {"true", "false"}:
        return ast.literal_eval(s.title())
    return v

for key, default_raw in LOGGER_DEFAULTS.items():
    # dotenv_values returns strings or None. None is treated as missing.
    raw = _config.get(key)
    value_raw = default_raw if raw is None else raw

    value = parse_bool(value_raw)
    default_val = parse_bool(default_raw)

    if isinstance(value, bool):
        namespace[key] = ConfigBool(value, default_val)
    else:
        namespace[key] = ConfigString(value_raw, default_val)
