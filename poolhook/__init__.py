"""
poolhook Package

Before/after hook for a Uniswap v4 style pool manager: reserve ledger,
MEV guard, fee-governance timelock and TWAP oracle.

For direct module access, import from submodules:

    from poolhook.exchange import PoolHook, SimulatedHost, TWAPOracle
    from poolhook.governance import FeeTimelock
    from poolhook.exceptions import CooldownActive
"""

__version__ = "0.1.0"


# Lazy imports keep ``import poolhook`` from configuring logging
def __getattr__(name):
    if name in ('PoolHook', 'SimulatedHost', 'TWAPOracle', 'PoolKey', 'Clock'):
        from . import exchange
        return getattr(exchange, name)
    elif name == 'FeeTimelock':
        from .governance import FeeTimelock
        return FeeTimelock
    elif name == 'HookConfig':
        from .config import HookConfig
        return HookConfig
    raise AttributeError(f"module 'poolhook' has no attribute {name!r}")

__all__ = ['PoolHook', 'SimulatedHost', 'TWAPOracle', 'PoolKey', 'Clock', 'FeeTimelock', 'HookConfig']
