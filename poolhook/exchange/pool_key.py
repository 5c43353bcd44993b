"""
Pool identity and the pool-registry collaborator.

A pool is identified by keccak256 of its ABI-encoded key
``(currency0, currency1, fee, tick_spacing, hooks)``, the same derivation
the host engine uses, so ids computed here match the engine's.

The registry is an external collaborator; ``PoolRegistry`` is the narrow
interface the hook consumes and ``InMemoryPoolRegistry`` is a map-backed
stand-in for tests and the simulated host.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Optional, Protocol, Tuple

from eth_utils import is_address, keccak, to_checksum_address

from ..constants import MAX_LP_FEE, MAX_TICK_SPACING, MIN_TICK_SPACING
from ..exceptions import InvalidAddress, InvalidPoolParameters, PoolNotFound
from ..logger import get_logger

logger = get_logger(__name__)


def normalize_address(address: str) -> str:
    """Checksum an account/currency address; rejects malformed input."""
    if not is_address(address):
        raise InvalidAddress(address)
    return to_checksum_address(address)


def _encode_word(value: int) -> bytes:
    # ABI head word: two's complement, 32 bytes big-endian
    return (value % (1 << 256)).to_bytes(32, "big")


@dataclass(frozen=True)
class PoolKey:
    """Identifies a pool: sorted currency pair, fee tier, tick spacing, hook."""
    currency0: str
    currency1: str
    fee: int
    tick_spacing: int
    hooks: str

    @classmethod
    def create(
        cls,
        token_a: str,
        token_b: str,
        fee: int,
        tick_spacing: int,
        hooks: str,
    ) -> "PoolKey":
        """Build a key with checksummed, canonically sorted currencies."""
        a, b = normalize_address(token_a), normalize_address(token_b)
        if int(a, 16) > int(b, 16):
            a, b = b, a
        return cls(a, b, fee, tick_spacing, normalize_address(hooks))

    @property
    def pool_id(self) -> str:
        encoded = b"".join(
            (
                _encode_word(int(self.currency0, 16)),
                _encode_word(int(self.currency1, 16)),
                _encode_word(self.fee),
                _encode_word(self.tick_spacing),
                _encode_word(int(self.hooks, 16)),
            )
        )
        return "0x" + keccak(encoded).hex()

    def validate(self) -> None:
        """
        Check the key's static parameters.

        Raises:
            InvalidPoolParameters: identical or unsorted currencies, fee above
                MAX_LP_FEE, or tick spacing outside [1, 32767].
        """
        if self.currency0 == self.currency1:
            raise InvalidPoolParameters("identical currencies", currency=self.currency0)
        if int(self.currency0, 16) > int(self.currency1, 16):
            raise InvalidPoolParameters(
                "currencies not sorted",
                currency0=self.currency0, currency1=self.currency1,
            )
        if not 0 <= self.fee <= MAX_LP_FEE:
            raise InvalidPoolParameters("fee out of range", fee=self.fee, max_fee=MAX_LP_FEE)
        if not MIN_TICK_SPACING <= self.tick_spacing <= MAX_TICK_SPACING:
            raise InvalidPoolParameters(
                "tick spacing out of range", tick_spacing=self.tick_spacing,
            )

    def to_tuple(self) -> Tuple[str, str, int, str]:
        """(token0, token1, fee, hook) as reported by the registry."""
        return self.currency0, self.currency1, self.fee, self.hooks


class PoolRegistry(Protocol):
    """Interface consumed from the pool-registry collaborator."""

    def pool_exists(self, pool_id: str) -> bool: ...
    def get_hook(self, pool_id: str) -> str: ...
    def get_pool_key(self, pool_id: str) -> Tuple[str, str, int, str]: ...
    def validate_pool(self, pool_id: str) -> bool: ...


class InMemoryPoolRegistry:
    """Map-backed registry used by tests and the simulated host."""

    def __init__(self) -> None:
        self._keys: Dict[str, PoolKey] = {}

    def register(self, key: PoolKey) -> str:
        key.validate()
        pool_id = key.pool_id
        self._keys[pool_id] = key
        logger.debug("Registered pool %s (%s/%s fee=%d)", pool_id, key.currency0, key.currency1, key.fee)
        return pool_id

    def pool_exists(self, pool_id: str) -> bool:
        return pool_id in self._keys

    def _require(self, pool_id: str) -> PoolKey:
        key = self._keys.get(pool_id)
        if key is None:
            raise PoolNotFound(pool_id)
        return key

    def get_hook(self, pool_id: str) -> str:
        return self._require(pool_id).hooks

    def get_pool_key(self, pool_id: str) -> Tuple[str, str, int, str]:
        return self._require(pool_id).to_tuple()

    def validate_pool(self, pool_id: str) -> bool:
        key: Optional[PoolKey] = self._keys.get(pool_id)
        return key is not None and key.pool_id == pool_id

    @property
    def pool_count(self) -> int:
        return len(self._keys)
