"""
Pool Hook Governance

Provides:
  - ProposalStatus / Proposal / FeeTimelock    (timelock.py)
"""

from .timelock import (
    FeeTimelock,
    Proposal,
    ProposalStatus,
)

__all__ = [
    "FeeTimelock",
    "Proposal",
    "ProposalStatus",
]
