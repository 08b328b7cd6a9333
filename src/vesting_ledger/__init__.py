"""
Merkle Vesting Ledger

Custody ledger that releases fungible tokens to beneficiaries along
per-schedule vesting curves, with allocations committed as Merkle roots.

Main Components:
- Blockchain: Merkle primitives, schedules and entitlement bookkeeping
- Core: Ledger contract, token collaborator, configuration and logging
"""

__version__ = "0.1.0"
__author__ = "Vesting Ledger Development Team"

from .blockchain.balance_tree import EntitlementProof, build_distribution
from .core.contracts.merkle_vesting import MerkleVestingLedger

__all__ = ["EntitlementProof", "MerkleVestingLedger", "build_distribution"]
