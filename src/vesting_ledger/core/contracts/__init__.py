"""Ledger contracts and the fungible token collaborator."""

from .erc20 import ERC20Token, FungibleToken
from .merkle_vesting import MerkleVestingLedger

__all__ = ["ERC20Token", "FungibleToken", "MerkleVestingLedger"]
