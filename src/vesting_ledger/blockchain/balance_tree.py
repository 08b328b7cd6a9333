"""
Off-chain allocation tree and distribution builder.

Turns a list of (account, amount) allocations into the commitment and the
per-account activation inputs the ledger consumes. Duplicate accounts are
allowed; each allocation becomes its own indexed leaf.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Sequence, Tuple

from eth_utils import is_address

from .merkle import MerkleTree, hash_leaf, process_proof
from .vesting_schedule import as_root

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Allocation:
    account: str
    amount: int


@dataclass(frozen=True)
class EntitlementProof:
    """One allocation leaf as submitted for activation."""

    index: int
    amount: int
    proof: Tuple[bytes, ...] = ()


def _normalize(address: str) -> str:
    return address.lower()


def _as_allocation(item: Any) -> Allocation:
    if isinstance(item, Allocation):
        return item
    if isinstance(item, Mapping):
        return Allocation(item["account"], item["amount"])
    account, amount = item
    return Allocation(account, amount)


class BalanceTree:
    """Merkle tree over indexed (account, amount) allocations."""

    def __init__(self, allocations: Iterable[Any]):
        self.allocations: List[Allocation] = []
        for item in allocations:
            allocation = _as_allocation(item)
            if not is_address(allocation.account):
                raise ValueError(f"Invalid account address: {allocation.account!r}")
            if not isinstance(allocation.amount, int) or allocation.amount < 0:
                raise ValueError("Allocation amounts must be non-negative integers.")
            self.allocations.append(
                Allocation(_normalize(allocation.account), allocation.amount)
            )
        self.tree = MerkleTree(
            [
                self.to_node(index, allocation.account, allocation.amount)
                for index, allocation in enumerate(self.allocations)
            ]
        )

    @staticmethod
    def to_node(index: int, account: str, amount: int) -> bytes:
        return hash_leaf(index, account, amount)

    @staticmethod
    def verify_proof(
        index: int,
        account: str,
        amount: int,
        proof: Sequence[bytes],
        root: bytes,
    ) -> bool:
        return process_proof(BalanceTree.to_node(index, account, amount), proof) == root

    def get_root(self) -> bytes:
        return self.tree.get_root()

    def get_hex_root(self) -> str:
        return self.tree.get_hex_root()

    def get_proof(self, index: int, account: str, amount: int) -> List[bytes]:
        return self.tree.get_proof(self.to_node(index, account, amount))


@dataclass
class AccountAllocations:
    indexes: List[int] = field(default_factory=list)
    amounts: List[int] = field(default_factory=list)
    proofs: List[List[bytes]] = field(default_factory=list)

    @property
    def total(self) -> int:
        return sum(self.amounts)

    def entries(self) -> List[EntitlementProof]:
        return [
            EntitlementProof(index, amount, tuple(proof))
            for index, amount, proof in zip(self.indexes, self.amounts, self.proofs)
        ]


@dataclass
class DistributionInfo:
    """Root, committed total and per-account activation inputs."""

    root: bytes
    total: int
    accounts: Dict[str, AccountAllocations] = field(default_factory=dict)

    def for_account(self, account: str) -> AccountAllocations:
        return self.accounts.get(_normalize(account), AccountAllocations())

    def to_dict(self) -> Dict[str, Any]:
        return {
            "root": "0x" + self.root.hex(),
            "total": str(self.total),
            "accounts": {
                account: {
                    "indexes": list(alloc.indexes),
                    "amounts": [str(amount) for amount in alloc.amounts],
                    "proofs": [["0x" + node.hex() for node in proof] for proof in alloc.proofs],
                }
                for account, alloc in self.accounts.items()
            },
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "DistributionInfo":
        accounts = {}
        for account, alloc in data.get("accounts", {}).items():
            accounts[_normalize(account)] = AccountAllocations(
                indexes=[int(i) for i in alloc["indexes"]],
                amounts=[int(a) for a in alloc["amounts"]],
                proofs=[[as_root(node) for node in proof] for proof in alloc["proofs"]],
            )
        return cls(
            root=as_root(data["root"]),
            total=int(data["total"]),
            accounts=accounts,
        )


def build_distribution(allocations: Iterable[Any]) -> DistributionInfo:
    """
    Build the commitment and per-account proofs for a list of allocations.

    Args:
        allocations: (account, amount) pairs, Allocation records or mappings
            with "account" and "amount" keys; list order defines leaf indexes

    Returns:
        DistributionInfo with the root, total of all amounts, and for every
        account the indexes, amounts and proofs of its leaves
    """
    tree = BalanceTree(allocations)
    accounts: Dict[str, AccountAllocations] = {}
    for index, allocation in enumerate(tree.allocations):
        entry = accounts.setdefault(allocation.account, AccountAllocations())
        entry.indexes.append(index)
        entry.amounts.append(allocation.amount)
        entry.proofs.append(tree.get_proof(index, allocation.account, allocation.amount))

    total = sum(allocation.amount for allocation in tree.allocations)
    logger.info(
        "Built vesting distribution",
        extra={
            "event": "vesting.distribution_built",
            "root": tree.get_hex_root(),
            "leaves": len(tree.allocations),
            "accounts": len(accounts),
            "total": str(total),
        },
    )
    return DistributionInfo(root=tree.get_root(), total=total, accounts=accounts)
