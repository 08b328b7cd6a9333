"""
Merkle commitments over vesting allocations.

Leaves are ``keccak256(keccak256(abi.encode(uint256 index, address account,
uint256 amount)))``. Internal nodes hash the two children in ascending byte
order, so proofs are plain lists of sibling hashes with no left/right flags.
"""

from __future__ import annotations

from typing import Iterable, List, Optional, Sequence

from Crypto.Hash import keccak
from eth_abi import encode
from eth_utils import is_address, to_canonical_address

HASH_SIZE = 32
ZERO_HASH = b"\x00" * HASH_SIZE


def keccak256(data: bytes) -> bytes:
    """Compute keccak256 hash (same as Ethereum)."""
    k = keccak.new(digest_bits=256)
    k.update(data)
    return k.digest()


def encode_leaf(index: int, account: str, amount: int) -> bytes:
    """ABI-encode an allocation tuple as (uint256, address, uint256)."""
    if not is_address(account):
        raise ValueError(f"Invalid account address: {account!r}")
    return encode(
        ["uint256", "address", "uint256"],
        [index, to_canonical_address(account), amount],
    )


def hash_leaf(index: int, account: str, amount: int) -> bytes:
    """Double-hash the encoded tuple so a leaf can never pass for an inner node."""
    return keccak256(keccak256(encode_leaf(index, account, amount)))


def hash_pair(hash1: Optional[bytes], hash2: Optional[bytes]) -> bytes:
    """Commutative node hash; a missing sibling promotes the other node."""
    if hash1 is None:
        return hash2
    if hash2 is None:
        return hash1

    # Sort hashes so proofs need no position information
    if hash1 > hash2:
        hash1, hash2 = hash2, hash1
    return keccak256(hash1 + hash2)


def process_proof(leaf: bytes, proof: Iterable[bytes]) -> bytes:
    """Fold a proof onto a leaf and return the resulting root candidate."""
    current_hash = bytes(leaf)
    for sibling_hash in proof:
        current_hash = hash_pair(current_hash, bytes(sibling_hash))
    return current_hash


def verify_proof(leaf: bytes, proof: Iterable[bytes], root: bytes) -> bool:
    """
    Check that ``proof`` links ``leaf`` to ``root``.

    Pure function of its inputs. Malformed proof elements (wrong length or
    type) never verify.
    """
    if not isinstance(root, (bytes, bytearray)) or len(root) != HASH_SIZE:
        return False
    if not isinstance(leaf, (bytes, bytearray)) or len(leaf) != HASH_SIZE:
        return False
    siblings = []
    for item in proof:
        if not isinstance(item, (bytes, bytearray)) or len(item) != HASH_SIZE:
            return False
        siblings.append(bytes(item))
    return process_proof(leaf, siblings) == bytes(root)


class MerkleTree:
    """
    Sorted-pair Merkle tree built off-chain from 32-byte leaves.

    Leaves are deduplicated and sorted before the tree is built; an odd node
    at the end of a layer is carried up unchanged.
    """

    def __init__(self, leaves: Sequence[bytes]):
        if not leaves:
            raise ValueError("Merkle tree requires at least one leaf.")
        for leaf in leaves:
            if not isinstance(leaf, (bytes, bytearray)) or len(leaf) != HASH_SIZE:
                raise ValueError("Merkle tree leaves must be 32-byte hashes.")
        self.leaves: List[bytes] = sorted({bytes(leaf) for leaf in leaves})
        self._positions = {leaf: i for i, leaf in enumerate(self.leaves)}
        self.layers = self._build_layers(self.leaves)
        self.root = self.layers[-1][0]

    @staticmethod
    def _build_layers(leaves: List[bytes]) -> List[List[bytes]]:
        layers = [leaves]
        current_level = leaves
        while len(current_level) > 1:
            next_level = []
            for i in range(0, len(current_level), 2):
                sibling = current_level[i + 1] if i + 1 < len(current_level) else None
                next_level.append(hash_pair(current_level[i], sibling))
            layers.append(next_level)
            current_level = next_level
        return layers

    def get_root(self) -> bytes:
        return self.root

    def get_hex_root(self) -> str:
        return "0x" + self.root.hex()

    def get_proof(self, leaf: bytes) -> List[bytes]:
        idx = self._positions.get(bytes(leaf))
        if idx is None:
            raise ValueError("Leaf not found in the Merkle tree.")

        proof = []
        for layer in self.layers[:-1]:
            sibling_index = idx - 1 if idx % 2 else idx + 1
            if sibling_index < len(layer):
                proof.append(layer[sibling_index])
            idx //= 2
        return proof

    def get_hex_proof(self, leaf: bytes) -> List[str]:
        return ["0x" + node.hex() for node in self.get_proof(leaf)]
