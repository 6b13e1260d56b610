"""
Sorted-pair keccak256 Merkle trees.

Both validator modules anchor their authorizations in a Merkle root built
off-chain with the usual JS tooling convention:

- leaves are 32-byte values inserted as-is (never re-hashed),
- a parent is keccak256 of its two children sorted ascending,
- a node without a sibling is promoted unchanged to the next level.

Because pairs are sorted, a proof is just the ordered list of siblings from
the leaf up to the root; no left/right flags are needed.
"""
import logging
from typing import List, Sequence

from .utils import BytesLike, keccak, to_bytes32

logger = logging.getLogger(__name__)


def hash_pair(a: bytes, b: bytes) -> bytes:
    """keccak256 of two nodes concatenated in ascending order."""
    return keccak(a + b) if a <= b else keccak(b + a)


def recompute_root(leaf: BytesLike, proof: Sequence[BytesLike]) -> bytes:
    """
    Recompute the root reached from a leaf by walking its proof.

    Args:
        leaf: 32-byte leaf value
        proof: sibling nodes in tree order, root-ward

    Returns:
        The candidate root

    Raises:
        ValueError: If the leaf or a proof node is not 32 bytes
    """
    computed = to_bytes32(leaf)
    for node in proof:
        computed = hash_pair(computed, to_bytes32(node))
    return computed


def verify_proof(leaf: BytesLike, proof: Sequence[BytesLike], root: BytesLike) -> bool:
    """Check that ``proof`` proves membership of ``leaf`` under ``root``."""
    return recompute_root(leaf, proof) == to_bytes32(root)


class MerkleTree:
    """
    Off-chain tree builder matching ``recompute_root``.

    Used to produce roots for owners to sign and proofs for operations to
    carry. Duplicate leaves are kept; ``get_proof`` returns the proof of the
    first occurrence.
    """

    def __init__(self, leaves: Sequence[BytesLike]):
        if not leaves:
            raise ValueError("Merkle tree requires at least one leaf")
        self.leaves: List[bytes] = [to_bytes32(leaf) for leaf in leaves]
        self.layers: List[List[bytes]] = self._build_layers(self.leaves)

    @staticmethod
    def _build_layers(leaves: List[bytes]) -> List[List[bytes]]:
        layers = [leaves]
        current = leaves
        while len(current) > 1:
            next_layer = []
            for i in range(0, len(current), 2):
                if i + 1 < len(current):
                    next_layer.append(hash_pair(current[i], current[i + 1]))
                else:
                    next_layer.append(current[i])
            layers.append(next_layer)
            current = next_layer
        return layers

    @property
    def root(self) -> bytes:
        return self.layers[-1][0]

    @property
    def hex_root(self) -> str:
        return "0x" + self.root.hex()

    def get_proof(self, leaf: BytesLike) -> List[bytes]:
        """
        Build the sibling proof for a leaf.

        Raises:
            ValueError: If the leaf is not in the tree
        """
        target = to_bytes32(leaf)
        try:
            index = self.leaves.index(target)
        except ValueError:
            raise ValueError(f"Leaf 0x{target.hex()} not found in the Merkle tree")

        proof = []
        for layer in self.layers[:-1]:
            sibling = index + 1 if index % 2 == 0 else index - 1
            # a promoted node has no sibling on this layer
            if sibling < len(layer):
                proof.append(layer[sibling])
            index //= 2

        logger.debug(f"Built proof of depth {len(proof)} for leaf 0x{target.hex()[:8]}")
        return proof
