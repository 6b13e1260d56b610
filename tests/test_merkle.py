"""
Tests for the sorted-pair Merkle primitive.
"""
import pytest
from hypothesis import given, settings, strategies as st

from smartaccount_sdk.merkle import MerkleTree, hash_pair, recompute_root, verify_proof
from smartaccount_sdk.utils import keccak

leaf_strategy = st.binary(min_size=32, max_size=32)


def _leaves(n):
    return [keccak(f"leaf-{i}".encode()) for i in range(n)]


def test_hash_pair_is_order_independent():
    """Sorting makes a parent independent of child order"""
    a, b = _leaves(2)
    assert hash_pair(a, b) == hash_pair(b, a)
    assert hash_pair(a, b) == keccak(min(a, b) + max(a, b))


def test_empty_proof_returns_leaf():
    """A single-leaf tree has the leaf itself as root"""
    leaf = _leaves(1)[0]
    assert recompute_root(leaf, []) == leaf
    tree = MerkleTree([leaf])
    assert tree.root == leaf
    assert tree.get_proof(leaf) == []


def test_two_leaf_root():
    a, b = _leaves(2)
    tree = MerkleTree([a, b])
    assert tree.root == hash_pair(a, b)
    assert tree.get_proof(a) == [b]
    assert tree.get_proof(b) == [a]


def test_four_leaf_tree():
    """Every leaf of a balanced tree proves to the root"""
    leaves = _leaves(4)
    tree = MerkleTree(leaves)
    expected = hash_pair(hash_pair(leaves[0], leaves[1]), hash_pair(leaves[2], leaves[3]))
    assert tree.root == expected
    for leaf in leaves:
        proof = tree.get_proof(leaf)
        assert len(proof) == 2
        assert verify_proof(leaf, proof, tree.root)


def test_odd_node_promoted_unchanged():
    """The unpaired third leaf moves up without hashing"""
    leaves = _leaves(3)
    tree = MerkleTree(leaves)
    assert tree.layers[1] == [hash_pair(leaves[0], leaves[1]), leaves[2]]
    assert tree.root == hash_pair(hash_pair(leaves[0], leaves[1]), leaves[2])
    assert tree.get_proof(leaves[2]) == [hash_pair(leaves[0], leaves[1])]


def test_leaves_are_not_rehashed():
    leaves = _leaves(2)
    tree = MerkleTree(leaves)
    assert tree.leaves == leaves
    assert tree.root != hash_pair(keccak(leaves[0]), keccak(leaves[1]))


def test_wrong_leaf_fails_verification():
    leaves = _leaves(4)
    tree = MerkleTree(leaves)
    outsider = keccak(b"outsider")
    assert not verify_proof(outsider, tree.get_proof(leaves[0]), tree.root)


def test_sibling_proof_for_other_leaf_fails():
    """A proof belongs to one leaf only"""
    leaves = _leaves(4)
    tree = MerkleTree(leaves)
    assert not verify_proof(leaves[1], tree.get_proof(leaves[0]), tree.root)


def test_get_proof_unknown_leaf():
    tree = MerkleTree(_leaves(3))
    with pytest.raises(ValueError) as exc_info:
        tree.get_proof(keccak(b"missing"))
    assert "not found" in str(exc_info.value)


def test_empty_tree_rejected():
    with pytest.raises(ValueError):
        MerkleTree([])


def test_non_32_byte_nodes_rejected():
    leaf = _leaves(1)[0]
    with pytest.raises(ValueError):
        recompute_root(leaf, [b"\x01" * 31])
    with pytest.raises(ValueError):
        recompute_root(b"\x01" * 33, [])


def test_hex_root():
    tree = MerkleTree(_leaves(2))
    assert tree.hex_root == "0x" + tree.root.hex()
    assert verify_proof(tree.leaves[0], tree.get_proof(tree.leaves[0]), tree.hex_root)


@settings(max_examples=50)
@given(leaves=st.lists(leaf_strategy, min_size=1, max_size=17, unique=True))
def test_every_leaf_proves_to_root(leaves):
    """Proofs built by the tree always recompute its root"""
    tree = MerkleTree(leaves)
    for leaf in leaves:
        assert recompute_root(leaf, tree.get_proof(leaf)) == tree.root


@settings(max_examples=50)
@given(leaves=st.lists(leaf_strategy, min_size=1, max_size=9, unique=True))
def test_root_is_deterministic(leaves):
    assert MerkleTree(leaves).root == MerkleTree(list(leaves)).root


@settings(max_examples=50)
@given(leaf=leaf_strategy, proof=st.lists(leaf_strategy, max_size=6))
def test_recompute_root_is_pure(leaf, proof):
    assert recompute_root(leaf, proof) == recompute_root(leaf, proof)
