"""
Off-chain helpers for building and signing UserOperations.

These produce exactly the byte layouts the account and its modules
consume: call data for the account's execute functions, module signatures
with the trailing module address, multichain signatures and session-key
signatures.
"""
import logging
from typing import Any, List, Sequence

from .abi import ERC20, MULTICHAIN_VALIDATOR, SESSION_KEY_MANAGER, SMART_ACCOUNT
from .entry_point import EntryPoint
from .merkle import MerkleTree
from .models import UserOperation
from .modules.multichain_ecdsa import MultichainSignature
from .modules.session_key_manager import SessionLeaf, encode_session_signature
from .signer import Signer
from .utils import BytesLike, encode_call, to_bytes, to_bytes32, to_checksum

logger = logging.getLogger(__name__)


def encode_transfer(recipient: str, amount: int) -> bytes:
    """ERC20 ``transfer(recipient, amount)`` call data."""
    return encode_call(ERC20, "transfer", [to_checksum(recipient), amount])


def encode_execute_call(destination: str, value: int, data: BytesLike) -> bytes:
    """Account call data executing a single call."""
    return encode_call(SMART_ACCOUNT, "executeCall", [to_checksum(destination), value, to_bytes(data)])


def encode_execute_batch_call(
    destinations: Sequence[str],
    values: Sequence[int],
    data: Sequence[BytesLike]
) -> bytes:
    """Account call data executing several calls in order."""
    return encode_call(
        SMART_ACCOUNT,
        "executeBatchCall",
        [[to_checksum(d) for d in destinations], list(values), [to_bytes(p) for p in data]],
    )


def encode_enable_module(module: str) -> bytes:
    """Account self-call enabling a validator module."""
    return encode_call(SMART_ACCOUNT, "enableModule", [to_checksum(module)])


def encode_disable_module(module: str) -> bytes:
    return encode_call(SMART_ACCOUNT, "disableModule", [to_checksum(module)])


def encode_init_for_smart_account(owner: str) -> bytes:
    """Setup call binding ``owner`` in a MultichainECDSAValidator."""
    return encode_call(MULTICHAIN_VALIDATOR, "initForSmartAccount", [to_checksum(owner)])


def encode_set_merkle_root(root: BytesLike) -> bytes:
    """Call replacing the caller's session root in a SessionKeyManager."""
    return encode_call(SESSION_KEY_MANAGER, "setMerkleRoot", [to_bytes32(root)])


def with_module_address(module_signature: BytesLike, module_address: str) -> bytes:
    """Append the 20-byte module address the account uses to pick a module."""
    return to_bytes(module_signature) + bytes.fromhex(to_checksum(module_address)[2:])


def fill_user_op(entry_point: EntryPoint, sender: str, call_data: BytesLike = b"", **fields: Any) -> UserOperation:
    """
    Create an unsigned operation with the sender's current nonce.

    Any UserOperation field may be overridden through ``fields``.
    """
    fields.setdefault("nonce", entry_point.get_nonce(sender))
    return UserOperation(sender=sender, call_data=to_bytes(call_data), **fields)


def sign_user_op(
    user_op: UserOperation,
    entry_point: EntryPoint,
    signer: Signer,
    module_address: str
) -> UserOperation:
    """Sign the operation hash directly (single-chain signature)."""
    signature = signer.sign_message_hash(entry_point.get_user_op_hash(user_op))
    return user_op.model_copy(update={"signature": with_module_address(signature, module_address)})


def build_multichain_signatures(
    user_op_hashes: Sequence[BytesLike],
    signer: Signer,
    module_address: str
) -> List[bytes]:
    """
    Authorize several operation hashes with one owner signature.

    Args:
        user_op_hashes: Operation hashes, typically one per chain
        signer: Owner signer
        module_address: MultichainECDSAValidator address appended to each signature

    Returns:
        One full signature per hash, in the same order
    """
    tree = MerkleTree(user_op_hashes)
    root_signature = signer.sign_message_hash(tree.root)
    logger.debug(f"Signed multichain root {tree.hex_root} covering {len(tree.leaves)} operations")

    return [
        with_module_address(
            MultichainSignature(
                merkle_root=tree.root,
                proof=tree.get_proof(leaf),
                signature=root_signature,
            ).encode(),
            module_address,
        )
        for leaf in tree.leaves
    ]


def build_session_tree(session_leaves: Sequence[SessionLeaf]) -> MerkleTree:
    """Merkle tree over session leaves; its root goes to setMerkleRoot."""
    return MerkleTree([leaf.leaf() for leaf in session_leaves])


def sign_session_user_op(
    user_op: UserOperation,
    entry_point: EntryPoint,
    session_signer: Signer,
    session_leaf: SessionLeaf,
    session_tree: MerkleTree,
    session_key_manager: str
) -> UserOperation:
    """Sign an operation with a session key enabled through ``session_tree``."""
    signature = session_signer.sign_message_hash(entry_point.get_user_op_hash(user_op))
    module_signature = encode_session_signature(
        session_leaf.encode(),
        session_tree.get_proof(session_leaf.leaf()),
        signature,
    )
    return user_op.model_copy(
        update={"signature": with_module_address(module_signature, session_key_manager)}
    )
