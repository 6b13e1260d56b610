"""
ECDSA signer recovery for validator modules.
"""
import logging
from typing import Tuple

from eth_account.messages import _hash_eip191_message, encode_defunct
from eth_keys import keys
from eth_keys.exceptions import BadSignature, ValidationError as KeyValidationError

from .ec_constants import SECP256K1_N, SECP256K1_HALF_N, ECDSA_SIGNATURE_LENGTH
from .exceptions import MalformedSignatureError
from .utils import BytesLike, same_address, to_bytes, to_bytes32

logger = logging.getLogger(__name__)


def eth_signed_message_hash(message_hash: BytesLike) -> bytes:
    """
    Hash signed by ``personal_sign`` / ``signMessage`` for a 32-byte payload.

    Args:
        message_hash: 32-byte hash being signed

    Returns:
        keccak256("\\x19Ethereum Signed Message:\\n32" || message_hash)
    """
    return bytes(_hash_eip191_message(encode_defunct(primitive=to_bytes32(message_hash))))


def split_signature(signature: BytesLike) -> Tuple[int, int, int]:
    """
    Split a 65-byte r || s || v signature into (v, r, s).

    ``v`` is returned as 27 or 28; 0 and 1 are accepted on input.

    Raises:
        MalformedSignatureError: On wrong length, bad v, out-of-range r/s or a high s
    """
    try:
        sig = to_bytes(signature)
    except (TypeError, ValueError) as e:
        raise MalformedSignatureError(f"Invalid signature encoding: {str(e)}")

    if len(sig) != ECDSA_SIGNATURE_LENGTH:
        raise MalformedSignatureError(
            f"Invalid signature length: expected {ECDSA_SIGNATURE_LENGTH} bytes, got {len(sig)}"
        )

    r = int.from_bytes(sig[0:32], "big")
    s = int.from_bytes(sig[32:64], "big")
    v = sig[64]
    if v < 27:
        v += 27

    if v not in (27, 28):
        raise MalformedSignatureError(f"Invalid signature v value: {sig[64]}")
    if not 0 < r < SECP256K1_N:
        raise MalformedSignatureError("Invalid signature r value")
    if not 0 < s <= SECP256K1_HALF_N:
        raise MalformedSignatureError("Invalid signature s value")

    return v, r, s


def recover_signer(message_hash: BytesLike, signature: BytesLike) -> str:
    """
    Recover the checksummed address that signed a raw 32-byte hash.

    Raises:
        MalformedSignatureError: If the signature is malformed or recovery fails
    """
    v, r, s = split_signature(signature)
    try:
        sig = keys.Signature(vrs=(v - 27, r, s))
        public_key = sig.recover_public_key_from_msg_hash(to_bytes32(message_hash))
    except (BadSignature, KeyValidationError) as e:
        raise MalformedSignatureError(f"Signature recovery failed: {str(e)}")
    return public_key.to_checksum_address()


def recover_eth_signed_signer(message_hash: BytesLike, signature: BytesLike) -> str:
    """Recover the signer of the EIP-191 personal message over ``message_hash``."""
    return recover_signer(eth_signed_message_hash(message_hash), signature)


def is_signed_by(message_hash: BytesLike, signature: BytesLike, expected_signer: str) -> bool:
    """
    Check a signature against the owner-signing convention.

    The personal-message form over the hash is tried first, then the raw hash.

    Raises:
        MalformedSignatureError: If the signature cannot be parsed at all
    """
    if same_address(recover_eth_signed_signer(message_hash, signature), expected_signer):
        return True
    if same_address(recover_signer(message_hash, signature), expected_signer):
        logger.debug("Signature matched over the raw hash")
        return True
    return False
