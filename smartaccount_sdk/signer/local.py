"""
Signer backed by a private key held in process memory.
"""
from typing import Union

from eth_account import Account
from eth_account.messages import encode_defunct

from ..utils import BytesLike, to_bytes32


class LocalSigner:
    """
    Sign hashes with a local secp256k1 private key.

    Args:
        private_key: hex string (with or without 0x) or raw 32 bytes
    """

    def __init__(self, private_key: Union[str, bytes]):
        self.account = Account.from_key(private_key)
        self.address = self.account.address

    @classmethod
    def create(cls) -> "LocalSigner":
        """Create a signer with a freshly generated key."""
        return cls(bytes(Account.create().key))

    def sign_message_hash(self, message_hash: BytesLike) -> bytes:
        """Sign ``message_hash`` the way ``signMessage(arrayify(hash))`` does."""
        signed = self.account.sign_message(encode_defunct(primitive=to_bytes32(message_hash)))
        return bytes(signed.signature)

    def sign_hash(self, message_hash: BytesLike) -> bytes:
        """Sign the raw hash with no message prefix."""
        signed = self.account.unsafe_sign_hash(to_bytes32(message_hash))
        return bytes(signed.signature)

    def __repr__(self) -> str:
        return f"LocalSigner(address={self.address})"
