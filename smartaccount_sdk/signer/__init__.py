"""
Signers producing ECDSA signatures for owners and session keys.
"""
from typing import Protocol, runtime_checkable

from .local import LocalSigner

__all__ = ["Signer", "LocalSigner"]


@runtime_checkable
class Signer(Protocol):
    """Protocol for custom signers (hardware wallets, KMS, ...)"""
    address: str

    def sign_message_hash(self, message_hash: bytes) -> bytes:
        """Sign a 32-byte hash as an EIP-191 personal message; returns r || s || v"""
        ...

    def sign_hash(self, message_hash: bytes) -> bytes:
        """Sign a raw 32-byte hash; returns r || s || v"""
        ...
