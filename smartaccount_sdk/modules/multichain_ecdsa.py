"""
Multichain ECDSA validator module.

Each account binds one owner. The owner either signs a single operation
hash directly, or signs the root of a Merkle tree whose leaves are operation
hashes for several chains; each chain then accepts its own operation by
checking the leaf against that root.

Module signature formats (module address already stripped):

- single-chain: ``ecdsaSignature`` (exactly 65 bytes)
- multichain:   ``0x01 || merkleRoot (32) || proofCount (1) || proof (32 * n) || ecdsaSignature (65)``

The shortest multichain payload is 99 bytes, so the two formats never
overlap. Replay across chains is prevented by the dispatcher nonce baked into
every leaf, not by this module.
"""
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from ..abi import MULTICHAIN_VALIDATOR_ABI
from ..chain import external
from ..crypto import is_signed_by
from ..ec_constants import ECDSA_SIGNATURE_LENGTH
from ..exceptions import (
    AlreadyInitializedError, InvalidProofError, MalformedSignatureError, NotInitializedError,
    SignatureMismatchError, UnauthorizedCallerError, ValidationError, ZeroAddressError
)
from ..merkle import recompute_root
from ..models import UserOperation, ValidationResult
from ..utils import BytesLike, ZERO_ADDRESS, same_address, to_bytes, to_bytes32, to_checksum
from .base import BaseAuthorizationModule, EIP1271_INVALID_VALUE, EIP1271_MAGIC_VALUE

logger = logging.getLogger(__name__)

MULTICHAIN_SIGNATURE_TAG = 0x01
MAX_PROOF_LENGTH = 255


@dataclass
class MultichainSignature:
    """Owner signature over a Merkle root plus the proof for one leaf"""
    merkle_root: bytes
    proof: List[bytes] = field(default_factory=list)
    signature: bytes = b""

    MIN_LENGTH = 1 + 32 + 1 + ECDSA_SIGNATURE_LENGTH

    def encode(self) -> bytes:
        if len(self.proof) > MAX_PROOF_LENGTH:
            raise ValueError(f"Proof longer than {MAX_PROOF_LENGTH} nodes")
        signature = to_bytes(self.signature)
        if len(signature) != ECDSA_SIGNATURE_LENGTH:
            raise ValueError(f"Signature must be {ECDSA_SIGNATURE_LENGTH} bytes, got {len(signature)}")
        return (
            bytes([MULTICHAIN_SIGNATURE_TAG])
            + to_bytes32(self.merkle_root)
            + bytes([len(self.proof)])
            + b"".join(to_bytes32(node) for node in self.proof)
            + signature
        )

    @classmethod
    def decode(cls, data: BytesLike) -> "MultichainSignature":
        """
        Raises:
            ValueError: If the tag or the length is wrong
        """
        data = to_bytes(data)
        if len(data) < cls.MIN_LENGTH:
            raise ValueError(f"Multichain signature too short: {len(data)} bytes")
        if data[0] != MULTICHAIN_SIGNATURE_TAG:
            raise ValueError(f"Unknown signature tag 0x{data[0]:02x}")

        count = data[33]
        expected = cls.MIN_LENGTH + 32 * count
        if len(data) != expected:
            raise ValueError(
                f"Multichain signature with {count} proof nodes must be {expected} bytes, got {len(data)}"
            )

        proof = [data[34 + 32 * i:66 + 32 * i] for i in range(count)]
        return cls(merkle_root=data[1:33], proof=proof, signature=data[-ECDSA_SIGNATURE_LENGTH:])


class MultichainECDSAValidator(BaseAuthorizationModule):
    """
    Owner-based validator accepting single-chain and multichain signatures.

    Args:
        logger: Optional logger instance
    """
    ABI = MULTICHAIN_VALIDATOR_ABI
    NAME = "Multichain ECDSA Validator"
    VERSION = "0.1.0"

    def __init__(self, logger: Optional[logging.Logger] = None):
        super().__init__()
        self._owners: Dict[str, str] = {}
        self.logger = logger or logging.getLogger(__name__)

    @external("initForSmartAccount")
    def _init_for_smart_account_call(self, caller: str, owner: str) -> None:
        self.init_for_smart_account(caller, owner, caller=caller)

    def init_for_smart_account(self, account: str, owner: str, caller: str) -> None:
        """
        Bind ``owner`` to ``account``. Owners are immutable once set.

        Raises:
            UnauthorizedCallerError: If ``caller`` is not ``account`` itself
            ZeroAddressError: If owner is the zero address
            AlreadyInitializedError: If the account already has an owner
        """
        if not same_address(account, caller):
            raise UnauthorizedCallerError(f"Only {account} may bind its own owner")
        account = to_checksum(account)
        owner = to_checksum(owner)
        if same_address(owner, ZERO_ADDRESS):
            raise ZeroAddressError("Owner cannot be the zero address")
        if account in self._owners:
            raise AlreadyInitializedError(f"Owner already set for {account}")

        self._owners[account] = owner
        self.logger.info(f"Bound owner {owner} to account {account}")

    def get_owner(self, account: str) -> str:
        """
        Raises:
            NotInitializedError: If no owner is bound to ``account``
        """
        owner = self._owners.get(to_checksum(account))
        if owner is None:
            raise NotInitializedError(f"No owner set for {account}")
        return owner

    def _validate_user_op(
        self,
        user_op: UserOperation,
        user_op_hash: bytes,
        module_signature: bytes
    ) -> ValidationResult:
        self._verify(user_op.sender, user_op_hash, module_signature)
        return ValidationResult.success()

    def _verify(self, account: str, data_hash: bytes, module_signature: bytes) -> None:
        owner = self.get_owner(account)

        if len(module_signature) == ECDSA_SIGNATURE_LENGTH:
            if not is_signed_by(data_hash, module_signature, owner):
                raise SignatureMismatchError("Signature is not from the account owner")
            return

        try:
            multichain = MultichainSignature.decode(module_signature)
        except ValueError as e:
            raise MalformedSignatureError(str(e))

        if recompute_root(data_hash, multichain.proof) != multichain.merkle_root:
            raise InvalidProofError("Operation hash is not part of the signed Merkle tree")
        if not is_signed_by(multichain.merkle_root, multichain.signature, owner):
            raise SignatureMismatchError("Merkle root is not signed by the account owner")

        self.logger.debug(
            f"Multichain signature accepted for {account} (proof depth {len(multichain.proof)})"
        )

    def is_valid_signature_for(self, data_hash: BytesLike, module_signature: BytesLike, account: str) -> bytes:
        """
        ERC-1271 check of an owner signature over ``data_hash``.

        Returns:
            ``EIP1271_MAGIC_VALUE`` when valid, ``EIP1271_INVALID_VALUE`` otherwise
        """
        try:
            self._verify(to_checksum(account), to_bytes32(data_hash), to_bytes(module_signature))
        except (ValidationError, ValueError, TypeError) as e:
            self.logger.debug(f"ERC-1271 check failed for {account}: {e}")
            return EIP1271_INVALID_VALUE
        return EIP1271_MAGIC_VALUE
