"""
Session key manager module.

An account stores one Merkle root here. Each leaf of the tree is the
keccak256 of a packed ``SessionLeaf``: a session key, its validity window,
the session validation module that polices its calls and that module's
scope data. Granting or revoking keys means replacing the whole root.

The module-specific part of an operation signature is
``abi.encode(bytes leafData, bytes32[] proof, bytes sessionKeySignature)``.
"""
import logging
from dataclasses import dataclass
from typing import Dict, Optional, Sequence

from eth_abi import decode, encode
from eth_abi.exceptions import DecodingError
from eth_abi.packed import encode_packed

from ..abi import SESSION_KEY_MANAGER_ABI, SMART_ACCOUNT
from ..chain import external
from ..crypto import is_signed_by
from ..exceptions import (
    InvalidProofError, MalformedSignatureError, NotYetValidError, PolicyViolationError,
    SessionExpiredError, SignatureMismatchError, UnauthorizedCallerError
)
from ..merkle import recompute_root
from ..models import UserOperation, ValidationResult
from ..utils import (
    BytesLike, ZERO_BYTES32, decode_call, keccak, same_address, to_bytes, to_bytes32, to_checksum
)
from .base import BaseAuthorizationModule
from .session_validation.base import SessionValidationModule

logger = logging.getLogger(__name__)

SESSION_SIGNATURE_TYPES = ["bytes", "bytes32[]", "bytes"]


@dataclass
class SessionLeaf:
    """
    validUntil (uint48) || validAfter (uint48) || module (20) || sessionKey (20) || scopeData

    ``valid_until == 0`` means the session never expires.
    """
    valid_until: int
    valid_after: int
    session_validation_module: str
    session_key: str
    scope_data: bytes = b""

    HEADER_LENGTH = 52

    def encode(self) -> bytes:
        return encode_packed(
            ["uint48", "uint48", "address", "address"],
            [
                self.valid_until,
                self.valid_after,
                to_checksum(self.session_validation_module),
                to_checksum(self.session_key),
            ],
        ) + to_bytes(self.scope_data)

    def leaf(self) -> bytes:
        """The Merkle leaf: keccak256 of the packed data, with no further transform."""
        return keccak(self.encode())

    @classmethod
    def decode(cls, data: BytesLike) -> "SessionLeaf":
        """
        Raises:
            ValueError: If ``data`` is shorter than the fixed header
        """
        data = to_bytes(data)
        if len(data) < cls.HEADER_LENGTH:
            raise ValueError(
                f"Session leaf must be at least {cls.HEADER_LENGTH} bytes, got {len(data)}"
            )
        return cls(
            valid_until=int.from_bytes(data[0:6], "big"),
            valid_after=int.from_bytes(data[6:12], "big"),
            session_validation_module=to_checksum(data[12:32]),
            session_key=to_checksum(data[32:52]),
            scope_data=data[52:],
        )


def encode_session_signature(leaf_data: BytesLike, proof: Sequence[BytesLike], signature: BytesLike) -> bytes:
    """Module-specific signature consumed by ``SessionKeyManager``."""
    return encode(
        SESSION_SIGNATURE_TYPES,
        [to_bytes(leaf_data), [to_bytes32(p) for p in proof], to_bytes(signature)],
    )


class SessionKeyManager(BaseAuthorizationModule):
    """
    Validates operations signed by session keys enabled through a Merkle root.

    Args:
        logger: Optional logger instance
    """
    ABI = SESSION_KEY_MANAGER_ABI

    def __init__(self, logger: Optional[logging.Logger] = None):
        super().__init__()
        self._roots: Dict[str, bytes] = {}
        self.logger = logger or logging.getLogger(__name__)

    @external("setMerkleRoot")
    def _set_merkle_root_call(self, caller: str, root: bytes) -> None:
        self.set_merkle_root(caller, root, caller=caller)

    def set_merkle_root(self, account: str, root: BytesLike, caller: str) -> None:
        """
        Replace the session root of ``account``.

        Raises:
            UnauthorizedCallerError: If ``caller`` is not ``account`` itself
        """
        if not same_address(account, caller):
            raise UnauthorizedCallerError(f"Only {account} may set its own session root")
        account = to_checksum(account)
        self._roots[account] = to_bytes32(root)
        self.logger.info(f"Session root for {account} set to 0x{self._roots[account].hex()}")

    def get_session_keys(self, account: str) -> bytes:
        """Current session root of ``account`` (zero when none is set)."""
        return self._roots.get(to_checksum(account), ZERO_BYTES32)

    def _validate_user_op(
        self,
        user_op: UserOperation,
        user_op_hash: bytes,
        module_signature: bytes
    ) -> ValidationResult:
        account = user_op.sender

        try:
            leaf_data, proof, signature = decode(SESSION_SIGNATURE_TYPES, module_signature)
        except DecodingError as e:
            raise MalformedSignatureError(f"Invalid session signature encoding: {str(e)}")

        root = self._roots.get(account)
        if root is None:
            raise InvalidProofError(f"No session keys enabled for {account}")
        if recompute_root(keccak(leaf_data), list(proof)) != root:
            raise InvalidProofError("Session leaf is not part of the enabled session tree")

        try:
            session = SessionLeaf.decode(leaf_data)
        except ValueError as e:
            raise MalformedSignatureError(str(e))

        now = self.chain.timestamp()
        if session.valid_until != 0 and now > session.valid_until:
            raise SessionExpiredError(f"Session expired at {session.valid_until} (now {now})")
        if now < session.valid_after:
            raise NotYetValidError(f"Session not valid before {session.valid_after} (now {now})")

        if not is_signed_by(user_op_hash, signature, session.session_key):
            raise SignatureMismatchError("Operation is not signed by the session key")

        try:
            fn_name, call_args = decode_call(SMART_ACCOUNT, user_op.call_data)
        except ValueError as e:
            raise PolicyViolationError(f"Session keys may only use executeCall: {e}")
        if fn_name != "executeCall":
            raise PolicyViolationError(f"Session keys may only use executeCall, not {fn_name}")
        destination, value, call_payload = call_args

        validation_module = self.chain.get_contract(session.session_validation_module)
        if not isinstance(validation_module, SessionValidationModule):
            raise PolicyViolationError(
                f"Unknown session validation module {session.session_validation_module}"
            )

        if not validation_module.validate_session_params(
            to_checksum(destination), value, call_payload, session.scope_data
        ):
            raise PolicyViolationError(
                f"Call to {to_checksum(destination)} is outside the session scope"
            )

        self.logger.debug(f"Session key {session.session_key} authorized operation for {account}")
        return ValidationResult.success(valid_after=session.valid_after, valid_until=session.valid_until)
