"""
SmartAccount SDK - validator modules for modular ERC-4337 smart accounts.

Provides a multichain ECDSA validator (one owner signature authorizing
operations on several chains through a Merkle root), a session key manager
with per-asset scope checks, and the account / EntryPoint glue driving them.
"""
from .account import SmartAccount
from .chain import Chain, Contract, external
from .config import NetworkConfig
from .entry_point import EntryPoint
from .exceptions import (
    ErrorCode, SmartAccountError, ValidationError, NotInitializedError,
    AlreadyInitializedError, SignatureMismatchError, InvalidProofError,
    SessionExpiredError, NotYetValidError, PolicyViolationError,
    MalformedSignatureError, ModuleNotEnabledError, UnauthorizedCallerError,
    ZeroAddressError, ExecutionError, FailedOpError
)
from .merkle import MerkleTree, recompute_root, verify_proof
from .models import UserOperation, ValidationResult, UserOpResult, HandleOpsResult
from .modules import (
    MultichainECDSAValidator, MultichainSignature, SessionKeyManager, SessionLeaf,
    SessionValidationModule, ERC20SessionValidationModule, Erc20SessionScope
)
from .signer import Signer, LocalSigner
from .version import __version__

__all__ = [
    "SmartAccount",
    "Chain",
    "Contract",
    "external",
    "NetworkConfig",
    "EntryPoint",
    "ErrorCode",
    "SmartAccountError",
    "ValidationError",
    "NotInitializedError",
    "AlreadyInitializedError",
    "SignatureMismatchError",
    "InvalidProofError",
    "SessionExpiredError",
    "NotYetValidError",
    "PolicyViolationError",
    "MalformedSignatureError",
    "ModuleNotEnabledError",
    "UnauthorizedCallerError",
    "ZeroAddressError",
    "ExecutionError",
    "FailedOpError",
    "MerkleTree",
    "recompute_root",
    "verify_proof",
    "UserOperation",
    "ValidationResult",
    "UserOpResult",
    "HandleOpsResult",
    "MultichainECDSAValidator",
    "MultichainSignature",
    "SessionKeyManager",
    "SessionLeaf",
    "SessionValidationModule",
    "ERC20SessionValidationModule",
    "Erc20SessionScope",
    "Signer",
    "LocalSigner",
    "__version__",
]
