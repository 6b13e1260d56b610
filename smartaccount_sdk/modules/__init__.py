"""
Validator modules accounts delegate authorization to.
"""
from .base import BaseAuthorizationModule, EIP1271_MAGIC_VALUE, EIP1271_INVALID_VALUE
from .multichain_ecdsa import MultichainECDSAValidator, MultichainSignature, MULTICHAIN_SIGNATURE_TAG
from .session_key_manager import SessionKeyManager, SessionLeaf, encode_session_signature
from .session_validation import SessionValidationModule, ERC20SessionValidationModule, Erc20SessionScope

__all__ = [
    "BaseAuthorizationModule",
    "EIP1271_MAGIC_VALUE",
    "EIP1271_INVALID_VALUE",
    "MultichainECDSAValidator",
    "MultichainSignature",
    "MULTICHAIN_SIGNATURE_TAG",
    "SessionKeyManager",
    "SessionLeaf",
    "encode_session_signature",
    "SessionValidationModule",
    "ERC20SessionValidationModule",
    "Erc20SessionScope",
]
