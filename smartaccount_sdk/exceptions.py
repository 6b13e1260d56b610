"""
Exceptions for the SmartAccount SDK.
"""
from enum import Enum
from typing import Optional


class ErrorCode(str, Enum):
    """
    Reasons a validator module can reject an operation.

    The string values are what ends up in dispatcher failure reports.
    """
    NOT_INITIALIZED = "NOT_INITIALIZED"
    ALREADY_INITIALIZED = "ALREADY_INITIALIZED"
    SIGNATURE_MISMATCH = "SIGNATURE_MISMATCH"
    INVALID_PROOF = "INVALID_PROOF"
    SESSION_EXPIRED = "SESSION_EXPIRED"
    NOT_YET_VALID = "NOT_YET_VALID"
    POLICY_VIOLATION = "POLICY_VIOLATION"
    MALFORMED_SIGNATURE = "MALFORMED_SIGNATURE"
    MODULE_NOT_ENABLED = "MODULE_NOT_ENABLED"


class SmartAccountError(Exception):
    """Base exception for all SmartAccount SDK errors."""
    pass


class ValidationError(SmartAccountError):
    """
    Raised by a validator module when an operation is not authorized.

    Every subclass pins an ``ErrorCode``; the module boundary turns the
    exception into a failed ``ValidationResult``.
    """
    code: ErrorCode = ErrorCode.POLICY_VIOLATION

    def __init__(self, message: str, code: Optional[ErrorCode] = None):
        if code is not None:
            self.code = code
        super().__init__(message)


class NotInitializedError(ValidationError):
    """Raised when the account has no owner bound in the validator."""
    code = ErrorCode.NOT_INITIALIZED


class SignatureMismatchError(ValidationError):
    """Raised when the recovered signer is not the expected one."""
    code = ErrorCode.SIGNATURE_MISMATCH


class InvalidProofError(ValidationError):
    """Raised when a Merkle proof does not recompute to the expected root."""
    code = ErrorCode.INVALID_PROOF


class SessionExpiredError(ValidationError):
    """Raised when a session leaf's validUntil has passed."""
    code = ErrorCode.SESSION_EXPIRED


class NotYetValidError(ValidationError):
    """Raised when a session leaf's validAfter is still in the future."""
    code = ErrorCode.NOT_YET_VALID


class PolicyViolationError(ValidationError):
    """Raised when a call falls outside the scope delegated to a session key."""
    code = ErrorCode.POLICY_VIOLATION


class MalformedSignatureError(ValidationError):
    """Raised when signature bytes cannot be decoded."""
    code = ErrorCode.MALFORMED_SIGNATURE


class ModuleNotEnabledError(ValidationError):
    """Raised when a signature names a module the account has not enabled."""
    code = ErrorCode.MODULE_NOT_ENABLED


class AlreadyInitializedError(SmartAccountError):
    """Raised when an owner is bound twice for the same account."""
    code = ErrorCode.ALREADY_INITIALIZED


class ZeroAddressError(SmartAccountError):
    """Raised when the zero address is supplied where a real one is required."""
    pass


class UnauthorizedCallerError(SmartAccountError):
    """Raised when a state-changing call does not come from the allowed caller."""
    pass


class ExecutionError(SmartAccountError):
    """Raised when a call made on behalf of an account reverts."""
    pass


class FailedOpError(SmartAccountError):
    """Raised for the first rejected operation of a batch."""

    def __init__(self, op_index: int, reason: str):
        self.op_index = op_index
        self.reason = reason
        super().__init__(f"FailedOp({op_index}, {reason!r})")
