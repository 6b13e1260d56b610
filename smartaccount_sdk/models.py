"""
Data models for the SmartAccount SDK.
"""
from dataclasses import dataclass, field
from typing import List, Optional

from eth_abi import encode
from pydantic import BaseModel, Field, field_validator

from .exceptions import ErrorCode, FailedOpError, ValidationError
from .utils import keccak, to_bytes, to_checksum


class UserOperation(BaseModel):
    """ERC-4337 (v0.6) UserOperation"""
    sender: str
    nonce: int = 0
    init_code: bytes = Field(b"", alias="initCode")
    call_data: bytes = Field(b"", alias="callData")
    call_gas_limit: int = Field(200_000, alias="callGasLimit")
    verification_gas_limit: int = Field(150_000, alias="verificationGasLimit")
    pre_verification_gas: int = Field(21_000, alias="preVerificationGas")
    max_fee_per_gas: int = Field(1_000_000_000, alias="maxFeePerGas")
    max_priority_fee_per_gas: int = Field(1_000_000_000, alias="maxPriorityFeePerGas")
    paymaster_and_data: bytes = Field(b"", alias="paymasterAndData")
    signature: bytes = b""

    class Config:
        populate_by_name = True

    @field_validator("sender", mode="before")
    @classmethod
    def _checksum_sender(cls, value):
        return to_checksum(value)

    @field_validator("init_code", "call_data", "paymaster_and_data", "signature", mode="before")
    @classmethod
    def _hex_to_bytes(cls, value):
        return to_bytes(value)

    def pack(self) -> bytes:
        """ABI-encode every field except the signature; dynamic fields are hashed."""
        return encode(
            ["address", "uint256", "bytes32", "bytes32", "uint256",
             "uint256", "uint256", "uint256", "uint256", "bytes32"],
            [
                self.sender,
                self.nonce,
                keccak(self.init_code),
                keccak(self.call_data),
                self.call_gas_limit,
                self.verification_gas_limit,
                self.pre_verification_gas,
                self.max_fee_per_gas,
                self.max_priority_fee_per_gas,
                keccak(self.paymaster_and_data),
            ],
        )

    def hash(self, entry_point: str, chain_id: int) -> bytes:
        """
        Operation hash bound to a dispatcher and a chain.

        Args:
            entry_point: EntryPoint address
            chain_id: Chain ID of the executing chain

        Returns:
            keccak256(abi.encode(keccak256(pack()), entry_point, chain_id))
        """
        return keccak(encode(
            ["bytes32", "address", "uint256"],
            [keccak(self.pack()), to_checksum(entry_point), chain_id],
        ))


@dataclass
class ValidationResult:
    """Outcome of a validator module check for one operation"""
    valid: bool
    error_code: Optional[ErrorCode] = None
    reason: str = ""
    valid_after: int = 0
    valid_until: int = 0

    @classmethod
    def success(cls, valid_after: int = 0, valid_until: int = 0) -> "ValidationResult":
        return cls(valid=True, valid_after=valid_after, valid_until=valid_until)

    @classmethod
    def failure(cls, error: ValidationError) -> "ValidationResult":
        return cls(valid=False, error_code=error.code, reason=str(error))

    @property
    def validation_data(self) -> int:
        """
        ERC-4337 packed validation data.

        ``sigFailed | validUntil << 160 | validAfter << 208``
        """
        return int(not self.valid) | (self.valid_until << 160) | (self.valid_after << 208)


@dataclass
class UserOpResult:
    """Per-operation outcome reported by the EntryPoint"""
    index: int
    user_op_hash: bytes
    success: bool
    reason: str = ""
    error_code: Optional[ErrorCode] = None
    executed: bool = False


@dataclass
class HandleOpsResult:
    """Outcome of a handle_ops batch"""
    beneficiary: str
    results: List[UserOpResult] = field(default_factory=list)

    @property
    def failed_ops(self) -> List[UserOpResult]:
        return [r for r in self.results if not r.success]

    @property
    def all_succeeded(self) -> bool:
        return not self.failed_ops

    def raise_for_failures(self) -> None:
        """
        Raise for the first failed operation, if any.

        Raises:
            FailedOpError: With the index and reason of the first failure
        """
        failed = self.failed_ops
        if failed:
            raise FailedOpError(failed[0].index, failed[0].reason)
