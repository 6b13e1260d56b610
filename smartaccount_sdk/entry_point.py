"""
EntryPoint: validates and executes batches of UserOperations.

The EntryPoint owns the replay protection: each sender has a sequential
nonce that advances only when an operation passes validation. Validator
modules never track nonces themselves.
"""
import logging
from typing import Dict, Optional, Sequence

from ._rate_limited_log import rate_limited_log
from .account import SmartAccount
from .chain import Chain, Contract
from .config import NetworkConfig
from .exceptions import ErrorCode, SmartAccountError
from .models import HandleOpsResult, UserOpResult, UserOperation, ValidationResult
from .utils import to_checksum

logger = logging.getLogger(__name__)

# Reason strings reported per failed operation
ACCOUNT_NOT_DEPLOYED = "AA20 account not deployed"
EXPIRED_OR_NOT_DUE = "AA22 expired or not due"
VALIDATION_REVERTED = "AA23 reverted: {reason}"
SIGNATURE_ERROR = "AA24 signature error"
INVALID_NONCE = "AA25 invalid account nonce"

_TIME_RANGE_ERRORS = (ErrorCode.SESSION_EXPIRED, ErrorCode.NOT_YET_VALID)


def failure_reason(result: ValidationResult) -> str:
    """Map a failed validation to the reason string reported for its operation."""
    if result.error_code == ErrorCode.SIGNATURE_MISMATCH:
        return SIGNATURE_ERROR
    if result.error_code in _TIME_RANGE_ERRORS:
        return EXPIRED_OR_NOT_DUE
    return VALIDATION_REVERTED.format(reason=result.reason or result.error_code.value)


class EntryPoint(Contract):
    """
    In-process ERC-4337 dispatcher.

    Args:
        chain: Chain the EntryPoint is deployed on
        address: Optional fixed address (derived when omitted)
        logger: Optional logger instance
    """

    def __init__(self, chain: Chain, address: Optional[str] = None, logger: Optional[logging.Logger] = None):
        super().__init__()
        self._nonces: Dict[str, int] = {}
        self.logger = logger or logging.getLogger(__name__)
        chain.deploy(self, address=address, label="EntryPoint")

    @classmethod
    def for_network(cls, chain: Chain, network: str, override: Optional[str] = None, **kwargs) -> "EntryPoint":
        """Deploy an EntryPoint at the address configured for ``network``."""
        return cls(chain, address=NetworkConfig.get_entry_point_address(network, override=override), **kwargs)

    def get_nonce(self, sender: str) -> int:
        return self._nonces.get(to_checksum(sender), 0)

    def get_user_op_hash(self, user_op: UserOperation) -> bytes:
        return user_op.hash(self.address, self.chain.chain_id)

    def _validate(self, index: int, user_op: UserOperation, user_op_hash: bytes) -> UserOpResult:
        account = self.chain.get_contract(user_op.sender)
        if not isinstance(account, SmartAccount):
            return UserOpResult(index, user_op_hash, success=False, reason=ACCOUNT_NOT_DEPLOYED)

        if user_op.nonce != self.get_nonce(user_op.sender):
            return UserOpResult(index, user_op_hash, success=False, reason=INVALID_NONCE)

        result = account.validate_user_op(user_op, user_op_hash, 0, caller=self.address)
        if not result.valid:
            return UserOpResult(
                index, user_op_hash, success=False,
                reason=failure_reason(result), error_code=result.error_code
            )
        return UserOpResult(index, user_op_hash, success=True)

    def simulate_validation(self, user_op: UserOperation) -> UserOpResult:
        """Run the nonce check and account validation without changing any state."""
        return self._validate(0, user_op, self.get_user_op_hash(user_op))

    def handle_ops(self, user_ops: Sequence[UserOperation], beneficiary: str) -> HandleOpsResult:
        """
        Validate and execute operations in order.

        A rejected operation is reported and skipped; the others still run.
        The sender's nonce advances as soon as its operation validates, so a
        call that reverts during execution still consumes the nonce.

        Args:
            user_ops: Operations to process
            beneficiary: Address that would collect fees (recorded only)

        Returns:
            HandleOpsResult with one entry per operation
        """
        outcome = HandleOpsResult(beneficiary=to_checksum(beneficiary))

        for index, user_op in enumerate(user_ops):
            user_op_hash = self.get_user_op_hash(user_op)
            result = self._validate(index, user_op, user_op_hash)

            if not result.success:
                rate_limited_log(
                    f"FailedOp({index}, {result.reason!r}) for {user_op.sender}",
                    key=f"{user_op.sender}:{result.reason}",
                    logger_instance=self.logger,
                )
                outcome.results.append(result)
                continue

            self._nonces[user_op.sender] = user_op.nonce + 1

            if not user_op.call_data:
                outcome.results.append(result)
                continue

            result.executed = True
            try:
                self.chain.call(self.address, user_op.sender, 0, user_op.call_data)
            except SmartAccountError as e:
                self.logger.warning(f"Operation {index} from {user_op.sender} reverted: {e}")
                result.success = False
                result.reason = str(e)
            else:
                self.logger.info(f"Executed operation {index} from {user_op.sender} (nonce {user_op.nonce})")

            outcome.results.append(result)

        return outcome
