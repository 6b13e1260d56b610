"""
Common interface of authorization (validator) modules.
"""
import logging
from abc import ABC, abstractmethod

from .._rate_limited_log import rate_limited_log
from ..chain import Contract
from ..exceptions import ValidationError
from ..models import UserOperation, ValidationResult
from ..utils import BytesLike, to_bytes, to_bytes32

logger = logging.getLogger(__name__)

EIP1271_MAGIC_VALUE = bytes.fromhex("1626ba7e")
EIP1271_INVALID_VALUE = bytes.fromhex("ffffffff")


class BaseAuthorizationModule(Contract, ABC):
    """
    A module an account delegates "is this operation authorized?" to.

    Subclasses implement ``_validate_user_op`` and raise a
    ``ValidationError`` subclass at the first failing gate. The public
    ``validate_user_op`` converts that into a failed ``ValidationResult`` so
    a rejection never escapes as an exception to the dispatcher.
    """

    def validate_user_op(
        self,
        user_op: UserOperation,
        user_op_hash: BytesLike,
        module_signature: BytesLike
    ) -> ValidationResult:
        """
        Decide whether ``module_signature`` authorizes ``user_op_hash`` for ``user_op.sender``.

        Args:
            user_op: Operation being validated
            user_op_hash: Operation hash computed by the dispatcher
            module_signature: Signature bytes with the module address already stripped

        Returns:
            ValidationResult, valid or carrying the rejection reason
        """
        try:
            return self._validate_user_op(user_op, to_bytes32(user_op_hash), to_bytes(module_signature))
        except ValidationError as e:
            rate_limited_log(
                f"{type(self).__name__} rejected operation from {user_op.sender}: {e}",
                key=f"{self.address}:{user_op.sender}:{e.code.value}",
                logger_instance=logger,
            )
            return ValidationResult.failure(e)

    @abstractmethod
    def _validate_user_op(
        self,
        user_op: UserOperation,
        user_op_hash: bytes,
        module_signature: bytes
    ) -> ValidationResult:
        ...

    def is_valid_signature_for(self, data_hash: BytesLike, module_signature: BytesLike, account: str) -> bytes:
        """ERC-1271 check on behalf of ``account``; unsupported unless overridden."""
        return EIP1271_INVALID_VALUE
