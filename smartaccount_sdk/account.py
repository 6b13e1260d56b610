"""
Modular smart account.

The account itself never checks signatures. The last 20 bytes of an
operation's signature name the validator module to use; the account strips
them, makes sure the module is enabled and hands the rest to the module.
"""
import logging
from typing import Any, Dict, List, Optional, Sequence

from .abi import SMART_ACCOUNT_ABI
from .chain import Chain, Contract, external
from .exceptions import (
    ExecutionError, MalformedSignatureError, ModuleNotEnabledError, UnauthorizedCallerError
)
from .models import UserOperation, ValidationResult
from .modules.base import BaseAuthorizationModule, EIP1271_INVALID_VALUE
from .utils import BytesLike, ZERO_ADDRESS, same_address, to_bytes, to_checksum

logger = logging.getLogger(__name__)

MODULE_ADDRESS_LENGTH = 20


def split_module_signature(signature: BytesLike):
    """
    Split ``moduleSignature || moduleAddress`` into its two parts.

    Raises:
        MalformedSignatureError: If the signature is too short to carry a module address
    """
    signature = to_bytes(signature)
    if len(signature) < MODULE_ADDRESS_LENGTH:
        raise MalformedSignatureError(
            f"Signature of {len(signature)} bytes cannot carry a module address"
        )
    return signature[:-MODULE_ADDRESS_LENGTH], to_checksum(signature[-MODULE_ADDRESS_LENGTH:])


class SmartAccount(Contract):
    """
    Account delegating authorization to enabled validator modules.

    Args:
        entry_point: Address of the only dispatcher allowed to validate operations
        logger: Optional logger instance
    """
    ABI = SMART_ACCOUNT_ABI

    def __init__(self, entry_point: str, logger: Optional[logging.Logger] = None):
        super().__init__()
        self.entry_point = to_checksum(entry_point)
        self._modules: Dict[str, bool] = {}
        self.logger = logger or logging.getLogger(__name__)

    @classmethod
    def create(
        cls,
        chain: Chain,
        entry_point: str,
        module: str,
        module_setup_data: BytesLike,
        label: Optional[str] = None,
        **kwargs
    ) -> "SmartAccount":
        """
        Deploy an account and initialise its first validator module.

        Args:
            chain: Chain to deploy on
            entry_point: EntryPoint address
            module: Address of the first validator module
            module_setup_data: Call data the account sends to the module (e.g. initForSmartAccount)
            label: Seed for the account address

        Returns:
            The deployed account
        """
        account = cls(entry_point, **kwargs)
        chain.deploy(account, label=label)
        account._setup_and_enable_module(account.address, module, module_setup_data)
        return account

    def _require_entry_point_or_self(self, caller: str) -> None:
        if not (same_address(caller, self.entry_point) or same_address(caller, self.address)):
            raise UnauthorizedCallerError(f"{caller} is not allowed to call {self.address}")

    # Module management

    def is_module_enabled(self, module: str) -> bool:
        return self._modules.get(to_checksum(module), False)

    def get_modules(self) -> List[str]:
        return [m for m, enabled in self._modules.items() if enabled]

    @external("enableModule")
    def _enable_module(self, caller: str, module: str) -> None:
        self._require_entry_point_or_self(caller)
        module = to_checksum(module)
        if same_address(module, ZERO_ADDRESS) or same_address(module, self.address):
            raise ExecutionError(f"Invalid module {module}")
        if self.is_module_enabled(module):
            raise ExecutionError(f"Module {module} already enabled")
        self._modules[module] = True
        self.logger.info(f"Enabled module {module} on {self.address}")

    @external("disableModule")
    def _disable_module(self, caller: str, module: str) -> None:
        self._require_entry_point_or_self(caller)
        module = to_checksum(module)
        if not self.is_module_enabled(module):
            raise ExecutionError(f"Module {module} is not enabled")
        del self._modules[module]
        self.logger.info(f"Disabled module {module} on {self.address}")

    @external("setupAndEnableModule")
    def _setup_and_enable_module(self, caller: str, module: str, setup_data: bytes) -> None:
        self._require_entry_point_or_self(caller)
        self.chain.call(self.address, module, 0, setup_data)
        self._enable_module(self.address, module)

    # Execution

    @external("executeCall")
    def _execute_call(self, caller: str, destination: str, value: int, data: bytes) -> Any:
        self._require_entry_point_or_self(caller)
        return self.chain.call(self.address, destination, value, data)

    @external("executeBatchCall")
    def _execute_batch_call(
        self,
        caller: str,
        destinations: Sequence[str],
        values: Sequence[int],
        data: Sequence[bytes]
    ) -> List[Any]:
        self._require_entry_point_or_self(caller)
        if not len(destinations) == len(values) == len(data):
            raise ExecutionError("executeBatchCall argument lengths differ")
        return [
            self.chain.call(self.address, dest, value, payload)
            for dest, value, payload in zip(destinations, values, data)
        ]

    # Validation

    def validate_user_op(
        self,
        user_op: UserOperation,
        user_op_hash: BytesLike,
        missing_account_funds: int,
        caller: str
    ) -> ValidationResult:
        """
        Validate an operation through the module named in its signature.

        No state changes here; execution happens only after the dispatcher
        sees a valid result.

        Args:
            user_op: Operation to validate
            user_op_hash: Hash computed by the EntryPoint
            missing_account_funds: Prefund requested by the EntryPoint (not tracked)
            caller: Address of the calling contract

        Returns:
            ValidationResult from the module, or a failure if no usable module is named

        Raises:
            UnauthorizedCallerError: If the caller is not the EntryPoint
        """
        if not same_address(caller, self.entry_point):
            raise UnauthorizedCallerError(f"Only the EntryPoint may validate operations for {self.address}")
        if not same_address(user_op.sender, self.address):
            raise ValueError(f"Operation sender {user_op.sender} is not {self.address}")

        try:
            module_signature, module_address = split_module_signature(user_op.signature)
        except MalformedSignatureError as e:
            return ValidationResult.failure(e)

        module = self.chain.get_contract(module_address)
        if not self.is_module_enabled(module_address) or not isinstance(module, BaseAuthorizationModule):
            return ValidationResult.failure(
                ModuleNotEnabledError(f"Module {module_address} is not enabled on {self.address}")
            )

        if missing_account_funds:
            self.logger.debug(f"Prefund of {missing_account_funds} wei requested for {self.address}")

        return module.validate_user_op(user_op, user_op_hash, module_signature)

    def is_valid_signature(self, data_hash: BytesLike, signature: BytesLike) -> bytes:
        """
        ERC-1271 signature check delegated to the module named in ``signature``.

        Returns:
            The module's magic value, or ``0xffffffff``
        """
        try:
            module_signature, module_address = split_module_signature(signature)
        except MalformedSignatureError:
            return EIP1271_INVALID_VALUE

        module = self.chain.get_contract(module_address)
        if not self.is_module_enabled(module_address) or not isinstance(module, BaseAuthorizationModule):
            return EIP1271_INVALID_VALUE
        return module.is_valid_signature_for(data_hash, module_signature, self.address)
