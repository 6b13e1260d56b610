"""
In-memory hosting environment for accounts and modules.

A ``Chain`` owns the chain id, the execution-time clock and a registry of
contracts keyed by address. Contracts declare a JSON ``ABI`` and expose its
functions by tagging methods with ``@external``; every such method receives
the calling address first, which is how modules enforce caller == account.
"""
import logging
import time
from typing import Any, Callable, Dict, Optional

from .abi import ContractAbi, contract_codec
from .config import NetworkConfig
from .exceptions import ExecutionError
from .utils import BytesLike, address_from_label, decode_call, to_bytes, to_checksum

logger = logging.getLogger(__name__)


def external(fn_name: str):
    """
    Expose a contract method as the ABI function ``fn_name``.

    The decorated method is called as ``method(caller, *decoded_args)``.
    """
    def decorator(fn):
        fn._abi_function = fn_name
        return fn
    return decorator


class Contract:
    """Base class for contracts living on a ``Chain``"""
    ABI: ContractAbi = []
    _abi_codec = None
    _abi_functions: Dict[str, str] = {}

    def __init__(self):
        self.address: Optional[str] = None
        self.chain: Optional["Chain"] = None

    def __init_subclass__(cls, **kwargs):
        super().__init_subclass__(**kwargs)
        functions = {}
        for klass in reversed(cls.__mro__):
            for name, attr in vars(klass).items():
                fn_name = getattr(attr, "_abi_function", None)
                if fn_name:
                    functions[fn_name] = name
        cls._abi_functions = functions
        cls._abi_codec = contract_codec(cls.ABI) if cls.ABI else None

    def handle_call(self, caller: str, value: int, data: BytesLike) -> Any:
        """
        Dispatch ABI-encoded call data to the matching ``@external`` method.

        Raises:
            ExecutionError: For unknown selectors, undecodable arguments or a non-zero value
        """
        data = to_bytes(data)
        if self._abi_codec is None:
            raise ExecutionError(f"{type(self).__name__} has no function with selector 0x{data[:4].hex()}")
        try:
            fn_name, args = decode_call(self._abi_codec, data)
        except ValueError as e:
            raise ExecutionError(f"{type(self).__name__}: {e}")

        method_name = self._abi_functions.get(fn_name)
        if method_name is None:
            raise ExecutionError(f"{type(self).__name__} does not implement {fn_name}")
        if value:
            raise ExecutionError(f"{type(self).__name__}.{fn_name} does not accept value")
        return getattr(self, method_name)(to_checksum(caller), *args)


class Chain:
    """
    Single-threaded execution environment.

    Args:
        chain_id: Chain ID operation hashes are bound to
        clock: callable returning the current unix time (defaults to time.time)
        logger: Optional logger instance
    """

    def __init__(
        self,
        chain_id: int = 31337,
        clock: Optional[Callable[[], float]] = None,
        logger: Optional[logging.Logger] = None
    ):
        self.chain_id = chain_id
        self._clock = clock or time.time
        self._contracts: Dict[str, Contract] = {}
        self.logger = logger or logging.getLogger(__name__)

    @classmethod
    def for_network(cls, network: str, **kwargs) -> "Chain":
        """Create a chain carrying the chain id of a configured network."""
        return cls(chain_id=NetworkConfig.get_chain_id(network), **kwargs)

    def timestamp(self) -> int:
        """Execution-time clock, in whole seconds."""
        return int(self._clock())

    def deploy(self, contract: Contract, address: Optional[str] = None, label: Optional[str] = None) -> str:
        """
        Register a contract at an address.

        Args:
            contract: Contract instance
            address: explicit address; derived from ``label`` when omitted
            label: seed for a deterministic address (defaults to class name + counter)

        Returns:
            Checksummed address of the contract

        Raises:
            ValueError: If the address is already taken
        """
        if address is None:
            address = address_from_label(label or f"{type(contract).__name__}:{len(self._contracts)}")
        address = to_checksum(address)
        if address in self._contracts:
            raise ValueError(f"Address {address} is already in use")

        contract.address = address
        contract.chain = self
        self._contracts[address] = contract
        self.logger.debug(f"Deployed {type(contract).__name__} at {address}")
        return address

    def get_contract(self, address: str) -> Optional[Contract]:
        return self._contracts.get(to_checksum(address))

    def call(self, caller: str, to: str, value: int, data: BytesLike) -> Any:
        """
        Call a contract as ``caller``.

        Raises:
            ExecutionError: If no contract lives at ``to`` or the call reverts
        """
        contract = self.get_contract(to)
        if contract is None:
            raise ExecutionError(f"No contract deployed at {to}")
        return contract.handle_call(caller, value, data)
