"""
ERC20 session validation module.

A session leaf using this module lets its session key send at most
``max_amount`` of one token to one recipient per call. There is no running
total: every call is checked on its own against the static scope.
"""
import logging
from dataclasses import dataclass

from eth_abi.packed import encode_packed

from ...abi import ERC20
from ...utils import BytesLike, decode_call, same_address, to_bytes, to_checksum
from .base import SessionValidationModule

logger = logging.getLogger(__name__)


@dataclass
class Erc20SessionScope:
    """Packed as token (20) || recipient (20) || maxAmount (uint256, 32)"""
    token: str
    recipient: str
    max_amount: int

    ENCODED_LENGTH = 72

    def encode(self) -> bytes:
        return encode_packed(
            ["address", "address", "uint256"],
            [to_checksum(self.token), to_checksum(self.recipient), self.max_amount],
        )

    @classmethod
    def decode(cls, data: BytesLike) -> "Erc20SessionScope":
        """
        Raises:
            ValueError: If ``data`` is not exactly one packed scope
        """
        data = to_bytes(data)
        if len(data) != cls.ENCODED_LENGTH:
            raise ValueError(
                f"ERC20 scope must be {cls.ENCODED_LENGTH} bytes, got {len(data)}"
            )
        return cls(
            token=to_checksum(data[0:20]),
            recipient=to_checksum(data[20:40]),
            max_amount=int.from_bytes(data[40:72], "big"),
        )


class ERC20SessionValidationModule(SessionValidationModule):
    """Checks ``transfer(recipient, amount)`` calls against an ``Erc20SessionScope``"""

    def validate_session_params(
        self,
        destination: str,
        value: int,
        call_payload: bytes,
        scope_data: bytes
    ) -> bool:
        try:
            scope = Erc20SessionScope.decode(scope_data)
        except ValueError as e:
            logger.debug(f"ERC20 session scope rejected: {e}")
            return False

        if not same_address(destination, scope.token):
            logger.debug(f"ERC20 session scope rejected: wrong token {destination}")
            return False
        if value != 0:
            logger.debug("ERC20 session scope rejected: non-zero call value")
            return False

        try:
            fn_name, call_args = decode_call(ERC20, call_payload)
        except ValueError as e:
            logger.debug(f"ERC20 session scope rejected: {e}")
            return False
        if fn_name != "transfer":
            logger.debug(f"ERC20 session scope rejected: {fn_name} is not a transfer")
            return False
        recipient, amount = call_args

        if not same_address(recipient, scope.recipient):
            logger.debug(f"ERC20 session scope rejected: wrong recipient {recipient}")
            return False
        if amount > scope.max_amount:
            logger.debug(f"ERC20 session scope rejected: {amount} exceeds max {scope.max_amount}")
            return False

        return True
