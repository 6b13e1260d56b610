"""
Utility functions for the SmartAccount SDK.
"""
from typing import Any, Sequence, Tuple, Type, Union

from eth_abi.exceptions import DecodingError
from hexbytes import HexBytes
from web3 import Web3
from web3.contract import Contract as Web3Contract
from web3.exceptions import Web3Exception

BytesLike = Union[bytes, bytearray, HexBytes, str]

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"
ZERO_BYTES32 = b"\x00" * 32


def to_bytes(value: BytesLike) -> bytes:
    """
    Normalise bytes-like input into plain bytes.

    Args:
        value: bytes, bytearray, HexBytes or a hex string (with or without 0x)

    Returns:
        Plain bytes

    Raises:
        ValueError: If a string is not valid hex
        TypeError: For any other input type
    """
    if isinstance(value, (bytes, bytearray)):
        return bytes(value)
    if isinstance(value, str):
        hex_str = value[2:] if value.startswith(("0x", "0X")) else value
        try:
            return bytes.fromhex(hex_str)
        except ValueError as e:
            raise ValueError(f"Invalid hex string: {str(e)}")
    raise TypeError(f"Expected bytes or hex string, got {type(value).__name__}")


def to_bytes32(value: BytesLike) -> bytes:
    """Normalise input to exactly 32 bytes, raising ValueError otherwise."""
    data = to_bytes(value)
    if len(data) != 32:
        raise ValueError(f"Expected 32 bytes, got {len(data)}")
    return data


def keccak(data: BytesLike) -> bytes:
    """keccak256 of the given bytes."""
    return bytes(Web3.keccak(to_bytes(data)))


def to_checksum(address: Union[str, bytes]) -> str:
    """
    Checksum an address given as hex string or 20 raw bytes.

    Raises:
        ValueError: If the input is not a 20-byte address
    """
    if isinstance(address, (bytes, bytearray)):
        if len(address) != 20:
            raise ValueError(f"Expected 20 address bytes, got {len(address)}")
        address = "0x" + bytes(address).hex()
    return Web3.to_checksum_address(address)


def same_address(a: str, b: str) -> bool:
    """Case-insensitive address comparison."""
    return a.lower() == b.lower()


def address_from_label(label: str) -> str:
    """Deterministic pseudo-address for an in-memory contract."""
    return to_checksum(keccak(label.encode("utf-8"))[-20:])


def encode_call(codec: Type[Web3Contract], fn_name: str, args: Sequence[Any]) -> bytes:
    """
    ABI-encode a call to ``fn_name``: selector followed by encoded arguments.

    Args:
        codec: web3 contract factory carrying the ABI (see ``abi.contract_codec``)
        fn_name: Function name in that ABI
        args: Positional arguments
    """
    return to_bytes(codec.encode_abi(fn_name, args=list(args)))


def decode_call(codec: Type[Web3Contract], data: BytesLike) -> Tuple[str, Tuple[Any, ...]]:
    """
    Decode call data against the functions of ``codec``.

    Returns:
        Tuple of (function name, positional arguments)

    Raises:
        ValueError: If the selector is unknown or the arguments do not decode
    """
    data = to_bytes(data)
    try:
        function, params = codec.decode_function_input(data)
    except DecodingError as e:
        raise ValueError(f"Failed to decode call arguments: {str(e)}")
    except (ValueError, Web3Exception):
        raise ValueError(f"No function with selector 0x{data[:4].hex()}")
    return function.fn_name, tuple(params.values())
