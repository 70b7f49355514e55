"""
Hex encoding helpers for JSON-RPC values.

Ethereum JSON-RPC distinguishes two hex encodings:
- quantities: integers as "0x"-prefixed hex with no leading zeros ("0x0", "0x1a")
- data: byte strings as "0x"-prefixed hex with an even number of digits
"""
import re
from typing import Any

_QUANTITY_RE = re.compile(r"0x(0|[1-9a-fA-F][0-9a-fA-F]*)")
_DATA_RE = re.compile(r"0x([0-9a-fA-F]{2})*")


def buffer_to_hex(value: bytes) -> str:
    """Encode bytes as an RPC data string."""
    return "0x" + value.hex()


def number_to_rpc_quantity(value: int) -> str:
    """
    Encode a non-negative integer as an RPC quantity.

    Args:
        value: Integer to encode

    Returns:
        Hex quantity string, e.g. "0x7b"

    Raises:
        ValueError: If the value is negative
    """
    if value < 0:
        raise ValueError(f"Quantity cannot be negative: {value}")
    return hex(value)


def parse_rpc_quantity(value: Any) -> int:
    """Decode an RPC quantity into an int, raising ValueError if malformed."""
    if not isinstance(value, str) or not _QUANTITY_RE.fullmatch(value):
        raise ValueError(f"Invalid RPC quantity: {value!r}")
    return int(value, 16)


def parse_rpc_data(value: Any) -> bytes:
    """Decode RPC data into bytes, raising ValueError if malformed."""
    if not isinstance(value, str) or not _DATA_RE.fullmatch(value):
        raise ValueError(f"Invalid RPC data: {value!r}")
    return bytes.fromhex(value[2:])


def parse_rpc_hash(value: Any) -> bytes:
    """Decode a 32-byte hash."""
    data = parse_rpc_data(value)
    if len(data) != 32:
        raise ValueError(f"Invalid hash length {len(data)}, expected 32 bytes")
    return data


def parse_rpc_address(value: Any) -> bytes:
    """Decode a 20-byte address."""
    data = parse_rpc_data(value)
    if len(data) != 20:
        raise ValueError(f"Invalid address length {len(data)}, expected 20 bytes")
    return data
