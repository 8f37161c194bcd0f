from __future__ import annotations

import re
from typing import Union

BytesLike = Union[bytes, bytearray, memoryview]

_HEX_BODY_RE = re.compile(r"^[0-9a-fA-F]*$")


def ensure_bytes(data: Union[BytesLike, str]) -> bytes:
    """
    Ensure input is bytes.

    Accepts:
      - bytes / bytearray / memoryview  -> bytes(data)
      - str: treated as hex; optional '0x' prefix; even-length enforced

    Raises:
      ValueError on invalid hex strings.
    """
    if isinstance(data, (bytes, bytearray, memoryview)):
        return bytes(data)
    if isinstance(data, str):
        return from_hex(data)
    raise TypeError(f"Unsupported type for ensure_bytes: {type(data)!r}")


def to_hex(b: BytesLike, prefix: bool = True) -> str:
    """
    Bytes -> hex string (lowercase). Prefix with '0x' by default.
    """
    s = bytes(b).hex()
    return f"0x{s}" if prefix else s


def strip_0x(s: str) -> str:
    return s[2:] if s.startswith(("0x", "0X")) else s


def is_hex(s: str, *, length: int | None = None) -> bool:
    """
    True when `s` (optional '0x' prefix) is hex, optionally of exactly `length`
    hex characters. Never raises.
    """
    if not isinstance(s, str):
        return False
    body = strip_0x(s)
    if length is not None and len(body) != length:
        return False
    return bool(_HEX_BODY_RE.match(body))


def from_hex(s: str) -> bytes:
    """
    Hex string (optionally '0x' prefixed) -> bytes.

    Enforces even-length (nibbles must pair to bytes) and lowercase/uppercase agnostic.
    """
    if not isinstance(s, str):
        raise TypeError("from_hex expects a string")
    s = strip_0x(s)
    if len(s) % 2 != 0:
        raise ValueError("hex string must have even length")
    try:
        return bytes.fromhex(s)
    except ValueError as e:
        raise ValueError(f"invalid hex string: {e}") from e


def hex_to_int(value: Union[str, int, None], default: int = 0) -> int:
    """
    JSON-RPC quantity ("0x1bc16d674ec80000") -> int. Ints pass through.
    Unbounded: Python ints keep balances exact beyond 2**128.
    """
    if value is None or value == "":
        return int(default)
    if isinstance(value, int):
        return value
    s = str(value).strip()
    if s.startswith(("0x", "0X")):
        return int(s[2:] or "0", 16)
    return int(s, 10)


def int_to_hex(n: int) -> str:
    """int -> JSON-RPC quantity (no leading zeros)."""
    if n < 0:
        raise ValueError("quantities must be non-negative")
    return hex(n)


__all__ = [
    "BytesLike",
    "ensure_bytes",
    "to_hex",
    "strip_0x",
    "is_hex",
    "from_hex",
    "hex_to_int",
    "int_to_hex",
]
