"""
Utility helpers for the Python SDK.

Re-exports:
- bytes: hex helpers and JSON-RPC quantity conversion
- hash: Keccak-256 convenience wrappers
- retry: async retry with backoff (backend clients only)
- settle: settle-all joins and first-terminal races
"""

from .bytes import (ensure_bytes, from_hex, hex_to_int, int_to_hex, is_hex,
                    strip_0x, to_hex)
from .hash import keccak256, keccak256_hex
from .retry import RetryError, aretry_call
from .settle import Outcome, first_terminal, settle_all

__all__ = [
    # bytes
    "to_hex",
    "from_hex",
    "ensure_bytes",
    "strip_0x",
    "is_hex",
    "hex_to_int",
    "int_to_hex",
    # hash
    "keccak256",
    "keccak256_hex",
    # retry
    "RetryError",
    "aretry_call",
    # settle
    "Outcome",
    "settle_all",
    "first_terminal",
]
