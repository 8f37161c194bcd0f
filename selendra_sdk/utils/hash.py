from __future__ import annotations

from Crypto.Hash import keccak as _keccak

from .bytes import BytesLike, ensure_bytes, to_hex

# CPython's hashlib exposes NIST SHA3 but not the original Keccak-256 padding
# used by Ethereum/EIP-712, so Keccak comes from pycryptodome.


def keccak256(data: BytesLike) -> bytes:
    """Return Keccak-256 digest of *data* (bytes)."""
    h = _keccak.new(digest_bits=256)
    h.update(ensure_bytes(data))
    return h.digest()


def keccak256_hex(data: BytesLike, *, prefix: bool = True) -> str:
    """Return hex string of Keccak-256 digest (0x-prefixed by default)."""
    return to_hex(keccak256(data), prefix=prefix)


__all__ = [
    "keccak256",
    "keccak256_hex",
]
