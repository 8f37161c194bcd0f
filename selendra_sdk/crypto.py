"""
selendra_sdk.crypto
===================

Crypto primitives needed by the address codec and the claim payload builder,
behind one injectable capability:

- ss58_decode(address) -> bytes          checksum-validated public key bytes
- ss58_encode(public_key, prefix) -> str
- keccak256(data) -> bytes

`ScaleCodecCryptoProvider` (the default) uses scalecodec's SS58 codec and
pycryptodome's Keccak. Tests or alternative runtimes can pass any object with
the same three methods to `AddressCodec` / `ClaimOrchestrator`.

Providers raise `ValueError` for malformed input; the codec turns that into
`InvalidAddressFormat`.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from scalecodec.utils.ss58 import ss58_decode as _ss58_decode
from scalecodec.utils.ss58 import ss58_encode as _ss58_encode

from .utils.bytes import from_hex
from .utils.hash import keccak256 as _keccak256

__all__ = ["AddressCryptoProvider", "ScaleCodecCryptoProvider", "default_provider"]


@runtime_checkable
class AddressCryptoProvider(Protocol):
    def ss58_decode(self, address: str) -> bytes: ...
    def ss58_encode(self, public_key: bytes, prefix: int) -> str: ...
    def keccak256(self, data: bytes) -> bytes: ...


class ScaleCodecCryptoProvider:
    """SS58 via scalecodec, Keccak-256 via pycryptodome."""

    def ss58_decode(self, address: str) -> bytes:
        if not isinstance(address, str) or not address:
            raise ValueError("address must be a non-empty string")
        if address.startswith(("0x", "0X")):
            # scalecodec passes hex through unchanged; that is not SS58
            raise ValueError("hex string is not an SS58 address")
        try:
            decoded = _ss58_decode(address)
        except (ValueError, TypeError, KeyError, IndexError) as e:
            raise ValueError(f"SS58 decode failed: {e}") from e
        return from_hex(decoded)

    def ss58_encode(self, public_key: bytes, prefix: int) -> str:
        try:
            return _ss58_encode(bytes(public_key), ss58_format=int(prefix))
        except (ValueError, TypeError) as e:
            raise ValueError(f"SS58 encode failed: {e}") from e

    def keccak256(self, data: bytes) -> bytes:
        return _keccak256(data)


_DEFAULT = ScaleCodecCryptoProvider()


def default_provider() -> AddressCryptoProvider:
    """The stateless default provider (shared; it holds no state)."""
    return _DEFAULT
