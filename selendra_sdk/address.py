"""
selendra_sdk.address
====================

Address derivation and conversion between the two ledgers of one chain.

Format
------
- Substrate: SS58(prefix, AccountId32), 32-byte public key, network prefix 204
  by default.
- EVM: H160, `0x` + 40 hex characters, emitted lowercase.

Default mapping (matches the unified-accounts pallet):

    evm       = account_id[:20]
    account_id = evm || 12 * b"\\x00"

The mapping is NOT a bijection. `evm_to_substrate(substrate_to_evm(a)) == a`
only when the last 12 bytes of a's key are zero. An explicit on-chain claim is
the only way to get a two-way mapping for any other account.

This module provides:
- AddressCodec(provider=None, ss58_prefix=204)
    .substrate_to_evm(address) -> str
    .evm_to_substrate(address, ss58_prefix=None) -> str
    .public_key(address) -> bytes
    .normalize(address) -> str
    .convert(address, target) -> str
    .batch_convert(addresses, target) -> list[str]
- UnifiedAddress (immutable, lazily derives the other form)
- module-level shortcuts bound to the default provider

Nothing here performs network I/O.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Dict, List, Literal, Optional, Sequence

from .config import DEFAULT_SS58_PREFIX
from .crypto import AddressCryptoProvider, default_provider
from .errors import InvalidAddressFormat
from .utils.bytes import from_hex, to_hex

__all__ = [
    "ACCOUNT_ID_LEN",
    "EVM_ADDRESS_LEN",
    "EVM_ADDRESS_RE",
    "AddressCodec",
    "UnifiedAddress",
    "substrate_to_evm",
    "evm_to_substrate",
    "batch_convert",
    "normalize_address",
]

ACCOUNT_ID_LEN = 32
EVM_ADDRESS_LEN = 20
_PAD = b"\x00" * (ACCOUNT_ID_LEN - EVM_ADDRESS_LEN)

EVM_ADDRESS_RE = re.compile(r"^0x[0-9a-fA-F]{40}$")

Target = Literal["evm", "substrate"]


def _is_evm(address: object) -> bool:
    return isinstance(address, str) and EVM_ADDRESS_RE.match(address) is not None


class AddressCodec:
    """
    Pure, stateless SS58 <-> H160 conversion bound to a crypto provider and a
    default SS58 network prefix.
    """

    __slots__ = ("_provider", "ss58_prefix")

    def __init__(
        self,
        provider: Optional[AddressCryptoProvider] = None,
        ss58_prefix: int = DEFAULT_SS58_PREFIX,
    ) -> None:
        self._provider = provider or default_provider()
        self.ss58_prefix = int(ss58_prefix)

    @property
    def provider(self) -> AddressCryptoProvider:
        return self._provider

    # ---- decoding ----------------------------------------------------------

    def public_key(self, address: str) -> bytes:
        """Checksum-validated 32-byte AccountId behind an SS58 string."""
        try:
            key = self._provider.ss58_decode(address)
        except ValueError as e:
            raise InvalidAddressFormat(str(e), address=_safe_repr(address)) from e
        if len(key) != ACCOUNT_ID_LEN:
            raise InvalidAddressFormat(
                f"SS58 payload is {len(key)} bytes, expected {ACCOUNT_ID_LEN}",
                address=address,
            )
        return key

    def account_id_hex(self, address: str) -> str:
        return to_hex(self.public_key(address))

    # ---- conversion --------------------------------------------------------

    def substrate_to_evm(self, address: str) -> str:
        """SS58 -> H160: first 20 bytes of the AccountId, lowercase 0x-hex."""
        return to_hex(self.public_key(address)[:EVM_ADDRESS_LEN])

    def evm_to_substrate(self, address: str, ss58_prefix: Optional[int] = None) -> str:
        """H160 -> SS58: the 20 bytes right-padded with 12 zero bytes."""
        if not _is_evm(address):
            raise InvalidAddressFormat("expected 0x followed by 40 hex characters", address=_safe_repr(address))
        prefix = self.ss58_prefix if ss58_prefix is None else int(ss58_prefix)
        return self.encode_account_id(from_hex(address) + _PAD, prefix)

    def encode_account_id(self, account_id: bytes, ss58_prefix: Optional[int] = None) -> str:
        """Raw 32-byte AccountId -> SS58 string."""
        if len(account_id) != ACCOUNT_ID_LEN:
            raise InvalidAddressFormat(f"AccountId must be {ACCOUNT_ID_LEN} bytes, got {len(account_id)}")
        prefix = self.ss58_prefix if ss58_prefix is None else int(ss58_prefix)
        try:
            return self._provider.ss58_encode(bytes(account_id), prefix)
        except ValueError as e:
            raise InvalidAddressFormat(f"cannot encode with SS58 prefix {prefix}: {e}") from e

    def normalize(self, address: str) -> str:
        """EVM -> lowercase; SS58 -> re-encoded with this codec's prefix."""
        if _is_evm(address):
            return address.lower()
        return self.encode_account_id(self.public_key(address))

    def convert(self, address: str, target: Target) -> str:
        """Convert to `target` form; an address already in that form is normalized."""
        if target not in ("evm", "substrate"):
            raise ValueError(f"unknown target format: {target!r}")
        unified = UnifiedAddress.parse(address, codec=self)
        return unified.evm if target == "evm" else unified.substrate

    def batch_convert(self, addresses: Sequence[str], target: Target) -> List[str]:
        """Convert every address; result has exactly len(addresses) items, in order."""
        return [self.convert(a, target) for a in addresses]


def _safe_repr(address: object) -> Optional[str]:
    if address is None:
        return None
    return address if isinstance(address, str) else repr(address)


@dataclass(frozen=True)
class UnifiedAddress:
    """
    One account identity seen from both ledgers.

    Built from whichever representation the caller has; the other one is
    derived on first access with the default (truncate / pad) mapping and
    cached. Equality compares the EVM form.
    """

    source: str
    is_evm_source: bool
    codec: AddressCodec = field(repr=False, compare=False)
    _cache: Dict[str, str] = field(default_factory=dict, init=False, repr=False, compare=False)

    @classmethod
    def parse(cls, address: str, *, codec: Optional[AddressCodec] = None, ss58_prefix: Optional[int] = None) -> "UnifiedAddress":
        """
        Build from an SS58 or H160 string. Validation is eager: a malformed
        address raises InvalidAddressFormat here, not on first access.
        """
        if codec is None:
            codec = AddressCodec(ss58_prefix=DEFAULT_SS58_PREFIX if ss58_prefix is None else ss58_prefix)
        if _is_evm(address):
            return cls(source=address.lower(), is_evm_source=True, codec=codec)
        codec.public_key(address)
        return cls(source=address, is_evm_source=False, codec=codec)

    @property
    def evm(self) -> str:
        if self.is_evm_source:
            return self.source
        if "evm" not in self._cache:
            self._cache["evm"] = self.codec.substrate_to_evm(self.source)
        return self._cache["evm"]

    @property
    def substrate(self) -> str:
        if not self.is_evm_source:
            return self.source
        if "substrate" not in self._cache:
            self._cache["substrate"] = self.codec.evm_to_substrate(self.source)
        return self._cache["substrate"]

    def both(self) -> Dict[str, str]:
        return {"substrate": self.substrate, "evm": self.evm}

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, UnifiedAddress):
            return NotImplemented
        return self.evm == other.evm

    def __hash__(self) -> int:
        return hash(self.evm)

    def __str__(self) -> str:
        return f"UnifiedAddress(substrate: {self.substrate}, evm: {self.evm})"


# ---- module-level shortcuts ----------------------------------------------------


def substrate_to_evm(address: str) -> str:
    return AddressCodec().substrate_to_evm(address)


def evm_to_substrate(address: str, ss58_prefix: int = DEFAULT_SS58_PREFIX) -> str:
    return AddressCodec(ss58_prefix=ss58_prefix).evm_to_substrate(address)


def batch_convert(addresses: Sequence[str], target: Target, ss58_prefix: int = DEFAULT_SS58_PREFIX) -> List[str]:
    return AddressCodec(ss58_prefix=ss58_prefix).batch_convert(addresses, target)


def normalize_address(address: str, ss58_prefix: int = DEFAULT_SS58_PREFIX) -> str:
    return AddressCodec(ss58_prefix=ss58_prefix).normalize(address)
