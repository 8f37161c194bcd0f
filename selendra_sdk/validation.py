"""
Address classification.

`classify` is the fast path used for routing: an exact H160 pattern for EVM and
a shape heuristic for SS58 (base58 alphabet, longer than 40 characters). The
heuristic does not verify the SS58 checksum, so a string with a corrupted
checksum still classifies as `substrate`; use `classify_strict` when that
matters.

Neither function raises.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

from .address import EVM_ADDRESS_RE, AddressCodec
from .errors import InvalidAddressFormat

__all__ = [
    "AddressKind",
    "AddressClassification",
    "classify",
    "classify_strict",
    "is_evm_address",
    "is_substrate_address",
]

# base58 alphabet, more than 40 characters. No leading-digit rule: addresses
# under two-byte network prefixes (204 included) start with a letter.
_SS58_RE = re.compile(r"^[1-9A-HJ-NP-Za-km-z]{41,}$")


class AddressKind(str, Enum):
    SUBSTRATE = "substrate"
    EVM = "evm"
    INVALID = "invalid"


@dataclass(frozen=True)
class AddressClassification:
    valid: bool
    kind: AddressKind

    @classmethod
    def invalid(cls) -> "AddressClassification":
        return cls(valid=False, kind=AddressKind.INVALID)


_EVM = AddressClassification(valid=True, kind=AddressKind.EVM)
_SUBSTRATE = AddressClassification(valid=True, kind=AddressKind.SUBSTRATE)
_INVALID = AddressClassification.invalid()


def classify(address: Any) -> AddressClassification:
    """Cheap, checksum-free classification. Pure function of the input."""
    if not isinstance(address, str):
        return _INVALID
    if EVM_ADDRESS_RE.match(address):
        return _EVM
    if _SS58_RE.match(address):
        return _SUBSTRATE
    return _INVALID


def classify_strict(address: Any, codec: Optional[AddressCodec] = None) -> AddressClassification:
    """
    Like `classify` but a substrate answer requires a full SS58 decode
    (checksum included) to a 32-byte key.
    """
    if not isinstance(address, str):
        return _INVALID
    if EVM_ADDRESS_RE.match(address):
        return _EVM
    codec = codec or AddressCodec()
    try:
        codec.public_key(address)
    except InvalidAddressFormat:
        return _INVALID
    return _SUBSTRATE


def is_evm_address(address: Any) -> bool:
    return classify(address).kind is AddressKind.EVM


def is_substrate_address(address: Any) -> bool:
    return classify(address).kind is AddressKind.SUBSTRATE
