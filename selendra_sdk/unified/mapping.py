"""
Explicit (claimed) address mappings stored by the unified-accounts pallet.

Storage:
    UnifiedAccounts.NativeToEvm(AccountId) -> Option<H160>
    UnifiedAccounts.EvmToNative(H160)      -> Option<AccountId>

A `None` from any lookup means "not claimed". It does not mean "no EVM
address": the default derived address from `AddressCodec` always exists.
Backend errors propagate; they are never turned into `None`.
"""

from __future__ import annotations

from typing import Any, Optional

from ..address import AddressCodec
from ..backends.base import SubstrateBackend
from ..errors import InvalidAddressFormat
from ..logging import get_logger
from ..types import MappingRecord, MappingSource
from ..utils.bytes import from_hex, is_hex, strip_0x
from ..validation import AddressKind, classify

log = get_logger(__name__)

PALLET = "unifiedAccounts"
NATIVE_TO_EVM = "nativeToEvm"
EVM_TO_NATIVE = "evmToNative"


class MappingResolver:
    def __init__(self, substrate: SubstrateBackend, codec: Optional[AddressCodec] = None) -> None:
        self.substrate = substrate
        self.codec = codec or AddressCodec()

    async def has_mapping_on_chain(self, address: str) -> bool:
        kind = classify(address).kind
        if kind is AddressKind.EVM:
            value = await self.substrate.query(PALLET, EVM_TO_NATIVE, [address])
        elif kind is AddressKind.SUBSTRATE:
            value = await self.substrate.query(PALLET, NATIVE_TO_EVM, [address])
        else:
            raise InvalidAddressFormat("not a substrate or evm address", address=_shown(address))
        log.debug("mapping lookup", extra={"address": address, "kind": kind, "claimed": value is not None})
        return value is not None

    async def get_evm_address_from_mapping(self, substrate_address: str) -> Optional[str]:
        """Claimed H160 for an SS58 account (lowercase), or None."""
        if classify(substrate_address).kind is not AddressKind.SUBSTRATE:
            raise InvalidAddressFormat("expected an SS58 address", address=_shown(substrate_address))
        value = await self.substrate.query(PALLET, NATIVE_TO_EVM, [substrate_address])
        if value is None:
            return None
        return self._as_evm(value)

    async def get_substrate_address_from_mapping(self, evm_address: str) -> Optional[str]:
        """Claimed SS58 account for an H160, or None."""
        if classify(evm_address).kind is not AddressKind.EVM:
            raise InvalidAddressFormat("expected 0x followed by 40 hex characters", address=_shown(evm_address))
        value = await self.substrate.query(PALLET, EVM_TO_NATIVE, [evm_address])
        if value is None:
            return None
        return self._as_substrate(value)

    async def get_mapping_record(self, address: str) -> MappingRecord:
        """
        Explicit mapping when one is stored, otherwise the default derivation
        with `claimed=False`.
        """
        kind = classify(address).kind
        if kind is AddressKind.EVM:
            native = await self.get_substrate_address_from_mapping(address)
            if native is not None:
                return MappingRecord(native, address.lower(), True, MappingSource.EXPLICIT)
            return MappingRecord(self.codec.evm_to_substrate(address), address.lower(), False, MappingSource.DEFAULT)
        if kind is AddressKind.SUBSTRATE:
            evm = await self.get_evm_address_from_mapping(address)
            if evm is not None:
                return MappingRecord(address, evm, True, MappingSource.EXPLICIT)
            return MappingRecord(address, self.codec.substrate_to_evm(address), False, MappingSource.DEFAULT)
        raise InvalidAddressFormat("not a substrate or evm address", address=_shown(address))

    # ---- value decoding ----------------------------------------------------

    def _as_evm(self, value: Any) -> str:
        if isinstance(value, (bytes, bytearray)):
            value = "0x" + bytes(value).hex()
        if not is_hex(value, length=40):
            raise InvalidAddressFormat("unexpected NativeToEvm storage value", address=str(value))
        return "0x" + strip_0x(value).lower()

    def _as_substrate(self, value: Any) -> str:
        # substrate-interface decodes AccountId to SS58 with its own prefix;
        # raw 32-byte values (bytes or hex) are encoded with ours.
        if isinstance(value, (bytes, bytearray)):
            return self.codec.encode_account_id(bytes(value))
        if is_hex(value, length=64):
            return self.codec.encode_account_id(from_hex(value))
        return self.codec.normalize(str(value))


def _shown(address: Any) -> Optional[str]:
    return address if isinstance(address, str) or address is None else repr(address)


__all__ = ["MappingResolver", "PALLET", "NATIVE_TO_EVM", "EVM_TO_NATIVE"]
