"""
UnifiedClient: one object for both ledgers.

    async with UnifiedClient.from_config(SDKConfig.from_env()) as client:
        bal = await client.get_unified_balance("5Grw...")
        await client.transfer(evm_a, evm_b, 10**18, TransferOptions(private_key=key))

There is no shared default client; build one per configuration.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence, Union

from ..address import AddressCodec, Target, UnifiedAddress
from ..backends.base import EvmBackend, SubstrateBackend
from ..backends.evm import EvmRpcBackend
from ..backends.substrate import SubstrateInterfaceBackend
from ..config import SDKConfig
from ..errors import InvalidAddressFormat, SelendraSdkError
from ..logging import get_logger
from ..types import (BlockInfo, ClaimResult, MappingRecord,
                     TransactionStatus, TransferOptions, TransferResult,
                     UnifiedBalance)
from ..utils.settle import settle_all
from ..validation import AddressClassification, AddressKind, classify
from .balance import BalanceAggregator
from .claim import ClaimOrchestrator
from .mapping import MappingResolver
from .transfer import TransferRouter

log = get_logger(__name__)


class UnifiedClient:
    def __init__(
        self,
        substrate: SubstrateBackend,
        evm: EvmBackend,
        *,
        config: Optional[SDKConfig] = None,
        codec: Optional[AddressCodec] = None,
    ) -> None:
        self.config = config or SDKConfig()
        self.substrate = substrate
        self.evm = evm
        self.codec = codec or AddressCodec(ss58_prefix=self.config.ss58_prefix)
        self.mapping = MappingResolver(substrate, self.codec)
        self.claims = ClaimOrchestrator(
            substrate,
            self.codec,
            chain_id=self.config.evm_chain_id,
            domain_name=self.config.claim_domain_name,
            domain_version=self.config.claim_domain_version,
        )
        self.balances = BalanceAggregator(substrate, evm, self.codec, self.mapping)
        self.router = TransferRouter(substrate, evm)

    @classmethod
    def from_config(cls, config: Optional[SDKConfig] = None) -> "UnifiedClient":
        """Build with the shipped backends; connections open lazily on first use."""
        config = config or SDKConfig.from_env()
        return cls(
            SubstrateInterfaceBackend.from_config(config),
            EvmRpcBackend.from_config(config),
            config=config,
        )

    async def close(self) -> None:
        await settle_all({"substrate": self.substrate.close(), "evm": self.evm.close()})

    async def __aenter__(self) -> "UnifiedClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    # ---- addresses (pure) --------------------------------------------------

    def address(self, address: str) -> UnifiedAddress:
        return UnifiedAddress.parse(address, codec=self.codec)

    def classify(self, address: Any) -> AddressClassification:
        return classify(address)

    def convert_address(self, address: str, target: Target) -> str:
        return self.codec.convert(address, target)

    def batch_convert(self, addresses: Sequence[str], target: Target) -> List[str]:
        return self.codec.batch_convert(addresses, target)

    # ---- mapping -----------------------------------------------------------

    async def has_mapping_on_chain(self, address: str) -> bool:
        return await self.mapping.has_mapping_on_chain(address)

    async def get_evm_address_from_mapping(self, substrate_address: str) -> Optional[str]:
        return await self.mapping.get_evm_address_from_mapping(substrate_address)

    async def get_substrate_address_from_mapping(self, evm_address: str) -> Optional[str]:
        return await self.mapping.get_substrate_address_from_mapping(evm_address)

    async def get_mapping_record(self, address: str) -> MappingRecord:
        return await self.mapping.get_mapping_record(address)

    # ---- claims ------------------------------------------------------------

    async def claim_default_evm_address(self, signer: Any) -> ClaimResult:
        return await self.claims.claim_default_evm_address(signer)

    async def claim_evm_address(self, signer: Any, evm_address: str, signature: str) -> ClaimResult:
        return await self.claims.claim_evm_address(signer, evm_address, signature)

    def build_signing_payload(self, substrate_address: str) -> bytes:
        return self.claims.build_signing_payload(substrate_address)

    def signing_payload_hex(self, substrate_address: str) -> str:
        return self.claims.signing_payload_hex(substrate_address)

    # ---- balances ----------------------------------------------------------

    async def get_unified_balance(
        self, address: str, *, allow_partial: bool = False, use_mapping: bool = False
    ) -> UnifiedBalance:
        return await self.balances.get_unified_balance(address, allow_partial=allow_partial, use_mapping=use_mapping)

    async def has_unified_balance(self, address: str) -> bool:
        return await self.balances.has_unified_balance(address)

    async def get_balance(self, address: str) -> Any:
        """Single-ledger balance of the ledger the address belongs to."""
        kind = classify(address).kind
        if kind is AddressKind.EVM:
            return await self.evm.get_balance(address)
        if kind is AddressKind.SUBSTRATE:
            return await self.balances.substrate_balance(address)
        raise InvalidAddressFormat("not a substrate or evm address", address=str(address))

    # ---- transfers ---------------------------------------------------------

    async def transfer(
        self, from_address: str, to_address: str, amount: int, options: Optional[TransferOptions] = None
    ) -> TransferResult:
        return await self.router.transfer(from_address, to_address, amount, options)

    async def get_transaction_status(self, tx_hash: str) -> TransactionStatus:
        return await self.router.get_transaction_status(tx_hash)

    async def wait_for_transaction(self, tx_hash: str, confirmations: int = 1) -> TransactionStatus:
        return await self.router.wait_for_transaction(tx_hash, confirmations)

    async def estimate_gas(self, from_address: str, to_address: str, amount: int, data: Optional[str] = None) -> int:
        return await self.router.estimate_gas(from_address, to_address, amount, data)

    # ---- chain -------------------------------------------------------------

    async def get_block_number(self) -> int:
        """Highest block number reported by either ledger."""
        outcomes = await settle_all({"substrate": self.substrate.get_block_number(), "evm": self.evm.get_block_number()})
        substrate, evm = outcomes["substrate"].unwrap(), outcomes["evm"].unwrap()
        return max(int(substrate), int(evm))

    async def get_block(self, number: Union[int, str] = "latest") -> Optional[BlockInfo]:
        """
        Block from the substrate ledger, falling back to the EVM ledger when the
        substrate node errors or has no such block. None when neither has it.
        """
        try:
            block = await self.substrate.get_block(number)
        except SelendraSdkError as e:
            log.warning("substrate block lookup failed", extra={"ledger": "substrate", "error": str(e)})
            block = None
        if block is not None:
            return block
        return await self.evm.get_block(number)

    async def chain_info(self) -> Dict[str, Any]:
        outcomes = await settle_all({"substrate": self.substrate.get_chain_info(), "evm": self.evm.get_chain_info()})
        substrate, evm = outcomes["substrate"].unwrap(), outcomes["evm"].unwrap()
        merged: Dict[str, Any] = {**evm, **substrate}
        merged["ss58Prefix"] = self.config.ss58_prefix
        merged["evmChainId"] = evm.get("chainId", self.config.evm_chain_id)
        merged["blockNumber"] = max(int(substrate.get("blockNumber") or 0), int(evm.get("blockNumber") or 0))
        return merged


__all__ = ["UnifiedClient"]
