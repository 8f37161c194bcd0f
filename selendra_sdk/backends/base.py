"""
Minimal backend interfaces the unified layer depends on.

The unified components never talk to a node directly; they call one of these
two protocols. `SubstrateInterfaceBackend` and `EvmRpcBackend` are the shipped
implementations, and tests pass in-memory fakes with the same methods.
"""

from __future__ import annotations

from typing import (Any, Dict, Optional, Protocol, Sequence, Union,
                    runtime_checkable)

from ..types import (BlockInfo, ExtrinsicOutcome, TransactionStatus,
                     TransferResult)


@runtime_checkable
class SubstrateBackend(Protocol):
    async def query(self, pallet: str, storage_item: str, params: Sequence[Any] = ()) -> Optional[Any]:
        """Storage read. An absent Option value comes back as None."""
        ...

    async def submit_extrinsic(
        self, pallet: str, method: str, params: Dict[str, Any], signer: Any
    ) -> ExtrinsicOutcome:
        """Sign, submit and wait for finality."""
        ...

    async def transfer(self, from_address: str, to_address: str, amount: int, signer: Any) -> TransferResult: ...

    async def get_transaction_status(self, tx_hash: str) -> TransactionStatus: ...

    async def wait_for_transaction(self, tx_hash: str, confirmations: int = 1) -> TransactionStatus: ...

    async def get_block_number(self) -> int: ...

    async def get_chain_info(self) -> Dict[str, Any]: ...

    async def get_block(self, number: Union[int, str] = "latest") -> Optional[BlockInfo]: ...

    async def close(self) -> None: ...


@runtime_checkable
class EvmBackend(Protocol):
    async def get_balance(self, address: str) -> int: ...

    async def call(self, to: str, data: str, from_address: Optional[str] = None) -> str: ...

    async def estimate_gas(
        self, from_address: str, to_address: str, amount: int = 0, data: Optional[str] = None
    ) -> int: ...

    async def get_transaction_receipt(self, tx_hash: str) -> Optional[Dict[str, Any]]: ...

    async def get_transaction(self, tx_hash: str) -> Optional[Dict[str, Any]]: ...

    async def get_transaction_status(self, tx_hash: str) -> TransactionStatus: ...

    async def wait_for_transaction(self, tx_hash: str, confirmations: int = 1) -> TransactionStatus: ...

    async def transfer(
        self,
        from_address: str,
        to_address: str,
        amount: int,
        private_key: str,
        *,
        gas_limit: Optional[int] = None,
        gas_price: Optional[int] = None,
        nonce: Optional[int] = None,
    ) -> TransferResult: ...

    async def get_block_number(self) -> int: ...

    async def get_chain_id(self) -> int: ...

    async def get_chain_info(self) -> Dict[str, Any]: ...

    async def get_block(self, number: Union[int, str] = "latest") -> Optional[BlockInfo]: ...

    async def close(self) -> None: ...


__all__ = ["SubstrateBackend", "EvmBackend"]
