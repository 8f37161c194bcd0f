"""
Shared fixtures: in-memory fakes of both ledger backends.

Each fake records every call in `.calls` as a tuple (method, *args) so tests
can assert both what was asked and that nothing was asked at all.
"""

from __future__ import annotations

import asyncio
from typing import Any, Dict, List, Optional, Sequence, Tuple

import pytest

from selendra_sdk.address import AddressCodec
from selendra_sdk.types import (BlockInfo, ChainEvent, ExtrinsicOutcome, Ledger,
                                TransactionStatus, TransferResult, TxStatus)

ALICE = "5GrwvaEF5zXb26Fz9rcQpDWS57CtERHpNehXCPcNoHGKutQY"
ALICE_PUBKEY = bytes.fromhex("d43593c715fdd31c61141abd04a99fd6822c8558854ccde39a5684e7a56da27d")
ALICE_EVM = "0xd43593c715fdd31c61141abd04a99fd6822c8558"
BOB = "5FHneW46xGXgs5mUiveU4sbTyGBzmstUspZC92UhjJM694ty"
EVM_A = "0x742d35Cc6634C0532925a3b844Bc9e7595f0bEb0"
EVM_B = "0x2c7536e3605d9c16a7a3d7b1898e529396a65c23"


class _Recorder:
    def __init__(self) -> None:
        self.calls: List[Tuple[Any, ...]] = []
        self.errors: Dict[str, BaseException] = {}
        self.closed = False

    def _record(self, method: str, *args: Any) -> None:
        self.calls.append((method, *args))
        err = self.errors.get(method)
        if err is not None:
            raise err

    def called(self, method: str) -> List[Tuple[Any, ...]]:
        return [c for c in self.calls if c[0] == method]

    async def close(self) -> None:
        self.closed = True


async def _settle(value: Any, delay: float, owner: Any) -> Any:
    try:
        await asyncio.sleep(delay)
    except asyncio.CancelledError:
        owner.cancelled = True
        raise
    if isinstance(value, BaseException):
        raise value
    return value


class FakeSubstrate(_Recorder):
    def __init__(self, storage: Optional[Dict[Tuple[str, str, Any], Any]] = None) -> None:
        super().__init__()
        self.storage: Dict[Tuple[str, str, Any], Any] = dict(storage or {})
        self.outcome: Optional[ExtrinsicOutcome] = None
        self.status: Any = TransactionStatus.pending(Ledger.SUBSTRATE)
        self.wait_result: Any = TimeoutError("substrate wait timed out")
        self.wait_delay = 0.0
        self.cancelled = False
        self.block_number = 100
        self.chain_info: Dict[str, Any] = {"name": "Selendra", "tokenSymbol": "SEL", "blockNumber": 100}
        self.blocks: Dict[Any, Optional[BlockInfo]] = {}

    async def query(self, pallet: str, storage_item: str, params: Sequence[Any] = ()) -> Optional[Any]:
        self._record("query", pallet, storage_item, tuple(params))
        return self.storage.get((pallet, storage_item, params[0] if params else None))

    async def submit_extrinsic(self, pallet: str, method: str, params: Dict[str, Any], signer: Any) -> ExtrinsicOutcome:
        self._record("submit_extrinsic", pallet, method, dict(params), signer)
        assert self.outcome is not None, "test did not set an outcome"
        return self.outcome

    async def transfer(self, from_address: str, to_address: str, amount: int, signer: Any) -> TransferResult:
        self._record("transfer", from_address, to_address, amount, signer)
        return TransferResult(hash="0x" + "ab" * 32, ledger=Ledger.SUBSTRATE, block_number=7)

    async def get_transaction_status(self, tx_hash: str) -> TransactionStatus:
        self._record("get_transaction_status", tx_hash)
        if isinstance(self.status, BaseException):
            raise self.status
        return self.status

    async def wait_for_transaction(self, tx_hash: str, confirmations: int = 1) -> TransactionStatus:
        self._record("wait_for_transaction", tx_hash, confirmations)
        return await _settle(self.wait_result, self.wait_delay, self)

    async def get_block_number(self) -> int:
        self._record("get_block_number")
        return self.block_number

    async def get_chain_info(self) -> Dict[str, Any]:
        self._record("get_chain_info")
        return dict(self.chain_info)

    async def get_block(self, number: Any = "latest") -> Optional[BlockInfo]:
        self._record("get_block", number)
        return self.blocks.get(number)


class FakeEvm(_Recorder):
    def __init__(self, balances: Optional[Dict[str, int]] = None) -> None:
        super().__init__()
        self.balances = {k.lower(): v for k, v in (balances or {}).items()}
        self.status: Any = TransactionStatus.pending(Ledger.EVM)
        self.wait_result: Any = TimeoutError("evm wait timed out")
        self.wait_delay = 0.0
        self.cancelled = False
        self.gas = 21000
        self.block_number = 120
        self.chain_info: Dict[str, Any] = {"chainId": 1961, "blockNumber": 120, "tokenDecimals": 18}
        self.blocks: Dict[Any, Optional[BlockInfo]] = {}

    async def get_balance(self, address: str) -> int:
        self._record("get_balance", address)
        return self.balances.get(address.lower(), 0)

    async def call(self, to: str, data: str, from_address: Optional[str] = None) -> str:
        self._record("call", to, data, from_address)
        return "0x"

    async def estimate_gas(self, from_address: str, to_address: str, amount: int = 0, data: Optional[str] = None) -> int:
        self._record("estimate_gas", from_address, to_address, amount, data)
        return self.gas

    async def get_transaction_receipt(self, tx_hash: str) -> Optional[Dict[str, Any]]:
        self._record("get_transaction_receipt", tx_hash)
        return None

    async def get_transaction(self, tx_hash: str) -> Optional[Dict[str, Any]]:
        self._record("get_transaction", tx_hash)
        return None

    async def get_transaction_status(self, tx_hash: str) -> TransactionStatus:
        self._record("get_transaction_status", tx_hash)
        if isinstance(self.status, BaseException):
            raise self.status
        return self.status

    async def wait_for_transaction(self, tx_hash: str, confirmations: int = 1) -> TransactionStatus:
        self._record("wait_for_transaction", tx_hash, confirmations)
        return await _settle(self.wait_result, self.wait_delay, self)

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
    ) -> TransferResult:
        self._record("transfer", from_address, to_address, amount, private_key, gas_limit, gas_price, nonce)
        return TransferResult(hash="0x" + "cd" * 32, ledger=Ledger.EVM)

    async def get_block_number(self) -> int:
        self._record("get_block_number")
        return self.block_number

    async def get_chain_id(self) -> int:
        self._record("get_chain_id")
        return 1961

    async def get_chain_info(self) -> Dict[str, Any]:
        self._record("get_chain_info")
        return dict(self.chain_info)

    async def get_block(self, number: Any = "latest") -> Optional[BlockInfo]:
        self._record("get_block", number)
        return self.blocks.get(number)


def claimed_outcome(account: str = ALICE, evm: str = ALICE_EVM, *, block_hash: str = "0x" + "11" * 32) -> ExtrinsicOutcome:
    return ExtrinsicOutcome(
        block_hash=block_hash,
        extrinsic_hash="0x" + "22" * 32,
        events=(
            ChainEvent("Balances", "Withdraw", {"who": account, "amount": 1}),
            ChainEvent("UnifiedAccounts", "AccountClaimed", (account, evm)),
            ChainEvent("System", "ExtrinsicSuccess", {}),
        ),
    )


def success(ledger: Ledger, block_number: int = 10) -> TransactionStatus:
    return TransactionStatus(status=TxStatus.SUCCESS, ledger=ledger, block_number=block_number)


@pytest.fixture
def codec() -> AddressCodec:
    return AddressCodec()


@pytest.fixture
def substrate() -> FakeSubstrate:
    return FakeSubstrate()


@pytest.fixture
def evm() -> FakeEvm:
    return FakeEvm()
