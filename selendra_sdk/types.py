"""
Data model shared by the unified layer and the backends.

All amounts are Python ints in the chain's smallest unit; nothing is ever
routed through float. Results are frozen dataclasses; RPC payload shapes are
converted at the backend boundary (`from_receipt`, `from_account_info`).

Nothing here performs network I/O.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping, Optional, Sequence, Tuple

from .utils.bytes import hex_to_int

__all__ = [
    "Ledger",
    "MappingSource",
    "MappingRecord",
    "SubstrateBalance",
    "LedgerFailure",
    "UnifiedBalance",
    "ClaimResult",
    "TransferOptions",
    "TransferIntent",
    "TransferResult",
    "TxStatus",
    "TransactionStatus",
    "ChainEvent",
    "ExtrinsicOutcome",
    "BlockInfo",
]

Address = str  # SS58 or 0x-prefixed H160
Hash = str  # 0x-prefixed hex string


class Ledger(str, Enum):
    SUBSTRATE = "substrate"
    EVM = "evm"


class MappingSource(str, Enum):
    DEFAULT = "default"  # derived by truncation / padding
    EXPLICIT = "explicit"  # observed in on-chain storage


@dataclass(slots=True, frozen=True)
class MappingRecord:
    substrate_address: Address
    evm_address: Address
    claimed: bool
    source: MappingSource


# --- balances ----------------------------------------------------------------


@dataclass(slots=True, frozen=True)
class SubstrateBalance:
    free: int
    reserved: int = 0
    frozen: int = 0

    @staticmethod
    def from_account_info(info: Optional[Mapping[str, Any]]) -> "SubstrateBalance":
        """
        `system.account` value -> SubstrateBalance. A missing account is all
        zeros. Older runtimes report `misc_frozen` / `fee_frozen` instead of
        `frozen`; the larger of the two is used.
        """
        if not info:
            return SubstrateBalance(free=0)
        data = info.get("data", info)
        frozen = data.get("frozen")
        if frozen is None:
            frozen = max(hex_to_int(data.get("misc_frozen")), hex_to_int(data.get("fee_frozen")))
        return SubstrateBalance(
            free=hex_to_int(data.get("free")),
            reserved=hex_to_int(data.get("reserved")),
            frozen=hex_to_int(frozen),
        )


@dataclass(slots=True, frozen=True)
class LedgerFailure:
    ledger: Ledger
    error_type: str
    message: str

    @staticmethod
    def from_exception(ledger: Ledger, exc: BaseException) -> "LedgerFailure":
        return LedgerFailure(ledger=ledger, error_type=type(exc).__name__, message=str(exc))


@dataclass(slots=True, frozen=True)
class UnifiedBalance:
    """
    Balance of one account on both ledgers.

    `total` is `substrate.free + evm` when both sides were read, otherwise None.
    A side that could not be read is None and has an entry in `failures`; it is
    never reported as zero.
    """

    substrate_address: Address
    evm_address: Address
    substrate: Optional[SubstrateBalance]
    evm: Optional[int]
    total: Optional[int]
    failures: Tuple[LedgerFailure, ...] = ()

    @property
    def is_complete(self) -> bool:
        return self.substrate is not None and self.evm is not None

    @staticmethod
    def build(
        substrate_address: Address,
        evm_address: Address,
        substrate: Optional[SubstrateBalance],
        evm: Optional[int],
        failures: Sequence[LedgerFailure] = (),
    ) -> "UnifiedBalance":
        total = substrate.free + evm if substrate is not None and evm is not None else None
        return UnifiedBalance(
            substrate_address=substrate_address,
            evm_address=evm_address,
            substrate=substrate,
            evm=evm,
            total=total,
            failures=tuple(failures),
        )


# --- claims ------------------------------------------------------------------


@dataclass(slots=True, frozen=True)
class ClaimResult:
    account_id: Address
    evm_address: Address
    block_hash: Hash


# --- transfers ---------------------------------------------------------------


@dataclass(slots=True, frozen=True)
class TransferOptions:
    """
    Credentials and knobs for a same-ledger transfer.

    - signer: substrate keypair (substrateinterface.Keypair or compatible)
    - private_key: 0x-hex EVM private key
    - gas_limit / gas_price / nonce: EVM overrides; fetched from the node when None
    - memo: free text, only logged
    """

    signer: Any = None
    private_key: Optional[str] = field(default=None, repr=False)
    gas_limit: Optional[int] = None
    gas_price: Optional[int] = None
    nonce: Optional[int] = None
    memo: Optional[str] = None


@dataclass(slots=True, frozen=True)
class TransferIntent:
    from_address: Address
    to_address: Address
    amount: int
    options: TransferOptions = field(default_factory=TransferOptions)


@dataclass(slots=True, frozen=True)
class TransferResult:
    hash: Hash
    ledger: Ledger
    block_number: Optional[int] = None


# --- transaction status ------------------------------------------------------


class TxStatus(str, Enum):
    PENDING = "pending"
    SUCCESS = "success"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self is not TxStatus.PENDING


@dataclass(slots=True, frozen=True)
class TransactionStatus:
    status: TxStatus
    ledger: Optional[Ledger] = None
    block_number: Optional[int] = None
    block_hash: Optional[Hash] = None
    gas_used: Optional[int] = None
    effective_gas_price: Optional[int] = None

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal

    @staticmethod
    def pending(ledger: Optional[Ledger] = None) -> "TransactionStatus":
        return TransactionStatus(status=TxStatus.PENDING, ledger=ledger)

    @staticmethod
    def from_receipt(receipt: Mapping[str, Any]) -> "TransactionStatus":
        """eth_getTransactionReceipt result -> TransactionStatus (status 1 = success)."""
        ok = hex_to_int(receipt.get("status")) == 1
        gas_price = receipt.get("effectiveGasPrice")
        return TransactionStatus(
            status=TxStatus.SUCCESS if ok else TxStatus.FAILED,
            ledger=Ledger.EVM,
            block_number=hex_to_int(receipt.get("blockNumber")) if receipt.get("blockNumber") else None,
            block_hash=receipt.get("blockHash"),
            gas_used=hex_to_int(receipt.get("gasUsed")) if receipt.get("gasUsed") is not None else None,
            effective_gas_price=hex_to_int(gas_price) if gas_price is not None else None,
        )


# --- substrate submission ----------------------------------------------------


@dataclass(slots=True, frozen=True)
class ChainEvent:
    pallet: str
    name: str
    attributes: Any = None

    def matches(self, pallet: str, name: str) -> bool:
        return _norm(self.pallet) == _norm(pallet) and self.name == name


def _norm(name: str) -> str:
    return name.replace("_", "").lower()


@dataclass(slots=True, frozen=True)
class ExtrinsicOutcome:
    """Finalized submission: where it landed, what it emitted, and whether it failed."""

    block_hash: Optional[Hash]
    extrinsic_hash: Optional[Hash]
    events: Tuple[ChainEvent, ...] = ()
    dispatch_error: Optional[str] = None
    block_number: Optional[int] = None

    @property
    def is_success(self) -> bool:
        return self.dispatch_error is None

    def find_event(self, pallet: str, name: str) -> Optional[ChainEvent]:
        for ev in self.events:
            if ev.matches(pallet, name):
                return ev
        return None



# --- blocks -------------------------------------------------------------------


@dataclass(slots=True, frozen=True)
class BlockInfo:
    """A block header summary from either ledger. `timestamp` is unix milliseconds."""

    number: int
    hash: Hash
    parent_hash: Hash
    timestamp: Optional[int]
    transactions: Tuple[Hash, ...]
    ledger: Ledger

    @staticmethod
    def from_evm_block(block: Mapping[str, Any]) -> "BlockInfo":
        """eth_getBlockByNumber result (hashes only) -> BlockInfo."""
        ts = block.get("timestamp")
        txs = block.get("transactions") or ()
        return BlockInfo(
            number=hex_to_int(block.get("number")),
            hash=block.get("hash") or "",
            parent_hash=block.get("parentHash") or "",
            timestamp=hex_to_int(ts) * 1000 if ts is not None else None,
            transactions=tuple(tx if isinstance(tx, str) else tx.get("hash", "") for tx in txs),
            ledger=Ledger.EVM,
        )
