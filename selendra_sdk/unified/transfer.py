"""
selendra_sdk.unified.transfer
=============================

Routes transfers and transaction-status queries to the ledger that owns them.

- transfer(from, to, amount, options)
    Same kind on both ends -> that ledger's backend. Mixed kinds ->
    BridgeUnavailable, with no backend call.
- get_transaction_status(tx_hash)
    Asks both ledgers at once. Precedence: a non-pending substrate answer,
    then a non-pending EVM answer, else pending. A ledger that errors is
    logged and treated as "no answer".
- wait_for_transaction(tx_hash, confirmations)
    Races both ledgers' waits. The first terminal status wins and the other
    wait is cancelled and awaited. When both fail: all timeouts ->
    TimeoutError, otherwise TransactionFailed with each ledger's error text.
- estimate_gas(from, to, amount, data)
    EVM -> EVM asks the EVM node; any other pair gets the flat default fee.
"""

from __future__ import annotations

import asyncio
from typing import Any, Dict, Optional

from ..backends.base import EvmBackend, SubstrateBackend
from ..errors import BridgeUnavailable, InvalidAddressFormat, TransactionFailed
from ..logging import get_logger, trace_scope
from ..types import (Ledger, TransactionStatus, TransferIntent,
                     TransferOptions, TransferResult)
from ..utils.settle import first_terminal, settle_all
from ..validation import AddressKind, classify

log = get_logger(__name__)

DEFAULT_WEIGHT_FEE = 2_100_000_000_000_000

_TIMEOUTS = (TimeoutError, asyncio.TimeoutError)


def _kind(address: Any, role: str) -> AddressKind:
    kind = classify(address).kind
    if kind is AddressKind.INVALID:
        shown = address if isinstance(address, str) or address is None else repr(address)
        raise InvalidAddressFormat(f"invalid {role} address", address=shown)
    return kind


def _check_amount(amount: Any) -> int:
    if isinstance(amount, bool) or not isinstance(amount, int):
        raise ValueError(f"amount must be an int in the smallest unit, got {type(amount).__name__}")
    if amount < 0:
        raise ValueError("amount must be non-negative")
    return amount


class TransferRouter:
    def __init__(self, substrate: SubstrateBackend, evm: EvmBackend) -> None:
        self.substrate = substrate
        self.evm = evm

    # ---- transfers ---------------------------------------------------------

    async def transfer(
        self,
        from_address: str,
        to_address: str,
        amount: int,
        options: Optional[TransferOptions] = None,
    ) -> TransferResult:
        intent = TransferIntent(
            from_address=from_address,
            to_address=to_address,
            amount=_check_amount(amount),
            options=options or TransferOptions(),
        )
        return await self.submit(intent)

    async def submit(self, intent: TransferIntent) -> TransferResult:
        src = _kind(intent.from_address, "sender")
        dst = _kind(intent.to_address, "recipient")
        if src is not dst:
            raise BridgeUnavailable(src.value, dst.value)

        opts = intent.options
        with trace_scope(op="transfer", ledger=src, address=intent.from_address):
            log.info("routing transfer", extra={"amount": intent.amount, "memo": opts.memo})
            if src is AddressKind.SUBSTRATE:
                if opts.signer is None:
                    raise ValueError("signer required for substrate transfers")
                return await self.substrate.transfer(
                    intent.from_address, intent.to_address, intent.amount, opts.signer
                )
            if not opts.private_key:
                raise ValueError("private key required for EVM transfers")
            return await self.evm.transfer(
                intent.from_address,
                intent.to_address,
                intent.amount,
                opts.private_key,
                gas_limit=opts.gas_limit,
                gas_price=opts.gas_price,
                nonce=opts.nonce,
            )

    # ---- status ------------------------------------------------------------

    async def get_transaction_status(self, tx_hash: str) -> TransactionStatus:
        with trace_scope(op="get_transaction_status", tx_hash=tx_hash):
            outcomes = await settle_all(
                {
                    Ledger.SUBSTRATE.value: self.substrate.get_transaction_status(tx_hash),
                    Ledger.EVM.value: self.evm.get_transaction_status(tx_hash),
                }
            )
            for name, outcome in outcomes.items():
                if not outcome.ok:
                    log.warning("status query failed", extra={"ledger": name, "error": str(outcome.error)})
                    continue
                status: TransactionStatus = outcome.value  # type: ignore[assignment]
                if status.is_terminal:
                    return status
            return TransactionStatus.pending()

    async def wait_for_transaction(self, tx_hash: str, confirmations: int = 1) -> TransactionStatus:
        with trace_scope(op="wait_for_transaction", tx_hash=tx_hash):
            winner, outcomes = await first_terminal(
                {
                    Ledger.SUBSTRATE.value: self.substrate.wait_for_transaction(tx_hash, confirmations),
                    Ledger.EVM.value: self.evm.wait_for_transaction(tx_hash, confirmations),
                },
                accept=lambda status: status is not None and status.is_terminal,
            )
            if winner is not None:
                log.info("transaction settled", extra={"ledger": winner.name, "status": winner.value.status})
                return winner.value  # type: ignore[return-value]

            errors: Dict[str, str] = {}
            all_timeouts = True
            for name, outcome in outcomes.items():
                if outcome.error is None:
                    all_timeouts = False
                    errors[name] = "wait returned without a terminal status"
                    continue
                if not isinstance(outcome.error, _TIMEOUTS):
                    all_timeouts = False
                errors[name] = f"{type(outcome.error).__name__}: {outcome.error}"
                log.warning("wait failed", extra={"ledger": name, "error": errors[name]})
            if all_timeouts:
                raise TimeoutError(f"{tx_hash} not confirmed on either ledger")
            raise TransactionFailed("transaction confirmation failed on both ledgers", tx_hash=tx_hash, errors=errors)

    # ---- fees --------------------------------------------------------------

    async def estimate_gas(
        self, from_address: str, to_address: str, amount: int, data: Optional[str] = None
    ) -> int:
        src = _kind(from_address, "sender")
        dst = _kind(to_address, "recipient")
        if src is AddressKind.EVM and dst is AddressKind.EVM:
            return await self.evm.estimate_gas(from_address, to_address, _check_amount(amount), data)
        return DEFAULT_WEIGHT_FEE


__all__ = ["TransferRouter", "DEFAULT_WEIGHT_FEE"]
