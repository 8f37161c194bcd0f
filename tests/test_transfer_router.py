from __future__ import annotations

import asyncio

import pytest

from conftest import ALICE, BOB, EVM_A, EVM_B, FakeEvm, FakeSubstrate, success
from selendra_sdk.errors import (BackendUnavailable, BridgeUnavailable,
                                 InvalidAddressFormat, TransactionFailed)
from selendra_sdk.types import (Ledger, TransactionStatus, TransferOptions,
                                TxStatus)
from selendra_sdk.unified.transfer import DEFAULT_WEIGHT_FEE, TransferRouter

TX = "0x" + "ef" * 32


def _router():
    sub, evm = FakeSubstrate(), FakeEvm()
    return TransferRouter(sub, evm), sub, evm


# ---- transfer ------------------------------------------------------------------


@pytest.mark.asyncio
async def test_substrate_to_substrate_uses_substrate_backend():
    router, sub, evm = _router()
    signer = object()
    result = await router.transfer(ALICE, BOB, 10**12, TransferOptions(signer=signer))
    assert result.ledger is Ledger.SUBSTRATE
    assert sub.calls == [("transfer", ALICE, BOB, 10**12, signer)]
    assert evm.calls == []


@pytest.mark.asyncio
async def test_evm_to_evm_uses_evm_backend_with_options():
    router, sub, evm = _router()
    opts = TransferOptions(private_key="0x" + "01" * 32, gas_limit=30000, gas_price=7)
    result = await router.transfer(EVM_A, EVM_B, 5, opts)
    assert result.ledger is Ledger.EVM
    assert evm.calls == [("transfer", EVM_A, EVM_B, 5, "0x" + "01" * 32, 30000, 7, None)]
    assert sub.calls == []


@pytest.mark.parametrize("src,dst", [(ALICE, EVM_A), (EVM_A, BOB)])
@pytest.mark.asyncio
async def test_cross_ledger_transfer_raises_bridge_unavailable(src, dst):
    router, sub, evm = _router()
    with pytest.raises(BridgeUnavailable) as info:
        await router.transfer(src, dst, 1, TransferOptions(signer=object(), private_key="0x01"))
    assert {info.value.from_kind, info.value.to_kind} == {"substrate", "evm"}
    assert sub.calls == [] and evm.calls == []


@pytest.mark.asyncio
async def test_missing_credentials():
    router, _, _ = _router()
    with pytest.raises(ValueError, match="private key"):
        await router.transfer(EVM_A, EVM_B, 1)
    with pytest.raises(ValueError, match="signer"):
        await router.transfer(ALICE, BOB, 1)


@pytest.mark.asyncio
async def test_invalid_addresses_and_amounts():
    router, sub, evm = _router()
    with pytest.raises(InvalidAddressFormat):
        await router.transfer("bogus", BOB, 1)
    with pytest.raises(ValueError):
        await router.transfer(ALICE, BOB, -1)
    with pytest.raises(ValueError):
        await router.transfer(ALICE, BOB, 1.5)  # type: ignore[arg-type]
    assert sub.calls == [] and evm.calls == []


# ---- status --------------------------------------------------------------------


@pytest.mark.asyncio
async def test_status_prefers_substrate_answer():
    router, sub, evm = _router()
    sub.status = success(Ledger.SUBSTRATE, 5)
    evm.status = TransactionStatus(status=TxStatus.FAILED, ledger=Ledger.EVM, block_number=6)
    status = await router.get_transaction_status(TX)
    assert status.ledger is Ledger.SUBSTRATE
    assert status.status is TxStatus.SUCCESS


@pytest.mark.asyncio
async def test_status_falls_back_to_evm_then_pending():
    router, sub, evm = _router()
    evm.status = success(Ledger.EVM, 6)
    assert (await router.get_transaction_status(TX)).ledger is Ledger.EVM

    router, _, _ = _router()
    pending = await router.get_transaction_status(TX)
    assert pending.status is TxStatus.PENDING


@pytest.mark.asyncio
async def test_status_isolates_a_failing_backend():
    router, sub, evm = _router()
    sub.status = BackendUnavailable("substrate", "down")
    evm.status = success(Ledger.EVM, 6)
    status = await router.get_transaction_status(TX)
    assert status.ledger is Ledger.EVM
    assert sub.called("get_transaction_status") and evm.called("get_transaction_status")


@pytest.mark.asyncio
async def test_status_both_failing_is_pending():
    router, sub, evm = _router()
    sub.status = RuntimeError("a")
    evm.status = RuntimeError("b")
    assert (await router.get_transaction_status(TX)).status is TxStatus.PENDING


# ---- wait ----------------------------------------------------------------------


@pytest.mark.asyncio
async def test_wait_first_terminal_wins_and_loser_is_cancelled():
    router, sub, evm = _router()
    evm.wait_result = success(Ledger.EVM, 9)
    evm.wait_delay = 0.01
    sub.wait_result = success(Ledger.SUBSTRATE, 1)
    sub.wait_delay = 5.0
    status = await router.wait_for_transaction(TX, confirmations=2)
    assert status.ledger is Ledger.EVM
    assert sub.cancelled is True
    assert sub.called("wait_for_transaction") == [("wait_for_transaction", TX, 2)]


@pytest.mark.asyncio
async def test_wait_failing_branch_does_not_stop_the_other():
    router, sub, evm = _router()
    sub.wait_result = BackendUnavailable("substrate", "ws closed")
    evm.wait_result = success(Ledger.EVM, 3)
    evm.wait_delay = 0.02
    assert (await router.wait_for_transaction(TX)).ledger is Ledger.EVM


@pytest.mark.asyncio
async def test_wait_all_timeouts_raise_timeout_error():
    router, _, _ = _router()
    with pytest.raises(TimeoutError):
        await router.wait_for_transaction(TX)


@pytest.mark.asyncio
async def test_wait_mixed_failures_raise_transaction_failed_with_both_errors():
    router, sub, evm = _router()
    sub.wait_result = BackendUnavailable("substrate", "ws closed")
    with pytest.raises(TransactionFailed) as info:
        await router.wait_for_transaction(TX)
    assert set(info.value.errors) == {"substrate", "evm"}
    assert "ws closed" in info.value.errors["substrate"]
    assert "TimeoutError" in info.value.errors["evm"]


@pytest.mark.asyncio
async def test_wait_caller_cancellation_cancels_both_branches():
    router, sub, evm = _router()
    sub.wait_delay = evm.wait_delay = 5.0

    task = asyncio.ensure_future(router.wait_for_transaction(TX))
    await asyncio.sleep(0.01)
    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task
    assert sub.cancelled and evm.cancelled


# ---- gas -----------------------------------------------------------------------


@pytest.mark.asyncio
async def test_estimate_gas_routes_evm_pairs_only():
    router, sub, evm = _router()
    evm.gas = 53000
    assert await router.estimate_gas(EVM_A, EVM_B, 1, "0x") == 53000
    assert await router.estimate_gas(ALICE, BOB, 1) == DEFAULT_WEIGHT_FEE
    assert await router.estimate_gas(ALICE, EVM_A, 1) == DEFAULT_WEIGHT_FEE
    assert len(evm.called("estimate_gas")) == 1
