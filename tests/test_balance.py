from __future__ import annotations

import asyncio

import pytest

from conftest import ALICE, ALICE_EVM, EVM_A, FakeEvm, FakeSubstrate
from selendra_sdk.address import AddressCodec
from selendra_sdk.errors import BackendUnavailable, InvalidAddressFormat
from selendra_sdk.types import Ledger
from selendra_sdk.unified.balance import BalanceAggregator

BIG = 2**128 + 12345


def _account(free, reserved=0, frozen=0):
    return {"nonce": 0, "data": {"free": free, "reserved": reserved, "frozen": frozen, "flags": 0}}


@pytest.mark.asyncio
async def test_total_is_exact_integer_sum_above_2_128():
    sub = FakeSubstrate({("system", "account", ALICE): _account(BIG, reserved=5)})
    evm = FakeEvm({ALICE_EVM: BIG + 1})
    bal = await BalanceAggregator(sub, evm).get_unified_balance(ALICE)
    assert bal.substrate.free == BIG
    assert bal.substrate.reserved == 5
    assert bal.evm == BIG + 1
    assert bal.total == 2 * BIG + 1
    assert bal.is_complete
    assert bal.failures == ()
    assert bal.substrate_address == ALICE
    assert bal.evm_address == ALICE_EVM


@pytest.mark.asyncio
async def test_evm_input_queries_padded_substrate_account():
    codec = AddressCodec()
    padded = codec.evm_to_substrate(EVM_A)
    sub = FakeSubstrate({("system", "account", padded): _account(3)})
    evm = FakeEvm({EVM_A: 4})
    bal = await BalanceAggregator(sub, evm, codec).get_unified_balance(EVM_A)
    assert bal.total == 7
    assert sub.calls == [("query", "system", "account", (padded,))]
    assert evm.calls == [("get_balance", EVM_A.lower())]


@pytest.mark.asyncio
async def test_missing_account_counts_as_zero_not_failure():
    bal = await BalanceAggregator(FakeSubstrate(), FakeEvm()).get_unified_balance(ALICE)
    assert bal.total == 0
    assert bal.is_complete


@pytest.mark.asyncio
async def test_both_reads_start_before_either_finishes():
    started = {"substrate": asyncio.Event(), "evm": asyncio.Event()}

    class GatedSubstrate(FakeSubstrate):
        async def query(self, pallet, storage_item, params=()):
            started["substrate"].set()
            await asyncio.wait_for(started["evm"].wait(), 1.0)
            return await super().query(pallet, storage_item, params)

    class GatedEvm(FakeEvm):
        async def get_balance(self, address):
            started["evm"].set()
            await asyncio.wait_for(started["substrate"].wait(), 1.0)
            return await super().get_balance(address)

    bal = await BalanceAggregator(GatedSubstrate(), GatedEvm({ALICE_EVM: 1})).get_unified_balance(ALICE)
    assert bal.total == 1


@pytest.mark.asyncio
async def test_failure_raises_by_default_with_ledger_tag():
    sub = FakeSubstrate()
    sub.errors["query"] = ConnectionError("ws closed")
    with pytest.raises(BackendUnavailable) as info:
        await BalanceAggregator(sub, FakeEvm({ALICE_EVM: 9})).get_unified_balance(ALICE)
    assert info.value.backend == "substrate"
    assert "ws closed" in info.value.message
    assert info.value.cause_type == "ConnectionError"


@pytest.mark.asyncio
async def test_sdk_errors_pass_through_unwrapped():
    evm = FakeEvm()
    original = BackendUnavailable("evm", "HTTP 500")
    evm.errors["get_balance"] = original
    with pytest.raises(BackendUnavailable) as info:
        await BalanceAggregator(FakeSubstrate(), evm).get_unified_balance(ALICE)
    assert info.value is original


@pytest.mark.asyncio
async def test_partial_mode_reports_failed_side_as_none():
    evm = FakeEvm()
    evm.errors["get_balance"] = RuntimeError("rpc down")
    sub = FakeSubstrate({("system", "account", ALICE): _account(50)})
    bal = await BalanceAggregator(sub, evm).get_unified_balance(ALICE, allow_partial=True)
    assert bal.substrate.free == 50
    assert bal.evm is None
    assert bal.total is None
    assert not bal.is_complete
    (failure,) = bal.failures
    assert failure.ledger is Ledger.EVM
    assert failure.error_type == "RuntimeError"
    assert failure.message == "rpc down"


@pytest.mark.asyncio
async def test_one_failure_does_not_hide_the_other_result():
    sub = FakeSubstrate()
    sub.errors["query"] = TimeoutError("slow")
    evm = FakeEvm({ALICE_EVM: 77})
    bal = await BalanceAggregator(sub, evm).get_unified_balance(ALICE, allow_partial=True)
    assert bal.evm == 77
    assert bal.substrate is None
    assert [f.ledger for f in bal.failures] == [Ledger.SUBSTRATE]


@pytest.mark.asyncio
async def test_use_mapping_prefers_claimed_address():
    claimed = "0x" + "ab" * 20
    sub = FakeSubstrate(
        {
            ("unifiedAccounts", "nativeToEvm", ALICE): claimed,
            ("system", "account", ALICE): _account(1),
        }
    )
    evm = FakeEvm({claimed: 2, ALICE_EVM: 1000})
    bal = await BalanceAggregator(sub, evm).get_unified_balance(ALICE, use_mapping=True)
    assert bal.evm_address == claimed
    assert bal.total == 3


@pytest.mark.asyncio
async def test_invalid_address_makes_no_calls():
    sub, evm = FakeSubstrate(), FakeEvm()
    with pytest.raises(InvalidAddressFormat):
        await BalanceAggregator(sub, evm).get_unified_balance("0x1234")
    assert sub.calls == [] and evm.calls == []


@pytest.mark.asyncio
async def test_has_unified_balance_needs_both_sides_positive():
    sub = FakeSubstrate({("system", "account", ALICE): _account(1)})
    assert await BalanceAggregator(sub, FakeEvm({ALICE_EVM: 1})).has_unified_balance(ALICE) is True
    assert await BalanceAggregator(sub, FakeEvm()).has_unified_balance(ALICE) is False
