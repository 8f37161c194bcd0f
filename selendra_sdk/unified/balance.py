"""
Balance aggregation across both ledgers.

Both reads start before either is awaited; each branch's error is captured on
its own so a failing ledger never hides the other ledger's answer. Totals are
exact Python ints.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Tuple

from ..address import AddressCodec, UnifiedAddress
from ..backends.base import EvmBackend, SubstrateBackend
from ..errors import BackendUnavailable, InvalidAddressFormat, SelendraSdkError
from ..logging import get_logger, trace_scope
from ..types import Ledger, LedgerFailure, SubstrateBalance, UnifiedBalance
from ..utils.settle import Outcome, settle_all
from ..validation import AddressKind, classify
from .mapping import MappingResolver

log = get_logger(__name__)


def _as_sdk_error(ledger: Ledger, exc: BaseException) -> BaseException:
    if isinstance(exc, SelendraSdkError):
        return exc
    return BackendUnavailable(ledger.value, str(exc) or type(exc).__name__, type(exc).__name__)


class BalanceAggregator:
    def __init__(
        self,
        substrate: SubstrateBackend,
        evm: EvmBackend,
        codec: Optional[AddressCodec] = None,
        mapping: Optional[MappingResolver] = None,
    ) -> None:
        self.substrate = substrate
        self.evm = evm
        self.codec = codec or AddressCodec()
        self.mapping = mapping or MappingResolver(substrate, self.codec)

    async def resolve(self, address: str, *, use_mapping: bool = False) -> Tuple[str, str]:
        """(substrate_address, evm_address) for either form."""
        if classify(address).kind is AddressKind.INVALID:
            raise InvalidAddressFormat("not a substrate or evm address", address=str(address))
        if use_mapping:
            record = await self.mapping.get_mapping_record(address)
            return record.substrate_address, record.evm_address
        unified = UnifiedAddress.parse(address, codec=self.codec)
        return unified.substrate, unified.evm

    async def substrate_balance(self, substrate_address: str) -> SubstrateBalance:
        info = await self.substrate.query("system", "account", [substrate_address])
        return SubstrateBalance.from_account_info(info)

    async def get_unified_balance(
        self, address: str, *, allow_partial: bool = False, use_mapping: bool = False
    ) -> UnifiedBalance:
        """
        Read both ledgers concurrently and sum `free + evm`.

        With `allow_partial=False` the first failing ledger's error is raised
        (SDK errors as-is, anything else as BackendUnavailable). With
        `allow_partial=True` the failed side is None, `total` is None, and the
        failure is listed in `failures`.
        """
        with trace_scope(op="get_unified_balance"):
            substrate_address, evm_address = await self.resolve(address, use_mapping=use_mapping)
            outcomes: Dict[str, Outcome[Any]] = await settle_all(
                {
                    Ledger.SUBSTRATE.value: self.substrate_balance(substrate_address),
                    Ledger.EVM.value: self.evm.get_balance(evm_address),
                }
            )

            failures: List[LedgerFailure] = []
            for name, outcome in outcomes.items():
                if outcome.ok:
                    continue
                ledger = Ledger(name)
                log.warning(
                    "balance read failed",
                    extra={"ledger": ledger, "error": f"{type(outcome.error).__name__}: {outcome.error}"},
                )
                if not allow_partial:
                    err = _as_sdk_error(ledger, outcome.error)  # type: ignore[arg-type]
                    if err is outcome.error:
                        raise err
                    raise err from outcome.error
                failures.append(LedgerFailure.from_exception(ledger, outcome.error))  # type: ignore[arg-type]

            substrate = outcomes[Ledger.SUBSTRATE.value]
            evm = outcomes[Ledger.EVM.value]
            return UnifiedBalance.build(
                substrate_address,
                evm_address,
                substrate.value if substrate.ok else None,
                int(evm.value) if evm.ok else None,
                failures,
            )

    async def has_unified_balance(self, address: str) -> bool:
        """True when both the free substrate balance and the EVM balance are positive."""
        balance = await self.get_unified_balance(address)
        return balance.substrate.free > 0 and balance.evm > 0  # type: ignore[union-attr,operator]


__all__ = ["BalanceAggregator"]
