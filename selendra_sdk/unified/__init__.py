"""
Unified account layer: one account, two ledgers.

- mapping: MappingResolver (claimed SS58 <-> H160 bindings in storage)
- claim: ClaimOrchestrator, build_signing_payload
- balance: BalanceAggregator
- transfer: TransferRouter
- client: UnifiedClient facade
"""

from .balance import BalanceAggregator
from .claim import ClaimOrchestrator, build_signing_payload
from .client import UnifiedClient
from .mapping import MappingResolver
from .transfer import DEFAULT_WEIGHT_FEE, TransferRouter

__all__ = [
    "MappingResolver",
    "ClaimOrchestrator",
    "build_signing_payload",
    "BalanceAggregator",
    "TransferRouter",
    "DEFAULT_WEIGHT_FEE",
    "UnifiedClient",
]
