"""
Ledger backends.

- base: SubstrateBackend / EvmBackend protocols the unified layer depends on
- evm: EvmRpcBackend (httpx JSON-RPC, eth-account signing)
- substrate: SubstrateInterfaceBackend (substrate-interface in worker threads)
"""

from .base import EvmBackend, SubstrateBackend
from .evm import EvmRpcBackend
from .substrate import SubstrateInterfaceBackend

__all__ = ["SubstrateBackend", "EvmBackend", "EvmRpcBackend", "SubstrateInterfaceBackend"]
