"""
Selendra SDK for Python
Convenience exports for the unified account layer.
"""

from .version import __version__  # noqa: F401

# Core config & errors
from .config import SDKConfig  # noqa: F401
from .errors import (  # noqa: F401
    SelendraSdkError,
    InvalidAddressFormat,
    InvalidSignature,
    TransactionFailed,
    BridgeUnavailable,
    BackendUnavailable,
    RpcError,
)

# Addresses
from .address import (  # noqa: F401
    AddressCodec,
    UnifiedAddress,
    substrate_to_evm,
    evm_to_substrate,
    batch_convert,
    normalize_address,
)
from .validation import (  # noqa: F401
    AddressKind,
    AddressClassification,
    classify,
    classify_strict,
)

# Types
from .types import (  # noqa: F401
    Ledger,
    MappingRecord,
    SubstrateBalance,
    UnifiedBalance,
    ClaimResult,
    TransferOptions,
    TransferResult,
    TxStatus,
    TransactionStatus,
    BlockInfo,
)

# Backends
from .backends import EvmRpcBackend, SubstrateInterfaceBackend  # noqa: F401

# Unified layer
from .unified import (  # noqa: F401
    BalanceAggregator,
    ClaimOrchestrator,
    MappingResolver,
    TransferRouter,
    UnifiedClient,
    build_signing_payload,
)

__all__ = [
    "__version__",
    # Core
    "SDKConfig",
    "SelendraSdkError", "InvalidAddressFormat", "InvalidSignature",
    "TransactionFailed", "BridgeUnavailable", "BackendUnavailable", "RpcError",
    # Address
    "AddressCodec", "UnifiedAddress",
    "substrate_to_evm", "evm_to_substrate", "batch_convert", "normalize_address",
    "AddressKind", "AddressClassification", "classify", "classify_strict",
    # Types
    "Ledger", "MappingRecord", "SubstrateBalance", "UnifiedBalance", "ClaimResult",
    "TransferOptions", "TransferResult", "TxStatus", "TransactionStatus", "BlockInfo",
    # Backends
    "EvmRpcBackend", "SubstrateInterfaceBackend",
    # Unified
    "MappingResolver", "ClaimOrchestrator", "build_signing_payload",
    "BalanceAggregator", "TransferRouter", "UnifiedClient",
]
