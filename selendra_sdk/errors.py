"""
Typed error classes for the Selendra Python SDK.

These are raised by the address codec, the claim orchestrator, the transfer
router and the backend adapters so callers can branch on specific failure
modes while still being able to catch the base `SelendraSdkError`.

Validation errors (`InvalidAddressFormat`, `InvalidSignature`) are raised
synchronously, before any network call. `BackendUnavailable` is always tagged
with the ledger it came from ("substrate" or "evm").
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any, Dict, Optional

__all__ = [
    "SelendraSdkError",
    "InvalidAddressFormat",
    "InvalidSignature",
    "TransactionFailed",
    "BridgeUnavailable",
    "BackendUnavailable",
    "RpcError",
    "JsonRpcCode",
    "from_jsonrpc_error",
]


class SelendraSdkError(Exception):
    """Base class for all SDK errors."""


class JsonRpcCode(IntEnum):
    # JSON-RPC 2.0 reserved codes
    PARSE_ERROR = -32700
    INVALID_REQUEST = -32600
    METHOD_NOT_FOUND = -32601
    INVALID_PARAMS = -32602
    INTERNAL_ERROR = -32603

    # Server errors (implementation-defined range: -32099 to -32000)
    SERVER_ERROR = -32000


@dataclass(eq=False)
class InvalidAddressFormat(SelendraSdkError, ValueError):
    """Raised when a string is not a well-formed SS58 or H160 address."""

    message: str
    address: Optional[str] = None

    def __str__(self) -> str:  # pragma: no cover - trivial
        if self.address is None:
            return f"InvalidAddressFormat: {self.message}"
        return f"InvalidAddressFormat: {self.message} (address={self.address!r})"


@dataclass(eq=False)
class InvalidSignature(SelendraSdkError, ValueError):
    """Raised when a claim signature is not 65 bytes of hex."""

    message: str
    signature_length: Optional[int] = None

    def __str__(self) -> str:  # pragma: no cover - trivial
        suffix = f" (got {self.signature_length} hex chars)" if self.signature_length is not None else ""
        return f"InvalidSignature: {self.message}{suffix}"


@dataclass(eq=False)
class TransactionFailed(SelendraSdkError):
    """
    Raised when a submitted transaction fails on-chain or its outcome cannot
    be confirmed.

    Fields:
      - tx_hash: hex hash if known
      - block_hash: block the extrinsic landed in, if known
      - dispatch_error: decoded dispatch error ("Pallet.Error: docs") if any
      - errors: per-ledger backend error text (used by dual-backend waits)
    """

    message: str
    tx_hash: Optional[str] = None
    block_hash: Optional[str] = None
    dispatch_error: Optional[str] = None
    errors: Dict[str, str] = field(default_factory=dict)

    def __str__(self) -> str:  # pragma: no cover - trivial
        bits = [self.message]
        if self.tx_hash:
            bits.append(f"tx={self.tx_hash}")
        if self.block_hash:
            bits.append(f"block={self.block_hash}")
        if self.dispatch_error:
            bits.append(f"dispatch={self.dispatch_error}")
        for ledger, text in self.errors.items():
            bits.append(f"{ledger}={text!r}")
        return "TransactionFailed: " + " ".join(bits)


@dataclass(eq=False)
class BridgeUnavailable(SelendraSdkError):
    """
    Raised for a cross-ledger transfer (substrate <-> evm). No bridge exists
    yet; callers can branch on this to offer a same-ledger alternative.
    """

    from_kind: str
    to_kind: str
    message: str = "cross-chain transfers are not available yet; use a same-chain transfer"

    def __str__(self) -> str:  # pragma: no cover - trivial
        return f"BridgeUnavailable[{self.from_kind}->{self.to_kind}]: {self.message}"


@dataclass(eq=False)
class BackendUnavailable(SelendraSdkError):
    """Connectivity or RPC-level failure from one of the two ledger backends."""

    backend: str
    message: str
    cause_type: Optional[str] = None

    def __str__(self) -> str:  # pragma: no cover - trivial
        cause = f" ({self.cause_type})" if self.cause_type else ""
        return f"BackendUnavailable[{self.backend}]{cause}: {self.message}"


@dataclass(eq=False)
class RpcError(SelendraSdkError):
    """Raised when a JSON-RPC call returns an error object."""

    method: Optional[str]
    code: int
    message: str
    data: Optional[Any] = None

    def __str__(self) -> str:  # pragma: no cover - trivial
        parts = [f"RPC[{self.method or '-'}] code={self.code} msg={self.message!r}"]
        if self.data is not None:
            parts.append(f"data={self.data!r}")
        return " ".join(parts)

    @property
    def code_enum(self) -> Optional[JsonRpcCode]:
        try:
            return JsonRpcCode(self.code)
        except ValueError:
            return None


def from_jsonrpc_error(err_obj: Dict[str, Any], *, method: Optional[str] = None) -> RpcError:
    """
    Convert a JSON-RPC error object into RpcError.

    `err_obj` should resemble: {"code": int, "message": str, "data": any?}
    """
    code = int(err_obj.get("code", JsonRpcCode.SERVER_ERROR))
    message = str(err_obj.get("message", "Unknown JSON-RPC error"))
    return RpcError(method=method, code=code, message=message, data=err_obj.get("data"))
