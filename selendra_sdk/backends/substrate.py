"""
Substrate ledger backend on top of `substrate-interface`.

`SubstrateInterface` is a blocking websocket client, so every call is pushed
to a worker thread with `asyncio.to_thread`. The connection is opened lazily
on first use; pass `interface=` to supply an already-built (or fake) one.

The interface shares one websocket, request counter and response queue across
callers, so blocking calls hold `_call_lock` and run one at a time.

Errors: websocket/socket failures raise `BackendUnavailable("substrate")`; an
error answered by the node raises `RpcError`, and a node rejecting a submitted
extrinsic raises `TransactionFailed` with the node's reason.

Naming: callers use the runtime-metadata names in camelCase or PascalCase
("unifiedAccounts" / "UnifiedAccounts", "nativeToEvm" / "NativeToEvm"); they
are converted to PascalCase for storage and call modules. Call functions keep
their snake_case names ("transfer_allow_death").

Transaction status for a bare extrinsic hash is found by scanning the last
`status_scan_depth` blocks; an extrinsic older than that reports `pending`.
"""

from __future__ import annotations

import asyncio
import threading
from typing import Any, Dict, Mapping, Optional, Sequence, Tuple, Union

from substrateinterface import SubstrateInterface
from substrateinterface.exceptions import SubstrateRequestException
from websocket import WebSocketException

from ..address import AddressCodec
from ..config import DEFAULT_SS58_PREFIX, SDKConfig
from ..errors import (BackendUnavailable, JsonRpcCode, RpcError,
                      TransactionFailed, from_jsonrpc_error)
from ..logging import get_logger
from ..types import (BlockInfo, ChainEvent, ExtrinsicOutcome, Ledger,
                     TransactionStatus, TransferResult, TxStatus)
from ..utils.bytes import hex_to_int

log = get_logger(__name__)

_TRANSPORT_ERRORS = (WebSocketException, ConnectionError, OSError)


def pascal(name: str) -> str:
    """"unifiedAccounts" -> "UnifiedAccounts"; already-Pascal names are unchanged."""
    return name[:1].upper() + name[1:] if name else name


def _value(obj: Any) -> Any:
    """Unwrap a scalecodec object to its decoded Python value."""
    return getattr(obj, "value", obj)


def event_from_record(record: Any) -> ChainEvent:
    """EventRecord (or its decoded dict) -> ChainEvent."""
    v = _value(record)
    if not isinstance(v, Mapping):
        return ChainEvent(pallet="", name="", attributes=v)
    inner = v.get("event") or {}
    pallet = v.get("module_id") or inner.get("module_id", "")
    name = v.get("event_id") or inner.get("event_id", "")
    attrs = v.get("attributes", inner.get("attributes"))
    return ChainEvent(pallet=str(pallet), name=str(name), attributes=attrs)


def _extrinsic_idx(record: Any) -> Optional[int]:
    v = _value(record)
    if not isinstance(v, Mapping):
        return None
    idx = v.get("extrinsic_idx")
    if idx is None and isinstance(v.get("phase"), Mapping):
        idx = v["phase"].get("ApplyExtrinsic")
    return idx


def format_dispatch_error(err: Any) -> str:
    """substrate-interface `error_message` dict -> "Module.Name: docs"."""
    if isinstance(err, Mapping):
        kind = err.get("type") or "Dispatch"
        name = err.get("name") or "Unknown"
        docs = err.get("docs")
        text = " ".join(docs) if isinstance(docs, (list, tuple)) else (docs or "")
        return f"{kind}.{name}: {text}" if text else f"{kind}.{name}"
    return str(err)


def _rpc_error(exc: SubstrateRequestException, label: str) -> RpcError:
    payload = exc.args[0] if exc.args else None
    if isinstance(payload, Mapping):
        return from_jsonrpc_error(dict(payload), method=label)
    return RpcError(method=label, code=int(JsonRpcCode.SERVER_ERROR), message=str(exc))


class SubstrateInterfaceBackend:
    def __init__(
        self,
        url: str,
        *,
        ss58_prefix: int = DEFAULT_SS58_PREFIX,
        wait_timeout_s: float = 120.0,
        poll_interval_s: float = 2.0,
        status_scan_depth: int = 64,
        era_period: int = 64,
        interface: Optional[Any] = None,
    ) -> None:
        self.url = url
        self.ss58_prefix = int(ss58_prefix)
        self.wait_timeout_s = float(wait_timeout_s)
        self.poll_interval_s = float(poll_interval_s)
        self.status_scan_depth = int(status_scan_depth)
        self.era_period = int(era_period)
        self._si = interface
        self._connect_lock = threading.Lock()
        self._call_lock = threading.Lock()
        self._codec = AddressCodec(ss58_prefix=self.ss58_prefix)

    @classmethod
    def from_config(cls, cfg: SDKConfig, *, interface: Optional[Any] = None) -> "SubstrateInterfaceBackend":
        return cls(
            cfg.substrate_url,
            ss58_prefix=cfg.ss58_prefix,
            wait_timeout_s=cfg.wait_timeout_s,
            poll_interval_s=cfg.poll_interval_s,
            status_scan_depth=cfg.status_scan_depth,
            interface=interface,
        )

    # ---------- plumbing ----------

    def _interface(self) -> Any:
        with self._connect_lock:
            if self._si is None:
                log.debug("connecting to substrate node", extra={"url": self.url})
                self._si = SubstrateInterface(url=self.url, ss58_format=self.ss58_prefix)
            return self._si

    def _locked(self, fn: Any, *args: Any) -> Any:
        with self._call_lock:
            return fn(*args)

    async def _run(self, label: str, fn: Any, *args: Any) -> Any:
        """
        Run a blocking interface call in a thread, one call at a time.
        Transport errors become BackendUnavailable; node errors become RpcError.
        """
        try:
            return await asyncio.to_thread(self._locked, fn, *args)
        except SubstrateRequestException as e:
            raise _rpc_error(e, label) from e
        except _TRANSPORT_ERRORS as e:
            raise BackendUnavailable("substrate", str(e), type(e).__name__) from e

    async def close(self) -> None:
        si, self._si = self._si, None
        if si is not None:
            await asyncio.to_thread(self._locked, si.close)

    async def __aenter__(self) -> "SubstrateInterfaceBackend":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    # ---------- storage ----------

    def _query_sync(self, pallet: str, storage_item: str, params: Sequence[Any]) -> Optional[Any]:
        result = self._interface().query(pascal(pallet), pascal(storage_item), list(params))
        return None if result is None else _value(result)

    async def query(self, pallet: str, storage_item: str, params: Sequence[Any] = ()) -> Optional[Any]:
        label = f"query {pascal(pallet)}.{pascal(storage_item)}"
        return await self._run(label, self._query_sync, pallet, storage_item, params)

    # ---------- extrinsics ----------

    def _submit_sync(self, pallet: str, method: str, params: Dict[str, Any], signer: Any) -> ExtrinsicOutcome:
        si = self._interface()
        call = si.compose_call(call_module=pascal(pallet), call_function=method, call_params=params)
        extrinsic = si.create_signed_extrinsic(call=call, keypair=signer, era={"period": self.era_period})
        receipt = si.submit_extrinsic(extrinsic, wait_for_inclusion=True, wait_for_finalization=True)
        dispatch_error = None
        if not receipt.is_success:
            dispatch_error = format_dispatch_error(receipt.error_message)
        block_number = getattr(receipt, "block_number", None)
        return ExtrinsicOutcome(
            block_hash=receipt.block_hash,
            extrinsic_hash=receipt.extrinsic_hash,
            events=tuple(event_from_record(ev) for ev in receipt.triggered_events),
            dispatch_error=dispatch_error,
            block_number=block_number,
        )

    async def submit_extrinsic(self, pallet: str, method: str, params: Dict[str, Any], signer: Any) -> ExtrinsicOutcome:
        """Sign with `signer` (a Keypair), submit, and block until finalized."""
        call = f"{pascal(pallet)}.{method}"
        log.info("submitting extrinsic", extra={"call": call})
        try:
            return await self._run(f"submit {call}", self._submit_sync, pallet, method, params, signer)
        except RpcError as e:
            reason = f"{e.message}: {e.data}" if isinstance(e.data, str) and e.data else e.message
            log.warning("extrinsic rejected", extra={"call": call, "error": reason})
            raise TransactionFailed(f"{call} rejected by node: {reason}") from e

    async def transfer(self, from_address: str, to_address: str, amount: int, signer: Any) -> TransferResult:
        """`Balances.transfer_allow_death`; the signer must own `from_address`."""
        public_key = getattr(signer, "public_key", None)
        if public_key is not None and bytes(public_key) != self._codec.public_key(from_address):
            raise ValueError("signer does not match the sender address")
        outcome = await self.submit_extrinsic(
            "Balances", "transfer_allow_death", {"dest": to_address, "value": int(amount)}, signer
        )
        if not outcome.is_success:
            raise TransactionFailed(
                "transfer failed",
                tx_hash=outcome.extrinsic_hash,
                block_hash=outcome.block_hash,
                dispatch_error=outcome.dispatch_error,
            )
        return TransferResult(hash=outcome.extrinsic_hash or "", ledger=Ledger.SUBSTRATE, block_number=outcome.block_number)

    # ---------- status ----------

    def _find_extrinsic_sync(self, tx_hash: str) -> Optional[Tuple[int, str, int]]:
        """(block_number, block_hash, extrinsic_idx) of `tx_hash` within the scan window."""
        si = self._interface()
        wanted = tx_hash.lower()
        head = int(si.get_block_number(None))
        for number in range(head, max(-1, head - self.status_scan_depth), -1):
            block_hash = si.get_block_hash(number)
            block = si.get_block(block_hash=block_hash) or {}
            for idx, ext in enumerate(block.get("extrinsics", ())):
                v = _value(ext)
                h = v.get("extrinsic_hash") if isinstance(v, Mapping) else getattr(ext, "extrinsic_hash", None)
                if h and str(h).lower() == wanted:
                    return number, block_hash, idx
        return None

    def _status_sync(self, tx_hash: str) -> TransactionStatus:
        found = self._find_extrinsic_sync(tx_hash)
        if found is None:
            return TransactionStatus.pending(Ledger.SUBSTRATE)
        number, block_hash, idx = found
        status = TxStatus.PENDING
        for record in self._interface().get_events(block_hash=block_hash):
            if _extrinsic_idx(record) != idx:
                continue
            ev = event_from_record(record)
            if ev.matches("System", "ExtrinsicSuccess"):
                status = TxStatus.SUCCESS
            elif ev.matches("System", "ExtrinsicFailed"):
                status = TxStatus.FAILED
        return TransactionStatus(status=status, ledger=Ledger.SUBSTRATE, block_number=number, block_hash=block_hash)

    async def get_transaction_status(self, tx_hash: str) -> TransactionStatus:
        return await self._run("transaction status", self._status_sync, tx_hash)

    async def _poll_until_confirmed(self, tx_hash: str, confirmations: int) -> TransactionStatus:
        while True:
            status = await self.get_transaction_status(tx_hash)
            if status.is_terminal and status.block_number is not None:
                head = await self.get_block_number()
                if head >= status.block_number + confirmations - 1:
                    return status
            await asyncio.sleep(self.poll_interval_s)

    async def wait_for_transaction(self, tx_hash: str, confirmations: int = 1) -> TransactionStatus:
        confirmations = max(1, int(confirmations))
        try:
            return await asyncio.wait_for(self._poll_until_confirmed(tx_hash, confirmations), self.wait_timeout_s)
        except asyncio.TimeoutError as e:
            raise TimeoutError(f"substrate: {tx_hash} not confirmed within {self.wait_timeout_s}s") from e

    # ---------- chain ----------

    async def get_block_number(self) -> int:
        return int(await self._run("block number", lambda: self._interface().get_block_number(None)))

    def _chain_info_sync(self) -> Dict[str, Any]:
        si = self._interface()
        return {
            "name": si.chain,
            "ss58Format": si.ss58_format,
            "tokenSymbol": si.token_symbol,
            "tokenDecimals": si.token_decimals,
            "blockNumber": int(si.get_block_number(None)),
        }

    async def get_chain_info(self) -> Dict[str, Any]:
        return await self._run("chain info", self._chain_info_sync)

    def _block_sync(self, number: Union[int, str]) -> Optional[BlockInfo]:
        si = self._interface()
        block_hash = si.get_chain_head() if number == "latest" else si.get_block_hash(int(number))
        if not block_hash:
            return None
        block = si.get_block(block_hash=block_hash)
        if not block:
            return None
        header = block.get("header") or {}
        now = _value(si.query("Timestamp", "Now", block_hash=block_hash))
        hashes = []
        for ext in block.get("extrinsics", ()):
            v = _value(ext)
            h = v.get("extrinsic_hash") if isinstance(v, Mapping) else getattr(ext, "extrinsic_hash", None)
            if h:
                hashes.append(str(h))
        return BlockInfo(
            number=hex_to_int(header.get("number")),
            hash=str(header.get("hash") or block_hash),
            parent_hash=str(header.get("parentHash") or ""),
            timestamp=int(now) if now is not None else None,
            transactions=tuple(hashes),
            ledger=Ledger.SUBSTRATE,
        )

    async def get_block(self, number: Union[int, str] = "latest") -> Optional[BlockInfo]:
        """Block by number (or "latest"); None when the node has no such block."""
        return await self._run("block", self._block_sync, number)


__all__ = ["SubstrateInterfaceBackend", "event_from_record", "format_dispatch_error", "pascal"]
