"""
EVM ledger backend: async Ethereum JSON-RPC over httpx.

- retrying transport (httpx transport errors and 502/503/504 are retried with
  exponential backoff + jitter; everything else fails fast)
- ergonomic methods for the endpoints the unified layer needs:
  * eth_getBalance / eth_call / eth_estimateGas / eth_gasPrice
  * eth_getTransactionReceipt / eth_getTransactionByHash / eth_sendRawTransaction
  * eth_blockNumber / eth_chainId / eth_getBlockByNumber (head and by number)
- local signing of value transfers with eth-account

Errors
------
* Transport failures (after retries) and non-JSON / non-2xx responses raise
  `BackendUnavailable(backend="evm")`.
* A JSON-RPC error object raises `RpcError` (not retried).
* `wait_for_transaction` raises `TimeoutError` after `wait_timeout_s`.
"""

from __future__ import annotations

import asyncio
import itertools
from dataclasses import replace
from typing import Any, Dict, List, Optional, Union

import httpx
from eth_account import Account
from eth_utils import to_checksum_address

from ..config import DEFAULT_EVM_CHAIN_ID, SDKConfig
from ..errors import BackendUnavailable, from_jsonrpc_error
from ..logging import get_logger
from ..types import BlockInfo, Ledger, TransactionStatus, TransferResult
from ..utils.bytes import hex_to_int, int_to_hex, to_hex
from ..utils.retry import RetryError, aretry_call

log = get_logger(__name__)

_RETRY_STATUSES = (502, 503, 504)
DEFAULT_TRANSFER_GAS = 21_000


class _TransientHttpError(Exception):
    """HTTP status worth retrying."""


class EvmRpcBackend:
    """
    Async JSON-RPC client for the EVM side of the chain.

    The underlying `httpx.AsyncClient` is created lazily; pass `client=` to
    share one (or to plug in a mocked transport).
    """

    def __init__(
        self,
        url: str,
        *,
        chain_id: int = DEFAULT_EVM_CHAIN_ID,
        timeout: float = 10.0,
        max_retries: int = 3,
        backoff_base: float = 0.25,
        wait_timeout_s: float = 120.0,
        poll_interval_s: float = 2.0,
        headers: Optional[Dict[str, str]] = None,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.url = url
        self.chain_id = int(chain_id)
        self.timeout = float(timeout)
        self.max_retries = int(max_retries)
        self.backoff_base = float(backoff_base)
        self.wait_timeout_s = float(wait_timeout_s)
        self.poll_interval_s = float(poll_interval_s)
        self._headers = dict(headers or {"content-type": "application/json", "accept": "application/json"})
        self._client = client
        self._owns_client = client is None
        self._ids = itertools.count(1)

    @classmethod
    def from_config(cls, cfg: SDKConfig, *, client: Optional[httpx.AsyncClient] = None) -> "EvmRpcBackend":
        return cls(
            cfg.evm_rpc_url,
            chain_id=cfg.evm_chain_id,
            timeout=cfg.request_timeout,
            max_retries=cfg.max_retries,
            backoff_base=cfg.backoff_base,
            wait_timeout_s=cfg.wait_timeout_s,
            poll_interval_s=cfg.poll_interval_s,
            headers=cfg.http_headers(),
            client=client,
        )

    # ---------- lifecycle ----------

    def _http(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout, headers=self._headers)
            self._owns_client = True
        return self._client

    async def close(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
        self._client = None

    async def __aenter__(self) -> "EvmRpcBackend":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    # ---------- core transport ----------

    async def _post_once(self, payload: Dict[str, Any]) -> Any:
        resp = await self._http().post(self.url, json=payload)
        if resp.status_code in _RETRY_STATUSES:
            raise _TransientHttpError(f"HTTP {resp.status_code}: {resp.text[:256]!r}")
        if resp.status_code != 200:
            raise BackendUnavailable("evm", f"HTTP {resp.status_code}: {resp.text[:256]!r}", "HTTPStatusError")
        try:
            return resp.json()
        except ValueError as e:
            raise BackendUnavailable("evm", f"invalid JSON from {self.url}: {e}", type(e).__name__) from e

    async def request(self, method: str, params: Optional[List[Any]] = None) -> Any:
        """Perform one JSON-RPC call (with transport retries) and return `result`."""
        payload = {"jsonrpc": "2.0", "id": next(self._ids), "method": method, "params": params or []}

        def _on_retry(attempt: int, exc: BaseException, sleep_s: float) -> None:
            log.debug("retrying %s (attempt %d, sleep %.2fs): %s", method, attempt, sleep_s, exc)

        try:
            data = await aretry_call(
                self._post_once,
                payload,
                retries=self.max_retries,
                base=self.backoff_base,
                exceptions=(httpx.TransportError, _TransientHttpError),
                on_retry=_on_retry,
            )
        except RetryError as e:
            last = e.last_exception
            raise BackendUnavailable(
                "evm", f"{method} failed after {e.attempts} attempts: {last}", type(last).__name__
            ) from last

        if not isinstance(data, dict):
            raise BackendUnavailable("evm", f"unexpected JSON-RPC envelope for {method}: {type(data).__name__}")
        err = data.get("error")
        if err is not None:
            raise from_jsonrpc_error(err if isinstance(err, dict) else {"message": str(err)}, method=method)
        return data.get("result")

    # ---------- reads ----------

    async def get_balance(self, address: str) -> int:
        return hex_to_int(await self.request("eth_getBalance", [address, "latest"]))

    async def call(self, to: str, data: str, from_address: Optional[str] = None) -> str:
        tx: Dict[str, Any] = {"to": to, "data": data}
        if from_address:
            tx["from"] = from_address
        return await self.request("eth_call", [tx, "latest"])

    async def estimate_gas(
        self, from_address: str, to_address: str, amount: int = 0, data: Optional[str] = None
    ) -> int:
        tx = {"from": from_address, "to": to_address, "value": int_to_hex(amount), "data": data or "0x"}
        return hex_to_int(await self.request("eth_estimateGas", [tx]))

    async def get_gas_price(self) -> int:
        return hex_to_int(await self.request("eth_gasPrice"))

    async def get_nonce(self, address: str) -> int:
        return hex_to_int(await self.request("eth_getTransactionCount", [address, "pending"]))

    async def get_transaction_receipt(self, tx_hash: str) -> Optional[Dict[str, Any]]:
        return await self.request("eth_getTransactionReceipt", [tx_hash])

    async def get_transaction(self, tx_hash: str) -> Optional[Dict[str, Any]]:
        return await self.request("eth_getTransactionByHash", [tx_hash])

    async def get_block_number(self) -> int:
        return hex_to_int(await self.request("eth_blockNumber"))

    async def get_chain_id(self) -> int:
        return hex_to_int(await self.request("eth_chainId"))

    async def get_chain_info(self) -> Dict[str, Any]:
        chain_id, block = await asyncio.gather(
            self.get_chain_id(),
            self.request("eth_getBlockByNumber", ["latest", False]),
        )
        block = block or {}
        return {
            "chainId": chain_id,
            "blockNumber": hex_to_int(block.get("number")) if block.get("number") else None,
            "gasLimit": hex_to_int(block.get("gasLimit")) if block.get("gasLimit") else None,
            "tokenDecimals": 18,
        }

    async def get_block(self, number: Union[int, str] = "latest") -> Optional[BlockInfo]:
        """eth_getBlockByNumber with transaction hashes; None when the node has no such block."""
        tag = number if number == "latest" else int_to_hex(int(number))
        block = await self.request("eth_getBlockByNumber", [tag, False])
        return BlockInfo.from_evm_block(block) if block else None

    # ---------- transactions ----------

    async def get_transaction_status(self, tx_hash: str) -> TransactionStatus:
        """Receipt present -> success/failed; otherwise pending."""
        receipt, tx = await asyncio.gather(
            self.get_transaction_receipt(tx_hash),
            self.get_transaction(tx_hash),
        )
        if not receipt:
            return TransactionStatus.pending(Ledger.EVM)
        status = TransactionStatus.from_receipt(receipt)
        if status.effective_gas_price is None and tx and tx.get("gasPrice") is not None:
            status = replace(status, effective_gas_price=hex_to_int(tx["gasPrice"]))
        return status

    async def _poll_until_confirmed(self, tx_hash: str, confirmations: int) -> TransactionStatus:
        while True:
            status = await self.get_transaction_status(tx_hash)
            if status.is_terminal and status.block_number is not None:
                head = await self.get_block_number()
                if head >= status.block_number + confirmations - 1:
                    return status
            await asyncio.sleep(self.poll_interval_s)

    async def wait_for_transaction(self, tx_hash: str, confirmations: int = 1) -> TransactionStatus:
        """
        Poll until the receipt is `confirmations` blocks deep. Raises
        TimeoutError after `wait_timeout_s`.
        """
        confirmations = max(1, int(confirmations))
        try:
            return await asyncio.wait_for(self._poll_until_confirmed(tx_hash, confirmations), self.wait_timeout_s)
        except asyncio.TimeoutError as e:
            raise TimeoutError(f"evm: {tx_hash} not confirmed within {self.wait_timeout_s}s") from e

    async def transfer(
        self,
        from_address: str,
        to_address: str,
        amount: int,
        private_key: str,
        *,
        gas_limit: Optional[int] = None,
        gas_price: Optional[int] = None,
        nonce: Optional[int] = None,
    ) -> TransferResult:
        """
        Sign a legacy value transfer locally and broadcast it. The key must
        belong to `from_address`.
        """
        account = Account.from_key(private_key)
        if account.address.lower() != from_address.lower():
            raise ValueError("private key does not match the sender address")

        if nonce is None:
            nonce = await self.get_nonce(account.address)
        if gas_price is None:
            gas_price = await self.get_gas_price()

        tx = {
            "to": to_checksum_address(to_address),
            "value": int(amount),
            "nonce": int(nonce),
            "gas": int(gas_limit or DEFAULT_TRANSFER_GAS),
            "gasPrice": int(gas_price),
            "chainId": self.chain_id,
            "data": b"",
        }
        signed = account.sign_transaction(tx)
        tx_hash = await self.request("eth_sendRawTransaction", [to_hex(signed.raw_transaction)])
        log.info("evm transfer submitted", extra={"tx_hash": tx_hash, "nonce": nonce})
        return TransferResult(hash=tx_hash, ledger=Ledger.EVM)


__all__ = ["EvmRpcBackend", "DEFAULT_TRANSFER_GAS"]
