"""
selendra_sdk.unified.claim
==========================

Claim transactions that bind an SS58 account to an H160 on chain.

- claim_default_evm_address(signer)
    Binds the signer to its default derived H160 (first 20 key bytes).
- claim_evm_address(signer, evm_address, signature)
    Binds the signer to an arbitrary H160, proven by a 65-byte ECDSA signature
    over `build_signing_payload(signer_address)` made with that H160's key.

Both submit through the substrate backend, wait for finality, and return a
`ClaimResult` only once the `UnifiedAccounts.AccountClaimed` event is seen.

Signing payload (EIP-712)
-------------------------
    domainSeparator = keccak256(abi.encode(
        keccak256("EIP712Domain(string name,string version,uint256 chainId,address verifyingContract)"),
        keccak256(name), keccak256(version), chainId, verifyingContract))
    structHash = keccak256(abi.encode(
        keccak256("ClaimEvmAddress(bytes32 substrateAddress)"),
        keccak256(accountId32)))
    digest = keccak256(0x1901 || domainSeparator || structHash)

The payload is only built here; the wallet signs it and the node verifies.
"""

from __future__ import annotations

from typing import Any, Optional, Tuple

from ..address import AddressCodec
from ..backends.base import SubstrateBackend
from ..config import DEFAULT_EVM_CHAIN_ID
from ..errors import InvalidAddressFormat, InvalidSignature, TransactionFailed
from ..logging import get_logger, trace_scope
from ..types import ClaimResult, ExtrinsicOutcome
from ..utils.bytes import from_hex, is_hex, strip_0x, to_hex
from ..validation import is_evm_address
from .mapping import PALLET

log = get_logger(__name__)

DOMAIN_NAME = "Selendra EVM Claim"
DOMAIN_VERSION = "1"
ZERO_ADDRESS = "0x" + "00" * 20
SIGNATURE_HEX_LEN = 130  # 65 bytes: r || s || v

_DOMAIN_TYPE = b"EIP712Domain(string name,string version,uint256 chainId,address verifyingContract)"
_CLAIM_TYPE = b"ClaimEvmAddress(bytes32 substrateAddress)"


def _word(value: Any) -> bytes:
    """One 32-byte ABI word: bytes32 as-is, uint256 big-endian, address left-padded."""
    if isinstance(value, int):
        return value.to_bytes(32, "big")
    raw = bytes(value)
    if len(raw) > 32:
        raise ValueError("ABI word longer than 32 bytes")
    return raw.rjust(32, b"\x00")


def abi_encode_words(*values: Any) -> bytes:
    return b"".join(_word(v) for v in values)


def build_signing_payload(
    substrate_address: str,
    *,
    codec: Optional[AddressCodec] = None,
    chain_id: int = DEFAULT_EVM_CHAIN_ID,
    domain_name: str = DOMAIN_NAME,
    domain_version: str = DOMAIN_VERSION,
    verifying_contract: str = ZERO_ADDRESS,
) -> bytes:
    """32-byte EIP-712 digest an EVM wallet signs to prove control of an H160."""
    codec = codec or AddressCodec()
    keccak = codec.provider.keccak256
    account_id = codec.public_key(substrate_address)

    domain_separator = keccak(
        abi_encode_words(
            keccak(_DOMAIN_TYPE),
            keccak(domain_name.encode("utf-8")),
            keccak(domain_version.encode("utf-8")),
            int(chain_id),
            from_hex(verifying_contract),
        )
    )
    struct_hash = keccak(abi_encode_words(keccak(_CLAIM_TYPE), keccak(account_id)))
    return keccak(b"\x19\x01" + domain_separator + struct_hash)


def check_signature(signature: Any) -> str:
    """Validate a 65-byte hex signature; returns it 0x-prefixed."""
    if not isinstance(signature, str):
        raise InvalidSignature("signature must be a hex string")
    body = strip_0x(signature)
    if len(body) != SIGNATURE_HEX_LEN:
        raise InvalidSignature(
            f"expected 65 bytes ({SIGNATURE_HEX_LEN} hex chars)", signature_length=len(body)
        )
    if not is_hex(body):
        raise InvalidSignature("signature is not valid hex", signature_length=len(body))
    return "0x" + body.lower()


class ClaimOrchestrator:
    def __init__(
        self,
        substrate: SubstrateBackend,
        codec: Optional[AddressCodec] = None,
        *,
        chain_id: int = DEFAULT_EVM_CHAIN_ID,
        domain_name: str = DOMAIN_NAME,
        domain_version: str = DOMAIN_VERSION,
    ) -> None:
        self.substrate = substrate
        self.codec = codec or AddressCodec()
        self.chain_id = int(chain_id)
        self.domain_name = domain_name
        self.domain_version = domain_version

    # ---- payload -----------------------------------------------------------

    def build_signing_payload(self, substrate_address: str) -> bytes:
        return build_signing_payload(
            substrate_address,
            codec=self.codec,
            chain_id=self.chain_id,
            domain_name=self.domain_name,
            domain_version=self.domain_version,
        )

    def signing_payload_hex(self, substrate_address: str) -> str:
        """Same digest as 0x-hex, the form wallets take."""
        return to_hex(self.build_signing_payload(substrate_address))

    # ---- claims ------------------------------------------------------------

    async def claim_default_evm_address(self, signer: Any) -> ClaimResult:
        with trace_scope(op="claim_default_evm_address"):
            outcome = await self.substrate.submit_extrinsic(PALLET, "claim_default_evm_address", {}, signer)
            return self._result(outcome)

    async def claim_evm_address(self, signer: Any, evm_address: str, signature: str) -> ClaimResult:
        sig = check_signature(signature)
        if not is_evm_address(evm_address):
            raise InvalidAddressFormat("expected 0x followed by 40 hex characters", address=str(evm_address))
        with trace_scope(op="claim_evm_address", address=evm_address.lower()):
            outcome = await self.substrate.submit_extrinsic(
                PALLET,
                "claim_evm_address",
                {"evm_address": evm_address.lower(), "signature": sig},
                signer,
            )
            return self._result(outcome)

    # ---- outcome -----------------------------------------------------------

    def _result(self, outcome: ExtrinsicOutcome) -> ClaimResult:
        if not outcome.is_success:
            raise TransactionFailed(
                "claim extrinsic failed",
                tx_hash=outcome.extrinsic_hash,
                block_hash=outcome.block_hash,
                dispatch_error=outcome.dispatch_error,
            )
        event = outcome.find_event(PALLET, "AccountClaimed")
        if event is None:
            raise TransactionFailed(
                "finalized without an AccountClaimed event",
                tx_hash=outcome.extrinsic_hash,
                block_hash=outcome.block_hash,
            )
        if not outcome.block_hash:
            raise TransactionFailed("finalized block hash missing", tx_hash=outcome.extrinsic_hash)
        account_id, evm_address = self._event_fields(event.attributes)
        log.info("account claimed", extra={"address": account_id, "evm": evm_address})
        return ClaimResult(account_id=account_id, evm_address=evm_address, block_hash=outcome.block_hash)

    def _event_fields(self, attributes: Any) -> Tuple[str, str]:
        if isinstance(attributes, dict):
            account = attributes.get("account_id", attributes.get("who"))
            evm = attributes.get("evm_address")
        elif isinstance(attributes, (list, tuple)) and len(attributes) >= 2:
            account, evm = attributes[0], attributes[1]
        else:
            raise TransactionFailed(f"unexpected AccountClaimed payload: {attributes!r}")
        if isinstance(account, (bytes, bytearray)):
            account = self.codec.encode_account_id(bytes(account))
        elif is_hex(account, length=64):
            account = self.codec.encode_account_id(from_hex(account))
        if isinstance(evm, (bytes, bytearray)):
            evm = to_hex(evm)
        return str(account), str(evm).lower()


__all__ = [
    "ClaimOrchestrator",
    "build_signing_payload",
    "check_signature",
    "abi_encode_words",
    "DOMAIN_NAME",
    "DOMAIN_VERSION",
]
