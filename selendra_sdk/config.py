"""
SDK configuration: ledger endpoints, SS58 prefix, EVM chain id, and
timeouts/retries for the backend clients.

- Loads sane defaults and supports overrides via environment variables (SELENDRA_*).
- Provides helpers for building HTTP headers and validating endpoints.
- There is no module-level default instance; build one and pass it explicitly.
"""

from __future__ import annotations

import os
import re
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, Optional

from .version import user_agent

DEFAULT_SS58_PREFIX = 204
DEFAULT_EVM_CHAIN_ID = 1961
DEFAULT_CLAIM_DOMAIN_NAME = "Selendra EVM Claim"
DEFAULT_CLAIM_DOMAIN_VERSION = "1"

_DEFAULT_SUBSTRATE = "wss://rpc.selendra.org"
_DEFAULT_EVM_RPC = "https://rpc.selendra.org"

_HEX_RE = re.compile(r"^0x[0-9a-fA-F]+$")


def _parse_int(val: Any, default: int) -> int:
    """
    Accepts int, decimal str, or 0x-hex str and returns int.
    """
    if val is None or val == "":
        return int(default)
    if isinstance(val, int):
        return val
    s = str(val).strip()
    if _HEX_RE.match(s):
        return int(s, 16)
    return int(s, 10)


def _env(name: str, default: Optional[str] = None) -> Optional[str]:
    v = os.getenv(name)
    return v if v is not None else default


def _ensure_scheme(url: Optional[str], allowed: tuple[str, ...]) -> Optional[str]:
    if not url:
        return url
    lower = url.lower()
    if not any(lower.startswith(f"{sch}://") for sch in allowed):
        raise ValueError(f"URL must start with {allowed}, got: {url!r}")
    return url


def _check_prefix(prefix: int) -> int:
    # 46/47 are reserved by the SS58 registry; 16383 is the two-byte maximum.
    if prefix < 0 or prefix > 16383 or prefix in (46, 47):
        raise ValueError(f"invalid SS58 prefix: {prefix}")
    return prefix


@dataclass(slots=True)
class SDKConfig:
    # Endpoints
    substrate_url: str = field(default_factory=lambda: _DEFAULT_SUBSTRATE)
    evm_rpc_url: str = field(default_factory=lambda: _DEFAULT_EVM_RPC)
    # Network identity
    ss58_prefix: int = DEFAULT_SS58_PREFIX
    evm_chain_id: int = DEFAULT_EVM_CHAIN_ID
    # EIP-712 domain used for claim signatures
    claim_domain_name: str = DEFAULT_CLAIM_DOMAIN_NAME
    claim_domain_version: str = DEFAULT_CLAIM_DOMAIN_VERSION
    # Backend client behavior
    request_timeout: float = 10.0
    max_retries: int = 3
    backoff_base: float = 0.25
    wait_timeout_s: float = 120.0
    poll_interval_s: float = 2.0
    status_scan_depth: int = 64
    # Headers / identity
    user_agent: str = field(default_factory=user_agent)

    def __post_init__(self) -> None:
        _ensure_scheme(self.substrate_url, ("ws", "wss", "http", "https"))
        _ensure_scheme(self.evm_rpc_url, ("http", "https"))
        _check_prefix(int(self.ss58_prefix))

    @classmethod
    def from_env(cls, prefix: str = "SELENDRA_") -> "SDKConfig":
        """
        Create config from environment variables:

        SELENDRA_SUBSTRATE_URL     (ws/wss/http/https)
        SELENDRA_EVM_RPC_URL       (http/https)
        SELENDRA_SS58_PREFIX       (int, default 204)
        SELENDRA_EVM_CHAIN_ID      (int or 0x-hex, default 1961)
        SELENDRA_TIMEOUT           (float seconds, HTTP)
        SELENDRA_MAX_RETRIES       (int)
        SELENDRA_BACKOFF           (float)
        SELENDRA_WAIT_TIMEOUT      (float seconds, tx confirmation)
        SELENDRA_POLL_INTERVAL     (float seconds)
        SELENDRA_SCAN_DEPTH        (int, blocks searched for a substrate tx hash)
        SELENDRA_USER_AGENT        (str)
        SELENDRA_CLAIM_DOMAIN_NAME    (str, EIP-712 domain name for claim signatures)
        SELENDRA_CLAIM_DOMAIN_VERSION (str, EIP-712 domain version)
        """
        return cls(
            substrate_url=_env(f"{prefix}SUBSTRATE_URL", _DEFAULT_SUBSTRATE) or _DEFAULT_SUBSTRATE,
            evm_rpc_url=_env(f"{prefix}EVM_RPC_URL", _DEFAULT_EVM_RPC) or _DEFAULT_EVM_RPC,
            ss58_prefix=_parse_int(_env(f"{prefix}SS58_PREFIX"), DEFAULT_SS58_PREFIX),
            evm_chain_id=_parse_int(_env(f"{prefix}EVM_CHAIN_ID"), DEFAULT_EVM_CHAIN_ID),
            request_timeout=float(_env(f"{prefix}TIMEOUT", "10.0")),
            max_retries=int(_env(f"{prefix}MAX_RETRIES", "3")),
            backoff_base=float(_env(f"{prefix}BACKOFF", "0.25")),
            wait_timeout_s=float(_env(f"{prefix}WAIT_TIMEOUT", "120.0")),
            poll_interval_s=float(_env(f"{prefix}POLL_INTERVAL", "2.0")),
            status_scan_depth=int(_env(f"{prefix}SCAN_DEPTH", "64")),
            user_agent=_env(f"{prefix}USER_AGENT") or user_agent(),
            claim_domain_name=_env(f"{prefix}CLAIM_DOMAIN_NAME") or DEFAULT_CLAIM_DOMAIN_NAME,
            claim_domain_version=_env(f"{prefix}CLAIM_DOMAIN_VERSION") or DEFAULT_CLAIM_DOMAIN_VERSION,
        )

    @classmethod
    def with_overrides(cls, base: Optional["SDKConfig"] = None, **overrides: Any) -> "SDKConfig":
        """
        Build from an existing config plus keyword overrides.
        Unknown keys are ignored.
        """
        base = base or cls.from_env()
        data = base.to_dict()
        data.update({k: v for k, v in overrides.items() if k in data})
        if "evm_chain_id" in overrides:
            data["evm_chain_id"] = _parse_int(overrides["evm_chain_id"], base.evm_chain_id)
        if "ss58_prefix" in overrides:
            data["ss58_prefix"] = _parse_int(overrides["ss58_prefix"], base.ss58_prefix)
        return cls(**data)

    def http_headers(self) -> Dict[str, str]:
        return {
            "Content-Type": "application/json",
            "Accept": "application/json",
            "User-Agent": self.user_agent,
        }

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


__all__ = ["SDKConfig", "DEFAULT_SS58_PREFIX", "DEFAULT_EVM_CHAIN_ID"]
