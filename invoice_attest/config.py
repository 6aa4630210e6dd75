"""
Configuration for the attested invoice service.

Namespace constants used to derive ledger identifiers are fixed at module
level. Deployment-specific values (ledger endpoint, timeouts, document tags)
come from ``INVOICE_ATTEST_*`` environment variables via ``Settings.from_env``.
"""

from __future__ import annotations

import logging
import os
from functools import lru_cache
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

# ---------------- Identifier namespace ----------------

ATTESTATION_ID_PREFIX = "onchain"
ATTESTATION_ENVIRONMENT_TAG = "evm"
ATTESTATION_CHAIN_ID = 11155111

SCHEMA_ID = "0x268"

# PDF implementation limit for a single string object.
MAX_SUBJECT_BYTES = 32767

LOG_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"


def derive_full_attestation_id(attestation_id: str) -> str:
    """
    Build the globally-namespaced identifier used to look an attestation up on the ledger.

    >>> derive_full_attestation_id("42")
    'onchain_evm_11155111_42'
    """
    return f"{ATTESTATION_ID_PREFIX}_{ATTESTATION_ENVIRONMENT_TAG}_{ATTESTATION_CHAIN_ID}_{attestation_id}"


# ---------------- Networks ----------------


class NetworkProfile(BaseModel):
    """
    Parameters a wallet needs to switch to (or add) a chain.
    """

    chain_id: str = Field(..., description="Hex chain id as reported by wallets, e.g. '0xaa36a7'.")
    chain_name: str = Field(..., description="Human-readable chain name.")
    rpc_urls: List[str] = Field(default_factory=list, description="JSON-RPC endpoints.")

    @property
    def numeric_chain_id(self) -> int:
        return int(self.chain_id, 16)


NETWORK_PROFILES: Dict[str, NetworkProfile] = {
    "sepolia": NetworkProfile(
        chain_id="0xaa36a7",
        chain_name="Sepolia",
        rpc_urls=["https://rpc.sepolia.org"],
    ),
}


def get_network_profile(network: str) -> NetworkProfile:
    try:
        return NETWORK_PROFILES[getattr(network, "value", network)]
    except KeyError:
        raise KeyError(f"Unsupported network: {network}") from None


# ---------------- Env helpers ----------------


def _env_str(name: str, default: str) -> str:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    return raw.strip()


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if raw is None or raw == "":
        return default
    try:
        return float(raw)
    except ValueError:
        logging.warning(f"Ignoring non-numeric value for {name}: {raw!r}")
        return default


class Settings(BaseModel):
    """
    Runtime settings. Construct directly in tests, or use ``Settings.from_env()``.
    """

    ledger_url: str = Field(
        default="https://testnet-rpc.sign.global/api",
        description="Base URL of the attestation ledger gateway.",
    )
    ledger_timeout: float = Field(default=10.0, description="Seconds before a ledger call is abandoned.")
    rpc_url: Optional[str] = Field(
        default=None, description="Overrides the network profile's first RPC URL when set."
    )
    rpc_timeout: float = Field(default=10.0, description="Seconds before a JSON-RPC call is abandoned.")
    schema_id: str = Field(default=SCHEMA_ID, description="Ledger schema the invoice data is registered under.")
    log_level: str = Field(default="INFO")

    document_title: str = Field(default="Purchase Invoice")
    document_author: str = Field(default="Voice4Invoice")
    document_creator: str = Field(default="Voice4Invoice")
    document_producer: str = Field(default="PDF/A-3 Generator")
    document_keywords: List[str] = Field(
        default_factory=lambda: ["attestation", "blockchain", "transaction", "invoice"]
    )

    @classmethod
    def from_env(cls) -> "Settings":
        defaults = cls()
        return cls(
            ledger_url=_env_str("INVOICE_ATTEST_LEDGER_URL", defaults.ledger_url),
            ledger_timeout=_env_float("INVOICE_ATTEST_LEDGER_TIMEOUT", defaults.ledger_timeout),
            rpc_url=os.environ.get("INVOICE_ATTEST_RPC_URL") or None,
            rpc_timeout=_env_float("INVOICE_ATTEST_RPC_TIMEOUT", defaults.rpc_timeout),
            schema_id=_env_str("INVOICE_ATTEST_SCHEMA_ID", defaults.schema_id),
            log_level=_env_str("INVOICE_ATTEST_LOG_LEVEL", defaults.log_level).upper(),
            document_author=_env_str("INVOICE_ATTEST_DOCUMENT_AUTHOR", defaults.document_author),
            document_creator=_env_str("INVOICE_ATTEST_DOCUMENT_CREATOR", defaults.document_creator),
        )

    def rpc_url_for(self, network: str) -> str:
        if self.rpc_url:
            return self.rpc_url
        return get_network_profile(network).rpc_urls[0]


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings.from_env()


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(level=getattr(logging, level.upper(), logging.INFO), format=LOG_FORMAT)
