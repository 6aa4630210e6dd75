"""
Transaction source: looks up the paying transaction of an invoice.

``JsonRpcTransactionSource`` asks the network's JSON-RPC endpoint for the
transaction; the transferred ``value`` becomes the invoice amount and the
sender becomes the customer.
"""

from __future__ import annotations

import logging
from typing import Dict, Optional, Protocol, Tuple

import requests

from .config import Settings, get_settings
from .errors import TransactionNotFound, TransactionSourceUnavailable
from .schema import Network, TransactionDetails, normalize_transaction_hash


class TransactionSource(Protocol):
    def get_transaction(self, tx_hash: str, network: Network) -> TransactionDetails: ...


def _parse_quantity(value: object) -> int:
    # JSON-RPC quantities are 0x-prefixed hex strings.
    if not isinstance(value, str) or not value.lower().startswith("0x"):
        raise ValueError(f"not a hex quantity: {value!r}")
    return int(value, 16)


class JsonRpcTransactionSource:
    def __init__(self, settings: Optional[Settings] = None, session: Optional[requests.Session] = None) -> None:
        self.settings = settings or get_settings()
        self.session = session or requests.Session()

    def get_transaction(self, tx_hash: str, network: Network) -> TransactionDetails:
        network = Network(network)
        url = self.settings.rpc_url_for(network.value)
        body = {
            "jsonrpc": "2.0",
            "id": 1,
            "method": "eth_getTransactionByHash",
            "params": [normalize_transaction_hash(tx_hash)],
        }
        logging.info(f"Fetching transaction {tx_hash} on {network.value}")
        try:
            response = self.session.post(url, json=body, timeout=self.settings.rpc_timeout)
            response.raise_for_status()
            reply = response.json()
        except (requests.RequestException, ValueError) as e:
            raise TransactionSourceUnavailable(f"Error fetching transaction details: {e}") from e

        if not isinstance(reply, dict):
            raise TransactionSourceUnavailable("JSON-RPC reply is not an object")
        if reply.get("error"):
            raise TransactionSourceUnavailable(f"JSON-RPC error: {reply['error']}")

        tx = reply.get("result")
        if not tx:
            raise TransactionNotFound(f"Transaction {tx_hash} not found on {network.value}")
        try:
            return TransactionDetails(amount=_parse_quantity(tx.get("value")), from_address=tx["from"])
        except (KeyError, TypeError, ValueError) as e:
            raise TransactionSourceUnavailable(f"Malformed transaction returned by node: {e}") from e


class StaticTransactionSource:
    """
    In-memory transaction source keyed by (normalized hash, network).
    """

    def __init__(self, transactions: Optional[Dict[Tuple[str, Network], TransactionDetails]] = None) -> None:
        self.transactions: Dict[Tuple[str, Network], TransactionDetails] = {}
        self.calls = 0
        for (tx_hash, network), details in (transactions or {}).items():
            self.add(tx_hash, network, details)

    def add(self, tx_hash: str, network: Network, details: TransactionDetails) -> None:
        self.transactions[(normalize_transaction_hash(tx_hash), Network(network))] = details

    def get_transaction(self, tx_hash: str, network: Network) -> TransactionDetails:
        self.calls += 1
        key = (normalize_transaction_hash(tx_hash), Network(network))
        try:
            return self.transactions[key]
        except KeyError:
            raise TransactionNotFound(f"Transaction {tx_hash} not found on {Network(network).value}") from None
