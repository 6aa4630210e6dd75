"""
Attestation ledger collaborators.

The ledger is an opaque remote service: ``register`` records invoice data
under a schema and returns a ledger-assigned id, ``lookup`` fetches a
registration by its fully-namespaced id. Failures surface as
``LedgerUnavailable`` or ``NotRegistered``; nothing here retries.
"""

from __future__ import annotations

import logging
import time
from typing import Any, Dict, List, Optional, Protocol, Tuple
from urllib.parse import quote

import requests

from .config import Settings, derive_full_attestation_id, get_settings
from .errors import LedgerUnavailable, NotRegistered
from .schema import LedgerRegistration, RegistrationReceipt


class Ledger(Protocol):
    def register(self, schema_id: str, indexing_value: str, data: Dict[str, Any]) -> RegistrationReceipt: ...

    def lookup(self, full_attestation_id: str) -> LedgerRegistration: ...


def make_indexing_value(now_ms: Optional[int] = None) -> str:
    """
    Indexing value for a registration: the millisecond timestamp in hex.
    """
    if now_ms is None:
        now_ms = time.time_ns() // 1_000_000
    return "0x" + format(now_ms, "x")


def _unwrap(body: Any) -> Any:
    # The gateway wraps results as {"success": ..., "data": {...}}.
    if isinstance(body, dict) and "success" in body and "data" in body:
        return body["data"]
    return body


def _optional_text(value: Any) -> Optional[str]:
    # Gateways are loose about types; ids may come back as numbers.
    if value is None:
        return None
    text = str(value).strip()
    return text or None


class HttpLedger:
    """
    Ledger reached over HTTP:

    - ``POST {ledger_url}/attestations`` with ``{schemaId, indexingValue, data}``
    - ``GET {ledger_url}/index/attestations/{fullAttestationId}``
    """

    def __init__(self, settings: Optional[Settings] = None, session: Optional[requests.Session] = None) -> None:
        self.settings = settings or get_settings()
        self.session = session or requests.Session()
        self.base_url = self.settings.ledger_url.rstrip("/")

    def register(self, schema_id: str, indexing_value: str, data: Dict[str, Any]) -> RegistrationReceipt:
        url = f"{self.base_url}/attestations"
        logging.info(f"Registering attestation under schema {schema_id}")
        try:
            response = self.session.post(
                url,
                json={"schemaId": schema_id, "indexingValue": indexing_value, "data": data},
                timeout=self.settings.ledger_timeout,
            )
            response.raise_for_status()
            body = _unwrap(response.json())
        except (requests.RequestException, ValueError) as e:
            raise LedgerUnavailable(f"Ledger registration failed: {e}") from e

        attestation_id = _optional_text(body.get("attestationId")) if isinstance(body, dict) else None
        if not attestation_id:
            raise LedgerUnavailable("Ledger registration returned no attestationId")
        return RegistrationReceipt(
            attestation_id=attestation_id,
            tx_hash=_optional_text(body.get("txHash")),
            indexing_value=indexing_value,
        )

    def lookup(self, full_attestation_id: str) -> LedgerRegistration:
        url = f"{self.base_url}/index/attestations/{quote(full_attestation_id, safe='')}"
        logging.info(f"Verifying attestation with ID: {full_attestation_id}")
        try:
            response = self.session.get(url, timeout=self.settings.ledger_timeout)
        except requests.RequestException as e:
            raise LedgerUnavailable(f"Ledger lookup failed: {e}") from e

        if response.status_code == 404:
            raise NotRegistered(f"No attestation registered as {full_attestation_id}")
        try:
            response.raise_for_status()
            body = _unwrap(response.json())
        except (requests.RequestException, ValueError) as e:
            raise LedgerUnavailable(f"Ledger lookup failed: {e}") from e

        if not body:
            raise NotRegistered(f"No attestation registered as {full_attestation_id}")
        if not isinstance(body, dict):
            raise LedgerUnavailable("Ledger lookup returned an unexpected payload")

        return LedgerRegistration(
            full_attestation_id=str(body.get("id") or body.get("fullAttestationId") or full_attestation_id),
            attestation_id=_optional_text(body.get("attestationId")),
            schema_id=_optional_text(body.get("schemaId")),
            data=body.get("data") if isinstance(body.get("data"), dict) else {},
        )


class InMemoryLedger:
    """
    Process-local ledger. Ids are assigned sequentially starting at ``first_id``.
    Every call is recorded in ``calls`` so tests can assert on external traffic.
    """

    def __init__(self, first_id: int = 1) -> None:
        self._next_id = first_id
        self.registrations: Dict[str, LedgerRegistration] = {}
        self.calls: List[Tuple[str, str]] = []

    def register(self, schema_id: str, indexing_value: str, data: Dict[str, Any]) -> RegistrationReceipt:
        self.calls.append(("register", schema_id))
        attestation_id = str(self._next_id)
        self._next_id += 1
        full_id = derive_full_attestation_id(attestation_id)
        self.registrations[full_id] = LedgerRegistration(
            full_attestation_id=full_id,
            attestation_id=attestation_id,
            schema_id=schema_id,
            data=dict(data),
        )
        return RegistrationReceipt(attestation_id=attestation_id, indexing_value=indexing_value)

    def lookup(self, full_attestation_id: str) -> LedgerRegistration:
        self.calls.append(("lookup", full_attestation_id))
        try:
            return self.registrations[full_attestation_id]
        except KeyError:
            raise NotRegistered(f"No attestation registered as {full_attestation_id}") from None
