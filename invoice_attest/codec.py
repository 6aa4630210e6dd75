"""
Canonical text encoding of attestation records.

The encoding is compact JSON with camelCase keys. Integer fields that may
exceed 2**53 (``invoiceDate``, ``quantity``, ``amount``) are written as
decimal digit strings so that no JSON consumer ever sees them as numbers.
A ``timestamp`` provenance field records capture time and is ignored when
comparing records.

Decoding treats its input as untrusted: every failure maps to one of the
``ExtractError`` subclasses in ``errors``.
"""

from __future__ import annotations

import json
import logging
import re
from datetime import datetime, timezone
from typing import Any, Dict, Mapping, Optional

from pydantic import ValidationError

from .config import derive_full_attestation_id
from .errors import (
    EmbedFailure,
    IdentifierMismatch,
    InvalidNumericField,
    MalformedPayload,
    MissingField,
)
from .schema import AttestationRecord, DecodedPayload

REQUIRED_FIELDS = (
    "businessName",
    "transactionHash",
    "invoiceDate",
    "customer",
    "productName",
    "category",
    "quantity",
    "amount",
    "network",
    "attestationId",
    "fullAttestationId",
)
BIG_INT_FIELDS = ("invoiceDate", "quantity", "amount")
TEXT_FIELDS = tuple(f for f in REQUIRED_FIELDS if f not in BIG_INT_FIELDS)
TIMESTAMP_FIELD = "timestamp"

_DECIMAL_DIGITS = re.compile(r"^[0-9]+$")


# ---------------- Big integer parse / format ----------------


def format_decimal(value: int) -> str:
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError(f"expected int, got {type(value).__name__}")
    if value < 0:
        raise ValueError("negative values are not representable")
    return str(value)


def parse_decimal(field: str, text: Any) -> int:
    """
    Parse a non-negative decimal digit string into an int.

    Native JSON numbers are refused as well: a float has already lost
    precision by the time it reaches us.
    """
    if not isinstance(text, str):
        raise InvalidNumericField(field, f"Field '{field}' must be a decimal digit string")
    if text.startswith("-"):
        raise InvalidNumericField(field, f"Field '{field}' must not be negative")
    if not _DECIMAL_DIGITS.match(text):
        raise InvalidNumericField(field)
    try:
        return int(text)
    except ValueError:
        # int() refuses digit strings above the interpreter's conversion limit.
        raise InvalidNumericField(field, f"Field '{field}' is too large") from None


# ---------------- Encode ----------------


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def encode_fields(record: AttestationRecord) -> Dict[str, str]:
    """
    Wire mapping of the record's own fields, without ledger identifiers or
    provenance. This is also the data registered with the ledger.
    """
    return {
        "businessName": record.business_name,
        "transactionHash": record.transaction_hash,
        "invoiceDate": format_decimal(record.invoice_date),
        "customer": record.customer,
        "productName": record.product_name,
        "category": record.category,
        "quantity": format_decimal(record.quantity),
        "amount": format_decimal(record.amount),
        "network": record.network.value,
    }


def encode(record: AttestationRecord, captured_at: Optional[str] = None) -> str:
    """
    Serialize a complete record to its canonical text form.
    """
    if not record.is_complete:
        raise EmbedFailure("Record has no attestationId; register it before encoding")

    payload: Dict[str, str] = encode_fields(record)
    payload["attestationId"] = record.attestation_id
    payload["fullAttestationId"] = record.full_attestation_id
    payload[TIMESTAMP_FIELD] = captured_at or _now_iso()
    return json.dumps(payload, separators=(",", ":"), ensure_ascii=True)


# ---------------- Decode ----------------


def _parse_wrapper(text: Any) -> Dict[str, Any]:
    if isinstance(text, (bytes, bytearray)):
        try:
            text = bytes(text).decode("utf-8")
        except UnicodeDecodeError:
            raise MalformedPayload("Embedded payload is not valid UTF-8") from None
    if not isinstance(text, str):
        raise MalformedPayload("Embedded payload is not text")
    try:
        payload = json.loads(text)
    except (ValueError, RecursionError):
        raise MalformedPayload("Embedded payload is not valid JSON") from None
    if not isinstance(payload, dict):
        raise MalformedPayload("Embedded payload is not a JSON object")
    return payload


def decode_fields(payload: Mapping[str, Any]) -> AttestationRecord:
    """
    Build a record from an already-parsed payload mapping, applying every
    check except JSON parsing. Unknown keys are ignored.
    """
    for name in REQUIRED_FIELDS:
        if payload.get(name) is None:
            raise MissingField(name)

    numbers = {name: parse_decimal(name, payload[name]) for name in BIG_INT_FIELDS}

    for name in TEXT_FIELDS:
        if not isinstance(payload[name], str):
            raise MalformedPayload(f"Field '{name}' must be a string")

    fields = {name: payload[name] for name in TEXT_FIELDS if name != "fullAttestationId"}
    fields.update(numbers)
    try:
        record = AttestationRecord.model_validate(fields)
    except ValidationError as exc:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in exc.errors()
        )
        raise MalformedPayload(f"Embedded record is invalid: {problems}") from None

    expected = derive_full_attestation_id(record.attestation_id)
    if payload["fullAttestationId"] != expected:
        raise IdentifierMismatch(
            f"fullAttestationId {payload['fullAttestationId']!r} does not match "
            f"attestationId {record.attestation_id!r} (expected {expected!r})"
        )
    return record


def decode_payload(text: Any) -> DecodedPayload:
    payload = _parse_wrapper(text)
    record = decode_fields(payload)
    captured_at = payload.get(TIMESTAMP_FIELD)
    if not isinstance(captured_at, str):
        if captured_at is not None:
            logging.warning("Ignoring non-text provenance timestamp in embedded payload")
        captured_at = None
    return DecodedPayload(record=record, captured_at=captured_at)


def decode(text: Any) -> AttestationRecord:
    """
    Parse canonical text back into an ``AttestationRecord``.

    Raises ``MalformedPayload``, ``MissingField``, ``InvalidNumericField`` or
    ``IdentifierMismatch``.
    """
    return decode_payload(text).record
