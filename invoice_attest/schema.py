"""
Data models and schema definitions for attested invoices.

All components (codec, embedder, extractor, verifier, API, CLI) use these
Pydantic models so that the record shape and its constraints live in one place.
Integer fields that can exceed 2**53 are Python ints end to end; they are
only ever turned into text by the codec, never into floats.
"""

from __future__ import annotations

import re
from datetime import date
from enum import Enum
from typing import Annotated, Any, Dict, List, Optional

from pydantic import (
    BaseModel,
    BeforeValidator,
    ConfigDict,
    Field,
    PlainSerializer,
    StringConstraints,
    field_validator,
)
from pydantic.alias_generators import to_camel

from .config import derive_full_attestation_id

TRANSACTION_HASH_BYTES = 32
_HEX_DIGITS = re.compile(r"^[0-9a-fA-F]+$")
_EPOCH = date(1970, 1, 1)


class Network(str, Enum):
    """
    Chains an invoice can be attested against.
    """

    SEPOLIA = "sepolia"


# ---------------- Field helpers ----------------


def _require_integer(value: Any) -> Any:
    # bool is a subclass of int and float would silently drop precision.
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"expected an integer, got {type(value).__name__}")
    return value


BigInt = Annotated[
    int,
    BeforeValidator(_require_integer),
    Field(ge=0),
    PlainSerializer(lambda v: str(v), return_type=str, when_used="json"),
]

Text = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]


def normalize_transaction_hash(value: Any) -> str:
    """
    Normalize a transaction hash to ``0x`` followed by 64 lowercase hex digits.

    Shorter inputs are left-padded with zeros. Leading zeros in the input are
    insignificant, so ``0x0abc`` and ``0xabc`` normalize identically. Inputs
    with more than 32 bytes of significant digits are rejected, never truncated.
    """
    if isinstance(value, (bytes, bytearray)):
        raw = bytes(value)
        if len(raw) > TRANSACTION_HASH_BYTES:
            raise ValueError("transaction hash exceeds 32 bytes")
        return "0x" + raw.rjust(TRANSACTION_HASH_BYTES, b"\x00").hex()

    if not isinstance(value, str):
        raise ValueError("transaction hash must be a hex string")

    digits = value.strip()
    if digits[:2].lower() == "0x":
        digits = digits[2:]
    if not digits or not _HEX_DIGITS.match(digits):
        raise ValueError("transaction hash must be a hex string")

    significant = digits.lower().lstrip("0")
    if len(significant) > TRANSACTION_HASH_BYTES * 2:
        raise ValueError("transaction hash exceeds 32 bytes")
    return "0x" + significant.rjust(TRANSACTION_HASH_BYTES * 2, "0")


def date_to_epoch_seconds(value: date) -> int:
    """
    Seconds since the epoch at UTC midnight of ``value``. Computed with
    integer arithmetic only.
    """
    return (value - _EPOCH).days * 86400


def epoch_seconds_to_date(seconds: int) -> date:
    return date.fromordinal(_EPOCH.toordinal() + seconds // 86400)


def format_units(value: int, decimals: int = 18) -> str:
    """
    Render an integer amount of the smallest denomination as a decimal string.

    >>> format_units(1500000000000000000)
    '1.5'
    >>> format_units(10**18)
    '1.0'
    """
    whole, fraction = divmod(value, 10**decimals)
    fraction_text = str(fraction).rjust(decimals, "0").rstrip("0") or "0"
    return f"{whole}.{fraction_text}"


# ---------------- Record model ----------------


class AttestationRecord(BaseModel):
    """
    The canonical attestation record for a transaction-backed invoice.

    A record is "complete" once the ledger has assigned ``attestation_id``.
    ``full_attestation_id`` is always derived from it and is never stored.
    Records are immutable; registration produces a new instance through
    ``with_attestation``.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True, alias_generator=to_camel)

    business_name: Text = Field(..., description="Name of the issuing business.")
    transaction_hash: str = Field(
        ..., description="Hash of the paying transaction, 0x + 64 hex digits."
    )
    invoice_date: BigInt = Field(..., description="Invoice date as seconds since the epoch.")
    customer: Text = Field(..., description="Address that sent the payment.")
    product_name: Text = Field(..., description="Product or service invoiced.")
    category: Text = Field(..., description="Product category.")
    quantity: BigInt = Field(..., description="Number of units invoiced.")
    amount: BigInt = Field(..., description="Amount paid in the smallest denomination (wei).")
    network: Network = Field(..., description="Chain the payment and attestation live on.")
    attestation_id: Optional[Text] = Field(
        default=None, description="Ledger-assigned id; absent until registration succeeds."
    )

    @field_validator("transaction_hash", mode="before")
    @classmethod
    def _normalize_hash(cls, v):
        return normalize_transaction_hash(v)

    @property
    def full_attestation_id(self) -> Optional[str]:
        if self.attestation_id is None:
            return None
        return derive_full_attestation_id(self.attestation_id)

    @property
    def is_complete(self) -> bool:
        return self.attestation_id is not None

    @property
    def transaction_hash_bytes(self) -> bytes:
        return bytes.fromhex(self.transaction_hash[2:])

    def with_attestation(self, attestation_id: str) -> "AttestationRecord":
        # Re-validated so the id gets the same normalization a decoded record does.
        return self.model_validate({**self.model_dump(), "attestation_id": str(attestation_id)})


# ---------------- Issuance inputs / collaborator results ----------------


class InvoiceForm(BaseModel):
    """
    Raw invoice fields as collected from a user. Values are kept as entered;
    ``validator.validate_form`` decides whether they are usable.
    """

    model_config = ConfigDict(populate_by_name=True, alias_generator=to_camel)

    business_name: Optional[str] = Field(default=None, description="Business name.")
    transaction_hash: Optional[str] = Field(default=None, description="Paying transaction hash (hex).")
    invoice_date: Optional[str] = Field(default=None, description="Calendar date, e.g. '2024-05-01'.")
    product_name: Optional[str] = Field(default=None, description="Product name.")
    category: Optional[str] = Field(default=None, description="Product category.")
    quantity: Optional[str] = Field(default=None, description="Quantity as a decimal digit string.")
    network: Optional[str] = Field(default=None, description="Target network name.")


class TransactionDetails(BaseModel):
    amount: BigInt = Field(..., description="Transferred value in wei.")
    from_address: str = Field(..., description="Sender of the transaction.")


class RegistrationReceipt(BaseModel):
    """
    What the ledger returns after a successful registration.
    """

    attestation_id: str
    tx_hash: Optional[str] = None
    indexing_value: Optional[str] = None


class LedgerRegistration(BaseModel):
    """
    A registration as reported by a ledger lookup.
    """

    full_attestation_id: str
    attestation_id: Optional[str] = None
    schema_id: Optional[str] = None
    data: Dict[str, Any] = Field(default_factory=dict)


class DecodedPayload(BaseModel):
    record: AttestationRecord
    captured_at: Optional[str] = Field(
        default=None, description="Provenance timestamp written at encode time."
    )


class ExtractionResult(BaseModel):
    """
    Tagged result of reading an arbitrary document: either a record or an error code.
    """

    ok: bool
    record: Optional[AttestationRecord] = None
    full_attestation_id: Optional[str] = None
    error_code: Optional[str] = None
    message: Optional[str] = None


class VerificationStatus(str, Enum):
    VERIFIED = "verified"
    REJECTED = "rejected"


class VerificationOutcome(BaseModel):
    status: VerificationStatus
    reason: Optional[str] = Field(
        default=None, description="Error code explaining a rejection."
    )
    message: str = ""
    full_attestation_id: Optional[str] = None
    record: Optional[AttestationRecord] = None
    registration: Optional[LedgerRegistration] = None

    @property
    def verified(self) -> bool:
        return self.status is VerificationStatus.VERIFIED


class VerificationSummary(BaseModel):
    total_documents: int = Field(..., description="Number of documents checked.")
    verified_documents: int = Field(..., description="Documents whose attestation was confirmed.")
    rejected_documents: int = Field(..., description="Documents that failed verification.")
    top_reasons: List[str] = Field(
        default_factory=list, description="Most common rejection reasons."
    )


class BulkVerificationReport(BaseModel):
    results: Dict[str, VerificationOutcome] = Field(
        default_factory=dict, description="Outcome per document name."
    )
    summary: VerificationSummary


# ---------------- Form validation output ----------------


class InvoiceValidationError(BaseModel):
    """
    Represents a single validation error for invoice input.
    """

    code: str = Field(..., description="Short machine-readable error code.")
    message: str = Field(..., description="Human-readable description of the error.")
    field: Optional[str] = Field(
        default=None,
        description="Optional field name associated with the error (if applicable).",
    )


class InvoiceValidationResult(BaseModel):
    is_valid: bool = Field(..., description="True if the input passed all checks.")
    errors: List[InvoiceValidationError] = Field(
        default_factory=list, description="List of validation errors."
    )
