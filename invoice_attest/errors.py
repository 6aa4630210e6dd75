"""
Error taxonomy for the attested invoice pipeline.

Every failure carries a stable, machine-readable ``code`` so that callers
(CLI, API, verifier) can branch on the kind of failure without parsing
messages.
"""

from __future__ import annotations

from typing import List, Optional


class AttestationError(Exception):
    """
    Base class for all errors raised by this package.
    """

    code = "attestation_error"

    def __init__(self, message: Optional[str] = None) -> None:
        super().__init__(message or self.code)
        self.message = message or self.code


# ---------------- Issuance side ----------------


class InputValidationError(AttestationError):
    """Form-level input is missing or invalid. Raised before any external call."""

    code = "input_validation"

    def __init__(self, errors: List["object"]) -> None:
        self.errors = list(errors)
        details = ", ".join(getattr(e, "code", str(e)) for e in self.errors)
        super().__init__(f"Invalid invoice input: {details}")


class NetworkNotReady(AttestationError):
    code = "network_not_ready"


class InvalidTransition(AttestationError):
    code = "invalid_transition"


class WalletRequestError(AttestationError):
    """
    A wallet rejected a request. ``wallet_code`` follows the EIP-1193 numbering
    (4001 user rejected, 4902 unrecognized chain).
    """

    code = "wallet_request_failed"

    def __init__(self, wallet_code: int, message: str = "") -> None:
        super().__init__(message or f"Wallet request failed with code {wallet_code}")
        self.wallet_code = wallet_code


class EmbedFailure(AttestationError):
    code = "embed_failure"


# ---------------- External lookups ----------------


class ExternalLookupFailure(AttestationError):
    code = "external_lookup_failure"


class TransactionNotFound(ExternalLookupFailure):
    code = "transaction_not_found"


class TransactionSourceUnavailable(ExternalLookupFailure):
    code = "transaction_source_unavailable"


class LedgerUnavailable(ExternalLookupFailure):
    code = "ledger_unavailable"


class NotRegistered(ExternalLookupFailure):
    code = "not_registered"


# ---------------- Extraction side ----------------


class ExtractError(AttestationError):
    """
    Base for every reason an uploaded document is not a valid attestation document.
    """

    code = "extract_error"


class UnreadableArtifact(ExtractError):
    code = "unreadable_artifact"


class NoEmbeddedPayload(ExtractError):
    code = "no_embedded_payload"


class MalformedPayload(ExtractError):
    code = "malformed_payload"


class InvalidNumericField(ExtractError):
    code = "invalid_numeric_field"

    def __init__(self, field: str, message: Optional[str] = None) -> None:
        super().__init__(message or f"Field '{field}' is not a non-negative decimal integer")
        self.field = field


class MissingField(ExtractError):
    code = "missing_field"

    def __init__(self, field: str) -> None:
        super().__init__(f"Required field '{field}' is missing")
        self.field = field


class IdentifierMismatch(ExtractError):
    code = "identifier_mismatch"
