"""
Attestation verification for documents supplied by third parties.

A document is verified when its embedded record decodes cleanly and the
ledger holds a registration under the record's ``fullAttestationId``. The
embedded ``network`` is informational; validity rests on the ledger lookup.
"""

from __future__ import annotations

import logging
from collections import Counter
from pathlib import Path
from typing import Dict, Iterable, Union

from .errors import ExtractError, LedgerUnavailable, NotRegistered
from .extractor import extract
from .ledger import Ledger
from .schema import (
    BulkVerificationReport,
    VerificationOutcome,
    VerificationStatus,
    VerificationSummary,
)

NOT_A_VALID_DOCUMENT = "Not a valid attestation document"


class AttestationVerifier:
    def __init__(self, ledger: Ledger) -> None:
        self.ledger = ledger

    def verify(self, data: bytes) -> VerificationOutcome:
        try:
            record = extract(data)
        except ExtractError as e:
            logging.warning(f"Verification rejected: {e.code}: {e.message}")
            return VerificationOutcome(
                status=VerificationStatus.REJECTED,
                reason=e.code,
                message=f"{NOT_A_VALID_DOCUMENT}: {e.message}",
            )

        full_id = record.full_attestation_id
        try:
            registration = self.ledger.lookup(full_id)
        except NotRegistered as e:
            return self._rejected_lookup(NotRegistered.code, e.message, record)
        except LedgerUnavailable as e:
            logging.error(f"Error verifying attestation: {e.message}")
            return self._rejected_lookup(LedgerUnavailable.code, e.message, record)

        if registration.full_attestation_id != full_id:
            return self._rejected_lookup(
                NotRegistered.code,
                f"Ledger returned {registration.full_attestation_id} for {full_id}",
                record,
            )

        logging.info(f"Attestation with ID {full_id} verified successfully")
        return VerificationOutcome(
            status=VerificationStatus.VERIFIED,
            message=f"Attestation with ID {full_id} verified successfully",
            full_attestation_id=full_id,
            record=record,
            registration=registration,
        )

    @staticmethod
    def _rejected_lookup(reason: str, message: str, record) -> VerificationOutcome:
        logging.warning(f"Verification rejected: {reason}: {message}")
        return VerificationOutcome(
            status=VerificationStatus.REJECTED,
            reason=reason,
            message=message,
            full_attestation_id=record.full_attestation_id,
            record=record,
        )

    def verify_many(self, documents: Dict[str, bytes]) -> BulkVerificationReport:
        """
        Verify several documents and summarize the outcomes.
        """
        results = {name: self.verify(data) for name, data in documents.items()}

        reason_counter: Counter = Counter(o.reason for o in results.values() if not o.verified)
        verified = sum(1 for o in results.values() if o.verified)
        summary = VerificationSummary(
            total_documents=len(results),
            verified_documents=verified,
            rejected_documents=len(results) - verified,
            top_reasons=[reason for reason, _ in reason_counter.most_common(5)],
        )
        return BulkVerificationReport(results=results, summary=summary)


def verify(data: bytes, ledger: Ledger) -> VerificationOutcome:
    return AttestationVerifier(ledger).verify(data)


def verify_paths(paths: Iterable[Union[str, Path]], ledger: Ledger) -> BulkVerificationReport:
    documents = {}
    for pdf_path in paths:
        pdf_path = Path(pdf_path)
        logging.info(f"Processing {pdf_path}")
        documents[pdf_path.name] = pdf_path.read_bytes()
    return AttestationVerifier(ledger).verify_many(documents)
