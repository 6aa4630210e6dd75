"""
Issuance flow: turn collected invoice input into a ledger-registered record.

    readiness gate -> form validation -> transaction lookup -> draft record
    -> ledger registration -> complete record

Records are immutable; a draft only becomes complete through the new
instance returned after the ledger call succeeds, so a failed or abandoned
registration leaves nothing half-updated.
"""

from __future__ import annotations

import logging
from typing import Optional

from .codec import encode_fields
from .config import Settings, get_settings
from .ledger import Ledger, make_indexing_value
from .readiness import ChainReadiness
from .schema import (
    AttestationRecord,
    InvoiceForm,
    Network,
    TransactionDetails,
    date_to_epoch_seconds,
)
from .transactions import TransactionSource
from .validator import ensure_valid_form, parse_form_date


def build_draft(form: InvoiceForm, transaction: TransactionDetails) -> AttestationRecord:
    """
    Combine validated form input with on-chain transaction data.
    """
    return AttestationRecord(
        business_name=form.business_name,
        transaction_hash=form.transaction_hash,
        invoice_date=date_to_epoch_seconds(parse_form_date(form.invoice_date)),
        customer=transaction.from_address,
        product_name=form.product_name,
        category=form.category,
        quantity=int(form.quantity.strip()),
        amount=transaction.amount,
        network=Network(form.network.strip()),
    )


def register_record(
    draft: AttestationRecord,
    readiness: ChainReadiness,
    ledger: Ledger,
    settings: Optional[Settings] = None,
) -> AttestationRecord:
    """
    Register a draft with the ledger and return the completed record.

    Raises ``NetworkNotReady`` without contacting the ledger unless the
    readiness machine is Ready for the draft's network.
    """
    readiness.require_ready(draft.network)
    settings = settings or get_settings()

    receipt = ledger.register(settings.schema_id, make_indexing_value(), encode_fields(draft))
    record = draft.with_attestation(receipt.attestation_id)
    logging.info(f"Registered attestation {record.full_attestation_id}")
    return record


def issue_invoice(
    form: InvoiceForm,
    readiness: ChainReadiness,
    transactions: TransactionSource,
    ledger: Ledger,
    settings: Optional[Settings] = None,
) -> AttestationRecord:
    """
    Run the full issuance flow for one invoice and return the complete record.
    """
    readiness.require_ready()
    ensure_valid_form(form)
    network = Network(form.network.strip())
    readiness.require_ready(network)

    transaction = transactions.get_transaction(form.transaction_hash, network)
    draft = build_draft(form, transaction)
    return register_record(draft, readiness, ledger, settings)
