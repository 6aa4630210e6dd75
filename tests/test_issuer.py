"""
Tests for the issuance flow: readiness gating, validation and registration.
"""

import pytest

from invoice_attest.errors import (
    InputValidationError,
    LedgerUnavailable,
    NetworkNotReady,
    TransactionNotFound,
)
from invoice_attest.issuer import build_draft, issue_invoice, register_record
from invoice_attest.readiness import ChainReadiness, StaticWallet
from invoice_attest.schema import Network, TransactionDetails

from .conftest import CUSTOMER


class DownLedger:
    def __init__(self):
        self.calls = 0

    def register(self, schema_id, indexing_value, data):
        self.calls += 1
        raise LedgerUnavailable("connection refused")

    def lookup(self, full_attestation_id):
        raise LedgerUnavailable("connection refused")


class TestReadinessGate:
    @pytest.mark.parametrize("chain", [None, "0x1"])
    def test_registration_refused_without_external_call(self, draft, ledger, settings, chain):
        readiness = ChainReadiness(StaticWallet(chain) if chain else None, Network.SEPOLIA)
        readiness.check()
        with pytest.raises(NetworkNotReady):
            register_record(draft, readiness, ledger, settings)
        assert ledger.calls == []

    def test_issue_refused_before_transaction_lookup(self, form, transactions, ledger, settings):
        readiness = ChainReadiness(StaticWallet("0x1"), Network.SEPOLIA)
        readiness.check()
        with pytest.raises(NetworkNotReady):
            issue_invoice(form, readiness, transactions, ledger, settings)
        assert transactions.calls == 0
        assert ledger.calls == []


class TestRegisterRecord:
    def test_completes_record(self, draft, ready, ledger, settings):
        record = register_record(draft, ready, ledger, settings)
        assert record.attestation_id == "42"
        assert record.full_attestation_id == "onchain_evm_11155111_42"
        assert draft.attestation_id is None

    def test_registers_wire_fields_under_schema(self, draft, ready, ledger, settings):
        register_record(draft, ready, ledger, settings)
        registration = ledger.registrations["onchain_evm_11155111_42"]
        assert registration.schema_id == "0x268"
        assert registration.data["amount"] == "1000000000000000000"
        assert registration.data["businessName"] == "Acme"

    def test_ledger_failure_leaves_draft_untouched(self, draft, ready, settings):
        ledger = DownLedger()
        with pytest.raises(LedgerUnavailable):
            register_record(draft, ready, ledger, settings)
        assert ledger.calls == 1
        assert draft.attestation_id is None


class TestIssueInvoice:
    def test_full_flow(self, form, ready, transactions, ledger, settings):
        record = issue_invoice(form, ready, transactions, ledger, settings)
        assert record.business_name == "Acme"
        assert record.customer == CUSTOMER
        assert record.amount == 10**18
        assert record.quantity == 5
        assert record.invoice_date == 1714521600
        assert record.network is Network.SEPOLIA
        assert record.full_attestation_id == "onchain_evm_11155111_42"

    def test_short_hash_is_padded(self, form, ready, ledger, settings):
        from invoice_attest.transactions import StaticTransactionSource

        source = StaticTransactionSource()
        source.add("0xabc", Network.SEPOLIA, TransactionDetails(amount=1, from_address=CUSTOMER))
        short_form = form.model_copy(update={"transaction_hash": "0x0abc"})
        record = issue_invoice(short_form, ready, source, ledger, settings)
        assert record.transaction_hash == "0x" + "0" * 61 + "abc"

    def test_invalid_form_stops_before_external_calls(self, form, ready, transactions, ledger, settings):
        bad = form.model_copy(update={"business_name": "", "quantity": "1.5"})
        with pytest.raises(InputValidationError) as exc:
            issue_invoice(bad, ready, transactions, ledger, settings)
        codes = {e.code for e in exc.value.errors}
        assert codes == {"MISSING_BUSINESS_NAME", "INVALID_QUANTITY"}
        assert transactions.calls == 0
        assert ledger.calls == []

    def test_unknown_transaction(self, form, ready, ledger, settings):
        from invoice_attest.transactions import StaticTransactionSource

        with pytest.raises(TransactionNotFound):
            issue_invoice(form, ready, StaticTransactionSource(), ledger, settings)
        assert ledger.calls == []


def test_build_draft(form):
    draft = build_draft(form, TransactionDetails(amount=2**80, from_address=CUSTOMER))
    assert draft.amount == 2**80
    assert not draft.is_complete
