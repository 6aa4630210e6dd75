"""
Tests for the record model and its field helpers.
"""

from datetime import date

import pytest
from pydantic import ValidationError

from invoice_attest.codec import decode, encode
from invoice_attest.schema import (
    AttestationRecord,
    date_to_epoch_seconds,
    epoch_seconds_to_date,
    format_units,
    normalize_transaction_hash,
)

PADDED_ABC = "0x" + "0" * 61 + "abc"


class TestTransactionHashPadding:
    @pytest.mark.parametrize("value", ["0xabc", "abc", "0x0abc", "0X000ABC", "  0xabc  "])
    def test_leading_zero_presentation_does_not_matter(self, value):
        assert normalize_transaction_hash(value) == PADDED_ABC

    def test_full_length_hash_is_kept(self):
        full = "0x" + "ab" * 32
        assert normalize_transaction_hash(full) == full

    def test_excess_leading_zeros_are_insignificant(self):
        assert normalize_transaction_hash("0x0000" + "ab" * 32) == "0x" + "ab" * 32

    def test_too_long_is_rejected_not_truncated(self):
        with pytest.raises(ValueError):
            normalize_transaction_hash("0x1" + "ab" * 32)

    @pytest.mark.parametrize("value", ["", "0x", "0xzz", "hello", 12])
    def test_non_hex_rejected(self, value):
        with pytest.raises(ValueError):
            normalize_transaction_hash(value)

    def test_bytes_are_left_padded(self):
        assert normalize_transaction_hash(b"\x0a\xbc") == PADDED_ABC

    def test_record_normalizes_hash(self, draft):
        short = AttestationRecord.model_validate({**draft.model_dump(), "transaction_hash": "0xabc"})
        assert short.transaction_hash == PADDED_ABC
        assert len(short.transaction_hash_bytes) == 32


class TestRecordConstraints:
    def _fields(self, draft, **overrides):
        data = draft.model_dump()
        data.update(overrides)
        return data

    def test_accepts_values_beyond_float_precision(self, draft):
        big = 2**200 + 1
        record = AttestationRecord.model_validate(self._fields(draft, amount=big, quantity=big))
        assert record.amount == big
        assert record.quantity == big

    @pytest.mark.parametrize("value", [1.0, 1e18, True, "5"])
    def test_rejects_non_integer_amounts(self, draft, value):
        with pytest.raises(ValidationError):
            AttestationRecord.model_validate(self._fields(draft, amount=value))

    def test_rejects_negative_values(self, draft):
        with pytest.raises(ValidationError):
            AttestationRecord.model_validate(self._fields(draft, quantity=-1))
        with pytest.raises(ValidationError):
            AttestationRecord.model_validate(self._fields(draft, invoice_date=-86400))

    def test_rejects_blank_text(self, draft):
        with pytest.raises(ValidationError):
            AttestationRecord.model_validate(self._fields(draft, business_name="   "))

    def test_rejects_unknown_network(self, draft):
        with pytest.raises(ValidationError):
            AttestationRecord.model_validate(self._fields(draft, network="mainnet"))

    def test_accepts_camel_case_keys(self, draft):
        data = draft.model_dump(by_alias=True)
        assert "businessName" in data
        assert AttestationRecord.model_validate(data) == draft


class TestIdentifiers:
    def test_draft_has_no_full_id(self, draft):
        assert draft.attestation_id is None
        assert draft.full_attestation_id is None
        assert not draft.is_complete

    def test_full_id_is_derived(self, record):
        assert record.full_attestation_id == "onchain_evm_11155111_42"
        assert record.is_complete

    def test_with_attestation_returns_new_record(self, draft):
        completed = draft.with_attestation("7")
        assert completed.full_attestation_id == "onchain_evm_11155111_7"
        assert draft.attestation_id is None

    def test_with_attestation_normalizes_id(self, draft):
        completed = draft.with_attestation(" 42")
        assert completed.attestation_id == "42"
        assert completed.full_attestation_id == "onchain_evm_11155111_42"
        assert decode(encode(completed)) == completed

    @pytest.mark.parametrize("value", ["", "   "])
    def test_with_attestation_rejects_blank_id(self, draft, value):
        with pytest.raises(ValidationError):
            draft.with_attestation(value)

    def test_records_are_immutable(self, record):
        with pytest.raises(ValidationError):
            record.attestation_id = "43"


def test_date_to_epoch_seconds():
    assert date_to_epoch_seconds(date(1970, 1, 1)) == 0
    assert date_to_epoch_seconds(date(2024, 5, 1)) == 1714521600
    assert epoch_seconds_to_date(1714521600) == date(2024, 5, 1)


@pytest.mark.parametrize(
    "wei, text",
    [
        (10**18, "1.0"),
        (1500000000000000000, "1.5"),
        (1, "0.000000000000000001"),
        (0, "0.0"),
        (123 * 10**18 + 4 * 10**14, "123.0004"),
    ],
)
def test_format_units(wei, text):
    assert format_units(wei) == text
