"""
Tests for the canonical text codec.
"""

import json

import pytest

from invoice_attest.codec import (
    REQUIRED_FIELDS,
    decode,
    decode_payload,
    encode,
    encode_fields,
    format_decimal,
    parse_decimal,
)
from invoice_attest.errors import (
    EmbedFailure,
    ExtractError,
    IdentifierMismatch,
    InvalidNumericField,
    MalformedPayload,
    MissingField,
)


def _payload(record, **changes):
    data = json.loads(encode(record))
    for key, value in changes.items():
        if value is KeyError:
            data.pop(key)
        else:
            data[key] = value
    return json.dumps(data)


class TestRoundTrip:
    def test_round_trip(self, record):
        assert decode(encode(record)) == record

    def test_round_trip_beyond_53_bits(self, record):
        big = record.model_copy(
            update={"amount": 2**200 + 12345, "quantity": 2**64 + 1, "invoice_date": 2**53 + 1}
        )
        decoded = decode(encode(big))
        assert decoded == big
        assert decoded.amount == 2**200 + 12345
        assert decoded.quantity == 2**64 + 1
        assert decoded.invoice_date == 2**53 + 1

    def test_round_trip_non_ascii_text(self, record):
        fancy = record.model_copy(update={"business_name": "Café Ünïcode (GmbH) \\ \"quoted\""})
        text = encode(fancy)
        text.encode("ascii")
        assert decode(text) == fancy


class TestEncoding:
    def test_big_integers_are_digit_strings(self, record):
        data = json.loads(encode(record))
        assert data["amount"] == "1000000000000000000"
        assert data["quantity"] == "5"
        assert data["invoiceDate"] == "1714521600"

    def test_contains_all_required_fields_and_timestamp(self, record):
        data = json.loads(encode(record, captured_at="2024-05-01T00:00:00.000Z"))
        assert set(REQUIRED_FIELDS) <= set(data)
        assert data["fullAttestationId"] == "onchain_evm_11155111_42"
        assert data["timestamp"] == "2024-05-01T00:00:00.000Z"

    def test_timestamp_is_provenance_only(self, record):
        first = decode_payload(encode(record, captured_at="2024-05-01T00:00:00.000Z"))
        second = decode_payload(encode(record, captured_at="2030-01-01T00:00:00.000Z"))
        assert first.record == second.record
        assert first.captured_at == "2024-05-01T00:00:00.000Z"

    def test_incomplete_record_cannot_be_encoded(self, draft):
        with pytest.raises(EmbedFailure):
            encode(draft)

    def test_encode_fields_has_no_identifiers(self, draft):
        fields = encode_fields(draft)
        assert "attestationId" not in fields
        assert fields["amount"] == "1000000000000000000"


class TestDecodeFailures:
    @pytest.mark.parametrize("text", ["", "not json", "{", "[1, 2]", "\"text\"", "null"])
    def test_malformed(self, text):
        with pytest.raises(MalformedPayload):
            decode(text)

    @pytest.mark.parametrize("field", REQUIRED_FIELDS)
    def test_each_missing_field_is_named(self, record, field):
        with pytest.raises(MissingField) as exc:
            decode(_payload(record, **{field: KeyError}))
        assert exc.value.field == field

    def test_null_counts_as_missing(self, record):
        with pytest.raises(MissingField) as exc:
            decode(_payload(record, attestationId=None))
        assert exc.value.field == "attestationId"

    @pytest.mark.parametrize("value", ["12a", "-5", "1.5", "", " 5", "1e18", "٣", 5, 1e18])
    def test_invalid_numeric(self, record, value):
        with pytest.raises(InvalidNumericField) as exc:
            decode(_payload(record, amount=value))
        assert exc.value.field == "amount"

    def test_identifier_mismatch(self, record):
        with pytest.raises(IdentifierMismatch):
            decode(_payload(record, fullAttestationId="onchain_evm_11155111_43"))

    def test_identifier_mismatch_on_changed_attestation_id(self, record):
        with pytest.raises(IdentifierMismatch):
            decode(_payload(record, attestationId="43"))

    def test_unknown_network_is_malformed(self, record):
        with pytest.raises(MalformedPayload):
            decode(_payload(record, network="mainnet"))

    def test_non_string_text_field_is_malformed(self, record):
        with pytest.raises(MalformedPayload):
            decode(_payload(record, businessName=123))

    def test_unknown_fields_are_ignored(self, record):
        assert decode(_payload(record, txHash="0xdeadbeef", extra={"nested": [1, 2]})) == record

    def test_all_failures_are_extract_errors(self):
        with pytest.raises(ExtractError):
            decode("{}")


def test_decimal_helpers():
    assert format_decimal(2**100) == str(2**100)
    assert parse_decimal("amount", str(2**100)) == 2**100
    with pytest.raises(ValueError):
        format_decimal(-1)
    with pytest.raises(TypeError):
        format_decimal(1.0)
