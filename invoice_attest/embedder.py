"""
Render an attestation record into a self-verifying PDF invoice.

The page carries a human-readable rendering of the record. The PDF
``Subject`` info field carries the canonical encoding, which is the only
part ever read back by the extractor. Title, author and the other
descriptive info fields are informational.
"""

from __future__ import annotations

import io
import logging
import re
from pathlib import Path
from typing import List, Optional, Tuple, Union

from reportlab.lib.pagesizes import letter
from reportlab.pdfgen import canvas

from .codec import encode
from .config import MAX_SUBJECT_BYTES, Settings, get_settings
from .errors import EmbedFailure
from .schema import AttestationRecord, epoch_seconds_to_date, format_units

FONT = "Helvetica"
BOLD_FONT = "Helvetica-Bold"
FONT_SIZE = 10
SMALL_FONT_SIZE = 8
LINE_HEIGHT = 20
LABEL_X = 50
VALUE_X = 200
TOP_MARGIN = 50

# Long hex identifiers are drawn smaller so they fit the page width.
_SMALL_VALUE_LABELS = {"Transaction Hash", "Full Attestation ID"}


def _detail_rows(record: AttestationRecord) -> List[Tuple[str, str]]:
    return [
        ("Business Name", record.business_name),
        ("Invoice Date", epoch_seconds_to_date(record.invoice_date).isoformat()),
        ("Customer Address", record.customer),
        ("Product Name", record.product_name),
        ("Category", record.category),
        ("Quantity", str(record.quantity)),
        ("Amount", f"{format_units(record.amount)} ETH"),
        ("Transaction Hash", record.transaction_hash),
        ("Network", record.network.value),
        ("Attestation ID", record.attestation_id or ""),
        ("Full Attestation ID", record.full_attestation_id or ""),
    ]


def subject_size(payload: str) -> int:
    """
    Bytes the payload occupies as a PDF literal string, where each
    parenthesis and backslash is written with an escaping backslash.
    """
    raw = payload.encode("utf-8")
    return len(raw) + sum(raw.count(c) for c in (b"(", b")", b"\\"))


def document_filename(record: AttestationRecord) -> str:
    # attestation ids come from the ledger or from uploaded payloads; keep them path-safe.
    safe_id = re.sub(r"[^A-Za-z0-9_.-]", "_", record.attestation_id or "draft")
    return f"invoice_{safe_id}.pdf"


def embed(record: AttestationRecord, settings: Optional[Settings] = None) -> bytes:
    """
    Produce PDF bytes for a complete record.

    Raises ``EmbedFailure`` if the record has not been registered yet or if
    its encoding does not fit in a PDF string object.
    """
    if not record.is_complete:
        raise EmbedFailure("Cannot embed a record without an attestationId")

    settings = settings or get_settings()
    payload = encode(record)
    size = subject_size(payload)
    if size > MAX_SUBJECT_BYTES:
        raise EmbedFailure(
            f"Encoded record takes {size} bytes in the document; the metadata field holds at most {MAX_SUBJECT_BYTES}"
        )

    buffer = io.BytesIO()
    pdf = canvas.Canvas(buffer, pagesize=letter)
    _, height = letter
    current_y = height - TOP_MARGIN

    pdf.setFont(BOLD_FONT, 24)
    pdf.drawString(LABEL_X, current_y, "Sales Purchase Invoice")
    current_y -= LINE_HEIGHT * 2

    for label, value in _detail_rows(record):
        pdf.setFont(BOLD_FONT, FONT_SIZE)
        pdf.drawString(LABEL_X, current_y, f"{label}:")
        pdf.setFont(FONT, SMALL_FONT_SIZE if label in _SMALL_VALUE_LABELS else FONT_SIZE)
        pdf.drawString(VALUE_X, current_y, value)
        current_y -= LINE_HEIGHT

    pdf.setSubject(payload)
    pdf.setTitle(settings.document_title)
    pdf.setAuthor(settings.document_author)
    pdf.setCreator(settings.document_creator)
    pdf.setProducer(settings.document_producer)
    pdf.setKeywords(", ".join(settings.document_keywords))

    pdf.showPage()
    pdf.save()

    logging.info(f"Embedded attestation {record.full_attestation_id} ({len(payload)} byte payload)")
    return buffer.getvalue()


def write_document(
    record: AttestationRecord,
    path: Union[str, Path],
    settings: Optional[Settings] = None,
) -> Path:
    output_path = Path(path)
    if output_path.parent and not output_path.parent.exists():
        output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_bytes(embed(record, settings))
    return output_path
