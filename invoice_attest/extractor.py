"""
Recover attestation records from arbitrary PDF documents using pdfplumber.

Features:
- Reads only the PDF ``Subject`` info field as the authoritative payload
- Maps every failure on untrusted input to an ``ExtractError`` subclass
- ``extract_result`` never raises, for callers that want a tagged result
- Layout-aware reconstruction of the visible text for previews (display only,
  never parsed back into a record)
"""

from __future__ import annotations

import io
import logging
from pathlib import Path
from typing import Dict, List, Union

import pdfplumber

from .codec import decode_payload
from .errors import ExtractError, NoEmbeddedPayload, UnreadableArtifact
from .schema import AttestationRecord, DecodedPayload, ExtractionResult

PAYLOAD_METADATA_KEY = "Subject"

Source = Union[bytes, bytearray, io.BytesIO]


def _as_buffer(source: Source) -> io.BytesIO:
    if isinstance(source, (bytes, bytearray)):
        return io.BytesIO(bytes(source))
    source.seek(0)
    return source


def read_payload_text(source: Source) -> str:
    """
    Return the raw text stored in the document's payload metadata field.
    """
    try:
        with pdfplumber.open(_as_buffer(source)) as pdf:
            value = pdf.metadata.get(PAYLOAD_METADATA_KEY)
    except Exception as e:
        # pdfminer raises a wide range of exception types on hostile input.
        raise UnreadableArtifact(f"Document could not be parsed as a PDF: {e}") from None

    if isinstance(value, bytes):
        # pdfminer returns bytes when the string is in neither PDFDocEncoding nor UTF-16.
        value = value.decode("utf-8", errors="replace")
    if not isinstance(value, str) or not value.strip():
        raise NoEmbeddedPayload("Document carries no embedded attestation payload")
    return value


def extract_payload(source: Source) -> DecodedPayload:
    return decode_payload(read_payload_text(source))


def extract(source: Source) -> AttestationRecord:
    """
    Decode the attestation record embedded in a PDF document.

    Raises an ``ExtractError`` subclass when the document is not a valid
    attestation document.
    """
    return extract_payload(source).record


def extract_result(source: Source) -> ExtractionResult:
    """
    Total version of ``extract``: always returns an ``ExtractionResult``.
    """
    try:
        record = extract(source)
    except ExtractError as e:
        logging.warning(f"Extraction rejected: {e.code}: {e.message}")
        return ExtractionResult(ok=False, error_code=e.code, message=e.message)
    return ExtractionResult(ok=True, record=record, full_attestation_id=record.full_attestation_id)


def extract_from_path(pdf_path: Union[str, Path]) -> AttestationRecord:
    return extract(Path(pdf_path).read_bytes())


# ---------------- Visible text (display only) ----------------


def _group_words_to_lines(words: List[dict], y_tolerance: int = 3) -> List[str]:
    """
    Given words from pdfplumber page.extract_words(), group by approximate y coordinate to form lines.
    Sort words in each line by x0 to preserve left-to-right order.
    """
    buckets: Dict[int, List[dict]] = {}
    for w in words:
        y_center = int(round((w.get("top", 0) + w.get("bottom", 0)) / 2))
        found_key = None
        for key in buckets:
            if abs(key - y_center) <= y_tolerance:
                found_key = key
                break
        if found_key is None:
            buckets[y_center] = [w]
        else:
            buckets[found_key].append(w)

    lines = []
    for y in sorted(buckets.keys()):
        line_words = sorted(buckets[y], key=lambda item: item.get("x0", 0))
        line_text = " ".join(w.get("text", "") for w in line_words).strip()
        if line_text:
            lines.append(line_text)
    return lines


def extract_visible_text(source: Source) -> str:
    """
    Rebuild the human-readable text of the document, line by line.
    """
    try:
        with pdfplumber.open(_as_buffer(source)) as pdf:
            page_texts = []
            for page in pdf.pages:
                words = page.extract_words()
                if words:
                    page_texts.append("\n".join(_group_words_to_lines(words)))
                else:
                    page_texts.append(page.extract_text() or "")
            return "\n\n".join(page_texts)
    except Exception as e:
        raise UnreadableArtifact(f"Document text could not be read: {e}") from None
