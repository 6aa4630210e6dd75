"""
Invoice form validation.

Checks the raw fields a user submits before anything is sent to the chain
or the ledger. The main entrypoints are:
- `validate_form`, returning a result with every problem found
- `ensure_valid_form`, raising `InputValidationError` if there is any
"""

from __future__ import annotations

import re
from datetime import date, datetime
from typing import List, Optional

from .errors import InputValidationError
from .schema import (
    InvoiceForm,
    InvoiceValidationError,
    InvoiceValidationResult,
    Network,
    normalize_transaction_hash,
)

MAX_TEXT_LENGTH = 256
_DIGITS = re.compile(r"^[0-9]+$")


def parse_form_date(value) -> Optional[date]:
    """
    Best-effort parser for date-like values.
    Accepts either already-parsed date objects or common string formats.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        return None

    for fmt in ("%Y-%m-%d", "%d-%m-%Y", "%d/%m/%Y", "%Y/%m/%d", "%m/%d/%Y"):
        try:
            return datetime.strptime(value.strip(), fmt).date()
        except ValueError:
            continue
    return None


def _blank(value: Optional[str]) -> bool:
    return value is None or not str(value).strip()


def _check_text(errors: List[InvoiceValidationError], value: Optional[str], field: str, label: str) -> None:
    if _blank(value):
        errors.append(
            InvoiceValidationError(
                code=f"MISSING_{field.upper()}",
                field=field,
                message=f"{label} must not be empty.",
            )
        )
    elif len(value.strip()) > MAX_TEXT_LENGTH:
        errors.append(
            InvoiceValidationError(
                code="FIELD_TOO_LONG",
                field=field,
                message=f"{label} must be at most {MAX_TEXT_LENGTH} characters.",
            )
        )


def validate_form(form: InvoiceForm) -> InvoiceValidationResult:
    """
    Validate submitted invoice fields.

    Parameters
    ----------
    form:
        Raw form input.

    Returns
    -------
    InvoiceValidationResult
        Result indicating validity and list of errors.
    """
    errors: List[InvoiceValidationError] = []

    _check_text(errors, form.business_name, "business_name", "Business name")
    _check_text(errors, form.product_name, "product_name", "Product name")
    _check_text(errors, form.category, "category", "Category")

    if _blank(form.transaction_hash):
        errors.append(
            InvoiceValidationError(
                code="MISSING_TRANSACTION_HASH",
                field="transaction_hash",
                message="Transaction hash must not be empty.",
            )
        )
    else:
        try:
            normalize_transaction_hash(form.transaction_hash)
        except ValueError as e:
            errors.append(
                InvoiceValidationError(
                    code="INVALID_TRANSACTION_HASH",
                    field="transaction_hash",
                    message=f"Transaction hash is invalid: {e}.",
                )
            )

    if _blank(form.invoice_date):
        errors.append(
            InvoiceValidationError(
                code="MISSING_INVOICE_DATE",
                field="invoice_date",
                message="Invoice date must not be empty.",
            )
        )
    else:
        parsed = parse_form_date(form.invoice_date)
        if parsed is None or parsed < date(1970, 1, 1):
            errors.append(
                InvoiceValidationError(
                    code="INVALID_INVOICE_DATE",
                    field="invoice_date",
                    message="Invoice date could not be parsed or is before 1970-01-01.",
                )
            )

    if _blank(form.quantity) or not _DIGITS.match(str(form.quantity).strip()):
        errors.append(
            InvoiceValidationError(
                code="INVALID_QUANTITY",
                field="quantity",
                message="Quantity must be a non-negative whole number.",
            )
        )

    if _blank(form.network):
        errors.append(
            InvoiceValidationError(
                code="MISSING_NETWORK",
                field="network",
                message="A network must be selected.",
            )
        )
    elif form.network.strip() not in {n.value for n in Network}:
        errors.append(
            InvoiceValidationError(
                code="UNSUPPORTED_NETWORK",
                field="network",
                message=f"Network '{form.network}' is not supported.",
            )
        )

    return InvoiceValidationResult(is_valid=len(errors) == 0, errors=errors)


def ensure_valid_form(form: InvoiceForm) -> None:
    result = validate_form(form)
    if not result.is_valid:
        raise InputValidationError(result.errors)
