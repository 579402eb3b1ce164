"""Pre-submit validation engine.

All violations are collected before raising, so the caller can report every
offending field at once. No network call is ever made from here.
"""

from __future__ import annotations

import datetime
import math
from typing import TYPE_CHECKING, Union

from invoice_manager.errors import FieldError, InvoiceValidationError

if TYPE_CHECKING:
    from invoice_manager.models import Draft, Invoice

REQUIRED_FIELDS = (
    "invoice_number",
    "employee_name",
    "employee_id",
    "employee_email",
    "employee_address",
    "employee_mobile",
)


def _is_number(val: object) -> bool:
    return isinstance(val, (int, float)) and not isinstance(val, bool) and math.isfinite(val)


def collect_errors(invoice: Union[Draft, Invoice]) -> list[FieldError]:
    from invoice_manager.models import LineItem  # deferred; models imports the engine package

    errors: list[FieldError] = []

    # --- Required strings ---
    for name in REQUIRED_FIELDS:
        value = getattr(invoice, name, None)
        if not isinstance(value, str) or not value.strip():
            errors.append(FieldError(name, "is required"))

    invoice_date = getattr(invoice, "date", None)
    if invoice_date is None:
        errors.append(FieldError("date", "is required"))
    elif not isinstance(invoice_date, datetime.date):
        errors.append(FieldError("date", f"must be a date, got {invoice_date!r}"))

    # --- Tax rate bounds ---
    tax_rate = getattr(invoice, "tax_rate", None)
    if not _is_number(tax_rate):
        errors.append(FieldError("tax_rate", f"must be a number, got {tax_rate!r}"))
    elif not 0 <= tax_rate <= 100:
        errors.append(FieldError("tax_rate", f"must be between 0 and 100, got {tax_rate}"))

    # --- Services ---
    services = list(getattr(invoice, "services", None) or [])
    if not services:
        errors.append(FieldError("services", "at least one service line is required"))

    seen: set[str] = set()
    for i, item in enumerate(services):
        prefix = f"services[{i}]"
        if not isinstance(item, LineItem):
            errors.append(FieldError(prefix, f"must be a line item, got {type(item).__name__}"))
            continue
        if item.id in seen:
            errors.append(FieldError(f"{prefix}.id", f"duplicate service id {item.id}"))
        seen.add(item.id)

        if not isinstance(item.description, str) or not item.description.strip():
            errors.append(FieldError(f"{prefix}.description", "is required"))
        for attr in ("hours", "rate"):
            val = getattr(item, attr)
            if not _is_number(val) or val < 0:
                errors.append(FieldError(f"{prefix}.{attr}", f"must be a non-negative number, got {val!r}"))

    return errors


def validate_draft(draft: Draft) -> Draft:
    """Return ``draft`` unchanged if it may be saved, else raise."""
    errors = collect_errors(draft)
    if errors:
        raise InvoiceValidationError(errors)
    return draft


def validate_invoice(invoice: Invoice) -> Invoice:
    errors = collect_errors(invoice)
    if errors:
        raise InvoiceValidationError(errors)
    return invoice
