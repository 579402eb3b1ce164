"""Pydantic response models for the reference store API."""

from __future__ import annotations

from typing import Any, Optional

from invoice_manager.models import Invoice
from invoice_manager.schemas import Envelope, InvoicePayload


class StoredInvoice(InvoicePayload):
    """Invoice as served by the store, with derived totals for display."""
    sub_total: float
    tax_amount: float
    grand_total: float

    @classmethod
    def from_domain(cls, invoice: Invoice) -> StoredInvoice:
        payload = InvoicePayload.from_invoice(invoice)
        totals = invoice.totals
        return cls(
            **payload.model_dump(),
            sub_total=totals.sub_total,
            tax_amount=totals.tax_amount,
            grand_total=totals.grand_total,
        )


def envelope(
    success: bool,
    message: str = "",
    data: Any = None,
    error: Optional[str] = None,
) -> dict:
    return Envelope[Any](success=success, message=message, data=data, error=error).model_dump(mode="json")


def invoice_data(invoice: Invoice) -> dict:
    return StoredInvoice.from_domain(invoice).to_wire()
