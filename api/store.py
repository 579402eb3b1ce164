"""In-memory invoice repository backing the reference store API."""

from __future__ import annotations

import uuid

from invoice_manager.engine.validator import validate_invoice
from invoice_manager.models import Invoice
from invoice_manager.schemas import InvoicePayload


class InvoiceNotFound(Exception):
    def __init__(self, invoice_id: str):
        self.invoice_id = invoice_id
        super().__init__(f"Invoice not found with id: {invoice_id}")


class DuplicateInvoice(Exception):
    def __init__(self, invoice_number: str):
        self.invoice_number = invoice_number
        super().__init__("duplicate invoice")


def _normalize(payload: InvoicePayload, invoice_id: str) -> Invoice:
    """Strip surrounding whitespace and bind the store id."""
    data = payload.model_dump()
    for key, value in data.items():
        if isinstance(value, str):
            data[key] = value.strip()
    for service in data["services"]:
        service["description"] = service["description"].strip()
    data["id"] = invoice_id
    return InvoicePayload.model_validate(data).to_invoice()


class InvoiceRepository:
    """Insertion-ordered store keyed by a server-issued uuid4."""

    def __init__(self) -> None:
        self._invoices: dict[str, Invoice] = {}

    def _check_unique_number(self, invoice: Invoice) -> None:
        for existing in self._invoices.values():
            if existing.id != invoice.id and existing.invoice_number == invoice.invoice_number:
                raise DuplicateInvoice(invoice.invoice_number)

    def create(self, payload: InvoicePayload) -> Invoice:
        # The client-proposed id is ignored.
        invoice = validate_invoice(_normalize(payload, str(uuid.uuid4())))
        self._check_unique_number(invoice)
        self._invoices[invoice.id] = invoice
        return invoice

    def update(self, invoice_id: str, payload: InvoicePayload) -> Invoice:
        if invoice_id not in self._invoices:
            raise InvoiceNotFound(invoice_id)
        invoice = validate_invoice(_normalize(payload, invoice_id))
        self._check_unique_number(invoice)
        self._invoices[invoice_id] = invoice
        return invoice

    def get(self, invoice_id: str) -> Invoice:
        try:
            return self._invoices[invoice_id]
        except KeyError:
            raise InvoiceNotFound(invoice_id) from None

    def delete(self, invoice_id: str) -> None:
        if self._invoices.pop(invoice_id, None) is None:
            raise InvoiceNotFound(invoice_id)

    def list_all(self) -> list[Invoice]:
        return list(self._invoices.values())

    def list_by_employee(self, employee_id: str) -> list[Invoice]:
        return [inv for inv in self._invoices.values() if inv.employee_id == employee_id]
