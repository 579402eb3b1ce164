"""Pydantic wire models for the invoice store API.

The store speaks camelCase JSON; Python code uses snake_case attributes.
"""

from __future__ import annotations

import datetime
from typing import Generic, Optional, TypeVar, Union

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from invoice_manager.models import Draft, Invoice, LineItem

T = TypeVar("T")


class WireModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self, **kwargs) -> dict:
        return self.model_dump(mode="json", by_alias=True, **kwargs)


class LineItemPayload(WireModel):
    id: str
    description: str = ""
    hours: float
    rate: float

    @classmethod
    def from_line_item(cls, item: LineItem) -> LineItemPayload:
        return cls(id=item.id, description=item.description, hours=item.hours, rate=item.rate)

    def to_line_item(self) -> LineItem:
        return LineItem(id=self.id, description=self.description, hours=self.hours, rate=self.rate)


class InvoicePayload(WireModel):
    id: Optional[str] = None
    invoice_number: str
    date: datetime.date
    employee_name: str
    employee_id: str
    employee_email: str
    employee_address: str
    employee_mobile: str
    tax_rate: float
    services: list[LineItemPayload] = []

    @classmethod
    def from_invoice(cls, invoice: Union[Invoice, Draft], include_id: bool = True) -> InvoicePayload:
        return cls(
            id=invoice.id if include_id else None,
            invoice_number=invoice.invoice_number,
            date=invoice.date,
            employee_name=invoice.employee_name,
            employee_id=invoice.employee_id,
            employee_email=invoice.employee_email,
            employee_address=invoice.employee_address,
            employee_mobile=invoice.employee_mobile,
            tax_rate=invoice.tax_rate,
            services=[LineItemPayload.from_line_item(s) for s in invoice.services],
        )

    def to_invoice(self) -> Invoice:
        if not self.id:
            raise ValueError("Stored invoice has no id")
        return Invoice(
            id=self.id,
            invoice_number=self.invoice_number,
            date=self.date,
            employee_name=self.employee_name,
            employee_id=self.employee_id,
            employee_email=self.employee_email,
            employee_address=self.employee_address,
            employee_mobile=self.employee_mobile,
            tax_rate=self.tax_rate,
            services=tuple(s.to_line_item() for s in self.services),
        )


class CustomEmailRequest(WireModel):
    to: str
    subject: str
    body: str
    send_invoice_attachment: bool = False


class Envelope(BaseModel, Generic[T]):
    """Uniform ``{success, message, data?, error?}`` response wrapper."""
    success: bool
    message: str = ""
    data: Optional[T] = None
    error: Optional[str] = None
