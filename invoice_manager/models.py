"""Canonical data model: line items, persisted invoices and editable drafts."""

from __future__ import annotations

import math
from dataclasses import dataclass, field, fields, replace
from datetime import date
from typing import Optional

from invoice_manager.engine.calculator import Totals, calculate_totals, line_amount
from invoice_manager.engine.identifiers import IdentifierFactory, default_factory

EMPLOYEE_FIELDS = (
    "employee_name",
    "employee_id",
    "employee_email",
    "employee_address",
    "employee_mobile",
)

DEFAULT_TAX_RATE = 10.0


def _check_non_negative(name: str, val: object) -> None:
    if isinstance(val, bool) or not isinstance(val, (int, float)):
        raise ValueError(f"Line item '{name}' must be a number, got {val!r}")
    if not math.isfinite(val) or val < 0:
        raise ValueError(f"Line item '{name}' must be a non-negative number, got {val}")


@dataclass(frozen=True)
class LineItem:
    """One billable entry. ``amount`` is derived, never stored."""
    id: str
    description: str = ""
    hours: float = 1.0
    rate: float = 0.0

    def __post_init__(self) -> None:
        _check_non_negative("hours", self.hours)
        _check_non_negative("rate", self.rate)

    @property
    def amount(self) -> float:
        return line_amount(self)


@dataclass(frozen=True)
class Invoice:
    """A persisted invoice. ``id`` is the store-issued key."""
    id: str
    invoice_number: str
    date: date
    employee_name: str
    employee_id: str
    employee_email: str
    employee_address: str
    employee_mobile: str
    tax_rate: float
    services: tuple[LineItem, ...] = ()

    def __post_init__(self) -> None:
        if not isinstance(self.services, tuple):
            object.__setattr__(self, "services", tuple(self.services))

    @property
    def totals(self) -> Totals:
        return calculate_totals(self.services, self.tax_rate)

    @property
    def sub_total(self) -> float:
        return self.totals.sub_total

    @property
    def tax_amount(self) -> float:
        return self.totals.tax_amount

    @property
    def grand_total(self) -> float:
        return self.totals.grand_total

    def business_fields(self) -> dict:
        """Every field except the store identifier."""
        return {f.name: getattr(self, f.name) for f in fields(self) if f.name != "id"}


def _today() -> date:
    return date.today()


@dataclass
class Draft:
    """An invoice being composed or edited client-side.

    ``id`` is provisional and never sent to the store as a key. ``source_id``
    is the store identifier of the invoice being edited, ``None`` for a new one.
    """
    id: str
    invoice_number: str
    date: date = field(default_factory=_today)
    employee_name: str = ""
    employee_id: str = ""
    employee_email: str = ""
    employee_address: str = ""
    employee_mobile: str = ""
    tax_rate: float = DEFAULT_TAX_RATE
    services: list[LineItem] = field(default_factory=list)
    source_id: Optional[str] = None
    _factory: IdentifierFactory = field(default=default_factory, repr=False, compare=False)

    @classmethod
    def new(cls, factory: IdentifierFactory = default_factory) -> Draft:
        """Empty draft with one blank service line."""
        return cls(
            id=factory.invoice_id(),
            invoice_number=factory.invoice_number(),
            services=[LineItem(id=factory.line_item_id())],
            _factory=factory,
        )

    @classmethod
    def from_invoice(cls, invoice: Invoice, factory: IdentifierFactory = default_factory) -> Draft:
        """Reopen a persisted invoice for editing, bound to its store id."""
        return cls(
            id=invoice.id,
            invoice_number=invoice.invoice_number,
            date=invoice.date,
            employee_name=invoice.employee_name,
            employee_id=invoice.employee_id,
            employee_email=invoice.employee_email,
            employee_address=invoice.employee_address,
            employee_mobile=invoice.employee_mobile,
            tax_rate=invoice.tax_rate,
            services=list(invoice.services),
            source_id=invoice.id,
            _factory=factory,
        )

    @property
    def is_editing(self) -> bool:
        return self.source_id is not None

    @property
    def totals(self) -> Totals:
        return calculate_totals(self.services, self.tax_rate)

    @property
    def sub_total(self) -> float:
        return self.totals.sub_total

    @property
    def tax_amount(self) -> float:
        return self.totals.tax_amount

    @property
    def grand_total(self) -> float:
        return self.totals.grand_total

    def set_field(self, name: str, value) -> None:
        if name == "invoice_number":
            raise ValueError("invoice_number is immutable once generated")
        if name == "employee_id" and self.is_editing and value != self.employee_id:
            raise ValueError("employee_id cannot change on an existing invoice")
        if name == "tax_rate":
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise ValueError(f"tax_rate must be a number, got {value!r}")
            value = float(value)
        elif name == "date":
            if not isinstance(value, date):
                value = date.fromisoformat(str(value))
        elif name in EMPLOYEE_FIELDS:
            value = str(value)
        else:
            raise ValueError(f"Unknown or read-only draft field: {name}")
        setattr(self, name, value)

    def add_service(self, description: str = "", hours: float = 1.0, rate: float = 0.0) -> LineItem:
        item = LineItem(id=self._factory.line_item_id(), description=description, hours=hours, rate=rate)
        self.services.append(item)
        return item

    def update_service(self, item_id: str, **changes) -> LineItem:
        for i, item in enumerate(self.services):
            if item.id == item_id:
                updated = replace(item, **changes)
                self.services[i] = updated
                return updated
        raise KeyError(f"No service line with id {item_id}")

    def remove_service(self, item_id: str) -> None:
        self.services = [s for s in self.services if s.id != item_id]

    def to_invoice(self, invoice_id: str | None = None) -> Invoice:
        """Snapshot the draft as an :class:`Invoice` value, e.g. for rendering."""
        return Invoice(
            id=invoice_id or self.source_id or self.id,
            invoice_number=self.invoice_number,
            date=self.date,
            employee_name=self.employee_name,
            employee_id=self.employee_id,
            employee_email=self.employee_email,
            employee_address=self.employee_address,
            employee_mobile=self.employee_mobile,
            tax_rate=self.tax_rate,
            services=tuple(self.services),
        )
