"""Money / line-item calculation engine.

Totals are plain float arithmetic kept at full precision; rounding to two
decimals happens only in :func:`format_amount`, at presentation time.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Protocol


class Billable(Protocol):
    hours: float
    rate: float


@dataclass(frozen=True)
class Totals:
    sub_total: float
    tax_amount: float
    grand_total: float


def line_amount(item: Billable) -> float:
    return item.hours * item.rate


def calculate_totals(services: Iterable[Billable], tax_rate: float) -> Totals:
    """Derive subtotal, tax and grand total. Inputs are not clamped."""
    sub_total = sum((line_amount(s) for s in services), 0.0)
    tax_amount = sub_total * (tax_rate / 100)
    return Totals(
        sub_total=sub_total,
        tax_amount=tax_amount,
        grand_total=sub_total + tax_amount,
    )


def format_amount(value: float) -> str:
    return f"{value:,.2f}"


def format_rate(tax_rate: float) -> str:
    """Tax rate as shown inline, e.g. ``10`` or ``12.5``."""
    return f"{tax_rate:g}"
