"""Excel register export.

Writes one row per invoice plus a line-item sheet. Excel formulas are NOT
relied upon; every total is computed in Python before it is written.
"""

from __future__ import annotations

from pathlib import Path
from typing import Iterable

import openpyxl
from openpyxl.styles import Alignment, Border, Font, Side
from openpyxl.utils import get_column_letter

from invoice_manager.models import Invoice

INVOICE_SHEET = "Invoices"
LINE_ITEM_SHEET = "Line Items"

INVOICE_COLUMNS = [
    ("Invoice #", 18),
    ("Date", 12),
    ("Employee", 24),
    ("Employee ID", 14),
    ("Email", 28),
    ("Tax Rate %", 11),
    ("Subtotal", 14),
    ("Tax", 14),
    ("Grand Total", 14),
]
LINE_ITEM_COLUMNS = [
    ("Invoice #", 18),
    ("Description", 40),
    ("Hours", 10),
    ("Rate", 12),
    ("Amount", 14),
]

# Formatting constants
THIN_BORDER = Border(
    left=Side(style='thin'),
    right=Side(style='thin'),
    top=Side(style='thin'),
    bottom=Side(style='thin'),
)

HEADER_FONT = Font(name='Calibri', size=11, bold=True)
DATA_FONT = Font(name='Calibri', size=11)
CENTER_ALIGN = Alignment(horizontal='center', vertical='center')
NUMBER_FORMAT = '#,##0.00'
DATE_FORMAT = 'yyyy-mm-dd'


def _write_header(ws, columns: list[tuple[str, int]]) -> None:
    for col, (label, width) in enumerate(columns, start=1):
        c = ws.cell(row=1, column=col)
        c.value = label
        c.font = HEADER_FONT
        c.alignment = CENTER_ALIGN
        c.border = THIN_BORDER
        ws.column_dimensions[get_column_letter(col)].width = width
    ws.freeze_panes = "A2"


def _write_row(ws, row: int, values: list, number_cols: set[int], font: Font = DATA_FONT) -> None:
    for col, value in enumerate(values, start=1):
        c = ws.cell(row=row, column=col)
        c.value = value
        c.font = font
        c.border = THIN_BORDER
        if col in number_cols:
            c.number_format = NUMBER_FORMAT


def generate_excel_register(invoices: Iterable[Invoice], output_path: str | Path) -> Path:
    """Write the invoice register workbook and return its path."""
    output_path = Path(output_path)
    invoices = list(invoices)

    wb = openpyxl.Workbook()
    ws = wb.active
    ws.title = INVOICE_SHEET
    _write_header(ws, INVOICE_COLUMNS)

    money_cols = {6, 7, 8, 9}
    row = 2
    for inv in invoices:
        totals = inv.totals
        _write_row(ws, row, [
            inv.invoice_number,
            inv.date,
            inv.employee_name,
            inv.employee_id,
            inv.employee_email,
            float(inv.tax_rate),
            totals.sub_total,
            totals.tax_amount,
            totals.grand_total,
        ], money_cols)
        ws.cell(row=row, column=2).number_format = DATE_FORMAT
        row += 1

    # --- Totals row ---
    _write_row(ws, row, [
        "Total",
        None,
        f"{len(invoices)} invoice(s)",
        None,
        None,
        None,
        sum((inv.sub_total for inv in invoices), 0.0),
        sum((inv.tax_amount for inv in invoices), 0.0),
        sum((inv.grand_total for inv in invoices), 0.0),
    ], money_cols, font=HEADER_FONT)

    # --- Line items ---
    items_ws = wb.create_sheet(LINE_ITEM_SHEET)
    _write_header(items_ws, LINE_ITEM_COLUMNS)
    row = 2
    for inv in invoices:
        for item in inv.services:
            _write_row(items_ws, row, [
                inv.invoice_number,
                item.description,
                float(item.hours),
                float(item.rate),
                item.amount,
            ], {3, 4, 5})
            row += 1

    output_path.parent.mkdir(parents=True, exist_ok=True)
    wb.save(str(output_path))
    return output_path
