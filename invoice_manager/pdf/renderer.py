"""Document renderer: invoice -> paginated, fixed-layout PDF.

Rendering is split in two steps. :func:`build_layout` is a pure function
that decides what goes on which page; :func:`render_invoice_pdf` draws that
layout with reportlab. The canvas runs in invariant mode so the same
invoice always yields the same bytes.
"""

from __future__ import annotations

import io
import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.pdfbase.pdfmetrics import stringWidth
from reportlab.pdfgen import canvas

from invoice_manager.engine.calculator import format_amount, format_rate
from invoice_manager.engine.validator import collect_errors
from invoice_manager.errors import RenderError
from invoice_manager.models import Draft, Invoice

logger = logging.getLogger(__name__)

# Page geometry (points)
PAGE_WIDTH, PAGE_HEIGHT = A4
MARGIN = 40
CONTENT_WIDTH = PAGE_WIDTH - 2 * MARGIN
ROW_HEIGHT = 22
BOTTOM_LIMIT = 60
FOOTER_Y = 28
FIRST_TABLE_TOP = PAGE_HEIGHT - 240
CONT_TABLE_TOP = PAGE_HEIGHT - 90
TOTALS_HEIGHT = 68

# Table columns
COLUMN_HEADERS = ("Description", "Hours", "Rate", "Amount")
NUMBER_COL_WIDTH = 80
COLUMN_WIDTHS = (CONTENT_WIDTH - 3 * NUMBER_COL_WIDTH, NUMBER_COL_WIDTH, NUMBER_COL_WIDTH, NUMBER_COL_WIDTH)
CELL_PADDING = 8

# Fonts and colours
FONT = "Helvetica"
BOLD_FONT = "Helvetica-Bold"
BODY_SIZE = 10
HEADER_FILL = colors.Color(22 / 255, 160 / 255, 133 / 255)
STRIPE_FILL = colors.Color(0.95, 0.95, 0.95)

FOOTER_TEXT = "Thank you for your business!"


@dataclass(frozen=True)
class TableRow:
    description: str
    hours: str
    rate: str
    amount: str

    def cells(self) -> tuple[str, str, str, str]:
        return (self.description, self.hours, self.rate, self.amount)


@dataclass(frozen=True)
class PageLayout:
    number: int
    is_first: bool
    table_top: float
    column_headers: tuple[str, ...]
    rows: tuple[TableRow, ...]
    show_totals: bool = False

    @property
    def last_row_y(self) -> float:
        return self.table_top - ROW_HEIGHT * len(self.rows)


@dataclass(frozen=True)
class DocumentLayout:
    title: str
    invoice_number: str
    date_line: str
    bill_to: tuple[str, ...]
    totals: tuple[tuple[str, str], ...]
    pages: tuple[PageLayout, ...]

    @property
    def page_count(self) -> int:
        return len(self.pages)


@dataclass(frozen=True)
class RenderResult:
    path: Optional[Path] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def truncate_text(text: str, max_width: float, font: str = FONT, size: int = BODY_SIZE) -> str:
    """Collapse whitespace and cut ``text`` to ``max_width`` with an ellipsis."""
    text = " ".join(str(text).split())
    if stringWidth(text, font, size) <= max_width:
        return text
    ellipsis = "..."
    while text and stringWidth(text + ellipsis, font, size) > max_width:
        text = text[:-1]
    return text.rstrip() + ellipsis


def invoice_filename(invoice_number: str) -> str:
    safe = re.sub(r'[\\/*?:"<>|\s]', "", invoice_number or "") or "invoice"
    return f"invoice-{safe}.pdf"


def _row_capacity(table_top: float) -> int:
    return int((table_top - BOTTOM_LIMIT) // ROW_HEIGHT)


def _coerce(invoice: Union[Invoice, Draft]) -> Invoice:
    if isinstance(invoice, Draft):
        invoice = invoice.to_invoice()
    if not isinstance(invoice, Invoice):
        raise RenderError(f"Cannot render {type(invoice).__name__}; expected an Invoice")
    errors = collect_errors(invoice)
    if errors:
        details = "; ".join(str(e) for e in errors)
        raise RenderError(f"Invoice {invoice.invoice_number or invoice.id!r} is malformed: {details}")
    return invoice


def build_layout(invoice: Union[Invoice, Draft]) -> DocumentLayout:
    """Decide the content of every page. Pure; the invoice is not modified."""
    invoice = _coerce(invoice)

    desc_width = COLUMN_WIDTHS[0] - 2 * CELL_PADDING
    rows = [
        TableRow(
            description=truncate_text(item.description, desc_width),
            hours=f"{item.hours:.2f}",
            rate=format_amount(item.rate),
            amount=format_amount(item.amount),
        )
        for item in invoice.services
    ]

    # Fill pages with rows; continuation pages repeat the column headers
    chunks: list[tuple[float, list[TableRow]]] = []
    table_top = FIRST_TABLE_TOP
    remaining = rows
    while True:
        capacity = _row_capacity(table_top)
        chunks.append((table_top, remaining[:capacity]))
        remaining = remaining[capacity:]
        if not remaining:
            break
        table_top = CONT_TABLE_TOP

    last_top, last_rows = chunks[-1]
    totals_on_new_page = last_top - ROW_HEIGHT * len(last_rows) - TOTALS_HEIGHT < BOTTOM_LIMIT
    if totals_on_new_page:
        chunks.append((CONT_TABLE_TOP, []))

    pages = tuple(
        PageLayout(
            number=i + 1,
            is_first=i == 0,
            table_top=top,
            column_headers=COLUMN_HEADERS,
            rows=tuple(chunk),
            show_totals=i == len(chunks) - 1,
        )
        for i, (top, chunk) in enumerate(chunks)
    )

    address = ", ".join(line.strip() for line in invoice.employee_address.splitlines() if line.strip())
    bill_to = tuple(
        truncate_text(line, CONTENT_WIDTH, FONT, 12)
        for line in (
            invoice.employee_name,
            f"Employee ID: {invoice.employee_id}",
            address,
            invoice.employee_email,
            invoice.employee_mobile,
        )
    )

    totals = invoice.totals
    return DocumentLayout(
        title="INVOICE",
        invoice_number=invoice.invoice_number,
        date_line=f"Date: {invoice.date.isoformat()}",
        bill_to=bill_to,
        totals=(
            ("Subtotal:", format_amount(totals.sub_total)),
            (f"Tax ({format_rate(invoice.tax_rate)}%):", format_amount(totals.tax_amount)),
            ("Grand Total:", format_amount(totals.grand_total)),
        ),
        pages=pages,
    )


def _draw_first_page_header(pdf: canvas.Canvas, layout: DocumentLayout) -> None:
    pdf.setFont(BOLD_FONT, 22)
    pdf.drawString(MARGIN, PAGE_HEIGHT - 50, layout.title)

    pdf.setFont(FONT, 12)
    pdf.drawString(MARGIN, PAGE_HEIGHT - 80, f"Invoice #: {layout.invoice_number}")
    pdf.drawString(MARGIN, PAGE_HEIGHT - 96, layout.date_line)

    pdf.setFont(BOLD_FONT, 14)
    pdf.drawString(MARGIN, PAGE_HEIGHT - 124, "Bill To:")
    pdf.setFont(FONT, 12)
    y = PAGE_HEIGHT - 142
    for line in layout.bill_to:
        pdf.drawString(MARGIN, y, line)
        y -= 16


def _draw_continuation_header(pdf: canvas.Canvas, layout: DocumentLayout) -> None:
    pdf.setFont(BOLD_FONT, 12)
    pdf.drawString(MARGIN, PAGE_HEIGHT - 50, f"{layout.title} (cont.)")
    pdf.setFont(FONT, 9)
    pdf.drawString(MARGIN, PAGE_HEIGHT - 66, f"Invoice #: {layout.invoice_number}")


def _draw_cells(pdf: canvas.Canvas, y: float, cells: tuple[str, ...]) -> None:
    x = MARGIN
    for i, (cell, width) in enumerate(zip(cells, COLUMN_WIDTHS)):
        if i == 0:
            pdf.drawString(x + CELL_PADDING, y, cell)
        else:
            pdf.drawRightString(x + width - CELL_PADDING, y, cell)
        x += width


def _draw_table(pdf: canvas.Canvas, page: PageLayout) -> None:
    top = page.table_top

    pdf.setFillColor(HEADER_FILL)
    pdf.rect(MARGIN, top - 7, CONTENT_WIDTH, ROW_HEIGHT - 2, stroke=0, fill=1)
    pdf.setFillColor(colors.white)
    pdf.setFont(BOLD_FONT, BODY_SIZE)
    _draw_cells(pdf, top, page.column_headers)

    pdf.setFont(FONT, BODY_SIZE)
    for i, row in enumerate(page.rows):
        y = top - ROW_HEIGHT * (i + 1)
        if i % 2 == 1:
            pdf.setFillColor(STRIPE_FILL)
            pdf.rect(MARGIN, y - 7, CONTENT_WIDTH, ROW_HEIGHT - 2, stroke=0, fill=1)
        pdf.setFillColor(colors.black)
        _draw_cells(pdf, y, row.cells())
    pdf.setFillColor(colors.black)


def _draw_totals(pdf: canvas.Canvas, layout: DocumentLayout, page: PageLayout) -> None:
    label_x = PAGE_WIDTH - MARGIN - 110
    value_x = PAGE_WIDTH - MARGIN
    y = page.last_row_y - 28
    for i, (label, value) in enumerate(layout.totals):
        is_grand = i == len(layout.totals) - 1
        if is_grand:
            y -= 4
            pdf.setFont(BOLD_FONT, 13)
        else:
            pdf.setFont(FONT, 11)
        pdf.drawRightString(label_x, y, label)
        pdf.drawRightString(value_x, y, value)
        y -= 18


def _draw_footer(pdf: canvas.Canvas, page: PageLayout, page_count: int) -> None:
    pdf.setFont(FONT, BODY_SIZE)
    pdf.setFillColor(colors.black)
    pdf.drawString(MARGIN, FOOTER_Y, FOOTER_TEXT)
    pdf.drawRightString(PAGE_WIDTH - MARGIN, FOOTER_Y, f"Page {page.number} of {page_count}")


def render_invoice_pdf(invoice: Union[Invoice, Draft]) -> bytes:
    """Render ``invoice`` to PDF bytes. Raises :class:`RenderError`."""
    buffer = io.BytesIO()
    try:
        layout = build_layout(invoice)
        pdf = canvas.Canvas(buffer, pagesize=A4, invariant=1)
        pdf.setTitle(f"Invoice {layout.invoice_number}")
        pdf.setAuthor("invoice_manager")
        for page in layout.pages:
            if page.is_first:
                _draw_first_page_header(pdf, layout)
            else:
                _draw_continuation_header(pdf, layout)
            _draw_table(pdf, page)
            if page.show_totals:
                _draw_totals(pdf, layout, page)
            _draw_footer(pdf, page, layout.page_count)
            pdf.showPage()
        pdf.save()
    except RenderError:
        raise
    except Exception as e:
        number = getattr(invoice, "invoice_number", None) or "?"
        raise RenderError(f"Failed to render invoice {number}: {e}") from e
    return buffer.getvalue()


def export_invoice_pdf(invoice: Union[Invoice, Draft], output_dir: Union[str, Path]) -> RenderResult:
    """Render and save ``invoice-{invoiceNumber}.pdf``. Never raises on bad input."""
    try:
        content = render_invoice_pdf(invoice)
        output_dir = Path(output_dir)
        output_dir.mkdir(parents=True, exist_ok=True)
        path = output_dir / invoice_filename(invoice.invoice_number)
        path.write_bytes(content)
    except RenderError as e:
        logger.error("%s", e)
        return RenderResult(error=str(e))
    except OSError as e:
        logger.error("Failed to write invoice PDF: %s", e)
        return RenderResult(error=f"Failed to write invoice PDF: {e}")
    return RenderResult(path=path)
