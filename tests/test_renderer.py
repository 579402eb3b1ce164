"""Tests for the PDF renderer."""

import copy
import io
from datetime import date

import pdfplumber
import pytest

from invoice_manager.errors import RenderError
from invoice_manager.models import Draft, Invoice, LineItem
from invoice_manager.pdf.renderer import (
    COLUMN_HEADERS,
    COLUMN_WIDTHS,
    CELL_PADDING,
    build_layout,
    export_invoice_pdf,
    invoice_filename,
    render_invoice_pdf,
    truncate_text,
)
from reportlab.pdfbase.pdfmetrics import stringWidth


def _make_invoice(n_services: int = 1, **overrides) -> Invoice:
    fields = dict(
        id="store-1",
        invoice_number="INV#OF-123456",
        date=date(2024, 3, 1),
        employee_name="Dana Reyes",
        employee_id="E-100",
        employee_email="dana@example.com",
        employee_address="1 Main St\nSpringfield",
        employee_mobile="555-0100",
        tax_rate=10.0,
        services=[
            LineItem(id=f"service-{i}", description=f"Task {i}", hours=1, rate=100)
            for i in range(n_services)
        ],
    )
    fields.update(overrides)
    return Invoice(**fields)


def _page_texts(pdf_bytes: bytes) -> list[str]:
    with pdfplumber.open(io.BytesIO(pdf_bytes)) as pdf:
        return [page.extract_text() or "" for page in pdf.pages]


class TestLayout:
    def test_single_page(self):
        layout = build_layout(_make_invoice(3))
        assert layout.page_count == 1
        page = layout.pages[0]
        assert page.is_first and page.show_totals
        assert len(page.rows) == 3

    def test_many_services_paginate_with_headers(self):
        layout = build_layout(_make_invoice(25))
        assert layout.page_count > 1
        assert sum(len(p.rows) for p in layout.pages) == 25
        for page in layout.pages:
            assert page.column_headers == COLUMN_HEADERS
        assert [p.show_totals for p in layout.pages] == [False] * (layout.page_count - 1) + [True]

    def test_totals_move_to_new_page_when_no_room(self):
        # 24 rows fill the first page exactly, leaving no space for totals
        layout = build_layout(_make_invoice(24))
        assert layout.page_count == 2
        assert len(layout.pages[0].rows) == 24
        assert layout.pages[1].rows == ()
        assert layout.pages[1].show_totals

    def test_rows_are_formatted(self):
        layout = build_layout(_make_invoice(services=[
            LineItem(id="s", description="Consulting", hours=10, rate=1250),
        ]))
        row = layout.pages[0].rows[0]
        assert row.cells() == ("Consulting", "10.00", "1,250.00", "12,500.00")
        assert layout.totals == (
            ("Subtotal:", "12,500.00"),
            ("Tax (10%):", "1,250.00"),
            ("Grand Total:", "13,750.00"),
        )

    def test_bill_to_joins_address_lines(self):
        layout = build_layout(_make_invoice())
        assert layout.bill_to == (
            "Dana Reyes",
            "Employee ID: E-100",
            "1 Main St, Springfield",
            "dana@example.com",
            "555-0100",
        )

    def test_accepts_draft(self):
        draft = Draft.from_invoice(_make_invoice(2))
        assert build_layout(draft).invoice_number == "INV#OF-123456"

    def test_input_is_not_modified(self):
        invoice = _make_invoice(30)
        before = copy.deepcopy(invoice)
        build_layout(invoice)
        render_invoice_pdf(invoice)
        assert invoice == before


class TestRender:
    def test_output_is_pdf(self):
        assert render_invoice_pdf(_make_invoice()).startswith(b"%PDF")

    def test_same_invoice_same_bytes(self):
        invoice = _make_invoice(5)
        assert render_invoice_pdf(invoice) == render_invoice_pdf(invoice)

    def test_content(self):
        texts = _page_texts(render_invoice_pdf(_make_invoice()))
        assert len(texts) == 1
        page = texts[0]
        assert "INVOICE" in page
        assert "INV#OF-123456" in page
        assert "Dana Reyes" in page
        assert "Grand Total:" in page
        assert "110.00" in page
        assert "Page 1 of 1" in page

    def test_continuation_pages_repeat_headers(self):
        texts = _page_texts(render_invoice_pdf(_make_invoice(25)))
        assert len(texts) == 2
        assert "Description" in texts[1]
        assert "(cont.)" in texts[1]
        assert "Page 2 of 2" in texts[1]
        assert "Grand Total:" in texts[1]
        assert "Grand Total:" not in texts[0]

    def test_malformed_input_raises(self):
        with pytest.raises(RenderError):
            render_invoice_pdf(_make_invoice(0))
        with pytest.raises(RenderError):
            render_invoice_pdf(_make_invoice(employee_name=""))
        with pytest.raises(RenderError):
            render_invoice_pdf({"invoiceNumber": "x"})

    def test_drawing_failure_becomes_render_error(self, monkeypatch):
        def broken_footer(*args):
            raise ZeroDivisionError("bad geometry")

        monkeypatch.setattr("invoice_manager.pdf.renderer._draw_footer", broken_footer)
        with pytest.raises(RenderError, match="INV#OF-123456"):
            render_invoice_pdf(_make_invoice())


class TestExport:
    def test_writes_named_file(self, tmp_path):
        result = export_invoice_pdf(_make_invoice(), tmp_path)
        assert result.ok
        assert result.path == tmp_path / "invoice-INV#OF-123456.pdf"
        assert result.path.read_bytes().startswith(b"%PDF")

    def test_bad_input_returns_error(self, tmp_path):
        result = export_invoice_pdf(_make_invoice(0), tmp_path)
        assert not result.ok
        assert result.path is None
        assert "services" in result.error
        assert list(tmp_path.iterdir()) == []

    def test_string_date_returns_error(self, tmp_path):
        result = export_invoice_pdf(_make_invoice(date="2024-03-01"), tmp_path)
        assert not result.ok
        assert "date" in result.error
        assert list(tmp_path.iterdir()) == []

    def test_non_line_item_services_return_error(self, tmp_path):
        result = export_invoice_pdf(_make_invoice(services=[{"hours": 1, "rate": 1}]), tmp_path)
        assert not result.ok
        assert "services[0]" in result.error
        assert list(tmp_path.iterdir()) == []

    def test_filename_strips_unsafe_characters(self):
        assert invoice_filename("INV/OF 1:2") == "invoice-INVOF12.pdf"
        assert invoice_filename("") == "invoice-invoice.pdf"


class TestTruncate:
    def test_short_text_unchanged(self):
        assert truncate_text("Consulting", 200) == "Consulting"

    def test_long_text_gets_ellipsis(self):
        width = COLUMN_WIDTHS[0] - 2 * CELL_PADDING
        text = truncate_text("x" * 500, width)
        assert text.endswith("...")
        assert stringWidth(text, "Helvetica", 10) <= width

    def test_whitespace_collapsed(self):
        assert truncate_text("a\n  b\tc", 200) == "a b c"
