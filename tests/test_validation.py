"""Tests for pre-submit validation."""

import pytest
from datetime import date

from invoice_manager.engine.validator import collect_errors, validate_draft, validate_invoice
from invoice_manager.errors import FieldError, InvoiceValidationError
from invoice_manager.models import Draft, Invoice, LineItem


def _make_draft() -> Draft:
    draft = Draft.new()
    draft.set_field("employee_name", "Dana Reyes")
    draft.set_field("employee_id", "E-100")
    draft.set_field("employee_email", "dana@example.com")
    draft.set_field("employee_address", "1 Main St")
    draft.set_field("employee_mobile", "555-0100")
    draft.update_service(draft.services[0].id, description="Consulting", hours=10, rate=250)
    return draft


class TestValidateDraft:
    def test_valid_draft_passes(self):
        draft = _make_draft()
        assert validate_draft(draft) is draft

    def test_missing_employee_fields_are_all_reported(self):
        draft = _make_draft()
        draft.set_field("employee_name", "")
        draft.set_field("employee_email", "   ")
        with pytest.raises(InvoiceValidationError) as exc:
            validate_draft(draft)
        assert exc.value.fields == ["employee_name", "employee_email"]

    def test_empty_services(self):
        draft = _make_draft()
        draft.services = []
        errors = collect_errors(draft)
        assert [e.field for e in errors] == ["services"]

    def test_blank_description_is_field_scoped(self):
        draft = _make_draft()
        draft.add_service(description="", hours=1, rate=1)
        errors = collect_errors(draft)
        assert errors == [FieldError("services[1].description", "is required")]

    def test_duplicate_service_ids(self):
        draft = _make_draft()
        draft.services.append(draft.services[0])
        fields = [e.field for e in collect_errors(draft)]
        assert "services[1].id" in fields

    @pytest.mark.parametrize("rate", [-1, 100.5])
    def test_tax_rate_out_of_range(self, rate):
        draft = _make_draft()
        draft.set_field("tax_rate", rate)
        assert [e.field for e in collect_errors(draft)] == ["tax_rate"]

    def test_tax_rate_bounds_inclusive(self):
        draft = _make_draft()
        for rate in (0, 100):
            draft.set_field("tax_rate", rate)
            assert collect_errors(draft) == []

    def test_error_message_lists_every_field(self):
        draft = _make_draft()
        draft.set_field("employee_mobile", "")
        draft.services = []
        with pytest.raises(InvoiceValidationError) as exc:
            validate_draft(draft)
        message = str(exc.value)
        assert "2 error(s)" in message
        assert "employee_mobile: is required" in message
        assert "services:" in message


class TestValidateInvoice:
    def test_invoice_without_number_fails(self):
        inv = Invoice(
            id="x",
            invoice_number="",
            date=date(2024, 1, 1),
            employee_name="A",
            employee_id="B",
            employee_email="c@d",
            employee_address="E",
            employee_mobile="F",
            tax_rate=10,
            services=[LineItem(id="s", description="d", hours=1, rate=1)],
        )
        with pytest.raises(InvoiceValidationError) as exc:
            validate_invoice(inv)
        assert exc.value.fields == ["invoice_number"]


class TestMalformedValues:
    def test_date_must_be_a_date(self):
        draft = _make_draft()
        draft.date = "2024-03-01"
        errors = collect_errors(draft)
        assert [e.field for e in errors] == ["date"]

    def test_service_must_be_a_line_item(self):
        draft = _make_draft()
        draft.services.append({"hours": 1, "rate": 1})
        errors = collect_errors(draft)
        assert [e.field for e in errors] == ["services[1]"]
