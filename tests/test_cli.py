"""Tests for the typer CLI."""

import json

import httpx
import pytest
from typer.testing import CliRunner

from api.main import create_app
from invoice_manager.__main__ import app
from invoice_manager.client import InvoiceStoreClient
from invoice_manager.logging_config import reset_logging

runner = CliRunner()


def _invoice_json(**overrides) -> dict:
    data = {
        "invoiceNumber": "INV#OF-424242",
        "date": "2024-03-01",
        "employeeName": "Dana Reyes",
        "employeeId": "E-100",
        "employeeEmail": "dana@example.com",
        "employeeAddress": "1 Main St",
        "employeeMobile": "555-0100",
        "taxRate": 10,
        "services": [{"description": "Consulting", "hours": 10, "rate": 250}],
    }
    data.update(overrides)
    return data


@pytest.fixture(autouse=True)
def _clean_logging():
    yield
    reset_logging()


@pytest.fixture
def invoice_file(tmp_path):
    path = tmp_path / "invoice.json"
    path.write_text(json.dumps(_invoice_json()), encoding="utf-8")
    return path


@pytest.fixture
def store(monkeypatch):
    """Point every CLI command at one in-process reference store."""
    store_app = create_app()

    def from_settings(cls, settings, **kwargs):
        return cls(settings.api_url, transport=httpx.ASGITransport(app=store_app))

    monkeypatch.setattr(InvoiceStoreClient, "from_settings", classmethod(from_settings))
    return store_app


class TestRender:
    def test_render_local_file(self, invoice_file, tmp_path):
        out_dir = tmp_path / "out"
        result = runner.invoke(app, ["render", "--file", str(invoice_file), "--out-dir", str(out_dir)])
        assert result.exit_code == 0, result.output
        pdf = out_dir / "invoice-INV#OF-424242.pdf"
        assert pdf.read_bytes().startswith(b"%PDF")
        assert "PDF saved to" in result.stdout

    def test_render_invalid_file_fails(self, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text(json.dumps(_invoice_json(services=[])), encoding="utf-8")
        result = runner.invoke(app, ["render", "--file", str(path), "--out-dir", str(tmp_path)])
        assert result.exit_code == 1
        assert list(tmp_path.glob("*.pdf")) == []

    def test_render_unreadable_file(self, tmp_path):
        path = tmp_path / "broken.json"
        path.write_text("{not json", encoding="utf-8")
        result = runner.invoke(app, ["render", "--file", str(path)])
        assert result.exit_code == 1

    def test_render_needs_a_source(self):
        result = runner.invoke(app, ["render"])
        assert result.exit_code == 1


class TestStoreCommands:
    def test_create_list_delete(self, store, invoice_file):
        created = runner.invoke(app, ["create", str(invoice_file)])
        assert created.exit_code == 0, created.output
        assert "Invoice created." in created.stdout
        assert "2,750.00" in created.stdout

        (invoice,) = store.state.repository.list_all()
        listed = runner.invoke(app, ["list"])
        assert listed.exit_code == 0, listed.output
        assert invoice.id in listed.stdout
        assert "1 invoice(s), total 2,750.00" in listed.stdout

        deleted = runner.invoke(app, ["delete", invoice.id])
        assert deleted.exit_code == 0, deleted.output
        assert store.state.repository.list_all() == []

    def test_update_keeps_number(self, store, invoice_file, tmp_path):
        runner.invoke(app, ["create", str(invoice_file)])
        (invoice,) = store.state.repository.list_all()

        changed = tmp_path / "changed.json"
        changed.write_text(json.dumps(_invoice_json(taxRate=0)), encoding="utf-8")
        result = runner.invoke(app, ["update", invoice.id, str(changed)])
        assert result.exit_code == 0, result.output

        (updated,) = store.state.repository.list_all()
        assert updated.id == invoice.id
        assert updated.invoice_number == invoice.invoice_number
        assert updated.grand_total == 2500

    def test_show_missing(self, store):
        result = runner.invoke(app, ["show", "nope"])
        assert result.exit_code == 1

    def test_download(self, store, invoice_file, tmp_path):
        runner.invoke(app, ["create", str(invoice_file)])
        (invoice,) = store.state.repository.list_all()
        result = runner.invoke(app, ["download", invoice.id, "--out-dir", str(tmp_path)])
        assert result.exit_code == 0, result.output
        pdf = tmp_path / f"Invoice_{invoice.invoice_number}.pdf"
        assert pdf.read_bytes().startswith(b"%PDF")

    def test_send_email(self, store, invoice_file):
        runner.invoke(app, ["create", str(invoice_file)])
        (invoice,) = store.state.repository.list_all()
        result = runner.invoke(app, ["send-email", invoice.id])
        assert result.exit_code == 0, result.output
        assert store.state.mailer.outbox[0].to == "dana@example.com"

    def test_export_excel(self, store, invoice_file, tmp_path):
        runner.invoke(app, ["create", str(invoice_file)])
        out = tmp_path / "register.xlsx"
        result = runner.invoke(app, ["export-excel", str(out)])
        assert result.exit_code == 0, result.output
        assert out.exists()
        assert "1 invoice(s)" in result.stdout

    def test_send_custom_email(self, store):
        result = runner.invoke(
            app, ["send-custom-email", "--to", "a@b.c", "--subject", "Hi", "--body", "Hello"],
        )
        assert result.exit_code == 0, result.output
        assert store.state.mailer.outbox[0].body == "Hello"

    def test_send_custom_email_has_no_attach_flag(self, store):
        result = runner.invoke(
            app, ["send-custom-email", "--to", "a@b.c", "--subject", "Hi", "--body", "x", "--attach"],
        )
        assert result.exit_code != 0
        assert store.state.mailer.outbox == []
